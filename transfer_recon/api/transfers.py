import datetime as dt

from fastapi import APIRouter, Depends, Header, HTTPException, Query, status
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_recon.db.session import get_session
from transfer_recon.schemas.transfer import (
    CashFlowSummaryRead,
    DismissedSuggestionRead,
    DismissRequest,
    DismissResponse,
    SuggestionRequest,
    SuggestionResponse,
    TransferDecisionRequest,
    TransferDecisionResponse,
    TransferPairRead,
    TransferTransactionRead,
)
from transfer_recon.services.config import ReconciliationConfig, get_reconciliation_config
from transfer_recon.services.decisions import (
    TransferPairAction,
    apply_decision,
    dismiss_suggestion,
    restore_suggestion,
)
from transfer_recon.services.errors import (
    AlreadyResolvedError,
    InvalidPairError,
    InvalidReferenceError,
    TransactionNotFoundError,
)
from transfer_recon.services.ledger import TransferLedger
from transfer_recon.services.reporting import summarize_cash_flow
from transfer_recon.services.sql_ledger import SqlTransferLedger
from transfer_recon.services.suggestions import build_suggestions
from transfer_recon.services.transactions import (
    serialize_dismissed,
    serialize_potential_transfer,
    serialize_transaction,
    serialize_transfer_pair,
)
from transfer_recon.services.transfer_pairs import (
    find_orphaned_pairs,
    list_dismissed_suggestions,
    list_transfer_pairs,
)

router = APIRouter(prefix="/api/transfers", tags=["transfers"])


async def get_ledger(
    user_id: int = Header(alias="X-User-Id", ge=1),
    session: AsyncSession = Depends(get_session),
) -> TransferLedger:
    return SqlTransferLedger(session, user_id)


def _decision_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, TransactionNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, InvalidPairError):
        return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc))
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))


@router.post("/suggestions", response_model=SuggestionResponse)
async def suggestions_endpoint(
    payload: SuggestionRequest,
    ledger: TransferLedger = Depends(get_ledger),
    base_config: ReconciliationConfig = Depends(get_reconciliation_config),
) -> SuggestionResponse:
    try:
        config = base_config.with_overrides(
            **payload.model_dump(exclude={"from_date", "to_date"}, exclude_none=True)
        )
    except ValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    run = await build_suggestions(ledger, config=config, from_date=payload.from_date, to_date=payload.to_date)
    return SuggestionResponse(
        reviewed_transactions=run.reviewed_transactions,
        accepted=[serialize_potential_transfer(item) for item in run.accepted],
        rejected=[serialize_potential_transfer(item) for item in run.rejected],
    )


@router.post("/decisions", response_model=TransferDecisionResponse)
async def decision_endpoint(
    payload: TransferDecisionRequest,
    ledger: TransferLedger = Depends(get_ledger),
) -> TransferDecisionResponse:
    action = TransferPairAction(
        action=payload.action,
        outgoing_transaction_id=payload.outgoing_transaction_id,
        incoming_transaction_id=payload.incoming_transaction_id,
        transfer_pair_id=payload.transfer_pair_id,
        override=payload.override,
    )
    try:
        result = await apply_decision(ledger, action)
    except (AlreadyResolvedError, InvalidReferenceError, InvalidPairError) as exc:
        raise _decision_http_error(exc) from exc

    return TransferDecisionResponse(
        action=result.action,
        transfer_pair_id=result.transfer_pair_id,
        transaction_ids=list(result.transaction_ids),
    )


@router.get("/pairs", response_model=list[TransferPairRead])
async def list_transfer_pairs_endpoint(
    from_date: dt.date | None = Query(default=None, alias="from"),
    to_date: dt.date | None = Query(default=None, alias="to"),
    ledger: TransferLedger = Depends(get_ledger),
) -> list[TransferPairRead]:
    pairs = await list_transfer_pairs(ledger, from_date=from_date, to_date=to_date)
    return [serialize_transfer_pair(pair) for pair in pairs]


@router.get("/summary", response_model=CashFlowSummaryRead)
async def cash_flow_summary_endpoint(
    from_date: dt.date | None = Query(default=None, alias="from"),
    to_date: dt.date | None = Query(default=None, alias="to"),
    ledger: TransferLedger = Depends(get_ledger),
) -> CashFlowSummaryRead:
    summary = summarize_cash_flow(await ledger.list_transactions(from_date=from_date, to_date=to_date))
    return CashFlowSummaryRead(
        total_income=summary.total_income,
        total_expense=summary.total_expense,
        total_transfers=summary.total_transfers,
        balance=summary.total_income - summary.total_expense,
    )


@router.get("/orphans", response_model=list[TransferTransactionRead])
async def list_orphans_endpoint(
    ledger: TransferLedger = Depends(get_ledger),
) -> list[TransferTransactionRead]:
    return [serialize_transaction(item) for item in await find_orphaned_pairs(ledger)]


@router.get("/dismissed", response_model=list[DismissedSuggestionRead])
async def list_dismissed_endpoint(
    ledger: TransferLedger = Depends(get_ledger),
) -> list[DismissedSuggestionRead]:
    return [serialize_dismissed(item) for item in await list_dismissed_suggestions(ledger)]


@router.post("/dismissed", response_model=DismissResponse)
async def dismiss_endpoint(
    payload: DismissRequest,
    ledger: TransferLedger = Depends(get_ledger),
) -> DismissResponse:
    try:
        changed = await dismiss_suggestion(ledger, payload.outgoing_transaction_id, payload.incoming_transaction_id)
    except (InvalidReferenceError, InvalidPairError) as exc:
        raise _decision_http_error(exc) from exc
    return DismissResponse(changed=changed)


@router.delete("/dismissed/{outgoing_transaction_id}/{incoming_transaction_id}", response_model=DismissResponse)
async def restore_endpoint(
    outgoing_transaction_id: int,
    incoming_transaction_id: int,
    ledger: TransferLedger = Depends(get_ledger),
) -> DismissResponse:
    changed = await restore_suggestion(ledger, outgoing_transaction_id, incoming_transaction_id)
    return DismissResponse(changed=changed)
