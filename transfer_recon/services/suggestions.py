from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from transfer_recon.services.candidates import generate_candidates
from transfer_recon.services.config import DEFAULT_CONFIG, ReconciliationConfig
from transfer_recon.services.ledger import LedgerAccount, LedgerTransaction, TransferLedger
from transfer_recon.services.resolver import resolve_candidates
from transfer_recon.services.scoring import PotentialTransfer, score_candidate

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SuggestionRun:
    accepted: list[PotentialTransfer]
    rejected: list[PotentialTransfer]
    reviewed_transactions: int


def generate_suggestions(
    transactions: Iterable[LedgerTransaction],
    accounts: Iterable[LedgerAccount],
    config: ReconciliationConfig | None = None,
    *,
    from_date: dt.date | None = None,
    to_date: dt.date | None = None,
    dismissed: frozenset[tuple[int, int]] = frozenset(),
) -> list[PotentialTransfer]:
    config = config or DEFAULT_CONFIG
    account_map = {account.id: account for account in accounts}

    candidates = generate_candidates(
        transactions,
        account_map.values(),
        config,
        from_date=from_date,
        to_date=to_date,
        dismissed=dismissed,
    )
    return [
        score_candidate(
            expense,
            income,
            account_map[expense.account_id],
            account_map[income.account_id],
            config,
        )
        for expense, income in candidates
    ]


async def build_suggestions(
    ledger: TransferLedger,
    config: ReconciliationConfig | None = None,
    from_date: dt.date | None = None,
    to_date: dt.date | None = None,
) -> SuggestionRun:
    snapshot = await ledger.load_snapshot(from_date=from_date, to_date=to_date)
    suggestions = generate_suggestions(
        snapshot.transactions,
        snapshot.accounts,
        config,
        from_date=from_date,
        to_date=to_date,
        dismissed=snapshot.dismissed,
    )
    accepted, rejected = resolve_candidates(suggestions)

    logger.info(
        "Transfer suggestions: %d transactions reviewed, %d candidates, %d accepted, %d rejected",
        len(snapshot.transactions),
        len(suggestions),
        len(accepted),
        len(rejected),
    )
    return SuggestionRun(
        accepted=accepted,
        rejected=rejected,
        reviewed_transactions=len(snapshot.transactions),
    )
