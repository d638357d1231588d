import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from transfer_recon.models.enums import ConfidenceBand, MatchType, TransferAction, TransferStatus


class SuggestionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    from_date: dt.date | None = Field(default=None, alias="from")
    to_date: dt.date | None = Field(default=None, alias="to")
    day_window: int | None = Field(default=None, ge=0, le=31)
    relative_amount_tolerance: Decimal | None = Field(default=None, ge=0, lt=1)
    absolute_amount_tolerance: Decimal | None = Field(default=None, ge=0)
    day_penalty: Decimal | None = Field(default=None, ge=0)
    amount_penalty: Decimal | None = Field(default=None, ge=0)
    high_confidence_threshold: Decimal | None = Field(default=None, ge=0, le=100)
    medium_confidence_threshold: Decimal | None = Field(default=None, ge=0, le=100)


class TransferAccountRead(BaseModel):
    id: int
    name: str
    institution: str
    account_type: str


class TransferTransactionRead(BaseModel):
    transaction_id: int
    account_id: int
    tx_date: dt.date
    signed_amount: Decimal
    currency: str
    description: str
    category: str | None
    transfer_pair_id: str | None
    transfer_status: TransferStatus


class PotentialTransferRead(BaseModel):
    suggestion_id: str
    outgoing: TransferTransactionRead
    incoming: TransferTransactionRead
    outgoing_account: TransferAccountRead
    incoming_account: TransferAccountRead
    score: Decimal
    match_type: MatchType
    day_difference: int
    amount_difference: Decimal
    confidence: ConfidenceBand


class SuggestionResponse(BaseModel):
    reviewed_transactions: int
    accepted: list[PotentialTransferRead]
    rejected: list[PotentialTransferRead]


class TransferDecisionRequest(BaseModel):
    action: TransferAction
    outgoing_transaction_id: int = Field(ge=1)
    incoming_transaction_id: int | None = Field(default=None, ge=1)
    transfer_pair_id: str | None = Field(default=None, min_length=1, max_length=64)
    override: bool = False


class TransferDecisionResponse(BaseModel):
    action: TransferAction
    transfer_pair_id: str | None
    transaction_ids: list[int]


class TransferPairRead(BaseModel):
    transfer_pair_id: str
    paired_at: dt.datetime | None
    outgoing: TransferTransactionRead
    incoming: TransferTransactionRead
    outgoing_account: TransferAccountRead | None
    incoming_account: TransferAccountRead | None


class DismissRequest(BaseModel):
    outgoing_transaction_id: int = Field(ge=1)
    incoming_transaction_id: int = Field(ge=1)


class DismissResponse(BaseModel):
    changed: bool


class DismissedSuggestionRead(BaseModel):
    outgoing: TransferTransactionRead
    incoming: TransferTransactionRead
    outgoing_account: TransferAccountRead | None
    incoming_account: TransferAccountRead | None
    dismissed_at: dt.datetime | None


class CashFlowSummaryRead(BaseModel):
    total_income: Decimal
    total_expense: Decimal
    total_transfers: Decimal
    balance: Decimal
