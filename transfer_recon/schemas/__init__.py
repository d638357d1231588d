from transfer_recon.schemas.transfer import (
    CashFlowSummaryRead,
    DismissedSuggestionRead,
    DismissRequest,
    DismissResponse,
    PotentialTransferRead,
    SuggestionRequest,
    SuggestionResponse,
    TransferAccountRead,
    TransferDecisionRequest,
    TransferDecisionResponse,
    TransferPairRead,
    TransferTransactionRead,
)

__all__ = [
    "CashFlowSummaryRead",
    "SuggestionRequest",
    "SuggestionResponse",
    "PotentialTransferRead",
    "TransferAccountRead",
    "TransferTransactionRead",
    "TransferDecisionRequest",
    "TransferDecisionResponse",
    "TransferPairRead",
    "DismissRequest",
    "DismissResponse",
    "DismissedSuggestionRead",
]
