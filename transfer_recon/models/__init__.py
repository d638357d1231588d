from transfer_recon.models.account import Account
from transfer_recon.models.dismissed_suggestion import DismissedSuggestion
from transfer_recon.models.enums import ConfidenceBand, MatchType, TransactionKind, TransferAction, TransferStatus
from transfer_recon.models.transaction import Transaction

__all__ = [
    "Account",
    "DismissedSuggestion",
    "Transaction",
    "TransactionKind",
    "TransferAction",
    "TransferStatus",
    "MatchType",
    "ConfidenceBand",
]
