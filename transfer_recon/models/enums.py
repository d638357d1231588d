from enum import Enum

from sqlalchemy import Enum as SAEnum


class TransactionKind(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"
    TRANSFER = "transfer"


class TransferStatus(str, Enum):
    UNRESOLVED = "unresolved"
    PAIRED = "paired"
    IGNORED = "ignored"


class TransferAction(str, Enum):
    PAIR = "pair"
    IGNORE = "ignore"
    MANUAL = "manual"
    UNPAIR = "unpair"


class MatchType(str, Enum):
    EXACT = "exact"
    CLOSE = "close"
    LOOSE = "loose"


class ConfidenceBand(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


transaction_kind_enum = SAEnum(
    TransactionKind,
    name="transaction_kind",
    native_enum=False,
    length=16,
    values_callable=lambda enum_cls: [item.value for item in enum_cls],
)
