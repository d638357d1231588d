"""Read-only views of the ledger and the protocol the core talks to it through.

The candidate generator and scorer only ever see the frozen views defined
here. Writes go exclusively through :meth:`TransferLedger.write_stamps`,
which the decision ledger calls with the state it read just before writing.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Protocol

from transfer_recon.models.enums import TransactionKind, TransferStatus

IGNORED_PAIR_ID = "ignored"


def transfer_status_of(transfer_pair_id: str | None) -> TransferStatus:
    if transfer_pair_id is None:
        return TransferStatus.UNRESOLVED
    if transfer_pair_id == IGNORED_PAIR_ID:
        return TransferStatus.IGNORED
    return TransferStatus.PAIRED


def kind_for_amount(signed_amount: Decimal) -> TransactionKind:
    return TransactionKind.INCOME if signed_amount > 0 else TransactionKind.EXPENSE


@dataclass(frozen=True, slots=True)
class LedgerTransaction:
    id: int
    account_id: int
    signed_amount: Decimal
    tx_date: dt.date
    description: str = ""
    currency: str = "KZT"
    category: str | None = None
    transfer_pair_id: str | None = None
    created_at: dt.datetime | None = None
    updated_at: dt.datetime | None = None

    @property
    def magnitude(self) -> Decimal:
        return abs(self.signed_amount)

    @property
    def transfer_status(self) -> TransferStatus:
        return transfer_status_of(self.transfer_pair_id)


@dataclass(frozen=True, slots=True)
class LedgerAccount:
    id: int
    name: str
    institution: str = "Unknown"
    account_type: str = "checking"
    currency: str = "KZT"
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class DismissedPair:
    outgoing_transaction_id: int
    incoming_transaction_id: int
    created_at: dt.datetime | None = None


@dataclass(frozen=True, slots=True)
class LedgerSnapshot:
    transactions: list[LedgerTransaction]
    accounts: list[LedgerAccount]
    dismissed: frozenset[tuple[int, int]] = field(default_factory=frozenset)


@dataclass(frozen=True, slots=True)
class TransferStamp:
    """One conditional write: set the pairing fields if the id is still ``expected_pair_id``."""

    transaction_id: int
    expected_pair_id: str | None
    transfer_pair_id: str | None
    kind: TransactionKind
    matched_account_id: int | None = None


class TransferLedger(Protocol):
    async def load_snapshot(
        self,
        from_date: dt.date | None = None,
        to_date: dt.date | None = None,
    ) -> LedgerSnapshot: ...

    async def get_accounts(self) -> dict[int, LedgerAccount]: ...

    async def get_transactions(self, transaction_ids: Iterable[int]) -> dict[int, LedgerTransaction]: ...

    async def find_pair_members(self, transfer_pair_id: str) -> list[LedgerTransaction]: ...

    async def list_paired_transactions(self) -> list[LedgerTransaction]: ...

    async def list_transactions(
        self,
        from_date: dt.date | None = None,
        to_date: dt.date | None = None,
    ) -> list[LedgerTransaction]: ...

    async def write_stamps(
        self,
        stamps: Sequence[TransferStamp],
        exclusive_pair_id: str | None = None,
    ) -> None:
        """Apply every stamp or none of them.

        Raises :class:`~transfer_recon.services.errors.StaleLedgerError` when
        any transaction no longer carries its ``expected_pair_id``, or when
        ``exclusive_pair_id`` is given and a transaction outside the batch
        already carries it at write time.
        """

    async def add_dismissed(self, outgoing_transaction_id: int, incoming_transaction_id: int) -> bool: ...

    async def remove_dismissed(self, outgoing_transaction_id: int, incoming_transaction_id: int) -> bool: ...

    async def list_dismissed(self) -> list[DismissedPair]: ...
