import datetime as dt
from collections.abc import Iterable, Sequence
from dataclasses import replace
from decimal import Decimal

import pytest

from transfer_recon.services.errors import StaleLedgerError
from transfer_recon.services.ledger import (
    IGNORED_PAIR_ID,
    DismissedPair,
    LedgerAccount,
    LedgerSnapshot,
    LedgerTransaction,
    TransferStamp,
)

CREATED_AT = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)


class InMemoryLedger:
    """Ledger fake with the same all-or-nothing write contract as the SQL one."""

    def __init__(
        self,
        transactions: Iterable[LedgerTransaction] = (),
        accounts: Iterable[LedgerAccount] = (),
    ) -> None:
        self.transactions = {item.id: item for item in transactions}
        self.accounts = {item.id: item for item in accounts}
        self.dismissed: dict[tuple[int, int], dt.datetime] = {}
        self.write_calls = 0
        self.before_write = None
        self._clock = CREATED_AT

    def _tick(self) -> dt.datetime:
        self._clock += dt.timedelta(minutes=1)
        return self._clock

    async def load_snapshot(self, from_date=None, to_date=None) -> LedgerSnapshot:
        transactions = [
            item
            for item in sorted(self.transactions.values(), key=lambda item: (item.tx_date, item.id))
            if item.transfer_pair_id is None
            and (from_date is None or item.tx_date >= from_date)
            and (to_date is None or item.tx_date <= to_date)
        ]
        return LedgerSnapshot(
            transactions=transactions,
            accounts=list(self.accounts.values()),
            dismissed=frozenset(self.dismissed),
        )

    async def get_accounts(self) -> dict[int, LedgerAccount]:
        return dict(self.accounts)

    async def get_transactions(self, transaction_ids: Iterable[int]) -> dict[int, LedgerTransaction]:
        return {item_id: self.transactions[item_id] for item_id in transaction_ids if item_id in self.transactions}

    async def find_pair_members(self, transfer_pair_id: str) -> list[LedgerTransaction]:
        return sorted(
            (item for item in self.transactions.values() if item.transfer_pair_id == transfer_pair_id),
            key=lambda item: item.id,
        )

    async def list_paired_transactions(self) -> list[LedgerTransaction]:
        return sorted(
            (
                item
                for item in self.transactions.values()
                if item.transfer_pair_id is not None and item.transfer_pair_id != IGNORED_PAIR_ID
            ),
            key=lambda item: (item.transfer_pair_id, item.id),
        )

    async def list_transactions(self, from_date=None, to_date=None) -> list[LedgerTransaction]:
        return [
            item
            for item in sorted(self.transactions.values(), key=lambda item: (item.tx_date, item.id))
            if (from_date is None or item.tx_date >= from_date) and (to_date is None or item.tx_date <= to_date)
        ]

    async def write_stamps(self, stamps: Sequence[TransferStamp], exclusive_pair_id: str | None = None) -> None:
        self.write_calls += 1
        if self.before_write is not None:
            self.before_write(self)
        stamped_ids = {stamp.transaction_id for stamp in stamps}
        if exclusive_pair_id is not None and any(
            item.transfer_pair_id == exclusive_pair_id and item.id not in stamped_ids
            for item in self.transactions.values()
        ):
            raise StaleLedgerError(f"Transfer pair id {exclusive_pair_id!r} was taken")
        for stamp in stamps:
            current = self.transactions.get(stamp.transaction_id)
            if current is None or current.transfer_pair_id != stamp.expected_pair_id:
                raise StaleLedgerError(f"Transaction {stamp.transaction_id} changed")
        now = self._tick()
        for stamp in stamps:
            self.transactions[stamp.transaction_id] = replace(
                self.transactions[stamp.transaction_id],
                transfer_pair_id=stamp.transfer_pair_id,
                updated_at=now,
            )

    async def add_dismissed(self, outgoing_transaction_id: int, incoming_transaction_id: int) -> bool:
        key = (outgoing_transaction_id, incoming_transaction_id)
        if key in self.dismissed:
            return False
        self.dismissed[key] = self._tick()
        return True

    async def remove_dismissed(self, outgoing_transaction_id: int, incoming_transaction_id: int) -> bool:
        return self.dismissed.pop((outgoing_transaction_id, incoming_transaction_id), None) is not None

    async def list_dismissed(self) -> list[DismissedPair]:
        return [
            DismissedPair(outgoing_transaction_id=outgoing_id, incoming_transaction_id=incoming_id, created_at=created)
            for (outgoing_id, incoming_id), created in sorted(
                self.dismissed.items(), key=lambda item: item[1], reverse=True
            )
        ]


def make_tx(
    tx_id: int,
    account_id: int,
    tx_date: dt.date,
    signed_amount: str,
    currency: str = "KZT",
    description: str = "",
    transfer_pair_id: str | None = None,
) -> LedgerTransaction:
    return LedgerTransaction(
        id=tx_id,
        account_id=account_id,
        signed_amount=Decimal(signed_amount),
        tx_date=tx_date,
        description=description,
        currency=currency,
        transfer_pair_id=transfer_pair_id,
        created_at=CREATED_AT,
    )


def make_account(account_id: int, name: str | None = None, is_active: bool = True) -> LedgerAccount:
    return LedgerAccount(id=account_id, name=name or f"Account {account_id}", institution="Kaspi", is_active=is_active)


@pytest.fixture
def accounts() -> list[LedgerAccount]:
    return [make_account(1, "Checking"), make_account(2, "Savings"), make_account(3, "Card")]
