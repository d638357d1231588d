from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Sequence

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from transfer_recon.models.account import Account
from transfer_recon.models.dismissed_suggestion import DismissedSuggestion
from transfer_recon.models.transaction import Transaction
from transfer_recon.services.errors import StaleLedgerError
from transfer_recon.services.ledger import (
    IGNORED_PAIR_ID,
    DismissedPair,
    LedgerAccount,
    LedgerSnapshot,
    LedgerTransaction,
    TransferStamp,
)


def to_ledger_transaction(transaction: Transaction) -> LedgerTransaction:
    return LedgerTransaction(
        id=transaction.id,
        account_id=transaction.account_id,
        signed_amount=transaction.signed_amount,
        tx_date=transaction.tx_date,
        description=transaction.description,
        currency=transaction.currency,
        category=transaction.category,
        transfer_pair_id=transaction.transfer_pair_id,
        created_at=transaction.created_at,
        updated_at=transaction.updated_at,
    )


def _date_filters(from_date: dt.date | None, to_date: dt.date | None) -> list:
    filters = []
    if from_date is not None:
        filters.append(Transaction.tx_date >= from_date)
    if to_date is not None:
        filters.append(Transaction.tx_date <= to_date)
    return filters


def to_ledger_account(account: Account) -> LedgerAccount:
    return LedgerAccount(
        id=account.id,
        name=account.name,
        institution=account.institution,
        account_type=account.account_type,
        currency=account.currency,
        is_active=account.is_active,
    )


class SqlTransferLedger:
    """Transfer ledger backed by the ``transactions`` table of one user."""

    def __init__(self, session: AsyncSession, user_id: int) -> None:
        self.session = session
        self.user_id = user_id

    def _select_transactions(self, *filters):
        # Rows may already sit in the identity map from before a stamp write.
        return (
            select(Transaction)
            .where(Transaction.user_id == self.user_id, *filters)
            .execution_options(populate_existing=True)
        )

    async def load_snapshot(
        self,
        from_date: dt.date | None = None,
        to_date: dt.date | None = None,
    ) -> LedgerSnapshot:
        rows = await self.session.scalars(
            self._select_transactions(
                Transaction.transfer_pair_id.is_(None),
                *_date_filters(from_date, to_date),
            ).order_by(Transaction.tx_date.asc(), Transaction.id.asc())
        )
        transactions = [to_ledger_transaction(item) for item in rows.all()]
        accounts = await self.get_accounts()

        dismissed_rows = await self.session.execute(
            select(DismissedSuggestion.outgoing_transaction_id, DismissedSuggestion.incoming_transaction_id).where(
                DismissedSuggestion.user_id == self.user_id
            )
        )
        dismissed = frozenset((outgoing_id, incoming_id) for outgoing_id, incoming_id in dismissed_rows.all())

        return LedgerSnapshot(transactions=transactions, accounts=list(accounts.values()), dismissed=dismissed)

    async def get_accounts(self) -> dict[int, LedgerAccount]:
        rows = await self.session.scalars(
            select(Account).where(Account.user_id == self.user_id).order_by(Account.id.asc())
        )
        return {item.id: to_ledger_account(item) for item in rows.all()}

    async def get_transactions(self, transaction_ids: Iterable[int]) -> dict[int, LedgerTransaction]:
        ids = list(transaction_ids)
        if not ids:
            return {}
        rows = await self.session.scalars(self._select_transactions(Transaction.id.in_(ids)))
        return {item.id: to_ledger_transaction(item) for item in rows.all()}

    async def find_pair_members(self, transfer_pair_id: str) -> list[LedgerTransaction]:
        rows = await self.session.scalars(
            self._select_transactions(Transaction.transfer_pair_id == transfer_pair_id)
            .order_by(Transaction.id.asc())
        )
        return [to_ledger_transaction(item) for item in rows.all()]

    async def list_paired_transactions(self) -> list[LedgerTransaction]:
        rows = await self.session.scalars(
            self._select_transactions(
                Transaction.transfer_pair_id.is_not(None),
                Transaction.transfer_pair_id != IGNORED_PAIR_ID,
            )
            .order_by(Transaction.transfer_pair_id.asc(), Transaction.id.asc())
        )
        return [to_ledger_transaction(item) for item in rows.all()]

    async def list_transactions(
        self,
        from_date: dt.date | None = None,
        to_date: dt.date | None = None,
    ) -> list[LedgerTransaction]:
        rows = await self.session.scalars(
            self._select_transactions(*_date_filters(from_date, to_date)).order_by(
                Transaction.tx_date.asc(), Transaction.id.asc()
            )
        )
        return [to_ledger_transaction(item) for item in rows.all()]

    async def write_stamps(
        self,
        stamps: Sequence[TransferStamp],
        exclusive_pair_id: str | None = None,
    ) -> None:
        now = dt.datetime.now(dt.timezone.utc)
        stamped_ids = [stamp.transaction_id for stamp in stamps]
        try:
            # Row locks on the user's accounts serialize decision writes per user.
            await self.session.execute(
                select(Account.id).where(Account.user_id == self.user_id).with_for_update()
            )
            if exclusive_pair_id is not None:
                holders = await self.session.scalar(
                    select(func.count(Transaction.id)).where(
                        Transaction.user_id == self.user_id,
                        Transaction.transfer_pair_id == exclusive_pair_id,
                        Transaction.id.not_in(stamped_ids),
                    )
                )
                if holders:
                    raise StaleLedgerError(f"Transfer pair id {exclusive_pair_id!r} was taken by another pairing")

            for stamp in stamps:
                expected = (
                    Transaction.transfer_pair_id.is_(None)
                    if stamp.expected_pair_id is None
                    else Transaction.transfer_pair_id == stamp.expected_pair_id
                )
                result = await self.session.execute(
                    update(Transaction)
                    .where(
                        Transaction.id == stamp.transaction_id,
                        Transaction.user_id == self.user_id,
                        expected,
                    )
                    .values(
                        transfer_pair_id=stamp.transfer_pair_id,
                        kind=stamp.kind,
                        matched_account_id=stamp.matched_account_id,
                        updated_at=now,
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount != 1:
                    raise StaleLedgerError(
                        f"Transaction {stamp.transaction_id} no longer has transfer pair id {stamp.expected_pair_id!r}"
                    )
        except Exception:
            await self.session.rollback()
            raise
        await self.session.commit()

    async def add_dismissed(self, outgoing_transaction_id: int, incoming_transaction_id: int) -> bool:
        self.session.add(
            DismissedSuggestion(
                user_id=self.user_id,
                outgoing_transaction_id=outgoing_transaction_id,
                incoming_transaction_id=incoming_transaction_id,
            )
        )
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            return False
        return True

    async def remove_dismissed(self, outgoing_transaction_id: int, incoming_transaction_id: int) -> bool:
        result = await self.session.execute(
            delete(DismissedSuggestion).where(
                DismissedSuggestion.user_id == self.user_id,
                DismissedSuggestion.outgoing_transaction_id == outgoing_transaction_id,
                DismissedSuggestion.incoming_transaction_id == incoming_transaction_id,
            )
        )
        await self.session.commit()
        return result.rowcount > 0

    async def list_dismissed(self) -> list[DismissedPair]:
        rows = await self.session.scalars(
            select(DismissedSuggestion)
            .where(DismissedSuggestion.user_id == self.user_id)
            .order_by(DismissedSuggestion.created_at.desc(), DismissedSuggestion.id.desc())
        )
        return [
            DismissedPair(
                outgoing_transaction_id=item.outgoing_transaction_id,
                incoming_transaction_id=item.incoming_transaction_id,
                created_at=item.created_at,
            )
            for item in rows.all()
        ]
