import asyncio
import datetime as dt
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from transfer_recon.db.base import Base
from transfer_recon.models import Account, Transaction, TransactionKind, TransferAction
from transfer_recon.services.decisions import TransferPairAction, apply_decision
from transfer_recon.services.errors import StaleLedgerError, TransactionNotFoundError
from transfer_recon.services.ledger import TransferStamp, kind_for_amount
from transfer_recon.services.sql_ledger import SqlTransferLedger

DAY = dt.date(2024, 1, 10)
CREATED_AT = dt.datetime(2024, 1, 1, tzinfo=dt.timezone.utc)
USER_ID = 1
OTHER_USER_ID = 2


def _account(account_id: int, user_id: int, name: str) -> Account:
    return Account(id=account_id, user_id=user_id, name=name, created_at=CREATED_AT)


def _tx(
    tx_id: int,
    user_id: int,
    account_id: int,
    signed_amount: str,
    tx_date: dt.date = DAY,
    transfer_pair_id: str | None = None,
) -> Transaction:
    amount = Decimal(signed_amount)
    return Transaction(
        id=tx_id,
        user_id=user_id,
        account_id=account_id,
        description=f"Transaction {tx_id}",
        signed_amount=amount,
        kind=TransactionKind.TRANSFER if transfer_pair_id else kind_for_amount(amount),
        transfer_pair_id=transfer_pair_id,
        tx_date=tx_date,
        created_at=CREATED_AT,
    )


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}"


async def _prepare(database_url: str):
    engine = create_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    sessions = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    async with sessions() as session:
        session.add_all(
            [
                _account(1, USER_ID, "Checking"),
                _account(2, USER_ID, "Savings"),
                _account(3, OTHER_USER_ID, "Checking"),
                _tx(1, USER_ID, 1, "-500.00"),
                _tx(2, USER_ID, 2, "500.00"),
                _tx(3, USER_ID, 1, "-200.00", transfer_pair_id="shared"),
                _tx(4, USER_ID, 2, "200.00", tx_date=DAY + dt.timedelta(days=3), transfer_pair_id="shared"),
                _tx(5, OTHER_USER_ID, 3, "-500.00"),
            ]
        )
        await session.commit()
    return engine, sessions


def _stamp(tx_id: int, expected: str | None, transfer_pair_id: str, matched_account_id: int) -> TransferStamp:
    return TransferStamp(
        transaction_id=tx_id,
        expected_pair_id=expected,
        transfer_pair_id=transfer_pair_id,
        kind=TransactionKind.TRANSFER,
        matched_account_id=matched_account_id,
    )


async def _pairing_columns(session: AsyncSession, transaction_ids: list[int]) -> list[tuple]:
    rows = await session.execute(
        select(Transaction.id, Transaction.kind, Transaction.matched_account_id)
        .where(Transaction.id.in_(transaction_ids))
        .order_by(Transaction.id)
    )
    return [tuple(row) for row in rows.all()]


def test_stale_stamp_leaves_whole_batch_unwritten(database_url) -> None:
    async def scenario():
        engine, sessions = await _prepare(database_url)
        try:
            async with sessions() as session:
                ledger = SqlTransferLedger(session, USER_ID)
                with pytest.raises(StaleLedgerError):
                    await ledger.write_stamps([_stamp(1, None, "p", 2), _stamp(2, "wrong", "p", 1)])

            async with sessions() as session:
                return await SqlTransferLedger(session, USER_ID).get_transactions([1, 2])
        finally:
            await engine.dispose()

    rows = asyncio.run(scenario())

    assert rows[1].transfer_pair_id is None
    assert rows[2].transfer_pair_id is None


def test_pair_then_unpair_round_trips(database_url) -> None:
    async def scenario():
        engine, sessions = await _prepare(database_url)
        try:
            async with sessions() as session:
                ledger = SqlTransferLedger(session, USER_ID)
                paired = await apply_decision(
                    ledger,
                    TransferPairAction(action=TransferAction.PAIR, outgoing_transaction_id=1, incoming_transaction_id=2),
                )
                members = await ledger.find_pair_members(paired.transfer_pair_id)
                stamped = await _pairing_columns(session, [1, 2])
                unpaired = await apply_decision(
                    ledger,
                    TransferPairAction(action=TransferAction.UNPAIR, outgoing_transaction_id=2),
                )
                after = await ledger.get_transactions([1, 2])

            async with sessions() as session:
                cleared = await _pairing_columns(session, [1, 2])
            return paired, members, stamped, unpaired, after, cleared
        finally:
            await engine.dispose()

    paired, members, stamped, unpaired, after, cleared = asyncio.run(scenario())

    assert [item.id for item in members] == [1, 2]
    assert stamped == [(1, TransactionKind.TRANSFER, 2), (2, TransactionKind.TRANSFER, 1)]
    assert unpaired.transaction_ids == (1, 2)
    assert after[1].transfer_pair_id is None
    assert after[2].transfer_pair_id is None
    assert cleared == [(1, TransactionKind.EXPENSE, None), (2, TransactionKind.INCOME, None)]
    assert paired.transfer_pair_id not in (None, "ignored")


def test_other_users_transactions_are_not_found(database_url) -> None:
    async def scenario():
        engine, sessions = await _prepare(database_url)
        try:
            async with sessions() as session:
                ledger = SqlTransferLedger(session, OTHER_USER_ID)
                with pytest.raises(TransactionNotFoundError):
                    await apply_decision(
                        ledger,
                        TransferPairAction(
                            action=TransferAction.PAIR, outgoing_transaction_id=5, incoming_transaction_id=2
                        ),
                    )

            async with sessions() as session:
                return await SqlTransferLedger(session, USER_ID).get_transactions([2])
        finally:
            await engine.dispose()

    rows = asyncio.run(scenario())

    assert rows[2].transfer_pair_id is None


def test_pair_id_taken_by_another_pairing_is_stale(database_url) -> None:
    async def scenario():
        engine, sessions = await _prepare(database_url)
        try:
            async with sessions() as session:
                ledger = SqlTransferLedger(session, USER_ID)
                with pytest.raises(StaleLedgerError):
                    await ledger.write_stamps(
                        [_stamp(1, None, "shared", 2), _stamp(2, None, "shared", 1)],
                        exclusive_pair_id="shared",
                    )
                return await ledger.find_pair_members("shared")
        finally:
            await engine.dispose()

    members = asyncio.run(scenario())

    assert [item.id for item in members] == [3, 4]


def test_dismissing_twice_reports_no_change(database_url) -> None:
    async def scenario():
        engine, sessions = await _prepare(database_url)
        try:
            async with sessions() as session:
                ledger = SqlTransferLedger(session, USER_ID)
                first = await ledger.add_dismissed(1, 2)
                second = await ledger.add_dismissed(1, 2)
                listed = await ledger.list_dismissed()
            return first, second, listed
        finally:
            await engine.dispose()

    first, second, listed = asyncio.run(scenario())

    assert first is True
    assert second is False
    assert [(item.outgoing_transaction_id, item.incoming_transaction_id) for item in listed] == [(1, 2)]


def test_list_transactions_is_scoped_to_user_and_dates(database_url) -> None:
    async def scenario():
        engine, sessions = await _prepare(database_url)
        try:
            async with sessions() as session:
                ledger = SqlTransferLedger(session, USER_ID)
                return await ledger.list_transactions(), await ledger.list_transactions(from_date=DAY + dt.timedelta(days=1))
        finally:
            await engine.dispose()

    everything, later = asyncio.run(scenario())

    assert [item.id for item in everything] == [1, 2, 3, 4]
    assert [item.id for item in later] == [4]
