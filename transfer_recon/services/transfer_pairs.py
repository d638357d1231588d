from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass

from transfer_recon.services.ledger import LedgerAccount, LedgerTransaction, TransferLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransferPair:
    transfer_pair_id: str
    outgoing: LedgerTransaction
    incoming: LedgerTransaction
    outgoing_account: LedgerAccount | None
    incoming_account: LedgerAccount | None
    paired_at: dt.datetime | None


@dataclass(frozen=True, slots=True)
class DismissedTransfer:
    outgoing: LedgerTransaction
    incoming: LedgerTransaction
    outgoing_account: LedgerAccount | None
    incoming_account: LedgerAccount | None
    dismissed_at: dt.datetime | None


def _paired_at(transactions: list[LedgerTransaction]) -> dt.datetime | None:
    stamps = [item.updated_at or item.created_at for item in transactions]
    known = [stamp for stamp in stamps if stamp is not None]
    return min(known) if known else None


def _group_by_pair(transactions: list[LedgerTransaction]) -> dict[str, list[LedgerTransaction]]:
    grouped: dict[str, list[LedgerTransaction]] = {}
    for transaction in sorted(transactions, key=lambda item: item.id):
        if transaction.transfer_pair_id is None:
            continue
        grouped.setdefault(transaction.transfer_pair_id, []).append(transaction)
    return grouped


async def list_transfer_pairs(
    ledger: TransferLedger,
    from_date: dt.date | None = None,
    to_date: dt.date | None = None,
) -> list[TransferPair]:
    grouped = _group_by_pair(await ledger.list_paired_transactions())
    accounts = await ledger.get_accounts()

    result: list[TransferPair] = []
    for transfer_pair_id, members in grouped.items():
        if len(members) < 2:
            continue
        outgoing = next((item for item in members if item.signed_amount < 0), None)
        incoming = next((item for item in members if item.signed_amount > 0), None)
        if outgoing is None or incoming is None:
            logger.warning("Transfer pair %s has no outgoing/incoming split, skipping", transfer_pair_id)
            continue
        if from_date is not None and outgoing.tx_date < from_date:
            continue
        if to_date is not None and outgoing.tx_date > to_date:
            continue

        result.append(
            TransferPair(
                transfer_pair_id=transfer_pair_id,
                outgoing=outgoing,
                incoming=incoming,
                outgoing_account=accounts.get(outgoing.account_id),
                incoming_account=accounts.get(incoming.account_id),
                paired_at=_paired_at(members),
            )
        )

    result.sort(
        key=lambda item: (item.paired_at is not None, item.paired_at, item.transfer_pair_id),
        reverse=True,
    )
    return result


async def find_orphaned_pairs(ledger: TransferLedger) -> list[LedgerTransaction]:
    """Paired transactions whose counterpart no longer carries the same pair id."""
    grouped = _group_by_pair(await ledger.list_paired_transactions())
    return [members[0] for members in grouped.values() if len(members) == 1]


async def list_dismissed_suggestions(ledger: TransferLedger) -> list[DismissedTransfer]:
    dismissed = await ledger.list_dismissed()
    transaction_ids = {item.outgoing_transaction_id for item in dismissed} | {
        item.incoming_transaction_id for item in dismissed
    }
    transactions = await ledger.get_transactions(sorted(transaction_ids))
    accounts = await ledger.get_accounts()

    result: list[DismissedTransfer] = []
    for item in dismissed:
        outgoing = transactions.get(item.outgoing_transaction_id)
        incoming = transactions.get(item.incoming_transaction_id)
        if outgoing is None or incoming is None:
            continue
        result.append(
            DismissedTransfer(
                outgoing=outgoing,
                incoming=incoming,
                outgoing_account=accounts.get(outgoing.account_id),
                incoming_account=accounts.get(incoming.account_id),
                dismissed_at=item.created_at,
            )
        )

    result.sort(
        key=lambda item: (item.dismissed_at is not None, item.dismissed_at, item.outgoing.id),
        reverse=True,
    )
    return result
