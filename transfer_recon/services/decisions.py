"""Applies user decisions on transfer suggestions to the ledger.

Per transaction the transfer status moves ``unresolved -> paired | ignored``
and only an ``unpair`` decision moves it back. Every decision is written as
a single batch of conditional stamps, so either all affected transactions
change or none do, and a concurrent change between read and write surfaces
as :class:`AlreadyResolvedError`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from uuid import uuid4

from transfer_recon.models.enums import TransactionKind, TransferAction, TransferStatus
from transfer_recon.services.errors import (
    AlreadyResolvedError,
    InvalidPairError,
    InvalidReferenceError,
    StaleLedgerError,
    TransactionNotFoundError,
)
from transfer_recon.services.ledger import (
    IGNORED_PAIR_ID,
    LedgerTransaction,
    TransferLedger,
    TransferStamp,
    kind_for_amount,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class TransferPairAction:
    action: TransferAction
    outgoing_transaction_id: int
    incoming_transaction_id: int | None = None
    transfer_pair_id: str | None = None
    override: bool = False


@dataclass(frozen=True, slots=True)
class DecisionResult:
    action: TransferAction
    transfer_pair_id: str | None
    transaction_ids: tuple[int, ...]


def new_transfer_pair_id() -> str:
    return str(uuid4())


def _pair_stamp(transaction: LedgerTransaction, transfer_pair_id: str, matched_account_id: int) -> TransferStamp:
    return TransferStamp(
        transaction_id=transaction.id,
        expected_pair_id=transaction.transfer_pair_id,
        transfer_pair_id=transfer_pair_id,
        kind=TransactionKind.TRANSFER,
        matched_account_id=matched_account_id,
    )


def _clear_stamp(transaction: LedgerTransaction) -> TransferStamp:
    return TransferStamp(
        transaction_id=transaction.id,
        expected_pair_id=transaction.transfer_pair_id,
        transfer_pair_id=None,
        kind=kind_for_amount(transaction.signed_amount),
        matched_account_id=None,
    )


def validate_pair(outgoing: LedgerTransaction, incoming: LedgerTransaction) -> None:
    if outgoing.id == incoming.id:
        raise InvalidPairError("A transaction cannot be paired with itself")
    if outgoing.signed_amount >= 0 or incoming.signed_amount <= 0:
        raise InvalidPairError(
            "Invalid transfer pair: expecting outgoing (negative) and incoming (positive) transactions"
        )
    if outgoing.account_id == incoming.account_id:
        raise InvalidPairError("Transfers must be between different accounts")


async def load_transactions(ledger: TransferLedger, transaction_ids: Sequence[int]) -> list[LedgerTransaction]:
    found = await ledger.get_transactions(transaction_ids)
    missing = [transaction_id for transaction_id in transaction_ids if transaction_id not in found]
    if missing:
        raise TransactionNotFoundError(f"Transaction {missing[0]} not found")
    return [found[transaction_id] for transaction_id in transaction_ids]


async def _release_partners(
    ledger: TransferLedger,
    transaction: LedgerTransaction,
    keep: set[int],
) -> list[TransferStamp]:
    if transaction.transfer_status != TransferStatus.PAIRED:
        return []
    members = await ledger.find_pair_members(transaction.transfer_pair_id)
    return [_clear_stamp(member) for member in members if member.id not in keep]


async def _write(
    ledger: TransferLedger,
    action: TransferPairAction,
    stamps: list[TransferStamp],
    transfer_pair_id: str | None,
    exclusive: bool = False,
) -> DecisionResult:
    # Later stamps for the same transaction win; there is one write per row.
    unique = {stamp.transaction_id: stamp for stamp in stamps}
    try:
        await ledger.write_stamps(
            list(unique.values()),
            exclusive_pair_id=transfer_pair_id if exclusive else None,
        )
    except StaleLedgerError as exc:
        logger.warning(
            "Transfer decision %s on transaction %s hit a concurrent change: %s",
            action.action.value,
            action.outgoing_transaction_id,
            exc,
        )
        raise AlreadyResolvedError(
            "Transfer status changed since suggestions were generated, refresh and try again"
        ) from exc

    logger.info(
        "Applied transfer decision %s to transactions %s (pair %s)",
        action.action.value,
        sorted(unique),
        transfer_pair_id,
    )
    return DecisionResult(
        action=action.action,
        transfer_pair_id=transfer_pair_id,
        transaction_ids=tuple(sorted(unique)),
    )


async def _apply_pair(ledger: TransferLedger, action: TransferPairAction) -> DecisionResult:
    manual = action.action == TransferAction.MANUAL
    if action.incoming_transaction_id is None:
        raise InvalidPairError(f"A {action.action.value} decision requires an incoming transaction")

    outgoing, incoming = await load_transactions(
        ledger, [action.outgoing_transaction_id, action.incoming_transaction_id]
    )
    validate_pair(outgoing, incoming)

    if manual:
        transfer_pair_id = (action.transfer_pair_id or "").strip()
        if not transfer_pair_id:
            raise InvalidPairError("A manual decision requires a transfer_pair_id")
        if transfer_pair_id == IGNORED_PAIR_ID:
            raise InvalidReferenceError(f"{IGNORED_PAIR_ID!r} is reserved and cannot be used as a transfer pair id")

        members = await ledger.find_pair_members(transfer_pair_id)
        if any(member.id not in (outgoing.id, incoming.id) for member in members):
            raise InvalidReferenceError(f"Transfer pair id {transfer_pair_id!r} already belongs to another pairing")
        if outgoing.transfer_pair_id == transfer_pair_id and incoming.transfer_pair_id == transfer_pair_id:
            return DecisionResult(action=action.action, transfer_pair_id=transfer_pair_id, transaction_ids=())
    else:
        transfer_pair_id = new_transfer_pair_id()

    blocking = [
        item
        for item in (outgoing, incoming)
        if item.transfer_pair_id is not None and item.transfer_pair_id != transfer_pair_id
    ]
    if blocking and not action.override:
        raise AlreadyResolvedError(f"Transaction {blocking[0].id} is already {blocking[0].transfer_status.value}")

    stamps: list[TransferStamp] = []
    keep = {outgoing.id, incoming.id}
    for item in blocking:
        stamps.extend(await _release_partners(ledger, item, keep))
    stamps.append(_pair_stamp(outgoing, transfer_pair_id, incoming.account_id))
    stamps.append(_pair_stamp(incoming, transfer_pair_id, outgoing.account_id))

    # The id must still belong to no other pairing when the stamps land.
    return await _write(ledger, action, stamps, transfer_pair_id, exclusive=True)


async def _apply_ignore(ledger: TransferLedger, action: TransferPairAction) -> DecisionResult:
    (outgoing,) = await load_transactions(ledger, [action.outgoing_transaction_id])
    if outgoing.signed_amount >= 0:
        raise InvalidPairError("Only outgoing (negative) transactions can be ignored")

    status = outgoing.transfer_status
    if status == TransferStatus.IGNORED:
        return DecisionResult(action=action.action, transfer_pair_id=IGNORED_PAIR_ID, transaction_ids=())
    if status == TransferStatus.PAIRED and not action.override:
        raise AlreadyResolvedError(f"Transaction {outgoing.id} is already paired")

    stamps = await _release_partners(ledger, outgoing, {outgoing.id})
    stamps.append(
        TransferStamp(
            transaction_id=outgoing.id,
            expected_pair_id=outgoing.transfer_pair_id,
            transfer_pair_id=IGNORED_PAIR_ID,
            kind=kind_for_amount(outgoing.signed_amount),
            matched_account_id=None,
        )
    )
    return await _write(ledger, action, stamps, IGNORED_PAIR_ID)


async def _apply_unpair(ledger: TransferLedger, action: TransferPairAction) -> DecisionResult:
    (transaction,) = await load_transactions(ledger, [action.outgoing_transaction_id])

    status = transaction.transfer_status
    if status == TransferStatus.UNRESOLVED:
        raise InvalidReferenceError(f"Transaction {transaction.id} has no transfer decision to undo")
    if status == TransferStatus.IGNORED:
        stamps = [_clear_stamp(transaction)]
    else:
        members = await ledger.find_pair_members(transaction.transfer_pair_id)
        stamps = [_clear_stamp(member) for member in members]

    return await _write(ledger, action, stamps, None)


async def apply_decision(ledger: TransferLedger, action: TransferPairAction) -> DecisionResult:
    try:
        if action.action in (TransferAction.PAIR, TransferAction.MANUAL):
            return await _apply_pair(ledger, action)
        if action.action == TransferAction.IGNORE:
            return await _apply_ignore(ledger, action)
        if action.action == TransferAction.UNPAIR:
            return await _apply_unpair(ledger, action)
    except (AlreadyResolvedError, InvalidReferenceError, InvalidPairError) as exc:
        logger.warning(
            "Rejected transfer decision %s on transaction %s: %s",
            action.action.value,
            action.outgoing_transaction_id,
            exc,
        )
        raise
    raise InvalidPairError(f"Unsupported transfer action: {action.action}")


async def dismiss_suggestion(ledger: TransferLedger, outgoing_transaction_id: int, incoming_transaction_id: int) -> bool:
    outgoing, incoming = await load_transactions(ledger, [outgoing_transaction_id, incoming_transaction_id])
    validate_pair(outgoing, incoming)
    created = await ledger.add_dismissed(outgoing.id, incoming.id)
    if created:
        logger.info("Dismissed transfer suggestion %s-%s", outgoing.id, incoming.id)
    return created


async def restore_suggestion(ledger: TransferLedger, outgoing_transaction_id: int, incoming_transaction_id: int) -> bool:
    removed = await ledger.remove_dismissed(outgoing_transaction_id, incoming_transaction_id)
    if removed:
        logger.info("Restored transfer suggestion %s-%s", outgoing_transaction_id, incoming_transaction_id)
    return removed
