from transfer_recon.schemas.transfer import (
    DismissedSuggestionRead,
    PotentialTransferRead,
    TransferAccountRead,
    TransferPairRead,
    TransferTransactionRead,
)
from transfer_recon.services.ledger import LedgerAccount, LedgerTransaction
from transfer_recon.services.scoring import PotentialTransfer
from transfer_recon.services.transfer_pairs import DismissedTransfer, TransferPair


def serialize_transaction(transaction: LedgerTransaction) -> TransferTransactionRead:
    return TransferTransactionRead(
        transaction_id=transaction.id,
        account_id=transaction.account_id,
        tx_date=transaction.tx_date,
        signed_amount=transaction.signed_amount,
        currency=transaction.currency,
        description=transaction.description,
        category=transaction.category,
        transfer_pair_id=transaction.transfer_pair_id,
        transfer_status=transaction.transfer_status,
    )


def serialize_account(account: LedgerAccount | None) -> TransferAccountRead | None:
    if account is None:
        return None
    return TransferAccountRead(
        id=account.id,
        name=account.name,
        institution=account.institution,
        account_type=account.account_type,
    )


def serialize_potential_transfer(item: PotentialTransfer) -> PotentialTransferRead:
    return PotentialTransferRead(
        suggestion_id=item.suggestion_id,
        outgoing=serialize_transaction(item.outgoing),
        incoming=serialize_transaction(item.incoming),
        outgoing_account=serialize_account(item.outgoing_account),
        incoming_account=serialize_account(item.incoming_account),
        score=item.score,
        match_type=item.match_type,
        day_difference=item.day_difference,
        amount_difference=item.amount_difference,
        confidence=item.confidence,
    )


def serialize_transfer_pair(pair: TransferPair) -> TransferPairRead:
    return TransferPairRead(
        transfer_pair_id=pair.transfer_pair_id,
        paired_at=pair.paired_at,
        outgoing=serialize_transaction(pair.outgoing),
        incoming=serialize_transaction(pair.incoming),
        outgoing_account=serialize_account(pair.outgoing_account),
        incoming_account=serialize_account(pair.incoming_account),
    )


def serialize_dismissed(item: DismissedTransfer) -> DismissedSuggestionRead:
    return DismissedSuggestionRead(
        outgoing=serialize_transaction(item.outgoing),
        incoming=serialize_transaction(item.incoming),
        outgoing_account=serialize_account(item.outgoing_account),
        incoming_account=serialize_account(item.incoming_account),
        dismissed_at=item.dismissed_at,
    )
