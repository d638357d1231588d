"""Scoring of candidate transfer pairs.

A candidate starts at 100 points and loses ``day_penalty`` points per day
between the two sides and ``amount_penalty`` points per percent of relative
amount mismatch, never going below zero. Relative mismatch is measured
against the larger of the two magnitudes.

The match type is independent of the score: ``exact`` means same day and
same amount, ``close`` means at most two days apart and at most 1% off,
everything else is ``loose``. The confidence band is read off the score
using the configured thresholds.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from transfer_recon.models.enums import ConfidenceBand, MatchType
from transfer_recon.services.config import DEFAULT_CONFIG, ReconciliationConfig
from transfer_recon.services.errors import InvalidCandidateError
from transfer_recon.services.ledger import LedgerAccount, LedgerTransaction

BASE_SCORE = Decimal("100")
ZERO = Decimal("0")
CLOSE_MATCH_MAX_DAYS = 2
CLOSE_MATCH_MAX_RELATIVE_DIFFERENCE = Decimal("0.01")


@dataclass(frozen=True, slots=True)
class PotentialTransfer:
    outgoing: LedgerTransaction
    incoming: LedgerTransaction
    outgoing_account: LedgerAccount
    incoming_account: LedgerAccount
    score: Decimal
    match_type: MatchType
    day_difference: int
    amount_difference: Decimal
    confidence: ConfidenceBand

    @property
    def suggestion_id(self) -> str:
        return f"{self.outgoing.id}-{self.incoming.id}"


def day_difference(outgoing: LedgerTransaction, incoming: LedgerTransaction) -> int:
    return abs((incoming.tx_date - outgoing.tx_date).days)


def relative_amount_difference(outgoing_magnitude: Decimal, incoming_magnitude: Decimal) -> Decimal:
    largest = max(outgoing_magnitude, incoming_magnitude)
    if largest == 0:
        return ZERO
    return abs(outgoing_magnitude - incoming_magnitude) / largest


def compute_score(
    days: int,
    relative_difference: Decimal,
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> Decimal:
    score = (
        BASE_SCORE
        - days * config.day_penalty
        - relative_difference * BASE_SCORE * config.amount_penalty
    )
    return max(score, ZERO)


def classify_match(days: int, amount_delta: Decimal, relative_difference: Decimal) -> MatchType:
    if days == 0 and amount_delta == 0:
        return MatchType.EXACT
    if days <= CLOSE_MATCH_MAX_DAYS and relative_difference <= CLOSE_MATCH_MAX_RELATIVE_DIFFERENCE:
        return MatchType.CLOSE
    return MatchType.LOOSE


def confidence_band(score: Decimal, config: ReconciliationConfig = DEFAULT_CONFIG) -> ConfidenceBand:
    if score >= config.high_confidence_threshold:
        return ConfidenceBand.HIGH
    if score >= config.medium_confidence_threshold:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.LOW


def validate_candidate(outgoing: LedgerTransaction, incoming: LedgerTransaction) -> None:
    if outgoing.id == incoming.id:
        raise InvalidCandidateError(f"Transaction {outgoing.id} cannot be paired with itself")
    if outgoing.signed_amount >= 0:
        raise InvalidCandidateError(f"Outgoing transaction {outgoing.id} must have a negative amount")
    if incoming.signed_amount <= 0:
        raise InvalidCandidateError(f"Incoming transaction {incoming.id} must have a positive amount")
    if outgoing.account_id == incoming.account_id:
        raise InvalidCandidateError(
            f"Transactions {outgoing.id} and {incoming.id} belong to the same account {outgoing.account_id}"
        )


def score_candidate(
    outgoing: LedgerTransaction,
    incoming: LedgerTransaction,
    outgoing_account: LedgerAccount,
    incoming_account: LedgerAccount,
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> PotentialTransfer:
    validate_candidate(outgoing, incoming)

    days = day_difference(outgoing, incoming)
    amount_delta = abs(outgoing.magnitude - incoming.magnitude)
    relative_difference = relative_amount_difference(outgoing.magnitude, incoming.magnitude)
    score = compute_score(days, relative_difference, config)

    return PotentialTransfer(
        outgoing=outgoing,
        incoming=incoming,
        outgoing_account=outgoing_account,
        incoming_account=incoming_account,
        score=score,
        match_type=classify_match(days, amount_delta, relative_difference),
        day_difference=days,
        amount_difference=amount_delta,
        confidence=confidence_band(score, config),
    )
