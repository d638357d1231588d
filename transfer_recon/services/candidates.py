from __future__ import annotations

import datetime as dt
from bisect import bisect_left, bisect_right
from collections.abc import Iterable
from decimal import Decimal

from transfer_recon.services.config import DEFAULT_CONFIG, ReconciliationConfig
from transfer_recon.services.ledger import LedgerAccount, LedgerTransaction

CandidatePair = tuple[LedgerTransaction, LedgerTransaction]


def allowed_amount_delta(
    outgoing_magnitude: Decimal,
    incoming_magnitude: Decimal,
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> Decimal:
    relative = config.relative_amount_tolerance * max(outgoing_magnitude, incoming_magnitude)
    return max(relative, config.absolute_amount_tolerance)


def amount_within_tolerance(
    outgoing_magnitude: Decimal,
    incoming_magnitude: Decimal,
    config: ReconciliationConfig = DEFAULT_CONFIG,
) -> bool:
    delta = abs(outgoing_magnitude - incoming_magnitude)
    return delta <= allowed_amount_delta(outgoing_magnitude, incoming_magnitude, config)


def magnitude_window(magnitude: Decimal, config: ReconciliationConfig = DEFAULT_CONFIG) -> tuple[Decimal, Decimal]:
    """Smallest and largest incoming magnitude that can match ``magnitude``.

    Relative tolerance is taken against the larger side, so the upper bound
    solves ``x - m <= rel * x`` rather than ``x - m <= rel * m``.
    """
    relative = config.relative_amount_tolerance
    absolute = config.absolute_amount_tolerance
    low = magnitude - max(relative * magnitude, absolute)
    high = max(magnitude / (1 - relative), magnitude + absolute)
    return low, high


def _in_range(transaction: LedgerTransaction, from_date: dt.date | None, to_date: dt.date | None) -> bool:
    if from_date is not None and transaction.tx_date < from_date:
        return False
    if to_date is not None and transaction.tx_date > to_date:
        return False
    return True


def generate_candidates(
    transactions: Iterable[LedgerTransaction],
    accounts: Iterable[LedgerAccount],
    config: ReconciliationConfig = DEFAULT_CONFIG,
    *,
    from_date: dt.date | None = None,
    to_date: dt.date | None = None,
    dismissed: frozenset[tuple[int, int]] = frozenset(),
) -> list[CandidatePair]:
    account_ids = {account.id for account in accounts if account.is_active}
    eligible = [
        item
        for item in transactions
        if item.transfer_pair_id is None
        and item.account_id in account_ids
        and _in_range(item, from_date, to_date)
    ]

    expenses = [item for item in eligible if item.signed_amount < 0]
    # Sorted once by magnitude so each expense only visits its tolerance window.
    incomes = sorted((item for item in eligible if item.signed_amount > 0), key=lambda item: (item.magnitude, item.id))
    income_magnitudes = [item.magnitude for item in incomes]

    candidates: list[CandidatePair] = []
    for expense in expenses:
        low, high = magnitude_window(expense.magnitude, config)
        start = bisect_left(income_magnitudes, low)
        stop = bisect_right(income_magnitudes, high)

        for income in incomes[start:stop]:
            if expense.account_id == income.account_id:
                continue
            if expense.currency != income.currency:
                continue
            if abs((income.tx_date - expense.tx_date).days) > config.day_window:
                continue
            if not amount_within_tolerance(expense.magnitude, income.magnitude, config):
                continue
            if (expense.id, income.id) in dismissed:
                continue

            candidates.append((expense, income))

    candidates.sort(key=lambda pair: (pair[0].id, pair[1].id))
    return candidates
