from __future__ import annotations

from collections.abc import Iterable
from decimal import Decimal

from transfer_recon.services.scoring import PotentialTransfer


def resolution_key(item: PotentialTransfer) -> tuple[Decimal, int, Decimal, int, int]:
    return (
        -item.score,
        item.day_difference,
        item.amount_difference,
        item.outgoing.id,
        item.incoming.id,
    )


def resolve_candidates(
    candidates: Iterable[PotentialTransfer],
) -> tuple[list[PotentialTransfer], list[PotentialTransfer]]:
    """Greedily accept the best-scoring pairs so no transaction is claimed twice.

    Candidates that lose a conflict come back in ``rejected`` in the same
    order they were considered, so callers can offer them for manual review.
    """
    used_transactions: set[int] = set()
    accepted: list[PotentialTransfer] = []
    rejected: list[PotentialTransfer] = []

    for item in sorted(candidates, key=resolution_key):
        if item.outgoing.id in used_transactions or item.incoming.id in used_transactions:
            rejected.append(item)
            continue
        used_transactions.add(item.outgoing.id)
        used_transactions.add(item.incoming.id)
        accepted.append(item)

    return accepted, rejected
