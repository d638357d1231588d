import datetime as dt
from decimal import Decimal

from conftest import make_account, make_tx
from transfer_recon.models.enums import ConfidenceBand, MatchType
from transfer_recon.services.resolver import resolve_candidates
from transfer_recon.services.scoring import PotentialTransfer
from transfer_recon.services.suggestions import generate_suggestions

DAY = dt.date(2026, 2, 10)


def _candidate(outgoing_id: int, incoming_id: int, score: str, days: int = 0, amount_delta: str = "0") -> PotentialTransfer:
    return PotentialTransfer(
        outgoing=make_tx(outgoing_id, 1, DAY, "-100"),
        incoming=make_tx(incoming_id, 2, DAY, "100"),
        outgoing_account=make_account(1),
        incoming_account=make_account(2),
        score=Decimal(score),
        match_type=MatchType.LOOSE,
        day_difference=days,
        amount_difference=Decimal(amount_delta),
        confidence=ConfidenceBand.HIGH,
    )


def test_conflict_resolves_to_best_candidate(accounts) -> None:
    transactions = [
        make_tx(1, 1, DAY, "-10000"),
        make_tx(2, 3, DAY + dt.timedelta(days=2), "-10000"),
        make_tx(3, 2, DAY, "10000"),
    ]

    accepted, rejected = resolve_candidates(generate_suggestions(transactions, accounts))

    assert [item.suggestion_id for item in accepted] == ["1-3"]
    assert [item.suggestion_id for item in rejected] == ["2-3"]
    assert rejected[0].score == Decimal("80")


def test_equal_scores_prefer_smaller_day_difference() -> None:
    accepted, rejected = resolve_candidates(
        [
            _candidate(1, 10, "90", days=1),
            _candidate(2, 10, "90", days=0, amount_delta="5"),
        ]
    )

    assert [item.outgoing.id for item in accepted] == [2]
    assert [item.outgoing.id for item in rejected] == [1]


def test_equal_scores_and_days_prefer_smaller_amount_difference() -> None:
    accepted, _ = resolve_candidates(
        [
            _candidate(1, 10, "90", amount_delta="3"),
            _candidate(2, 10, "90", amount_delta="1"),
        ]
    )

    assert [item.outgoing.id for item in accepted] == [2]


def test_full_tie_prefers_smaller_outgoing_id() -> None:
    accepted, rejected = resolve_candidates(
        [
            _candidate(7, 10, "90"),
            _candidate(3, 10, "90"),
        ]
    )

    assert [item.outgoing.id for item in accepted] == [3]
    assert [item.outgoing.id for item in rejected] == [7]


def test_no_transaction_is_accepted_twice() -> None:
    candidates = [
        _candidate(outgoing_id, incoming_id, str(100 - (outgoing_id * incoming_id) % 37))
        for outgoing_id in range(1, 8)
        for incoming_id in range(20, 26)
    ]

    accepted, rejected = resolve_candidates(candidates)
    claimed = [item.outgoing.id for item in accepted] + [item.incoming.id for item in accepted]

    assert len(claimed) == len(set(claimed))
    assert len(accepted) == 6
    assert len(accepted) + len(rejected) == len(candidates)


def test_empty_input() -> None:
    assert resolve_candidates([]) == ([], [])
