from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

from transfer_recon.models.enums import TransferStatus
from transfer_recon.services.ledger import LedgerTransaction


@dataclass(slots=True)
class CashFlowSummary:
    total_income: Decimal
    total_expense: Decimal
    total_transfers: Decimal


def summarize_cash_flow(rows: Iterable[LedgerTransaction]) -> CashFlowSummary:
    total_income = Decimal("0")
    total_expense = Decimal("0")
    total_transfers = Decimal("0")

    for row in rows:
        if row.transfer_status == TransferStatus.PAIRED:
            # Each transfer is counted once, on its outgoing side.
            if row.signed_amount < 0:
                total_transfers += row.magnitude
        elif row.signed_amount > 0:
            total_income += row.magnitude
        else:
            total_expense += row.magnitude

    return CashFlowSummary(
        total_income=total_income,
        total_expense=total_expense,
        total_transfers=total_transfers,
    )
