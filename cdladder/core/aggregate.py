from __future__ import annotations

from typing import Sequence

from cdladder.core.tranches import Deposit
from cdladder.schemas.projection import ProjectionTotals, YearRecord


def overall_shortfall(records: Sequence[YearRecord]) -> bool:
    return any(record.hasShortfall for record in records)


def aggregate(records: Sequence[YearRecord], deposits: Sequence[Deposit]) -> ProjectionTotals:
    """Roll per-year records into run totals. With no years, the portfolio is worth what was put in."""
    total_interest = sum(record.yearlyInterest for record in records)
    total_taxes = sum(record.taxesDue for record in records)

    if records:
        final_value = records[-1].totalPortfolioValue
    else:
        final_value = sum(deposit.principal for deposit in deposits)

    return ProjectionTotals(
        totalInterestEarned=total_interest,
        totalTaxesPaid=total_taxes,
        totalInterestAfterTax=total_interest - total_taxes,
        finalPortfolioValue=final_value,
    )
