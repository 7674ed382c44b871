from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Mapping, Optional, Sequence

from dateutil.relativedelta import relativedelta

from cdladder.core.errors import RateDataError
from cdladder.schemas.projection import (
    DEFAULT_REINVEST_TERM,
    LIQUID_TERM,
    AllocationRow,
    RateTableEntry,
    ReinvestOption,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Deposit:
    id: str
    principal: float
    term: str
    is_liquid: bool
    start_date: date
    duration_months: Optional[int]
    apy: float
    maturity_date: Optional[date]
    interest_at_maturity: float
    value_at_maturity: float
    reinvest_option: ReinvestOption = ReinvestOption.HOLD_CASH
    reinvest_term: str = DEFAULT_REINVEST_TERM


def duration_months(entry: Optional[RateTableEntry]) -> Optional[int]:
    """Whole-month duration of a fixed term, or None when it is missing or unusable."""
    if entry is None or entry.duration is None:
        return None
    months = float(entry.duration)
    if months <= 0 or not months.is_integer():
        return None
    return int(months)


def maturity_value(principal: float, apy: float, months: int) -> float:
    """principal * (1 + apy/100) ^ (months / 12), annual compounding."""
    return principal * (1 + apy / 100.0) ** (months / 12.0)


def open_deposit(
    deposit_id: str,
    principal: float,
    term: str,
    months: int,
    apy: float,
    start_date: date,
    reinvest_option: ReinvestOption = ReinvestOption.HOLD_CASH,
    reinvest_term: str = DEFAULT_REINVEST_TERM,
) -> Deposit:
    try:
        maturity_date = start_date + relativedelta(months=months)
        value = maturity_value(principal, apy, months)
    except (ValueError, OverflowError) as exc:
        raise RateDataError(f"Duration of {months} months for term {term} is out of range") from exc
    return Deposit(
        id=deposit_id,
        principal=principal,
        term=term,
        is_liquid=False,
        start_date=start_date,
        duration_months=months,
        apy=apy,
        maturity_date=maturity_date,
        interest_at_maturity=value - principal,
        value_at_maturity=value,
        reinvest_option=reinvest_option,
        reinvest_term=reinvest_term,
    )


def initialize_deposits(
    allocations: Sequence[AllocationRow],
    base_rates: Mapping[str, RateTableEntry],
    start_date: date,
) -> List[Deposit]:
    """
    Turn allocation rows into deposits priced at today's base rates.

    Raises RateDataError if a row (or a newDeposit election) names a term the
    rate table does not have, or a fixed term has no positive whole-month
    duration. Scenario adjustments never apply here: an initial deposit keeps
    the yield it was opened at.
    """
    deposits: List[Deposit] = []

    for index, row in enumerate(allocations):
        entry = base_rates.get(row.term)
        if entry is None:
            raise RateDataError(f"Missing or invalid rate data for term: {row.term}")
        deposit_id = row.id or f"{row.term}-{index}"
        principal = float(row.amount)

        if row.term == LIQUID_TERM:
            deposits.append(
                Deposit(
                    id=deposit_id,
                    principal=principal,
                    term=row.term,
                    is_liquid=True,
                    start_date=start_date,
                    duration_months=None,
                    apy=entry.apy,
                    maturity_date=None,
                    interest_at_maturity=0.0,
                    value_at_maturity=principal,
                )
            )
            continue

        months = duration_months(entry)
        if months is None:
            raise RateDataError(f"Invalid duration for term: {row.term}")

        option = row.reinvestmentOption or ReinvestOption.HOLD_CASH
        reinvest_term = row.reinvestmentTerm or DEFAULT_REINVEST_TERM
        if option == ReinvestOption.NEW_DEPOSIT and reinvest_term not in base_rates:
            raise RateDataError(f"Reinvestment term {reinvest_term} for {deposit_id} is not in the rate table")

        deposits.append(
            open_deposit(
                deposit_id,
                principal,
                row.term,
                months,
                entry.apy,
                start_date,
                reinvest_option=option,
                reinvest_term=reinvest_term,
            )
        )

    logger.debug("Initialized %d deposits (%d liquid)", len(deposits), sum(d.is_liquid for d in deposits))
    return deposits
