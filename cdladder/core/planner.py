"""Decide which calendar years a projection covers."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence

from dateutil.parser import isoparse

from cdladder.core import diagnostics as diag
from cdladder.core.diagnostics import Diagnostics
from cdladder.core.tranches import Deposit
from cdladder.schemas.projection import WithdrawalRow

logger = logging.getLogger(__name__)

LOOKAHEAD_YEARS = 5


@dataclass(frozen=True)
class YearRange:
    first: int
    last: int

    def years(self) -> range:
        return range(self.first, self.last + 1)

    def __len__(self) -> int:
        return max(self.last - self.first + 1, 0)


@dataclass(frozen=True)
class ScheduledWithdrawal:
    id: str
    date: date
    amount: float


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse 'YYYY-MM-DD' or a full ISO-8601 timestamp (a trailing Z included); None if missing or malformed."""
    if not value or not isinstance(value, str):
        return None
    try:
        return isoparse(value.strip()).date()
    except (ValueError, OverflowError):
        return None


def schedule_withdrawals(
    rows: Sequence[WithdrawalRow],
    start_year: int,
    diagnostics: Diagnostics,
) -> List[ScheduledWithdrawal]:
    """Keep withdrawals with a usable date; anything else is skipped with a warning."""
    scheduled: List[ScheduledWithdrawal] = []
    for index, row in enumerate(rows):
        withdrawal_id = row.id or f"withdrawal-{index}"
        when = parse_iso_date(row.date)
        if when is None:
            diagnostics.warn(
                diag.INVALID_WITHDRAWAL_DATE,
                f"Withdrawal {withdrawal_id} has an invalid or missing date ({row.date!r}); skipped.",
            )
            continue
        if when.year < start_year:
            diagnostics.warn(
                diag.WITHDRAWAL_BEFORE_START,
                f"Withdrawal {withdrawal_id} ({when.isoformat()}) is dated before the projection starts; skipped.",
                year=when.year,
            )
            continue
        scheduled.append(ScheduledWithdrawal(id=withdrawal_id, date=when, amount=float(row.amount)))
    return scheduled


def plan_year_range(
    start_date: date,
    deposits: Iterable[Deposit],
    withdrawal_dates: Iterable[date],
) -> YearRange:
    """
    Inclusive span of years to simulate, fixed up front from the initial data.

    The last year is whichever comes later: the latest withdrawal or initial
    maturity, or the start year plus the longest initial term (rounded up to
    whole years) plus a five-year lookahead.
    """
    start_year = start_date.year
    event_years = {start_year}
    event_years.update(when.year for when in withdrawal_dates)

    longest_months = 0
    for deposit in deposits:
        if deposit.is_liquid:
            continue
        if deposit.maturity_date is not None:
            event_years.add(deposit.maturity_date.year)
        longest_months = max(longest_months, deposit.duration_months or 0)

    lookahead_year = start_year + math.ceil(longest_months / 12) + LOOKAHEAD_YEARS
    last = max(max(event_years), lookahead_year)
    logger.debug("Projection range %d-%d", start_year, last)
    return YearRange(first=start_year, last=last)
