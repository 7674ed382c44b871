"""Collector for recoverable warnings raised during a projection run."""

from __future__ import annotations

import logging
from typing import List, Optional

from cdladder.schemas.projection import Diagnostic

logger = logging.getLogger(__name__)

ALLOCATION_MISMATCH = "allocationMismatch"
INVALID_WITHDRAWAL_DATE = "invalidWithdrawalDate"
WITHDRAWAL_BEFORE_START = "withdrawalBeforeStart"
NO_LIQUID_ACCOUNT = "noLiquidAccount"
INVALID_REINVESTMENT_TERM = "invalidReinvestmentTerm"
REINVESTMENT_BLOCKED = "reinvestmentBlockedByShortfall"
MATURITY_BEYOND_RANGE = "maturityBeyondRange"
SAME_YEAR_MATURITY = "sameYearMaturity"
UNKNOWN_SCENARIO = "unknownScenario"


class Diagnostics:
    """
    Ordered list of Diagnostic records for one run.

    Each entry is also logged at WARNING, but the returned list is the
    source of truth; callers should not scrape logs for it.
    """

    def __init__(self) -> None:
        self._items: List[Diagnostic] = []

    def warn(
        self,
        code: str,
        message: str,
        *,
        year: Optional[int] = None,
        deposit_id: Optional[str] = None,
    ) -> None:
        logger.warning("%s: %s", code, message)
        self._items.append(Diagnostic(code=code, message=message, year=year, depositId=deposit_id))

    def codes(self) -> List[str]:
        return [item.code for item in self._items]

    def to_list(self) -> List[Diagnostic]:
        return list(self._items)
