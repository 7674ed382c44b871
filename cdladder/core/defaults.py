from __future__ import annotations

from datetime import date
from typing import Dict, Optional

from cdladder.schemas.projection import (
    LIQUID_TERM,
    AllocationRow,
    ProjectionRequest,
    RateTableEntry,
    ReinvestOption,
    WithdrawalRow,
)

DEFAULT_INTEREST_RATES: Dict[str, RateTableEntry] = {
    LIQUID_TERM: RateTableEntry(apy=3.6, duration=None),
    "6m": RateTableEntry(apy=3.8, duration=6),
    "9m": RateTableEntry(apy=3.8, duration=9),
    "12m": RateTableEntry(apy=4.0, duration=12),
    "18m": RateTableEntry(apy=3.7, duration=18),
    "24m": RateTableEntry(apy=3.5, duration=24),
    "30m": RateTableEntry(apy=3.5, duration=30),
    "36m": RateTableEntry(apy=3.5, duration=36),
    "48m": RateTableEntry(apy=3.5, duration=48),
    "60m": RateTableEntry(apy=3.5, duration=60),
}


def default_request(today: Optional[date] = None) -> ProjectionRequest:
    # starter form values: half in a 12m CD, half in the HYSA, two autumn withdrawals
    year = (today or date.today()).year
    return ProjectionRequest(
        investmentStartDate=f"{year}-01-01",
        totalAmount=100000,
        taxRate=25,
        allocations=[
            AllocationRow(
                id="tranche-0",
                amount=50000,
                term="12m",
                reinvestmentOption=ReinvestOption.HOLD_CASH,
                reinvestmentTerm="12m",
            ),
            AllocationRow(id="tranche-1", amount=50000, term=LIQUID_TERM),
        ],
        withdrawals=[
            WithdrawalRow(id="withdrawal-0", date=f"{year + 1}-09-01", amount=20000),
            WithdrawalRow(id="withdrawal-1", date=f"{year + 2}-09-01", amount=20000),
        ],
        interestRates={term: entry.model_copy() for term, entry in DEFAULT_INTEREST_RATES.items()},
    )
