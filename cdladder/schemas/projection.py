"""Data contracts for portfolio projections."""

from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

LIQUID_TERM = "HYSA"
BASELINE_SCENARIO_ID = "ratesStayHigh"
DEFAULT_REINVEST_TERM = "12m"


class ReinvestOption(str, Enum):
    HOLD_CASH = "holdCash"
    MOVE_TO_LIQUID = "moveToLiquid"
    NEW_DEPOSIT = "newDeposit"


class RateTableEntry(BaseModel):
    """Base yield for one term. A null duration marks the liquid account."""

    model_config = ConfigDict(extra="forbid")

    apy: float = Field(..., description="Annual percentage yield, e.g. 4.0 for 4%.")
    duration: Optional[float] = Field(default=None, description="Term length in months.")


class RateScenario(BaseModel):
    """
    Declarative rule for how future yields deviate from today's base rates.

    startEffectYear / fullEffectYear are 1-based projection years: a scenario
    with startEffectYear=2 first moves rates in the second simulated year.
    """

    model_config = ConfigDict(extra="forbid")

    id: str
    label: str = ""
    description: str = ""
    startEffectYear: int = Field(ge=1)
    fullEffectYear: int = Field(ge=1)
    floorApy: float = 0.0
    perTermAdjustment: Dict[str, float] = Field(default_factory=dict)
    defaultAdjustment: Optional[float] = None

    @model_validator(mode="after")
    def fill_default_adjustment(self) -> "RateScenario":
        if self.fullEffectYear < self.startEffectYear:
            raise ValueError("fullEffectYear must not precede startEffectYear")
        if self.defaultAdjustment is None:
            self.defaultAdjustment = self.perTermAdjustment.get(LIQUID_TERM, 0.0)
        return self

    def adjustment_for(self, term: str) -> float:
        return self.perTermAdjustment.get(term, self.defaultAdjustment or 0.0)


class AllocationRow(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = None
    amount: float = Field(default=0.0, ge=0)
    term: str
    reinvestmentOption: Optional[ReinvestOption] = None
    reinvestmentTerm: Optional[str] = None


class WithdrawalRow(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: Optional[str] = None
    # kept as raw text: an unparseable date skips the withdrawal instead of failing the request
    date: Optional[str] = None
    amount: float = Field(default=0.0, ge=0)


class ProjectionRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    investmentStartDate: str
    totalAmount: float = Field(ge=0)
    taxRate: float = Field(ge=0, le=100)
    allocations: List[AllocationRow]
    withdrawals: List[WithdrawalRow]
    interestRates: Dict[str, RateTableEntry]
    rateScenario: str = BASELINE_SCENARIO_ID
    scenarios: List[RateScenario] = Field(default_factory=list)
    reinvestSequenceStart: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def check_liquid_term(self) -> "ProjectionRequest":
        liquid = self.interestRates.get(LIQUID_TERM)
        if liquid is not None and liquid.duration is not None:
            raise ValueError(f"{LIQUID_TERM} is the liquid account and must have a null duration")
        return self


class CompareRequest(ProjectionRequest):
    scenarioIds: Optional[List[str]] = None


class Diagnostic(BaseModel):
    """A recoverable problem noticed while projecting; the run continues."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    code: str
    message: str
    year: Optional[int] = None
    depositId: Optional[str] = None


class YearRecord(BaseModel):
    """One simulated calendar year. Never modified after the engine emits it."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    year: int
    maturingValue: float
    reinvestedValue: float
    interestFromDeposits: float
    interestFromLiquid: float
    yearlyInterest: float
    taxesDue: float
    cashAvailableStart: float
    withdrawalAmount: float
    liquidWithdrawalToCoverShortfall: float
    netCashFlowYear: float
    endOfYearCash: float
    ongoingDepositPrincipal: float
    endOfYearLiquidBalance: float
    ongoingInvestmentsTotal: float
    totalPortfolioValue: float
    hasShortfall: bool
    yearEndShortfallAmount: float


class ProjectionTotals(BaseModel):
    model_config = ConfigDict(extra="forbid")

    totalInterestEarned: float
    totalTaxesPaid: float
    totalInterestAfterTax: float
    finalPortfolioValue: float


class ProjectionResult(BaseModel):
    model_config = ConfigDict(extra="forbid")

    years: List[YearRecord] = Field(default_factory=list)
    totals: Optional[ProjectionTotals] = None
    hasShortfall: bool = False
    error: Optional[str] = None
    warnings: List[Diagnostic] = Field(default_factory=list)
    scenario: str = BASELINE_SCENARIO_ID
    nextReinvestSequence: int = 0


class ScenarioSummary(BaseModel):
    id: str
    label: str
    description: str
