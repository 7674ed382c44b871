"""
Year-by-year portfolio state machine.

Each call to advance_year takes the state at the start of a calendar year and
returns that year's YearRecord plus the state to carry into the next year.
Order of operations within a year:

  1) Deduct any shortfall carried from last year from the opening cash.
  2) Release deposits maturing this year and apply their reinvestment
     election (a pending shortfall forces everything to cash).
  3) Accrue liquid-account interest on the opening liquid balance, then
     credit money moved into the liquid account this year.
  4) Tax the year's interest, take out withdrawals, and cover any deficit
     from the liquid account. Whatever is left uncovered carries forward.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import List, Mapping, Optional, Sequence, Tuple

from cdladder.core import diagnostics as diag
from cdladder.core.diagnostics import Diagnostics
from cdladder.core.errors import RateDataError
from cdladder.core.planner import ScheduledWithdrawal, YearRange
from cdladder.core.rates import scenario_apy
from cdladder.core.tranches import Deposit, duration_months, open_deposit
from cdladder.schemas.projection import (
    LIQUID_TERM,
    RateScenario,
    RateTableEntry,
    ReinvestOption,
    YearRecord,
)

logger = logging.getLogger(__name__)

MONEY_TOLERANCE = 0.01


@dataclass(frozen=True)
class SimulationContext:
    """Read-only inputs shared by every year of one run."""

    base_rates: Mapping[str, RateTableEntry]
    scenario: Optional[RateScenario]
    start_date: date
    tax_rate: float
    year_range: YearRange
    withdrawals: Tuple[ScheduledWithdrawal, ...] = ()

    @property
    def start_year(self) -> int:
        return self.start_date.year

    def withdrawals_in(self, year: int) -> float:
        return sum(w.amount for w in self.withdrawals if w.date.year == year)


@dataclass(frozen=True)
class SimulationState:
    cash_balance: float = 0.0
    liquid_balance: float = 0.0
    liquid_tracked: bool = False
    active_deposits: Tuple[Deposit, ...] = ()
    carried_shortfall: float = 0.0
    cumulative_interest: float = 0.0
    cumulative_taxes: float = 0.0
    has_shortfall: bool = False
    reinvest_sequence: int = 0


@dataclass
class SimulationRun:
    records: List[YearRecord] = field(default_factory=list)
    final_state: SimulationState = field(default_factory=SimulationState)


def initial_state(deposits: Sequence[Deposit], reinvest_sequence: int = 0) -> SimulationState:
    liquid = [d for d in deposits if d.is_liquid]
    return SimulationState(
        liquid_balance=sum(d.principal for d in liquid),
        liquid_tracked=bool(liquid),
        active_deposits=tuple(d for d in deposits if not d.is_liquid),
        reinvest_sequence=reinvest_sequence,
    )


def _roll_over(
    deposit: Deposit,
    year: int,
    sequence: int,
    context: SimulationContext,
    diagnostics: Diagnostics,
) -> Optional[Deposit]:
    """Open the follow-on deposit for a newDeposit election, or None to fall back to cash."""
    term = deposit.reinvest_term
    entry = context.base_rates.get(term)
    months = duration_months(entry)
    if months is None:
        diagnostics.warn(
            diag.INVALID_REINVESTMENT_TERM,
            f"Deposit {deposit.id}: invalid rate/duration for reinvestment term {term}; holding as cash.",
            year=year,
            deposit_id=deposit.id,
        )
        return None

    apy = scenario_apy(term, year, context.scenario, context.base_rates, context.start_year)
    try:
        rolled = open_deposit(
            f"{deposit.id}-reinvest-{sequence}",
            deposit.value_at_maturity,
            term,
            months,
            apy,
            deposit.maturity_date,
        )
    except RateDataError as exc:
        diagnostics.warn(
            diag.INVALID_REINVESTMENT_TERM,
            f"Deposit {deposit.id}: {exc}; holding as cash.",
            year=year,
            deposit_id=deposit.id,
        )
        return None

    matures = rolled.maturity_date.year
    if matures > context.year_range.last:
        diagnostics.warn(
            diag.MATURITY_BEYOND_RANGE,
            f"Reinvested deposit {rolled.id} matures in {matures}, beyond the projection range ({context.year_range.last}).",
            year=year,
            deposit_id=rolled.id,
        )
    elif matures <= year:
        diagnostics.warn(
            diag.SAME_YEAR_MATURITY,
            f"Reinvested deposit {rolled.id} matures within {year}; proceeds are released in {year + 1}.",
            year=year,
            deposit_id=rolled.id,
        )
    return rolled


def advance_year(
    state: SimulationState,
    year: int,
    context: SimulationContext,
    diagnostics: Diagnostics,
) -> Tuple[YearRecord, SimulationState]:
    starting_cash = state.cash_balance - state.carried_shortfall
    shortfall_pending = state.carried_shortfall > MONEY_TOLERANCE

    # ---------- Maturities & reinvestment ----------
    maturing_value = 0.0
    deposit_interest = 0.0
    cash_from_maturities = 0.0
    liquid_inflow = 0.0
    sequence = state.reinvest_sequence
    remaining: List[Deposit] = []
    rolled_over: List[Deposit] = []

    for deposit in state.active_deposits:
        if deposit.maturity_date is None or deposit.maturity_date.year > year:
            remaining.append(deposit)
            continue

        maturing_value += deposit.value_at_maturity
        deposit_interest += deposit.interest_at_maturity

        if shortfall_pending:
            cash_from_maturities += deposit.value_at_maturity
            diagnostics.warn(
                diag.REINVESTMENT_BLOCKED,
                f"Deposit {deposit.id}: reinvestment blocked by carried shortfall "
                f"({state.carried_shortfall:.2f}); holding as cash.",
                year=year,
                deposit_id=deposit.id,
            )
            continue

        if deposit.reinvest_option == ReinvestOption.MOVE_TO_LIQUID:
            if state.liquid_tracked:
                liquid_inflow += deposit.value_at_maturity
            else:
                cash_from_maturities += deposit.value_at_maturity
                diagnostics.warn(
                    diag.NO_LIQUID_ACCOUNT,
                    f"Deposit {deposit.id}: no liquid account defined; holding as cash.",
                    year=year,
                    deposit_id=deposit.id,
                )
        elif deposit.reinvest_option == ReinvestOption.NEW_DEPOSIT:
            rolled = _roll_over(deposit, year, sequence, context, diagnostics)
            if rolled is None:
                cash_from_maturities += deposit.value_at_maturity
            else:
                rolled_over.append(rolled)
                sequence += 1
        else:
            cash_from_maturities += deposit.value_at_maturity

    # ---------- Liquid account ----------
    liquid_interest = 0.0
    if state.liquid_tracked and state.liquid_balance > 0:
        rate = scenario_apy(LIQUID_TERM, year, context.scenario, context.base_rates, context.start_year) / 100.0
        factor = (13 - context.start_date.month) / 12.0 if year == context.start_year else 1.0
        liquid_interest = state.liquid_balance * rate * factor
    # money moved in this year starts earning next year
    liquid_balance = state.liquid_balance + liquid_inflow

    # ---------- Tax, withdrawals, shortfall ----------
    yearly_interest = deposit_interest + liquid_interest
    taxes_due = yearly_interest * context.tax_rate / 100.0
    withdrawals = context.withdrawals_in(year)

    cash_available = starting_cash + cash_from_maturities + liquid_interest
    net_flow = cash_available - withdrawals - taxes_due

    shortfall = -net_flow if net_flow < 0 else 0.0
    drawn_from_liquid = 0.0
    if shortfall > 0 and liquid_balance > 0:
        drawn_from_liquid = min(shortfall, liquid_balance)
        liquid_balance -= drawn_from_liquid
        net_flow += drawn_from_liquid
        shortfall -= drawn_from_liquid

    end_cash = max(0.0, net_flow)
    year_shortfall = shortfall > MONEY_TOLERANCE

    # ---------- Year-end values ----------
    active = tuple(remaining) + tuple(rolled_over)
    ongoing_principal = sum(d.principal for d in active)
    total_value = ongoing_principal + liquid_balance + end_cash

    record = YearRecord(
        year=year,
        maturingValue=maturing_value,
        reinvestedValue=liquid_inflow + sum(d.principal for d in rolled_over),
        interestFromDeposits=deposit_interest,
        interestFromLiquid=liquid_interest,
        yearlyInterest=yearly_interest,
        taxesDue=taxes_due,
        cashAvailableStart=state.cash_balance + cash_from_maturities + liquid_interest,
        withdrawalAmount=withdrawals,
        liquidWithdrawalToCoverShortfall=drawn_from_liquid,
        netCashFlowYear=end_cash - state.cash_balance,
        endOfYearCash=end_cash,
        ongoingDepositPrincipal=ongoing_principal,
        endOfYearLiquidBalance=liquid_balance,
        ongoingInvestmentsTotal=ongoing_principal + liquid_balance,
        totalPortfolioValue=total_value,
        hasShortfall=year_shortfall,
        yearEndShortfallAmount=shortfall,
    )

    next_state = replace(
        state,
        cash_balance=end_cash,
        liquid_balance=liquid_balance,
        active_deposits=active,
        carried_shortfall=shortfall,
        cumulative_interest=state.cumulative_interest + yearly_interest,
        cumulative_taxes=state.cumulative_taxes + taxes_due,
        has_shortfall=state.has_shortfall or year_shortfall,
        reinvest_sequence=sequence,
    )
    return record, next_state


def simulate(
    deposits: Sequence[Deposit],
    context: SimulationContext,
    diagnostics: Diagnostics,
    reinvest_sequence: int = 0,
) -> SimulationRun:
    """Fold advance_year over the planned range. Years depend on each other, so this is strictly sequential."""
    state = initial_state(deposits, reinvest_sequence)
    run = SimulationRun(final_state=state)

    for year in context.year_range.years():
        record, state = advance_year(state, year, context, diagnostics)
        run.records.append(record)
        logger.debug(
            "Year %d: total %.2f, cash %.2f, liquid %.2f, shortfall %.2f",
            year,
            record.totalPortfolioValue,
            record.endOfYearCash,
            record.endOfYearLiquidBalance,
            record.yearEndShortfallAmount,
        )

    run.final_state = state
    logger.debug(
        "Simulated %d years: interest %.2f, taxes %.2f, shortfall seen: %s",
        len(run.records),
        state.cumulative_interest,
        state.cumulative_taxes,
        state.has_shortfall,
    )
    return run
