from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional

from pydantic import ValidationError

from cdladder.core import diagnostics as diag
from cdladder.core.aggregate import aggregate, overall_shortfall
from cdladder.core.diagnostics import Diagnostics
from cdladder.core.engine import MONEY_TOLERANCE, SimulationContext, simulate
from cdladder.core.errors import ProjectionError, ProjectionValidationError
from cdladder.core.planner import parse_iso_date, plan_year_range, schedule_withdrawals
from cdladder.core.rates import RATE_SCENARIOS, resolve_scenario, scenario_registry
from cdladder.core.tranches import initialize_deposits
from cdladder.schemas.projection import (
    BASELINE_SCENARIO_ID,
    ProjectionRequest,
    ProjectionResult,
)

logger = logging.getLogger(__name__)


def _check_request(request: ProjectionRequest) -> None:
    errors: List[str] = []
    if parse_iso_date(request.investmentStartDate) is None:
        errors.append(f"Invalid Investment Start Date: {request.investmentStartDate!r}")
    for scenario in request.scenarios:
        if scenario.id == BASELINE_SCENARIO_ID or scenario.id in RATE_SCENARIOS:
            errors.append(f"Custom scenario id {scenario.id!r} clashes with a built-in scenario")
    if errors:
        raise ProjectionValidationError(errors)


def describe_validation_error(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(piece) for piece in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "Missing or invalid required inputs (" + "; ".join(parts) + ")"


def _project(request: ProjectionRequest, diagnostics: Diagnostics) -> ProjectionResult:
    _check_request(request)
    start_date = parse_iso_date(request.investmentStartDate)

    registry = scenario_registry(request.scenarios)
    try:
        scenario = resolve_scenario(request.rateScenario, registry)
    except KeyError:
        diagnostics.warn(
            diag.UNKNOWN_SCENARIO,
            f"Unknown rate scenario {request.rateScenario!r}; using baseline rates.",
        )
        scenario = None

    allocated = sum(row.amount for row in request.allocations)
    if abs(allocated - request.totalAmount) > MONEY_TOLERANCE:
        diagnostics.warn(
            diag.ALLOCATION_MISMATCH,
            f"Allocated amounts ({allocated:,.2f}) do not match the total amount "
            f"({request.totalAmount:,.2f}); projecting the allocated amounts.",
        )

    deposits = initialize_deposits(request.allocations, request.interestRates, start_date)
    withdrawals = schedule_withdrawals(request.withdrawals, start_date.year, diagnostics)
    year_range = plan_year_range(start_date, deposits, (w.date for w in withdrawals))

    context = SimulationContext(
        base_rates=request.interestRates,
        scenario=scenario,
        start_date=start_date,
        tax_rate=request.taxRate,
        year_range=year_range,
        withdrawals=tuple(withdrawals),
    )
    run = simulate(deposits, context, diagnostics, reinvest_sequence=request.reinvestSequenceStart)

    return ProjectionResult(
        years=run.records,
        totals=aggregate(run.records, deposits),
        hasShortfall=overall_shortfall(run.records),
        warnings=diagnostics.to_list(),
        scenario=request.rateScenario or BASELINE_SCENARIO_ID,
        nextReinvestSequence=run.final_state.reinvest_sequence,
    )


def calculate_projections(request: ProjectionRequest) -> ProjectionResult:
    """
    Project a validated request year by year.

    Fatal problems (bad start date, a term the rate table lacks, ...) come back
    as a result with no years and `error` set; nothing partial is returned.
    Recoverable ones are listed in `warnings`.
    """
    diagnostics = Diagnostics()
    try:
        result = _project(request, diagnostics)
    except ProjectionError as exc:
        logger.info("Projection aborted: %s", exc)
        return ProjectionResult(
            error=str(exc),
            warnings=diagnostics.to_list(),
            scenario=request.rateScenario or BASELINE_SCENARIO_ID,
            nextReinvestSequence=request.reinvestSequenceStart,
        )
    logger.debug("Projected %d years with %d warnings", len(result.years), len(result.warnings))
    return result


def run_projection(payload: Mapping[str, Any]) -> ProjectionResult:
    """Validate a raw payload and project it; schema failures become a fatal result."""
    try:
        request = ProjectionRequest.model_validate(payload)
    except ValidationError as exc:
        return ProjectionResult(error=describe_validation_error(exc))
    return calculate_projections(request)


def compare_scenarios(
    request: ProjectionRequest,
    scenario_ids: Optional[Iterable[str]] = None,
) -> Dict[str, ProjectionResult]:
    """
    Run the same request once per scenario.

    Each run gets its own state, diagnostics and reinvestment sequence, so the
    results are independent of evaluation order.
    """
    if scenario_ids is None:
        scenario_ids = [BASELINE_SCENARIO_ID, *RATE_SCENARIOS, *(s.id for s in request.scenarios)]

    results: Dict[str, ProjectionResult] = {}
    for scenario_id in scenario_ids:
        results[scenario_id] = calculate_projections(request.model_copy(update={"rateScenario": scenario_id}))
    return results


__all__ = [
    "calculate_projections",
    "run_projection",
    "compare_scenarios",
    "describe_validation_error",
]
