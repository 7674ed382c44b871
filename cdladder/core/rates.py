"""Scenario-adjusted yields for future reinvestment and the liquid account."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional

from cdladder.core.errors import RateDataError
from cdladder.schemas.projection import (
    BASELINE_SCENARIO_ID,
    LIQUID_TERM,
    RateScenario,
    RateTableEntry,
    ScenarioSummary,
)

logger = logging.getLogger(__name__)

CD_TERMS = ("6m", "9m", "12m", "18m", "24m", "30m", "36m", "48m", "60m")

BASELINE_LABEL = "Rates Stay High (Baseline)"
BASELINE_DESCRIPTION = "Assumes current rates persist indefinitely."


def _uniform_adjustments(liquid: float, deposits: float) -> Dict[str, float]:
    adjustments = {term: deposits for term in CD_TERMS}
    adjustments[LIQUID_TERM] = liquid
    return adjustments


RATE_SCENARIOS: Dict[str, RateScenario] = {
    "ratesFallModerately": RateScenario(
        id="ratesFallModerately",
        label="Rates Fall Moderately",
        description="HYSA rates drop 0.5% and new CD yields drop 0.75%, phased in over years 2-3.",
        startEffectYear=2,
        fullEffectYear=3,
        floorApy=0.25,
        perTermAdjustment=_uniform_adjustments(-0.5, -0.75),
    ),
    "ratesFallSignificantly": RateScenario(
        id="ratesFallSignificantly",
        label="Rates Fall Significantly",
        description="HYSA rates drop 1.5% and new CD yields drop 2%, phased in over years 1-2.",
        startEffectYear=1,
        fullEffectYear=2,
        floorApy=0.10,
        perTermAdjustment=_uniform_adjustments(-1.5, -2.0),
    ),
}


def scenario_registry(custom: Iterable[RateScenario] = ()) -> Dict[str, RateScenario]:
    """Built-in scenarios plus caller-defined ones, keyed by id."""
    registry = dict(RATE_SCENARIOS)
    for scenario in custom:
        registry[scenario.id] = scenario
    return registry


def list_scenarios(custom: Iterable[RateScenario] = ()) -> List[ScenarioSummary]:
    summaries = [
        ScenarioSummary(id=BASELINE_SCENARIO_ID, label=BASELINE_LABEL, description=BASELINE_DESCRIPTION)
    ]
    for scenario in scenario_registry(custom).values():
        summaries.append(
            ScenarioSummary(id=scenario.id, label=scenario.label or scenario.id, description=scenario.description)
        )
    return summaries


def resolve_scenario(
    scenario_id: Optional[str],
    scenarios: Optional[Mapping[str, RateScenario]] = None,
) -> Optional[RateScenario]:
    """
    Return the scenario config for an id, or None for the baseline.

    Raises KeyError for an id that is neither baseline nor registered.
    """
    if not scenario_id or scenario_id == BASELINE_SCENARIO_ID:
        return None
    registry = scenarios if scenarios is not None else RATE_SCENARIOS
    return registry[scenario_id]


def _base_apy(term: str, base_rates: Mapping[str, RateTableEntry]) -> float:
    entry = base_rates.get(term)
    if entry is None:
        raise RateDataError(f"Missing base rate for term: {term}")
    return entry.apy


def scenario_apy(
    term: str,
    year: int,
    scenario: Optional[RateScenario],
    base_rates: Mapping[str, RateTableEntry],
    start_year: int,
) -> float:
    """
    APY (percent) for `term` in calendar `year` under an already-resolved scenario.

    The adjustment is phased in linearly between startEffectYear and
    fullEffectYear, then held. The scenario floor applies in every period;
    the baseline (scenario=None) is never clamped.
    """
    base = _base_apy(term, base_rates)
    if scenario is None:
        return base

    target = base + scenario.adjustment_for(term)
    floor = scenario.floorApy
    years_elapsed = year - start_year

    start_elapsed = scenario.startEffectYear - 1
    full_elapsed = scenario.fullEffectYear - 1
    span = full_elapsed - start_elapsed

    if years_elapsed >= full_elapsed:
        return max(floor, target)
    if years_elapsed >= start_elapsed and span > 0:
        progress = (years_elapsed - start_elapsed + 1) / (span + 1)
        return max(floor, base + (target - base) * progress)
    return max(floor, base)


def effective_apy(
    term: str,
    year: int,
    scenario_id: Optional[str],
    base_rates: Mapping[str, RateTableEntry],
    start_year: int,
    scenarios: Optional[Mapping[str, RateScenario]] = None,
) -> float:
    """Like scenario_apy, but looks the scenario up by id; unknown ids fall back to baseline."""
    try:
        scenario = resolve_scenario(scenario_id, scenarios)
    except KeyError:
        logger.warning("Unknown rate scenario %r; using baseline rates", scenario_id)
        scenario = None
    return scenario_apy(term, year, scenario, base_rates, start_year)
