"""Simulation orchestration service.

Validates a SimulationRequest, applies defaults, runs the Monte Carlo
trials and assembles the SimulationResult. Nothing here is persisted.
"""
from __future__ import annotations

import logging
import threading
import time
from datetime import datetime, timezone

from stochval.config import settings
from stochval.exceptions import DegenerateScenarioError, SimulationValidationError
from stochval.models.simulation import (
    DistributionFamily,
    DistributionParameter,
    ProjectionConstants,
    SimulationRequest,
    SpreadPolicy,
    ValuationInputs,
)
from stochval.models.valuation import BaseCaseValuation, SimulationResult
from stochval.simulation.aggregator import aggregate, prob_below
from stochval.simulation.engine import run_trials
from stochval.simulation.sampler import triangular_bounds
from stochval.simulation.scenario import ScenarioOutcome, base_case

logger = logging.getLogger(__name__)

_BOUNDED_MODE_FAMILIES = (DistributionFamily.triangular, DistributionFamily.pert)


def _check_mode_within_bounds(name: str, param: DistributionParameter) -> None:
    if param.family not in _BOUNDED_MODE_FAMILIES:
        return
    low, high = triangular_bounds(param)
    if not low <= param.mean <= high:
        raise SimulationValidationError(
            f"{name}: mean {param.mean} must lie within [{low}, {high}] "
            f"for a {param.family} distribution"
        )


def resolve_inputs(request: SimulationRequest) -> ValuationInputs:
    """Validate a request and fill in every default.

    Raises SimulationValidationError on anything that cannot be simulated.
    """
    if not request.base_year_revenue or not request.shares_outstanding:
        raise SimulationValidationError("base_year_revenue and shares_outstanding are required")
    if request.base_year_revenue <= 0:
        raise SimulationValidationError("base_year_revenue must be greater than 0")
    if request.shares_outstanding <= 0:
        raise SimulationValidationError("shares_outstanding must be greater than 0")

    forecast_years = request.forecast_years
    if forecast_years is None:
        forecast_years = settings.DEFAULT_FORECAST_YEARS
    if not 1 <= forecast_years <= settings.MAX_FORECAST_YEARS:
        raise SimulationValidationError(
            f"forecast_years must be between 1 and {settings.MAX_FORECAST_YEARS}"
        )

    n_scenarios = request.n_scenarios
    if n_scenarios is None:
        n_scenarios = settings.DEFAULT_N_SCENARIOS
    if not 1 <= n_scenarios <= settings.MAX_SCENARIOS:
        raise SimulationValidationError(
            f"n_scenarios must be between 1 and {settings.MAX_SCENARIOS}"
        )

    assumptions = request.assumptions
    for name in type(assumptions).model_fields:
        _check_mode_within_bounds(name, getattr(assumptions, name))

    if assumptions.wacc.mean <= -100.0:
        raise DegenerateScenarioError(
            f"wacc must be above -100% (got {assumptions.wacc.mean})"
        )

    # The per-scenario spread check handles draws; a centre of mass on the
    # wrong side of terminal growth is rejected outright.
    mean_spread = (assumptions.wacc.mean - assumptions.terminal_growth.mean) / 100.0
    if mean_spread < settings.MIN_RATE_SPREAD:
        raise SimulationValidationError(
            "wacc must exceed terminal_growth "
            f"(got wacc={assumptions.wacc.mean}, terminal_growth={assumptions.terminal_growth.mean})"
        )

    base_year_fcf = request.base_year_fcf
    if base_year_fcf is None:
        base_year_fcf = request.base_year_revenue * 0.1

    return ValuationInputs(
        base_year_revenue=request.base_year_revenue,
        base_year_fcf=base_year_fcf,
        net_debt=request.net_debt or 0.0,
        shares_outstanding=request.shares_outstanding,
        forecast_years=forecast_years,
        n_scenarios=n_scenarios,
        assumptions=assumptions,
        constants=request.constants or ProjectionConstants(),
        min_rate_spread=settings.MIN_RATE_SPREAD,
        spread_policy=SpreadPolicy(settings.SPREAD_POLICY),
    )


def _to_base_case(outcome: ScenarioOutcome) -> BaseCaseValuation:
    return BaseCaseValuation(
        enterprise_value=outcome.enterprise_value,
        equity_value=outcome.equity_value,
        per_share_value=outcome.per_share_value,
        terminal_value_share=outcome.terminal_value_share,
    )


def run_base_case(request: SimulationRequest) -> BaseCaseValuation:
    """Single deterministic projection with every assumption at its mean."""
    return _to_base_case(base_case(resolve_inputs(request)))


def run_simulation(
    request: SimulationRequest,
    cancel_event: threading.Event | None = None,
    workers: int | None = None,
    chunk_size: int | None = None,
) -> SimulationResult:
    """Run the full Monte Carlo DCF for a request.

    Fails as a whole on any error; no partial result is ever returned.
    """
    inputs = resolve_inputs(request)
    workers = workers or settings.WORKERS
    chunk_size = chunk_size or settings.CHUNK_SIZE

    logger.info(
        "Starting simulation: n=%d years=%d workers=%d",
        inputs.n_scenarios, inputs.forecast_years, workers,
    )
    started = time.perf_counter()

    seed, outcomes = run_trials(
        inputs,
        seed=request.seed,
        chunk_size=chunk_size,
        workers=workers,
        cancel_event=cancel_event,
    )
    summary = aggregate(outcomes)
    base = _to_base_case(base_case(inputs))
    per_share = [o.per_share_value for o in outcomes]

    elapsed = time.perf_counter() - started
    if summary["clamped_scenarios"]:
        logger.warning(
            "%d of %d scenarios had wacc clamped above terminal growth",
            summary["clamped_scenarios"], inputs.n_scenarios,
        )
    logger.info("Simulation finished: n=%d in %.3fs", inputs.n_scenarios, elapsed)

    return SimulationResult(
        **summary,
        base_case=base,
        prob_below_base_case=prob_below(per_share, base.per_share_value),
        seed=seed,
        computed_at=datetime.now(timezone.utc),
        elapsed_seconds=round(elapsed, 4),
    )
