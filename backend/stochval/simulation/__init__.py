"""Simulation engine: sampler, scenario generator, aggregator, and Monte Carlo fan-out."""
from stochval.simulation.sampler import sample
from stochval.simulation.scenario import (
    DrawnAssumptions,
    ScenarioOutcome,
    base_case,
    draw_assumptions,
    project_dcf,
    run_scenario,
)
from stochval.simulation.aggregator import aggregate, build_histogram, value_statistics
from stochval.simulation.engine import run_trials

__all__ = [
    "sample",
    "DrawnAssumptions",
    "ScenarioOutcome",
    "base_case",
    "draw_assumptions",
    "project_dcf",
    "run_scenario",
    "aggregate",
    "build_histogram",
    "value_statistics",
    "run_trials",
]
