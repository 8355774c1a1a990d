from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class ValueStatistics(BaseModel):
    """Distribution summary for one output dimension."""
    mean: float
    median: float
    std: float
    p5: float
    p10: float
    p25: float
    p50: float
    p75: float
    p90: float
    p95: float
    min: float
    max: float


class HistogramBin(BaseModel):
    bin_start: float
    bin_end: float
    count: int


class BaseCaseValuation(BaseModel):
    """Deterministic valuation with every assumption at its mean."""
    enterprise_value: float
    equity_value: float
    per_share_value: float
    terminal_value_share: float


class SimulationResult(BaseModel):
    """Aggregated Monte Carlo DCF result."""
    n_scenarios: int
    enterprise_value: ValueStatistics
    equity_value: ValueStatistics
    per_share_value: ValueStatistics
    terminal_value_pct: float
    histogram: list[HistogramBin]
    # First scenarios in generation order, for spot checks only
    scenarios_sample: list[float]
    base_case: Optional[BaseCaseValuation] = None
    prob_below_base_case: Optional[float] = None
    clamped_scenarios: int = 0
    seed: Optional[int] = None
    computed_at: Optional[datetime] = None
    elapsed_seconds: Optional[float] = None


class SimulationResponse(BaseModel):
    result: SimulationResult
