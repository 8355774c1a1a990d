"""Aggregator: reduces scenario outcomes to statistics and a histogram.

Percentiles use nearest-rank selection, sorted[floor(n * p / 100)], with no
interpolation, so p5 <= p10 <= ... <= p95 always holds. Standard deviation
is the population form (ddof=0).
"""
from __future__ import annotations

import math
from collections.abc import Sequence

import numpy as np

from stochval.config import settings
from stochval.models.valuation import HistogramBin, ValueStatistics
from stochval.simulation.scenario import ScenarioOutcome

_PERCENTILES = (("p5", 5), ("p10", 10), ("p25", 25), ("p50", 50), ("p75", 75), ("p90", 90), ("p95", 95))


def nearest_rank(sorted_values: np.ndarray, p: float) -> float:
    """Value at index floor(n * p / 100) of an ascending array."""
    n = len(sorted_values)
    idx = min(int(math.floor(n * p / 100.0)), n - 1)
    return float(sorted_values[idx])


def value_statistics(values: Sequence[float] | np.ndarray) -> ValueStatistics:
    """Mean, median, population std, min/max and nearest-rank percentiles."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        raise ValueError("Cannot summarize an empty set of values")
    ordered = np.sort(arr)
    percentiles = {label: nearest_rank(ordered, p) for label, p in _PERCENTILES}
    return ValueStatistics(
        mean=float(arr.mean()),
        median=percentiles["p50"],
        std=float(arr.std(ddof=0)),
        min=float(ordered[0]),
        max=float(ordered[-1]),
        **percentiles,
    )


def build_histogram(
    values: Sequence[float] | np.ndarray, num_bins: int | None = None,
) -> list[HistogramBin]:
    """Equal-width bins covering [min, max]; counts always sum to len(values).

    When every value is identical a single bin holds all of them.
    """
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        raise ValueError("Cannot build a histogram from no values")
    num_bins = num_bins or settings.HISTOGRAM_BINS
    lo = float(arr.min())
    hi = float(arr.max())
    if hi == lo:
        return [HistogramBin(bin_start=lo, bin_end=hi, count=int(arr.size))]

    width = (hi - lo) / num_bins
    # Top-edge value lands in the last bin
    idx = np.minimum(np.floor((arr - lo) / width).astype(int), num_bins - 1)
    counts = np.bincount(idx, minlength=num_bins)
    return [
        HistogramBin(
            bin_start=lo + i * width,
            bin_end=lo + (i + 1) * width,
            count=int(counts[i]),
        )
        for i in range(num_bins)
    ]


def prob_below(values: Sequence[float] | np.ndarray, threshold: float) -> float:
    """Fraction of values strictly below `threshold`."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.count_nonzero(arr < threshold) / arr.size)


def aggregate(
    outcomes: Sequence[ScenarioOutcome],
    num_bins: int | None = None,
    sample_size: int | None = None,
) -> dict:
    """Reduce outcomes to the statistical fields of a SimulationResult."""
    if not outcomes:
        raise ValueError("Cannot aggregate zero scenarios")
    sample_size = settings.SAMPLE_SIZE if sample_size is None else sample_size

    ev = np.fromiter((o.enterprise_value for o in outcomes), dtype=float, count=len(outcomes))
    equity = np.fromiter((o.equity_value for o in outcomes), dtype=float, count=len(outcomes))
    per_share = np.fromiter((o.per_share_value for o in outcomes), dtype=float, count=len(outcomes))
    tv_share = np.fromiter((o.terminal_value_share for o in outcomes), dtype=float, count=len(outcomes))

    return {
        "n_scenarios": len(outcomes),
        "enterprise_value": value_statistics(ev),
        "equity_value": value_statistics(equity),
        "per_share_value": value_statistics(per_share),
        "terminal_value_pct": float(tv_share.mean()),
        "histogram": build_histogram(per_share, num_bins),
        "scenarios_sample": [float(v) for v in per_share[:sample_size]],
        "clamped_scenarios": sum(1 for o in outcomes if o.clamped),
    }
