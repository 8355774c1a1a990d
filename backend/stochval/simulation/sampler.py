"""Distribution sampler: one draw from a named distribution family.

All draws come from an explicitly passed random.Random so runs can be
seeded and each worker can own its own generator.
"""
from __future__ import annotations

import math
import random

from stochval.models.simulation import DistributionFamily, DistributionParameter

_DEFAULT_STD_RATIO = 0.1
_TRIANGULAR_BOUNDS = (0.7, 1.3)
_UNIFORM_BOUNDS = (0.8, 1.2)
_PERT_LAMBDA = 4.0


def sample_standard_normal(rng: random.Random) -> float:
    """Box-Muller transform on two independent uniform draws."""
    u1 = 1.0 - rng.random()  # (0, 1], keeps log() finite
    u2 = rng.random()
    return math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)


def sample_normal(rng: random.Random, mean: float, std: float) -> float:
    return mean + std * sample_standard_normal(rng)


def sample_triangular(rng: random.Random, low: float, mode: float, high: float) -> float:
    """Inverse-CDF draw from Triangular(low, mode, high)."""
    if high == low:
        return mode
    u = rng.random()
    fc = (mode - low) / (high - low)
    if u < fc:
        return low + math.sqrt(u * (high - low) * (mode - low))
    return high - math.sqrt((1.0 - u) * (high - low) * (high - mode))


def sample_uniform(rng: random.Random, low: float, high: float) -> float:
    return low + rng.random() * (high - low)


def sample_lognormal(rng: random.Random, mean: float, std: float) -> float:
    """Lognormal draw whose arithmetic mean and std match `mean` and `std`."""
    if mean <= 0:
        return mean
    sigma_sq = math.log(1.0 + (std / mean) ** 2)
    mu = math.log(mean) - sigma_sq / 2.0
    return math.exp(sample_normal(rng, mu, math.sqrt(sigma_sq)))


def sample_pert(
    rng: random.Random, low: float, mode: float, high: float, lam: float = _PERT_LAMBDA,
) -> float:
    """PERT draw: a Beta distribution rescaled onto [low, high]."""
    spread = high - low
    if spread == 0:
        return mode
    alpha = 1.0 + lam * (mode - low) / spread
    beta = 1.0 + lam * (high - mode) / spread
    return low + rng.betavariate(alpha, beta) * spread


def _default_std(param: DistributionParameter) -> float:
    if param.std is not None:
        return abs(param.std)
    return abs(_DEFAULT_STD_RATIO * param.mean)


def bounds(param: DistributionParameter, ratios: tuple[float, float]) -> tuple[float, float]:
    """Return (low, high) for a bounded family, deriving missing ends from mean.

    Sorted, so a negative mean still yields low <= high.
    """
    low = param.min if param.min is not None else param.mean * ratios[0]
    high = param.max if param.max is not None else param.mean * ratios[1]
    return min(low, high), max(low, high)


def triangular_bounds(param: DistributionParameter) -> tuple[float, float]:
    return bounds(param, _TRIANGULAR_BOUNDS)


def sample(param: DistributionParameter, rng: random.Random) -> float:
    """Draw one value for `param`.

    Missing bounds are derived from `mean`; unknown or missing families
    return `mean` without consuming randomness.
    """
    family = param.family
    if family == DistributionFamily.normal:
        return sample_normal(rng, param.mean, _default_std(param))
    if family == DistributionFamily.triangular:
        low, high = triangular_bounds(param)
        return sample_triangular(rng, low, param.mean, high)
    if family == DistributionFamily.uniform:
        low, high = bounds(param, _UNIFORM_BOUNDS)
        return sample_uniform(rng, low, high)
    if family == DistributionFamily.lognormal:
        return sample_lognormal(rng, param.mean, _default_std(param))
    if family == DistributionFamily.pert:
        low, high = triangular_bounds(param)
        return sample_pert(rng, low, param.mean, high)
    return param.mean
