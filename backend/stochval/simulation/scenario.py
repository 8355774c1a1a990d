"""Scenario generator: one random assumption draw plus its DCF projection.

Revenue compounds at the drawn growth rate; each year's FCF is
NOPAT + D&A - capex - change in NWC, discounted at the drawn WACC.
The terminal value is a Gordon growth perpetuity on the final year.
"""
from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, replace

from stochval.exceptions import DegenerateScenarioError
from stochval.models.simulation import AssumptionSet, SpreadPolicy, ValuationInputs
from stochval.simulation.sampler import sample

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawnAssumptions:
    """One scenario's assumptions, as fractions (not percentage points)."""
    revenue_growth: float
    ebitda_margin: float
    capex_to_revenue: float
    nwc_to_revenue_delta: float
    wacc: float
    terminal_growth: float


@dataclass(frozen=True)
class ScenarioOutcome:
    """Valuation produced by a single scenario."""
    enterprise_value: float
    equity_value: float
    per_share_value: float
    terminal_value_share: float
    clamped: bool = False


def draw_assumptions(assumptions: AssumptionSet, rng: random.Random) -> DrawnAssumptions:
    """Draw all six assumptions together and convert them to fractions."""
    return DrawnAssumptions(
        revenue_growth=sample(assumptions.revenue_growth, rng) / 100.0,
        ebitda_margin=sample(assumptions.ebitda_margin, rng) / 100.0,
        capex_to_revenue=sample(assumptions.capex_to_revenue, rng) / 100.0,
        nwc_to_revenue_delta=sample(assumptions.nwc_to_revenue_delta, rng) / 100.0,
        wacc=sample(assumptions.wacc, rng) / 100.0,
        terminal_growth=sample(assumptions.terminal_growth, rng) / 100.0,
    )


def mean_assumptions(assumptions: AssumptionSet) -> DrawnAssumptions:
    """Every assumption at its mean: the zero-variance point."""
    return DrawnAssumptions(
        revenue_growth=assumptions.revenue_growth.mean / 100.0,
        ebitda_margin=assumptions.ebitda_margin.mean / 100.0,
        capex_to_revenue=assumptions.capex_to_revenue.mean / 100.0,
        nwc_to_revenue_delta=assumptions.nwc_to_revenue_delta.mean / 100.0,
        wacc=assumptions.wacc.mean / 100.0,
        terminal_growth=assumptions.terminal_growth.mean / 100.0,
    )


def project_dcf(
    inputs: ValuationInputs, drawn: DrawnAssumptions, clamped: bool = False,
) -> ScenarioOutcome:
    """Deterministic DCF projection for one set of drawn assumptions.

    Raises DegenerateScenarioError if the result is not finite.
    """
    depreciation_ratio = inputs.constants.depreciation_ratio
    tax_rate = inputs.constants.tax_rate
    wacc = drawn.wacc
    growth = drawn.terminal_growth

    revenue = inputs.base_year_revenue
    pv_fcf = 0.0
    try:
        for year in range(1, inputs.forecast_years + 1):
            prev_revenue = revenue
            revenue = revenue * (1.0 + drawn.revenue_growth)

            ebitda = revenue * drawn.ebitda_margin
            depreciation = ebitda * depreciation_ratio
            ebit = ebitda - depreciation
            nopat = ebit * (1.0 - tax_rate)

            capex = revenue * drawn.capex_to_revenue
            delta_nwc = (revenue - prev_revenue) * drawn.nwc_to_revenue_delta

            fcf = nopat + depreciation - capex - delta_nwc
            pv_fcf += fcf / (1.0 + wacc) ** year

        terminal_fcf = (
            revenue * drawn.ebitda_margin * inputs.constants.terminal_cash_conversion
            * (1.0 + growth)
        )
        terminal_value = terminal_fcf / (wacc - growth)
        pv_terminal = terminal_value / (1.0 + wacc) ** inputs.forecast_years
    except (ZeroDivisionError, OverflowError) as e:
        raise DegenerateScenarioError(
            f"Valuation undefined for wacc={wacc:.6f}, terminal_growth={growth:.6f}"
        ) from e

    enterprise_value = pv_fcf + pv_terminal
    if not math.isfinite(enterprise_value):
        raise DegenerateScenarioError(
            f"Non-finite enterprise value for wacc={wacc:.6f}, terminal_growth={growth:.6f}"
        )

    equity_value = max(0.0, enterprise_value - inputs.net_debt)
    per_share_value = max(0.0, equity_value / inputs.shares_outstanding)
    tv_share = pv_terminal / enterprise_value if enterprise_value != 0 else 0.0

    return ScenarioOutcome(
        enterprise_value=enterprise_value,
        equity_value=equity_value,
        per_share_value=per_share_value,
        terminal_value_share=tv_share,
        clamped=clamped,
    )


def _apply_spread_policy(
    inputs: ValuationInputs, drawn: DrawnAssumptions,
) -> tuple[DrawnAssumptions, bool]:
    """Enforce wacc > -100% and wacc - terminal_growth >= min_rate_spread on a draw."""
    if drawn.wacc <= -1.0:
        raise DegenerateScenarioError(
            f"Drawn wacc ({drawn.wacc:.6f}) must be above -100%"
        )
    spread = drawn.wacc - drawn.terminal_growth
    if spread >= inputs.min_rate_spread:
        return drawn, False
    if inputs.spread_policy == SpreadPolicy.reject:
        raise DegenerateScenarioError(
            f"Drawn wacc ({drawn.wacc:.6f}) does not exceed terminal growth "
            f"({drawn.terminal_growth:.6f}) by at least {inputs.min_rate_spread}"
        )
    logger.debug("Clamping wacc %.6f above terminal growth %.6f", drawn.wacc, drawn.terminal_growth)
    return replace(drawn, wacc=drawn.terminal_growth + inputs.min_rate_spread), True


def run_scenario(inputs: ValuationInputs, rng: random.Random) -> ScenarioOutcome:
    """Draw one assumption set and value it."""
    drawn, clamped = _apply_spread_policy(inputs, draw_assumptions(inputs.assumptions, rng))
    return project_dcf(inputs, drawn, clamped=clamped)


def base_case(inputs: ValuationInputs) -> ScenarioOutcome:
    """Value the company with every assumption at its mean, no randomness."""
    return project_dcf(inputs, mean_assumptions(inputs.assumptions))
