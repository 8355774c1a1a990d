from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from stochval.config import settings


class DistributionFamily(str, Enum):
    """Distribution families understood by the sampler."""
    normal = "normal"
    triangular = "triangular"
    uniform = "uniform"
    lognormal = "lognormal"
    pert = "pert"


class SpreadPolicy(str, Enum):
    """What to do when a drawn wacc sits on top of terminal growth."""
    reject = "reject"    # fail the request
    clamp = "clamp"      # push wacc to terminal_growth + MIN_RATE_SPREAD


class DistributionParameter(BaseModel):
    """One uncertain assumption, in percentage points.

    `family` is kept as a plain string: unknown families are not an error,
    the sampler just returns `mean`.
    """
    family: Optional[str] = Field(default=None, alias="type")
    mean: float
    std: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None

    model_config = {"populate_by_name": True, "frozen": True, "allow_inf_nan": False}


class AssumptionSet(BaseModel):
    """The six forward-looking assumptions drawn for every scenario."""
    revenue_growth: DistributionParameter
    ebitda_margin: DistributionParameter
    capex_to_revenue: DistributionParameter
    nwc_to_revenue_delta: DistributionParameter
    wacc: DistributionParameter
    terminal_growth: DistributionParameter

    model_config = {"frozen": True}


class ProjectionConstants(BaseModel):
    """Fixed ratios baked into the DCF projection."""
    depreciation_ratio: float = Field(
        default_factory=lambda: settings.DEPRECIATION_RATIO, ge=0.0, lt=1.0,
    )
    tax_rate: float = Field(default_factory=lambda: settings.TAX_RATE, ge=0.0, lt=1.0)

    model_config = {"frozen": True}

    @property
    def terminal_cash_conversion(self) -> float:
        """EBITDA -> terminal FCF factor: (1 - D&A ratio) * (1 - tax)."""
        return (1.0 - self.depreciation_ratio) * (1.0 - self.tax_rate)


class SimulationRequest(BaseModel):
    """Request body for a Monte Carlo DCF run.

    Required numerics are Optional here so that a missing value is reported
    by the orchestrator as a 400, not by schema validation as a 422.
    """
    base_year_revenue: Optional[float] = None
    base_year_fcf: Optional[float] = None
    net_debt: Optional[float] = None
    shares_outstanding: Optional[float] = None
    forecast_years: Optional[int] = None
    n_scenarios: Optional[int] = None
    assumptions: AssumptionSet
    seed: Optional[int] = Field(default=None, ge=0)
    constants: Optional[ProjectionConstants] = None

    model_config = {"frozen": True, "allow_inf_nan": False}


class ValuationInputs(BaseModel):
    """A validated request with every default applied.

    This is what the scenario generator and the chunk workers receive.
    """
    base_year_revenue: float
    base_year_fcf: float
    net_debt: float
    shares_outstanding: float
    forecast_years: int
    n_scenarios: int
    assumptions: AssumptionSet
    constants: ProjectionConstants
    min_rate_spread: float
    spread_policy: SpreadPolicy

    model_config = {"frozen": True}
