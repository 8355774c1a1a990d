from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "INFO"

    # Scenario counts and horizon
    DEFAULT_N_SCENARIOS: int = 10_000
    MAX_SCENARIOS: int = 250_000
    DEFAULT_FORECAST_YEARS: int = 5
    MAX_FORECAST_YEARS: int = 30

    # Aggregation
    HISTOGRAM_BINS: int = Field(default=50, ge=30, le=50)
    SAMPLE_SIZE: int = 100

    # Execution: trials are run in independently seeded chunks
    WORKERS: int = Field(default=1, ge=1)
    CHUNK_SIZE: int = Field(default=2_500, ge=1)

    # Projection constants (fractions)
    DEPRECIATION_RATIO: float = 0.15
    TAX_RATE: float = 0.21

    # Minimum wacc - terminal_growth spread (fraction) and what to do below it
    MIN_RATE_SPREAD: float = 1e-4
    SPREAD_POLICY: Literal["reject", "clamp"] = "reject"

    # Wall-clock budget for one HTTP simulation; None disables the timeout
    SIMULATION_TIMEOUT_SECONDS: Optional[float] = Field(default=None, gt=0)

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
