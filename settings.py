from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class AnalyticsSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="ANALYTICS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    risk_free_rate: float = Field(default=0.0, ge=0)
    monte_carlo_runs: int = Field(default=2000, ge=0)
    monte_carlo_sequence_length: int = Field(default=100, ge=1)
    ruin_drawdown_threshold: float = Field(default=0.30, gt=0, le=1)
    prediction_runs: int = Field(default=5000, ge=1)
    # 1.0 = full Kelly, 0.5 = half Kelly
    kelly_multiplier: float = Field(default=1.0, ge=0, le=1)
    random_seed: Optional[int] = None
    log_level: str = "INFO"


@lru_cache
def get_settings() -> AnalyticsSettings:
    return AnalyticsSettings()
