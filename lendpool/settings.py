"""Configuration management using Pydantic settings."""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core import DEFAULT_STABLE_DECIMALS
from .risk import (
    RiskParameters,
    DEFAULT_COLLATERALIZATION_RATIO, DEFAULT_LIQUIDATION_THRESHOLD,
    DEFAULT_BASE_RATE_BPS, DEFAULT_SLOPE_BPS, DEFAULT_MAX_RATE_BPS,
)


class PoolSettings(BaseSettings):
    """
    Pool settings, read from LENDPOOL_* environment variables or a .env file.

    Example:
        LENDPOOL_COLLATERALIZATION_RATIO=175 LENDPOOL_LOG_LEVEL=DEBUG python demo.py
    """

    model_config = SettingsConfigDict(
        env_prefix="LENDPOOL_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    log_level: str = Field(default="INFO", description="Logging level")
    verbose: bool = Field(default=False, description="Log a boxed summary of every applied operation")
    name: str = Field(default="main", description="Pool identifier used in log messages")

    # Assets
    stable_decimals: int = Field(default=DEFAULT_STABLE_DECIMALS, ge=0, description="Stable asset decimals")

    # Risk parameters
    collateralization_ratio: int = Field(
        default=DEFAULT_COLLATERALIZATION_RATIO, description="Origination collateral ratio, percent"
    )
    liquidation_threshold: int = Field(
        default=DEFAULT_LIQUIDATION_THRESHOLD, description="Liquidation threshold, percent"
    )

    # Interest-rate curve
    base_rate_bps: int = Field(default=DEFAULT_BASE_RATE_BPS, ge=0, description="Rate at zero utilization")
    slope_bps: int = Field(default=DEFAULT_SLOPE_BPS, ge=0, description="Added rate at full utilization")
    max_rate_bps: int = Field(default=DEFAULT_MAX_RATE_BPS, ge=0, description="Rate cap")

    @model_validator(mode="after")
    def _check_risk(self) -> "PoolSettings":
        # Inconsistent risk settings fail at load time.
        self.risk_parameters()
        return self

    def risk_parameters(self) -> RiskParameters:
        return RiskParameters(
            collateralization_ratio=self.collateralization_ratio,
            liquidation_threshold=self.liquidation_threshold,
            base_rate_bps=self.base_rate_bps,
            slope_bps=self.slope_bps,
            max_rate_bps=self.max_rate_bps,
        )
