"""
risk.py - Immutable risk configuration for the lending pool

RiskParameters is the pool's term sheet: fixed at construction, never
changed over the pool's lifetime. Every engine calculation that depends on
a ratio or a rate takes it as an explicit input.

Key Formulas:
    collateral_required = native(debt) * collateralization_ratio / 100
    liquidatable        <=> collateral < native(debt_with_interest) * liquidation_threshold / 100
    borrow_rate_bps     = min(max_rate_bps, base_rate_bps + slope_bps * utilization_bps / 10_000)
"""

from __future__ import annotations
from dataclasses import dataclass

from .core import BPS, PERCENT, InvalidRiskParameters


DEFAULT_COLLATERALIZATION_RATIO = 150
DEFAULT_LIQUIDATION_THRESHOLD = 125
DEFAULT_BASE_RATE_BPS = 200
DEFAULT_SLOPE_BPS = 2_000
DEFAULT_MAX_RATE_BPS = 10_000


@dataclass(frozen=True, slots=True)
class RiskParameters:
    """
    Immutable risk configuration.

    Attributes:
        collateralization_ratio: Percent of debt value that must be posted as
            collateral to open or increase a loan (150 = 150%).
        liquidation_threshold: Percent below which a position becomes
            liquidatable. Must be strictly below collateralization_ratio so a
            position can deteriorate after origination before it is at risk.
        base_rate_bps: Annual borrow rate at zero utilization.
        slope_bps: Additional annual rate at 100% utilization.
        max_rate_bps: Cap on the annual borrow rate.

    Raises:
        InvalidRiskParameters: on construction with inconsistent values.
    """
    collateralization_ratio: int = DEFAULT_COLLATERALIZATION_RATIO
    liquidation_threshold: int = DEFAULT_LIQUIDATION_THRESHOLD
    base_rate_bps: int = DEFAULT_BASE_RATE_BPS
    slope_bps: int = DEFAULT_SLOPE_BPS
    max_rate_bps: int = DEFAULT_MAX_RATE_BPS

    def __post_init__(self):
        for name in ('collateralization_ratio', 'liquidation_threshold',
                     'base_rate_bps', 'slope_bps', 'max_rate_bps'):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise InvalidRiskParameters(f"{name} must be int, got {type(value).__name__}")
            if value < 0:
                raise InvalidRiskParameters(f"{name} must be non-negative, got {value}")

        if self.liquidation_threshold < PERCENT:
            raise InvalidRiskParameters(
                f"liquidation_threshold must be at least {PERCENT}%, got {self.liquidation_threshold}"
            )
        if self.liquidation_threshold >= self.collateralization_ratio:
            raise InvalidRiskParameters(
                f"liquidation_threshold ({self.liquidation_threshold}) must be below "
                f"collateralization_ratio ({self.collateralization_ratio})"
            )
        if self.base_rate_bps > self.max_rate_bps:
            raise InvalidRiskParameters(
                f"base_rate_bps ({self.base_rate_bps}) exceeds max_rate_bps ({self.max_rate_bps})"
            )

    def borrow_rate_bps(self, utilization_bps: int) -> int:
        """
        Annual borrow rate for a given utilization.

        Linear in utilization, never negative, capped at max_rate_bps.
        Utilization outside [0, 10_000] is clamped.
        """
        utilization_bps = min(max(utilization_bps, 0), BPS)
        rate = self.base_rate_bps + self.slope_bps * utilization_bps // BPS
        return min(rate, self.max_rate_bps)
