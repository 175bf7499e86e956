"""Price protection data models"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class Recommendation(str, Enum):
    """Execution recommendation, ordered from least to most restrictive."""
    EXECUTE = "EXECUTE"
    WARNING = "WARNING"
    REJECT = "REJECT"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    def tighten(self, other: "Recommendation") -> "Recommendation":
        """The more restrictive of two recommendations."""
        return self if self.severity >= other.severity else other


_SEVERITY = {
    Recommendation.EXECUTE: 0,
    Recommendation.WARNING: 1,
    Recommendation.REJECT: 2,
}


@dataclass(frozen=True)
class UserSettings:
    """Per-user protection preferences supplied by the settings subsystem."""
    slippage_bps: float = 50.0

    @classmethod
    def coerce(cls, value: Union["UserSettings", Mapping[str, Any], None],
               default_slippage_bps: float) -> "UserSettings":
        if isinstance(value, UserSettings):
            return value
        if isinstance(value, Mapping) and value.get("slippage_bps") is not None:
            return cls(slippage_bps=float(value["slippage_bps"]))
        return cls(slippage_bps=default_slippage_bps)


@dataclass(frozen=True)
class MarketOrderAnalysis:
    """Simulated walk of a market order through one side of the book"""
    side: str
    quantity: float
    filled_quantity: float
    total_cost: float
    average_price: float        # VWAP of the filled part
    best_price: float
    worst_price: float          # Last level touched
    price_impact: float         # |VWAP - best| / best
    slippage_bps: float
    liquidity_depth: int        # Levels touched
    partial_fill_risk: bool


@dataclass(frozen=True)
class ProtectionVerdict:
    """Classification of one market order's execution risk"""
    recommendation: Recommendation
    estimated_price: float
    worst_price: float
    max_price: float
    min_price: float
    slippage_bps: float
    price_impact: float
    liquidity_depth: int = 0
    partial_fill_risk: bool = False
    warnings: list[str] = field(default_factory=list)
    requires_confirmation: bool = False

    @property
    def is_protected(self) -> bool:
        """True when protection changed the outcome (anything but EXECUTE)"""
        return self.recommendation is not Recommendation.EXECUTE

    @classmethod
    def failed(cls, message: str) -> "ProtectionVerdict":
        """Fail-closed verdict for an analysis that could not complete"""
        return cls(
            recommendation=Recommendation.REJECT,
            estimated_price=0.0,
            worst_price=0.0,
            max_price=0.0,
            min_price=0.0,
            slippage_bps=0.0,
            price_impact=0.0,
            warnings=[message],
        )


@dataclass(frozen=True)
class MarketDepth:
    """Depth statistics for one side of the book"""
    levels: int
    total_quantity: float
    average_order_size: float
    spread: float
    spread_bps: float


@dataclass(frozen=True)
class OrderSizeAssessment:
    """Advisory order size classification relative to visible depth"""
    is_reasonable: bool
    percent_of_depth: float
    advice: str
    level: Optional[str] = None    # reject | large | moderate | ok | empty
