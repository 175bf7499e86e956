"""
Market order slippage and price impact protection.
"""

from .engine import PriceProtectionEngine
from .models import (
    MarketDepth,
    MarketOrderAnalysis,
    OrderSizeAssessment,
    ProtectionVerdict,
    Recommendation,
    UserSettings,
)
from .pricing import (
    base_to_quote,
    calculate_stop_loss,
    calculate_take_profit,
    percentage_change,
    price_with_slippage,
    quote_to_base,
)
from .summary import format_protection_summary

__all__ = [
    "PriceProtectionEngine",
    "MarketDepth",
    "MarketOrderAnalysis",
    "OrderSizeAssessment",
    "ProtectionVerdict",
    "Recommendation",
    "UserSettings",
    "base_to_quote",
    "calculate_stop_loss",
    "calculate_take_profit",
    "percentage_change",
    "price_with_slippage",
    "quote_to_base",
    "format_protection_summary",
]
