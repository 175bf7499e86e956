"""
Exchange trading filters: parsing, validation and rounding.
"""

from .models import (
    FilterValidationResult,
    LotSizeFilter,
    MalformedFilterError,
    MaxNumOrdersFilter,
    MinNotionalFilter,
    PercentPriceFilter,
    PriceFilter,
    SymbolFilterSet,
)
from .registry import FilterRegistry
from .rounding import decimal_precision, round_to_increment, to_decimal

__all__ = [
    "FilterRegistry",
    "FilterValidationResult",
    "LotSizeFilter",
    "MalformedFilterError",
    "MaxNumOrdersFilter",
    "MinNotionalFilter",
    "PercentPriceFilter",
    "PriceFilter",
    "SymbolFilterSet",
    "decimal_precision",
    "round_to_increment",
    "to_decimal",
]
