"""
Typed exchange trading filters.

Symbol metadata publishes filters as a list of dictionaries keyed by
filterType with every numeric value as a string. They are parsed once into
immutable dataclasses; a reload replaces the whole SymbolFilterSet.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from ..data.parsers import ParseError
from .rounding import decimal_precision, to_decimal

# Precision reported when a symbol has no price or lot filter
DEFAULT_PRECISION = 8


class MalformedFilterError(ParseError):
    """Raised when symbol filter metadata is invalid."""
    pass


def _decimal_field(raw: Mapping[str, Any], key: str, filter_type: str) -> Decimal:
    if key not in raw:
        raise MalformedFilterError(f"{filter_type} is missing '{key}'")
    try:
        return to_decimal(raw[key])
    except ValueError as e:
        raise MalformedFilterError(f"{filter_type} has invalid '{key}': {raw[key]!r}") from e


def _upper_bound(value: Decimal) -> Optional[Decimal]:
    # The exchange publishes 0 for "no upper bound"
    return None if value == 0 else value


@dataclass(frozen=True)
class PriceFilter:
    """PRICE_FILTER: price bounds and tick size, applied to LIMIT orders."""
    min_price: Decimal
    max_price: Optional[Decimal]
    tick_size: Decimal

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PriceFilter":
        min_price = _decimal_field(raw, "minPrice", "PRICE_FILTER")
        max_price = _upper_bound(_decimal_field(raw, "maxPrice", "PRICE_FILTER"))
        tick_size = _decimal_field(raw, "tickSize", "PRICE_FILTER")

        if tick_size <= 0:
            raise MalformedFilterError(f"PRICE_FILTER tickSize must be positive, got {tick_size}")
        if min_price < 0:
            raise MalformedFilterError(f"PRICE_FILTER minPrice must be non-negative, got {min_price}")
        if max_price is not None and max_price < min_price:
            raise MalformedFilterError(f"PRICE_FILTER minPrice {min_price} exceeds maxPrice {max_price}")

        return cls(min_price=min_price, max_price=max_price, tick_size=tick_size)

    @property
    def precision(self) -> int:
        return decimal_precision(self.tick_size)


@dataclass(frozen=True)
class LotSizeFilter:
    """LOT_SIZE or MARKET_LOT_SIZE: quantity bounds and step size."""
    min_qty: Decimal
    max_qty: Optional[Decimal]
    step_size: Decimal
    filter_type: str = "LOT_SIZE"

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any], filter_type: str = "LOT_SIZE") -> "LotSizeFilter":
        min_qty = _decimal_field(raw, "minQty", filter_type)
        max_qty = _upper_bound(_decimal_field(raw, "maxQty", filter_type))
        step_size = _decimal_field(raw, "stepSize", filter_type)

        if step_size <= 0:
            raise MalformedFilterError(f"{filter_type} stepSize must be positive, got {step_size}")
        if min_qty < 0:
            raise MalformedFilterError(f"{filter_type} minQty must be non-negative, got {min_qty}")
        if max_qty is not None and max_qty < min_qty:
            raise MalformedFilterError(f"{filter_type} minQty {min_qty} exceeds maxQty {max_qty}")

        return cls(min_qty=min_qty, max_qty=max_qty, step_size=step_size, filter_type=filter_type)

    @property
    def precision(self) -> int:
        return decimal_precision(self.step_size)


@dataclass(frozen=True)
class MinNotionalFilter:
    """MIN_NOTIONAL: minimum price * quantity in quote currency."""
    notional: Decimal

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "MinNotionalFilter":
        # Futures metadata uses "notional", spot uses "minNotional"
        key = "notional" if "notional" in raw else "minNotional"
        notional = _decimal_field(raw, key, "MIN_NOTIONAL")
        if notional < 0:
            raise MalformedFilterError(f"MIN_NOTIONAL must be non-negative, got {notional}")
        return cls(notional=notional)


@dataclass(frozen=True)
class PercentPriceFilter:
    """PERCENT_PRICE: allowed band around the mark price. Declared, not enforced."""
    multiplier_up: Decimal
    multiplier_down: Decimal
    multiplier_decimal: Optional[int] = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "PercentPriceFilter":
        multiplier_decimal = raw.get("multiplierDecimal")
        try:
            decimal_places = int(multiplier_decimal) if multiplier_decimal is not None else None
        except (TypeError, ValueError) as e:
            raise MalformedFilterError(
                f"PERCENT_PRICE has invalid 'multiplierDecimal': {multiplier_decimal!r}"
            ) from e
        return cls(
            multiplier_up=_decimal_field(raw, "multiplierUp", "PERCENT_PRICE"),
            multiplier_down=_decimal_field(raw, "multiplierDown", "PERCENT_PRICE"),
            multiplier_decimal=decimal_places,
        )


@dataclass(frozen=True)
class MaxNumOrdersFilter:
    """MAX_NUM_ORDERS: open order cap per symbol."""
    limit: int

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> "MaxNumOrdersFilter":
        try:
            return cls(limit=int(raw["limit"]))
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedFilterError(f"MAX_NUM_ORDERS has invalid 'limit': {raw.get('limit')!r}") from e


@dataclass(frozen=True)
class SymbolFilterSet:
    """All trading filters published for one symbol."""
    symbol: str
    price_filter: Optional[PriceFilter] = None
    lot_size: Optional[LotSizeFilter] = None
    market_lot_size: Optional[LotSizeFilter] = None
    min_notional: Optional[MinNotionalFilter] = None
    percent_price: Optional[PercentPriceFilter] = None
    max_num_orders: Optional[MaxNumOrdersFilter] = None
    raw_filters: tuple[dict[str, Any], ...] = field(default_factory=tuple)

    @classmethod
    def from_symbol_info(cls, symbol_info: Mapping[str, Any]) -> "SymbolFilterSet":
        """
        Parse one exchange-info symbol entry.

        Unknown filter types are kept in raw_filters only.

        Raises:
            MalformedFilterError: If the entry or any known filter is invalid
        """
        symbol = symbol_info.get("symbol") if isinstance(symbol_info, Mapping) else None
        if not symbol:
            raise MalformedFilterError("Symbol info is missing 'symbol'")

        raw_filters = symbol_info.get("filters", [])
        if not isinstance(raw_filters, list):
            raise MalformedFilterError(f"Filters for {symbol} must be a list")

        parsed: dict[str, Any] = {}
        for raw in raw_filters:
            if not isinstance(raw, Mapping):
                raise MalformedFilterError(f"Filter entry for {symbol} must be a mapping")

            filter_type = raw.get("filterType")
            if filter_type == "PRICE_FILTER":
                parsed["price_filter"] = PriceFilter.from_raw(raw)
            elif filter_type == "LOT_SIZE":
                parsed["lot_size"] = LotSizeFilter.from_raw(raw, "LOT_SIZE")
            elif filter_type == "MARKET_LOT_SIZE":
                parsed["market_lot_size"] = LotSizeFilter.from_raw(raw, "MARKET_LOT_SIZE")
            elif filter_type == "MIN_NOTIONAL":
                parsed["min_notional"] = MinNotionalFilter.from_raw(raw)
            elif filter_type == "PERCENT_PRICE":
                parsed["percent_price"] = PercentPriceFilter.from_raw(raw)
            elif filter_type == "MAX_NUM_ORDERS":
                parsed["max_num_orders"] = MaxNumOrdersFilter.from_raw(raw)

        return cls(
            symbol=symbol,
            raw_filters=tuple(dict(raw) for raw in raw_filters),
            **parsed
        )

    def quantity_filter(self, order_type: str) -> Optional[LotSizeFilter]:
        """Lot filter for an order type; MARKET falls back to LOT_SIZE."""
        if order_type == "MARKET" and self.market_lot_size is not None:
            return self.market_lot_size
        return self.lot_size

    @property
    def price_precision(self) -> int:
        return self.price_filter.precision if self.price_filter else DEFAULT_PRECISION

    @property
    def quantity_precision(self) -> int:
        return self.lot_size.precision if self.lot_size else DEFAULT_PRECISION


@dataclass(frozen=True)
class FilterValidationResult:
    """Outcome of validating one order against a symbol's filters."""
    is_valid: bool
    errors: list[str] = field(default_factory=list)
    adjusted_price: Optional[Decimal] = None        # Set only when the price was corrected
    adjusted_quantity: Optional[Decimal] = None     # Set only when the quantity was corrected
    notices: list[str] = field(default_factory=list)
    unenforced_filters: list[str] = field(default_factory=list)
