"""
Per-symbol trading filter registry.

The registry owns the filter cache for one service instance. Validation
returns structured results: bound violations are hard errors naming the
violated limit, tick and step misalignment is corrected with a one-line
notice, and notional violations are never adjusted.
"""

from collections.abc import Iterator, Mapping
from decimal import ROUND_DOWN, ROUND_HALF_UP, ROUND_UP, Decimal, InvalidOperation
from typing import Any, Optional

import structlog

from ..errors import MissingFiltersError
from .models import FilterValidationResult, LotSizeFilter, MalformedFilterError, PriceFilter, SymbolFilterSet
from .rounding import ZERO, is_aligned, round_to_increment, to_decimal

logger = structlog.get_logger(__name__)

ORDER_TYPES = ("MARKET", "LIMIT")


def _fmt(value: Decimal) -> str:
    return format(value, "f")


class FilterRegistry:
    """Caches SymbolFilterSet objects and validates orders against them."""

    def __init__(self) -> None:
        self._filters: dict[str, SymbolFilterSet] = {}

    def __contains__(self, symbol: str) -> bool:
        return symbol in self._filters

    def __len__(self) -> int:
        return len(self._filters)

    def __iter__(self) -> Iterator[str]:
        return iter(self._filters)

    def load_symbol_filters(self, symbol_info: Mapping[str, Any]) -> SymbolFilterSet:
        """
        Parse a symbol's filters and replace any prior entry.

        Raises:
            MalformedFilterError: If the filter metadata is invalid; the prior
                entry is left untouched
        """
        filter_set = SymbolFilterSet.from_symbol_info(symbol_info)
        self._filters[filter_set.symbol] = filter_set

        logger.debug(
            "Symbol filters loaded",
            symbol=filter_set.symbol,
            filter_count=len(filter_set.raw_filters)
        )
        return filter_set

    def load_exchange_info(self, payload: Mapping[str, Any]) -> list[str]:
        """
        Load every symbol of an exchange-info payload.

        Symbols with malformed filters are skipped and logged; they stay
        absent, so orders for them fail validation.

        Returns:
            Symbols that were loaded
        """
        loaded = []
        for symbol_info in payload.get("symbols", []):
            try:
                loaded.append(self.load_symbol_filters(symbol_info).symbol)
            except MalformedFilterError as e:
                logger.warning(
                    "Skipping symbol with malformed filters",
                    symbol=symbol_info.get("symbol") if isinstance(symbol_info, Mapping) else None,
                    error=str(e)
                )

        logger.info("Exchange info loaded", symbol_count=len(loaded))
        return loaded

    def get_symbol_filters(self, symbol: str) -> Optional[SymbolFilterSet]:
        return self._filters.get(symbol)

    def require_symbol_filters(self, symbol: str) -> SymbolFilterSet:
        """Lookup that raises MissingFiltersError instead of returning None."""
        filter_set = self._filters.get(symbol)
        if filter_set is None:
            raise MissingFiltersError(f"No filters found for symbol {symbol}", symbol=symbol)
        return filter_set

    def validate_order(
        self,
        symbol: str,
        price: Any,
        quantity: Any,
        order_type: str = "LIMIT",
        is_reduce_only: bool = False,
    ) -> FilterValidationResult:
        """
        Validate and adjust order parameters.

        Args:
            symbol: Trading symbol
            price: Limit price, or the estimated fill price for MARKET orders
                (used for the notional check only)
            quantity: Order quantity in base units
            order_type: MARKET or LIMIT
            is_reduce_only: Skip the notional check for position-reducing orders

        Returns:
            FilterValidationResult; is_valid is true only when no hard error
            remains after adjustments
        """
        filter_set = self._filters.get(symbol)
        if filter_set is None:
            return FilterValidationResult(is_valid=False, errors=[f"No filters found for symbol {symbol}"])

        order_type = str(order_type).upper()
        if order_type not in ORDER_TYPES:
            return FilterValidationResult(is_valid=False, errors=[f"Unsupported order type {order_type}"])

        errors: list[str] = []
        notices: list[str] = []

        try:
            qty = to_decimal(quantity)
        except ValueError:
            return FilterValidationResult(is_valid=False, errors=[f"Invalid quantity: {quantity!r}"])
        if qty <= 0:
            return FilterValidationResult(is_valid=False, errors=[f"Quantity {_fmt(qty)} must be positive"])

        px: Optional[Decimal] = None
        if price is not None:
            try:
                px = to_decimal(price)
            except ValueError:
                return FilterValidationResult(is_valid=False, errors=[f"Invalid price: {price!r}"])
            if px <= 0:
                return FilterValidationResult(is_valid=False, errors=[f"Price {_fmt(px)} must be positive"])
        elif order_type == "LIMIT":
            return FilterValidationResult(is_valid=False, errors=["Price is required for LIMIT orders"])

        adjusted_price = px
        if order_type == "LIMIT" and filter_set.price_filter is not None:
            adjusted_price = self._check_price(px, filter_set.price_filter, errors, notices)

        adjusted_qty = qty
        lot_filter = filter_set.quantity_filter(order_type)
        if lot_filter is not None:
            adjusted_qty = self._check_quantity(qty, lot_filter, errors, notices)

        if filter_set.min_notional is not None and not is_reduce_only:
            if adjusted_price is None:
                errors.append("Cannot check minimum notional without a price estimate")
            else:
                notional = adjusted_price * adjusted_qty
                minimum = filter_set.min_notional.notional
                if notional < minimum:
                    errors.append(
                        f"Order notional {notional:.2f} is below minimum {_fmt(minimum)}"
                    )

        unenforced = ["PERCENT_PRICE"] if filter_set.percent_price is not None else []

        result = FilterValidationResult(
            is_valid=not errors,
            errors=errors,
            adjusted_price=adjusted_price if px is not None and adjusted_price != px else None,
            adjusted_quantity=adjusted_qty if adjusted_qty != qty else None,
            notices=notices,
            unenforced_filters=unenforced,
        )

        if errors:
            logger.info("Order failed filter validation", symbol=symbol, order_type=order_type, errors=errors)
        elif notices:
            logger.info("Order parameters adjusted", symbol=symbol, order_type=order_type, notices=notices)

        return result

    def _check_price(
        self,
        price: Decimal,
        price_filter: PriceFilter,
        errors: list[str],
        notices: list[str],
    ) -> Decimal:
        if price < price_filter.min_price:
            errors.append(f"Price {_fmt(price)} is below minimum {_fmt(price_filter.min_price)}")
            return price
        if price_filter.max_price is not None and price > price_filter.max_price:
            errors.append(f"Price {_fmt(price)} is above maximum {_fmt(price_filter.max_price)}")
            return price

        try:
            if is_aligned(price, price_filter.tick_size, price_filter.min_price):
                return price
            adjusted = _round_within(
                price, price_filter.tick_size, price_filter.min_price,
                price_filter.min_price, price_filter.max_price,
            )
        except InvalidOperation:
            errors.append(
                f"Price {_fmt(price)} cannot be aligned to tick size {_fmt(price_filter.tick_size)}"
            )
            return price

        notices.append(
            f"Price {_fmt(price)} adjusted to {_fmt(adjusted)} "
            f"to comply with tick size {_fmt(price_filter.tick_size)}"
        )
        return adjusted

    def _check_quantity(
        self,
        quantity: Decimal,
        lot_filter: LotSizeFilter,
        errors: list[str],
        notices: list[str],
    ) -> Decimal:
        if quantity < lot_filter.min_qty:
            errors.append(f"Quantity {_fmt(quantity)} is below minimum {_fmt(lot_filter.min_qty)}")
            return quantity
        if lot_filter.max_qty is not None and quantity > lot_filter.max_qty:
            errors.append(f"Quantity {_fmt(quantity)} is above maximum {_fmt(lot_filter.max_qty)}")
            return quantity

        try:
            if is_aligned(quantity, lot_filter.step_size):
                return quantity
            adjusted = _round_within(
                quantity, lot_filter.step_size, ZERO,
                lot_filter.min_qty, lot_filter.max_qty,
            )
        except InvalidOperation:
            errors.append(
                f"Quantity {_fmt(quantity)} cannot be aligned to step size {_fmt(lot_filter.step_size)}"
            )
            return quantity

        if adjusted <= 0:
            errors.append(
                f"Quantity {_fmt(quantity)} rounds to zero with step size {_fmt(lot_filter.step_size)}"
            )
            return quantity

        notices.append(
            f"Quantity {_fmt(quantity)} adjusted to {_fmt(adjusted)} "
            f"to comply with step size {_fmt(lot_filter.step_size)}"
        )
        return adjusted

    def round_price(self, symbol: str, price: Any, rounding: str = ROUND_HALF_UP) -> Decimal:
        """
        Round a price to the symbol's tick grid anchored at minPrice.

        Raises:
            MissingFiltersError: If no filters are loaded for the symbol
        """
        filter_set = self.require_symbol_filters(symbol)
        value = to_decimal(price)
        if filter_set.price_filter is None:
            return value
        return round_to_increment(
            value, filter_set.price_filter.tick_size, filter_set.price_filter.min_price, rounding
        )

    def round_quantity(
        self,
        symbol: str,
        quantity: Any,
        order_type: str = "LIMIT",
        rounding: str = ROUND_HALF_UP,
    ) -> Decimal:
        """
        Round a quantity to the symbol's step grid anchored at zero.

        Raises:
            MissingFiltersError: If no filters are loaded for the symbol
        """
        filter_set = self.require_symbol_filters(symbol)
        value = to_decimal(quantity)
        lot_filter = filter_set.quantity_filter(str(order_type).upper())
        if lot_filter is None:
            return value
        return round_to_increment(value, lot_filter.step_size, ZERO, rounding)

    def get_tick_size(self, symbol: str) -> Optional[Decimal]:
        filter_set = self._filters.get(symbol)
        if filter_set is None or filter_set.price_filter is None:
            return None
        return filter_set.price_filter.tick_size

    def get_step_size(self, symbol: str) -> Optional[Decimal]:
        filter_set = self._filters.get(symbol)
        if filter_set is None or filter_set.lot_size is None:
            return None
        return filter_set.lot_size.step_size

    def get_min_notional(self, symbol: str) -> Decimal:
        """Minimum notional, zero when the symbol publishes none."""
        filter_set = self._filters.get(symbol)
        if filter_set is None or filter_set.min_notional is None:
            return ZERO
        return filter_set.min_notional.notional

    def get_price_precision(self, symbol: str) -> int:
        return self.require_symbol_filters(symbol).price_precision

    def get_quantity_precision(self, symbol: str) -> int:
        return self.require_symbol_filters(symbol).quantity_precision


def _round_within(
    value: Decimal,
    increment: Decimal,
    anchor: Decimal,
    lower: Decimal,
    upper: Optional[Decimal],
) -> Decimal:
    """Round half-up to the grid, stepping inward if that leaves [lower, upper]."""
    adjusted = round_to_increment(value, increment, anchor, ROUND_HALF_UP)
    if upper is not None and adjusted > upper:
        adjusted = round_to_increment(value, increment, anchor, ROUND_DOWN)
    elif adjusted < lower:
        adjusted = round_to_increment(value, increment, anchor, ROUND_UP)
    return adjusted
