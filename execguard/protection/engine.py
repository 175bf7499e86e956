"""
Market order price protection.

A market order is simulated against the visible book before it is sent.
The resulting VWAP, price impact and depth drive an EXECUTE / WARNING /
REJECT recommendation. Escalations only ever tighten the recommendation,
and a book that cannot fill the order always rejects.
"""

from decimal import ROUND_DOWN, Decimal
from typing import Any, Optional, Union

from ..config.defaults import ProtectionParams
from ..data.models import OrderBookSnapshot
from ..data.parsers import parse_order_book
from ..errors import InsufficientLiquidityError
from ..filters.registry import FilterRegistry
from ..filters.rounding import ZERO, to_decimal
from ..logging.config import get_guard_logger, log_verdict
from .models import (
    MarketDepth,
    MarketOrderAnalysis,
    OrderSizeAssessment,
    ProtectionVerdict,
    Recommendation,
    UserSettings,
)
from .pricing import price_with_slippage

logger = get_guard_logger(__name__)

BookInput = Union[OrderBookSnapshot, dict[str, Any]]


def _as_snapshot(order_book: BookInput, symbol: str = "") -> OrderBookSnapshot:
    if isinstance(order_book, OrderBookSnapshot):
        return order_book
    return parse_order_book(order_book, symbol)


class PriceProtectionEngine:
    """Classifies market order execution risk against a live order book."""

    def __init__(self, registry: FilterRegistry, params: Optional[ProtectionParams] = None) -> None:
        self.registry = registry
        self.params = params or ProtectionParams()

    def analyze_market_order(
        self,
        symbol: str,
        side: str,
        quantity: Any,
        order_book: BookInput,
        user_settings: Union[UserSettings, dict[str, Any], None] = None,
    ) -> ProtectionVerdict:
        """
        Classify a market order. Never raises.

        Args:
            symbol: Trading symbol
            side: BUY or SELL
            quantity: Order quantity in base units
            order_book: Snapshot or raw depth payload
            user_settings: Slippage tolerance; defaults to default_slippage_bps

        Returns:
            ProtectionVerdict; any internal failure yields REJECT with a
            "Price protection failed: ..." warning
        """
        try:
            settings = UserSettings.coerce(user_settings, self.params.default_slippage_bps)
            book = _as_snapshot(order_book, symbol)
            analysis = self.simulate_execution(side, quantity, book)
            verdict = self._evaluate(analysis, settings.slippage_bps)
        except Exception as e:
            logger.error("Price protection failed", symbol=symbol, side=side, error=str(e))
            verdict = ProtectionVerdict.failed(f"Price protection failed: {e}")

        log_verdict(
            logger,
            symbol=symbol,
            side=str(side),
            quantity=_safe_float(quantity),
            recommendation=verdict.recommendation.value,
            slippage_bps=verdict.slippage_bps,
            warnings=verdict.warnings,
            context={"price_impact": verdict.price_impact, "liquidity_depth": verdict.liquidity_depth},
        )
        return verdict

    def simulate_execution(self, side: str, quantity: Any, order_book: BookInput) -> MarketOrderAnalysis:
        """
        Walk asks (BUY) or bids (SELL) until the quantity is filled or the
        book runs out.

        Raises:
            InsufficientLiquidityError: If the consumed side is empty
            ValueError: If side or quantity is invalid
        """
        side = side.upper()
        book = _as_snapshot(order_book)
        levels = book.levels_for(side)

        target = float(quantity)
        if not target > 0:
            raise ValueError(f"Quantity must be positive, got {quantity}")

        if not levels:
            raise InsufficientLiquidityError(
                "Empty order book - no liquidity available",
                requested=target,
                available=0.0,
            )

        remaining = target
        total_cost = 0.0
        filled = 0.0
        worst_price = levels[0].price
        depth = 0

        for level in levels:
            if remaining <= 0:
                break

            fill = min(remaining, level.quantity)
            total_cost += fill * level.price
            filled += fill
            remaining -= fill
            worst_price = level.price
            depth += 1

        best_price = levels[0].price
        average_price = total_cost / filled if filled > 0 else best_price
        price_impact = abs(average_price - best_price) / best_price

        return MarketOrderAnalysis(
            side=side,
            quantity=target,
            filled_quantity=filled,
            total_cost=total_cost,
            average_price=average_price,
            best_price=best_price,
            worst_price=worst_price,
            price_impact=price_impact,
            slippage_bps=price_impact * 10000,
            liquidity_depth=depth,
            partial_fill_risk=remaining > 0,
        )

    def _evaluate(self, analysis: MarketOrderAnalysis, tolerance_bps: float) -> ProtectionVerdict:
        warnings: list[str] = []
        recommendation = Recommendation.EXECUTE
        slippage = analysis.slippage_bps

        if slippage > tolerance_bps * 2:
            recommendation = Recommendation.REJECT
            warnings.append(
                f"Excessive slippage: {slippage:.2f} bps exceeds maximum {tolerance_bps:g} bps"
            )
        elif slippage > tolerance_bps:
            recommendation = Recommendation.WARNING
            warnings.append(
                f"High slippage warning: {slippage:.2f} bps exceeds preferred {tolerance_bps:g} bps"
            )

        impact = analysis.price_impact
        if impact > self.params.reject_price_impact:
            recommendation = Recommendation.REJECT
            warnings.append(
                f"Excessive price impact: {impact * 100:.2f}% may indicate market manipulation"
            )
        elif impact > self.params.warn_price_impact:
            recommendation = recommendation.tighten(Recommendation.WARNING)
            warnings.append(
                f"High price impact: {impact * 100:.2f}% - consider reducing order size"
            )

        if analysis.liquidity_depth <= self.params.thin_book_levels:
            recommendation = recommendation.tighten(Recommendation.WARNING)
            warnings.append(
                f"Low liquidity: order would consume {analysis.liquidity_depth} price level(s)"
            )

        if analysis.partial_fill_risk:
            recommendation = Recommendation.REJECT
            warnings.append("Insufficient liquidity - order cannot be fully filled")

        band_bps = max(slippage, tolerance_bps)
        estimated = analysis.average_price
        if analysis.side == "BUY":
            max_price = price_with_slippage(estimated, band_bps, "BUY")
            min_price = estimated
        else:
            max_price = estimated
            min_price = price_with_slippage(estimated, band_bps, "SELL")

        return ProtectionVerdict(
            recommendation=recommendation,
            estimated_price=estimated,
            worst_price=analysis.worst_price,
            max_price=max_price,
            min_price=min_price,
            slippage_bps=slippage,
            price_impact=impact,
            liquidity_depth=analysis.liquidity_depth,
            partial_fill_risk=analysis.partial_fill_risk,
            warnings=warnings,
            requires_confirmation=recommendation is Recommendation.WARNING,
        )

    def calculate_optimal_order_size(
        self,
        symbol: str,
        side: str,
        max_slippage_bps: float,
        order_book: BookInput,
    ) -> Decimal:
        """
        Largest quantity whose every consumed level is within max_slippage_bps
        of the best price.

        The sum is rounded down to the symbol's step, so simulating the
        returned size never consumes a level beyond the limit.

        Returns:
            Quantity as Decimal; zero for an empty side
        """
        book = _as_snapshot(order_book, symbol)
        levels = book.levels_for(side)
        if not levels:
            return ZERO

        best_price = levels[0].price
        total = ZERO

        for level in levels:
            level_slippage_bps = abs(level.price - best_price) / best_price * 10000
            if level_slippage_bps > max_slippage_bps:
                break
            total += to_decimal(level.quantity)

        if symbol in self.registry:
            return self.registry.round_quantity(symbol, total, "MARKET", rounding=ROUND_DOWN)
        return total

    def get_market_depth(self, order_book: BookInput, side: str) -> MarketDepth:
        """Depth statistics for the side a market order would consume."""
        book = _as_snapshot(order_book)
        levels = book.levels_for(side)
        opposite = book.bids if side.upper() == "BUY" else book.asks

        if not levels or not opposite:
            return MarketDepth(levels=0, total_quantity=0.0, average_order_size=0.0,
                               spread=0.0, spread_bps=0.0)

        total_quantity = sum(level.quantity for level in levels)
        spread = book.best_ask - book.best_bid

        return MarketDepth(
            levels=len(levels),
            total_quantity=total_quantity,
            average_order_size=total_quantity / len(levels),
            spread=spread,
            spread_bps=spread / book.best_bid * 10000,
        )

    def is_reasonable_order_size(
        self,
        symbol: str,
        quantity: Any,
        order_book: BookInput,
        side: str,
    ) -> OrderSizeAssessment:
        """Advisory classification of an order size relative to visible depth."""
        depth = self.get_market_depth(_as_snapshot(order_book, symbol), side)

        if depth.total_quantity == 0:
            return OrderSizeAssessment(
                is_reasonable=False,
                percent_of_depth=100.0,
                advice="No liquidity available",
                level="empty",
            )

        percent = float(quantity) / depth.total_quantity * 100

        if percent > self.params.depth_reject_pct:
            return OrderSizeAssessment(
                is_reasonable=False,
                percent_of_depth=percent,
                advice=(f"Order too large - would consume >{self.params.depth_reject_pct:g}% "
                        "of available liquidity"),
                level="reject",
            )
        if percent > self.params.depth_large_pct:
            return OrderSizeAssessment(
                is_reasonable=False,
                percent_of_depth=percent,
                advice="Order size is large - consider splitting into smaller orders",
                level="large",
            )
        if percent > self.params.depth_moderate_pct:
            return OrderSizeAssessment(
                is_reasonable=True,
                percent_of_depth=percent,
                advice="Moderate order size - monitor for slippage",
                level="moderate",
            )
        return OrderSizeAssessment(
            is_reasonable=True,
            percent_of_depth=percent,
            advice="Order size looks good",
            level="ok",
        )


def _safe_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
