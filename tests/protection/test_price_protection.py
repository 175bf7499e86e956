"""Tests for market order price protection."""

from decimal import Decimal

import pytest

from execguard.config.defaults import ProtectionParams
from execguard.data.parsers import parse_order_book
from execguard.errors import InsufficientLiquidityError
from execguard.protection.engine import PriceProtectionEngine
from execguard.protection.models import ProtectionVerdict, Recommendation, UserSettings
from execguard.protection.pricing import (
    base_to_quote,
    calculate_stop_loss,
    calculate_take_profit,
    percentage_change,
    price_with_slippage,
    quote_to_base,
)
from execguard.protection.summary import format_protection_summary


@pytest.fixture
def engine(registry) -> PriceProtectionEngine:
    return PriceProtectionEngine(registry)


def two_level_book(first: str, second: str) -> dict:
    return {"bids": [["99", "10"]], "asks": [[first, "1"], [second, "1"]]}


class TestRecommendation:
    """Test the verdict ladder."""

    def test_tighten_never_loosens(self) -> None:
        assert Recommendation.EXECUTE.tighten(Recommendation.WARNING) is Recommendation.WARNING
        assert Recommendation.REJECT.tighten(Recommendation.WARNING) is Recommendation.REJECT
        assert Recommendation.WARNING.tighten(Recommendation.EXECUTE) is Recommendation.WARNING

    def test_user_settings_coercion(self) -> None:
        assert UserSettings.coerce(None, 50.0).slippage_bps == 50.0
        assert UserSettings.coerce({"slippage_bps": 25}, 50.0).slippage_bps == 25.0
        assert UserSettings.coerce({"leverage_cap": 20}, 50.0).slippage_bps == 50.0
        settings = UserSettings(slippage_bps=10)
        assert UserSettings.coerce(settings, 50.0) is settings


class TestSimulateExecution:
    """Test the book walk."""

    def test_buy_walks_asks(self, engine, normal_book) -> None:
        analysis = engine.simulate_execution("BUY", 4.0, normal_book)

        assert analysis.filled_quantity == pytest.approx(4.0)
        assert analysis.average_price == pytest.approx(200005.9 / 4.0)
        assert analysis.best_price == 50001.0
        assert analysis.worst_price == 50002.0
        assert analysis.liquidity_depth == 3
        assert analysis.partial_fill_risk is False

    def test_sell_walks_bids(self, engine, normal_book) -> None:
        analysis = engine.simulate_execution("sell", 2.0, normal_book)

        assert analysis.side == "SELL"
        assert analysis.best_price == 50000.0
        assert analysis.worst_price == 49999.5
        assert analysis.liquidity_depth == 2

    def test_partial_fill(self, engine, low_liquidity_book) -> None:
        analysis = engine.simulate_execution("BUY", 1.0, low_liquidity_book)

        assert analysis.partial_fill_risk is True
        assert analysis.filled_quantity == pytest.approx(0.02)

    def test_empty_side_raises(self, engine) -> None:
        with pytest.raises(InsufficientLiquidityError, match="Empty order book - no liquidity available"):
            engine.simulate_execution("BUY", 1.0, {"bids": [["1", "1"]], "asks": []})

    def test_invalid_quantity(self, engine, normal_book) -> None:
        with pytest.raises(ValueError):
            engine.simulate_execution("BUY", 0, normal_book)


class TestAnalyzeMarketOrder:
    """Test verdict classification."""

    def test_deep_fill_executes(self, engine, normal_book) -> None:
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", "4.0", normal_book, {"slippage_bps": 50})

        assert verdict.recommendation is Recommendation.EXECUTE
        assert verdict.requires_confirmation is False
        assert verdict.warnings == []
        assert verdict.slippage_bps == pytest.approx(verdict.price_impact * 10000)

    def test_protective_band_oriented_by_side(self, engine, normal_book) -> None:
        buy = engine.analyze_market_order("BTCUSDT", "BUY", "4.0", normal_book, {"slippage_bps": 50})
        sell = engine.analyze_market_order("BTCUSDT", "SELL", "4.5", normal_book, {"slippage_bps": 50})

        assert buy.min_price == pytest.approx(buy.estimated_price)
        assert buy.max_price == pytest.approx(buy.estimated_price * 1.005)
        assert sell.max_price == pytest.approx(sell.estimated_price)
        assert sell.min_price == pytest.approx(sell.estimated_price * 0.995)

    def test_thin_book_warns(self, engine, normal_book) -> None:
        """Touching two levels or fewer needs confirmation."""
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", "0.1", normal_book)

        assert verdict.recommendation is Recommendation.WARNING
        assert verdict.requires_confirmation is True
        assert verdict.warnings == ["Low liquidity: order would consume 1 price level(s)"]

    def test_partial_fill_rejects(self, engine, low_liquidity_book) -> None:
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", "1.0", low_liquidity_book)

        assert verdict.recommendation is Recommendation.REJECT
        assert verdict.partial_fill_risk is True
        assert "Insufficient liquidity - order cannot be fully filled" in verdict.warnings
        assert verdict.requires_confirmation is False

    def test_slippage_between_tolerance_and_double_warns(self, engine) -> None:
        verdict = engine.analyze_market_order("X", "BUY", 2, two_level_book("100", "101.5"),
                                              {"slippage_bps": 50})

        assert verdict.slippage_bps == pytest.approx(75.0)
        assert verdict.recommendation is Recommendation.WARNING
        assert verdict.warnings[0] == "High slippage warning: 75.00 bps exceeds preferred 50 bps"

    def test_slippage_beyond_double_rejects(self, engine, wide_spread_book) -> None:
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", 3.0, wide_spread_book,
                                              {"slippage_bps": 50})

        assert verdict.recommendation is Recommendation.REJECT
        assert verdict.warnings[0].startswith("Excessive slippage:")

    def test_low_liquidity_does_not_loosen_reject(self, engine) -> None:
        verdict = engine.analyze_market_order("X", "BUY", 2, two_level_book("100", "101.5"),
                                              {"slippage_bps": 10})

        assert verdict.recommendation is Recommendation.REJECT
        assert "Low liquidity: order would consume 2 price level(s)" in verdict.warnings

    def test_price_impact_rejects_on_its_own(self, engine) -> None:
        """A 10% impact rejects even with a huge slippage tolerance."""
        verdict = engine.analyze_market_order("X", "BUY", 2, two_level_book("100", "120"),
                                              {"slippage_bps": 5000})

        assert verdict.recommendation is Recommendation.REJECT
        assert any(w.startswith("Excessive price impact: 10.00%") for w in verdict.warnings)

    def test_price_impact_warns(self, engine) -> None:
        verdict = engine.analyze_market_order("X", "BUY", 2, two_level_book("100", "103"),
                                              {"slippage_bps": 5000})

        assert verdict.recommendation is Recommendation.WARNING
        assert "High price impact: 1.50% - consider reducing order size" in verdict.warnings

    def test_stricter_tolerance_is_never_looser(self, engine, normal_book) -> None:
        strict = engine.analyze_market_order("BTCUSDT", "BUY", 5.0, normal_book, {"slippage_bps": 0.1})
        lenient = engine.analyze_market_order("BTCUSDT", "BUY", 5.0, normal_book, {"slippage_bps": 500})

        assert strict.recommendation.severity >= lenient.recommendation.severity

    def test_failure_is_fail_closed(self, engine) -> None:
        """Analysis never raises; failures reject."""
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", "1", {"bids": [], "asks": []})

        assert verdict.recommendation is Recommendation.REJECT
        assert verdict.warnings == ["Price protection failed: Empty order book - no liquidity available"]

    def test_malformed_book_is_fail_closed(self, engine) -> None:
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", "1", {"bids": "nope", "asks": []})

        assert verdict.recommendation is Recommendation.REJECT
        assert verdict.warnings[0].startswith("Price protection failed:")

    def test_accepts_snapshot(self, engine, normal_book) -> None:
        snapshot = parse_order_book(normal_book, "BTCUSDT")
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", 4.0, snapshot)
        assert verdict.recommendation is Recommendation.EXECUTE

    def test_default_tolerance_from_params(self, registry) -> None:
        engine = PriceProtectionEngine(registry, ProtectionParams(default_slippage_bps=100.0))
        verdict = engine.analyze_market_order("X", "BUY", 2, two_level_book("100", "101.5"))
        assert verdict.recommendation is Recommendation.WARNING
        assert not any("slippage" in w.lower() for w in verdict.warnings)


class TestOptimalOrderSize:
    """Test the largest-safe-size calculation."""

    def test_all_levels_qualify(self, engine, deep_book) -> None:
        size = engine.calculate_optimal_order_size("BTCUSDT", "BUY", 100, deep_book)
        assert size == Decimal("390")

    def test_stops_at_first_level_beyond_limit(self, engine, deep_book) -> None:
        size = engine.calculate_optimal_order_size("BTCUSDT", "BUY", 1, deep_book)
        assert size == Decimal("165")

    def test_optimal_size_stays_within_limit(self, engine, deep_book) -> None:
        size = engine.calculate_optimal_order_size("BTCUSDT", "BUY", 1, deep_book)
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", size, deep_book, {"slippage_bps": 1})

        assert verdict.slippage_bps <= 1
        assert verdict.partial_fill_risk is False

    def test_rounded_down_to_step(self, engine) -> None:
        book = {"bids": [], "asks": [["50000", "0.123456789"]]}
        size = engine.calculate_optimal_order_size("BTCUSDT", "BUY", 10, book)
        assert size == Decimal("0.12345")

    def test_unknown_symbol_not_rounded(self, engine) -> None:
        book = {"bids": [], "asks": [["1", "0.123456789"]]}
        assert engine.calculate_optimal_order_size("ZZZ", "BUY", 10, book) == Decimal("0.123456789")

    def test_empty_side(self, engine) -> None:
        assert engine.calculate_optimal_order_size("BTCUSDT", "SELL", 10, {"bids": [], "asks": []}) == 0


class TestDepthAdvisories:
    """Test depth statistics and size advice."""

    def test_market_depth(self, engine, normal_book) -> None:
        depth = engine.get_market_depth(normal_book, "BUY")

        assert depth.levels == 5
        assert depth.total_quantity == pytest.approx(7.3)
        assert depth.average_order_size == pytest.approx(1.46)
        assert depth.spread == pytest.approx(1.0)
        assert depth.spread_bps == pytest.approx(0.2)

    @pytest.mark.parametrize("quantity,level,reasonable", [
        (4.0, "reject", False),
        (2.0, "large", False),
        (1.0, "moderate", True),
        (0.5, "ok", True),
    ])
    def test_order_size_levels(self, engine, normal_book, quantity, level, reasonable) -> None:
        assessment = engine.is_reasonable_order_size("BTCUSDT", quantity, normal_book, "BUY")

        assert assessment.level == level
        assert assessment.is_reasonable is reasonable

    def test_order_size_advice_text(self, engine, normal_book) -> None:
        assessment = engine.is_reasonable_order_size("BTCUSDT", 4.0, normal_book, "BUY")
        assert assessment.advice == "Order too large - would consume >50% of available liquidity"

    def test_empty_book(self, engine) -> None:
        assessment = engine.is_reasonable_order_size("BTCUSDT", 1, {"bids": [], "asks": []}, "BUY")

        assert assessment.advice == "No liquidity available"
        assert assessment.percent_of_depth == 100.0
        assert assessment.is_reasonable is False


class TestPricing:
    """Test side-aware price helpers."""

    def test_conversions(self) -> None:
        assert quote_to_base(100, 50) == 2
        assert base_to_quote(2, 50) == 100
        with pytest.raises(ValueError):
            quote_to_base(100, 0)

    def test_percentage_change(self) -> None:
        assert percentage_change(100, 110) == pytest.approx(10.0)
        with pytest.raises(ValueError):
            percentage_change(0, 1)

    def test_slippage_direction(self) -> None:
        assert price_with_slippage(100, 50, "BUY") == pytest.approx(100.5)
        assert price_with_slippage(100, 50, "SELL") == pytest.approx(99.5)

    def test_stop_loss_and_take_profit(self) -> None:
        assert calculate_stop_loss(100, 2, "BUY") == pytest.approx(98)
        assert calculate_stop_loss(100, 2, "SELL") == pytest.approx(102)
        assert calculate_take_profit(100, 4, "BUY") == pytest.approx(104)
        assert calculate_take_profit(100, 4, "SELL") == pytest.approx(96)

    def test_unknown_side(self) -> None:
        with pytest.raises(ValueError):
            calculate_stop_loss(100, 2, "HOLD")


class TestSummary:
    """Test the plain-text verdict summary."""

    def test_execute_summary(self, engine, normal_book) -> None:
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", 4.0, normal_book)
        lines = format_protection_summary(verdict, price_precision=2).splitlines()

        assert lines[0] == "[EXECUTE] Order looks good"
        assert lines[1].startswith("Estimated Price: 50001.4")
        assert any(line.startswith("Protective Band: ") for line in lines)
        assert "Confirmation required before submitting." not in lines

    def test_warning_summary(self, engine, normal_book) -> None:
        verdict = engine.analyze_market_order("BTCUSDT", "BUY", 0.1, normal_book)
        text = format_protection_summary(verdict)

        assert text.startswith("[WARNING] Proceed with caution")
        assert "- Low liquidity: order would consume 1 price level(s)" in text
        assert text.endswith("Confirmation required before submitting.")

    def test_failed_summary_has_no_band(self) -> None:
        text = format_protection_summary(ProtectionVerdict.failed("Price protection failed: boom"))

        assert text.startswith("[REJECT] Order not recommended")
        assert "Protective Band" not in text
