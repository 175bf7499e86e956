"""
Error handling tests for the execution-safety engine.

Tests cover the error hierarchy, recoverability flags, and that failures in
one layer surface as the documented exception types.
"""

import pytest

from execguard.data.parsers import MalformedOrderBookError, ParseError
from execguard.errors import (
    AuthError,
    ExchangeError,
    ExecutionError,
    InsufficientLiquidityError,
    MaxReconnectExceededError,
    MissingFiltersError,
    NetworkError,
    RateLimitedError,
    StreamDisconnectedError,
    ValidationError,
)
from execguard.filters.models import MalformedFilterError
from execguard.stream.events import MalformedFrameError


class TestErrorClassification:
    """Test error classification system."""

    def test_validation_error_hierarchy(self):
        """Validation failures are never recoverable."""
        error = ValidationError("bad price", filter_type="PRICE_FILTER", value="0.001", limit="0.01")
        assert isinstance(error, ExecutionError)
        assert error.recoverable is False
        assert error.context == {}
        assert error.filter_type == "PRICE_FILTER"

        missing = MissingFiltersError("No filters found for symbol X", symbol="X")
        assert isinstance(missing, ValidationError)
        assert missing.symbol == "X"

        liquidity = InsufficientLiquidityError("empty", requested=1.0, available=0.0)
        assert liquidity.requested == 1.0
        assert liquidity.available == 0.0

    def test_transport_error_hierarchy(self):
        """Network failures, rate limits and 5xx are recoverable."""
        network = NetworkError("timeout", method="GET", path="/fapi/v1/time")
        assert network.recoverable is True
        assert network.path == "/fapi/v1/time"

        assert ExchangeError("server", status=503).recoverable is True
        assert ExchangeError("client", status=400, code=-1102).recoverable is False

        limited = RateLimitedError("slow down", status=429, retry_after_ms=2000, attempts=6)
        assert isinstance(limited, ExchangeError)
        assert limited.recoverable is True
        assert limited.retry_after_ms == 2000
        assert limited.attempts == 6

        banned = RateLimitedError("banned", status=418)
        assert banned.recoverable is False

        auth = AuthError("bad key", status=401, code=-2015)
        assert auth.recoverable is False
        assert auth.code == -2015

    def test_stream_error_hierarchy(self):
        disconnected = StreamDisconnectedError("gone", state="DISCONNECTED")
        assert disconnected.recoverable is True
        assert disconnected.state == "DISCONNECTED"

        exhausted = MaxReconnectExceededError("done", attempts=10, context={"connection_id": "stream-1"})
        assert exhausted.recoverable is False
        assert exhausted.attempts == 10
        assert exhausted.context == {"connection_id": "stream-1"}

    def test_parse_errors_share_a_base(self):
        for error_cls in (MalformedOrderBookError, MalformedFilterError, MalformedFrameError):
            assert issubclass(error_cls, ParseError)

    def test_message_is_str(self):
        error = NetworkError("GET /fapi/v1/time failed: timeout")
        assert str(error) == "GET /fapi/v1/time failed: timeout"
        assert error.message == str(error)


class TestFailClosed:
    """Failures in validation and protection never let an order through."""

    def test_missing_filters_reject(self, registry):
        result = registry.validate_order("SOLUSDT", "100", "1")
        assert result.is_valid is False

    def test_protection_failure_rejects(self, registry):
        from execguard.protection.engine import PriceProtectionEngine

        verdict = PriceProtectionEngine(registry).analyze_market_order(
            "BTCUSDT", "BUY", "not-a-number", {"bids": [], "asks": [["1", "1"]]}
        )

        assert verdict.recommendation.value == "REJECT"
        assert verdict.warnings[0].startswith("Price protection failed:")

    def test_require_symbol_filters_raises(self, registry):
        with pytest.raises(MissingFiltersError) as exc_info:
            registry.require_symbol_filters("SOLUSDT")
        assert exc_info.value.symbol == "SOLUSDT"
