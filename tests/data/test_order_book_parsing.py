"""Tests for order book parsing."""

import orjson
import pytest

from execguard.data.models import BookLevel, OrderBookSnapshot
from execguard.data.parsers import MalformedOrderBookError, ParseError, parse_json_payload, parse_order_book


class TestParseOrderBook:
    """Test depth payload normalization."""

    def test_sorts_levels(self) -> None:
        book = parse_order_book({
            "lastUpdateId": 7,
            "E": 1589436922972,
            "bids": [["99", "1"], ["100", "2"]],
            "asks": [["102", "1"], ["101", "3"]],
        }, "BTCUSDT")

        assert [level.price for level in book.bids] == [100.0, 99.0]
        assert [level.price for level in book.asks] == [101.0, 102.0]
        assert book.last_update_id == 7
        assert book.event_time_ms == 1589436922972

    def test_from_bytes(self, normal_book) -> None:
        book = parse_order_book(orjson.dumps(normal_book), "BTCUSDT")

        assert book.symbol == "BTCUSDT"
        assert book.best_bid == 50000.0
        assert book.best_ask == 50001.0
        assert book.spread == pytest.approx(1.0)
        assert book.mid_price == pytest.approx(50000.5)

    def test_drops_empty_levels(self) -> None:
        book = parse_order_book({"bids": [["100", "0"], ["99", "1"]], "asks": []}, "X")
        assert book.bids == [BookLevel(price=99.0, quantity=1.0)]

    def test_max_levels(self, deep_book) -> None:
        book = parse_order_book(deep_book, "BTCUSDT", max_levels=5)
        assert len(book.bids) == 5
        assert len(book.asks) == 5

    def test_crossed_book_is_flagged_not_rejected(self) -> None:
        book = parse_order_book({"bids": [["101", "1"]], "asks": [["100", "1"]]}, "X")
        assert book.is_crossed is True

    @pytest.mark.parametrize("payload", [
        b"not json",
        [1, 2],
        {"bids": "nope", "asks": []},
        {"bids": [["abc", "1"]], "asks": []},
        {"bids": [["-1", "1"]], "asks": []},
        {"bids": [["1"]], "asks": []},
        {"bids": [], "asks": [], "lastUpdateId": "x"},
    ])
    def test_malformed(self, payload) -> None:
        with pytest.raises(MalformedOrderBookError):
            parse_order_book(payload, "X")


class TestSnapshot:
    """Test snapshot helpers."""

    def test_empty_sides(self) -> None:
        book = OrderBookSnapshot(symbol="X")

        assert book.best_bid is None
        assert book.mid_price is None
        assert book.spread is None
        assert book.is_crossed is False

    def test_levels_for(self, normal_book) -> None:
        book = parse_order_book(normal_book, "BTCUSDT")

        assert book.levels_for("buy") is book.asks
        assert book.levels_for("SELL") is book.bids
        with pytest.raises(ValueError):
            book.levels_for("HOLD")


class TestParseJsonPayload:
    """Test raw JSON decoding."""

    def test_valid(self) -> None:
        assert parse_json_payload('{"a": 1}') == {"a": 1}

    def test_invalid(self) -> None:
        with pytest.raises(ParseError):
            parse_json_payload(b"{")
