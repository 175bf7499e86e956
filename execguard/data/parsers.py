"""
Parsers for raw exchange market data payloads.

Depth payloads arrive as JSON bytes or already-decoded dictionaries in the
Binance-compatible format:

    {
        "lastUpdateId": 1027024,
        "E": 1589436922972,
        "bids": [["4.00000000", "431.00000000"]],
        "asks": [["4.00000200", "12.00000000"]]
    }
"""

from typing import Any, Optional, Union

import orjson

from .models import BookLevel, OrderBookSnapshot


class ParseError(Exception):
    """Raised when parsing fails due to invalid data format."""
    pass


class MalformedOrderBookError(ParseError):
    """Raised when an order book payload is invalid."""
    pass


def parse_json_payload(raw_data: Union[bytes, str]) -> Any:
    """
    Parse raw JSON bytes or text.

    Raises:
        ParseError: If JSON parsing fails
    """
    try:
        return orjson.loads(raw_data)
    except orjson.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}") from e


def parse_order_book(
    payload: Union[bytes, str, dict[str, Any]],
    symbol: str,
    max_levels: Optional[int] = None,
) -> OrderBookSnapshot:
    """
    Parse a depth payload into an OrderBookSnapshot.

    Levels are re-sorted (bids descending, asks ascending) and zero-quantity
    levels are dropped. A crossed book is returned as-is; callers check
    OrderBookSnapshot.is_crossed.

    Args:
        payload: Raw JSON or decoded depth dictionary
        symbol: Symbol the depth belongs to
        max_levels: Maximum number of levels to keep per side

    Returns:
        Normalized OrderBookSnapshot

    Raises:
        MalformedOrderBookError: If payload format is invalid
    """
    if isinstance(payload, (bytes, str)):
        try:
            payload = parse_json_payload(payload)
        except ParseError as e:
            raise MalformedOrderBookError(str(e)) from e

    if not isinstance(payload, dict):
        raise MalformedOrderBookError("Payload must be a dictionary")

    bids = _parse_book_levels(payload.get("bids", []), "bid")
    asks = _parse_book_levels(payload.get("asks", []), "ask")

    bids.sort(key=lambda x: x.price, reverse=True)
    asks.sort(key=lambda x: x.price)

    if max_levels is not None:
        bids = bids[:max_levels]
        asks = asks[:max_levels]

    try:
        last_update_id = int(payload["lastUpdateId"]) if "lastUpdateId" in payload else None
        event_time_ms = int(payload["E"]) if "E" in payload else None
    except (TypeError, ValueError) as e:
        raise MalformedOrderBookError(f"Invalid depth metadata: {e}") from e

    return OrderBookSnapshot(
        symbol=symbol,
        bids=bids,
        asks=asks,
        last_update_id=last_update_id,
        event_time_ms=event_time_ms,
    )


def _parse_book_levels(levels_data: Any, side: str) -> list[BookLevel]:
    """Parse [price, quantity] pairs, skipping empty levels."""
    if not isinstance(levels_data, list):
        raise MalformedOrderBookError(f"'{side}s' field must be a list")

    levels = []

    for i, level_data in enumerate(levels_data):
        try:
            if not isinstance(level_data, (list, tuple)) or len(level_data) < 2:
                raise ValueError("Level data must be a list with at least 2 elements")

            price = float(level_data[0])
            quantity = float(level_data[1])

            if price <= 0:
                raise ValueError(f"Price must be positive, got {price}")

            if quantity < 0:
                raise ValueError(f"Quantity must be non-negative, got {quantity}")

            if quantity == 0:
                continue

            levels.append(BookLevel(price=price, quantity=quantity))

        except (ValueError, TypeError) as e:
            raise MalformedOrderBookError(f"Invalid {side} level at index {i}: {e}") from e

    return levels
