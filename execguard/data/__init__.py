"""
Market data models and parsers.
"""

from .models import BookLevel, OrderBookSnapshot
from .parsers import MalformedOrderBookError, ParseError, parse_json_payload, parse_order_book

__all__ = [
    "BookLevel",
    "OrderBookSnapshot",
    "MalformedOrderBookError",
    "ParseError",
    "parse_json_payload",
    "parse_order_book",
]
