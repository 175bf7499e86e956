"""
User data stream: connection lifecycle, typed events and pub/sub dispatch.
"""

from .bus import EventBus
from .connection import (
    CONNECTED_CHANNEL,
    DISCONNECTED_CHANNEL,
    MAX_RECONNECT_CHANNEL,
    StreamConnection,
    StreamState,
    derive_ws_base_url,
)
from .events import (
    EVENT_ALIASES,
    GENERIC_CHANNEL,
    AccountUpdateEvent,
    BalanceUpdate,
    MalformedFrameError,
    MarginCallEvent,
    MarginCallPosition,
    OrderTradeUpdateEvent,
    PositionUpdate,
    StreamEvent,
    UnknownStreamEvent,
    parse_stream_event,
)

__all__ = [
    "EventBus",
    "CONNECTED_CHANNEL",
    "DISCONNECTED_CHANNEL",
    "MAX_RECONNECT_CHANNEL",
    "StreamConnection",
    "StreamState",
    "derive_ws_base_url",
    "EVENT_ALIASES",
    "GENERIC_CHANNEL",
    "AccountUpdateEvent",
    "BalanceUpdate",
    "MalformedFrameError",
    "MarginCallEvent",
    "MarginCallPosition",
    "OrderTradeUpdateEvent",
    "PositionUpdate",
    "StreamEvent",
    "UnknownStreamEvent",
    "parse_stream_event",
]
