"""
Typed user data stream events.

Every frame is a JSON object whose "e" field names the event kind. Known
kinds are parsed into dedicated dataclasses; anything else (for example
listenKeyExpired) is delivered as UnknownStreamEvent with its raw payload.
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Union

from ..data.parsers import ParseError, parse_json_payload

GENERIC_CHANNEL = "event"

EVENT_ALIASES = {
    "ACCOUNT_UPDATE": "account_update",
    "ORDER_TRADE_UPDATE": "order_trade_update",
    "MARGIN_CALL": "margin_call",
}


class MalformedFrameError(ParseError):
    """Raised when a stream frame is not a valid event."""
    pass


def _float(data: dict[str, Any], key: str) -> float:
    value = data.get(key)
    return float(value) if value not in (None, "") else 0.0


def _int(data: dict[str, Any], key: str) -> Optional[int]:
    value = data.get(key)
    return int(value) if value not in (None, "") else None


@dataclass(frozen=True)
class StreamEvent:
    """Base for all stream events"""
    event_type: str
    event_time: Optional[int]
    raw: dict[str, Any] = field(repr=False)

    @property
    def channels(self) -> list[str]:
        """Channels the event is published on, generic first."""
        channels = [GENERIC_CHANNEL, self.event_type]
        alias = EVENT_ALIASES.get(self.event_type)
        if alias:
            channels.append(alias)
        return channels


@dataclass(frozen=True)
class BalanceUpdate:
    asset: str
    wallet_balance: float
    cross_wallet_balance: float
    balance_change: float


@dataclass(frozen=True)
class PositionUpdate:
    symbol: str
    position_amount: float
    entry_price: float
    unrealized_pnl: float
    margin_type: Optional[str]
    isolated_wallet: float
    position_side: Optional[str]


@dataclass(frozen=True)
class AccountUpdateEvent(StreamEvent):
    """Balance and position changes"""
    transaction_time: Optional[int] = None
    reason: Optional[str] = None
    balances: tuple[BalanceUpdate, ...] = ()
    positions: tuple[PositionUpdate, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "AccountUpdateEvent":
        account = payload.get("a") or {}
        return cls(
            event_type=payload["e"],
            event_time=_int(payload, "E"),
            raw=payload,
            transaction_time=_int(payload, "T"),
            reason=account.get("m"),
            balances=tuple(
                BalanceUpdate(
                    asset=b["a"],
                    wallet_balance=_float(b, "wb"),
                    cross_wallet_balance=_float(b, "cw"),
                    balance_change=_float(b, "bc"),
                )
                for b in account.get("B", [])
            ),
            positions=tuple(
                PositionUpdate(
                    symbol=p["s"],
                    position_amount=_float(p, "pa"),
                    entry_price=_float(p, "ep"),
                    unrealized_pnl=_float(p, "up"),
                    margin_type=p.get("mt"),
                    isolated_wallet=_float(p, "iw"),
                    position_side=p.get("ps"),
                )
                for p in account.get("P", [])
            ),
        )


@dataclass(frozen=True)
class OrderTradeUpdateEvent(StreamEvent):
    """Order state change or fill"""
    transaction_time: Optional[int] = None
    symbol: str = ""
    client_order_id: Optional[str] = None
    side: Optional[str] = None
    order_type: Optional[str] = None
    time_in_force: Optional[str] = None
    quantity: float = 0.0
    price: float = 0.0
    average_price: float = 0.0
    stop_price: float = 0.0
    execution_type: Optional[str] = None
    order_status: Optional[str] = None
    order_id: Optional[int] = None
    last_filled_quantity: float = 0.0
    cumulative_filled_quantity: float = 0.0
    last_filled_price: float = 0.0
    commission_asset: Optional[str] = None
    commission: float = 0.0
    trade_id: Optional[int] = None
    is_maker: bool = False
    reduce_only: bool = False
    position_side: Optional[str] = None
    realized_profit: float = 0.0

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "OrderTradeUpdateEvent":
        order = payload.get("o") or {}
        return cls(
            event_type=payload["e"],
            event_time=_int(payload, "E"),
            raw=payload,
            transaction_time=_int(payload, "T"),
            symbol=order.get("s", ""),
            client_order_id=order.get("c"),
            side=order.get("S"),
            order_type=order.get("o"),
            time_in_force=order.get("f"),
            quantity=_float(order, "q"),
            price=_float(order, "p"),
            average_price=_float(order, "ap"),
            stop_price=_float(order, "sp"),
            execution_type=order.get("x"),
            order_status=order.get("X"),
            order_id=_int(order, "i"),
            last_filled_quantity=_float(order, "l"),
            cumulative_filled_quantity=_float(order, "z"),
            last_filled_price=_float(order, "L"),
            commission_asset=order.get("N"),
            commission=_float(order, "n"),
            trade_id=_int(order, "t"),
            is_maker=bool(order.get("m", False)),
            reduce_only=bool(order.get("R", False)),
            position_side=order.get("ps"),
            realized_profit=_float(order, "rp"),
        )


@dataclass(frozen=True)
class MarginCallPosition:
    symbol: str
    position_side: Optional[str]
    position_amount: float
    margin_type: Optional[str]
    isolated_wallet: float
    mark_price: float
    unrealized_pnl: float
    maintenance_margin: float


@dataclass(frozen=True)
class MarginCallEvent(StreamEvent):
    """Positions at risk of liquidation"""
    cross_wallet_balance: float = 0.0
    positions: tuple[MarginCallPosition, ...] = ()

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> "MarginCallEvent":
        return cls(
            event_type=payload["e"],
            event_time=_int(payload, "E"),
            raw=payload,
            cross_wallet_balance=_float(payload, "cw"),
            positions=tuple(
                MarginCallPosition(
                    symbol=p["s"],
                    position_side=p.get("ps"),
                    position_amount=_float(p, "pa"),
                    margin_type=p.get("mt"),
                    isolated_wallet=_float(p, "iw"),
                    mark_price=_float(p, "mp"),
                    unrealized_pnl=_float(p, "up"),
                    maintenance_margin=_float(p, "mm"),
                )
                for p in payload.get("p", [])
            ),
        )


@dataclass(frozen=True)
class UnknownStreamEvent(StreamEvent):
    """Event kind without a typed model"""


_EVENT_TYPES = {
    "ACCOUNT_UPDATE": AccountUpdateEvent,
    "ORDER_TRADE_UPDATE": OrderTradeUpdateEvent,
    "MARGIN_CALL": MarginCallEvent,
}


def parse_stream_event(frame: Union[bytes, str, dict[str, Any]]) -> StreamEvent:
    """
    Parse one stream frame into a typed event.

    Raises:
        MalformedFrameError: If the frame is not JSON, not an object, has no
            "e" discriminant, or a known event has invalid fields
    """
    if isinstance(frame, (bytes, str)):
        try:
            payload = parse_json_payload(frame)
        except ParseError as e:
            raise MalformedFrameError(str(e)) from e
    else:
        payload = frame

    if not isinstance(payload, dict):
        raise MalformedFrameError("Frame must be a JSON object")

    event_type = payload.get("e")
    if not isinstance(event_type, str) or not event_type:
        raise MalformedFrameError("Frame is missing the 'e' event type")

    event_cls = _EVENT_TYPES.get(event_type)
    try:
        if event_cls is None:
            return UnknownStreamEvent(event_type=event_type, event_time=_int(payload, "E"), raw=payload)
        return event_cls.from_payload(payload)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise MalformedFrameError(f"Invalid {event_type} event: {e}") from e
