"""
Deterministic HMAC-SHA256 request signing.

Query strings are built in caller insertion order, never sorted: the exchange
verifies the signature over the exact bytes it receives, so two requests with
the same key/value set in a different order are different requests with
different signatures.
"""

import hashlib
import hmac
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, Union
from urllib.parse import quote

from ..config.defaults import SigningParams
from ..utils.time import is_within_window
from .clock import ClockSync

# Characters encodeURIComponent leaves unescaped in addition to [A-Za-z0-9_.-~]
_URI_COMPONENT_SAFE = "!*'()"

_RESERVED_KEYS = ("timestamp", "recvWindow", "signature")

ParamsInput = Union[Mapping[str, Any], Iterable[tuple[str, Any]]]


class RecvWindowPlacement(str, Enum):
    """Where recvWindow goes relative to timestamp in the signed payload."""
    BEFORE_TIMESTAMP = "before_timestamp"
    AFTER_TIMESTAMP = "after_timestamp"
    OMIT = "omit"


@dataclass(frozen=True)
class SignedRequest:
    """A signed request ready for dispatch. Never reuse one across attempts."""
    method: str
    endpoint: str
    params: tuple[tuple[str, str], ...]      # Signed pairs, signature excluded
    timestamp: int
    recv_window: Optional[int]
    signature: str
    query_string: str                        # Signed payload + "&signature=..."

    @property
    def url(self) -> str:
        """Endpoint with the full signed query attached."""
        return f"{self.endpoint}?{self.query_string}"

    @property
    def payload(self) -> str:
        """The exact string the signature was computed over."""
        return self.query_string.rsplit("&signature=", 1)[0]


def render_value(value: Any) -> str:
    """Render a parameter value the way the exchange expects to read it."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, Decimal):
        return format(value, "f")
    if isinstance(value, float):
        # Shortest repr without exponent, so 0.00001 is sent as 0.00001 not 1e-05
        return format(Decimal(repr(value)), "f")
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


def _iter_params(params: Optional[ParamsInput]) -> list[tuple[str, Any]]:
    if params is None:
        return []
    if isinstance(params, Mapping):
        return list(params.items())
    return list(params)


def build_query_string(params: Optional[ParamsInput]) -> str:
    """
    Build a URL query string preserving caller insertion order.

    Keys whose value is an empty string or None are skipped. Keys and values
    are percent-encoded like encodeURIComponent, so a space becomes %20.

    Args:
        params: Mapping or sequence of (key, value) pairs

    Returns:
        Query string without a leading "?"
    """
    parts = []
    for key, value in _iter_params(params):
        if value is None or (isinstance(value, str) and value == ""):
            continue
        encoded_key = quote(str(key), safe=_URI_COMPONENT_SAFE)
        encoded_value = quote(render_value(value), safe=_URI_COMPONENT_SAFE)
        parts.append(f"{encoded_key}={encoded_value}")
    return "&".join(parts)


def create_signature(secret: str, payload: str) -> str:
    """Hex HMAC-SHA256 of payload keyed with the API secret."""
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


class RequestSigner:
    """Builds signed requests against a drift-corrected clock."""

    def __init__(
        self,
        clock: Optional[ClockSync] = None,
        recv_window_ms: int = 5000,
        default_placement: Union[RecvWindowPlacement, str] = RecvWindowPlacement.AFTER_TIMESTAMP,
        endpoint_placements: Optional[Mapping[str, Union[RecvWindowPlacement, str]]] = None,
        timestamp_tolerance_ms: int = 5000,
    ) -> None:
        self.clock = clock or ClockSync()
        self.recv_window_ms = recv_window_ms
        self.default_placement = RecvWindowPlacement(default_placement)
        self.endpoint_placements = {
            endpoint: RecvWindowPlacement(placement)
            for endpoint, placement in (endpoint_placements or {}).items()
        }
        self.timestamp_tolerance_ms = timestamp_tolerance_ms

    @classmethod
    def from_params(cls, params: SigningParams, clock: Optional[ClockSync] = None) -> "RequestSigner":
        """Create a signer from signing configuration."""
        return cls(
            clock=clock,
            recv_window_ms=params.recv_window_ms,
            default_placement=params.default_recv_window_placement,
            endpoint_placements=params.endpoint_placements,
            timestamp_tolerance_ms=params.timestamp_tolerance_ms,
        )

    def placement_for(self, endpoint: str) -> RecvWindowPlacement:
        """recvWindow placement configured for an endpoint."""
        return self.endpoint_placements.get(endpoint, self.default_placement)

    def sign_request(
        self,
        method: str,
        endpoint: str,
        params: Optional[ParamsInput],
        secret: str,
        recv_window: Optional[int] = None,
        placement: Optional[Union[RecvWindowPlacement, str]] = None,
        timestamp: Optional[int] = None,
    ) -> SignedRequest:
        """
        Sign business parameters for one dispatch.

        Args:
            method: HTTP method
            endpoint: Request path, e.g. /fapi/v1/order
            params: Business parameters in the order they must be sent
            secret: API secret
            recv_window: recvWindow override; a recvWindow inside params is
                honoured when this is not given
            placement: recvWindow placement override for this call
            timestamp: Explicit timestamp, defaults to the drift-corrected now

        Returns:
            SignedRequest with the signature appended last
        """
        if not secret:
            raise ValueError("API secret is required for signed requests")

        pairs = _iter_params(params)
        if recv_window is None:
            for key, value in pairs:
                if key == "recvWindow" and value not in (None, ""):
                    recv_window = int(value)
        business = [(k, v) for k, v in pairs if k not in _RESERVED_KEYS]

        ts = int(timestamp) if timestamp is not None else self.clock.now_ms()
        window = int(recv_window) if recv_window is not None else self.recv_window_ms
        resolved = RecvWindowPlacement(placement) if placement is not None else self.placement_for(endpoint)

        if resolved is RecvWindowPlacement.BEFORE_TIMESTAMP:
            signed_pairs = business + [("recvWindow", window), ("timestamp", ts)]
        elif resolved is RecvWindowPlacement.AFTER_TIMESTAMP:
            signed_pairs = business + [("timestamp", ts), ("recvWindow", window)]
        else:
            signed_pairs = business + [("timestamp", ts)]

        payload = build_query_string(signed_pairs)
        signature = create_signature(secret, payload)

        return SignedRequest(
            method=method.upper(),
            endpoint=endpoint,
            params=tuple(
                (key, render_value(value)) for key, value in signed_pairs
                if value is not None and value != ""
            ),
            timestamp=ts,
            recv_window=None if resolved is RecvWindowPlacement.OMIT else window,
            signature=signature,
            query_string=f"{payload}&signature={signature}",
        )

    def sign_get_request(self, endpoint: str, params: Optional[ParamsInput], secret: str,
                         **kwargs: Any) -> SignedRequest:
        return self.sign_request("GET", endpoint, params, secret, **kwargs)

    def sign_post_request(self, endpoint: str, params: Optional[ParamsInput], secret: str,
                          **kwargs: Any) -> SignedRequest:
        return self.sign_request("POST", endpoint, params, secret, **kwargs)

    def sign_put_request(self, endpoint: str, params: Optional[ParamsInput], secret: str,
                         **kwargs: Any) -> SignedRequest:
        return self.sign_request("PUT", endpoint, params, secret, **kwargs)

    def sign_delete_request(self, endpoint: str, params: Optional[ParamsInput], secret: str,
                            **kwargs: Any) -> SignedRequest:
        return self.sign_request("DELETE", endpoint, params, secret, **kwargs)

    def validate_timestamp(self, timestamp_ms: int, window_ms: Optional[int] = None) -> bool:
        """True if timestamp is within the tolerance window of the corrected clock."""
        if window_ms is None:
            window_ms = self.timestamp_tolerance_ms
        return is_within_window(timestamp_ms, self.clock.now_ms(), window_ms)
