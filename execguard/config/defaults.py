"""Default configuration parameters for the execution-safety engine."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class SigningParams:
    """Request signing and clock parameters."""
    recv_window_ms: int = 5000                        # Freshness window sent with signed calls
    default_recv_window_placement: str = "after_timestamp"
    # Per-endpoint recvWindow placement: before_timestamp | after_timestamp | omit
    endpoint_placements: dict[str, str] = field(
        default_factory=lambda: {"/fapi/v1/order": "before_timestamp"}
    )
    timestamp_tolerance_ms: int = 5000                # validate_timestamp window
    max_clock_drift_ms: int = 1000                    # Acceptable |server - local|
    client_order_id_prefix: str = "bot"


@dataclass(frozen=True)
class RateLimitParams:
    """Rate limit interpretation and REST retry parameters."""
    max_retries: int = 5                              # 429 retries before giving up
    min_retry_delay_ms: int = 1000                    # Floor for Retry-After sleeps
    weight_limit_1m: int = 2400                       # Request weight per minute
    order_limit_10s: int = 300
    order_limit_1m: int = 1200
    backoff_threshold: float = 0.8                    # Fraction of a limit that triggers backoff


@dataclass(frozen=True)
class StreamParams:
    """User data stream parameters."""
    keepalive_interval_s: float = 30.0                # Client ping cadence
    max_reconnect_attempts: int = 10
    reconnect_base_delay_ms: int = 1000
    reconnect_max_delay_ms: int = 60000
    reconnect_jitter_ratio: float = 0.1               # Extra random delay, fraction of the step
    ws_base_url: str = "wss://fstream.asterdex.com"
    ws_path_prefix: str = "/ws"                       # Stream URL is {ws_base_url}{prefix}/{listen_key}


@dataclass(frozen=True)
class ProtectionParams:
    """Market order price protection parameters."""
    default_slippage_bps: float = 50.0                # Tolerance when the user has none
    warn_price_impact: float = 0.01                   # 1% impact escalates to WARNING
    reject_price_impact: float = 0.05                 # 5% impact escalates to REJECT
    thin_book_levels: int = 2                         # Levels touched at or below this warn
    depth_reject_pct: float = 50.0                    # Order size advisory thresholds
    depth_large_pct: float = 25.0
    depth_moderate_pct: float = 10.0


@dataclass(frozen=True)
class TransportParams:
    """REST transport parameters."""
    base_url: str = "https://fapi.asterdex.com"
    timeout_seconds: float = 30.0
    user_agent: str = "execguard/0.1"
    order_book_limit: int = 100


@dataclass(frozen=True)
class EngineConfig:
    """Complete engine configuration."""
    signing: SigningParams
    rate_limit: RateLimitParams
    stream: StreamParams
    protection: ProtectionParams
    transport: TransportParams


def get_default_config() -> EngineConfig:
    """Get the default configuration instance."""
    return EngineConfig(
        signing=SigningParams(),
        rate_limit=RateLimitParams(),
        stream=StreamParams(),
        protection=ProtectionParams(),
        transport=TransportParams(),
    )
