"""
Request signing, clock synchronization and rate limit handling.
"""

from .clock import ClockSync
from .ids import create_client_order_id
from .ratelimit import (
    RateLimitGovernor,
    RateLimitInfo,
    apply_jitter,
    calculate_backoff_delay,
    extract_rate_limit_info,
    should_backoff,
)
from .signer import (
    RecvWindowPlacement,
    RequestSigner,
    SignedRequest,
    build_query_string,
    create_signature,
)

__all__ = [
    "ClockSync",
    "create_client_order_id",
    "RateLimitGovernor",
    "RateLimitInfo",
    "apply_jitter",
    "calculate_backoff_delay",
    "extract_rate_limit_info",
    "should_backoff",
    "RecvWindowPlacement",
    "RequestSigner",
    "SignedRequest",
    "build_query_string",
    "create_signature",
]
