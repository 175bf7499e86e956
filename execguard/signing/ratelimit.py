"""
Rate limit header interpretation and retry timing.

The exchange reports consumed request weight and order counts on every REST
response. Usage close to the published limits, or any Retry-After header,
means the caller should slow down before the exchange starts answering 429.
"""

import random
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from ..config.defaults import RateLimitParams

logger = structlog.get_logger(__name__)

USED_WEIGHT_1M_HEADER = "x-mbx-used-weight-1m"
ORDER_COUNT_10S_HEADER = "x-mbx-order-count-10s"
ORDER_COUNT_1M_HEADER = "x-mbx-order-count-1m"
RETRY_AFTER_HEADER = "retry-after"


@dataclass(frozen=True)
class RateLimitInfo:
    """Rate limit usage reported by one response."""
    used_weight_1m: Optional[int] = None
    order_count_10s: Optional[int] = None
    order_count_1m: Optional[int] = None
    retry_after_ms: Optional[int] = None


def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def extract_rate_limit_info(headers: Mapping[str, str]) -> RateLimitInfo:
    """
    Parse rate limit headers, matching header names case-insensitively.

    Args:
        headers: Response headers

    Returns:
        RateLimitInfo; unparseable or absent headers are None
    """
    lowered = {str(name).lower(): value for name, value in headers.items()}

    retry_after_s = _parse_int(lowered.get(RETRY_AFTER_HEADER))

    return RateLimitInfo(
        used_weight_1m=_parse_int(lowered.get(USED_WEIGHT_1M_HEADER)),
        order_count_10s=_parse_int(lowered.get(ORDER_COUNT_10S_HEADER)),
        order_count_1m=_parse_int(lowered.get(ORDER_COUNT_1M_HEADER)),
        retry_after_ms=retry_after_s * 1000 if retry_after_s is not None else None,
    )


def should_backoff(info: RateLimitInfo, params: Optional[RateLimitParams] = None) -> bool:
    """
    Decide whether the caller should slow down.

    Args:
        info: Parsed rate limit usage
        params: Limits and threshold, defaults to RateLimitParams()

    Returns:
        True when a Retry-After is present or any usage counter is at or
        above backoff_threshold of its limit
    """
    params = params or RateLimitParams()

    if info.retry_after_ms is not None:
        return True

    usage = (
        (info.used_weight_1m, params.weight_limit_1m),
        (info.order_count_10s, params.order_limit_10s),
        (info.order_count_1m, params.order_limit_1m),
    )
    for used, limit in usage:
        if used is not None and used >= params.backoff_threshold * limit:
            return True
    return False


def calculate_backoff_delay(attempt: int, base_ms: int = 1000, max_ms: int = 60000) -> int:
    """
    Exponential backoff delay: base * 2^(attempt-1), capped at max_ms.

    Args:
        attempt: 1-based attempt number
        base_ms: Delay for the first attempt
        max_ms: Upper bound on the delay

    Returns:
        Delay in milliseconds
    """
    if attempt < 1:
        attempt = 1
    # Avoid building huge integers for large attempt counts
    exponent = min(attempt - 1, 62)
    return min(base_ms * (2 ** exponent), max_ms)


def apply_jitter(
    delay_ms: float,
    ratio: float = 0.1,
    rng: Optional[Callable[[], float]] = None,
) -> int:
    """
    Add a random extra of up to ratio * delay to a delay.

    Jitter is only ever added, so a jittered delay is never shorter than
    the deterministic one.
    """
    rng = rng or random.random
    return int(delay_ms + delay_ms * ratio * rng())


class RateLimitGovernor:
    """Observes transport responses and drives 429 retry timing."""

    def __init__(self, params: Optional[RateLimitParams] = None) -> None:
        self.params = params or RateLimitParams()
        self.last_info: Optional[RateLimitInfo] = None

    def observe(self, headers: Mapping[str, str]) -> RateLimitInfo:
        """Record usage from a response and warn when close to a limit."""
        info = extract_rate_limit_info(headers)
        self.last_info = info

        if should_backoff(info, self.params):
            logger.warning(
                "Rate limit warning",
                used_weight_1m=info.used_weight_1m,
                order_count_10s=info.order_count_10s,
                order_count_1m=info.order_count_1m,
                retry_after_ms=info.retry_after_ms,
            )
        return info

    def retry_delay_ms(self, info: RateLimitInfo) -> int:
        """Sleep before retrying a 429: max(Retry-After, min_retry_delay_ms)."""
        retry_after = info.retry_after_ms if info.retry_after_ms is not None else 0
        return max(retry_after, self.params.min_retry_delay_ms)

    def should_retry(self, retries_done: int) -> bool:
        """True while fewer than max_retries retries have been made."""
        return retries_done < self.params.max_retries
