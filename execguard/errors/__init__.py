"""
Error classification system for the execution-safety engine.

This module provides a structured exception hierarchy for order validation,
REST transport and streaming failures.
"""

from .base import ExecutionError
from .validation import (
    ValidationError,
    MissingFiltersError,
    InsufficientLiquidityError,
)
from .exchange import (
    NetworkError,
    ExchangeError,
    RateLimitedError,
    AuthError,
)
from .stream import (
    StreamDisconnectedError,
    MaxReconnectExceededError,
)

__all__ = [
    "ExecutionError",
    # Validation
    "ValidationError",
    "MissingFiltersError",
    "InsufficientLiquidityError",
    # Transport
    "NetworkError",
    "ExchangeError",
    "RateLimitedError",
    "AuthError",
    # Stream
    "StreamDisconnectedError",
    "MaxReconnectExceededError",
]
