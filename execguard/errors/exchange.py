"""
REST transport error classifications.

HTTP failures are mapped onto these exceptions by the transport. Rate limits,
network failures and server-side errors are recoverable; credential failures
and client errors need intervention.
"""

from typing import Optional

from .base import ExecutionError


class NetworkError(ExecutionError):
    """No response was received from the exchange."""

    recoverable = True

    def __init__(self, message: str, method: Optional[str] = None,
                 path: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.method = method
        self.path = path


class ExchangeError(ExecutionError):
    """The exchange answered with an error status."""

    def __init__(self, message: str, status: Optional[int] = None,
                 code: Optional[int] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.status = status
        self.code = code
        self.recoverable = status is not None and status >= 500


class RateLimitedError(ExchangeError):
    """Request weight or order rate limit exceeded (HTTP 429/418)."""

    def __init__(self, message: str, retry_after_ms: Optional[int] = None,
                 attempts: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.retry_after_ms = retry_after_ms
        self.attempts = attempts
        # 418 means the IP is banned; waiting out Retry-After is not enough
        self.recoverable = self.status != 418


class AuthError(ExchangeError):
    """API key rejected or lacks permission (HTTP 401/403)."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, **kwargs)
        self.recoverable = False
