"""
Streaming session error classifications.
"""

from typing import Optional

from .base import ExecutionError


class StreamDisconnectedError(ExecutionError):
    """The streaming session is not connected."""

    recoverable = True

    def __init__(self, message: str, state: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.state = state


class MaxReconnectExceededError(ExecutionError):
    """Reconnect budget exhausted; needs a new session or operator action."""

    def __init__(self, message: str, attempts: int = 0, **kwargs):
        super().__init__(message, **kwargs)
        self.attempts = attempts
