"""
Base error classification shared by every execution-safety failure.

Each exception carries a free-form context dictionary and a recoverable flag
so the owning layer can decide between retrying, degrading and surfacing the
failure to the user or operator.
"""

from typing import Optional, Dict, Any


class ExecutionError(Exception):
    """Base class for all errors raised by the execution-safety engine."""

    recoverable = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
