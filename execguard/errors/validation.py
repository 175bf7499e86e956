"""
Order validation error classifications.

These exceptions describe orders that must not reach the exchange: filter
bound violations, missing symbol metadata and books that cannot fill the
requested size. None of them is retried; they fail closed.
"""

from typing import Optional

from .base import ExecutionError


class ValidationError(ExecutionError):
    """Order parameters violate an exchange trading filter."""

    def __init__(self, message: str, filter_type: Optional[str] = None,
                 value: Optional[str] = None, limit: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.filter_type = filter_type
        self.value = value
        self.limit = limit


class MissingFiltersError(ValidationError):
    """No trading filters are loaded for the requested symbol."""

    def __init__(self, message: str, symbol: Optional[str] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.symbol = symbol


class InsufficientLiquidityError(ExecutionError):
    """The visible order book cannot fill the requested quantity."""

    def __init__(self, message: str, requested: Optional[float] = None,
                 available: Optional[float] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.requested = requested
        self.available = available
