"""
REST transport for the futures API.
"""

from .rest import ExchangeRestClient

__all__ = ["ExchangeRestClient"]
