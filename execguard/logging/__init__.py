"""
Logging configuration and utilities for the execution-safety engine.
"""
from .config import (
    configure_logging,
    get_guard_logger,
    get_logger,
    get_stream_logger,
    log_state_transition,
    log_verdict,
    redact_secrets,
)

__all__ = [
    "configure_logging",
    "get_guard_logger",
    "get_logger",
    "get_stream_logger",
    "log_state_transition",
    "log_verdict",
    "redact_secrets",
]
