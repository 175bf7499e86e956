"""
Centralized logging configuration for the execution-safety engine.

All modules log through structlog with key-value context. Credentials never
reach a log line: the redaction processor masks secret-bearing keys before
any renderer sees the event.
"""
import logging
import sys
from typing import Any, Optional

import structlog
from structlog.types import EventDict, FilteringBoundLogger, WrappedLogger

REDACTED = "***"

# Lower-cased event keys whose values are masked
SENSITIVE_KEYS = frozenset({
    "api_key",
    "api_secret",
    "secret",
    "signature",
    "listen_key",
    "x-mbx-apikey",
})


def redact_secrets(logger: WrappedLogger, method_name: str, event_dict: EventDict) -> EventDict:
    """Mask credential values, including inside a nested headers mapping."""
    for key in list(event_dict):
        if str(key).lower() in SENSITIVE_KEYS:
            event_dict[key] = REDACTED
    headers = event_dict.get("headers")
    if isinstance(headers, dict):
        event_dict["headers"] = {
            name: REDACTED if str(name).lower() in SENSITIVE_KEYS else value
            for name, value in headers.items()
        }
    return event_dict


def configure_logging(
    level: str = "INFO",
    format_json: bool = False,
    include_timestamp: bool = True,
    include_caller: bool = False,
    extra_processors: Optional[list] = None
) -> None:
    """
    Configure structlog for the engine.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format_json: JSON lines for log shipping; otherwise console output
        include_timestamp: Add an ISO timestamp to every event
        include_caller: Add filename and line number
        extra_processors: Additional processors, run after redaction
    """
    log_level = getattr(logging, level.upper())

    # structlog renders; stdlib only routes to stdout
    logging.basicConfig(
        level=log_level,
        stream=sys.stdout,
        format="%(message)s"
    )

    processors = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        redact_secrets,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.append(structlog.processors.TimeStamper(fmt="iso", utc=True))

    if include_caller:
        processors.append(structlog.processors.CallsiteParameterAdder(
            parameters=[structlog.processors.CallsiteParameter.FILENAME,
                        structlog.processors.CallsiteParameter.LINENO]
        ))

    if extra_processors:
        processors.extend(extra_processors)

    # Renderer must be last
    if format_json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> FilteringBoundLogger:
    """
    Get a configured structlog logger instance.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger instance
    """
    return structlog.get_logger(name)


def get_guard_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for price protection decisions.

    Every verdict logged through it is tagged as part of the audit trail so
    rejected and confirmed market orders can be reconstructed afterwards.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for protection decisions
    """
    logger = get_logger(name)

    return logger.bind(
        subsystem="price_protection",
        audit_trail=True
    )


def get_stream_logger(name: str) -> FilteringBoundLogger:
    """
    Get a logger for streaming session lifecycle events.

    Args:
        name: Logger name (typically __name__)

    Returns:
        Configured structlog logger for stream connections
    """
    logger = get_logger(name)

    return logger.bind(subsystem="stream")


def log_verdict(
    logger: FilteringBoundLogger,
    symbol: str,
    side: str,
    quantity: float,
    recommendation: str,
    slippage_bps: float,
    warnings: Optional[list[str]] = None,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a price protection verdict with standardized format.

    Args:
        logger: Structlog logger instance
        symbol: Trading symbol being checked
        side: BUY or SELL
        quantity: Requested order quantity
        recommendation: EXECUTE, WARNING or REJECT
        slippage_bps: Simulated slippage in basis points
        warnings: Warning lines attached to the verdict
        context: Additional context data
    """
    bound_logger = logger.bind(
        symbol=symbol,
        side=side,
        quantity=quantity,
        recommendation=recommendation,
        slippage_bps=round(slippage_bps, 4),
    )

    if warnings:
        bound_logger = bound_logger.bind(warnings=warnings)
    if context:
        bound_logger = bound_logger.bind(context=context)

    if recommendation == "EXECUTE":
        bound_logger.info("Protection verdict")
    else:
        bound_logger.warning("Protection verdict")


def log_state_transition(
    logger: FilteringBoundLogger,
    connection_id: str,
    from_state: str,
    to_state: str,
    trigger: str,
    context: Optional[dict[str, Any]] = None
) -> None:
    """
    Log a stream connection state transition with standardized format.

    Args:
        logger: Structlog logger instance
        connection_id: Identifier of the connection transitioning
        from_state: Current state
        to_state: Target state
        trigger: What triggered the transition
        context: Additional context data
    """
    bound_logger = logger.bind(
        connection_id=connection_id,
        from_state=from_state,
        to_state=to_state,
        trigger=trigger,
    )

    if context:
        bound_logger = bound_logger.bind(context=context)

    bound_logger.info("State transition")
