"""Configuration validation utilities."""

from dataclasses import dataclass
from typing import Any

RECV_WINDOW_PLACEMENTS = ("before_timestamp", "after_timestamp", "omit")


@dataclass(frozen=True)
class ConfigIssue:
    """Represents a configuration validation error."""
    field: str
    message: str
    value: Any


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _positive_int(params: dict[str, Any], name: str, errors: list[ConfigIssue]) -> None:
    if name in params:
        value = params[name]
        if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
            errors.append(ConfigIssue(
                field=name,
                message="Must be a positive integer",
                value=value
            ))


def _positive_number(params: dict[str, Any], name: str, errors: list[ConfigIssue]) -> None:
    if name in params:
        value = params[name]
        if not _is_number(value) or value <= 0:
            errors.append(ConfigIssue(
                field=name,
                message="Must be a positive number",
                value=value
            ))


def _fraction(params: dict[str, Any], name: str, errors: list[ConfigIssue]) -> None:
    if name in params:
        value = params[name]
        if not _is_number(value) or value < 0 or value > 1:
            errors.append(ConfigIssue(
                field=name,
                message="Must be a number between 0 and 1",
                value=value
            ))


class ConfigValidator:
    """Validates configuration parameters."""

    @staticmethod
    def validate_signing_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate signing parameters."""
        errors: list[ConfigIssue] = []

        _positive_int(params, "recv_window_ms", errors)
        _positive_int(params, "timestamp_tolerance_ms", errors)
        _positive_int(params, "max_clock_drift_ms", errors)

        # The exchange rejects recvWindow above 60 seconds
        if "recv_window_ms" in params:
            value = params["recv_window_ms"]
            if isinstance(value, int) and value > 60000:
                errors.append(ConfigIssue(
                    field="recv_window_ms",
                    message="Must not exceed 60000",
                    value=value
                ))

        if "default_recv_window_placement" in params:
            value = params["default_recv_window_placement"]
            if value not in RECV_WINDOW_PLACEMENTS:
                errors.append(ConfigIssue(
                    field="default_recv_window_placement",
                    message=f"Must be one of {', '.join(RECV_WINDOW_PLACEMENTS)}",
                    value=value
                ))

        if "endpoint_placements" in params:
            value = params["endpoint_placements"]
            if not isinstance(value, dict):
                errors.append(ConfigIssue(
                    field="endpoint_placements",
                    message="Must be a mapping of endpoint to placement",
                    value=value
                ))
            else:
                for endpoint, placement in value.items():
                    if placement not in RECV_WINDOW_PLACEMENTS:
                        errors.append(ConfigIssue(
                            field=f"endpoint_placements.{endpoint}",
                            message=f"Must be one of {', '.join(RECV_WINDOW_PLACEMENTS)}",
                            value=placement
                        ))

        if "client_order_id_prefix" in params:
            value = params["client_order_id_prefix"]
            if not isinstance(value, str) or not value:
                errors.append(ConfigIssue(
                    field="client_order_id_prefix",
                    message="Must be a non-empty string",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_rate_limit_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate rate limit parameters."""
        errors: list[ConfigIssue] = []

        # Zero retries is allowed: fail on the first 429
        if "max_retries" in params:
            value = params["max_retries"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ConfigIssue(
                    field="max_retries",
                    message="Must be a non-negative integer",
                    value=value
                ))

        _positive_int(params, "min_retry_delay_ms", errors)
        _positive_int(params, "weight_limit_1m", errors)
        _positive_int(params, "order_limit_10s", errors)
        _positive_int(params, "order_limit_1m", errors)
        _fraction(params, "backoff_threshold", errors)

        return errors

    @staticmethod
    def validate_stream_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate stream parameters."""
        errors: list[ConfigIssue] = []

        _positive_number(params, "keepalive_interval_s", errors)
        _positive_int(params, "max_reconnect_attempts", errors)
        _positive_int(params, "reconnect_base_delay_ms", errors)
        _positive_int(params, "reconnect_max_delay_ms", errors)
        _fraction(params, "reconnect_jitter_ratio", errors)

        base = params.get("reconnect_base_delay_ms")
        cap = params.get("reconnect_max_delay_ms")
        if isinstance(base, int) and isinstance(cap, int) and cap < base:
            errors.append(ConfigIssue(
                field="reconnect_max_delay_ms",
                message="Must be greater than or equal to reconnect_base_delay_ms",
                value=cap
            ))

        if "ws_base_url" in params:
            value = params["ws_base_url"]
            if not isinstance(value, str) or not value.startswith(("ws://", "wss://")):
                errors.append(ConfigIssue(
                    field="ws_base_url",
                    message="Must be a ws:// or wss:// URL",
                    value=value
                ))

        if "ws_path_prefix" in params:
            value = params["ws_path_prefix"]
            if not isinstance(value, str) or not value.startswith("/"):
                errors.append(ConfigIssue(
                    field="ws_path_prefix",
                    message="Must be a path starting with /",
                    value=value
                ))

        return errors

    @staticmethod
    def validate_protection_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate price protection parameters."""
        errors: list[ConfigIssue] = []

        if "default_slippage_bps" in params:
            value = params["default_slippage_bps"]
            if not _is_number(value) or value < 0:
                errors.append(ConfigIssue(
                    field="default_slippage_bps",
                    message="Must be a non-negative number",
                    value=value
                ))

        _fraction(params, "warn_price_impact", errors)
        _fraction(params, "reject_price_impact", errors)

        warn = params.get("warn_price_impact")
        reject = params.get("reject_price_impact")
        if _is_number(warn) and _is_number(reject) and reject < warn:
            errors.append(ConfigIssue(
                field="reject_price_impact",
                message="Must be greater than or equal to warn_price_impact",
                value=reject
            ))

        if "thin_book_levels" in params:
            value = params["thin_book_levels"]
            if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                errors.append(ConfigIssue(
                    field="thin_book_levels",
                    message="Must be a non-negative integer",
                    value=value
                ))

        for name in ("depth_reject_pct", "depth_large_pct", "depth_moderate_pct"):
            if name in params:
                value = params[name]
                if not _is_number(value) or value <= 0 or value > 100:
                    errors.append(ConfigIssue(
                        field=name,
                        message="Must be a percentage between 0 and 100",
                        value=value
                    ))

        return errors

    @staticmethod
    def validate_transport_params(params: dict[str, Any]) -> list[ConfigIssue]:
        """Validate REST transport parameters."""
        errors: list[ConfigIssue] = []

        if "base_url" in params:
            value = params["base_url"]
            if not isinstance(value, str) or not value.startswith(("http://", "https://")):
                errors.append(ConfigIssue(
                    field="base_url",
                    message="Must be an http:// or https:// URL",
                    value=value
                ))

        _positive_number(params, "timeout_seconds", errors)
        _positive_int(params, "order_book_limit", errors)

        return errors

    @staticmethod
    def validate_config(config: dict[str, Any]) -> list[ConfigIssue]:
        """Validate complete configuration."""
        errors = []

        if "signing" in config:
            errors.extend(ConfigValidator.validate_signing_params(config["signing"]))

        if "rate_limit" in config:
            errors.extend(ConfigValidator.validate_rate_limit_params(config["rate_limit"]))

        if "stream" in config:
            errors.extend(ConfigValidator.validate_stream_params(config["stream"]))

        if "protection" in config:
            errors.extend(ConfigValidator.validate_protection_params(config["protection"]))

        if "transport" in config:
            errors.extend(ConfigValidator.validate_transport_params(config["transport"]))

        return errors
