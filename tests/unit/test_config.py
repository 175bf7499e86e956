"""Unit tests for configuration management."""

import pytest
from pathlib import Path

from execguard.config.defaults import get_default_config
from execguard.config.loader import ConfigLoader
from execguard.config.validation import ConfigValidator


class TestDefaultConfig:
    """Test suite for default configuration."""

    def test_default_config_creation(self) -> None:
        """Test that default configuration can be created."""
        config = get_default_config()
        assert config is not None
        assert config.signing.recv_window_ms == 5000
        assert config.signing.endpoint_placements == {"/fapi/v1/order": "before_timestamp"}
        assert config.rate_limit.max_retries == 5
        assert config.stream.ws_path_prefix == "/ws"
        assert config.protection.default_slippage_bps == 50.0
        assert config.transport.base_url == "https://fapi.asterdex.com"


class TestConfigLoader:
    """Test suite for configuration loader."""

    def test_config_loader_creation(self) -> None:
        """Test that ConfigLoader can be created."""
        loader = ConfigLoader.create()
        assert loader is not None
        assert isinstance(loader.config_dir, Path)

    def test_merge_config_defaults_only(self, tmp_path: Path) -> None:
        """Test config merging with defaults only."""
        loader = ConfigLoader.create(tmp_path)
        config = loader.merge_config()

        assert "signing" in config
        assert config["signing"]["recv_window_ms"] == 5000
        assert config["stream"]["max_reconnect_attempts"] == 10

    def test_merge_config_with_overrides(self, tmp_path: Path) -> None:
        """Test config merging with runtime overrides."""
        loader = ConfigLoader.create(tmp_path)
        overrides = {
            "protection": {
                "default_slippage_bps": 25.0,
            }
        }

        config = loader.merge_config(overrides)

        assert config["protection"]["default_slippage_bps"] == 25.0
        # Other defaults should remain
        assert config["protection"]["reject_price_impact"] == 0.05

    def test_file_config_precedence(self, tmp_path: Path) -> None:
        """exchange.yaml beats defaults; runtime overrides beat exchange.yaml."""
        (tmp_path / "exchange.yaml").write_text(
            "stream:\n"
            "  ws_path_prefix: /fapi/v1/ws\n"
            "  max_reconnect_attempts: 3\n"
            "transport:\n"
            "  base_url: https://testnet.example\n"
        )
        loader = ConfigLoader.create(tmp_path)

        config = loader.load_config({"stream": {"max_reconnect_attempts": 7}})

        assert config.stream.ws_path_prefix == "/fapi/v1/ws"
        assert config.stream.max_reconnect_attempts == 7
        assert config.transport.base_url == "https://testnet.example"
        assert config.stream.keepalive_interval_s == 30.0

    def test_endpoint_placements_merge(self, tmp_path: Path) -> None:
        loader = ConfigLoader.create(tmp_path)

        config = loader.load_config({"signing": {"endpoint_placements": {"/fapi/v1/leverage": "omit"}}})

        assert config.signing.endpoint_placements == {
            "/fapi/v1/order": "before_timestamp",
            "/fapi/v1/leverage": "omit",
        }

    def test_empty_file(self, tmp_path: Path) -> None:
        (tmp_path / "exchange.yaml").write_text("")
        assert ConfigLoader.create(tmp_path).load_file_config() == {}

    def test_unknown_keys_ignored(self, tmp_path: Path) -> None:
        config = ConfigLoader.create(tmp_path).load_config({"stream": {"colour": "blue"}})
        assert config.stream.max_reconnect_attempts == 10

    def test_invalid_config_raises(self, tmp_path: Path) -> None:
        loader = ConfigLoader.create(tmp_path)

        with pytest.raises(ValueError, match="recv_window_ms"):
            loader.load_config({"signing": {"recv_window_ms": 70000}})


class TestConfigValidator:
    """Test suite for configuration validator."""

    def test_valid_defaults(self, tmp_path: Path) -> None:
        merged = ConfigLoader.create(tmp_path).merge_config()
        assert ConfigValidator.validate_config(merged) == []

    def test_invalid_signing(self) -> None:
        errors = ConfigValidator.validate_signing_params({
            "recv_window_ms": 0,
            "default_recv_window_placement": "sideways",
            "endpoint_placements": {"/fapi/v1/order": "middle"},
            "client_order_id_prefix": "",
        })

        fields = {error.field for error in errors}
        assert fields == {
            "recv_window_ms",
            "default_recv_window_placement",
            "endpoint_placements./fapi/v1/order",
            "client_order_id_prefix",
        }

    def test_invalid_rate_limit(self) -> None:
        errors = ConfigValidator.validate_rate_limit_params({"max_retries": -1, "backoff_threshold": 1.5})
        assert {error.field for error in errors} == {"max_retries", "backoff_threshold"}

    def test_zero_retries_allowed(self) -> None:
        assert ConfigValidator.validate_rate_limit_params({"max_retries": 0}) == []

    def test_invalid_stream(self) -> None:
        errors = ConfigValidator.validate_stream_params({
            "ws_base_url": "https://fstream.asterdex.com",
            "ws_path_prefix": "ws",
            "reconnect_base_delay_ms": 5000,
            "reconnect_max_delay_ms": 1000,
        })

        assert {error.field for error in errors} == {"ws_base_url", "ws_path_prefix", "reconnect_max_delay_ms"}

    def test_invalid_protection(self) -> None:
        errors = ConfigValidator.validate_protection_params({
            "warn_price_impact": 0.1,
            "reject_price_impact": 0.05,
            "depth_reject_pct": 150,
        })

        assert {error.field for error in errors} == {"reject_price_impact", "depth_reject_pct"}

    def test_invalid_transport(self) -> None:
        errors = ConfigValidator.validate_transport_params({"base_url": "ftp://x", "timeout_seconds": 0})
        assert {error.field for error in errors} == {"base_url", "timeout_seconds"}
