"""Configuration loader with 3-tier parameter precedence."""

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional

import yaml

from .defaults import (
    EngineConfig,
    ProtectionParams,
    RateLimitParams,
    SigningParams,
    StreamParams,
    TransportParams,
    get_default_config,
)
from .validation import ConfigValidator

_SECTIONS = {
    "signing": SigningParams,
    "rate_limit": RateLimitParams,
    "stream": StreamParams,
    "protection": ProtectionParams,
    "transport": TransportParams,
}


@dataclass(frozen=True)
class ConfigLoader:
    """Manages configuration loading with 3-tier precedence."""

    config_dir: Path
    defaults: EngineConfig

    @classmethod
    def create(cls, config_dir: Optional[Path] = None) -> "ConfigLoader":
        """Create a ConfigLoader instance."""
        if config_dir is None:
            config_dir = Path(__file__).parent.parent.parent / "config"

        return cls(
            config_dir=Path(config_dir),
            defaults=get_default_config(),
        )

    def load_file_config(self) -> dict[str, Any]:
        """Load overrides from exchange.yaml in the config directory."""
        config_file = self.config_dir / "exchange.yaml"

        if not config_file.exists():
            return {}

        with open(config_file) as f:
            file_config = yaml.safe_load(f)

        return file_config or {}

    def merge_config(self, overrides: Optional[dict[str, Any]] = None) -> dict[str, Any]:
        """
        Merge configuration with 3-tier precedence.

        Priority order:
        1. Runtime overrides (highest priority)
        2. exchange.yaml overrides
        3. Global defaults (lowest priority)
        """
        config = self._dataclass_to_dict(self.defaults)

        config = self._deep_merge(config, self.load_file_config())

        if overrides:
            config = self._deep_merge(config, overrides)

        return config

    def load_config(self, overrides: Optional[dict[str, Any]] = None) -> EngineConfig:
        """
        Build a validated EngineConfig from the merged configuration.

        Raises:
            ValueError: If any merged parameter fails validation
        """
        merged = self.merge_config(overrides)

        issues = ConfigValidator.validate_config(merged)
        if issues:
            details = "; ".join(f"{i.field}: {i.message} (got: {i.value!r})" for i in issues)
            raise ValueError(f"Invalid configuration: {details}")

        sections = {}
        for name, params_cls in _SECTIONS.items():
            known = {f.name for f in fields(params_cls)}
            values = {k: v for k, v in merged.get(name, {}).items() if k in known}
            sections[name] = params_cls(**values)

        return EngineConfig(**sections)

    def _dataclass_to_dict(self, obj: Any) -> dict[str, Any]:
        """Convert nested dataclasses to dictionary."""
        if hasattr(obj, '__dataclass_fields__'):
            result = {}
            for field_name in obj.__dataclass_fields__:
                value = getattr(obj, field_name)
                if hasattr(value, '__dataclass_fields__'):
                    result[field_name] = self._dataclass_to_dict(value)
                elif isinstance(value, dict):
                    result[field_name] = dict(value)
                else:
                    result[field_name] = value
            return result
        return obj  # type: ignore[no-any-return]

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result
