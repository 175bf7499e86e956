#!/usr/bin/env python3
"""Check an exchange.yaml against the engine's configuration rules."""

import sys
from pathlib import Path

import yaml

from execguard.config.loader import ConfigLoader
from execguard.config.validation import ConfigValidator


def main() -> int:
    config_dir = Path(sys.argv[1]) if len(sys.argv) > 1 else None
    loader = ConfigLoader.create(config_dir)
    config_file = loader.config_dir / "exchange.yaml"

    print(f"Validating {config_file}...")
    if not config_file.exists():
        print("No exchange.yaml found, defaults only")

    try:
        merged = loader.merge_config()
    except yaml.YAMLError as e:
        print(f"Could not parse {config_file}: {e}")
        return 1

    issues = ConfigValidator.validate_config(merged)
    if issues:
        print(f"Found {len(issues)} configuration issue(s):")
        for issue in issues:
            print(f"  - {issue.field}: {issue.message} (value: {issue.value!r})")
        return 1

    signing = merged["signing"]
    stream = merged["stream"]
    print(f"REST base:        {merged['transport']['base_url']}")
    print(f"Stream:           {stream.get('ws_base_url') or '(derived)'}{stream['ws_path_prefix']}/<listenKey>")
    print(f"recvWindow:       {signing['recv_window_ms']} ms, {signing['default_recv_window_placement']}")
    for endpoint, placement in sorted(signing["endpoint_placements"].items()):
        print(f"  {endpoint}: {placement}")
    print("Configuration is valid")
    return 0


if __name__ == "__main__":
    sys.exit(main())
