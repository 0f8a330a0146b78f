"""Configuration loading utilities.

Supports YAML and JSON configuration files with schema validation.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml

from container_stats.core.schemas import PollerConfig


def load_config(path: Path | str) -> PollerConfig:
    """Load and validate a poller configuration file.

    Args:
        path: Path to YAML or JSON configuration file

    Returns:
        Validated PollerConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported
        pydantic.ValidationError: If config is invalid
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")

    suffix = path.suffix.lower()
    with open(path, encoding="utf-8") as f:
        if suffix in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif suffix == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config format: {suffix}. Use .yaml, .yml, or .json")

    return PollerConfig.model_validate(data or {})


def apply_overrides(config: PollerConfig, **overrides: Any) -> PollerConfig:
    """Return a copy of ``config`` with every non-None override applied.

    The result is re-validated so CLI values go through the same checks as
    file values.
    """
    updates = {key: value for key, value in overrides.items() if value is not None}
    if not updates:
        return config
    data = config.model_dump()
    data.update(updates)
    return PollerConfig.model_validate(data)
