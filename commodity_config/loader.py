"""
Configuration Loader (``commodity_config.loader``).

Loads a YAML settings file and parses it into the frozen dataclasses of
``commodity_config.schema``.  Callers go through
``commodity_config.get_active_config()``.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Unknown keys or invalid values  -> ``ValueError``.
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any

import yaml

from commodity_config.schema import (
    CodeSettings,
    DatabaseSettings,
    KernelSettings,
    LedgerSettings,
    TransferSettings,
)

_SECTIONS = {
    "database": DatabaseSettings,
    "codes": CodeSettings,
    "ledger": LedgerSettings,
    "transfers": TransferSettings,
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
        ValueError: if the top level is not a mapping.
    """
    with open(path) as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping, got {type(data).__name__}")
    return data


def _parse_section(name: str, raw: Any) -> Any:
    cls = _SECTIONS[name]
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ValueError(f"Section '{name}' must be a mapping")
    known = {f.name for f in fields(cls)}
    unknown = set(raw) - known
    if unknown:
        raise ValueError(f"Unknown keys in section '{name}': {sorted(unknown)}")
    return cls(**raw)


def parse_settings(data: dict[str, Any]) -> KernelSettings:
    unknown = set(data) - set(_SECTIONS)
    if unknown:
        raise ValueError(f"Unknown configuration sections: {sorted(unknown)}")
    return KernelSettings(
        **{name: _parse_section(name, data.get(name)) for name in _SECTIONS}
    )


def load_settings(path: Path) -> KernelSettings:
    return parse_settings(load_yaml_file(path))
