"""
commodity_config -- single public entrypoint for kernel configuration.

``get_active_config()`` is the only way runtime code obtains settings.
It reads a YAML settings file (``sets/default.yaml`` unless a path is
given) and applies the one supported environment override,
``COMMODITY_DATABASE_URL``.  No other module reads environment variables.

The kernel never imports this package; ``commodity_config.bridges``
turns settings into kernel objects.
"""

from __future__ import annotations

import logging
import os
from dataclasses import replace
from pathlib import Path

from commodity_config.loader import load_settings
from commodity_config.schema import (
    CodeSettings,
    DatabaseSettings,
    KernelSettings,
    LedgerSettings,
    TransferSettings,
)

_logger = logging.getLogger("commodity_kernel.config")

DATABASE_URL_ENV = "COMMODITY_DATABASE_URL"
DEFAULT_CONFIG_PATH = Path(__file__).parent / "sets" / "default.yaml"


def get_active_config(path: Path | str | None = None) -> KernelSettings:
    """
    Load and validate the kernel settings.

    Raises:
        FileNotFoundError: ``path`` does not exist.
        ValueError: unknown keys or invalid values.
    """
    config_path = Path(path) if path is not None else DEFAULT_CONFIG_PATH
    settings = load_settings(config_path)

    env_url = os.environ.get(DATABASE_URL_ENV)
    if env_url:
        settings = replace(settings, database=replace(settings.database, url=env_url))

    _logger.info(
        "COMMODITY_CONFIG_TRACE",
        extra={
            "config_path": str(config_path),
            "database_url_from_env": bool(env_url),
            "delta_policy": settings.ledger.delta_policy,
            "default_status": settings.transfers.default_status,
        },
    )
    return settings


__all__ = [
    "CodeSettings",
    "DatabaseSettings",
    "KernelSettings",
    "LedgerSettings",
    "TransferSettings",
    "get_active_config",
]
