"""
stock_config -- single public entrypoint for stock kernel configuration.

Responsibility:
    ``get_active_config()`` is the only way runtime code obtains settings
    (database URL, pool sizing, negative stock policy, log level).  No other
    component reads configuration files or ``STOCK_*`` environment
    variables directly.

Architecture position:
    Configuration sits beside ``stock_kernel`` and below ``stock_services``.
    The kernel MUST NEVER import from ``stock_config``; the service layer
    passes the relevant values into kernel constructors.

Audit relevance:
    Every call emits a ``STOCK_CONFIG_TRACE`` log entry carrying the source
    file, the checksum of the effective settings and the negative stock
    policy in force.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from stock_config.loader import load_config
from stock_config.schema import DatabaseConfig, LoggingConfig, PolicyConfig, StockConfig

_logger = logging.getLogger("stock_kernel.config")


def get_active_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> StockConfig:
    """The ONLY public configuration entrypoint.

    Args:
        config_path: Optional YAML file merged over the packaged defaults.
        environ: Environment to read ``STOCK_*`` overrides from.  Defaults
            to ``os.environ``.

    Raises:
        FileNotFoundError: ``config_path`` does not exist.
        ValueError: an unknown policy or log level.
    """
    config = load_config(
        Path(config_path) if config_path is not None else None,
        environ if environ is not None else os.environ,
    )

    _logger.info(
        "STOCK_CONFIG_TRACE",
        extra={
            "trace_type": "STOCK_CONFIG_TRACE",
            "source": config.source,
            "checksum": config.checksum,
            "negative_stock_policy": config.policy.negative_stock_policy,
            "log_level": config.logging.level,
        },
    )
    return config


__all__ = [
    "DatabaseConfig",
    "LoggingConfig",
    "PolicyConfig",
    "StockConfig",
    "get_active_config",
]
