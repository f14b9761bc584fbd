"""
Configuration Loader (``stock_config.loader``).

Responsibility
--------------
Reads the packaged ``defaults.yaml``, merges an optional override file and
the ``STOCK_*`` environment variables on top, validates the result and
returns a frozen ``StockConfig``.  The single public entry point for
runtime config is ``stock_config.get_active_config()``.

Invariants enforced
-------------------
* Every parsed object is a frozen dataclass from ``schema.py``.
* Unknown policy or log level values raise ``ValueError``; there are no
  silent fallbacks.
* ``compute_checksum`` is a deterministic SHA-256 over the effective
  settings.

Failure modes
-------------
* Missing override file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing ``database.url``  -> ``KeyError`` propagates.
"""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml

from stock_config.schema import (
    LOG_LEVELS,
    NEGATIVE_STOCK_POLICIES,
    DatabaseConfig,
    LoggingConfig,
    PolicyConfig,
    StockConfig,
)

DEFAULTS_FILE = Path(__file__).parent / "defaults.yaml"

# environment variable -> (section, key)
ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "STOCK_DATABASE_URL": ("database", "url"),
    "STOCK_LOG_LEVEL": ("logging", "level"),
    "STOCK_NEGATIVE_STOCK_POLICY": ("policy", "negative_stock_policy"),
}


def load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; an empty file yields an empty dict."""
    with open(path) as f:
        return yaml.safe_load(f) or {}


def merge_settings(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Section-wise merge: keys in ``override`` replace keys in ``base``."""
    merged = {section: dict(values or {}) for section, values in base.items()}
    for section, values in override.items():
        if not isinstance(values, Mapping):
            raise ValueError(f"Configuration section {section!r} must be a mapping")
        merged.setdefault(section, {}).update(values)
    return merged


def apply_environment(
    settings: dict[str, Any], environ: Mapping[str, str],
) -> dict[str, Any]:
    result = {section: dict(values) for section, values in settings.items()}
    for variable, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(variable)
        if value:
            result.setdefault(section, {})[key] = value
    return result


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def parse_settings(data: Mapping[str, Any], source: str | None = None) -> StockConfig:
    """
    Build a validated ``StockConfig`` from merged settings.

    Raises:
        KeyError: ``database.url`` is missing.
        ValueError: unknown negative stock policy or log level.
    """
    database = data.get("database", {})
    policy = data.get("policy", {})
    logging_ = data.get("logging", {})

    negative_stock_policy = str(policy.get("negative_stock_policy", "allow")).lower()
    if negative_stock_policy not in NEGATIVE_STOCK_POLICIES:
        raise ValueError(
            f"Unknown negative_stock_policy {negative_stock_policy!r}; "
            f"expected one of {', '.join(NEGATIVE_STOCK_POLICIES)}"
        )
    level = str(logging_.get("level", "INFO")).upper()
    if level not in LOG_LEVELS:
        raise ValueError(
            f"Unknown log level {level!r}; expected one of {', '.join(LOG_LEVELS)}"
        )

    config = StockConfig(
        database=DatabaseConfig(
            url=str(database["url"]),
            echo=_parse_bool(database.get("echo", False)),
            pool_size=int(database.get("pool_size", 20)),
            max_overflow=int(database.get("max_overflow", 10)),
            pool_timeout=int(database.get("pool_timeout", 30)),
            pool_recycle=int(database.get("pool_recycle", 1800)),
        ),
        policy=PolicyConfig(negative_stock_policy=negative_stock_policy),
        logging=LoggingConfig(level=level),
        source=source,
    )
    return StockConfig(
        database=config.database,
        policy=config.policy,
        logging=config.logging,
        source=source,
        checksum=compute_checksum(config.to_dict()),
    )


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> StockConfig:
    """Defaults, then the override file, then the environment."""
    settings = load_yaml_file(DEFAULTS_FILE)
    source = str(DEFAULTS_FILE)
    if config_path is not None:
        settings = merge_settings(settings, load_yaml_file(Path(config_path)))
        source = str(config_path)
    if environ is not None:
        settings = apply_environment(settings, environ)
    return parse_settings(settings, source=source)


def compute_checksum(data: dict[str, Any]) -> str:
    """SHA-256 of the canonical JSON serialization of ``data``."""
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
