"""
Configuration schema (``stock_config.schema``).

Frozen dataclasses describing the effective runtime settings of the stock
kernel.  Built by ``stock_config.loader`` from YAML plus environment
overrides; never constructed from ad-hoc dicts elsewhere.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

NEGATIVE_STOCK_POLICIES = ("allow", "reject")
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass(frozen=True)
class DatabaseConfig:
    """Connection settings passed to ``init_engine_from_url``."""

    url: str
    echo: bool = False
    pool_size: int = 20
    max_overflow: int = 10
    pool_timeout: int = 30
    pool_recycle: int = 1800


@dataclass(frozen=True)
class PolicyConfig:
    # allow: movements may drive a record below zero
    # reject: such a movement fails with INSUFFICIENT_STOCK and rolls back
    negative_stock_policy: str = "allow"


@dataclass(frozen=True)
class LoggingConfig:
    level: str = "INFO"


@dataclass(frozen=True)
class StockConfig:
    """Effective configuration; ``checksum`` identifies the settings, not the file."""

    database: DatabaseConfig
    policy: PolicyConfig = field(default_factory=PolicyConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    source: str | None = None
    checksum: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Settings as plain data, without the derived checksum and source."""
        return {
            "database": asdict(self.database),
            "policy": asdict(self.policy),
            "logging": asdict(self.logging),
        }
