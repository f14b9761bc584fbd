"""Persistence plumbing: declarative base, column types, engine and sessions."""

from stock_kernel.db.base import Base, TrackedBase, UTCDateTime, UUIDString
from stock_kernel.db.engine import (
    create_tables,
    get_engine,
    get_session,
    init_engine_from_url,
    session_scope,
)
from stock_kernel.db.types import ZERO, money_from_value, round_money

__all__ = [
    "Base",
    "TrackedBase",
    "UTCDateTime",
    "UUIDString",
    "ZERO",
    "create_tables",
    "get_engine",
    "get_session",
    "init_engine_from_url",
    "money_from_value",
    "round_money",
    "session_scope",
]
