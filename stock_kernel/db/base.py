"""
Declarative base and column types shared by every stock model.

Conventions:
    - Primary keys are uuid4 values stored as 36-character strings, so the
      same schema runs on PostgreSQL and SQLite.
    - ``Decimal`` columns are ``Numeric(38, 9)``; costs never touch float.
    - ``datetime`` columns always read back timezone-aware in UTC.
    - Model classes never import services or selectors.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, Numeric, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator


class UUIDString(TypeDecorator):
    """``uuid.UUID`` in Python, ``VARCHAR(36)`` in the database.

    Binds accept plain strings too, so ids can be passed on exactly as
    they arrive in a JSON payload.
    """

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        return None if value is None else str(value)

    def process_result_value(self, value, dialect):
        return None if value is None else UUID(value)


class UTCDateTime(TypeDecorator):
    """Aware timestamps converted to UTC on write; naive reads tagged as UTC."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None or value.tzinfo is None:
            return value
        return value.astimezone(timezone.utc)

    def process_result_value(self, value, dialect):
        if value is None or value.tzinfo is not None:
            return value
        # SQLite keeps no offset
        return value.replace(tzinfo=timezone.utc)


class Base(DeclarativeBase):

    type_annotation_map: ClassVar[dict] = {
        UUID: UUIDString(),
        Decimal: Numeric(38, 9),
        datetime: UTCDateTime(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)


class TrackedBase(Base):
    """
    Adds ``created_at`` / ``updated_at``.

    Services set both from their injected clock.  The server defaults only
    fill in rows written by hand.
    """

    __abstract__ = True

    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), server_default=func.now(), onupdate=func.now(), nullable=False,
    )
