"""
JSON shaping for the stock facade.

Kernel DTOs use snake_case; the wire format uses the camelCase field names
of the original HTTP contract (``organizationId``, ``avgCostPrice``,
``movementType`` ...).  UUIDs and datetimes become strings, Decimals become
strings so no precision is lost, enums become their values.
"""

from __future__ import annotations

import dataclasses
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def to_json_value(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return serialize(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_json_value(item) for item in value]
    if isinstance(value, dict):
        return {key: to_json_value(item) for key, item in value.items()}
    return value


def serialize(dto: Any) -> dict[str, Any]:
    """Dataclass DTO -> camelCase dict of JSON-safe values."""
    return {
        to_camel(f.name): to_json_value(getattr(dto, f.name))
        for f in dataclasses.fields(dto)
    }


def serialize_many(dtos: Any) -> list[dict[str, Any]]:
    return [serialize(dto) for dto in dtos]
