"""
Lightweight domain validation helpers.

Pure checks with no I/O.  Used at the command boundary to turn loosely
typed input (JSON bodies, keyword arguments) into the values the engine
works with, raising the kernel's typed validation errors.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any
from uuid import UUID

from stock_kernel.domain.values import AdjustmentType, TransferStatus
from stock_kernel.exceptions import (
    InvalidAdjustmentTypeError,
    InvalidQuantityError,
    InvalidTransferStatusError,
    MissingFieldError,
    ValidationError,
)

# Largest quantity one movement may carry (signed 32-bit).  Records are
# BIGINT, so sums of capped movements stay exact.
MAX_MOVEMENT_QUANTITY = 2**31 - 1


def require_uuid(value: Any, name: str) -> UUID:
    """Return value as a UUID; MissingFieldError when absent or blank."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise MissingFieldError(name)
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise ValidationError(f"Invalid {name}: {value!r} (must be a UUID)") from exc


def optional_uuid(value: Any, name: str) -> UUID | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_uuid(value, name)


def require_positive_quantity(value: Any, name: str = "quantity") -> int:
    """
    Return value as a strictly positive int.

    Booleans and non-integral numbers are rejected; integral strings and
    floats such as ``"5"`` or ``5.0`` are accepted.  Values above
    MAX_MOVEMENT_QUANTITY are rejected.
    """
    if value is None:
        raise MissingFieldError(name)
    if isinstance(value, bool):
        raise InvalidQuantityError(name, value)
    if isinstance(value, int):
        quantity = value
    else:
        try:
            number = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise InvalidQuantityError(name, value) from exc
        if not number.is_finite() or number != number.to_integral_value():
            raise InvalidQuantityError(name, value)
        quantity = int(number)
    if quantity <= 0:
        raise InvalidQuantityError(name, value)
    if quantity > MAX_MOVEMENT_QUANTITY:
        raise InvalidQuantityError(name, value, f"must not exceed {MAX_MOVEMENT_QUANTITY}")
    return quantity


def optional_cost(value: Any, name: str = "unit_cost") -> Decimal | None:
    """Return value as a non-negative Decimal, or None when absent."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise ValidationError(f"Invalid {name}: {value!r}")
    try:
        cost = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValidationError(f"Invalid {name}: {value!r}") from exc
    if not cost.is_finite() or cost < 0:
        raise ValidationError(f"Invalid {name}: {value!r} (must be >= 0)")
    return cost


def parse_adjustment_type(value: Any) -> AdjustmentType:
    if value is None or value == "":
        raise MissingFieldError("adjustment_type")
    if isinstance(value, AdjustmentType):
        return value
    try:
        return AdjustmentType(str(value).upper())
    except ValueError as exc:
        raise InvalidAdjustmentTypeError(value) from exc


def parse_transfer_status(value: Any) -> TransferStatus:
    if value is None or value == "":
        raise MissingFieldError("status")
    if isinstance(value, TransferStatus):
        return value
    try:
        return TransferStatus(str(value).upper())
    except ValueError as exc:
        raise InvalidTransferStatusError(value) from exc


def optional_text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
