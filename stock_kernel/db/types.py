"""
Decimal helpers for costs and valuations.

Quantities are plain ints (whole units, possibly negative).  Costs are
``Decimal`` end to end and stored as ``Numeric(38, 9)``; these helpers are
the only place that coerces or rounds them.
"""

from decimal import ROUND_HALF_UP, Decimal

ZERO = Decimal("0")

# matches the scale of Numeric(38, 9) in Base.type_annotation_map
COST_QUANTUM = Decimal("0.000000001")


def money_from_value(value: Decimal | int | str | float | None) -> Decimal:
    """Coerce a cost to ``Decimal``; ``None`` means zero, floats go via ``str``."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value) if isinstance(value, float) else value)


def round_money(value: Decimal, quantum: Decimal = COST_QUANTUM) -> Decimal:
    return value.quantize(quantum, rounding=ROUND_HALF_UP)
