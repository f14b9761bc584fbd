"""
Value enums for the stock kernel.

Pure Python: no ORM, no I/O.  The ORM models store these as their string
``value`` (upper-case, matching the JSON wire format) and re-export them.
"""

from enum import Enum


class AdjustmentType(str, Enum):
    """Reason category of a manual correction."""

    INCREASE = "INCREASE"
    DECREASE = "DECREASE"
    DAMAGE = "DAMAGE"
    THEFT = "THEFT"
    FOUND = "FOUND"

    @property
    def direction(self) -> int:
        """+1 for kinds that add stock, -1 for kinds that remove it."""
        return 1 if self in _ADDITIVE_ADJUSTMENTS else -1


_ADDITIVE_ADJUSTMENTS = frozenset({AdjustmentType.INCREASE, AdjustmentType.FOUND})


class TransferStatus(str, Enum):
    """Transfer lifecycle.

    Stock moves when the transfer is created; the status does not gate it.
    """

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# One-way transitions; COMPLETED and CANCELLED are terminal.
VALID_TRANSFER_TRANSITIONS: dict[TransferStatus, frozenset[TransferStatus]] = {
    TransferStatus.PENDING: frozenset({TransferStatus.COMPLETED, TransferStatus.CANCELLED}),
    TransferStatus.COMPLETED: frozenset(),
    TransferStatus.CANCELLED: frozenset(),
}


class MovementType(str, Enum):
    """Kind of quantity change recorded in the ledger."""

    ADJUSTMENT = "ADJUSTMENT"
    TRANSFER_OUT = "TRANSFER_OUT"
    TRANSFER_IN = "TRANSFER_IN"
    RECEIPT = "RECEIPT"


class ReferenceType(str, Enum):
    """Discriminator for the row a ledger entry points back to."""

    STOCK_ADJUSTMENT = "StockAdjustment"
    STOCK_TRANSFER = "StockTransfer"
    PURCHASE = "Purchase"


class PurchaseStatus(str, Enum):
    """Purchase order lifecycle as seen by the stock kernel."""

    PENDING = "PENDING"
    ORDERED = "ORDERED"
    RECEIVED = "RECEIVED"
    CANCELLED = "CANCELLED"


class NegativeStockPolicy(str, Enum):
    """Whether a movement may leave a record below zero."""

    ALLOW = "allow"
    REJECT = "reject"
