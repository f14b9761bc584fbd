"""ORM models for the stock kernel."""

from stock_kernel.models.catalog import Product, Purchase, PurchaseStatus
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.models.movements import (
    AdjustmentType,
    StockAdjustment,
    StockTransfer,
    TransferStatus,
)
from stock_kernel.models.stock_ledger import (
    MovementType,
    ReferenceType,
    StockLedgerEntry,
    StockSequence,
)
from stock_kernel.models.warehouse import Warehouse

__all__ = [
    "AdjustmentType",
    "InventoryRecord",
    "MovementType",
    "Product",
    "Purchase",
    "PurchaseStatus",
    "ReferenceType",
    "StockAdjustment",
    "StockLedgerEntry",
    "StockSequence",
    "StockTransfer",
    "TransferStatus",
    "Warehouse",
]
