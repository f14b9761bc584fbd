"""
Pure domain layer.

Value enums, command and snapshot DTOs, validation helpers and the clock
abstraction, with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O (except SystemClock)
"""

from stock_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from stock_kernel.domain.dtos import (
    AdjustmentInfo,
    AdjustmentRequest,
    DayEndStock,
    InventoryRecordInfo,
    LedgerEntryInfo,
    LowStockAlert,
    PurchaseInfo,
    ReceiptLine,
    ReceivePurchaseRequest,
    ReplayDiscrepancy,
    StockValuation,
    TransferInfo,
    TransferRequest,
    WarehouseInfo,
)
from stock_kernel.domain.values import (
    VALID_TRANSFER_TRANSITIONS,
    AdjustmentType,
    MovementType,
    NegativeStockPolicy,
    PurchaseStatus,
    ReferenceType,
    TransferStatus,
)

__all__ = [
    "AdjustmentInfo",
    "AdjustmentRequest",
    "AdjustmentType",
    "Clock",
    "DayEndStock",
    "DeterministicClock",
    "InventoryRecordInfo",
    "LedgerEntryInfo",
    "LowStockAlert",
    "MovementType",
    "NegativeStockPolicy",
    "PurchaseInfo",
    "PurchaseStatus",
    "ReceiptLine",
    "ReceivePurchaseRequest",
    "ReferenceType",
    "ReplayDiscrepancy",
    "StockValuation",
    "SystemClock",
    "TransferInfo",
    "TransferRequest",
    "TransferStatus",
    "VALID_TRANSFER_TRANSITIONS",
    "WarehouseInfo",
]
