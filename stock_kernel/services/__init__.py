"""
Services -- the imperative shell of the stock kernel.

MovementEngine owns the transaction of each movement; the store, ledger,
warehouse and sequence services only flush.
"""

from stock_kernel.services.inventory_store import InventoryRecordStore
from stock_kernel.services.movement_engine import MovementEngine
from stock_kernel.services.sequence_service import SequenceService
from stock_kernel.services.stock_ledger import StockLedgerService
from stock_kernel.services.warehouse_service import WarehouseService

__all__ = [
    "InventoryRecordStore",
    "MovementEngine",
    "SequenceService",
    "StockLedgerService",
    "WarehouseService",
]
