"""Selectors for the stock kernel (read side)."""

from stock_kernel.selectors.inventory_selector import InventorySelector
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_kernel.selectors.report_selector import ReportSelector
from stock_kernel.selectors.warehouse_selector import WarehouseSelector

__all__ = [
    "InventorySelector",
    "LedgerSelector",
    "MovementSelector",
    "ReportSelector",
    "WarehouseSelector",
]
