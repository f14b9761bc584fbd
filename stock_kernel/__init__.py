"""
Stock Kernel - Inventory Ledger & Movement Engine

Per-organization stock positions backed by an append-only stock ledger:
- Atomic quantity deltas (no read-compute-write races)
- One transaction per movement
- Manual adjustments, inter-warehouse transfers, purchase receipts
- Ledger replay verification
- Low-stock alerts and stock valuation
"""

__version__ = "0.1.0"
