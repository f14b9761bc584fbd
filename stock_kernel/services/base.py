"""
Common base for the flush-only write services.

InventoryRecordStore, StockLedgerService and WarehouseService write through
``session.flush()`` and leave commit and rollback to MovementEngine or a
``session_scope()`` block.  That keeps an inventory delta and its ledger
entry inside one transaction.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stock_kernel.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseService(ABC, Generic[ModelT]):

    def __init__(self, session: Session):
        self.session = session
