"""
StockLedgerService -- append-only writer for the stock ledger.

Responsibility:
    Appends one StockLedgerEntry per quantity change, assigning its id,
    its monotonic ``seq`` and its ``created_at``.

Architecture position:
    Kernel > Services -- imperative shell.  Called by MovementEngine in the
    same transaction as the matching InventoryRecordStore delta.

Invariants enforced:
    - Append-only: entries are never updated or deleted (listeners in
      db/immutability.py back this up at the ORM level).
    - quantity is the unsigned magnitude; ``direction`` carries the sign.
    - A failed append raises; the caller rolls the whole movement back.

Failure modes:
    - PersistenceError if the flush is rejected.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError

from stock_kernel.domain.values import MovementType, ReferenceType
from stock_kernel.exceptions import PersistenceError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock_ledger import StockLedgerEntry
from stock_kernel.services.base import BaseService
from stock_kernel.services.sequence_service import SequenceService

logger = get_logger("services.stock_ledger")


class StockLedgerService(BaseService[StockLedgerEntry]):
    """Append-only access to stock_ledger_entries."""

    def append(
        self,
        organization_id: UUID,
        product_id: UUID,
        warehouse_id: UUID,
        movement_type: MovementType,
        quantity: int,
        direction: int,
        reference_id: UUID,
        reference_type: ReferenceType,
        now: datetime,
        remarks: str | None = None,
    ) -> StockLedgerEntry:
        """
        Append a ledger entry and flush it.

        Preconditions:
            quantity > 0 and direction in (+1, -1).
        """
        if quantity <= 0:
            raise ValueError(f"Ledger quantity must be positive, got {quantity}")
        if direction not in (1, -1):
            raise ValueError(f"Ledger direction must be +1 or -1, got {direction}")

        seq = SequenceService(self.session).next_value(SequenceService.STOCK_LEDGER)
        entry = StockLedgerEntry(
            seq=seq,
            organization_id=organization_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            movement_type=movement_type.value,
            quantity=quantity,
            direction=direction,
            reference_id=reference_id,
            reference_type=reference_type.value,
            remarks=remarks,
            created_at=now,
        )
        self.session.add(entry)
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError("ledger append", str(exc)) from exc

        logger.info(
            "ledger_entry_appended",
            extra={
                "entry_id": str(entry.id),
                "seq": seq,
                "movement_type": movement_type.value,
                "product_id": str(product_id),
                "warehouse_id": str(warehouse_id),
                "signed_quantity": direction * quantity,
                "reference_type": reference_type.value,
                "reference_id": str(reference_id),
            },
        )
        return entry
