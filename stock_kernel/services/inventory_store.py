"""
InventoryRecordStore -- keyed persistence of current stock positions.

Responsibility:
    Reads and writes the single InventoryRecord per
    (organization_id, product_id, warehouse_id).  Every quantity change made
    by a movement goes through ``apply_delta``, one
    ``INSERT ... ON CONFLICT DO UPDATE ... RETURNING`` statement, so the new
    quantity is computed by the database from the locked row and never from
    a value read earlier in the request.

Architecture position:
    Kernel > Services -- imperative shell.  Called by MovementEngine.

Invariants enforced:
    - No lost updates: concurrent deltas on one key serialize on the row
      lock taken by the upsert and all of them are applied.
    - Negative stock policy: under ``reject`` a negative delta is a
      conditional UPDATE (``quantity + delta >= 0``); when no row matches,
      InsufficientStockError is raised and nothing is written.
    - Organization scoping: every predicate includes organization_id.
    - No delete path.

Failure modes:
    - InsufficientStockError under the reject policy.
    - PersistenceError if the database rejects the statement.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from stock_kernel.db.types import ZERO, round_money
from stock_kernel.domain.values import NegativeStockPolicy
from stock_kernel.exceptions import InsufficientStockError, PersistenceError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.services.base import BaseService

logger = get_logger("services.inventory_store")

_KEY_COLUMNS = ("organization_id", "product_id", "warehouse_id")


class InventoryRecordStore(BaseService[InventoryRecord]):
    """
    Store for InventoryRecord rows.

    Contract:
        Flush-only.  Returns the ORM row refreshed from the database after
        each write so callers see the committed-to-be values.
    """

    _table = InventoryRecord.__table__

    def _insert(self):
        dialect = self.session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(self._table)
        if dialect == "sqlite":
            return sqlite.insert(self._table)
        raise PersistenceError(
            "inventory upsert", f"unsupported database dialect: {dialect}",
        )

    def _load(self, record_id: UUID) -> InventoryRecord:
        return self.session.execute(
            select(InventoryRecord)
            .where(InventoryRecord.id == record_id)
            .execution_options(populate_existing=True)
        ).scalar_one()

    def get(
        self,
        organization_id: UUID,
        product_id: UUID,
        warehouse_id: UUID,
    ) -> InventoryRecord | None:
        """The record for the key, or None when nothing has moved yet."""
        return self.session.execute(
            select(InventoryRecord)
            .where(
                InventoryRecord.organization_id == organization_id,
                InventoryRecord.product_id == product_id,
                InventoryRecord.warehouse_id == warehouse_id,
            )
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()

    def upsert(
        self,
        organization_id: UUID,
        product_id: UUID,
        warehouse_id: UUID,
        new_quantity: int,
        now: datetime,
        new_avg_cost: Decimal | None = None,
    ) -> InventoryRecord:
        """
        Overwrite the quantity (and optionally the average cost) of a key.

        Administrative path for opening balances and cost corrections.
        Movements use apply_delta(); an overwrite is not paired with a
        ledger entry, so verify_ledger() will report it.
        """
        insert = self._insert()
        stmt = insert.values(
            id=uuid4(),
            organization_id=organization_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=new_quantity,
            avg_cost_price=new_avg_cost if new_avg_cost is not None else ZERO,
            last_updated=now,
            created_at=now,
            updated_at=now,
        )
        set_ = {
            "quantity": stmt.excluded.quantity,
            "last_updated": stmt.excluded.last_updated,
            "updated_at": stmt.excluded.updated_at,
        }
        if new_avg_cost is not None:
            set_["avg_cost_price"] = stmt.excluded.avg_cost_price
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_KEY_COLUMNS), set_=set_,
        ).returning(self._table.c.id)

        record_id = self._execute_returning_id(stmt, "inventory upsert")
        record = self._load(record_id)
        logger.info(
            "inventory_overwritten",
            extra={
                "product_id": str(product_id),
                "warehouse_id": str(warehouse_id),
                "quantity": record.quantity,
            },
        )
        return record

    def apply_delta(
        self,
        organization_id: UUID,
        product_id: UUID,
        warehouse_id: UUID,
        delta: int,
        now: datetime,
        seed_avg_cost: Decimal = ZERO,
        policy: NegativeStockPolicy = NegativeStockPolicy.ALLOW,
    ) -> InventoryRecord:
        """
        Atomically add ``delta`` to the key's quantity.

        A missing record is created at ``delta`` with ``seed_avg_cost``;
        an existing record keeps its average cost.

        Raises:
            InsufficientStockError: policy is REJECT and the result would
                be negative.
        """
        if delta < 0 and policy == NegativeStockPolicy.REJECT:
            return self._apply_guarded_decrement(
                organization_id, product_id, warehouse_id, delta, now,
            )

        insert = self._insert()
        stmt = insert.values(
            id=uuid4(),
            organization_id=organization_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=delta,
            avg_cost_price=seed_avg_cost,
            last_updated=now,
            created_at=now,
            updated_at=now,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=list(_KEY_COLUMNS),
            set_={
                "quantity": self._table.c.quantity + stmt.excluded.quantity,
                "last_updated": stmt.excluded.last_updated,
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(self._table.c.id)

        record_id = self._execute_returning_id(stmt, "inventory delta")
        record = self._load(record_id)
        logger.debug(
            "inventory_delta_applied",
            extra={
                "product_id": str(product_id),
                "warehouse_id": str(warehouse_id),
                "delta": delta,
                "quantity": record.quantity,
            },
        )
        return record

    def apply_receipt(
        self,
        organization_id: UUID,
        product_id: UUID,
        warehouse_id: UUID,
        received_quantity: int,
        now: datetime,
        unit_cost: Decimal | None = None,
    ) -> InventoryRecord:
        """
        Add received goods and, when ``unit_cost`` is given, fold it into
        the moving average cost.

        Negative on-hand stock carries no cost weight:
        ``avg' = (max(q, 0) * avg + r * cost) / (max(q, 0) + r)``.
        The row stays locked by the upsert until commit, so the follow-up
        cost write cannot interleave with another delta.
        """
        record = self.apply_delta(
            organization_id,
            product_id,
            warehouse_id,
            received_quantity,
            now,
            seed_avg_cost=unit_cost if unit_cost is not None else ZERO,
        )
        if unit_cost is None:
            return record

        previous = max(record.quantity - received_quantity, 0)
        weight = previous + received_quantity
        new_avg = round_money(
            (Decimal(previous) * Decimal(record.avg_cost_price)
             + Decimal(received_quantity) * unit_cost) / Decimal(weight)
        )
        record.avg_cost_price = new_avg
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise PersistenceError("inventory cost update", str(exc)) from exc
        return record

    def _apply_guarded_decrement(
        self,
        organization_id: UUID,
        product_id: UUID,
        warehouse_id: UUID,
        delta: int,
        now: datetime,
    ) -> InventoryRecord:
        stmt = (
            update(self._table)
            .where(
                self._table.c.organization_id == organization_id,
                self._table.c.product_id == product_id,
                self._table.c.warehouse_id == warehouse_id,
                self._table.c.quantity + delta >= 0,
            )
            .values(
                quantity=self._table.c.quantity + delta,
                last_updated=now,
                updated_at=now,
            )
            .returning(self._table.c.id)
        )
        try:
            record_id = self.session.execute(stmt).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise PersistenceError("inventory delta", str(exc)) from exc
        if record_id is None:
            logger.warning(
                "insufficient_stock",
                extra={
                    "product_id": str(product_id),
                    "warehouse_id": str(warehouse_id),
                    "requested": -delta,
                },
            )
            raise InsufficientStockError(str(product_id), str(warehouse_id), -delta)
        return self._load(record_id)

    def _execute_returning_id(self, stmt, operation: str) -> UUID:
        try:
            return self.session.execute(stmt).scalar_one()
        except SQLAlchemyError as exc:
            raise PersistenceError(operation, str(exc)) from exc
