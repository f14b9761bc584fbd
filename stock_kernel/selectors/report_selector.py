"""
Module: stock_kernel.selectors.report_selector
Responsibility: Low-stock alerts, stock valuation and the day-end stock
    snapshot.  Pure reads over InventoryRecord (joined to the Product
    projection for reorder thresholds).
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Low stock is strictly ``quantity < min_stock_level``; a product with no
      threshold (NULL) or no product row behaves as threshold 0.
    - Valuation is ``sum(quantity * avg_cost_price)`` in Decimal over every
      record in scope.  Negative quantities are included as they are and
      reduce the total.
    - Idempotent: two calls with no intervening write return equal results.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import and_, func, select

from stock_kernel.db.types import ZERO
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    DayEndStock,
    InventoryRecordInfo,
    LowStockAlert,
    StockValuation,
)
from stock_kernel.domain.validation import optional_uuid, require_uuid
from stock_kernel.models.catalog import Product
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.selectors.base import BaseSelector


class ReportSelector(BaseSelector[InventoryRecord]):
    """Read-only stock reports."""

    def __init__(self, session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    @staticmethod
    def _with_product(query):
        return query.outerjoin(
            Product,
            and_(
                Product.id == InventoryRecord.product_id,
                Product.organization_id == InventoryRecord.organization_id,
            ),
        )

    def _records(
        self,
        organization_id: UUID | str,
        warehouse_id: UUID | str | None,
    ) -> list[InventoryRecordInfo]:
        """Records in scope, with the product's code and name when it is known."""
        query = self._with_product(
            select(InventoryRecord, Product.code, Product.name).select_from(InventoryRecord)
        ).where(
            InventoryRecord.organization_id
            == require_uuid(organization_id, "organization_id")
        )
        warehouse_id = optional_uuid(warehouse_id, "warehouse_id")
        if warehouse_id is not None:
            query = query.where(InventoryRecord.warehouse_id == warehouse_id)
        query = query.order_by(InventoryRecord.product_id, InventoryRecord.warehouse_id)
        return [
            InventoryRecordInfo.from_model(record, product_code=code, product_name=name)
            for record, code, name in self.session.execute(query).all()
        ]

    def low_stock_alerts(
        self,
        organization_id: UUID | str,
        warehouse_id: UUID | str | None = None,
    ) -> list[LowStockAlert]:
        """Records strictly below their product's minimum stock level."""
        organization_id = require_uuid(organization_id, "organization_id")
        threshold = func.coalesce(Product.min_stock_level, 0)

        query = self._with_product(
            select(
                InventoryRecord.product_id,
                InventoryRecord.warehouse_id,
                InventoryRecord.quantity,
                Product.code,
                Product.name,
                threshold.label("min_stock_level"),
            ).select_from(InventoryRecord)
        ).where(
            InventoryRecord.organization_id == organization_id,
            InventoryRecord.quantity < threshold,
        )
        warehouse_id = optional_uuid(warehouse_id, "warehouse_id")
        if warehouse_id is not None:
            query = query.where(InventoryRecord.warehouse_id == warehouse_id)
        query = query.order_by(InventoryRecord.quantity, InventoryRecord.product_id)

        return [
            LowStockAlert(
                product_id=row.product_id,
                product_code=row.code,
                product_name=row.name,
                warehouse_id=row.warehouse_id,
                current_quantity=int(row.quantity),
                min_stock_level=int(row.min_stock_level),
            )
            for row in self.session.execute(query).all()
        ]

    def stock_valuation(
        self,
        organization_id: UUID | str,
        warehouse_id: UUID | str | None = None,
    ) -> StockValuation:
        """Total stock value of the scope and the records it was computed from."""
        records = self._records(organization_id, warehouse_id)
        total = sum((record.value for record in records), ZERO)
        return StockValuation(total_value=Decimal(total), inventories=tuple(records))

    def day_end_stock(
        self,
        organization_id: UUID | str,
        warehouse_id: UUID | str | None = None,
    ) -> DayEndStock:
        """Snapshot of the scope's records stamped with the clock's current time."""
        return DayEndStock(
            as_of=self._clock.now(),
            inventories=tuple(self._records(organization_id, warehouse_id)),
        )
