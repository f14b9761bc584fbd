"""
Module: stock_kernel.selectors.inventory_selector
Responsibility: Read-only access to current stock positions.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import InventoryRecordInfo
from stock_kernel.domain.validation import optional_uuid, require_uuid
from stock_kernel.exceptions import InventoryRecordNotFoundError
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.selectors.base import BaseSelector


class InventorySelector(BaseSelector[InventoryRecord]):
    """Selector for InventoryRecord rows."""

    def list_inventory(
        self,
        organization_id: UUID | str,
        warehouse_id: UUID | str | None = None,
        product_id: UUID | str | None = None,
    ) -> list[InventoryRecordInfo]:
        """Records of the organization, optionally narrowed to one warehouse or product."""
        query = select(InventoryRecord).where(
            InventoryRecord.organization_id == require_uuid(organization_id, "organization_id")
        )
        warehouse_id = optional_uuid(warehouse_id, "warehouse_id")
        if warehouse_id is not None:
            query = query.where(InventoryRecord.warehouse_id == warehouse_id)
        product_id = optional_uuid(product_id, "product_id")
        if product_id is not None:
            query = query.where(InventoryRecord.product_id == product_id)

        query = query.order_by(InventoryRecord.product_id, InventoryRecord.warehouse_id)
        return [
            InventoryRecordInfo.from_model(record)
            for record in self.session.execute(query).scalars()
        ]

    def get_inventory(
        self,
        organization_id: UUID | str,
        product_id: UUID | str,
        warehouse_id: UUID | str,
    ) -> InventoryRecordInfo:
        """
        The record for one key.

        Raises:
            InventoryRecordNotFoundError: nothing has moved for the key yet.
        """
        product_id = require_uuid(product_id, "product_id")
        warehouse_id = require_uuid(warehouse_id, "warehouse_id")
        record = self.session.execute(
            select(InventoryRecord).where(
                InventoryRecord.organization_id
                == require_uuid(organization_id, "organization_id"),
                InventoryRecord.product_id == product_id,
                InventoryRecord.warehouse_id == warehouse_id,
            )
        ).scalar_one_or_none()
        if record is None:
            raise InventoryRecordNotFoundError(str(product_id), str(warehouse_id))
        return InventoryRecordInfo.from_model(record)
