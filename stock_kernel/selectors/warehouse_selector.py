"""
Module: stock_kernel.selectors.warehouse_selector
Responsibility: Read-only access to an organization's warehouses.
Architecture position: Kernel > Selectors.
"""

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import WarehouseInfo
from stock_kernel.domain.validation import require_uuid
from stock_kernel.exceptions import WarehouseNotFoundError
from stock_kernel.models.warehouse import Warehouse
from stock_kernel.selectors.base import BaseSelector


class WarehouseSelector(BaseSelector[Warehouse]):
    """Selector for Warehouse rows."""

    def list_warehouses(
        self,
        organization_id: UUID | str,
        include_inactive: bool = True,
    ) -> list[WarehouseInfo]:
        """Warehouses of the organization, default first, then by name."""
        query = select(Warehouse).where(
            Warehouse.organization_id == require_uuid(organization_id, "organization_id")
        )
        if not include_inactive:
            query = query.where(Warehouse.is_active.is_(True))
        query = query.order_by(Warehouse.is_default.desc(), Warehouse.name)
        return [
            WarehouseInfo.from_model(warehouse)
            for warehouse in self.session.execute(query).scalars()
        ]

    def get_warehouse(
        self,
        organization_id: UUID | str,
        warehouse_id: UUID | str,
    ) -> WarehouseInfo:
        warehouse_id = require_uuid(warehouse_id, "warehouse_id")
        warehouse = self.session.execute(
            select(Warehouse).where(
                Warehouse.id == warehouse_id,
                Warehouse.organization_id
                == require_uuid(organization_id, "organization_id"),
            )
        ).scalar_one_or_none()
        if warehouse is None:
            raise WarehouseNotFoundError(str(warehouse_id))
        return WarehouseInfo.from_model(warehouse)

    def get_default_warehouse(self, organization_id: UUID | str) -> WarehouseInfo | None:
        warehouse = self.session.execute(
            select(Warehouse).where(
                Warehouse.organization_id
                == require_uuid(organization_id, "organization_id"),
                Warehouse.is_default.is_(True),
            )
        ).scalar_one_or_none()
        return WarehouseInfo.from_model(warehouse) if warehouse is not None else None
