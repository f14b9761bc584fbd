"""
WarehouseService -- lifecycle of an organization's storage locations.

Responsibility:
    Creates, updates and deletes warehouses, keeps at most one default
    warehouse per organization, and resolves the warehouses a movement
    touches (existing, same organization, active).

Architecture position:
    Kernel > Services -- imperative shell.  Flush-only; the caller owns the
    transaction (session_scope() or MovementEngine).

Invariants enforced:
    - The first warehouse of an organization becomes its default.
    - Setting is_default clears the flag on every other warehouse of the
      organization.
    - A warehouse referenced by inventory, ledger, adjustment or transfer
      rows cannot be deleted (deactivate it instead).
    - A warehouse of another organization is reported as not found.
"""

from uuid import UUID

from sqlalchemy import func, or_, select, update

from stock_kernel.domain.dtos import WarehouseInfo
from stock_kernel.domain.validation import optional_text
from stock_kernel.exceptions import (
    MissingFieldError,
    WarehouseInactiveError,
    WarehouseInUseError,
    WarehouseNotFoundError,
)
from stock_kernel.logging_config import get_logger
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.models.movements import StockAdjustment, StockTransfer
from stock_kernel.models.stock_ledger import StockLedgerEntry
from stock_kernel.models.warehouse import Warehouse
from stock_kernel.services.base import BaseService

logger = get_logger("services.warehouse")


class WarehouseService(BaseService[Warehouse]):
    """Write access to warehouses."""

    def get_model(self, organization_id: UUID, warehouse_id: UUID) -> Warehouse:
        """Load a warehouse of the organization or raise WarehouseNotFoundError."""
        warehouse = self.session.execute(
            select(Warehouse).where(
                Warehouse.id == warehouse_id,
                Warehouse.organization_id == organization_id,
            )
        ).scalar_one_or_none()
        if warehouse is None:
            raise WarehouseNotFoundError(str(warehouse_id))
        return warehouse

    def require_active(self, organization_id: UUID, warehouse_id: UUID) -> Warehouse:
        """Resolve a warehouse a movement is about to touch."""
        warehouse = self.get_model(organization_id, warehouse_id)
        if not warehouse.is_active:
            raise WarehouseInactiveError(str(warehouse_id))
        return warehouse

    def create_warehouse(
        self,
        organization_id: UUID,
        name: str,
        address: str | None = None,
        is_default: bool = False,
    ) -> WarehouseInfo:
        name = optional_text(name)
        if name is None:
            raise MissingFieldError("name")

        has_any = self.session.execute(
            select(func.count(Warehouse.id)).where(
                Warehouse.organization_id == organization_id
            )
        ).scalar_one()
        make_default = bool(is_default) or has_any == 0
        if make_default:
            self._clear_default(organization_id)

        warehouse = Warehouse(
            organization_id=organization_id,
            name=name,
            address=optional_text(address),
            is_default=make_default,
            is_active=True,
        )
        self.session.add(warehouse)
        self.session.flush()

        logger.info(
            "warehouse_created",
            extra={
                "warehouse_id": str(warehouse.id),
                "is_default": make_default,
            },
        )
        return WarehouseInfo.from_model(warehouse)

    def update_warehouse(
        self,
        organization_id: UUID,
        warehouse_id: UUID,
        name: str | None = None,
        address: str | None = None,
        is_default: bool | None = None,
        is_active: bool | None = None,
    ) -> WarehouseInfo:
        """Partial update; None leaves a field unchanged."""
        warehouse = self.get_model(organization_id, warehouse_id)

        if name is not None:
            new_name = optional_text(name)
            if new_name is None:
                raise MissingFieldError("name")
            warehouse.name = new_name
        if address is not None:
            warehouse.address = optional_text(address)
        if is_default is not None:
            if is_default and not warehouse.is_default:
                self._clear_default(organization_id)
            warehouse.is_default = bool(is_default)
        if is_active is not None:
            warehouse.is_active = bool(is_active)

        self.session.flush()
        logger.info("warehouse_updated", extra={"warehouse_id": str(warehouse_id)})
        return WarehouseInfo.from_model(warehouse)

    def delete_warehouse(self, organization_id: UUID, warehouse_id: UUID) -> None:
        warehouse = self.get_model(organization_id, warehouse_id)

        references = self._reference_count(warehouse_id)
        if references:
            logger.warning(
                "warehouse_delete_rejected",
                extra={"warehouse_id": str(warehouse_id), "reference_count": references},
            )
            raise WarehouseInUseError(str(warehouse_id), references)

        self.session.delete(warehouse)
        self.session.flush()
        logger.info("warehouse_deleted", extra={"warehouse_id": str(warehouse_id)})

    def _clear_default(self, organization_id: UUID) -> None:
        self.session.execute(
            update(Warehouse)
            .where(
                Warehouse.organization_id == organization_id,
                Warehouse.is_default.is_(True),
            )
            .values(is_default=False)
            .execution_options(synchronize_session="fetch")
        )

    def _reference_count(self, warehouse_id: UUID) -> int:
        counts = (
            select(func.count(InventoryRecord.id)).where(
                InventoryRecord.warehouse_id == warehouse_id
            ),
            select(func.count(StockLedgerEntry.id)).where(
                StockLedgerEntry.warehouse_id == warehouse_id
            ),
            select(func.count(StockAdjustment.id)).where(
                StockAdjustment.warehouse_id == warehouse_id
            ),
            select(func.count(StockTransfer.id)).where(
                or_(
                    StockTransfer.from_warehouse_id == warehouse_id,
                    StockTransfer.to_warehouse_id == warehouse_id,
                )
            ),
        )
        return sum(self.session.execute(query).scalar_one() for query in counts)
