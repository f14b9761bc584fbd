"""
Module: stock_kernel.models.warehouse
Responsibility: ORM persistence for warehouses -- named storage locations
    owned by exactly one organization.
Architecture position: Kernel > Models.  May import from db/ only.

Invariants enforced:
    - Every warehouse carries an organization_id partition key.
    - At most one warehouse per organization has is_default=True
      (maintained by WarehouseService, which clears the previous default).

Failure modes:
    - WarehouseInUseError (raised by WarehouseService) when deleting a
      warehouse still referenced by inventory, ledger, adjustment or
      transfer rows.
"""

from uuid import UUID

from sqlalchemy import Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase


class Warehouse(TrackedBase):
    """A named storage location belonging to one organization."""

    __tablename__ = "warehouses"

    __table_args__ = (
        Index("idx_warehouse_org", "organization_id"),
        Index("idx_warehouse_org_default", "organization_id", "is_default"),
    )

    organization_id: Mapped[UUID] = mapped_column(nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    address: Mapped[str | None] = mapped_column(String(1000), nullable=True)

    is_default: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<Warehouse {self.id} {self.name!r} org={self.organization_id} "
            f"default={self.is_default} active={self.is_active}>"
        )
