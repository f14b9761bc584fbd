"""
Module: stock_kernel.models.inventory
Responsibility: ORM persistence for inventory records -- the current on-hand
    quantity and moving average cost of one product in one warehouse for one
    organization.
Architecture position: Kernel > Models.  May import from db/ only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Exactly one record per (organization_id, product_id, warehouse_id);
      the composite UNIQUE constraint is the conflict target of the atomic
      upsert in InventoryRecordStore.apply_delta.
    - quantity equals the signed sum of the stock ledger entries for the
      same key (verified by LedgerSelector.verify_ledger).
    - quantity may be negative under the default "allow" policy.

Failure modes:
    - IntegrityError on a duplicate key inserted outside the upsert path.

Audit relevance:
    There is no delete path.  Every quantity change is paired with a
    StockLedgerEntry in the same transaction.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, Numeric, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase, UTCDateTime, UUIDString


class InventoryRecord(TrackedBase):
    """
    Current stock position for one (organization, product, warehouse) key.

    Contract:
        Created lazily by the first movement touching the key and mutated
        only through InventoryRecordStore.
    """

    __tablename__ = "inventory_records"

    __table_args__ = (
        UniqueConstraint(
            "organization_id",
            "product_id",
            "warehouse_id",
            name="uq_inventory_org_product_warehouse",
        ),
        Index("idx_inventory_org_warehouse", "organization_id", "warehouse_id"),
        Index("idx_inventory_org_product", "organization_id", "product_id"),
    )

    organization_id: Mapped[UUID] = mapped_column(nullable=False)

    product_id: Mapped[UUID] = mapped_column(nullable=False)

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    avg_cost_price: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        default=Decimal("0"),
        nullable=False,
    )

    last_updated: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    @property
    def value(self) -> Decimal:
        """Stock value of this record (quantity x average cost)."""
        return Decimal(self.quantity) * self.avg_cost_price

    def __repr__(self) -> str:
        return (
            f"<InventoryRecord org={self.organization_id} product={self.product_id} "
            f"warehouse={self.warehouse_id} qty={self.quantity}>"
        )
