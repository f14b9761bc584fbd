"""
Module: stock_kernel.models.movements
Responsibility: ORM persistence for the two user-initiated movement records:
    manual stock adjustments and inter-warehouse stock transfers.
Architecture position: Kernel > Models.  May import from db/ and domain/values.py.

Invariants enforced:
    - StockAdjustment: quantity > 0; adjustment_type decides the sign
      (INCREASE/FOUND add, DECREASE/DAMAGE/THEFT subtract).  Immutable after
      creation except for ``reason`` (db/immutability.py).
    - StockTransfer: quantity > 0 and from_warehouse_id != to_warehouse_id
      (CHECK constraint plus validation before any write).  Status moves
      one way, PENDING -> COMPLETED or PENDING -> CANCELLED.

Audit relevance:
    Each row is the reference target of the ledger entries it produced.
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, CheckConstraint, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase, UTCDateTime, UUIDString
from stock_kernel.domain.values import AdjustmentType, TransferStatus


class StockAdjustment(TrackedBase):
    """A manual correction of one product's stock in one warehouse."""

    __tablename__ = "stock_adjustments"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_adjustment_quantity_positive"),
        Index("idx_adjustment_org_date", "organization_id", "adjustment_date"),
        Index("idx_adjustment_org_product", "organization_id", "product_id"),
        Index("idx_adjustment_org_type", "organization_id", "adjustment_type"),
    )

    # ADJ-<epoch-millis>
    adjustment_number: Mapped[str] = mapped_column(String(50), nullable=False)

    adjustment_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    organization_id: Mapped[UUID] = mapped_column(nullable=False)

    product_id: Mapped[UUID] = mapped_column(nullable=False)

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    adjustment_type: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    reason: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    def __repr__(self) -> str:
        return (
            f"<StockAdjustment {self.adjustment_number} {self.adjustment_type} "
            f"qty={self.quantity}>"
        )


class StockTransfer(TrackedBase):
    """A movement of one product between two warehouses of one organization."""

    __tablename__ = "stock_transfers"

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_transfer_quantity_positive"),
        CheckConstraint(
            "from_warehouse_id <> to_warehouse_id",
            name="ck_transfer_distinct_warehouses",
        ),
        Index("idx_transfer_org_date", "organization_id", "transfer_date"),
        Index("idx_transfer_org_status", "organization_id", "status"),
        Index("idx_transfer_org_product", "organization_id", "product_id"),
    )

    organization_id: Mapped[UUID] = mapped_column(nullable=False)

    product_id: Mapped[UUID] = mapped_column(nullable=False)

    from_warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    to_warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    transfer_date: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    reason: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    status: Mapped[str] = mapped_column(
        String(20),
        default=TransferStatus.PENDING.value,
        nullable=False,
    )

    def __repr__(self) -> str:
        return (
            f"<StockTransfer {self.id} {self.from_warehouse_id}->{self.to_warehouse_id} "
            f"qty={self.quantity} status={self.status}>"
        )
