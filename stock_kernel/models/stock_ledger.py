"""
Module: stock_kernel.models.stock_ledger
Responsibility: ORM persistence for the append-only stock ledger -- one row
    per quantity change, referencing the operation that produced it.
Architecture position: Kernel > Models.  May import from db/ and domain/values.py.

Invariants enforced:
    - Append-only: UPDATE and DELETE are rejected by the ORM listeners in
      db/immutability.py.
    - quantity is the unsigned magnitude; the direction comes from
      movement_type (and, for ADJUSTMENT, from the referenced adjustment's
      type, denormalized into ``direction``).
    - seq is strictly monotonic per database, giving a total append order
      that does not depend on clock resolution.

Audit relevance:
    Replaying the entries of a key from zero reproduces the inventory
    record's quantity.  See LedgerSelector.replay_quantity().
"""

from datetime import datetime
from uuid import UUID

from sqlalchemy import BigInteger, ForeignKey, Index, SmallInteger, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import Base, UTCDateTime, UUIDString
from stock_kernel.domain.values import MovementType, ReferenceType


class StockLedgerEntry(Base):
    """
    Immutable record of a single quantity change.

    Contract:
        Written exactly once per movement side effect, in the same
        transaction as the matching inventory delta.
    """

    __tablename__ = "stock_ledger_entries"

    __table_args__ = (
        UniqueConstraint("seq", name="uq_stock_ledger_seq"),
        Index(
            "idx_stock_ledger_key",
            "organization_id",
            "product_id",
            "warehouse_id",
        ),
        Index("idx_stock_ledger_org_created", "organization_id", "created_at"),
        Index("idx_stock_ledger_reference", "reference_type", "reference_id"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False)

    organization_id: Mapped[UUID] = mapped_column(nullable=False)

    product_id: Mapped[UUID] = mapped_column(nullable=False)

    warehouse_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("warehouses.id"),
        nullable=False,
    )

    movement_type: Mapped[str] = mapped_column(String(20), nullable=False)

    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)

    # +1 adds to stock, -1 removes it
    direction: Mapped[int] = mapped_column(SmallInteger, nullable=False)

    reference_id: Mapped[UUID] = mapped_column(nullable=False)

    reference_type: Mapped[str] = mapped_column(String(50), nullable=False)

    remarks: Mapped[str | None] = mapped_column(String(4000), nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    @property
    def signed_quantity(self) -> int:
        return self.direction * self.quantity

    def __repr__(self) -> str:
        return (
            f"<StockLedgerEntry #{self.seq} {self.movement_type} "
            f"qty={self.quantity} ref={self.reference_type}:{self.reference_id}>"
        )


class StockSequence(Base):
    """Named counter behind ``StockLedgerEntry.seq``; one row per sequence."""

    __tablename__ = "stock_sequences"

    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)

    last_value: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
