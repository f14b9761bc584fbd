"""
Module: stock_kernel.models.catalog
Responsibility: Local projections of the two records the stock kernel reads
    from neighbouring modules: products (for reorder thresholds) and
    purchases (for goods receipt).
Architecture position: Kernel > Models.  May import from db/ and domain/values.py.

The product catalog and purchasing modules own these rows.  The kernel
never creates products; the only purchase column it writes is ``status``
(to RECEIVED, from the receipt path).
"""

from uuid import UUID

from sqlalchemy import BigInteger, Boolean, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from stock_kernel.db.base import TrackedBase
from stock_kernel.domain.values import PurchaseStatus


class Product(TrackedBase):
    """
    Product projection carrying the reorder threshold.

    ``min_stock_level`` of NULL behaves as 0, so a product raises no
    low-stock alert until a threshold is configured.
    """

    __tablename__ = "products"

    __table_args__ = (
        Index("idx_product_org", "organization_id"),
        Index("idx_product_org_code", "organization_id", "code"),
    )

    organization_id: Mapped[UUID] = mapped_column(nullable=False)
    code: Mapped[str] = mapped_column(String(100), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    unit: Mapped[str | None] = mapped_column(String(20), nullable=True)
    min_stock_level: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Product {self.id} {self.code} min={self.min_stock_level}>"


class Purchase(TrackedBase):
    """Purchase order projection; only ``status`` is written by the kernel."""

    __tablename__ = "purchases"

    __table_args__ = (
        Index("idx_purchase_org", "organization_id"),
        Index("idx_purchase_org_status", "organization_id", "status"),
    )

    organization_id: Mapped[UUID] = mapped_column(nullable=False)
    invoice_number: Mapped[str] = mapped_column(String(100), nullable=False)
    supplier_id: Mapped[UUID | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=PurchaseStatus.PENDING.value, nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Purchase {self.id} {self.invoice_number} status={self.status}>"
