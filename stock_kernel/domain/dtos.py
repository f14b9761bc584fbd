"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Defines the immutable data structures that cross the kernel boundary:
    movement commands (AdjustmentRequest, TransferRequest,
    ReceivePurchaseRequest) on the way in, and read snapshots
    (InventoryRecordInfo, LedgerEntryInfo, AdjustmentInfo, TransferInfo,
    PurchaseInfo, WarehouseInfo) plus report rows on the way out.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
    Free of ORM dependencies.  from_model() class methods exist as boundary
    converters but are only invoked from services and selectors.

Invariants enforced:
    - Commands validate in __post_init__: every id present and parseable,
      quantities strictly positive integers, transfer endpoints distinct.
      A command that constructs is a command the engine can apply.
    - Snapshots are frozen; callers never hold live ORM rows.

Failure modes:
    - MissingFieldError / InvalidQuantityError / InvalidAdjustmentTypeError /
      SameWarehouseTransferError / ValidationError from command construction.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any
from uuid import UUID

from stock_kernel.domain.validation import (
    optional_cost,
    optional_text,
    parse_adjustment_type,
    require_positive_quantity,
    require_uuid,
)
from stock_kernel.domain.values import (
    AdjustmentType,
    MovementType,
    PurchaseStatus,
    ReferenceType,
    TransferStatus,
)
from stock_kernel.exceptions import SameWarehouseTransferError, ValidationError

if TYPE_CHECKING:
    from stock_kernel.models.catalog import Purchase as PurchaseModel
    from stock_kernel.models.inventory import InventoryRecord as InventoryRecordModel
    from stock_kernel.models.movements import StockAdjustment as StockAdjustmentModel
    from stock_kernel.models.movements import StockTransfer as StockTransferModel
    from stock_kernel.models.stock_ledger import StockLedgerEntry as LedgerEntryModel
    from stock_kernel.models.warehouse import Warehouse as WarehouseModel


# =============================================================================
# Commands
# =============================================================================


@dataclass(frozen=True)
class AdjustmentRequest:
    """
    Manual correction of one product's stock in one warehouse.

    quantity is the unsigned magnitude; adjustment_type decides the sign.
    """

    organization_id: UUID
    product_id: UUID
    warehouse_id: UUID
    quantity: int
    adjustment_type: AdjustmentType
    reason: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "organization_id", require_uuid(self.organization_id, "organization_id"),
        )
        object.__setattr__(self, "product_id", require_uuid(self.product_id, "product_id"))
        object.__setattr__(
            self, "warehouse_id", require_uuid(self.warehouse_id, "warehouse_id"),
        )
        object.__setattr__(self, "quantity", require_positive_quantity(self.quantity))
        object.__setattr__(
            self, "adjustment_type", parse_adjustment_type(self.adjustment_type),
        )
        object.__setattr__(self, "reason", optional_text(self.reason))

    @property
    def delta(self) -> int:
        """Signed quantity change this adjustment applies."""
        return self.adjustment_type.direction * self.quantity


@dataclass(frozen=True)
class TransferRequest:
    """Movement of one product between two warehouses of one organization."""

    organization_id: UUID
    product_id: UUID
    from_warehouse_id: UUID
    to_warehouse_id: UUID
    quantity: int
    reason: str | None = None

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "organization_id", require_uuid(self.organization_id, "organization_id"),
        )
        object.__setattr__(self, "product_id", require_uuid(self.product_id, "product_id"))
        object.__setattr__(
            self,
            "from_warehouse_id",
            require_uuid(self.from_warehouse_id, "from_warehouse_id"),
        )
        object.__setattr__(
            self,
            "to_warehouse_id",
            require_uuid(self.to_warehouse_id, "to_warehouse_id"),
        )
        object.__setattr__(self, "quantity", require_positive_quantity(self.quantity))
        object.__setattr__(self, "reason", optional_text(self.reason))
        if self.from_warehouse_id == self.to_warehouse_id:
            raise SameWarehouseTransferError(str(self.from_warehouse_id))


@dataclass(frozen=True)
class ReceiptLine:
    """One received item of a purchase."""

    product_id: UUID
    warehouse_id: UUID
    received_quantity: int
    unit_cost: Decimal | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "product_id", require_uuid(self.product_id, "product_id"))
        object.__setattr__(
            self, "warehouse_id", require_uuid(self.warehouse_id, "warehouse_id"),
        )
        object.__setattr__(
            self,
            "received_quantity",
            require_positive_quantity(self.received_quantity, "received_quantity"),
        )
        object.__setattr__(self, "unit_cost", optional_cost(self.unit_cost))


@dataclass(frozen=True)
class ReceivePurchaseRequest:
    """Goods receipt for a purchase; items are applied in order."""

    organization_id: UUID
    purchase_id: UUID
    items: tuple[ReceiptLine, ...]

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "organization_id", require_uuid(self.organization_id, "organization_id"),
        )
        object.__setattr__(self, "purchase_id", require_uuid(self.purchase_id, "purchase_id"))
        if self.items is None:
            raise ValidationError("Missing required field: items")
        items = tuple(
            item if isinstance(item, ReceiptLine) else ReceiptLine(**item)
            for item in self.items
        )
        if not items:
            raise ValidationError("A purchase receipt needs at least one item")
        object.__setattr__(self, "items", items)


# =============================================================================
# Snapshots
# =============================================================================


@dataclass(frozen=True)
class WarehouseInfo:
    id: UUID
    organization_id: UUID
    name: str
    address: str | None
    is_default: bool
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: WarehouseModel) -> WarehouseInfo:
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            name=model.name,
            address=model.address,
            is_default=model.is_default,
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


@dataclass(frozen=True)
class InventoryRecordInfo:
    """Current stock position of one (organization, product, warehouse) key."""

    id: UUID
    organization_id: UUID
    product_id: UUID
    warehouse_id: UUID
    quantity: int
    avg_cost_price: Decimal
    last_updated: datetime
    # filled by the reports from the product projection
    product_code: str | None = None
    product_name: str | None = None

    @property
    def value(self) -> Decimal:
        return Decimal(self.quantity) * self.avg_cost_price

    @classmethod
    def from_model(
        cls,
        model: InventoryRecordModel,
        product_code: str | None = None,
        product_name: str | None = None,
    ) -> InventoryRecordInfo:
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            product_id=model.product_id,
            warehouse_id=model.warehouse_id,
            quantity=int(model.quantity),
            avg_cost_price=Decimal(model.avg_cost_price),
            last_updated=model.last_updated,
            product_code=product_code,
            product_name=product_name,
        )


@dataclass(frozen=True)
class LedgerEntryInfo:
    id: UUID
    seq: int
    organization_id: UUID
    product_id: UUID
    warehouse_id: UUID
    movement_type: MovementType
    quantity: int
    direction: int
    reference_id: UUID
    reference_type: ReferenceType
    remarks: str | None
    created_at: datetime

    @property
    def signed_quantity(self) -> int:
        return self.direction * self.quantity

    @classmethod
    def from_model(cls, model: LedgerEntryModel) -> LedgerEntryInfo:
        return cls(
            id=model.id,
            seq=model.seq,
            organization_id=model.organization_id,
            product_id=model.product_id,
            warehouse_id=model.warehouse_id,
            movement_type=MovementType(model.movement_type),
            quantity=int(model.quantity),
            direction=int(model.direction),
            reference_id=model.reference_id,
            reference_type=ReferenceType(model.reference_type),
            remarks=model.remarks,
            created_at=model.created_at,
        )


@dataclass(frozen=True)
class AdjustmentInfo:
    id: UUID
    adjustment_number: str
    adjustment_date: datetime
    organization_id: UUID
    product_id: UUID
    warehouse_id: UUID
    adjustment_type: AdjustmentType
    quantity: int
    reason: str | None

    @classmethod
    def from_model(cls, model: StockAdjustmentModel) -> AdjustmentInfo:
        return cls(
            id=model.id,
            adjustment_number=model.adjustment_number,
            adjustment_date=model.adjustment_date,
            organization_id=model.organization_id,
            product_id=model.product_id,
            warehouse_id=model.warehouse_id,
            adjustment_type=AdjustmentType(model.adjustment_type),
            quantity=int(model.quantity),
            reason=model.reason,
        )


@dataclass(frozen=True)
class TransferInfo:
    id: UUID
    organization_id: UUID
    product_id: UUID
    from_warehouse_id: UUID
    to_warehouse_id: UUID
    quantity: int
    transfer_date: datetime
    reason: str | None
    status: TransferStatus

    @classmethod
    def from_model(cls, model: StockTransferModel) -> TransferInfo:
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            product_id=model.product_id,
            from_warehouse_id=model.from_warehouse_id,
            to_warehouse_id=model.to_warehouse_id,
            quantity=int(model.quantity),
            transfer_date=model.transfer_date,
            reason=model.reason,
            status=TransferStatus(model.status),
        )


@dataclass(frozen=True)
class PurchaseInfo:
    id: UUID
    organization_id: UUID
    invoice_number: str
    supplier_id: UUID | None
    status: PurchaseStatus
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: PurchaseModel) -> PurchaseInfo:
        return cls(
            id=model.id,
            organization_id=model.organization_id,
            invoice_number=model.invoice_number,
            supplier_id=model.supplier_id,
            status=PurchaseStatus(model.status),
            updated_at=model.updated_at,
        )


# =============================================================================
# Report rows
# =============================================================================


@dataclass(frozen=True)
class LowStockAlert:
    """A record whose quantity is strictly below the product's threshold."""

    product_id: UUID
    product_code: str | None
    product_name: str | None
    warehouse_id: UUID
    current_quantity: int
    min_stock_level: int


@dataclass(frozen=True)
class StockValuation:
    """Sum of quantity x average cost over a scope; negative rows included."""

    total_value: Decimal
    inventories: tuple[InventoryRecordInfo, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class DayEndStock:
    as_of: datetime
    inventories: tuple[InventoryRecordInfo, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ReplayDiscrepancy:
    """Mismatch between a stored quantity and its ledger replay."""

    product_id: UUID
    warehouse_id: UUID
    recorded_quantity: int
    replayed_quantity: int

    @property
    def difference(self) -> int:
        return self.recorded_quantity - self.replayed_quantity

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": str(self.product_id),
            "warehouse_id": str(self.warehouse_id),
            "recorded_quantity": self.recorded_quantity,
            "replayed_quantity": self.replayed_quantity,
            "difference": self.difference,
        }
