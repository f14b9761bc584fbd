"""
Typed exception hierarchy for the stock kernel.

Every error raised by the kernel is a subclass of ``StockKernelError`` and
carries a class-level ``code`` (machine-readable, API-safe) plus the
structured data that produced it.  Callers catch by type, never by message.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    StockKernelError (base)
    |
    +-- ValidationError                      -> client error, nothing written
    |   +-- MissingFieldError
    |   +-- InvalidQuantityError
    |   +-- InvalidAdjustmentTypeError
    |   +-- InvalidTransferStatusError
    |   +-- SameWarehouseTransferError
    |
    +-- NotFoundError                        -> client error
    |   +-- WarehouseNotFoundError
    |   +-- PurchaseNotFoundError
    |   +-- InventoryRecordNotFoundError
    |   +-- AdjustmentNotFoundError
    |   +-- TransferNotFoundError
    |   +-- LedgerEntryNotFoundError
    |
    +-- StateError                           -> conflict with current state
    |   +-- WarehouseInactiveError
    |   +-- WarehouseInUseError
    |   +-- PurchaseAlreadyReceivedError
    |   +-- InvalidStatusTransitionError
    |   +-- InsufficientStockError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |   +-- AdjustmentImmutableError
    |
    +-- PersistenceError                     -> store failure, rolled back

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                         | When Raised
--------------|------------------------------|-----------------------------------
Validation    | MISSING_FIELD                | Required field absent or blank
              | INVALID_QUANTITY             | Quantity not a positive integer
              | INVALID_ADJUSTMENT_TYPE      | Unknown adjustment type
              | INVALID_TRANSFER_STATUS      | Unknown transfer status
              | SAME_WAREHOUSE_TRANSFER      | from == to on a transfer
--------------|------------------------------|-----------------------------------
Not found     | WAREHOUSE_NOT_FOUND          | Unknown warehouse for the org
              | PURCHASE_NOT_FOUND           | Unknown purchase for the org
              | INVENTORY_RECORD_NOT_FOUND   | No record for the key
              | ADJUSTMENT_NOT_FOUND         | Unknown adjustment for the org
              | TRANSFER_NOT_FOUND           | Unknown transfer for the org
              | LEDGER_ENTRY_NOT_FOUND       | Unknown ledger entry for the org
--------------|------------------------------|-----------------------------------
State         | WAREHOUSE_INACTIVE           | Movement against inactive warehouse
              | WAREHOUSE_IN_USE             | Deleting a referenced warehouse
              | PURCHASE_ALREADY_RECEIVED    | Receiving a purchase twice
              | INVALID_STATUS_TRANSITION    | Transfer not PENDING
              | INSUFFICIENT_STOCK           | Negative stock under reject policy
--------------|------------------------------|-----------------------------------
Immutability  | IMMUTABILITY_VIOLATION       | UPDATE/DELETE on append-only row
              | ADJUSTMENT_IMMUTABLE         | Changing quantity/type of adjustment
--------------|------------------------------|-----------------------------------
Persistence   | PERSISTENCE_FAILURE          | Store rejected a write mid-operation
"""


class StockKernelError(Exception):
    """
    Base exception for all stock kernel errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "STOCK_KERNEL_ERROR"


# Validation errors


class ValidationError(StockKernelError):
    """Base exception for input rejected before any write."""

    code: str = "VALIDATION_ERROR"


class MissingFieldError(ValidationError):
    """A required field is absent or blank."""

    code: str = "MISSING_FIELD"

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing required field: {field_name}")


class InvalidQuantityError(ValidationError):
    """Quantity is not a strictly positive integer."""

    code: str = "INVALID_QUANTITY"

    def __init__(
        self,
        field_name: str,
        value: object,
        requirement: str = "must be a positive integer",
    ):
        self.field_name = field_name
        self.value = value
        super().__init__(f"Invalid {field_name}: {value!r} ({requirement})")


class InvalidAdjustmentTypeError(ValidationError):
    """Adjustment type is not one of the known kinds."""

    code: str = "INVALID_ADJUSTMENT_TYPE"

    def __init__(self, adjustment_type: object):
        self.adjustment_type = adjustment_type
        super().__init__(f"Invalid adjustment type: {adjustment_type!r}")


class InvalidTransferStatusError(ValidationError):
    """Transfer status is not one of the known values."""

    code: str = "INVALID_TRANSFER_STATUS"

    def __init__(self, status: object):
        self.status = status
        super().__init__(f"Invalid transfer status: {status!r}")


class SameWarehouseTransferError(ValidationError):
    """Source and destination warehouse of a transfer are identical."""

    code: str = "SAME_WAREHOUSE_TRANSFER"

    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__(
            f"Cannot transfer stock from warehouse {warehouse_id} to itself"
        )


# Not-found errors


class NotFoundError(StockKernelError):
    """Base exception for references that do not exist in the organization."""

    code: str = "NOT_FOUND"


class WarehouseNotFoundError(NotFoundError):
    """Warehouse does not exist in the organization."""

    code: str = "WAREHOUSE_NOT_FOUND"

    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__(f"Warehouse not found: {warehouse_id}")


class PurchaseNotFoundError(NotFoundError):
    """Purchase does not exist in the organization."""

    code: str = "PURCHASE_NOT_FOUND"

    def __init__(self, purchase_id: str):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase order not found: {purchase_id}")


class InventoryRecordNotFoundError(NotFoundError):
    """No inventory record exists for the (product, warehouse) key."""

    code: str = "INVENTORY_RECORD_NOT_FOUND"

    def __init__(self, product_id: str, warehouse_id: str):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        super().__init__(
            f"No inventory for product {product_id} in warehouse {warehouse_id}"
        )


class AdjustmentNotFoundError(NotFoundError):
    """Stock adjustment does not exist in the organization."""

    code: str = "ADJUSTMENT_NOT_FOUND"

    def __init__(self, adjustment_id: str):
        self.adjustment_id = adjustment_id
        super().__init__(f"Stock adjustment not found: {adjustment_id}")


class TransferNotFoundError(NotFoundError):
    """Stock transfer does not exist in the organization."""

    code: str = "TRANSFER_NOT_FOUND"

    def __init__(self, transfer_id: str):
        self.transfer_id = transfer_id
        super().__init__(f"Stock transfer not found: {transfer_id}")


class LedgerEntryNotFoundError(NotFoundError):
    """Stock ledger entry does not exist in the organization."""

    code: str = "LEDGER_ENTRY_NOT_FOUND"

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"Stock ledger entry not found: {entry_id}")


# State errors


class StateError(StockKernelError):
    """Base exception for requests that conflict with current state."""

    code: str = "STATE_ERROR"


class WarehouseInactiveError(StateError):
    """Movement requested against a deactivated warehouse."""

    code: str = "WAREHOUSE_INACTIVE"

    def __init__(self, warehouse_id: str):
        self.warehouse_id = warehouse_id
        super().__init__(f"Warehouse {warehouse_id} is inactive")


class WarehouseInUseError(StateError):
    """Warehouse is still referenced by stock rows and cannot be deleted."""

    code: str = "WAREHOUSE_IN_USE"

    def __init__(self, warehouse_id: str, reference_count: int):
        self.warehouse_id = warehouse_id
        self.reference_count = reference_count
        super().__init__(
            f"Warehouse {warehouse_id} is referenced by {reference_count} "
            "stock record(s) and cannot be deleted"
        )


class PurchaseAlreadyReceivedError(StateError):
    """Purchase has already been received into stock."""

    code: str = "PURCHASE_ALREADY_RECEIVED"

    def __init__(self, purchase_id: str):
        self.purchase_id = purchase_id
        super().__init__(f"Purchase {purchase_id} has already been received")


class InvalidStatusTransitionError(StateError):
    """Transfer status change is not allowed from the current status."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, transfer_id: str, from_status: str, to_status: str):
        self.transfer_id = transfer_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Transfer {transfer_id} cannot move from {from_status} to {to_status}"
        )


class InsufficientStockError(StateError):
    """Movement would drive stock negative while the reject policy is active."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        product_id: str,
        warehouse_id: str,
        requested: int,
    ):
        self.product_id = product_id
        self.warehouse_id = warehouse_id
        self.requested = requested
        super().__init__(
            f"Insufficient stock of product {product_id} in warehouse "
            f"{warehouse_id} to remove {requested}"
        )


# Immutability errors


class ImmutabilityError(StockKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    StockLedgerEntry rows are immutable from creation.  StockAdjustment rows
    are immutable except for their free-text reason.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )


class AdjustmentImmutableError(ImmutabilityError):
    """Quantity or type of a recorded adjustment cannot be changed."""

    code: str = "ADJUSTMENT_IMMUTABLE"

    def __init__(self, adjustment_id: str, fields: list[str]):
        self.adjustment_id = adjustment_id
        self.fields = fields
        super().__init__(
            f"Adjustment {adjustment_id} is posted to the stock ledger; "
            f"fields {', '.join(fields)} cannot be changed. "
            "Record a compensating adjustment instead."
        )


# Persistence errors


class PersistenceError(StockKernelError):
    """The underlying store rejected a write; the operation was rolled back."""

    code: str = "PERSISTENCE_FAILURE"

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"{operation} failed: {detail}")
