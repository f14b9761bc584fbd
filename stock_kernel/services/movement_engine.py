"""
MovementEngine -- the write side of the stock kernel.

Responsibility:
    Applies the four user-facing stock movements (manual adjustment,
    inter-warehouse transfer, transfer status change, purchase receipt) and
    the one permitted edit of a recorded adjustment.  Each public method is
    one unit of work: movement row, inventory deltas and ledger entries are
    committed together or not at all.

Architecture position:
    Kernel > Services -- the transaction owner.  Composes
    InventoryRecordStore, StockLedgerService and WarehouseService, which
    only flush.  Called by stock_services.StockApi or directly by an
    in-process caller.

Invariants enforced:
    - Every quantity change is an atomic database delta
      (InventoryRecordStore.apply_delta), never read-compute-write.
    - Every quantity change is paired with exactly one ledger entry in the
      same transaction, so replaying the ledger reproduces the record.
    - Adjustment sign: INCREASE/FOUND add, DECREASE/DAMAGE/THEFT subtract.
    - Transfer conservation: the source loses exactly what the destination
      gains.  Source and destination are locked in a fixed key order so
      opposite transfers cannot deadlock.
    - Transfer status moves one way: PENDING -> COMPLETED | CANCELLED.
      Stock already moved at creation; cancelling does not reverse it.
    - A purchase is received at most once.
    - Every read and write is scoped by organization_id.

Failure modes:
    - ValidationError subclasses before any write.
    - NotFoundError subclasses for unknown warehouse/transfer/purchase/
      adjustment in the organization.
    - StateError subclasses (inactive warehouse, status transition,
      duplicate receipt, insufficient stock under the reject policy).
    - PersistenceError when the database rejects a write.
    On any of these the session is rolled back before the error propagates.
"""

from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from decimal import Decimal
from typing import Any, NoReturn
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from stock_kernel.db.types import ZERO
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.dtos import (
    AdjustmentInfo,
    AdjustmentRequest,
    PurchaseInfo,
    ReceiptLine,
    ReceivePurchaseRequest,
    TransferInfo,
    TransferRequest,
)
from stock_kernel.domain.validation import (
    optional_text,
    parse_adjustment_type,
    parse_transfer_status,
    require_positive_quantity,
    require_uuid,
)
from stock_kernel.domain.values import (
    VALID_TRANSFER_TRANSITIONS,
    AdjustmentType,
    MovementType,
    NegativeStockPolicy,
    PurchaseStatus,
    ReferenceType,
    TransferStatus,
)
from stock_kernel.exceptions import (
    AdjustmentImmutableError,
    AdjustmentNotFoundError,
    ImmutabilityViolationError,
    InvalidStatusTransitionError,
    PurchaseAlreadyReceivedError,
    PurchaseNotFoundError,
    TransferNotFoundError,
)
from stock_kernel.logging_config import LogContext, get_logger
from stock_kernel.models.catalog import Purchase
from stock_kernel.models.movements import StockAdjustment, StockTransfer
from stock_kernel.services.inventory_store import InventoryRecordStore
from stock_kernel.services.stock_ledger import StockLedgerService
from stock_kernel.services.warehouse_service import WarehouseService

logger = get_logger("services.movement_engine")

# Marks an argument the caller did not pass, as distinct from an explicit None.
_UNSET: Any = object()


class MovementEngine:
    """
    Applies stock movements, one transaction per call.

    Contract:
        With ``auto_commit=True`` (the default) each public method commits
        on success and rolls back on failure.  With ``auto_commit=False``
        the engine only flushes and the caller's session_scope() owns the
        boundary.

    Non-goals:
        - No automatic retry; a failed movement is reported to the caller.
        - Does NOT reverse stock when a transfer is cancelled.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        negative_stock_policy: NegativeStockPolicy | str = NegativeStockPolicy.ALLOW,
        auto_commit: bool = True,
    ):
        self._session = session
        self._clock = clock or SystemClock()
        self._policy = NegativeStockPolicy(negative_stock_policy)
        self._auto_commit = auto_commit
        self._store = InventoryRecordStore(session)
        self._ledger = StockLedgerService(session)
        self._warehouses = WarehouseService(session)

    @property
    def negative_stock_policy(self) -> NegativeStockPolicy:
        return self._policy

    @contextmanager
    def _unit_of_work(self, operation: str, organization_id: UUID) -> Iterator[None]:
        with LogContext.bind(organization_id=organization_id, operation=operation):
            try:
                yield
                if self._auto_commit:
                    self._session.commit()
            except Exception as exc:
                if self._auto_commit:
                    self._session.rollback()
                logger.warning(
                    "movement_rolled_back",
                    extra={
                        "error_code": getattr(exc, "code", type(exc).__name__),
                        "error": str(exc),
                    },
                )
                raise

    # ------------------------------------------------------------------
    # Adjustments
    # ------------------------------------------------------------------

    def adjust_inventory(
        self,
        organization_id: UUID | str,
        product_id: UUID | str,
        warehouse_id: UUID | str,
        quantity: int,
        adjustment_type: AdjustmentType | str,
        reason: str | None = None,
    ) -> AdjustmentInfo:
        """
        Record a manual correction and apply it to the record.

        Postconditions:
            - One StockAdjustment row numbered ``ADJ-<epoch-millis>``.
            - The record's quantity moved by +quantity (INCREASE, FOUND) or
              -quantity (DECREASE, DAMAGE, THEFT); it may go negative under
              the allow policy.
            - One ADJUSTMENT ledger entry with the unsigned quantity and the
              adjustment's direction.

        Raises:
            MissingFieldError, InvalidQuantityError,
            InvalidAdjustmentTypeError: before any write.
            WarehouseNotFoundError, WarehouseInactiveError.
            InsufficientStockError: reject policy and the result would be
                negative.
        """
        request = AdjustmentRequest(
            organization_id=organization_id,
            product_id=product_id,
            warehouse_id=warehouse_id,
            quantity=quantity,
            adjustment_type=adjustment_type,
            reason=reason,
        )

        with self._unit_of_work("adjust_inventory", request.organization_id):
            self._warehouses.require_active(request.organization_id, request.warehouse_id)
            now = self._clock.now()

            adjustment = StockAdjustment(
                adjustment_number=f"ADJ-{self._clock.epoch_millis()}",
                adjustment_date=now,
                organization_id=request.organization_id,
                product_id=request.product_id,
                warehouse_id=request.warehouse_id,
                adjustment_type=request.adjustment_type.value,
                quantity=request.quantity,
                reason=request.reason,
            )
            self._session.add(adjustment)
            self._session.flush()

            record = self._store.apply_delta(
                request.organization_id,
                request.product_id,
                request.warehouse_id,
                request.delta,
                now,
                policy=self._policy,
            )
            self._ledger.append(
                organization_id=request.organization_id,
                product_id=request.product_id,
                warehouse_id=request.warehouse_id,
                movement_type=MovementType.ADJUSTMENT,
                quantity=request.quantity,
                direction=request.adjustment_type.direction,
                reference_id=adjustment.id,
                reference_type=ReferenceType.STOCK_ADJUSTMENT,
                now=now,
                remarks=request.reason,
            )
            result = AdjustmentInfo.from_model(adjustment)

            logger.info(
                "adjustment_applied",
                extra={
                    "adjustment_id": str(adjustment.id),
                    "adjustment_number": adjustment.adjustment_number,
                    "adjustment_type": request.adjustment_type.value,
                    "delta": request.delta,
                    "quantity_after": record.quantity,
                },
            )

        return result

    def update_adjustment(
        self,
        organization_id: UUID | str,
        adjustment_id: UUID | str,
        reason: str | None = _UNSET,
        quantity: int | None = None,
        adjustment_type: AdjustmentType | str | None = None,
    ) -> AdjustmentInfo:
        """
        Edit the free-text reason of a recorded adjustment.

        The reason changes only when ``reason`` is passed; passing ``None``
        clears it.  quantity and adjustment_type may be passed only with their current
        values; any other value raises AdjustmentImmutableError.  The
        correction path for a wrong quantity is a new adjustment.
        """
        organization_id = require_uuid(organization_id, "organization_id")
        adjustment_id = require_uuid(adjustment_id, "adjustment_id")

        with self._unit_of_work("update_adjustment", organization_id):
            adjustment = self._session.execute(
                select(StockAdjustment)
                .where(
                    StockAdjustment.id == adjustment_id,
                    StockAdjustment.organization_id == organization_id,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if adjustment is None:
                raise AdjustmentNotFoundError(str(adjustment_id))

            frozen: list[str] = []
            if quantity is not None and require_positive_quantity(quantity) != adjustment.quantity:
                frozen.append("quantity")
            if (
                adjustment_type is not None
                and parse_adjustment_type(adjustment_type).value != adjustment.adjustment_type
            ):
                frozen.append("adjustment_type")
            if frozen:
                raise AdjustmentImmutableError(str(adjustment_id), frozen)

            if reason is not _UNSET:
                adjustment.reason = optional_text(reason)
            self._session.flush()
            result = AdjustmentInfo.from_model(adjustment)
            logger.info("adjustment_reason_updated", extra={"adjustment_id": str(adjustment_id)})

        return result

    def delete_adjustment(self, organization_id: UUID | str, adjustment_id: UUID | str) -> NoReturn:
        """Always refused: a recorded adjustment is part of the ledger history.

        Raises AdjustmentNotFoundError for an unknown id, otherwise
        ImmutabilityViolationError.  Reverse it with a new adjustment.
        """
        organization_id = require_uuid(organization_id, "organization_id")
        adjustment_id = require_uuid(adjustment_id, "adjustment_id")

        with self._unit_of_work("delete_adjustment", organization_id):
            exists = self._session.execute(
                select(StockAdjustment.id).where(
                    StockAdjustment.id == adjustment_id,
                    StockAdjustment.organization_id == organization_id,
                )
            ).scalar_one_or_none()
            if exists is None:
                raise AdjustmentNotFoundError(str(adjustment_id))
            raise ImmutabilityViolationError(
                "StockAdjustment", str(adjustment_id),
                "adjustments are append-only; record a compensating adjustment",
            )

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def transfer_stock(
        self,
        organization_id: UUID | str,
        product_id: UUID | str,
        from_warehouse_id: UUID | str,
        to_warehouse_id: UUID | str,
        quantity: int,
        reason: str | None = None,
    ) -> TransferInfo:
        """
        Move stock between two warehouses of one organization.

        Postconditions:
            - One StockTransfer row with status PENDING.
            - Source quantity decreased and destination quantity increased
              by exactly ``quantity``.
            - A destination record created by this transfer inherits the
              source's average cost; an existing one keeps its own.
            - One TRANSFER_OUT entry at the source and one TRANSFER_IN entry
              at the destination, both referencing the transfer.

        Raises:
            SameWarehouseTransferError: before any write.
            InsufficientStockError: reject policy and the source would go
                negative.
        """
        request = TransferRequest(
            organization_id=organization_id,
            product_id=product_id,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            quantity=quantity,
            reason=reason,
        )
        org = request.organization_id

        with self._unit_of_work("transfer_stock", org):
            self._warehouses.require_active(org, request.from_warehouse_id)
            self._warehouses.require_active(org, request.to_warehouse_id)
            now = self._clock.now()

            transfer = StockTransfer(
                organization_id=org,
                product_id=request.product_id,
                from_warehouse_id=request.from_warehouse_id,
                to_warehouse_id=request.to_warehouse_id,
                quantity=request.quantity,
                transfer_date=now,
                reason=request.reason,
                status=TransferStatus.PENDING.value,
            )
            self._session.add(transfer)
            self._session.flush()

            source_now = self._store.get(org, request.product_id, request.from_warehouse_id)
            seed_cost = Decimal(source_now.avg_cost_price) if source_now is not None else ZERO

            deltas = {
                request.from_warehouse_id: -request.quantity,
                request.to_warehouse_id: request.quantity,
            }
            records = {}
            for warehouse_id in sorted(deltas, key=str):
                records[warehouse_id] = self._store.apply_delta(
                    org,
                    request.product_id,
                    warehouse_id,
                    deltas[warehouse_id],
                    now,
                    seed_avg_cost=seed_cost,
                    policy=self._policy,
                )

            self._ledger.append(
                organization_id=org,
                product_id=request.product_id,
                warehouse_id=request.from_warehouse_id,
                movement_type=MovementType.TRANSFER_OUT,
                quantity=request.quantity,
                direction=-1,
                reference_id=transfer.id,
                reference_type=ReferenceType.STOCK_TRANSFER,
                now=now,
                remarks=request.reason,
            )
            self._ledger.append(
                organization_id=org,
                product_id=request.product_id,
                warehouse_id=request.to_warehouse_id,
                movement_type=MovementType.TRANSFER_IN,
                quantity=request.quantity,
                direction=1,
                reference_id=transfer.id,
                reference_type=ReferenceType.STOCK_TRANSFER,
                now=now,
                remarks=request.reason,
            )
            result = TransferInfo.from_model(transfer)

            logger.info(
                "transfer_applied",
                extra={
                    "transfer_id": str(transfer.id),
                    "quantity": request.quantity,
                    "source_quantity_after": records[request.from_warehouse_id].quantity,
                    "destination_quantity_after": records[request.to_warehouse_id].quantity,
                },
            )

        return result

    def update_transfer_status(
        self,
        organization_id: UUID | str,
        transfer_id: UUID | str,
        status: TransferStatus | str,
    ) -> TransferInfo:
        """
        Move a PENDING transfer to COMPLETED or CANCELLED.

        Inventory is not touched: the stock moved when the transfer was
        created, and cancelling leaves it where it is.

        Raises:
            InvalidTransferStatusError: unknown status value.
            TransferNotFoundError: no such transfer in the organization.
            InvalidStatusTransitionError: the transfer is not PENDING, or
                the target is PENDING.
        """
        organization_id = require_uuid(organization_id, "organization_id")
        transfer_id = require_uuid(transfer_id, "transfer_id")
        new_status = parse_transfer_status(status)

        with self._unit_of_work("update_transfer_status", organization_id):
            transfer = self._session.execute(
                select(StockTransfer)
                .where(
                    StockTransfer.id == transfer_id,
                    StockTransfer.organization_id == organization_id,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if transfer is None:
                raise TransferNotFoundError(str(transfer_id))

            current = TransferStatus(transfer.status)
            if new_status not in VALID_TRANSFER_TRANSITIONS[current]:
                raise InvalidStatusTransitionError(
                    str(transfer_id), current.value, new_status.value,
                )

            transfer.status = new_status.value
            self._session.flush()
            result = TransferInfo.from_model(transfer)

            if new_status == TransferStatus.CANCELLED:
                logger.warning(
                    "transfer_cancelled_stock_not_reversed",
                    extra={
                        "transfer_id": str(transfer_id),
                        "product_id": str(transfer.product_id),
                        "from_warehouse_id": str(transfer.from_warehouse_id),
                        "to_warehouse_id": str(transfer.to_warehouse_id),
                        "quantity": transfer.quantity,
                    },
                )
            else:
                logger.info(
                    "transfer_status_updated",
                    extra={"transfer_id": str(transfer_id), "status": new_status.value},
                )

        return result

    def delete_transfer(self, organization_id: UUID | str, transfer_id: UUID | str) -> NoReturn:
        """Always refused: the transfer's ledger entries reference it.

        Raises TransferNotFoundError for an unknown id, otherwise
        ImmutabilityViolationError.
        """
        organization_id = require_uuid(organization_id, "organization_id")
        transfer_id = require_uuid(transfer_id, "transfer_id")

        with self._unit_of_work("delete_transfer", organization_id):
            exists = self._session.execute(
                select(StockTransfer.id).where(
                    StockTransfer.id == transfer_id,
                    StockTransfer.organization_id == organization_id,
                )
            ).scalar_one_or_none()
            if exists is None:
                raise TransferNotFoundError(str(transfer_id))
            raise ImmutabilityViolationError(
                "StockTransfer", str(transfer_id),
                "transfers are referenced by stock ledger entries and cannot be deleted",
            )

    # ------------------------------------------------------------------
    # Purchase receipt
    # ------------------------------------------------------------------

    def receive_purchase(
        self,
        organization_id: UUID | str,
        purchase_id: UUID | str,
        items: Iterable[ReceiptLine | Mapping[str, Any]],
    ) -> PurchaseInfo:
        """
        Receive a purchase into stock.

        Postconditions:
            - Each item's record grew by its received quantity (created at
              that quantity when absent); a ``unit_cost`` updates the
              moving average cost.
            - One RECEIPT ledger entry per item, referencing the purchase.
            - The purchase status is RECEIVED.

        Raises:
            PurchaseNotFoundError: no such purchase in the organization.
            PurchaseAlreadyReceivedError: the purchase was received before.
            InvalidQuantityError: an item's received quantity is not > 0.
        """
        request = ReceivePurchaseRequest(
            organization_id=organization_id,
            purchase_id=purchase_id,
            items=tuple(items) if items is not None else None,
        )
        org = request.organization_id

        with self._unit_of_work("receive_purchase", org):
            purchase = self._session.execute(
                select(Purchase)
                .where(
                    Purchase.id == request.purchase_id,
                    Purchase.organization_id == org,
                )
                .with_for_update()
            ).scalar_one_or_none()
            if purchase is None:
                raise PurchaseNotFoundError(str(request.purchase_id))
            if purchase.status == PurchaseStatus.RECEIVED.value:
                raise PurchaseAlreadyReceivedError(str(request.purchase_id))

            now = self._clock.now()
            for item in request.items:
                self._warehouses.require_active(org, item.warehouse_id)
                record = self._store.apply_receipt(
                    org,
                    item.product_id,
                    item.warehouse_id,
                    item.received_quantity,
                    now,
                    unit_cost=item.unit_cost,
                )
                self._ledger.append(
                    organization_id=org,
                    product_id=item.product_id,
                    warehouse_id=item.warehouse_id,
                    movement_type=MovementType.RECEIPT,
                    quantity=item.received_quantity,
                    direction=1,
                    reference_id=purchase.id,
                    reference_type=ReferenceType.PURCHASE,
                    now=now,
                    remarks=f"Purchase {purchase.invoice_number}",
                )
                logger.debug(
                    "purchase_item_received",
                    extra={
                        "product_id": str(item.product_id),
                        "warehouse_id": str(item.warehouse_id),
                        "received_quantity": item.received_quantity,
                        "quantity_after": record.quantity,
                    },
                )

            purchase.status = PurchaseStatus.RECEIVED.value
            self._session.flush()
            result = PurchaseInfo.from_model(purchase)

            logger.info(
                "purchase_received",
                extra={
                    "purchase_id": str(purchase.id),
                    "invoice_number": purchase.invoice_number,
                    "item_count": len(request.items),
                },
            )

        return result
