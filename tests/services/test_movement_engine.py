"""
MovementEngine: adjustments, transfers, transfer status, purchase receipt
and the reason-only adjustment edit.

Every movement is checked on both stores it writes: the InventoryRecord
quantity and the stock ledger entries that explain it.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from stock_kernel.domain.values import (
    AdjustmentType,
    MovementType,
    PurchaseStatus,
    ReferenceType,
    TransferStatus,
)
from stock_kernel.exceptions import (
    AdjustmentImmutableError,
    AdjustmentNotFoundError,
    ImmutabilityViolationError,
    InsufficientStockError,
    InvalidAdjustmentTypeError,
    InvalidQuantityError,
    InvalidStatusTransitionError,
    InvalidTransferStatusError,
    MissingFieldError,
    PurchaseAlreadyReceivedError,
    PurchaseNotFoundError,
    SameWarehouseTransferError,
    TransferNotFoundError,
    WarehouseInactiveError,
    WarehouseNotFoundError,
)
from stock_kernel.selectors.inventory_selector import InventorySelector
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_kernel.services.inventory_store import InventoryRecordStore
from stock_kernel.services.warehouse_service import WarehouseService


def _quantity(session, org_id, product_id, warehouse_id) -> int:
    record = InventoryRecordStore(session).get(org_id, product_id, warehouse_id)
    return record.quantity if record is not None else 0


# =============================================================================
# Adjustments
# =============================================================================


class TestAdjustInventory:

    def test_increase_creates_record_and_entry(
        self, session, movement_engine, org_id, product_id, warehouses, clock,
    ):
        w1, _ = warehouses
        adjustment = movement_engine.adjust_inventory(
            org_id, product_id, w1.id, 10, "INCREASE", reason="opening count",
        )

        assert adjustment.adjustment_number == f"ADJ-{clock.epoch_millis()}"
        assert adjustment.adjustment_type is AdjustmentType.INCREASE
        assert adjustment.quantity == 10
        assert adjustment.reason == "opening count"
        assert _quantity(session, org_id, product_id, w1.id) == 10

        entries = LedgerSelector(session).entries_for_reference(org_id, adjustment.id)
        assert len(entries) == 1
        entry = entries[0]
        assert entry.movement_type is MovementType.ADJUSTMENT
        assert entry.reference_type is ReferenceType.STOCK_ADJUSTMENT
        assert entry.quantity == 10
        assert entry.signed_quantity == 10
        assert entry.remarks == "opening count"

    @pytest.mark.parametrize(
        "kind,expected",
        [("INCREASE", 15), ("FOUND", 15), ("DECREASE", 5), ("DAMAGE", 5), ("THEFT", 5)],
    )
    def test_sign_follows_type(
        self, session, movement_engine, org_id, product_id, warehouses, kind, expected,
    ):
        w1, _ = warehouses
        movement_engine.adjust_inventory(org_id, product_id, w1.id, 10, "INCREASE")
        movement_engine.adjust_inventory(org_id, product_id, w1.id, 5, kind)

        assert _quantity(session, org_id, product_id, w1.id) == expected

    def test_allow_policy_goes_negative(
        self, session, movement_engine, org_id, product_id, warehouses,
    ):
        w1, _ = warehouses
        movement_engine.adjust_inventory(org_id, product_id, w1.id, 3, "DECREASE")

        assert _quantity(session, org_id, product_id, w1.id) == -3
        assert LedgerSelector(session).replay_quantity(org_id, product_id, w1.id) == -3

    def test_reject_policy_rolls_back(
        self, session, strict_engine, org_id, product_id, warehouses, captured_logs,
    ):
        w1, _ = warehouses
        strict_engine.adjust_inventory(org_id, product_id, w1.id, 2, "INCREASE")

        with pytest.raises(InsufficientStockError):
            strict_engine.adjust_inventory(org_id, product_id, w1.id, 3, "THEFT")

        assert _quantity(session, org_id, product_id, w1.id) == 2
        assert len(MovementSelector(session).list_adjustments(org_id)) == 1
        assert len(LedgerSelector(session).list_entries(org_id)) == 1

        rolled_back = [r for r in captured_logs() if r["message"] == "movement_rolled_back"]
        assert rolled_back[0]["error_code"] == "INSUFFICIENT_STOCK"
        assert rolled_back[0]["operation"] == "adjust_inventory"
        assert rolled_back[0]["organization_id"] == str(org_id)

    @pytest.mark.parametrize(
        "quantity,kind,error",
        [
            (0, "INCREASE", InvalidQuantityError),
            (-4, "INCREASE", InvalidQuantityError),
            (2.5, "INCREASE", InvalidQuantityError),
            (None, "INCREASE", MissingFieldError),
            (5, "SHRINKAGE", InvalidAdjustmentTypeError),
        ],
    )
    def test_invalid_input_writes_nothing(
        self, session, movement_engine, org_id, product_id, warehouses, quantity, kind, error,
    ):
        w1, _ = warehouses
        with pytest.raises(error):
            movement_engine.adjust_inventory(org_id, product_id, w1.id, quantity, kind)

        assert MovementSelector(session).list_adjustments(org_id) == []
        assert LedgerSelector(session).list_entries(org_id) == []

    def test_unknown_warehouse(self, movement_engine, org_id, product_id, warehouses):
        with pytest.raises(WarehouseNotFoundError):
            movement_engine.adjust_inventory(org_id, product_id, uuid4(), 1, "INCREASE")

    def test_inactive_warehouse(
        self, session, movement_engine, org_id, product_id, warehouses,
    ):
        _, w2 = warehouses
        WarehouseService(session).update_warehouse(org_id, w2.id, is_active=False)

        with pytest.raises(WarehouseInactiveError):
            movement_engine.adjust_inventory(org_id, product_id, w2.id, 1, "INCREASE")

    def test_logs_carry_context(
        self, movement_engine, org_id, product_id, warehouses, captured_logs,
    ):
        w1, _ = warehouses
        movement_engine.adjust_inventory(org_id, product_id, w1.id, 4, "INCREASE")

        applied = [r for r in captured_logs() if r["message"] == "adjustment_applied"]
        assert len(applied) == 1
        assert applied[0]["organization_id"] == str(org_id)
        assert applied[0]["operation"] == "adjust_inventory"
        assert applied[0]["delta"] == 4
        assert applied[0]["quantity_after"] == 4


class TestUpdateAdjustment:

    @pytest.fixture
    def adjustment(self, movement_engine, org_id, product_id, warehouses):
        w1, _ = warehouses
        return movement_engine.adjust_inventory(
            org_id, product_id, w1.id, 6, "DAMAGE", reason="forklift",
        )

    def test_reason_can_change(self, movement_engine, org_id, adjustment):
        updated = movement_engine.update_adjustment(
            org_id, adjustment.id, reason="dropped pallet",
        )
        assert updated.reason == "dropped pallet"
        assert updated.quantity == 6

    def test_unchanged_quantity_and_type_accepted(self, movement_engine, org_id, adjustment):
        updated = movement_engine.update_adjustment(
            org_id, adjustment.id, reason="x", quantity=6, adjustment_type="damage",
        )
        assert updated.reason == "x"

    def test_quantity_change_rejected(
        self, session, movement_engine, org_id, product_id, warehouses, adjustment,
    ):
        w1, _ = warehouses
        with pytest.raises(AdjustmentImmutableError) as exc_info:
            movement_engine.update_adjustment(org_id, adjustment.id, quantity=9)

        assert exc_info.value.fields == ["quantity"]
        assert _quantity(session, org_id, product_id, w1.id) == -6

    def test_type_change_rejected(self, movement_engine, org_id, adjustment):
        with pytest.raises(AdjustmentImmutableError) as exc_info:
            movement_engine.update_adjustment(
                org_id, adjustment.id, quantity=1, adjustment_type="FOUND",
            )
        assert exc_info.value.fields == ["quantity", "adjustment_type"]

    def test_unknown_adjustment(self, movement_engine, org_id):
        with pytest.raises(AdjustmentNotFoundError):
            movement_engine.update_adjustment(org_id, uuid4(), reason="x")

    def test_other_organization_cannot_edit(self, movement_engine, adjustment):
        with pytest.raises(AdjustmentNotFoundError):
            movement_engine.update_adjustment(uuid4(), adjustment.id, reason="x")

    def test_reason_untouched_when_omitted(self, movement_engine, org_id, adjustment):
        updated = movement_engine.update_adjustment(org_id, adjustment.id, quantity=6)
        assert updated.reason == "forklift"

    def test_explicit_none_clears_reason(self, movement_engine, org_id, adjustment):
        updated = movement_engine.update_adjustment(org_id, adjustment.id, reason=None)
        assert updated.reason is None

    def test_delete_refused(
        self, session, movement_engine, org_id, product_id, warehouses, adjustment,
    ):
        w1, _ = warehouses
        with pytest.raises(ImmutabilityViolationError) as exc_info:
            movement_engine.delete_adjustment(org_id, adjustment.id)

        assert exc_info.value.entity_type == "StockAdjustment"
        assert MovementSelector(session).get_adjustment(org_id, adjustment.id).id == adjustment.id
        assert _quantity(session, org_id, product_id, w1.id) == -6

    def test_delete_unknown(self, movement_engine, org_id):
        with pytest.raises(AdjustmentNotFoundError):
            movement_engine.delete_adjustment(org_id, uuid4())


# =============================================================================
# Transfers
# =============================================================================


class TestTransferStock:

    def test_conservation(self, session, movement_engine, org_id, product_id, warehouses):
        w1, w2 = warehouses
        movement_engine.adjust_inventory(org_id, product_id, w1.id, 50, "INCREASE")

        transfer = movement_engine.transfer_stock(
            org_id, product_id, w1.id, w2.id, 20, reason="rebalance",
        )

        assert transfer.status is TransferStatus.PENDING
        assert transfer.quantity == 20
        assert _quantity(session, org_id, product_id, w1.id) == 30
        assert _quantity(session, org_id, product_id, w2.id) == 20

    def test_ledger_pair(self, session, movement_engine, org_id, product_id, warehouses):
        w1, w2 = warehouses
        transfer = movement_engine.transfer_stock(org_id, product_id, w1.id, w2.id, 8)

        entries = LedgerSelector(session).entries_for_reference(org_id, transfer.id)
        assert [(e.movement_type, e.warehouse_id, e.signed_quantity) for e in entries] == [
            (MovementType.TRANSFER_OUT, w1.id, -8),
            (MovementType.TRANSFER_IN, w2.id, 8),
        ]
        assert all(e.reference_type is ReferenceType.STOCK_TRANSFER for e in entries)
        assert sum(e.signed_quantity for e in entries) == 0

    def test_new_destination_inherits_source_cost(
        self, session, movement_engine, org_id, product_id, warehouses, clock,
    ):
        w1, w2 = warehouses
        InventoryRecordStore(session).upsert(
            org_id, product_id, w1.id, 10, clock.now(), new_avg_cost=Decimal("7.5"),
        )

        movement_engine.transfer_stock(org_id, product_id, w1.id, w2.id, 4)

        destination = InventorySelector(session).get_inventory(org_id, product_id, w2.id)
        assert destination.quantity == 4
        assert destination.avg_cost_price == Decimal("7.5")

    def test_existing_destination_keeps_its_cost(
        self, session, movement_engine, org_id, product_id, warehouses, clock,
    ):
        w1, w2 = warehouses
        store = InventoryRecordStore(session)
        store.upsert(org_id, product_id, w1.id, 10, clock.now(), new_avg_cost=Decimal("7.5"))
        store.upsert(org_id, product_id, w2.id, 1, clock.now(), new_avg_cost=Decimal("3"))

        movement_engine.transfer_stock(org_id, product_id, w1.id, w2.id, 4)

        destination = InventorySelector(session).get_inventory(org_id, product_id, w2.id)
        assert destination.quantity == 5
        assert destination.avg_cost_price == Decimal("3")

    def test_missing_source_transfers_at_zero_cost(
        self, session, movement_engine, org_id, product_id, warehouses,
    ):
        w1, w2 = warehouses
        movement_engine.transfer_stock(org_id, product_id, w1.id, w2.id, 2)

        assert _quantity(session, org_id, product_id, w1.id) == -2
        destination = InventorySelector(session).get_inventory(org_id, product_id, w2.id)
        assert destination.avg_cost_price == Decimal("0")

    def test_same_warehouse_rejected(self, session, movement_engine, org_id, product_id, warehouses):
        w1, _ = warehouses
        with pytest.raises(SameWarehouseTransferError):
            movement_engine.transfer_stock(org_id, product_id, w1.id, str(w1.id), 1)
        assert MovementSelector(session).list_transfers(org_id) == []

    def test_reject_policy_leaves_both_sides(
        self, session, strict_engine, org_id, product_id, warehouses,
    ):
        w1, w2 = warehouses
        strict_engine.adjust_inventory(org_id, product_id, w1.id, 3, "INCREASE")

        with pytest.raises(InsufficientStockError):
            strict_engine.transfer_stock(org_id, product_id, w1.id, w2.id, 4)

        assert _quantity(session, org_id, product_id, w1.id) == 3
        assert InventoryRecordStore(session).get(org_id, product_id, w2.id) is None
        assert MovementSelector(session).list_transfers(org_id) == []

    def test_warehouse_of_other_organization(
        self, movement_engine, create_warehouse, org_id, product_id, warehouses,
    ):
        w1, _ = warehouses
        foreign = create_warehouse(uuid4(), "Elsewhere")
        with pytest.raises(WarehouseNotFoundError):
            movement_engine.transfer_stock(org_id, product_id, w1.id, foreign.id, 1)


class TestUpdateTransferStatus:

    @pytest.fixture
    def transfer(self, movement_engine, org_id, product_id, warehouses):
        w1, w2 = warehouses
        movement_engine.adjust_inventory(org_id, product_id, w1.id, 10, "INCREASE")
        return movement_engine.transfer_stock(org_id, product_id, w1.id, w2.id, 6)

    def test_complete(self, movement_engine, org_id, transfer):
        updated = movement_engine.update_transfer_status(org_id, transfer.id, "COMPLETED")
        assert updated.status is TransferStatus.COMPLETED

    def test_delete_refused(self, session, movement_engine, org_id, transfer):
        with pytest.raises(ImmutabilityViolationError):
            movement_engine.delete_transfer(org_id, transfer.id)
        assert MovementSelector(session).get_transfer(org_id, transfer.id).status is TransferStatus.PENDING

        with pytest.raises(TransferNotFoundError):
            movement_engine.delete_transfer(uuid4(), transfer.id)

    def test_cancel_does_not_reverse_stock(
        self, session, movement_engine, org_id, product_id, warehouses, transfer, captured_logs,
    ):
        w1, w2 = warehouses
        updated = movement_engine.update_transfer_status(org_id, transfer.id, "cancelled")

        assert updated.status is TransferStatus.CANCELLED
        assert _quantity(session, org_id, product_id, w1.id) == 4
        assert _quantity(session, org_id, product_id, w2.id) == 6

        warnings = [
            r for r in captured_logs()
            if r["message"] == "transfer_cancelled_stock_not_reversed"
        ]
        assert warnings[0]["level"] == "WARNING"
        assert warnings[0]["quantity"] == 6

    @pytest.mark.parametrize("first,second", [
        ("COMPLETED", "CANCELLED"),
        ("CANCELLED", "COMPLETED"),
        ("COMPLETED", "COMPLETED"),
    ])
    def test_terminal_states(self, movement_engine, org_id, transfer, first, second):
        movement_engine.update_transfer_status(org_id, transfer.id, first)
        with pytest.raises(InvalidStatusTransitionError):
            movement_engine.update_transfer_status(org_id, transfer.id, second)

    def test_pending_to_pending_rejected(self, movement_engine, org_id, transfer):
        with pytest.raises(InvalidStatusTransitionError):
            movement_engine.update_transfer_status(org_id, transfer.id, "PENDING")

    def test_unknown_status(self, movement_engine, org_id, transfer):
        with pytest.raises(InvalidTransferStatusError):
            movement_engine.update_transfer_status(org_id, transfer.id, "SHIPPED")

    def test_unknown_transfer(self, movement_engine, org_id):
        with pytest.raises(TransferNotFoundError):
            movement_engine.update_transfer_status(org_id, uuid4(), "COMPLETED")


# =============================================================================
# Purchase receipt
# =============================================================================


class TestReceivePurchase:

    def test_receipt_applies_items(
        self, session, movement_engine, create_purchase, org_id, warehouses,
    ):
        w1, w2 = warehouses
        p1, p2 = uuid4(), uuid4()
        purchase = create_purchase(org_id, invoice_number="INV-77")

        result = movement_engine.receive_purchase(org_id, purchase.id, [
            {"product_id": p1, "warehouse_id": w1.id, "received_quantity": 12, "unit_cost": "2.5"},
            {"product_id": p2, "warehouse_id": w2.id, "received_quantity": 3},
        ])

        assert result.status is PurchaseStatus.RECEIVED
        assert _quantity(session, org_id, p1, w1.id) == 12
        assert _quantity(session, org_id, p2, w2.id) == 3
        assert InventorySelector(session).get_inventory(
            org_id, p1, w1.id,
        ).avg_cost_price == Decimal("2.5")

        entries = LedgerSelector(session).entries_for_reference(org_id, purchase.id)
        assert len(entries) == 2
        assert all(e.movement_type is MovementType.RECEIPT for e in entries)
        assert all(e.reference_type is ReferenceType.PURCHASE for e in entries)
        assert all(e.remarks == "Purchase INV-77" for e in entries)

    def test_second_receipt_rejected(
        self, session, movement_engine, create_purchase, org_id, product_id, warehouses,
    ):
        w1, _ = warehouses
        purchase = create_purchase(org_id)
        items = [{"product_id": product_id, "warehouse_id": w1.id, "received_quantity": 5}]
        movement_engine.receive_purchase(org_id, purchase.id, items)

        with pytest.raises(PurchaseAlreadyReceivedError):
            movement_engine.receive_purchase(org_id, purchase.id, items)

        assert _quantity(session, org_id, product_id, w1.id) == 5
        assert len(LedgerSelector(session).entries_for_reference(org_id, purchase.id)) == 1

    def test_missing_purchase(self, movement_engine, org_id, product_id, warehouses):
        w1, _ = warehouses
        with pytest.raises(PurchaseNotFoundError):
            movement_engine.receive_purchase(org_id, uuid4(), [
                {"product_id": product_id, "warehouse_id": w1.id, "received_quantity": 1},
            ])

    def test_purchase_of_other_organization(
        self, movement_engine, create_purchase, org_id, product_id, warehouses,
    ):
        w1, _ = warehouses
        purchase = create_purchase(uuid4())
        with pytest.raises(PurchaseNotFoundError):
            movement_engine.receive_purchase(org_id, purchase.id, [
                {"product_id": product_id, "warehouse_id": w1.id, "received_quantity": 1},
            ])

    def test_invalid_item_rejected_before_write(
        self, session, movement_engine, create_purchase, org_id, product_id, warehouses,
    ):
        w1, _ = warehouses
        purchase = create_purchase(org_id)
        with pytest.raises(InvalidQuantityError):
            movement_engine.receive_purchase(org_id, purchase.id, [
                {"product_id": product_id, "warehouse_id": w1.id, "received_quantity": 0},
            ])
        assert InventoryRecordStore(session).get(org_id, product_id, w1.id) is None

    def test_failing_item_rolls_back_whole_receipt(
        self, session, movement_engine, create_purchase, org_id, product_id, warehouses,
    ):
        w1, _ = warehouses
        purchase = create_purchase(org_id)
        with pytest.raises(WarehouseNotFoundError):
            movement_engine.receive_purchase(org_id, purchase.id, [
                {"product_id": product_id, "warehouse_id": w1.id, "received_quantity": 4},
                {"product_id": product_id, "warehouse_id": uuid4(), "received_quantity": 4},
            ])

        assert InventoryRecordStore(session).get(org_id, product_id, w1.id) is None
        assert LedgerSelector(session).entries_for_reference(org_id, purchase.id) == []
