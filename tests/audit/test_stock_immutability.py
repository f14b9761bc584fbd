"""
Append-only persistence of the stock ledger and of posted movements.

Verifies:
- StockLedgerEntry rows can be neither updated nor deleted
- StockAdjustment rows only accept a new reason
- StockTransfer rows only accept a new status or reason
"""

import pytest
from sqlalchemy import select

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.models.movements import StockAdjustment, StockTransfer
from stock_kernel.models.stock_ledger import StockLedgerEntry


@pytest.fixture
def posted(movement_engine, org_id, product_id, warehouses):
    w1, w2 = warehouses
    adjustment = movement_engine.adjust_inventory(org_id, product_id, w1.id, 9, "INCREASE")
    transfer = movement_engine.transfer_stock(org_id, product_id, w1.id, w2.id, 4)
    return adjustment, transfer


def _load(session, model, row_id):
    return session.execute(select(model).where(model.id == row_id)).scalar_one()


class TestLedgerEntryImmutability:

    def _entry(self, session, reference_id):
        return session.execute(
            select(StockLedgerEntry).where(StockLedgerEntry.reference_id == reference_id)
        ).scalars().first()

    def test_update_blocked(self, session, posted, captured_logs):
        adjustment, _ = posted
        entry = self._entry(session, adjustment.id)
        entry.quantity = 900

        with pytest.raises(ImmutabilityViolationError) as exc_info:
            session.flush()
        session.rollback()

        assert exc_info.value.entity_type == "StockLedgerEntry"
        assert any(r["message"] == "immutability_violation_blocked" for r in captured_logs())

    def test_delete_blocked(self, session, posted):
        adjustment, _ = posted
        session.delete(self._entry(session, adjustment.id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()


class TestAdjustmentImmutability:

    def test_reason_is_mutable(self, session, posted):
        adjustment, _ = posted
        row = _load(session, StockAdjustment, adjustment.id)
        row.reason = "recount"
        session.flush()

        assert _load(session, StockAdjustment, adjustment.id).reason == "recount"

    @pytest.mark.parametrize("field,value", [("quantity", 1), ("adjustment_type", "FOUND")])
    def test_posted_fields_frozen(self, session, posted, field, value):
        adjustment, _ = posted
        row = _load(session, StockAdjustment, adjustment.id)
        setattr(row, field, value)

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_blocked(self, session, posted):
        adjustment, _ = posted
        session.delete(_load(session, StockAdjustment, adjustment.id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()


class TestTransferImmutability:

    def test_status_is_mutable(self, session, posted):
        _, transfer = posted
        row = _load(session, StockTransfer, transfer.id)
        row.status = "COMPLETED"
        session.flush()

    def test_quantity_frozen(self, session, posted):
        _, transfer = posted
        row = _load(session, StockTransfer, transfer.id)
        row.quantity = 40

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()

    def test_delete_blocked(self, session, posted):
        _, transfer = posted
        session.delete(_load(session, StockTransfer, transfer.id))

        with pytest.raises(ImmutabilityViolationError):
            session.flush()
        session.rollback()
