"""
ORM-level immutability enforcement for the stock ledger.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity              | When Immutable              | Why
--------------------|-----------------------------|-------------------------------------
StockLedgerEntry    | ALWAYS (from creation)      | Replay must reproduce inventory
StockAdjustment     | quantity / type / key cols  | Already posted to the ledger
StockAdjustment     | DELETE always               | Ledger entries reference it
StockTransfer       | key / quantity columns      | Already posted to the ledger
StockTransfer       | DELETE always               | Ledger entries reference it

SQLAlchemy fires ``before_update`` / ``before_delete`` before SQL reaches the
database.  Each check raises ImmutabilityViolationError, which aborts the
flush; the surrounding transaction is rolled back by its owner.

updated_at is audit metadata and may always change.  StockAdjustment.reason
and StockTransfer.status/reason are the only mutable business fields.

===============================================================================
USAGE
===============================================================================

    from stock_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()  # once, at startup

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()
"""

from sqlalchemy import event, inspect

from stock_kernel.exceptions import ImmutabilityViolationError
from stock_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_ADJUSTMENT_FROZEN_FIELDS = (
    "adjustment_number",
    "adjustment_date",
    "organization_id",
    "product_id",
    "warehouse_id",
    "adjustment_type",
    "quantity",
)

_TRANSFER_FROZEN_FIELDS = (
    "organization_id",
    "product_id",
    "from_warehouse_id",
    "to_warehouse_id",
    "quantity",
    "transfer_date",
)


def _blocked(entity_type: str, target, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _changed_fields(target, field_names) -> list[str]:
    state = inspect(target)
    return [
        name for name in field_names
        if state.attrs[name].history.has_changes()
    ]


def _check_ledger_entry_update(mapper, connection, target):
    """Stock ledger entries are never updated."""
    _blocked(
        "StockLedgerEntry", target, "UPDATE",
        "Stock ledger entries are append-only and cannot be modified",
    )


def _check_ledger_entry_delete(mapper, connection, target):
    """Stock ledger entries are never deleted."""
    _blocked(
        "StockLedgerEntry", target, "DELETE",
        "Stock ledger entries are append-only and cannot be deleted",
    )


def _check_adjustment_update(mapper, connection, target):
    """Only the free-text reason of an adjustment may change."""
    changed = _changed_fields(target, _ADJUSTMENT_FROZEN_FIELDS)
    if changed:
        _blocked(
            "StockAdjustment", target, "UPDATE",
            f"Posted adjustment fields cannot change: {', '.join(changed)}",
        )


def _check_adjustment_delete(mapper, connection, target):
    _blocked(
        "StockAdjustment", target, "DELETE",
        "Adjustments are referenced by the stock ledger and cannot be deleted",
    )


def _check_transfer_update(mapper, connection, target):
    """Status and reason may change; the moved quantity and its key may not."""
    changed = _changed_fields(target, _TRANSFER_FROZEN_FIELDS)
    if changed:
        _blocked(
            "StockTransfer", target, "UPDATE",
            f"Posted transfer fields cannot change: {', '.join(changed)}",
        )


def _check_transfer_delete(mapper, connection, target):
    _blocked(
        "StockTransfer", target, "DELETE",
        "Transfers are referenced by the stock ledger and cannot be deleted",
    )


_LISTENERS = (
    ("StockLedgerEntry", "before_update", _check_ledger_entry_update),
    ("StockLedgerEntry", "before_delete", _check_ledger_entry_delete),
    ("StockAdjustment", "before_update", _check_adjustment_update),
    ("StockAdjustment", "before_delete", _check_adjustment_delete),
    ("StockTransfer", "before_update", _check_transfer_update),
    ("StockTransfer", "before_delete", _check_transfer_delete),
)


def _models() -> dict:
    from stock_kernel.models.movements import StockAdjustment, StockTransfer
    from stock_kernel.models.stock_ledger import StockLedgerEntry

    return {
        "StockLedgerEntry": StockLedgerEntry,
        "StockAdjustment": StockAdjustment,
        "StockTransfer": StockTransfer,
    }


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners (idempotent).

    Call this after all models are imported but before any database
    operations begin.
    """
    models = _models()
    for model_name, event_name, listener_fn in _LISTENERS:
        target = models[model_name]
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    models = _models()
    for model_name, event_name, listener_fn in _LISTENERS:
        target = models[model_name]
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
