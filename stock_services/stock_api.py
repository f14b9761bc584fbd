"""
StockApi -- in-process JSON facade over the stock kernel.

Responsibility:
    Accepts the camelCase request bodies and query parameters of the stock
    HTTP contract, runs each command inside one ``session_scope()``, and
    returns an ``ApiResponse`` whose body is either the camelCase entity /
    list / summary or the uniform error envelope
    ``{"error": <message>, "code": <CODE>, "status": <int>}``.

Architecture position:
    Services -- outermost layer.  Wires configuration into the kernel
    (policy, clock, session factory).  The kernel never imports from here.

Error propagation:
    ValidationError    -> 400
    NotFoundError      -> 404
    StateError         -> 409
    ImmutabilityError  -> 409
    PersistenceError   -> 500 (rolled back; no automatic retry)
    SQLAlchemyError    -> 500 (rolled back)
    Anything else propagates: it is a defect, not a client error.

Non-goals:
    - Not an HTTP server; routing and authentication live in the caller.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from stock_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    session_scope,
)
from stock_kernel.db.immutability import register_immutability_listeners
from stock_kernel.domain.clock import Clock, SystemClock
from stock_kernel.domain.validation import require_uuid
from stock_kernel.domain.values import NegativeStockPolicy
from stock_kernel.exceptions import (
    ImmutabilityError,
    NotFoundError,
    StateError,
    StockKernelError,
    ValidationError,
)
from stock_kernel.logging_config import LogContext, configure_logging, get_logger
from stock_kernel.selectors.inventory_selector import InventorySelector
from stock_kernel.selectors.ledger_selector import LedgerSelector
from stock_kernel.selectors.movement_selector import MovementSelector
from stock_kernel.selectors.report_selector import ReportSelector
from stock_kernel.selectors.warehouse_selector import WarehouseSelector
from stock_kernel.services.movement_engine import MovementEngine
from stock_kernel.services.warehouse_service import WarehouseService
from stock_services.serialization import serialize, serialize_many

logger = get_logger("services.stock_api")


@dataclass(frozen=True)
class ApiResponse:
    status: int
    body: Any

    @property
    def ok(self) -> bool:
        return self.status < 400


def status_for(exc: Exception) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, (StateError, ImmutabilityError)):
        return 409
    return 500


def error_envelope(exc: Exception) -> dict[str, Any]:
    status = status_for(exc)
    if isinstance(exc, StockKernelError):
        return {"error": str(exc), "code": exc.code, "status": status}
    # Driver messages can carry SQL and parameters; keep them in the log only.
    return {"error": "Internal server error", "code": "INTERNAL_ERROR", "status": status}


def _optional(params: Mapping[str, Any] | None, name: str) -> Any:
    if not params:
        return None
    value = params.get(name)
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _parse_moment(name: str, value: str) -> date | datetime:
    """A bare ISO date filters by whole day; a timestamp is used as given."""
    try:
        if len(value) == 10:
            return date.fromisoformat(value)
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid {name}: {value!r}") from exc


def _flag(value: Any) -> bool | None:
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in ("1", "true", "yes", "on"):
        return True
    if text in ("0", "false", "no", "off"):
        return False
    raise ValidationError(f"Invalid boolean value: {value!r}")


class StockApi:
    """
    JSON facade over MovementEngine, WarehouseService and the selectors.

    Every public method takes a request body (commands) or query parameters
    (reads) as a mapping and returns an ApiResponse.  ``handle(action, ...)``
    routes the action names of the original HTTP contract.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        clock: Clock | None = None,
        negative_stock_policy: NegativeStockPolicy | str = NegativeStockPolicy.ALLOW,
    ):
        self._session_factory = session_factory or get_session_factory()
        self._clock = clock or SystemClock()
        self._policy = NegativeStockPolicy(negative_stock_policy)
        self._routes: dict[str, Callable[[Mapping[str, Any]], ApiResponse]] = {
            # reads
            "warehouses": self.list_warehouses,
            "warehouse-detail": self.get_warehouse,
            "inventory": self.list_inventory,
            "inventory-detail": self.get_inventory,
            "inventory-alerts": self.low_stock_alerts,
            "stock-ledger": self.list_ledger,
            "stock-ledger-detail": self.get_ledger_entry,
            "stock-ledger-verify": self.verify_ledger,
            "stock-transfers": self.list_transfers,
            "stock-transfer-detail": self.get_transfer,
            "stock-adjustments": self.list_adjustments,
            "stock-adjustment-detail": self.get_adjustment,
            "reports-stock-valuation": self.stock_valuation,
            "reports-day-end-stock": self.day_end_stock,
            # commands
            "warehouse-create": self.create_warehouse,
            "warehouse-update": self.update_warehouse,
            "warehouse-delete": self.delete_warehouse,
            "inventory-adjust": self.adjust_inventory,
            "stock-transfer": self.transfer_stock,
            "stock-transfer-update": self.update_transfer_status,
            "stock-adjustment-update": self.update_adjustment,
            "stock-adjustment-delete": self.delete_adjustment,
            "stock-transfer-delete": self.delete_transfer,
            "purchase-receive": self.receive_purchase,
        }

    @classmethod
    def from_config(cls, config, clock: Clock | None = None, create_schema: bool = False) -> StockApi:
        """Initialise logging and the engine from a ``stock_config.StockConfig``."""
        configure_logging(level=config.logging.level)
        init_engine_from_url(
            config.database.url,
            echo=config.database.echo,
            pool_size=config.database.pool_size,
            max_overflow=config.database.max_overflow,
            pool_timeout=config.database.pool_timeout,
            pool_recycle=config.database.pool_recycle,
        )
        if create_schema:
            create_tables()
        register_immutability_listeners()
        return cls(
            get_session_factory(),
            clock=clock,
            negative_stock_policy=config.policy.negative_stock_policy,
        )

    # ------------------------------------------------------------------
    # Plumbing
    # ------------------------------------------------------------------

    def handle(self, action: str, payload: Mapping[str, Any] | None = None) -> ApiResponse:
        route = self._routes.get(action)
        if route is None:
            return ApiResponse(
                400, {"error": "Invalid action", "code": "INVALID_ACTION", "status": 400},
            )
        return route(payload or {})

    def _engine(self, session: Session) -> MovementEngine:
        return MovementEngine(
            session,
            clock=self._clock,
            negative_stock_policy=self._policy,
            auto_commit=False,
        )

    def _execute(
        self,
        operation: str,
        fn: Callable[[Session], Any],
        success_status: int = 200,
    ) -> ApiResponse:
        with LogContext.bind(operation=operation):
            try:
                with session_scope(self._session_factory) as session:
                    body = fn(session)
            except StockKernelError as exc:
                status = status_for(exc)
                log = logger.error if status >= 500 else logger.info
                log(
                    "api_request_failed",
                    extra={"status": status, "error_code": exc.code, "error": str(exc)},
                )
                return ApiResponse(status, error_envelope(exc))
            except SQLAlchemyError as exc:
                logger.error("api_request_failed", exc_info=True, extra={"status": 500})
                return ApiResponse(500, error_envelope(exc))
        return ApiResponse(success_status, body)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def adjust_inventory(self, body: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "adjust_inventory",
            lambda session: serialize(
                self._engine(session).adjust_inventory(
                    organization_id=body.get("organizationId"),
                    product_id=body.get("productId"),
                    warehouse_id=body.get("warehouseId"),
                    quantity=body.get("quantity"),
                    adjustment_type=body.get("adjustmentType"),
                    reason=body.get("reason"),
                )
            ),
            success_status=201,
        )

    def update_adjustment(self, body: Mapping[str, Any]) -> ApiResponse:
        # an absent "reason" key leaves the stored reason alone
        changes = {"reason": body["reason"]} if "reason" in body else {}
        return self._execute(
            "update_adjustment",
            lambda session: serialize(
                self._engine(session).update_adjustment(
                    organization_id=body.get("organizationId"),
                    adjustment_id=body.get("id") or body.get("adjustmentId"),
                    quantity=body.get("quantity"),
                    adjustment_type=body.get("adjustmentType"),
                    **changes,
                )
            ),
        )

    def delete_adjustment(self, body: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "delete_adjustment",
            lambda session: self._engine(session).delete_adjustment(
                organization_id=body.get("organizationId"),
                adjustment_id=body.get("id") or body.get("adjustmentId"),
            ),
        )

    def delete_transfer(self, body: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "delete_transfer",
            lambda session: self._engine(session).delete_transfer(
                organization_id=body.get("organizationId"),
                transfer_id=body.get("transferId") or body.get("id"),
            ),
        )

    def transfer_stock(self, body: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "transfer_stock",
            lambda session: serialize(
                self._engine(session).transfer_stock(
                    organization_id=body.get("organizationId"),
                    product_id=body.get("productId"),
                    from_warehouse_id=body.get("fromWarehouseId"),
                    to_warehouse_id=body.get("toWarehouseId"),
                    quantity=body.get("quantity"),
                    reason=body.get("reason"),
                )
            ),
            success_status=201,
        )

    def update_transfer_status(self, body: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "update_transfer_status",
            lambda session: serialize(
                self._engine(session).update_transfer_status(
                    organization_id=body.get("organizationId"),
                    transfer_id=body.get("transferId") or body.get("id"),
                    status=body.get("status"),
                )
            ),
        )

    def receive_purchase(self, body: Mapping[str, Any]) -> ApiResponse:
        def run(session: Session) -> dict[str, Any]:
            items = body.get("items")
            if items is not None and not isinstance(items, (list, tuple)):
                raise ValidationError("items must be a list")
            lines = None
            if items is not None:
                if not all(isinstance(item, Mapping) for item in items):
                    raise ValidationError("each item must be an object")
                lines = [
                    {
                        "product_id": item.get("productId"),
                        "warehouse_id": item.get("warehouseId"),
                        "received_quantity": item.get("receivedQuantity"),
                        "unit_cost": item.get("unitCost"),
                    }
                    for item in items
                ]
            return serialize(
                self._engine(session).receive_purchase(
                    organization_id=body.get("organizationId"),
                    purchase_id=body.get("purchaseId"),
                    items=lines,
                )
            )

        return self._execute("receive_purchase", run)

    def create_warehouse(self, body: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "create_warehouse",
            lambda session: serialize(
                WarehouseService(session).create_warehouse(
                    organization_id=require_uuid(body.get("organizationId"), "organization_id"),
                    name=body.get("name"),
                    address=body.get("address"),
                    is_default=bool(_flag(body.get("isDefault"))),
                )
            ),
            success_status=201,
        )

    def update_warehouse(self, body: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "update_warehouse",
            lambda session: serialize(
                WarehouseService(session).update_warehouse(
                    organization_id=require_uuid(body.get("organizationId"), "organization_id"),
                    warehouse_id=require_uuid(body.get("id"), "id"),
                    name=body.get("name"),
                    address=body.get("address"),
                    is_default=_flag(body.get("isDefault")),
                    is_active=_flag(body.get("isActive")),
                )
            ),
        )

    def delete_warehouse(self, body: Mapping[str, Any]) -> ApiResponse:
        def run(session: Session) -> dict[str, Any]:
            warehouse_id = require_uuid(body.get("id"), "id")
            WarehouseService(session).delete_warehouse(
                require_uuid(body.get("organizationId"), "organization_id"),
                warehouse_id,
            )
            return {"id": str(warehouse_id), "deleted": True}

        return self._execute("delete_warehouse", run)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_warehouses(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "list_warehouses",
            lambda session: serialize_many(
                WarehouseSelector(session).list_warehouses(params.get("organizationId"))
            ),
        )

    def get_warehouse(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "get_warehouse",
            lambda session: serialize(
                WarehouseSelector(session).get_warehouse(
                    params.get("organizationId"), params.get("id"),
                )
            ),
        )

    def list_inventory(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "list_inventory",
            lambda session: serialize_many(
                InventorySelector(session).list_inventory(
                    params.get("organizationId"),
                    warehouse_id=_optional(params, "warehouseId"),
                    product_id=_optional(params, "productId"),
                )
            ),
        )

    def get_inventory(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "get_inventory",
            lambda session: serialize(
                InventorySelector(session).get_inventory(
                    params.get("organizationId"),
                    params.get("productId"),
                    params.get("warehouseId"),
                )
            ),
        )

    def low_stock_alerts(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "low_stock_alerts",
            lambda session: serialize_many(
                ReportSelector(session, self._clock).low_stock_alerts(
                    params.get("organizationId"),
                    warehouse_id=_optional(params, "warehouseId"),
                )
            ),
        )

    def list_ledger(self, params: Mapping[str, Any]) -> ApiResponse:
        def run(session: Session) -> list[dict[str, Any]]:
            def parse(name: str):
                value = _optional(params, name)
                if value is None or not isinstance(value, str):
                    return value
                return _parse_moment(name, value)

            return serialize_many(
                LedgerSelector(session).list_entries(
                    params.get("organizationId"),
                    product_id=_optional(params, "productId"),
                    warehouse_id=_optional(params, "warehouseId"),
                    date_from=parse("fromDate"),
                    date_to=parse("toDate"),
                )
            )

        return self._execute("list_ledger", run)

    def get_ledger_entry(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "get_ledger_entry",
            lambda session: serialize(
                LedgerSelector(session).get_entry(params.get("organizationId"), params.get("id"))
            ),
        )

    def verify_ledger(self, params: Mapping[str, Any]) -> ApiResponse:
        def run(session: Session) -> dict[str, Any]:
            discrepancies = LedgerSelector(session).verify_ledger(params.get("organizationId"))
            return {
                "consistent": not discrepancies,
                "discrepancies": serialize_many(discrepancies),
            }

        return self._execute("verify_ledger", run)

    def list_transfers(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "list_transfers",
            lambda session: serialize_many(
                MovementSelector(session).list_transfers(
                    params.get("organizationId"),
                    status=_optional(params, "status"),
                    product_id=_optional(params, "productId"),
                    from_warehouse_id=_optional(params, "fromWarehouseId"),
                    to_warehouse_id=_optional(params, "toWarehouseId"),
                )
            ),
        )

    def get_transfer(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "get_transfer",
            lambda session: serialize(
                MovementSelector(session).get_transfer(params.get("organizationId"), params.get("id"))
            ),
        )

    def list_adjustments(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "list_adjustments",
            lambda session: serialize_many(
                MovementSelector(session).list_adjustments(
                    params.get("organizationId"),
                    product_id=_optional(params, "productId"),
                    adjustment_type=_optional(params, "adjustmentType"),
                )
            ),
        )

    def get_adjustment(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "get_adjustment",
            lambda session: serialize(
                MovementSelector(session).get_adjustment(
                    params.get("organizationId"), params.get("id"),
                )
            ),
        )

    def stock_valuation(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "stock_valuation",
            lambda session: serialize(
                ReportSelector(session, self._clock).stock_valuation(
                    params.get("organizationId"),
                    warehouse_id=_optional(params, "warehouseId"),
                )
            ),
        )

    def day_end_stock(self, params: Mapping[str, Any]) -> ApiResponse:
        return self._execute(
            "day_end_stock",
            lambda session: serialize(
                ReportSelector(session, self._clock).day_end_stock(
                    params.get("organizationId"),
                    warehouse_id=_optional(params, "warehouseId"),
                )
            ),
        )
