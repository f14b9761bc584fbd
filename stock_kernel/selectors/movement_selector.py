"""
Module: stock_kernel.selectors.movement_selector
Responsibility: Read-only access to stock adjustments and stock transfers.
Architecture position: Kernel > Selectors.

Listings are newest first by their business date (adjustment_date,
transfer_date), with the creation timestamp as a tie-breaker.
"""

from uuid import UUID

from sqlalchemy import select

from stock_kernel.domain.dtos import AdjustmentInfo, TransferInfo
from stock_kernel.domain.validation import (
    optional_uuid,
    parse_adjustment_type,
    parse_transfer_status,
    require_uuid,
)
from stock_kernel.domain.values import AdjustmentType, TransferStatus
from stock_kernel.exceptions import AdjustmentNotFoundError, TransferNotFoundError
from stock_kernel.models.movements import StockAdjustment, StockTransfer
from stock_kernel.selectors.base import BaseSelector


class MovementSelector(BaseSelector[StockAdjustment]):
    """Selector for adjustments and transfers."""

    def list_adjustments(
        self,
        organization_id: UUID | str,
        product_id: UUID | str | None = None,
        adjustment_type: AdjustmentType | str | None = None,
    ) -> list[AdjustmentInfo]:
        query = select(StockAdjustment).where(
            StockAdjustment.organization_id
            == require_uuid(organization_id, "organization_id")
        )
        product_id = optional_uuid(product_id, "product_id")
        if product_id is not None:
            query = query.where(StockAdjustment.product_id == product_id)
        if adjustment_type:
            query = query.where(
                StockAdjustment.adjustment_type
                == parse_adjustment_type(adjustment_type).value
            )

        query = query.order_by(
            StockAdjustment.adjustment_date.desc(),
            StockAdjustment.created_at.desc(),
        )
        return [
            AdjustmentInfo.from_model(adjustment)
            for adjustment in self.session.execute(query).scalars()
        ]

    def get_adjustment(
        self,
        organization_id: UUID | str,
        adjustment_id: UUID | str,
    ) -> AdjustmentInfo:
        adjustment_id = require_uuid(adjustment_id, "adjustment_id")
        adjustment = self.session.execute(
            select(StockAdjustment).where(
                StockAdjustment.id == adjustment_id,
                StockAdjustment.organization_id
                == require_uuid(organization_id, "organization_id"),
            )
        ).scalar_one_or_none()
        if adjustment is None:
            raise AdjustmentNotFoundError(str(adjustment_id))
        return AdjustmentInfo.from_model(adjustment)

    def list_transfers(
        self,
        organization_id: UUID | str,
        status: TransferStatus | str | None = None,
        product_id: UUID | str | None = None,
        from_warehouse_id: UUID | str | None = None,
        to_warehouse_id: UUID | str | None = None,
    ) -> list[TransferInfo]:
        query = select(StockTransfer).where(
            StockTransfer.organization_id
            == require_uuid(organization_id, "organization_id")
        )
        if status:
            query = query.where(StockTransfer.status == parse_transfer_status(status).value)
        product_id = optional_uuid(product_id, "product_id")
        if product_id is not None:
            query = query.where(StockTransfer.product_id == product_id)
        from_warehouse_id = optional_uuid(from_warehouse_id, "from_warehouse_id")
        if from_warehouse_id is not None:
            query = query.where(StockTransfer.from_warehouse_id == from_warehouse_id)
        to_warehouse_id = optional_uuid(to_warehouse_id, "to_warehouse_id")
        if to_warehouse_id is not None:
            query = query.where(StockTransfer.to_warehouse_id == to_warehouse_id)

        query = query.order_by(
            StockTransfer.transfer_date.desc(),
            StockTransfer.created_at.desc(),
        )
        return [
            TransferInfo.from_model(transfer)
            for transfer in self.session.execute(query).scalars()
        ]

    def get_transfer(
        self,
        organization_id: UUID | str,
        transfer_id: UUID | str,
    ) -> TransferInfo:
        transfer_id = require_uuid(transfer_id, "transfer_id")
        transfer = self.session.execute(
            select(StockTransfer).where(
                StockTransfer.id == transfer_id,
                StockTransfer.organization_id
                == require_uuid(organization_id, "organization_id"),
            )
        ).scalar_one_or_none()
        if transfer is None:
            raise TransferNotFoundError(str(transfer_id))
        return TransferInfo.from_model(transfer)
