"""
Module: stock_kernel.selectors.ledger_selector
Responsibility: Read-only stock ledger queries and ledger replay.  The ledger
    is the audit trail of every quantity change; replaying a key's entries
    from zero must reproduce the stored InventoryRecord quantity.
Architecture position: Kernel > Selectors.  May import from models/, domain/
    and selectors/base.py.

Invariants enforced:
    - Newest first: listings are ordered by seq descending, the append order
      assigned by SequenceService.
    - Replay: replay_quantity() is the signed sum of a key's entries;
      verify_ledger() reports every key whose stored quantity differs.

Failure modes:
    - LedgerEntryNotFoundError from get_entry() for an unknown id or an entry
      of another organization.
    - Records written through InventoryRecordStore.upsert() (administrative
      overwrite, no ledger entry) show up as discrepancies.

Audit relevance:
    verify_ledger() is the reconciliation check between the two stores a
    movement writes.  An empty result means every position is explained by
    the ledger.
"""

from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from sqlalchemy import func, select

from stock_kernel.domain.dtos import LedgerEntryInfo, ReplayDiscrepancy
from stock_kernel.domain.validation import optional_uuid, require_uuid
from stock_kernel.exceptions import LedgerEntryNotFoundError
from stock_kernel.models.inventory import InventoryRecord
from stock_kernel.models.stock_ledger import StockLedgerEntry
from stock_kernel.selectors.base import BaseSelector


def _lower_bound(value: date | datetime) -> datetime:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    return datetime.combine(value, time.min, tzinfo=timezone.utc)


def _upper_bound(value: date | datetime) -> tuple[datetime, bool]:
    """Upper bound and whether it is inclusive.  A bare date covers the whole day."""
    if isinstance(value, datetime):
        return (value if value.tzinfo else value.replace(tzinfo=timezone.utc)), True
    return datetime.combine(value + timedelta(days=1), time.min, tzinfo=timezone.utc), False


class LedgerSelector(BaseSelector[StockLedgerEntry]):
    """
    Selector for the stock ledger.

    Guarantees:
        - Entries are returned as LedgerEntryInfo DTOs.
        - replay_quantity() never reads InventoryRecord.
    """

    def list_entries(
        self,
        organization_id: UUID | str,
        product_id: UUID | str | None = None,
        warehouse_id: UUID | str | None = None,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None,
        limit: int | None = None,
    ) -> list[LedgerEntryInfo]:
        """
        Ledger entries of the organization, newest first.

        Args:
            date_from: Inclusive lower bound on created_at.
            date_to: Inclusive upper bound on created_at; a date covers the
                whole day (UTC).
        """
        query = select(StockLedgerEntry).where(
            StockLedgerEntry.organization_id
            == require_uuid(organization_id, "organization_id")
        )
        product_id = optional_uuid(product_id, "product_id")
        if product_id is not None:
            query = query.where(StockLedgerEntry.product_id == product_id)
        warehouse_id = optional_uuid(warehouse_id, "warehouse_id")
        if warehouse_id is not None:
            query = query.where(StockLedgerEntry.warehouse_id == warehouse_id)
        if date_from is not None:
            query = query.where(StockLedgerEntry.created_at >= _lower_bound(date_from))
        if date_to is not None:
            bound, inclusive = _upper_bound(date_to)
            if inclusive:
                query = query.where(StockLedgerEntry.created_at <= bound)
            else:
                query = query.where(StockLedgerEntry.created_at < bound)

        query = query.order_by(StockLedgerEntry.seq.desc())
        if limit is not None:
            query = query.limit(limit)

        return [
            LedgerEntryInfo.from_model(entry)
            for entry in self.session.execute(query).scalars()
        ]

    def get_entry(
        self,
        organization_id: UUID | str,
        entry_id: UUID | str,
    ) -> LedgerEntryInfo:
        entry_id = require_uuid(entry_id, "entry_id")
        entry = self.session.execute(
            select(StockLedgerEntry).where(
                StockLedgerEntry.id == entry_id,
                StockLedgerEntry.organization_id
                == require_uuid(organization_id, "organization_id"),
            )
        ).scalar_one_or_none()
        if entry is None:
            raise LedgerEntryNotFoundError(str(entry_id))
        return LedgerEntryInfo.from_model(entry)

    def entries_for_reference(
        self,
        organization_id: UUID | str,
        reference_id: UUID | str,
    ) -> list[LedgerEntryInfo]:
        """Entries produced by one adjustment, transfer or purchase, in append order."""
        query = (
            select(StockLedgerEntry)
            .where(
                StockLedgerEntry.organization_id
                == require_uuid(organization_id, "organization_id"),
                StockLedgerEntry.reference_id == require_uuid(reference_id, "reference_id"),
            )
            .order_by(StockLedgerEntry.seq)
        )
        return [
            LedgerEntryInfo.from_model(entry)
            for entry in self.session.execute(query).scalars()
        ]

    def replay_quantity(
        self,
        organization_id: UUID | str,
        product_id: UUID | str,
        warehouse_id: UUID | str,
    ) -> int:
        """Signed sum of the key's ledger entries (0 when there are none)."""
        total = self.session.execute(
            select(
                func.coalesce(
                    func.sum(StockLedgerEntry.direction * StockLedgerEntry.quantity), 0
                )
            ).where(
                StockLedgerEntry.organization_id
                == require_uuid(organization_id, "organization_id"),
                StockLedgerEntry.product_id == require_uuid(product_id, "product_id"),
                StockLedgerEntry.warehouse_id == require_uuid(warehouse_id, "warehouse_id"),
            )
        ).scalar_one()
        return int(total)

    def verify_ledger(self, organization_id: UUID | str) -> list[ReplayDiscrepancy]:
        """
        Compare every stored quantity of the organization with its replay.

        Keys that have ledger entries but no record count as recorded 0.

        Returns:
            Discrepancies ordered by (product_id, warehouse_id); empty when
            the records and the ledger agree.
        """
        organization_id = require_uuid(organization_id, "organization_id")

        replayed: dict[tuple[UUID, UUID], int] = {
            (product_id, warehouse_id): int(total)
            for product_id, warehouse_id, total in self.session.execute(
                select(
                    StockLedgerEntry.product_id,
                    StockLedgerEntry.warehouse_id,
                    func.sum(StockLedgerEntry.direction * StockLedgerEntry.quantity),
                )
                .where(StockLedgerEntry.organization_id == organization_id)
                .group_by(StockLedgerEntry.product_id, StockLedgerEntry.warehouse_id)
            ).all()
        }
        recorded: dict[tuple[UUID, UUID], int] = {
            (product_id, warehouse_id): int(quantity)
            for product_id, warehouse_id, quantity in self.session.execute(
                select(
                    InventoryRecord.product_id,
                    InventoryRecord.warehouse_id,
                    InventoryRecord.quantity,
                ).where(InventoryRecord.organization_id == organization_id)
            ).all()
        }

        discrepancies = [
            ReplayDiscrepancy(
                product_id=key[0],
                warehouse_id=key[1],
                recorded_quantity=recorded.get(key, 0),
                replayed_quantity=replayed.get(key, 0),
            )
            for key in recorded.keys() | replayed.keys()
            if recorded.get(key, 0) != replayed.get(key, 0)
        ]
        discrepancies.sort(key=lambda d: (str(d.product_id), str(d.warehouse_id)))
        return discrepancies
