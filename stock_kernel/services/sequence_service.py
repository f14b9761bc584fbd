"""
SequenceService -- gap-tolerant monotonic counters for the stock ledger.

Responsibility:
    Hands out the ``seq`` stamped on every StockLedgerEntry.  Allocation
    is a single ``INSERT ... ON CONFLICT (name) DO UPDATE SET last_value =
    last_value + 1 RETURNING last_value`` against ``stock_sequences``, so
    creating the counter on first use and bumping it afterwards are the
    same statement and no read-modify-write happens in Python.

Concurrency:
    The upsert takes the counter row lock and holds it until the caller's
    transaction ends.  Concurrent appenders therefore serialize on the
    counter and commit in seq order.  A rolled back transaction returns
    its value; committed values never repeat.

Non-goals:
    Never commits.  The caller owns the transaction.
"""

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from stock_kernel.exceptions import PersistenceError
from stock_kernel.logging_config import get_logger
from stock_kernel.models.stock_ledger import StockSequence

logger = get_logger("services.sequence")


class SequenceService:

    STOCK_LEDGER = "stock_ledger"

    def __init__(self, session: Session):
        self._session = session

    def _insert(self):
        table = StockSequence.__table__
        dialect = self._session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(table)
        if dialect == "sqlite":
            return sqlite.insert(table)
        raise PersistenceError("sequence allocation", f"unsupported database dialect: {dialect}")

    def next_value(self, sequence_name: str) -> int:
        """Allocate and return the next value (1 on first use)."""
        table = StockSequence.__table__
        stmt = self._insert().values(name=sequence_name, last_value=1)
        stmt = stmt.on_conflict_do_update(
            index_elements=[table.c.name],
            set_={"last_value": table.c.last_value + 1},
        ).returning(table.c.last_value)

        value = self._session.execute(stmt).scalar_one()
        logger.debug(
            "sequence_allocated",
            extra={"sequence_name": sequence_name, "value": value},
        )
        return value

    def current_value(self, sequence_name: str) -> int | None:
        return self._session.execute(
            select(StockSequence.last_value).where(StockSequence.name == sequence_name)
        ).scalar_one_or_none()
