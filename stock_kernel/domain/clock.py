"""
Injectable time source.

Services never read the wall clock themselves.  Ledger ``created_at``,
``last_updated`` stamps and ``ADJ-<epoch-millis>`` adjustment numbers all
come from the ``Clock`` handed to them, so tests can pin time exactly.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone

DEFAULT_TEST_TIME = datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


class Clock(ABC):
    """Source of timezone-aware UTC instants."""

    @abstractmethod
    def now(self) -> datetime:
        ...

    def epoch_millis(self) -> int:
        return int(self.now().timestamp() * 1000)


class SystemClock(Clock):

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class DeterministicClock(Clock):
    """
    Frozen clock for tests.

    ``now()`` keeps returning the same instant until ``set_time()`` or
    ``tick()`` moves it.
    """

    def __init__(self, fixed_time: datetime | None = None):
        self._current = fixed_time if fixed_time is not None else DEFAULT_TEST_TIME

    def now(self) -> datetime:
        return self._current

    def set_time(self, time: datetime) -> None:
        self._current = time

    def tick(self, seconds: int = 1) -> datetime:
        """Move forward by ``seconds`` and return the new instant."""
        self._current += timedelta(seconds=seconds)
        return self._current
