"""Store interfaces (repository pattern).

Stores must be swappable and return domain models.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable
from contextlib import AbstractContextManager
from datetime import date

from scheduling.domain import Occurrence, OccurrenceId, Series, SeriesId, SeriesStatus


class ScheduleStore(ABC):
    """Interface for series and occurrence persistence."""

    @abstractmethod
    def transaction(self, *series_ids: SeriesId) -> AbstractContextManager[None]:
        """Serialize writers of the given series and make their writes atomic.

        Writes made inside the block become visible to other readers all at
        once when the block exits, and are discarded if it raises.
        """
        ...

    @abstractmethod
    def get_series(self, series_id: SeriesId) -> Series | None:
        """Return a series by ID, or None if not found."""
        ...

    @abstractmethod
    def list_series(self, status: SeriesStatus | None = None) -> list[Series]:
        """Return series ordered by start date, optionally filtered by status."""
        ...

    @abstractmethod
    def add_series(self, series: Series) -> Series:
        """Persist a new series."""
        ...

    @abstractmethod
    def save_series(self, series: Series, expected_version: int) -> Series:
        """Compare-and-set a series on its version and return it with the next version.

        Raises:
            ConcurrentModificationError: If the stored version differs from
                ``expected_version``.
        """
        ...

    @abstractmethod
    def get_occurrence(self, occurrence_id: OccurrenceId) -> Occurrence | None:
        """Return an occurrence by ID, or None if not found."""
        ...

    @abstractmethod
    def list_occurrences(
        self,
        series_id: SeriesId,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Occurrence]:
        """Return occurrences of a series within [start, end], ordered by date."""
        ...

    @abstractmethod
    def add_occurrences(self, occurrences: Iterable[Occurrence]) -> None:
        """Persist newly generated occurrences."""
        ...

    @abstractmethod
    def save_occurrences(self, occurrences: Iterable[Occurrence]) -> None:
        """Persist changes to existing occurrences."""
        ...

    def save_occurrence(self, occurrence: Occurrence) -> Occurrence:
        self.save_occurrences([occurrence])
        return occurrence
