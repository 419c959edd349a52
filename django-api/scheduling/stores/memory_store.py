"""In-memory implementation of the ScheduleStore.

Used by tests and by callers embedding the scheduling core without a
database. Writers of a series are serialized with a per-series lock; writes
are staged per thread and published in one step when the outermost
transaction exits, so readers never observe a half-applied change.
"""

import logging
import threading
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field, replace
from datetime import date

from scheduling.domain import Occurrence, OccurrenceId, Series, SeriesId, SeriesStatus
from scheduling.domain.errors import ConcurrentModificationError, SeriesNotFoundError
from scheduling.stores.interfaces import ScheduleStore

logger = logging.getLogger(__name__)


@dataclass
class _Staging:
    series: dict[SeriesId, Series] = field(default_factory=dict)
    occurrences: dict[OccurrenceId, Occurrence] = field(default_factory=dict)
    expected_versions: dict[SeriesId, int] = field(default_factory=dict)


class InMemoryScheduleStore(ScheduleStore):
    """Thread-safe dictionary-backed store."""

    def __init__(self) -> None:
        self._series: dict[SeriesId, Series] = {}
        self._occurrences: dict[OccurrenceId, Occurrence] = {}
        self._publish_lock = threading.Lock()
        self._locks_guard = threading.Lock()
        self._series_locks: dict[SeriesId, threading.RLock] = {}
        self._local = threading.local()

    def _lock_for(self, series_id: SeriesId) -> threading.RLock:
        with self._locks_guard:
            return self._series_locks.setdefault(series_id, threading.RLock())

    def _staging(self) -> _Staging | None:
        return getattr(self._local, "staging", None)

    @contextmanager
    def transaction(self, *series_ids: SeriesId) -> Iterator[None]:
        locks = [self._lock_for(series_id) for series_id in sorted(set(series_ids))]
        for lock in locks:
            lock.acquire()
        try:
            if self._staging() is not None:
                # nested blocks join the outermost transaction
                yield
                return

            staging = _Staging()
            self._local.staging = staging
            try:
                yield
            finally:
                self._local.staging = None
            self._publish(staging)
        finally:
            for lock in reversed(locks):
                lock.release()

    def _publish(self, staging: _Staging) -> None:
        with self._publish_lock:
            for series_id, expected in staging.expected_versions.items():
                current = self._series.get(series_id)
                if current is not None and current.version != expected:
                    logger.warning(
                        "Rejected stale write to series %s (expected v%s, found v%s)",
                        series_id,
                        expected,
                        current.version,
                    )
                    raise ConcurrentModificationError(series_id, expected, current.version)
            self._series.update(staging.series)
            self._occurrences.update(staging.occurrences)

    def get_series(self, series_id: SeriesId) -> Series | None:
        staging = self._staging()
        if staging is not None and series_id in staging.series:
            return staging.series[series_id]
        with self._publish_lock:
            return self._series.get(series_id)

    def list_series(self, status: SeriesStatus | None = None) -> list[Series]:
        with self._publish_lock:
            merged = dict(self._series)
        staging = self._staging()
        if staging is not None:
            merged.update(staging.series)
        found = [s for s in merged.values() if status is None or s.status is status]
        return sorted(found, key=lambda s: (s.start_date, s.name, s.id))

    def add_series(self, series: Series) -> Series:
        with self.transaction():
            if self.get_series(series.id) is not None:
                raise ValueError(f"Series {series.id} already exists")
            self._staging().series[series.id] = series
        return series

    def save_series(self, series: Series, expected_version: int) -> Series:
        with self.transaction():
            current = self.get_series(series.id)
            if current is None:
                raise SeriesNotFoundError(series.id)
            if current.version != expected_version:
                raise ConcurrentModificationError(series.id, expected_version, current.version)
            staging = self._staging()
            staging.expected_versions.setdefault(series.id, expected_version)
            saved = replace(series, version=expected_version + 1)
            staging.series[series.id] = saved
        return saved

    def get_occurrence(self, occurrence_id: OccurrenceId) -> Occurrence | None:
        staging = self._staging()
        if staging is not None and occurrence_id in staging.occurrences:
            return staging.occurrences[occurrence_id]
        with self._publish_lock:
            return self._occurrences.get(occurrence_id)

    def list_occurrences(
        self,
        series_id: SeriesId,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Occurrence]:
        with self._publish_lock:
            merged = dict(self._occurrences)
        staging = self._staging()
        if staging is not None:
            merged.update(staging.occurrences)
        found = [
            occ
            for occ in merged.values()
            if occ.series_id == series_id
            and (start is None or occ.date >= start)
            and (end is None or occ.date <= end)
        ]
        return sorted(found, key=lambda o: (o.date, o.original_date))

    def add_occurrences(self, occurrences: Iterable[Occurrence]) -> None:
        with self.transaction():
            staging = self._staging()
            taken: dict[SeriesId, set[date]] = {}
            for occ in occurrences:
                if occ.series_id not in taken:
                    taken[occ.series_id] = {
                        o.original_date for o in self.list_occurrences(occ.series_id)
                    }
                if occ.original_date in taken[occ.series_id]:
                    raise ValueError(
                        f"Series {occ.series_id} already has an occurrence for {occ.original_date}"
                    )
                taken[occ.series_id].add(occ.original_date)
                staging.occurrences[occ.id] = occ

    def save_occurrences(self, occurrences: Iterable[Occurrence]) -> None:
        with self.transaction():
            staging = self._staging()
            for occ in occurrences:
                staging.occurrences[occ.id] = occ
