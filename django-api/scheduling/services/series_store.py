"""Series store - owns the authoritative series and their occurrences.

Services:
- Depend only on interfaces (stores, gateways)
- Validate domain invariants before any write
- Return domain models or raise domain errors

Every write runs inside ``ScheduleStore.transaction(series_id)``, the same
per-series serialization point the change applier uses, so background
generation never races with an edit.
"""

import logging
from collections.abc import Callable, Iterable
from dataclasses import replace
from datetime import date, datetime, timedelta

from scheduling.domain import (
    CancellationReason,
    EndType,
    Occurrence,
    OccurrenceGenerator,
    OccurrenceId,
    OccurrenceStatus,
    Series,
    SeriesChanges,
    SeriesDraft,
    SeriesId,
    SeriesStatus,
)
from scheduling.domain.errors import (
    InvalidReferenceError,
    InvalidScopeError,
    InvalidTransitionError,
    OccurrenceNotFoundError,
    SeriesNotFoundError,
)
from scheduling.gateways.interfaces import DirectoryGateway
from scheduling.stores.interfaces import ScheduleStore

logger = logging.getLogger(__name__)

_SERIES_TRANSITIONS = {
    SeriesStatus.ACTIVE: {SeriesStatus.PAUSED, SeriesStatus.ENDED},
    SeriesStatus.PAUSED: {SeriesStatus.ACTIVE, SeriesStatus.ENDED},
    SeriesStatus.ENDED: set(),
}


def reason_value(reason: CancellationReason | str) -> str:
    if isinstance(reason, CancellationReason):
        return reason.value
    if not reason or not reason.strip():
        raise ValueError("A cancellation reason is required")
    return reason.strip()


class SeriesStore:
    """Series lifecycle, materialization, exceptions and cancellations."""

    def __init__(
        self,
        store: ScheduleStore,
        directory: DirectoryGateway,
        generator: OccurrenceGenerator | None = None,
        generate_ahead_weeks: int = 12,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._directory = directory
        self._generator = generator or OccurrenceGenerator()
        self._generate_ahead = timedelta(weeks=generate_ahead_weeks)
        self._today = today

    @property
    def generator(self) -> OccurrenceGenerator:
        return self._generator

    def default_horizon(self) -> date:
        return self._today() + self._generate_ahead

    def check_references(self, instructor_id: str | None, location_id: str | None) -> None:
        """Raises InvalidReferenceError for ids unknown to the directory."""
        if instructor_id is not None and not self._directory.instructor_exists(instructor_id):
            raise InvalidReferenceError("instructor", instructor_id)
        if location_id is not None and not self._directory.location_exists(location_id):
            raise InvalidReferenceError("location", location_id)

    def create_series(self, draft: SeriesDraft) -> Series:
        """Validate and persist a new series. Occurrences are not generated yet.

        Raises:
            InvalidReferenceError: If the instructor or location is unknown.
            InvalidRuleError: If the end date precedes the start date.
            ValueError: If the class ends before it starts.
        """
        self.check_references(draft.instructor_id, draft.location_id)
        series = Series.from_draft(SeriesId.new(), draft)
        self._store.add_series(series)
        logger.info("Created series %s (%s)", series.id, series.rule.describe())
        return series

    def get_series(self, series_id: SeriesId) -> Series:
        series = self._store.get_series(series_id)
        if series is None:
            raise SeriesNotFoundError(series_id)
        return series

    def list_series(self, status: SeriesStatus | None = None) -> list[Series]:
        return self._store.list_series(status)

    def materialize(self, series_id: SeriesId, horizon: date | None = None) -> list[Occurrence]:
        """Generate missing occurrences up to ``horizon`` and return all of them.

        Idempotent per (series, generated date): running it again with the
        same series and horizon writes nothing.
        """
        occurrences, _ = self._materialize(series_id, horizon or self.default_horizon())
        return occurrences

    def materialize_all(self, horizon: date | None = None) -> int:
        """Generation-ahead over every active series. Returns the number created."""
        horizon = horizon or self.default_horizon()
        created = 0
        for series in self._store.list_series(SeriesStatus.ACTIVE):
            _, count = self._materialize(series.id, horizon)
            created += count
        return created

    def _materialize(self, series_id: SeriesId, horizon: date) -> tuple[list[Occurrence], int]:
        with self._store.transaction(series_id):
            series = self.get_series(series_id)
            existing = self._store.list_occurrences(series_id)
            if series.status is not SeriesStatus.ACTIVE:
                logger.debug("Series %s is %s, not generating", series_id, series.status.value)
                return existing, 0

            taken = {occ.original_date for occ in existing}
            dates = self._generator.generate(
                series.rule,
                series.start_date,
                series.end_condition,
                series.skip_dates,
                horizon,
            )
            created = [Occurrence.from_series(series, day) for day in dates if day not in taken]
            if created:
                self._store.add_occurrences(created)
                logger.info(
                    "Materialized %d occurrence(s) for series %s up to %s",
                    len(created),
                    series_id,
                    horizon,
                )
        merged = existing + created
        merged.sort(key=lambda occ: (occ.date, occ.original_date))
        return merged, len(created)

    def get_occurrences(
        self,
        series_id: SeriesId,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Occurrence]:
        self.get_series(series_id)
        return self._store.list_occurrences(series_id, start, end)

    def get_occurrence(self, occurrence_id: OccurrenceId) -> Occurrence:
        occurrence = self._store.get_occurrence(occurrence_id)
        if occurrence is None:
            raise OccurrenceNotFoundError(occurrence_id)
        return occurrence

    def apply_exception(self, occurrence_id: OccurrenceId, overrides: SeriesChanges) -> Occurrence:
        """Override attributes of a single occurrence and flag it as an exception.

        Raises:
            OccurrenceNotFoundError: If the occurrence does not exist.
            InvalidScopeError: If the overrides change the recurrence or are empty.
            InvalidTransitionError: If the occurrence is no longer scheduled.
        """
        if overrides.is_empty():
            raise InvalidScopeError("No changes given")
        if overrides.rule is not None or overrides.name is not None:
            raise InvalidScopeError("Recurrence and name changes apply to a series, not one class")
        self.check_references(overrides.instructor_id, overrides.location_id)

        series_id = self.get_occurrence(occurrence_id).series_id
        with self._store.transaction(series_id):
            occurrence = self.get_occurrence(occurrence_id)
            updated = self.override(occurrence, overrides)
            self._store.save_occurrence(updated)
            self.touch(self.get_series(occurrence.series_id))
        logger.info("Occurrence %s is now an exception (%s)", occurrence_id, overrides.describe())
        return updated

    def override(self, occurrence: Occurrence, overrides: SeriesChanges) -> Occurrence:
        """Build the exception version of an occurrence without saving it."""
        if occurrence.status is not OccurrenceStatus.SCHEDULED:
            raise InvalidTransitionError(occurrence.status.value, "edited")
        return replace(
            occurrence,
            **overrides.overrides(),
            date=overrides.new_date or occurrence.date,
            is_exception=True,
        )

    def cancel(self, occurrence_id: OccurrenceId, reason: CancellationReason | str) -> Occurrence:
        """Cancel one occurrence. Cancelling a cancelled occurrence changes nothing.

        Raises:
            OccurrenceNotFoundError: If the occurrence does not exist.
            InvalidTransitionError: If the occurrence already took place.
        """
        reason = reason_value(reason)
        series_id = self.get_occurrence(occurrence_id).series_id
        with self._store.transaction(series_id):
            occurrence = self.get_occurrence(occurrence_id)
            if occurrence.is_cancelled:
                return occurrence
            cancelled = self.cancelled(occurrence, reason)
            self._store.save_occurrence(cancelled)
            self.touch(self.get_series(series_id))
        logger.info("Cancelled occurrence %s on %s (%s)", occurrence_id, occurrence.date, reason)
        return cancelled

    @staticmethod
    def cancelled(occurrence: Occurrence, reason: str) -> Occurrence:
        if occurrence.status is OccurrenceStatus.COMPLETED:
            raise InvalidTransitionError(occurrence.status.value, OccurrenceStatus.CANCELLED.value)
        return replace(occurrence, status=OccurrenceStatus.CANCELLED, cancellation_reason=reason)

    def add_skip_dates(self, series_id: SeriesId, dates: Iterable[date]) -> list[Occurrence]:
        """Exclude dates from a series and cancel what was already generated on them."""
        dates = frozenset(dates)
        with self._store.transaction(series_id):
            series = self.get_series(series_id)
            if dates <= series.skip_dates:
                return []
            cancelled = [
                self.cancelled(occ, CancellationReason.HOLIDAY_BREAK.value)
                for occ in self._store.list_occurrences(series_id)
                if occ.date in dates and occ.status is OccurrenceStatus.SCHEDULED
            ]
            self._store.save_occurrences(cancelled)
            self._store.save_series(
                replace(series, skip_dates=series.skip_dates | dates), series.version
            )
        logger.info(
            "Added %d skip date(s) to series %s, cancelled %d occurrence(s)",
            len(dates),
            series_id,
            len(cancelled),
        )
        return cancelled

    def touch(self, series: Series) -> Series:
        """Bump the series version after a change to its occurrences."""
        return self._store.save_series(series, series.version)

    def pause(self, series_id: SeriesId) -> Series:
        return self._transition(series_id, SeriesStatus.PAUSED)

    def resume(self, series_id: SeriesId) -> Series:
        return self._transition(series_id, SeriesStatus.ACTIVE)

    def end(self, series_id: SeriesId) -> Series:
        return self._transition(series_id, SeriesStatus.ENDED)

    def _transition(self, series_id: SeriesId, target: SeriesStatus) -> Series:
        with self._store.transaction(series_id):
            series = self.get_series(series_id)
            if target not in _SERIES_TRANSITIONS[series.status]:
                raise InvalidTransitionError(series.status.value, target.value)
            saved = self._store.save_series(replace(series, status=target), series.version)
        logger.info("Series %s is now %s", series_id, target.value)
        return saved

    def mark_completed(self, as_of: datetime | None = None) -> int:
        """Complete occurrences whose end has passed and end exhausted series.

        Returns the number of occurrences completed.
        """
        as_of = as_of or datetime.now()
        completed = 0
        for series in self._store.list_series():
            with self._store.transaction(series.id):
                series = self.get_series(series.id)
                occurrences = self._store.list_occurrences(series.id)
                done = [
                    replace(occ, status=OccurrenceStatus.COMPLETED)
                    for occ in occurrences
                    if occ.status is OccurrenceStatus.SCHEDULED
                    and datetime.combine(occ.date, occ.end_time) <= as_of
                ]
                if done:
                    self._store.save_occurrences(done)
                    series = self.touch(series)
                    completed += len(done)

                active = series.status is SeriesStatus.ACTIVE
                if active and self._is_exhausted(series, occurrences, done):
                    ended = replace(series, status=SeriesStatus.ENDED)
                    self._store.save_series(ended, series.version)
                    logger.info("Series %s completed its last occurrence", series.id)
        return completed

    def _is_exhausted(
        self,
        series: Series,
        occurrences: list[Occurrence],
        done: list[Occurrence],
    ) -> bool:
        if series.end_condition.type is EndType.NEVER:
            return False
        finished = {occ.id for occ in done}
        if any(
            occ.status is OccurrenceStatus.SCHEDULED and occ.id not in finished
            for occ in occurrences
        ):
            return False
        taken = {occ.original_date for occ in occurrences}
        remaining = self._generator.generate(
            series.rule, series.start_date, series.end_condition, series.skip_dates, date.max
        )
        return all(day in taken for day in remaining)
