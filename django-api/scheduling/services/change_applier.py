"""Change applier - commits edits and cancellations across an edit scope.

A commit is atomic: the scope is resolved again, the series version is
checked, and every occurrence and series write happens inside one store
transaction. Client resolution (moving bookings, credits, refunds,
notifications) is delegated to collaborators after the commit and never
rolls it back.
"""

import logging
from collections.abc import Iterable
from dataclasses import replace
from datetime import date, timedelta

from scheduling.domain import (
    CancellationReason,
    ChangePreview,
    ClientResolutionPolicy,
    CommitResult,
    EditScope,
    EndCondition,
    EndType,
    Occurrence,
    OccurrenceGenerator,
    OccurrenceId,
    OccurrenceStatus,
    ResolvedScope,
    ScheduleChangeNotice,
    Series,
    SeriesChanges,
    SeriesId,
    SeriesStatus,
)
from scheduling.domain.errors import ConcurrentModificationError, InvalidScopeError
from scheduling.gateways.interfaces import BookingGateway, NotificationGateway
from scheduling.services.impact import ImpactCalculator
from scheduling.services.scope_resolver import EditScopeResolver
from scheduling.services.series_store import SeriesStore, reason_value
from scheduling.stores.interfaces import ScheduleStore

logger = logging.getLogger(__name__)

_DAY = timedelta(days=1)


class ChangeApplier:
    """Single write path for edits and cancellations of a series."""

    def __init__(
        self,
        store: ScheduleStore,
        series_store: SeriesStore,
        resolver: EditScopeResolver,
        impact: ImpactCalculator,
        bookings: BookingGateway,
        notifications: NotificationGateway,
    ) -> None:
        self._store = store
        self._series_store = series_store
        self._resolver = resolver
        self._impact = impact
        self._bookings = bookings
        self._notifications = notifications

    @property
    def _generator(self) -> OccurrenceGenerator:
        return self._series_store.generator

    def preview(
        self,
        series_id: SeriesId,
        from_date: date,
        scope: EditScope,
        changes: SeriesChanges | None = None,
    ) -> ChangePreview:
        """Resolve the scope and forecast its impact without writing anything."""
        resolved = self._resolver.resolve(series_id, from_date, scope)
        return ChangePreview(
            resolved=resolved,
            impact=self._impact.compute(resolved.affected_occurrence_ids, changes, scope),
        )

    def apply(
        self,
        series_id: SeriesId,
        from_date: date,
        scope: EditScope,
        changes: SeriesChanges,
        policy: ClientResolutionPolicy | None = None,
        *,
        expected_version: int | None = None,
    ) -> CommitResult:
        """Commit an edit across the resolved scope.

        Raises:
            InvalidScopeError: If the changes do not fit the scope.
            InvalidReferenceError: If a new instructor or location is unknown.
            ConcurrentModificationError: If the series changed since
                ``expected_version`` was read.
        """
        self._validate(scope, changes)
        policy = policy or ClientResolutionPolicy()

        with self._store.transaction(series_id):
            resolved = self._resolver.resolve(series_id, from_date, scope)
            series = self._check_version(series_id, expected_version)
            impact = self._impact.compute(resolved.affected_occurrence_ids, changes, scope)

            if scope is EditScope.THIS_ONLY:
                result = self._apply_this_only(series, resolved, changes)
            elif resolved.requires_split:
                result = self._split(series, resolved, changes)
            else:
                result = self._apply_in_place(series, resolved, changes)
            result = replace(result, impact=impact)

        logger.info(
            "Applied %s change to series %s: %d occurrence(s) updated, %d cancelled%s",
            scope.value,
            series_id,
            len(result.updated_occurrence_ids),
            len(result.cancelled_occurrence_ids),
            f", split into {result.new_series.id}" if result.new_series else "",
        )
        notice = ScheduleChangeNotice(
            kind="updated",
            series_id=result.new_series.id if result.new_series else series_id,
            occurrence_ids=resolved.affected_occurrence_ids,
            policy=policy,
            changes=changes,
        )
        return replace(result, warnings=self._resolve_clients(notice))

    def cancel(
        self,
        series_id: SeriesId,
        from_date: date,
        scope: EditScope,
        reason: CancellationReason | str,
        policy: ClientResolutionPolicy | None = None,
        *,
        expected_version: int | None = None,
    ) -> CommitResult:
        """Cancel occurrences across the resolved scope.

        ``this_and_following`` ends the series the day before ``from_date``;
        ``entire_series`` ends it outright.
        """
        reason = reason_value(reason)
        policy = policy or ClientResolutionPolicy()

        with self._store.transaction(series_id):
            resolved = self._resolver.resolve(series_id, from_date, scope)
            series = self._check_version(series_id, expected_version)
            impact = self._impact.compute(resolved.affected_occurrence_ids)
            cancelled = self._cancel_occurrences(
                resolved.affected_occurrence_ids, reason, strict=scope is EditScope.THIS_ONLY
            )

            if scope is EditScope.THIS_ONLY:
                series = self._series_store.touch(series)
            else:
                series = self._store.save_series(
                    self._truncated(series, from_date, scope), series.version
                )

        logger.info(
            "Cancelled %d occurrence(s) of series %s (%s, %s)",
            len(cancelled),
            series_id,
            scope.value,
            reason,
        )
        result = CommitResult(series=series, impact=impact, cancelled_occurrence_ids=cancelled)
        return self._finish_cancellation(result, series_id, reason, policy)

    def cancel_range(
        self,
        series_id: SeriesId,
        start: date,
        end: date,
        reason: CancellationReason | str,
        policy: ClientResolutionPolicy | None = None,
    ) -> CommitResult:
        """Cancel every scheduled occurrence dated within [start, end].

        Dates past the generation horizon are generated first so the whole
        range stays cancelled.
        """
        if end < start:
            raise InvalidScopeError("The range ends before it starts")
        reason = reason_value(reason)
        policy = policy or ClientResolutionPolicy()

        with self._store.transaction(series_id):
            series = self._series_store.get_series(series_id)
            self._series_store.materialize(series_id, end)
            ids = tuple(
                occ.id
                for occ in self._store.list_occurrences(series_id, start, end)
                if occ.status is OccurrenceStatus.SCHEDULED
            )
            impact = self._impact.compute(ids)
            cancelled = self._cancel_occurrences(ids, reason)
            if cancelled:
                series = self._series_store.touch(series)

        logger.info(
            "Cancelled %d occurrence(s) of series %s between %s and %s",
            len(cancelled),
            series_id,
            start,
            end,
        )
        result = CommitResult(series=series, impact=impact, cancelled_occurrence_ids=cancelled)
        return self._finish_cancellation(result, series_id, reason, policy)

    def add_holiday_break(
        self,
        series_id: SeriesId,
        dates: Iterable[date],
        policy: ClientResolutionPolicy | None = None,
    ) -> CommitResult:
        """Skip dates for a series and cancel the classes already generated on them."""
        dates = frozenset(dates)
        policy = policy or ClientResolutionPolicy()

        with self._store.transaction(series_id):
            ids = tuple(
                occ.id
                for occ in self._series_store.get_occurrences(series_id)
                if occ.date in dates and occ.status is OccurrenceStatus.SCHEDULED
            )
            impact = self._impact.compute(ids)
            cancelled = self._series_store.add_skip_dates(series_id, dates)
            series = self._series_store.get_series(series_id)

        result = CommitResult(
            series=series,
            impact=impact,
            cancelled_occurrence_ids=tuple(occ.id for occ in cancelled),
        )
        return self._finish_cancellation(
            result, series_id, CancellationReason.HOLIDAY_BREAK.value, policy
        )

    def _validate(self, scope: EditScope, changes: SeriesChanges) -> None:
        if changes.is_empty():
            raise InvalidScopeError("No changes given")
        if changes.new_date is not None and scope is not EditScope.THIS_ONLY:
            raise InvalidScopeError("Only a single class can be moved to another date")
        if changes.rule is not None and scope is not EditScope.THIS_AND_FOLLOWING:
            raise InvalidScopeError("Recurrence changes apply from a date onward")
        if changes.name is not None and scope is EditScope.THIS_ONLY:
            raise InvalidScopeError("A single class cannot be renamed")
        if (
            changes.start_time is not None
            and changes.end_time is not None
            and changes.end_time <= changes.start_time
        ):
            raise ValueError("Class must end after it starts")
        self._series_store.check_references(changes.instructor_id, changes.location_id)

    def _check_version(self, series_id: SeriesId, expected_version: int | None) -> Series:
        series = self._series_store.get_series(series_id)
        if expected_version is not None and series.version != expected_version:
            logger.warning(
                "Series %s changed since preview (expected v%s, found v%s)",
                series_id,
                expected_version,
                series.version,
            )
            raise ConcurrentModificationError(series_id, expected_version, series.version)
        return series

    def _apply_this_only(
        self, series: Series, resolved: ResolvedScope, changes: SeriesChanges
    ) -> CommitResult:
        (occurrence_id,) = resolved.affected_occurrence_ids
        occurrence = self._series_store.get_occurrence(occurrence_id)
        self._store.save_occurrence(self._series_store.override(occurrence, changes))
        return CommitResult(
            series=self._series_store.touch(series),
            impact=None,
            updated_occurrence_ids=(occurrence_id,),
        )

    def _apply_in_place(
        self, series: Series, resolved: ResolvedScope, changes: SeriesChanges
    ) -> CommitResult:
        target = replace(series, **_series_updates(changes))
        occurrences = self._store.list_occurrences(series.id)
        to_save, updated, cancelled = self._propagate(
            target, occurrences, set(resolved.affected_occurrence_ids), changes
        )
        self._store.save_occurrences(to_save)
        saved = self._store.save_series(target, series.version)
        if changes.rule is not None:
            self._fill(saved, occurrences)
        return CommitResult(
            series=saved,
            impact=None,
            updated_occurrence_ids=updated,
            cancelled_occurrence_ids=cancelled,
        )

    def _split(
        self, series: Series, resolved: ResolvedScope, changes: SeriesChanges
    ) -> CommitResult:
        """End ``series`` before ``from_date`` and continue it as a new series."""
        from_date = resolved.from_date
        new_start = from_date if changes.rule is not None else resolved.new_series_start_date

        original = replace(
            series,
            end_condition=EndCondition.on(from_date - _DAY),
            skip_dates=frozenset(day for day in series.skip_dates if day < from_date),
        )
        updates = _series_updates(changes)
        updates["rule"] = changes.rule or series.rule.anchored(series.start_date)
        continuation = replace(
            series,
            **updates,
            id=SeriesId.new(),
            start_date=new_start,
            end_condition=self._remaining(series, new_start),
            skip_dates=frozenset(day for day in series.skip_dates if day >= new_start),
            version=1,
            split_from=series.id,
        )
        self._store.add_series(continuation)

        # each generated date belongs to exactly one of the two series,
        # including classes moved across from_date
        following = [
            occ
            for occ in self._store.list_occurrences(series.id)
            if occ.original_date >= from_date
        ]
        to_save, updated, cancelled = self._propagate(
            continuation, following, set(resolved.affected_occurrence_ids), changes
        )
        self._store.save_occurrences(to_save)
        saved = self._store.save_series(original, series.version)
        if changes.rule is not None:
            self._fill(continuation, following)
        return CommitResult(
            series=saved,
            impact=None,
            new_series=self._series_store.get_series(continuation.id),
            updated_occurrence_ids=updated,
            cancelled_occurrence_ids=cancelled,
        )

    def _remaining(self, series: Series, new_start: date) -> EndCondition:
        if series.end_condition.type is not EndType.COUNT:
            return series.end_condition
        used = self._generator.count_before(
            series.rule,
            series.start_date,
            series.end_condition,
            series.skip_dates,
            new_start,
        )
        return EndCondition.after(max(1, series.end_condition.count - used))

    def _propagate(
        self,
        target: Series,
        occurrences: list[Occurrence],
        affected: set[OccurrenceId],
        changes: SeriesChanges,
    ) -> tuple[list[Occurrence], tuple[OccurrenceId, ...], tuple[OccurrenceId, ...]]:
        """Carry ``target`` defaults onto occurrences; exceptions keep their overrides."""
        overrides = changes.overrides()
        generated = None
        if changes.rule is not None and occurrences:
            generated = set(
                self._generator.generate(
                    target.rule,
                    target.start_date,
                    target.end_condition,
                    target.skip_dates,
                    max(occ.original_date for occ in occurrences),
                )
            )

        to_save: list[Occurrence] = []
        updated: list[OccurrenceId] = []
        cancelled: list[OccurrenceId] = []
        for occurrence in occurrences:
            current = replace(occurrence, series_id=target.id)
            if occurrence.id in affected and not occurrence.is_exception:
                if (
                    generated is not None
                    and occurrence.status is OccurrenceStatus.SCHEDULED
                    and occurrence.original_date not in generated
                ):
                    current = SeriesStore.cancelled(
                        current, CancellationReason.SCHEDULE_CHANGE.value
                    )
                    cancelled.append(occurrence.id)
                elif overrides:
                    current = replace(current, **overrides)
                    updated.append(occurrence.id)
            if current != occurrence:
                to_save.append(current)
        return to_save, tuple(updated), tuple(cancelled)

    def _fill(self, series: Series, previous: list[Occurrence]) -> None:
        """Generate the dates a new rule adds, up to the previously covered horizon."""
        if previous:
            self._series_store.materialize(series.id, max(occ.date for occ in previous))

    def _cancel_occurrences(
        self, occurrence_ids: Iterable[OccurrenceId], reason: str, strict: bool = False
    ) -> tuple[OccurrenceId, ...]:
        """Cancel the scheduled ones; with ``strict`` a completed class is an error."""
        cancelled = [
            SeriesStore.cancelled(occ, reason)
            for occ in map(self._series_store.get_occurrence, occurrence_ids)
            if strict or occ.status is OccurrenceStatus.SCHEDULED
        ]
        self._store.save_occurrences(cancelled)
        return tuple(occ.id for occ in cancelled)

    def _truncated(self, series: Series, from_date: date, scope: EditScope) -> Series:
        earlier = 0
        if scope is EditScope.THIS_AND_FOLLOWING:
            earlier = self._generator.count_before(
                series.rule,
                series.start_date,
                series.end_condition,
                series.skip_dates,
                from_date,
            )
        if not earlier:
            return replace(series, status=SeriesStatus.ENDED)

        last = from_date - _DAY
        end = series.end_condition
        if end.type is EndType.DATE and end.end_date < last:
            return series
        return replace(series, end_condition=EndCondition.on(last))

    def _finish_cancellation(
        self,
        result: CommitResult,
        series_id: SeriesId,
        reason: str,
        policy: ClientResolutionPolicy,
    ) -> CommitResult:
        notice = ScheduleChangeNotice(
            kind="cancelled",
            series_id=series_id,
            occurrence_ids=result.cancelled_occurrence_ids,
            policy=policy,
            reason=reason,
        )
        return replace(result, warnings=self._resolve_clients(notice))

    def _resolve_clients(self, notice: ScheduleChangeNotice) -> tuple[str, ...]:
        """Hand the committed change to the booking and notification subsystems.

        Both calls are best effort: failures are logged and reported as
        warnings, the schedule change stays committed.
        """
        if not notice.occurrence_ids:
            return ()
        warnings = []
        try:
            self._bookings.schedule_changed(notice)
        except Exception:
            logger.exception("Booking update failed for series %s", notice.series_id)
            warnings.append("Bookings could not be updated automatically")
        try:
            self._notifications.notify(notice)
        except Exception:
            logger.exception("Client notification failed for series %s", notice.series_id)
            warnings.append("Clients could not be notified")
        return tuple(warnings)


def _series_updates(changes: SeriesChanges) -> dict:
    updates = changes.overrides()
    if changes.name is not None:
        updates["name"] = changes.name
    if changes.rule is not None:
        updates["rule"] = changes.rule
    return updates
