"""Edit scope resolution.

Read-only: works out which occurrences an edit touches and whether the
series has to be split, without writing anything.
"""

from datetime import date

from scheduling.domain import (
    EditScope,
    Occurrence,
    OccurrenceGenerator,
    OccurrenceId,
    ResolvedScope,
    Series,
    SeriesId,
)
from scheduling.domain.errors import (
    InvalidScopeError,
    OccurrenceNotFoundError,
    SeriesNotFoundError,
)
from scheduling.stores.interfaces import ScheduleStore


class EditScopeResolver:
    """Resolve an edit scope into the exact set of affected occurrences."""

    def __init__(self, store: ScheduleStore, generator: OccurrenceGenerator | None = None) -> None:
        self._store = store
        self._generator = generator or OccurrenceGenerator()

    def resolve(self, series_id: SeriesId, from_date: date, scope: EditScope) -> ResolvedScope:
        """Return the affected occurrences of an edit starting at ``from_date``.

        Raises:
            SeriesNotFoundError: If the series does not exist.
            OccurrenceNotFoundError: For ``this_only`` when no occurrence is
                dated ``from_date``.
            InvalidScopeError: If ``from_date`` precedes the series start,
                the target occurrence is cancelled, or ``this_and_following``
                starts after the last class of the series.
        """
        series = self._store.get_series(series_id)
        if series is None:
            raise SeriesNotFoundError(series_id)
        if from_date < series.start_date:
            raise InvalidScopeError("Date is before the start of the series")

        occurrences = self._store.list_occurrences(series_id)

        if scope is EditScope.THIS_ONLY:
            return self._this_only(series, from_date, occurrences)
        if scope is EditScope.THIS_AND_FOLLOWING:
            return self._this_and_following(series, from_date, occurrences)
        return ResolvedScope(
            series_id=series.id,
            scope=scope,
            from_date=from_date,
            affected_occurrence_ids=_live_ids(occurrences),
            requires_split=False,
            series_version=series.version,
        )

    def resolve_occurrence(self, occurrence_id: OccurrenceId, scope: EditScope) -> ResolvedScope:
        occurrence = self._store.get_occurrence(occurrence_id)
        if occurrence is None:
            raise OccurrenceNotFoundError(occurrence_id)
        return self.resolve(occurrence.series_id, occurrence.date, scope)

    def _this_only(
        self, series: Series, from_date: date, occurrences: list[Occurrence]
    ) -> ResolvedScope:
        on_date = [occ for occ in occurrences if occ.date == from_date]
        if not on_date:
            raise OccurrenceNotFoundError(f"{series.id}@{from_date.isoformat()}")
        live = [occ for occ in on_date if not occ.is_cancelled]
        if not live:
            raise InvalidScopeError("The class on this date is cancelled")
        return ResolvedScope(
            series_id=series.id,
            scope=EditScope.THIS_ONLY,
            from_date=from_date,
            affected_occurrence_ids=(live[0].id,),
            requires_split=False,
            series_version=series.version,
        )

    def _this_and_following(
        self, series: Series, from_date: date, occurrences: list[Occurrence]
    ) -> ResolvedScope:
        following = [occ for occ in occurrences if occ.date >= from_date]
        earlier = self._generator.count_before(
            series.rule,
            series.start_date,
            series.end_condition,
            series.skip_dates,
            from_date,
        )
        # the split series restarts the pattern on a generated date so that
        # every-other-week style intervals keep their phase
        new_start = self._generator.first_on_or_after(
            series.rule,
            series.start_date,
            series.end_condition,
            series.skip_dates,
            from_date,
        )
        if new_start is None:
            raise InvalidScopeError("The series has no classes on or after this date")
        return ResolvedScope(
            series_id=series.id,
            scope=EditScope.THIS_AND_FOLLOWING,
            from_date=from_date,
            affected_occurrence_ids=_live_ids(following),
            requires_split=earlier > 0,
            series_version=series.version,
            new_series_start_date=new_start if earlier else None,
        )


def _live_ids(occurrences: list[Occurrence]) -> tuple[OccurrenceId, ...]:
    return tuple(occ.id for occ in occurrences if not occ.is_cancelled)
