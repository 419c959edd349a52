"""Unit tests for SeriesStore over the in-memory store.

Run with: pytest tests/test_series_store.py -v
"""

from datetime import date, datetime, time

import pytest

from scheduling.domain import (
    Capacity,
    CancellationReason,
    EndCondition,
    OccurrenceId,
    OccurrenceStatus,
    SeriesChanges,
    SeriesStatus,
)
from scheduling.domain.errors import (
    InvalidReferenceError,
    InvalidScopeError,
    InvalidTransitionError,
    OccurrenceNotFoundError,
    SeriesNotFoundError,
)
from scheduling.domain.value_objects import SeriesId
from tests.factories import make_draft


def _on(series_store, series, day):
    (occurrence,) = [
        occ for occ in series_store.get_occurrences(series.id) if occ.date == day
    ]
    return occurrence


class TestCreateSeries:
    """Tests for series creation."""

    def test_create_series_generates_nothing_yet(self, series_store):
        """A new series is active, at version 1, with no occurrences."""
        series = series_store.create_series(make_draft())

        assert series.status is SeriesStatus.ACTIVE
        assert series.version == 1
        assert series_store.get_occurrences(series.id) == []

    def test_unknown_instructor_is_rejected(self, series_store):
        """Instructor ids are checked against the directory."""
        with pytest.raises(InvalidReferenceError):
            series_store.create_series(make_draft(instructor_id="ghost"))

    def test_unknown_location_is_rejected(self, series_store):
        """Location ids are checked against the directory."""
        with pytest.raises(InvalidReferenceError):
            series_store.create_series(make_draft(location_id="nowhere"))

    def test_get_unknown_series(self, series_store):
        """Unknown series ids raise SeriesNotFoundError."""
        with pytest.raises(SeriesNotFoundError):
            series_store.get_series(SeriesId.new())


class TestMaterialize:
    """Tests for occurrence materialization."""

    def test_materialize_up_to_horizon(self, series_store):
        """Occurrences are generated up to the horizon and carry the series defaults."""
        series = series_store.create_series(make_draft())
        occurrences = series_store.materialize(series.id, date(2024, 2, 1))

        assert [occ.date for occ in occurrences] == [
            date(2024, 1, 8),
            date(2024, 1, 15),
            date(2024, 1, 22),
            date(2024, 1, 29),
        ]
        assert all(occ.capacity == Capacity(20) for occ in occurrences)

    def test_materialize_is_idempotent(self, series_store, store):
        """A second run with the same horizon creates nothing."""
        series = series_store.create_series(make_draft())
        first = series_store.materialize(series.id, date(2024, 3, 1))
        second = series_store.materialize(series.id, date(2024, 3, 1))

        assert [occ.id for occ in first] == [occ.id for occ in second]
        assert len(store.list_occurrences(series.id)) == len(first)

    def test_materialize_extends_without_duplicates(self, series_store):
        """A later horizon only adds the new dates."""
        series = series_store.create_series(make_draft())
        series_store.materialize(series.id, date(2024, 2, 1))
        occurrences = series_store.materialize(series.id, date(2024, 3, 1))

        dates = [occ.original_date for occ in occurrences]
        assert len(dates) == len(set(dates)) == 8

    def test_default_horizon_is_weeks_ahead_of_today(self, series_store):
        """Without a horizon, generation covers twelve weeks from today."""
        series = series_store.create_series(make_draft())
        occurrences = series_store.materialize(series.id)

        assert occurrences[-1].date == date(2024, 3, 25)

    def test_materialize_does_not_bump_version(self, series_store):
        """Generating occurrences leaves the series version alone."""
        series = series_store.create_series(make_draft())
        series_store.materialize(series.id, date(2024, 3, 1))

        assert series_store.get_series(series.id).version == 1

    def test_paused_series_generates_nothing(self, series_store):
        """Only active series are materialized."""
        series = series_store.create_series(make_draft())
        series_store.pause(series.id)

        assert series_store.materialize(series.id, date(2024, 3, 1)) == []

    def test_materialize_all(self, series_store):
        """Generation-ahead covers every active series."""
        first = series_store.create_series(make_draft())
        second = series_store.create_series(make_draft(name="Yin"))
        paused = series_store.create_series(make_draft(name="Paused"))
        series_store.pause(paused.id)

        created = series_store.materialize_all(date(2024, 2, 1))

        assert created == 8
        assert len(series_store.get_occurrences(first.id)) == 4
        assert len(series_store.get_occurrences(second.id)) == 4
        assert series_store.get_occurrences(paused.id) == []

    def test_get_occurrences_in_window(self, weekly_series, series_store):
        """Occurrences can be read for a date window."""
        occurrences = series_store.get_occurrences(
            weekly_series.id, date(2024, 2, 1), date(2024, 2, 29)
        )
        assert [occ.date.month for occ in occurrences] == [2, 2, 2, 2]


class TestExceptions:
    """Tests for single occurrence overrides."""

    def test_apply_exception_marks_occurrence(self, weekly_series, series_store):
        """An override changes one occurrence and flags it."""
        target = _on(series_store, weekly_series, date(2024, 3, 4))
        updated = series_store.apply_exception(
            target.id, SeriesChanges(capacity=Capacity(12), room="Room B")
        )

        assert updated.is_exception
        assert updated.capacity == Capacity(12)
        assert updated.room == "Room B"
        assert _on(series_store, weekly_series, date(2024, 3, 11)).capacity == Capacity(20)
        assert series_store.get_series(weekly_series.id).version == 2

    def test_move_keeps_original_date(self, weekly_series, series_store):
        """A moved occurrence remembers the date it was generated for."""
        target = _on(series_store, weekly_series, date(2024, 3, 4))
        moved = series_store.apply_exception(
            target.id,
            SeriesChanges(new_date=date(2024, 3, 5), start_time=time(7, 0), end_time=time(8, 0)),
        )

        assert moved.date == date(2024, 3, 5)
        assert moved.original_date == date(2024, 3, 4)
        series_store.materialize(weekly_series.id, date(2024, 3, 31))
        dates = [occ.date for occ in series_store.get_occurrences(weekly_series.id)]
        assert date(2024, 3, 4) not in dates

    def test_series_attribute_is_not_an_exception(self, weekly_series, series_store):
        """Renaming applies to a series, not a single occurrence."""
        target = _on(series_store, weekly_series, date(2024, 3, 4))
        with pytest.raises(InvalidScopeError):
            series_store.apply_exception(target.id, SeriesChanges(name="Other"))

    def test_empty_override_is_rejected(self, weekly_series, series_store):
        """An override must change something."""
        target = _on(series_store, weekly_series, date(2024, 3, 4))
        with pytest.raises(InvalidScopeError):
            series_store.apply_exception(target.id, SeriesChanges())

    def test_unknown_occurrence(self, series_store):
        """Unknown occurrence ids raise OccurrenceNotFoundError."""
        with pytest.raises(OccurrenceNotFoundError):
            series_store.apply_exception(OccurrenceId.new(), SeriesChanges(capacity=Capacity(1)))


class TestCancel:
    """Tests for single occurrence cancellation."""

    def test_cancel_records_reason(self, weekly_series, series_store):
        """A cancelled occurrence keeps its reason."""
        target = _on(series_store, weekly_series, date(2024, 1, 15))
        cancelled = series_store.cancel(target.id, CancellationReason.INSTRUCTOR_UNAVAILABLE)

        assert cancelled.status is OccurrenceStatus.CANCELLED
        assert cancelled.cancellation_reason == "instructor_unavailable"

    def test_cancel_twice_changes_nothing(self, weekly_series, series_store):
        """Cancelling a cancelled occurrence is a no-op."""
        target = _on(series_store, weekly_series, date(2024, 1, 15))
        series_store.cancel(target.id, "maintenance")
        version = series_store.get_series(weekly_series.id).version

        again = series_store.cancel(target.id, "other")

        assert again.cancellation_reason == "maintenance"
        assert series_store.get_series(weekly_series.id).version == version

    def test_cancel_needs_a_reason(self, weekly_series, series_store):
        """A blank reason is rejected."""
        target = _on(series_store, weekly_series, date(2024, 1, 15))
        with pytest.raises(ValueError):
            series_store.cancel(target.id, "  ")

    def test_completed_occurrence_cannot_be_cancelled(self, weekly_series, series_store):
        """A class that took place stays completed."""
        series_store.mark_completed(datetime(2024, 1, 9))
        target = _on(series_store, weekly_series, date(2024, 1, 8))

        with pytest.raises(InvalidTransitionError):
            series_store.cancel(target.id, "other")


class TestSkipDates:
    """Tests for holiday skip dates."""

    def test_skip_date_cancels_generated_occurrence(self, weekly_series, series_store):
        """Adding a skip date cancels the class already on that date."""
        cancelled = series_store.add_skip_dates(weekly_series.id, [date(2024, 2, 5)])

        assert [occ.date for occ in cancelled] == [date(2024, 2, 5)]
        target = _on(series_store, weekly_series, date(2024, 2, 5))
        assert target.cancellation_reason == "holiday_break"
        assert date(2024, 2, 5) in series_store.get_series(weekly_series.id).skip_dates

    def test_skip_date_is_not_generated(self, series_store):
        """Skip dates given at creation are never materialized."""
        series = series_store.create_series(make_draft(skip_dates=frozenset({date(2024, 2, 5)})))
        occurrences = series_store.materialize(series.id, date(2024, 3, 1))

        assert date(2024, 2, 5) not in [occ.date for occ in occurrences]
        assert len(occurrences) == 7


class TestLifecycle:
    """Tests for series status transitions."""

    def test_pause_and_resume(self, weekly_series, series_store):
        """A paused series can be resumed."""
        paused = series_store.pause(weekly_series.id)
        resumed = series_store.resume(weekly_series.id)

        assert paused.status is SeriesStatus.PAUSED
        assert resumed.status is SeriesStatus.ACTIVE
        assert resumed.version == weekly_series.version + 2

    def test_ended_series_cannot_resume(self, weekly_series, series_store):
        """Ended is terminal."""
        series_store.end(weekly_series.id)
        with pytest.raises(InvalidTransitionError):
            series_store.resume(weekly_series.id)

    def test_resume_active_series_is_rejected(self, weekly_series, series_store):
        """Only paused series resume."""
        with pytest.raises(InvalidTransitionError):
            series_store.resume(weekly_series.id)


class TestMarkCompleted:
    """Tests for completing past occurrences."""

    def test_past_occurrences_are_completed(self, weekly_series, series_store):
        """Occurrences whose end time passed become completed."""
        completed = series_store.mark_completed(datetime(2024, 1, 15, 19, 0))

        assert completed == 2
        statuses = [occ.status for occ in series_store.get_occurrences(weekly_series.id)]
        assert statuses[:2] == [OccurrenceStatus.COMPLETED] * 2
        assert statuses[2] is OccurrenceStatus.SCHEDULED

    def test_exhausted_series_ends(self, series_store):
        """A finite series ends once its last occurrence took place."""
        series = series_store.create_series(make_draft(end_condition=EndCondition.after(2)))
        series_store.materialize(series.id, date(2024, 3, 1))

        series_store.mark_completed(datetime(2024, 1, 16))

        assert series_store.get_series(series.id).status is SeriesStatus.ENDED

    def test_never_ending_series_stays_active(self, weekly_series, series_store):
        """A never-ending series is not ended by completion."""
        series_store.mark_completed(datetime(2024, 4, 30))
        assert series_store.get_series(weekly_series.id).status is SeriesStatus.ACTIVE
