"""Unit tests for EditScopeResolver.

Run with: pytest tests/test_scope_resolver.py -v
"""

from datetime import date

import pytest

from scheduling.domain import EditScope, EndCondition, RecurrenceRule, Weekday
from scheduling.domain.errors import (
    InvalidScopeError,
    OccurrenceNotFoundError,
    SeriesNotFoundError,
)
from scheduling.domain.value_objects import SeriesId
from tests.factories import make_draft


class TestThisOnly:
    """Tests for the this_only scope."""

    def test_resolves_exactly_one_occurrence(self, weekly_series, resolver, series_store):
        """this_only touches the occurrence on the given date."""
        resolved = resolver.resolve(weekly_series.id, date(2024, 3, 4), EditScope.THIS_ONLY)

        (occurrence_id,) = resolved.affected_occurrence_ids
        assert series_store.get_occurrence(occurrence_id).date == date(2024, 3, 4)
        assert not resolved.requires_split
        assert resolved.series_version == weekly_series.version

    def test_no_occurrence_on_date(self, weekly_series, resolver):
        """A date without an occurrence raises OccurrenceNotFoundError."""
        with pytest.raises(OccurrenceNotFoundError):
            resolver.resolve(weekly_series.id, date(2024, 3, 5), EditScope.THIS_ONLY)

    def test_cancelled_occurrence_is_rejected(self, weekly_series, resolver, series_store):
        """A cancelled occurrence cannot be edited."""
        resolved = resolver.resolve(weekly_series.id, date(2024, 3, 4), EditScope.THIS_ONLY)
        series_store.cancel(resolved.affected_occurrence_ids[0], "other")

        with pytest.raises(InvalidScopeError):
            resolver.resolve(weekly_series.id, date(2024, 3, 4), EditScope.THIS_ONLY)

    def test_resolve_by_occurrence_id(self, weekly_series, resolver):
        """An occurrence id resolves through its own date."""
        resolved = resolver.resolve(weekly_series.id, date(2024, 3, 4), EditScope.THIS_ONLY)
        again = resolver.resolve_occurrence(
            resolved.affected_occurrence_ids[0], EditScope.THIS_ONLY
        )
        assert again == resolved


class TestThisAndFollowing:
    """Tests for the this_and_following scope."""

    def test_affects_occurrences_from_date(self, weekly_series, resolver, series_store):
        """The earliest affected occurrence is on the from date."""
        resolved = resolver.resolve(
            weekly_series.id, date(2024, 3, 4), EditScope.THIS_AND_FOLLOWING
        )

        dates = [series_store.get_occurrence(i).date for i in resolved.affected_occurrence_ids]
        assert min(dates) == date(2024, 3, 4)
        assert dates == [date(2024, 3, 4), date(2024, 3, 11), date(2024, 3, 18), date(2024, 3, 25)]
        assert resolved.requires_split
        assert resolved.new_series_start_date == date(2024, 3, 4)

    def test_off_pattern_date_starts_split_on_next_occurrence(self, weekly_series, resolver):
        """A Wednesday from date continues the series on the following Monday."""
        resolved = resolver.resolve(
            weekly_series.id, date(2024, 3, 6), EditScope.THIS_AND_FOLLOWING
        )
        assert resolved.new_series_start_date == date(2024, 3, 11)
        assert len(resolved.affected_occurrence_ids) == 3

    def test_from_first_occurrence_needs_no_split(self, weekly_series, resolver):
        """Editing from the first date covers the whole series in place."""
        resolved = resolver.resolve(
            weekly_series.id, weekly_series.start_date, EditScope.THIS_AND_FOLLOWING
        )
        assert not resolved.requires_split
        assert len(resolved.affected_occurrence_ids) == 12

    def test_biweekly_split_keeps_phase(self, series_store, resolver):
        """An every-other-week series continues on its own weeks."""
        series = series_store.create_series(
            make_draft(rule=RecurrenceRule.weekly(Weekday.MO, interval=2))
        )
        series_store.materialize(series.id, date(2024, 3, 31))

        resolved = resolver.resolve(series.id, date(2024, 2, 12), EditScope.THIS_AND_FOLLOWING)

        assert resolved.new_series_start_date == date(2024, 2, 19)

    def test_cancelled_occurrences_are_not_affected(self, weekly_series, resolver, series_store):
        """Cancelled occurrences are left out of the affected set."""
        target = resolver.resolve(weekly_series.id, date(2024, 3, 11), EditScope.THIS_ONLY)
        series_store.cancel(target.affected_occurrence_ids[0], "other")

        resolved = resolver.resolve(
            weekly_series.id, date(2024, 3, 4), EditScope.THIS_AND_FOLLOWING
        )
        assert target.affected_occurrence_ids[0] not in resolved.affected_occurrence_ids
        assert len(resolved.affected_occurrence_ids) == 3


class TestEntireSeries:
    """Tests for the entire_series scope."""

    def test_affects_every_live_occurrence(self, weekly_series, resolver):
        """entire_series covers all non-cancelled occurrences without a split."""
        resolved = resolver.resolve(weekly_series.id, date(2024, 3, 4), EditScope.ENTIRE_SERIES)

        assert len(resolved.affected_occurrence_ids) == 12
        assert not resolved.requires_split


class TestValidation:
    """Tests for rejected resolutions."""

    def test_date_before_series_start(self, weekly_series, resolver):
        """A from date before the first occurrence is rejected."""
        with pytest.raises(InvalidScopeError):
            resolver.resolve(weekly_series.id, date(2024, 1, 1), EditScope.ENTIRE_SERIES)

    def test_unknown_series(self, resolver):
        """Unknown series ids raise SeriesNotFoundError."""
        with pytest.raises(SeriesNotFoundError):
            resolver.resolve(SeriesId.new(), date(2024, 3, 4), EditScope.ENTIRE_SERIES)

    def test_date_after_last_class(self, series_store, resolver):
        """this_and_following past the end of a finished series is rejected."""
        series = series_store.create_series(make_draft(end_condition=EndCondition.after(4)))
        series_store.materialize(series.id, date(2024, 3, 31))

        with pytest.raises(InvalidScopeError):
            resolver.resolve(series.id, date(2024, 2, 5), EditScope.THIS_AND_FOLLOWING)
