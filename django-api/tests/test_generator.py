"""Unit tests for occurrence generation.

Run with: pytest tests/test_generator.py -v
"""

from datetime import date, timedelta

from scheduling.domain import (
    EndCondition,
    Frequency,
    MonthlyPattern,
    OccurrenceGenerator,
    RecurrenceRule,
    Weekday,
)

MONDAYS = RecurrenceRule.weekly(Weekday.MO)


class TestWeeklyGeneration:
    """Tests for weekly expansion."""

    def test_skip_date_is_excluded(self):
        """Weekly Monday from 2024-01-08 skipping 2024-02-05 up to 2024-03-01."""
        dates = list(
            OccurrenceGenerator().generate(
                MONDAYS,
                date(2024, 1, 8),
                EndCondition.never(),
                {date(2024, 2, 5)},
                date(2024, 3, 1),
            )
        )

        assert dates == [
            date(2024, 1, 8),
            date(2024, 1, 15),
            date(2024, 1, 22),
            date(2024, 1, 29),
            date(2024, 2, 12),
            date(2024, 2, 19),
            date(2024, 2, 26),
        ]

    def test_only_configured_weekdays_are_produced(self):
        """Every generated date falls on one of the rule's weekdays."""
        rule = RecurrenceRule.weekly(Weekday.TU, Weekday.TH)
        dates = list(
            OccurrenceGenerator().generate(
                rule, date(2024, 1, 1), EndCondition.never(), (), date(2024, 6, 30)
            )
        )

        assert dates[0] == date(2024, 1, 2)
        assert {day.weekday() for day in dates} == {1, 3}
        assert dates == sorted(set(dates))

    def test_start_date_off_pattern_is_not_generated(self):
        """A Wednesday start of a Monday class begins on the next Monday."""
        dates = list(
            OccurrenceGenerator().generate(
                MONDAYS, date(2024, 1, 3), EndCondition.never(), (), date(2024, 1, 31)
            )
        )
        assert dates[0] == date(2024, 1, 8)

    def test_biweekly_interval(self):
        """Every other Monday from 2024-01-08."""
        rule = RecurrenceRule.weekly(Weekday.MO, interval=2)
        dates = list(
            OccurrenceGenerator().generate(
                rule, date(2024, 1, 8), EndCondition.never(), (), date(2024, 2, 29)
            )
        )
        assert dates == [date(2024, 1, 8), date(2024, 1, 22), date(2024, 2, 5), date(2024, 2, 19)]


class TestEndConditions:
    """Tests for count, date and horizon bounds."""

    def test_skipped_date_does_not_consume_count(self):
        """Count 5 with one skip in the first five still yields five dates."""
        rule = RecurrenceRule.weekly(Weekday.MO, Weekday.WE)
        dates = list(
            OccurrenceGenerator().generate(
                rule, date(2024, 1, 1), EndCondition.after(5), {date(2024, 1, 3)}, date.max
            )
        )

        assert dates == [
            date(2024, 1, 1),
            date(2024, 1, 8),
            date(2024, 1, 10),
            date(2024, 1, 15),
            date(2024, 1, 17),
        ]

    def test_end_date_is_inclusive(self):
        """Daily every 3 days ends on the end date."""
        dates = list(
            OccurrenceGenerator().generate(
                RecurrenceRule.daily(interval=3),
                date(2024, 1, 1),
                EndCondition.on(date(2024, 1, 10)),
                (),
                date(2024, 12, 31),
            )
        )
        assert dates == [date(2024, 1, 1), date(2024, 1, 4), date(2024, 1, 7), date(2024, 1, 10)]

    def test_horizon_bounds_never_ending_series(self):
        """A never-ending series stops at the horizon."""
        horizon = date(2024, 1, 8) + timedelta(weeks=12)
        dates = list(
            OccurrenceGenerator().generate(
                MONDAYS, date(2024, 1, 8), EndCondition.never(), (), horizon
            )
        )
        assert len(dates) == 13
        assert dates[-1] == horizon

    def test_horizon_before_start_yields_nothing(self):
        """Nothing is generated when the horizon precedes the start."""
        sequence = OccurrenceGenerator().generate(
            MONDAYS, date(2024, 1, 8), EndCondition.never(), (), date(2024, 1, 1)
        )
        assert list(sequence) == []

    def test_sequence_is_restartable(self):
        """Iterating twice yields the same dates."""
        sequence = OccurrenceGenerator().generate(
            MONDAYS, date(2024, 1, 8), EndCondition.after(4), (), date.max
        )
        assert list(sequence) == list(sequence)
        assert len(list(sequence)) == 4


class TestMonthlyGeneration:
    """Tests for monthly expansion."""

    def test_nth_weekday(self):
        """The 3rd Tuesday of each month."""
        start = date(2024, 1, 16)
        rule = RecurrenceRule.monthly(MonthlyPattern.DAY_OF_WEEK, start)
        dates = list(
            OccurrenceGenerator().generate(rule, start, EndCondition.after(3), (), date.max)
        )
        assert dates == [date(2024, 1, 16), date(2024, 2, 20), date(2024, 3, 19)]

    def test_last_weekday(self):
        """The last Friday of each month."""
        rule = RecurrenceRule(
            Frequency.MONTHLY,
            monthly_pattern=MonthlyPattern.DAY_OF_WEEK,
            weekdays=(Weekday.FR,),
            week_ordinal=-1,
        )
        dates = list(
            OccurrenceGenerator().generate(
                rule, date(2024, 1, 1), EndCondition.after(3), (), date.max
            )
        )
        assert dates == [date(2024, 1, 26), date(2024, 2, 23), date(2024, 3, 29)]

    def test_day_31_skips_short_months(self):
        """Months without a 31st have no occurrence."""
        dates = list(
            OccurrenceGenerator().generate(
                RecurrenceRule(Frequency.MONTHLY),
                date(2024, 1, 31),
                EndCondition.never(),
                (),
                date(2024, 6, 30),
            )
        )
        assert dates == [date(2024, 1, 31), date(2024, 3, 31), date(2024, 5, 31)]


class TestHelpers:
    """Tests for split helpers."""

    def test_count_before(self):
        """Four Mondays precede 2024-02-05."""
        count = OccurrenceGenerator().count_before(
            MONDAYS, date(2024, 1, 8), EndCondition.never(), (), date(2024, 2, 5)
        )
        assert count == 4

    def test_count_before_start_is_zero(self):
        """Nothing precedes the first date."""
        count = OccurrenceGenerator().count_before(
            MONDAYS, date(2024, 1, 8), EndCondition.never(), (), date(2024, 1, 8)
        )
        assert count == 0

    def test_first_on_or_after(self):
        """The first Monday on or after a Tuesday is the next Monday."""
        first = OccurrenceGenerator().first_on_or_after(
            MONDAYS, date(2024, 1, 8), EndCondition.never(), (), date(2024, 2, 6)
        )
        assert first == date(2024, 2, 12)

    def test_first_on_or_after_past_the_end(self):
        """No date follows the end of a finite series."""
        first = OccurrenceGenerator().first_on_or_after(
            MONDAYS, date(2024, 1, 8), EndCondition.after(2), (), date(2024, 2, 1)
        )
        assert first is None
