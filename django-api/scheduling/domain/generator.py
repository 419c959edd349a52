"""Expansion of recurrence rules into dated occurrences.

Uses python-dateutil for RRULE expansion. Generation is always bounded: by
the end condition of the series and by a horizon supplied by the caller.
"""

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from dateutil.rrule import DAILY, FR, MO, MONTHLY, SA, SU, TH, TU, WE, WEEKLY, rrule

from scheduling.domain.recurrence import Frequency, MonthlyPattern, RecurrenceRule
from scheduling.domain.value_objects import EndCondition, EndType

_FREQUENCIES = {
    Frequency.DAILY: DAILY,
    Frequency.WEEKLY: WEEKLY,
    Frequency.MONTHLY: MONTHLY,
}
_WEEKDAYS = (MO, TU, WE, TH, FR, SA, SU)


def _expansion(rule: RecurrenceRule, start_date: date, last: date) -> rrule:
    options = {
        "freq": _FREQUENCIES[rule.frequency],
        "interval": rule.interval,
        "dtstart": datetime.combine(start_date, time.min),
        "until": datetime.combine(last, time.min),
    }
    if rule.frequency is Frequency.WEEKLY:
        options["byweekday"] = [day.value for day in rule.weekdays]
    elif rule.frequency is Frequency.MONTHLY:
        if rule.monthly_pattern is MonthlyPattern.DAY_OF_WEEK:
            options["byweekday"] = _WEEKDAYS[rule.weekdays[0].value](rule.week_ordinal)
        else:
            options["bymonthday"] = rule.month_day or start_date.day
    return rrule(**options)


@dataclass(frozen=True)
class OccurrenceSequence:
    """Lazy, finite and restartable sequence of occurrence dates.

    Skip dates are removed before the occurrence count is applied, so a
    skipped date never uses up one of the requested classes.
    """

    rule: RecurrenceRule
    start_date: date
    end_condition: EndCondition
    skip_dates: frozenset[date]
    horizon: date

    @property
    def last_date(self) -> date:
        if self.end_condition.type is EndType.DATE:
            return min(self.end_condition.end_date, self.horizon)
        return self.horizon

    def __iter__(self) -> Iterator[date]:
        last = self.last_date
        if last < self.start_date:
            return

        limit = None
        if self.end_condition.type is EndType.COUNT:
            limit = self.end_condition.count

        produced = 0
        for moment in _expansion(self.rule, self.start_date, last):
            day = moment.date()
            if day in self.skip_dates:
                continue
            yield day
            produced += 1
            if limit is not None and produced >= limit:
                return


class OccurrenceGenerator:
    """Pure expansion service. Safe to share between threads."""

    def generate(
        self,
        rule: RecurrenceRule,
        start_date: date,
        end_condition: EndCondition,
        skip_dates: Iterable[date],
        horizon: date,
    ) -> OccurrenceSequence:
        return OccurrenceSequence(
            rule=rule,
            start_date=start_date,
            end_condition=end_condition,
            skip_dates=frozenset(skip_dates),
            horizon=horizon,
        )

    def first_on_or_after(
        self,
        rule: RecurrenceRule,
        start_date: date,
        end_condition: EndCondition,
        skip_dates: Iterable[date],
        day: date,
    ) -> date | None:
        """Return the first generated date on or after ``day``, if any."""
        for candidate in self.generate(rule, start_date, end_condition, skip_dates, date.max):
            if candidate >= day:
                return candidate
        return None

    def count_before(
        self,
        rule: RecurrenceRule,
        start_date: date,
        end_condition: EndCondition,
        skip_dates: Iterable[date],
        day: date,
    ) -> int:
        """Number of generated dates strictly before ``day``."""
        if day <= start_date:
            return 0
        sequence = self.generate(
            rule, start_date, end_condition, skip_dates, day - timedelta(days=1)
        )
        return sum(1 for _ in sequence)
