"""Recurrence rules and their canonical string form.

The string form follows the RFC 5545 RRULE syntax restricted to the parts
the studio console can express:

    FREQ=WEEKLY;INTERVAL=1;BYDAY=MO,TH
    FREQ=MONTHLY;INTERVAL=1;BYMONTHDAY=15
    FREQ=MONTHLY;INTERVAL=2;BYDAY=-1FR

A monthly rule without BYMONTHDAY or BYDAY repeats on the day of month of
the series start date, as an RRULE without those parts does.
"""

import re
from dataclasses import dataclass, replace
from datetime import date
from enum import Enum
from typing import Self

from scheduling.domain.errors import InvalidRuleError


class Frequency(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class MonthlyPattern(Enum):
    DAY_OF_MONTH = "day_of_month"
    DAY_OF_WEEK = "day_of_week"


class Weekday(Enum):
    """Weekday codes, valued like ``date.weekday()``."""

    MO = 0
    TU = 1
    WE = 2
    TH = 3
    FR = 4
    SA = 5
    SU = 6

    @property
    def short(self) -> str:
        return _SHORT_NAMES[self.value]

    @classmethod
    def of(cls, day: date) -> Self:
        return cls(day.weekday())

    @classmethod
    def from_code(cls, code: str) -> Self:
        try:
            return cls[code.strip().upper()]
        except KeyError:
            raise InvalidRuleError(f"Unknown weekday {code!r}") from None


_SHORT_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_ORDINAL_WORDS = {1: "1st", 2: "2nd", 3: "3rd", 4: "4th", 5: "5th", -1: "last"}
_VALID_ORDINALS = frozenset(_ORDINAL_WORDS)
_SUPPORTED_PARTS = ("FREQ", "INTERVAL", "BYDAY", "BYMONTHDAY")
_ORDINAL_WEEKDAY = re.compile(r"^([+-]?\d)?(MO|TU|WE|TH|FR|SA|SU)$")


@dataclass(frozen=True)
class RecurrenceRule:
    """Parsed recurrence pattern of a series."""

    frequency: Frequency
    interval: int = 1
    weekdays: tuple[Weekday, ...] = ()
    monthly_pattern: MonthlyPattern | None = None
    month_day: int | None = None
    week_ordinal: int | None = None

    def __post_init__(self) -> None:
        if self.interval < 1:
            raise InvalidRuleError("Interval must be at least 1")

        # canonical weekday order keeps serialize() stable
        object.__setattr__(
            self, "weekdays", tuple(sorted(set(self.weekdays), key=lambda d: d.value))
        )

        if self.frequency is Frequency.DAILY:
            self._check_daily()
        elif self.frequency is Frequency.WEEKLY:
            self._check_weekly()
        else:
            if self.monthly_pattern is None:
                object.__setattr__(self, "monthly_pattern", MonthlyPattern.DAY_OF_MONTH)
            self._check_monthly()

    def _check_daily(self) -> None:
        if self.weekdays:
            raise InvalidRuleError("Daily rules take no weekdays")
        if self.monthly_pattern or self.month_day or self.week_ordinal:
            raise InvalidRuleError("Daily rules take no monthly pattern")

    def _check_weekly(self) -> None:
        if not self.weekdays:
            raise InvalidRuleError("Select at least one weekday")
        if self.monthly_pattern or self.month_day or self.week_ordinal:
            raise InvalidRuleError("Weekly rules take no monthly pattern")

    def _check_monthly(self) -> None:
        if self.monthly_pattern is MonthlyPattern.DAY_OF_MONTH:
            if self.weekdays or self.week_ordinal is not None:
                raise InvalidRuleError("Day-of-month rules take no weekday")
            if self.month_day is not None and not 1 <= self.month_day <= 31:
                raise InvalidRuleError("Day of month must be between 1 and 31")
            return

        if len(self.weekdays) != 1:
            raise InvalidRuleError("Day-of-week rules need exactly one weekday")
        if self.week_ordinal not in _VALID_ORDINALS:
            raise InvalidRuleError("Day-of-week rules need an ordinal of 1-5 or -1")
        if self.month_day is not None:
            raise InvalidRuleError("Day-of-week rules take no day of month")

    @classmethod
    def daily(cls, interval: int = 1) -> Self:
        return cls(Frequency.DAILY, interval=interval)

    @classmethod
    def weekly(cls, *weekdays: Weekday, interval: int = 1) -> Self:
        return cls(Frequency.WEEKLY, interval=interval, weekdays=tuple(weekdays))

    @classmethod
    def monthly(
        cls, pattern: MonthlyPattern, start_date: date, interval: int = 1
    ) -> Self:
        """Monthly rule anchored on ``start_date``: the 15th, or the 3rd Tuesday."""
        if pattern is MonthlyPattern.DAY_OF_MONTH:
            return cls(
                Frequency.MONTHLY,
                interval=interval,
                monthly_pattern=pattern,
                month_day=start_date.day,
            )
        ordinal = (start_date.day - 1) // 7 + 1
        return cls(
            Frequency.MONTHLY,
            interval=interval,
            monthly_pattern=pattern,
            weekdays=(Weekday.of(start_date),),
            week_ordinal=-1 if ordinal == 5 else ordinal,
        )

    def anchored(self, start_date: date) -> "RecurrenceRule":
        """Return a rule whose implicit day of month is pinned to ``start_date``."""
        if (
            self.frequency is Frequency.MONTHLY
            and self.monthly_pattern is MonthlyPattern.DAY_OF_MONTH
            and self.month_day is None
        ):
            return replace(self, month_day=start_date.day)
        return self

    @classmethod
    def parse(cls, value: str) -> Self:
        """Parse the canonical string form.

        Raises:
            InvalidRuleError: If the string is malformed or describes an
                invalid rule.
        """
        text = (value or "").strip()
        if text.upper().startswith("RRULE:"):
            text = text[len("RRULE:"):]
        if not text:
            raise InvalidRuleError("Recurrence rule is empty")

        parts: dict[str, str] = {}
        for chunk in text.split(";"):
            if not chunk:
                continue
            key, sep, value = chunk.partition("=")
            key = key.strip().upper()
            if not sep or not value.strip():
                raise InvalidRuleError(f"Malformed rule part {chunk!r}")
            if key not in _SUPPORTED_PARTS:
                raise InvalidRuleError(f"Unsupported rule part {key}")
            if key in parts:
                raise InvalidRuleError(f"Duplicate rule part {key}")
            parts[key] = value.strip().upper()

        if "FREQ" not in parts:
            raise InvalidRuleError("Recurrence rule must contain FREQ")
        try:
            frequency = Frequency[parts["FREQ"]]
        except KeyError:
            raise InvalidRuleError(f"Unsupported frequency {parts['FREQ']}") from None

        interval = _parse_int(parts.get("INTERVAL", "1"), "INTERVAL")

        if frequency is not Frequency.MONTHLY:
            if "BYMONTHDAY" in parts:
                raise InvalidRuleError("BYMONTHDAY is only valid for monthly rules")
            weekdays = ()
            if "BYDAY" in parts:
                weekdays = tuple(Weekday.from_code(code) for code in parts["BYDAY"].split(","))
            return cls(frequency, interval=interval, weekdays=weekdays)

        if "BYDAY" in parts and "BYMONTHDAY" in parts:
            raise InvalidRuleError("BYDAY and BYMONTHDAY are exclusive")
        if "BYDAY" in parts:
            match = _ORDINAL_WEEKDAY.match(parts["BYDAY"])
            if match is None:
                raise InvalidRuleError(f"Malformed monthly BYDAY {parts['BYDAY']!r}")
            if match.group(1) is None:
                raise InvalidRuleError("Monthly weekday rules need an ordinal, e.g. 3TU")
            return cls(
                frequency,
                interval=interval,
                monthly_pattern=MonthlyPattern.DAY_OF_WEEK,
                weekdays=(Weekday[match.group(2)],),
                week_ordinal=int(match.group(1)),
            )
        month_day = None
        if "BYMONTHDAY" in parts:
            month_day = _parse_int(parts["BYMONTHDAY"], "BYMONTHDAY")
        return cls(
            frequency,
            interval=interval,
            monthly_pattern=MonthlyPattern.DAY_OF_MONTH,
            month_day=month_day,
        )

    def serialize(self) -> str:
        parts = [f"FREQ={self.frequency.name}", f"INTERVAL={self.interval}"]
        if self.frequency is Frequency.WEEKLY:
            parts.append("BYDAY=" + ",".join(day.name for day in self.weekdays))
        elif self.monthly_pattern is MonthlyPattern.DAY_OF_WEEK:
            parts.append(f"BYDAY={self.week_ordinal}{self.weekdays[0].name}")
        elif self.month_day is not None:
            parts.append(f"BYMONTHDAY={self.month_day}")
        return ";".join(parts)

    def describe(self) -> str:
        """Human readable summary, e.g. ``Weekly on Mon, Tue``."""
        if self.frequency is Frequency.DAILY:
            return "Daily" if self.interval == 1 else f"Every {self.interval} days"

        if self.frequency is Frequency.WEEKLY:
            days = ", ".join(day.short for day in self.weekdays)
            if self.interval == 1:
                return f"Weekly on {days}"
            return f"Every {self.interval} weeks on {days}"

        base = "Monthly" if self.interval == 1 else f"Every {self.interval} months"
        if self.monthly_pattern is MonthlyPattern.DAY_OF_WEEK:
            ordinal = _ORDINAL_WORDS[self.week_ordinal]
            return f"{base} on the {ordinal} {self.weekdays[0].short}"
        if self.month_day is not None:
            return f"{base} on day {self.month_day}"
        return base

    def __str__(self) -> str:
        return self.serialize()


def _parse_int(value: str, part: str) -> int:
    try:
        return int(value)
    except ValueError:
        raise InvalidRuleError(f"{part} must be an integer") from None
