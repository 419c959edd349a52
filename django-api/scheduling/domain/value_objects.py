"""Domain primitives that enforce validity at creation time."""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Self
from uuid import UUID, uuid4

from scheduling.domain.errors import InvalidRuleError


@dataclass(frozen=True, order=True)
class SeriesId:
    """Unique identifier for a Series."""

    value: UUID

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True, order=True)
class OccurrenceId:
    """Unique identifier for an Occurrence."""

    value: UUID

    @classmethod
    def new(cls) -> Self:
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Money:
    """Price representation with validation."""

    amount: Decimal

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __str__(self) -> str:
        return f"{self.amount:.2f}"

    def __mul__(self, count: int) -> "Money":
        return Money(self.amount * count)

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    @classmethod
    def zero(cls) -> Self:
        return cls(Decimal("0"))


@dataclass(frozen=True)
class Capacity:
    """Non-negative integer representing capacity."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError("Capacity cannot be negative")


class SeriesStatus(Enum):
    ACTIVE = "active"
    PAUSED = "paused"
    ENDED = "ended"


class OccurrenceStatus(Enum):
    SCHEDULED = "scheduled"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class EditScope(Enum):
    """Breadth of an edit request. Computed per request, never persisted."""

    THIS_ONLY = "this_only"
    THIS_AND_FOLLOWING = "this_and_following"
    ENTIRE_SERIES = "entire_series"


class CancellationReason(Enum):
    INSTRUCTOR_UNAVAILABLE = "instructor_unavailable"
    LOCATION_UNAVAILABLE = "location_unavailable"
    HOLIDAY_BREAK = "holiday_break"
    LOW_ENROLLMENT = "low_enrollment"
    SCHEDULE_CHANGE = "schedule_change"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class EndType(Enum):
    DATE = "date"
    COUNT = "count"
    NEVER = "never"


@dataclass(frozen=True)
class EndCondition:
    """When a series stops generating occurrences."""

    type: EndType
    end_date: date | None = None
    count: int | None = None

    def __post_init__(self) -> None:
        if self.type is EndType.DATE:
            if self.end_date is None:
                raise InvalidRuleError("End date is required")
            if self.count is not None:
                raise InvalidRuleError("End date and occurrence count are exclusive")
        elif self.type is EndType.COUNT:
            if self.count is None or self.count < 1:
                raise InvalidRuleError("Occurrence count must be at least 1")
            if self.end_date is not None:
                raise InvalidRuleError("End date and occurrence count are exclusive")
        elif self.end_date is not None or self.count is not None:
            raise InvalidRuleError("A never-ending series takes no end date or count")

    @classmethod
    def on(cls, end_date: date) -> Self:
        return cls(EndType.DATE, end_date=end_date)

    @classmethod
    def after(cls, count: int) -> Self:
        return cls(EndType.COUNT, count=count)

    @classmethod
    def never(cls) -> Self:
        return cls(EndType.NEVER)
