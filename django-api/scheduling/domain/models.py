"""Domain models representing persisted state and computed results.

These are pure domain objects with no API input rules.
Django ORM models are in scheduling/models.py (persistence layer).
"""

from dataclasses import dataclass, field, fields
from datetime import date, time
from typing import Any, Self

from scheduling.domain.errors import InvalidRuleError
from scheduling.domain.recurrence import RecurrenceRule
from scheduling.domain.value_objects import (
    Capacity,
    EditScope,
    EndCondition,
    EndType,
    Money,
    OccurrenceId,
    OccurrenceStatus,
    SeriesId,
    SeriesStatus,
)

# Attributes an occurrence inherits from its series unless overridden.
INHERITED_FIELDS = (
    "start_time",
    "end_time",
    "instructor_id",
    "location_id",
    "room",
    "capacity",
    "price",
)


def _check_time_window(start_time: time, end_time: time) -> None:
    if end_time <= start_time:
        raise ValueError("Class must end after it starts")


@dataclass(frozen=True)
class SeriesDraft:
    """Input for creating a Series."""

    name: str
    instructor_id: str
    location_id: str
    rule: RecurrenceRule
    start_date: date
    end_condition: EndCondition
    start_time: time
    end_time: time
    capacity: Capacity
    price: Money
    room: str | None = None
    skip_dates: frozenset[date] = frozenset()


@dataclass(frozen=True)
class Series:
    """Domain representation of a recurring class Series."""

    id: SeriesId
    name: str
    instructor_id: str
    location_id: str
    rule: RecurrenceRule
    start_date: date
    end_condition: EndCondition
    start_time: time
    end_time: time
    capacity: Capacity
    price: Money
    room: str | None = None
    status: SeriesStatus = SeriesStatus.ACTIVE
    skip_dates: frozenset[date] = frozenset()
    version: int = 1
    split_from: SeriesId | None = None

    def __post_init__(self) -> None:
        _check_time_window(self.start_time, self.end_time)
        end = self.end_condition
        if end.type is EndType.DATE and end.end_date < self.start_date:
            raise InvalidRuleError("End date must not be before the start date")

    @classmethod
    def from_draft(cls, series_id: SeriesId, draft: SeriesDraft) -> Self:
        return cls(
            id=series_id,
            **{f.name: getattr(draft, f.name) for f in fields(SeriesDraft)},
        )

    def defaults(self) -> dict[str, Any]:
        """Attributes that occurrences inherit."""
        return {name: getattr(self, name) for name in INHERITED_FIELDS}


@dataclass(frozen=True)
class Occurrence:
    """One concrete dated instance of a Series.

    ``original_date`` is the date the recurrence generated; it only differs
    from ``date`` when a single occurrence was moved.
    """

    id: OccurrenceId
    series_id: SeriesId
    date: date
    original_date: date
    start_time: time
    end_time: time
    instructor_id: str
    location_id: str
    capacity: Capacity
    price: Money
    room: str | None = None
    status: OccurrenceStatus = OccurrenceStatus.SCHEDULED
    is_exception: bool = False
    cancellation_reason: str | None = None

    def __post_init__(self) -> None:
        _check_time_window(self.start_time, self.end_time)

    @classmethod
    def from_series(cls, series: Series, day: date) -> Self:
        return cls(
            id=OccurrenceId.new(),
            series_id=series.id,
            date=day,
            original_date=day,
            **series.defaults(),
        )

    @property
    def is_cancelled(self) -> bool:
        return self.status is OccurrenceStatus.CANCELLED


@dataclass(frozen=True)
class SeriesChanges:
    """Attributes an edit sets. ``None`` leaves an attribute unchanged."""

    name: str | None = None
    start_time: time | None = None
    end_time: time | None = None
    instructor_id: str | None = None
    location_id: str | None = None
    room: str | None = None
    capacity: Capacity | None = None
    price: Money | None = None
    rule: RecurrenceRule | None = None
    new_date: date | None = None

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))

    def overrides(self) -> dict[str, Any]:
        """Set attributes that occurrences carry."""
        return {
            name: getattr(self, name)
            for name in INHERITED_FIELDS
            if getattr(self, name) is not None
        }

    def describe(self) -> dict[str, str]:
        return {
            f.name: str(getattr(self, f.name))
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class ClientResolutionPolicy:
    """How affected clients are handled after a studio-initiated change."""

    auto_move: bool = True
    offer_credit: bool = True
    allow_refund: bool = False
    send_rebook_links: bool = True


@dataclass(frozen=True)
class BookingSnapshot:
    """Booking state of one occurrence, owned by the booking subsystem."""

    booked: int = 0
    waitlist: int = 0
    has_payments: bool = False


@dataclass(frozen=True)
class ImpactSummary:
    """Read-only forecast of a prospective change."""

    affected_occurrences: int
    affected_clients: int
    revenue_at_risk: Money
    waitlist_count: int
    refunds_required: int
    demoted_clients: int = 0

    @classmethod
    def empty(cls) -> Self:
        return cls(0, 0, Money.zero(), 0, 0)


@dataclass(frozen=True)
class ResolvedScope:
    """Occurrences an edit touches and whether the series must split."""

    series_id: SeriesId
    scope: EditScope
    from_date: date
    affected_occurrence_ids: tuple[OccurrenceId, ...]
    requires_split: bool
    series_version: int
    new_series_start_date: date | None = None


@dataclass(frozen=True)
class ChangePreview:
    resolved: ResolvedScope
    impact: ImpactSummary


@dataclass(frozen=True)
class ScheduleChangeNotice:
    """What collaborators are told after a committed change."""

    kind: str
    series_id: SeriesId
    occurrence_ids: tuple[OccurrenceId, ...]
    policy: ClientResolutionPolicy
    changes: SeriesChanges | None = None
    reason: str | None = None


@dataclass(frozen=True)
class CommitResult:
    series: Series
    impact: ImpactSummary
    new_series: Series | None = None
    updated_occurrence_ids: tuple[OccurrenceId, ...] = ()
    cancelled_occurrence_ids: tuple[OccurrenceId, ...] = ()
    warnings: tuple[str, ...] = field(default=())
