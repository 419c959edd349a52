from scheduling.domain.generator import OccurrenceGenerator, OccurrenceSequence
from scheduling.domain.models import (
    BookingSnapshot,
    ChangePreview,
    ClientResolutionPolicy,
    CommitResult,
    ImpactSummary,
    Occurrence,
    ResolvedScope,
    ScheduleChangeNotice,
    Series,
    SeriesChanges,
    SeriesDraft,
)
from scheduling.domain.recurrence import Frequency, MonthlyPattern, RecurrenceRule, Weekday
from scheduling.domain.value_objects import (
    CancellationReason,
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

__all__ = [
    "Series",
    "SeriesDraft",
    "Occurrence",
    "SeriesChanges",
    "ClientResolutionPolicy",
    "BookingSnapshot",
    "ImpactSummary",
    "ResolvedScope",
    "ChangePreview",
    "CommitResult",
    "ScheduleChangeNotice",
    "RecurrenceRule",
    "Frequency",
    "MonthlyPattern",
    "Weekday",
    "OccurrenceGenerator",
    "OccurrenceSequence",
    "SeriesId",
    "OccurrenceId",
    "Money",
    "Capacity",
    "EditScope",
    "EndCondition",
    "EndType",
    "SeriesStatus",
    "OccurrenceStatus",
    "CancellationReason",
]
