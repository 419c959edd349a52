"""Django ORM implementation of the ScheduleStore.

Rows are converted to domain models on the way out. A transaction is a
``transaction.atomic()`` block that locks the series rows with
``select_for_update()``; version checks guard writers on databases that
ignore row locks.
"""

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import date

from django.db import IntegrityError
from django.db import transaction as db_transaction

from scheduling import models
from scheduling.domain import (
    Capacity,
    EndCondition,
    EndType,
    Money,
    Occurrence,
    OccurrenceId,
    OccurrenceStatus,
    RecurrenceRule,
    Series,
    SeriesId,
    SeriesStatus,
)
from scheduling.domain.errors import ConcurrentModificationError, SeriesNotFoundError
from scheduling.stores.interfaces import ScheduleStore


def _series_from_row(row: models.Series) -> Series:
    return Series(
        id=SeriesId(row.id),
        name=row.name,
        instructor_id=row.instructor_id,
        location_id=row.location_id,
        room=row.room,
        rule=RecurrenceRule.parse(row.recurrence_rule),
        start_date=row.start_date,
        end_condition=EndCondition(
            EndType(row.end_type),
            end_date=row.end_date,
            count=row.occurrence_count,
        ),
        start_time=row.start_time,
        end_time=row.end_time,
        capacity=Capacity(row.capacity),
        price=Money(row.price),
        status=SeriesStatus(row.status),
        skip_dates=frozenset(skip.date for skip in row.skip_dates.all()),
        version=row.version,
        split_from=SeriesId(row.split_from_id) if row.split_from_id else None,
    )


def _fill_series_row(row: models.Series, series: Series) -> None:
    row.name = series.name
    row.instructor_id = series.instructor_id
    row.location_id = series.location_id
    row.room = series.room
    row.recurrence_rule = series.rule.serialize()
    row.start_date = series.start_date
    row.end_type = series.end_condition.type.value
    row.end_date = series.end_condition.end_date
    row.occurrence_count = series.end_condition.count
    row.start_time = series.start_time
    row.end_time = series.end_time
    row.capacity = series.capacity.value
    row.price = series.price.amount
    row.status = series.status.value
    row.version = series.version
    row.split_from_id = series.split_from.value if series.split_from else None


def _occurrence_from_row(row: models.Occurrence) -> Occurrence:
    return Occurrence(
        id=OccurrenceId(row.id),
        series_id=SeriesId(row.series_id),
        date=row.date,
        original_date=row.original_date,
        start_time=row.start_time,
        end_time=row.end_time,
        instructor_id=row.instructor_id,
        location_id=row.location_id,
        room=row.room,
        capacity=Capacity(row.capacity),
        price=Money(row.price),
        status=OccurrenceStatus(row.status),
        is_exception=row.is_exception,
        cancellation_reason=row.cancellation_reason,
    )


def _fill_occurrence_row(row: models.Occurrence, occurrence: Occurrence) -> None:
    row.series_id = occurrence.series_id.value
    row.date = occurrence.date
    row.original_date = occurrence.original_date
    row.start_time = occurrence.start_time
    row.end_time = occurrence.end_time
    row.instructor_id = occurrence.instructor_id
    row.location_id = occurrence.location_id
    row.room = occurrence.room
    row.capacity = occurrence.capacity.value
    row.price = occurrence.price.amount
    row.status = occurrence.status.value
    row.is_exception = occurrence.is_exception
    row.cancellation_reason = occurrence.cancellation_reason


class DjangoScheduleStore(ScheduleStore):
    """Relational store using Django ORM."""

    @contextmanager
    def transaction(self, *series_ids: SeriesId) -> Iterator[None]:
        with db_transaction.atomic():
            if series_ids:
                # lock in primary key order to keep concurrent writers deadlock free
                list(
                    models.Series.objects.select_for_update()
                    .filter(id__in=[series_id.value for series_id in series_ids])
                    .order_by("id")
                    .values_list("id", flat=True)
                )
            yield

    def get_series(self, series_id: SeriesId) -> Series | None:
        row = (
            models.Series.objects.prefetch_related("skip_dates")
            .filter(id=series_id.value)
            .first()
        )
        return _series_from_row(row) if row else None

    def list_series(self, status: SeriesStatus | None = None) -> list[Series]:
        rows = models.Series.objects.prefetch_related("skip_dates").order_by(
            "start_date", "name", "id"
        )
        if status is not None:
            rows = rows.filter(status=status.value)
        return [_series_from_row(row) for row in rows]

    def add_series(self, series: Series) -> Series:
        with db_transaction.atomic():
            row = models.Series(id=series.id.value)
            _fill_series_row(row, series)
            row.save(force_insert=True)
            self._sync_skip_dates(row, series.skip_dates)
        return series

    def save_series(self, series: Series, expected_version: int) -> Series:
        with db_transaction.atomic():
            row = (
                models.Series.objects.select_for_update()
                .filter(id=series.id.value)
                .first()
            )
            if row is None:
                raise SeriesNotFoundError(series.id)
            if row.version != expected_version:
                raise ConcurrentModificationError(series.id, expected_version, row.version)
            _fill_series_row(row, series)
            row.version = expected_version + 1
            row.save()
            self._sync_skip_dates(row, series.skip_dates)
        return self.get_series(series.id)

    def _sync_skip_dates(self, row: models.Series, skip_dates: frozenset[date]) -> None:
        existing = {skip.date: skip for skip in row.skip_dates.all()}
        for day, skip in existing.items():
            if day not in skip_dates:
                skip.delete()
        for day in sorted(skip_dates - existing.keys()):
            models.SkipDate.objects.create(series=row, date=day)

    def get_occurrence(self, occurrence_id: OccurrenceId) -> Occurrence | None:
        row = models.Occurrence.objects.filter(id=occurrence_id.value).first()
        return _occurrence_from_row(row) if row else None

    def list_occurrences(
        self,
        series_id: SeriesId,
        start: date | None = None,
        end: date | None = None,
    ) -> list[Occurrence]:
        rows = models.Occurrence.objects.filter(series_id=series_id.value)
        if start is not None:
            rows = rows.filter(date__gte=start)
        if end is not None:
            rows = rows.filter(date__lte=end)
        return [_occurrence_from_row(row) for row in rows.order_by("date", "original_date")]

    def add_occurrences(self, occurrences: Iterable[Occurrence]) -> None:
        try:
            with db_transaction.atomic():
                for occurrence in occurrences:
                    row = models.Occurrence(id=occurrence.id.value)
                    _fill_occurrence_row(row, occurrence)
                    row.save(force_insert=True)
        except IntegrityError as exc:
            raise ValueError("Series already has an occurrence for that date") from exc

    def save_occurrences(self, occurrences: Iterable[Occurrence]) -> None:
        occurrences = list(occurrences)
        if not occurrences:
            return
        with db_transaction.atomic():
            rows = models.Occurrence.objects.in_bulk([occ.id.value for occ in occurrences])
            for occurrence in occurrences:
                row = rows.get(occurrence.id.value) or models.Occurrence(id=occurrence.id.value)
                _fill_occurrence_row(row, occurrence)
                row.save()
