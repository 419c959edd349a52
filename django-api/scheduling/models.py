"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/.
Instructor and location are stored as foreign ids of the people directory,
not as denormalized copies.
"""

import uuid

from django.db import models


class Series(models.Model):
    """Persistence model for recurring class series."""

    class Status(models.TextChoices):
        ACTIVE = "active"
        PAUSED = "paused"
        ENDED = "ended"

    class EndType(models.TextChoices):
        DATE = "date"
        COUNT = "count"
        NEVER = "never"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    name = models.CharField(max_length=255)
    instructor_id = models.CharField(max_length=64)
    location_id = models.CharField(max_length=64)
    room = models.CharField(max_length=100, blank=True, null=True)
    recurrence_rule = models.CharField(max_length=255)
    start_date = models.DateField()
    end_type = models.CharField(max_length=8, choices=EndType.choices)
    end_date = models.DateField(blank=True, null=True)
    occurrence_count = models.PositiveIntegerField(blank=True, null=True)
    start_time = models.TimeField()
    end_time = models.TimeField()
    capacity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=8, choices=Status.choices, default=Status.ACTIVE)
    version = models.PositiveIntegerField(default=1)
    split_from = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="continuations",
        blank=True,
        null=True,
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["start_date", "name"]
        indexes = [
            models.Index(fields=["status"], name="series_status_idx"),
        ]
        verbose_name_plural = "series"

    def __str__(self) -> str:
        return self.name


class SkipDate(models.Model):
    """A date excluded from generation of a series (holiday or break)."""

    series = models.ForeignKey(Series, on_delete=models.CASCADE, related_name="skip_dates")
    date = models.DateField()

    class Meta:
        ordering = ["date"]
        constraints = [
            models.UniqueConstraint(fields=["series", "date"], name="unique_skip_date"),
        ]

    def __str__(self) -> str:
        return f"{self.series.name} - skip {self.date}"


class Occurrence(models.Model):
    """Persistence model for one dated class of a series."""

    class Status(models.TextChoices):
        SCHEDULED = "scheduled"
        CANCELLED = "cancelled"
        COMPLETED = "completed"

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    series = models.ForeignKey(Series, on_delete=models.PROTECT, related_name="occurrences")
    date = models.DateField()
    original_date = models.DateField()
    start_time = models.TimeField()
    end_time = models.TimeField()
    instructor_id = models.CharField(max_length=64)
    location_id = models.CharField(max_length=64)
    room = models.CharField(max_length=100, blank=True, null=True)
    capacity = models.PositiveIntegerField()
    price = models.DecimalField(max_digits=10, decimal_places=2)
    status = models.CharField(max_length=10, choices=Status.choices, default=Status.SCHEDULED)
    is_exception = models.BooleanField(default=False)
    cancellation_reason = models.CharField(max_length=64, blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["date", "original_date"]
        indexes = [
            models.Index(fields=["series", "date"], name="occurrence_series_date_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["series", "original_date"], name="unique_generated_date"
            ),
        ]

    def __str__(self) -> str:
        return f"{self.series.name} - {self.date}"
