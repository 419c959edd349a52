import uuid

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Series",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("instructor_id", models.CharField(max_length=64)),
                ("location_id", models.CharField(max_length=64)),
                ("room", models.CharField(blank=True, max_length=100, null=True)),
                ("recurrence_rule", models.CharField(max_length=255)),
                ("start_date", models.DateField()),
                (
                    "end_type",
                    models.CharField(
                        choices=[("date", "Date"), ("count", "Count"), ("never", "Never")],
                        max_length=8,
                    ),
                ),
                ("end_date", models.DateField(blank=True, null=True)),
                ("occurrence_count", models.PositiveIntegerField(blank=True, null=True)),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                ("capacity", models.PositiveIntegerField()),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[("active", "Active"), ("paused", "Paused"), ("ended", "Ended")],
                        default="active",
                        max_length=8,
                    ),
                ),
                ("version", models.PositiveIntegerField(default=1)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "split_from",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="continuations",
                        to="scheduling.series",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "series",
                "ordering": ["start_date", "name"],
                "indexes": [models.Index(fields=["status"], name="series_status_idx")],
            },
        ),
        migrations.CreateModel(
            name="SkipDate",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True, primary_key=True, serialize=False, verbose_name="ID"
                    ),
                ),
                ("date", models.DateField()),
                (
                    "series",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="skip_dates",
                        to="scheduling.series",
                    ),
                ),
            ],
            options={
                "ordering": ["date"],
                "constraints": [
                    models.UniqueConstraint(fields=("series", "date"), name="unique_skip_date")
                ],
            },
        ),
        migrations.CreateModel(
            name="Occurrence",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4, editable=False, primary_key=True, serialize=False
                    ),
                ),
                ("date", models.DateField()),
                ("original_date", models.DateField()),
                ("start_time", models.TimeField()),
                ("end_time", models.TimeField()),
                ("instructor_id", models.CharField(max_length=64)),
                ("location_id", models.CharField(max_length=64)),
                ("room", models.CharField(blank=True, max_length=100, null=True)),
                ("capacity", models.PositiveIntegerField()),
                ("price", models.DecimalField(decimal_places=2, max_digits=10)),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("scheduled", "Scheduled"),
                            ("cancelled", "Cancelled"),
                            ("completed", "Completed"),
                        ],
                        default="scheduled",
                        max_length=10,
                    ),
                ),
                ("is_exception", models.BooleanField(default=False)),
                ("cancellation_reason", models.CharField(blank=True, max_length=64, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                (
                    "series",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="occurrences",
                        to="scheduling.series",
                    ),
                ),
            ],
            options={
                "ordering": ["date", "original_date"],
                "indexes": [
                    models.Index(fields=["series", "date"], name="occurrence_series_date_idx")
                ],
                "constraints": [
                    models.UniqueConstraint(
                        fields=("series", "original_date"), name="unique_generated_date"
                    )
                ],
            },
        ),
    ]
