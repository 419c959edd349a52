"""Serializers for request input and for domain models in API responses.

Input serializers validate format only and build domain inputs; domain
rules are enforced by the services.
"""

from decimal import Decimal

from rest_framework import serializers

from scheduling.domain import (
    Capacity,
    ClientResolutionPolicy,
    EditScope,
    EndCondition,
    EndType,
    Money,
    RecurrenceRule,
    SeriesChanges,
    SeriesDraft,
)
from scheduling.domain.errors import InvalidRuleError


class RecurrenceRuleField(serializers.CharField):
    """Recurrence rule in its canonical string form, e.g. FREQ=WEEKLY;BYDAY=MO."""

    def to_internal_value(self, data) -> RecurrenceRule:
        try:
            return RecurrenceRule.parse(super().to_internal_value(data))
        except InvalidRuleError as exc:
            raise serializers.ValidationError(exc.message) from exc


class PolicySerializer(serializers.Serializer):
    auto_move = serializers.BooleanField(default=True)
    offer_credit = serializers.BooleanField(default=True)
    allow_refund = serializers.BooleanField(default=False)
    send_rebook_links = serializers.BooleanField(default=True)


def build_policy(data: dict | None) -> ClientResolutionPolicy:
    return ClientResolutionPolicy(**data) if data else ClientResolutionPolicy()


class SeriesCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255)
    instructor_id = serializers.CharField(max_length=64)
    location_id = serializers.CharField(max_length=64)
    room = serializers.CharField(max_length=100, required=False, allow_null=True, default=None)
    rule = RecurrenceRuleField()
    start_date = serializers.DateField()
    end_type = serializers.ChoiceField(choices=[end.value for end in EndType])
    end_date = serializers.DateField(required=False, allow_null=True, default=None)
    occurrence_count = serializers.IntegerField(
        min_value=1, required=False, allow_null=True, default=None
    )
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    capacity = serializers.IntegerField(min_value=0)
    price = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=Decimal("0"))
    skip_dates = serializers.ListField(child=serializers.DateField(), required=False, default=list)

    def to_draft(self) -> SeriesDraft:
        """Build a SeriesDraft. Raises InvalidRuleError for a bad end condition."""
        data = self.validated_data
        return SeriesDraft(
            name=data["name"],
            instructor_id=data["instructor_id"],
            location_id=data["location_id"],
            room=data["room"],
            rule=data["rule"],
            start_date=data["start_date"],
            end_condition=EndCondition(
                EndType(data["end_type"]),
                end_date=data["end_date"],
                count=data["occurrence_count"],
            ),
            start_time=data["start_time"],
            end_time=data["end_time"],
            capacity=Capacity(data["capacity"]),
            price=Money(data["price"]),
            skip_dates=frozenset(data["skip_dates"]),
        )


class ChangesSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, required=False)
    start_time = serializers.TimeField(required=False)
    end_time = serializers.TimeField(required=False)
    instructor_id = serializers.CharField(max_length=64, required=False)
    location_id = serializers.CharField(max_length=64, required=False)
    room = serializers.CharField(max_length=100, required=False)
    capacity = serializers.IntegerField(min_value=0, required=False)
    price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=Decimal("0"), required=False
    )
    rule = RecurrenceRuleField(required=False)
    new_date = serializers.DateField(required=False)


def build_changes(data: dict | None) -> SeriesChanges:
    data = dict(data or {})
    if "capacity" in data:
        data["capacity"] = Capacity(data["capacity"])
    if "price" in data:
        data["price"] = Money(data["price"])
    return SeriesChanges(**data)


class ScopeSerializer(serializers.Serializer):
    from_date = serializers.DateField()
    scope = serializers.ChoiceField(choices=[scope.value for scope in EditScope])

    def validate_scope(self, value: str) -> EditScope:
        return EditScope(value)


class PreviewRequestSerializer(ScopeSerializer):
    changes = ChangesSerializer(required=False)


class ChangeRequestSerializer(ScopeSerializer):
    changes = ChangesSerializer()
    policy = PolicySerializer(required=False)
    expected_version = serializers.IntegerField(min_value=1, required=False)


class CancellationRequestSerializer(ScopeSerializer):
    reason = serializers.CharField(max_length=64)
    policy = PolicySerializer(required=False)
    expected_version = serializers.IntegerField(min_value=1, required=False)


class MaterializeRequestSerializer(serializers.Serializer):
    horizon = serializers.DateField(required=False)


class OccurrenceWindowSerializer(serializers.Serializer):
    start = serializers.DateField(required=False)
    end = serializers.DateField(required=False)

    def validate(self, attrs):
        if attrs.get("start") and attrs.get("end") and attrs["end"] < attrs["start"]:
            raise serializers.ValidationError("end must not be before start")
        return attrs


class SeriesSerializer(serializers.Serializer):
    """Serializer for Series domain model."""

    id = serializers.CharField()
    name = serializers.CharField()
    instructor_id = serializers.CharField()
    location_id = serializers.CharField()
    room = serializers.CharField(allow_null=True)
    rule = serializers.CharField()
    description = serializers.CharField(source="rule.describe")
    start_date = serializers.DateField()
    end_type = serializers.CharField(source="end_condition.type.value")
    end_date = serializers.DateField(source="end_condition.end_date", allow_null=True)
    occurrence_count = serializers.IntegerField(source="end_condition.count", allow_null=True)
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    capacity = serializers.IntegerField(source="capacity.value")
    price = serializers.DecimalField(max_digits=10, decimal_places=2, source="price.amount")
    status = serializers.CharField(source="status.value")
    skip_dates = serializers.SerializerMethodField()
    version = serializers.IntegerField()
    split_from = serializers.CharField(allow_null=True)

    def get_skip_dates(self, series) -> list[str]:
        return [day.isoformat() for day in sorted(series.skip_dates)]


class OccurrenceSerializer(serializers.Serializer):
    """Serializer for Occurrence domain model."""

    id = serializers.CharField()
    series_id = serializers.CharField()
    date = serializers.DateField()
    original_date = serializers.DateField()
    start_time = serializers.TimeField()
    end_time = serializers.TimeField()
    instructor_id = serializers.CharField()
    location_id = serializers.CharField()
    room = serializers.CharField(allow_null=True)
    capacity = serializers.IntegerField(source="capacity.value")
    price = serializers.DecimalField(max_digits=10, decimal_places=2, source="price.amount")
    status = serializers.CharField(source="status.value")
    is_exception = serializers.BooleanField()
    cancellation_reason = serializers.CharField(allow_null=True)


class ImpactSerializer(serializers.Serializer):
    affected_occurrences = serializers.IntegerField()
    affected_clients = serializers.IntegerField()
    revenue_at_risk = serializers.DecimalField(
        max_digits=12, decimal_places=2, source="revenue_at_risk.amount"
    )
    waitlist_count = serializers.IntegerField()
    refunds_required = serializers.IntegerField()
    demoted_clients = serializers.IntegerField()


class PreviewSerializer(serializers.Serializer):
    scope = serializers.CharField(source="resolved.scope.value")
    from_date = serializers.DateField(source="resolved.from_date")
    affected_occurrence_ids = serializers.ListField(
        child=serializers.CharField(), source="resolved.affected_occurrence_ids"
    )
    requires_split = serializers.BooleanField(source="resolved.requires_split")
    new_series_start_date = serializers.DateField(
        source="resolved.new_series_start_date", allow_null=True
    )
    series_version = serializers.IntegerField(source="resolved.series_version")
    impact = ImpactSerializer()


class CommitResultSerializer(serializers.Serializer):
    series = SeriesSerializer()
    new_series = SeriesSerializer(allow_null=True)
    impact = ImpactSerializer()
    updated_occurrence_ids = serializers.ListField(child=serializers.CharField())
    cancelled_occurrence_ids = serializers.ListField(child=serializers.CharField())
    warnings = serializers.ListField(child=serializers.CharField())
