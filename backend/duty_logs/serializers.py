"""
Driver Logbook API Serializers.

Provides request validation and response serialization for the
driver logbook endpoints. Responses are built from the duty status
tracker's in-memory records rather than from model instances.
"""

from decimal import Decimal
from rest_framework import serializers

from common.validators import validate_driving_increment
from .models.choices import DutyStatus, RiskLevel, parse_duty_status


class DutyStatusField(serializers.CharField):
    """Duty status accepted as stored value or display label."""

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        status = parse_duty_status(value)
        if status is None:
            raise serializers.ValidationError(
                f"Invalid duty status. Expected one of: {', '.join(DutyStatus.values)}"
            )
        return status

    def to_representation(self, value):
        return str(value)


class StatusChangeRequestSerializer(serializers.Serializer):
    status = DutyStatusField()
    can_start_driving = serializers.BooleanField(default=True)
    reason = serializers.CharField(
        max_length=200, required=False, allow_blank=True, default=""
    )


class DrivingTimeRequestSerializer(serializers.Serializer):
    hours = serializers.DecimalField(
        max_digits=8,
        decimal_places=4,
        min_value=Decimal("0"),
        validators=[validate_driving_increment],
    )


class LocationRequestSerializer(serializers.Serializer):
    location = serializers.CharField(max_length=200, allow_blank=True)


class QueryWindowSerializer(serializers.Serializer):
    days = serializers.DecimalField(
        max_digits=6,
        decimal_places=2,
        min_value=Decimal("0.01"),
        required=False,
    )


class ViolationOverrideRequestSerializer(serializers.Serializer):
    """
    Serializer for violation override requests.

    The driver must acknowledge the safety risk, and must accept the
    estimated fine when one is given.
    """

    reason = serializers.CharField(max_length=500)
    driver_id = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    violation_type = serializers.CharField(max_length=50)
    risk_level = serializers.ChoiceField(choices=RiskLevel.choices)
    estimated_fine = serializers.DecimalField(
        max_digits=10,
        decimal_places=2,
        min_value=Decimal("0"),
        required=False,
        allow_null=True,
    )
    risk_acknowledged = serializers.BooleanField(default=False)
    estimated_fine_accepted = serializers.BooleanField(default=False)

    def validate_reason(self, value):
        if not value.strip():
            raise serializers.ValidationError("Please provide a reason for the override")
        return value.strip()

    def validate(self, data):
        if not data.get("risk_acknowledged"):
            raise serializers.ValidationError(
                {"risk_acknowledged": "Please acknowledge the safety risks"}
            )
        if data.get("estimated_fine") and not data.get("estimated_fine_accepted"):
            raise serializers.ValidationError(
                {"estimated_fine_accepted": "Please acknowledge the potential fine"}
            )
        return data


class StatusChangeLogEntrySerializer(serializers.Serializer):
    id = serializers.CharField()
    timestamp = serializers.DateTimeField()
    from_status = DutyStatusField()
    to_status = DutyStatusField()
    from_status_display = serializers.CharField(source="from_status.label")
    to_status_display = serializers.CharField(source="to_status.label")
    location = serializers.CharField()
    trip_id = serializers.CharField(allow_null=True)
    reason = serializers.CharField()


class BreakLogEntrySerializer(serializers.Serializer):
    id = serializers.CharField()
    break_type = serializers.CharField()
    start_time = serializers.DateTimeField()
    end_time = serializers.DateTimeField(allow_null=True)
    duration_hours = serializers.FloatField(allow_null=True)
    location = serializers.CharField()
    trip_id = serializers.CharField(allow_null=True)


class ViolationRecordSerializer(serializers.Serializer):
    id = serializers.CharField()
    violation_type = serializers.CharField()
    detected_at = serializers.DateTimeField()
    magnitude = serializers.FloatField()
    trip_id = serializers.CharField(allow_null=True)


class ViolationOverrideEntrySerializer(serializers.Serializer):
    id = serializers.CharField()
    timestamp = serializers.DateTimeField()
    trip_id = serializers.CharField()
    reason = serializers.CharField()
    driver_id = serializers.CharField()
    violation_type = serializers.CharField()
    risk_level = serializers.CharField()
    estimated_fine = serializers.FloatField(allow_null=True)
    risk_acknowledged = serializers.BooleanField()
    estimated_fine_accepted = serializers.BooleanField()


class DriverLogSnapshotSerializer(serializers.Serializer):
    """
    Serializer for the tracker snapshot.

    Provides the current duty status, HOS counters, derived limit
    checks and recorded violations for presentation.
    """

    current_status = DutyStatusField()
    current_status_display = serializers.CharField()
    status_started_at = serializers.DateTimeField()
    driving_hours_today = serializers.FloatField()
    driving_hours_week = serializers.FloatField()
    total_break_hours = serializers.FloatField()
    is_on_break = serializers.BooleanField()
    break_started_at = serializers.DateTimeField(allow_null=True)
    current_trip_id = serializers.CharField(allow_null=True)
    last_location = serializers.CharField(allow_blank=True)
    hours_remaining = serializers.FloatField()
    cycle_hours_remaining = serializers.FloatField()
    hours_since_last_break = serializers.FloatField()
    needs_30_minute_break = serializers.BooleanField()
    has_violation = serializers.BooleanField()
    violation_type = serializers.CharField(allow_null=True)
    has_cycle_violation = serializers.BooleanField()
    violations = ViolationRecordSerializer(many=True)
    weekly_override_count = serializers.IntegerField()
    can_override = serializers.BooleanField()
