"""
Driver Log Session model for the driver logbook.

Contains the DriverLogSession model that stores the persisted
duty status state of a driver's active session.
"""

import uuid
from decimal import Decimal
from django.db import models

from common.validators import validate_non_negative_hours
from .choices import DutyStatus


class DriverLogSession(models.Model):
    """
    Persisted duty status state for one driver.

    One row per driver; the append-only logs reference this row.

    Attributes:
        id: UUID primary key
        driver_id: Identifier of the driver owning the session
        current_status: Duty status now in effect
        status_started_at: When the current status began
        driving_hours_today: Hours driven in the current shift
        driving_hours_week: Hours driven in the current 8-day cycle
        total_break_hours: Accumulated explicit break time
        is_on_break: Whether the driver is resting
        break_started_at: Start of the open explicit break
        current_trip_id: Active trip identifier
        last_location: Location stamped on new log entries
        revision: Incremented on every save; a stale writer is refused
    """

    id = models.UUIDField(
        primary_key=True,
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier for the driver log session",
    )

    driver_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Driver this session belongs to",
    )

    current_status = models.CharField(
        max_length=20,
        choices=DutyStatus.choices,
        default=DutyStatus.OFF_DUTY,
        help_text="Duty status now in effect",
    )

    status_started_at = models.DateTimeField(help_text="When the current status began")

    driving_hours_today = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal("0"),
        validators=[validate_non_negative_hours],
        help_text="Hours driven since the start of the current shift",
    )

    driving_hours_week = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal("0"),
        validators=[validate_non_negative_hours],
        help_text="Hours driven in the current 8-day cycle",
    )

    total_break_hours = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        default=Decimal("0"),
        validators=[validate_non_negative_hours],
        help_text="Accumulated explicit break time",
    )

    is_on_break = models.BooleanField(default=False)

    break_started_at = models.DateTimeField(
        null=True, blank=True, help_text="Start of the open explicit break"
    )

    current_trip_id = models.CharField(max_length=64, null=True, blank=True)

    last_location = models.CharField(max_length=200, blank=True)
    revision = models.PositiveIntegerField(
        default=0, help_text="Incremented on every save of the session"
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "duty_logs_driverlogsession"
        verbose_name = "Driver Log Session"
        verbose_name_plural = "Driver Log Sessions"

    def __str__(self):
        """Return string representation of the session."""
        return f"{self.driver_id} - {self.get_current_status_display()}"
