"""
Break Log model for the driver logbook.

Contains the BreakLog model that records explicit rest breaks
taken during a driver session.
"""

from django.db import models

from common.validators import validate_non_negative_hours
from .choices import BreakType


class BreakLog(models.Model):
    """
    Explicit rest break.

    A row is created open when the break starts and closed once, with
    end_time and duration_hours, when the break ends.
    """

    id = models.CharField(primary_key=True, max_length=64, editable=False)

    session = models.ForeignKey(
        "duty_logs.DriverLogSession",
        on_delete=models.CASCADE,
        related_name="breaks",
    )

    break_type = models.CharField(
        max_length=20,
        choices=BreakType.choices,
        default=BreakType.THIRTY_MINUTE,
    )

    start_time = models.DateTimeField(help_text="When the break started")

    end_time = models.DateTimeField(
        null=True, blank=True, help_text="When the break ended"
    )

    duration_hours = models.DecimalField(
        max_digits=12,
        decimal_places=4,
        null=True,
        blank=True,
        validators=[validate_non_negative_hours],
        help_text="Break duration in hours, set when the break ends",
    )

    location = models.CharField(max_length=200, blank=True)
    trip_id = models.CharField(max_length=64, null=True, blank=True)

    class Meta:
        db_table = "duty_logs_breaklog"
        ordering = ["session", "start_time"]
        indexes = [
            models.Index(fields=["session", "start_time"]),
        ]

    def __str__(self):
        """Return string representation of the break."""
        return f"{self.get_break_type_display()} from {self.start_time.strftime('%H:%M')}"

    @property
    def is_open(self):
        return self.end_time is None
