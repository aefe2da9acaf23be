"""
Status Change Log model for the driver logbook.

Contains the StatusChangeLog model, one row per duty status transition.
Rows are append-only.
"""

from django.db import models

from .choices import DutyStatus


class StatusChangeLog(models.Model):
    """
    Individual duty status transition.

    Attributes:
        id: Entry identifier assigned by the tracker
        session: Foreign key to DriverLogSession
        timestamp: When the transition happened
        from_status: Status before the transition
        to_status: Status after the transition
        location: Location at the transition
        trip_id: Trip open at the transition, if any
        reason: Optional remark
    """

    id = models.CharField(primary_key=True, max_length=64, editable=False)

    session = models.ForeignKey(
        "duty_logs.DriverLogSession",
        on_delete=models.CASCADE,
        related_name="status_changes",
    )

    timestamp = models.DateTimeField()

    from_status = models.CharField(max_length=20, choices=DutyStatus.choices)
    to_status = models.CharField(max_length=20, choices=DutyStatus.choices)

    location = models.CharField(max_length=200, blank=True)
    trip_id = models.CharField(max_length=64, null=True, blank=True)
    reason = models.CharField(max_length=200, blank=True)

    sequence_order = models.PositiveIntegerField(
        help_text="Position of this entry in the session log"
    )

    class Meta:
        db_table = "duty_logs_statuschangelog"
        ordering = ["session", "sequence_order"]
        indexes = [
            models.Index(fields=["session", "timestamp"]),
        ]

    def __str__(self):
        return f"{self.get_from_status_display()} -> {self.get_to_status_display()} at {self.timestamp.strftime('%H:%M')}"
