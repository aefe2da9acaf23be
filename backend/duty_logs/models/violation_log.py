"""
Violation models for the driver logbook.

Contains the DrivingViolation model (HOS limits reached while driving)
and the ViolationOverrideLog model (driver overrides of predicted
violations, scoped to a trip).
"""

from django.db import models

from .choices import RiskLevel, ViolationType


class DrivingViolation(models.Model):
    """
    HOS limit reached by accumulated driving time.

    Attributes:
        violation_type: Which limit was reached
        detected_at: When the driving increment reached the limit
        magnitude: Hours over the limit at detection
    """

    id = models.CharField(primary_key=True, max_length=64, editable=False)

    session = models.ForeignKey(
        "duty_logs.DriverLogSession",
        on_delete=models.CASCADE,
        related_name="violations",
    )

    violation_type = models.CharField(max_length=30, choices=ViolationType.choices)
    detected_at = models.DateTimeField()
    magnitude = models.DecimalField(max_digits=12, decimal_places=4)
    trip_id = models.CharField(max_length=64, null=True, blank=True)

    sequence_order = models.PositiveIntegerField()

    class Meta:
        db_table = "duty_logs_drivingviolation"
        ordering = ["session", "sequence_order"]
        unique_together = ["session", "sequence_order"]

    def __str__(self):
        return f"{self.get_violation_type_display()} (+{self.magnitude}h)"


class ViolationOverrideLog(models.Model):
    """
    Documented override of a predicted violation.

    Attributes:
        trip_id: Trip the override was documented in ("no-trip" outside trips)
        reason: Driver's stated reason
        violation_type: Type of the predicted violation
        risk_level: Risk level acknowledged by the driver
        estimated_fine: Estimated fine, if known
    """

    id = models.CharField(primary_key=True, max_length=64, editable=False)

    session = models.ForeignKey(
        "duty_logs.DriverLogSession",
        on_delete=models.CASCADE,
        related_name="overrides",
    )

    timestamp = models.DateTimeField()
    trip_id = models.CharField(max_length=64)
    reason = models.CharField(max_length=500)
    driver_id = models.CharField(max_length=64, blank=True)
    violation_type = models.CharField(max_length=50)
    risk_level = models.CharField(max_length=10, choices=RiskLevel.choices)

    estimated_fine = models.DecimalField(
        max_digits=10, decimal_places=2, null=True, blank=True
    )

    risk_acknowledged = models.BooleanField(default=False)
    estimated_fine_accepted = models.BooleanField(default=False)

    class Meta:
        db_table = "duty_logs_violationoverridelog"
        ordering = ["session", "timestamp"]
        indexes = [
            models.Index(fields=["session", "trip_id"]),
        ]

    def __str__(self):
        return f"Override {self.violation_type} on {self.trip_id}"
