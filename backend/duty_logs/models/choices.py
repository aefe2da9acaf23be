"""
Shared choice enumerations for the driver logbook.

Contains the duty status choices used by the logbook models and by the
in-memory duty status tracker.
"""

from django.db import models


class DutyStatus(models.TextChoices):
    """Duty status options from HOS regulations (log sheet grid rows)."""

    OFF_DUTY = "off_duty", "Off Duty"
    SLEEPER_BERTH = "sleeper_berth", "Sleeper Berth"
    ON_DUTY_NOT_DRIVING = "on_duty_not_driving", "On Duty (Not Driving)"
    DRIVING = "driving", "Driving"


# Labels used by the driver-facing logbook screens
DUTY_STATUS_ALIASES = {
    "on duty": DutyStatus.ON_DUTY_NOT_DRIVING,
    "on duty not driving": DutyStatus.ON_DUTY_NOT_DRIVING,
}

REST_STATUSES = (DutyStatus.OFF_DUTY, DutyStatus.SLEEPER_BERTH)
ON_DUTY_STATUSES = (DutyStatus.DRIVING, DutyStatus.ON_DUTY_NOT_DRIVING)


def parse_duty_status(value):
    """
    Resolve a duty status from an enum member, stored value or display label.

    Returns None when the value does not name a duty status.
    """
    if isinstance(value, DutyStatus):
        return value
    if not isinstance(value, str):
        return None

    key = value.strip()
    if key in DutyStatus.values:
        return DutyStatus(key)

    lowered = key.lower()
    for status in DutyStatus:
        if status.label.lower() == lowered:
            return status

    return DUTY_STATUS_ALIASES.get(lowered)


class BreakType(models.TextChoices):
    THIRTY_MINUTE = "30-minute", "30-Minute Rest Break"


class ViolationType(models.TextChoices):
    DRIVING_LIMIT = "driving_limit_exceeded", "11-Hour Driving Limit Exceeded"
    CYCLE_LIMIT = "cycle_limit_exceeded", "70-Hour/8-Day Cycle Limit Exceeded"


class RiskLevel(models.TextChoices):
    LOW = "Low", "Low"
    MEDIUM = "Medium", "Medium"
    HIGH = "High", "High"
    CRITICAL = "Critical", "Critical"
