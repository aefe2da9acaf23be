"""
Common validators for the driver logbook application.

This module contains shared validation logic used by the logbook
models and request serializers.
"""

from decimal import Decimal, InvalidOperation
from django.core.validators import BaseValidator


class HoursValidator(BaseValidator):
    """
    Validator for hours values in HOS context.

    Ensures hours are non-negative and, when max_hours is given,
    within that limit.
    """

    def __init__(self, max_hours=None):
        self.limit_value = max_hours
        if max_hours is None:
            self.message = "Hours must be a non-negative number."
        else:
            self.message = f"Hours must be between 0 and {max_hours}."

    def compare(self, value, limit_value):
        if value is None or not value.is_finite() or value < 0:
            return True
        return limit_value is not None and value > limit_value

    def clean(self, value):
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None


def validate_non_negative_hours(value):
    """Validate an accumulated hours value."""
    validator = HoursValidator()
    validator(value)


def validate_driving_increment(value):
    """Validate a single driving time increment (at most 24 hours)."""
    validator = HoursValidator(max_hours=24)
    validator(value)
