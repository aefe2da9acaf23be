"""
HOS Calculator Service.

Provides core Hours of Service calculations and rule validation
based on FMCSA regulations for property-carrying commercial vehicles.

This service implements the HOS business logic used by the driver logbook:
- 11-hour driving limit calculation
- 70 hours in 8 days cycle calculation
- 30-minute break requirement after 8 hours driving

Limits default to the FMCSA values and can be overridden through the
``HOS_RULES`` Django setting.

Single Responsibility: HOS calculations and rule validation only.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional, Tuple
from django.conf import settings
from django.utils import timezone

logger = logging.getLogger(__name__)

DRIVING_LIMIT_EXCEEDED = "driving_limit_exceeded"
CYCLE_LIMIT_EXCEEDED = "cycle_limit_exceeded"


class HOSCalculatorService:
    """
    Service for calculating Hours of Service compliance.

    A limit counts as violated once it is reached: a driver with zero
    hours remaining may not continue driving.
    """

    # HOS regulation constants
    MAX_DRIVING_HOURS = Decimal("11")  # 11 hours driving in duty period
    MAX_CYCLE_HOURS = Decimal("70")  # 70 hours in 8 days
    BREAK_REQUIRED_AFTER_HOURS = Decimal("8")  # Break required after 8 hours driving

    CONFIGURABLE_LIMITS = (
        "MAX_DRIVING_HOURS",
        "MAX_CYCLE_HOURS",
        "BREAK_REQUIRED_AFTER_HOURS",
    )

    def __init__(self, rules: Optional[Dict] = None):
        """Initialize HOS calculator with regulatory constants."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        configured = dict(getattr(settings, "HOS_RULES", {}) or {})
        configured.update(rules or {})

        for name in self.CONFIGURABLE_LIMITS:
            if name in configured:
                setattr(self, name, self._to_hours(configured[name], name))

    def hours_remaining(self, driving_hours_today: Decimal) -> Decimal:
        """Driving hours left before the daily driving limit."""
        return max(Decimal("0"), self.MAX_DRIVING_HOURS - driving_hours_today)

    def cycle_hours_remaining(self, driving_hours_week: Decimal) -> Decimal:
        """Hours left in the 70-hour/8-day cycle."""
        return max(Decimal("0"), self.MAX_CYCLE_HOURS - driving_hours_week)

    def driving_limit_reached(self, driving_hours_today: Decimal) -> bool:
        return driving_hours_today >= self.MAX_DRIVING_HOURS

    def cycle_limit_reached(self, driving_hours_week: Decimal) -> bool:
        return driving_hours_week >= self.MAX_CYCLE_HOURS

    def needs_break(self, hours_since_last_break: Decimal) -> bool:
        return hours_since_last_break >= self.BREAK_REQUIRED_AFTER_HOURS

    def evaluate_driving_violation(
        self, driving_hours_today: Decimal
    ) -> Tuple[bool, Optional[str]]:
        """
        Evaluate the daily driving limit.

        Returns:
            Tuple of (has_violation, violation_type)
        """
        if self.driving_limit_reached(driving_hours_today):
            self.logger.debug(
                f"Driving limit reached: {driving_hours_today}h of {self.MAX_DRIVING_HOURS}h"
            )
            return True, DRIVING_LIMIT_EXCEEDED
        return False, None

    def detect_new_violations(
        self,
        previous_today: Decimal,
        current_today: Decimal,
        previous_week: Decimal,
        current_week: Decimal,
    ) -> List[Tuple[str, Decimal]]:
        """
        Detect limits crossed by a driving time increment.

        Returns:
            List of (violation_type, hours over limit) for each limit that
            was not reached before the increment and is reached after it
        """
        crossed = []

        if not self.driving_limit_reached(
            previous_today
        ) and self.driving_limit_reached(current_today):
            crossed.append(
                (DRIVING_LIMIT_EXCEEDED, current_today - self.MAX_DRIVING_HOURS)
            )

        if not self.cycle_limit_reached(previous_week) and self.cycle_limit_reached(
            current_week
        ):
            crossed.append((CYCLE_LIMIT_EXCEEDED, current_week - self.MAX_CYCLE_HOURS))

        return crossed

    def calculate_available_hours(
        self,
        driving_hours_today: Decimal,
        driving_hours_week: Decimal = Decimal("0"),
        hours_since_last_break: Decimal = Decimal("0"),
    ) -> Dict:
        """
        Calculate available hours under all HOS limits.

        Args:
            driving_hours_today: Hours driven in current shift
            driving_hours_week: Hours used in current 8-day cycle
            hours_since_last_break: Hours driven since last 30-min break

        Returns:
            Dict containing all calculated available hours and compliance status
        """
        try:
            self._validate_hours_input(
                driving_hours_today, driving_hours_week, hours_since_last_break
            )

            available_driving = self.hours_remaining(driving_hours_today)
            available_cycle = self.cycle_hours_remaining(driving_hours_week)
            hours_until_break = max(
                Decimal("0"), self.BREAK_REQUIRED_AFTER_HOURS - hours_since_last_break
            )

            can_drive, violation_reason = self._check_can_drive(
                available_cycle, available_driving, hours_until_break
            )

            if hours_until_break > 0:
                max_continuous_driving = min(
                    available_cycle, available_driving, hours_until_break
                )
            else:
                max_continuous_driving = Decimal("0")

            return {
                "can_drive": can_drive,
                "violation_reason": violation_reason,
                "available_hours": {
                    "driving_hours": float(available_driving),
                    "cycle_hours": float(available_cycle),
                    "hours_until_break": float(hours_until_break),
                },
                "limits": {
                    "max_driving_hours": float(self.MAX_DRIVING_HOURS),
                    "max_cycle_hours": float(self.MAX_CYCLE_HOURS),
                    "break_required_after_hours": float(
                        self.BREAK_REQUIRED_AFTER_HOURS
                    ),
                },
                "max_continuous_driving_hours": float(max_continuous_driving),
                "calculated_at": timezone.now().isoformat(),
            }

        except ValueError as e:
            self.logger.error(f"HOS calculation failed: {str(e)}")
            raise HOSCalculationError(f"Failed to calculate available hours: {str(e)}")

    def validate_hos_compliance(
        self,
        driving_hours_today: Decimal,
        driving_hours_week: Decimal,
        hours_since_last_break: Decimal = Decimal("0"),
    ) -> Dict:
        """
        Validate current HOS counters against all regulations.

        Returns:
            Dict containing violations, warnings and a 0-100 compliance score
        """
        try:
            self._validate_hours_input(
                driving_hours_today, driving_hours_week, hours_since_last_break
            )
        except ValueError as e:
            self.logger.error(f"HOS compliance validation failed: {str(e)}")
            raise HOSCalculationError(f"Failed to validate HOS compliance: {str(e)}")

        violations = []
        warnings = []

        if self.cycle_limit_reached(driving_hours_week):
            violations.append(
                {
                    "type": CYCLE_LIMIT_EXCEEDED,
                    "regulation": "395.3(b)",
                    "description": f"Cycle hours ({driving_hours_week}) reached {self.MAX_CYCLE_HOURS}-hour limit",
                    "hours_over": float(driving_hours_week - self.MAX_CYCLE_HOURS),
                }
            )
        elif driving_hours_week >= self.MAX_CYCLE_HOURS - 5:
            warnings.append(
                {
                    "type": "approaching_cycle_limit",
                    "description": f"Approaching cycle limit (currently at {driving_hours_week} hours)",
                    "hours_remaining": float(
                        self.cycle_hours_remaining(driving_hours_week)
                    ),
                }
            )

        if self.driving_limit_reached(driving_hours_today):
            violations.append(
                {
                    "type": DRIVING_LIMIT_EXCEEDED,
                    "regulation": "395.3(a)(3)",
                    "description": f"Driving hours ({driving_hours_today}) reached {self.MAX_DRIVING_HOURS}-hour limit",
                    "hours_over": float(driving_hours_today - self.MAX_DRIVING_HOURS),
                }
            )

        if self.needs_break(hours_since_last_break):
            violations.append(
                {
                    "type": "break_required",
                    "regulation": "395.3(a)(3)(ii)",
                    "description": f"30-minute break required after {self.BREAK_REQUIRED_AFTER_HOURS} hours driving",
                    "hours_over": float(
                        hours_since_last_break - self.BREAK_REQUIRED_AFTER_HOURS
                    ),
                }
            )
        elif hours_since_last_break >= self.BREAK_REQUIRED_AFTER_HOURS - 1:
            warnings.append(
                {
                    "type": "break_needed_soon",
                    "description": f"30-minute break will be required soon (driven {hours_since_last_break} hours)",
                    "hours_until_required": float(
                        self.BREAK_REQUIRED_AFTER_HOURS - hours_since_last_break
                    ),
                }
            )

        return {
            "is_compliant": not violations,
            "compliance_score": self._calculate_compliance_score(violations, warnings),
            "violations": violations,
            "warnings": warnings,
            "validated_at": timezone.now().isoformat(),
        }

    def _to_hours(self, value, name: str) -> Decimal:
        try:
            hours = Decimal(str(value))
        except InvalidOperation:
            raise HOSCalculationError(f"Invalid HOS rule {name}: {value!r}")
        if hours <= 0:
            raise HOSCalculationError(f"HOS rule {name} must be positive, got {value!r}")
        return hours

    def _validate_hours_input(
        self,
        driving_hours: Decimal,
        cycle_hours: Decimal,
        break_hours: Decimal,
    ):
        """Validate input hours are reasonable."""
        if driving_hours < 0:
            raise ValueError(f"Invalid driving hours: {driving_hours}")
        if cycle_hours < 0:
            raise ValueError(f"Invalid cycle hours: {cycle_hours}")
        if break_hours < 0:
            raise ValueError(f"Invalid hours since break: {break_hours}")

    def _check_can_drive(
        self,
        available_cycle: Decimal,
        available_driving: Decimal,
        hours_until_break: Decimal,
    ) -> Tuple[bool, str]:
        """Check if driver can currently drive."""
        if available_cycle <= 0:
            return False, f"{self.MAX_CYCLE_HOURS}-hour/8-day limit reached"
        if available_driving <= 0:
            return False, f"{self.MAX_DRIVING_HOURS}-hour driving limit reached"
        if hours_until_break <= 0:
            return False, "30-minute break required"

        return True, ""

    def _calculate_compliance_score(
        self, violations: List[Dict], warnings: List[Dict]
    ) -> int:
        """Calculate compliance score (0-100)."""
        score = 100
        score -= len(violations) * 25  # Each violation: -25 points
        score -= len(warnings) * 5  # Each warning: -5 points
        return max(0, min(100, score))


class HOSCalculationError(Exception):
    """Exception raised when HOS calculations fail."""

    pass
