"""
Duty Status Tracker Service.

Tracks the duty status of the active driver session for HOS compliance.
Owns the DriverLogState and its append-only logs, and exposes the
transition and query operations used by the logbook screens.

This service handles:
- Duty status transitions (with the pre-trip inspection gate on driving)
- Explicit 30-minute breaks
- Driving hour accumulation and violation recording
- Trip scoping of violation overrides
- Windowed log queries and duty time totals

The tracker is a plain in-memory object, one instance per driver session.
Persistence is an injected capability called after every mutation; a
failed save is logged and does not affect the in-memory state, unless the
tracker is built with strict_persistence (the HTTP API does this).

Single Responsibility: Duty status tracking and recording only.
"""

import logging
from decimal import Decimal, InvalidOperation
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from django.conf import settings
from django.utils import timezone

from hos_compliance.services import HOSCalculatorService
from ..models.choices import (
    ON_DUTY_STATUSES,
    REST_STATUSES,
    DutyStatus,
    parse_duty_status,
)
from .log_state import (
    NO_TRIP_ID,
    BreakLogEntry,
    DriverLogState,
    StatusChangeLogEntry,
    ViolationOverride,
    ViolationOverrideEntry,
    ViolationRecord,
    new_entry_id,
)

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = Decimal("3600")


def hours_between(start: datetime, end: datetime) -> Decimal:
    """Fractional hours from start to end, never negative."""
    seconds = Decimal(str((end - start).total_seconds()))
    return max(Decimal("0"), seconds / SECONDS_PER_HOUR)


class DutyStatusTracker:
    """
    Duty status state machine for one driver session.

    Any status may follow any other; the only guarded edge is the
    transition into driving, which requires inspection clearance.
    """

    LOG_QUERY_DAYS = 7
    TOTALS_QUERY_DAYS = 1
    OVERRIDE_WINDOW_DAYS = 7
    MAX_WEEKLY_OVERRIDES = 3
    MIN_BREAK_MINUTES = 30

    def __init__(
        self,
        state: Optional[DriverLogState] = None,
        persistence=None,
        clock: Optional[Callable[[], datetime]] = None,
        calculator: Optional[HOSCalculatorService] = None,
        strict_persistence: bool = False,
    ):
        """
        Initialize duty status tracker.

        Args:
            state: Existing log state (default: fresh off-duty state)
            persistence: Object with save(state) / load() methods
            clock: Callable returning the current aware datetime
            calculator: HOS limit calculator
            strict_persistence: Re-raise persistence failures instead of logging them
        """
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        self._clock = clock or timezone.now
        self.calculator = calculator or HOSCalculatorService()
        self.persistence = persistence
        self.strict_persistence = strict_persistence

        rules = getattr(settings, "HOS_RULES", {}) or {}
        self.max_weekly_overrides = int(
            rules.get("MAX_WEEKLY_OVERRIDES", self.MAX_WEEKLY_OVERRIDES)
        )

        self.state = state if state is not None else self._fresh_state()

    @classmethod
    def restore(
        cls, persistence, clock=None, calculator=None, strict_persistence=False
    ) -> "DutyStatusTracker":
        """Build a tracker from the state stored by the persistence capability."""
        return cls(
            state=persistence.load(),
            persistence=persistence,
            clock=clock,
            calculator=calculator,
            strict_persistence=strict_persistence,
        )

    # State accessors

    @property
    def current_status(self) -> DutyStatus:
        return self.state.current_status

    @property
    def status_started_at(self) -> datetime:
        return self.state.status_started_at

    @property
    def driving_hours_today(self) -> Decimal:
        return self.state.driving_hours_today

    @property
    def driving_hours_week(self) -> Decimal:
        return self.state.driving_hours_week

    @property
    def total_break_hours(self) -> Decimal:
        return self.state.total_break_hours

    @property
    def is_on_break(self) -> bool:
        return self.state.is_on_break

    @property
    def break_started_at(self) -> Optional[datetime]:
        return self.state.break_started_at

    @property
    def current_trip_id(self) -> Optional[str]:
        return self.state.current_trip_id

    @property
    def last_location(self) -> str:
        return self.state.last_location

    @property
    def entries(self) -> List[StatusChangeLogEntry]:
        """Full status change log, oldest first."""
        return list(self.state.status_changes)

    @property
    def violations(self) -> List[ViolationRecord]:
        return list(self.state.violations)

    # Derived HOS reads (evaluated on every access, never cached)

    @property
    def hours_remaining(self) -> Decimal:
        return self.calculator.hours_remaining(self.state.driving_hours_today)

    @property
    def cycle_hours_remaining(self) -> Decimal:
        return self.calculator.cycle_hours_remaining(self.state.driving_hours_week)

    @property
    def has_violation(self) -> bool:
        has_violation, _ = self.calculator.evaluate_driving_violation(
            self.state.driving_hours_today
        )
        return has_violation

    @property
    def violation_type(self) -> Optional[str]:
        _, violation_type = self.calculator.evaluate_driving_violation(
            self.state.driving_hours_today
        )
        return violation_type

    @property
    def has_cycle_violation(self) -> bool:
        return self.calculator.cycle_limit_reached(self.state.driving_hours_week)

    # Transitions

    def change_status(
        self, new_status, can_start_driving: bool = True, reason: str = ""
    ) -> bool:
        """
        Change the current duty status.

        Args:
            new_status: Target duty status (member, value or display label)
            can_start_driving: Inspection clearance from the pre-trip inspection
            reason: Optional remark stored with the log entry

        Returns:
            False when driving is blocked by a missing inspection, True otherwise
        """
        status = self._require_status(new_status)

        if status == DutyStatus.DRIVING and not can_start_driving:
            self.logger.info(
                "Driving blocked: pre-trip inspection has not cleared the vehicle"
            )
            return False

        self._record_transition(status, self._now(), reason)
        self.state.is_on_break = status in REST_STATUSES

        self._persist()
        return True

    def update_status(self, new_status, can_start_driving: bool = True) -> bool:
        return self.change_status(new_status, can_start_driving)

    def start_break(self) -> BreakLogEntry:
        """Open a 30-minute break and go off duty."""
        if self.state.open_break is not None:
            raise BreakAlreadyOpenError("A break is already in progress")

        now = self._now()
        entry = BreakLogEntry(
            id=new_entry_id("break"),
            start_time=now,
            location=self.state.last_location,
            trip_id=self.state.current_trip_id,
        )
        self.state.breaks.append(entry)
        self.state.is_on_break = True
        self.state.break_started_at = now

        if self.state.current_status != DutyStatus.OFF_DUTY:
            self._record_transition(DutyStatus.OFF_DUTY, now, "30-minute break started")

        self.logger.info(f"Break {entry.id} started")
        self._persist()
        return entry

    def end_break(self) -> BreakLogEntry:
        """Close the open break and return to on duty (not driving)."""
        entry = self.state.open_break
        if entry is None:
            raise NoOpenBreakError("No break is in progress")

        now = self._now()
        started_at = self.state.break_started_at or entry.start_time
        duration = hours_between(started_at, now)

        entry.end_time = now
        entry.duration_hours = duration
        self.state.total_break_hours += duration
        self.state.is_on_break = False
        self.state.break_started_at = None

        if self.state.current_status != DutyStatus.ON_DUTY_NOT_DRIVING:
            self._record_transition(
                DutyStatus.ON_DUTY_NOT_DRIVING, now, "30-minute break ended"
            )

        self.logger.info(f"Break {entry.id} ended after {duration:.2f}h")
        self._persist()
        return entry

    def add_driving_time(self, hours) -> None:
        """
        Add driven hours to the daily and weekly counters.

        A ViolationRecord is appended for each HOS limit the increment reaches.
        """
        amount = self._require_hours(hours, "driving hours")

        previous_today = self.state.driving_hours_today
        previous_week = self.state.driving_hours_week
        self.state.driving_hours_today = previous_today + amount
        self.state.driving_hours_week = previous_week + amount

        crossed = self.calculator.detect_new_violations(
            previous_today,
            self.state.driving_hours_today,
            previous_week,
            self.state.driving_hours_week,
        )
        if crossed:
            now = self._now()
            for violation_type, magnitude in crossed:
                self.state.violations.append(
                    ViolationRecord(
                        violation_type=violation_type,
                        detected_at=now,
                        magnitude=magnitude,
                        trip_id=self.state.current_trip_id,
                    )
                )
                self.logger.warning(
                    f"HOS violation recorded: {violation_type} ({magnitude}h over limit)"
                )

        self._persist()

    def start_trip(self) -> str:
        trip_id = new_entry_id("trip")
        if self.state.current_trip_id:
            self.logger.info(
                f"Trip {self.state.current_trip_id} replaced by new trip {trip_id}"
            )
        self.state.current_trip_id = trip_id
        self._persist()
        return trip_id

    def end_trip(self) -> None:
        self.state.current_trip_id = None
        self._persist()

    def update_location(self, location: str) -> None:
        self.state.last_location = location or ""
        self._persist()

    def reset_daily_hours(self) -> None:
        """Start a new shift: clear the daily driving counter."""
        self.state.driving_hours_today = Decimal("0")
        self._persist()

    def reset_weekly_hours(self) -> None:
        """34-hour restart: clear the cycle counter."""
        self.state.driving_hours_week = Decimal("0")
        self._persist()

    def reset(self) -> None:
        """Discard the session state and all logs."""
        revision = self.state.revision
        self.state = self._fresh_state()
        self.state.revision = revision
        self._persist(clear=True)

    def log_violation_override(
        self,
        override,
        violation_type: str,
        risk_level: str,
        estimated_fine=None,
    ) -> ViolationOverrideEntry:
        """
        Document a violation override against the current trip.

        Args:
            override: ViolationOverride, or the override reason as a string
            violation_type: Type of the predicted violation
            risk_level: Risk level acknowledged by the driver
            estimated_fine: Optional estimated fine amount

        Returns:
            The recorded override entry
        """
        if isinstance(override, str):
            override = ViolationOverride(reason=override)

        fine = None
        if estimated_fine is not None:
            fine = self._require_hours(estimated_fine, "estimated fine")

        entry = ViolationOverrideEntry(
            id=new_entry_id("override"),
            timestamp=self._now(),
            trip_id=self.state.current_trip_id or NO_TRIP_ID,
            reason=override.reason,
            violation_type=violation_type,
            risk_level=risk_level,
            driver_id=override.driver_id,
            estimated_fine=fine,
            risk_acknowledged=override.risk_acknowledged,
            estimated_fine_accepted=override.estimated_fine_accepted,
        )
        self.state.overrides.append(entry)

        self.logger.info(
            f"Violation override logged for trip {entry.trip_id}: {violation_type} ({risk_level})"
        )
        self._persist()
        return entry

    # Queries

    def get_status_change_logs(self, days=LOG_QUERY_DAYS) -> List[StatusChangeLogEntry]:
        window_start = self._window_start(days)
        return [
            entry
            for entry in self.state.status_changes
            if entry.timestamp >= window_start
        ]

    def get_break_logs(self, days=LOG_QUERY_DAYS) -> List[BreakLogEntry]:
        window_start = self._window_start(days)
        return [entry for entry in self.state.breaks if entry.start_time >= window_start]

    def get_trip_overrides(self, trip_id: str) -> List[ViolationOverrideEntry]:
        return [entry for entry in self.state.overrides if entry.trip_id == trip_id]

    def get_weekly_override_count(self) -> int:
        window_start = self._window_start(self.OVERRIDE_WINDOW_DAYS)
        return sum(1 for entry in self.state.overrides if entry.timestamp >= window_start)

    def can_override(self) -> bool:
        return self.get_weekly_override_count() < self.max_weekly_overrides

    def get_total_driving_time(self, days=TOTALS_QUERY_DAYS) -> Decimal:
        return self._total_time_in((DutyStatus.DRIVING,), days)

    def get_total_on_duty_time(self, days=TOTALS_QUERY_DAYS) -> Decimal:
        return self._total_time_in(ON_DUTY_STATUSES, days)

    def get_hours_since_last_break(self) -> Decimal:
        """
        Driving hours since the last qualifying rest.

        Any non-driving period of at least 30 minutes resets the count.
        """
        min_break = Decimal(self.MIN_BREAK_MINUTES) / Decimal("60")
        continuous_driving = Decimal("0")

        for status, start, end in self._status_intervals():
            duration = hours_between(start, end)
            if status == DutyStatus.DRIVING:
                continuous_driving += duration
            elif duration >= min_break:
                continuous_driving = Decimal("0")

        return continuous_driving

    def get_compliance_summary(self) -> Dict:
        return self.calculator.validate_hos_compliance(
            self.state.driving_hours_today,
            self.state.driving_hours_week,
            self.get_hours_since_last_break(),
        )

    def get_available_hours(self) -> Dict:
        """Hours left under each HOS limit and whether driving may continue."""
        return self.calculator.calculate_available_hours(
            self.state.driving_hours_today,
            self.state.driving_hours_week,
            self.get_hours_since_last_break(),
        )

    def snapshot(self) -> Dict:
        """Plain state snapshot for presentation."""
        hours_since_break = self.get_hours_since_last_break()
        return {
            "current_status": self.state.current_status,
            "current_status_display": self.state.current_status.label,
            "status_started_at": self.state.status_started_at,
            "driving_hours_today": self.state.driving_hours_today,
            "driving_hours_week": self.state.driving_hours_week,
            "total_break_hours": self.state.total_break_hours,
            "is_on_break": self.state.is_on_break,
            "break_started_at": self.state.break_started_at,
            "current_trip_id": self.state.current_trip_id,
            "last_location": self.state.last_location,
            "hours_remaining": self.hours_remaining,
            "cycle_hours_remaining": self.cycle_hours_remaining,
            "hours_since_last_break": hours_since_break,
            "needs_30_minute_break": self.calculator.needs_break(hours_since_break),
            "has_violation": self.has_violation,
            "violation_type": self.violation_type,
            "has_cycle_violation": self.has_cycle_violation,
            "violations": self.violations,
            "weekly_override_count": self.get_weekly_override_count(),
            "can_override": self.can_override(),
        }

    def _fresh_state(self) -> DriverLogState:
        return DriverLogState(status_started_at=self._now())

    def _now(self) -> datetime:
        return self._clock()

    def _record_transition(
        self, status: DutyStatus, now: datetime, reason: str = ""
    ) -> StatusChangeLogEntry:
        entry = StatusChangeLogEntry(
            id=new_entry_id("status"),
            timestamp=now,
            from_status=self.state.current_status,
            to_status=status,
            location=self.state.last_location,
            trip_id=self.state.current_trip_id,
            reason=reason or "",
        )
        self.state.status_changes.append(entry)
        self.state.current_status = status
        self.state.status_started_at = now

        self.logger.info(
            f"Status change recorded: {entry.from_status.label} -> {status.label}"
        )
        return entry

    def _status_intervals(self) -> Iterable[Tuple[DutyStatus, datetime, datetime]]:
        """
        Yield (status, start, end) periods reconstructed from the status log.

        The current status is open-ended up to now. Time before the first
        logged change is counted only when nothing has been logged yet.
        """
        now = self._now()
        changes = self.state.status_changes

        if not changes:
            yield self.state.current_status, self.state.status_started_at, now
            return

        for index, entry in enumerate(changes):
            if index + 1 < len(changes):
                end = changes[index + 1].timestamp
            else:
                end = now
            yield entry.to_status, entry.timestamp, end

    def _total_time_in(self, statuses, days) -> Decimal:
        window_start = self._window_start(days)
        now = self._now()
        total = Decimal("0")

        for status, start, end in self._status_intervals():
            if status not in statuses:
                continue
            total += hours_between(max(start, window_start), min(end, now))

        return total

    def _window_start(self, days) -> datetime:
        window = self._require_hours(days, "days")
        if window <= 0:
            raise InvalidDutyInputError(f"Query window must be positive, got {days!r}")
        try:
            return self._now() - timedelta(days=float(window))
        except OverflowError:
            raise InvalidDutyInputError(f"Query window out of range: {days!r}")

    def _require_status(self, value) -> DutyStatus:
        status = parse_duty_status(value)
        if status is None:
            raise InvalidDutyInputError(f"Invalid duty status: {value!r}")
        return status

    def _require_hours(self, value, name: str) -> Decimal:
        """Convert a non-negative number to Decimal or raise InvalidDutyInputError."""
        if isinstance(value, bool) or value is None:
            raise InvalidDutyInputError(f"Invalid {name}: {value!r}")
        try:
            amount = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, ValueError):
            raise InvalidDutyInputError(f"Invalid {name}: {value!r}")

        if not amount.is_finite() or amount < 0:
            raise InvalidDutyInputError(f"Invalid {name}: {value!r}")
        return amount

    def _persist(self, clear=False):
        """Hand the current state to the persistence capability, if any."""
        if self.persistence is None:
            return
        try:
            if clear and hasattr(self.persistence, "clear"):
                self.persistence.clear(self.state)
            self.persistence.save(self.state)
        except Exception as e:
            if self.strict_persistence:
                raise
            self.logger.warning(f"Failed to persist driver log state: {str(e)}")


class DutyStatusTrackingError(Exception):
    """Exception raised when duty status tracking fails."""

    pass


class InvalidDutyInputError(DutyStatusTrackingError):
    """Raised for malformed statuses, hours or query windows."""

    pass


class NoOpenBreakError(DutyStatusTrackingError):
    pass


class BreakAlreadyOpenError(DutyStatusTrackingError):
    pass
