"""
Driver Log State.

In-memory records held by the duty status tracker: the mutable
DriverLogState for the active driver session and the append-only
entries of its status change, break, violation and override logs.
"""

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from ..models.choices import BreakType, DutyStatus

NO_TRIP_ID = "no-trip"


def new_entry_id(prefix: str) -> str:
    """Generate a unique identifier for a log entry."""
    return f"{prefix}-{uuid.uuid4().hex}"


@dataclass(frozen=True)
class StatusChangeLogEntry:
    """One duty status transition. Never mutated once recorded."""

    id: str
    timestamp: datetime
    from_status: DutyStatus
    to_status: DutyStatus
    location: str = ""
    trip_id: Optional[str] = None
    reason: str = ""

    @property
    def status(self) -> DutyStatus:
        return self.to_status


@dataclass
class BreakLogEntry:
    """
    One explicit rest break.

    Created open when the break starts; end_time and duration are filled
    in once, when the break ends.
    """

    id: str
    start_time: datetime
    location: str = ""
    trip_id: Optional[str] = None
    break_type: str = BreakType.THIRTY_MINUTE
    end_time: Optional[datetime] = None
    duration_hours: Optional[Decimal] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None


@dataclass(frozen=True)
class ViolationRecord:
    violation_type: str
    detected_at: datetime
    magnitude: Decimal
    trip_id: Optional[str] = None
    id: str = field(default_factory=lambda: new_entry_id("violation"))


@dataclass(frozen=True)
class ViolationOverride:
    """Driver's documented decision to continue despite a predicted violation."""

    reason: str
    driver_id: str = ""
    risk_acknowledged: bool = False
    estimated_fine_accepted: bool = False


@dataclass(frozen=True)
class ViolationOverrideEntry:
    id: str
    timestamp: datetime
    trip_id: str
    reason: str
    violation_type: str
    risk_level: str
    driver_id: str = ""
    estimated_fine: Optional[Decimal] = None
    risk_acknowledged: bool = False
    estimated_fine_accepted: bool = False


@dataclass
class DriverLogState:
    """
    Mutable log state for one active driver session.

    Attributes:
        current_status: Duty status now in effect
        status_started_at: When the current status began
        driving_hours_today: Hours driven since the start of the current shift
        driving_hours_week: Rolling 8-day driving hours
        total_break_hours: Accumulated explicit break time
        is_on_break: Whether the driver is resting (explicit break or off duty)
        break_started_at: Start of the open explicit break, if any
        current_trip_id: Active trip identifier, if a trip is open
        last_location: Location stamped on new log entries
        revision: Stored session revision this state was loaded at or last
            saved as (0 before the first save)
    """

    status_started_at: datetime
    current_status: DutyStatus = DutyStatus.OFF_DUTY
    driving_hours_today: Decimal = Decimal("0")
    driving_hours_week: Decimal = Decimal("0")
    total_break_hours: Decimal = Decimal("0")
    is_on_break: bool = False
    break_started_at: Optional[datetime] = None
    current_trip_id: Optional[str] = None
    last_location: str = ""
    revision: int = 0
    violations: List[ViolationRecord] = field(default_factory=list)
    status_changes: List[StatusChangeLogEntry] = field(default_factory=list)
    breaks: List[BreakLogEntry] = field(default_factory=list)
    overrides: List[ViolationOverrideEntry] = field(default_factory=list)

    @property
    def open_break(self) -> Optional[BreakLogEntry]:
        """Most recent break entry without an end time."""
        for entry in reversed(self.breaks):
            if entry.is_open:
                return entry
        return None

    def copy(self) -> "DriverLogState":
        return copy.deepcopy(self)
