"""
Driver Logbook Services Package.

This package contains the business logic for the driver logbook.

Services:
- DutyStatusTracker: Duty status state machine for one driver session
- InMemoryLogStatePersistence / DjangoLogStatePersistence: State storage
"""

from .duty_status_tracker import (
    BreakAlreadyOpenError,
    DutyStatusTracker,
    DutyStatusTrackingError,
    InvalidDutyInputError,
    NoOpenBreakError,
)
from .log_state import DriverLogState, ViolationOverride
from .persistence import (
    DjangoLogStatePersistence,
    InMemoryLogStatePersistence,
    PersistenceConflictError,
    PersistenceError,
)

__all__ = [
    'DutyStatusTracker',
    'DriverLogState',
    'ViolationOverride',
    'DjangoLogStatePersistence',
    'InMemoryLogStatePersistence',
    'DutyStatusTrackingError',
    'InvalidDutyInputError',
    'NoOpenBreakError',
    'BreakAlreadyOpenError',
    'PersistenceError',
    'PersistenceConflictError',
]
