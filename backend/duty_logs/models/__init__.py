"""
Driver logbook models package.

This package contains the models that persist the duty status tracker
state, split into separate files for better modularity.
"""

from .choices import BreakType, DutyStatus, RiskLevel, ViolationType
from .driver_log_session import DriverLogSession
from .status_change_log import StatusChangeLog
from .break_log import BreakLog
from .violation_log import DrivingViolation, ViolationOverrideLog

__all__ = [
    'DutyStatus',
    'BreakType',
    'ViolationType',
    'RiskLevel',
    'DriverLogSession',
    'StatusChangeLog',
    'BreakLog',
    'DrivingViolation',
    'ViolationOverrideLog',
]
