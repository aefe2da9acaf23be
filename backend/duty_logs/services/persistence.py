"""
Driver Log State Persistence.

Storage capabilities for the duty status tracker. Each implementation
provides save(state), clear(state) and load() -> state. The tracker
treats saving as best-effort unless it was built with strict persistence.

Implementations:
- InMemoryLogStatePersistence: keeps a private copy of the last saved state
- DjangoLogStatePersistence: stores the state in the duty_logs models
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional
from django.db import DatabaseError, transaction
from django.utils import timezone

from ..models import (
    BreakLog,
    DriverLogSession,
    DrivingViolation,
    DutyStatus,
    StatusChangeLog,
    ViolationOverrideLog,
)
from .log_state import (
    BreakLogEntry,
    DriverLogState,
    StatusChangeLogEntry,
    ViolationOverrideEntry,
    ViolationRecord,
)

logger = logging.getLogger(__name__)

HOURS_QUANTUM = Decimal("0.0001")
MONEY_QUANTUM = Decimal("0.01")

# Largest values the DecimalFields can hold (max_digits 12/4 and 10/2)
MAX_STORED_HOURS = Decimal("99999999.9999")
MAX_STORED_AMOUNT = Decimal("99999999.99")


def _quantize(value: Optional[Decimal], quantum: Decimal, limit: Decimal, name: str):
    if value is None:
        return None
    try:
        stored = value.quantize(quantum)
    except InvalidOperation:
        raise PersistenceError(f"Cannot store {name}: {value}")
    if stored > limit:
        raise PersistenceError(f"Cannot store {name}: {value} exceeds {limit}")
    return stored


def _quantize_hours(value: Optional[Decimal], name: str = "hours") -> Optional[Decimal]:
    return _quantize(value, HOURS_QUANTUM, MAX_STORED_HOURS, name)


class InMemoryLogStatePersistence:
    """Keeps a detached copy of the last saved state."""

    def __init__(self, state: Optional[DriverLogState] = None):
        self._state = state.copy() if state is not None else None
        self.save_count = 0

    def save(self, state: DriverLogState):
        self._state = state.copy()
        self.save_count += 1

    def clear(self, state: DriverLogState):
        self._state = None

    def load(self) -> Optional[DriverLogState]:
        return self._state.copy() if self._state is not None else None


class DjangoLogStatePersistence:
    """
    Stores one driver's log state in the database.

    The session row is rewritten on every save and its revision bumped;
    a state loaded at an older revision is refused with
    PersistenceConflictError. Log rows are append-only, except the single
    open break row which is closed once. Log rows are only removed by
    clear(), when the tracker is reset.
    """

    def __init__(self, driver_id: str):
        self.driver_id = driver_id
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def save(self, state: DriverLogState):
        try:
            with transaction.atomic():
                session = self._lock_session(state)
                session = self._save_session(session, state)
                self._save_status_changes(session, state.status_changes)
                self._save_breaks(session, state.breaks)
                self._save_violations(session, state.violations)
                self._save_overrides(session, state.overrides)
        except DatabaseError as e:
            self.logger.error(
                f"Failed to save log state for driver {self.driver_id}: {str(e)}"
            )
            raise PersistenceError(f"Failed to save driver log state: {str(e)}")

        state.revision = session.revision
        self.logger.debug(
            f"Saved log state for driver {self.driver_id} at revision {session.revision}"
        )

    def clear(self, state: DriverLogState):
        """Delete the stored log rows ahead of saving a reset state."""
        try:
            with transaction.atomic():
                session = self._lock_session(state)
                if session is None:
                    return
                for manager in (
                    session.status_changes,
                    session.breaks,
                    session.violations,
                    session.overrides,
                ):
                    manager.all().delete()
        except DatabaseError as e:
            self.logger.error(
                f"Failed to clear log state for driver {self.driver_id}: {str(e)}"
            )
            raise PersistenceError(f"Failed to clear driver log state: {str(e)}")

        self.logger.info(f"Cleared stored logs for driver {self.driver_id}")

    def load(self) -> Optional[DriverLogState]:
        try:
            session = DriverLogSession.objects.filter(driver_id=self.driver_id).first()
            if session is None:
                return None
            return self._build_state(session)
        except (DatabaseError, InvalidOperation) as e:
            self.logger.error(
                f"Failed to load log state for driver {self.driver_id}: {str(e)}"
            )
            raise PersistenceError(f"Failed to load driver log state: {str(e)}")

    def _lock_session(self, state: DriverLogState) -> Optional[DriverLogSession]:
        session = (
            DriverLogSession.objects.select_for_update()
            .filter(driver_id=self.driver_id)
            .first()
        )
        stored_revision = session.revision if session is not None else 0
        if stored_revision != state.revision:
            self.logger.warning(
                f"Stale log state for driver {self.driver_id}: "
                f"revision {state.revision}, stored {stored_revision}"
            )
            raise PersistenceConflictError(
                f"Driver log was changed by another writer (revision {stored_revision}, "
                f"expected {state.revision})"
            )
        return session

    def _save_session(self, session, state: DriverLogState) -> DriverLogSession:
        values = {
            "current_status": state.current_status,
            "status_started_at": state.status_started_at,
            "driving_hours_today": _quantize_hours(
                state.driving_hours_today, "driving hours today"
            ),
            "driving_hours_week": _quantize_hours(
                state.driving_hours_week, "driving hours week"
            ),
            "total_break_hours": _quantize_hours(
                state.total_break_hours, "total break hours"
            ),
            "is_on_break": state.is_on_break,
            "break_started_at": state.break_started_at,
            "current_trip_id": state.current_trip_id,
            "last_location": state.last_location,
        }

        if session is None:
            session = DriverLogSession(driver_id=self.driver_id, **values)
            self.logger.info(f"Created log session for driver {self.driver_id}")
        else:
            for name, value in values.items():
                setattr(session, name, value)

        session.revision += 1
        session.save()
        return session

    def _sync_log(self, manager, model, entries, build_row):
        """
        Append rows for entries not yet stored.

        Every stored row must still be present in the state; a state
        that lost rows was not loaded from the latest save.
        """
        stored_ids = set(manager.values_list("id", flat=True))
        missing = stored_ids - {entry.id for entry in entries}
        if missing:
            raise PersistenceConflictError(
                f"{len(missing)} stored {model.__name__} rows are missing from the state"
            )

        model.objects.bulk_create(
            [
                build_row(index, entry)
                for index, entry in enumerate(entries)
                if entry.id not in stored_ids
            ]
        )
        return stored_ids

    def _save_status_changes(self, session, entries):
        self._sync_log(
            session.status_changes,
            StatusChangeLog,
            entries,
            lambda index, entry: StatusChangeLog(
                id=entry.id,
                session=session,
                timestamp=entry.timestamp,
                from_status=entry.from_status,
                to_status=entry.to_status,
                location=entry.location,
                trip_id=entry.trip_id,
                reason=entry.reason,
                sequence_order=index,
            ),
        )

    def _save_breaks(self, session, entries):
        stored_ids = self._sync_log(
            session.breaks,
            BreakLog,
            entries,
            lambda index, entry: BreakLog(
                id=entry.id,
                session=session,
                break_type=entry.break_type,
                start_time=entry.start_time,
                end_time=entry.end_time,
                duration_hours=_quantize_hours(entry.duration_hours, "break duration"),
                location=entry.location,
                trip_id=entry.trip_id,
            ),
        )

        # Close the stored open break once the tracker has ended it
        closed = {
            entry.id: entry
            for entry in entries
            if entry.id in stored_ids and entry.end_time is not None
        }
        for row in session.breaks.filter(id__in=list(closed), end_time__isnull=True):
            entry = closed[row.id]
            row.end_time = entry.end_time
            row.duration_hours = _quantize_hours(entry.duration_hours, "break duration")
            row.save(update_fields=["end_time", "duration_hours"])

    def _save_violations(self, session, records):
        self._sync_log(
            session.violations,
            DrivingViolation,
            records,
            lambda index, record: DrivingViolation(
                id=record.id,
                session=session,
                violation_type=record.violation_type,
                detected_at=record.detected_at,
                magnitude=_quantize_hours(record.magnitude, "violation magnitude"),
                trip_id=record.trip_id,
                sequence_order=index,
            ),
        )

    def _save_overrides(self, session, entries):
        self._sync_log(
            session.overrides,
            ViolationOverrideLog,
            entries,
            lambda index, entry: ViolationOverrideLog(
                id=entry.id,
                session=session,
                timestamp=entry.timestamp,
                trip_id=entry.trip_id,
                reason=entry.reason,
                driver_id=entry.driver_id,
                violation_type=entry.violation_type,
                risk_level=entry.risk_level,
                estimated_fine=_quantize(
                    entry.estimated_fine,
                    MONEY_QUANTUM,
                    MAX_STORED_AMOUNT,
                    "estimated fine",
                ),
                risk_acknowledged=entry.risk_acknowledged,
                estimated_fine_accepted=entry.estimated_fine_accepted,
            ),
        )

    def _build_state(self, session: DriverLogSession) -> DriverLogState:
        return DriverLogState(
            current_status=DutyStatus(session.current_status),
            status_started_at=session.status_started_at or timezone.now(),
            driving_hours_today=session.driving_hours_today,
            driving_hours_week=session.driving_hours_week,
            total_break_hours=session.total_break_hours,
            is_on_break=session.is_on_break,
            break_started_at=session.break_started_at,
            current_trip_id=session.current_trip_id,
            last_location=session.last_location,
            revision=session.revision,
            status_changes=[
                StatusChangeLogEntry(
                    id=row.id,
                    timestamp=row.timestamp,
                    from_status=DutyStatus(row.from_status),
                    to_status=DutyStatus(row.to_status),
                    location=row.location,
                    trip_id=row.trip_id,
                    reason=row.reason,
                )
                for row in session.status_changes.order_by("sequence_order")
            ],
            breaks=[
                BreakLogEntry(
                    id=row.id,
                    start_time=row.start_time,
                    end_time=row.end_time,
                    duration_hours=row.duration_hours,
                    location=row.location,
                    trip_id=row.trip_id,
                    break_type=row.break_type,
                )
                for row in session.breaks.order_by("start_time")
            ],
            violations=[
                ViolationRecord(
                    id=row.id,
                    violation_type=row.violation_type,
                    detected_at=row.detected_at,
                    magnitude=row.magnitude,
                    trip_id=row.trip_id,
                )
                for row in session.violations.order_by("sequence_order")
            ],
            overrides=[
                ViolationOverrideEntry(
                    id=row.id,
                    timestamp=row.timestamp,
                    trip_id=row.trip_id,
                    reason=row.reason,
                    violation_type=row.violation_type,
                    risk_level=row.risk_level,
                    driver_id=row.driver_id,
                    estimated_fine=row.estimated_fine,
                    risk_acknowledged=row.risk_acknowledged,
                    estimated_fine_accepted=row.estimated_fine_accepted,
                )
                for row in session.overrides.order_by("timestamp")
            ],
        )


class PersistenceError(Exception):
    """Exception raised when the driver log state cannot be stored or loaded."""

    pass


class PersistenceConflictError(PersistenceError):
    """Raised when the stored log was changed after this state was loaded."""

    pass
