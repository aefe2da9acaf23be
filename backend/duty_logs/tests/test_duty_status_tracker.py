import logging
from decimal import Decimal

import pytest

from duty_logs.models import DutyStatus
from duty_logs.services import (
    BreakAlreadyOpenError,
    DriverLogState,
    DutyStatusTracker,
    InMemoryLogStatePersistence,
    InvalidDutyInputError,
    NoOpenBreakError,
    ViolationOverride,
)


# Status transitions


def test_status_log_chains_from_previous_status(tracker, clock):
    sequence = [
        DutyStatus.ON_DUTY_NOT_DRIVING,
        DutyStatus.DRIVING,
        DutyStatus.SLEEPER_BERTH,
        DutyStatus.DRIVING,
        DutyStatus.OFF_DUTY,
        DutyStatus.OFF_DUTY,
    ]
    for status in sequence:
        clock.advance(minutes=15)
        assert tracker.change_status(status) is True

    entries = tracker.entries
    assert len(entries) == len(sequence)
    assert entries[0].from_status == DutyStatus.OFF_DUTY
    for previous, entry in zip(entries, entries[1:]):
        assert entry.from_status == previous.to_status
    assert [entry.to_status for entry in entries] == sequence


def test_change_status_resets_status_start_time(tracker, clock):
    clock.advance(hours=1)
    tracker.change_status(DutyStatus.ON_DUTY_NOT_DRIVING)

    assert tracker.status_started_at == clock.now
    assert tracker.entries[0].timestamp == clock.now


def test_driving_blocked_without_inspection_clearance(tracker, clock):
    tracker.change_status(DutyStatus.ON_DUTY_NOT_DRIVING)
    started_at = tracker.status_started_at
    clock.advance(minutes=5)

    assert tracker.change_status(DutyStatus.DRIVING, can_start_driving=False) is False

    assert tracker.current_status == DutyStatus.ON_DUTY_NOT_DRIVING
    assert tracker.status_started_at == started_at
    assert len(tracker.entries) == 1


def test_inspection_flag_only_guards_driving(tracker):
    assert tracker.change_status(DutyStatus.SLEEPER_BERTH, can_start_driving=False)
    assert tracker.current_status == DutyStatus.SLEEPER_BERTH


@pytest.mark.parametrize(
    "status, on_break",
    [
        (DutyStatus.OFF_DUTY, True),
        (DutyStatus.SLEEPER_BERTH, True),
        (DutyStatus.ON_DUTY_NOT_DRIVING, False),
        (DutyStatus.DRIVING, False),
    ],
)
def test_rest_statuses_count_as_on_break(tracker, status, on_break):
    tracker.change_status(status)
    assert tracker.is_on_break is on_break


def test_status_accepts_values_and_labels(tracker):
    tracker.change_status("sleeper_berth")
    assert tracker.current_status == DutyStatus.SLEEPER_BERTH

    tracker.change_status("On Duty (Not Driving)")
    assert tracker.current_status == DutyStatus.ON_DUTY_NOT_DRIVING


@pytest.mark.parametrize("status", ["Flying", "", None, 3])
def test_unknown_status_rejected(tracker, status):
    with pytest.raises(InvalidDutyInputError):
        tracker.change_status(status)

    assert tracker.entries == []


def test_reason_and_trip_recorded_on_entry(tracker):
    tracker.update_location("Atlanta, GA")
    trip_id = tracker.start_trip()

    tracker.change_status(DutyStatus.ON_DUTY_NOT_DRIVING, reason="Pre-trip inspection")

    entry = tracker.entries[0]
    assert entry.reason == "Pre-trip inspection"
    assert entry.trip_id == trip_id
    assert entry.location == "Atlanta, GA"


# Breaks


def test_break_start_then_end_closes_single_entry(tracker, clock):
    tracker.change_status(DutyStatus.DRIVING)
    opened = tracker.start_break()

    assert tracker.is_on_break is True
    assert tracker.break_started_at == clock.now
    assert tracker.current_status == DutyStatus.OFF_DUTY
    assert opened.is_open

    clock.advance(minutes=30)
    closed = tracker.end_break()

    breaks = tracker.get_break_logs()
    assert len(breaks) == 1
    assert closed is breaks[0]
    assert closed.start_time is not None and closed.end_time == clock.now
    expected = Decimal(str((closed.end_time - closed.start_time).total_seconds())) / 3600
    assert abs(closed.duration_hours - expected) < Decimal("0.0001")
    assert closed.duration_hours == Decimal("0.5")
    assert closed.break_type == "30-minute"


def test_end_break_returns_to_on_duty(tracker, clock):
    tracker.start_break()
    clock.advance(minutes=45)
    tracker.end_break()

    assert tracker.is_on_break is False
    assert tracker.break_started_at is None
    assert tracker.current_status == DutyStatus.ON_DUTY_NOT_DRIVING
    assert tracker.total_break_hours == Decimal("0.75")


def test_break_status_changes_are_logged(tracker, clock):
    tracker.change_status(DutyStatus.DRIVING)
    tracker.start_break()
    clock.advance(minutes=30)
    tracker.end_break()

    transitions = [(entry.from_status, entry.to_status) for entry in tracker.entries]
    assert transitions == [
        (DutyStatus.OFF_DUTY, DutyStatus.DRIVING),
        (DutyStatus.DRIVING, DutyStatus.OFF_DUTY),
        (DutyStatus.OFF_DUTY, DutyStatus.ON_DUTY_NOT_DRIVING),
    ]
    assert tracker.entries[1].reason == "30-minute break started"


def test_only_one_open_break(tracker):
    tracker.start_break()

    with pytest.raises(BreakAlreadyOpenError):
        tracker.start_break()

    assert len(tracker.get_break_logs()) == 1


def test_end_break_without_open_break_fails(tracker):
    tracker.change_status(DutyStatus.DRIVING)

    with pytest.raises(NoOpenBreakError):
        tracker.end_break()

    assert tracker.current_status == DutyStatus.DRIVING
    assert tracker.total_break_hours == 0


def test_break_durations_accumulate(tracker, clock):
    for minutes in (30, 15):
        tracker.start_break()
        clock.advance(minutes=minutes)
        tracker.end_break()
        clock.advance(hours=1)

    assert tracker.total_break_hours == Decimal("0.75")
    assert [entry.duration_hours for entry in tracker.get_break_logs()] == [
        Decimal("0.5"),
        Decimal("0.25"),
    ]


# Driving time and violations


def test_driving_time_is_additive(tracker):
    tracker.add_driving_time(2)
    tracker.add_driving_time(Decimal("3.5"))

    assert tracker.driving_hours_today == Decimal("5.5")
    assert tracker.driving_hours_week == Decimal("5.5")


def test_float_driving_time_accepted(tracker):
    tracker.add_driving_time(0.25)
    assert tracker.driving_hours_today == Decimal("0.25")


@pytest.mark.parametrize("hours", [-1, "abc", None, True, float("nan")])
def test_malformed_driving_time_rejected(tracker, hours):
    with pytest.raises(InvalidDutyInputError):
        tracker.add_driving_time(hours)

    assert tracker.driving_hours_today == 0


def test_violation_recorded_once_when_limit_reached(tracker, clock):
    tracker.add_driving_time(10)
    assert tracker.has_violation is False
    assert tracker.violation_type is None
    assert tracker.violations == []

    clock.advance(hours=1)
    tracker.add_driving_time(Decimal("1.5"))
    tracker.add_driving_time(1)

    assert tracker.has_violation is True
    assert tracker.violation_type == "driving_limit_exceeded"
    assert len(tracker.violations) == 1
    record = tracker.violations[0]
    assert record.violation_type == "driving_limit_exceeded"
    assert record.detected_at == clock.now
    assert record.magnitude == Decimal("0.5")


def test_hours_remaining_never_negative(tracker):
    tracker.add_driving_time(13)
    assert tracker.hours_remaining == 0


def test_new_shift_clears_daily_violation_but_keeps_record(tracker):
    tracker.add_driving_time(12)
    tracker.reset_daily_hours()

    assert tracker.has_violation is False
    assert tracker.driving_hours_today == 0
    assert tracker.driving_hours_week == 12
    assert len(tracker.violations) == 1


def test_cycle_limit_recorded_separately(clock):
    state = DriverLogState(
        status_started_at=clock.now, driving_hours_week=Decimal("69")
    )
    tracker = DutyStatusTracker(state=state, clock=clock)

    tracker.add_driving_time(2)

    assert tracker.has_violation is False
    assert tracker.has_cycle_violation is True
    assert tracker.cycle_hours_remaining == 0
    assert [v.violation_type for v in tracker.violations] == ["cycle_limit_exceeded"]
    assert tracker.violations[0].magnitude == 1

    tracker.reset_weekly_hours()
    assert tracker.has_cycle_violation is False


# Trips and overrides


def test_trip_lifecycle(tracker):
    trip_id = tracker.start_trip()

    assert trip_id.startswith("trip-")
    assert tracker.current_trip_id == trip_id

    tracker.end_trip()
    assert tracker.current_trip_id is None


def test_each_trip_gets_a_new_id(tracker):
    assert tracker.start_trip() != tracker.start_trip()


def test_override_without_trip_uses_sentinel(tracker):
    entry = tracker.log_violation_override(
        "Safe parking 20 minutes ahead", "driving_limit_exceeded", "High"
    )

    assert entry.trip_id == "no-trip"
    assert tracker.get_trip_overrides("no-trip") == [entry]


def test_override_documented_in_current_trip(tracker):
    trip_id = tracker.start_trip()
    tracker.add_driving_time(11)

    entry = tracker.log_violation_override(
        ViolationOverride(
            reason="Receiver dock closes at 18:00",
            driver_id="DRIVER-001",
            risk_acknowledged=True,
            estimated_fine_accepted=True,
        ),
        "driving_limit_exceeded",
        "Critical",
        estimated_fine=2750,
    )

    assert entry.trip_id == trip_id
    assert entry.estimated_fine == Decimal("2750")
    assert entry.driver_id == "DRIVER-001"
    assert tracker.get_trip_overrides(trip_id) == [entry]
    assert tracker.get_trip_overrides("trip-other") == []
    assert tracker.has_violation is True


def test_weekly_override_allowance(tracker, clock):
    for _ in range(3):
        tracker.log_violation_override("reason", "break_required", "Medium")
        clock.advance(hours=6)

    assert tracker.get_weekly_override_count() == 3
    assert tracker.can_override() is False

    clock.advance(days=7)
    assert tracker.get_weekly_override_count() == 0
    assert tracker.can_override() is True


def test_override_does_not_clear_violation(tracker):
    tracker.add_driving_time(11)
    tracker.log_violation_override("reason", "driving_limit_exceeded", "High")

    assert tracker.has_violation is True


# Queries


def test_status_change_logs_windowed_by_days(tracker, clock):
    tracker.change_status(DutyStatus.ON_DUTY_NOT_DRIVING)
    clock.advance(days=8)
    tracker.change_status(DutyStatus.DRIVING)

    assert len(tracker.get_status_change_logs()) == 1
    assert len(tracker.get_status_change_logs(days=10)) == 2


def test_break_logs_windowed_by_days(tracker, clock):
    tracker.start_break()
    clock.advance(minutes=30)
    tracker.end_break()
    clock.advance(days=3)

    assert len(tracker.get_break_logs(days=2)) == 0
    assert len(tracker.get_break_logs()) == 1


@pytest.mark.parametrize("days", [0, -1, "week", 10**6, 10**12, "1e400"])
def test_query_window_must_be_positive(tracker, days):
    with pytest.raises(InvalidDutyInputError):
        tracker.get_status_change_logs(days)


def test_duty_time_totals_from_status_log(tracker, clock):
    tracker.change_status(DutyStatus.ON_DUTY_NOT_DRIVING)
    clock.advance(hours=1)
    tracker.change_status(DutyStatus.DRIVING)
    clock.advance(hours=2)
    tracker.change_status(DutyStatus.OFF_DUTY)
    clock.advance(minutes=30)

    assert tracker.get_total_driving_time() == 2
    assert tracker.get_total_on_duty_time() == 3


def test_totals_include_current_status_and_clip_to_window(tracker, clock):
    tracker.change_status(DutyStatus.DRIVING)
    clock.advance(hours=30)

    assert tracker.get_total_driving_time() == 24
    assert tracker.get_total_driving_time(days=2) == 30


def test_hours_since_last_break_resets_after_half_hour_rest(tracker, clock):
    tracker.change_status(DutyStatus.DRIVING)
    clock.advance(hours=5)
    tracker.change_status(DutyStatus.OFF_DUTY)
    clock.advance(minutes=20)
    tracker.change_status(DutyStatus.DRIVING)
    clock.advance(hours=1)

    assert tracker.get_hours_since_last_break() == 6

    tracker.start_break()
    clock.advance(minutes=30)
    tracker.end_break()
    tracker.change_status(DutyStatus.DRIVING)
    clock.advance(hours=2)

    assert tracker.get_hours_since_last_break() == 2


def test_snapshot_reports_break_requirement(tracker, clock):
    tracker.change_status(DutyStatus.DRIVING)
    clock.advance(hours=8)
    tracker.add_driving_time(8)

    snapshot = tracker.snapshot()

    assert snapshot["current_status"] == DutyStatus.DRIVING
    assert snapshot["current_status_display"] == "Driving"
    assert snapshot["needs_30_minute_break"] is True
    assert snapshot["hours_remaining"] == 3
    assert snapshot["has_violation"] is False
    assert snapshot["can_override"] is True


# Persistence capability


def test_every_mutation_is_persisted(clock):
    persistence = InMemoryLogStatePersistence()
    tracker = DutyStatusTracker(persistence=persistence, clock=clock)

    tracker.change_status(DutyStatus.ON_DUTY_NOT_DRIVING)
    tracker.add_driving_time(1)
    tracker.start_trip()

    assert persistence.save_count == 3
    stored = persistence.load()
    assert stored.current_status == DutyStatus.ON_DUTY_NOT_DRIVING
    assert stored.driving_hours_today == 1
    assert stored is not tracker.state


def test_blocked_transition_is_not_persisted(clock):
    persistence = InMemoryLogStatePersistence()
    tracker = DutyStatusTracker(persistence=persistence, clock=clock)

    tracker.change_status(DutyStatus.DRIVING, can_start_driving=False)

    assert persistence.save_count == 0


def test_restore_continues_saved_session(clock):
    persistence = InMemoryLogStatePersistence()
    first = DutyStatusTracker(persistence=persistence, clock=clock)
    first.change_status(DutyStatus.DRIVING)
    first.add_driving_time(4)

    second = DutyStatusTracker.restore(persistence, clock=clock)

    assert second.current_status == DutyStatus.DRIVING
    assert second.driving_hours_today == 4
    assert len(second.entries) == 1


def test_restore_without_saved_state_starts_fresh(clock):
    tracker = DutyStatusTracker.restore(InMemoryLogStatePersistence(), clock=clock)

    assert tracker.current_status == DutyStatus.OFF_DUTY
    assert tracker.status_started_at == clock.now


class FailingPersistence:
    def save(self, state):
        raise RuntimeError("storage unavailable")

    def load(self):
        return None


def test_persistence_failure_does_not_affect_state(clock, caplog):
    tracker = DutyStatusTracker(persistence=FailingPersistence(), clock=clock)

    with caplog.at_level(logging.WARNING):
        assert tracker.change_status(DutyStatus.ON_DUTY_NOT_DRIVING) is True

    assert tracker.current_status == DutyStatus.ON_DUTY_NOT_DRIVING
    assert "storage unavailable" in caplog.text


def test_reset_discards_logs(tracker, clock):
    tracker.change_status(DutyStatus.DRIVING)
    tracker.add_driving_time(12)
    tracker.start_trip()

    tracker.reset()

    assert tracker.current_status == DutyStatus.OFF_DUTY
    assert tracker.entries == []
    assert tracker.violations == []
    assert tracker.current_trip_id is None
    assert tracker.hours_remaining == 11


def test_strict_tracker_raises_persistence_failures(clock):
    tracker = DutyStatusTracker(
        persistence=FailingPersistence(), clock=clock, strict_persistence=True
    )

    with pytest.raises(RuntimeError):
        tracker.change_status(DutyStatus.ON_DUTY_NOT_DRIVING)


class RecordingPersistence(InMemoryLogStatePersistence):
    def __init__(self):
        super().__init__()
        self.calls = []

    def save(self, state):
        self.calls.append("save")
        super().save(state)

    def clear(self, state):
        self.calls.append("clear")
        super().clear(state)


def test_only_reset_clears_stored_logs(clock):
    persistence = RecordingPersistence()
    tracker = DutyStatusTracker(persistence=persistence, clock=clock)

    tracker.change_status(DutyStatus.DRIVING)
    tracker.reset_daily_hours()
    tracker.reset_weekly_hours()
    assert "clear" not in persistence.calls

    tracker.reset()

    assert persistence.calls[-2:] == ["clear", "save"]
    assert persistence.load().status_changes == []


def test_available_hours_follow_break_requirement(tracker, clock):
    tracker.change_status(DutyStatus.DRIVING)
    clock.advance(hours=8)
    tracker.add_driving_time(8)

    blocked = tracker.get_available_hours()
    assert blocked["can_drive"] is False
    assert blocked["violation_reason"] == "30-minute break required"
    assert blocked["available_hours"]["driving_hours"] == 3

    tracker.start_break()
    clock.advance(minutes=30)
    tracker.end_break()

    cleared = tracker.get_available_hours()
    assert cleared["can_drive"] is True
    assert cleared["max_continuous_driving_hours"] == 3
