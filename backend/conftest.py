from datetime import datetime, timedelta, timezone as dt_timezone

import pytest


class FakeClock:
    """Deterministic clock for time-dependent tracker behaviour."""

    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 4, 8, 0, tzinfo=dt_timezone.utc))


@pytest.fixture
def tracker(clock):
    from duty_logs.services import DutyStatusTracker

    return DutyStatusTracker(clock=clock)


@pytest.fixture
def api_client():
    from rest_framework.test import APIClient

    return APIClient()
