"""Shared fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from statehold import reset_default_state


@pytest.fixture(autouse=True)
def _clean_default_state():
    reset_default_state()
    yield
    reset_default_state()


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    return FakeClock()
