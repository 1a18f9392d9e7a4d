"""Shared fixtures for tracker tests."""

from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from track.config import TrackerSettings
from track.models import Ledger, Session

NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


def at(hour: int, minute: int = 0, day: int = 15) -> datetime:
    """UTC instant on a fixed March 2024 day."""
    return datetime(2024, 3, day, hour, minute, tzinfo=timezone.utc)


def ledger_of(*spans: tuple[datetime, datetime]) -> Ledger:
    return Ledger(sessions=[Session(start=s, end=e) for s, e in spans])


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "track.sqlite3"


@pytest.fixture
def settings(db_path: Path) -> TrackerSettings:
    return TrackerSettings.from_options(db_path)


class FakeClock:
    """Callable clock that tests can move forward."""

    def __init__(self, start: datetime = NOW) -> None:
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
