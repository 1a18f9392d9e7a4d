"""Domain models for activities and their recorded sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional


@dataclass(frozen=True, slots=True)
class Session:
    """A completed block of time spent on an activity."""

    start: datetime
    end: datetime
    notes: str = ""

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass(slots=True)
class Ledger:
    """Sessions of one activity, sorted by start and never overlapping."""

    sessions: list[Session] = field(default_factory=list)
    ongoing: Optional[datetime] = None

    def __len__(self) -> int:
        return len(self.sessions)

    def copy(self) -> "Ledger":
        return Ledger(sessions=list(self.sessions), ongoing=self.ongoing)


@dataclass(frozen=True, slots=True)
class ActivityInfo:
    id: int
    name: str


@dataclass(slots=True)
class Registry:
    """Known activities in creation order, plus the active selection."""

    activities: list[ActivityInfo] = field(default_factory=list)
    active_id: Optional[int] = None

    def find(self, name: str) -> Optional[ActivityInfo]:
        for info in self.activities:
            if info.name == name:
                return info
        return None

    @property
    def active(self) -> Optional[ActivityInfo]:
        for info in self.activities:
            if info.id == self.active_id:
                return info
        return None

    def next_id(self) -> int:
        taken = {info.id for info in self.activities}
        candidate = 0
        while candidate in taken:
            candidate += 1
        return candidate


@dataclass(slots=True)
class ActiveActivity:
    """The selected activity together with its loaded ledger."""

    info: ActivityInfo
    ledger: Ledger

    @property
    def name(self) -> str:
        return self.info.name
