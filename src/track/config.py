"""Configuration models and helpers for the tracker."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .paths import resolve_db_path


@dataclass(slots=True)
class TrackerSettings:
    """Runtime configuration for one invocation of the tracker."""

    db_path: Path
    confirm_token: str = "y"

    @classmethod
    def from_options(cls, db_path: Optional[Path] = None) -> "TrackerSettings":
        return cls(db_path=resolve_db_path(db_path))

    def is_confirmed(self, answer: str) -> bool:
        return answer.strip() == self.confirm_token
