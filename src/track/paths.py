"""Where the tracker keeps its database."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from platformdirs import user_data_path

APP_NAME = "track"
DB_FILENAME = "track.sqlite3"


def get_data_dir() -> Path:
    return Path(user_data_path(appname=APP_NAME, appauthor=False))


def resolve_db_path(override: Optional[Path] = None) -> Path:
    """Pick the database file and make sure its directory exists.

    An explicit ``--db`` path wins (``~`` is expanded); otherwise the file
    lives in the per-user data directory.
    """
    path = Path(override).expanduser() if override is not None else get_data_dir() / DB_FILENAME
    path.parent.mkdir(parents=True, exist_ok=True)
    return path
