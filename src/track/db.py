"""SQLite storage for the activity registry and per-activity ledgers."""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional

from .errors import StateError, StorageError
from .models import ActivityInfo, Ledger, Registry, Session

logger = logging.getLogger(__name__)


def open_database(path: Path) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(path, isolation_level=None)
    conn.row_factory = sqlite3.Row
    enable_foreign_keys(conn)
    initialize_schema(conn)
    return conn


@contextmanager
def database_connection(path: Path) -> Iterator[sqlite3.Connection]:
    try:
        conn = open_database(path)
    except (sqlite3.Error, OSError) as exc:
        raise StorageError(f"Failed to open database {path}: {exc}") from exc
    try:
        yield conn
    except sqlite3.Error as exc:
        raise StorageError(f"Database error: {exc}") from exc
    finally:
        conn.close()


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Group writes so they are committed together or not at all."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    conn.execute("COMMIT")


def enable_foreign_keys(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA foreign_keys = ON;")


def initialize_schema(conn: sqlite3.Connection) -> None:
    conn.executescript(
        """
        CREATE TABLE IF NOT EXISTS activities (
            id INTEGER PRIMARY KEY,
            name TEXT NOT NULL UNIQUE,
            created_seq INTEGER NOT NULL,
            ongoing INTEGER
        );

        CREATE TABLE IF NOT EXISTS sessions (
            activity_id INTEGER NOT NULL
                REFERENCES activities(id) ON DELETE CASCADE,
            position INTEGER NOT NULL,
            start_time INTEGER NOT NULL,
            end_time INTEGER NOT NULL,
            notes TEXT NOT NULL DEFAULT '',
            PRIMARY KEY (activity_id, position)
        );

        CREATE TABLE IF NOT EXISTS selection (
            singleton INTEGER PRIMARY KEY CHECK (singleton = 0),
            active_id INTEGER REFERENCES activities(id) ON DELETE SET NULL
        );
        """
    )


def to_timestamp(instant: datetime) -> int:
    return int(instant.timestamp())


def from_timestamp(value: int) -> datetime:
    return datetime.fromtimestamp(value, timezone.utc)


def load_registry(conn: sqlite3.Connection) -> Registry:
    rows = conn.execute(
        "SELECT id, name FROM activities ORDER BY created_seq"
    ).fetchall()
    selected = conn.execute(
        "SELECT active_id FROM selection WHERE singleton = 0"
    ).fetchone()
    return Registry(
        activities=[ActivityInfo(id=row["id"], name=row["name"]) for row in rows],
        active_id=selected["active_id"] if selected else None,
    )


def insert_activity(conn: sqlite3.Connection, info: ActivityInfo) -> None:
    conn.execute(
        """
        INSERT INTO activities (id, name, created_seq)
        VALUES (?, ?, (SELECT COALESCE(MAX(created_seq), 0) + 1 FROM activities))
        """,
        (info.id, info.name),
    )
    logger.debug("Created activity %s with id %d", info.name, info.id)


def rename_activity(conn: sqlite3.Connection, activity_id: int, name: str) -> None:
    cur = conn.execute(
        "UPDATE activities SET name = ? WHERE id = ?", (name, activity_id)
    )
    if cur.rowcount == 0:
        raise StateError(f"No activity found for id={activity_id}")


def delete_activity(conn: sqlite3.Connection, activity_id: int) -> None:
    """Delete an activity; its sessions and selection follow via foreign keys."""
    cur = conn.execute("DELETE FROM activities WHERE id = ?", (activity_id,))
    if cur.rowcount == 0:
        raise StateError(f"No activity found for id={activity_id}")
    logger.debug("Deleted activity id %d", activity_id)


def set_active(conn: sqlite3.Connection, activity_id: Optional[int]) -> None:
    conn.execute(
        """
        INSERT INTO selection (singleton, active_id) VALUES (0, ?)
        ON CONFLICT (singleton) DO UPDATE SET active_id = excluded.active_id
        """,
        (activity_id,),
    )


def load_ledger(conn: sqlite3.Connection, activity_id: int) -> Ledger:
    """Read the whole ledger of an activity."""
    row = conn.execute(
        "SELECT ongoing FROM activities WHERE id = ?", (activity_id,)
    ).fetchone()
    if row is None:
        raise StateError(f"No activity found for id={activity_id}")
    rows = conn.execute(
        """
        SELECT start_time, end_time, notes
        FROM sessions
        WHERE activity_id = ?
        ORDER BY position;
        """,
        (activity_id,),
    ).fetchall()
    ledger = Ledger(
        sessions=[
            Session(
                start=from_timestamp(r["start_time"]),
                end=from_timestamp(r["end_time"]),
                notes=r["notes"],
            )
            for r in rows
        ],
        ongoing=from_timestamp(row["ongoing"]) if row["ongoing"] is not None else None,
    )
    logger.debug("Loaded %d sessions for activity id %d", len(ledger), activity_id)
    return ledger


def save_ledger(conn: sqlite3.Connection, activity_id: int, ledger: Ledger) -> None:
    """Replace the stored ledger of an activity in a single transaction."""
    with transaction(conn):
        cur = conn.execute(
            "UPDATE activities SET ongoing = ? WHERE id = ?",
            (
                to_timestamp(ledger.ongoing) if ledger.ongoing is not None else None,
                activity_id,
            ),
        )
        if cur.rowcount == 0:
            raise StateError(f"No activity found for id={activity_id}")
        conn.execute("DELETE FROM sessions WHERE activity_id = ?", (activity_id,))
        conn.executemany(
            """
            INSERT INTO sessions (
                activity_id,
                position,
                start_time,
                end_time,
                notes
            ) VALUES (?, ?, ?, ?, ?)
            """,
            [
                (
                    activity_id,
                    position,
                    to_timestamp(session.start),
                    to_timestamp(session.end),
                    session.notes,
                )
                for position, session in enumerate(ledger.sessions)
            ],
        )
    logger.debug("Saved %d sessions for activity id %d", len(ledger), activity_id)
