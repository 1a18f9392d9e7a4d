"""Command services: one method per user-facing tracker operation.

Each call opens the database, loads the registry and (when needed) the active
activity's ledger, performs one operation and writes the ledger back only if
it changed.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import Callable, Optional

from . import ledger as ledger_ops
from .config import TrackerSettings
from .db import (
    database_connection,
    delete_activity,
    insert_activity,
    load_ledger,
    load_registry,
    rename_activity,
    save_ledger,
    set_active,
    transaction,
)
from .errors import StateError, StorageError
from .formatting import (
    DISPLAY_DATE_FMT,
    DISPLAY_TIME_FMT,
    format_session,
    format_tracked_duration,
)
from .models import ActiveActivity, ActivityInfo, Registry
from .reporting import listing_report, statistics_report
from .timespec import (
    Position,
    RangeBound,
    TimeExpression,
    Unspecified,
    resolve_end,
    resolve_range,
    resolve_start,
    to_local,
    utc_now,
)

logger = logging.getLogger(__name__)


def load_active(conn: sqlite3.Connection, registry: Registry) -> ActiveActivity:
    info = registry.active
    if info is None:
        raise StateError("No activity currently selected")
    return ActiveActivity(info=info, ledger=load_ledger(conn, info.id))


class Tracker:
    """Runs tracker operations against the configured database."""

    def __init__(
        self,
        settings: TrackerSettings,
        echo: Callable[[str], None] = print,
        prompt: Callable[[str], str] = input,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.settings = settings
        self.echo = echo
        self.prompt = prompt
        self.clock = clock

    def _confirm(self, question: str) -> bool:
        try:
            answer = self.prompt(f'{question} Enter "{self.settings.confirm_token}" if so: ')
        except EOFError:
            answer = ""
        except OSError as exc:
            raise StorageError(f"Failed to read confirmation: {exc}") from exc
        return self.settings.is_confirmed(answer)

    # Activities

    def create(self, name: str) -> ActivityInfo:
        with database_connection(self.settings.db_path) as conn:
            registry = load_registry(conn)
            if registry.find(name) is not None:
                raise StateError("An activity with this name already exists")
            info = ActivityInfo(id=registry.next_id(), name=name)
            with transaction(conn):
                insert_activity(conn, info)
                set_active(conn, info.id)
        logger.info("Created activity %s (id %d)", name, info.id)
        self.echo(f'Created new activity "{name}"')
        self.echo(f'"{name}" is now active')
        return info

    def select(self, name: str) -> ActivityInfo:
        with database_connection(self.settings.db_path) as conn:
            info = load_registry(conn).find(name)
            if info is None:
                raise StateError("No activity with this name exists")
            set_active(conn, info.id)
        self.echo(f'"{name}" is now active')
        return info

    def rename(self, old_name: str, new_name: str) -> ActivityInfo:
        with database_connection(self.settings.db_path) as conn:
            registry = load_registry(conn)
            info = registry.find(old_name)
            if info is None:
                raise StateError("No activity with this name exists")
            if old_name != new_name and registry.find(new_name) is not None:
                raise StateError("An activity with this name already exists")
            rename_activity(conn, info.id, new_name)
        self.echo(f'Renamed activity "{old_name}" to "{new_name}"')
        return ActivityInfo(id=info.id, name=new_name)

    def delete(self, name: str) -> bool:
        with database_connection(self.settings.db_path) as conn:
            info = load_registry(conn).find(name)
            if info is None:
                raise StateError("No activity with this name exists")
            if not self._confirm(f'Are you sure you want to delete activity "{name}"?'):
                self.echo(f'Did not delete activity "{name}"')
                return False
            delete_activity(conn, info.id)
        logger.info("Deleted activity %s (id %d)", name, info.id)
        self.echo(f'Deleted activity "{name}"')
        return True

    def current(self) -> Optional[ActivityInfo]:
        with database_connection(self.settings.db_path) as conn:
            info = load_registry(conn).active
        if info is None:
            self.echo("There is no activity currently active")
        else:
            self.echo(f'"{info.name}" is active')
        return info

    def all_activities(self) -> list[ActivityInfo]:
        with database_connection(self.settings.db_path) as conn:
            activities = load_registry(conn).activities
        if not activities:
            self.echo("There are currently no recorded activities")
        else:
            self.echo("The recorded activities are:")
            for info in activities:
                self.echo(info.name)
        return activities

    # Ongoing session

    def start(self) -> None:
        with database_connection(self.settings.db_path) as conn:
            active = load_active(conn, load_registry(conn))
            started = ledger_ops.start_ongoing(active.ledger, self.clock(), active.name)
            save_ledger(conn, active.info.id, active.ledger)
        local = to_local(started)
        self.echo(
            f'Started new session of "{active.name}" on '
            f"{local.strftime(DISPLAY_DATE_FMT)} at {local.strftime(DISPLAY_TIME_FMT)}"
        )

    def end(self, notes: str = "") -> None:
        with database_connection(self.settings.db_path) as conn:
            active = load_active(conn, load_registry(conn))
            index = ledger_ops.end_ongoing(active.ledger, notes, self.clock(), active.name)
            save_ledger(conn, active.info.id, active.ledger)
        self.echo(f'Ended session of "{active.name}"')
        self.echo("New session:")
        self.echo(format_session(index, active.ledger.sessions[index]))

    def cancel(self) -> None:
        with database_connection(self.settings.db_path) as conn:
            active = load_active(conn, load_registry(conn))
            ledger_ops.cancel_ongoing(active.ledger, active.name)
            save_ledger(conn, active.info.id, active.ledger)
        self.echo(f'Cancelled ongoing session of "{active.name}"')

    def ongoing(self) -> None:
        with database_connection(self.settings.db_path) as conn:
            active = load_active(conn, load_registry(conn))
        started = active.ledger.ongoing
        if started is None:
            self.echo(f'There is no ongoing session of "{active.name}"')
            return
        local = to_local(started)
        self.echo(
            f'There is an ongoing session of "{active.name}" that started on '
            f"{local.strftime(DISPLAY_DATE_FMT)} at {local.strftime(DISPLAY_TIME_FMT)}"
        )
        self.echo(f"Current duration: {format_tracked_duration(self.clock() - started)}")

    # Recorded sessions

    def add(self, start: TimeExpression, end: TimeExpression, notes: str = "") -> int:
        now = self.clock()
        with database_connection(self.settings.db_path) as conn:
            active = load_active(conn, load_registry(conn))
            start_at = resolve_start(start, now)
            end_at = resolve_end(end, start_at)
            index = ledger_ops.insert(active.ledger, start_at, end_at, notes, now=now)
            save_ledger(conn, active.info.id, active.ledger)
        self.echo(f'Added a new session of "{active.name}":')
        self.echo(format_session(index, active.ledger.sessions[index]))
        return index

    def edit(
        self,
        position: Position,
        start: Optional[TimeExpression] = None,
        end: Optional[TimeExpression] = None,
        notes: Optional[str] = None,
    ) -> int:
        with database_connection(self.settings.db_path) as conn:
            active = load_active(conn, load_registry(conn))
            old_index = ledger_ops.resolve_position(active.ledger, position)
            old, index = ledger_ops.edit(
                active.ledger, position, start, end, notes, now=self.clock()
            )
            save_ledger(conn, active.info.id, active.ledger)
        self.echo(f'Edited session of "{active.name}" from:')
        self.echo(format_session(old_index, old))
        self.echo("to:")
        self.echo(format_session(index, active.ledger.sessions[index]))
        return index

    def remove(self, position: Position) -> bool:
        with database_connection(self.settings.db_path) as conn:
            active = load_active(conn, load_registry(conn))
            index = ledger_ops.resolve_position(active.ledger, position)
            self.echo(format_session(index, active.ledger.sessions[index]))
            if not self._confirm(
                f'Are you sure you want to remove this session from "{active.name}"?'
            ):
                self.echo("Did not remove session")
                return False
            ledger_ops.remove(active.ledger, position)
            save_ledger(conn, active.info.id, active.ledger)
        self.echo("Removed session")
        return True

    def list_sessions(self, lower: RangeBound, upper: RangeBound) -> None:
        active, start, end = self._load_range(lower, upper)
        whole_history = isinstance(lower, Unspecified) and isinstance(upper, Unspecified)
        for line in listing_report(active.ledger, active.name, start, end, whole_history):
            self.echo(line)

    def stats(self, lower: RangeBound, upper: RangeBound) -> None:
        active, start, end = self._load_range(lower, upper)
        for line in statistics_report(active.ledger, active.name, start, end):
            self.echo(line)

    def _load_range(self, lower: RangeBound, upper: RangeBound):
        with database_connection(self.settings.db_path) as conn:
            active = load_active(conn, load_registry(conn))
        start, end = resolve_range(active.ledger, lower, upper, now=self.clock())
        return active, start, end
