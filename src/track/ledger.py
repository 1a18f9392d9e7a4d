"""Operations on an activity's session ledger.

Every mutating function validates first and only then touches the ledger, so a
raised error always leaves the ledger exactly as it was.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from .errors import StateError, TemporalInvariantError
from .formatting import format_session
from .models import Ledger, Session
from .timespec import (
    Last,
    Position,
    TimeExpression,
    resolve_end,
    resolve_start,
    utc_now,
)

logger = logging.getLogger(__name__)


def insert(
    ledger: Ledger,
    start: datetime,
    end: datetime,
    notes: str = "",
    now: Optional[datetime] = None,
) -> int:
    """Insert a session in start order and return its zero-based index."""
    if end <= start:
        raise TemporalInvariantError("Session must end after it starts")
    if end > (now or utc_now()):
        raise TemporalInvariantError("Session cannot have ended in the future")

    index = 0
    sessions = ledger.sessions
    while index < len(sessions):
        other = sessions[index]
        if end < other.start:
            break
        if other.end >= start:
            raise TemporalInvariantError(
                "Session overlaps existing session:\n" + format_session(index, other)
            )
        index += 1

    sessions.insert(index, Session(start=start, end=end, notes=notes))
    logger.debug("Inserted session %s .. %s at %d", start, end, index)
    return index


def resolve_position(ledger: Ledger, position: Position) -> int:
    if not ledger.sessions:
        raise StateError("There are no recorded sessions of the active activity")
    if isinstance(position, Last):
        return len(ledger.sessions) - 1
    index = position.number - 1
    if not 0 <= index < len(ledger.sessions):
        raise StateError("No session of the active activity with this index exists")
    return index


def edit(
    ledger: Ledger,
    position: Position,
    start: Optional[TimeExpression] = None,
    end: Optional[TimeExpression] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> tuple[Session, int]:
    """Replace a session by removing it and inserting the edited values.

    Omitted fields keep the old values; an omitted end keeps the stored end
    instant even when the start moves. The edited session is checked against
    the remaining sessions before anything is committed. Returns the old
    session and the new zero-based index.
    """
    index = resolve_position(ledger, position)
    if start is None and end is None and notes is None:
        raise StateError("No edits specified")
    now = now or utc_now()

    old = ledger.sessions[index]
    new_start = resolve_start(start, now) if start is not None else old.start
    new_end = resolve_end(end, new_start) if end is not None else old.end
    new_notes = notes if notes is not None else old.notes

    candidate = ledger.copy()
    del candidate.sessions[index]
    new_index = insert(candidate, new_start, new_end, new_notes, now=now)
    ledger.sessions[:] = candidate.sessions
    return old, new_index


def remove(ledger: Ledger, position: Position) -> Session:
    index = resolve_position(ledger, position)
    removed = ledger.sessions.pop(index)
    logger.debug("Removed session at %d", index)
    return removed


def range_query(ledger: Ledger, start: datetime, end: datetime) -> tuple[int, int]:
    """Return the half-open slice ``[i, j)`` of sessions intersecting ``[start, end)``."""
    sessions = ledger.sessions
    i = 0
    while i < len(sessions) and sessions[i].end <= start:
        i += 1
    j = i
    while j < len(sessions) and sessions[j].start < end:
        j += 1
    return i, j


def start_ongoing(
    ledger: Ledger, now: Optional[datetime] = None, name: Optional[str] = None
) -> datetime:
    if ledger.ongoing is not None:
        raise StateError(f"There is already an ongoing session{_of(name)}")
    ledger.ongoing = now or utc_now()
    return ledger.ongoing


def end_ongoing(
    ledger: Ledger,
    notes: str = "",
    now: Optional[datetime] = None,
    name: Optional[str] = None,
) -> int:
    """Close the ongoing session at ``now`` and record it like any other."""
    if ledger.ongoing is None:
        raise StateError(f"There is no ongoing session{_of(name)}")
    now = now or utc_now()
    index = insert(ledger, ledger.ongoing, now, notes, now=now)
    ledger.ongoing = None
    return index


def cancel_ongoing(ledger: Ledger, name: Optional[str] = None) -> datetime:
    if ledger.ongoing is None:
        raise StateError(f"There is no ongoing session{_of(name)}")
    started, ledger.ongoing = ledger.ongoing, None
    return started


def _of(name: Optional[str]) -> str:
    return f' of "{name}"' if name else ""
