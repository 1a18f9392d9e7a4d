"""Human readable rendering of durations, ranges and sessions."""

from __future__ import annotations

from datetime import datetime, timedelta

from .models import Session
from .timespec import to_local

DISPLAY_DATE_FMT = "%d/%m/%y"
DISPLAY_TIME_FMT = "%H:%M"


def _split(span: timedelta) -> tuple[int, int, int]:
    total_seconds = int(span.total_seconds())
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return hours, minutes, secs


def format_tracked_duration(span: timedelta) -> str:
    """Render a session length, rounding leftover seconds up to a minute."""
    hours, minutes, secs = _split(span)
    if secs:
        minutes += 1
    if minutes == 60:
        hours += 1
        minutes = 0
    return f"{hours}h {minutes}m"


def format_statistic_duration(span: timedelta) -> str:
    """Render an aggregate duration exactly, omitting zero components."""
    hours, minutes, secs = _split(span)
    if not hours and not minutes:
        return f"{secs}s"
    parts = []
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    if secs:
        parts.append(f"{secs}s")
    return " ".join(parts)


def format_instant(instant: datetime) -> str:
    return to_local(instant).strftime(f"{DISPLAY_DATE_FMT} {DISPLAY_TIME_FMT}")


def format_range(start: datetime, end: datetime) -> str:
    local_start, local_end = to_local(start), to_local(end)
    end_fmt = (
        DISPLAY_TIME_FMT
        if local_start.date() == local_end.date()
        else f"{DISPLAY_DATE_FMT} {DISPLAY_TIME_FMT}"
    )
    return f"{format_instant(start)} to {local_end.strftime(end_fmt)}"


def format_session(index: int, session: Session) -> str:
    """Render a session as a list line; ``index`` is zero-based."""
    line = (
        f"{index + 1:3}. {format_range(session.start, session.end)}"
        f" ({format_tracked_duration(session.duration)})"
    )
    if session.notes:
        line += f" - {session.notes}"
    return line
