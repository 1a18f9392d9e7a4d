"""Parsing and resolution of user supplied time expressions.

Two families of input exist. A ``TimeExpression`` is always absolute and names
the start or end of a session. A ``RangeBound`` names one edge of a list/stats
range and may additionally be relative (``Now``, ``RelativeAgo``) or left
``Unspecified`` to fall back to the edges of the recorded history.

Instants are timezone-aware UTC datetimes with whole-second resolution; the
user always types local wall-clock times.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Union

from .errors import StateError, TemporalInvariantError, ValidationError
from .models import Ledger

logger = logging.getLogger(__name__)

DATE_FMT = "%d/%m/%y"
TIME_FMT = "%H:%M"
DATETIME_FMTS = ("%d/%m/%y-%H:%M", "%d/%m/%y %H:%M")

EXPRESSION_HELP = "must be in the form [dd/mm/yy-HH:MM] or [dd/mm/yy] or [HH:MM]"


@dataclass(frozen=True, slots=True)
class DateTimeExpr:
    value: datetime


@dataclass(frozen=True, slots=True)
class DateExpr:
    day: date


@dataclass(frozen=True, slots=True)
class TimeOfDayExpr:
    clock: time


TimeExpression = Union[DateTimeExpr, DateExpr, TimeOfDayExpr]


@dataclass(frozen=True, slots=True)
class Unspecified:
    pass


@dataclass(frozen=True, slots=True)
class Now:
    pass


@dataclass(frozen=True, slots=True)
class PointBound:
    expression: TimeExpression


@dataclass(frozen=True, slots=True)
class RelativeAgo:
    weeks: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0

    @property
    def is_zero(self) -> bool:
        return not (self.weeks or self.days or self.hours or self.minutes)

    def as_timedelta(self) -> timedelta:
        return timedelta(
            minutes=self.minutes
            + 60 * self.hours
            + 1440 * self.days
            + 10080 * self.weeks
        )


RangeBound = Union[Unspecified, Now, PointBound, RelativeAgo]

UNSPECIFIED = Unspecified()
NOW = Now()


@dataclass(frozen=True, slots=True)
class Last:
    pass


@dataclass(frozen=True, slots=True)
class Index:
    number: int


Position = Union[Last, Index]

LAST = Last()


def utc_now() -> datetime:
    return datetime.now(timezone.utc).replace(microsecond=0)


def to_instant(local: datetime) -> datetime:
    """Interpret a naive wall-clock datetime in the local timezone."""
    return local.replace(microsecond=0).astimezone(timezone.utc)


def to_local(instant: datetime) -> datetime:
    return instant.astimezone()


def resolve_start(expression: TimeExpression, now: Optional[datetime] = None) -> datetime:
    """Resolve an expression used as the start of a session or range."""
    if isinstance(expression, DateTimeExpr):
        return to_instant(expression.value)
    if isinstance(expression, DateExpr):
        return to_instant(datetime.combine(expression.day, time()))
    today = to_local(now or utc_now()).date()
    return to_instant(datetime.combine(today, expression.clock))


def resolve_end(expression: TimeExpression, start: datetime) -> datetime:
    """Resolve an expression used as an end, anchored on the resolved start.

    A bare date means "through the end of that day", so it resolves to the
    following midnight. A bare time of day lands on the start's local date.
    """
    if isinstance(expression, DateTimeExpr):
        return to_instant(expression.value)
    if isinstance(expression, DateExpr):
        return to_instant(datetime.combine(expression.day + timedelta(days=1), time()))
    return to_instant(datetime.combine(to_local(start).date(), expression.clock))


def resolve_range(
    ledger: Ledger,
    lower: RangeBound,
    upper: RangeBound,
    now: Optional[datetime] = None,
) -> tuple[datetime, datetime]:
    """Turn a pair of range bounds into a concrete ``[from, to)`` interval."""
    if not ledger.sessions:
        raise StateError("There are no recorded sessions of the active activity")
    now = now or utc_now()

    if isinstance(lower, PointBound):
        start = resolve_start(lower.expression, now)
    elif isinstance(lower, Now):
        start = now
    elif isinstance(lower, RelativeAgo) and not lower.is_zero:
        start = _ago(now, lower, "start")
    else:
        start = ledger.sessions[0].start

    if isinstance(upper, PointBound):
        end = resolve_end(upper.expression, start)
    elif isinstance(upper, Now):
        end = now
    elif isinstance(upper, RelativeAgo):
        end = _ago(now, upper, "end")
    else:
        end = ledger.sessions[-1].end

    if start >= end:
        raise TemporalInvariantError("Start of range must be before end")
    logger.debug("Resolved range %s .. %s", start.isoformat(), end.isoformat())
    return start, end


def _ago(now: datetime, bound: RelativeAgo, edge: str) -> datetime:
    try:
        return now - bound.as_timedelta()
    except OverflowError:
        raise ValidationError(f"Range {edge} is too far in the past") from None


def parse_time_expression(text: str) -> TimeExpression:
    value = text.strip()
    for fmt in DATETIME_FMTS:
        try:
            return DateTimeExpr(datetime.strptime(value, fmt))
        except ValueError:
            pass
    try:
        return DateExpr(datetime.strptime(value, DATE_FMT).date())
    except ValueError:
        pass
    try:
        return TimeOfDayExpr(datetime.strptime(value, TIME_FMT).time())
    except ValueError:
        raise ValidationError(f"'{text}' {EXPRESSION_HELP}") from None


def parse_date(text: str) -> date:
    try:
        return datetime.strptime(text.strip(), DATE_FMT).date()
    except ValueError:
        raise ValidationError(f"'{text}' must be a date in the form [dd/mm/yy]") from None


def parse_position(text: str) -> Position:
    value = text.strip()
    if value == "last":
        return LAST
    try:
        number = int(value)
    except ValueError:
        number = 0
    if number < 1:
        raise ValidationError("position must be either [last] or a positive integer")
    return Index(number)


def parse_name(text: str) -> str:
    name = text.strip()
    if not name:
        raise ValidationError("name must not be empty")
    return name


def parse_notes(text: Optional[str]) -> Optional[str]:
    return text.strip() if text is not None else None
