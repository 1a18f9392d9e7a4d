"""Range statistics and the text reports built on them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from .formatting import format_range, format_session, format_statistic_duration
from .ledger import range_query
from .models import Ledger

DAY = timedelta(days=1)


@dataclass(frozen=True, slots=True)
class RangeStatistics:
    start: datetime
    end: datetime
    count: int
    tracked: timedelta
    proportion: float
    average_per_day: timedelta
    average_per_session: timedelta

    @property
    def span(self) -> timedelta:
        return self.end - self.start


def compute_statistics(
    ledger: Ledger, start: datetime, end: datetime
) -> Optional[RangeStatistics]:
    """Summarize the sessions intersecting ``[start, end)``.

    Only the first and last sessions of the slice can stick out of the range,
    so only those are clamped. Returns ``None`` when no session intersects.
    """
    i, j = range_query(ledger, start, end)
    if i == j:
        return None

    tracked = timedelta()
    for k in range(i, j):
        session = ledger.sessions[k]
        session_start, session_end = session.start, session.end
        if k == i:
            session_start = max(session_start, start)
        if k == j - 1:
            session_end = min(session_end, end)
        tracked += session_end - session_start

    count = j - i
    proportion = tracked.total_seconds() / (end - start).total_seconds()
    return RangeStatistics(
        start=start,
        end=end,
        count=count,
        tracked=tracked,
        proportion=proportion,
        average_per_day=timedelta(seconds=int(proportion * DAY.total_seconds())),
        average_per_session=timedelta(seconds=int(tracked.total_seconds() / count)),
    )


def render_statistics(stats: RangeStatistics) -> list[str]:
    return [
        f"Number of sessions: {stats.count}",
        f"Total time: {format_statistic_duration(stats.tracked)}",
        f"Average time per day: {format_statistic_duration(stats.average_per_day)}",
        f"Average session length: {format_statistic_duration(stats.average_per_session)}",
        f"Proportion of time spent on activity: {stats.proportion * 100:.1f}%",
    ]


def statistics_report(
    ledger: Ledger, name: str, start: datetime, end: datetime
) -> list[str]:
    stats = compute_statistics(ledger, start, end)
    range_text = format_range(start, end)
    if stats is None:
        return [f'There are no recorded sessions from {range_text} in "{name}"']
    header = (
        f"The sessions statistics from {range_text} "
        f'({format_statistic_duration(stats.span)}) in "{name}" are:'
    )
    return [header, *render_statistics(stats)]


def listing_report(
    ledger: Ledger, name: str, start: datetime, end: datetime, whole_history: bool
) -> list[str]:
    i, j = range_query(ledger, start, end)
    where = f'in "{name}"'
    if not whole_history:
        where = f"from {format_range(start, end)} {where}"
    if i == j:
        return [f"There are no recorded sessions {where}"]
    lines = [f"The recorded sessions {where} are:"]
    lines.extend(format_session(k, ledger.sessions[k]) for k in range(i, j))
    return lines
