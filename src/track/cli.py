"""Command-line interface for the tracker."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional

import typer

from .activities import Tracker
from .config import TrackerSettings
from .errors import TrackError
from .timespec import (
    NOW,
    UNSPECIFIED,
    DateExpr,
    PointBound,
    RangeBound,
    RelativeAgo,
    parse_date,
    parse_name,
    parse_notes,
    parse_position,
    parse_time_expression,
)

app = typer.Typer(help="A CLI for tracking time spent on different activities.")

EXPRESSION_FORMS = "[dd/mm/yy-HH:MM], [dd/mm/yy] or [HH:MM]"


@app.callback(no_args_is_help=True)
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs."),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        path_type=Path,
        help="Location of the tracker SQLite database.",
    ),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    ctx.obj = TrackerSettings.from_options(db_path)


def _prompt_line(message: str) -> str:
    typer.echo(message, nl=False)
    return input()


def _tracker(ctx: typer.Context) -> Tracker:
    return Tracker(ctx.obj, echo=typer.echo, prompt=_prompt_line)


@contextmanager
def reported_errors() -> Iterator[None]:
    """Print tracker errors and exit non-zero instead of showing a traceback."""
    try:
        yield
    except TrackError as exc:
        logging.getLogger(__name__).debug("Command failed", exc_info=True)
        typer.echo(f"error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command("new")
def new_activity(
    ctx: typer.Context, name: str = typer.Argument(..., help="Name for the activity.")
) -> None:
    """Create a new activity to track and make it active."""
    with reported_errors():
        _tracker(ctx).create(parse_name(name))


@app.command("set")
def set_activity(
    ctx: typer.Context, name: str = typer.Argument(..., help="Name of the activity.")
) -> None:
    """Set the activity that other commands should act on."""
    with reported_errors():
        _tracker(ctx).select(parse_name(name))


@app.command("rename")
def rename_activity(
    ctx: typer.Context,
    old_name: str = typer.Argument(..., help="Current name of the activity."),
    new_name: str = typer.Argument(..., help="New name for the activity."),
) -> None:
    """Rename an activity."""
    with reported_errors():
        _tracker(ctx).rename(parse_name(old_name), parse_name(new_name))


@app.command("delete")
def delete_activity(
    ctx: typer.Context,
    name: str = typer.Argument(..., help="Name of the activity to delete."),
) -> None:
    """Delete an activity and all of its sessions."""
    with reported_errors():
        _tracker(ctx).delete(parse_name(name))


@app.command("current")
def current_activity(ctx: typer.Context) -> None:
    """Display the name of the current activity."""
    with reported_errors():
        _tracker(ctx).current()


@app.command("all")
def all_activities(ctx: typer.Context) -> None:
    """Display the names of all tracked activities."""
    with reported_errors():
        _tracker(ctx).all_activities()


@app.command("start")
def start_session(ctx: typer.Context) -> None:
    """Start tracking a session."""
    with reported_errors():
        _tracker(ctx).start()


@app.command("end")
def end_session(
    ctx: typer.Context,
    notes: str = typer.Option("", "--notes", "-n", help="Optional notes."),
) -> None:
    """End tracking of the ongoing session."""
    with reported_errors():
        _tracker(ctx).end(parse_notes(notes))


@app.command("cancel")
def cancel_session(ctx: typer.Context) -> None:
    """Cancel tracking of the ongoing session."""
    with reported_errors():
        _tracker(ctx).cancel()


@app.command("ongoing")
def ongoing_session(ctx: typer.Context) -> None:
    """Display details of the ongoing session."""
    with reported_errors():
        _tracker(ctx).ongoing()


@app.command("add")
def add_session(
    ctx: typer.Context,
    start: str = typer.Option(
        ..., "--start", "-s", help=f"Session start: {EXPRESSION_FORMS}."
    ),
    end: str = typer.Option(
        ...,
        "--end",
        "-e",
        help=f"Session end: {EXPRESSION_FORMS}. A bare date ends at the following "
        "midnight, a bare time lands on the start's date.",
    ),
    notes: str = typer.Option("", "--notes", "-n", help="Optional notes."),
) -> None:
    """Add a new session."""
    with reported_errors():
        _tracker(ctx).add(
            parse_time_expression(start), parse_time_expression(end), parse_notes(notes)
        )


@app.command("edit")
def edit_session(
    ctx: typer.Context,
    position: str = typer.Argument(
        ..., help='Index of the session as shown by "list", or "last".'
    ),
    start: Optional[str] = typer.Option(
        None, "--start", "-s", help=f"New start: {EXPRESSION_FORMS}."
    ),
    end: Optional[str] = typer.Option(
        None, "--end", "-e", help=f"New end: {EXPRESSION_FORMS}."
    ),
    notes: Optional[str] = typer.Option(None, "--notes", "-n", help="New notes."),
) -> None:
    """Edit a session; omitted fields are left unchanged."""
    with reported_errors():
        _tracker(ctx).edit(
            parse_position(position),
            parse_time_expression(start) if start is not None else None,
            parse_time_expression(end) if end is not None else None,
            parse_notes(notes),
        )


@app.command("remove")
def remove_session(
    ctx: typer.Context,
    position: str = typer.Argument(
        ..., help='Index of the session as shown by "list", or "last".'
    ),
) -> None:
    """Remove a session."""
    with reported_errors():
        _tracker(ctx).remove(parse_position(position))


def _point(text: Optional[str]) -> RangeBound:
    if text is None:
        return UNSPECIFIED
    return PointBound(parse_time_expression(text))


def range_app(
    report: Callable[[Tracker, RangeBound, RangeBound], None], help_text: str
) -> typer.Typer:
    """Build the ``list``/``stats`` group with its optional range subcommands."""
    group = typer.Typer(help=help_text)

    @group.callback(invoke_without_command=True)
    def whole_history(ctx: typer.Context) -> None:
        if ctx.invoked_subcommand is None:
            with reported_errors():
                report(_tracker(ctx), UNSPECIFIED, UNSPECIFIED)

    @group.command("past")
    def past(
        ctx: typer.Context,
        weeks: int = typer.Option(0, "--weeks", "-w", min=0, help="Number of weeks."),
        days: int = typer.Option(0, "--days", "-d", min=0, help="Number of days."),
        hours: int = typer.Option(0, "--hours", "-H", min=0, help="Number of hours."),
        minutes: int = typer.Option(0, "--minutes", "-M", min=0, help="Number of minutes."),
    ) -> None:
        """Sessions between an amount of time in the past and now.

        Omit all options to start from the first session.
        """
        with reported_errors():
            report(_tracker(ctx), RelativeAgo(weeks, days, hours, minutes), NOW)

    @group.command("since")
    def since(
        ctx: typer.Context,
        start: Optional[str] = typer.Argument(
            None, help=f"Start of the range: {EXPRESSION_FORMS}."
        ),
    ) -> None:
        """Sessions between a specific time and now."""
        with reported_errors():
            report(_tracker(ctx), _point(start), NOW)

    @group.command("range")
    def between(
        ctx: typer.Context,
        start: Optional[str] = typer.Option(
            None, "--start", "-s", help=f"Start of the range: {EXPRESSION_FORMS}."
        ),
        end: Optional[str] = typer.Option(
            None, "--end", "-e", help=f"End of the range: {EXPRESSION_FORMS}."
        ),
    ) -> None:
        """Sessions between two specific times."""
        with reported_errors():
            report(_tracker(ctx), _point(start), _point(end))

    @group.command("on")
    def on(
        ctx: typer.Context,
        date: str = typer.Argument(..., help="The date [dd/mm/yy]."),
    ) -> None:
        """Sessions on a specific date."""
        with reported_errors():
            day = DateExpr(parse_date(date))
            report(_tracker(ctx), PointBound(day), PointBound(day))

    return group


app.add_typer(
    range_app(
        Tracker.list_sessions,
        help_text="Display full session history, or sessions in a specific time range.",
    ),
    name="list",
)
app.add_typer(
    range_app(
        Tracker.stats,
        help_text="Display full session statistics, or statistics in a specific time range.",
    ),
    name="stats",
)
