"""Tests for parsing and resolving time expressions and range bounds."""

from datetime import date, datetime, time, timedelta

import pytest

from conftest import NOW, at, ledger_of
from track.errors import StateError, TemporalInvariantError, ValidationError
from track.models import Ledger
from track.timespec import (
    LAST,
    NOW as NOW_BOUND,
    UNSPECIFIED,
    DateExpr,
    DateTimeExpr,
    Index,
    PointBound,
    RelativeAgo,
    TimeOfDayExpr,
    parse_date,
    parse_name,
    parse_notes,
    parse_position,
    parse_time_expression,
    resolve_end,
    resolve_range,
    resolve_start,
    to_instant,
    to_local,
)


class TestParseTimeExpression:
    def test_date_time_with_dash(self):
        assert parse_time_expression("05/03/24-09:30") == DateTimeExpr(
            datetime(2024, 3, 5, 9, 30)
        )

    def test_date_time_with_space(self):
        assert parse_time_expression("05/03/24 09:30") == DateTimeExpr(
            datetime(2024, 3, 5, 9, 30)
        )

    def test_date_only(self):
        assert parse_time_expression("05/03/24") == DateExpr(date(2024, 3, 5))

    def test_time_only(self):
        assert parse_time_expression("17:45") == TimeOfDayExpr(time(17, 45))

    @pytest.mark.parametrize("text", ["", "yesterday", "2024-03-05", "25:00", "32/01/24"])
    def test_malformed_is_rejected(self, text):
        with pytest.raises(ValidationError):
            parse_time_expression(text)


class TestParsers:
    def test_parse_date(self):
        assert parse_date("29/02/24") == date(2024, 2, 29)

    def test_parse_date_rejects_time(self):
        with pytest.raises(ValidationError):
            parse_date("10:00")

    def test_position_last(self):
        assert parse_position("last") == LAST

    def test_position_index(self):
        assert parse_position("3") == Index(3)

    @pytest.mark.parametrize("text", ["0", "-1", "first", ""])
    def test_position_rejects_non_positive_or_text(self, text):
        with pytest.raises(ValidationError):
            parse_position(text)

    def test_name_is_trimmed(self):
        assert parse_name("  reading ") == "reading"

    def test_blank_name_is_rejected(self):
        with pytest.raises(ValidationError):
            parse_name("   ")

    def test_notes(self):
        assert parse_notes("  ch. 3 ") == "ch. 3"
        assert parse_notes(None) is None


class TestResolveStartEnd:
    def test_date_time_is_exact(self):
        expr = DateTimeExpr(datetime(2024, 3, 5, 9, 30))
        expected = to_instant(datetime(2024, 3, 5, 9, 30))
        assert resolve_start(expr, NOW) == expected
        assert resolve_end(expr, NOW) == expected

    def test_date_as_start_is_midnight(self):
        assert resolve_start(DateExpr(date(2024, 3, 5)), NOW) == to_instant(
            datetime(2024, 3, 5)
        )

    def test_date_as_end_is_following_midnight(self):
        start = to_instant(datetime(2024, 3, 5))
        assert resolve_end(DateExpr(date(2024, 3, 5)), start) == to_instant(
            datetime(2024, 3, 6)
        )

    def test_time_as_start_uses_today(self):
        today = to_local(NOW).date()
        assert resolve_start(TimeOfDayExpr(time(9, 0)), NOW) == to_instant(
            datetime.combine(today, time(9, 0))
        )

    def test_time_as_end_uses_start_date(self):
        start = to_instant(datetime(2024, 3, 5, 9, 0))
        assert resolve_end(TimeOfDayExpr(time(17, 0)), start) == to_instant(
            datetime(2024, 3, 5, 17, 0)
        )

    def test_instants_are_utc_whole_seconds(self):
        instant = to_instant(datetime(2024, 3, 5, 9, 0, 0, 123456))
        assert instant.microsecond == 0
        assert instant.utcoffset() == timedelta(0)


class TestResolveRange:
    @pytest.fixture
    def ledger(self):
        return ledger_of((at(8), at(9)), (at(10), at(11)))

    def test_empty_ledger_is_an_error(self):
        with pytest.raises(StateError):
            resolve_range(Ledger(), UNSPECIFIED, UNSPECIFIED, NOW)

    def test_unspecified_uses_history_edges(self, ledger):
        assert resolve_range(ledger, UNSPECIFIED, UNSPECIFIED, NOW) == (at(8), at(11))

    def test_zero_relative_ago_means_whole_history(self, ledger):
        assert resolve_range(ledger, RelativeAgo(), NOW_BOUND, NOW) == (at(8), NOW)

    def test_relative_ago_subtracts_from_now(self, ledger):
        bound = RelativeAgo(weeks=1, days=1, hours=1, minutes=1)
        start, end = resolve_range(ledger, bound, NOW_BOUND, NOW)
        assert end == NOW
        assert NOW - start == timedelta(minutes=1 + 60 + 1440 + 10080)

    def test_point_bounds(self, ledger):
        day = DateExpr(date(2024, 3, 15))
        start, end = resolve_range(ledger, PointBound(day), PointBound(day), NOW)
        assert start == to_instant(datetime(2024, 3, 15))
        assert end == to_instant(datetime(2024, 3, 16))

    def test_point_end_time_is_anchored_on_resolved_start(self, ledger):
        lower = PointBound(DateTimeExpr(datetime(2024, 3, 1, 8, 0)))
        upper = PointBound(TimeOfDayExpr(time(18, 0)))
        _, end = resolve_range(ledger, lower, upper, NOW)
        assert end == to_instant(datetime(2024, 3, 1, 18, 0))

    def test_reversed_range_is_rejected(self, ledger):
        lower = PointBound(DateTimeExpr(datetime(2024, 3, 5, 12, 0)))
        upper = PointBound(DateTimeExpr(datetime(2024, 3, 5, 12, 0)))
        with pytest.raises(TemporalInvariantError, match="before end"):
            resolve_range(ledger, lower, upper, NOW)

    def test_start_after_history_with_unspecified_end(self, ledger):
        lower = PointBound(DateTimeExpr(datetime(2030, 1, 1, 0, 0)))
        with pytest.raises(TemporalInvariantError):
            resolve_range(ledger, lower, UNSPECIFIED, NOW)

    @pytest.mark.parametrize("weeks", [200_000, 10**12])
    def test_relative_ago_beyond_calendar_is_rejected(self, ledger, weeks):
        with pytest.raises(ValidationError, match="too far in the past"):
            resolve_range(ledger, RelativeAgo(weeks=weeks), NOW_BOUND, NOW)

    def test_relative_ago_upper_bound_beyond_calendar_is_rejected(self, ledger):
        with pytest.raises(ValidationError, match="Range end"):
            resolve_range(ledger, UNSPECIFIED, RelativeAgo(weeks=200_000), NOW)
