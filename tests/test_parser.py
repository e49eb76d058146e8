"""Tests for the upstream markup parser."""

from datetime import date

from src.upstream.parser import (
    ActivityPageParser,
    parse_activity_date,
    parse_distance_km,
    parse_member_daily_table,
)
from tests.conftest import load_fixture


class TestParseActivityDate:
    def test_upstream_timestamp(self):
        assert parse_activity_date("21/10/2025 06:12:45 (GMT+7)") == date(2025, 10, 21)

    def test_date_only(self):
        assert parse_activity_date(" 01/11/2025 ") == date(2025, 11, 1)

    def test_empty_and_malformed(self):
        assert parse_activity_date("") is None
        assert parse_activity_date("yesterday") is None
        assert parse_activity_date("2025-10-21 06:12:45") is None


class TestParseDistanceKm:
    def test_plain_value(self):
        assert parse_distance_km("10.50 km") == 10.5

    def test_embedded_without_space(self):
        assert parse_distance_km("Distance: 7km") == 7.0

    def test_missing_unit_is_zero(self):
        """A number without a km unit does not count."""
        assert parse_distance_km("58:10") == 0.0
        assert parse_distance_km("") == 0.0


class TestActivityPageParser:
    def test_parses_dated_entries_in_feed_order(self):
        page = ActivityPageParser().parse(load_fixture("activities_page.html"), 100001)

        assert [a.date for a in page.activities] == [
            date(2025, 10, 21),
            date(2025, 10, 21),
            date(2025, 10, 20),
        ]
        assert [a.distance_km for a in page.activities] == [10.5, 3.2, 7.0]
        assert all(a.participant_id == 100001 for a in page.activities)

    def test_violation_flag(self):
        page = ActivityPageParser().parse(load_fixture("activities_page.html"), 1)
        assert [a.is_violation for a in page.activities] == [False, True, False]

    def test_undated_entries_counted_but_skipped(self):
        """The entry without a timestamp still makes the page non-empty."""
        page = ActivityPageParser().parse(load_fixture("activities_page.html"), 1)

        assert page.entry_count == 4
        assert len(page.activities) == 3
        assert not page.is_empty

    def test_last_seen_date_is_oldest_dated_entry(self):
        page = ActivityPageParser().parse(load_fixture("activities_page.html"), 1)
        assert page.last_seen_date == date(2025, 10, 20)

    def test_empty_markup(self):
        page = ActivityPageParser().parse("", 1)

        assert page.is_empty
        assert page.activities == []
        assert page.last_seen_date is None

    def test_only_undated_entries(self):
        markup = '<div class="post"><div class="cell"><span class="ibl">4 km</span></div></div>'
        page = ActivityPageParser().parse(markup, 1)

        assert page.entry_count == 1
        assert page.last_seen_date is None


class TestParseMemberDailyTable:
    def test_rows(self):
        rows = parse_member_daily_table(load_fixture("member_page.html"))

        assert [(r.date, r.km) for r in rows] == [
            ("21/10/2025", 10.5),
            ("20/10/2025", 7.0),
        ]

    def test_no_table(self):
        assert parse_member_daily_table("<html><body></body></html>") == []
