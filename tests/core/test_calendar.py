"""Unit tests for calendar rules - pure functions, no mocks needed."""

from datetime import date

from pawlog.core.calendar import (
    MAIN_KEY,
    day_key,
    document_key,
    ended_day,
    filter_day_keys,
    merge_catalog,
    parse_day_key,
    should_archive,
)


class TestDayKeys:
    """Tests for key derivation."""

    def test_day_key_zero_padded(self):
        assert day_key(date(2026, 3, 7)) == "2026-03-07"

    def test_today_maps_to_main(self):
        today = date(2026, 10, 17)
        assert document_key(today, today) == MAIN_KEY

    def test_other_day_maps_to_date_key(self):
        assert document_key(date(2026, 10, 16), date(2026, 10, 17)) == "2026-10-16"

    def test_future_day_maps_to_date_key(self):
        assert document_key(date(2026, 10, 18), date(2026, 10, 17)) == "2026-10-18"

    def test_parse_day_key(self):
        assert parse_day_key("2026-10-16") == date(2026, 10, 16)

    def test_parse_day_key_rejects_main_and_impossible_dates(self):
        assert parse_day_key(MAIN_KEY) is None
        assert parse_day_key("2026-02-30") is None
        assert parse_day_key("2026-1-5") is None

    def test_filter_day_keys(self):
        assert filter_day_keys(["main", "2026-10-16", "notes", "2026-10-15"]) == ["2026-10-16", "2026-10-15"]

    def test_ended_day_crosses_month(self):
        assert ended_day(date(2026, 11, 1)) == date(2026, 10, 31)


class TestMergeCatalog:
    """Tests for merge_catalog."""

    def test_today_and_yesterday_always_present(self):
        """With no history, the catalog is today then yesterday."""
        today = date(2026, 10, 17)
        assert merge_catalog([], today) == [today, date(2026, 10, 16)]

    def test_deduplicates_and_sorts_descending(self):
        today = date(2026, 10, 17)
        catalog = merge_catalog(["2026-10-01", "2026-10-16", "2026-10-10", "2026-10-01"], today)
        assert catalog == [
            today,
            date(2026, 10, 16),
            date(2026, 10, 10),
            date(2026, 10, 1),
        ]

    def test_drops_unparsable_keys(self):
        today = date(2026, 10, 17)
        assert merge_catalog(["2026-13-01", "main"], today) == [today, date(2026, 10, 16)]


class TestShouldArchive:
    """Tests for should_archive."""

    def test_archives_when_main_has_entries(self):
        main = {"walks": [{"time": "2026-10-16T08:00:00.000Z"}], "meals": [], "snacks": []}
        assert should_archive(main, ended_exists=False) is True

    def test_skips_empty_main(self):
        assert should_archive({"walks": [], "meals": [], "snacks": []}, ended_exists=False) is False
        assert should_archive(None, ended_exists=False) is False

    def test_skips_when_history_exists(self):
        main = {"meals": [{"time": "2026-10-16T08:00:00.000Z", "weight": 100}]}
        assert should_archive(main, ended_exists=True) is False
