"""Tests for history catalog pagination."""

import asyncio
from datetime import date, timedelta

import pytest

from pawlog.core.calendar import day_key
from pawlog.core.entries import empty_day
from pawlog.shell.history_catalog import HistoryCatalog


@pytest.fixture
def catalog(db, clock):
    return HistoryCatalog(db, clock=clock, page_size=5)


def _seed_days(db, start: date, count: int) -> list[str]:
    keys = [day_key(start - timedelta(days=i)) for i in range(count)]
    for key in keys:
        db.docs[key] = empty_day()
    return keys


class TestLoadPage:
    """Tests for load_page."""

    def test_empty_collection_still_offers_today_and_yesterday(self, catalog, today):
        dates = asyncio.run(catalog.load_page(reset=True))
        assert dates == [today, today - timedelta(days=1)]
        assert catalog.has_more is False

    def test_main_key_is_filtered(self, catalog, db, today):
        db.docs["main"] = empty_day()
        db.docs["2026-10-01"] = empty_day()
        dates = asyncio.run(catalog.load_page(reset=True))
        assert dates == [today, today - timedelta(days=1), date(2026, 10, 1)]

    def test_pages_have_no_duplicates_and_stay_descending(self, catalog, db, today):
        """Page two continues after page one's last key."""
        keys = _seed_days(db, date(2026, 10, 15), 8)

        async def scenario():
            first = list(await catalog.load_page(reset=True))
            has_more = catalog.has_more
            second = await catalog.load_page(reset=False)
            return first, has_more, second

        first, has_more_after_first, second = asyncio.run(scenario())

        assert has_more_after_first is True
        assert first[:2] == [today, today - timedelta(days=1)]
        assert db.queries == [(5, None), (5, keys[4])]
        assert len(second) == len(set(second))
        assert second == sorted(second, reverse=True)
        assert set(date.fromisoformat(k) for k in keys) <= set(second)
        assert catalog.has_more is False

    def test_reset_starts_over(self, catalog, db):
        _seed_days(db, date(2026, 10, 15), 8)

        async def scenario():
            await catalog.load_page(reset=True)
            await catalog.load_page(reset=False)
            return await catalog.load_page(reset=True)

        dates = asyncio.run(scenario())
        assert db.queries[-1] == (5, None)
        assert date(2026, 10, 8) not in dates
        assert catalog.has_more is True

    def test_load_more_stops_when_exhausted(self, catalog, db):
        _seed_days(db, date(2026, 10, 15), 3)

        async def scenario():
            await catalog.load_page(reset=True)
            return await catalog.load_more()

        asyncio.run(scenario())
        assert db.queries == [(5, None)]


class TestFailures:
    """Tests for query failures."""

    def test_first_load_failure_falls_back(self, catalog, db, today):
        db.failing = True
        dates = asyncio.run(catalog.load_page(reset=True))
        assert dates == [today, today - timedelta(days=1)]
        assert catalog.has_more is False

    def test_later_failure_keeps_catalog(self, catalog, db):
        _seed_days(db, date(2026, 10, 15), 8)

        async def scenario():
            first = list(await catalog.load_page(reset=True))
            db.failing = True
            second = await catalog.load_page(reset=False)
            return first, second

        first, second = asyncio.run(scenario())
        assert second == first
        assert catalog.has_more is False

    def test_superseded_response_is_discarded(self, db, clock):
        """Only the latest request's page is applied."""
        _seed_days(db, date(2026, 10, 15), 8)
        catalog = HistoryCatalog(db, clock=clock, page_size=5)

        async def scenario():
            await catalog.load_page(reset=True)
            stale = asyncio.create_task(catalog.load_page(reset=False))
            fresh = asyncio.create_task(catalog.load_page(reset=True))
            await asyncio.gather(stale, fresh)
            return catalog.dates

        dates = asyncio.run(scenario())
        assert date(2026, 10, 8) not in dates
