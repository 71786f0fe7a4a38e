"""Day Rollover - Archives 'main' when the local date changes.

There is no push notification for wall-clock date changes, so the dashboard
calls ``check`` on a timer. Each detected change runs one cycle:
WATCHING -> ARCHIVING -> CATALOG_REFRESH -> WATCHING.
"""

import asyncio
import enum
import logging
from datetime import date, datetime
from typing import Callable

from google.api_core.exceptions import GoogleAPIError

from ..core.calendar import day_key, ended_day, local_now
from .daily_log_store import DailyLogStore
from .firestore_client import DayLogFirestoreClient
from .history_catalog import HistoryCatalog


logger = logging.getLogger(__name__)


class RolloverState(enum.Enum):
    WATCHING = "watching"
    ARCHIVING = "archiving"
    CATALOG_REFRESH = "catalog_refresh"


class DayRollover:
    """Detects day changes and moves the finished day into history."""

    def __init__(
        self,
        client: DayLogFirestoreClient,
        catalog: HistoryCatalog,
        store: DailyLogStore,
        clock: Callable[[], datetime] = local_now,
    ) -> None:
        self._client = client
        self._catalog = catalog
        self._store = store
        self._clock = clock
        self.state = RolloverState.WATCHING
        self.watched_day: date = clock().date()
        self._archiving = False

    async def archive(self, ended: date) -> bool:
        """Copy 'main' into ``ended``'s document and clear it.

        Returns:
            True if data was moved, False if there was nothing to do
        """
        return await asyncio.to_thread(self._client.archive_main, day_key(ended))

    async def check(self) -> bool:
        """Run a rollover cycle if the date changed since the last check.

        A storage failure leaves the watched day unchanged so the next check
        tries again.

        Returns:
            True if a cycle completed
        """
        today = self._clock().date()
        if today == self.watched_day or self._archiving:
            return False

        logger.info("Day changed. Archiving previous day's data and reloading today")
        self._archiving = True
        try:
            self.state = RolloverState.ARCHIVING
            await self.archive(ended_day(today))

            self.state = RolloverState.CATALOG_REFRESH
            await self._catalog.load_page(reset=True)

            self._store.unsubscribe()
            await self._store.load(today)
            self._store.edit_mode = False
            await self._store.subscribe()
            self.watched_day = today
            return True
        except GoogleAPIError as e:
            logger.error("Failed to archive previous day, will retry: %s", str(e))
            return False
        finally:
            self._archiving = False
            self.state = RolloverState.WATCHING
