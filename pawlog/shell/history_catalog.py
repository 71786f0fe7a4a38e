"""History Catalog - Paginated list of days that can be selected."""

import asyncio
import logging
from datetime import date, datetime
from typing import Callable

from google.api_core.exceptions import GoogleAPIError

from ..core.calendar import filter_day_keys, local_now, merge_catalog
from .firestore_client import DayLogFirestoreClient


logger = logging.getLogger(__name__)

PAGE_SIZE = 15


class HistoryCatalog:
    """Known day keys, merged with today and yesterday, newest first.

    Attributes:
        dates: Selectable dates, or None before the first load
        has_more: True if another page may exist
    """

    def __init__(
        self,
        client: DayLogFirestoreClient,
        clock: Callable[[], datetime] = local_now,
        page_size: int = PAGE_SIZE,
    ) -> None:
        self._client = client
        self._clock = clock
        self.page_size = page_size
        self.dates: list[date] | None = None
        self.has_more = True
        self._cursor: str | None = None
        self._known: set[str] = set()
        self._generation = 0

    async def load_page(self, reset: bool = True) -> list[date]:
        """Load the first page (``reset``) or the page after the cursor.

        Only the response to the most recent request is applied.

        Returns:
            The catalog after this load
        """
        self._generation += 1
        generation = self._generation
        start_after = None if reset else self._cursor

        try:
            keys = await asyncio.to_thread(self._client.list_day_keys, self.page_size, start_after)
        except GoogleAPIError as e:
            if generation != self._generation:
                return self.dates or []
            logger.error("Error fetching history dates: %s", str(e))
            if self.dates is None:
                self.dates = merge_catalog([], self._clock().date())
            self.has_more = False
            return self.dates

        if generation != self._generation:
            logger.debug("Discarding superseded history page")
            return self.dates or []

        if reset:
            self._known = set()
            self._cursor = None
        self._known.update(filter_day_keys(keys))

        self.dates = merge_catalog(self._known, self._clock().date())
        if keys:
            self._cursor = keys[-1]
        self.has_more = len(keys) >= self.page_size

        logger.debug("History catalog has %d dates (more: %s)", len(self.dates), self.has_more)
        return self.dates

    async def load_more(self) -> list[date]:
        """Load the next page if there is one."""
        if not self.has_more:
            return self.dates or []
        return await self.load_page(reset=False)
