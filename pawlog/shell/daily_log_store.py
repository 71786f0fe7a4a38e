"""Daily Log Store - Reads, live sync and mutations for the selected day.

The store owns all mutation of day contents. Firestore calls are blocking, so
they run in worker threads; state is only touched on the event loop.
"""

import asyncio
import logging
from datetime import date, datetime, tzinfo
from typing import Awaitable, Callable

from google.api_core.exceptions import GoogleAPIError

from ..core.calendar import MAIN_KEY, document_key, local_now
from ..core.entries import (
    InvalidInputError,
    at_clock,
    decode_day,
    encode_day,
    new_meal,
    new_snack,
    new_walk,
    parse_clock,
    parse_positive_int,
    relabel_snack,
    reweigh_meal,
    retime_walk,
    sort_walks,
    to_iso,
)
from ..core.models import DayLog, Entry, EntryKind, ENTRY_KINDS
from ..core.schedule import is_walk_due, next_walk_time
from .firestore_client import DayLogFirestoreClient
from .interaction import Interaction


logger = logging.getLogger(__name__)

SAVE_FAILED_MESSAGE = "Could not save changes. Please try again."
NOT_FOUND_MESSAGE = "Entry not found."
EDIT_MODE_MESSAGE = "Turn on edit mode to change a past day."

Clock = Callable[[], datetime]


class DailyLogStore:
    """State and operations for the currently selected day.

    Attributes:
        selected_day: Day being viewed
        log: Entries of the selected day
        history_mode: True while the selected day is not today
        edit_mode: Allows changes to a past day; cleared when the day changes
    """

    def __init__(
        self,
        client: DayLogFirestoreClient,
        interaction: Interaction,
        clock: Clock = local_now,
        on_new_day: Callable[[], Awaitable[object]] | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: Day document persistence
            interaction: Used for confirmations and error alerts
            clock: Returns the current aware local time
            on_new_day: Awaited after a write creates a past-day document
            tz: Zone for custom times and displayed times; the system's local
                rules for each date when None
        """
        self._client = client
        self._interaction = interaction
        self._clock = clock
        self._on_new_day = on_new_day
        self._tz = tz
        self.selected_day: date = clock().date()
        self.log = DayLog()
        self.history_mode = False
        self.edit_mode = False
        self._unsubscribe: Callable[[], None] | None = None
        self._subscription = 0

    @property
    def today(self) -> date:
        return self._clock().date()

    # ==================== Reading ====================

    async def load(self, day: date | None = None) -> DayLog:
        """Load a day's entries and make it the selected day.

        An absent 'main' document is created empty. If reading fails the
        current entries are kept when the day did not change.
        """
        day = day or self.selected_day
        same_day = day == self.selected_day
        today = self.today
        key = document_key(day, today)

        self.selected_day = day
        self.history_mode = day != today
        if not same_day:
            self.edit_mode = False

        try:
            data = await asyncio.to_thread(self._client.get_day, key)
            if data is None and key == MAIN_KEY:
                await asyncio.to_thread(self._client.ensure_day, MAIN_KEY)
        except GoogleAPIError as e:
            logger.error("Failed to load %s: %s", key, str(e))
            if not same_day:
                self.log = DayLog()
            return self.log

        self.log = decode_day(data)
        return self.log

    async def refresh(self) -> DayLog:
        return await self.load(self.selected_day)

    async def subscribe(self) -> None:
        """Follow live changes of today's document.

        Does nothing while viewing a past day. Any previous subscription is
        cancelled first.
        """
        self.unsubscribe()
        if self.history_mode:
            return

        loop = asyncio.get_running_loop()
        self._subscription += 1
        generation = self._subscription

        def _deliver(data: dict) -> None:
            loop.call_soon_threadsafe(self._apply_snapshot, generation, data)

        try:
            self._unsubscribe = await asyncio.to_thread(self._client.watch_day, MAIN_KEY, _deliver)
        except GoogleAPIError as e:
            logger.error("Failed to subscribe to live updates: %s", str(e))

    def unsubscribe(self) -> None:
        """Cancel the live subscription, if any."""
        self._subscription += 1
        if self._unsubscribe is not None:
            unsubscribe, self._unsubscribe = self._unsubscribe, None
            try:
                unsubscribe()
            except Exception as e:
                logger.warning("Failed to cancel live updates: %s", str(e))

    @property
    def subscribed(self) -> bool:
        return self._unsubscribe is not None

    def _apply_snapshot(self, generation: int, data: dict) -> None:
        if generation != self._subscription or self.history_mode:
            logger.debug("Ignoring snapshot from a stale subscription")
            return
        self.log = decode_day(data)

    # ==================== Mutations ====================

    @property
    def can_edit(self) -> bool:
        return not self.history_mode or self.edit_mode

    def check_editable(self) -> bool:
        """True if the selected day may be changed; alerts otherwise."""
        if self.can_edit:
            return True
        self._interaction.alert(EDIT_MODE_MESSAGE)
        return False

    async def _mutate(self, change: Callable[[DayLog], None]) -> DayLog | None:
        """Apply ``change`` to the selected day's stored log and persist it."""
        try:
            handle = await asyncio.to_thread(self._client.resolve, self.selected_day, self.today)

            def transform(data: dict) -> dict:
                log = decode_day(data)
                change(log)
                return encode_day(log)

            await asyncio.to_thread(self._client.mutate_day, handle.key, transform)
        except InvalidInputError as e:
            self._interaction.alert(str(e))
            return None
        except IndexError:
            self._interaction.alert(NOT_FOUND_MESSAGE)
            return None
        except GoogleAPIError as e:
            logger.error("Failed to save %s: %s", self.selected_day, str(e))
            self._interaction.alert(SAVE_FAILED_MESSAGE)
            return None

        if handle.created and not handle.is_today and self._on_new_day is not None:
            await self._on_new_day()
        return await self.refresh()

    def _entry_time(self, custom_time: str | None) -> str:
        """Timestamp for a new entry: now, or a wall-clock time on the selected day."""
        if custom_time is None:
            return to_iso(self._clock())
        return at_clock(self.selected_day, parse_clock(custom_time), self._tz)

    async def add_walk(self, custom_time: str | None = None) -> DayLog | None:
        """Record a walk now, or at 'HH:mm:ss' on the selected day."""
        if not self.check_editable():
            return None
        try:
            walk = new_walk(self._entry_time(custom_time))
        except InvalidInputError as e:
            self._interaction.alert(str(e))
            return None

        def change(log: DayLog) -> None:
            log.walks = sort_walks([*log.walks, walk])

        return await self._mutate(change)

    async def add_meal(self, weight: int | str, custom_time: str | None = None) -> DayLog | None:
        """Record a meal of ``weight`` grams."""
        if not self.check_editable():
            return None
        try:
            meal = new_meal(weight, self._entry_time(custom_time))
        except InvalidInputError as e:
            self._interaction.alert(str(e))
            return None
        return await self._mutate(lambda log: log.meals.append(meal))

    async def add_snack(
        self, snack_type: str, quantity: int | str, custom_time: str | None = None
    ) -> DayLog | None:
        """Record ``quantity`` snacks of ``snack_type``."""
        if not self.check_editable():
            return None
        try:
            snack = new_snack(snack_type, quantity, self._entry_time(custom_time))
        except InvalidInputError as e:
            self._interaction.alert(str(e))
            return None
        return await self._mutate(lambda log: log.snacks.append(snack))

    async def edit_entry(
        self, index: int, kind: EntryKind, transform: Callable[[Entry], Entry]
    ) -> DayLog | None:
        """Replace the entry at ``index`` with ``transform(entry)``.

        ``transform`` raises InvalidInputError to reject the edit. Walks are
        re-sorted afterwards; meals and snacks keep their order.
        """
        if kind not in ENTRY_KINDS:
            raise ValueError(f"Unknown entry kind: {kind}")
        if not self.check_editable():
            return None

        def change(log: DayLog) -> None:
            entries = getattr(log, kind)
            if index < 0:
                raise IndexError(index)
            entries[index] = transform(entries[index])
            if kind == "walks":
                log.walks = sort_walks(log.walks)

        return await self._mutate(change)

    async def edit_walk(self, index: int, clock_text: str) -> DayLog | None:
        """Move a walk to 'HH:mm:ss' on its own day."""
        if not self.check_editable():
            return None
        try:
            clock = parse_clock(clock_text)
        except InvalidInputError as e:
            self._interaction.alert(str(e))
            return None
        fallback = self.selected_day
        return await self.edit_entry(index, "walks", lambda w: retime_walk(w, clock, self._tz, fallback))

    async def edit_meal(self, index: int, weight: int | str) -> DayLog | None:
        """Change a meal's weight."""
        if not self.check_editable():
            return None
        try:
            grams = parse_positive_int(weight, "Invalid weight!")
        except InvalidInputError as e:
            self._interaction.alert(str(e))
            return None
        return await self.edit_entry(index, "meals", lambda m: reweigh_meal(m, grams))

    async def edit_snack(self, index: int, snack_type: str, quantity: int | str) -> DayLog | None:
        """Change a snack's type and quantity."""
        if not self.check_editable():
            return None
        label = (snack_type or "").strip()
        try:
            if not label:
                raise InvalidInputError("Invalid input!")
            count = parse_positive_int(quantity, "Invalid input!")
        except InvalidInputError as e:
            self._interaction.alert(str(e))
            return None
        return await self.edit_entry(index, "snacks", lambda s: relabel_snack(s, label, count))

    async def delete_entry(self, index: int, kind: EntryKind) -> DayLog | None:
        """Remove an entry after the user confirms."""
        if kind not in ENTRY_KINDS:
            raise ValueError(f"Unknown entry kind: {kind}")
        if not self.check_editable():
            return None
        if not self._interaction.confirm(f"Are you sure you want to delete this {kind[:-1]} entry?"):
            return None

        def change(log: DayLog) -> None:
            if index < 0:
                raise IndexError(index)
            del getattr(log, kind)[index]

        return await self._mutate(change)

    async def reset_day(self) -> DayLog | None:
        """Empty all three sequences of the selected day after confirmation."""
        if not self.check_editable():
            return None
        if not self._interaction.confirm(
            "Are you sure you want to reset ALL data for this day? This action is irreversible."
        ):
            return None

        def change(log: DayLog) -> None:
            log.walks, log.meals, log.snacks = [], [], []
            log.quarantined = {}

        return await self._mutate(change)

    # ==================== Derived Values ====================

    def next_walk_time(self) -> str:
        return next_walk_time(self.log.walks, self._tz)

    def is_walk_due(self, now: datetime | None = None) -> bool:
        return is_walk_due(self.log.walks, now or self._clock(), self.history_mode)
