"""Dashboard Session - Owns the day store, history, rollover and timers.

The session runs three interval tasks next to the live subscription:
a clock tick that keeps ``now`` current for the walk-due indicator, the
rollover check, and the weather poll. All of them are cancelled on ``stop``.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Awaitable, Callable

from ..core.calendar import local_now
from ..core.entries import InvalidInputError, parse_snack_edit
from ..core.models import DashboardView, DayLog, WeatherStatus
from .daily_log_store import DailyLogStore
from .firestore_client import DayLogFirestoreClient
from .history_catalog import PAGE_SIZE, HistoryCatalog
from .interaction import Interaction
from .rollover import DayRollover
from .weather_client import WeatherFeed


logger = logging.getLogger(__name__)


@dataclass
class DashboardConfig:
    """Timer intervals (seconds) and history page size."""

    clock_tick: float = 0.1
    rollover_interval: float = 10.0
    weather_interval: float = 300.0
    page_size: int = PAGE_SIZE


class DashboardSession:
    """One interactive dashboard: selection, actions and background tasks."""

    def __init__(
        self,
        client: DayLogFirestoreClient,
        interaction: Interaction,
        weather: WeatherFeed | None = None,
        config: DashboardConfig | None = None,
        clock: Callable[[], datetime] = local_now,
        tz: tzinfo | None = None,
    ) -> None:
        self.config = config or DashboardConfig()
        self.interaction = interaction
        self.weather = weather
        self._clock = clock
        self.now = clock()

        self.catalog = HistoryCatalog(client, clock=clock, page_size=self.config.page_size)
        self.store = DailyLogStore(
            client,
            interaction,
            clock=clock,
            on_new_day=lambda: self.catalog.load_page(reset=True),
            tz=tz,
        )
        self.rollover = DayRollover(client, self.catalog, self.store, clock=clock)
        self._tasks: set[asyncio.Task] = set()

    # ==================== Lifecycle ====================

    async def start(self) -> None:
        """Load history and today's log, then start the interval tasks."""
        await self.catalog.load_page(reset=True)
        await self.select_day(self._clock().date())

        self._spawn("clock", self.config.clock_tick, self._tick)
        self._spawn("rollover", self.config.rollover_interval, self.rollover.check)
        if self.weather is not None:
            await self.weather.refresh()
            self._spawn("weather", self.config.weather_interval, self.weather.refresh)
        else:
            logger.warning("No weather API key configured; weather is disabled")
        logger.info("Dashboard started for %s", self.store.selected_day)

    async def stop(self) -> None:
        """Cancel every task and subscription."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        self.store.unsubscribe()
        if self.weather is not None:
            await self.weather.close()
        logger.info("Dashboard stopped")

    def _spawn(self, name: str, interval: float, action: Callable[[], Awaitable[object]]) -> None:
        task = asyncio.create_task(self._every(interval, action), name=f"pawlog-{name}")
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _every(self, interval: float, action: Callable[[], Awaitable[object]]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await action()
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Interval task failed")

    async def _tick(self) -> None:
        self.now = self._clock()

    # ==================== Selection ====================

    async def select_day(self, day: date) -> DayLog:
        """Show a day; live updates follow only when it is today."""
        self.store.unsubscribe()
        log = await self.store.load(day)
        self.store.edit_mode = False
        await self.store.subscribe()
        return log

    async def load_more_history(self) -> list[date]:
        return await self.catalog.load_more()

    @property
    def can_edit(self) -> bool:
        return self.store.can_edit

    def set_edit_mode(self, enabled: bool) -> bool:
        """Allow or forbid changes to the selected past day."""
        self.store.edit_mode = enabled
        logger.info("Edit mode %s for %s", "on" if enabled else "off", self.store.selected_day)
        return self.can_edit

    def view(self) -> DashboardView:
        """Snapshot of the dashboard state."""
        store = self.store
        return DashboardView(
            selected_date=store.selected_day,
            is_today=not store.history_mode,
            history_mode=store.history_mode,
            can_edit=self.can_edit,
            log=store.log,
            walk_due=store.is_walk_due(self.now),
            next_walk=store.next_walk_time(),
            catalog=self.catalog.dates or [],
            has_more_history=self.catalog.has_more,
            weather=self.weather.status if self.weather else WeatherStatus(),
        )

    # ==================== Prompted Actions ====================

    # Each action checks editability before asking anything, then reads its
    # inputs through the interaction in the order the dashboard asks for them.

    def _ask(self, message: str, default: str | None = None) -> str | None:
        answer = self.interaction.prompt(message, default)
        return answer or None

    async def add_custom_walk(self) -> DayLog | None:
        if not self.store.check_editable():
            return None
        time_text = self._ask("Enter custom walk time (HH:mm:ss):")
        if time_text is None:
            return None
        return await self.store.add_walk(time_text)

    async def prompt_meal(self, custom_time: bool = False) -> DayLog | None:
        if not self.store.check_editable():
            return None
        time_text = None
        if custom_time:
            time_text = self._ask("Enter meal time (HH:mm:ss):")
            if time_text is None:
                return None
        weight = self.interaction.prompt("Enter the weight (grams):")
        if weight is None:
            self.interaction.alert("Invalid weight!")
            return None
        return await self.store.add_meal(weight, time_text)

    async def prompt_snack(self, custom_time: bool = False) -> DayLog | None:
        if not self.store.check_editable():
            return None
        time_text = None
        if custom_time:
            time_text = self._ask("Enter snack time (HH:mm:ss):")
            if time_text is None:
                return None
        snack_type = self._ask("Enter snack type:")
        if snack_type is None:
            return None
        quantity = self._ask("Enter quantity:")
        if quantity is None:
            self.interaction.alert("Invalid quantity!")
            return None
        return await self.store.add_snack(snack_type, quantity, time_text)

    async def prompt_edit_walk(self, index: int) -> DayLog | None:
        if not self.store.check_editable():
            return None
        time_text = self._ask("Edit time (HH:mm:ss):")
        if time_text is None:
            return None
        return await self.store.edit_walk(index, time_text)

    async def prompt_edit_meal(self, index: int) -> DayLog | None:
        if not self.store.check_editable():
            return None
        current = self.store.log.meals[index].weight if index < len(self.store.log.meals) else None
        weight = self._ask("Edit weight (grams):", str(current) if current else None)
        if weight is None:
            return None
        return await self.store.edit_meal(index, weight)

    async def prompt_edit_snack(self, index: int) -> DayLog | None:
        if not self.store.check_editable():
            return None
        snacks = self.store.log.snacks
        default = f"{snacks[index].type},{snacks[index].quantity}" if index < len(snacks) else None
        text = self._ask("Edit snack type/quantity (Type,Qty):", default)
        if text is None:
            return None
        try:
            snack_type, quantity = parse_snack_edit(text)
        except InvalidInputError as e:
            self.interaction.alert(str(e))
            return None
        return await self.store.edit_snack(index, snack_type, quantity)
