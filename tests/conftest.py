"""Shared test fixtures."""

import copy
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable

import pytest
from google.api_core.exceptions import ServiceUnavailable

from pawlog.core.calendar import MAIN_KEY, document_key, should_archive
from pawlog.core.entries import empty_day
from pawlog.core.models import DayHandle
from pawlog.shell.interaction import ToolInteraction


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


@dataclass
class InMemoryDayLogClient:
    """In-memory stand-in for DayLogFirestoreClient."""

    docs: dict[str, dict[str, Any]] = field(default_factory=dict)
    watchers: dict[str, list[Callable[[dict], None]]] = field(default_factory=dict)
    failing: bool = False
    existence_checks: int = 0
    creates: int = 0
    queries: list[tuple[int, str | None]] = field(default_factory=list)

    def _check(self) -> None:
        if self.failing:
            raise ServiceUnavailable("Firestore unavailable")

    def _notify(self, key: str) -> None:
        for callback in list(self.watchers.get(key, [])):
            callback(copy.deepcopy(self.docs[key]))

    def resolve(self, day: date, today: date) -> DayHandle:
        self._check()
        key = document_key(day, today)
        if key == MAIN_KEY:
            return DayHandle(key=key, day=day, is_today=True)
        self.existence_checks += 1
        created = False
        if key not in self.docs:
            created = self.ensure_day(key)
        return DayHandle(key=key, day=day, is_today=False, created=created)

    def ensure_day(self, key: str) -> bool:
        self._check()
        if key in self.docs:
            return False
        self.creates += 1
        self.docs[key] = empty_day()
        return True

    def get_day(self, key: str) -> dict[str, Any] | None:
        self._check()
        if key not in self.docs:
            return None
        return copy.deepcopy(self.docs[key])

    def mutate_day(self, key: str, transform) -> dict[str, Any]:
        self._check()
        current = copy.deepcopy(self.docs.get(key, empty_day()))
        updated = transform(current)
        self.docs[key] = copy.deepcopy(updated)
        self._notify(key)
        return updated

    def archive_main(self, ended_key: str) -> bool:
        self._check()
        if not should_archive(self.docs.get(MAIN_KEY), ended_key in self.docs):
            return False
        self.docs[ended_key] = copy.deepcopy(self.docs[MAIN_KEY])
        self.docs[MAIN_KEY] = empty_day()
        self._notify(MAIN_KEY)
        return True

    def list_day_keys(self, limit: int, start_after: str | None = None) -> list[str]:
        self._check()
        self.queries.append((limit, start_after))
        keys = sorted(self.docs, reverse=True)
        if start_after is not None:
            keys = [k for k in keys if k < start_after]
        return keys[:limit]

    def watch_day(self, key: str, callback: Callable[[dict], None]) -> Callable[[], None]:
        self._check()
        self.watchers.setdefault(key, []).append(callback)
        return lambda: self.watchers[key].remove(callback)


@pytest.fixture
def clock() -> FixedClock:
    """Clock fixed at noon UTC on 2026-10-17."""
    return FixedClock(datetime(2026, 10, 17, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def db() -> InMemoryDayLogClient:
    return InMemoryDayLogClient()


@pytest.fixture
def interaction() -> ToolInteraction:
    return ToolInteraction(confirmed=True)


@pytest.fixture
def today(clock: FixedClock) -> date:
    return clock().date()
