"""Calendar Rules - Day keys, catalog merging and the archival predicate.

All functions are pure except ``local_now``, the default clock.
"""

import re
from datetime import date, datetime, timedelta
from typing import Any, Iterable

from .entries import has_entries


MAIN_KEY = "main"
DAY_KEY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def local_now() -> datetime:
    """Current time as an aware datetime in the local timezone."""
    return datetime.now().astimezone()


def day_key(day: date) -> str:
    """Zero-padded YYYY-MM-DD key for a calendar day."""
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def document_key(day: date, today: date) -> str:
    """Key of the document holding a day's log: 'main' for today."""
    return MAIN_KEY if day == today else day_key(day)


def parse_day_key(key: str) -> date | None:
    """Parse a YYYY-MM-DD key; None for 'main', malformed or impossible dates."""
    if not DAY_KEY_PATTERN.match(key or ""):
        return None
    try:
        return date.fromisoformat(key)
    except ValueError:
        return None


def filter_day_keys(keys: Iterable[str]) -> list[str]:
    """Keep only keys shaped like YYYY-MM-DD."""
    return [k for k in keys if DAY_KEY_PATTERN.match(k)]


def ended_day(today: date) -> date:
    """The day that just ended when the calendar rolled over to ``today``."""
    return today - timedelta(days=1)


def merge_catalog(known_keys: Iterable[str], today: date) -> list[date]:
    """Build the selectable date list.

    Today and yesterday are always present. Keys that do not parse are
    dropped; the result is deduplicated and sorted newest first.

    Args:
        known_keys: Date keys accumulated from history pages
        today: The current local day

    Returns:
        Dates in descending order
    """
    dates = {d for d in (parse_day_key(k) for k in known_keys) if d is not None}
    dates.add(today)
    dates.add(today - timedelta(days=1))
    return sorted(dates, reverse=True)


def should_archive(main: dict[str, Any] | None, ended_exists: bool) -> bool:
    """Archive 'main' only if it holds entries and the ended day has no document."""
    return has_entries(main) and not ended_exists
