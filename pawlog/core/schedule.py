"""Walk Schedule - Pure functions deciding when the next walk is due."""

from datetime import datetime, timedelta, tzinfo

from .entries import parse_timestamp
from .models import WalkEntry


WALK_INTERVAL = timedelta(hours=3)
NO_WALKS_MESSAGE = "Add first walk"
SCHEDULE_ERROR_MESSAGE = "Time calculation error"


def next_walk_time(walks: list[WalkEntry], tz: tzinfo | None = None) -> str:
    """When the next walk is due, as HH:MM:SS.

    Args:
        walks: Walks in ascending time order
        tz: Timezone to render in (local if None)

    Returns:
        Formatted time, or a sentinel message if there is nothing to compute from
    """
    if not walks:
        return NO_WALKS_MESSAGE
    last = parse_timestamp(walks[-1].time)
    if last is None:
        return SCHEDULE_ERROR_MESSAGE
    return (last + WALK_INTERVAL).astimezone(tz).strftime("%H:%M:%S")


def is_walk_due(walks: list[WalkEntry], now: datetime, history_mode: bool) -> bool:
    """True when at least three hours have passed since the last walk.

    Never due while looking at a past day; always due before the first walk
    or when the last walk's time cannot be read.
    """
    if history_mode:
        return False
    if not walks:
        return True
    last = parse_timestamp(walks[-1].time)
    if last is None:
        return True
    return now - last >= WALK_INTERVAL
