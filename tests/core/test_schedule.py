"""Unit tests for the walk schedule - pure functions, no mocks needed."""

from datetime import datetime, timedelta, timezone

from pawlog.core.models import WalkEntry
from pawlog.core.schedule import (
    NO_WALKS_MESSAGE,
    SCHEDULE_ERROR_MESSAGE,
    is_walk_due,
    next_walk_time,
)


LAST_WALK = datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)
WALKS = [
    WalkEntry(time="2026-10-17T06:00:00.000Z"),
    WalkEntry(time="2026-10-17T09:00:00.000Z"),
]


class TestNextWalkTime:
    """Tests for next_walk_time."""

    def test_three_hours_after_last_walk(self):
        assert next_walk_time(WALKS, timezone.utc) == "12:00:00"

    def test_no_walks(self):
        assert next_walk_time([], timezone.utc) == NO_WALKS_MESSAGE

    def test_unparsable_last_walk(self):
        assert next_walk_time([WalkEntry(time="??")], timezone.utc) == SCHEDULE_ERROR_MESSAGE


class TestIsWalkDue:
    """Tests for is_walk_due."""

    def test_not_due_before_three_hours(self):
        now = LAST_WALK + timedelta(hours=2, minutes=59, seconds=59)
        assert is_walk_due(WALKS, now, history_mode=False) is False

    def test_due_at_exactly_three_hours(self):
        assert is_walk_due(WALKS, LAST_WALK + timedelta(hours=3), history_mode=False) is True

    def test_due_when_no_walks(self):
        assert is_walk_due([], LAST_WALK, history_mode=False) is True

    def test_never_due_in_history_mode(self):
        """Past days never show a walk as due."""
        assert is_walk_due([], LAST_WALK, history_mode=True) is False
        assert is_walk_due(WALKS, LAST_WALK + timedelta(days=2), history_mode=True) is False

    def test_due_when_last_walk_unparsable(self):
        assert is_walk_due([WalkEntry(time="??")], LAST_WALK, history_mode=False) is True
