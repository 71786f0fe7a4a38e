"""Entry Rules - Pure functions for building, editing and (de)serializing entries.

All functions are pure: same input always produces same output, no side effects.
The document codec maps between the stored wire shape
``{walks: [...], meals: [...], snacks: [...]}`` and a validated DayLog.
"""

import logging
from datetime import date, datetime, time, timezone, tzinfo
from typing import Any

from pydantic import ValidationError

from .models import DayLog, EntryKind, ENTRY_KINDS, MealEntry, SnackEntry, WalkEntry


logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
TIME_ERROR_MARKER = "Error Time"


class InvalidInputError(ValueError):
    """User input was rejected. The message is meant to be shown as-is."""


# ==================== Timestamps ====================


def parse_timestamp(value: Any) -> datetime | None:
    """Parse a stored timestamp.

    Accepts ISO-8601 text (naive values are read as UTC) and epoch
    milliseconds.

    Returns:
        Aware datetime, or None if the value cannot be parsed
    """
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(moment: datetime) -> str:
    """Format an instant the way stored documents carry it: UTC, millis, 'Z'."""
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    utc = moment.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def format_time(value: Any, tz: tzinfo | None = None) -> str:
    """Render a stored time as HH:MM:SS, or the error marker if unparsable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        logger.error("Invalid date value found: %r", value)
        return TIME_ERROR_MARKER
    return parsed.astimezone(tz).strftime("%H:%M:%S")


def walk_sort_key(entry: WalkEntry) -> datetime:
    """Sort key for walks; unparsable times sort as the epoch."""
    return parse_timestamp(entry.time) or EPOCH


def sort_walks(walks: list[WalkEntry]) -> list[WalkEntry]:
    """Return walks in ascending time order (stable)."""
    return sorted(walks, key=walk_sort_key)


# ==================== Input Parsing ====================


def parse_positive_int(value: Any, message: str) -> int:
    """Parse a positive integer from user input.

    Args:
        value: Raw input (text or number)
        message: Error message if the value is rejected

    Raises:
        InvalidInputError: If the value is empty, non-numeric or not positive
    """
    if isinstance(value, bool):
        raise InvalidInputError(message)
    if isinstance(value, int):
        number = value
    else:
        text = str(value).strip() if value is not None else ""
        try:
            number = int(text)
        except ValueError:
            raise InvalidInputError(message) from None
    if number <= 0:
        raise InvalidInputError(message)
    return number


def parse_clock(text: str) -> time:
    """Parse 'HH[:mm[:ss]]' into a time of day.

    Raises:
        InvalidInputError: If any part is missing, non-numeric or out of range
    """
    parts = [p.strip() for p in (text or "").split(":")]
    if not parts[0] or len(parts) > 3:
        raise InvalidInputError("Invalid time!")
    try:
        numbers = [int(p) if p else 0 for p in parts]
        numbers += [0] * (3 - len(numbers))
        return time(*numbers)
    except ValueError:
        raise InvalidInputError("Invalid time!") from None


def at_clock(day: date, clock: time, tz: tzinfo | None) -> str:
    """ISO timestamp for a wall-clock time on a given local day.

    With no ``tz`` the system's local rules for that date apply, so a past
    day on the other side of a DST change gets its own offset.
    """
    moment = datetime.combine(day, clock, tzinfo=tz)
    if tz is None:
        moment = moment.astimezone()
    return to_iso(moment)


def parse_snack_edit(text: str) -> tuple[str, int]:
    """Parse the 'Type,Qty' edit format.

    Raises:
        InvalidInputError: If the type is empty or the quantity invalid
    """
    snack_type, _, quantity = (text or "").partition(",")
    snack_type = snack_type.strip()
    if not snack_type:
        raise InvalidInputError("Invalid input!")
    return snack_type, parse_positive_int(quantity, "Invalid input!")


# ==================== Builders & Edits ====================


def new_walk(at: str) -> WalkEntry:
    """Build a walk entry for a timestamp."""
    return WalkEntry(time=at)


def new_meal(weight: Any, at: str) -> MealEntry:
    """Build a meal entry, validating the weight."""
    return MealEntry(time=at, weight=parse_positive_int(weight, "Invalid weight!"))


def new_snack(snack_type: Any, quantity: Any, at: str) -> SnackEntry:
    """Build a snack entry, validating type and quantity."""
    label = str(snack_type).strip() if snack_type is not None else ""
    if not label:
        raise InvalidInputError("Invalid snack type!")
    return SnackEntry(time=at, type=label, quantity=parse_positive_int(quantity, "Invalid quantity!"))


def retime_walk(entry: WalkEntry, clock: time, tz: tzinfo | None, fallback_day: date) -> WalkEntry:
    """Move a walk to another time of day, keeping its calendar day.

    Walks with an unparsable time are placed on ``fallback_day``.
    """
    current = parse_timestamp(entry.time)
    day = current.astimezone(tz).date() if current is not None else fallback_day
    return entry.model_copy(update={"time": at_clock(day, clock, tz)})


def reweigh_meal(entry: MealEntry, weight: int) -> MealEntry:
    """Change a meal's weight; time is unchanged."""
    return entry.model_copy(update={"weight": weight})


def relabel_snack(entry: SnackEntry, snack_type: str, quantity: int) -> SnackEntry:
    """Change a snack's type and quantity; time is unchanged."""
    return entry.model_copy(update={"type": snack_type, "quantity": quantity})


# ==================== Document Codec ====================


_ENTRY_MODELS = {"walks": WalkEntry, "meals": MealEntry, "snacks": SnackEntry}


def empty_day() -> dict[str, list]:
    """Wire shape of a DayLog with no entries."""
    return {kind: [] for kind in ENTRY_KINDS}


def has_entries(raw: dict[str, Any] | None) -> bool:
    """True if a stored document holds any walk, meal or snack."""
    if not raw:
        return False
    return any(raw.get(kind) for kind in ENTRY_KINDS)


def _decode_entry(kind: EntryKind, raw: Any):
    if kind == "walks":
        # Early documents stored walks as bare timestamps
        if isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
            raw = {"time": raw}
        elif isinstance(raw, dict) and isinstance(raw.get("time"), datetime):
            raw = {**raw, "time": to_iso(raw["time"])}
    if not isinstance(raw, dict):
        raise ValueError(f"not a record: {raw!r}")
    data = {k: v for k, v in raw.items() if k != "kind"}
    return _ENTRY_MODELS[kind].model_validate(data)


def decode_day(raw: dict[str, Any] | None) -> DayLog:
    """Build a DayLog from a stored document.

    Walks are sorted ascending. Records that fail validation are quarantined
    rather than dropped.
    """
    raw = raw or {}
    sequences: dict[str, list] = {kind: [] for kind in ENTRY_KINDS}
    quarantined: dict[str, list] = {}

    for kind in ENTRY_KINDS:
        for item in raw.get(kind) or []:
            try:
                sequences[kind].append(_decode_entry(kind, item))
            except (ValidationError, ValueError) as e:
                logger.warning("Quarantined malformed %s record: %s", kind, str(e).splitlines()[0])
                quarantined.setdefault(kind, []).append(item)

    return DayLog(
        walks=sort_walks(sequences["walks"]),
        meals=sequences["meals"],
        snacks=sequences["snacks"],
        quarantined=quarantined,
    )


def encode_day(log: DayLog) -> dict[str, list]:
    """Wire shape of a DayLog; quarantined records follow the visible ones."""
    data: dict[str, list] = {}
    for kind in ENTRY_KINDS:
        entries = [e.model_dump(mode="json", exclude={"kind"}) for e in getattr(log, kind)]
        data[kind] = entries + list(log.quarantined.get(kind, []))
    return data
