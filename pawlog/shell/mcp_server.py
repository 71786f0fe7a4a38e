"""MCP Server - Tool definitions for driving the dashboard.

Every dashboard action is a tool. Alerts raised while a tool runs are
returned with its result; destructive tools need ``confirm=True``.
"""

import logging
import os
from contextlib import contextmanager
from datetime import date
from typing import Iterator

from mcp.server.fastmcp import FastMCP
from mcp.server.transport_security import TransportSecuritySettings

from ..core.entries import format_time
from ..core.models import DayLog, EntryKind, ENTRY_KINDS
from .dashboard import DashboardConfig, DashboardSession
from .firestore_client import DayLogFirestoreClient, FirestoreConfig
from .interaction import ContextInteraction, ToolInteraction, current_interaction
from .weather_client import OpenWeatherClient, WeatherConfig, WeatherFeed


logger = logging.getLogger(__name__)

# Configure transport security for local deployment
transport_security = TransportSecuritySettings(
    enable_dns_rebinding_protection=True,
    allowed_hosts=[
        "localhost:*",
        "127.0.0.1:*",
    ],
)

mcp = FastMCP(
    "pawlog",
    instructions="""PawLog - Dog walk, meal and snack tracker.

Use these tools to log walks, meals and snacks for the dog and to browse
past days. All logging tools act on the selected day (today by default);
call select_day to switch. Past days are read-only until set_edit_mode
turns editing on. Always show whether a walk is due after logging.
Deleting entries and resetting a day require confirm=true: ask the user first.""",
    stateless_http=True,
    transport_security=transport_security,
)

# Lazy-initialized session
_session: DashboardSession | None = None


def get_session() -> DashboardSession:
    """Get or create the dashboard session."""
    global _session
    if _session is None:
        client = DayLogFirestoreClient(
            FirestoreConfig(
                project_id=os.environ.get("FIRESTORE_PROJECT"),
                database=os.environ.get("FIRESTORE_DATABASE"),
                collection=os.environ.get("PAWLOG_COLLECTION", "puppyData"),
            )
        )
        weather = None
        api_key = os.environ.get("OPENWEATHER_API_KEY")
        if api_key:
            weather_config = WeatherConfig(
                api_key=api_key,
                latitude=float(os.environ.get("WEATHER_LAT", 57.65)),
                longitude=float(os.environ.get("WEATHER_LON", 12.03)),
                place=os.environ.get("WEATHER_PLACE"),
            )
            weather = WeatherFeed(OpenWeatherClient.create(weather_config))
        _session = DashboardSession(client, ContextInteraction(), weather=weather, config=DashboardConfig())
    return _session


@contextmanager
def tool_interaction(answers: list[str] | None = None, confirmed: bool = False) -> Iterator[ToolInteraction]:
    """Bind a ToolInteraction to the current tool call."""
    interaction = ToolInteraction(answers=list(answers or []), confirmed=confirmed)
    token = current_interaction.set(interaction)
    try:
        yield interaction
    finally:
        current_interaction.reset(token)


def _day_rows(log: DayLog) -> dict:
    """Entries with their list positions and display times."""
    return {
        "walks": [
            {"index": i, "time": format_time(w.time)}
            for i, w in enumerate(log.walks)
        ],
        "meals": [
            {"index": i, "time": format_time(m.time), "weight": m.weight}
            for i, m in enumerate(log.meals)
        ],
        "snacks": [
            {"index": i, "time": format_time(s.time), "type": s.type, "quantity": s.quantity}
            for i, s in enumerate(log.snacks)
        ],
    }


def _dashboard(session: DashboardSession, interaction: ToolInteraction | None = None) -> dict:
    view = session.view()
    result = {
        "date": view.selected_date.isoformat(),
        "is_today": view.is_today,
        "history_mode": view.history_mode,
        "can_edit": view.can_edit,
        "entries": _day_rows(view.log),
        "walk_due": view.walk_due,
        "next_walk": view.next_walk,
    }
    if interaction is not None and interaction.alerts:
        result["errors"] = interaction.alerts
    return result


def _result(session: DashboardSession, interaction: ToolInteraction, log: DayLog | None) -> dict:
    result = _dashboard(session, interaction)
    result["success"] = log is not None
    return result


# ==================== Selection Tools ====================


@mcp.tool()
async def select_day(date_str: str | None = None) -> dict:
    """Switch the dashboard to a day.

    Args:
        date_str: Date in YYYY-MM-DD format (defaults to today)

    Returns:
        The selected day's entries and walk status
    """
    session = get_session()
    if date_str is None:
        day = session.store.today
    else:
        try:
            day = date.fromisoformat(date_str)
        except ValueError:
            return {"error": "Invalid date format. Use YYYY-MM-DD."}

    await session.select_day(day)
    return _dashboard(session)


@mcp.tool()
async def get_dashboard() -> dict:
    """Get the selected day's entries, walk status and weather."""
    session = get_session()
    result = _dashboard(session)
    result["weather"] = session.view().weather.model_dump(mode="json")
    return result


# ==================== Logging Tools ====================


@mcp.tool()
async def log_walk(time: str | None = None) -> dict:
    """Log a walk on the selected day.

    Args:
        time: Optional time of day as HH:mm:ss (defaults to now)

    Returns:
        Updated entries and walk status
    """
    session = get_session()
    with tool_interaction([time] if time else []) as interaction:
        if time:
            log = await session.add_custom_walk()
        else:
            log = await session.store.add_walk()
    return _result(session, interaction, log)


@mcp.tool()
async def log_meal(weight: int, time: str | None = None) -> dict:
    """Log a meal on the selected day.

    Args:
        weight: Portion weight in grams
        time: Optional time of day as HH:mm:ss (defaults to now)
    """
    session = get_session()
    answers = [time, str(weight)] if time else [str(weight)]
    with tool_interaction(answers) as interaction:
        log = await session.prompt_meal(custom_time=bool(time))
    return _result(session, interaction, log)


@mcp.tool()
async def log_snack(snack_type: str, quantity: int, time: str | None = None) -> dict:
    """Log snacks on the selected day.

    Args:
        snack_type: Kind of snack (e.g., "biscuit")
        quantity: How many were given
        time: Optional time of day as HH:mm:ss (defaults to now)
    """
    session = get_session()
    answers = [snack_type, str(quantity)]
    if time:
        answers.insert(0, time)
    with tool_interaction(answers) as interaction:
        log = await session.prompt_snack(custom_time=bool(time))
    return _result(session, interaction, log)


# ==================== Edit Tools ====================


@mcp.tool()
async def set_edit_mode(enabled: bool) -> dict:
    """Allow or forbid changes to the selected past day.

    Past days are read-only until edit mode is on. Selecting another day
    turns it off again.

    Args:
        enabled: True to allow changes
    """
    session = get_session()
    session.set_edit_mode(enabled)
    return _dashboard(session)


@mcp.tool()
async def edit_walk(index: int, time: str) -> dict:
    """Change the time of a walk.

    Args:
        index: Position of the walk in the day's list
        time: New time of day as HH:mm:ss
    """
    session = get_session()
    with tool_interaction([time]) as interaction:
        log = await session.prompt_edit_walk(index)
    return _result(session, interaction, log)


@mcp.tool()
async def edit_meal(index: int, weight: int) -> dict:
    """Change the weight of a meal.

    Args:
        index: Position of the meal in the day's list
        weight: New weight in grams
    """
    session = get_session()
    with tool_interaction([str(weight)]) as interaction:
        log = await session.prompt_edit_meal(index)
    return _result(session, interaction, log)


@mcp.tool()
async def edit_snack(index: int, snack_type: str, quantity: int) -> dict:
    """Change the type and quantity of a snack.

    Args:
        index: Position of the snack in the day's list
        snack_type: New snack type (no commas)
        quantity: New quantity
    """
    session = get_session()
    with tool_interaction([f"{snack_type},{quantity}"]) as interaction:
        log = await session.prompt_edit_snack(index)
    return _result(session, interaction, log)


@mcp.tool()
async def delete_entry(index: int, kind: str, confirm: bool = False) -> dict:
    """Delete a walk, meal or snack. Ask the user before setting confirm.

    Args:
        index: Position of the entry in its list
        kind: One of "walks", "meals", "snacks"
        confirm: Must be true to actually delete
    """
    if kind not in ENTRY_KINDS:
        return {"error": f"Unknown kind '{kind}'. Use one of: {', '.join(ENTRY_KINDS)}."}
    session = get_session()
    entry_kind: EntryKind = kind  # type: ignore[assignment]
    with tool_interaction(confirmed=confirm) as interaction:
        log = await session.store.delete_entry(index, entry_kind)
    result = _result(session, interaction, log)
    if not confirm:
        result["message"] = "Not deleted. Confirm with the user and call again with confirm=true."
    return result


@mcp.tool()
async def reset_day(confirm: bool = False) -> dict:
    """Remove every entry of the selected day. Irreversible; ask the user first.

    Args:
        confirm: Must be true to actually reset
    """
    session = get_session()
    with tool_interaction(confirmed=confirm) as interaction:
        log = await session.store.reset_day()
    result = _result(session, interaction, log)
    if not confirm:
        result["message"] = "Not reset. Confirm with the user and call again with confirm=true."
    return result


# ==================== History & Weather Tools ====================


@mcp.tool()
async def list_history(load_more: bool = False) -> dict:
    """List days that can be selected, newest first.

    Args:
        load_more: Fetch the next page instead of starting over
    """
    session = get_session()
    if load_more:
        dates = await session.load_more_history()
    else:
        dates = await session.catalog.load_page(reset=True)
    return {
        "dates": [d.isoformat() for d in dates],
        "has_more": session.catalog.has_more,
    }


@mcp.tool()
async def get_weather() -> dict:
    """Get the latest weather reading."""
    session = get_session()
    if session.weather is None:
        return {"error": "Weather is not configured. Set OPENWEATHER_API_KEY."}
    status = session.weather.status
    if status.reading is None:
        return {"error": "Weather data unavailable." if status.error else "Weather is loading."}
    reading = status.reading
    return {
        "emoji": reading.emoji,
        "temperature": round(reading.temperature),
        "description": reading.description,
        "humidity": reading.humidity,
        "wind_speed": reading.wind_speed,
    }
