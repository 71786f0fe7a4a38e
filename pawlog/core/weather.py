"""Weather Rules - Payload parsing and the icon table."""

from typing import Any

from .models import WeatherReading


DEFAULT_EMOJI = "❓"

# OpenWeatherMap icon code (without the d/n suffix) -> (day, night)
WEATHER_EMOJI: dict[str, tuple[str, str]] = {
    "01": ("☀️", "🌙"),  # clear sky
    "02": ("🌤️", "☁️"),  # few clouds
    "03": ("☁️", "☁️"),  # scattered clouds
    "04": ("🌥️", "🌥️"),  # broken clouds
    "09": ("🌧️", "🌧️"),  # shower rain
    "10": ("🌦️", "🌦️"),  # rain
    "11": ("🌩️", "🌩️"),  # thunderstorm
    "13": ("❄️", "❄️"),  # snow
    "50": ("🌫️", "🌫️"),  # mist
}


def weather_emoji(icon: str | None) -> str:
    """Map a provider icon code such as '10n' to an emoji."""
    if not icon or len(icon) != 3 or icon[2] not in "dn":
        return DEFAULT_EMOJI
    pair = WEATHER_EMOJI.get(icon[:2])
    if pair is None:
        return DEFAULT_EMOJI
    return pair[1] if icon.endswith("n") else pair[0]


def parse_weather(payload: dict[str, Any]) -> WeatherReading:
    """Build a reading from a current-conditions response.

    Raises:
        KeyError, IndexError, TypeError: If required fields are missing
        pydantic.ValidationError: If a field has the wrong type
    """
    condition = payload["weather"][0]
    icon = condition.get("icon", "")
    return WeatherReading(
        temperature=payload["main"]["temp"],
        humidity=payload["main"]["humidity"],
        wind_speed=payload["wind"]["speed"],
        description=condition.get("description", ""),
        icon=icon,
        emoji=weather_emoji(icon),
    )
