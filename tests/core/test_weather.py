"""Unit tests for weather rules - pure functions, no mocks needed."""

import pytest

from pawlog.core.weather import DEFAULT_EMOJI, parse_weather, weather_emoji


PAYLOAD = {
    "main": {"temp": 11.6, "humidity": 81},
    "wind": {"speed": 4.1},
    "weather": [{"description": "light rain", "icon": "10d"}],
}


class TestWeatherEmoji:
    """Tests for weather_emoji."""

    def test_clear_sky_day_and_night(self):
        assert weather_emoji("01d") == "☀️"
        assert weather_emoji("01n") == "🌙"

    def test_few_clouds_night(self):
        assert weather_emoji("02n") == "☁️"

    def test_shower_rain_night(self):
        """Both suffixes map for every code."""
        assert weather_emoji("09n") == "🌧️"

    @pytest.mark.parametrize("icon", ["99d", "", None, "01x", "1d"])
    def test_unknown_falls_back(self, icon):
        assert weather_emoji(icon) == DEFAULT_EMOJI


class TestParseWeather:
    """Tests for parse_weather."""

    def test_reads_fields(self):
        reading = parse_weather(PAYLOAD)
        assert reading.temperature == 11.6
        assert reading.humidity == 81
        assert reading.wind_speed == 4.1
        assert reading.description == "light rain"
        assert reading.emoji == "🌦️"

    def test_missing_section_raises(self):
        with pytest.raises(KeyError):
            parse_weather({"weather": [{"icon": "01d"}]})
