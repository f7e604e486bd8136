"""
Weather tools backed by the Weatherbit API.

https://www.weatherbit.io/api/weather-current
https://www.weatherbit.io/api/weather-forecast-16-day
"""

from datetime import date
from typing import Any

import httpx

from .base import BaseTool, ToolContext, ToolParameter

WEATHERBIT_BASE_URL = "https://api.weatherbit.io/v2.0"

CITY_PARAMETER = ToolParameter(
    name="city",
    param_type="string",
    description="The city and state(optional) in English, e.g. Raleigh,North Carolina",
)


class _WeatherbitTool(BaseTool):
    endpoint = ""

    def __init__(self, api_key: str = "", timeout: float = 20.0):
        self.api_key = api_key
        self.timeout = timeout

    @property
    def parameters(self) -> list[ToolParameter]:
        return [CITY_PARAMETER]

    async def _fetch(self, city: str) -> dict[str, Any] | str:
        if not self.api_key:
            return "Weather lookups are not configured."

        async with httpx.AsyncClient() as client:
            response = await client.get(
                f"{WEATHERBIT_BASE_URL}/{self.endpoint}",
                params={"key": self.api_key, "city": city},
                timeout=self.timeout,
            )

        if response.is_error:
            return f"HTTP error! Status: {response.status_code}"
        # Weatherbit answers 204 with an empty body for unknown cities
        if response.status_code == 204 or not response.content:
            return "No weather data found"
        return response.json()


class CurrentWeatherTool(_WeatherbitTool):
    """Current conditions for a city."""

    endpoint = "current"

    @property
    def name(self) -> str:
        return "get_current_weather"

    @property
    def description(self) -> str:
        return "Get the current weather in a given city"

    async def execute(self, context: ToolContext, city: str) -> str:
        data = await self._fetch(city)
        if isinstance(data, str):
            return data

        observations = data.get("data") or []
        if not observations:
            return "No weather data found"

        now = observations[0]
        return "\n".join([
            f"City: {now.get('city_name')}",
            f"Weather: {now.get('weather', {}).get('description')}",
            f"Temperature: {now.get('temp')}",
            f"Feels Like: {now.get('app_temp')}",
            f"Humidity: {now.get('rh')}%",
            f"Wind: {now.get('wind_spd')} m/s",
            f"Visibility: {now.get('vis')} km",
        ])


class WeatherForecastTool(_WeatherbitTool):
    """Seven day forecast for a city."""

    endpoint = "forecast/daily"
    days = 7

    @property
    def name(self) -> str:
        return "get_weather_forecast"

    @property
    def description(self) -> str:
        return "Get 7 day forecast in 1 day intervals in a given city"

    async def execute(self, context: ToolContext, city: str) -> str:
        data = await self._fetch(city)
        if isinstance(data, str):
            return data

        days = (data.get("data") or [])[: self.days]
        if not days:
            return "No weather data found"

        header = f"City: {data.get('city_name')}\nToday: {date.today().isoformat()}"
        return header + "\n\n" + "\n\n".join(_format_day(day) for day in days)


def _format_day(day: dict[str, Any]) -> str:
    return "\n".join([
        f"[{day.get('valid_date')}]",
        f"Weather: {day.get('weather', {}).get('description')}",
        f"Average Temperature: {day.get('temp')}",
        f"Minimum Temperature: {day.get('min_temp')}",
        f"Maximum Temperature: {day.get('max_temp')}",
        f"Humidity: {day.get('rh')}%",
        f"Wind: {day.get('wind_spd')} m/s",
        f"Visibility: {day.get('vis')} km",
        f"Probability of Precipitation: {day.get('pop')}%",
    ])
