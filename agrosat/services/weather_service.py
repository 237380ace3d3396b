import logging
from typing import Any, Dict, Optional

import httpx
from fastapi import Depends

from agrosat.core.config import settings
from agrosat.core.http import get_http_transport
from agrosat.models.farmer import Farmer

logger = logging.getLogger(__name__)

OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

FALLBACK_SUMMARY = (
    "Current weather for your area: Partly cloudy, 28 degrees Celsius. "
    "30% chance of rain in the next 24 hours."
)

# WMO weather interpretation codes, grouped
WEATHER_CODES = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Fog",
    51: "Light drizzle",
    53: "Drizzle",
    55: "Heavy drizzle",
    61: "Light rain",
    63: "Rain",
    65: "Heavy rain",
    71: "Light snow",
    73: "Snow",
    75: "Heavy snow",
    80: "Rain showers",
    81: "Rain showers",
    82: "Violent rain showers",
    95: "Thunderstorm",
    96: "Thunderstorm with hail",
    99: "Thunderstorm with hail",
}


class WeatherService:
    def __init__(self, transport: httpx.AsyncBaseTransport = None):
        self.transport = transport
        self.timeout = settings.HTTP_TIMEOUT

    async def get_weather(self, lat: float, lon: float) -> Dict[str, Any]:
        params = {
            "latitude": lat,
            "longitude": lon,
            "current": "temperature_2m,relative_humidity_2m,wind_speed_10m,weather_code",
            "daily": "precipitation_probability_max",
            "forecast_days": 1,
            "timezone": "auto",
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.get(OPEN_METEO_URL, params=params)
            response.raise_for_status()
            return response.json()

    @staticmethod
    def describe(data: Dict[str, Any]) -> str:
        current = data["current"]
        conditions = WEATHER_CODES.get(current.get("weather_code"), "Variable conditions")
        summary = f"Current weather for your area: {conditions}, {round(current['temperature_2m'])} degrees Celsius"
        if current.get("relative_humidity_2m") is not None:
            summary += f", humidity {round(current['relative_humidity_2m'])}%"
        if current.get("wind_speed_10m") is not None:
            summary += f", wind {round(current['wind_speed_10m'])} km/h"
        summary += "."

        rain = (data.get("daily", {}).get("precipitation_probability_max") or [None])[0]
        if rain is not None:
            summary += f" {round(rain)}% chance of rain in the next 24 hours."
        return summary

    async def summary(self, lat: Optional[float], lon: Optional[float]) -> str:
        """One sentence for TTS or a chat reply. Falls back to a generic forecast."""
        if lat is None or lon is None:
            return FALLBACK_SUMMARY
        try:
            return self.describe(await self.get_weather(lat, lon))
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            logger.warning("Open-Meteo lookup failed for %s,%s: %s", lat, lon, e)
            return FALLBACK_SUMMARY

    async def summary_for(self, farmer: Farmer) -> str:
        return await self.summary(farmer.latitude, farmer.longitude)


def get_weather_service(transport=Depends(get_http_transport)):
    return WeatherService(transport=transport)
