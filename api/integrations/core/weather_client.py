"""
Open-Meteo client (no API key required).

City names are geocoded first, then current conditions are read from the
forecast endpoint: a compact reading for the weather triggers, a detailed
one for the weather report reaction.
"""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from .http import ProviderHTTPClient, get_http_client

logger = logging.getLogger(__name__)

GEOCODING_URL = "https://geocoding-api.open-meteo.com/v1/search"
FORECAST_URL = "https://api.open-meteo.com/v1/forecast"

DETAILED_FIELDS = (
    "temperature_2m,relative_humidity_2m,apparent_temperature,precipitation,"
    "weather_code,surface_pressure,wind_speed_10m,wind_direction_10m"
)

# WMO weather interpretation codes
WEATHER_DESCRIPTIONS = {
    0: "Clear sky",
    1: "Mainly clear",
    2: "Partly cloudy",
    3: "Overcast",
    45: "Fog",
    48: "Depositing rime fog",
    51: "Light drizzle",
    53: "Moderate drizzle",
    55: "Dense drizzle",
    61: "Light rain",
    63: "Moderate rain",
    65: "Heavy rain",
    71: "Light snow",
    73: "Moderate snow",
    75: "Heavy snow",
    77: "Snow grains",
    80: "Light rain showers",
    81: "Moderate rain showers",
    82: "Violent rain showers",
    85: "Light snow showers",
    86: "Heavy snow showers",
    95: "Thunderstorm",
    96: "Thunderstorm with light hail",
    99: "Thunderstorm with heavy hail",
}


@dataclass
class Location:
    name: str
    country: str
    latitude: float
    longitude: float


@dataclass
class CurrentWeather:
    city: str
    temperature: float
    weather_code: int

    @property
    def condition(self) -> str:
        return weather_code_to_condition(self.weather_code)


@dataclass
class WeatherReport:
    location: Location
    temperature: float
    apparent_temperature: float
    humidity: float
    precipitation: float
    weather_code: int
    pressure: float
    wind_speed: float
    wind_direction: float

    @property
    def description(self) -> str:
        return WEATHER_DESCRIPTIONS.get(self.weather_code, "Unknown conditions")

    def to_markdown(self) -> str:
        return (
            f"🌍 **Weather in {self.location.name}, {self.location.country}**\n\n"
            f"🌡️ **Temperature:** {round(self.temperature)}°C "
            f"(feels like {round(self.apparent_temperature)}°C)\n"
            f"☁️ **Conditions:** {self.description}\n"
            f"💧 **Humidity:** {self.humidity:g}%\n"
            f"🌬️ **Wind:** {round(self.wind_speed)} km/h (direction {self.wind_direction:g}°)\n"
            f"🌧️ **Precipitation:** {self.precipitation:g} mm\n"
            f"🔽 **Pressure:** {round(self.pressure)} hPa\n\n"
            f"_Source: Open-Meteo_"
        )


def weather_code_to_condition(code: int) -> str:
    """Collapse a WMO weather code into a coarse condition name."""
    if code in (0, 1):
        return "clear"
    if 2 <= code <= 3:
        return "clouds"
    if 45 <= code <= 48:
        return "mist"
    if 51 <= code <= 57:
        return "drizzle"
    if 61 <= code <= 67 or 80 <= code <= 82:
        return "rain"
    if 71 <= code <= 77 or 85 <= code <= 86:
        return "snow"
    if 95 <= code <= 99:
        return "thunderstorm"
    return "unknown"


class WeatherClient:

    def __init__(self, http: Optional[ProviderHTTPClient] = None):
        self._http = http or get_http_client()

    async def geocode(self, city: str) -> Optional[Location]:
        data = await self._http.get_json(
            GEOCODING_URL,
            params={"name": city.strip(), "count": 1, "format": "json"},
        )
        results = data.get("results") or []
        if not results:
            logger.warning(f"[WEATHER] City not found: {city}")
            return None
        first = results[0]
        return Location(
            name=first.get("name", city.strip()),
            country=first.get("country", ""),
            latitude=first["latitude"],
            longitude=first["longitude"],
        )

    async def _current(self, location: Location, fields: str) -> dict[str, Any]:
        data = await self._http.get_json(
            FORECAST_URL,
            params={
                "latitude": location.latitude,
                "longitude": location.longitude,
                "current": fields,
                "timezone": "auto",
            },
        )
        return data.get("current") or {}

    async def get_current(self, city: str) -> Optional[CurrentWeather]:
        location = await self.geocode(city)
        if not location:
            return None

        current = await self._current(location, "temperature_2m,weather_code")
        if "temperature_2m" not in current:
            logger.warning(f"[WEATHER] No current conditions returned for {city}")
            return None
        return CurrentWeather(
            city=city,
            temperature=float(current["temperature_2m"]),
            weather_code=int(current.get("weather_code", -1)),
        )

    async def get_report(self, city: str) -> Optional[WeatherReport]:
        location = await self.geocode(city)
        if not location:
            return None

        current = await self._current(location, DETAILED_FIELDS)
        if "temperature_2m" not in current:
            logger.warning(f"[WEATHER] No current conditions returned for {city}")
            return None

        logger.info(f"[WEATHER] Report for {location.name}, {location.country}")
        return WeatherReport(
            location=location,
            temperature=float(current["temperature_2m"]),
            apparent_temperature=float(current.get("apparent_temperature", current["temperature_2m"])),
            humidity=float(current.get("relative_humidity_2m", 0)),
            precipitation=float(current.get("precipitation", 0)),
            weather_code=int(current.get("weather_code", -1)),
            pressure=float(current.get("surface_pressure", 0)),
            wind_speed=float(current.get("wind_speed_10m", 0)),
            wind_direction=float(current.get("wind_direction_10m", 0)),
        )


def get_weather_client() -> WeatherClient:
    return WeatherClient()
