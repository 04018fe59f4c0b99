"""
Weather triggers (Open-Meteo, no account needed).

- temperature_above {city, temperature}
- temperature_below {city, temperature}
- weather_condition {city, condition}   condition: clear, clouds, mist,
  drizzle, rain, snow, thunderstorm

Weather stays true for hours, so each fires at most once per calendar day
in the reference timezone.
"""

import logging
from abc import abstractmethod
from datetime import datetime
from typing import Any, Optional

from integrations.core.clock import ReferenceClock, to_reference
from integrations.core.errors import ConfigurationError
from integrations.core.weather_client import CurrentWeather, WeatherClient, get_weather_client
from integrations.core.fields import require_fields
from .base import TriggerEvaluator

logger = logging.getLogger(__name__)


class WeatherTrigger(TriggerEvaluator):

    def __init__(self, clock: Optional[ReferenceClock] = None, client: Optional[WeatherClient] = None):
        self._clock = clock or ReferenceClock()
        self._client = client or get_weather_client()

    @property
    def service(self) -> str:
        return "weather"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "city")

    @abstractmethod
    def matches(self, weather: CurrentWeather, config: dict[str, Any]) -> bool:
        """Whether the current conditions satisfy the configured threshold."""
        pass

    async def check_at(
        self,
        user_id: str,
        config: dict[str, Any],
        last_triggered: Optional[datetime],
    ) -> tuple[bool, Optional[datetime]]:
        self.validate_config(config)

        now = await self._clock.now()
        if last_triggered is not None and to_reference(last_triggered, self._clock.tz).date() == now.date():
            return False, now

        weather = await self._client.get_current(config["city"])
        if weather is None:
            return False, now

        fired = self.matches(weather, config)
        logger.info(
            f"[WEATHER] {config['city']}: {weather.temperature}°C, {weather.condition} "
            f"-> {self.action_type} {'fired' if fired else 'not met'}"
        )
        return fired, now

    async def check(self, user_id: str, config: dict[str, Any], last_triggered: Optional[datetime]) -> bool:
        fired, _ = await self.check_at(user_id, config, last_triggered)
        return fired


def _threshold(config: dict[str, Any]) -> float:
    require_fields(config, "temperature")
    try:
        return float(config["temperature"])
    except (TypeError, ValueError):
        raise ConfigurationError(f"temperature must be a number, got {config['temperature']!r}")


class TemperatureAboveTrigger(WeatherTrigger):

    @property
    def action_type(self) -> str:
        return "temperature_above"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "city")
        _threshold(config)

    def matches(self, weather: CurrentWeather, config: dict[str, Any]) -> bool:
        return weather.temperature > _threshold(config)


class TemperatureBelowTrigger(WeatherTrigger):

    @property
    def action_type(self) -> str:
        return "temperature_below"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "city")
        _threshold(config)

    def matches(self, weather: CurrentWeather, config: dict[str, Any]) -> bool:
        return weather.temperature < _threshold(config)


class WeatherConditionTrigger(WeatherTrigger):

    @property
    def action_type(self) -> str:
        return "weather_condition"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "city", "condition")

    def matches(self, weather: CurrentWeather, config: dict[str, Any]) -> bool:
        return weather.condition == str(config["condition"]).strip().lower()
