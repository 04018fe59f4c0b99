"""
Weather reaction: post a detailed current-weather report for a city to a
Discord channel through an incoming webhook.

Config:
    {
        "city": "Paris",
        "webhookUrl": "https://discord.com/api/webhooks/...",
        "username": "optional bot name"
    }
"""

import logging
from typing import Any, Optional

from integrations.core.discord_client import DiscordWebhookClient, get_discord_client
from integrations.core.fields import require_fields
from integrations.core.types import TriggerEvent
from integrations.core.weather_client import WeatherClient, get_weather_client
from .base import ReactionExecutor

logger = logging.getLogger(__name__)


class SendWeatherReportReaction(ReactionExecutor):

    def __init__(
        self,
        weather: Optional[WeatherClient] = None,
        discord: Optional[DiscordWebhookClient] = None,
    ):
        self._weather = weather or get_weather_client()
        self._discord = discord or get_discord_client()

    @property
    def service(self) -> str:
        return "weather"

    @property
    def reaction_type(self) -> str:
        return "send_report"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "city", "webhookUrl")

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        report = await self._weather.get_report(str(config["city"]))
        if report is None:
            logger.warning(f"[WEATHER_REACTION] No report for {config['city']!r}, nothing sent")
            return False

        await self._discord.send_message(config["webhookUrl"], report.to_markdown(), username=config.get("username"))
        logger.info(f"[WEATHER_REACTION] Report for {report.location.name} sent for user {user_id}")
        return True
