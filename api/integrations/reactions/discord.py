"""
Discord reaction: post a message through an incoming webhook.

Config:
    {
        "webhookUrl": "https://discord.com/api/webhooks/...",
        "message": "optional text",        # default describes the trigger
        "username": "optional bot name"    # default "AREA Bot"
    }
"""

import logging
from typing import Any, Optional

from integrations.core.discord_client import DiscordWebhookClient, get_discord_client
from integrations.core.fields import require_fields
from integrations.core.types import TriggerEvent
from .base import ReactionExecutor

logger = logging.getLogger(__name__)

DEFAULT_MESSAGE = "AREA triggered!"

_ACTION_MESSAGES = {
    ("gmail", "email_received"): "📧 New email received",
    ("spotify", "new_saved_track"): "🎵 New track saved on Spotify",
    ("youtube", "new_video"): "📺 New video published",
    ("github", "new_commit"): "💻 New commit detected on repository!",
    ("github", "issue_created"): "🐛 New issue opened on repository!",
    ("github", "repository_starred"): "⭐ Your repository got a new star!",
    ("discord", "message_received"): "💬 New message in Discord channel",
    ("discord", "user_joined"): "👋 A new member joined the Discord server",
    ("timer", "date_reached"): "📅 Date reached",
    ("timer", "day_of_week"): "📅 Day of week reached",
}


def default_message(event: Optional[TriggerEvent]) -> str:
    """Describe the trigger that fired, for reactions configured without a message."""
    if event is None:
        return DEFAULT_MESSAGE

    if (event.action_service, event.action_type) == ("timer", "time_reached"):
        hour = event.action_config.get("hour", 0)
        minute = event.action_config.get("minute", 0)
        return f"⏰ Time alert: {int(hour)}:{int(minute):02d}"

    if event.action_service == "weather":
        city = event.action_config.get("city", "")
        return f"🌦️ Weather alert for {city}".rstrip()

    return _ACTION_MESSAGES.get((event.action_service, event.action_type), DEFAULT_MESSAGE)


class SendMessageReaction(ReactionExecutor):

    def __init__(self, client: Optional[DiscordWebhookClient] = None):
        self._client = client or get_discord_client()

    @property
    def service(self) -> str:
        return "discord"

    @property
    def reaction_type(self) -> str:
        return "send_message"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "webhookUrl")

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        message = config.get("message") or default_message(event)
        await self._client.send_message(config["webhookUrl"], message, username=config.get("username"))
        logger.info(f"[DISCORD_REACTION] Message sent for user {user_id}")
        return True
