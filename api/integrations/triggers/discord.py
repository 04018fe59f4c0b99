"""
Discord triggers, read with the user's Discord OAuth token.

- message_received {channel_id}: newest message in the channel
- user_joined {guild_id}: most recently joined guild member
"""

from datetime import datetime
from typing import Any, Optional

from integrations.core.discord_client import DiscordAPIClient, get_discord_api_client
from integrations.core.fields import parse_timestamp, require_fields
from .base import EventTrigger


class DiscordTrigger(EventTrigger):

    def __init__(self, tokens, client: Optional[DiscordAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_discord_api_client()

    @property
    def service(self) -> str:
        return "discord"


class MessageReceivedTrigger(DiscordTrigger):

    @property
    def action_type(self) -> str:
        return "message_received"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "channel_id")

    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        message = await self._client.get_latest_channel_message(access_token, str(config["channel_id"]))
        if not message:
            return None
        return parse_timestamp(message.get("timestamp"))


class UserJoinedTrigger(DiscordTrigger):

    @property
    def action_type(self) -> str:
        return "user_joined"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "guild_id")

    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        member = await self._client.get_latest_member(access_token, str(config["guild_id"]))
        if not member:
            return None
        return parse_timestamp(member.get("joined_at"))
