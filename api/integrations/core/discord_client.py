"""
Discord clients.

- DiscordWebhookClient: incoming webhooks. No OAuth: the webhook URL is the
  secret, and it lives in the reaction config.
- DiscordAPIClient: REST reads with the user's Discord OAuth token, used by
  the message_received and user_joined triggers.
"""

import logging
from typing import Any, Optional

from .fields import parse_timestamp
from .http import ProviderHTTPClient, get_http_client

logger = logging.getLogger(__name__)

DISCORD_API = "https://discord.com/api/v10"

DEFAULT_WEBHOOK_USERNAME = "AREA Bot"

# Discord rejects message content longer than this
MAX_CONTENT_LENGTH = 2000

# Guild members are listed by user id, not join date: read a page and sort
MEMBER_PAGE_SIZE = 1000


class DiscordWebhookClient:

    def __init__(self, http: Optional[ProviderHTTPClient] = None):
        self._http = http or get_http_client()

    async def send_message(
        self,
        webhook_url: str,
        content: str,
        username: Optional[str] = None,
    ) -> None:
        if len(content) > MAX_CONTENT_LENGTH:
            content = content[: MAX_CONTENT_LENGTH - 1] + "…"
        await self._http.request(
            "post",
            webhook_url,
            json={"content": content, "username": username or DEFAULT_WEBHOOK_USERNAME},
        )


class DiscordAPIClient:
    """Direct API client for Discord channel and guild reads."""

    def __init__(self, http: Optional[ProviderHTTPClient] = None):
        self._http = http or get_http_client()

    async def get_latest_channel_message(self, access_token: str, channel_id: str) -> Optional[dict[str, Any]]:
        """Newest message in a channel (with its ISO timestamp), or None."""
        messages = await self._http.get_json(
            f"{DISCORD_API}/channels/{channel_id}/messages",
            token=access_token,
            params={"limit": 1},
        )
        return messages[0] if messages else None

    async def get_latest_member(self, access_token: str, guild_id: str) -> Optional[dict[str, Any]]:
        """Most recently joined member of a guild (by joined_at), or None."""
        members = await self._http.get_json(
            f"{DISCORD_API}/guilds/{guild_id}/members",
            token=access_token,
            params={"limit": MEMBER_PAGE_SIZE},
        )
        joined = [m for m in members or [] if m.get("joined_at")]
        if not joined:
            return None
        return max(joined, key=lambda m: parse_timestamp(m["joined_at"]))


def get_discord_client() -> DiscordWebhookClient:
    return DiscordWebhookClient()


def get_discord_api_client() -> DiscordAPIClient:
    return DiscordAPIClient()
