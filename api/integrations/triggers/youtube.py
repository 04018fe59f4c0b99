"""
YouTube trigger: a channel published a new video.

Config:
    {"channel_url": "https://www.youtube.com/@handle"}
    channel_url may also be a /channel/UC... URL, a bare channel id,
    or a channel name to search for.
"""

import logging
from datetime import datetime
from typing import Any, Optional

from integrations.core.google_client import GoogleAPIClient, get_google_client
from integrations.core.fields import parse_timestamp, require_fields
from .base import EventTrigger

logger = logging.getLogger(__name__)


class NewVideoTrigger(EventTrigger):

    def __init__(self, tokens, client: Optional[GoogleAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_google_client()

    @property
    def service(self) -> str:
        return "youtube"

    @property
    def action_type(self) -> str:
        return "new_video"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "channel_url")

    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        channel_url = config["channel_url"]
        channel_id = await self._client.resolve_channel_id(access_token, channel_url)
        if not channel_id:
            logger.error(f"[YOUTUBE_TRIGGER] Could not resolve channel for {channel_url}")
            return None

        items = await self._client.get_latest_activity(access_token, channel_id)
        if not items:
            return None

        snippet = items[0].get("snippet", {})
        # Likes, playlist additions etc. also show up as activities
        if snippet.get("type") != "upload":
            return None
        return parse_timestamp(snippet.get("publishedAt"))
