"""
Spotify trigger: the user saved ("liked") a new track.
"""

from datetime import datetime
from typing import Any, Optional

from integrations.core.spotify_client import SpotifyAPIClient, get_spotify_client
from integrations.core.fields import parse_timestamp
from .base import EventTrigger


class NewSavedTrackTrigger(EventTrigger):

    def __init__(self, tokens, client: Optional[SpotifyAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_spotify_client()

    @property
    def service(self) -> str:
        return "spotify"

    @property
    def action_type(self) -> str:
        return "new_saved_track"

    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        item = await self._client.get_latest_saved_track(access_token)
        if not item:
            return None
        return parse_timestamp(item.get("added_at"))
