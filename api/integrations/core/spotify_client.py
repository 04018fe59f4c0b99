"""
Spotify Web API client.

Used by the new_saved_track trigger and the player reactions. Player
endpoints answer 404 when the user has no active device and 403 for
non-Premium accounts; both surface as ProviderAPIError and are logged with
a hint by the reaction.
"""

import logging
from typing import Any, Optional

from .http import ProviderHTTPClient, get_http_client

logger = logging.getLogger(__name__)

SPOTIFY_API = "https://api.spotify.com/v1"


class SpotifyAPIClient:
    """Direct API client for Spotify operations."""

    def __init__(self, http: Optional[ProviderHTTPClient] = None):
        self._http = http or get_http_client()

    async def get_latest_saved_track(self, access_token: str) -> Optional[dict[str, Any]]:
        """Most recently saved ("liked") track item, with added_at, or None."""
        data = await self._http.get_json(
            f"{SPOTIFY_API}/me/tracks",
            token=access_token,
            params={"limit": 1},
        )
        items = data.get("items") or []
        return items[0] if items else None

    async def skip_to_next(self, access_token: str) -> None:
        await self._http.request(
            "post",
            f"{SPOTIFY_API}/me/player/next",
            token=access_token,
            headers={"Content-Length": "0"},
        )

    async def play_context(self, access_token: str, context_uri: str) -> None:
        await self._http.request(
            "put",
            f"{SPOTIFY_API}/me/player/play",
            token=access_token,
            json={"context_uri": context_uri},
        )


def get_spotify_client() -> SpotifyAPIClient:
    return SpotifyAPIClient()
