"""
Spotify reactions: skip to the next track, start a playlist.

Both act on the user's currently active device. Spotify answers 404 when no
device is active and 403 when the account is not Premium.
"""

import logging
from typing import Any, Optional

from integrations.core.errors import ProviderAPIError
from integrations.core.fields import require_fields
from integrations.core.spotify_client import SpotifyAPIClient, get_spotify_client
from integrations.core.types import TriggerEvent
from .base import TokenReaction

logger = logging.getLogger(__name__)

_PLAYER_HINTS = {
    404: "no active device, open Spotify on a device first",
    403: "Spotify Premium is required for playback control",
}


class SpotifyPlayerReaction(TokenReaction):

    def __init__(self, tokens, client: Optional[SpotifyAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_spotify_client()

    @property
    def service(self) -> str:
        return "spotify"

    def _log_player_error(self, user_id: str, error: ProviderAPIError) -> None:
        hint = _PLAYER_HINTS.get(error.status_code)
        if hint:
            logger.warning(f"[SPOTIFY_REACTION] {self.reaction_type} for user {user_id}: {hint}")


class SkipTrackReaction(SpotifyPlayerReaction):

    @property
    def reaction_type(self) -> str:
        return "skip_track"

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        access_token = await self.access_token(user_id)
        try:
            await self._client.skip_to_next(access_token)
        except ProviderAPIError as e:
            self._log_player_error(user_id, e)
            raise
        logger.info(f"[SPOTIFY_REACTION] Skipped track for user {user_id}")
        return True


class PlayPlaylistReaction(SpotifyPlayerReaction):
    """Config: {"playlist_uri": "spotify:playlist:..."}"""

    @property
    def reaction_type(self) -> str:
        return "play_playlist"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "playlist_uri")

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        access_token = await self.access_token(user_id)
        try:
            await self._client.play_context(access_token, config["playlist_uri"])
        except ProviderAPIError as e:
            self._log_player_error(user_id, e)
            raise
        logger.info(f"[SPOTIFY_REACTION] Started {config['playlist_uri']} for user {user_id}")
        return True
