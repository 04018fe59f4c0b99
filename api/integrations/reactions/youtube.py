"""
YouTube reactions: like a video, add a video to a playlist, comment.

Videos are given either as "video_id" or as a "url" (watch, youtu.be,
shorts, embed). post_comment also accepts a channel URL, in which case the
comment goes on the channel's latest upload.
"""

import logging
from typing import Any, Optional

from integrations.core.errors import ConfigurationError
from integrations.core.fields import require_fields
from integrations.core.google_client import GoogleAPIClient, extract_video_id, get_google_client
from integrations.core.types import TriggerEvent
from .base import TokenReaction

logger = logging.getLogger(__name__)


def _video_id_from_config(config: dict[str, Any]) -> str:
    value = config.get("video_id") or config.get("url")
    if not value:
        raise ConfigurationError("Missing required config field(s): video_id or url")
    video_id = extract_video_id(str(value))
    if not video_id:
        raise ConfigurationError(f"Could not extract a video id from {value!r}")
    return video_id


class YouTubeReaction(TokenReaction):

    def __init__(self, tokens, client: Optional[GoogleAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_google_client()

    @property
    def service(self) -> str:
        return "youtube"


class LikeVideoReaction(YouTubeReaction):

    @property
    def reaction_type(self) -> str:
        return "like_video"

    def validate_config(self, config: dict[str, Any]) -> None:
        _video_id_from_config(config)

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        video_id = _video_id_from_config(config)
        access_token = await self.access_token(user_id)
        await self._client.rate_video(access_token, video_id, "like")
        logger.info(f"[YOUTUBE_REACTION] Liked video {video_id}")
        return True


class AddToPlaylistReaction(YouTubeReaction):

    @property
    def reaction_type(self) -> str:
        return "add_to_playlist"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "playlist_id")
        _video_id_from_config(config)

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        video_id = _video_id_from_config(config)
        access_token = await self.access_token(user_id)
        await self._client.add_to_playlist(access_token, config["playlist_id"], video_id)
        logger.info(f"[YOUTUBE_REACTION] Added {video_id} to playlist {config['playlist_id']}")
        return True


class PostCommentReaction(YouTubeReaction):
    """Config: {"url": video or channel URL, "comment": "text"}"""

    @property
    def reaction_type(self) -> str:
        return "post_comment"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "url", "comment")

    async def _target_video(self, access_token: str, url: str) -> Optional[str]:
        video_id = extract_video_id(url)
        if video_id:
            return video_id

        channel_id = await self._client.resolve_channel_id(access_token, url)
        if not channel_id:
            logger.error(f"[YOUTUBE_REACTION] Could not resolve {url} to a video or channel")
            return None
        return await self._client.get_latest_upload_id(access_token, channel_id)

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        access_token = await self.access_token(user_id)

        video_id = await self._target_video(access_token, str(config["url"]))
        if not video_id:
            logger.warning(f"[YOUTUBE_REACTION] No video to comment on for {config['url']}")
            return False

        await self._client.post_comment(access_token, video_id, config["comment"])
        logger.info(f"[YOUTUBE_REACTION] Commented on video {video_id}")
        return True
