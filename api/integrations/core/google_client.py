"""
Google API Client.

Direct REST client for the Gmail and YouTube operations automations use.
Callers pass an access token obtained from the TokenLifecycleManager; this
client never refreshes on its own.

Gmail:
- latest inbox message (email_received trigger)
- send a raw RFC-822 message (send_email reaction)

YouTube:
- channel resolution (id / handle / search)
- latest upload of a channel (new_video trigger, post_comment reaction)
- rate, playlistItems, commentThreads (reactions)
"""

import base64
import logging
import re
from datetime import datetime, timezone
from email.header import Header
from email.mime.text import MIMEText
from typing import Optional, Any

from .http import ProviderHTTPClient, get_http_client
from .errors import AutomationError

logger = logging.getLogger(__name__)

GMAIL_API = "https://gmail.googleapis.com/gmail/v1/users/me"
YOUTUBE_API = "https://www.googleapis.com/youtube/v3"

_CHANNEL_ID_RE = re.compile(r"channel/(UC[\w-]{21}[AQgw])")
_BARE_CHANNEL_ID_RE = re.compile(r"^UC[\w-]{21}[AQgw]$")
_VIDEO_ID_RE = re.compile(r"(?:v=|youtu\.be/|/shorts/|/embed/|/live/)([0-9A-Za-z_-]{11})")
_BARE_VIDEO_ID_RE = re.compile(r"^[0-9A-Za-z_-]{11}$")


# =============================================================================
# Message encoding
# =============================================================================

def build_raw_email(to: str, subject: str, body: str, is_html: bool = True) -> str:
    """
    Build an RFC-822 message and encode it as base64url for the Gmail API.

    The subject is RFC 2047 encoded so non-ASCII subjects survive transport.
    """
    subtype = "html" if is_html else "plain"
    message = MIMEText(body, subtype, "utf-8")
    message["To"] = to
    message["Subject"] = Header(subject, "utf-8").encode()

    return base64.urlsafe_b64encode(message.as_bytes()).decode().rstrip("=")


def extract_video_id(value: str) -> Optional[str]:
    """Extract an 11-character video id from a watch/short/embed URL or a bare id."""
    if not value:
        return None
    value = value.strip()
    if _BARE_VIDEO_ID_RE.match(value):
        return value
    match = _VIDEO_ID_RE.search(value)
    return match.group(1) if match else None


def _parse_handle(url: str) -> str:
    url = url.strip()
    if "@" in url:
        return url.split("@", 1)[1].split("/")[0]
    parts = [p for p in url.split("/") if p]
    return parts[-1] if parts else url


class GoogleAPIClient:
    """
    Direct API client for Gmail and YouTube operations.

    Usage:
        client = GoogleAPIClient()
        latest = await client.get_latest_gmail_message(access_token)
    """

    def __init__(self, http: Optional[ProviderHTTPClient] = None):
        self._http = http or get_http_client()

    # =========================================================================
    # Gmail Operations
    # =========================================================================

    async def get_latest_gmail_message(
        self,
        access_token: str,
        query: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Fetch the most recent message (metadata only).

        Returns the message with id, internalDate, and Subject/From headers,
        or None when the mailbox (or query) is empty.
        """
        params: dict[str, Any] = {"maxResults": 1}
        if query:
            params["q"] = query

        listing = await self._http.get_json(f"{GMAIL_API}/messages", token=access_token, params=params)
        messages = listing.get("messages") or []
        if not messages:
            return None

        return await self._http.get_json(
            f"{GMAIL_API}/messages/{messages[0]['id']}",
            token=access_token,
            params={"format": "metadata", "metadataHeaders": ["Subject", "From"]},
        )

    async def send_gmail_message(
        self,
        access_token: str,
        to: str,
        subject: str,
        body: str,
        is_html: bool = True,
    ) -> dict[str, Any]:
        """Send an email; returns the Gmail message resource."""
        raw = build_raw_email(to, subject, body, is_html=is_html)
        return await self._http.post_json(
            f"{GMAIL_API}/messages/send",
            token=access_token,
            json={"raw": raw},
        )

    # =========================================================================
    # YouTube Operations
    # =========================================================================

    async def resolve_channel_id(self, access_token: str, url: str) -> Optional[str]:
        """
        Resolve a channel URL, handle or id to a channel id.

        Order: exact channel-id match, forHandle lookup with and without the
        "@" prefix, then a channel search by name. Returns the first hit.
        """
        match = _CHANNEL_ID_RE.search(url) or _BARE_CHANNEL_ID_RE.match(url.strip())
        if match:
            return match.group(1) if match.groups() else match.group(0)

        handle = _parse_handle(url)

        for candidate in (f"@{handle}", handle):
            try:
                data = await self._http.get_json(
                    f"{YOUTUBE_API}/channels",
                    token=access_token,
                    params={"part": "id", "forHandle": candidate},
                )
            except AutomationError as e:
                logger.warning(f"[YOUTUBE] Handle lookup failed for {candidate}: {e}")
                continue
            items = data.get("items") or []
            if items:
                return items[0]["id"]

        try:
            data = await self._http.get_json(
                f"{YOUTUBE_API}/search",
                token=access_token,
                params={"part": "snippet", "type": "channel", "q": handle, "maxResults": 1},
            )
        except AutomationError as e:
            logger.warning(f"[YOUTUBE] Channel search failed for {handle}: {e}")
            return None

        items = data.get("items") or []
        if items:
            return items[0]["snippet"]["channelId"]
        return None

    async def get_latest_activity(
        self,
        access_token: str,
        channel_id: str,
        max_results: int = 1,
    ) -> list[dict[str, Any]]:
        data = await self._http.get_json(
            f"{YOUTUBE_API}/activities",
            token=access_token,
            params={
                "part": "snippet,contentDetails",
                "channelId": channel_id,
                "maxResults": max_results,
            },
        )
        return data.get("items") or []

    async def get_latest_upload_id(self, access_token: str, channel_id: str) -> Optional[str]:
        """Video id of the channel's most recent upload among its last 5 activities."""
        for item in await self.get_latest_activity(access_token, channel_id, max_results=5):
            if item.get("snippet", {}).get("type") != "upload":
                continue
            video_id = item.get("contentDetails", {}).get("upload", {}).get("videoId")
            if video_id:
                return video_id
        return None

    async def rate_video(self, access_token: str, video_id: str, rating: str = "like") -> None:
        await self._http.request(
            "post",
            f"{YOUTUBE_API}/videos/rate",
            token=access_token,
            params={"id": video_id, "rating": rating},
        )

    async def add_to_playlist(self, access_token: str, playlist_id: str, video_id: str) -> dict[str, Any]:
        return await self._http.post_json(
            f"{YOUTUBE_API}/playlistItems",
            token=access_token,
            params={"part": "snippet"},
            json={
                "snippet": {
                    "playlistId": playlist_id,
                    "resourceId": {"kind": "youtube#video", "videoId": video_id},
                }
            },
        )

    async def post_comment(self, access_token: str, video_id: str, text: str) -> dict[str, Any]:
        return await self._http.post_json(
            f"{YOUTUBE_API}/commentThreads",
            token=access_token,
            params={"part": "snippet"},
            json={
                "snippet": {
                    "videoId": video_id,
                    "topLevelComment": {"snippet": {"textOriginal": text}},
                }
            },
        )


def gmail_message_time(message: dict[str, Any]) -> Optional[datetime]:
    """Gmail's internalDate is milliseconds since the epoch, as a string."""
    internal = message.get("internalDate")
    if internal is None:
        return None
    return datetime.fromtimestamp(int(internal) / 1000, tz=timezone.utc)


def get_google_client() -> GoogleAPIClient:
    """Create a Google API client bound to the shared HTTP client."""
    return GoogleAPIClient()
