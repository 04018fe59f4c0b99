"""
Reaction Tests

Discord, Gmail, GitHub, Spotify, YouTube and weather executors. Outbound HTTP is
stubbed with httpx.MockTransport so the exact requests can be inspected.

Run: cd api && python -m pytest tests/test_reactions.py -v
"""

import asyncio
import base64
import json
from email import message_from_bytes
from email.header import decode_header, make_header
from unittest.mock import AsyncMock, MagicMock

import httpx

from integrations.core.discord_client import DiscordWebhookClient
from integrations.core.errors import NoCredentialError
from integrations.core.github_client import GitHubAPIClient
from integrations.core.google_client import GoogleAPIClient, build_raw_email
from integrations.core.http import ProviderHTTPClient
from integrations.core.spotify_client import SpotifyAPIClient
from integrations.core.types import TriggerEvent
from integrations.core.weather_client import WeatherClient
from integrations.reactions.discord import SendMessageReaction, default_message
from integrations.reactions.github import AddCommentReaction, CreateIssueReaction
from integrations.reactions.gmail import SendEmailReaction
from integrations.reactions.spotify import PlayPlaylistReaction, SkipTrackReaction
from integrations.reactions.youtube import AddToPlaylistReaction, LikeVideoReaction, PostCommentReaction
from integrations.reactions.weather import SendWeatherReportReaction


class RecordingTransport:
    """MockTransport handler that records requests and answers from a route table."""

    def __init__(self, routes=None, default=None):
        self.requests: list[httpx.Request] = []
        self._routes = routes or {}
        self._default = default or (lambda request: httpx.Response(200, json={}))

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self._routes.get((request.method, request.url.path))
        return route(request) if route else self._default(request)

    def http(self) -> ProviderHTTPClient:
        return ProviderHTTPClient(transport=httpx.MockTransport(self))


def _tokens(token: str = "access-token"):
    tokens = MagicMock()
    tokens.get_valid_token = AsyncMock(return_value=token)
    return tokens


def _body(request: httpx.Request) -> dict:
    return json.loads(request.content.decode()) if request.content else {}


# =============================================================================
# Discord
# =============================================================================

def test_missing_webhook_url_makes_no_call():
    transport = RecordingTransport()
    reaction = SendMessageReaction(client=DiscordWebhookClient(http=transport.http()))

    assert asyncio.run(reaction.execute("user-1", {"message": "hi"})) is False
    assert transport.requests == []

    print("✅ missing_webhook_url: PASSED")


def test_discord_message_posted():
    transport = RecordingTransport()
    reaction = SendMessageReaction(client=DiscordWebhookClient(http=transport.http()))
    config = {"webhookUrl": "https://discord.com/api/webhooks/1/abc", "message": "Deploy done"}

    assert asyncio.run(reaction.execute("user-1", config)) is True

    request = transport.requests[0]
    assert request.method == "POST"
    assert str(request.url) == config["webhookUrl"]
    assert _body(request) == {"content": "Deploy done", "username": "AREA Bot"}
    print("✅ discord_message_posted: PASSED")


def test_discord_default_message_describes_trigger():
    """A 14:30 timer with no message posts "⏰ Time alert: 14:30"."""
    transport = RecordingTransport()
    reaction = SendMessageReaction(client=DiscordWebhookClient(http=transport.http()))
    event = TriggerEvent(
        automation_id="a1",
        automation_name="Afternoon ping",
        action_service="timer",
        action_type="time_reached",
        action_config={"hour": 14, "minute": 30},
    )
    config = {"webhookUrl": "https://discord.com/api/webhooks/1/abc", "username": "Clock"}

    assert asyncio.run(reaction.execute("user-1", config, event)) is True
    assert _body(transport.requests[0]) == {"content": "⏰ Time alert: 14:30", "username": "Clock"}
    print("  ✓ Timer default message")

    assert default_message(None) == "AREA triggered!"
    assert "star" in default_message(TriggerEvent("a", "n", "github", "repository_starred"))
    print("  ✓ Fallback messages")

    print("✅ discord_default_message: PASSED")


def test_discord_webhook_error_reports_failure():
    transport = RecordingTransport(default=lambda request: httpx.Response(404, json={"message": "Unknown Webhook"}))
    reaction = SendMessageReaction(client=DiscordWebhookClient(http=transport.http()))

    ok = asyncio.run(reaction.execute("user-1", {"webhookUrl": "https://discord.com/api/webhooks/1/gone"}))
    assert ok is False
    assert len(transport.requests) == 1

    print("✅ discord_webhook_error: PASSED")


# =============================================================================
# Gmail
# =============================================================================

def _decode_raw(raw: str):
    padded = raw + "=" * (-len(raw) % 4)
    return message_from_bytes(base64.urlsafe_b64decode(padded))


def test_mime_message_round_trip():
    raw = build_raw_email("bob@example.com", "Café ☕ report", "<p>Bonjour</p>")

    assert "=" not in raw and "+" not in raw and "/" not in raw
    message = _decode_raw(raw)

    assert message["To"] == "bob@example.com"
    assert str(make_header(decode_header(message["Subject"]))) == "Café ☕ report"
    assert message.get_content_type() == "text/html"
    assert message.get_content_charset() == "utf-8"
    assert message.get_payload(decode=True).decode("utf-8") == "<p>Bonjour</p>"

    print("✅ mime_round_trip: PASSED")


def test_send_email_posts_raw_message():
    transport = RecordingTransport(routes={
        ("POST", "/gmail/v1/users/me/messages/send"): lambda request: httpx.Response(200, json={"id": "sent-1"}),
    })
    reaction = SendEmailReaction(_tokens(), client=GoogleAPIClient(http=transport.http()))
    config = {"to": "bob@example.com", "subject": "Hello", "body": "<b>Hi</b>"}

    assert asyncio.run(reaction.execute("user-1", config)) is True

    request = transport.requests[0]
    assert request.headers["Authorization"] == "Bearer access-token"
    message = _decode_raw(_body(request)["raw"])
    assert message["To"] == "bob@example.com"
    assert message.get_payload(decode=True).decode("utf-8") == "<b>Hi</b>"

    print("✅ send_email: PASSED")


def test_send_email_missing_fields():
    tokens = _tokens()
    transport = RecordingTransport()
    reaction = SendEmailReaction(tokens, client=GoogleAPIClient(http=transport.http()))

    assert asyncio.run(reaction.execute("user-1", {"to": "bob@example.com", "subject": "x"})) is False
    tokens.get_valid_token.assert_not_called()
    assert transport.requests == []

    print("✅ send_email_missing_fields: PASSED")


def test_send_email_without_credential():
    tokens = MagicMock()
    tokens.get_valid_token = AsyncMock(side_effect=NoCredentialError("user-1", "google"))
    transport = RecordingTransport()
    reaction = SendEmailReaction(tokens, client=GoogleAPIClient(http=transport.http()))

    config = {"to": "bob@example.com", "subject": "Hello", "body": "Hi"}
    assert asyncio.run(reaction.execute("user-1", config)) is False
    assert transport.requests == []

    print("✅ send_email_without_credential: PASSED")


# =============================================================================
# GitHub
# =============================================================================

REPO = {"repo_owner": "octocat", "repo_name": "hello-world"}


def test_create_issue():
    transport = RecordingTransport(routes={
        ("POST", "/repos/octocat/hello-world/issues"): lambda request: httpx.Response(201, json={"number": 12}),
    })
    reaction = CreateIssueReaction(_tokens(), client=GitHubAPIClient(http=transport.http()))

    ok = asyncio.run(reaction.execute("user-1", {**REPO, "title": "Bug", "body": "Steps"}))

    assert ok is True
    assert _body(transport.requests[0]) == {"title": "Bug", "body": "Steps"}
    print("✅ create_issue: PASSED")


def test_add_comment_on_last_issue():
    def latest_issue(request):
        assert request.url.params["sort"] == "created"
        assert request.url.params["direction"] == "desc"
        assert request.url.params["per_page"] == "1"
        return httpx.Response(200, json=[{"number": 41}])

    transport = RecordingTransport(routes={
        ("GET", "/repos/octocat/hello-world/issues"): latest_issue,
        ("POST", "/repos/octocat/hello-world/issues/41/comments"): lambda request: httpx.Response(201, json={"id": 1}),
    })
    reaction = AddCommentReaction(_tokens(), client=GitHubAPIClient(http=transport.http()))

    ok = asyncio.run(reaction.execute("user-1", {**REPO, "issue_option": "last", "comment": "Nice"}))

    assert ok is True
    assert [r.method for r in transport.requests] == ["GET", "POST"]
    assert _body(transport.requests[1]) == {"body": "Nice"}
    print("✅ add_comment_last: PASSED")


def test_add_comment_aborts_when_lookup_fails():
    transport = RecordingTransport(routes={
        ("GET", "/repos/octocat/hello-world/issues"): lambda request: httpx.Response(500, text="oops"),
    })
    reaction = AddCommentReaction(_tokens(), client=GitHubAPIClient(http=transport.http()))

    assert asyncio.run(reaction.execute("user-1", {**REPO, "issue_option": "last", "comment": "x"})) is False
    assert [r.method for r in transport.requests] == ["GET"]
    print("  ✓ Failed lookup: no comment posted")

    empty = RecordingTransport(routes={
        ("GET", "/repos/octocat/hello-world/issues"): lambda request: httpx.Response(200, json=[]),
    })
    reaction = AddCommentReaction(_tokens(), client=GitHubAPIClient(http=empty.http()))
    assert asyncio.run(reaction.execute("user-1", {**REPO, "comment": "x"})) is False
    assert [r.method for r in empty.requests] == ["GET"]
    print("  ✓ No issues: no comment posted")

    print("✅ add_comment_lookup_failure: PASSED")


def test_add_comment_specific_issue():
    transport = RecordingTransport()
    reaction = AddCommentReaction(_tokens(), client=GitHubAPIClient(http=transport.http()))

    ok = asyncio.run(reaction.execute("user-1", {**REPO, "issue_option": "specific", "issue_number": "7", "comment": "x"}))
    assert ok is True
    assert transport.requests[0].url.path == "/repos/octocat/hello-world/issues/7/comments"
    print("  ✓ Comments on the given issue")

    assert asyncio.run(reaction.execute("user-1", {**REPO, "issue_option": "specific", "comment": "x"})) is False
    assert len(transport.requests) == 1
    print("  ✓ Missing issue_number aborts before any call")

    print("✅ add_comment_specific: PASSED")


# =============================================================================
# Spotify
# =============================================================================

def test_spotify_player_reactions():
    transport = RecordingTransport(default=lambda request: httpx.Response(204))
    client = SpotifyAPIClient(http=transport.http())

    assert asyncio.run(SkipTrackReaction(_tokens(), client=client).execute("user-1", {})) is True
    assert asyncio.run(
        PlayPlaylistReaction(_tokens(), client=client).execute("user-1", {"playlist_uri": "spotify:playlist:abc"})
    ) is True

    skip, play = transport.requests
    assert (skip.method, skip.url.path) == ("POST", "/v1/me/player/next")
    assert (play.method, play.url.path) == ("PUT", "/v1/me/player/play")
    assert _body(play) == {"context_uri": "spotify:playlist:abc"}
    print("✅ spotify_player: PASSED")


def test_spotify_no_active_device():
    transport = RecordingTransport(default=lambda request: httpx.Response(404, json={"error": {"reason": "NO_ACTIVE_DEVICE"}}))
    reaction = SkipTrackReaction(_tokens(), client=SpotifyAPIClient(http=transport.http()))

    assert asyncio.run(reaction.execute("user-1", {})) is False
    assert asyncio.run(PlayPlaylistReaction(_tokens()).execute("user-1", {})) is False

    print("✅ spotify_no_active_device: PASSED")


# =============================================================================
# YouTube
# =============================================================================

def test_like_and_add_to_playlist():
    transport = RecordingTransport()
    client = GoogleAPIClient(http=transport.http())

    assert asyncio.run(
        LikeVideoReaction(_tokens(), client=client).execute("user-1", {"url": "https://youtu.be/dQw4w9WgXcQ"})
    ) is True
    like = transport.requests[0]
    assert like.url.path == "/youtube/v3/videos/rate"
    assert like.url.params["id"] == "dQw4w9WgXcQ"
    assert like.url.params["rating"] == "like"

    assert asyncio.run(
        AddToPlaylistReaction(_tokens(), client=client).execute(
            "user-1", {"playlist_id": "PL123", "video_id": "dQw4w9WgXcQ"}
        )
    ) is True
    body = _body(transport.requests[1])
    assert body["snippet"]["playlistId"] == "PL123"
    assert body["snippet"]["resourceId"]["videoId"] == "dQw4w9WgXcQ"

    assert asyncio.run(LikeVideoReaction(_tokens(), client=client).execute("user-1", {})) is False
    assert len(transport.requests) == 2

    print("✅ like_and_add_to_playlist: PASSED")


def test_post_comment_on_channel_latest_upload():
    channel_id = "UC" + "b" * 21 + "Q"

    def activities(request):
        return httpx.Response(200, json={"items": [
            {"snippet": {"type": "like"}, "contentDetails": {}},
            {"snippet": {"type": "upload"}, "contentDetails": {"upload": {"videoId": "abcdefghijk"}}},
        ]})

    transport = RecordingTransport(routes={("GET", "/youtube/v3/activities"): activities})
    reaction = PostCommentReaction(_tokens(), client=GoogleAPIClient(http=transport.http()))

    ok = asyncio.run(reaction.execute(
        "user-1", {"url": f"https://www.youtube.com/channel/{channel_id}", "comment": "First!"}
    ))

    assert ok is True
    comment = transport.requests[-1]
    assert comment.url.path == "/youtube/v3/commentThreads"
    body = _body(comment)
    assert body["snippet"]["videoId"] == "abcdefghijk"
    assert body["snippet"]["topLevelComment"]["snippet"]["textOriginal"] == "First!"
    print("✅ post_comment_channel: PASSED")


# =============================================================================
# Weather
# =============================================================================

def _weather_routes(geocode_results):
    return {
        ("GET", "/v1/search"): lambda request: httpx.Response(200, json={"results": geocode_results}),
        ("GET", "/v1/forecast"): lambda request: httpx.Response(200, json={"current": {
            "temperature_2m": 21.6,
            "apparent_temperature": 20.2,
            "relative_humidity_2m": 48,
            "precipitation": 0.0,
            "weather_code": 2,
            "surface_pressure": 1013.4,
            "wind_speed_10m": 11.8,
            "wind_direction_10m": 240,
        }}),
    }


def test_weather_report_posted_to_webhook():
    transport = RecordingTransport(routes=_weather_routes(
        [{"name": "Paris", "country": "France", "latitude": 48.85, "longitude": 2.35}]
    ))
    http = transport.http()
    reaction = SendWeatherReportReaction(weather=WeatherClient(http=http), discord=DiscordWebhookClient(http=http))
    config = {"city": " Paris ", "webhookUrl": "https://discord.com/api/webhooks/1/abc"}

    assert asyncio.run(reaction.execute("user-1", config)) is True

    geocode, forecast, webhook = transport.requests
    assert geocode.url.params["name"] == "Paris"
    assert "wind_speed_10m" in forecast.url.params["current"]
    content = _body(webhook)["content"]
    assert "Weather in Paris, France" in content
    assert "22°C (feels like 20°C)" in content
    assert "Partly cloudy" in content
    assert "1013 hPa" in content
    print("✅ weather_report_posted: PASSED")


def test_weather_report_unknown_city_sends_nothing():
    transport = RecordingTransport(routes=_weather_routes([]))
    http = transport.http()
    reaction = SendWeatherReportReaction(weather=WeatherClient(http=http), discord=DiscordWebhookClient(http=http))
    config = {"city": "Atlantis", "webhookUrl": "https://discord.com/api/webhooks/1/abc"}

    assert asyncio.run(reaction.execute("user-1", config)) is False
    assert [r.method for r in transport.requests] == ["GET"]
    print("  ✓ Unknown city")

    assert asyncio.run(reaction.execute("user-1", {"city": "Paris"})) is False
    assert len(transport.requests) == 1
    print("  ✓ Missing webhookUrl makes no call")

    print("✅ weather_report_failures: PASSED")


if __name__ == "__main__":
    print("\n🧪 Running reaction tests...\n")

    test_missing_webhook_url_makes_no_call()
    test_discord_message_posted()
    test_discord_default_message_describes_trigger()
    test_discord_webhook_error_reports_failure()
    test_mime_message_round_trip()
    test_send_email_posts_raw_message()
    test_send_email_missing_fields()
    test_send_email_without_credential()
    test_create_issue()
    test_add_comment_on_last_issue()
    test_add_comment_aborts_when_lookup_fails()
    test_add_comment_specific_issue()
    test_spotify_player_reactions()
    test_spotify_no_active_device()
    test_like_and_add_to_playlist()
    test_post_comment_on_channel_latest_upload()
    test_weather_report_posted_to_webhook()
    test_weather_report_unknown_city_sends_nothing()

    print("\n✅ All reaction tests passed!")
