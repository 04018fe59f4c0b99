"""
OAuth provider configuration and refresh grant.

Linking an account (authorize URL, code exchange) happens in the management
API. The engine only needs each provider's token endpoint and client
credentials to turn a refresh token into a fresh access token.
"""

import os
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from .errors import NetworkError, ProviderAPIError, RefreshError
from .http import ProviderHTTPClient, get_http_client

logger = logging.getLogger(__name__)

# Used when the provider omits expires_in
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600


# =============================================================================
# OAuth Configuration
# =============================================================================

class OAuthConfig:
    """OAuth configuration for a provider."""

    def __init__(
        self,
        provider: str,
        client_id_env: str,
        client_secret_env: str,
        token_url: str,
        supports_refresh: bool = True,
    ):
        self.provider = provider
        self.client_id_env = client_id_env
        self.client_secret_env = client_secret_env
        self.token_url = token_url
        # GitHub OAuth app tokens never expire and come without a refresh token
        self.supports_refresh = supports_refresh

    @property
    def client_id(self) -> str:
        return os.getenv(self.client_id_env, "")

    @property
    def client_secret(self) -> str:
        return os.getenv(self.client_secret_env, "")

    @property
    def is_configured(self) -> bool:
        """Check if OAuth credentials are configured."""
        return bool(self.client_id and self.client_secret)


OAUTH_CONFIGS: dict[str, OAuthConfig] = {
    "google": OAuthConfig(
        provider="google",
        client_id_env="GOOGLE_CLIENT_ID",
        client_secret_env="GOOGLE_CLIENT_SECRET",
        token_url="https://oauth2.googleapis.com/token",
    ),
    "spotify": OAuthConfig(
        provider="spotify",
        client_id_env="SPOTIFY_CLIENT_ID",
        client_secret_env="SPOTIFY_CLIENT_SECRET",
        token_url="https://accounts.spotify.com/api/token",
    ),
    "github": OAuthConfig(
        provider="github",
        client_id_env="GITHUB_CLIENT_ID",
        client_secret_env="GITHUB_CLIENT_SECRET",
        token_url="https://github.com/login/oauth/access_token",
        supports_refresh=False,
    ),
    "discord": OAuthConfig(
        provider="discord",
        client_id_env="DISCORD_CLIENT_ID",
        client_secret_env="DISCORD_CLIENT_SECRET",
        token_url="https://discord.com/api/oauth2/token",
    ),
}


def get_oauth_config(provider: str) -> OAuthConfig:
    config = OAUTH_CONFIGS.get(provider)
    if not config:
        raise ValueError(f"Unknown provider: {provider}")
    return config


# =============================================================================
# Refresh Grant
# =============================================================================

@dataclass
class RefreshedToken:
    """Outcome of a successful refresh_token grant."""
    access_token: str
    expires_at: datetime
    # Only set when the provider rotates refresh tokens
    refresh_token: Optional[str] = None


async def refresh_access_token(
    provider: str,
    refresh_token: str,
    http: Optional[ProviderHTTPClient] = None,
) -> RefreshedToken:
    """
    Exchange a refresh token for a new access token.

    Args:
        provider: Provider key in OAUTH_CONFIGS
        refresh_token: The stored refresh token
        http: Optional HTTP client (defaults to the shared one)

    Returns:
        RefreshedToken with the new access token and absolute expiry

    Raises:
        RefreshError: The provider refused the grant or could not be reached
    """
    config = get_oauth_config(provider)
    http = http or get_http_client()

    if not config.is_configured:
        logger.warning(f"[OAUTH] {config.client_id_env}/{config.client_secret_env} not set, {provider} will likely reject the refresh")

    try:
        response = await http.request(
            "post",
            config.token_url,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "Accept": "application/json",
            },
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": config.client_id,
                "client_secret": config.client_secret,
            },
        )
    except ProviderAPIError as e:
        raise RefreshError(provider, e.status_code, e.body) from e
    except NetworkError as e:
        raise RefreshError(provider, None, str(e)) from e

    try:
        data = response.json()
    except ValueError as e:
        raise RefreshError(provider, response.status_code, response.text) from e

    access_token = data.get("access_token") if isinstance(data, dict) else None
    if not access_token:
        raise RefreshError(provider, response.status_code, response.text)

    expires_in = data.get("expires_in") or DEFAULT_TOKEN_LIFETIME_SECONDS
    expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(expires_in))

    logger.info(f"[OAUTH] Refreshed {provider} access token, expires in {expires_in}s")

    return RefreshedToken(
        access_token=access_token,
        expires_at=expires_at,
        refresh_token=data.get("refresh_token"),
    )
