"""
Token lifecycle management.

Hands evaluators and executors a currently-valid access token for
(user, provider), refreshing it through the provider's token endpoint when
it is expired or about to expire.

Refreshes are single-flight per credential: concurrent callers for the same
(user, provider) wait on one lock, and the credential is re-read inside the
lock so waiters pick up the token the first caller persisted.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .errors import NoCredentialError
from .http import ProviderHTTPClient
from .oauth import get_oauth_config, refresh_access_token
from .types import Credential

logger = logging.getLogger(__name__)

# Refresh this long before the provider's stated expiry
DEFAULT_REFRESH_MARGIN = timedelta(minutes=5)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TokenLifecycleManager:
    """
    Returns valid access tokens, refreshing transparently.

    Usage:
        manager = TokenLifecycleManager(credential_store)
        token = await manager.get_valid_token(user_id, "google")
    """

    def __init__(
        self,
        store,
        http: Optional[ProviderHTTPClient] = None,
        margin: timedelta = DEFAULT_REFRESH_MARGIN,
        now: Callable[[], datetime] = _utcnow,
    ):
        self._store = store
        self._http = http
        self._margin = margin
        self._now = now
        # (user, provider) -> [lock, callers holding or waiting on it]
        self._locks: dict[tuple[str, str], list] = {}

    @asynccontextmanager
    async def _refresh_lock(self, user_id: str, provider: str):
        """Per-credential lock, dropped once no caller holds or waits on it."""
        key = (user_id, provider)
        entry = self._locks.setdefault(key, [asyncio.Lock(), 0])
        entry[1] += 1
        try:
            async with entry[0]:
                yield
        finally:
            entry[1] -= 1
            if entry[1] == 0:
                del self._locks[key]

    def _needs_refresh(self, credential: Credential) -> bool:
        if not credential.access_token or credential.expires_at is None:
            return True
        return self._now() >= _as_utc(credential.expires_at) - self._margin

    async def _load(self, user_id: str, provider: str, supports_refresh: bool) -> Credential:
        credential = await self._store.get_credential(user_id, provider)
        if credential is None:
            raise NoCredentialError(user_id, provider)
        if supports_refresh and not credential.refresh_token:
            raise NoCredentialError(user_id, provider, "refresh token missing")
        if not supports_refresh and not credential.access_token:
            raise NoCredentialError(user_id, provider, "access token missing")
        return credential

    async def get_valid_token(self, user_id: str, provider: str) -> str:
        """
        Get a currently-valid access token.

        Raises:
            NoCredentialError: Account not linked or missing its refresh token
            RefreshError: The provider rejected the refresh grant
        """
        config = get_oauth_config(provider)
        credential = await self._load(user_id, provider, config.supports_refresh)

        if not config.supports_refresh:
            return credential.access_token

        if not self._needs_refresh(credential):
            return credential.access_token

        async with self._refresh_lock(user_id, provider):
            # Another caller may have refreshed while we waited
            credential = await self._load(user_id, provider, config.supports_refresh)
            if not self._needs_refresh(credential):
                return credential.access_token

            logger.info(f"[TOKENS] {provider} token expired for user {user_id}, refreshing...")
            refreshed = await refresh_access_token(provider, credential.refresh_token, http=self._http)

            await self._store.update_tokens(
                user_id,
                provider,
                access_token=refreshed.access_token,
                expires_at=refreshed.expires_at,
                refresh_token=refreshed.refresh_token,
            )
            return refreshed.access_token
