"""
Credential Store

Loads a user's linked OAuth account for a provider and persists refreshed
tokens. Accounts are created when a user links a provider in the management
API; the engine only reads them and writes back refreshes.

Table: oauth_accounts
    owner_id, provider, provider_account_id,
    access_token_encrypted, refresh_token_encrypted, expires_at

Usage:
    from services.credentials import SupabaseCredentialStore

    store = SupabaseCredentialStore(get_service_client())
    credential = await store.get_credential(user_id, "google")
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional, Protocol

from integrations.core.encryption import TokenCipher, get_token_cipher
from integrations.core.types import Credential

logger = logging.getLogger(__name__)

CREDENTIALS_TABLE = "oauth_accounts"


class CredentialStore(Protocol):
    """What the token lifecycle manager needs from persistence."""

    async def get_credential(self, user_id: str, provider: str) -> Optional[Credential]:
        ...

    async def update_tokens(
        self,
        user_id: str,
        provider: str,
        access_token: str,
        expires_at: datetime,
        refresh_token: Optional[str] = None,
    ) -> None:
        ...


class SupabaseCredentialStore:
    """Credential store backed by the oauth_accounts table."""

    def __init__(self, client, cipher: Optional[TokenCipher] = None):
        self._client = client
        self._cipher = cipher or get_token_cipher()

    def _fetch(self, user_id: str, provider: str) -> Optional[dict]:
        result = (
            self._client.table(CREDENTIALS_TABLE)
            .select("owner_id, provider, provider_account_id, access_token_encrypted, refresh_token_encrypted, expires_at")
            .eq("owner_id", user_id)
            .eq("provider", provider)
            .limit(1)
            .execute()
        )
        return result.data[0] if result.data else None

    async def get_credential(self, user_id: str, provider: str) -> Optional[Credential]:
        row = await asyncio.to_thread(self._fetch, user_id, provider)
        if not row:
            return None

        return Credential(
            provider=row["provider"],
            provider_account_id=row.get("provider_account_id"),
            owner_id=str(row["owner_id"]),
            access_token=self._cipher.decrypt(row.get("access_token_encrypted")),
            refresh_token=self._cipher.decrypt(row.get("refresh_token_encrypted")),
            expires_at=row.get("expires_at"),
        )

    async def update_tokens(
        self,
        user_id: str,
        provider: str,
        access_token: str,
        expires_at: datetime,
        refresh_token: Optional[str] = None,
    ) -> None:
        update_data = {
            "access_token_encrypted": self._cipher.encrypt(access_token),
            "expires_at": expires_at.isoformat(),
        }
        if refresh_token:
            update_data["refresh_token_encrypted"] = self._cipher.encrypt(refresh_token)

        def _update():
            self._client.table(CREDENTIALS_TABLE).update(update_data).eq(
                "owner_id", user_id
            ).eq("provider", provider).execute()

        await asyncio.to_thread(_update)
        logger.info(f"[CREDENTIALS] Stored refreshed {provider} token for user {user_id}")


class InMemoryCredentialStore:
    """Dict-backed store for tests and local runs."""

    def __init__(self, credentials: Optional[list[Credential]] = None):
        self._credentials: dict[tuple[str, str], Credential] = {}
        for credential in credentials or []:
            self.put(credential)

    def put(self, credential: Credential) -> None:
        self._credentials[(credential.owner_id, credential.provider)] = credential

    async def get_credential(self, user_id: str, provider: str) -> Optional[Credential]:
        credential = self._credentials.get((user_id, provider))
        return credential.model_copy() if credential else None

    async def update_tokens(
        self,
        user_id: str,
        provider: str,
        access_token: str,
        expires_at: datetime,
        refresh_token: Optional[str] = None,
    ) -> None:
        credential = self._credentials[(user_id, provider)]
        credential.access_token = access_token
        credential.expires_at = expires_at
        if refresh_token:
            credential.refresh_token = refresh_token
