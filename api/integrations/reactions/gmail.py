"""
Gmail reaction: send an email from the user's account.

Config:
    {
        "to": "recipient@example.com",
        "subject": "Subject line",
        "body": "<p>HTML body</p>"
    }

The message is built as text/html; charset=utf-8, encoded base64url and
posted to users/me/messages/send (see build_raw_email).
"""

import logging
from typing import Any, Optional

from integrations.core.errors import ConfigurationError
from integrations.core.fields import require_fields
from integrations.core.google_client import GoogleAPIClient, get_google_client
from integrations.core.types import TriggerEvent
from .base import TokenReaction

logger = logging.getLogger(__name__)


class SendEmailReaction(TokenReaction):
    """
    Sends an email via the Gmail API.

    Auth: Google access token from the TokenLifecycleManager
    (scope gmail.send).
    """

    def __init__(self, tokens, client: Optional[GoogleAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_google_client()

    @property
    def service(self) -> str:
        return "gmail"

    @property
    def reaction_type(self) -> str:
        return "send_email"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "to", "subject", "body")
        if "@" not in str(config["to"]):
            raise ConfigurationError(f"to is not an email address: {config['to']!r}")

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        access_token = await self.access_token(user_id)

        result = await self._client.send_gmail_message(
            access_token,
            to=config["to"],
            subject=config["subject"],
            body=config["body"],
        )
        logger.info(f"[GMAIL_REACTION] Sent email to {config['to']} (id={result.get('id')})")
        return True
