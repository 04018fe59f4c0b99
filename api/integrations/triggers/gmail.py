"""
Gmail trigger: a new email arrived.

Config:
    {"query": "from:boss@example.com"}   # optional Gmail search query
"""

import logging
from datetime import datetime
from typing import Any, Optional

from integrations.core.google_client import GoogleAPIClient, get_google_client, gmail_message_time
from .base import EventTrigger

logger = logging.getLogger(__name__)


class EmailReceivedTrigger(EventTrigger):

    def __init__(self, tokens, client: Optional[GoogleAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_google_client()

    @property
    def service(self) -> str:
        return "gmail"

    @property
    def action_type(self) -> str:
        return "email_received"

    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        message = await self._client.get_latest_gmail_message(access_token, query=config.get("query"))
        if not message:
            return None
        return gmail_message_time(message)
