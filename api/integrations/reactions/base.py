"""
Base class for Effect Executors (reactions).

Every reaction implements run(); callers use execute(), which reports
success as a bool and never raises engine errors:

    execute(user_id, config, event=None) -> bool

Missing required config raises ConfigurationError from validate_config()
before any outbound call is made. Credential, refresh, provider and network
failures are logged and reported as False; nothing is retried within the
cycle.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

from integrations.core.errors import AutomationError, ConfigurationError, CredentialError
from integrations.core.types import SERVICE_PROVIDERS, TriggerEvent

logger = logging.getLogger(__name__)


class ReactionExecutor(ABC):
    """
    Abstract base class for all effect executors.

    One subclass per (reaction_service, reaction_type) pair in the service
    catalog. Executors are stateless apart from their injected clients.
    """

    @property
    @abstractmethod
    def service(self) -> str:
        """Reaction service name, e.g. "discord"."""
        pass

    @property
    @abstractmethod
    def reaction_type(self) -> str:
        """Reaction type name, e.g. "send_message"."""
        pass

    @property
    def key(self) -> tuple[str, str]:
        return (self.service, self.reaction_type)

    def validate_config(self, config: dict[str, Any]) -> None:
        """
        Check the reaction config before doing any I/O.

        Raises:
            ConfigurationError: A required field is missing or invalid
        """

    @abstractmethod
    async def run(
        self,
        user_id: str,
        config: dict[str, Any],
        event: Optional[TriggerEvent] = None,
    ) -> bool:
        """Perform the reaction. May raise AutomationError."""
        pass

    async def execute(
        self,
        user_id: str,
        config: dict[str, Any],
        event: Optional[TriggerEvent] = None,
    ) -> bool:
        tag = f"{self.service}/{self.reaction_type}"
        config = config or {}
        try:
            self.validate_config(config)
            return await self.run(user_id, config, event)
        except ConfigurationError as e:
            logger.error(f"[REACTION] {tag} aborted for user {user_id}: {e}")
        except CredentialError as e:
            logger.warning(f"[REACTION] {tag} skipped: {e}")
        except AutomationError as e:
            logger.error(f"[REACTION] {tag} failed for user {user_id}: {e}")
        return False


class TokenReaction(ReactionExecutor):
    """Reaction that acts on behalf of the user with an OAuth token."""

    def __init__(self, tokens):
        self._tokens = tokens

    @property
    def provider(self) -> str:
        return SERVICE_PROVIDERS[self.service].value

    async def access_token(self, user_id: str) -> str:
        return await self._tokens.get_valid_token(user_id, self.provider)
