"""
Base classes for Condition Evaluators (triggers).

Defines the TriggerEvaluator interface every action implements, and the
EventTrigger family shared by the "new item since last trigger" actions.

Contract:
    evaluate(user_id, config, last_triggered) -> bool

evaluate() never raises engine errors: configuration, credential, refresh,
provider and network failures are logged and read as "did not fire". The
next cycle is the retry. Anything else (a bug) propagates to the scheduler,
which logs it and moves on to the next automation.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional

from integrations.core.errors import AutomationError, ConfigurationError, CredentialError
from integrations.core.fields import parse_timestamp
from integrations.core.types import SERVICE_PROVIDERS

logger = logging.getLogger(__name__)


class TriggerEvaluator(ABC):
    """
    Abstract base class for all condition evaluators.

    One subclass per (service, action_type) pair in the service catalog.
    """

    requires_auth: bool = False

    # Event triggers must not fire on their first evaluation: the scheduler
    # seeds last_triggered for them instead.
    seeds_watermark: bool = False

    @property
    @abstractmethod
    def service(self) -> str:
        """Action service name, e.g. "timer"."""
        pass

    @property
    @abstractmethod
    def action_type(self) -> str:
        """Action type name, e.g. "time_reached"."""
        pass

    @property
    def key(self) -> tuple[str, str]:
        return (self.service, self.action_type)

    @abstractmethod
    async def check(
        self,
        user_id: str,
        config: dict[str, Any],
        last_triggered: Optional[datetime],
    ) -> bool:
        """
        Decide whether the action fires now. May raise AutomationError.
        """
        pass

    async def check_at(
        self,
        user_id: str,
        config: dict[str, Any],
        last_triggered: Optional[datetime],
    ) -> tuple[bool, Optional[datetime]]:
        """
        check() plus the instant the decision was taken on.

        Clock-driven evaluators return the time they read, and the scheduler
        stores it as last_triggered. None means "use the caller's clock".
        """
        return await self.check(user_id, config, last_triggered), None

    async def evaluate_at(
        self,
        user_id: str,
        config: dict[str, Any],
        last_triggered: Optional[datetime],
    ) -> tuple[bool, Optional[datetime]]:
        """Run check_at(), reading any engine error as "not triggered"."""
        tag = f"{self.service}/{self.action_type}"
        try:
            return await self.check_at(user_id, config or {}, last_triggered)
        except ConfigurationError as e:
            logger.error(f"[TRIGGER] {tag} misconfigured for user {user_id}: {e}")
        except CredentialError as e:
            logger.warning(f"[TRIGGER] {tag} skipped: {e}")
        except AutomationError as e:
            logger.warning(f"[TRIGGER] {tag} check failed for user {user_id}: {e}")
        return False, None

    async def evaluate(
        self,
        user_id: str,
        config: dict[str, Any],
        last_triggered: Optional[datetime],
    ) -> bool:
        fired, _ = await self.evaluate_at(user_id, config, last_triggered)
        return fired


class EventTrigger(TriggerEvaluator):
    """
    Fires when the provider's most recent item is strictly newer than
    last_triggered.

    On the very first evaluation (last_triggered is None) it never fires,
    whatever the remote state: linking an account must not replay history.
    """

    requires_auth = True
    seeds_watermark = True

    def __init__(self, tokens):
        self._tokens = tokens

    @property
    def provider(self) -> str:
        """Credential provider used for the access token."""
        return SERVICE_PROVIDERS[self.service].value

    @abstractmethod
    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        """Timestamp of the newest item, or None if there is none."""
        pass

    def validate_config(self, config: dict[str, Any]) -> None:
        """Override to require config fields."""

    async def check(
        self,
        user_id: str,
        config: dict[str, Any],
        last_triggered: Optional[datetime],
    ) -> bool:
        self.validate_config(config)

        if last_triggered is None:
            logger.info(f"[TRIGGER] {self.service}/{self.action_type}: first evaluation for user {user_id}, not firing")
            return False

        access_token = await self._tokens.get_valid_token(user_id, self.provider)
        latest = await self.latest_item_time(access_token, config)
        if latest is None:
            return False

        watermark = parse_timestamp(last_triggered)
        if latest > watermark:
            logger.info(
                f"[TRIGGER] {self.service}/{self.action_type}: new item at {latest.isoformat()} "
                f"(last trigger {watermark.isoformat()})"
            )
            return True
        return False
