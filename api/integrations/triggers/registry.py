"""
Trigger Registry

Maps (action_service, action_type) pairs to their condition evaluator.
Built once at startup; the scheduler resolves evaluators through it instead
of branching on type strings.
"""

import logging
from typing import Optional

from integrations.core.clock import ReferenceClock
from .base import TriggerEvaluator

logger = logging.getLogger(__name__)


class TriggerRegistry:
    """
    Registry of all available condition evaluators.

    Usage:
        registry = TriggerRegistry()
        registry.register(TimeReachedTrigger(clock))

        evaluator = registry.get("timer", "time_reached")
        if evaluator:
            fired = await evaluator.evaluate(user_id, config, last_triggered)
    """

    def __init__(self):
        self._evaluators: dict[tuple[str, str], TriggerEvaluator] = {}

    def register(self, evaluator: TriggerEvaluator) -> None:
        key = evaluator.key
        if key in self._evaluators:
            logger.warning(f"[TRIGGERS] Overwriting existing evaluator for {key[0]}/{key[1]}")
        self._evaluators[key] = evaluator
        logger.debug(f"[TRIGGERS] Registered evaluator for {key[0]}/{key[1]}")

    def get(self, service: str, action_type: str) -> Optional[TriggerEvaluator]:
        return self._evaluators.get((service, action_type))

    def list_keys(self) -> list[tuple[str, str]]:
        return list(self._evaluators.keys())


def build_trigger_registry(tokens, clock: Optional[ReferenceClock] = None) -> TriggerRegistry:
    """
    Create a registry with every evaluator in the service catalog.

    Args:
        tokens: TokenLifecycleManager used by the event triggers
        clock: Reference clock shared by the time-based triggers
    """
    # Import here to avoid circular imports
    from .timer import TimeReachedTrigger, DateReachedTrigger, DayOfWeekTrigger
    from .gmail import EmailReceivedTrigger
    from .spotify import NewSavedTrackTrigger
    from .youtube import NewVideoTrigger
    from .github import NewCommitTrigger, IssueCreatedTrigger, RepositoryStarredTrigger
    from .discord import MessageReceivedTrigger, UserJoinedTrigger
    from .weather import TemperatureAboveTrigger, TemperatureBelowTrigger, WeatherConditionTrigger

    clock = clock or ReferenceClock()
    registry = TriggerRegistry()

    registry.register(TimeReachedTrigger(clock))
    registry.register(DateReachedTrigger(clock))
    registry.register(DayOfWeekTrigger(clock))

    registry.register(EmailReceivedTrigger(tokens))
    registry.register(NewSavedTrackTrigger(tokens))
    registry.register(NewVideoTrigger(tokens))

    registry.register(NewCommitTrigger(tokens))
    registry.register(IssueCreatedTrigger(tokens))
    registry.register(RepositoryStarredTrigger(tokens))

    registry.register(MessageReceivedTrigger(tokens))
    registry.register(UserJoinedTrigger(tokens))

    registry.register(TemperatureAboveTrigger(clock))
    registry.register(TemperatureBelowTrigger(clock))
    registry.register(WeatherConditionTrigger(clock))

    logger.info(f"[TRIGGERS] Initialized registry with {len(registry.list_keys())} evaluators")
    return registry
