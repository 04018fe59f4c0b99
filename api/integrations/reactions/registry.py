"""
Reaction Registry

Maps (reaction_service, reaction_type) pairs to their effect executor.
Built once at startup, alongside the TriggerRegistry.
"""

import logging
from typing import Optional

from .base import ReactionExecutor

logger = logging.getLogger(__name__)


class ReactionRegistry:
    """
    Registry of all available effect executors.

    Usage:
        registry = ReactionRegistry()
        registry.register(SendMessageReaction())

        executor = registry.get("discord", "send_message")
        if executor:
            ok = await executor.execute(user_id, config, event)
    """

    def __init__(self):
        self._executors: dict[tuple[str, str], ReactionExecutor] = {}

    def register(self, executor: ReactionExecutor) -> None:
        key = executor.key
        if key in self._executors:
            logger.warning(f"[REACTIONS] Overwriting existing executor for {key[0]}/{key[1]}")
        self._executors[key] = executor
        logger.debug(f"[REACTIONS] Registered executor for {key[0]}/{key[1]}")

    def get(self, service: str, reaction_type: str) -> Optional[ReactionExecutor]:
        return self._executors.get((service, reaction_type))

    def list_keys(self) -> list[tuple[str, str]]:
        return list(self._executors.keys())


def build_reaction_registry(tokens) -> ReactionRegistry:
    """
    Create a registry with every executor in the service catalog.

    Args:
        tokens: TokenLifecycleManager used by the OAuth-backed reactions
    """
    # Import here to avoid circular imports
    from .discord import SendMessageReaction
    from .gmail import SendEmailReaction
    from .github import CreateIssueReaction, AddCommentReaction
    from .spotify import SkipTrackReaction, PlayPlaylistReaction
    from .youtube import LikeVideoReaction, AddToPlaylistReaction, PostCommentReaction
    from .weather import SendWeatherReportReaction

    registry = ReactionRegistry()

    registry.register(SendMessageReaction())
    registry.register(SendEmailReaction(tokens))

    registry.register(CreateIssueReaction(tokens))
    registry.register(AddCommentReaction(tokens))

    registry.register(SkipTrackReaction(tokens))
    registry.register(PlayPlaylistReaction(tokens))

    registry.register(LikeVideoReaction(tokens))
    registry.register(AddToPlaylistReaction(tokens))
    registry.register(PostCommentReaction(tokens))

    registry.register(SendWeatherReportReaction())

    logger.info(f"[REACTIONS] Initialized registry with {len(registry.list_keys())} executors")
    return registry
