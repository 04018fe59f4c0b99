"""
Effect Executors (reactions)

One executor per (reaction_service, reaction_type) pair in the service
catalog. Each implements:
- execute(user_id, config, event=None) → bool

Usage:
    from integrations.reactions import build_reaction_registry

    registry = build_reaction_registry(token_manager)
    executor = registry.get("discord", "send_message")
    ok = await executor.execute(user_id, config, event)
"""

from .base import ReactionExecutor, TokenReaction
from .registry import ReactionRegistry, build_reaction_registry

__all__ = [
    "ReactionExecutor",
    "TokenReaction",
    "ReactionRegistry",
    "build_reaction_registry",
]
