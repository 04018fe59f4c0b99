"""
Condition Evaluators (triggers)

One evaluator per (action_service, action_type) pair in the service catalog.
Each implements:
- evaluate(user_id, config, last_triggered) → bool

Usage:
    from integrations.triggers import build_trigger_registry

    registry = build_trigger_registry(token_manager)
    evaluator = registry.get("timer", "time_reached")
    fired = await evaluator.evaluate(user_id, config, last_triggered)
"""

from .base import TriggerEvaluator, EventTrigger
from .registry import TriggerRegistry, build_trigger_registry

__all__ = [
    "TriggerEvaluator",
    "EventTrigger",
    "TriggerRegistry",
    "build_trigger_registry",
]
