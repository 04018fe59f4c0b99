"""
Automation Registry

Read side of the automations table for the scheduler, plus the single
write the engine performs: last_triggered.

Table: automations
    id, owner_id, name, active,
    action_service, action_type, action_config,
    reaction_service, reaction_type, reaction_config,
    last_triggered, created_at, updated_at

Usage:
    from services.automations import SupabaseAutomationRepository

    repo = SupabaseAutomationRepository(get_service_client())
    for automation in await repo.list_active_automations():
        ...
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional, Protocol

from pydantic import ValidationError

from integrations.core.types import Automation

logger = logging.getLogger(__name__)

AUTOMATIONS_TABLE = "automations"


class AutomationRepository(Protocol):
    """What the scheduler needs from persistence."""

    async def list_active_automations(self) -> list[Automation]:
        ...

    async def update_last_triggered(self, automation_id: str, at: datetime) -> None:
        ...


class SupabaseAutomationRepository:
    """Automation repository backed by the automations table."""

    def __init__(self, client):
        self._client = client

    def _fetch_active(self) -> list[dict]:
        result = (
            self._client.table(AUTOMATIONS_TABLE)
            .select("*")
            .eq("active", True)
            .execute()
        )
        return result.data or []

    async def list_active_automations(self) -> list[Automation]:
        rows = await asyncio.to_thread(self._fetch_active)

        automations = []
        for row in rows:
            try:
                automations.append(Automation.model_validate(row))
            except ValidationError as e:
                # Skip the row, keep the rest
                logger.error(f"[AUTOMATIONS] Skipping malformed automation {row.get('id')}: {e}")
        return automations

    async def update_last_triggered(self, automation_id: str, at: datetime) -> None:
        def _update():
            self._client.table(AUTOMATIONS_TABLE).update({
                "last_triggered": at.isoformat(),
            }).eq("id", automation_id).execute()

        await asyncio.to_thread(_update)
        logger.debug(f"[AUTOMATIONS] last_triggered for {automation_id} -> {at.isoformat()}")


class InMemoryAutomationRepository:
    """List-backed repository for tests and local runs."""

    def __init__(self, automations: Optional[list[Automation]] = None):
        self._automations: dict[str, Automation] = {}
        for automation in automations or []:
            self.put(automation)

    def put(self, automation: Automation) -> None:
        self._automations[automation.id] = automation

    def get(self, automation_id: str) -> Optional[Automation]:
        return self._automations.get(automation_id)

    async def list_active_automations(self) -> list[Automation]:
        return [a.model_copy(deep=True) for a in self._automations.values() if a.active]

    async def update_last_triggered(self, automation_id: str, at: datetime) -> None:
        self._automations[automation_id].last_triggered = at
