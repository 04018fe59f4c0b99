"""
Automation Scheduler (hook executor)

Every interval (default 2 minutes) it loads all active automations and, for
each one independently:

1. skips it if it fired within the cooldown window (in-memory latch)
2. resolves the condition evaluator for (action_service, action_type)
3. seeds last_triggered on the first look at an event trigger, instead of
   evaluating, so linking an account never replays history
4. evaluates the trigger; if it fired, latches, runs the reaction for
   (reaction_service, reaction_type), then writes back last_triggered
   whether or not the reaction succeeded

A tick that arrives while a cycle is still running is dropped, not queued.
Automations within a cycle run concurrently, bounded by a semaphore, each
with its own timeout. A failure in one automation never affects another.

Run standalone:
  command: cd api && python -m jobs.automation_scheduler

or embedded in the API process (AUTOMATION_SCHEDULER_ENABLED=true, see main.py).

Environment:
  AUTOMATION_INTERVAL_SECONDS       tick interval (120)
  AUTOMATION_MAX_CONCURRENCY        automations processed at once (8)
  AUTOMATION_ITEM_TIMEOUT_SECONDS   budget per automation (60)
  AUTOMATION_COOLDOWN_SECONDS       de-dup latch window (120)
  AUTOMATION_TIMEZONE               reference timezone for timers (Europe/Paris)
  AUTOMATION_TIME_API_URL           external time API, empty to disable
"""

from __future__ import annotations

import asyncio
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from integrations.core.fields import parse_timestamp
from integrations.core.types import Automation, TriggerEvent
from integrations.reactions.registry import ReactionRegistry
from integrations.triggers.registry import TriggerRegistry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw in (None, ""):
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"[SCHEDULER] Ignoring invalid {name}={raw!r}, using {default}")
        return default


# =============================================================================
# Configuration & State
# =============================================================================

@dataclass
class SchedulerConfig:
    interval_seconds: float = 120.0
    max_concurrency: int = 8
    item_timeout_seconds: float = 60.0
    cooldown_seconds: float = 120.0
    timezone: Optional[str] = None
    time_api_url: Optional[str] = None

    @classmethod
    def from_env(cls) -> "SchedulerConfig":
        return cls(
            interval_seconds=_env_float("AUTOMATION_INTERVAL_SECONDS", 120.0),
            max_concurrency=max(1, int(_env_float("AUTOMATION_MAX_CONCURRENCY", 8))),
            item_timeout_seconds=_env_float("AUTOMATION_ITEM_TIMEOUT_SECONDS", 60.0),
            cooldown_seconds=_env_float("AUTOMATION_COOLDOWN_SECONDS", 120.0),
            timezone=os.getenv("AUTOMATION_TIMEZONE") or None,
            time_api_url=os.getenv("AUTOMATION_TIME_API_URL"),
        )


class SchedulerState:
    """
    In-memory de-dup latch: automation id -> when it last fired.

    Owned by one scheduler instance. It only absorbs re-triggering inside
    the cooldown window; last_triggered in the database stays the durable
    record, and rehydrate() rebuilds the latch from it after a restart.
    """

    def __init__(self, cooldown: timedelta = timedelta(minutes=2)):
        self.cooldown = cooldown
        self._fired: dict[str, datetime] = {}

    def in_cooldown(self, automation_id: str, now: datetime) -> bool:
        fired_at = self._fired.get(automation_id)
        return fired_at is not None and now - fired_at < self.cooldown

    def mark_fired(self, automation_id: str, at: datetime) -> None:
        self._fired[automation_id] = at

    def rehydrate(self, automations: list[Automation]) -> None:
        for automation in automations:
            if automation.last_triggered is not None:
                self._fired[automation.id] = parse_timestamp(automation.last_triggered)

    def clear(self) -> None:
        self._fired.clear()

    def __len__(self) -> int:
        return len(self._fired)


@dataclass
class CycleReport:
    """Outcome counters for one scheduler cycle."""
    evaluated: int = 0
    triggered: int = 0
    succeeded: int = 0
    failed: int = 0
    errors: int = 0
    skipped_cooldown: int = 0
    seeded: int = 0
    skipped: bool = False
    started_at: Optional[datetime] = None
    error_ids: list[str] = field(default_factory=list)

    def summary(self) -> str:
        if self.skipped:
            return "skipped (previous cycle still running)"
        return (
            f"evaluated={self.evaluated} triggered={self.triggered} "
            f"succeeded={self.succeeded} failed={self.failed} errors={self.errors} "
            f"cooldown={self.skipped_cooldown} seeded={self.seeded}"
        )


# =============================================================================
# Scheduler
# =============================================================================

class AutomationScheduler:
    """
    Drives the evaluate -> execute -> write-back loop.

    Usage:
        scheduler = AutomationScheduler(repository, triggers, reactions)
        report = await scheduler.run_cycle()   # one pass

        scheduler.start()                      # recurring, in the running loop
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        repository,
        triggers: TriggerRegistry,
        reactions: ReactionRegistry,
        config: Optional[SchedulerConfig] = None,
        now: Callable[[], datetime] = _utcnow,
    ):
        self.config = config or SchedulerConfig()
        self.state = SchedulerState(cooldown=timedelta(seconds=self.config.cooldown_seconds))
        self._repository = repository
        self._triggers = triggers
        self._reactions = reactions
        self._now = now

        self._cycle_lock = asyncio.Lock()
        self._stopping = asyncio.Event()
        self._runner: Optional[asyncio.Task] = None
        self._cycles: set[asyncio.Task] = set()

    @property
    def is_running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_lock.locked()

    # -------------------------------------------------------------------------
    # One cycle
    # -------------------------------------------------------------------------

    async def run_cycle(self) -> CycleReport:
        """Evaluate every active automation once. Never raises for item failures."""
        if self._cycle_lock.locked():
            logger.warning("[SCHEDULER] Previous cycle still running, skipping tick")
            return CycleReport(skipped=True)

        async with self._cycle_lock:
            report = CycleReport(started_at=self._now())

            try:
                automations = await self._repository.list_active_automations()
            except Exception as e:
                logger.error(f"[SCHEDULER] Could not load automations: {e}")
                return report

            if not automations:
                logger.debug("[SCHEDULER] No active automations")
                return report

            logger.info(f"[SCHEDULER] Checking {len(automations)} automation(s)")
            semaphore = asyncio.Semaphore(self.config.max_concurrency)

            async def _bounded(automation: Automation) -> None:
                async with semaphore:
                    await self._process_guarded(automation, report)

            await asyncio.gather(*(_bounded(a) for a in automations))
            return report

    async def _process_guarded(self, automation: Automation, report: CycleReport) -> None:
        try:
            await asyncio.wait_for(
                self.process_automation(automation, report),
                timeout=self.config.item_timeout_seconds,
            )
        except asyncio.TimeoutError:
            report.errors += 1
            report.error_ids.append(automation.id)
            logger.error(
                f"[SCHEDULER] Automation {automation.id} timed out after "
                f"{self.config.item_timeout_seconds}s"
            )
        except Exception:
            report.errors += 1
            report.error_ids.append(automation.id)
            logger.exception(f"[SCHEDULER] Automation {automation.id} ({automation.name}) failed")

    async def process_automation(self, automation: Automation, report: Optional[CycleReport] = None) -> None:
        """Evaluate one automation and run its reaction if the trigger fired."""
        report = report if report is not None else CycleReport()
        now = self._now()

        if self.state.in_cooldown(automation.id, now):
            report.skipped_cooldown += 1
            return

        service, action_type = automation.action_key
        evaluator = self._triggers.get(service, action_type)
        if evaluator is None:
            logger.warning(f"[SCHEDULER] Unknown action {service}/{action_type} on automation {automation.id}")
            return

        if automation.last_triggered is None and evaluator.seeds_watermark:
            await self._repository.update_last_triggered(automation.id, now)
            report.seeded += 1
            logger.info(f"[SCHEDULER] Seeded last_triggered for {automation.id} ({service}/{action_type})")
            return

        report.evaluated += 1
        fired, decided_at = await evaluator.evaluate_at(
            automation.owner_id, automation.action_config, automation.last_triggered
        )
        if not fired:
            return

        # Watermark is the instant the evaluator decided on, in its own clock
        fired_at = decided_at.astimezone(timezone.utc) if decided_at is not None else now

        report.triggered += 1
        logger.info(f"[SCHEDULER] Triggered: {automation.name or automation.id} ({service}/{action_type})")

        # Latch before the reaction so a slow reaction cannot be re-triggered
        self.state.mark_fired(automation.id, now)

        try:
            succeeded = await self._execute_reaction(automation, fired_at)
        finally:
            await self._repository.update_last_triggered(automation.id, fired_at)

        if succeeded:
            report.succeeded += 1
        else:
            report.failed += 1

    async def _execute_reaction(self, automation: Automation, fired_at: datetime) -> bool:
        service, reaction_type = automation.reaction_key
        executor = self._reactions.get(service, reaction_type)
        if executor is None:
            logger.warning(f"[SCHEDULER] Unknown reaction {service}/{reaction_type} on automation {automation.id}")
            return False

        event = TriggerEvent.from_automation(automation, fired_at)
        succeeded = await executor.execute(automation.owner_id, automation.reaction_config, event)
        if not succeeded:
            logger.warning(f"[SCHEDULER] Reaction {service}/{reaction_type} failed for {automation.id}")
        return succeeded

    # -------------------------------------------------------------------------
    # Recurring timer
    # -------------------------------------------------------------------------

    async def rehydrate(self) -> None:
        """Rebuild the cooldown latch from durable last_triggered values."""
        try:
            automations = await self._repository.list_active_automations()
        except Exception as e:
            logger.warning(f"[SCHEDULER] Could not rehydrate latch: {e}")
            return
        self.state.rehydrate(automations)
        logger.info(f"[SCHEDULER] Rehydrated latch for {len(self.state)} automation(s)")

    def _on_cycle_done(self, task: asyncio.Task) -> None:
        self._cycles.discard(task)
        if task.cancelled():
            return
        if task.exception() is not None:
            logger.error(f"[SCHEDULER] Cycle crashed: {task.exception()!r}")
            return
        logger.info(f"[SCHEDULER] Cycle done: {task.result().summary()}")

    async def run_forever(self) -> None:
        """Tick every interval until stop(). Overlapping ticks are dropped by run_cycle()."""
        self._stopping.clear()
        await self.rehydrate()
        logger.info(f"[SCHEDULER] Started, interval {self.config.interval_seconds}s")

        while not self._stopping.is_set():
            cycle = asyncio.ensure_future(self.run_cycle())
            self._cycles.add(cycle)
            cycle.add_done_callback(self._on_cycle_done)

            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.config.interval_seconds)
            except asyncio.TimeoutError:
                pass

        logger.info("[SCHEDULER] Stopped")

    def start(self) -> asyncio.Task:
        """Run the recurring timer as a background task on the current loop."""
        if self.is_running:
            return self._runner
        self._runner = asyncio.ensure_future(self.run_forever())
        return self._runner

    async def stop(self) -> None:
        """Stop ticking and cancel the in-flight cycle."""
        self._stopping.set()

        cycles = list(self._cycles)
        for cycle in cycles:
            cycle.cancel()
        if cycles:
            await asyncio.gather(*cycles, return_exceptions=True)

        if self._runner is not None:
            await asyncio.gather(self._runner, return_exceptions=True)
            self._runner = None


# =============================================================================
# Wiring
# =============================================================================

def build_scheduler(config: Optional[SchedulerConfig] = None) -> AutomationScheduler:
    """Build a scheduler on the Supabase stores and the full registries."""
    from integrations.core.clock import ReferenceClock
    from integrations.core.tokens import TokenLifecycleManager
    from integrations.reactions.registry import build_reaction_registry
    from integrations.triggers.registry import build_trigger_registry
    from services.automations import SupabaseAutomationRepository
    from services.credentials import SupabaseCredentialStore
    from services.supabase import get_service_client

    config = config or SchedulerConfig.from_env()
    client = get_service_client()

    tokens = TokenLifecycleManager(SupabaseCredentialStore(client))
    clock = ReferenceClock(timezone_name=config.timezone, time_api_url=config.time_api_url)

    return AutomationScheduler(
        SupabaseAutomationRepository(client),
        build_trigger_registry(tokens, clock),
        build_reaction_registry(tokens),
        config=config,
    )


async def run_automation_scheduler() -> None:
    scheduler = build_scheduler()
    try:
        await scheduler.run_forever()
    finally:
        await scheduler.stop()


if __name__ == "__main__":
    from dotenv import load_dotenv

    load_dotenv()
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    asyncio.run(run_automation_scheduler())
