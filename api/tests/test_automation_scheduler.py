"""
Automation Scheduler Tests

AutomationScheduler against the in-memory automation repository and
registries holding fake evaluators/executors.

Run: cd api && python -m pytest tests/test_automation_scheduler.py -v
"""

import asyncio
from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

from integrations.core.clock import ReferenceClock, to_reference
from integrations.core.types import Automation
from integrations.reactions.base import ReactionExecutor
from integrations.reactions.registry import ReactionRegistry
from integrations.triggers.base import TriggerEvaluator
from integrations.triggers.registry import TriggerRegistry
from integrations.triggers.timer import DateReachedTrigger, TimeReachedTrigger
from jobs.automation_scheduler import AutomationScheduler, SchedulerConfig, SchedulerState
from services.automations import InMemoryAutomationRepository

NOW = datetime(2024, 1, 15, 13, 31, tzinfo=timezone.utc)


class FakeTrigger(TriggerEvaluator):

    def __init__(self, service="timer", action_type="time_reached", result=True, seeds_watermark=False, delay=0.0):
        self._service = service
        self._action_type = action_type
        self.result = result
        self.seeds_watermark = seeds_watermark
        self.delay = delay
        self.calls = []

    @property
    def service(self):
        return self._service

    @property
    def action_type(self):
        return self._action_type

    async def check(self, user_id, config, last_triggered):
        self.calls.append((user_id, config, last_triggered))
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class FakeReaction(ReactionExecutor):

    def __init__(self, service="discord", reaction_type="send_message", result=True):
        self._service = service
        self._reaction_type = reaction_type
        self.result = result
        self.calls = []

    @property
    def service(self):
        return self._service

    @property
    def reaction_type(self):
        return self._reaction_type

    async def run(self, user_id, config, event=None):
        self.calls.append((user_id, config, event))
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


def _automation(automation_id="a1", action=("timer", "time_reached"), last_triggered=None, **overrides):
    fields = {
        "id": automation_id,
        "ownerId": "user-1",
        "name": f"automation {automation_id}",
        "actionService": action[0],
        "actionType": action[1],
        "actionConfig": {"hour": 14, "minute": 30},
        "reactionService": "discord",
        "reactionType": "send_message",
        "reactionConfig": {"webhookUrl": "https://discord.com/api/webhooks/1/abc"},
        "lastTriggered": last_triggered,
    }
    fields.update(overrides)
    return Automation.model_validate(fields)


def _scheduler(automations, triggers, reactions, now=NOW, **config):
    trigger_registry = TriggerRegistry()
    for trigger in triggers:
        trigger_registry.register(trigger)
    reaction_registry = ReactionRegistry()
    for reaction in reactions:
        reaction_registry.register(reaction)

    repository = InMemoryAutomationRepository(automations)
    scheduler = AutomationScheduler(
        repository,
        trigger_registry,
        reaction_registry,
        config=SchedulerConfig(**config),
        now=lambda: now,
    )
    return scheduler, repository


def test_triggered_automation_runs_reaction_and_writes_back():
    trigger, reaction = FakeTrigger(), FakeReaction()
    scheduler, repository = _scheduler([_automation()], [trigger], [reaction])

    report = asyncio.run(scheduler.run_cycle())

    assert (report.evaluated, report.triggered, report.succeeded) == (1, 1, 1)
    assert len(reaction.calls) == 1
    user_id, config, event = reaction.calls[0]
    assert user_id == "user-1"
    assert config["webhookUrl"].startswith("https://discord.com")
    assert (event.action_service, event.action_type, event.fired_at) == ("timer", "time_reached", NOW)
    assert repository.get("a1").last_triggered == NOW
    print("✅ triggered_automation: PASSED")


def test_not_triggered_leaves_last_triggered():
    trigger, reaction = FakeTrigger(result=False), FakeReaction()
    scheduler, repository = _scheduler([_automation()], [trigger], [reaction])

    report = asyncio.run(scheduler.run_cycle())

    assert (report.evaluated, report.triggered) == (1, 0)
    assert reaction.calls == []
    assert repository.get("a1").last_triggered is None
    print("✅ not_triggered: PASSED")


def test_failed_reaction_still_advances_watermark():
    trigger, reaction = FakeTrigger(), FakeReaction(result=False)
    scheduler, repository = _scheduler([_automation()], [trigger], [reaction])

    report = asyncio.run(scheduler.run_cycle())

    assert (report.triggered, report.succeeded, report.failed) == (1, 0, 1)
    assert repository.get("a1").last_triggered == NOW
    print("✅ failed_reaction_writes_back: PASSED")


def test_crashing_reaction_still_advances_watermark():
    trigger, reaction = FakeTrigger(), FakeReaction(result=RuntimeError("bug"))
    scheduler, repository = _scheduler([_automation()], [trigger], [reaction])

    report = asyncio.run(scheduler.run_cycle())

    assert report.errors == 1
    assert repository.get("a1").last_triggered == NOW
    print("✅ crashing_reaction_writes_back: PASSED")


def test_one_failing_evaluator_does_not_affect_others():
    broken = FakeTrigger(service="gmail", action_type="email_received", result=RuntimeError("boom"))
    healthy = FakeTrigger()
    reaction = FakeReaction()
    automations = [
        _automation("broken", action=("gmail", "email_received"), last_triggered=NOW - timedelta(hours=1)),
        _automation("healthy"),
    ]
    scheduler, repository = _scheduler(automations, [broken, healthy], [reaction])

    report = asyncio.run(scheduler.run_cycle())

    assert report.errors == 1
    assert report.error_ids == ["broken"]
    assert report.succeeded == 1
    assert len(reaction.calls) == 1
    assert repository.get("healthy").last_triggered == NOW
    print("✅ failure_isolation: PASSED")


def test_event_trigger_is_seeded_not_evaluated():
    trigger = FakeTrigger(service="gmail", action_type="email_received", seeds_watermark=True)
    reaction = FakeReaction()
    scheduler, repository = _scheduler(
        [_automation(action=("gmail", "email_received"))], [trigger], [reaction]
    )

    report = asyncio.run(scheduler.run_cycle())

    assert report.seeded == 1
    assert trigger.calls == []
    assert reaction.calls == []
    assert repository.get("a1").last_triggered == NOW
    print("✅ event_trigger_seeded: PASSED")


def test_cooldown_latch_absorbs_retrigger():
    trigger, reaction = FakeTrigger(), FakeReaction()
    scheduler, repository = _scheduler([_automation()], [trigger], [reaction])

    asyncio.run(scheduler.run_cycle())
    report = asyncio.run(scheduler.run_cycle())

    assert report.skipped_cooldown == 1
    assert len(trigger.calls) == 1
    assert len(reaction.calls) == 1
    print("✅ cooldown_latch: PASSED")


def test_overlapping_cycle_is_skipped():
    trigger = FakeTrigger(result=False, delay=0.05)
    scheduler, _ = _scheduler([_automation()], [trigger], [FakeReaction()])

    async def run():
        first = asyncio.ensure_future(scheduler.run_cycle())
        await asyncio.sleep(0)
        second = await scheduler.run_cycle()
        return await first, second

    first, second = asyncio.run(run())

    assert first.skipped is False
    assert second.skipped is True
    assert len(trigger.calls) == 1
    print("✅ overlapping_cycle_skipped: PASSED")


def test_unknown_action_is_skipped():
    reaction = FakeReaction()
    scheduler, repository = _scheduler([_automation(action=("fax", "received"))], [FakeTrigger()], [reaction])

    report = asyncio.run(scheduler.run_cycle())

    assert report.evaluated == 0
    assert report.errors == 0
    assert reaction.calls == []
    print("✅ unknown_action: PASSED")


def test_slow_automation_times_out():
    slow = FakeTrigger(service="gmail", action_type="email_received", result=True, delay=1.0)
    fast = FakeTrigger()
    automations = [
        _automation("slow", action=("gmail", "email_received"), last_triggered=NOW - timedelta(hours=1)),
        _automation("fast"),
    ]
    scheduler, repository = _scheduler(automations, [slow, fast], [FakeReaction()], item_timeout_seconds=0.05)

    report = asyncio.run(scheduler.run_cycle())

    assert report.errors == 1
    assert report.error_ids == ["slow"]
    assert repository.get("fast").last_triggered == NOW
    print("✅ item_timeout: PASSED")


def test_repository_failure_yields_empty_cycle():
    scheduler, repository = _scheduler([], [FakeTrigger()], [FakeReaction()])
    repository.list_active_automations = AsyncMock(side_effect=ConnectionError("db down"))

    report = asyncio.run(scheduler.run_cycle())

    assert report.skipped is False
    assert report.evaluated == 0
    print("✅ repository_failure: PASSED")


def test_inactive_automations_are_ignored():
    trigger = FakeTrigger()
    scheduler, _ = _scheduler([_automation(active=False)], [trigger], [FakeReaction()])

    asyncio.run(scheduler.run_cycle())

    assert trigger.calls == []
    print("✅ inactive_ignored: PASSED")


def test_scheduler_state():
    state = SchedulerState(cooldown=timedelta(minutes=2))

    state.mark_fired("a1", NOW)
    assert state.in_cooldown("a1", NOW + timedelta(minutes=1))
    assert not state.in_cooldown("a1", NOW + timedelta(minutes=2))
    assert not state.in_cooldown("a2", NOW)
    print("  ✓ Latch window")

    state.clear()
    assert len(state) == 0
    state.rehydrate([_automation("a3", last_triggered=NOW), _automation("a4")])
    assert state.in_cooldown("a3", NOW + timedelta(seconds=30))
    assert not state.in_cooldown("a4", NOW)
    print("  ✓ Rehydrated from last_triggered")

    print("✅ scheduler_state: PASSED")


def test_start_and_stop():
    trigger = FakeTrigger(result=False)
    scheduler, _ = _scheduler([_automation()], [trigger], [FakeReaction()], interval_seconds=0.01)

    async def run():
        scheduler.start()
        await asyncio.sleep(0.05)
        assert scheduler.is_running
        await scheduler.stop()
        assert not scheduler.is_running

    asyncio.run(run())

    assert len(trigger.calls) >= 2
    print("✅ start_and_stop: PASSED")


def test_config_from_env(monkeypatch):
    monkeypatch.setenv("AUTOMATION_INTERVAL_SECONDS", "30")
    monkeypatch.setenv("AUTOMATION_MAX_CONCURRENCY", "3")
    monkeypatch.setenv("AUTOMATION_COOLDOWN_SECONDS", "not-a-number")
    monkeypatch.setenv("AUTOMATION_TIMEZONE", "America/New_York")

    config = SchedulerConfig.from_env()

    assert config.interval_seconds == 30.0
    assert config.max_concurrency == 3
    assert config.cooldown_seconds == 120.0
    assert config.item_timeout_seconds == 60.0
    assert config.timezone == "America/New_York"
    print("✅ config_from_env: PASSED")


class _AheadClock(ReferenceClock):
    """Reference clock that disagrees with the scheduler's own clock."""

    def __init__(self, *local):
        super().__init__(timezone_name="Europe/Paris", time_api_url="")
        self.local_now = self.tz.localize(datetime(*local))

    def system_now(self):
        return self.local_now


def test_time_reached_fires_once_when_reference_clock_is_ahead():
    # Scheduler host: 13:29:59Z (14:29:59 Paris). Reference clock: 14:30:01 Paris.
    clock = _AheadClock(2024, 1, 15, 14, 30, 1)
    reaction = FakeReaction()
    host_now = [datetime(2024, 1, 15, 13, 29, 59, tzinfo=timezone.utc)]

    repository = InMemoryAutomationRepository([_automation()])
    triggers = TriggerRegistry()
    triggers.register(TimeReachedTrigger(clock))
    reactions = ReactionRegistry()
    reactions.register(reaction)
    scheduler = AutomationScheduler(repository, triggers, reactions, now=lambda: host_now[0])

    asyncio.run(scheduler.run_cycle())
    assert len(reaction.calls) == 1
    stored = repository.get("a1").last_triggered
    assert to_reference(stored, clock.tz).strftime("%H:%M:%S") == "14:30:01"
    print("  ✓ Watermark is the reference-clock instant")

    host_now[0] += timedelta(seconds=121)
    clock.local_now += timedelta(seconds=121)
    report = asyncio.run(scheduler.run_cycle())

    assert report.skipped_cooldown == 0
    assert report.evaluated == 1
    assert len(reaction.calls) == 1
    print("  ✓ Next cycle past the cooldown does not fire again")

    print("✅ time_reached_clock_skew: PASSED")


def test_date_reached_fires_once_across_host_midnight():
    # Reference clock still on the 1st, host already on the 2nd in Paris
    clock = _AheadClock(2024, 3, 1, 23, 59, 0)
    reaction = FakeReaction()
    host_now = [datetime(2024, 3, 1, 23, 5, 0, tzinfo=timezone.utc)]

    repository = InMemoryAutomationRepository([
        _automation(action=("timer", "date_reached"), actionConfig={"date": "2024-03-01"}),
    ])
    triggers = TriggerRegistry()
    triggers.register(DateReachedTrigger(clock))
    reactions = ReactionRegistry()
    reactions.register(reaction)
    scheduler = AutomationScheduler(repository, triggers, reactions, now=lambda: host_now[0])

    asyncio.run(scheduler.run_cycle())
    host_now[0] += timedelta(seconds=121)
    clock.local_now += timedelta(seconds=30)
    asyncio.run(scheduler.run_cycle())

    assert len(reaction.calls) == 1
    print("✅ date_reached_clock_skew: PASSED")


if __name__ == "__main__":
    print("\n🧪 Running automation scheduler tests...\n")

    test_triggered_automation_runs_reaction_and_writes_back()
    test_not_triggered_leaves_last_triggered()
    test_failed_reaction_still_advances_watermark()
    test_crashing_reaction_still_advances_watermark()
    test_one_failing_evaluator_does_not_affect_others()
    test_event_trigger_is_seeded_not_evaluated()
    test_cooldown_latch_absorbs_retrigger()
    test_overlapping_cycle_is_skipped()
    test_unknown_action_is_skipped()
    test_slow_automation_times_out()
    test_repository_failure_yields_empty_cycle()
    test_inactive_automations_are_ignored()
    test_scheduler_state()
    test_start_and_stop()
    test_time_reached_fires_once_when_reference_clock_is_ahead()
    test_date_reached_fires_once_across_host_midnight()

    print("\n✅ All automation scheduler tests passed!")
