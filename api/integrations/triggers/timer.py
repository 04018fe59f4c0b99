"""
Timer triggers: time of day, calendar date, day of week.

All three read the current time from the ReferenceClock (external time API
with system-clock fallback) in the reference timezone, and use
last_triggered to fire at most once per calendar day. The time they read is
returned from check_at() so last_triggered records the same instant the
decision was made on.
"""

import logging
from abc import abstractmethod
from datetime import date, datetime
from typing import Any, Optional

from integrations.core.clock import ReferenceClock, to_reference
from integrations.core.errors import ConfigurationError
from integrations.core.fields import require_fields
from .base import TriggerEvaluator

logger = logging.getLogger(__name__)


def _int_field(config: dict[str, Any], name: str, low: int, high: int) -> int:
    try:
        value = int(config[name])
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {config[name]!r}")
    if not low <= value <= high:
        raise ConfigurationError(f"{name} must be between {low} and {high}, got {value}")
    return value


class TimerTrigger(TriggerEvaluator):
    """Shared clock plumbing for the timer service."""

    def __init__(self, clock: Optional[ReferenceClock] = None):
        self._clock = clock or ReferenceClock()

    @property
    def service(self) -> str:
        return "timer"

    def _last_local(self, last_triggered: Optional[datetime]) -> Optional[datetime]:
        if last_triggered is None:
            return None
        return to_reference(last_triggered, self._clock.tz)

    def _fired_on(self, last_triggered: Optional[datetime], day: date) -> bool:
        last_local = self._last_local(last_triggered)
        return last_local is not None and last_local.date() == day

    @abstractmethod
    def fires_at(self, config: dict[str, Any], last_triggered: Optional[datetime], now: datetime) -> bool:
        """Decide against `now`, the current time in the reference timezone."""
        pass

    async def check_at(
        self,
        user_id: str,
        config: dict[str, Any],
        last_triggered: Optional[datetime],
    ) -> tuple[bool, Optional[datetime]]:
        now = await self._clock.now()
        return self.fires_at(config, last_triggered, now), now

    async def check(self, user_id: str, config: dict[str, Any], last_triggered: Optional[datetime]) -> bool:
        fired, _ = await self.check_at(user_id, config, last_triggered)
        return fired


class TimeReachedTrigger(TimerTrigger):
    """
    Fires once per day when the time of day reaches {hour, minute}.

    It keeps firing on every cycle after the target until last_triggered
    records a trigger at or after the target on the same day.
    """

    @property
    def action_type(self) -> str:
        return "time_reached"

    def fires_at(self, config: dict[str, Any], last_triggered: Optional[datetime], now: datetime) -> bool:
        require_fields(config, "hour", "minute")
        hour = _int_field(config, "hour", 0, 23)
        minute = _int_field(config, "minute", 0, 59)

        if (now.hour, now.minute) < (hour, minute):
            return False

        last_local = self._last_local(last_triggered)
        if (
            last_local is not None
            and last_local.date() == now.date()
            and (last_local.hour, last_local.minute) >= (hour, minute)
        ):
            return False

        logger.info(f"[TIMER] Time reached: {hour:02d}:{minute:02d} (now {now.strftime('%H:%M')})")
        return True


class DateReachedTrigger(TimerTrigger):
    """Fires on the configured date ("YYYY-MM-DD"), once."""

    @property
    def action_type(self) -> str:
        return "date_reached"

    def fires_at(self, config: dict[str, Any], last_triggered: Optional[datetime], now: datetime) -> bool:
        require_fields(config, "date")
        try:
            target = date.fromisoformat(str(config["date"])[:10])
        except ValueError:
            raise ConfigurationError(f"date must be YYYY-MM-DD, got {config['date']!r}")

        today = now.date()
        if today != target or self._fired_on(last_triggered, today):
            return False

        logger.info(f"[TIMER] Date reached: {target.isoformat()}")
        return True


class DayOfWeekTrigger(TimerTrigger):
    """Fires on the configured weekday (0=Sunday .. 6=Saturday), once that day."""

    @property
    def action_type(self) -> str:
        return "day_of_week"

    def fires_at(self, config: dict[str, Any], last_triggered: Optional[datetime], now: datetime) -> bool:
        require_fields(config, "dayOfWeek")
        target = _int_field(config, "dayOfWeek", 0, 6)

        # isoweekday: Monday=1 .. Sunday=7
        today = now.isoweekday() % 7
        if today != target or self._fired_on(last_triggered, now.date()):
            return False

        logger.info(f"[TIMER] Day of week reached: {target}")
        return True
