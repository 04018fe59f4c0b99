"""
Reference clock for time-based triggers.

Timer automations are expressed in a fixed reference timezone. The current
time is taken from an external time API when it answers quickly, and from
the local system clock (UTC converted to the reference timezone) otherwise,
so a skewed host clock does not shift every timer.
"""

import os
import logging
from datetime import datetime, timezone
from typing import Optional

import httpx
import pytz

from .errors import AutomationError
from .http import ProviderHTTPClient

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Europe/Paris"
DEFAULT_TIME_API_URL = "https://worldtimeapi.org/api/timezone/{tz}"

# The time API is best-effort: give up fast and use the local clock
_TIME_API_TIMEOUT = httpx.Timeout(3.0, connect=2.0)


def get_reference_timezone(name: Optional[str] = None):
    tz_name = name or os.getenv("AUTOMATION_TIMEZONE", DEFAULT_TIMEZONE)
    try:
        return pytz.timezone(tz_name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"[CLOCK] Unknown timezone {tz_name!r}, falling back to UTC")
        return pytz.UTC


def to_reference(value: datetime, tz) -> datetime:
    """Convert a datetime (naive values are taken as UTC) to the reference timezone."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(tz)


class ReferenceClock:
    """
    Current wall-clock time in the reference timezone.

    Args:
        timezone_name: IANA name, defaults to AUTOMATION_TIMEZONE or Europe/Paris
        time_api_url: URL template with {tz}; empty string disables the API
        http: Optional HTTP client (tests inject a MockTransport)
    """

    def __init__(
        self,
        timezone_name: Optional[str] = None,
        time_api_url: Optional[str] = None,
        http: Optional[ProviderHTTPClient] = None,
    ):
        self.tz = get_reference_timezone(timezone_name)
        if time_api_url is None:
            time_api_url = os.getenv("AUTOMATION_TIME_API_URL", DEFAULT_TIME_API_URL)
        self._time_api_url = time_api_url
        self._http = http or ProviderHTTPClient(timeout=_TIME_API_TIMEOUT)

    async def _fetch_remote(self) -> Optional[datetime]:
        if not self._time_api_url:
            return None
        url = self._time_api_url.format(tz=self.tz.zone)
        try:
            data = await self._http.get_json(url)
            return datetime.fromisoformat(data["datetime"]).astimezone(self.tz)
        except (AutomationError, KeyError, TypeError, ValueError) as e:
            logger.debug(f"[CLOCK] Time API unavailable, using system clock: {e}")
            return None

    def system_now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone(self.tz)

    async def now(self) -> datetime:
        remote = await self._fetch_remote()
        return remote if remote is not None else self.system_now()
