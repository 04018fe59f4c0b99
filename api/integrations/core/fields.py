"""
Helpers for reading schema-free action/reaction config and provider payloads.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from .errors import ConfigurationError


def require_fields(config: dict[str, Any], *fields: str) -> None:
    """Raise ConfigurationError naming every missing (None or empty) field."""
    missing = [f for f in fields if config.get(f) in (None, "")]
    if missing:
        raise ConfigurationError(f"Missing config field(s): {', '.join(missing)}")


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 provider timestamp ("...Z" included) into aware UTC."""
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
