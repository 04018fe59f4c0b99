"""
Automation integration layer.

All providers use direct REST clients (httpx):
- Google (Gmail, YouTube): integrations/core/google_client.py
- Spotify: integrations/core/spotify_client.py
- GitHub: integrations/core/github_client.py
- Discord webhooks: integrations/core/discord_client.py
- Open-Meteo weather: integrations/core/weather_client.py

Modules:
- core/: API clients, OAuth refresh, token lifecycle, encryption, types
- triggers/: Condition evaluators, one per (service, action)
- reactions/: Effect executors, one per (service, reaction)
- catalog.py: Service catalog served by /about.json
"""

from .core.tokens import TokenLifecycleManager
from .core.types import (
    IntegrationProvider,
    Automation,
    Credential,
    TriggerEvent,
)

__all__ = [
    "TokenLifecycleManager",
    "IntegrationProvider",
    "Automation",
    "Credential",
    "TriggerEvent",
]
