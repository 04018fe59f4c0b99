"""Core integration infrastructure."""

from .errors import (
    AutomationError,
    ConfigurationError,
    CredentialError,
    NoCredentialError,
    RefreshError,
    ProviderAPIError,
    NetworkError,
)
from .tokens import TokenLifecycleManager
from .types import (
    IntegrationProvider,
    Automation,
    Credential,
    TriggerEvent,
)

__all__ = [
    "AutomationError",
    "ConfigurationError",
    "CredentialError",
    "NoCredentialError",
    "RefreshError",
    "ProviderAPIError",
    "NetworkError",
    "TokenLifecycleManager",
    "IntegrationProvider",
    "Automation",
    "Credential",
    "TriggerEvent",
]
