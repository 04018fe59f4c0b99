"""
Automation engine error taxonomy.

Every failure an evaluator or executor can hit while talking to a provider
is one of these. They are contained at the per-automation boundary in the
scheduler: nothing here is allowed to abort a cycle.

    AutomationError
    ├── ConfigurationError      required config field missing
    ├── CredentialError         no linked account / refresh token missing
    │   └── NoCredentialError
    ├── RefreshError            provider rejected the refresh grant
    ├── ProviderAPIError        non-2xx response from a provider API
    └── NetworkError            transport failure or timeout
"""

from typing import Optional


class AutomationError(Exception):
    """Base class for all engine-level failures."""


class ConfigurationError(AutomationError):
    """A required action/reaction config field is missing or invalid."""


class CredentialError(AutomationError):
    """The user has no usable credential for a provider."""


class NoCredentialError(CredentialError):
    """No linked account, or the account has no refresh token."""

    def __init__(self, user_id: str, provider: str, reason: str = "not linked"):
        self.user_id = user_id
        self.provider = provider
        super().__init__(f"No {provider} credential for user {user_id}: {reason}")


class RefreshError(AutomationError):
    """The provider's token endpoint refused to refresh the access token."""

    def __init__(self, provider: str, status_code: Optional[int], body: str):
        self.provider = provider
        self.status_code = status_code
        self.body = body
        super().__init__(f"Token refresh failed for {provider} ({status_code}): {body}")


class ProviderAPIError(AutomationError):
    """A provider REST call returned a non-2xx status."""

    def __init__(self, status_code: int, body: str, url: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"Provider API returned {status_code} for {url}: {body[:500]}")


class NetworkError(AutomationError):
    """A provider call could not complete (connection error, timeout)."""
