"""
Integration type definitions.

Shared types for the automation engine: the automation and credential
records exchanged with the persistence layer, plus the small value objects
passed between the scheduler, evaluators and executors.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Any

from pydantic import BaseModel, ConfigDict, Field


class IntegrationProvider(str, Enum):
    """OAuth providers a user can link."""
    GOOGLE = "google"
    SPOTIFY = "spotify"
    GITHUB = "github"
    DISCORD = "discord"


# Automation service name -> credential provider it authenticates with.
# Gmail and YouTube share the Google account.
SERVICE_PROVIDERS: dict[str, IntegrationProvider] = {
    "gmail": IntegrationProvider.GOOGLE,
    "youtube": IntegrationProvider.GOOGLE,
    "spotify": IntegrationProvider.SPOTIFY,
    "github": IntegrationProvider.GITHUB,
    "discord": IntegrationProvider.DISCORD,
}


class Automation(BaseModel):
    """
    One automation: an action on one service bound to a reaction on another.

    Config maps are schema-free and only interpreted by the evaluator or
    executor registered for the matching (service, type) pair. Accepts both
    snake_case column names and the camelCase names used by the web client.
    """
    model_config = ConfigDict(populate_by_name=True)

    id: str
    owner_id: str = Field(alias="ownerId")
    name: str = ""
    active: bool = True

    action_service: str = Field(alias="actionService")
    action_type: str = Field(alias="actionType")
    action_config: dict[str, Any] = Field(default_factory=dict, alias="actionConfig")

    reaction_service: str = Field(alias="reactionService")
    reaction_type: str = Field(alias="reactionType")
    reaction_config: dict[str, Any] = Field(default_factory=dict, alias="reactionConfig")

    last_triggered: Optional[datetime] = Field(default=None, alias="lastTriggered")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")

    @property
    def action_key(self) -> tuple[str, str]:
        return (self.action_service, self.action_type)

    @property
    def reaction_key(self) -> tuple[str, str]:
        return (self.reaction_service, self.reaction_type)


class Credential(BaseModel):
    """
    A user's linked OAuth account for one provider.

    The access token is only valid while now < expires_at. The refresh token
    is the durable secret used to mint new access tokens.
    """
    model_config = ConfigDict(populate_by_name=True)

    provider: str
    provider_account_id: Optional[str] = Field(default=None, alias="providerAccountId")
    owner_id: str = Field(alias="ownerId")
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")
    expires_at: Optional[datetime] = Field(default=None, alias="expiresAt")


@dataclass
class TriggerEvent:
    """
    What fired. Handed to the reaction so it can describe the trigger
    (e.g. the default webhook message for a timer).
    """
    automation_id: str
    automation_name: str
    action_service: str
    action_type: str
    action_config: dict[str, Any] = field(default_factory=dict)
    fired_at: Optional[datetime] = None

    @classmethod
    def from_automation(cls, automation: Automation, fired_at: datetime) -> "TriggerEvent":
        return cls(
            automation_id=automation.id,
            automation_name=automation.name,
            action_service=automation.action_service,
            action_type=automation.action_type,
            action_config=dict(automation.action_config),
            fired_at=fired_at,
        )
