"""
GitHub reactions: open an issue, comment on an issue.

create_issue config:
    {"repo_owner": "octocat", "repo_name": "hello-world",
     "title": "Issue title", "body": "Issue body"}

add_comment config:
    {"repo_owner": "octocat", "repo_name": "hello-world",
     "issue_option": "last" | "specific",
     "issue_number": 42,            # required when issue_option is "specific"
     "comment": "Comment text"}
"""

import logging
from typing import Any, Optional

from integrations.core.errors import AutomationError, ConfigurationError
from integrations.core.fields import require_fields
from integrations.core.github_client import GitHubAPIClient, get_github_client
from integrations.core.types import TriggerEvent
from .base import TokenReaction

logger = logging.getLogger(__name__)


class GitHubReaction(TokenReaction):

    def __init__(self, tokens, client: Optional[GitHubAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_github_client()

    @property
    def service(self) -> str:
        return "github"


class CreateIssueReaction(GitHubReaction):

    @property
    def reaction_type(self) -> str:
        return "create_issue"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "repo_owner", "repo_name", "title")

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        access_token = await self.access_token(user_id)
        issue = await self._client.create_issue(
            access_token,
            config["repo_owner"],
            config["repo_name"],
            title=config["title"],
            body=config.get("body") or "",
        )
        logger.info(
            f"[GITHUB_REACTION] Created issue #{issue.get('number')} on "
            f"{config['repo_owner']}/{config['repo_name']}"
        )
        return True


class AddCommentReaction(GitHubReaction):

    @property
    def reaction_type(self) -> str:
        return "add_comment"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "repo_owner", "repo_name", "comment")
        option = config.get("issue_option") or "last"
        if option not in ("last", "specific"):
            raise ConfigurationError(f"issue_option must be 'last' or 'specific', got {option!r}")
        if option == "specific":
            require_fields(config, "issue_number")
            try:
                int(config["issue_number"])
            except (TypeError, ValueError):
                raise ConfigurationError(f"issue_number must be an integer, got {config['issue_number']!r}")

    async def _latest_issue_number(self, access_token: str, owner: str, repo: str) -> Optional[int]:
        try:
            issue = await self._client.get_latest_issue(access_token, owner, repo)
        except AutomationError as e:
            logger.error(f"[GITHUB_REACTION] Could not look up latest issue on {owner}/{repo}: {e}")
            return None
        if not issue:
            logger.warning(f"[GITHUB_REACTION] No issue found on {owner}/{repo}")
            return None
        return issue.get("number")

    async def run(self, user_id: str, config: dict[str, Any], event: Optional[TriggerEvent] = None) -> bool:
        owner, repo = config["repo_owner"], config["repo_name"]
        access_token = await self.access_token(user_id)

        if (config.get("issue_option") or "last") == "specific":
            issue_number = int(config["issue_number"])
        else:
            issue_number = await self._latest_issue_number(access_token, owner, repo)
            if issue_number is None:
                return False

        await self._client.create_issue_comment(access_token, owner, repo, issue_number, config["comment"])
        logger.info(f"[GITHUB_REACTION] Commented on {owner}/{repo}#{issue_number}")
        return True
