"""
GitHub triggers: new commit, new issue, new star on a repository.

Config (all three):
    {"repo_owner": "octocat", "repo_name": "hello-world"}
"""

from datetime import datetime
from typing import Any, Optional

from integrations.core.github_client import GitHubAPIClient, get_github_client
from integrations.core.fields import parse_timestamp, require_fields
from .base import EventTrigger


class GitHubRepoTrigger(EventTrigger):

    def __init__(self, tokens, client: Optional[GitHubAPIClient] = None):
        super().__init__(tokens)
        self._client = client or get_github_client()

    @property
    def service(self) -> str:
        return "github"

    def validate_config(self, config: dict[str, Any]) -> None:
        require_fields(config, "repo_owner", "repo_name")


class NewCommitTrigger(GitHubRepoTrigger):

    @property
    def action_type(self) -> str:
        return "new_commit"

    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        commit = await self._client.get_latest_commit(access_token, config["repo_owner"], config["repo_name"])
        if not commit:
            return None
        return parse_timestamp(commit.get("commit", {}).get("committer", {}).get("date"))


class IssueCreatedTrigger(GitHubRepoTrigger):

    @property
    def action_type(self) -> str:
        return "issue_created"

    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        issue = await self._client.get_latest_issue(access_token, config["repo_owner"], config["repo_name"])
        if not issue:
            return None
        return parse_timestamp(issue.get("created_at"))


class RepositoryStarredTrigger(GitHubRepoTrigger):

    @property
    def action_type(self) -> str:
        return "repository_starred"

    async def latest_item_time(self, access_token: str, config: dict[str, Any]) -> Optional[datetime]:
        star = await self._client.get_latest_stargazer(access_token, config["repo_owner"], config["repo_name"])
        if not star:
            return None
        return parse_timestamp(star.get("starred_at"))
