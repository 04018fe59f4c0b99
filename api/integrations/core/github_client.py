"""
GitHub REST client.

Repository-scoped calls for the GitHub triggers (latest commit, issue,
stargazer) and reactions (create issue, comment on issue).
"""

import logging
from typing import Any, Optional

from .http import ProviderHTTPClient, get_http_client

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"

_GITHUB_HEADERS = {
    "Accept": "application/vnd.github.v3+json",
    "User-Agent": "Area-App",
}


class GitHubAPIClient:
    """Direct API client for GitHub repository operations."""

    def __init__(self, http: Optional[ProviderHTTPClient] = None):
        self._http = http or get_http_client()

    def _repo_url(self, owner: str, repo: str) -> str:
        return f"{GITHUB_API}/repos/{owner}/{repo}"

    async def _latest(
        self,
        access_token: str,
        url: str,
        params: Optional[dict[str, Any]] = None,
        accept: Optional[str] = None,
    ) -> Optional[dict[str, Any]]:
        headers = dict(_GITHUB_HEADERS)
        if accept:
            headers["Accept"] = accept
        items = await self._http.get_json(
            url,
            token=access_token,
            headers=headers,
            params={"per_page": 1, **(params or {})},
        )
        return items[0] if items else None

    async def get_latest_commit(self, access_token: str, owner: str, repo: str) -> Optional[dict[str, Any]]:
        return await self._latest(access_token, f"{self._repo_url(owner, repo)}/commits")

    async def get_latest_issue(
        self,
        access_token: str,
        owner: str,
        repo: str,
        state: str = "all",
    ) -> Optional[dict[str, Any]]:
        """Most recently created issue (GitHub lists pull requests here too)."""
        return await self._latest(
            access_token,
            f"{self._repo_url(owner, repo)}/issues",
            params={"state": state, "sort": "created", "direction": "desc"},
        )

    async def get_latest_stargazer(self, access_token: str, owner: str, repo: str) -> Optional[dict[str, Any]]:
        """
        Most recent stargazer. The listing is oldest-first, so read the star
        count and fetch the last one-item page.
        """
        repository = await self._http.get_json(
            self._repo_url(owner, repo),
            token=access_token,
            headers=_GITHUB_HEADERS,
        )
        count = repository.get("stargazers_count") or 0
        if not count:
            return None
        # The star+json media type adds starred_at to each stargazer
        return await self._latest(
            access_token,
            f"{self._repo_url(owner, repo)}/stargazers",
            params={"page": count},
            accept="application/vnd.github.v3.star+json",
        )

    async def create_issue(
        self,
        access_token: str,
        owner: str,
        repo: str,
        title: str,
        body: str,
    ) -> dict[str, Any]:
        return await self._http.post_json(
            f"{self._repo_url(owner, repo)}/issues",
            token=access_token,
            headers=_GITHUB_HEADERS,
            json={"title": title, "body": body},
        )

    async def create_issue_comment(
        self,
        access_token: str,
        owner: str,
        repo: str,
        issue_number: int,
        body: str,
    ) -> dict[str, Any]:
        return await self._http.post_json(
            f"{self._repo_url(owner, repo)}/issues/{issue_number}/comments",
            token=access_token,
            headers=_GITHUB_HEADERS,
            json={"body": body},
        )


def get_github_client() -> GitHubAPIClient:
    return GitHubAPIClient()
