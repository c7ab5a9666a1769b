"""GitHub REST client for opening documentation pull requests"""

import logging
import os
import re

import httpx

from docsync.config import config

logger = logging.getLogger(__name__)

_GITHUB_REMOTE = re.compile(
    r"^(?:https?://(?:[^@/]+@)?github\.com/|git@github\.com:|ssh://git@github\.com/)"
    r"(?P<owner>[^/]+)/(?P<repo>[^/]+?)(?:\.git)?/?$"
)


class GitHubApiError(Exception):
    """Raised when a GitHub API call fails"""

    def __init__(
        self, message: str, status_code: int | None = None, cause: Exception | None = None
    ):
        self.message = message
        self.status_code = status_code
        self.cause = cause
        super().__init__(message)


def parse_github_remote(url: str) -> tuple[str, str] | None:
    """
    Extract (owner, repo) from a GitHub clone URL

    Returns:
        (owner, repo), or None if the URL does not point at github.com
    """
    match = _GITHUB_REMOTE.match(url.strip())
    if not match:
        return None
    return match.group("owner"), match.group("repo")


class GitHubClient:
    """Minimal async GitHub API client (pull requests only)"""

    def __init__(
        self,
        token: str | None = None,
        api_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize GitHub client

        Args:
            token: API token (defaults to config.github_token, then GITHUB_TOKEN)
            api_url: API base URL (defaults to config.github_api_url)
            transport: Optional httpx transport (for tests)
        """
        self.token = token or config.github_token or os.getenv("GITHUB_TOKEN")
        self.api_url = (api_url or config.github_api_url).rstrip("/")

        headers = {"Accept": "application/vnd.github.v3+json"}
        if self.token:
            # 'token' for classic tokens (ghp_*), 'Bearer' for fine-grained (github_pat_*)
            prefix = "Bearer" if self.token.startswith("github_pat_") else "token"
            headers["Authorization"] = f"{prefix} {self.token}"

        self.client = httpx.AsyncClient(
            headers=headers,
            timeout=httpx.Timeout(config.github_timeout_seconds),
            follow_redirects=True,
            transport=transport,
        )

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    async def create_pull_request(
        self,
        owner: str,
        repo: str,
        head: str,
        base: str,
        title: str,
        body: str = "",
    ) -> str:
        """
        Open a pull request, or return the open one for the same head branch

        Args:
            owner: Repository owner
            repo: Repository name
            head: Branch containing the changes
            base: Branch to merge into
            title: Pull request title
            body: Pull request description

        Returns:
            str: HTML URL of the pull request

        Raises:
            GitHubApiError: If the API rejects the request
        """
        url = f"{self.api_url}/repos/{owner}/{repo}/pulls"
        payload = {"title": title, "head": head, "base": base, "body": body}

        try:
            response = await self.client.post(url, json=payload)
        except httpx.HTTPError as e:
            raise GitHubApiError(f"Failed to reach GitHub: {e}", cause=e) from e

        if response.status_code == 422:
            existing = await self._find_open_pull_request(owner, repo, head)
            if existing:
                logger.info(f"Pull request already open for {head}: {existing}")
                return existing

        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise GitHubApiError(
                f"Failed to create pull request on {owner}/{repo}: {response.text}",
                status_code=response.status_code,
                cause=e,
            ) from e

        html_url = response.json()["html_url"]
        logger.info(f"Opened pull request {html_url}")
        return html_url

    async def _find_open_pull_request(self, owner: str, repo: str, head: str) -> str | None:
        url = f"{self.api_url}/repos/{owner}/{repo}/pulls"
        try:
            response = await self.client.get(
                url, params={"head": f"{owner}:{head}", "state": "open"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to look up existing pull requests: {e}")
            return None

        pulls = response.json()
        if pulls:
            return pulls[0].get("html_url")
        return None

    async def close(self):
        """Close the HTTP client"""
        await self.client.aclose()
