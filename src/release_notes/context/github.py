"""GitHub API client for listing repository releases.

Design notes:
- Uses httpx; calls are synchronous because the fetch path runs on a
  worker thread and blocks on the network call
- Only the first page of the listing is requested
- HTTP and transport failures are translated into GitHubAPIError (404
  becomes RemoteNotFoundError) so the retry loop can tell them apart
- Records are validated into RemoteRelease; a record missing a required
  field raises pydantic.ValidationError, which is not retried
- Uses a Protocol so the fetcher doesn't depend on the concrete class

GitHub API docs: https://docs.github.com/en/rest/releases/releases
"""

from __future__ import annotations

import os
from typing import Protocol

import httpx

from release_notes.config import DEFAULT_GITHUB_API_URL
from release_notes.errors import GitHubAPIError, RemoteNotFoundError
from release_notes.schemas import RemoteRelease

# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class GitHubClientProtocol(Protocol):
    """Interface for listing releases of a repository."""

    def list_releases(self, org: str, repo: str) -> list[RemoteRelease]:
        """List releases of org/repo, newest first.

        Raises:
            RemoteNotFoundError: If the repository does not exist
            GitHubAPIError: On any other transport or HTTP failure
        """
        ...


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class GitHubClient:
    """Real GitHub API client using httpx.

    Usage:
        client = GitHubClient(token="ghp_...")
        releases = client.list_releases("devtron-labs", "devtron")
    """

    def __init__(
        self,
        token: str | None = None,
        base_url: str = DEFAULT_GITHUB_API_URL,
        timeout: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            token: GitHub personal access token. Falls back to
                   GITHUB_TOKEN environment variable if not provided.
            base_url: API root, override for GitHub Enterprise
            timeout: Per-request timeout in seconds
            transport: Custom httpx transport (used by tests)
        """
        self._token = token or os.environ.get("GITHUB_TOKEN", "")
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            self._headers["Authorization"] = f"Bearer {self._token}"
        self._base_url = base_url
        self._timeout = timeout
        self._transport = transport

    def list_releases(self, org: str, repo: str) -> list[RemoteRelease]:
        """Fetch the first page of releases for org/repo.

        Args:
            org: Repository owner
            repo: Repository name

        Returns:
            The releases in the order GitHub returned them

        Raises:
            RemoteNotFoundError: If GitHub answers 404
            GitHubAPIError: On other HTTP errors or transport failures
            pydantic.ValidationError: If a record lacks a required field
        """
        path = f"/repos/{org}/{repo}/releases"
        try:
            with httpx.Client(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                resp = client.get(path)
        except httpx.HTTPError as exc:
            raise GitHubAPIError(f"GET {path} failed: {exc}") from exc

        if resp.status_code == httpx.codes.NOT_FOUND:
            raise RemoteNotFoundError(f"GET {path} returned 404")
        if resp.is_error:
            raise GitHubAPIError(
                f"GET {path} returned {resp.status_code}", status_code=resp.status_code
            )

        try:
            items = resp.json()
        except ValueError as exc:
            raise GitHubAPIError(f"GET {path} returned invalid JSON: {exc}") from exc

        return [RemoteRelease.model_validate(item) for item in items]


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockGitHubClient:
    """Mock GitHub client that replays predefined outcomes.

    Each call to list_releases consumes the next outcome: a list of
    releases (or release dicts) is returned, an exception is raised. The
    last outcome repeats once the queue is exhausted.

    Usage:
        client = MockGitHubClient([GitHubAPIError("boom"), [release_dict]])
        client.list_releases("org", "repo")  # raises
        client.list_releases("org", "repo")  # returns [RemoteRelease]
    """

    def __init__(self, outcomes: list | None = None) -> None:
        """Initialize with the outcomes to replay.

        Args:
            outcomes: Sequence of release lists and/or exceptions
        """
        self._outcomes = list(outcomes) if outcomes else [[]]
        self.calls: list[tuple[str, str]] = []

    def list_releases(self, org: str, repo: str) -> list[RemoteRelease]:
        self.calls.append((org, repo))
        index = min(len(self.calls), len(self._outcomes)) - 1
        outcome = self._outcomes[index]
        if isinstance(outcome, Exception):
            raise outcome
        return [
            item if isinstance(item, RemoteRelease) else RemoteRelease.model_validate(item)
            for item in outcome
        ]
