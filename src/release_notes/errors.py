"""Exception types raised by the release notes service.

Every error the service surfaces to its callers derives from
ReleaseNotesError, so the API layer can register one handler per kind
and fall back to a generic 500 for anything else.
"""

from __future__ import annotations


class ReleaseNotesError(Exception):
    """Base class for release notes service errors."""


class WebhookDecodeError(ReleaseNotesError):
    """The webhook payload was not valid JSON or lacked a consumed field."""


class GitHubAPIError(ReleaseNotesError):
    """A GitHub API call failed at the transport or HTTP level.

    Attributes:
        status_code: HTTP status returned by GitHub, None for transport errors
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RemoteNotFoundError(GitHubAPIError):
    """GitHub answered 404 for the configured organization/repository."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=404)


class ReleasesFetchExhaustedError(ReleaseNotesError):
    """Every attempt to list releases from GitHub failed."""

    def __init__(self, attempts: int) -> None:
        super().__init__(
            f"failed operation on fetching releases from github, attempted {attempts} times"
        )
        self.attempts = attempts
