"""Cold-path loader: list releases from GitHub and fill the cache.

The fetcher is used when the cache holds nothing. It asks GitHub for the
configured repository's releases, retrying a bounded number of times, maps
the records to Release objects and writes them to the cache.

Retry behaviour:
- A 404 (RemoteNotFoundError) and any other GitHubAPIError are both
  logged and retried; they are logged as different events so a
  misconfigured repository is easy to spot
- There is no wait between attempts
- A record that fails validation is not retried; the error propagates
"""

from __future__ import annotations

from tenacity import RetryError, Retrying, retry_if_exception_type, stop_after_attempt

from release_notes.context.github import GitHubClientProtocol
from release_notes.errors import GitHubAPIError, ReleasesFetchExhaustedError, RemoteNotFoundError
from release_notes.logging_config import get_logger
from release_notes.merge import reapply_upserts
from release_notes.prerequisite import apply_prerequisite
from release_notes.schemas import Release, RemoteRelease
from release_notes.store import ReleaseCache

logger = get_logger(__name__)


def build_tag_link(tag_link_base: str, tag_name: str) -> str:
    return f"{tag_link_base}/{tag_name}"


def release_from_remote(item: RemoteRelease, tag_link_base: str) -> Release:
    """Map a GitHub release record to a Release."""
    release = Release(
        tag_name=item.tag_name,
        release_name=item.name,
        body=item.body,
        created_at=item.created_at,
        published_at=item.published_at,
        tag_link=build_tag_link(tag_link_base, item.tag_name),
    )
    return apply_prerequisite(release)


class ReleaseFetcher:
    """Fetches all releases of one repository with bounded retries.

    Usage:
        fetcher = ReleaseFetcher(client, cache, org="devtron-labs",
                                 repo="devtron", tag_link_base=base)
        releases = fetcher.fetch_all()
    """

    def __init__(
        self,
        client: GitHubClientProtocol,
        cache: ReleaseCache,
        org: str,
        repo: str,
        tag_link_base: str,
        attempts: int = 3,
        refresh_derived_on_edit: bool = False,
    ) -> None:
        self._client = client
        self._cache = cache
        self._org = org
        self._repo = repo
        self._tag_link_base = tag_link_base
        self._attempts = attempts
        self._refresh_derived = refresh_derived_on_edit

    def fetch_all(self) -> list[Release]:
        """List releases from GitHub and overwrite the cache with them.

        Webhook deliveries merged into the cache while the request was in
        flight are re-applied on top of the fetched list, so they are not
        lost to the overwrite.

        Returns:
            The cached collection: the releases in the order GitHub
            returned them, plus any concurrent webhook upserts

        Raises:
            ReleasesFetchExhaustedError: If every attempt failed
            pydantic.ValidationError: If GitHub returned a malformed record
        """
        snapshot = self._cache.read()
        retrying = Retrying(
            stop=stop_after_attempt(self._attempts),
            retry=retry_if_exception_type(GitHubAPIError),
        )
        try:
            for attempt in retrying:
                with attempt:
                    remote = self._list_remote(attempt.retry_state.attempt_number)
        except RetryError as exc:
            raise ReleasesFetchExhaustedError(self._attempts) from exc.last_attempt.exception()

        releases = [release_from_remote(item, self._tag_link_base) for item in remote]

        with self._cache.transaction() as txn:
            releases = reapply_upserts(
                releases, snapshot, txn.releases, self._refresh_derived
            )
            txn.replace(releases)

        logger.info(
            "releases_fetched",
            org=self._org,
            repo=self._repo,
            count=len(releases),
        )
        return releases

    def _list_remote(self, attempt_number: int) -> list[RemoteRelease]:
        try:
            return self._client.list_releases(self._org, self._repo)
        except RemoteNotFoundError as exc:
            logger.error(
                "releases_not_found",
                org=self._org,
                repo=self._repo,
                attempt=attempt_number,
                error=str(exc),
            )
            raise
        except GitHubAPIError as exc:
            logger.error(
                "releases_fetch_failed",
                org=self._org,
                repo=self._repo,
                attempt=attempt_number,
                status_code=exc.status_code,
                error=str(exc),
            )
            raise
