"""Release notes service: the façade the HTTP layer talks to.

This module ties together:
- The guarded release cache (store.py)
- The cold-path fetcher (fetcher.py)
- The webhook ingestor (webhook.py)
- The module catalog (modules.py)

Queries are answered from the cache when it holds anything; otherwise
the fetcher goes to GitHub. Webhook deliveries update the cache
independently of queries.
"""

from __future__ import annotations

from release_notes.config import ServiceConfig
from release_notes.context.github import GitHubClient, GitHubClientProtocol
from release_notes.fetcher import ReleaseFetcher
from release_notes.logging_config import get_logger
from release_notes.modules import ModuleCatalog, load_module_catalog
from release_notes.schemas import Module, Release
from release_notes.store import InMemoryReleaseStore, ReleaseCache, ReleaseStore
from release_notes.webhook import WebhookIngestor

logger = get_logger(__name__)


class ReleaseNoteService:
    """Serves cached release notes and module metadata.

    Usage:
        service = ReleaseNoteService(client=GitHubClient(), config=load_config())
        releases = service.get_releases()
        service.update_releases(request_body)
    """

    def __init__(
        self,
        client: GitHubClientProtocol,
        config: ServiceConfig | None = None,
        store: ReleaseStore | None = None,
        catalog: ModuleCatalog | None = None,
        warm: bool = True,
    ) -> None:
        """Wire the service and, if warm, prefill the cache.

        Args:
            client: GitHub client used on cache misses
            config: Service configuration. Uses defaults if None.
            store: Backing key/value store. An in-memory TTL store if None.
            catalog: Module catalog. Loaded from config if None.
            warm: Fetch releases once now; failures are logged, not raised
        """
        self.config = config or ServiceConfig()
        if store is None:
            store = InMemoryReleaseStore(default_ttl=self.config.cache_ttl_seconds)
        self.cache = ReleaseCache(store)

        tag_link_base = self.config.resolved_tag_link_base()
        self.fetcher = ReleaseFetcher(
            client,
            self.cache,
            org=self.config.github.org,
            repo=self.config.github.repo,
            tag_link_base=tag_link_base,
            attempts=self.config.fetch_attempts,
            refresh_derived_on_edit=self.config.refresh_derived_on_edit,
        )
        self.ingestor = WebhookIngestor(
            self.cache,
            tag_link_base=tag_link_base,
            refresh_derived_on_edit=self.config.refresh_derived_on_edit,
        )
        self.catalog = catalog or ModuleCatalog(
            load_module_catalog(self.config.modules_config_path)
        )

        if warm:
            try:
                self.get_releases()
            except Exception as e:
                # The service must still start; the next query retries.
                logger.error("release_cache_warmup_failed", error=str(e), exc_info=True)

    @classmethod
    def from_config(cls, config: ServiceConfig) -> ReleaseNoteService:
        """Build a service talking to the real GitHub API."""
        client = GitHubClient(
            token=config.github.token,
            base_url=config.github.api_url,
            timeout=config.github.timeout,
        )
        return cls(client=client, config=config)

    def get_releases(self) -> list[Release]:
        """Return the cached releases, fetching them from GitHub on a miss.

        Raises:
            ReleasesFetchExhaustedError: If the cache is empty and every
                                         fetch attempt failed
        """
        cached = self.cache.read()
        if cached:
            return cached
        logger.info("release_cache_miss")
        return self.fetcher.fetch_all()

    def update_releases(self, payload: bytes) -> bool:
        """Apply a release webhook delivery. See WebhookIngestor.ingest."""
        return self.ingestor.ingest(payload)

    def invalidate(self) -> None:
        """Forget the cached releases."""
        self.cache.invalidate()

    def get_modules(self) -> list[Module]:
        return self.catalog.modules()

    def get_modules_v2(self) -> list[Module]:
        return self.catalog.modules_v2()

    def get_module_by_name(self, name: str) -> Module:
        """Return the named module, or an empty module (id 0) if unknown."""
        module = self.catalog.module_by_name(name)
        if module is None:
            logger.info("module_not_found", name=name)
            return Module(id=0, name="")
        return module
