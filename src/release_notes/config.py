"""Service configuration.

Settings come from environment variables and are validated by pydantic,
so a malformed value fails at startup rather than on the first request.

Environment variables:
    GITHUB_ORG / GITHUB_REPO          Repository whose releases are served
    GITHUB_TOKEN                      Optional token for higher rate limits
    GITHUB_API_URL                    API base URL (GitHub Enterprise)
    RELEASE_TAG_LINK_BASE             Base URL for tag page links
    RELEASE_CACHE_TTL_SECONDS         Cache expiry, 0 keeps entries forever
    RELEASE_FETCH_ATTEMPTS            Attempts before a fetch gives up
    RELEASE_REFRESH_DERIVED_ON_EDIT   Recompute prerequisites on webhook edits
    MODULES_CONFIG_PATH               YAML file with the module catalog
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import BaseModel, Field

DEFAULT_GITHUB_ORG = "devtron-labs"
DEFAULT_GITHUB_REPO = "devtron"
DEFAULT_GITHUB_API_URL = "https://api.github.com"


class GitHubConfig(BaseModel):
    """Where releases are fetched from."""

    org: str = DEFAULT_GITHUB_ORG
    repo: str = DEFAULT_GITHUB_REPO
    token: str | None = None
    api_url: str = DEFAULT_GITHUB_API_URL
    timeout: float = 30.0


class ServiceConfig(BaseModel):
    """Top-level configuration for the release notes service.

    Attributes:
        github: Remote repository and client settings
        tag_link_base: Prefix for Release.tag_link; defaults to the
                       repository's releases/tag page
        cache_ttl_seconds: Store expiry for the cached collection
        fetch_attempts: Total attempts for a cold-path fetch
        refresh_derived_on_edit: Recompute prerequisite fields when a
                                 webhook edits an existing release
        modules_config_path: Optional YAML module catalog
    """

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    tag_link_base: str | None = None
    cache_ttl_seconds: float = Field(0, ge=0)
    fetch_attempts: int = Field(3, ge=1)
    refresh_derived_on_edit: bool = False
    modules_config_path: str | None = None

    def resolved_tag_link_base(self) -> str:
        if self.tag_link_base:
            return self.tag_link_base.rstrip("/")
        return f"https://github.com/{self.github.org}/{self.github.repo}/releases/tag"


def _env_bool(value: str | None) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def load_config(environ: Mapping[str, str] | None = None) -> ServiceConfig:
    """Build a ServiceConfig from environment variables.

    Args:
        environ: Mapping to read from; defaults to os.environ

    Raises:
        ValueError: If a variable holds a value that fails validation
    """
    env = os.environ if environ is None else environ

    github = GitHubConfig(
        org=env.get("GITHUB_ORG", DEFAULT_GITHUB_ORG),
        repo=env.get("GITHUB_REPO", DEFAULT_GITHUB_REPO),
        token=env.get("GITHUB_TOKEN") or None,
        api_url=env.get("GITHUB_API_URL", DEFAULT_GITHUB_API_URL),
    )
    raw = {
        "github": github,
        "tag_link_base": env.get("RELEASE_TAG_LINK_BASE") or None,
        "cache_ttl_seconds": env.get("RELEASE_CACHE_TTL_SECONDS", "0"),
        "fetch_attempts": env.get("RELEASE_FETCH_ATTEMPTS", "3"),
        "refresh_derived_on_edit": _env_bool(env.get("RELEASE_REFRESH_DERIVED_ON_EDIT")),
        "modules_config_path": env.get("MODULES_CONFIG_PATH") or None,
    }
    try:
        return ServiceConfig.model_validate(raw)
    except Exception as exc:
        raise ValueError(f"Invalid service configuration: {exc}") from exc
