"""Shared fixtures for the release notes tests."""

from __future__ import annotations

import json

import pytest

from release_notes.config import GitHubConfig, ServiceConfig
from release_notes.store import InMemoryReleaseStore

TAG_LINK_BASE = "https://github.com/devtron-labs/devtron/releases/tag"


def remote_release(tag: str, name: str | None = None, body: str = "notes") -> dict:
    """A GitHub release record as returned by the releases listing."""
    return {
        "tag_name": tag,
        "name": name or tag,
        "body": body,
        "created_at": "2022-03-01T10:00:00Z",
        "published_at": "2022-03-02T10:00:00Z",
        "draft": False,
        "html_url": f"https://github.com/devtron-labs/devtron/releases/tag/{tag}",
    }


def webhook_payload(
    action: str = "published",
    name: str = "v0.6.2",
    tag: str | None = None,
    body: str = "new notes",
    created_at: str = "2022-04-01T08:30:00Z",
    published_at: str = "2022-04-01T09:00:00Z",
) -> bytes:
    """A GitHub release webhook body."""
    return json.dumps(
        {
            "action": action,
            "release": {
                "name": name,
                "tag_name": tag or name,
                "created_at": created_at,
                "published_at": published_at,
                "body": body,
                "author": {"login": "release-bot"},
            },
            "repository": {"full_name": "devtron-labs/devtron"},
        }
    ).encode()


@pytest.fixture
def config() -> ServiceConfig:
    return ServiceConfig(github=GitHubConfig(org="devtron-labs", repo="devtron"))


@pytest.fixture
def store() -> InMemoryReleaseStore:
    return InMemoryReleaseStore()
