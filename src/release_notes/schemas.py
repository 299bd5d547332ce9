"""Pydantic models for the data that flows through the release notes service.

There are three families of models here:
- Domain models served to callers (Release, Module), serialized with
  camelCase keys
- GitHub REST records returned by the releases listing (RemoteRelease)
- Webhook payloads, validated only for the fields the service consumes
  (WebhookPayload, WebhookRelease)
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Value used when a timestamp could not be parsed
ZERO_TIME = datetime(1, 1, 1, tzinfo=UTC)

WEBHOOK_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


# ---------------------------------------------------------------------------
# Domain Models
# ---------------------------------------------------------------------------


class CamelModel(BaseModel):
    """Base model that reads snake_case or camelCase and writes camelCase."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        serialize_by_alias=True,
    )


class Release(CamelModel):
    """One published release of the tracked project.

    Attributes:
        tag_name: Source-control tag the release points at
        release_name: Human-readable title; the de-duplication key for webhooks
        body: Raw release description, may embed a prerequisite block
        created_at: When the release was created (ZERO_TIME if unparseable)
        published_at: When the release was published (ZERO_TIME if unparseable)
        tag_link: URL of the tag page on GitHub
        prerequisite: Whether the body carries the prerequisite marker
        prerequisite_message: Text inside the prerequisite block, if closed
    """

    tag_name: str = Field(..., description="Source-control tag name")
    release_name: str = Field(..., description="Release title")
    body: str = Field("", description="Release description")
    created_at: datetime = Field(ZERO_TIME, description="Creation time")
    published_at: datetime = Field(ZERO_TIME, description="Publication time")
    tag_link: str = Field("", description="Link to the tag page")
    prerequisite: bool = Field(False, description="Upgrade prerequisites present")
    prerequisite_message: str = Field(
        "", description="Upgrade prerequisite text (meaningful only if prerequisite)"
    )


class Module(CamelModel):
    """An installable module advertised to clients."""

    id: int
    name: str
    base_min_version_supported: str = ""
    is_included_in_legacy_full_package: bool = False
    description: str = ""
    title: str = ""
    icon: str = ""
    info: str = ""
    assets: list[str] = Field(default_factory=list)
    dependent_modules: list[int] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# GitHub REST Models
# ---------------------------------------------------------------------------


class RemoteRelease(BaseModel):
    """A release record from GET /repos/{owner}/{repo}/releases.

    Every field is required: the listing is expected to always populate
    them, and a record that does not is a validation failure.
    """

    tag_name: str
    name: str
    body: str
    created_at: datetime
    published_at: datetime


# ---------------------------------------------------------------------------
# Webhook Models
# ---------------------------------------------------------------------------


class WebhookRelease(BaseModel):
    """The `release` object of a GitHub release webhook.

    Timestamps are kept as strings so a malformed value degrades to
    ZERO_TIME instead of rejecting the event.
    """

    name: str
    tag_name: str
    created_at: str
    published_at: str
    body: str


class WebhookEnvelope(BaseModel):
    """The outer webhook object, validated before the action is checked."""

    action: str


class WebhookPayload(WebhookEnvelope):
    """A release webhook whose action is handled by the service."""

    release: WebhookRelease
