"""Warm-path updater: merge GitHub release webhooks into the cache.

Only `published` and `edited` events change the cache. A release whose
name is already cached has its body replaced where it stands; an unseen
release is put at the front of the collection so new releases surface
first.
"""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import ValidationError

from release_notes.errors import WebhookDecodeError
from release_notes.fetcher import build_tag_link
from release_notes.logging_config import get_logger
from release_notes.merge import upsert_release
from release_notes.prerequisite import apply_prerequisite
from release_notes.schemas import (
    WEBHOOK_TIME_FORMAT,
    ZERO_TIME,
    Release,
    WebhookEnvelope,
    WebhookPayload,
)
from release_notes.store import ReleaseCache

logger = get_logger(__name__)

ACTION_PUBLISHED = "published"
ACTION_EDITED = "edited"
HANDLED_ACTIONS = frozenset({ACTION_PUBLISHED, ACTION_EDITED})


def parse_webhook_time(value: str, field_name: str) -> datetime:
    """Parse a webhook timestamp, falling back to ZERO_TIME on failure."""
    try:
        return datetime.strptime(value, WEBHOOK_TIME_FORMAT).replace(tzinfo=UTC)
    except ValueError as exc:
        logger.error(
            "timestamp_parse_failed",
            field=field_name,
            value=value,
            error=str(exc),
        )
        return ZERO_TIME


class WebhookIngestor:
    """Applies release webhook payloads to the release cache."""

    def __init__(
        self,
        cache: ReleaseCache,
        tag_link_base: str,
        refresh_derived_on_edit: bool = False,
    ) -> None:
        self._cache = cache
        self._tag_link_base = tag_link_base
        self._refresh_derived = refresh_derived_on_edit

    def ingest(self, payload: bytes) -> bool:
        """Decode a webhook payload and upsert its release into the cache.

        Args:
            payload: Raw request body of the webhook delivery

        Returns:
            True if the release was merged, False if the action is ignored

        Raises:
            WebhookDecodeError: If the payload is malformed or lacks a
                                consumed field
        """
        try:
            envelope = WebhookEnvelope.model_validate_json(payload)
        except ValidationError as exc:
            logger.error("webhook_decode_failed", error=str(exc))
            raise WebhookDecodeError(f"invalid webhook payload: {exc}") from exc

        if envelope.action not in HANDLED_ACTIONS:
            logger.warning("webhook_action_ignored", action=envelope.action)
            return False

        try:
            event = WebhookPayload.model_validate_json(payload)
        except ValidationError as exc:
            logger.error("webhook_decode_failed", action=envelope.action, error=str(exc))
            raise WebhookDecodeError(f"invalid release in webhook payload: {exc}") from exc

        data = event.release
        incoming = apply_prerequisite(
            Release(
                tag_name=data.tag_name,
                release_name=data.name,
                body=data.body,
                created_at=parse_webhook_time(data.created_at, "created_at"),
                published_at=parse_webhook_time(data.published_at, "published_at"),
                tag_link=build_tag_link(self._tag_link_base, data.tag_name),
            )
        )

        with self._cache.transaction() as txn:
            merged = upsert_release(txn.releases, incoming, self._refresh_derived)
            txn.replace(merged)

        logger.info(
            "webhook_release_merged",
            action=event.action,
            release_name=incoming.release_name,
            tag_name=incoming.tag_name,
            count=len(merged),
        )
        return True
