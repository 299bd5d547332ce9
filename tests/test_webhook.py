"""Tests for webhook ingestion and the upsert rule.

Run with: pytest tests/test_webhook.py -v
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime

import pytest

from conftest import TAG_LINK_BASE, webhook_payload
from release_notes.errors import WebhookDecodeError
from release_notes.merge import upsert_release
from release_notes.prerequisite import PREREQUISITES_MARKER as MARKER
from release_notes.schemas import ZERO_TIME, Release
from release_notes.store import RELEASES_KEY, InMemoryReleaseStore, ReleaseCache
from release_notes.webhook import WebhookIngestor, parse_webhook_time

OLD_TIME = datetime(2021, 1, 1, tzinfo=UTC)


def cached_release(name: str, body: str = "old body") -> Release:
    return Release(
        tag_name=name,
        release_name=name,
        body=body,
        created_at=OLD_TIME,
        published_at=OLD_TIME,
        tag_link=f"{TAG_LINK_BASE}/{name}",
    )


@pytest.fixture
def cache(store: InMemoryReleaseStore) -> ReleaseCache:
    return ReleaseCache(store)


@pytest.fixture
def ingestor(cache: ReleaseCache) -> WebhookIngestor:
    return WebhookIngestor(cache, tag_link_base=TAG_LINK_BASE)


def seed(cache: ReleaseCache, *releases: Release) -> None:
    with cache.transaction() as txn:
        txn.replace(list(releases))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestParseWebhookTime:
    def test_valid_timestamp(self) -> None:
        assert parse_webhook_time("2022-04-01T08:30:00Z", "created_at") == datetime(
            2022, 4, 1, 8, 30, tzinfo=UTC
        )

    @pytest.mark.parametrize("value", ["", "yesterday", "2022-04-01 08:30:00", "2022-04-01T08:30:00+02:00"])
    def test_invalid_timestamp_falls_back_to_zero(self, value: str) -> None:
        assert parse_webhook_time(value, "created_at") == ZERO_TIME


class TestUpsertRelease:
    """Tests for upsert_release()."""

    def test_new_name_is_prepended(self) -> None:
        current = [cached_release("v2"), cached_release("v1")]
        merged = upsert_release(current, cached_release("v3", body="fresh"))
        assert [r.release_name for r in merged] == ["v3", "v2", "v1"]

    def test_existing_name_updates_body_only(self) -> None:
        current = [cached_release("v2"), cached_release("v1")]
        incoming = Release(
            tag_name="v1-retag",
            release_name="v1",
            body=f"{MARKER}new step{MARKER}",
            created_at=datetime(2023, 1, 1, tzinfo=UTC),
            published_at=datetime(2023, 1, 1, tzinfo=UTC),
            tag_link="elsewhere",
            prerequisite=True,
            prerequisite_message="new step",
        )
        merged = upsert_release(current, incoming)

        assert [r.release_name for r in merged] == ["v2", "v1"]
        updated = merged[1]
        assert updated.body == f"{MARKER}new step{MARKER}"
        assert updated.tag_name == "v1"
        assert updated.created_at == OLD_TIME
        assert updated.published_at == OLD_TIME
        assert updated.tag_link == f"{TAG_LINK_BASE}/v1"
        assert updated.prerequisite is False
        assert updated.prerequisite_message == ""

    def test_refresh_derived_recomputes_prerequisite(self) -> None:
        current = [cached_release("v1")]
        incoming = cached_release("v1", body=f"{MARKER}drain nodes{MARKER}")
        merged = upsert_release(current, incoming, refresh_derived=True)
        assert merged[0].prerequisite is True
        assert merged[0].prerequisite_message == "drain nodes"
        assert merged[0].created_at == OLD_TIME

    def test_input_is_not_mutated(self) -> None:
        original = cached_release("v1")
        current = [original]
        upsert_release(current, cached_release("v1", body="changed"))
        upsert_release(current, cached_release("v9"))
        assert current == [original]
        assert original.body == "old body"


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------


class TestIngest:
    """Tests for WebhookIngestor.ingest()."""

    def test_published_into_empty_cache(
        self, ingestor: WebhookIngestor, cache: ReleaseCache
    ) -> None:
        assert ingestor.ingest(webhook_payload(name="v0.6.2", body="notes")) is True

        releases = cache.read()
        assert len(releases) == 1
        release = releases[0]
        assert release.release_name == "v0.6.2"
        assert release.tag_name == "v0.6.2"
        assert release.body == "notes"
        assert release.tag_link == f"{TAG_LINK_BASE}/v0.6.2"
        assert release.created_at == datetime(2022, 4, 1, 8, 30, tzinfo=UTC)
        assert release.published_at == datetime(2022, 4, 1, 9, 0, tzinfo=UTC)

    def test_new_release_is_prepended(
        self, ingestor: WebhookIngestor, cache: ReleaseCache
    ) -> None:
        seed(cache, cached_release("v2"), cached_release("v1"))
        ingestor.ingest(webhook_payload(name="v3"))
        assert [r.release_name for r in cache.read()] == ["v3", "v2", "v1"]

    def test_edited_updates_existing_body_in_place(
        self, ingestor: WebhookIngestor, cache: ReleaseCache
    ) -> None:
        seed(cache, cached_release("v2"), cached_release("v1"), cached_release("v0"))

        assert ingestor.ingest(webhook_payload(action="edited", name="v1", body="fixed typo"))

        releases = cache.read()
        assert [r.release_name for r in releases] == ["v2", "v1", "v0"]
        assert releases[1].body == "fixed typo"
        assert releases[1].created_at == OLD_TIME
        assert releases[1].published_at == OLD_TIME
        assert releases[0].body == "old body"
        assert releases[2].body == "old body"

    def test_published_twice_keeps_one_entry(
        self, ingestor: WebhookIngestor, cache: ReleaseCache
    ) -> None:
        ingestor.ingest(webhook_payload(name="v1", body="first"))
        ingestor.ingest(webhook_payload(name="v1", body="second"))
        releases = cache.read()
        assert len(releases) == 1
        assert releases[0].body == "second"

    def test_prerequisite_extracted_for_new_release(
        self, ingestor: WebhookIngestor, cache: ReleaseCache
    ) -> None:
        ingestor.ingest(webhook_payload(body=f"intro{MARKER}scale down{MARKER}"))
        release = cache.read()[0]
        assert release.prerequisite is True
        assert release.prerequisite_message == "scale down"

    def test_edit_keeps_prerequisite_flag_by_default(
        self, ingestor: WebhookIngestor, cache: ReleaseCache
    ) -> None:
        seed(cache, cached_release("v1"))
        ingestor.ingest(
            webhook_payload(action="edited", name="v1", body=f"{MARKER}x{MARKER}")
        )
        assert cache.read()[0].prerequisite is False

    def test_edit_refreshes_prerequisite_when_enabled(self, cache: ReleaseCache) -> None:
        ingestor = WebhookIngestor(
            cache, tag_link_base=TAG_LINK_BASE, refresh_derived_on_edit=True
        )
        seed(cache, cached_release("v1"))
        ingestor.ingest(
            webhook_payload(action="edited", name="v1", body=f"{MARKER}x{MARKER}")
        )
        release = cache.read()[0]
        assert release.prerequisite is True
        assert release.prerequisite_message == "x"

    @pytest.mark.parametrize("action", ["created", "deleted", "unpublished", "prereleased", ""])
    def test_other_actions_are_ignored(
        self, ingestor: WebhookIngestor, cache: ReleaseCache, action: str
    ) -> None:
        seed(cache, cached_release("v1"))
        assert ingestor.ingest(webhook_payload(action=action, name="v2")) is False
        assert [r.release_name for r in cache.read()] == ["v1"]

    def test_ignored_action_does_not_need_release(self, ingestor: WebhookIngestor) -> None:
        assert ingestor.ingest(b'{"action": "deleted"}') is False

    def test_bad_timestamps_are_not_fatal(
        self, ingestor: WebhookIngestor, cache: ReleaseCache
    ) -> None:
        payload = webhook_payload(created_at="not-a-time", published_at="2022-13-40T00:00:00Z")
        assert ingestor.ingest(payload) is True
        release = cache.read()[0]
        assert release.created_at == ZERO_TIME
        assert release.published_at == ZERO_TIME

    @pytest.mark.parametrize(
        "payload",
        [
            b"",
            b"not json",
            b"[1, 2]",
            b'{"release": {}}',
            b'{"action": 7}',
            b'{"action": "published"}',
            b'{"action": "published", "release": {"name": "v1"}}',
            b'{"action": "edited", "release": {"name": "v1", "tag_name": "v1", '
            b'"created_at": "", "published_at": "", "body": null}}',
        ],
    )
    def test_malformed_payload_raises(
        self, ingestor: WebhookIngestor, cache: ReleaseCache, payload: bytes
    ) -> None:
        with pytest.raises(WebhookDecodeError):
            ingestor.ingest(payload)
        assert cache.read() == []

    def test_mistyped_cache_is_treated_as_empty(
        self, ingestor: WebhookIngestor, store: InMemoryReleaseStore, cache: ReleaseCache
    ) -> None:
        store.set(RELEASES_KEY, {"unexpected": "shape"})
        assert ingestor.ingest(webhook_payload(name="v1")) is True
        assert [r.release_name for r in cache.read()] == ["v1"]

    def test_concurrent_deliveries_lose_no_release(
        self, ingestor: WebhookIngestor, cache: ReleaseCache
    ) -> None:
        names = [f"v0.{i}.0" for i in range(30)]
        start = threading.Barrier(len(names))

        def deliver(name: str) -> None:
            start.wait()
            ingestor.ingest(webhook_payload(name=name))

        threads = [threading.Thread(target=deliver, args=(n,)) for n in names]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert sorted(r.release_name for r in cache.read()) == sorted(names)
