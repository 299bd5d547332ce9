"""Merging releases into a cached collection by release name."""

from __future__ import annotations

from release_notes.prerequisite import extract_prerequisite
from release_notes.schemas import Release


def upsert_release(
    releases: list[Release],
    incoming: Release,
    refresh_derived: bool = False,
) -> list[Release]:
    """Merge one release into a collection by release name.

    Matching entries get the incoming body and keep every other field,
    unless refresh_derived is set, in which case the prerequisite fields
    are recomputed from the new body. Without a match the incoming
    release is prepended. The input list and its items are not mutated.
    """
    merged: list[Release] = []
    found = False
    for release in releases:
        if release.release_name == incoming.release_name:
            update: dict = {"body": incoming.body}
            if refresh_derived:
                update["prerequisite"], update["prerequisite_message"] = (
                    extract_prerequisite(incoming.body)
                )
            release = release.model_copy(update=update)
            found = True
        merged.append(release)

    if not found:
        merged.insert(0, incoming)
    return merged


def reapply_upserts(
    fetched: list[Release],
    snapshot: list[Release],
    current: list[Release],
    refresh_derived: bool = False,
) -> list[Release]:
    """Carry releases upserted since `snapshot` over onto `fetched`.

    Upserts never mutate cached entries, so every entry of `current` that
    is not one of the `snapshot` objects was written after the snapshot
    was taken. Those are upserted into `fetched` as if they had arrived
    after it, keeping their relative order at the front.
    """
    seen = {id(release) for release in snapshot}
    merged = fetched
    for release in reversed(current):
        if id(release) not in seen:
            merged = upsert_release(merged, release, refresh_derived)
    return merged
