"""Extraction of upgrade prerequisites from release bodies.

Release authors flag releases that need manual steps before upgrading by
wrapping those steps in an HTML comment marker:

    <!--upgrade-prerequisites-required-->
    Run the database migration job first.
    <!--upgrade-prerequisites-required-->

A single marker still flags the release, but carries no message.
"""

from __future__ import annotations

from release_notes.schemas import Release

PREREQUISITES_MARKER = "<!--upgrade-prerequisites-required-->"


def extract_prerequisite(body: str) -> tuple[bool, str]:
    """Detect a prerequisite block in a release body.

    Args:
        body: Raw release description

    Returns:
        (is_prerequisite, message). The message is the text between the
        first and last marker with any marker left inside it removed, and
        is empty when the marker is missing or appears only once.
    """
    start = body.find(PREREQUISITES_MARKER)
    if start == -1:
        return False, ""

    end = body.rfind(PREREQUISITES_MARKER)
    if end == start:
        return True, ""

    inner = body[start + len(PREREQUISITES_MARKER) : end]
    return True, inner.replace(PREREQUISITES_MARKER, "")


def apply_prerequisite(release: Release) -> Release:
    """Fill the prerequisite fields of a release from its body, in place."""
    release.prerequisite, release.prerequisite_message = extract_prerequisite(
        release.body
    )
    return release
