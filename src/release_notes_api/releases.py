"""Helpers shared by every path that produces or merges releases.

Both the GitHub source (bulk fetch) and the webhook handler (single
event) build Release objects here, so tag links, timestamps and
prerequisite extraction are derived the same way.
"""

from __future__ import annotations

from datetime import datetime, timezone

from release_notes_api.logging_config import get_logger
from release_notes_api.schemas import Release

logger = get_logger(__name__)

ACTION_PUBLISHED = "published"
ACTION_EDITED = "edited"
HANDLED_ACTIONS = frozenset({ACTION_PUBLISHED, ACTION_EDITED})
EVENT_TYPE_RELEASE = "release"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
PREREQUISITES_MATCHER = "<!--upgrade-prerequisites-required-->"


def parse_timestamp(value: str | None, field: str = "timestamp") -> datetime | None:
    """Parse a GitHub timestamp ("2024-01-15T14:30:00Z") as UTC.

    A missing or malformed value is logged and returned as None; a bad
    timestamp never rejects a release.
    """
    if not value:
        return None
    if not isinstance(value, str):
        logger.error("timestamp_parse_failed", field=field, value=repr(value))
        return None
    try:
        return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError:
        logger.error("timestamp_parse_failed", field=field, value=value)
        return None


def extract_prerequisite(body: str) -> tuple[bool, str]:
    """Find upgrade prerequisites flagged in release notes.

    The notes mark prerequisites by wrapping them in a pair of
    PREREQUISITES_MATCHER comments. Any occurrence of the marker flags the
    release; the message is only set when the marker appears at least twice.

    Returns:
        (prerequisite, prerequisite_message)
    """
    start = body.find(PREREQUISITES_MATCHER)
    if start == -1:
        return False, ""
    end = body.rfind(PREREQUISITES_MATCHER)
    if end == start:
        return True, ""
    return True, body[start:end].replace(PREREQUISITES_MATCHER, "")


def build_release(
    tag_name: str,
    release_name: str = "",
    body: str = "",
    created_at: datetime | None = None,
    published_at: datetime | None = None,
    tag_link_base: str = "",
) -> Release:
    """Build a Release with its tag link and prerequisite fields derived."""
    prerequisite, message = extract_prerequisite(body)
    tag_link = f"{tag_link_base.rstrip('/')}/{tag_name}" if tag_name and tag_link_base else ""
    return Release(
        tag_name=tag_name,
        release_name=release_name,
        body=body,
        created_at=created_at,
        published_at=published_at,
        tag_link=tag_link,
        prerequisite=prerequisite,
        prerequisite_message=message,
    )


def merge_release(releases: list[Release], release: Release) -> list[Release]:
    """Merge one release into a newest-first list.

    A release whose tag is already present replaces that entry in place
    (last writer wins); a new tag is prepended. The input list is not
    modified.
    """
    merged = list(releases)
    for index, existing in enumerate(merged):
        if existing.tag_name == release.tag_name:
            merged[index] = release
            return merged
    return [release, *merged]
