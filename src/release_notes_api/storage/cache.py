"""In-memory release cache with a blob-storage staleness marker.

The full release list lives in process memory. Only the newest tag name
is written to blob storage ("latest.txt"). A read compares that marker
with the newest cached tag: if they match the cache is served, if not
the caller refetches. This lets every replica notice that a webhook
landed on another replica without re-reading the full list.
"""

from __future__ import annotations

import threading

from release_notes_api.logging_config import get_logger
from release_notes_api.schemas import Release
from release_notes_api.storage.base import ReleaseMutation
from release_notes_api.storage.blob import BlobStorage

logger = get_logger(__name__)

LATEST_MARKER_KEY = "latest.txt"


class CachedReleaseStore:
    """Release store backed by process memory plus a latest-tag marker.

    Writers are serialized by a lock. Readers are not: they see either the
    old or the new list, because the list reference is swapped only after
    the marker upload succeeded.
    """

    def __init__(self, blob_storage: BlobStorage, marker_key: str = LATEST_MARKER_KEY) -> None:
        self._blob = blob_storage
        self._marker_key = marker_key
        self._releases: list[Release] = []
        self._lock = threading.Lock()

    @property
    def cached(self) -> list[Release]:
        return list(self._releases)

    def latest_marker(self) -> str | None:
        text = self._blob.get_text(self._marker_key)
        if text is None:
            return None
        return text.replace("\n", "").strip()

    def load(self) -> list[Release] | None:
        marker = self.latest_marker()
        releases = self._releases
        if marker is None:
            logger.info("latest_marker_missing", key=self._marker_key)
            return None
        cached_tag = releases[0].tag_name if releases else ""
        if cached_tag != marker:
            logger.info("release_cache_stale", cached_tag=cached_tag, latest_tag=marker)
            return None
        return list(releases)

    def replace(self, releases: list[Release]) -> None:
        if not releases:
            logger.warning("ignoring_empty_release_list")
            return
        with self._lock:
            self._install(list(releases))

    def update(self, mutate: ReleaseMutation) -> list[Release]:
        with self._lock:
            releases = mutate(list(self._releases))
            self._install(releases)
            return list(releases)

    def close(self) -> None:
        return None

    def _install(self, releases: list[Release]) -> None:
        # Marker first: a failed upload must leave the cache untouched.
        if releases:
            self._blob.put_text(self._marker_key, releases[0].tag_name)
        self._releases = releases
        logger.info(
            "release_cache_updated",
            count=len(releases),
            latest_tag=releases[0].tag_name if releases else "",
        )
