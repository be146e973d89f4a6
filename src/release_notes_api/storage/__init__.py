"""Release stores.

Two implementations of ReleaseStore, chosen once at startup:
- CachedReleaseStore: process memory + latest-tag marker in blob storage
- DatabaseReleaseStore: `release_notes` table with a single active row
"""

from __future__ import annotations

from release_notes_api.config import Settings
from release_notes_api.logging_config import get_logger
from release_notes_api.storage.base import ReleaseStore
from release_notes_api.storage.blob import build_blob_storage
from release_notes_api.storage.cache import CachedReleaseStore
from release_notes_api.storage.database import DatabaseReleaseStore

logger = get_logger(__name__)


def build_release_store(settings: Settings) -> ReleaseStore:
    """Build the store selected by configuration.

    Blob storage enabled means the cache-backed store and no database
    connection at all; otherwise the relational store, with its table
    created if missing.
    """
    if settings.blob.enabled:
        logger.info("using_cached_release_store", provider=settings.blob.provider.value)
        return CachedReleaseStore(build_blob_storage(settings.blob))

    logger.info("using_database_release_store")
    store = DatabaseReleaseStore.from_config(settings.database)
    store.create_schema()
    return store


__all__ = [
    "CachedReleaseStore",
    "DatabaseReleaseStore",
    "ReleaseStore",
    "build_release_store",
]
