"""Shared fixtures for the release notes tests."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine

from release_notes_api.releases import build_release
from release_notes_api.schemas import Release
from release_notes_api.storage.blob import LocalBlobStorage
from release_notes_api.storage.cache import CachedReleaseStore
from release_notes_api.storage.database import DatabaseReleaseStore

TAG_LINK_BASE = "https://github.com/devtron-labs/devtron/releases/tag"


def make_release(tag_name: str, name: str | None = None, body: str = "") -> Release:
    return build_release(
        tag_name=tag_name,
        release_name=name or f"Release {tag_name}",
        body=body,
        created_at=datetime(2024, 1, 15, 14, 30, tzinfo=timezone.utc),
        published_at=datetime(2024, 1, 15, 15, 0, tzinfo=timezone.utc),
        tag_link_base=TAG_LINK_BASE,
    )


@pytest.fixture
def releases() -> list[Release]:
    """Ten releases, newest first (v0.6.9 ... v0.6.0)."""
    return [make_release(f"v0.6.{n}") for n in range(9, -1, -1)]


@pytest.fixture
def blob_dir(tmp_path: Path) -> Path:
    return tmp_path / "blob"


@pytest.fixture
def cached_store(blob_dir: Path) -> CachedReleaseStore:
    return CachedReleaseStore(LocalBlobStorage(blob_dir))


@pytest.fixture
def db_store(tmp_path: Path):
    engine = create_engine(
        f"sqlite:///{tmp_path / 'release_notes.db'}",
        connect_args={"check_same_thread": False},
    )
    store = DatabaseReleaseStore(engine)
    store.create_schema()
    yield store
    store.close()
