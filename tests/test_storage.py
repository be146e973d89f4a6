"""Tests for the cache-backed and relational release stores."""

from __future__ import annotations

from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from release_notes_api.errors import PersistenceError
from release_notes_api.schemas import Release
from release_notes_api.storage.blob import LocalBlobStorage
from release_notes_api.storage.cache import LATEST_MARKER_KEY, CachedReleaseStore
from release_notes_api.storage.database import DatabaseReleaseStore, ReleaseNoteRecord

from tests.conftest import make_release


class FailingBlobStorage:
    """Blob storage whose writes always fail."""

    def __init__(self, marker: str | None = None) -> None:
        self.marker = marker

    def get_text(self, key: str) -> str | None:
        return self.marker

    def put_text(self, key: str, text: str) -> None:
        raise PersistenceError(f"failed to write blob {key}: access denied")


# ---------------------------------------------------------------------------
# Cache-backed store
# ---------------------------------------------------------------------------


class TestCachedReleaseStore:
    def test_missing_marker_means_refetch(self, cached_store: CachedReleaseStore) -> None:
        assert cached_store.load() is None

    def test_replace_writes_marker_and_serves_cache(
        self, cached_store: CachedReleaseStore, blob_dir: Path, releases: list[Release]
    ) -> None:
        cached_store.replace(releases)

        assert (blob_dir / LATEST_MARKER_KEY).read_text() == "v0.6.9"
        assert cached_store.load() == releases

    def test_marker_ahead_of_cache_is_stale(
        self, cached_store: CachedReleaseStore, blob_dir: Path, releases: list[Release]
    ) -> None:
        cached_store.replace(releases)
        # Another replica received a newer release.
        (blob_dir / LATEST_MARKER_KEY).write_text("v0.7.0\n")

        assert cached_store.load() is None

    def test_marker_whitespace_ignored(
        self, cached_store: CachedReleaseStore, blob_dir: Path, releases: list[Release]
    ) -> None:
        cached_store.replace(releases)
        (blob_dir / LATEST_MARKER_KEY).write_text("v0.6.9\n")

        assert cached_store.load() == releases

    def test_empty_list_not_installed(
        self, cached_store: CachedReleaseStore, blob_dir: Path, releases: list[Release]
    ) -> None:
        cached_store.replace(releases)
        cached_store.replace([])

        assert cached_store.cached == releases
        assert (blob_dir / LATEST_MARKER_KEY).read_text() == "v0.6.9"

    def test_update_moves_marker_to_newest_tag(
        self, cached_store: CachedReleaseStore, blob_dir: Path, releases: list[Release]
    ) -> None:
        cached_store.replace(releases)

        updated = cached_store.update(lambda current: [make_release("v0.7.0"), *current])

        assert updated[0].tag_name == "v0.7.0"
        assert (blob_dir / LATEST_MARKER_KEY).read_text() == "v0.7.0"
        assert cached_store.load() == updated

    def test_failed_marker_upload_leaves_cache_untouched(self, releases: list[Release]) -> None:
        store = CachedReleaseStore(FailingBlobStorage(marker="v0.6.9"))

        with pytest.raises(PersistenceError):
            store.update(lambda current: releases)

        assert store.cached == []

    def test_local_blob_missing_key(self, tmp_path: Path) -> None:
        assert LocalBlobStorage(tmp_path).get_text("nope.txt") is None


# ---------------------------------------------------------------------------
# Relational store
# ---------------------------------------------------------------------------


class TestDatabaseReleaseStore:
    def test_empty_table_means_refetch(self, db_store: DatabaseReleaseStore) -> None:
        assert db_store.load() is None
        assert db_store.count_active() == 0

    def test_replace_then_load(
        self, db_store: DatabaseReleaseStore, releases: list[Release]
    ) -> None:
        db_store.replace(releases)

        assert db_store.load() == releases
        assert db_store.count_active() == 1

    def test_update_supersedes_active_row(
        self, db_store: DatabaseReleaseStore, releases: list[Release]
    ) -> None:
        db_store.replace(releases)
        db_store.update(lambda current: [make_release("v0.7.0"), *current])

        loaded = db_store.load()
        assert loaded is not None
        assert [r.tag_name for r in loaded][:2] == ["v0.7.0", "v0.6.9"]
        assert db_store.count_active() == 1

        with Session(db_store._engine) as session:
            assert session.query(ReleaseNoteRecord).count() == 2
            inactive = session.query(ReleaseNoteRecord).filter_by(is_active=False).one()
            assert inactive.updated_on is not None

    def test_second_active_row_rejected_by_database(
        self, db_store: DatabaseReleaseStore, releases: list[Release]
    ) -> None:
        db_store.replace(releases)

        with Session(db_store._engine) as session:
            session.add(ReleaseNoteRecord(release_note="[]", is_active=True))
            with pytest.raises(IntegrityError):
                session.commit()

    def test_failed_mutation_rolls_back(
        self, db_store: DatabaseReleaseStore, releases: list[Release]
    ) -> None:
        db_store.replace(releases)

        def explode(current: list[Release]) -> list[Release]:
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            db_store.update(explode)

        assert db_store.load() == releases
        assert db_store.count_active() == 1

    def test_missing_table_is_persistence_error(self, tmp_path: Path) -> None:
        store = DatabaseReleaseStore(create_engine(f"sqlite:///{tmp_path / 'empty.db'}"))
        with pytest.raises(PersistenceError):
            store.load()
        store.close()

    def test_corrupt_snapshot_is_persistence_error(self, db_store: DatabaseReleaseStore) -> None:
        with Session(db_store._engine) as session:
            session.add(ReleaseNoteRecord(release_note="not json", is_active=True))
            session.commit()

        with pytest.raises(PersistenceError, match="not a valid release list"):
            db_store.load()
