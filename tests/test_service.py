"""Tests for the release note service."""

from __future__ import annotations

import asyncio
import json

import pytest

from release_notes_api.errors import ReleaseFetchError, WebhookPayloadError
from release_notes_api.schemas import Release
from release_notes_api.service import ReleaseNoteService, parse_release_event
from release_notes_api.source.github import MockReleaseSource
from release_notes_api.storage.cache import CachedReleaseStore
from release_notes_api.storage.database import DatabaseReleaseStore

from tests.conftest import TAG_LINK_BASE


def webhook_body(action: str = "published", **release: object) -> bytes:
    payload = {
        "action": action,
        "release": {
            "name": "v0.7.0",
            "tag_name": "v0.7.0",
            "created_at": "2024-03-01T10:00:00Z",
            "published_at": "2024-03-02T10:00:00Z",
            "body": "## What's new",
            **release,
        },
    }
    return json.dumps(payload).encode()


# ---------------------------------------------------------------------------
# Payload parsing
# ---------------------------------------------------------------------------


class TestParseReleaseEvent:
    def test_published_release(self) -> None:
        action, release = parse_release_event(webhook_body(), TAG_LINK_BASE)

        assert action == "published"
        assert release is not None
        assert release.tag_name == "v0.7.0"
        assert release.tag_link == f"{TAG_LINK_BASE}/v0.7.0"
        assert release.published_at is not None

    def test_unhandled_action_skips_release_validation(self) -> None:
        body = json.dumps({"action": "deleted", "release": {"id": 1}})
        assert parse_release_event(body) == ("deleted", None)

    def test_invalid_json(self) -> None:
        with pytest.raises(WebhookPayloadError, match="not valid JSON"):
            parse_release_event(b"{not json")

    def test_missing_action(self) -> None:
        with pytest.raises(WebhookPayloadError) as exc_info:
            parse_release_event(json.dumps({"release": {}}))
        assert any(p.startswith("action") for p in exc_info.value.problems)

    def test_missing_release_object(self) -> None:
        with pytest.raises(WebhookPayloadError) as exc_info:
            parse_release_event(json.dumps({"action": "published"}))
        assert exc_info.value.problems == ["release: Field required"]

    def test_problems_name_offending_fields(self) -> None:
        body = json.dumps({"action": "edited", "release": {"tag_name": "", "name": 5}})
        with pytest.raises(WebhookPayloadError) as exc_info:
            parse_release_event(body)

        fields = {p.split(":")[0] for p in exc_info.value.problems}
        assert fields == {"release.tag_name", "release.name"}
        assert exc_info.value.status_code == 400

    def test_bad_timestamp_is_kept_as_none(self) -> None:
        _, release = parse_release_event(webhook_body(published_at="yesterday"))
        assert release is not None
        assert release.published_at is None
        assert release.created_at is not None


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


class TestGetReleases:
    @pytest.mark.asyncio
    async def test_cold_store_fetches_once(
        self, cached_store: CachedReleaseStore, releases: list[Release]
    ) -> None:
        source = MockReleaseSource(releases=releases)
        service = ReleaseNoteService(source, cached_store, TAG_LINK_BASE)

        first = await service.get_releases()
        second = await service.get_releases()

        assert first == releases
        assert second == releases
        assert source.calls == 1

    @pytest.mark.asyncio
    async def test_fetch_failure_propagates(self, cached_store: CachedReleaseStore) -> None:
        service = ReleaseNoteService(MockReleaseSource(failures=3), cached_store)

        with pytest.raises(ReleaseFetchError):
            await service.get_releases()

    @pytest.mark.asyncio
    async def test_database_store_serves_without_fetching(
        self, db_store: DatabaseReleaseStore, releases: list[Release]
    ) -> None:
        db_store.replace(releases)
        source = MockReleaseSource()
        service = ReleaseNoteService(source, db_store)

        assert await service.get_releases() == releases
        assert source.calls == 0


# ---------------------------------------------------------------------------
# Webhook updates
# ---------------------------------------------------------------------------


class TestUpdateReleases:
    @pytest.mark.asyncio
    async def test_new_release_prepended(
        self, cached_store: CachedReleaseStore, releases: list[Release]
    ) -> None:
        cached_store.replace(releases)
        service = ReleaseNoteService(MockReleaseSource(), cached_store, TAG_LINK_BASE)

        assert await service.update_releases(webhook_body()) is True

        current = await service.get_releases()
        assert [r.tag_name for r in current][:2] == ["v0.7.0", "v0.6.9"]
        assert len(current) == 11

    @pytest.mark.asyncio
    async def test_same_tag_twice_keeps_one_entry(
        self, cached_store: CachedReleaseStore, releases: list[Release]
    ) -> None:
        cached_store.replace(releases)
        service = ReleaseNoteService(MockReleaseSource(), cached_store, TAG_LINK_BASE)

        await service.update_releases(webhook_body())
        await service.update_releases(webhook_body(action="edited", body="fixed typo"))

        current = await service.get_releases()
        matching = [r for r in current if r.tag_name == "v0.7.0"]
        assert len(matching) == 1
        assert matching[0].body == "fixed typo"

    @pytest.mark.asyncio
    async def test_ignored_action_leaves_store_unchanged(
        self, cached_store: CachedReleaseStore, releases: list[Release]
    ) -> None:
        cached_store.replace(releases)
        service = ReleaseNoteService(MockReleaseSource(), cached_store)

        assert await service.update_releases(webhook_body(action="deleted")) is False
        assert cached_store.cached == releases

    @pytest.mark.asyncio
    async def test_malformed_payload_rejected(self, cached_store: CachedReleaseStore) -> None:
        service = ReleaseNoteService(MockReleaseSource(), cached_store)

        with pytest.raises(WebhookPayloadError):
            await service.update_releases(webhook_body(tag_name=None))
        assert cached_store.cached == []

    @pytest.mark.asyncio
    async def test_concurrent_updates_keep_single_active_row(
        self, db_store: DatabaseReleaseStore, releases: list[Release]
    ) -> None:
        db_store.replace(releases)
        service = ReleaseNoteService(MockReleaseSource(), db_store, TAG_LINK_BASE)
        tags = [f"v0.7.{n}" for n in range(5)]

        results = await asyncio.gather(
            *(service.update_releases(webhook_body(tag_name=tag, name=tag)) for tag in tags)
        )

        assert all(results)
        assert db_store.count_active() == 1
        stored = {r.tag_name for r in db_store.load() or []}
        assert set(tags) <= stored
        assert len(stored) == 15


# ---------------------------------------------------------------------------
# Startup seeding
# ---------------------------------------------------------------------------


class TestInitialization:
    @pytest.mark.asyncio
    async def test_seeds_store(
        self, cached_store: CachedReleaseStore, releases: list[Release]
    ) -> None:
        service = ReleaseNoteService(MockReleaseSource(releases=releases), cached_store)

        await service.get_releases_on_initialization()

        assert cached_store.load() == releases

    @pytest.mark.asyncio
    async def test_failure_is_logged_not_raised(self, cached_store: CachedReleaseStore) -> None:
        source = MockReleaseSource(failures=3)
        service = ReleaseNoteService(source, cached_store)

        await service.get_releases_on_initialization()

        assert source.calls == 3
        assert cached_store.cached == []
