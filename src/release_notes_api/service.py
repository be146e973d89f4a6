"""Release note service: keeps the store in sync with GitHub.

Releases reach the store three ways:
1. At startup, a background task fetches the feed and seeds the store
2. On read, a cold or stale store is refilled from GitHub
3. On a release webhook, the event is merged into the current list

The service never touches shared state directly; every read and write
goes through the injected ReleaseStore, whose blocking calls run on a
worker thread so the event loop keeps serving requests.
"""

from __future__ import annotations

import asyncio
import json

from pydantic import ValidationError

from release_notes_api.errors import ReleaseNotesError, WebhookPayloadError
from release_notes_api.logging_config import get_logger
from release_notes_api.releases import (
    HANDLED_ACTIONS,
    build_release,
    merge_release,
    parse_timestamp,
)
from release_notes_api.schemas import (
    Release,
    ReleaseWebhookEnvelope,
    WebhookRelease,
)
from release_notes_api.source.github import ReleaseSourceProtocol
from release_notes_api.storage.base import ReleaseStore

logger = get_logger(__name__)


def _describe_errors(exc: ValidationError, prefix: str = "") -> list[str]:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        problems.append(f"{prefix}{location}: {error['msg']}")
    return problems


def parse_release_event(
    raw_body: bytes | str,
    tag_link_base: str = "",
) -> tuple[str, Release | None]:
    """Parse a release webhook body.

    Returns:
        (action, release). The release is None for actions the service
        does not handle; the `release` object is only validated for
        handled actions.

    Raises:
        WebhookPayloadError: If the body is not JSON or a required field
                             is missing or has the wrong type
    """
    try:
        data = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise WebhookPayloadError(f"webhook body is not valid JSON: {exc}") from exc

    try:
        envelope = ReleaseWebhookEnvelope.model_validate(data)
    except ValidationError as exc:
        raise WebhookPayloadError("invalid release webhook", _describe_errors(exc)) from exc

    if envelope.action not in HANDLED_ACTIONS:
        return envelope.action, None

    if envelope.release is None:
        raise WebhookPayloadError("invalid release webhook", ["release: Field required"])
    try:
        payload = WebhookRelease.model_validate(envelope.release)
    except ValidationError as exc:
        raise WebhookPayloadError(
            "invalid release webhook", _describe_errors(exc, prefix="release.")
        ) from exc

    release = build_release(
        tag_name=payload.tag_name,
        release_name=payload.name or "",
        body=payload.body or "",
        created_at=parse_timestamp(payload.created_at, "created_at"),
        published_at=parse_timestamp(payload.published_at, "published_at"),
        tag_link_base=tag_link_base,
    )
    return envelope.action, release


class ReleaseNoteService:
    """Serves and updates the mirrored release list.

    Usage:
        service = ReleaseNoteService(source, store, tag_link_base=...)
        asyncio.create_task(service.get_releases_on_initialization())
        releases = await service.get_releases()
        updated = await service.update_releases(raw_webhook_body)
    """

    def __init__(
        self,
        source: ReleaseSourceProtocol,
        store: ReleaseStore,
        tag_link_base: str = "",
    ) -> None:
        self._source = source
        self._store = store
        self._tag_link_base = tag_link_base

    @property
    def store(self) -> ReleaseStore:
        return self._store

    async def get_releases(self) -> list[Release]:
        """Return the release list, refetching when the store is cold or stale.

        Raises:
            ReleaseFetchError: If the store needed a refresh and GitHub
                               could not be reached after retrying
            PersistenceError: If the store could not be read or written
        """
        releases = await asyncio.to_thread(self._store.load)
        if releases is not None:
            return releases

        logger.info("refreshing_releases_from_github")
        releases = await self._source.list_releases_with_retry()
        await asyncio.to_thread(self._store.replace, releases)
        return releases

    async def update_releases(self, raw_body: bytes | str) -> bool:
        """Merge a release webhook into the stored list.

        Returns:
            True if the list was updated, False if the action is ignored

        Raises:
            WebhookPayloadError: If the payload is malformed
            PersistenceError: If the merged list could not be saved
        """
        action, release = parse_release_event(raw_body, self._tag_link_base)
        if release is None:
            logger.warning("ignoring_release_action", action=action)
            return False

        logger.info("merging_release", action=action, tag_name=release.tag_name)
        await asyncio.to_thread(self._store.update, lambda current: merge_release(current, release))
        return True

    async def get_releases_on_initialization(self) -> None:
        """Seed the store from GitHub. Failures are logged, never raised."""
        try:
            releases = await self._source.list_releases_with_retry()
            await asyncio.to_thread(self._store.replace, releases)
        except ReleaseNotesError as exc:
            logger.error("initial_release_fetch_failed", err=exc.message)
            return
        except Exception:
            # Nothing awaits this task.
            logger.exception("initial_release_fetch_crashed")
            return
        logger.info("releases_initialized", count=len(releases))
