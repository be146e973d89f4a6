"""GitHub releases client.

Fetches the release feed of the configured repository and turns it into
Release objects (tag link and prerequisites derived).

Design notes:
- Uses httpx for async HTTP requests
- Uses a Protocol so the service doesn't depend on the concrete client
  (tests and local runs use MockReleaseSource)
- Only the first page of releases (100 items) is read; older releases
  beyond that page are not mirrored
- A 404 means the repository has no releases to list. It is reported as
  a successful, empty fetch so it is not retried; every other failure is
  reported as unsuccessful and retried by list_releases_with_retry()

GitHub API docs: https://docs.github.com/en/rest/releases/releases
"""

from __future__ import annotations

from typing import Any, Protocol

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, RetryError, retry_if_exception_type, stop_after_attempt

from release_notes_api.config import GitHubConfig
from release_notes_api.errors import ReleaseFetchError
from release_notes_api.logging_config import get_logger
from release_notes_api.releases import build_release, parse_timestamp
from release_notes_api.schemas import Release

logger = get_logger(__name__)

MAX_FETCH_ATTEMPTS = 3
PAGE_SIZE = 100


class _FetchFailed(Exception):
    """One unsuccessful attempt; only used to drive the retry loop."""


# ---------------------------------------------------------------------------
# Protocol (Interface)
# ---------------------------------------------------------------------------


class ReleaseSourceProtocol(Protocol):
    """Interface for anything that can list the repository's releases."""

    async def list_releases(self) -> tuple[list[Release], bool]:
        """Fetch releases once.

        Returns:
            (releases newest first, whether the fetch succeeded)
        """
        ...

    async def list_releases_with_retry(self) -> list[Release]:
        """Fetch releases, retrying failed attempts.

        Raises:
            ReleaseFetchError: If every attempt failed
        """
        ...


async def _retry_list_releases(
    source: ReleaseSourceProtocol,
    attempts: int,
) -> list[Release]:
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(attempts),
            retry=retry_if_exception_type(_FetchFailed),
        ):
            with attempt:
                releases, ok = await source.list_releases()
                if not ok:
                    logger.warning(
                        "release_fetch_attempt_failed",
                        attempt=attempt.retry_state.attempt_number,
                    )
                    raise _FetchFailed()
    except RetryError as exc:
        raise ReleaseFetchError(
            f"failed operation on fetching releases from github, attempted {attempts} times"
        ) from exc
    return releases


# ---------------------------------------------------------------------------
# Concrete Implementation
# ---------------------------------------------------------------------------


class GitHubReleaseSource:
    """Real GitHub releases client using httpx.

    Usage:
        source = GitHubReleaseSource(settings.github)
        releases = await source.list_releases_with_retry()
        await source.aclose()
    """

    def __init__(
        self,
        config: GitHubConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        max_attempts: int = MAX_FETCH_ATTEMPTS,
    ) -> None:
        """Initialize the GitHub client.

        Args:
            config: GitHub settings (org, repo, token, API URL)
            transport: Optional httpx transport, used by tests to stub GitHub
            max_attempts: Attempts made by list_releases_with_retry()
        """
        self._config = config
        self._max_attempts = max_attempts
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            headers=headers,
            timeout=config.timeout,
            transport=transport,
        )

    @property
    def repo(self) -> str:
        return f"{self._config.org}/{self._config.repo}"

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_releases(self) -> tuple[list[Release], bool]:
        """Fetch the first page of releases.

        Returns:
            (releases, success). On failure the list is empty.
        """
        try:
            resp = await self._client.get(
                f"/repos/{self.repo}/releases",
                params={"per_page": PAGE_SIZE},
            )
            resp.raise_for_status()
            items = resp.json()
        except httpx.HTTPStatusError as exc:
            if exc.response.status_code == 404:
                logger.warning("releases_not_found", repo=self.repo)
                return [], True
            logger.error(
                "release_fetch_failed",
                repo=self.repo,
                status_code=exc.response.status_code,
                err=str(exc),
            )
            return [], False
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("release_fetch_failed", repo=self.repo, err=str(exc))
            return [], False

        if not isinstance(items, list):
            logger.error("release_fetch_unexpected_body", repo=self.repo)
            return [], False

        releases = []
        for item in items:
            if not isinstance(item, dict):
                logger.warning("skipping_invalid_release_item", repo=self.repo)
                continue
            try:
                releases.append(self._to_release(item))
            except (ValidationError, TypeError, AttributeError) as exc:
                logger.warning(
                    "skipping_invalid_release_item",
                    repo=self.repo,
                    tag_name=repr(item.get("tag_name")),
                    err=str(exc),
                )
        logger.info("releases_fetched", repo=self.repo, count=len(releases))
        return releases, True

    async def list_releases_with_retry(self) -> list[Release]:
        return await _retry_list_releases(self, self._max_attempts)

    def _to_release(self, item: dict[str, Any]) -> Release:
        return build_release(
            tag_name=item.get("tag_name") or "",
            release_name=item.get("name") or "",
            body=item.get("body") or "",
            created_at=parse_timestamp(item.get("created_at"), "created_at"),
            published_at=parse_timestamp(item.get("published_at"), "published_at"),
            tag_link_base=self._config.tag_link_base,
        )


# ---------------------------------------------------------------------------
# Mock Implementation (for testing)
# ---------------------------------------------------------------------------


class MockReleaseSource:
    """Mock release source that returns predefined releases.

    Use this in tests and local development when you don't want to hit
    the real GitHub API.

    Usage:
        source = MockReleaseSource(releases=[...], failures=2)
        await source.list_releases_with_retry()  # fails twice, then succeeds
    """

    def __init__(
        self,
        releases: list[Release] | None = None,
        failures: int = 0,
        max_attempts: int = MAX_FETCH_ATTEMPTS,
    ) -> None:
        """Initialize with optional predefined data.

        Args:
            releases: Releases returned on success
            failures: Number of leading calls that report failure
            max_attempts: Attempts made by list_releases_with_retry()
        """
        self._releases = releases or []
        self._failures = failures
        self._max_attempts = max_attempts
        self.calls = 0

    async def list_releases(self) -> tuple[list[Release], bool]:
        self.calls += 1
        if self.calls <= self._failures:
            return [], False
        return list(self._releases), True

    async def list_releases_with_retry(self) -> list[Release]:
        return await _retry_list_releases(self, self._max_attempts)

    async def aclose(self) -> None:
        return None
