"""Release store interface.

The service owns exactly one store, chosen at startup. Stores are the
single owner of the current release list: every write goes through
replace() or update(), which run under the store's own lock or
transaction.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Protocol

from release_notes_api.schemas import Release

ReleaseMutation = Callable[[list[Release]], list[Release]]


class ReleaseStore(Protocol):
    """Persistence for the merged, newest-first release list."""

    def load(self) -> list[Release] | None:
        """Return the current list, or None when it is cold or stale.

        None tells the caller to refetch from GitHub and replace().
        """
        ...

    def replace(self, releases: list[Release]) -> None:
        """Install a freshly fetched list."""
        ...

    def update(self, mutate: ReleaseMutation) -> list[Release]:
        """Apply `mutate` to the current list and persist the result atomically.

        Returns:
            The persisted list
        """
        ...

    def close(self) -> None:
        """Release connections held by the store."""
        ...
