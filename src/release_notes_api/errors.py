"""Exceptions raised by the release notes service.

Each error carries the HTTP status the API layer answers with, so the
exception handlers in main.py stay a thin mapping.
"""

from __future__ import annotations


class ReleaseNotesError(Exception):
    """Base exception for release notes errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ReleaseFetchError(ReleaseNotesError):
    """Raised when releases could not be fetched from GitHub after retrying."""


class WebhookPayloadError(ReleaseNotesError):
    """Raised when a webhook body is not a well-formed release event.

    Attributes:
        problems: One entry per missing or mistyped field,
                  e.g. "release.tag_name: Field required"
    """

    status_code = 400

    def __init__(self, message: str, problems: list[str] | None = None) -> None:
        self.problems = problems or []
        if self.problems:
            message = f"{message}: {'; '.join(self.problems)}"
        super().__init__(message)


class PersistenceError(ReleaseNotesError):
    """Raised when the release store cannot persist or read its state.

    Covers failed database transactions (always rolled back) and blob
    storage upload/download failures.
    """


class ConfigError(ValueError):
    """Raised when configuration is missing or invalid."""
