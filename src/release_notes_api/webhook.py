"""Webhook secret validation.

GitHub can be configured to authenticate release webhooks in one of
three ways (see SecretValidatorMode). The validator is a pure function
of the request: no retries, no side effects beyond logging. Anything it
cannot positively verify is rejected.
"""

from __future__ import annotations

import hashlib
import hmac
from typing import Protocol

from starlette.requests import Request

from release_notes_api.config import GitHubConfig, SecretValidatorMode
from release_notes_api.logging_config import get_logger

logger = get_logger(__name__)


class WebhookSecretValidatorProtocol(Protocol):
    def validate(self, request: Request, body: bytes) -> bool:
        """Return True when the request carries the configured secret."""
        ...


class WebhookSecretValidator:
    """Validates webhook requests against the configured secret.

    Usage:
        validator = WebhookSecretValidator(settings.github)
        if not validator.validate(request, await request.body()):
            ...reject with 401...
    """

    def __init__(self, config: GitHubConfig) -> None:
        self._config = config

    def validate(self, request: Request, body: bytes) -> bool:
        mode = self._config.secret_validator
        secret = self._config.webhook_secret
        logger.debug("validating_webhook_secret", mode=mode)

        if not secret:
            logger.error("webhook_secret_not_configured", mode=mode)
            return False

        if mode == SecretValidatorMode.SHA1:
            return self._validate_sha1(request.headers.get(self._config.secret_header, ""), body, secret)
        if mode == SecretValidatorMode.URL_APPEND:
            return self._validate_url_append(request, secret)
        if mode == SecretValidatorMode.PLAIN_TEXT:
            received = request.headers.get(self._config.secret_header, "")
            return hmac.compare_digest(received.encode(), secret.encode())

        logger.error("unsupported_secret_validator", mode=mode)
        return False

    @staticmethod
    def _validate_sha1(header_value: str, body: bytes, secret: str) -> bool:
        algorithm, _, received = header_value.partition("=")
        if algorithm != "sha1" or not received:
            return False
        expected = hmac.new(secret.encode(), body, hashlib.sha1).hexdigest()
        return hmac.compare_digest(expected.encode(), received.encode())

    @staticmethod
    def _validate_url_append(request: Request, secret: str) -> bool:
        received = request.path_params.get("secret")
        if received is None:
            received = request.url.path.rstrip("/").rsplit("/", 1)[-1]
        return hmac.compare_digest(str(received).encode(), secret.encode())
