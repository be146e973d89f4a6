"""Configuration for the release notes service.

Settings come from an optional YAML file and are then overridden by
environment variables, so the same image can run with a mounted config
file, plain env vars, or both.

Example config.yaml:

    environment: production
    github:
      org: devtron-labs
      repo: devtron
      secret_validator: SHA-1
    blob:
      enabled: true
      provider: s3
      s3_bucket_name: central-api-releases
    database:
      addr: postgres.internal
      database: central_api

Backend selection (blob.enabled) is read once at startup; the service
does not switch backends at runtime.
"""

from __future__ import annotations

import os
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError
from sqlalchemy.engine import URL

from release_notes_api.errors import ConfigError

CONFIG_PATH_ENV_VAR = "RELEASE_NOTES_CONFIG"


class SecretValidatorMode(StrEnum):
    """How inbound webhooks prove they come from GitHub.

    SHA1: HMAC-SHA1 of the raw body in a "sha1=<hex>" header
    URL_APPEND: secret appended as the last path segment of the webhook URL
    PLAIN_TEXT: secret sent verbatim in a header
    """

    SHA1 = "SHA-1"
    URL_APPEND = "URL_APPEND"
    PLAIN_TEXT = "PLAIN_TEXT"


class BlobStorageProvider(StrEnum):
    LOCAL = "local"
    S3 = "s3"


class GitHubConfig(BaseModel):
    """Where releases come from and how webhooks are authenticated."""

    token: str = ""
    org: str = "devtron-labs"
    repo: str = "devtron"
    api_url: str = "https://api.github.com"
    tag_link_base: str = "https://github.com/devtron-labs/devtron/releases/tag"
    webhook_secret: str = ""
    # Kept as a plain string: an unknown mode must reach the validator,
    # which rejects every request and logs the misconfiguration.
    secret_validator: str = SecretValidatorMode.SHA1.value
    secret_header: str = "X-Hub-Signature"
    event_type_header: str = "X-GitHub-Event"
    timeout: float = 30.0


class BlobConfig(BaseModel):
    """Blob storage for the latest-tag marker (cache-backed variant)."""

    enabled: bool = False
    provider: BlobStorageProvider = BlobStorageProvider.LOCAL
    local_dir: str = "/tmp/release-notes"
    s3_bucket_name: str = ""
    s3_region: str | None = None
    s3_endpoint_url: str | None = None
    s3_access_key: str | None = None
    s3_secret_key: str | None = Field(default=None, repr=False)


class DatabaseConfig(BaseModel):
    """Relational store connection (used when blob storage is disabled).

    An explicit `url` wins; otherwise a PostgreSQL URL is assembled from
    the individual fields.
    """

    url: str | None = Field(default=None, repr=False)
    addr: str = "127.0.0.1"
    port: int = 5432
    user: str = ""
    password: str = Field(default="", repr=False)
    database: str = "central_api"
    application_name: str = "central_api"
    echo: bool = False

    def sqlalchemy_url(self) -> str | URL:
        if self.url:
            return self.url
        return URL.create(
            "postgresql+psycopg2",
            username=self.user or None,
            password=self.password or None,
            host=self.addr,
            port=self.port,
            database=self.database,
            query={"application_name": self.application_name},
        )

    def safe_dict(self) -> dict[str, Any]:
        """Connection details with secrets masked, for logging."""
        data = self.model_dump()
        data["password"] = "********" if self.password else ""
        if self.url:
            data["url"] = "********"
        return data


class ModuleConfig(BaseModel):
    """Presentation data for the base "cicd" module."""

    base_min_version_supported: str = "v0.6.0"
    title: str = "Build and Deploy (CI/CD)"
    description: str = (
        "Enables continuous code integration and deployment to Kubernetes."
    )
    icon: str = "https://cdn.devtron.ai/images/ic-integration-cicd.png"
    info: str = "Enables continuous code integration and deployment."
    assets: list[str] = Field(
        default_factory=lambda: ["https://cdn.devtron.ai/images/img-cicd-1.png"]
    )


class Settings(BaseModel):
    """Top-level service configuration."""

    environment: str = "development"
    log_level: str = "INFO"
    github: GitHubConfig = Field(default_factory=GitHubConfig)
    blob: BlobConfig = Field(default_factory=BlobConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    modules: ModuleConfig = Field(default_factory=ModuleConfig)


# env var -> (section, field); section None means top level
_ENV_OVERRIDES: dict[str, tuple[str | None, str]] = {
    "ENVIRONMENT": (None, "environment"),
    "LOG_LEVEL": (None, "log_level"),
    "GITHUB_TOKEN": ("github", "token"),
    "GITHUB_ORG": ("github", "org"),
    "GITHUB_REPO": ("github", "repo"),
    "GITHUB_API_URL": ("github", "api_url"),
    "GITHUB_TAG_LINK_BASE": ("github", "tag_link_base"),
    "GITHUB_WEBHOOK_SECRET": ("github", "webhook_secret"),
    "GITHUB_SECRET_VALIDATOR": ("github", "secret_validator"),
    "GITHUB_SECRET_HEADER": ("github", "secret_header"),
    "GITHUB_EVENT_TYPE_HEADER": ("github", "event_type_header"),
    "BLOB_STORAGE_ENABLED": ("blob", "enabled"),
    "BLOB_STORAGE_PROVIDER": ("blob", "provider"),
    "BLOB_STORAGE_LOCAL_DIR": ("blob", "local_dir"),
    "BLOB_STORAGE_S3_BUCKET_NAME": ("blob", "s3_bucket_name"),
    "BLOB_STORAGE_S3_REGION": ("blob", "s3_region"),
    "BLOB_STORAGE_S3_ENDPOINT_URL": ("blob", "s3_endpoint_url"),
    "BLOB_STORAGE_S3_ACCESS_KEY": ("blob", "s3_access_key"),
    "BLOB_STORAGE_S3_SECRET_KEY": ("blob", "s3_secret_key"),
    "DATABASE_URL": ("database", "url"),
    "PG_ADDR": ("database", "addr"),
    "PG_PORT": ("database", "port"),
    "PG_USER": ("database", "user"),
    "PG_PASSWORD": ("database", "password"),
    "PG_DATABASE": ("database", "database"),
    "APP": ("database", "application_name"),
    "PG_LOG_QUERY": ("database", "echo"),
    "MODULE_BASE_MIN_VERSION_SUPPORTED": ("modules", "base_min_version_supported"),
    "MODULE_TITLE": ("modules", "title"),
    "MODULE_DESCRIPTION": ("modules", "description"),
    "MODULE_ICON": ("modules", "icon"),
    "MODULE_INFO": ("modules", "info"),
}


def _apply_env_overrides(raw: dict[str, Any], environ: dict[str, str]) -> dict[str, Any]:
    for var, (section, field) in _ENV_OVERRIDES.items():
        if var not in environ:
            continue
        if section is None:
            raw[field] = environ[var]
        else:
            raw.setdefault(section, {})
            if not isinstance(raw[section], dict):
                raise ConfigError(f"Config section '{section}' must be a mapping")
            raw[section][field] = environ[var]
    if "MODULE_ASSETS" in environ:
        raw.setdefault("modules", {})["assets"] = [
            asset.strip() for asset in environ["MODULE_ASSETS"].split(",") if asset.strip()
        ]
    return raw


def load_settings(
    path: str | Path | None = None,
    environ: dict[str, str] | None = None,
) -> Settings:
    """Load settings from YAML (optional) and environment variables.

    Args:
        path: Path to a YAML config file. Falls back to the
              RELEASE_NOTES_CONFIG env var. A missing file means defaults.
        environ: Environment mapping (defaults to os.environ).

    Returns:
        Validated Settings.

    Raises:
        ConfigError: If the YAML is malformed or a value fails validation.
    """
    env = dict(os.environ) if environ is None else environ
    config_path = Path(path) if path else None
    if config_path is None and env.get(CONFIG_PATH_ENV_VAR):
        config_path = Path(env[CONFIG_PATH_ENV_VAR])

    raw: dict[str, Any] = {}
    if config_path is not None and config_path.exists():
        try:
            raw = yaml.safe_load(config_path.read_text()) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigError(f"Config file {config_path} must contain a mapping")

    raw = _apply_env_overrides(raw, env)

    try:
        return Settings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
