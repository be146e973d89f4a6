"""Pydantic models for releases, webhook payloads and API responses.

These schemas are shared by every layer:
- The GitHub source builds Release objects from the releases API
- The stores serialize ReleaseList snapshots with them
- The webhook handler validates inbound payloads against them
- The API layer serializes them inside the response envelope

Releases are exposed in camelCase (tagName, publishedAt, ...) to keep
the JSON contract consumers already depend on.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Releases
# ---------------------------------------------------------------------------


class Release(CamelModel):
    """A single published release, identified by its tag name.

    Attributes:
        tag_name: Git tag of the release (unique key)
        release_name: Display name of the release
        body: Release notes in markdown
        created_at: When the release was drafted (None if unparseable)
        published_at: When the release was published (None if unparseable)
        tag_link: Link to the release page on GitHub
        prerequisite: Whether the notes flag upgrade prerequisites
        prerequisite_message: The prerequisite text, when delimited
    """

    tag_name: str
    release_name: str = ""
    body: str = ""
    created_at: datetime | None = None
    published_at: datetime | None = None
    tag_link: str = ""
    prerequisite: bool = False
    prerequisite_message: str = ""


ReleaseList = list[Release]

release_list_adapter: TypeAdapter[list[Release]] = TypeAdapter(list[Release])


# ---------------------------------------------------------------------------
# Webhook payload
# ---------------------------------------------------------------------------


class WebhookRelease(BaseModel):
    """The `release` object of a GitHub release webhook.

    Timestamps stay strings here: they are parsed with a fixed layout
    later, and a bad timestamp is not a reason to reject the event.
    """

    model_config = ConfigDict(extra="ignore")

    name: str | None = None
    tag_name: str = Field(..., min_length=1)
    created_at: str | None = None
    published_at: str | None = None
    body: str | None = None


class ReleaseWebhookEnvelope(BaseModel):
    """Top level of a release webhook, validated before the action check."""

    model_config = ConfigDict(extra="ignore")

    action: str
    release: dict[str, Any] | None = None


# ---------------------------------------------------------------------------
# API envelope
# ---------------------------------------------------------------------------


class ApiError(CamelModel):
    code: str = "000"
    internal_message: str = ""
    user_message: Any = None


class ApiResponse(BaseModel):
    """Uniform response envelope: {code, status, result|errors}."""

    code: int
    status: str
    result: Any = None
    errors: list[ApiError] | None = None


# ---------------------------------------------------------------------------
# Build metadata
# ---------------------------------------------------------------------------


class LanguageSupport(CamelModel):
    language: str
    builder_lang_env_param: str = ""
    versions: list[str] = Field(default_factory=list)


class Builder(CamelModel):
    id: str
    config_link: str = ""
    entry_point_param: str = ""
    language_support: list[LanguageSupport] = Field(default_factory=list)


class BuilderLanguageMetadata(CamelModel):
    id: str
    builder_lang_env_param: str = ""


class LanguageBuilder(CamelModel):
    language: str
    language_icon: str = ""
    versions: list[str] = Field(default_factory=list)
    builder_language_metadata: list[BuilderLanguageMetadata] = Field(
        default_factory=list
    )


class BuildPackMetadata(CamelModel):
    builders: list[Builder] = Field(default_factory=list)
    language_builder: list[LanguageBuilder] = Field(default_factory=list)


class LanguageFramework(CamelModel):
    language: str
    framework: str = ""
    language_icon: str = ""
    template_url: str = ""


class DockerfileTemplateMetadata(CamelModel):
    language_frameworks: list[LanguageFramework] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Installable modules
# ---------------------------------------------------------------------------


class ResourceIdentifier(CamelModel):
    labels: dict[str, str] = Field(default_factory=dict)


class ResourceFilter(CamelModel):
    global_filter: ResourceIdentifier | None = None


class Module(CamelModel):
    """An installable integration shown in the module catalogue."""

    id: int = 0
    name: str = ""
    base_min_version_supported: str = ""
    is_included_in_legacy_full_package: bool = False
    description: str = ""
    title: str = ""
    icon: str = ""
    info: str = ""
    assets: list[str] = Field(default_factory=list)
    dependent_modules: list[int] = Field(default_factory=list)
    resource_filter: ResourceFilter | None = None
    module_type: str = ""
