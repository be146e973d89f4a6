"""FastAPI application for the release notes service.

Routes:
- GET  /releases?offset=&size=   - Mirrored release notes, newest first
- POST /webhook[/{secret}]       - GitHub release webhook
- GET  /modules, /v2/modules     - Installable module catalogue
- GET  /module?name=             - One module by name
- GET  /buildpackMetadata        - Build-pack builders per language
- GET  /dockerfileTemplateMetadata - Dockerfile templates per language
- GET  /health                   - Liveness check

Every route except /health answers with the envelope
{code, status, result} or {code, status, errors}.

To run locally:
    uvicorn release_notes_api.main:app --reload --port 8080
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from http import HTTPStatus
from typing import Any

from fastapi import APIRouter, FastAPI, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from release_notes_api import __version__
from release_notes_api.config import Settings, load_settings
from release_notes_api.errors import ReleaseNotesError
from release_notes_api.logging_config import get_logger, setup_logging
from release_notes_api.metadata import CiBuildMetadataService, ModuleService
from release_notes_api.releases import EVENT_TYPE_RELEASE
from release_notes_api.schemas import ApiError, ApiResponse
from release_notes_api.service import ReleaseNoteService
from release_notes_api.source.github import GitHubReleaseSource
from release_notes_api.storage import build_release_store
from release_notes_api.webhook import WebhookSecretValidator, WebhookSecretValidatorProtocol

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Response envelope
# ---------------------------------------------------------------------------


def write_json_response(
    status_code: int,
    result: Any = None,
    error: str | None = None,
    user_message: Any = None,
) -> JSONResponse:
    """Wrap a result (or an error) in the uniform response envelope."""
    response = ApiResponse(code=status_code, status=HTTPStatus(status_code).phrase)
    if error is None:
        response.result = jsonable_encoder(result, by_alias=True)
    else:
        response.errors = [ApiError(internal_message=error, user_message=user_message)]
    return JSONResponse(
        status_code=status_code,
        content=response.model_dump(mode="json", by_alias=True, exclude_none=True),
    )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.time()
        response = await call_next(request)
        duration = time.time() - start
        logger.info(
            "request_handled",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration=round(duration, 3),
        )
        return response


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/releases")
async def get_releases(
    request: Request,
    offset: int = Query(0, ge=0),
    size: int = Query(0, ge=0),
) -> JSONResponse:
    """Return a page of releases.

    `size` > 0 returns releases[offset:offset+size]; otherwise everything
    from `offset` on. An offset past the end is an empty page, not an error.
    """
    service: ReleaseNoteService = request.app.state.service
    releases = await service.get_releases()
    if size > 0:
        releases = releases[offset : offset + size]
    elif offset > 0:
        releases = releases[offset:]
    return write_json_response(200, releases)


@router.post("/webhook")
@router.post("/webhook/{secret}")
async def release_webhook(request: Request) -> JSONResponse:
    """Handle a GitHub release webhook.

    The raw body is needed as-is for signature validation, so it is read
    directly instead of being parsed by FastAPI.
    """
    body = await request.body()
    settings: Settings = request.app.state.settings
    validator: WebhookSecretValidatorProtocol = request.app.state.validator
    if not validator.validate(request, body):
        logger.error(
            "webhook_signature_mismatch",
            path=request.url.path,
            mode=settings.github.secret_validator,
        )
        return write_json_response(401, error="signature mismatch")

    event_type = request.headers.get(settings.github.event_type_header, "")
    if event_type != EVENT_TYPE_RELEASE:
        logger.error(
            "webhook_event_type_not_supported",
            path=request.url.path,
            event_type=event_type,
        )
        return write_json_response(
            400,
            error=f"unsupported event type '{event_type}'",
            user_message="only release events are handled",
        )

    service: ReleaseNoteService = request.app.state.service
    updated = await service.update_releases(body)
    return write_json_response(200, updated)


@router.get("/modules")
async def get_modules(request: Request) -> JSONResponse:
    return write_json_response(200, request.app.state.modules.get_modules())


@router.get("/v2/modules")
async def get_modules_v2(request: Request) -> JSONResponse:
    return write_json_response(200, request.app.state.modules.get_modules_v2())


@router.get("/module")
async def get_module_by_name(request: Request, name: str = Query(..., min_length=1)) -> JSONResponse:
    return write_json_response(200, request.app.state.modules.get_module_by_name(name))


@router.get("/buildpackMetadata")
async def get_buildpack_metadata(request: Request) -> JSONResponse:
    return write_json_response(200, request.app.state.build_metadata.get_buildpack_metadata())


@router.get("/dockerfileTemplateMetadata")
async def get_dockerfile_template_metadata(request: Request) -> JSONResponse:
    return write_json_response(
        200, request.app.state.build_metadata.get_dockerfile_template_metadata()
    )


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


async def release_notes_error_handler(request: Request, exc: ReleaseNotesError) -> JSONResponse:
    logger.error(
        "request_failed",
        path=request.url.path,
        error_type=type(exc).__name__,
        err=exc.message,
    )
    return write_json_response(exc.status_code, error=exc.message)


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = [
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
        for error in exc.errors()
    ]
    return write_json_response(400, error="; ".join(problems), user_message="invalid request")


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


def create_app(
    settings: Settings | None = None,
    service: ReleaseNoteService | None = None,
    validator: WebhookSecretValidatorProtocol | None = None,
    run_initialization: bool = True,
) -> FastAPI:
    """Build the FastAPI app.

    Args:
        settings: Service settings. Loaded from YAML/env at startup if None.
        service: Pre-built release note service (tests). Built from
                 settings at startup if None.
        validator: Webhook secret validator. Built from settings if None.
        run_initialization: Seed the store from GitHub in the background
                            at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        cfg = settings or load_settings()
        setup_logging(environment=cfg.environment, log_level=cfg.log_level)

        source: GitHubReleaseSource | None = None
        release_service = service
        if release_service is None:
            source = GitHubReleaseSource(cfg.github)
            store = build_release_store(cfg)
            release_service = ReleaseNoteService(source, store, cfg.github.tag_link_base)

        app.state.settings = cfg
        app.state.service = release_service
        app.state.validator = validator or WebhookSecretValidator(cfg.github)
        app.state.build_metadata = CiBuildMetadataService()
        app.state.modules = ModuleService(cfg.modules)

        init_task: asyncio.Task[None] | None = None
        if run_initialization:
            logger.info("getting_releases_from_github")
            init_task = asyncio.create_task(release_service.get_releases_on_initialization())

        yield

        if init_task is not None and not init_task.done():
            init_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await init_task
        if source is not None:
            await source.aclose()
            release_service.store.close()

    app = FastAPI(
        title="Release Notes API",
        description="Mirrors GitHub release notes and serves build metadata",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_exception_handler(ReleaseNotesError, release_notes_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.include_router(router)
    return app


app = create_app()
