"""FastAPI application for the release notes service.

Routes:
- GET  /health           - Health check for load balancers and monitoring
- GET  /release/notes    - Cached release notes (fetched on a cold cache)
- POST /release/webhook  - GitHub release webhook receiver
- GET  /modules          - Base module list for legacy clients
- GET  /v2/modules       - Full module catalog
- GET  /module?name=...  - One module by name

Architecture notes:
- FastAPI handles HTTP concerns (routing, status codes, serialization)
- ReleaseNoteService handles caching, fetching and merging
- Sync routes run in FastAPI's threadpool because the service blocks on
  GitHub during a cold fetch

To run locally:
    uvicorn release_notes.main:app --reload --port 8080
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from release_notes.config import load_config
from release_notes.errors import ReleasesFetchExhaustedError, WebhookDecodeError
from release_notes.logging_config import get_logger, setup_logging
from release_notes.schemas import Module, Release
from release_notes.service import ReleaseNoteService

logger = get_logger(__name__)

EVENT_TYPE_RELEASE = "release"
GITHUB_EVENT_HEADER = "X-GitHub-Event"


# ---------------------------------------------------------------------------
# Application Lifespan (startup/shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build the service once at startup unless one was injected.

    Construction warms the cache with a blocking GitHub call, so it runs
    in the threadpool.
    """
    if getattr(app.state, "service", None) is None:
        setup_logging()
        config = load_config()
        app.state.service = await run_in_threadpool(ReleaseNoteService.from_config, config)
    yield


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.time()
        response = await call_next(request)
        duration = time.time() - start
        logger.info(
            "http_request",
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration=round(duration, 4),
        )
        response.headers["X-Process-Time"] = f"{duration:.2f}s"
        return response


# ---------------------------------------------------------------------------
# Error Handling
# ---------------------------------------------------------------------------


async def webhook_decode_error_handler(request: Request, exc: WebhookDecodeError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "invalid_webhook_payload", "detail": str(exc)},
    )


async def fetch_exhausted_error_handler(
    request: Request, exc: ReleasesFetchExhaustedError
) -> JSONResponse:
    """Releases are unavailable: the cache is cold and GitHub kept failing."""
    return JSONResponse(
        status_code=502,
        content={"error": "releases_unavailable", "detail": str(exc)},
    )


async def general_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unexpected exceptions; logs the traceback."""
    logger.error(
        "unhandled_error",
        path=request.url.path,
        error=str(exc),
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_error", "detail": str(exc)},
    )


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


def get_service(request: Request) -> ReleaseNoteService:
    return request.app.state.service


async def health_check() -> dict[str, str]:
    return {"status": "healthy"}


def get_release_notes(request: Request) -> list[Release]:
    """Return the release notes, newest first.

    Raises:
        ReleasesFetchExhaustedError: Mapped to 502 by the error handler
    """
    return get_service(request).get_releases()


async def release_webhook(request: Request) -> dict[str, bool]:
    """Receive a GitHub release webhook.

    Deliveries for other event types are acknowledged and ignored so
    GitHub does not mark the hook as failing.
    """
    event = request.headers.get(GITHUB_EVENT_HEADER)
    if event is not None and event != EVENT_TYPE_RELEASE:
        logger.warning("webhook_event_ignored", event=event)
        return {"accepted": False}

    body = await request.body()
    accepted = await run_in_threadpool(get_service(request).update_releases, body)
    return {"accepted": accepted}


def get_modules(request: Request) -> list[Module]:
    return get_service(request).get_modules()


def get_modules_v2(request: Request) -> list[Module]:
    return get_service(request).get_modules_v2()


def get_module_by_name(name: str, request: Request) -> Module:
    """Return the named module; an unknown name gets an empty module."""
    return get_service(request).get_module_by_name(name)


# ---------------------------------------------------------------------------
# FastAPI App
# ---------------------------------------------------------------------------


def create_app(service: ReleaseNoteService | None = None) -> FastAPI:
    """Create the FastAPI app.

    Args:
        service: Pre-built service (tests). Built from the environment at
                 startup if None.
    """
    app = FastAPI(
        title="Release Notes Service",
        description="Cached GitHub release notes and module catalog",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service

    app.add_middleware(RequestLoggingMiddleware)

    app.add_exception_handler(WebhookDecodeError, webhook_decode_error_handler)
    app.add_exception_handler(ReleasesFetchExhaustedError, fetch_exhausted_error_handler)
    app.add_exception_handler(Exception, general_error_handler)

    app.add_api_route("/health", health_check, methods=["GET"])
    app.add_api_route(
        "/release/notes", get_release_notes, methods=["GET"], response_model=list[Release]
    )
    app.add_api_route("/release/webhook", release_webhook, methods=["POST"])
    app.add_api_route("/modules", get_modules, methods=["GET"], response_model=list[Module])
    app.add_api_route(
        "/v2/modules", get_modules_v2, methods=["GET"], response_model=list[Module]
    )
    app.add_api_route("/module", get_module_by_name, methods=["GET"], response_model=Module)
    return app


app = create_app()
