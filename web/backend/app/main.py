"""FastAPI application for the Fairway messaging service.

Provides REST API endpoints wrapping the fairway package for:
- Thread creation and message delivery (rate limited, content guarded)
- Messaging policy management
- Message reports, thread freezes and the moderation audit trail
- The scheduled retention purge
"""

from __future__ import annotations

import sys
from pathlib import Path

# Ensure the fairway package is importable by adding the project root to sys.path.
_project_root = str(Path(__file__).resolve().parents[3])
if _project_root not in sys.path:
    sys.path.insert(0, _project_root)

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from fairway import __version__
from fairway.messages.errors import (
    CharterRequiredError,
    MessageBlockedError,
    MessagingError,
    MessagingSuspendedError,
    RateLimitExceededError,
)
from fairway.utils.logger import get_logger
from web.backend.app.routers import charter, messages, moderation, policy, purge, suspensions

logger = get_logger(__name__)

app = FastAPI(
    title="Fairway Messaging API",
    description=(
        "REST API for the Fairway messaging core. "
        "Provides endpoints for threads and messages, messaging policy, "
        "moderation reports, the audit trail and the retention purge."
    ),
    version=__version__,
)

# ---------------------------------------------------------------------------
# CORS middleware (allow all origins for development)
# ---------------------------------------------------------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ---------------------------------------------------------------------------
# Include routers
# ---------------------------------------------------------------------------
app.include_router(messages.router)
app.include_router(policy.router)
app.include_router(charter.router)
app.include_router(moderation.router)
app.include_router(suspensions.router)
app.include_router(purge.router)


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------


@app.exception_handler(MessagingError)
async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
    """Render domain errors as ``{"error": detail}`` with their status code."""
    content: dict = {"error": exc.detail}
    headers: dict[str, str] = {}

    if isinstance(exc, MessageBlockedError):
        content["flags"] = exc.flag_types
    elif isinstance(exc, RateLimitExceededError):
        content["retryAfterSeconds"] = exc.retry_after_seconds
        headers["Retry-After"] = str(exc.retry_after_seconds)
    elif isinstance(exc, CharterRequiredError):
        content["code"] = exc.code
        content["charterVersion"] = exc.charter_version
    elif isinstance(exc, MessagingSuspendedError):
        content["code"] = exc.code
        content["suspendedUntil"] = exc.suspended_until
    elif exc.status_code >= 500:
        logger.error("request failed: %s %s -> %s", request.method, request.url.path, exc.status_code)

    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Auth and permission failures use the same ``{"error": detail}`` shape."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.detail},
        headers=exc.headers,
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content={"error": "Invalid payload.", "details": jsonable_encoder(exc.errors())},
    )


# ---------------------------------------------------------------------------
# Root and health-check endpoints
# ---------------------------------------------------------------------------


@app.get("/", tags=["meta"])
async def root():
    """Return basic API information."""
    return {
        "name": "Fairway Messaging API",
        "version": __version__,
        "docs": "/docs",
        "openapi": "/openapi.json",
    }


@app.get("/health", tags=["meta"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
