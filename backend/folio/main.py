"""
Folio API - Main Application Entry Point

This module initializes the FastAPI application with:
- Logging, database schema initialization
- Periodic stale-profile sweep
- Request id, metrics and CORS middleware
- API router registration and error mapping

Architecture:
    FastAPI App
    ├── Lifespan Management (startup/shutdown)
    ├── RequestContextMiddleware (X-Request-ID)
    ├── PrometheusMiddleware + /metrics
    └── API Router
        ├── /api/search - Profile search
        ├── /api/me/profile - Owner profile editing
        └── /api/profiles, /api/check-username - Public profiles
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from folio.api import api_router
from folio.database import init_db
from folio.errors import (
    FolioError,
    ProfileNotFoundError,
    QueryValidationError,
    UsernameTakenError,
)
from folio.logging_config import request_id_ctx, setup_logging
from folio.middleware import RequestContextMiddleware, setup_metrics
from folio.scheduler import start_scheduler, stop_scheduler

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    QueryValidationError: 400,
    ProfileNotFoundError: 404,
    UsernameTakenError: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Manage application lifecycle events.

    Startup:
        1. Configure logging
        2. Initialize database tables
        3. Start the stale-profile sweep

    Shutdown:
        1. Stop the scheduler
    """
    setup_logging()
    await init_db()
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(
    title="Folio API",
    description="Profile and portfolio API with hybrid profile search",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
setup_metrics(app)
app.add_middleware(RequestContextMiddleware)

app.include_router(api_router)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request_id_ctx.get()


@app.exception_handler(FolioError)
async def folio_error_handler(request: Request, exc: FolioError):
    status_code = next(
        (code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)),
        None,
    )
    if status_code is None:
        return await internal_error_handler(request, exc)

    logger.info(f"{type(exc).__name__}: {exc}")
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def internal_error_handler(request: Request, exc: Exception):
    request_id = _request_id(request)
    logger.error(
        f"Unhandled error on {request.method} {request.url.path} "
        f"[request_id={request_id}]: {exc}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "request_id": request_id},
        headers={"X-Request-ID": request_id},
    )


@app.get("/health")
async def health_check():
    return {"status": "healthy"}
