"""
FastAPI application for ShareLink.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any, Dict

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .config import get_settings
from .db.base import dispose_engine, get_db, init_database
from .errors import ShareLinkError, StorageFailure
from .logging_config import configure_logging
from .routes import blob_store_from_settings, router
from .storage import LocalBlobStore

logger = structlog.get_logger()

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    configure_logging(settings)
    logger.info("Starting ShareLink", environment=settings.environment)

    try:
        init_database()

        blob_store = blob_store_from_settings(settings)
        app.state.blob_store = blob_store
        if isinstance(blob_store, LocalBlobStore):
            _mount_uploads(app, blob_store)
        logger.info("Blob store ready", storage_uri=settings.storage_uri)

    except Exception as e:
        logger.error("Failed to start application", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("Shutting down ShareLink")
    app.state.blob_store = None
    dispose_engine()
    logger.info("Shutdown complete")


def _mount_uploads(app: FastAPI, blob_store: LocalBlobStore) -> None:
    """Serve local blobs under their URL prefix."""
    if any(getattr(route, "name", None) == "uploads" for route in app.routes):
        return
    blob_store.root.mkdir(parents=True, exist_ok=True)
    app.mount(
        blob_store.url_prefix,
        StaticFiles(directory=blob_store.root),
        name="uploads",
    )


app = FastAPI(
    title="ShareLink",
    description="Share uploaded files through public, password-protected or expiring links",
    version=importlib.metadata.version("sharelink"),
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Error mapping
@app.exception_handler(ShareLinkError)
async def sharelink_error_handler(request: Request, exc: ShareLinkError) -> JSONResponse:
    if isinstance(exc, StorageFailure):
        logger.error(
            "Storage failure",
            path=request.url.path,
            error=exc.message,
            cause=str(exc.__cause__) if exc.__cause__ else None,
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database failure", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=500,
        content={"error": StorageFailure.code, "message": "Database operation failed"},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Invalid request",
            "details": [
                {"loc": list(err.get("loc", ())), "msg": err.get("msg")}
                for err in exc.errors()
            ],
        },
    )


# Health and Info Endpoints
@app.get("/", tags=["system"])
def root() -> Dict[str, str]:
    return {"message": "ShareLink is running"}


@app.get("/health", tags=["system"])
async def health() -> Dict[str, str]:
    """Basic liveness check."""
    return {"status": "ok"}


@app.get("/healthz", tags=["system"])
def healthz(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """Readiness check including the database."""
    try:
        db.execute(text("SELECT 1"))
        db_ok = True
    except SQLAlchemyError as e:
        logger.warning("Health check database query failed", error=str(e))
        db_ok = False
    return {"ok": db_ok, "db": db_ok}


@app.get("/version", tags=["system"])
def version() -> Dict[str, str]:
    """Return the version of the application."""
    return {"version": importlib.metadata.version("sharelink")}


app.include_router(router)
