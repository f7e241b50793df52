"""
Agora Forum Backend Application.

FastAPI application serving the discussion forum: accounts,
sessions, posts, comments and reactions.
"""

import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from loguru import logger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agora.api.v1 import router as api_v1_router
from agora.core.config import settings
from agora.core.database import (
    async_session_maker,
    close_db,
    get_db,
    health_check as db_health_check,
    init_db,
)
from agora.core.exceptions import ForumError, StorageError
from agora.modules.auth import SessionSweeper


def configure_logging() -> None:
    """Route loguru output to stderr at the configured level."""
    logger.remove()
    logger.add(sys.stderr, level=settings.log_level.upper())


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    configure_logging()
    logger.info("Starting Agora Forum...")

    # Initialize database
    await init_db()

    # Start expired-session cleanup
    sweeper = SessionSweeper(async_session_maker)
    await sweeper.start()

    logger.info("Agora Forum started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Agora Forum...")

    await sweeper.stop()

    # Close database
    await close_db()

    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Agora Forum Backend

    ## Features

    - **Accounts**: Registration, login and cookie sessions
    - **Posts**: Category-tagged posts with filtering and search
    - **Comments**: Chronological comment threads
    - **Reactions**: Likes and dislikes on posts and comments
    """,
    openapi_url=f"{settings.api_v1_prefix}/openapi.json",
    docs_url="/docs",
    redoc_url="/redoc",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError) -> ORJSONResponse:
    """Render domain errors with their status and client-safe detail."""
    return ORJSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError) -> ORJSONResponse:
    """Unexpected store errors outside a transaction block."""
    logger.error(f"Storage error on {request.method} {request.url.path}: {exc!r}")
    error = StorageError()
    return ORJSONResponse(status_code=error.status_code, content={"detail": error.detail})


# Include API router
app.include_router(api_v1_router, prefix=settings.api_v1_prefix)


@app.get("/health", tags=["System"])
async def health_check(db: AsyncSession = Depends(get_db)) -> dict:
    """Health check endpoint for monitoring."""
    healthy = await db_health_check(db)
    return {
        "status": "healthy" if healthy else "degraded",
        "database": healthy,
        "version": settings.app_version,
    }


@app.get("/", tags=["System"])
async def root() -> dict:
    """Root endpoint with API information."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "api": settings.api_v1_prefix,
    }
