"""FastAPI application factory.

Main entry point for the Olympiad back-office Web API.
"""

from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

import structlog
from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from olympiad import __version__
from olympiad.config import load_app_config
from olympiad.core.errors import OlympiadError
from olympiad.db.database import check_database_status, init_db
from olympiad.web.routes import (
    admin_auth_router,
    database_router,
    editions_router,
    enrollments_router,
    exams_router,
    finals_router,
    health_router,
    marking_router,
    minors_router,
    participant_auth_router,
    participant_exams_router,
    participants_router,
    progression_router,
    questions_router,
    stories_router,
)

logger = structlog.get_logger(__name__)


async def olympiad_error_handler(request: Request, exc: OlympiadError) -> JSONResponse:
    """Translate a domain error into its HTTP status."""
    logger.info(
        "api.domain_error",
        path=request.url.path,
        method=request.method,
        status_code=exc.status_code,
        detail=exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and answer with a generic message."""
    logger.exception(
        "api.unhandled_error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: SQLite file to use. Defaults to the configured path.

    Returns:
        Configured FastAPI app instance
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        # Startup
        path = db_path or load_app_config().database.path
        init_db(path)
        db_status = check_database_status()
        logger.info(
            "api_startup",
            db_path=str(path),
            tables=len(db_status["tables"]),
            schema_version=db_status["schema_version"],
        )
        yield

    app = FastAPI(
        title="Olympiad Back-office API",
        description="Web API for running STEM Olympiad editions",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Cookies carry the sessions, so credentials must be allowed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(OlympiadError, olympiad_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    # Include routers
    app.include_router(health_router)
    app.include_router(admin_auth_router)
    app.include_router(participant_auth_router)
    app.include_router(minors_router)
    app.include_router(enrollments_router)
    app.include_router(participant_exams_router)
    app.include_router(database_router)
    app.include_router(editions_router)
    app.include_router(participants_router)
    app.include_router(questions_router)
    app.include_router(exams_router)
    app.include_router(marking_router)
    app.include_router(progression_router)
    app.include_router(finals_router)
    app.include_router(stories_router)

    return app


# Default app instance for uvicorn
app = create_app()
