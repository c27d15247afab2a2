from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from . import __version__
from .exceptions import register_exception_handlers
from .logging_setup import setup_logging
from .repositories import open_repository
from .routers import tasks as tasks_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {
        "name": "tasks",
        "description": "CRUD operations for tasks with filtering, sorting and statistics.",
    },
]


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the FastAPI application.

    The task store is opened when the application starts and closed when it
    shuts down; request handlers reach it through ``app.state.repository``.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.repository = open_repository(settings)
        logger.info("Task API started (backend=%s)", settings.persistence_backend)
        try:
            yield
        finally:
            app.state.repository.close()
            logger.info("Task store closed")

    app = FastAPI(
        title="Task Manager API",
        description="Backend API for managing personal tasks with filters and statistics.",
        version=__version__,
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Configure CORS based on settings (.env -> CORS_ALLOW_ORIGINS), with '*' fallback
    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get(f"{settings.api_prefix}/health", summary="Health Check", tags=["health"])
    def health_check(request: Request) -> dict:
        """
        Liveness probe.

        Returns:
            A JSON object indicating service health and the active store backend.
        """
        return {
            "status": "OK",
            "message": "Task Manager API is running",
            "backend": request.app.state.settings.persistence_backend,
        }

    app.include_router(tasks_router.router, prefix=settings.api_prefix)
    return app


app = create_app()
