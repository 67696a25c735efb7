"""FastAPI Application Entry Point.

Configures the app, lifespan, CORS, and includes all route modules.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workflow.config import CORS_ORIGINS
from workflow.logging_config import get_api_logger

from .database import close_db, init_db
from .dependencies import Services, build_services

logger = get_api_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage database lifecycle."""
    await init_db()
    services: Services = app.state.services
    logger.info(
        f"Workflow API ready: {len(services.node_registry)} node types, "
        f"{len(services.tool_registry)} tools"
    )
    yield
    await close_db()


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Build the app around a service container (SQL-backed by default)."""
    app = FastAPI(title="Workflow Engine API", version="1.0.0", lifespan=lifespan)
    app.state.services = services or build_services()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    from .routes.execution import router as execution_router
    from .routes.tools import router as tools_router
    from .routes.workflows import router as workflows_router

    app.include_router(workflows_router)
    app.include_router(execution_router)
    app.include_router(tools_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {"status": "ok"}

    return app


app = create_app()
