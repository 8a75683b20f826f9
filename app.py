"""
app.py: FastAPI application factory and startup lifecycle.

This is the ASGI application object imported by uvicorn.
It wires the repository and plan service, registers routers, and runs startup
initialization.

Usage (via launcher):
    python main.py

Usage (direct uvicorn):
    uvicorn app:app --reload
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from plan_generator.controllers.plan_controller import router as plan_router
from plan_generator.repository.data_repository import DataRepository
from plan_generator.services.plan_service import PlanGenerationService
from plan_generator.utils.config import Settings, get_settings
from plan_generator.utils.logger import get_logger


logger = get_logger(__name__)


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build and wire the FastAPI application.

    Services are instantiated with explicit dependency injection via app.state.
    """
    settings = settings or get_settings()

    # --- Repository (single SQLite connection factory) ---
    repository = DataRepository(settings)

    # --- Services (business logic, no direct DB access) ---
    plan_service = PlanGenerationService(
        repository=repository,
        settings=settings,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Run startup initialization before accepting requests."""
        _startup(app, settings)
        yield

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
    )

    app.include_router(plan_router)

    app.state.repository = repository
    app.state.plan_service = plan_service

    return app


def _startup(app: FastAPI, settings: Settings) -> None:
    """
    Idempotent startup sequence. Safe to re-run on server restarts.

    Schema must exist before the demo account is seeded.
    """
    repository: DataRepository = app.state.repository

    logger.info("Startup: initializing database schema")
    repository.initialize_database()

    if settings.demo_seed_enabled:
        logger.info("Startup: seeding demo account (skipped if cities already exist)")
        repository.seed_demo_data()

    logger.info("Startup complete, system ready")


# Module-level app object for uvicorn
app = create_app()
