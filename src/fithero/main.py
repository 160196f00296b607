"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from fithero.config import get_settings
from fithero.database import close_db, get_session_factory, init_db
from fithero.health.router import router as health_router
from fithero.middleware import setup_middleware
from fithero.progression.router import router as progression_router
from fithero.progression.seed import seed_catalog
from fithero.redis_client import close_redis, init_redis
from fithero.users.router import admin_router, router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed the task and achievement catalog (idempotent)
    if settings.seed_catalog:
        try:
            async with get_session_factory()() as db:
                await seed_catalog(db)
        except SQLAlchemyError:
            logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="FitHero API",
        description="Backend API for FitHero: daily fitness tasks, points, levels and achievements",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(admin_router)
    app.include_router(progression_router)

    return app


app = create_app()
