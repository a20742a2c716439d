"""Main entry point for the kie-music server."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from kiemusic import __version__
from kiemusic.api.deps import init_services, shutdown_services
from kiemusic.api.routes import generations, health, imports, projects, sse, stem_separations
from kiemusic.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database and resume unfinished jobs on startup, stop pollers on shutdown."""
    services = init_services(settings)
    logger.info("Using database %s", settings.database_path)

    services.polling.recover_incomplete_generations(services.generations.get_pending())
    services.polling.recover_incomplete_stem_separations(services.stem_separations.get_pending())

    yield

    await shutdown_services()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="kie-music",
        description="Music generation job tracking with live updates",
        version=__version__,
        lifespan=lifespan,
    )

    app.include_router(health.router)
    app.include_router(projects.router)
    app.include_router(generations.router)
    app.include_router(stem_separations.router)
    app.include_router(imports.router)
    app.include_router(sse.router)

    return app


app = create_app()


def main() -> None:
    """Run the application."""
    settings.ensure_directories()
    uvicorn.run(
        "kiemusic.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
