"""FastAPI dependencies."""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy import Engine

from kiemusic.broadcast import BroadcastChannel
from kiemusic.config import Settings
from kiemusic.db import (
    GenerationRepository,
    ProjectRepository,
    StemSeparationRepository,
    create_db_engine,
    create_session_factory,
    init_db,
)
from kiemusic.kie import KieClient
from kiemusic.polling import PollingService
from kiemusic.tasks import TaskStarter


@dataclass
class Services:
    """Everything the routes need, wired once at startup."""

    settings: Settings
    engine: Engine
    projects: ProjectRepository
    generations: GenerationRepository
    stem_separations: StemSeparationRepository
    kie_client: KieClient
    channel: BroadcastChannel
    polling: PollingService
    tasks: TaskStarter


_services: Services | None = None


def build_services(settings: Settings) -> Services:
    """Create the database, repositories, KIE client, channel and pollers."""
    settings.ensure_directories()
    engine = create_db_engine(settings.database_path)
    init_db(engine)
    session_factory = create_session_factory(engine)

    projects = ProjectRepository(session_factory)
    generations = GenerationRepository(session_factory)
    stem_separations = StemSeparationRepository(session_factory)
    kie_client = KieClient(
        api_key=settings.kie_api_key,
        base_url=settings.kie_api_base,
        timeout=settings.kie_request_timeout,
    )
    channel = BroadcastChannel()
    polling = PollingService(
        kie_client,
        generations,
        stem_separations,
        channel,
        max_attempts=settings.poll_max_attempts,
        interval=settings.poll_interval_seconds,
    )
    tasks = TaskStarter(generations, stem_separations, channel, polling)

    return Services(
        settings=settings,
        engine=engine,
        projects=projects,
        generations=generations,
        stem_separations=stem_separations,
        kie_client=kie_client,
        channel=channel,
        polling=polling,
        tasks=tasks,
    )


def init_services(settings: Settings) -> Services:
    """Initialize the global Services (called at app startup)."""
    global _services
    _services = build_services(settings)
    return _services


async def shutdown_services() -> None:
    """Stop pollers and release the database (called at app shutdown)."""
    global _services
    if _services is None:
        return
    await _services.polling.cancel_all()
    _services.engine.dispose()
    _services = None


def get_services() -> Services:
    """Dependency that provides the Services instance."""
    if _services is None:
        raise RuntimeError("Services not initialized; call init_services() first")
    return _services
