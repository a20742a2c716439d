"""Persistence layer (SQLAlchemy over SQLite)."""

from kiemusic.db.database import Base, create_db_engine, create_session_factory, init_db
from kiemusic.db.generations import GenerationRepository
from kiemusic.db.projects import ProjectRepository
from kiemusic.db.stem_separations import StemSeparationRepository

__all__ = [
    "Base",
    "GenerationRepository",
    "ProjectRepository",
    "StemSeparationRepository",
    "create_db_engine",
    "create_session_factory",
    "init_db",
]
