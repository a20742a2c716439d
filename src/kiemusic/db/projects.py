"""Project persistence."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func

from kiemusic.db.tables import ProjectRow
from kiemusic.errors import NotFoundError
from kiemusic.models import Project


class ProjectRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def create(self, name: str = "New Project") -> Project:
        with self._session_factory() as session, session.begin():
            row = ProjectRow(name=name)
            session.add(row)
            session.flush()
            session.refresh(row)
            return Project.model_validate(row)

    def get(self, project_id: int) -> Project | None:
        with self._session_factory() as session:
            row = session.get(ProjectRow, project_id)
            return Project.model_validate(row) if row else None

    def list_all(self) -> list[Project]:
        """List all projects, most recently updated first."""
        with self._session_factory() as session:
            rows = session.scalars(
                select(ProjectRow).order_by(ProjectRow.updated_at.desc(), ProjectRow.id.desc())
            )
            return [Project.model_validate(row) for row in rows]

    def rename(self, project_id: int, name: str) -> Project:
        with self._session_factory() as session, session.begin():
            row = session.get(ProjectRow, project_id)
            if row is None:
                raise NotFoundError(f"Project {project_id} not found")
            row.name = name
            row.updated_at = func.now()
            session.flush()
            session.refresh(row)
            return Project.model_validate(row)

    def delete(self, project_id: int) -> bool:
        """Delete a project; its generations go with it."""
        with self._session_factory() as session, session.begin():
            result = session.execute(delete(ProjectRow).where(ProjectRow.id == project_id))
            return result.rowcount > 0
