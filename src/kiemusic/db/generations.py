"""Generation persistence.

Status changes go through the single-purpose setters below; provisional
track data and final results are merged with COALESCE so a stored value
is never cleared.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import delete, select, update
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func

from kiemusic.db.tables import GenerationRow, ProjectRow
from kiemusic.models import (
    PENDING_GENERATION_STATUSES,
    Generation,
    GenerationTrackData,
    GenerationTrackUpdate,
    JobStatus,
)

_TRACK_ATTRS = ("stream_url", "audio_url", "image_url", "duration", "audio_id")


def _merged_track_values(
    track1: GenerationTrackData | GenerationTrackUpdate,
    track2: GenerationTrackData | GenerationTrackUpdate | None,
) -> dict[str, Any]:
    """Column values that COALESCE new track data over the stored row."""
    values: dict[str, Any] = {}
    for prefix, track in (("track1", track1), ("track2", track2)):
        for attr in _TRACK_ATTRS:
            column = f"{prefix}_{attr}"
            new_value = getattr(track, attr, None) if track is not None else None
            values[column] = func.coalesce(new_value or None, getattr(GenerationRow, column))
    return values


class GenerationRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Creation and lookup
    # ------------------------------------------------------------------

    def create(self, project_id: int, title: str, style: str, lyrics: str) -> Generation:
        """Insert a new pending generation."""
        return self._insert(
            GenerationRow(project_id=project_id, title=title, style=style, lyrics=lyrics)
        )

    def create_extension(
        self,
        project_id: int,
        title: str,
        style: str,
        lyrics: str,
        extends_generation_id: int,
        extends_audio_id: str,
        continue_at: float,
    ) -> Generation:
        """Insert a new pending generation that extends an existing track."""
        return self._insert(
            GenerationRow(
                project_id=project_id,
                title=title,
                style=style,
                lyrics=lyrics,
                extends_generation_id=extends_generation_id,
                extends_audio_id=extends_audio_id,
                continue_at=continue_at,
            )
        )

    def create_imported(
        self,
        project_name: str,
        task_id: str,
        title: str,
        style: str,
        lyrics: str,
        track1: GenerationTrackData,
        track2: GenerationTrackData,
        response_data: str,
    ) -> Generation:
        """Insert a new project holding one already finished generation.

        Both rows are written in one transaction.
        """
        values: dict[str, Any] = {}
        for prefix, track in (("track1", track1), ("track2", track2)):
            for attr in _TRACK_ATTRS:
                values[f"{prefix}_{attr}"] = getattr(track, attr)

        with self._session_factory() as session, session.begin():
            project = ProjectRow(name=project_name)
            session.add(project)
            session.flush()
            row = GenerationRow(
                project_id=project.id,
                task_id=task_id,
                title=title,
                style=style,
                lyrics=lyrics,
                status=JobStatus.SUCCESS.value,
                response_data=response_data,
                **values,
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            return Generation.model_validate(row)

    def get(self, generation_id: int) -> Generation | None:
        with self._session_factory() as session:
            row = session.get(GenerationRow, generation_id)
            return Generation.model_validate(row) if row else None

    def list_by_project(self, project_id: int) -> list[Generation]:
        """List a project's generations, newest first."""
        return self._select(
            select(GenerationRow)
            .where(GenerationRow.project_id == project_id)
            .order_by(GenerationRow.created_at.desc(), GenerationRow.id.desc())
        )

    def list_extensions(self, generation_id: int, audio_id: str) -> list[Generation]:
        """List generations that extend the given track, oldest first."""
        return self._select(
            select(GenerationRow)
            .where(
                GenerationRow.extends_generation_id == generation_id,
                GenerationRow.extends_audio_id == audio_id,
            )
            .order_by(GenerationRow.created_at.asc(), GenerationRow.id.asc())
        )

    def get_pending(self) -> list[Generation]:
        """Return every generation in a non-terminal status."""
        return self._select(
            select(GenerationRow).where(GenerationRow.status.in_(PENDING_GENERATION_STATUSES))
        )

    # ------------------------------------------------------------------
    # Status transitions
    # ------------------------------------------------------------------

    def set_task_started(self, generation_id: int, task_id: str) -> bool:
        """Record the KIE task id. Returns False if the generation no longer exists."""
        return self._update(generation_id, task_id=task_id, status=JobStatus.PROCESSING.value)

    def set_status(self, generation_id: int, status: str) -> None:
        """Set a non-error status and clear any previous error message."""
        self._update(generation_id, status=JobStatus(status).value, error_message=None)

    def set_errored(self, generation_id: int, message: str) -> None:
        self._update(generation_id, status=JobStatus.ERROR.value, error_message=message)

    def set_completed(
        self,
        generation_id: int,
        track1: GenerationTrackData,
        track2: GenerationTrackData,
        response_data: str,
    ) -> None:
        """Store both final tracks; status becomes ``success``.

        A value missing from the final record keeps what is stored, so a
        preview stream URL seen earlier survives completion.
        """
        values = _merged_track_values(track1, track2)
        self._update(
            generation_id,
            status=JobStatus.SUCCESS.value,
            error_message=None,
            response_data=response_data,
            **values,
        )

    def update_provisional_fields(
        self,
        generation_id: int,
        track1: GenerationTrackUpdate,
        track2: GenerationTrackUpdate | None = None,
        response_data: str | None = None,
    ) -> None:
        """Merge provisional track data; empty values keep the stored ones."""
        values = _merged_track_values(track1, track2)
        values["response_data"] = func.coalesce(
            response_data or None, GenerationRow.response_data
        )
        self._update(generation_id, **values)

    def delete(self, generation_id: int) -> bool:
        """Delete a generation; its stem separations go with it."""
        with self._session_factory() as session, session.begin():
            result = session.execute(
                delete(GenerationRow).where(GenerationRow.id == generation_id)
            )
            return result.rowcount > 0

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _insert(self, row: GenerationRow) -> Generation:
        with self._session_factory() as session, session.begin():
            session.add(row)
            session.flush()
            session.execute(
                update(ProjectRow)
                .where(ProjectRow.id == row.project_id)
                .values(updated_at=func.now())
            )
            session.refresh(row)
            return Generation.model_validate(row)

    def _select(self, stmt) -> list[Generation]:
        with self._session_factory() as session:
            return [Generation.model_validate(row) for row in session.scalars(stmt)]

    def _update(self, generation_id: int, **values: Any) -> bool:
        with self._session_factory() as session, session.begin():
            result = session.execute(
                update(GenerationRow)
                .where(GenerationRow.id == generation_id)
                .values(updated_at=func.now(), **values)
            )
            return result.rowcount > 0
