"""Stem separation persistence."""

from __future__ import annotations

from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import sessionmaker
from sqlalchemy.sql import func

from kiemusic.db.tables import StemSeparationRow
from kiemusic.models import (
    PENDING_STEM_STATUSES,
    JobStatus,
    StemFields,
    StemSeparation,
    StemSeparationType,
)


class StemSeparationRepository:
    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def create(
        self, generation_id: int, audio_id: str, separation_type: StemSeparationType | str
    ) -> StemSeparation:
        """Insert a new pending stem separation."""
        with self._session_factory() as session, session.begin():
            row = StemSeparationRow(
                generation_id=generation_id,
                audio_id=audio_id,
                type=StemSeparationType(separation_type).value,
            )
            session.add(row)
            session.flush()
            session.refresh(row)
            return StemSeparation.model_validate(row)

    def get(self, separation_id: int) -> StemSeparation | None:
        with self._session_factory() as session:
            row = session.get(StemSeparationRow, separation_id)
            return StemSeparation.model_validate(row) if row else None

    def get_latest_by_type(
        self, generation_id: int, audio_id: str, separation_type: StemSeparationType | str
    ) -> StemSeparation | None:
        """Return the newest separation of one type for one track."""
        with self._session_factory() as session:
            row = session.scalars(
                select(StemSeparationRow)
                .where(
                    StemSeparationRow.generation_id == generation_id,
                    StemSeparationRow.audio_id == audio_id,
                    StemSeparationRow.type == StemSeparationType(separation_type).value,
                )
                .order_by(StemSeparationRow.created_at.desc(), StemSeparationRow.id.desc())
                .limit(1)
            ).first()
            return StemSeparation.model_validate(row) if row else None

    def list_for_song(self, generation_id: int, audio_id: str) -> list[StemSeparation]:
        return self._select(
            select(StemSeparationRow)
            .where(
                StemSeparationRow.generation_id == generation_id,
                StemSeparationRow.audio_id == audio_id,
            )
            .order_by(StemSeparationRow.created_at.desc(), StemSeparationRow.id.desc())
        )

    def list_by_generation(self, generation_id: int) -> list[StemSeparation]:
        return self._select(
            select(StemSeparationRow).where(StemSeparationRow.generation_id == generation_id)
        )

    def get_pending(self) -> list[StemSeparation]:
        """Return every stem separation in a non-terminal status."""
        return self._select(
            select(StemSeparationRow).where(StemSeparationRow.status.in_(PENDING_STEM_STATUSES))
        )

    def set_task_started(self, separation_id: int, task_id: str) -> bool:
        """Record the KIE task id. Returns False if the separation no longer exists."""
        return self._update(separation_id, task_id=task_id, status=JobStatus.PROCESSING.value)

    def set_status(self, separation_id: int, status: str) -> None:
        """Set a non-error status and clear any previous error message."""
        self._update(separation_id, status=JobStatus(status).value, error_message=None)

    def set_errored(self, separation_id: int, message: str) -> None:
        self._update(separation_id, status=JobStatus.ERROR.value, error_message=message)

    def set_completed(self, separation_id: int, fields: StemFields, response_data: str) -> None:
        values: dict[str, Any] = {name: url or None for name, url in fields.as_dict().items()}
        self._update(
            separation_id,
            status=JobStatus.SUCCESS.value,
            error_message=None,
            response_data=response_data,
            **values,
        )

    def _select(self, stmt) -> list[StemSeparation]:
        with self._session_factory() as session:
            return [StemSeparation.model_validate(row) for row in session.scalars(stmt)]

    def _update(self, separation_id: int, **values: Any) -> bool:
        with self._session_factory() as session, session.begin():
            result = session.execute(
                update(StemSeparationRow)
                .where(StemSeparationRow.id == separation_id)
                .values(updated_at=func.now(), **values)
            )
            return result.rowcount > 0
