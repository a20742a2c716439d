from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from kiemusic.db.database import Base


class ProjectRow(Base):
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, default="New Project")

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class GenerationRow(Base):
    __tablename__ = "generations"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    task_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    style: Mapped[str] = mapped_column(Text, nullable=False)
    lyrics: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    track1_stream_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    track1_audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    track1_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    track1_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    track1_audio_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    track2_stream_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    track2_audio_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    track2_image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    track2_duration: Mapped[float | None] = mapped_column(Float, nullable=True)
    track2_audio_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    response_data: Mapped[str | None] = mapped_column(Text, nullable=True)  # raw API payload (JSON)

    # extension of an existing track
    extends_generation_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("generations.id", ondelete="SET NULL"), nullable=True, index=True
    )
    extends_audio_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    continue_at: Mapped[float | None] = mapped_column(Float, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())


class StemSeparationRow(Base):
    __tablename__ = "stem_separations"
    __table_args__ = (
        CheckConstraint("type IN ('separate_vocal', 'split_stem')", name="ck_stem_type"),
        Index("idx_stem_separations_generation_audio", "generation_id", "audio_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    generation_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("generations.id", ondelete="CASCADE"), nullable=False
    )
    audio_id: Mapped[str] = mapped_column(String(128), nullable=False)
    task_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="pending")
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)

    # separate_vocal results
    vocal_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    instrumental_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # split_stem results
    backing_vocals_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    drums_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    bass_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    guitar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    keyboard_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    piano_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    percussion_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    strings_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    synth_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    fx_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    brass_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    woodwinds_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    response_data: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime, server_default=func.now())
