"""Generation job models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class JobStatus(str, Enum):
    """Internal status of a generation or stem separation job.

    ``success`` and ``error`` are terminal.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    TEXT_SUCCESS = "text_success"
    FIRST_SUCCESS = "first_success"
    SUCCESS = "success"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.SUCCESS, JobStatus.ERROR)


PENDING_GENERATION_STATUSES: tuple[str, ...] = (
    JobStatus.PENDING.value,
    JobStatus.PROCESSING.value,
    JobStatus.TEXT_SUCCESS.value,
    JobStatus.FIRST_SUCCESS.value,
)


@dataclass(frozen=True)
class GenerationTrackData:
    """Final data for one of the two tracks of a finished generation."""

    stream_url: str | None
    audio_url: str | None
    image_url: str | None
    duration: float | None
    audio_id: str | None


@dataclass(frozen=True)
class GenerationTrackUpdate:
    """Provisional track data seen before a generation completes.

    ``None`` means "not known yet" and never overwrites a stored value.
    """

    stream_url: str | None = None
    image_url: str | None = None
    audio_id: str | None = None
    audio_url: str | None = None
    duration: float | None = None


class Generation(BaseModel):
    """A persisted music generation (or song extension) job."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    project_id: int
    task_id: str | None = None
    title: str
    style: str
    lyrics: str
    status: str = JobStatus.PENDING.value
    error_message: str | None = None

    track1_stream_url: str | None = None
    track1_audio_url: str | None = None
    track1_image_url: str | None = None
    track1_duration: float | None = None
    track1_audio_id: str | None = None
    track2_stream_url: str | None = None
    track2_audio_url: str | None = None
    track2_image_url: str | None = None
    track2_duration: float | None = None
    track2_audio_id: str | None = None
    response_data: str | None = None

    extends_generation_id: int | None = None
    extends_audio_id: str | None = None
    continue_at: float | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
