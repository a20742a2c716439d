"""Stem separation job models."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict

from kiemusic.models.generation import JobStatus


class StemSeparationType(str, Enum):
    """Kind of separation requested from the API."""

    SEPARATE_VOCAL = "separate_vocal"
    SPLIT_STEM = "split_stem"


PENDING_STEM_STATUSES: tuple[str, ...] = (
    JobStatus.PENDING.value,
    JobStatus.PROCESSING.value,
)

# Stored stem URL columns, in API order
STEM_FIELDS: tuple[str, ...] = (
    "vocal_url",
    "instrumental_url",
    "backing_vocals_url",
    "drums_url",
    "bass_url",
    "guitar_url",
    "keyboard_url",
    "piano_url",
    "percussion_url",
    "strings_url",
    "synth_url",
    "fx_url",
    "brass_url",
    "woodwinds_url",
)


@dataclass(frozen=True)
class StemFields:
    """Result URLs of a finished stem separation.

    ``separate_vocal`` only fills vocal/instrumental, ``split_stem`` fills
    the rest. Missing stems are ``None``.
    """

    vocal_url: str | None = None
    instrumental_url: str | None = None
    backing_vocals_url: str | None = None
    drums_url: str | None = None
    bass_url: str | None = None
    guitar_url: str | None = None
    keyboard_url: str | None = None
    piano_url: str | None = None
    percussion_url: str | None = None
    strings_url: str | None = None
    synth_url: str | None = None
    fx_url: str | None = None
    brass_url: str | None = None
    woodwinds_url: str | None = None

    def as_dict(self) -> dict[str, str | None]:
        return asdict(self)


class StemSeparation(BaseModel):
    """A persisted stem separation job for one track of a generation."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    generation_id: int
    audio_id: str
    task_id: str | None = None
    type: StemSeparationType
    status: str = JobStatus.PENDING.value
    error_message: str | None = None

    vocal_url: str | None = None
    instrumental_url: str | None = None
    backing_vocals_url: str | None = None
    drums_url: str | None = None
    bass_url: str | None = None
    guitar_url: str | None = None
    keyboard_url: str | None = None
    piano_url: str | None = None
    percussion_url: str | None = None
    strings_url: str | None = None
    synth_url: str | None = None
    fx_url: str | None = None
    brass_url: str | None = None
    woodwinds_url: str | None = None
    response_data: str | None = None

    created_at: datetime | None = None
    updated_at: datetime | None = None
