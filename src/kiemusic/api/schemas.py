"""Request schemas for the kie-music API.

Request bodies use the camelCase names the desktop UI sends. Responses are
the record models from ``kiemusic.models``.
"""

from __future__ import annotations

from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, PositiveInt
from pydantic.alias_generators import to_camel

from kiemusic.models import StemSeparationType


def _non_empty(value: str) -> str:
    stripped = value.strip()
    if not stripped:
        raise ValueError("must be a non-empty string")
    return stripped


NonEmptyStr = Annotated[str, AfterValidator(_non_empty)]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ------------------------------------------------------------------
# Projects
# ------------------------------------------------------------------


class ProjectCreateRequest(CamelModel):
    name: NonEmptyStr = Field("New Project", description="Project name")


class ProjectUpdateRequest(CamelModel):
    name: NonEmptyStr = Field(..., description="New project name")


# ------------------------------------------------------------------
# Generations
# ------------------------------------------------------------------


class GenerationCreateRequest(CamelModel):
    project_id: PositiveInt = Field(..., description="Owning project")
    title: NonEmptyStr = Field(..., description="Song title")
    style: NonEmptyStr = Field(..., description="Style tags")
    lyrics: NonEmptyStr = Field(..., description="Lyrics used as the prompt")


class ExtendGenerationRequest(GenerationCreateRequest):
    extends_generation_id: PositiveInt = Field(..., description="Generation being extended")
    extends_audio_id: NonEmptyStr = Field(..., description="Track being extended")
    continue_at: float = Field(..., ge=0, description="Seconds into the track to continue from")


# ------------------------------------------------------------------
# Stem separation
# ------------------------------------------------------------------


class StemSeparationCreateRequest(CamelModel):
    generation_id: PositiveInt = Field(..., description="Parent generation")
    audio_id: NonEmptyStr = Field(..., description="Track to separate")
    type: StemSeparationType = Field(..., description="separate_vocal or split_stem")


# ------------------------------------------------------------------
# Import
# ------------------------------------------------------------------


class ImportRequest(CamelModel):
    task_id: NonEmptyStr = Field(..., description="KIE task id of a finished generation")
    project_name: str | None = Field(None, description="Name for the new project")


class ImportedProject(BaseModel):
    id: int
    name: str


class ImportedGeneration(BaseModel):
    id: int
    title: str


class ImportResponse(BaseModel):
    success: bool = True
    project: ImportedProject
    generation: ImportedGeneration


class DeleteResponse(BaseModel):
    success: bool = True
