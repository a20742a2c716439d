"""Domain models for kie-music."""

from kiemusic.models.generation import (
    PENDING_GENERATION_STATUSES,
    Generation,
    GenerationTrackData,
    GenerationTrackUpdate,
    JobStatus,
)
from kiemusic.models.project import Project
from kiemusic.models.stem_separation import (
    PENDING_STEM_STATUSES,
    STEM_FIELDS,
    StemFields,
    StemSeparation,
    StemSeparationType,
)

__all__ = [
    "Generation",
    "GenerationTrackData",
    "GenerationTrackUpdate",
    "JobStatus",
    "PENDING_GENERATION_STATUSES",
    "PENDING_STEM_STATUSES",
    "Project",
    "STEM_FIELDS",
    "StemFields",
    "StemSeparation",
    "StemSeparationType",
]
