"""KIE music API client."""

from kiemusic.kie.client import KieClient
from kiemusic.kie.models import (
    ExtendMusicRequest,
    GenerateMusicRequest,
    MusicDetailsResponse,
    StemSeparationDetailsResponse,
    StemSeparationRequest,
    TaskStartResponse,
)

__all__ = [
    "ExtendMusicRequest",
    "GenerateMusicRequest",
    "KieClient",
    "MusicDetailsResponse",
    "StemSeparationDetailsResponse",
    "StemSeparationRequest",
    "TaskStartResponse",
]
