"""Polling of asynchronous KIE tasks."""

from kiemusic.polling.engine import PollConfig, PollLoop, PollRegistry
from kiemusic.polling.generation_mapper import (
    GenerationCompletion,
    GenerationProgress,
    map_generation_completion,
    map_generation_progress,
)
from kiemusic.polling.service import PollingService
from kiemusic.polling.stem_mapper import StemCompletion, map_stem_completion

__all__ = [
    "GenerationCompletion",
    "GenerationProgress",
    "PollConfig",
    "PollLoop",
    "PollRegistry",
    "PollingService",
    "StemCompletion",
    "map_generation_completion",
    "map_generation_progress",
    "map_stem_completion",
]
