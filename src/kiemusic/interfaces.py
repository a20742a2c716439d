"""Service interfaces (Protocols) for kie-music.

The pollers and task starter depend on these contracts rather than on the
SQLAlchemy repositories or the httpx client, so both can be swapped out in
tests.
"""

from typing import Protocol

from kiemusic.kie.models import MusicDetailsResponse, StemSeparationDetailsResponse
from kiemusic.models import (
    Generation,
    GenerationTrackData,
    GenerationTrackUpdate,
    StemFields,
    StemSeparation,
)


class IKieClient(Protocol):
    """Read side of the KIE API used while polling."""

    async def get_music_details(self, task_id: str) -> MusicDetailsResponse:
        """Fetch the current record of a generation task."""
        ...

    async def get_stem_separation_details(self, task_id: str) -> StemSeparationDetailsResponse:
        """Fetch the current record of a stem separation task."""
        ...


class IGenerationStore(Protocol):
    """Status and result writes for generations."""

    def set_task_started(self, generation_id: int, task_id: str) -> bool:
        """Record the KIE task id; status becomes ``processing``.

        Returns False when the generation was deleted in the meantime.
        """
        ...

    def set_status(self, generation_id: int, status: str) -> None:
        """Set a non-error status and clear the error message."""
        ...

    def set_errored(self, generation_id: int, message: str) -> None:
        """Set status ``error`` with ``message``."""
        ...

    def set_completed(
        self,
        generation_id: int,
        track1: GenerationTrackData,
        track2: GenerationTrackData,
        response_data: str,
    ) -> None:
        """Store both final tracks; status becomes ``success``."""
        ...

    def update_provisional_fields(
        self,
        generation_id: int,
        track1: GenerationTrackUpdate,
        track2: GenerationTrackUpdate | None = None,
        response_data: str | None = None,
    ) -> None:
        """Merge provisional values without clearing stored ones."""
        ...

    def get_pending(self) -> list[Generation]:
        """Return generations in a non-terminal status."""
        ...


class IStemSeparationStore(Protocol):
    """Status and result writes for stem separations."""

    def set_task_started(self, separation_id: int, task_id: str) -> bool: ...

    def set_status(self, separation_id: int, status: str) -> None: ...

    def set_errored(self, separation_id: int, message: str) -> None: ...

    def set_completed(self, separation_id: int, fields: StemFields, response_data: str) -> None: ...

    def get_pending(self) -> list[StemSeparation]: ...
