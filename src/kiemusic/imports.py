"""Import a finished KIE generation by its task id.

The task is fetched once, checked for two usable tracks and stored as a
new project with an already successful generation. No polling is involved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy.exc import SQLAlchemyError

from kiemusic.db import GenerationRepository, ProjectRepository
from kiemusic.errors import KieAPIError, SongImportError
from kiemusic.interfaces import IKieClient
from kiemusic.kie.models import MusicDetailsResponse, SunoTrack
from kiemusic.kie.status import is_complete_status, is_error_status, is_in_progress_status
from kiemusic.models import Generation, GenerationTrackData, Project
from kiemusic.polling.generation_mapper import final_track_data

logger = logging.getLogger(__name__)

ERROR_STATUS_MESSAGES: dict[str, str] = {
    "CREATE_TASK_FAILED": "The generation task failed to start",
    "GENERATE_AUDIO_FAILED": "Audio generation failed",
    "CALLBACK_EXCEPTION": "A processing error occurred",
    "SENSITIVE_WORD_ERROR": "Content was flagged for policy violations",
}

IN_PROGRESS_MESSAGES: dict[str, str] = {
    "PENDING": "still queued",
    "TEXT_SUCCESS": "generating audio",
    "FIRST_SUCCESS": "finishing up",
}

_EMPTY_TRACK = GenerationTrackData(
    stream_url=None, audio_url=None, image_url=None, duration=None, audio_id=None
)


@dataclass(frozen=True)
class ImportableSong:
    track1: SunoTrack
    track2: SunoTrack | None
    response_data: str


@dataclass(frozen=True)
class ImportResult:
    project: Project
    generation: Generation


def _is_usable_track(track: SunoTrack) -> bool:
    return bool(track.id) and bool(track.audio_url)


def validate_importable_details(details: MusicDetailsResponse) -> ImportableSong:
    """Check that a task record describes a finished song.

    Raises:
        SongImportError: 502 for an unusable API answer, 400 when the task
            failed, is not finished yet or lacks track data.
    """
    if details.code != 200:
        logger.error("KIE API returned error code %s: %s", details.code, details.msg)
        raise SongImportError(f"KIE API error: {details.msg or 'Unknown error'}", 502)

    status = details.data.status
    if not status:
        logger.error("KIE API response has no task status: %s", details.to_api_json())
        raise SongImportError("Invalid response structure from KIE API", 502)

    if is_error_status(status):
        message = ERROR_STATUS_MESSAGES.get(status, status)
        if details.data.error_message:
            message = f"{message} - {details.data.error_message}"
        raise SongImportError(f"Cannot import: {message}", 400)

    if not is_complete_status(status):
        progress = IN_PROGRESS_MESSAGES[status] if is_in_progress_status(status) else status
        raise SongImportError(
            f"Cannot import: generation is {progress}. "
            "Please wait until it completes and try again.",
            400,
        )

    response = details.data.response
    tracks = response.tracks if response is not None else []
    if not tracks:
        raise SongImportError("No tracks found in this generation", 400)

    track1 = tracks[0]
    if not _is_usable_track(track1):
        logger.error("Track 1 of task %s is incomplete: %s", details.data.task_id, track1)
        raise SongImportError("Track 1 data is incomplete or corrupted", 400)

    # a second track is optional, but must be usable when present
    track2 = tracks[1] if len(tracks) > 1 else None
    if track2 is not None and not _is_usable_track(track2):
        logger.error("Track 2 of task %s is incomplete: %s", details.data.task_id, track2)
        raise SongImportError("Track 2 data is incomplete or corrupted", 400)

    return ImportableSong(
        track1=track1, track2=track2, response_data=details.data.to_api_json()
    )


def _fetch_error(error: KieAPIError) -> SongImportError:
    if error.status_code == 404:
        return SongImportError("Task ID not found. Please verify the ID is correct.", 404)
    if error.status_code in (401, 403):
        return SongImportError(
            "API authentication failed. Please check server configuration.", 502
        )
    return SongImportError("Failed to fetch song data from KIE API. Please try again later.", 502)


async def import_song(
    client: IKieClient,
    projects: ProjectRepository,
    generations: GenerationRepository,
    task_id: str,
    project_name: str | None = None,
) -> ImportResult:
    """Import the finished KIE task ``task_id`` into a new project.

    Raises:
        SongImportError: carrying the HTTP status to answer with.
    """
    try:
        details = await client.get_music_details(task_id)
    except KieAPIError as e:
        logger.error("Failed to fetch music details for task %s: %s", task_id, e)
        raise _fetch_error(e) from e

    song = validate_importable_details(details)
    track1 = song.track1
    name = (project_name or "").strip() or f"Imported: {track1.title or 'Unknown Song'}"

    try:
        generation = generations.create_imported(
            project_name=name,
            task_id=task_id,
            title=track1.title or "Imported Song",
            style=track1.tags or "",
            lyrics=track1.prompt or "",
            track1=final_track_data(track1),
            track2=final_track_data(song.track2) if song.track2 is not None else _EMPTY_TRACK,
            response_data=song.response_data,
        )
        project = projects.get(generation.project_id)
    except SQLAlchemyError as e:
        logger.exception("Database error while importing task %s", task_id)
        raise SongImportError(
            "Failed to save imported song to database. Please try again.", 500
        ) from e

    logger.info("Imported task %s as generation %s", task_id, generation.id)
    return ImportResult(project=project, generation=generation)
