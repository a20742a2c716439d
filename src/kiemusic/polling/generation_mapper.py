"""Pure mapping from KIE generation records to persistence/broadcast data.

Nothing here performs I/O or raises: missing data is reported as ``None``
and the poller decides whether to keep polling.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from kiemusic.kie.models import MusicDetailsResponse, SunoTrack
from kiemusic.models import GenerationTrackData, GenerationTrackUpdate, JobStatus

# KIE status -> internal status for in-progress records
PROGRESS_STATUS_MAP: dict[str, str] = {
    "PENDING": JobStatus.PROCESSING.value,
    "TEXT_SUCCESS": JobStatus.TEXT_SUCCESS.value,
    "FIRST_SUCCESS": JobStatus.FIRST_SUCCESS.value,
}

# Statuses at which preview stream URLs may already be available
_PREVIEW_STATUSES = ("TEXT_SUCCESS", "FIRST_SUCCESS")


@dataclass(frozen=True)
class GenerationCompletion:
    track1: GenerationTrackData
    track2: GenerationTrackData
    response_data: str
    sse_payload: dict[str, Any]


@dataclass(frozen=True)
class GenerationTrackProgress:
    track1: GenerationTrackUpdate
    track2: GenerationTrackUpdate
    sse_payload: dict[str, Any]


@dataclass(frozen=True)
class GenerationProgress:
    status: str
    sse_payload: dict[str, Any]
    track_update: GenerationTrackProgress | None = field(default=None)


def final_track_data(track: SunoTrack) -> GenerationTrackData:
    return GenerationTrackData(
        stream_url=track.stream_audio_url,
        audio_url=track.audio_url,
        image_url=track.image_url,
        duration=track.duration,
        audio_id=track.id,
    )


def _provisional_track(track: SunoTrack | None) -> GenerationTrackUpdate:
    if track is None:
        return GenerationTrackUpdate()
    return GenerationTrackUpdate(
        stream_url=track.stream_audio_url,
        image_url=track.image_url,
        audio_id=track.id or None,
    )


def map_generation_completion(details: MusicDetailsResponse) -> GenerationCompletion | None:
    """Map a SUCCESS record to the final data for both tracks.

    Returns None until the API reports both tracks, even when the status
    already says SUCCESS.
    """
    response = details.data.response
    tracks = response.tracks if response is not None else []
    if len(tracks) < 2:
        return None

    track1 = final_track_data(tracks[0])
    track2 = final_track_data(tracks[1])
    response_data = details.data.to_api_json()

    sse_payload: dict[str, Any] = {"status": JobStatus.SUCCESS.value}
    for prefix, track in (("track1", track1), ("track2", track2)):
        sse_payload[f"{prefix}_stream_url"] = track.stream_url
        sse_payload[f"{prefix}_audio_url"] = track.audio_url
        sse_payload[f"{prefix}_image_url"] = track.image_url
        sse_payload[f"{prefix}_duration"] = track.duration
        sse_payload[f"{prefix}_audio_id"] = track.audio_id
    sse_payload["response_data"] = response_data

    return GenerationCompletion(
        track1=track1,
        track2=track2,
        response_data=response_data,
        sse_payload=sse_payload,
    )


def map_generation_progress(details: MusicDetailsResponse) -> GenerationProgress:
    """Map an in-progress record to an internal status.

    Unknown KIE statuses fall back to ``processing``. At TEXT_SUCCESS and
    FIRST_SUCCESS the record may already carry preview stream URLs; when at
    least one is present they are returned as a provisional track update.
    """
    kie_status = details.data.status or ""
    status = PROGRESS_STATUS_MAP.get(kie_status, JobStatus.PROCESSING.value)

    response = details.data.response
    if kie_status in _PREVIEW_STATUSES and response is not None and response.suno_data:
        tracks = response.suno_data
        first = tracks[0] if len(tracks) > 0 else None
        second = tracks[1] if len(tracks) > 1 else None

        if (first and first.stream_audio_url) or (second and second.stream_audio_url):
            track1 = _provisional_track(first)
            track2 = _provisional_track(second)
            track_payload = {
                "status": status,
                "track1_stream_url": track1.stream_url,
                "track1_image_url": track1.image_url,
                "track2_stream_url": track2.stream_url,
                "track2_image_url": track2.image_url,
            }
            return GenerationProgress(
                status=status,
                sse_payload={"status": status},
                track_update=GenerationTrackProgress(
                    track1=track1,
                    track2=track2,
                    # unknown values are left out, not sent as null
                    sse_payload={k: v for k, v in track_payload.items() if v is not None},
                ),
            )

    return GenerationProgress(status=status, sse_payload={"status": status})
