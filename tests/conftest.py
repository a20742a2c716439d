"""Shared fixtures: in-memory stores, a recording SSE client and KIE payload factories."""

from __future__ import annotations

import json
from typing import Any

import pytest

from kiemusic.broadcast import BroadcastChannel
from kiemusic.kie.models import MusicDetailsResponse, StemSeparationDetailsResponse
from kiemusic.models import (
    Generation,
    GenerationTrackData,
    GenerationTrackUpdate,
    JobStatus,
    StemFields,
    StemSeparation,
)


# ------------------------------------------------------------------
# KIE payload factories
# ------------------------------------------------------------------


def make_track(
    audio_id: str,
    stream_url: str | None = None,
    audio_url: str | None = None,
    image_url: str | None = None,
    duration: float | None = None,
) -> dict[str, Any]:
    return {
        "id": audio_id,
        "streamAudioUrl": stream_url,
        "audioUrl": audio_url,
        "imageUrl": image_url,
        "duration": duration,
    }


def make_final_track(audio_id: str) -> dict[str, Any]:
    return make_track(
        audio_id,
        stream_url=f"https://cdn.example/{audio_id}/stream",
        audio_url=f"https://cdn.example/{audio_id}.mp3",
        image_url=f"https://cdn.example/{audio_id}.jpg",
        duration=180.5,
    )


def make_music_details(
    status: str | None,
    tracks: list[dict[str, Any]] | None = None,
    *,
    task_id: str = "t1",
    code: int = 200,
    msg: str = "success",
    error_message: str | None = None,
) -> MusicDetailsResponse:
    data: dict[str, Any] = {"taskId": task_id, "status": status, "errorMessage": error_message}
    if tracks is not None:
        data["response"] = {"taskId": task_id, "sunoData": tracks}
    return MusicDetailsResponse.model_validate({"code": code, "msg": msg, "data": data})


def make_stem_details(
    success_flag: str | None,
    response: dict[str, Any] | None = None,
    *,
    task_id: str = "s1",
    code: int = 200,
    msg: str = "success",
    error_message: str | None = None,
) -> StemSeparationDetailsResponse:
    return StemSeparationDetailsResponse.model_validate(
        {
            "code": code,
            "msg": msg,
            "data": {
                "taskId": task_id,
                "successFlag": success_flag,
                "response": response,
                "errorMessage": error_message,
            },
        }
    )


# ------------------------------------------------------------------
# Fakes
# ------------------------------------------------------------------


class RecordingClient:
    """SSE client handle that keeps every frame it was sent."""

    def __init__(self, fail: bool = False) -> None:
        self.frames: list[str] = []
        self.fail = fail

    def send(self, frame: str) -> None:
        if self.fail:
            raise ConnectionResetError("client went away")
        self.frames.append(frame)

    @property
    def events(self) -> list[dict[str, Any]]:
        return [json.loads(frame[len("data: ") :]) for frame in self.frames]


class FakeGenerationStore:
    """In-memory generation store recording every write."""

    def __init__(self, generations: list[Generation] | None = None) -> None:
        self.rows: dict[int, dict[str, Any]] = {
            g.id: g.model_dump() for g in (generations or [])
        }
        self.calls: list[tuple[Any, ...]] = []

    def add(self, generation_id: int, task_id: str | None = None, status: str = "pending") -> None:
        self.rows[generation_id] = Generation(
            id=generation_id,
            project_id=1,
            task_id=task_id,
            title="Song",
            style="pop",
            lyrics="la la",
            status=status,
        ).model_dump()

    def get(self, generation_id: int) -> Generation | None:
        row = self.rows.get(generation_id)
        return Generation(**row) if row else None

    def set_task_started(self, generation_id: int, task_id: str) -> bool:
        self.calls.append(("set_task_started", generation_id, task_id))
        if generation_id not in self.rows:
            return False
        self.rows[generation_id].update(task_id=task_id, status=JobStatus.PROCESSING.value)
        return True

    def set_status(self, generation_id: int, status: str) -> None:
        self.calls.append(("set_status", generation_id, status))
        self.rows[generation_id].update(status=status, error_message=None)

    def set_errored(self, generation_id: int, message: str) -> None:
        self.calls.append(("set_errored", generation_id, message))
        self.rows[generation_id].update(status=JobStatus.ERROR.value, error_message=message)

    def set_completed(
        self,
        generation_id: int,
        track1: GenerationTrackData,
        track2: GenerationTrackData,
        response_data: str,
    ) -> None:
        self.calls.append(("set_completed", generation_id, track1, track2, response_data))
        row = self.rows[generation_id]
        row.update(status=JobStatus.SUCCESS.value, response_data=response_data)
        for prefix, track in (("track1", track1), ("track2", track2)):
            row[f"{prefix}_stream_url"] = track.stream_url
            row[f"{prefix}_audio_url"] = track.audio_url
            row[f"{prefix}_image_url"] = track.image_url
            row[f"{prefix}_duration"] = track.duration
            row[f"{prefix}_audio_id"] = track.audio_id

    def update_provisional_fields(
        self,
        generation_id: int,
        track1: GenerationTrackUpdate,
        track2: GenerationTrackUpdate | None = None,
        response_data: str | None = None,
    ) -> None:
        self.calls.append(("update_provisional_fields", generation_id, track1, track2))
        row = self.rows[generation_id]
        for prefix, track in (("track1", track1), ("track2", track2)):
            if track is None:
                continue
            for attr in ("stream_url", "image_url", "audio_id"):
                value = getattr(track, attr)
                if value:
                    row[f"{prefix}_{attr}"] = value

    def get_pending(self) -> list[Generation]:
        return [
            Generation(**row)
            for row in self.rows.values()
            if not JobStatus(row["status"]).is_terminal
        ]


class FakeStemSeparationStore:
    """In-memory stem separation store recording every write."""

    def __init__(self) -> None:
        self.rows: dict[int, dict[str, Any]] = {}
        self.calls: list[tuple[Any, ...]] = []

    def add(
        self,
        separation_id: int,
        generation_id: int = 1,
        audio_id: str = "a1",
        task_id: str | None = None,
        status: str = "pending",
    ) -> None:
        self.rows[separation_id] = StemSeparation(
            id=separation_id,
            generation_id=generation_id,
            audio_id=audio_id,
            task_id=task_id,
            type="separate_vocal",
            status=status,
        ).model_dump()

    def get(self, separation_id: int) -> StemSeparation | None:
        row = self.rows.get(separation_id)
        return StemSeparation(**row) if row else None

    def set_task_started(self, separation_id: int, task_id: str) -> bool:
        self.calls.append(("set_task_started", separation_id, task_id))
        if separation_id not in self.rows:
            return False
        self.rows[separation_id].update(task_id=task_id, status=JobStatus.PROCESSING.value)
        return True

    def set_status(self, separation_id: int, status: str) -> None:
        self.calls.append(("set_status", separation_id, status))
        self.rows[separation_id].update(status=status, error_message=None)

    def set_errored(self, separation_id: int, message: str) -> None:
        self.calls.append(("set_errored", separation_id, message))
        self.rows[separation_id].update(status=JobStatus.ERROR.value, error_message=message)

    def set_completed(self, separation_id: int, fields: StemFields, response_data: str) -> None:
        self.calls.append(("set_completed", separation_id, fields, response_data))
        row = self.rows[separation_id]
        row.update(status=JobStatus.SUCCESS.value, response_data=response_data)
        row.update(fields.as_dict())

    def get_pending(self) -> list[StemSeparation]:
        return [
            StemSeparation(**row)
            for row in self.rows.values()
            if not JobStatus(row["status"]).is_terminal
        ]


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture
def generations() -> FakeGenerationStore:
    return FakeGenerationStore()


@pytest.fixture
def stem_separations() -> FakeStemSeparationStore:
    return FakeStemSeparationStore()


@pytest.fixture
def channel() -> BroadcastChannel:
    return BroadcastChannel()


@pytest.fixture
def listener(channel: BroadcastChannel) -> RecordingClient:
    client = RecordingClient()
    channel.add_client("listener", client)
    return client
