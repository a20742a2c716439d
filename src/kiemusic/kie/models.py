"""Request and response models for the KIE music API.

The API speaks camelCase JSON. Models accept the API names through aliases
and expose snake_case attributes. Unknown fields are kept so that raw
payloads can be stored verbatim for debugging.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class KieModel(BaseModel):
    """Base for all KIE payloads."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    def to_api(self) -> dict:
        """Dump using API field names, dropping unset optionals."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_api_json(self) -> str:
        """Serialize the full payload with API field names."""
        return self.model_dump_json(by_alias=True)


# ------------------------------------------------------------------
# Requests
# ------------------------------------------------------------------


class GenerateMusicRequest(KieModel):
    prompt: str
    style: str
    title: str
    custom_mode: bool = True
    instrumental: bool = False
    model: str = "V5"
    call_back_url: str
    negative_tags: str | None = None


class ExtendMusicRequest(KieModel):
    default_param_flag: bool = True
    audio_id: str
    prompt: str
    style: str
    title: str
    continue_at: float
    model: str = "V5"
    call_back_url: str
    negative_tags: str | None = None


class StemSeparationRequest(KieModel):
    task_id: str
    audio_id: str
    type: str
    call_back_url: str


# ------------------------------------------------------------------
# Task start
# ------------------------------------------------------------------


class TaskStartData(KieModel):
    task_id: str = ""


class TaskStartResponse(KieModel):
    code: int
    msg: str = ""
    data: TaskStartData | None = None

    @property
    def task_id(self) -> str | None:
        return self.data.task_id if self.data else None


# ------------------------------------------------------------------
# Music generation details
# ------------------------------------------------------------------


class SunoTrack(KieModel):
    id: str = ""
    audio_url: str | None = None
    stream_audio_url: str | None = None
    image_url: str | None = None
    prompt: str | None = None
    model_name: str | None = None
    title: str | None = None
    tags: str | None = None
    create_time: str | int | None = None
    duration: float | None = None


class MusicResponse(KieModel):
    task_id: str | None = None
    suno_data: list[SunoTrack] | None = None

    @property
    def tracks(self) -> list[SunoTrack]:
        return self.suno_data or []


class MusicDetailsData(KieModel):
    task_id: str = ""
    parent_music_id: str | None = None
    param: str | None = None
    response: MusicResponse | None = None
    status: str | None = None
    type: str | None = None
    error_code: str | int | None = None
    error_message: str | None = None


class MusicDetailsResponse(KieModel):
    code: int
    msg: str = ""
    data: MusicDetailsData = Field(default_factory=MusicDetailsData)

    @field_validator("data", mode="before")
    @classmethod
    def _empty_data_on_null(cls, value: object) -> object:
        # Rejected requests come back with "data": null
        return {} if value is None else value


# ------------------------------------------------------------------
# Stem separation details
# ------------------------------------------------------------------


class StemUrls(KieModel):
    origin_url: str | None = None
    instrumental_url: str | None = None
    vocal_url: str | None = None
    backing_vocals_url: str | None = None
    drums_url: str | None = None
    bass_url: str | None = None
    guitar_url: str | None = None
    piano_url: str | None = None
    keyboard_url: str | None = None
    percussion_url: str | None = None
    strings_url: str | None = None
    synth_url: str | None = None
    fx_url: str | None = None
    brass_url: str | None = None
    woodwinds_url: str | None = None


class StemSeparationDetailsData(KieModel):
    task_id: str = ""
    music_id: str | None = None
    callback_url: str | None = None
    audio_id: str | None = None
    complete_time: int | None = None
    response: StemUrls | None = None
    success_flag: str | None = None
    create_time: int | None = None
    error_code: int | str | None = None
    error_message: str | None = None


class StemSeparationDetailsResponse(KieModel):
    code: int
    msg: str = ""
    data: StemSeparationDetailsData = Field(default_factory=StemSeparationDetailsData)

    @field_validator("data", mode="before")
    @classmethod
    def _empty_data_on_null(cls, value: object) -> object:
        # Rejected requests come back with "data": null
        return {} if value is None else value
