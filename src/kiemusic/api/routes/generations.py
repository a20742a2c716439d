"""Generation and song extension endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query

from kiemusic.api.deps import Services, get_services
from kiemusic.api.schemas import (
    DeleteResponse,
    ExtendGenerationRequest,
    GenerationCreateRequest,
)
from kiemusic.kie import ExtendMusicRequest, GenerateMusicRequest
from kiemusic.models import Generation, StemSeparation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/generations", tags=["generations"])


def require_project(services: Services, project_id: int) -> None:
    """Raise 404 if the project does not exist."""
    if services.projects.get(project_id) is None:
        raise HTTPException(status_code=404, detail="Project not found")


def require_generation(
    services: Services, generation_id: int, label: str = "Generation"
) -> Generation:
    """Return the generation or raise 404."""
    generation = services.generations.get(generation_id)
    if generation is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    return generation


def cancel_generation_polls(services: Services, generation_id: int) -> None:
    """Stop the generation's poller and the pollers of its stem separations."""
    services.polling.cancel_generation_poll(generation_id)
    for separation in services.stem_separations.list_by_generation(generation_id):
        services.polling.cancel_stem_separation_poll(separation.id)


# ------------------------------------------------------------------
# POST: create generations (202 Accepted)
# ------------------------------------------------------------------


@router.post("", response_model=Generation, status_code=202)
async def create_generation(
    req: GenerationCreateRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
) -> Generation:
    require_project(services, req.project_id)
    generation = services.generations.create(req.project_id, req.title, req.style, req.lyrics)

    request = GenerateMusicRequest(
        prompt=req.lyrics,
        style=req.style,
        title=req.title,
        model=services.settings.kie_model,
        call_back_url=services.settings.kie_callback_url,
        negative_tags="",
    )
    background_tasks.add_task(
        services.tasks.start_generation_task,
        generation.id,
        lambda: services.kie_client.generate_music(request),
    )
    return generation


@router.post("/extend", response_model=Generation, status_code=202)
async def extend_generation(
    req: ExtendGenerationRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
) -> Generation:
    require_project(services, req.project_id)
    require_generation(services, req.extends_generation_id, "Parent generation")

    generation = services.generations.create_extension(
        req.project_id,
        req.title,
        req.style,
        req.lyrics,
        req.extends_generation_id,
        req.extends_audio_id,
        req.continue_at,
    )

    request = ExtendMusicRequest(
        audio_id=req.extends_audio_id,
        prompt=req.lyrics,
        style=req.style,
        title=req.title,
        continue_at=req.continue_at,
        model=services.settings.kie_model,
        call_back_url=services.settings.kie_callback_url,
        negative_tags="",
    )
    background_tasks.add_task(
        services.tasks.start_generation_task,
        generation.id,
        lambda: services.kie_client.extend_music(request),
    )
    return generation


# ------------------------------------------------------------------
# GET / DELETE
# ------------------------------------------------------------------


@router.get("/{generation_id}", response_model=Generation)
async def get_generation(
    generation_id: int,
    services: Services = Depends(get_services),
) -> Generation:
    return require_generation(services, generation_id)


@router.delete("/{generation_id}", response_model=DeleteResponse)
async def delete_generation(
    generation_id: int,
    services: Services = Depends(get_services),
) -> DeleteResponse:
    require_generation(services, generation_id)
    cancel_generation_polls(services, generation_id)
    services.generations.delete(generation_id)
    logger.info("Deleted generation %d", generation_id)
    return DeleteResponse()


@router.get("/{generation_id}/extensions", response_model=list[Generation])
async def list_extensions(
    generation_id: int,
    audio_id: str = Query(..., alias="audioId"),
    services: Services = Depends(get_services),
) -> list[Generation]:
    require_generation(services, generation_id)
    return services.generations.list_extensions(generation_id, audio_id)


@router.get("/{generation_id}/stem-separations", response_model=list[StemSeparation])
async def list_stem_separations(
    generation_id: int,
    audio_id: str | None = Query(None, alias="audioId"),
    services: Services = Depends(get_services),
) -> list[StemSeparation]:
    require_generation(services, generation_id)
    if audio_id:
        return services.stem_separations.list_for_song(generation_id, audio_id)
    return services.stem_separations.list_by_generation(generation_id)
