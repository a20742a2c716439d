"""Stem separation endpoint."""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException

from kiemusic.api.deps import Services, get_services
from kiemusic.api.routes.generations import require_generation
from kiemusic.api.schemas import StemSeparationCreateRequest
from kiemusic.kie import StemSeparationRequest
from kiemusic.models import JobStatus, StemSeparation

router = APIRouter(prefix="/api/stem-separation", tags=["stem-separation"])


@router.post("", response_model=StemSeparation, status_code=202)
async def create_stem_separation(
    req: StemSeparationCreateRequest,
    background_tasks: BackgroundTasks,
    services: Services = Depends(get_services),
) -> StemSeparation:
    generation = require_generation(services, req.generation_id)
    if not generation.task_id:
        raise HTTPException(
            status_code=400,
            detail="Generation has no task_id - it may still be processing",
        )

    existing = services.stem_separations.get_latest_by_type(
        req.generation_id, req.audio_id, req.type
    )
    if existing is not None and existing.status != JobStatus.ERROR.value:
        return existing

    separation = services.stem_separations.create(req.generation_id, req.audio_id, req.type)

    request = StemSeparationRequest(
        task_id=generation.task_id,
        audio_id=req.audio_id,
        type=req.type.value,
        call_back_url=services.settings.kie_callback_url,
    )
    background_tasks.add_task(
        services.tasks.start_stem_separation_task,
        separation.id,
        req.generation_id,
        req.audio_id,
        lambda: services.kie_client.separate_vocals(request),
    )
    return separation
