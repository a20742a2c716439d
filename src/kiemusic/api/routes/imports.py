"""Import endpoint for songs generated outside the app."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from kiemusic.api.deps import Services, get_services
from kiemusic.api.schemas import ImportedGeneration, ImportedProject, ImportRequest, ImportResponse
from kiemusic.errors import SongImportError
from kiemusic.imports import import_song

router = APIRouter(prefix="/api/import", tags=["import"])


@router.post("", response_model=ImportResponse)
async def import_task(
    req: ImportRequest,
    services: Services = Depends(get_services),
) -> ImportResponse:
    """Create a project holding the finished KIE task ``taskId``."""
    try:
        result = await import_song(
            services.kie_client,
            services.projects,
            services.generations,
            req.task_id,
            req.project_name,
        )
    except SongImportError as e:
        raise HTTPException(status_code=e.status_code, detail=str(e)) from e

    return ImportResponse(
        project=ImportedProject(id=result.project.id, name=result.project.name),
        generation=ImportedGeneration(id=result.generation.id, title=result.generation.title),
    )
