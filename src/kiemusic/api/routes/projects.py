"""Project endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from kiemusic.api.deps import Services, get_services
from kiemusic.api.routes.generations import cancel_generation_polls, require_project
from kiemusic.api.schemas import DeleteResponse, ProjectCreateRequest, ProjectUpdateRequest
from kiemusic.errors import NotFoundError
from kiemusic.models import Generation, Project

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("", response_model=Project, status_code=201)
async def create_project(
    req: ProjectCreateRequest,
    services: Services = Depends(get_services),
) -> Project:
    return services.projects.create(req.name)


@router.get("", response_model=list[Project])
async def list_projects(
    services: Services = Depends(get_services),
) -> list[Project]:
    return services.projects.list_all()


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: int,
    services: Services = Depends(get_services),
) -> Project:
    project = services.projects.get(project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.patch("/{project_id}", response_model=Project)
async def rename_project(
    project_id: int,
    req: ProjectUpdateRequest,
    services: Services = Depends(get_services),
) -> Project:
    try:
        return services.projects.rename(project_id, req.name)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e)) from e


@router.delete("/{project_id}", response_model=DeleteResponse)
async def delete_project(
    project_id: int,
    services: Services = Depends(get_services),
) -> DeleteResponse:
    require_project(services, project_id)
    for generation in services.generations.list_by_project(project_id):
        cancel_generation_polls(services, generation.id)
    services.projects.delete(project_id)
    return DeleteResponse()


@router.get("/{project_id}/generations", response_model=list[Generation])
async def list_project_generations(
    project_id: int,
    services: Services = Depends(get_services),
) -> list[Generation]:
    require_project(services, project_id)
    return services.generations.list_by_project(project_id)
