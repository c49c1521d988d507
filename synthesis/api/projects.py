"""API endpoints for the project dashboard and project settings."""

from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import PlainTextResponse

from synthesis.api.deps import get_entity_store, get_worksheet, require_project
from synthesis.core.auth import get_current_user_id
from synthesis.core.export import export_matrix, export_outline, matrix_to_tsv
from synthesis.core.logging import get_logger
from synthesis.core.schemas_synthesis import Project, ProjectCreate, ProjectUpdate
from synthesis.core.worksheet import Worksheet
from synthesis.db.common import EmptyContentError
from synthesis.db.store import EntityStore

logger = get_logger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])


@router.get("/", response_model=list[Project])
async def list_projects(
    include_archived: bool = Query(True, description="Include archived projects"),
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> list[dict]:
    """List the current user's projects, most recently active first."""
    try:
        return await store.list_projects(user_id, include_archived=include_archived)
    except Exception as e:
        logger.exception(f"Failed to list projects for user {user_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/", response_model=Project, status_code=201)
async def create_project(
    data: ProjectCreate,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> Project:
    try:
        project_id = await store.create_project(user_id, data.name)
        return Project(id=project_id, user_id=user_id, name=data.name.strip())
    except EmptyContentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to create project for user {user_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/{project_id}", response_model=Project)
async def get_project(
    project_id: str = Depends(require_project),
    store: EntityStore = Depends(get_entity_store),
) -> dict:
    try:
        project = await store.get_project(project_id)
    except Exception as e:
        logger.exception(f"Failed to get project {project_id}")
        raise HTTPException(status_code=500, detail=str(e))
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


@router.patch("/{project_id}", response_model=Project | None)
async def update_project(
    data: ProjectUpdate,
    project_id: str = Depends(require_project),
    store: EntityStore = Depends(get_entity_store),
) -> dict | None:
    """Rename, archive/unarchive or retag a project."""
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    try:
        await store.update_project(project_id, **updates)
        return await store.get_project(project_id)
    except EmptyContentError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception(f"Failed to update project {project_id}")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: str = Depends(require_project),
    store: EntityStore = Depends(get_entity_store),
) -> Response:
    """Delete a project with all of its observations, harms, criteria and strategies."""
    try:
        await store.delete_project(project_id)
    except Exception as e:
        logger.exception(f"Failed to delete project {project_id}")
        raise HTTPException(status_code=500, detail=str(e))
    return Response(status_code=204)


@router.get("/{project_id}/export", response_class=PlainTextResponse)
async def export_project(
    format: Literal["outline", "matrix"] = Query("outline", description="outline or matrix"),
    worksheet: Worksheet = Depends(get_worksheet),
) -> str:
    """Clipboard export: nested outline or a tab-separated matrix."""
    if format == "matrix":
        return matrix_to_tsv(export_matrix(worksheet.tree))
    return export_outline(worksheet.project_name or "Untitled Project", worksheet.tree)
