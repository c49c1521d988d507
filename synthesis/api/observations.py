"""API endpoints for observations: add, paste many, branch, reorder, edit, delete."""

from fastapi import APIRouter, Depends, HTTPException, Response

from synthesis.api.deps import get_worksheet
from synthesis.core.logging import get_logger
from synthesis.core.schemas_synthesis import (
    Observation,
    ObservationBulkCreate,
    ObservationCreate,
    ObservationReorder,
    ObservationUpdate,
)
from synthesis.core.worksheet import Worksheet

logger = get_logger(__name__)

router = APIRouter(
    prefix="/projects/{project_id}/observations",
    tags=["observations"],
)


def _get_or_404(worksheet: Worksheet, observation_id: str) -> Observation:
    observation = worksheet.tree.observation(observation_id)
    if observation is None:
        raise HTTPException(status_code=404, detail="Observation not found")
    return observation


@router.get("/", response_model=list[Observation])
async def list_observations(worksheet: Worksheet = Depends(get_worksheet)) -> list[Observation]:
    """List observations in board order."""
    return worksheet.tree.ordered_observations()


@router.post("/", response_model=Observation, status_code=201)
async def create_observation(
    data: ObservationCreate, worksheet: Worksheet = Depends(get_worksheet)
) -> Observation:
    if data.after_id is not None:
        _get_or_404(worksheet, data.after_id)
    new_id = await worksheet.add_observation(data.content, after_id=data.after_id)
    await worksheet.drain()
    if new_id is None:
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to save observation")
    return worksheet.tree.observation(new_id)


@router.post("/bulk", response_model=list[Observation], status_code=201)
async def paste_observations(
    data: ObservationBulkCreate, worksheet: Worksheet = Depends(get_worksheet)
) -> list[Observation]:
    """Create one observation per non-blank line, in order."""
    lines = [line for line in data.text.splitlines() if line.strip()]
    if not lines:
        raise HTTPException(status_code=400, detail="No observations to add")

    created = await worksheet.paste_observations(data.text)
    if len(created) < len(lines):
        logger.error(f"Pasted {len(created)} of {len(lines)} observations into {worksheet.project_id}")
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to save observations")
    return [worksheet.tree.observation(oid) for oid in created]


@router.post("/reorder", response_model=list[Observation])
async def reorder_observations(
    data: ObservationReorder, worksheet: Worksheet = Depends(get_worksheet)
) -> list[Observation]:
    """Move an observation to a new index; every sibling is renumbered."""
    _get_or_404(worksheet, data.observation_id)
    worksheet.reorder_observations(data.observation_id, data.target_index)
    # order persistence is best effort; failures are logged by the outbox
    await worksheet.drain()
    return worksheet.tree.ordered_observations()


@router.post("/{observation_id}/branch", response_model=Observation, status_code=201)
async def branch_observation(
    observation_id: str, worksheet: Worksheet = Depends(get_worksheet)
) -> Observation:
    """Copy an observation into a new sibling directly after it."""
    _get_or_404(worksheet, observation_id)
    new_id = await worksheet.branch_observation(observation_id)
    await worksheet.drain()
    if new_id is None:
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to branch observation")
    return worksheet.tree.observation(new_id)


@router.patch("/{observation_id}", response_model=Observation)
async def update_observation(
    observation_id: str,
    data: ObservationUpdate,
    worksheet: Worksheet = Depends(get_worksheet),
) -> Observation:
    """Edit content and/or the insight title; both are trimmed and must not be blank."""
    _get_or_404(worksheet, observation_id)
    updates = data.model_dump(exclude_none=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No fields to update")
    for field, value in updates.items():
        if not value.strip():
            raise HTTPException(status_code=400, detail=f"{field} must not be blank")

    saved = True
    if "content" in updates:
        saved = await worksheet.update_observation_content(observation_id, updates["content"])
    if "title" in updates:
        saved = await worksheet.update_observation_title(observation_id, updates["title"]) and saved
    if not saved:
        logger.error(f"Failed to save observation {observation_id}: {worksheet.outbox.summary()}")
        raise HTTPException(status_code=500, detail="Failed to save observation")
    return worksheet.tree.observation(observation_id)


@router.delete("/{observation_id}", status_code=204)
async def delete_observation(observation_id: str, worksheet: Worksheet = Depends(get_worksheet)) -> Response:
    _get_or_404(worksheet, observation_id)
    if not await worksheet.delete_observation(observation_id):
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to delete observation")
    return Response(status_code=204)
