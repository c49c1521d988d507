"""API endpoints for harms."""

from fastapi import APIRouter, Depends, HTTPException, Response

from synthesis.api.deps import get_worksheet
from synthesis.core.logging import get_logger
from synthesis.core.schemas_synthesis import ContentUpdate, Harm, HarmCreate
from synthesis.core.worksheet import Worksheet

logger = get_logger(__name__)

router = APIRouter(
    prefix="/projects/{project_id}/harms",
    tags=["harms"],
)


@router.get("/", response_model=list[Harm])
async def list_harms(
    observation_id: str | None = None, worksheet: Worksheet = Depends(get_worksheet)
) -> list[Harm]:
    """List harms, optionally only those derived from one observation."""
    if observation_id is not None:
        return worksheet.tree.harms_for(observation_id)
    return worksheet.tree.harms


@router.post("/", response_model=Harm, status_code=201)
async def create_harm(data: HarmCreate, worksheet: Worksheet = Depends(get_worksheet)) -> Harm:
    missing = [oid for oid in data.observation_ids if worksheet.tree.observation(oid) is None]
    if missing:
        raise HTTPException(status_code=404, detail=f"Observation not found: {', '.join(missing)}")

    if len(data.observation_ids) == 1:
        new_id = await worksheet.add_harm(
            data.observation_ids[0], data.content, source_suggestion_id=data.source_suggestion_id
        )
        if new_id is None:
            raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to save harm")
        return worksheet.tree.harm(new_id)

    # a harm drawn from several observations
    try:
        new_id = await worksheet.store.create_harm(
            worksheet.project_id, data.observation_ids, data.content, data.source_suggestion_id
        )
    except Exception as e:
        logger.exception(f"Failed to create harm for project {worksheet.project_id}")
        raise HTTPException(status_code=500, detail=str(e))
    return Harm(
        id=new_id,
        project_id=worksheet.project_id,
        observation_ids=data.observation_ids,
        content=data.content,
        source_suggestion_id=data.source_suggestion_id,
    )


@router.patch("/{harm_id}", response_model=Harm)
async def update_harm(harm_id: str, data: ContentUpdate, worksheet: Worksheet = Depends(get_worksheet)) -> Harm:
    if worksheet.tree.harm(harm_id) is None:
        raise HTTPException(status_code=404, detail="Harm not found")
    if not await worksheet.update_harm_content(harm_id, data.content):
        logger.error(f"Failed to save harm {harm_id} in project {worksheet.project_id}")
        raise HTTPException(status_code=500, detail="Failed to save harm")
    return worksheet.tree.harm(harm_id)


@router.delete("/{harm_id}", status_code=204)
async def delete_harm(harm_id: str, worksheet: Worksheet = Depends(get_worksheet)) -> Response:
    if worksheet.tree.harm(harm_id) is None:
        raise HTTPException(status_code=404, detail="Harm not found")
    if not await worksheet.delete_harm(harm_id):
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to delete harm")
    return Response(status_code=204)
