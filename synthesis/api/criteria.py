"""API endpoints for design criteria."""

from fastapi import APIRouter, Depends, HTTPException, Response

from synthesis.api.deps import get_worksheet
from synthesis.core.logging import get_logger
from synthesis.core.schemas_synthesis import ContentUpdate, Criterion, CriterionCreate
from synthesis.core.worksheet import Worksheet

logger = get_logger(__name__)

router = APIRouter(
    prefix="/projects/{project_id}/criteria",
    tags=["criteria"],
)


@router.get("/", response_model=list[Criterion])
async def list_criteria(
    harm_id: str | None = None, worksheet: Worksheet = Depends(get_worksheet)
) -> list[Criterion]:
    if harm_id is not None:
        return worksheet.tree.criteria_for(harm_id)
    return worksheet.tree.criteria


@router.post("/", response_model=Criterion, status_code=201)
async def create_criterion(data: CriterionCreate, worksheet: Worksheet = Depends(get_worksheet)) -> Criterion:
    """Add a criterion; the first one under an observation's first harm also titles the observation."""
    if worksheet.tree.harm(data.harm_id) is None:
        raise HTTPException(status_code=404, detail="Harm not found")

    new_id = await worksheet.add_criterion(
        data.harm_id, data.content, source_suggestion_id=data.source_suggestion_id
    )
    # let the insight title land before responding
    await worksheet.drain()
    if new_id is None:
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to save criterion")
    return worksheet.tree.criterion(new_id)


@router.patch("/{criterion_id}", response_model=Criterion)
async def update_criterion(
    criterion_id: str, data: ContentUpdate, worksheet: Worksheet = Depends(get_worksheet)
) -> Criterion:
    if worksheet.tree.criterion(criterion_id) is None:
        raise HTTPException(status_code=404, detail="Criterion not found")
    if not await worksheet.update_criterion_content(criterion_id, data.content):
        logger.error(f"Failed to save criterion {criterion_id} in project {worksheet.project_id}")
        raise HTTPException(status_code=500, detail="Failed to save criterion")
    return worksheet.tree.criterion(criterion_id)


@router.delete("/{criterion_id}", status_code=204)
async def delete_criterion(criterion_id: str, worksheet: Worksheet = Depends(get_worksheet)) -> Response:
    if worksheet.tree.criterion(criterion_id) is None:
        raise HTTPException(status_code=404, detail="Criterion not found")
    if not await worksheet.delete_criterion(criterion_id):
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to delete criterion")
    return Response(status_code=204)
