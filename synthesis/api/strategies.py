"""API endpoints for "How Might We" strategies."""

from fastapi import APIRouter, Depends, HTTPException, Response

from synthesis.api.deps import get_worksheet
from synthesis.core.logging import get_logger
from synthesis.core.schemas_synthesis import ContentUpdate, Strategy, StrategyCreate
from synthesis.core.worksheet import Worksheet

logger = get_logger(__name__)

router = APIRouter(
    prefix="/projects/{project_id}/strategies",
    tags=["strategies"],
)


@router.get("/", response_model=list[Strategy])
async def list_strategies(
    criterion_id: str | None = None, worksheet: Worksheet = Depends(get_worksheet)
) -> list[Strategy]:
    if criterion_id is not None:
        return worksheet.tree.strategies_for(criterion_id)
    return worksheet.tree.strategies


@router.post("/", response_model=Strategy, status_code=201)
async def create_strategy(data: StrategyCreate, worksheet: Worksheet = Depends(get_worksheet)) -> Strategy:
    """Add a strategy; text without an HMW lead-in gets the ``HMW`` prefix."""
    if worksheet.tree.criterion(data.criterion_id) is None:
        raise HTTPException(status_code=404, detail="Criterion not found")

    new_id = await worksheet.add_strategy(
        data.criterion_id,
        data.content,
        strategy_type=data.strategy_type,
        source_suggestion_id=data.source_suggestion_id,
    )
    if new_id is None:
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to save strategy")
    return worksheet.tree.strategy(new_id)


@router.patch("/{strategy_id}", response_model=Strategy)
async def update_strategy(
    strategy_id: str, data: ContentUpdate, worksheet: Worksheet = Depends(get_worksheet)
) -> Strategy:
    if worksheet.tree.strategy(strategy_id) is None:
        raise HTTPException(status_code=404, detail="Strategy not found")
    if not await worksheet.update_strategy_content(strategy_id, data.content):
        logger.error(f"Failed to save strategy {strategy_id} in project {worksheet.project_id}")
        raise HTTPException(status_code=500, detail="Failed to save strategy")
    return worksheet.tree.strategy(strategy_id)


@router.delete("/{strategy_id}", status_code=204)
async def delete_strategy(strategy_id: str, worksheet: Worksheet = Depends(get_worksheet)) -> Response:
    if worksheet.tree.strategy(strategy_id) is None:
        raise HTTPException(status_code=404, detail="Strategy not found")
    if not await worksheet.delete_strategy(strategy_id):
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to delete strategy")
    return Response(status_code=204)
