"""API endpoints for AI suggestions and observation coaching."""

from fastapi import APIRouter, Depends, HTTPException

from synthesis.api.deps import get_suggestion_client
from synthesis.chains.suggestions import SuggestionClient, SuggestionServiceError
from synthesis.core.coaching import interpret_coaching
from synthesis.core.config import get_settings
from synthesis.core.logging import get_logger
from synthesis.core.schemas_suggestions import (
    LIST_KINDS,
    CoachingRequest,
    CoachingResponse,
    SuggestionKind,
    SuggestionRequest,
    SuggestionResponse,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/suggestions", tags=["suggestions"])


@router.post("/", response_model=SuggestionResponse)
async def request_suggestions(
    data: SuggestionRequest,
    client: SuggestionClient = Depends(get_suggestion_client),
) -> SuggestionResponse:
    """
    Generate candidate harms, criteria or strategies.

    Context keys per kind:
        harms: observations
        criteria: harm, observations
        strategies: criterion, harm
    """
    if data.kind not in LIST_KINDS:
        raise HTTPException(status_code=400, detail=f"{data.kind.value} does not produce suggestions")
    try:
        suggestions = await client.request_suggestions(data.kind, data.context)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except SuggestionServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return SuggestionResponse(kind=data.kind, suggestions=suggestions)


@router.post("/coaching", response_model=CoachingResponse)
async def coach_observation(
    data: CoachingRequest,
    client: SuggestionClient = Depends(get_suggestion_client),
) -> CoachingResponse:
    """One-shot coaching check for a draft observation; short drafts are not coached."""
    if len(data.text.strip()) < get_settings().COACHING_MIN_CHARS:
        return CoachingResponse(coaching=None)
    try:
        raw = await client.request_text(SuggestionKind.OBSERVATION_COACHING, {"observation": data.text})
    except SuggestionServiceError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return CoachingResponse(coaching=interpret_coaching(raw))
