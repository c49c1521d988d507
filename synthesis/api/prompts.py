"""API endpoints for the prompt settings page."""

from fastapi import APIRouter, Depends, HTTPException

from synthesis.api.deps import get_prompt_config
from synthesis.core.logging import get_logger
from synthesis.core.prompts import DEFAULT_PROMPTS, PromptConfig
from synthesis.core.schemas_suggestions import PromptOverrides

logger = get_logger(__name__)

router = APIRouter(prefix="/prompts", tags=["prompts"])


def _as_payload(prompts: dict) -> dict[str, str]:
    return {kind.value: template for kind, template in prompts.items()}


@router.get("/")
async def get_prompts(config: PromptConfig = Depends(get_prompt_config)) -> dict:
    """Effective templates plus the built-in defaults."""
    return {"prompts": _as_payload(config.all()), "defaults": _as_payload(DEFAULT_PROMPTS)}


@router.put("/")
async def save_prompts(data: PromptOverrides, config: PromptConfig = Depends(get_prompt_config)) -> dict:
    overrides = data.model_dump(exclude_none=True)
    try:
        return {"prompts": _as_payload(config.save(overrides))}
    except Exception as e:
        logger.exception("Failed to save prompt overrides")
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/")
async def reset_prompts(config: PromptConfig = Depends(get_prompt_config)) -> dict:
    """Drop every override and return the defaults."""
    try:
        config.reset()
    except Exception as e:
        logger.exception("Failed to reset prompt overrides")
        raise HTTPException(status_code=500, detail=str(e))
    return {"prompts": _as_payload(config.all())}
