"""Shared FastAPI dependencies: store, suggestion client, project access, worksheet."""

from functools import lru_cache

from fastapi import Depends, HTTPException

from synthesis.chains.suggestions import SuggestionClient
from synthesis.core.auth import get_current_user_id
from synthesis.core.config import get_settings
from synthesis.core.logging import get_logger
from synthesis.core.prompts import PromptConfig, build_prompt_config
from synthesis.core.worksheet import Worksheet
from synthesis.db.local_store import LocalEntityStore
from synthesis.db.store import EntityStore, SupabaseEntityStore

logger = get_logger(__name__)


@lru_cache(maxsize=1)
def get_prompt_config() -> PromptConfig:
    return build_prompt_config(get_settings().PROMPTS_FILE)


def get_suggestion_client(prompts: PromptConfig = Depends(get_prompt_config)) -> SuggestionClient:
    return SuggestionClient(prompts)


@lru_cache(maxsize=1)
def get_entity_store() -> EntityStore:
    """
    Process-wide entity store.

    Without Supabase credentials the API runs local-only: rows are kept in
    memory for the life of the process so a session survives across requests.
    """
    if not get_settings().store_configured:
        logger.info("Supabase not configured; using the in-memory local store")
        return LocalEntityStore()
    return SupabaseEntityStore()


async def require_project(
    project_id: str,
    user_id: str = Depends(get_current_user_id),
    store: EntityStore = Depends(get_entity_store),
) -> str:
    """Ensure the project exists and belongs to the current user."""
    try:
        project = await store.get_project(project_id)
    except Exception as e:
        logger.exception(f"Failed to load project {project_id}")
        raise HTTPException(status_code=500, detail=str(e))

    if not project or str(project.get("user_id")) != str(user_id):
        raise HTTPException(status_code=404, detail="Project not found")
    return project_id


async def get_worksheet(
    project_id: str = Depends(require_project),
    store: EntityStore = Depends(get_entity_store),
    suggestions: SuggestionClient = Depends(get_suggestion_client),
) -> Worksheet:
    worksheet = Worksheet(project_id, store, suggestions)
    if not await worksheet.load():
        raise HTTPException(status_code=500, detail=worksheet.banner.message or "Failed to load project")
    return worksheet
