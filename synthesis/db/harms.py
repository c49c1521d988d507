"""CRUD operations for harms."""

from typing import Any

from synthesis.core.logging import get_logger
from synthesis.db.common import (
    StoreError,
    clean_content,
    local_id,
    normalize_row,
    sort_by_creation,
    touch_project,
    utc_now,
)
from synthesis.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "harms"
UPDATABLE_FIELDS = {"content", "observation_ids"}


def list_harms(project_id: str) -> list[dict[str, Any]]:
    """
    List harms for a project.

    Args:
        project_id: Project id

    Returns:
        Harm dicts ordered by creation time ascending
    """
    supabase = get_supabase()
    if supabase is None:
        return []

    try:
        response = supabase.table(TABLE).select("*").eq("project_id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to list harms for project {project_id}: {e}")
        raise StoreError(f"Failed to list harms for project {project_id}") from e

    return sort_by_creation([normalize_row(row) for row in response.data or []])


def create_harm(
    project_id: str,
    observation_ids: list[str],
    content: str,
    source_suggestion_id: str | None = None,
) -> str:
    """
    Create a harm derived from one or more observations.

    Args:
        project_id: Project id
        observation_ids: Originating observation ids (at least one)
        content: Harm text
        source_suggestion_id: Suggestion this harm was accepted from, if any

    Returns:
        New harm id
    """
    content = clean_content(content)
    if not observation_ids:
        raise ValueError("A harm must reference at least one observation")

    supabase = get_supabase()
    if supabase is None:
        return local_id()

    data: dict[str, Any] = {
        "project_id": str(project_id),
        "observation_ids": [str(o) for o in observation_ids],
        "content": content,
        "created_at": utc_now().isoformat(),
    }
    if source_suggestion_id is not None:
        data["source_suggestion_id"] = source_suggestion_id

    try:
        response = supabase.table(TABLE).insert(data).execute()
    except Exception as e:
        logger.error(f"Failed to create harm for project {project_id}: {e}")
        raise StoreError("Failed to create harm") from e

    touch_project(project_id)
    return response.data[0]["id"]


def update_harm(harm_id: str, project_id: str, **updates: Any) -> None:
    """Patch harm fields (content, observation_ids)."""
    clean_updates = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
    if "content" in clean_updates:
        clean_updates["content"] = clean_content(clean_updates["content"])
    if not clean_updates:
        return

    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).update(clean_updates).eq("id", str(harm_id)).execute()
    except Exception as e:
        logger.error(f"Failed to update harm {harm_id}: {e}")
        raise StoreError(f"Failed to update harm {harm_id}") from e

    touch_project(project_id)


def delete_harm(harm_id: str, project_id: str) -> None:
    """Delete a harm."""
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).delete().eq("id", str(harm_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete harm {harm_id}: {e}")
        raise StoreError(f"Failed to delete harm {harm_id}") from e

    touch_project(project_id)


def delete_harms_by_project(project_id: str) -> None:
    """Delete every harm scoped to a project (cascade step)."""
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).delete().eq("project_id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete harms for project {project_id}: {e}")
        raise StoreError(f"Failed to delete harms for project {project_id}") from e
