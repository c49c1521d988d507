"""CRUD operations for design criteria."""

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

TABLE = "criteria"


def list_criteria(project_id: str) -> list[dict[str, Any]]:
    """List criteria for a project, oldest first."""
    supabase = get_supabase()
    if supabase is None:
        return []

    try:
        response = supabase.table(TABLE).select("*").eq("project_id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to list criteria for project {project_id}: {e}")
        raise StoreError(f"Failed to list criteria for project {project_id}") from e

    return sort_by_creation([normalize_row(row) for row in response.data or []])


def create_criterion(
    project_id: str,
    harm_id: str,
    content: str,
    source_suggestion_id: str | None = None,
) -> str:
    """
    Create a criterion under a harm.

    Args:
        project_id: Project id
        harm_id: Parent harm id
        content: Criterion text
        source_suggestion_id: Suggestion this criterion was accepted from, if any

    Returns:
        New criterion id
    """
    content = clean_content(content)
    supabase = get_supabase()
    if supabase is None:
        return local_id()

    data: dict[str, Any] = {
        "project_id": str(project_id),
        "harm_id": str(harm_id),
        "content": content,
        "created_at": utc_now().isoformat(),
    }
    if source_suggestion_id is not None:
        data["source_suggestion_id"] = source_suggestion_id

    try:
        response = supabase.table(TABLE).insert(data).execute()
    except Exception as e:
        logger.error(f"Failed to create criterion for harm {harm_id}: {e}")
        raise StoreError("Failed to create criterion") from e

    touch_project(project_id)
    return response.data[0]["id"]


def update_criterion(criterion_id: str, project_id: str, content: str) -> None:
    """Replace a criterion's content."""
    content = clean_content(content)
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).update({"content": content}).eq("id", str(criterion_id)).execute()
    except Exception as e:
        logger.error(f"Failed to update criterion {criterion_id}: {e}")
        raise StoreError(f"Failed to update criterion {criterion_id}") from e

    touch_project(project_id)


def delete_criterion(criterion_id: str, project_id: str) -> None:
    """Delete a criterion."""
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).delete().eq("id", str(criterion_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete criterion {criterion_id}: {e}")
        raise StoreError(f"Failed to delete criterion {criterion_id}") from e

    touch_project(project_id)


def delete_criteria_by_project(project_id: str) -> None:
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).delete().eq("project_id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete criteria for project {project_id}: {e}")
        raise StoreError(f"Failed to delete criteria for project {project_id}") from e
