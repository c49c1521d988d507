"""CRUD operations for projects, including the cascade delete."""

from typing import Any

from synthesis.core.logging import get_logger
from synthesis.db.common import (
    PROJECTS_TABLE,
    StoreError,
    clean_content,
    local_id,
    normalize_row,
    utc_now,
)
from synthesis.db.criteria import delete_criteria_by_project
from synthesis.db.harms import delete_harms_by_project
from synthesis.db.observations import delete_observations_by_project
from synthesis.db.strategies import delete_strategies_by_project
from synthesis.db.supabase_client import get_supabase

logger = get_logger(__name__)

UPDATABLE_FIELDS = {"name", "archived", "tags"}


def list_projects(user_id: str, include_archived: bool = True) -> list[dict[str, Any]]:
    """
    List a user's projects, most recently active first.

    Filtering happens on the owning user only; the recency sort runs
    client-side so the store needs no composite index.

    Args:
        user_id: Owning user id
        include_archived: Whether archived projects are returned

    Returns:
        Project dicts ordered by updated_at descending
    """
    supabase = get_supabase()
    if supabase is None:
        return []

    try:
        response = supabase.table(PROJECTS_TABLE).select("*").eq("user_id", str(user_id)).execute()
    except Exception as e:
        logger.error(f"Failed to list projects for user {user_id}: {e}")
        raise StoreError(f"Failed to list projects for user {user_id}") from e

    projects = [normalize_row(row, "created_at", "updated_at") for row in response.data or []]
    if not include_archived:
        projects = [p for p in projects if not p.get("archived")]
    return sorted(projects, key=lambda p: p["updated_at"], reverse=True)


def get_project(project_id: str) -> dict[str, Any] | None:
    """
    Get a project by id.

    Returns:
        Project dict or None (always None in local-only mode)
    """
    supabase = get_supabase()
    if supabase is None:
        return None

    try:
        response = (
            supabase.table(PROJECTS_TABLE)
            .select("*")
            .eq("id", str(project_id))
            .maybe_single()
            .execute()
        )
    except Exception as e:
        logger.error(f"Failed to get project {project_id}: {e}")
        raise StoreError(f"Failed to get project {project_id}") from e

    if response is None or not response.data:
        return None
    return normalize_row(response.data, "created_at", "updated_at")


def create_project(user_id: str, name: str) -> str:
    """
    Create a project for a user.

    Args:
        user_id: Owning user id
        name: Project name (trimmed, must be non-empty)

    Returns:
        New project id
    """
    name = clean_content(name)
    supabase = get_supabase()
    if supabase is None:
        return local_id()

    now = utc_now().isoformat()
    data = {
        "user_id": str(user_id),
        "name": name,
        "tags": [],
        "archived": False,
        "created_at": now,
        "updated_at": now,
    }

    try:
        response = supabase.table(PROJECTS_TABLE).insert(data).execute()
    except Exception as e:
        logger.error(f"Failed to create project for user {user_id}: {e}")
        raise StoreError("Failed to create project") from e

    new_id = response.data[0]["id"]
    logger.info(f"Created project '{name}' ({new_id}) for user {user_id}")
    return new_id


def update_project(project_id: str, **updates: Any) -> None:
    """
    Patch project fields; always refreshes updated_at.

    Args:
        project_id: Project id
        **updates: name, archived and/or tags
    """
    clean_updates = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
    if "name" in clean_updates:
        clean_updates["name"] = clean_content(clean_updates["name"])
    clean_updates["updated_at"] = utc_now().isoformat()

    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(PROJECTS_TABLE).update(clean_updates).eq("id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to update project {project_id}: {e}")
        raise StoreError(f"Failed to update project {project_id}") from e


def delete_project(project_id: str) -> None:
    """
    Delete a project and everything scoped to it.

    Order: observations, harms, criteria, strategies, then the project record.
    """
    supabase = get_supabase()
    if supabase is None:
        return

    delete_observations_by_project(project_id)
    delete_harms_by_project(project_id)
    delete_criteria_by_project(project_id)
    delete_strategies_by_project(project_id)

    try:
        supabase.table(PROJECTS_TABLE).delete().eq("id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete project {project_id}: {e}")
        raise StoreError(f"Failed to delete project {project_id}") from e

    logger.info(f"Deleted project {project_id} with all observations, harms, criteria and strategies")
