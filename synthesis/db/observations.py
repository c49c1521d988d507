"""CRUD operations for observations."""

from typing import Any

from synthesis.core.logging import get_logger
from synthesis.db.common import (
    StoreError,
    clean_content,
    local_id,
    normalize_row,
    sort_by_order,
    touch_project,
    utc_now,
)
from synthesis.db.supabase_client import get_supabase

logger = get_logger(__name__)

TABLE = "observations"
UPDATABLE_FIELDS = {"content", "title", "sort_order"}


def list_observations(project_id: str) -> list[dict[str, Any]]:
    """
    List observations for a project.

    Args:
        project_id: Project id

    Returns:
        Observation dicts ordered by sort order, then creation time
    """
    supabase = get_supabase()
    if supabase is None:
        return []

    try:
        response = supabase.table(TABLE).select("*").eq("project_id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to list observations for project {project_id}: {e}")
        raise StoreError(f"Failed to list observations for project {project_id}") from e

    return sort_by_order([normalize_row(row) for row in response.data or []])


def create_observation(
    project_id: str,
    content: str,
    sort_order: float | None = None,
    title: str | None = None,
) -> str:
    """
    Create an observation and refresh the project timestamp.

    Args:
        project_id: Project id
        content: Observation text (trimmed, must be non-empty)
        sort_order: Fractional position among siblings
        title: Optional short insight title

    Returns:
        New observation id (locally generated in local-only mode)
    """
    content = clean_content(content)
    supabase = get_supabase()
    if supabase is None:
        return local_id()

    data: dict[str, Any] = {
        "project_id": str(project_id),
        "content": content,
        "created_at": utc_now().isoformat(),
    }
    if sort_order is not None:
        data["sort_order"] = sort_order
    if title is not None:
        data["title"] = title

    try:
        response = supabase.table(TABLE).insert(data).execute()
    except Exception as e:
        logger.error(f"Failed to create observation for project {project_id}: {e}")
        raise StoreError("Failed to create observation") from e

    touch_project(project_id)
    new_id = response.data[0]["id"]
    logger.info(f"Created observation {new_id} for project {project_id}")
    return new_id


def update_observation(observation_id: str, project_id: str, **updates: Any) -> None:
    """
    Patch observation fields (content, title, sort_order).

    Args:
        observation_id: Observation id
        project_id: Project id (for the timestamp refresh)
        **updates: Fields to update
    """
    clean_updates = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
    if "content" in clean_updates:
        clean_updates["content"] = clean_content(clean_updates["content"])
    if not clean_updates:
        return

    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).update(clean_updates).eq("id", str(observation_id)).execute()
    except Exception as e:
        logger.error(f"Failed to update observation {observation_id}: {e}")
        raise StoreError(f"Failed to update observation {observation_id}") from e

    touch_project(project_id)


def update_observation_orders(project_id: str, orders: dict[str, float]) -> None:
    """
    Persist a batch of sort-order updates after a reorder.

    Args:
        project_id: Project id
        orders: Mapping of observation id to its new sort order
    """
    supabase = get_supabase()
    if supabase is None or not orders:
        return

    failed = []
    for observation_id, sort_order in orders.items():
        try:
            (
                supabase.table(TABLE)
                .update({"sort_order": sort_order})
                .eq("id", str(observation_id))
                .execute()
            )
        except Exception as e:
            logger.error(f"Failed to persist order for observation {observation_id}: {e}")
            failed.append(observation_id)

    touch_project(project_id)
    if failed:
        raise StoreError(f"Failed to persist order for {len(failed)} observation(s)")


def delete_observation(observation_id: str, project_id: str) -> None:
    """
    Delete an observation.

    Args:
        observation_id: Observation id
        project_id: Project id (for the timestamp refresh)
    """
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).delete().eq("id", str(observation_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete observation {observation_id}: {e}")
        raise StoreError(f"Failed to delete observation {observation_id}") from e

    touch_project(project_id)


def delete_observations_by_project(project_id: str) -> None:
    """Delete every observation scoped to a project (cascade step)."""
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).delete().eq("project_id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete observations for project {project_id}: {e}")
        raise StoreError(f"Failed to delete observations for project {project_id}") from e
