"""CRUD operations for "How Might We" strategies."""

from typing import Any, Literal

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

TABLE = "strategies"
UPDATABLE_FIELDS = {"content", "strategy_type"}

StrategyType = Literal["confront", "avoid", "minimize"]


def list_strategies(project_id: str) -> list[dict[str, Any]]:
    """List strategies for a project, oldest first."""
    supabase = get_supabase()
    if supabase is None:
        return []

    try:
        response = supabase.table(TABLE).select("*").eq("project_id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to list strategies for project {project_id}: {e}")
        raise StoreError(f"Failed to list strategies for project {project_id}") from e

    return sort_by_creation([normalize_row(row) for row in response.data or []])


def create_strategy(
    project_id: str,
    criterion_id: str,
    content: str,
    strategy_type: StrategyType | None = None,
    source_suggestion_id: str | None = None,
) -> str:
    """
    Create a strategy under a criterion.

    Args:
        project_id: Project id
        criterion_id: Parent criterion id
        content: Strategy text
        strategy_type: confront, avoid or minimize (omitted when unset)
        source_suggestion_id: Suggestion this strategy was accepted from, if any

    Returns:
        New strategy id
    """
    content = clean_content(content)
    supabase = get_supabase()
    if supabase is None:
        return local_id()

    data: dict[str, Any] = {
        "project_id": str(project_id),
        "criterion_id": str(criterion_id),
        "content": content,
        "created_at": utc_now().isoformat(),
    }
    # Only send optional fields that are set
    if strategy_type:
        data["strategy_type"] = strategy_type
    if source_suggestion_id is not None:
        data["source_suggestion_id"] = source_suggestion_id

    try:
        response = supabase.table(TABLE).insert(data).execute()
    except Exception as e:
        logger.error(f"Failed to create strategy for criterion {criterion_id}: {e}")
        raise StoreError("Failed to create strategy") from e

    touch_project(project_id)
    return response.data[0]["id"]


def update_strategy(strategy_id: str, project_id: str, **updates: Any) -> None:
    """Patch strategy fields (content, strategy_type)."""
    clean_updates = {k: v for k, v in updates.items() if k in UPDATABLE_FIELDS}
    if "content" in clean_updates:
        clean_updates["content"] = clean_content(clean_updates["content"])
    if not clean_updates:
        return

    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).update(clean_updates).eq("id", str(strategy_id)).execute()
    except Exception as e:
        logger.error(f"Failed to update strategy {strategy_id}: {e}")
        raise StoreError(f"Failed to update strategy {strategy_id}") from e

    touch_project(project_id)


def delete_strategy(strategy_id: str, project_id: str) -> None:
    """Delete a strategy."""
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).delete().eq("id", str(strategy_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete strategy {strategy_id}: {e}")
        raise StoreError(f"Failed to delete strategy {strategy_id}") from e

    touch_project(project_id)


def delete_strategies_by_project(project_id: str) -> None:
    supabase = get_supabase()
    if supabase is None:
        return

    try:
        supabase.table(TABLE).delete().eq("project_id", str(project_id)).execute()
    except Exception as e:
        logger.error(f"Failed to delete strategies for project {project_id}: {e}")
        raise StoreError(f"Failed to delete strategies for project {project_id}") from e
