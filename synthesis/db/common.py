"""Shared helpers for the entity store modules.

Covers timestamp normalization, local-only id generation, client-side
ordering, and the parent-project timestamp refresh that every child
mutation performs.
"""

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from synthesis.core.logging import get_logger
from synthesis.db.supabase_client import get_supabase

logger = get_logger(__name__)

PROJECTS_TABLE = "projects"


class StoreError(Exception):
    """The remote document store rejected or failed a call."""


class EmptyContentError(ValueError):
    """Blank content was submitted for an entity."""


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def local_id() -> str:
    """Generate an identifier for local-only mode."""
    return str(uuid4())


def normalize_timestamp(value: Any) -> datetime:
    """
    Normalize a stored timestamp to an aware UTC datetime.

    Accepts ISO-8601 strings (including a trailing ``Z``), naive datetimes
    (assumed UTC) and aware datetimes. Missing values become "now", matching
    rows whose server-side timestamp has not been resolved yet.
    """
    if value is None or value == "":
        return utc_now()
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, str):
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    raise TypeError(f"Unsupported timestamp value: {value!r}")


def normalize_row(row: dict[str, Any], *fields: str) -> dict[str, Any]:
    """Return a copy of ``row`` with the named timestamp fields normalized."""
    out = dict(row)
    for field in fields or ("created_at",):
        out[field] = normalize_timestamp(out.get(field))
    return out


def clean_content(content: str | None) -> str:
    """Trim content and reject blank submissions."""
    cleaned = (content or "").strip()
    if not cleaned:
        raise EmptyContentError("Content must not be empty")
    return cleaned


def sort_by_creation(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Order rows by creation time ascending; the store does not guarantee order."""
    return sorted(rows, key=lambda r: r["created_at"])


def sort_by_order(rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """
    Order rows by explicit sort order, falling back to creation time.

    Rows with a ``sort_order`` come first in ascending order (ties broken by
    creation time); rows without one follow in creation order.
    """
    return sorted(
        rows,
        key=lambda r: (
            r.get("sort_order") is None,
            r.get("sort_order") if r.get("sort_order") is not None else 0.0,
            r["created_at"],
        ),
    )


def touch_project(project_id: str) -> bool:
    """
    Refresh a project's ``updated_at`` with a no-op-content update.

    Keeps "recently active project" listing a single-table query. The child
    mutation has already landed when this runs, so a failure here is logged
    and reported rather than raised.

    Returns:
        True if the timestamp was written
    """
    supabase = get_supabase()
    if supabase is None:
        return False

    try:
        (
            supabase.table(PROJECTS_TABLE)
            .update({"updated_at": utc_now().isoformat()})
            .eq("id", str(project_id))
            .execute()
        )
        return True
    except Exception as e:
        logger.error(f"Failed to touch project {project_id}: {e}")
        return False
