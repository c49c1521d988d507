"""In-process entity store for local-only mode.

Used when no Supabase project is configured. Rows live in per-table dicts
for the lifetime of the process, so a local session keeps its tree across
requests. Validation, ordering and the project timestamp refresh match the
Supabase-backed db modules.
"""

from datetime import datetime, timedelta
from typing import Any

from synthesis.core.logging import get_logger
from synthesis.db.common import (
    clean_content,
    local_id,
    sort_by_creation,
    sort_by_order,
    utc_now,
)
from synthesis.db.harms import UPDATABLE_FIELDS as HARM_FIELDS
from synthesis.db.observations import UPDATABLE_FIELDS as OBSERVATION_FIELDS
from synthesis.db.projects import UPDATABLE_FIELDS as PROJECT_FIELDS
from synthesis.db.strategies import UPDATABLE_FIELDS as STRATEGY_FIELDS

logger = get_logger(__name__)

CHILD_TABLES = ("observations", "harms", "criteria", "strategies")


class LocalEntityStore:
    """EntityStore keeping every row in memory."""

    def __init__(self):
        self._tables: dict[str, dict[str, dict[str, Any]]] = {
            "projects": {},
            **{table: {} for table in CHILD_TABLES},
        }
        self._last_stamp: datetime | None = None

    def _stamp(self) -> datetime:
        # strictly increasing so creation-time ordering is stable within a burst
        now = utc_now()
        if self._last_stamp is not None and now <= self._last_stamp:
            now = self._last_stamp + timedelta(microseconds=1)
        self._last_stamp = now
        return now

    def _rows(self, table: str, project_id: str) -> list[dict[str, Any]]:
        return [dict(row) for row in self._tables[table].values() if row["project_id"] == str(project_id)]

    def _touch(self, project_id: str) -> None:
        project = self._tables["projects"].get(str(project_id))
        if project is not None:
            project["updated_at"] = self._stamp()

    def _insert(self, table: str, row: dict[str, Any]) -> str:
        row_id = local_id()
        self._tables[table][row_id] = {"id": row_id, "created_at": self._stamp(), **row}
        return row_id

    def _patch(
        self, table: str, row_id: str, project_id: str, updates: dict[str, Any], fields: set[str]
    ) -> None:
        clean_updates = {k: v for k, v in updates.items() if k in fields}
        if "content" in clean_updates:
            clean_updates["content"] = clean_content(clean_updates["content"])
        if not clean_updates:
            return
        row = self._tables[table].get(str(row_id))
        if row is not None:
            row.update(clean_updates)
        self._touch(project_id)

    def _remove(self, table: str, row_id: str, project_id: str) -> None:
        self._tables[table].pop(str(row_id), None)
        self._touch(project_id)

    # Projects

    async def list_projects(self, user_id, include_archived=True):
        projects = [dict(p) for p in self._tables["projects"].values() if p["user_id"] == str(user_id)]
        if not include_archived:
            projects = [p for p in projects if not p.get("archived")]
        return sorted(projects, key=lambda p: p["updated_at"], reverse=True)

    async def create_project(self, user_id, name):
        name = clean_content(name)
        now = self._stamp()
        project_id = local_id()
        self._tables["projects"][project_id] = {
            "id": project_id,
            "user_id": str(user_id),
            "name": name,
            "tags": [],
            "archived": False,
            "created_at": now,
            "updated_at": now,
        }
        logger.info(f"Created local project '{name}' ({project_id}) for user {user_id}")
        return project_id

    async def get_project(self, project_id):
        project = self._tables["projects"].get(str(project_id))
        return dict(project) if project else None

    async def update_project(self, project_id, **updates):
        clean_updates = {k: v for k, v in updates.items() if k in PROJECT_FIELDS}
        if "name" in clean_updates:
            clean_updates["name"] = clean_content(clean_updates["name"])
        project = self._tables["projects"].get(str(project_id))
        if project is not None:
            project.update(clean_updates)
            project["updated_at"] = self._stamp()

    async def delete_project(self, project_id):
        for table in CHILD_TABLES:
            rows = self._tables[table]
            for row_id in [r["id"] for r in rows.values() if r["project_id"] == str(project_id)]:
                del rows[row_id]
        self._tables["projects"].pop(str(project_id), None)
        logger.info(f"Deleted local project {project_id}")

    # Listing

    async def list_observations(self, project_id):
        return sort_by_order(self._rows("observations", project_id))

    async def list_harms(self, project_id):
        return sort_by_creation(self._rows("harms", project_id))

    async def list_criteria(self, project_id):
        return sort_by_creation(self._rows("criteria", project_id))

    async def list_strategies(self, project_id):
        return sort_by_creation(self._rows("strategies", project_id))

    # Observations

    async def create_observation(self, project_id, content, sort_order=None, title=None):
        content = clean_content(content)
        new_id = self._insert(
            "observations",
            {"project_id": str(project_id), "content": content, "title": title, "sort_order": sort_order},
        )
        self._touch(project_id)
        return new_id

    async def update_observation(self, observation_id, project_id, **updates):
        self._patch("observations", observation_id, project_id, updates, OBSERVATION_FIELDS)

    async def update_observation_orders(self, project_id, orders):
        if not orders:
            return
        rows = self._tables["observations"]
        for observation_id, sort_order in orders.items():
            if observation_id in rows:
                rows[observation_id]["sort_order"] = sort_order
        self._touch(project_id)

    async def delete_observation(self, observation_id, project_id):
        self._remove("observations", observation_id, project_id)

    # Harms

    async def create_harm(self, project_id, observation_ids, content, source_suggestion_id=None):
        content = clean_content(content)
        if not observation_ids:
            raise ValueError("A harm must reference at least one observation")
        new_id = self._insert(
            "harms",
            {
                "project_id": str(project_id),
                "observation_ids": [str(oid) for oid in observation_ids],
                "content": content,
                "source_suggestion_id": source_suggestion_id,
            },
        )
        self._touch(project_id)
        return new_id

    async def update_harm(self, harm_id, project_id, **updates):
        self._patch("harms", harm_id, project_id, updates, HARM_FIELDS)

    async def delete_harm(self, harm_id, project_id):
        self._remove("harms", harm_id, project_id)

    # Criteria

    async def create_criterion(self, project_id, harm_id, content, source_suggestion_id=None):
        content = clean_content(content)
        new_id = self._insert(
            "criteria",
            {
                "project_id": str(project_id),
                "harm_id": str(harm_id),
                "content": content,
                "source_suggestion_id": source_suggestion_id,
            },
        )
        self._touch(project_id)
        return new_id

    async def update_criterion(self, criterion_id, project_id, content):
        self._patch("criteria", criterion_id, project_id, {"content": content}, {"content"})

    async def delete_criterion(self, criterion_id, project_id):
        self._remove("criteria", criterion_id, project_id)

    # Strategies

    async def create_strategy(
        self, project_id, criterion_id, content, strategy_type=None, source_suggestion_id=None
    ):
        content = clean_content(content)
        new_id = self._insert(
            "strategies",
            {
                "project_id": str(project_id),
                "criterion_id": str(criterion_id),
                "content": content,
                "strategy_type": strategy_type or None,
                "source_suggestion_id": source_suggestion_id,
            },
        )
        self._touch(project_id)
        return new_id

    async def update_strategy(self, strategy_id, project_id, **updates):
        self._patch("strategies", strategy_id, project_id, updates, STRATEGY_FIELDS)

    async def delete_strategy(self, strategy_id, project_id):
        self._remove("strategies", strategy_id, project_id)
