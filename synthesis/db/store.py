"""Async entity store used by the worksheet.

The db modules are blocking supabase-py calls; the worksheet awaits them
through ``asyncio.to_thread`` so coaching timers and suggestion fetches keep
running while a write is in flight. Tests substitute an in-memory store with
the same method names.
"""

import asyncio
from typing import Any, Protocol

from synthesis.db import criteria as criteria_db
from synthesis.db import harms as harms_db
from synthesis.db import observations as observations_db
from synthesis.db import projects as projects_db
from synthesis.db import strategies as strategies_db


class EntityStore(Protocol):
    async def list_projects(self, user_id: str, include_archived: bool = True) -> list[dict[str, Any]]: ...

    async def create_project(self, user_id: str, name: str) -> str: ...

    async def delete_project(self, project_id: str) -> None: ...

    async def get_project(self, project_id: str) -> dict[str, Any] | None: ...

    async def update_project(self, project_id: str, **updates: Any) -> None: ...

    async def list_observations(self, project_id: str) -> list[dict[str, Any]]: ...

    async def list_harms(self, project_id: str) -> list[dict[str, Any]]: ...

    async def list_criteria(self, project_id: str) -> list[dict[str, Any]]: ...

    async def list_strategies(self, project_id: str) -> list[dict[str, Any]]: ...

    async def create_observation(
        self, project_id: str, content: str, sort_order: float | None = None, title: str | None = None
    ) -> str: ...

    async def update_observation(self, observation_id: str, project_id: str, **updates: Any) -> None: ...

    async def update_observation_orders(self, project_id: str, orders: dict[str, float]) -> None: ...

    async def delete_observation(self, observation_id: str, project_id: str) -> None: ...

    async def create_harm(
        self,
        project_id: str,
        observation_ids: list[str],
        content: str,
        source_suggestion_id: str | None = None,
    ) -> str: ...

    async def update_harm(self, harm_id: str, project_id: str, **updates: Any) -> None: ...

    async def delete_harm(self, harm_id: str, project_id: str) -> None: ...

    async def create_criterion(
        self, project_id: str, harm_id: str, content: str, source_suggestion_id: str | None = None
    ) -> str: ...

    async def update_criterion(self, criterion_id: str, project_id: str, content: str) -> None: ...

    async def delete_criterion(self, criterion_id: str, project_id: str) -> None: ...

    async def create_strategy(
        self,
        project_id: str,
        criterion_id: str,
        content: str,
        strategy_type: str | None = None,
        source_suggestion_id: str | None = None,
    ) -> str: ...

    async def update_strategy(self, strategy_id: str, project_id: str, **updates: Any) -> None: ...

    async def delete_strategy(self, strategy_id: str, project_id: str) -> None: ...


class SupabaseEntityStore:
    """EntityStore backed by the Supabase db modules."""

    async def list_projects(self, user_id, include_archived=True):
        return await asyncio.to_thread(projects_db.list_projects, user_id, include_archived)

    async def create_project(self, user_id, name):
        return await asyncio.to_thread(projects_db.create_project, user_id, name)

    async def delete_project(self, project_id):
        await asyncio.to_thread(projects_db.delete_project, project_id)

    async def get_project(self, project_id):
        return await asyncio.to_thread(projects_db.get_project, project_id)

    async def update_project(self, project_id, **updates):
        await asyncio.to_thread(projects_db.update_project, project_id, **updates)

    async def list_observations(self, project_id):
        return await asyncio.to_thread(observations_db.list_observations, project_id)

    async def list_harms(self, project_id):
        return await asyncio.to_thread(harms_db.list_harms, project_id)

    async def list_criteria(self, project_id):
        return await asyncio.to_thread(criteria_db.list_criteria, project_id)

    async def list_strategies(self, project_id):
        return await asyncio.to_thread(strategies_db.list_strategies, project_id)

    async def create_observation(self, project_id, content, sort_order=None, title=None):
        return await asyncio.to_thread(
            observations_db.create_observation, project_id, content, sort_order, title
        )

    async def update_observation(self, observation_id, project_id, **updates):
        await asyncio.to_thread(observations_db.update_observation, observation_id, project_id, **updates)

    async def update_observation_orders(self, project_id, orders):
        await asyncio.to_thread(observations_db.update_observation_orders, project_id, orders)

    async def delete_observation(self, observation_id, project_id):
        await asyncio.to_thread(observations_db.delete_observation, observation_id, project_id)

    async def create_harm(self, project_id, observation_ids, content, source_suggestion_id=None):
        return await asyncio.to_thread(
            harms_db.create_harm, project_id, observation_ids, content, source_suggestion_id
        )

    async def update_harm(self, harm_id, project_id, **updates):
        await asyncio.to_thread(harms_db.update_harm, harm_id, project_id, **updates)

    async def delete_harm(self, harm_id, project_id):
        await asyncio.to_thread(harms_db.delete_harm, harm_id, project_id)

    async def create_criterion(self, project_id, harm_id, content, source_suggestion_id=None):
        return await asyncio.to_thread(
            criteria_db.create_criterion, project_id, harm_id, content, source_suggestion_id
        )

    async def update_criterion(self, criterion_id, project_id, content):
        await asyncio.to_thread(criteria_db.update_criterion, criterion_id, project_id, content)

    async def delete_criterion(self, criterion_id, project_id):
        await asyncio.to_thread(criteria_db.delete_criterion, criterion_id, project_id)

    async def create_strategy(
        self, project_id, criterion_id, content, strategy_type=None, source_suggestion_id=None
    ):
        return await asyncio.to_thread(
            strategies_db.create_strategy,
            project_id,
            criterion_id,
            content,
            strategy_type,
            source_suggestion_id,
        )

    async def update_strategy(self, strategy_id, project_id, **updates):
        await asyncio.to_thread(strategies_db.update_strategy, strategy_id, project_id, **updates)

    async def delete_strategy(self, strategy_id, project_id):
        await asyncio.to_thread(strategies_db.delete_strategy, strategy_id, project_id)
