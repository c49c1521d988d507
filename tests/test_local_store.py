"""Tests for the in-memory store used in local-only mode."""

import pytest

from synthesis.core.config import Settings
from synthesis.db.common import EmptyContentError
from synthesis.db.local_store import LocalEntityStore


@pytest.fixture
def store():
    return LocalEntityStore()


class TestLocalEntityStore:
    @pytest.mark.asyncio
    async def test_rows_persist_and_list_in_order(self, store):
        project_id = await store.create_project("dev-user", "  Kitchen Study ")
        later = await store.create_observation(project_id, "Skipped the recipe", sort_order=1.0)
        first = await store.create_observation(project_id, "Opened three cabinets", sort_order=0.0)
        legacy = await store.create_observation(project_id, "Older note")

        rows = await store.list_observations(project_id)

        assert [r["id"] for r in rows] == [first, later, legacy]
        assert (await store.get_project(project_id))["name"] == "Kitchen Study"

    @pytest.mark.asyncio
    async def test_child_mutation_refreshes_project_timestamp(self, store):
        old = await store.create_project("dev-user", "Old")
        new = await store.create_project("dev-user", "New")
        await store.create_observation(old, "Opened three cabinets")

        assert [p["id"] for p in await store.list_projects("dev-user")] == [old, new]
        assert await store.list_projects("someone-else") == []

    @pytest.mark.asyncio
    async def test_validation_matches_supabase_modules(self, store):
        project_id = await store.create_project("dev-user", "P")

        with pytest.raises(EmptyContentError):
            await store.create_observation(project_id, "   ")
        with pytest.raises(ValueError):
            await store.create_harm(project_id, [], "Time wasted")

        obs_id = await store.create_observation(project_id, "x")
        await store.update_observation(obs_id, project_id, title="Kitchen Chaos", sort_order_typo=3)
        row = (await store.list_observations(project_id))[0]
        assert row["title"] == "Kitchen Chaos"
        assert "sort_order_typo" not in row

    @pytest.mark.asyncio
    async def test_delete_project_cascades(self, store):
        project_id = await store.create_project("dev-user", "P")
        keep = await store.create_project("dev-user", "Keep")
        obs_id = await store.create_observation(project_id, "x")
        harm_id = await store.create_harm(project_id, [obs_id], "Time wasted", source_suggestion_id="s-1")
        crit_id = await store.create_criterion(project_id, harm_id, "Obvious")
        await store.create_strategy(project_id, crit_id, "HMW label it", strategy_type="confront")
        await store.create_observation(keep, "y")

        await store.delete_project(project_id)

        assert await store.get_project(project_id) is None
        listings = (store.list_observations, store.list_harms, store.list_criteria, store.list_strategies)
        for listing in listings:
            assert await listing(project_id) == []
        assert len(await store.list_observations(keep)) == 1

    @pytest.mark.asyncio
    async def test_deleting_observation_keeps_its_harms(self, store):
        project_id = await store.create_project("dev-user", "P")
        obs_id = await store.create_observation(project_id, "x")
        await store.create_harm(project_id, [obs_id], "Time wasted")

        await store.delete_observation(obs_id, project_id)

        assert [h["content"] for h in await store.list_harms(project_id)] == ["Time wasted"]


class TestStoreSelection:
    def test_unconfigured_settings_use_local_store(self):
        from synthesis.api.deps import get_entity_store

        assert isinstance(get_entity_store(), LocalEntityStore)
        assert get_entity_store() is get_entity_store()

    def test_configured_settings_use_supabase(self, monkeypatch):
        from synthesis.api.deps import get_entity_store
        from synthesis.db.store import SupabaseEntityStore

        monkeypatch.setattr(
            "synthesis.api.deps.get_settings",
            lambda: Settings(SUPABASE_URL="https://example.supabase.co", SUPABASE_SERVICE_ROLE_KEY="key"),
        )

        assert isinstance(get_entity_store(), SupabaseEntityStore)
