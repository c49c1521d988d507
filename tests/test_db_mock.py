"""Tests for entity store operations with mocked Supabase."""

from datetime import datetime, timezone
from unittest.mock import MagicMock, call, patch

import pytest

from synthesis.db.common import (
    EmptyContentError,
    StoreError,
    clean_content,
    normalize_timestamp,
    sort_by_order,
)


@pytest.fixture
def mock_supabase():
    """Fixture to mock the Supabase client for every store module."""
    mock_client = MagicMock()
    with (
        patch("synthesis.db.observations.get_supabase", return_value=mock_client),
        patch("synthesis.db.harms.get_supabase", return_value=mock_client),
        patch("synthesis.db.projects.get_supabase", return_value=mock_client),
        patch("synthesis.db.common.get_supabase", return_value=mock_client),
    ):
        yield mock_client


@pytest.fixture
def no_supabase():
    """Local-only mode: no client configured."""
    with (
        patch("synthesis.db.observations.get_supabase", return_value=None),
        patch("synthesis.db.harms.get_supabase", return_value=None),
        patch("synthesis.db.projects.get_supabase", return_value=None),
        patch("synthesis.db.common.get_supabase", return_value=None),
    ):
        yield


class TestCommon:
    def test_normalize_timestamp_accepts_z_suffix(self):
        value = normalize_timestamp("2024-01-01T10:00:00Z")
        assert value == datetime(2024, 1, 1, 10, tzinfo=timezone.utc)

    def test_normalize_timestamp_assumes_utc_for_naive(self):
        value = normalize_timestamp(datetime(2024, 1, 1))
        assert value.tzinfo == timezone.utc

    def test_clean_content_rejects_blank(self):
        assert clean_content("  hi  ") == "hi"
        with pytest.raises(EmptyContentError):
            clean_content("   ")

    def test_sort_by_order_puts_unordered_rows_last(self):
        t1 = datetime(2024, 1, 1, tzinfo=timezone.utc)
        t2 = datetime(2024, 1, 2, tzinfo=timezone.utc)
        rows = [
            {"id": "legacy", "sort_order": None, "created_at": t1},
            {"id": "b", "sort_order": 1.0, "created_at": t1},
            {"id": "a", "sort_order": 0.5, "created_at": t2},
        ]
        assert [r["id"] for r in sort_by_order(rows)] == ["a", "b", "legacy"]


class TestObservations:
    def test_list_orders_rows_and_normalizes_timestamps(self, mock_supabase):
        from synthesis.db.observations import list_observations

        mock_supabase.table.return_value.select.return_value.eq.return_value.execute.return_value = MagicMock(
            data=[
                {"id": "b", "sort_order": 1.0, "created_at": "2024-01-01T00:00:00Z"},
                {"id": "a", "sort_order": 0.0, "created_at": "2024-01-02T00:00:00Z"},
            ]
        )

        rows = list_observations("p1")

        assert [r["id"] for r in rows] == ["a", "b"]
        assert isinstance(rows[0]["created_at"], datetime)
        mock_supabase.table.assert_called_with("observations")

    def test_create_inserts_and_touches_project(self, mock_supabase):
        from synthesis.db.observations import create_observation

        mock_supabase.table.return_value.insert.return_value.execute.return_value = MagicMock(
            data=[{"id": "obs-1"}]
        )

        new_id = create_observation("p1", "  Opened three cabinets  ", sort_order=2.0)

        assert new_id == "obs-1"
        inserted = mock_supabase.table.return_value.insert.call_args[0][0]
        assert inserted["content"] == "Opened three cabinets"
        assert inserted["sort_order"] == 2.0
        assert call("projects") in mock_supabase.table.call_args_list
        update_payload = mock_supabase.table.return_value.update.call_args[0][0]
        assert "updated_at" in update_payload

    def test_create_rejects_blank_content(self, mock_supabase):
        from synthesis.db.observations import create_observation

        with pytest.raises(EmptyContentError):
            create_observation("p1", "   ")
        mock_supabase.table.return_value.insert.assert_not_called()

    def test_failed_insert_raises_store_error(self, mock_supabase):
        from synthesis.db.observations import create_observation

        mock_supabase.table.return_value.insert.return_value.execute.side_effect = Exception("timeout")

        with pytest.raises(StoreError):
            create_observation("p1", "text")

    def test_update_ignores_unknown_fields(self, mock_supabase):
        from synthesis.db.observations import update_observation

        update_observation("o1", "p1", title="Kitchen Chaos", project_id_typo="x")

        first_update = mock_supabase.table.return_value.update.call_args_list[0][0][0]
        assert first_update == {"title": "Kitchen Chaos"}

    def test_order_batch_reports_partial_failure(self, mock_supabase):
        from synthesis.db.observations import update_observation_orders

        mock_supabase.table.return_value.update.return_value.eq.return_value.execute.side_effect = [
            MagicMock(),
            Exception("conflict"),
            MagicMock(),
        ]

        with pytest.raises(StoreError, match="1 observation"):
            update_observation_orders("p1", {"a": 0.0, "b": 1.0})

    def test_local_only_mode(self, no_supabase):
        from synthesis.db.observations import (
            create_observation,
            delete_observation,
            list_observations,
            update_observation_orders,
        )

        assert list_observations("p1") == []
        assert create_observation("p1", "text")
        update_observation_orders("p1", {"a": 0.0})
        delete_observation("o1", "p1")


class TestHarms:
    def test_create_records_provenance(self, mock_supabase):
        from synthesis.db.harms import create_harm

        mock_supabase.table.return_value.insert.return_value.execute.return_value = MagicMock(
            data=[{"id": "h1"}]
        )

        create_harm("p1", ["o1"], "Time wasted", source_suggestion_id="s-1")

        inserted = mock_supabase.table.return_value.insert.call_args[0][0]
        assert inserted["observation_ids"] == ["o1"]
        assert inserted["source_suggestion_id"] == "s-1"

    def test_create_requires_an_observation(self, mock_supabase):
        from synthesis.db.harms import create_harm

        with pytest.raises(ValueError):
            create_harm("p1", [], "Time wasted")


class TestProjects:
    def test_list_sorts_by_recent_activity_and_filters_archived(self, mock_supabase):
        from synthesis.db.projects import list_projects

        mock_supabase.table.return_value.select.return_value.eq.return_value.execute.return_value = MagicMock(
            data=[
                {"id": "old", "archived": False, "created_at": "2024-01-01T00:00:00Z",
                 "updated_at": "2024-01-01T00:00:00Z"},
                {"id": "new", "archived": False, "created_at": "2024-01-01T00:00:00Z",
                 "updated_at": "2024-03-01T00:00:00Z"},
                {"id": "shelved", "archived": True, "created_at": "2024-01-01T00:00:00Z",
                 "updated_at": "2024-04-01T00:00:00Z"},
            ]
        )

        assert [p["id"] for p in list_projects("u1")] == ["shelved", "new", "old"]
        assert [p["id"] for p in list_projects("u1", include_archived=False)] == ["new", "old"]

    def test_get_missing_project_returns_none(self, mock_supabase):
        from synthesis.db.projects import get_project

        chain = mock_supabase.table.return_value.select.return_value.eq.return_value.maybe_single.return_value
        chain.execute.return_value = None

        assert get_project("missing") is None

    def test_update_always_refreshes_timestamp(self, mock_supabase):
        from synthesis.db.projects import update_project

        update_project("p1", archived=True)

        payload = mock_supabase.table.return_value.update.call_args[0][0]
        assert payload["archived"] is True
        assert "updated_at" in payload

    def test_delete_cascades_children_before_project(self, mock_supabase):
        from synthesis.db.projects import delete_project

        manager = MagicMock()
        with (
            patch("synthesis.db.projects.delete_observations_by_project", manager.observations),
            patch("synthesis.db.projects.delete_harms_by_project", manager.harms),
            patch("synthesis.db.projects.delete_criteria_by_project", manager.criteria),
            patch("synthesis.db.projects.delete_strategies_by_project", manager.strategies),
        ):
            delete_project("p1")

        assert manager.mock_calls == [
            call.observations("p1"),
            call.harms("p1"),
            call.criteria("p1"),
            call.strategies("p1"),
        ]
        mock_supabase.table.return_value.delete.return_value.eq.assert_called_with("id", "p1")

    def test_local_only_mode(self, no_supabase):
        from synthesis.db.projects import create_project, delete_project, list_projects

        assert list_projects("u1") == []
        assert create_project("u1", "Kitchen Study")
        delete_project("p1")


class TestSupabaseEntityStore:
    @pytest.mark.asyncio
    async def test_worksheet_runs_in_local_only_mode(self, no_supabase, fake_suggestions, settings):
        from synthesis.core.worksheet import Worksheet
        from synthesis.db.store import SupabaseEntityStore

        worksheet = Worksheet("local-project", SupabaseEntityStore(), fake_suggestions, settings=settings)

        assert await worksheet.load() is True
        obs_id = await worksheet.add_observation("Opened three cabinets")
        harm_id = await worksheet.add_harm(obs_id, "Time wasted")

        assert obs_id and harm_id
        assert worksheet.tree.harms_for(obs_id)[0].content == "Time wasted"

    @pytest.mark.asyncio
    async def test_store_errors_propagate_from_thread(self, mock_supabase):
        from synthesis.db.store import SupabaseEntityStore

        mock_supabase.table.return_value.delete.return_value.eq.return_value.execute.side_effect = Exception(
            "down"
        )

        with pytest.raises(StoreError):
            await SupabaseEntityStore().delete_observation("o1", "p1")
