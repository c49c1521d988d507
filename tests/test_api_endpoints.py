"""Tests for the v1 API endpoints backed by the in-memory store."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from synthesis.api.deps import get_entity_store, get_prompt_config, get_suggestion_client
from synthesis.chains.suggestions import SuggestionServiceError
from synthesis.core.export import MATRIX_HEADER
from synthesis.core.prompts import DEFAULT_PROMPTS, PromptConfig
from synthesis.core.schemas_suggestions import SuggestionKind
from synthesis.main import app


@pytest.fixture
def client(fake_store, fake_suggestions):
    prompts = PromptConfig()
    app.dependency_overrides[get_entity_store] = lambda: fake_store
    app.dependency_overrides[get_suggestion_client] = lambda: fake_suggestions
    app.dependency_overrides[get_prompt_config] = lambda: prompts
    yield TestClient(app)
    app.dependency_overrides.clear()


def _chain(client, project_id):
    """Create observation -> harm -> criterion -> strategy through the API."""
    base = f"/v1/projects/{project_id}"
    obs = client.post(f"{base}/observations/", json={"content": "User opened three cabinets"}).json()
    harm = client.post(
        f"{base}/harms/", json={"content": "Time wasted searching", "observation_ids": [obs["id"]]}
    ).json()
    criterion = client.post(
        f"{base}/criteria/", json={"content": "Make spice location obvious", "harm_id": harm["id"]}
    ).json()
    strategy = client.post(
        f"{base}/strategies/", json={"content": "make storage visible", "criterion_id": criterion["id"]}
    ).json()
    return obs, harm, criterion, strategy


class TestProjectEndpoints:
    def test_create_and_list(self, client, fake_store):
        response = client.post("/v1/projects/", json={"name": "  Grocery Study "})

        assert response.status_code == 201
        assert response.json()["name"] == "Grocery Study"
        names = [p["name"] for p in client.get("/v1/projects/").json()]
        assert "Grocery Study" in names

    def test_blank_name_is_rejected(self, client):
        response = client.post("/v1/projects/", json={"name": "   "})
        assert response.status_code == 400

    def test_archive_and_filter(self, client, project_id):
        response = client.patch(f"/v1/projects/{project_id}", json={"archived": True})

        assert response.status_code == 200
        assert response.json()["archived"] is True
        active = client.get("/v1/projects/", params={"include_archived": False}).json()
        assert project_id not in [p["id"] for p in active]

    def test_empty_patch_is_rejected(self, client, project_id):
        assert client.patch(f"/v1/projects/{project_id}", json={}).status_code == 400

    def test_unknown_project_is_404(self, client):
        assert client.get("/v1/projects/missing").status_code == 404

    def test_delete_removes_everything(self, client, fake_store, project_id):
        _chain(client, project_id)

        response = client.delete(f"/v1/projects/{project_id}")

        assert response.status_code == 204
        assert fake_store.projects == {}
        assert fake_store.observations == fake_store.harms == fake_store.strategies == []

    def test_store_failure_is_500(self, client, fake_store):
        fake_store.fail_on.add("list_projects")
        assert client.get("/v1/projects/").status_code == 500


class TestObservationEndpoints:
    def test_create_and_list(self, client, project_id):
        base = f"/v1/projects/{project_id}/observations"

        response = client.post(f"{base}/", json={"content": "  Opened three cabinets "})

        assert response.status_code == 201
        assert response.json()["content"] == "Opened three cabinets"
        assert [o["content"] for o in client.get(f"{base}/").json()] == ["Opened three cabinets"]

    def test_blank_content_is_rejected(self, client, project_id):
        response = client.post(f"/v1/projects/{project_id}/observations/", json={"content": "   "})
        assert response.status_code == 422

    def test_insert_after_unknown_sibling_is_404(self, client, project_id):
        response = client.post(
            f"/v1/projects/{project_id}/observations/", json={"content": "x", "after_id": "missing"}
        )
        assert response.status_code == 404

    def test_bulk_paste(self, client, project_id):
        base = f"/v1/projects/{project_id}/observations"

        response = client.post(f"{base}/bulk", json={"text": "one\n\ntwo\nthree"})

        assert response.status_code == 201
        assert [o["content"] for o in response.json()] == ["one", "two", "three"]
        assert client.post(f"{base}/bulk", json={"text": "\n  \n"}).status_code == 400

    def test_bulk_paste_failure_is_500(self, client, fake_store, project_id):
        fake_store.fail_on.add("create_observation")
        response = client.post(f"/v1/projects/{project_id}/observations/bulk", json={"text": "one\ntwo"})
        assert response.status_code == 500

    def test_reorder_and_branch(self, client, project_id):
        base = f"/v1/projects/{project_id}/observations"
        ids = [o["id"] for o in client.post(f"{base}/bulk", json={"text": "a\nb\nc"}).json()]

        reordered = client.post(f"{base}/reorder", json={"observation_id": ids[0], "target_index": 2})
        assert [o["content"] for o in reordered.json()] == ["b", "c", "a"]

        branch = client.post(f"{base}/{ids[1]}/branch")
        assert branch.status_code == 201
        assert [o["content"] for o in client.get(f"{base}/").json()] == ["b", "b", "c", "a"]

    def test_update_title_and_delete(self, client, project_id):
        base = f"/v1/projects/{project_id}/observations"
        obs = client.post(f"{base}/", json={"content": "Opened three cabinets"}).json()

        patched = client.patch(f"{base}/{obs['id']}", json={"title": "  Kitchen Chaos "})
        assert patched.json()["title"] == "Kitchen Chaos"

        assert client.delete(f"{base}/{obs['id']}").status_code == 204
        assert client.delete(f"{base}/{obs['id']}").status_code == 404

    def test_blank_title_is_rejected(self, client, fake_store, project_id):
        base = f"/v1/projects/{project_id}/observations"
        obs = client.post(f"{base}/", json={"content": "Opened three cabinets"}).json()

        response = client.patch(f"{base}/{obs['id']}", json={"title": "   "})

        assert response.status_code == 400
        assert "update_observation" not in fake_store.call_names()

    def test_content_edit_is_trimmed_and_saved(self, client, fake_store, project_id):
        base = f"/v1/projects/{project_id}/observations"
        obs = client.post(f"{base}/", json={"content": "Opened three cabinets"}).json()

        patched = client.patch(f"{base}/{obs['id']}", json={"content": " Opened four cabinets "})

        assert patched.json()["content"] == "Opened four cabinets"
        assert ("update_observation", obs["id"], {"content": "Opened four cabinets"}) in fake_store.calls

    def test_failed_edit_is_500(self, client, fake_store, project_id):
        base = f"/v1/projects/{project_id}/observations"
        obs = client.post(f"{base}/", json={"content": "Opened three cabinets"}).json()
        fake_store.fail_on.add("update_observation")

        assert client.patch(f"{base}/{obs['id']}", json={"content": "Edited"}).status_code == 500


class TestChainEndpoints:
    def test_full_chain_and_title(self, client, fake_suggestions, project_id):
        fake_suggestions.queue_text(SuggestionKind.INSIGHT_TITLE, "Scattered Spices")

        obs, harm, criterion, strategy = _chain(client, project_id)

        assert harm["observation_ids"] == [obs["id"]]
        assert criterion["harm_id"] == harm["id"]
        assert strategy["content"] == "HMW make storage visible"
        observations = client.get(f"/v1/projects/{project_id}/observations/").json()
        assert observations[0]["title"] == "Scattered Spices"

    def test_harm_for_unknown_observation_is_404(self, client, project_id):
        response = client.post(
            f"/v1/projects/{project_id}/harms/", json={"content": "x", "observation_ids": ["missing"]}
        )
        assert response.status_code == 404

    def test_harm_from_several_observations(self, client, project_id):
        base = f"/v1/projects/{project_id}"
        ids = [o["id"] for o in client.post(f"{base}/observations/bulk", json={"text": "a\nb"}).json()]

        response = client.post(f"{base}/harms/", json={"content": "Shared harm", "observation_ids": ids})

        assert response.status_code == 201
        for oid in ids:
            listed = client.get(f"{base}/harms/", params={"observation_id": oid}).json()
            assert [h["content"] for h in listed] == ["Shared harm"]

    def test_update_and_delete_children(self, client, project_id):
        base = f"/v1/projects/{project_id}"
        _, harm, criterion, strategy = _chain(client, project_id)

        assert client.patch(f"{base}/harms/{harm['id']}", json={"content": "Lost time"}).json()["content"] == (
            "Lost time"
        )
        assert client.patch(f"{base}/criteria/{criterion['id']}", json={"content": "Obvious"}).status_code == 200
        assert client.delete(f"{base}/strategies/{strategy['id']}").status_code == 204
        assert client.get(f"{base}/strategies/").json() == []
        assert client.delete(f"{base}/criteria/missing").status_code == 404

    def test_export_matrix_and_outline(self, client, project_id):
        _chain(client, project_id)
        base = f"/v1/projects/{project_id}/export"

        matrix = client.get(base, params={"format": "matrix"})
        assert matrix.status_code == 200
        assert matrix.text.splitlines() == [
            "\t".join(MATRIX_HEADER),
            "User opened three cabinets\tTime wasted searching\tMake spice location obvious\t"
            "HMW make storage visible",
        ]

        outline = client.get(base).text
        assert outline.startswith("# Kitchen Study")
        assert "## Harms\n1. Time wasted searching\n" in outline


class TestSuggestionEndpoints:
    def test_list_suggestions(self, client, fake_suggestions):
        fake_suggestions.queue(SuggestionKind.HARMS, ["Time wasted", "Frustration"])

        response = client.post(
            "/v1/suggestions/", json={"kind": "harms", "context": {"observations": "Opened three cabinets"}}
        )

        assert response.status_code == 200
        assert response.json() == {"kind": "harms", "suggestions": ["Time wasted", "Frustration"]}

    def test_text_kind_is_rejected(self, client):
        response = client.post("/v1/suggestions/", json={"kind": "insight_title", "context": {}})
        assert response.status_code == 400

    def test_service_failure_is_502(self, client, fake_suggestions):
        fake_suggestions.queue(SuggestionKind.CRITERIA, SuggestionServiceError("Failed", detail="timeout"))

        response = client.post(
            "/v1/suggestions/", json={"kind": "criteria", "context": {"harm": "h", "observations": "o"}}
        )

        assert response.status_code == 502
        assert "timeout" in response.json()["detail"]

    def test_coaching(self, client, fake_suggestions):
        fake_suggestions.queue_text(SuggestionKind.OBSERVATION_COACHING, "GOOD", "Describe what you saw.")

        short = client.post("/v1/suggestions/coaching", json={"text": "too short"})
        assert short.json() == {"coaching": None}
        assert fake_suggestions.calls_for(SuggestionKind.OBSERVATION_COACHING) == []

        good = client.post("/v1/suggestions/coaching", json={"text": "Spices were in three cabinets"})
        assert good.json() == {"coaching": None}

        coached = client.post("/v1/suggestions/coaching", json={"text": "The user seemed confused by it"})
        assert coached.json() == {"coaching": "Describe what you saw."}


class TestPromptEndpoints:
    def test_get_save_and_reset(self, client):
        initial = client.get("/v1/prompts/").json()
        assert initial["prompts"]["harms"] == DEFAULT_PROMPTS[SuggestionKind.HARMS]
        assert set(initial["defaults"]) == {kind.value for kind in SuggestionKind}

        saved = client.put("/v1/prompts/", json={"harms": "Custom {{observations}}"}).json()
        assert saved["prompts"]["harms"] == "Custom {{observations}}"
        assert saved["prompts"]["criteria"] == DEFAULT_PROMPTS[SuggestionKind.CRITERIA]

        reset = client.delete("/v1/prompts/").json()
        assert reset["prompts"]["harms"] == DEFAULT_PROMPTS[SuggestionKind.HARMS]


class TestSignInNotice:
    def test_email_is_required(self, client):
        response = client.post("/v1/auth/notify-signin", json={"user_name": "Ana"})
        assert response.status_code == 400

    def test_notice_reports_delivery(self, client):
        with patch("synthesis.api.auth.notify_sign_in", new_callable=AsyncMock, return_value=False) as mock_notify:
            response = client.post(
                "/v1/auth/notify-signin", json={"user_name": "Ana", "user_email": "ana@example.com"}
            )

        assert response.status_code == 200
        assert response.json() == {"success": False}
        mock_notify.assert_called_once_with("Ana", "ana@example.com")


@pytest.fixture
def local_client(fake_suggestions):
    """Client backed by the process-wide store, as in local-only mode."""
    app.dependency_overrides[get_suggestion_client] = lambda: fake_suggestions
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestLocalOnlyMode:
    def test_tree_survives_across_requests(self, local_client):
        project = local_client.post("/v1/projects/", json={"name": "Kitchen Study"}).json()
        base = f"/v1/projects/{project['id']}"

        obs = local_client.post(f"{base}/observations/", json={"content": "Opened three cabinets"}).json()
        harm = local_client.post(
            f"{base}/harms/", json={"content": "Time wasted", "observation_ids": [obs["id"]]}
        )

        assert harm.status_code == 201
        assert [o["id"] for o in local_client.get(f"{base}/observations/").json()] == [obs["id"]]
        listed = local_client.get(f"{base}/harms/", params={"observation_id": obs["id"]}).json()
        assert [h["content"] for h in listed] == ["Time wasted"]
        assert [p["id"] for p in local_client.get("/v1/projects/").json()] == [project["id"]]

    def test_unknown_project_is_404(self, local_client):
        assert local_client.get("/v1/projects/missing/observations/").status_code == 404
