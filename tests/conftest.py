"""Pytest configuration and fixtures."""

import os

import pytest

# Tests run in local-only mode: no document store, no completion service.
for _key in (
    "SUPABASE_URL",
    "SUPABASE_SERVICE_ROLE_KEY",
    "ANTHROPIC_API_KEY",
    "RESEND_API_KEY",
    "NOTIFICATION_EMAIL",
    "PROMPTS_FILE",
):
    os.environ.pop(_key, None)
os.environ["SYNTHESIS_ENV"] = "test"


@pytest.fixture(autouse=True)
def reset_cached_clients():
    """Drop cached settings and clients so each test sees its own environment."""
    from synthesis.api.deps import get_entity_store
    from synthesis.core.config import get_settings
    from synthesis.db.supabase_client import get_supabase

    for cached in (get_settings, get_supabase, get_entity_store):
        cached.cache_clear()
    yield
    for cached in (get_settings, get_supabase, get_entity_store):
        cached.cache_clear()


@pytest.fixture
def fake_store():
    from tests.fakes.fake_store import FakeStore

    return FakeStore()


@pytest.fixture
def fake_suggestions():
    from tests.fakes.fake_store import FakeSuggestions

    return FakeSuggestions()


@pytest.fixture
def settings():
    from synthesis.core.config import Settings

    return Settings(ERROR_BANNER_SECONDS=8.0, COACHING_DEBOUNCE_SECONDS=0.05, COACHING_MIN_CHARS=15)


@pytest.fixture
def project_id(fake_store):
    return fake_store.add_project("Kitchen Study")


@pytest.fixture
def worksheet(fake_store, fake_suggestions, settings, project_id):
    from synthesis.core.worksheet import Worksheet

    return Worksheet(project_id, fake_store, fake_suggestions, settings=settings)
