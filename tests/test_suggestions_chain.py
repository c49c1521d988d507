"""Tests for prompt filling, output parsing and the suggestion client.

Uses mocked Anthropic responses.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from synthesis.chains.suggestions import SuggestionClient, SuggestionServiceError
from synthesis.core.config import Settings
from synthesis.core.llm import fill_template, parse_suggestion_lines
from synthesis.core.prompts import PromptConfig
from synthesis.core.schemas_suggestions import SuggestionKind


# =============================================================================
# Helpers
# =============================================================================


def _mock_anthropic_response(content_text):
    """Create a mock Anthropic messages.create response."""
    response = MagicMock()
    response.content = [MagicMock(text=content_text)]
    return response


def _client_returning(content_text):
    mock_client = AsyncMock()
    mock_client.messages.create = AsyncMock(return_value=_mock_anthropic_response(content_text))
    return mock_client


# =============================================================================
# Template filling and parsing
# =============================================================================


class TestFillTemplate:
    def test_replaces_every_occurrence(self):
        assert fill_template("{{harm}} / {{harm}}", {"harm": "Time wasted"}) == "Time wasted / Time wasted"

    def test_unknown_placeholders_are_left_alone(self):
        assert fill_template("{{harm}} {{extra}}", {"harm": "x"}) == "x {{extra}}"


class TestParseSuggestionLines:
    def test_strips_bullets_numbering_and_blank_lines(self):
        raw = "- Time wasted\n\n2. Frustration\n• Missed meal\n  3) Cold food  \n"
        assert parse_suggestion_lines(raw) == ["Time wasted", "Frustration", "Missed meal", "Cold food"]

    def test_drops_duplicates_keeping_first(self):
        assert parse_suggestion_lines("a\nb\n- a\nb") == ["a", "b"]

    def test_empty_output(self):
        assert parse_suggestion_lines("") == []
        assert parse_suggestion_lines("\n  \n") == []


# =============================================================================
# Suggestion client
# =============================================================================


class TestSuggestionClient:
    @pytest.mark.asyncio
    async def test_request_suggestions_fills_prompt_and_parses(self):
        mock_client = _client_returning("1. Time wasted\n2. Frustration")
        client = SuggestionClient(PromptConfig(), settings=Settings(), client=mock_client)

        result = await client.request_suggestions(
            SuggestionKind.HARMS, {"observations": "Opened three cabinets"}
        )

        assert result == ["Time wasted", "Frustration"]
        kwargs = mock_client.messages.create.call_args.kwargs
        prompt = kwargs["messages"][0]["content"]
        assert "Opened three cabinets" in prompt
        assert "{{observations}}" not in prompt
        assert kwargs["model"] == Settings().SUGGESTIONS_MODEL

    @pytest.mark.asyncio
    async def test_overridden_template_is_used(self):
        mock_client = _client_returning("x")
        prompts = PromptConfig()
        prompts.save({SuggestionKind.CRITERIA: "Criteria for {{harm}} given {{observations}}"})
        client = SuggestionClient(prompts, settings=Settings(), client=mock_client)

        await client.request_suggestions(SuggestionKind.CRITERIA, {"harm": "H", "observations": "O"})

        prompt = mock_client.messages.create.call_args.kwargs["messages"][0]["content"]
        assert prompt == "Criteria for H given O"

    @pytest.mark.asyncio
    async def test_missing_context_is_rejected_before_any_call(self):
        mock_client = _client_returning("x")
        client = SuggestionClient(PromptConfig(), settings=Settings(), client=mock_client)

        with pytest.raises(ValueError, match="harm"):
            await client.request_suggestions(SuggestionKind.STRATEGIES, {"criterion": "C"})
        mock_client.messages.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_text_kind_is_not_a_list_kind(self):
        client = SuggestionClient(PromptConfig(), settings=Settings(), client=_client_returning("x"))
        with pytest.raises(ValueError):
            await client.request_suggestions(SuggestionKind.INSIGHT_TITLE, {})

    @pytest.mark.asyncio
    async def test_upstream_failure_becomes_service_error(self):
        mock_client = AsyncMock()
        mock_client.messages.create = AsyncMock(side_effect=Exception("API down"))
        client = SuggestionClient(PromptConfig(), settings=Settings(), client=mock_client)

        with pytest.raises(SuggestionServiceError) as exc_info:
            await client.request_suggestions(SuggestionKind.HARMS, {"observations": "o"})

        assert exc_info.value.detail == "API down"
        assert str(exc_info.value) == "Failed to generate harms (API down)"

    @pytest.mark.asyncio
    async def test_missing_api_key_is_a_service_error(self):
        client = SuggestionClient(PromptConfig(), settings=Settings(ANTHROPIC_API_KEY=None))

        assert client.configured is False
        with pytest.raises(SuggestionServiceError, match="ANTHROPIC_API_KEY"):
            await client.request_text(SuggestionKind.OBSERVATION_COACHING, {"observation": "o"})

    @pytest.mark.asyncio
    @patch("synthesis.core.llm.AsyncAnthropic")
    async def test_client_built_from_settings(self, mock_anthropic_cls):
        mock_anthropic_cls.return_value = _client_returning("  Kitchen Chaos \n")
        client = SuggestionClient(PromptConfig(), settings=Settings(ANTHROPIC_API_KEY="sk-test"))

        title = await client.request_text(
            SuggestionKind.INSIGHT_TITLE, {"observation": "o", "harm": "h", "criterion": "c"}
        )

        assert title == "Kitchen Chaos"
        mock_anthropic_cls.assert_called_once_with(api_key="sk-test")

    @pytest.mark.asyncio
    async def test_response_without_text_block_is_empty(self):
        mock_client = AsyncMock()
        response = MagicMock()
        response.content = []
        mock_client.messages.create = AsyncMock(return_value=response)
        client = SuggestionClient(PromptConfig(), settings=Settings(), client=mock_client)

        assert await client.request_suggestions(SuggestionKind.HARMS, {"observations": "o"}) == []
