"""Suggestion chain: fill a prompt template, call the completion service, parse the reply.

Covers list suggestions (harms, criteria, HMW strategies) and the free-text
kinds (observation coaching, insight titles). Failures surface as a single
SuggestionServiceError; retry policy belongs to the caller.
"""

from anthropic import AsyncAnthropic

from synthesis.core.config import Settings, get_settings
from synthesis.core.llm import complete_text, fill_template, get_anthropic, parse_suggestion_lines
from synthesis.core.logging import get_logger
from synthesis.core.prompts import PromptConfig
from synthesis.core.schemas_suggestions import LIST_KINDS, SuggestionKind

logger = get_logger(__name__)

REQUIRED_CONTEXT: dict[SuggestionKind, tuple[str, ...]] = {
    SuggestionKind.HARMS: ("observations",),
    SuggestionKind.CRITERIA: ("harm", "observations"),
    SuggestionKind.STRATEGIES: ("criterion", "harm"),
    SuggestionKind.OBSERVATION_COACHING: ("observation",),
    SuggestionKind.INSIGHT_TITLE: ("observation", "harm", "criterion"),
}


class SuggestionServiceError(Exception):
    """The completion service failed (network, auth, upstream error or missing config)."""

    def __init__(self, message: str, detail: str | None = None):
        super().__init__(message)
        self.detail = detail

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} ({self.detail})" if self.detail else base


class SuggestionClient:
    """Client for the text-completion backend, bound to a prompt configuration."""

    def __init__(
        self,
        prompts: PromptConfig,
        settings: Settings | None = None,
        client: AsyncAnthropic | None = None,
    ):
        self.prompts = prompts
        self.settings = settings or get_settings()
        self._client = client

    @property
    def configured(self) -> bool:
        return self._client is not None or bool(self.settings.ANTHROPIC_API_KEY)

    def build_prompt(self, kind: SuggestionKind, context: dict[str, str]) -> str:
        missing = [key for key in REQUIRED_CONTEXT[kind] if key not in context]
        if missing:
            raise ValueError(f"{kind.value} suggestions require context: {', '.join(missing)}")
        return fill_template(self.prompts.get(kind), context)

    async def _complete(self, kind: SuggestionKind, context: dict[str, str]) -> str:
        prompt = self.build_prompt(kind, context)
        try:
            client = self._client or get_anthropic(self.settings)
            return await complete_text(client, prompt, self.settings)
        except Exception as e:
            logger.error(f"Completion request for {kind.value} failed: {e}")
            raise SuggestionServiceError(f"Failed to generate {kind.value}", detail=str(e)) from e

    async def request_suggestions(self, kind: SuggestionKind, context: dict[str, str]) -> list[str]:
        """
        Request candidate entities of ``kind``.

        Args:
            kind: harms, criteria or strategies
            context: Template values required by the kind

        Returns:
            Ordered candidate strings without duplicates (possibly empty)

        Raises:
            SuggestionServiceError: On any completion-service failure
        """
        if kind not in LIST_KINDS:
            raise ValueError(f"{kind.value} does not produce a suggestion list")
        raw = await self._complete(kind, context)
        suggestions = parse_suggestion_lines(raw)
        logger.debug(f"Parsed {len(suggestions)} {kind.value} suggestions")
        return suggestions

    async def request_text(self, kind: SuggestionKind, context: dict[str, str]) -> str:
        """Request a single free-text answer (coaching or insight title), stripped."""
        raw = await self._complete(kind, context)
        return raw.strip()
