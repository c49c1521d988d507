"""Prompt templates for suggestions, coaching and insight titles.

Templates use ``{{placeholder}}`` markers filled by the suggestion client.
Defaults can be overridden per kind; overrides are merged over the defaults
and persisted through a pluggable backend.
"""

import json
from pathlib import Path
from typing import Protocol

from synthesis.core.logging import get_logger
from synthesis.core.schemas_suggestions import SuggestionKind

logger = get_logger(__name__)

COACHING_OK_SENTINEL = "GOOD"

DEFAULT_PROMPTS: dict[SuggestionKind, str] = {
    SuggestionKind.HARMS: """You are helping a design thinking student identify potential harms or problems based on their observations.

Given the following observation(s), suggest 3-5 potential harms, pain points, or problems that the person being observed might be experiencing.

Focus on:
- Emotional frustrations
- Unmet needs
- Inefficiencies or wasted effort
- Barriers to achieving goals

Keep each harm concise (1-2 sentences). Frame them from the perspective of the person being observed.

Observations:
{{observations}}

Respond with just the list of harms, one per line, no numbering or bullets.""",
    SuggestionKind.CRITERIA: """You are helping a design thinking student develop design criteria based on identified harms.

Given the following harm/problem, suggest 3-5 design criteria that a good solution should meet.

Design criteria should:
- Be specific and measurable where possible
- Focus on outcomes, not solutions
- Start with phrases like "The solution should..." or "Users need to be able to..."

Keep each criterion concise (1-2 sentences).

Harm:
{{harm}}

Context (original observations):
{{observations}}

Respond with just the list of criteria, one per line, no numbering or bullets.""",
    SuggestionKind.STRATEGIES: """You are helping a design thinking student generate "How Might We" (HMW) questions to use as brainstorming prompts for a team.

Given the following design criterion, suggest 3-5 HMW questions that reframe the criterion from different angles. These questions are abstract prompts that open up new directions for a team to explore, not solutions.

HMW questions should:
- Start with "How might we..."
- Be abstract and open-ended enough to invite many possible solutions
- Offer a different lens or angle on the problem than the criterion itself
- Vary in perspective (reframe the problem, challenge assumptions, explore analogies, consider extremes, flip the problem)

Keep each question to a single sentence.

Criterion:
{{criterion}}

Context (the harm this addresses):
{{harm}}

Respond with just the list of HMW questions, one per line, no numbering or bullets.""",
    SuggestionKind.OBSERVATION_COACHING: """You are coaching a design thinking student on writing good observations. Good observations are objective, factual accounts of what was seen or heard during research, with no judgments, interpretations, or assumptions.

The student just wrote this observation:
{{observation}}

If the observation contains judgment, interpretation, assumption, or opinion, give a brief, friendly coaching suggestion (1-2 sentences) on how to make it more factual and observational. Be specific about what to change.

If the observation is already a good factual observation, respond with exactly the word: GOOD

Examples of bad observations and coaching:
- "The user was confused by the menu" -> "This interprets the user's mental state. What did you actually see? Maybe: 'The user paused for 10 seconds and clicked three different menu items before finding what they needed.'"
- "The kitchen was poorly organized" -> "This is a judgment. What specifically did you observe? For example: 'Spices were stored in three different cabinets and the user opened all three while cooking.'"

Respond with ONLY the coaching suggestion or the word GOOD. No preamble.""",
    SuggestionKind.INSIGHT_TITLE: """Generate a short, punchy, memorable title (2-4 words) for the following design insight. The title should be catchy and capture the essence of the problem space.

Observation: {{observation}}
Harm: {{harm}}
Criterion: {{criterion}}

Examples of good titles: "Kitchen Chaos", "Lost in Labels", "Trust Gap", "Silent Struggle", "Invisible Burden"

Respond with ONLY the title, nothing else.""",
}


class PromptBackend(Protocol):
    """Storage for locally overridden templates."""

    def load(self) -> str | None: ...

    def save(self, raw: str) -> None: ...

    def clear(self) -> None: ...


class InMemoryPromptBackend:
    def __init__(self, raw: str | None = None):
        self.raw = raw

    def load(self) -> str | None:
        return self.raw

    def save(self, raw: str) -> None:
        self.raw = raw

    def clear(self) -> None:
        self.raw = None


class JsonFilePromptBackend:
    """Keeps overrides in a JSON file on disk."""

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def load(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def save(self, raw: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(raw, encoding="utf-8")

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)


class PromptConfig:
    """Default templates merged with any stored per-kind overrides."""

    def __init__(self, backend: PromptBackend | None = None):
        self.backend = backend or InMemoryPromptBackend()

    def _overrides(self) -> dict[SuggestionKind, str]:
        raw = self.backend.load()
        if not raw:
            return {}
        try:
            stored = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Stored prompt overrides are not valid JSON; using defaults")
            return {}
        if not isinstance(stored, dict):
            return {}

        overrides = {}
        for key, value in stored.items():
            try:
                kind = SuggestionKind(key)
            except ValueError:
                continue
            if isinstance(value, str) and value.strip():
                overrides[kind] = value
        return overrides

    def all(self) -> dict[SuggestionKind, str]:
        return {**DEFAULT_PROMPTS, **self._overrides()}

    def get(self, kind: SuggestionKind) -> str:
        return self.all()[kind]

    def save(self, overrides: dict[SuggestionKind, str]) -> dict[SuggestionKind, str]:
        """Merge ``overrides`` into the stored set and return the effective templates."""
        merged = {**self._overrides(), **{SuggestionKind(k): v for k, v in overrides.items() if v}}
        self.backend.save(json.dumps({k.value: v for k, v in merged.items()}))
        return self.all()

    def reset(self) -> None:
        self.backend.clear()


def build_prompt_config(prompts_file: str | None) -> PromptConfig:
    if prompts_file:
        return PromptConfig(JsonFilePromptBackend(prompts_file))
    return PromptConfig()
