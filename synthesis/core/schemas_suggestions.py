"""Pydantic schemas for AI suggestions, coaching and prompt settings."""

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

from synthesis.core.schemas_synthesis import StrategyType


class SuggestionKind(str, Enum):
    HARMS = "harms"
    CRITERIA = "criteria"
    STRATEGIES = "strategies"
    OBSERVATION_COACHING = "observation_coaching"
    INSIGHT_TITLE = "insight_title"


# Kinds whose output is a list of candidate entities (the rest return free text)
LIST_KINDS = (SuggestionKind.HARMS, SuggestionKind.CRITERIA, SuggestionKind.STRATEGIES)


class SuggestionState(str, Enum):
    NOT_FETCHED = "not_fetched"
    LOADING = "loading"
    LOADED = "loaded"
    LOADED_EMPTY = "loaded_empty"


class Suggestion(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    content: str
    selected: bool = False
    strategy_type: StrategyType | None = None


class SuggestionRequest(BaseModel):
    kind: SuggestionKind
    context: dict[str, str] = Field(
        default_factory=dict,
        description="Template values: observations, observation, harm, criterion",
    )


class SuggestionResponse(BaseModel):
    kind: SuggestionKind
    suggestions: list[str]


class CoachingRequest(BaseModel):
    text: str


class CoachingResponse(BaseModel):
    coaching: str | None = None


class PromptOverrides(BaseModel):
    harms: str | None = None
    criteria: str | None = None
    strategies: str | None = None
    observation_coaching: str | None = None
    insight_title: str | None = None
