"""Pydantic schemas for the synthesis chain: projects, observations, harms, criteria, strategies."""

from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, field_validator


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class StrategyType(str, Enum):
    CONFRONT = "confront"
    AVOID = "avoid"
    MINIMIZE = "minimize"


# ============================================================================
# Entities
# ============================================================================


class Project(BaseModel):
    id: str
    user_id: str
    name: str
    tags: list[str] = Field(default_factory=list)
    archived: bool = False
    created_at: datetime = Field(default_factory=_utc_now)
    updated_at: datetime = Field(default_factory=_utc_now)


class Observation(BaseModel):
    id: str
    project_id: str
    content: str
    title: str | None = None
    sort_order: float | None = None
    created_at: datetime = Field(default_factory=_utc_now)


class Harm(BaseModel):
    """A compromised value derived from one or more observations."""

    id: str
    project_id: str
    observation_ids: list[str]
    content: str
    created_at: datetime = Field(default_factory=_utc_now)
    source_suggestion_id: str | None = None


class Criterion(BaseModel):
    id: str
    project_id: str
    harm_id: str
    content: str
    created_at: datetime = Field(default_factory=_utc_now)
    source_suggestion_id: str | None = None


class Strategy(BaseModel):
    """A "How Might We" question answering one criterion."""

    id: str
    project_id: str
    criterion_id: str
    content: str
    strategy_type: StrategyType | None = None
    created_at: datetime = Field(default_factory=_utc_now)
    source_suggestion_id: str | None = None


# ============================================================================
# Request bodies
# ============================================================================


class _ContentBody(BaseModel):
    content: str = Field(..., min_length=1)

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("content must not be blank")
        return v


class ProjectCreate(BaseModel):
    name: str = Field(..., min_length=1)


class ProjectUpdate(BaseModel):
    name: str | None = None
    archived: bool | None = None
    tags: list[str] | None = None


class ObservationCreate(_ContentBody):
    after_id: str | None = Field(None, description="Insert immediately after this sibling")


class ObservationBulkCreate(BaseModel):
    text: str = Field(..., description="Newline-delimited observations")


class ObservationUpdate(BaseModel):
    content: str | None = None
    title: str | None = None


class ObservationReorder(BaseModel):
    observation_id: str
    target_index: int = Field(..., ge=0)


class HarmCreate(_ContentBody):
    observation_ids: list[str] = Field(..., min_length=1)
    source_suggestion_id: str | None = None


class CriterionCreate(_ContentBody):
    harm_id: str
    source_suggestion_id: str | None = None


class StrategyCreate(_ContentBody):
    criterion_id: str
    strategy_type: StrategyType | None = None
    source_suggestion_id: str | None = None


class ContentUpdate(_ContentBody):
    pass
