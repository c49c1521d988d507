"""View state and render-ready projections of a worksheet.

Three presentations share one tree: the tabbed workflow view, the board of
observation cards, and the 4-column detail view of an expanded card.
Cross-view navigation stores a pending focus target that the newly active
view consumes once the target input is mounted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from synthesis.core.schemas_suggestions import Suggestion, SuggestionKind, SuggestionState
from synthesis.core.schemas_synthesis import Criterion, Harm, Observation, Strategy
from synthesis.core.worksheet import Worksheet


class ViewMode(str, Enum):
    WORKFLOW = "workflow"
    BOARD = "board"
    DETAIL = "detail"


class WorkflowStep(str, Enum):
    OVERVIEW = "overview"
    OBSERVATIONS = "observations"
    HARMS = "harms"
    CRITERIA = "criteria"
    STRATEGIES = "strategies"


@dataclass(frozen=True)
class StepInfo:
    step: WorkflowStep
    label: str
    description: str


WORKFLOW_STEPS = [
    StepInfo(WorkflowStep.OVERVIEW, "Overview", "Bird's eye view of your synthesis"),
    StepInfo(WorkflowStep.OBSERVATIONS, "Observations", "Capture what you saw or heard"),
    StepInfo(WorkflowStep.HARMS, "Harms", "What value is being compromised?"),
    StepInfo(WorkflowStep.CRITERIA, "Criteria", "What must the solution do?"),
    StepInfo(WorkflowStep.STRATEGIES, "Strategies", "How might we solve this?"),
]

# Steps whose inputs fetch suggestions for their parent node
STEP_SUGGESTION_KIND = {
    WorkflowStep.HARMS: SuggestionKind.HARMS,
    WorkflowStep.CRITERIA: SuggestionKind.CRITERIA,
    WorkflowStep.STRATEGIES: SuggestionKind.STRATEGIES,
}


@dataclass(frozen=True)
class FocusTarget:
    step: WorkflowStep
    input_id: str


@dataclass
class ViewState:
    mode: ViewMode = ViewMode.WORKFLOW
    step: WorkflowStep = WorkflowStep.OVERVIEW
    expanded_id: str | None = None
    focused_input_id: str | None = None
    pending_focus: FocusTarget | None = None

    def switch_mode(self, mode: ViewMode) -> None:
        self.mode = mode
        if mode != ViewMode.DETAIL:
            self.expanded_id = None

    def set_step(self, step: WorkflowStep) -> None:
        self.mode = ViewMode.WORKFLOW
        self.step = step

    def navigate_to_input(self, step: WorkflowStep, input_id: str) -> FocusTarget:
        """Switch to a workflow tab and remember which input to focus there."""
        target = FocusTarget(step=step, input_id=input_id)
        self.pending_focus = target
        self.set_step(step)
        return target

    def consume_focus(self, ready_input_ids: Iterable[str]) -> FocusTarget | None:
        """
        Hand the pending focus target to the active view once its input is mounted.

        Returns None (and keeps the target pending) until the active step
        matches and ``ready_input_ids`` contains the target input.
        """
        target = self.pending_focus
        if target is None or self.mode != ViewMode.WORKFLOW or target.step != self.step:
            return None
        if target.input_id not in set(ready_input_ids):
            return None
        self.pending_focus = None
        self.focused_input_id = target.input_id
        return target

    def focus_input(self, input_id: str) -> tuple[SuggestionKind, str] | None:
        """Mark an input focused; returns the (kind, parent) whose suggestions it shows."""
        self.focused_input_id = input_id
        kind = STEP_SUGGESTION_KIND.get(self.step)
        if kind is None or self.mode != ViewMode.WORKFLOW:
            return None
        return kind, input_id

    def blur(self, input_id: str) -> None:
        if self.focused_input_id == input_id:
            self.focused_input_id = None

    def expand(self, observation_id: str) -> None:
        self.mode = ViewMode.DETAIL
        self.expanded_id = observation_id

    def collapse(self) -> None:
        self.mode = ViewMode.BOARD
        self.expanded_id = None


@dataclass
class InputRow:
    """One parent node in a workflow tab: its text, added children and suggestions."""

    input_id: str
    kind: SuggestionKind
    context: str
    added: list[str] = field(default_factory=list)
    suggestions: list[Suggestion] = field(default_factory=list)
    loading: bool = False
    draft: str = ""


@dataclass
class BoardCard:
    observation_id: str
    title: str | None
    content: str
    harm_count: int
    criterion_count: int
    strategy_count: int

    @property
    def complete(self) -> bool:
        return self.strategy_count > 0


@dataclass
class DetailColumns:
    observation: Observation
    harms: list[Harm]
    criteria: list[Criterion]
    strategies: list[Strategy]


class WorkflowView:
    """Tabbed workflow: one list of input rows per step."""

    def __init__(self, worksheet: Worksheet, state: ViewState):
        self.worksheet = worksheet
        self.state = state

    def steps(self) -> list[StepInfo]:
        return list(WORKFLOW_STEPS)

    def counts(self) -> dict[str, int]:
        tree = self.worksheet.tree
        return {
            "observations": len(tree.observations),
            "harms": len(tree.harms),
            "criteria": len(tree.criteria),
            "strategies": len(tree.strategies),
        }

    def parents_for(self, step: WorkflowStep) -> list[Observation | Harm | Criterion]:
        tree = self.worksheet.tree
        if step == WorkflowStep.HARMS:
            return tree.ordered_observations()
        if step == WorkflowStep.CRITERIA:
            return tree.reachable_harms()
        if step == WorkflowStep.STRATEGIES:
            reachable = {h.id for h in tree.reachable_harms()}
            return [c for c in tree.criteria if c.harm_id in reachable]
        return []

    def rows(self, step: WorkflowStep | None = None) -> list[InputRow]:
        step = step or self.state.step
        kind = STEP_SUGGESTION_KIND.get(step)
        if kind is None:
            return []

        cache = self.worksheet.cache
        rows = []
        for parent in self.parents_for(step):
            focused = self.state.focused_input_id == parent.id
            rows.append(
                InputRow(
                    input_id=parent.id,
                    kind=kind,
                    context=parent.content,
                    added=[c.content for c in self.worksheet.children(kind, parent.id)],
                    suggestions=cache.visible(kind, parent.id) if focused else [],
                    loading=cache.state(kind, parent.id) == SuggestionState.LOADING,
                    draft=self.worksheet.drafts.get(parent.id, ""),
                )
            )
        return rows

    def input_ids(self, step: WorkflowStep | None = None) -> list[str]:
        return [row.input_id for row in self.rows(step)]

    def mount(self) -> FocusTarget | None:
        """Called once the active tab has rendered its inputs."""
        return self.state.consume_focus(self.input_ids())

    async def focus(self, input_id: str) -> list[Suggestion]:
        """Focus an input and lazily load its suggestions."""
        target = self.state.focus_input(input_id)
        if target is None:
            return []
        kind, parent_id = target
        return await self.worksheet.load_suggestions(kind, parent_id)

    def overview(self) -> list[dict]:
        """Nested tree for the overview tab, orphaned harms skipped."""
        tree = self.worksheet.tree
        return [
            {
                "id": obs.id,
                "title": obs.title,
                "content": obs.content,
                "harms": [
                    {
                        "id": harm.id,
                        "content": harm.content,
                        "criteria": [
                            {
                                "id": crit.id,
                                "content": crit.content,
                                "strategies": [
                                    {"id": s.id, "content": s.content, "strategy_type": s.strategy_type}
                                    for s in tree.strategies_for(crit.id)
                                ],
                            }
                            for crit in tree.criteria_for(harm.id)
                        ],
                    }
                    for harm in tree.harms_for(obs.id)
                ],
            }
            for obs in tree.ordered_observations()
        ]


class BoardView:
    """Board of observation cards; drag, branch and duplicate go through the worksheet."""

    def __init__(self, worksheet: Worksheet, state: ViewState):
        self.worksheet = worksheet
        self.state = state

    def cards(self) -> list[BoardCard]:
        tree = self.worksheet.tree
        cards = []
        for obs in tree.ordered_observations():
            harms = tree.harms_for(obs.id)
            criteria = [c for h in harms for c in tree.criteria_for(h.id)]
            strategies = [s for c in criteria for s in tree.strategies_for(c.id)]
            cards.append(
                BoardCard(
                    observation_id=obs.id,
                    title=obs.title,
                    content=obs.content,
                    harm_count=len(harms),
                    criterion_count=len(criteria),
                    strategy_count=len(strategies),
                )
            )
        return cards

    def drag(self, moved_id: str, target_index: int) -> list[str]:
        return self.worksheet.reorder_observations(moved_id, target_index)

    async def branch(self, observation_id: str) -> str | None:
        return await self.worksheet.branch_observation(observation_id)

    async def duplicate(self, observation_id: str) -> str | None:
        return await self.worksheet.branch_observation(observation_id)

    def open(self, observation_id: str) -> None:
        self.state.expand(observation_id)

    def jump_to(self, step: WorkflowStep, input_id: str) -> FocusTarget:
        """Leave the board for a workflow tab with ``input_id`` focused on mount."""
        return self.state.navigate_to_input(step, input_id)


class DetailView:
    """Four columns for the expanded observation."""

    def __init__(self, worksheet: Worksheet, state: ViewState):
        self.worksheet = worksheet
        self.state = state

    def columns(self) -> DetailColumns | None:
        if self.state.expanded_id is None:
            return None
        tree = self.worksheet.tree
        observation = tree.observation(self.state.expanded_id)
        if observation is None:
            return None
        harms = tree.harms_for(observation.id)
        criteria = [c for h in harms for c in tree.criteria_for(h.id)]
        strategies = [s for c in criteria for s in tree.strategies_for(c.id)]
        return DetailColumns(observation=observation, harms=harms, criteria=criteria, strategies=strategies)

    async def focus(self, kind: SuggestionKind, parent_id: str) -> list[Suggestion]:
        self.state.focused_input_id = parent_id
        return await self.worksheet.load_suggestions(kind, parent_id)

    def close(self) -> None:
        self.state.collapse()
