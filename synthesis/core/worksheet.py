"""Worksheet: the stateful controller for one project's synthesis tree.

Binds the in-memory tree to the entity store, the suggestion client and the
suggestion cache. A worksheet is the single writer for its project.

Failure handling per action:
    - create: the submitted text is restored to its draft and an error
      banner is shown; the collection is left unchanged
    - delete: the store is called first; on failure nothing is removed
    - content edits, renames, reorders: optimistic, tracked in the sync
      outbox (failures logged, retryable)
    - archive toggle: optimistic, rolled back on failure

Collections are always replaced from the latest state after an await, so a
late response never overwrites newer edits.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Awaitable, Callable

from synthesis.chains.suggestions import SuggestionClient
from synthesis.core.banner import ErrorBanner
from synthesis.core.config import Settings, get_settings
from synthesis.core.logging import get_logger, log_with_context
from synthesis.core.outbox import SyncOutbox
from synthesis.core.schemas_suggestions import Suggestion, SuggestionKind
from synthesis.core.schemas_synthesis import (
    Criterion,
    Harm,
    Observation,
    Project,
    Strategy,
    StrategyType,
)
from synthesis.core.suggestion_cache import SuggestionCache
from synthesis.core.tree import SynthesisTree, move_item
from synthesis.db.store import EntityStore

logger = get_logger(__name__)

# Draft key for the new-observation input; child inputs are keyed by parent id
OBSERVATION_DRAFT = "observation"

HMW_PREFIX = "HMW"


class EnrichmentState(str, Enum):
    UNTITLED = "untitled"
    TITLE_REQUESTED = "title_requested"
    TITLED = "titled"


def ensure_hmw_prefix(content: str) -> str:
    """Prefix a strategy with ``HMW`` unless it already reads as a How-Might-We question."""
    text = content.strip()
    lowered = text.lower()
    if lowered.startswith(HMW_PREFIX.lower()) or lowered.startswith("how might we"):
        return text
    return f"{HMW_PREFIX} {text}"


class Worksheet:
    def __init__(
        self,
        project_id: str,
        store: EntityStore,
        suggestions: SuggestionClient,
        settings: Settings | None = None,
    ):
        settings = settings or get_settings()
        self.project_id = project_id
        self.store = store
        self.suggestions = suggestions
        self.project: Project | None = None
        self.project_name = ""
        self.archived = False
        self.tree = SynthesisTree()
        self.drafts: dict[str, str] = {}
        self.banner = ErrorBanner(settings.ERROR_BANNER_SECONDS)
        self.cache = SuggestionCache(on_error=self.banner.show)
        self.outbox = SyncOutbox()
        self._title_requests: set[str] = set()
        # sort orders promised to observation creates still awaiting the store
        self._reserved_orders: list[float] = []
        self._background: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> bool:
        """Fetch the project and its four collections concurrently."""
        try:
            project, observations, harms, criteria, strategies = await asyncio.gather(
                self.store.get_project(self.project_id),
                self.store.list_observations(self.project_id),
                self.store.list_harms(self.project_id),
                self.store.list_criteria(self.project_id),
                self.store.list_strategies(self.project_id),
            )
        except Exception as e:
            log_with_context(
                logger, logging.ERROR, f"Failed to load worksheet: {e}", project_id=self.project_id
            )
            self.banner.show("Failed to load project", e)
            return False

        if project is not None:
            self.project = Project(**project)
            self.project_name = self.project.name
            self.archived = self.project.archived
        self.tree = SynthesisTree.from_rows(observations, harms, criteria, strategies)
        log_with_context(
            logger,
            logging.INFO,
            "Loaded worksheet",
            project_id=self.project_id,
            observations=len(self.tree.observations),
            harms=len(self.tree.harms),
        )
        return True

    def _spawn(self, coro: Awaitable[Any]) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def drain(self) -> None:
        """Wait for background persistence and enrichment tasks."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Observations
    # ------------------------------------------------------------------

    async def _create_observation(self, content: str, sort_order: float | None) -> str | None:
        if sort_order is not None:
            self._reserved_orders.append(sort_order)
        try:
            new_id = await self.store.create_observation(self.project_id, content, sort_order=sort_order)
        except Exception as e:
            log_with_context(
                logger, logging.ERROR, f"Failed to save observation: {e}", project_id=self.project_id
            )
            self.banner.show("Failed to save observation", e)
            return None
        else:
            observation = Observation(
                id=new_id, project_id=self.project_id, content=content, sort_order=sort_order
            )
            self.tree.observations = [*self.tree.observations, observation]
            return new_id
        finally:
            if sort_order is not None:
                self._reserved_orders.remove(sort_order)

    def _materialize_orders(self) -> None:
        """Give every observation an explicit order before a midpoint insert."""
        fill = self.tree.missing_orders()
        if fill:
            self.tree.apply_orders(fill)
            self._spawn(self._persist_orders(fill))

    async def add_observation(self, content: str, after_id: str | None = None) -> str | None:
        """
        Add an observation from the draft input.

        Args:
            content: Submitted text; blank input is a no-op
            after_id: Insert immediately after this sibling instead of appending

        Returns:
            New observation id, or None if rejected or not persisted
        """
        text = (content or "").strip()
        if not text:
            return None

        self.drafts[OBSERVATION_DRAFT] = ""
        if after_id is not None and self.tree.observation(after_id) is not None:
            self._materialize_orders()
            sort_order = self.tree.order_after(after_id, self._reserved_orders)
        else:
            sort_order = self.tree.next_order(self._reserved_orders)

        new_id = await self._create_observation(text, sort_order)
        if new_id is None:
            self.drafts[OBSERVATION_DRAFT] = text
        return new_id

    async def paste_observations(self, text: str) -> list[str]:
        """Import newline-delimited observations in order; blank lines are skipped."""
        lines = [line.strip() for line in (text or "").splitlines() if line.strip()]
        created = []
        for index, line in enumerate(lines):
            new_id = await self._create_observation(line, self.tree.next_order(self._reserved_orders))
            if new_id is None:
                # keep what was not saved so it can be pasted again
                self.drafts[OBSERVATION_DRAFT] = "\n".join(lines[index:])
                break
            created.append(new_id)
        return created

    async def branch_observation(self, observation_id: str) -> str | None:
        """Copy an observation into a new sibling placed immediately after it."""
        source = self.tree.observation(observation_id)
        if source is None:
            return None
        self._materialize_orders()
        return await self._create_observation(
            source.content, self.tree.order_after(observation_id, self._reserved_orders)
        )

    async def delete_observation(self, observation_id: str) -> bool:
        try:
            await self.store.delete_observation(observation_id, self.project_id)
        except Exception as e:
            logger.error(f"Failed to delete observation {observation_id}: {e}")
            self.banner.show("Failed to delete observation", e)
            return False

        self.tree.observations = [o for o in self.tree.observations if o.id != observation_id]
        self.cache.forget(SuggestionKind.HARMS, observation_id)
        return True

    def reorder_observations(self, moved_id: str, target_index: int) -> list[str]:
        """
        Move an observation to ``target_index`` and renumber every sibling.

        The in-memory order changes immediately; the batch of order updates
        is persisted in the background.
        """
        ordered = self.tree.ordered_observations()
        from_index = next((i for i, o in enumerate(ordered) if o.id == moved_id), None)
        if from_index is None:
            return [o.id for o in ordered]

        moved = move_item(ordered, from_index, target_index)
        orders = {o.id: float(i) for i, o in enumerate(moved)}
        self.tree.apply_orders(orders)
        self._spawn(self._persist_orders(orders))
        return [o.id for o in moved]

    async def _persist_orders(self, orders: dict[str, float]) -> bool:
        return await self.outbox.submit(
            f"project:{self.project_id}:observation_order",
            lambda: self.store.update_observation_orders(self.project_id, orders),
            description=f"observation order for project {self.project_id}",
        )

    # ------------------------------------------------------------------
    # Content edits
    # ------------------------------------------------------------------

    async def _save_content(
        self, entity: str, entity_id: str, write: Callable[[], Awaitable[None]]
    ) -> bool:
        return await self.outbox.submit(
            f"{entity}:{entity_id}:content", write, description=f"{entity} {entity_id} content"
        )

    async def update_observation_content(self, observation_id: str, content: str) -> bool:
        text = (content or "").strip()
        if not text or self.tree.observation(observation_id) is None:
            return False
        self.tree.observations = [
            o.model_copy(update={"content": text}) if o.id == observation_id else o
            for o in self.tree.observations
        ]
        return await self._save_content(
            "observation",
            observation_id,
            lambda: self.store.update_observation(observation_id, self.project_id, content=text),
        )

    async def update_observation_title(self, observation_id: str, title: str) -> bool:
        """Set an observation's insight title by hand; blank titles are rejected."""
        text = (title or "").strip()
        if not text or self.tree.observation(observation_id) is None:
            return False
        self.tree.observations = [
            o.model_copy(update={"title": text}) if o.id == observation_id else o
            for o in self.tree.observations
        ]
        return await self.outbox.submit(
            f"observation:{observation_id}:title",
            lambda: self.store.update_observation(observation_id, self.project_id, title=text),
            description=f"observation {observation_id} title",
        )

    async def update_harm_content(self, harm_id: str, content: str) -> bool:
        text = (content or "").strip()
        if not text or self.tree.harm(harm_id) is None:
            return False
        self.tree.harms = [
            h.model_copy(update={"content": text}) if h.id == harm_id else h for h in self.tree.harms
        ]
        return await self._save_content(
            "harm", harm_id, lambda: self.store.update_harm(harm_id, self.project_id, content=text)
        )

    async def update_criterion_content(self, criterion_id: str, content: str) -> bool:
        text = (content or "").strip()
        if not text or self.tree.criterion(criterion_id) is None:
            return False
        self.tree.criteria = [
            c.model_copy(update={"content": text}) if c.id == criterion_id else c
            for c in self.tree.criteria
        ]
        return await self._save_content(
            "criterion",
            criterion_id,
            lambda: self.store.update_criterion(criterion_id, self.project_id, text),
        )

    async def update_strategy_content(self, strategy_id: str, content: str) -> bool:
        text = (content or "").strip()
        if not text or self.tree.strategy(strategy_id) is None:
            return False
        self.tree.strategies = [
            s.model_copy(update={"content": text}) if s.id == strategy_id else s
            for s in self.tree.strategies
        ]
        return await self._save_content(
            "strategy",
            strategy_id,
            lambda: self.store.update_strategy(strategy_id, self.project_id, content=text),
        )

    async def retry_failed_saves(self) -> int:
        return await self.outbox.retry_failed()

    # ------------------------------------------------------------------
    # Harms, criteria, strategies
    # ------------------------------------------------------------------

    def children(self, kind: SuggestionKind, parent_id: str) -> list[Harm | Criterion | Strategy]:
        if kind == SuggestionKind.HARMS:
            return self.tree.harms_for(parent_id)
        if kind == SuggestionKind.CRITERIA:
            return self.tree.criteria_for(parent_id)
        if kind == SuggestionKind.STRATEGIES:
            return self.tree.strategies_for(parent_id)
        raise ValueError(f"{kind.value} has no child entities")

    def _parent_exists(self, kind: SuggestionKind, parent_id: str) -> bool:
        if kind == SuggestionKind.HARMS:
            return self.tree.observation(parent_id) is not None
        if kind == SuggestionKind.CRITERIA:
            return self.tree.harm(parent_id) is not None
        return self.tree.criterion(parent_id) is not None

    async def _create_child(
        self,
        kind: SuggestionKind,
        parent_id: str,
        content: str,
        source_suggestion_id: str | None = None,
        strategy_type: StrategyType | None = None,
    ) -> str | None:
        """Persist a harm, criterion or strategy under ``parent_id`` and add it to the tree."""
        try:
            if kind == SuggestionKind.HARMS:
                new_id = await self.store.create_harm(
                    self.project_id, [parent_id], content, source_suggestion_id
                )
                self.tree.harms = [
                    *self.tree.harms,
                    Harm(
                        id=new_id,
                        project_id=self.project_id,
                        observation_ids=[parent_id],
                        content=content,
                        source_suggestion_id=source_suggestion_id,
                    ),
                ]
            elif kind == SuggestionKind.CRITERIA:
                new_id = await self.store.create_criterion(
                    self.project_id, parent_id, content, source_suggestion_id
                )
                self.tree.criteria = [
                    *self.tree.criteria,
                    Criterion(
                        id=new_id,
                        project_id=self.project_id,
                        harm_id=parent_id,
                        content=content,
                        source_suggestion_id=source_suggestion_id,
                    ),
                ]
            else:
                new_id = await self.store.create_strategy(
                    self.project_id,
                    parent_id,
                    content,
                    strategy_type.value if strategy_type else None,
                    source_suggestion_id,
                )
                self.tree.strategies = [
                    *self.tree.strategies,
                    Strategy(
                        id=new_id,
                        project_id=self.project_id,
                        criterion_id=parent_id,
                        content=content,
                        strategy_type=strategy_type,
                        source_suggestion_id=source_suggestion_id,
                    ),
                ]
        except Exception as e:
            log_with_context(
                logger,
                logging.ERROR,
                f"Failed to save {kind.value} entry under {parent_id}: {e}",
                project_id=self.project_id,
            )
            self.banner.show(f"Failed to save {kind.value} entry", e)
            return None

        self._sync_selection(kind, parent_id)
        if kind == SuggestionKind.CRITERIA:
            self._maybe_request_title(parent_id)
        return new_id

    async def _delete_child(self, kind: SuggestionKind, entity_id: str) -> bool:
        try:
            if kind == SuggestionKind.HARMS:
                await self.store.delete_harm(entity_id, self.project_id)
            elif kind == SuggestionKind.CRITERIA:
                await self.store.delete_criterion(entity_id, self.project_id)
            else:
                await self.store.delete_strategy(entity_id, self.project_id)
        except Exception as e:
            logger.error(f"Failed to delete {kind.value} entry {entity_id}: {e}")
            self.banner.show(f"Failed to delete {kind.value} entry", e)
            return False

        if kind == SuggestionKind.HARMS:
            harm = self.tree.harm(entity_id)
            self.tree.harms = [h for h in self.tree.harms if h.id != entity_id]
            self.cache.forget(SuggestionKind.CRITERIA, entity_id)
            parents = harm.observation_ids if harm else []
        elif kind == SuggestionKind.CRITERIA:
            criterion = self.tree.criterion(entity_id)
            self.tree.criteria = [c for c in self.tree.criteria if c.id != entity_id]
            self.cache.forget(SuggestionKind.STRATEGIES, entity_id)
            parents = [criterion.harm_id] if criterion else []
        else:
            strategy = self.tree.strategy(entity_id)
            self.tree.strategies = [s for s in self.tree.strategies if s.id != entity_id]
            parents = [strategy.criterion_id] if strategy else []

        for parent_id in parents:
            self._sync_selection(kind, parent_id)
        return True

    async def _add_typed_child(self, kind: SuggestionKind, parent_id: str, content: str, **kwargs) -> str | None:
        text = (content or "").strip()
        if not text or not self._parent_exists(kind, parent_id):
            return None
        if kind == SuggestionKind.STRATEGIES:
            text = ensure_hmw_prefix(text)

        self.drafts[parent_id] = ""
        new_id = await self._create_child(kind, parent_id, text, **kwargs)
        if new_id is None:
            self.drafts[parent_id] = content.strip()
        return new_id

    async def add_harm(
        self, observation_id: str, content: str, source_suggestion_id: str | None = None
    ) -> str | None:
        return await self._add_typed_child(
            SuggestionKind.HARMS, observation_id, content, source_suggestion_id=source_suggestion_id
        )

    async def add_criterion(
        self, harm_id: str, content: str, source_suggestion_id: str | None = None
    ) -> str | None:
        return await self._add_typed_child(
            SuggestionKind.CRITERIA, harm_id, content, source_suggestion_id=source_suggestion_id
        )

    async def add_strategy(
        self,
        criterion_id: str,
        content: str,
        strategy_type: StrategyType | None = None,
        source_suggestion_id: str | None = None,
    ) -> str | None:
        return await self._add_typed_child(
            SuggestionKind.STRATEGIES,
            criterion_id,
            content,
            strategy_type=strategy_type,
            source_suggestion_id=source_suggestion_id,
        )

    async def delete_harm(self, harm_id: str) -> bool:
        return await self._delete_child(SuggestionKind.HARMS, harm_id)

    async def delete_criterion(self, criterion_id: str) -> bool:
        return await self._delete_child(SuggestionKind.CRITERIA, criterion_id)

    async def delete_strategy(self, strategy_id: str) -> bool:
        return await self._delete_child(SuggestionKind.STRATEGIES, strategy_id)

    # ------------------------------------------------------------------
    # Suggestions
    # ------------------------------------------------------------------

    def suggestion_context(self, kind: SuggestionKind, parent_id: str) -> dict[str, str] | None:
        """Template values for a suggestion fetch; None when the parent is gone."""
        if kind == SuggestionKind.HARMS:
            observation = self.tree.observation(parent_id)
            return {"observations": observation.content} if observation else None
        if kind == SuggestionKind.CRITERIA:
            harm = self.tree.harm(parent_id)
            if harm is None:
                return None
            return {"harm": harm.content, "observations": self.tree.observations_text_for(harm)}
        if kind == SuggestionKind.STRATEGIES:
            criterion = self.tree.criterion(parent_id)
            if criterion is None:
                return None
            harm = self.tree.harm_for(criterion)
            return {"criterion": criterion.content, "harm": harm.content if harm else ""}
        raise ValueError(f"{kind.value} is not a per-node suggestion kind")

    def _fetcher(self, kind: SuggestionKind, context: dict[str, str]):
        async def fetch() -> list[str]:
            return await self.suggestions.request_suggestions(kind, context)

        return fetch

    def _sync_selection(self, kind: SuggestionKind, parent_id: str) -> None:
        children = self.children(kind, parent_id)
        self.cache.sync_selection(
            kind,
            parent_id,
            linked_ids=[c.source_suggestion_id for c in children if c.source_suggestion_id],
            contents=[c.content for c in children],
        )

    async def load_suggestions(self, kind: SuggestionKind, parent_id: str) -> list[Suggestion]:
        """Lazily fetch suggestions for a focused input; returns the visible candidates."""
        context = self.suggestion_context(kind, parent_id)
        if context is None:
            return []
        await self.cache.ensure_loaded(kind, parent_id, self._fetcher(kind, context))
        self._sync_selection(kind, parent_id)
        return self.cache.visible(kind, parent_id)

    async def generate_more(self, kind: SuggestionKind, parent_id: str) -> list[Suggestion]:
        """Append another batch of suggestions; returns the visible candidates."""
        context = self.suggestion_context(kind, parent_id)
        if context is None:
            return []
        await self.cache.generate_more(kind, parent_id, self._fetcher(kind, context))
        self._sync_selection(kind, parent_id)
        return self.cache.visible(kind, parent_id)

    def entity_for_suggestion(
        self, kind: SuggestionKind, parent_id: str, suggestion: Suggestion
    ) -> Harm | Criterion | Strategy | None:
        """Entity accepted from ``suggestion``: provenance link first, then identical content."""
        children = self.children(kind, parent_id)
        linked = next((c for c in children if c.source_suggestion_id == suggestion.id), None)
        if linked is not None:
            return linked
        return next((c for c in children if c.content == suggestion.content), None)

    async def toggle_suggestion(self, kind: SuggestionKind, parent_id: str, suggestion_id: str) -> bool:
        """
        Accept or withdraw a suggestion.

        A selected suggestion deletes its entity and is deselected; an
        unselected one creates an entity (recording the suggestion id) and is
        selected. A failed create leaves the suggestion unselected; a failed
        delete leaves both the entity and the selection in place.

        Returns:
            The suggestion's selected state afterwards
        """
        suggestion = self.cache.find(kind, parent_id, suggestion_id)
        if suggestion is None:
            return False

        if suggestion.selected:
            entity = self.entity_for_suggestion(kind, parent_id, suggestion)
            if entity is not None and not await self._delete_child(kind, entity.id):
                return True
            self.cache.mark_selected(kind, parent_id, suggestion_id, False)
        else:
            new_id = await self._create_child(
                kind,
                parent_id,
                suggestion.content,
                source_suggestion_id=suggestion.id,
                strategy_type=suggestion.strategy_type,
            )
            if new_id is None:
                return False

        self._sync_selection(kind, parent_id)
        current = self.cache.find(kind, parent_id, suggestion_id)
        return bool(current and current.selected)

    # ------------------------------------------------------------------
    # Insight titles
    # ------------------------------------------------------------------

    def enrichment_state(self, observation_id: str) -> EnrichmentState:
        observation = self.tree.observation(observation_id)
        if observation is not None and observation.title:
            return EnrichmentState.TITLED
        if observation_id in self._title_requests:
            return EnrichmentState.TITLE_REQUESTED
        return EnrichmentState.UNTITLED

    def _maybe_request_title(self, harm_id: str) -> None:
        harm = self.tree.harm(harm_id)
        if harm is None:
            return
        observation = self.tree.observation_for(harm)
        if observation is None or observation.title or observation.id in self._title_requests:
            return
        harms = self.tree.harms_for(observation.id)
        if not harms or harms[0].id != harm_id:
            return
        self._title_requests.add(observation.id)
        self._spawn(self.generate_insight_title(observation.id))

    async def generate_insight_title(self, observation_id: str) -> str | None:
        """
        Request and persist a short title for an observation.

        Uses the observation with its first harm and that harm's first
        criterion. Best effort: failures are logged and the title stays unset.
        """
        observation = self.tree.observation(observation_id)
        if observation is None:
            self._title_requests.discard(observation_id)
            return None
        if observation.title:
            self._title_requests.discard(observation_id)
            return observation.title

        harms = self.tree.harms_for(observation_id)
        criteria = self.tree.criteria_for(harms[0].id) if harms else []
        if not criteria:
            self._title_requests.discard(observation_id)
            return None

        self._title_requests.add(observation_id)
        try:
            raw = await self.suggestions.request_text(
                SuggestionKind.INSIGHT_TITLE,
                {
                    "observation": observation.content,
                    "harm": harms[0].content,
                    "criterion": criteria[0].content,
                },
            )
            title = raw.strip().strip('"').strip()
            if not title:
                logger.warning(f"Empty insight title for observation {observation_id}")
                return None
            await self.store.update_observation(observation_id, self.project_id, title=title)
        except Exception as e:
            logger.warning(f"Insight title generation failed for observation {observation_id}: {e}")
            return None
        finally:
            self._title_requests.discard(observation_id)

        self.tree.observations = [
            o.model_copy(update={"title": title}) if o.id == observation_id else o
            for o in self.tree.observations
        ]
        logger.info(f"Titled observation {observation_id}: {title}")
        return title

    # ------------------------------------------------------------------
    # Project fields
    # ------------------------------------------------------------------

    async def rename_project(self, name: str) -> bool:
        """Optimistic rename; a failed save is logged and kept for retry."""
        text = (name or "").strip()
        if not text:
            return False
        self.project_name = text
        return await self.outbox.submit(
            f"project:{self.project_id}:name",
            lambda: self.store.update_project(self.project_id, name=text),
            description=f"name of project {self.project_id}",
        )

    async def toggle_archived(self) -> bool:
        """Flip the archived flag; rolled back if the save fails. Returns the resulting flag."""
        previous = self.archived
        self.archived = not previous
        try:
            await self.store.update_project(self.project_id, archived=self.archived)
        except Exception as e:
            logger.error(f"Failed to update archived flag for project {self.project_id}: {e}")
            self.archived = previous
            self.banner.show("Failed to update project", e)
        return self.archived

    async def aclose(self) -> None:
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)
