"""Per-parent suggestion cache with a small fetch state machine.

Each (kind, parent_id) entry moves NOT_FETCHED -> LOADING -> LOADED or
LOADED_EMPTY. A fetch is started at most once per entry; concurrent callers
share the in-flight task. ``generate_more`` appends to an already loaded
entry and is ignored while a fetch is running. Failures resolve the entry
as empty (or keep the prior list) and are reported through ``on_error``.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterable

from synthesis.core.logging import get_logger
from synthesis.core.schemas_suggestions import Suggestion, SuggestionKind, SuggestionState
from synthesis.core.schemas_synthesis import StrategyType

logger = get_logger(__name__)

FetchFn = Callable[[], Awaitable[list[str]]]
ErrorCallback = Callable[[str, Exception], object]


@dataclass
class CacheEntry:
    state: SuggestionState = SuggestionState.NOT_FETCHED
    items: list[Suggestion] = field(default_factory=list)
    task: asyncio.Task | None = None


class SuggestionCache:
    def __init__(self, on_error: ErrorCallback | None = None):
        self._entries: dict[tuple[SuggestionKind, str], CacheEntry] = {}
        self._on_error = on_error

    def _entry(self, kind: SuggestionKind, parent_id: str) -> CacheEntry:
        return self._entries.setdefault((kind, parent_id), CacheEntry())

    def state(self, kind: SuggestionKind, parent_id: str) -> SuggestionState:
        entry = self._entries.get((kind, parent_id))
        return entry.state if entry else SuggestionState.NOT_FETCHED

    def items(self, kind: SuggestionKind, parent_id: str) -> list[Suggestion]:
        entry = self._entries.get((kind, parent_id))
        return list(entry.items) if entry else []

    def visible(self, kind: SuggestionKind, parent_id: str) -> list[Suggestion]:
        """Unselected suggestions, in fetch order."""
        return [s for s in self.items(kind, parent_id) if not s.selected]

    def is_loading(self, kind: SuggestionKind, parent_id: str) -> bool:
        return self.state(kind, parent_id) == SuggestionState.LOADING

    def find(self, kind: SuggestionKind, parent_id: str, suggestion_id: str) -> Suggestion | None:
        return next((s for s in self.items(kind, parent_id) if s.id == suggestion_id), None)

    def forget(self, kind: SuggestionKind, parent_id: str) -> None:
        """Drop the entry for a deleted parent; a fetch in flight completes into the detached entry."""
        self._entries.pop((kind, parent_id), None)

    def mark_selected(self, kind: SuggestionKind, parent_id: str, suggestion_id: str, selected: bool) -> None:
        entry = self._entries.get((kind, parent_id))
        if entry is None:
            return
        entry.items = [
            s.model_copy(update={"selected": selected}) if s.id == suggestion_id else s
            for s in entry.items
        ]

    def sync_selection(
        self,
        kind: SuggestionKind,
        parent_id: str,
        linked_ids: Iterable[str],
        contents: Iterable[str],
    ) -> None:
        """
        Recompute selection from the entities that exist under the parent.

        A suggestion is selected when an entity was accepted from it
        (``linked_ids``) or when an entity with identical content exists.
        """
        entry = self._entries.get((kind, parent_id))
        if entry is None:
            return
        linked = set(linked_ids)
        existing = set(contents)
        entry.items = [
            s.model_copy(update={"selected": s.id in linked or s.content in existing})
            for s in entry.items
        ]

    async def ensure_loaded(self, kind: SuggestionKind, parent_id: str, fetch: FetchFn) -> list[Suggestion]:
        """
        Fetch suggestions for the parent once.

        Subsequent calls return the cached list; a call made while the first
        fetch is running waits on the same request.
        """
        entry = self._entry(kind, parent_id)
        if entry.state == SuggestionState.LOADING and entry.task is not None:
            await asyncio.shield(entry.task)
            return self.items(kind, parent_id)
        if entry.state != SuggestionState.NOT_FETCHED:
            return self.items(kind, parent_id)

        await self._start(kind, parent_id, entry, fetch)
        return self.items(kind, parent_id)

    async def generate_more(self, kind: SuggestionKind, parent_id: str, fetch: FetchFn) -> list[Suggestion]:
        """Append a fresh batch to the entry; returns only the new suggestions."""
        entry = self._entry(kind, parent_id)
        if entry.state == SuggestionState.LOADING:
            logger.debug(f"Ignoring generate-more for {kind.value}/{parent_id}: fetch in progress")
            return []
        return await self._start(kind, parent_id, entry, fetch)

    async def _start(
        self, kind: SuggestionKind, parent_id: str, entry: CacheEntry, fetch: FetchFn
    ) -> list[Suggestion]:
        entry.state = SuggestionState.LOADING
        entry.task = asyncio.create_task(self._fetch(kind, parent_id, entry, fetch))
        return await asyncio.shield(entry.task)

    async def _fetch(
        self, kind: SuggestionKind, parent_id: str, entry: CacheEntry, fetch: FetchFn
    ) -> list[Suggestion]:
        try:
            contents = await fetch()
        except asyncio.CancelledError:
            entry.state = SuggestionState.LOADED if entry.items else SuggestionState.NOT_FETCHED
            entry.task = None
            raise
        except Exception as e:
            logger.error(f"Failed to fetch {kind.value} suggestions for {parent_id}: {e}")
            if self._on_error is not None:
                self._on_error(f"Failed to load {kind.value} suggestions", e)
            contents = []

        strategy_type = StrategyType.CONFRONT if kind == SuggestionKind.STRATEGIES else None
        new_items = [Suggestion(content=c, strategy_type=strategy_type) for c in contents]
        entry.items = [*entry.items, *new_items]
        entry.state = SuggestionState.LOADED if entry.items else SuggestionState.LOADED_EMPTY
        entry.task = None
        logger.debug(f"Cached {len(new_items)} {kind.value} suggestions for {parent_id}")
        return new_items
