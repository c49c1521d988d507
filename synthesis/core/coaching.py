"""Debounced coaching for the new-observation draft.

Every edit clears the current coaching text, cancels the pending timer and
any request in flight, then arms a fresh timer when the draft is long
enough. Each armed request carries a generation number; a response whose
generation is no longer current is discarded.
"""

import asyncio
import contextlib

from synthesis.chains.suggestions import SuggestionClient
from synthesis.core.config import Settings, get_settings
from synthesis.core.logging import get_logger
from synthesis.core.prompts import COACHING_OK_SENTINEL
from synthesis.core.schemas_suggestions import SuggestionKind

logger = get_logger(__name__)


def interpret_coaching(raw: str | None) -> str | None:
    """Map a raw coaching reply to display text; the OK sentinel means no coaching."""
    if raw is None:
        return None
    text = raw.strip()
    if not text or text.rstrip(".").strip().upper() == COACHING_OK_SENTINEL:
        return None
    return text


class ObservationCoach:
    def __init__(
        self,
        suggestions: SuggestionClient,
        settings: Settings | None = None,
        debounce_seconds: float | None = None,
        min_chars: int | None = None,
    ):
        settings = settings or get_settings()
        self.suggestions = suggestions
        self.debounce_seconds = (
            settings.COACHING_DEBOUNCE_SECONDS if debounce_seconds is None else debounce_seconds
        )
        self.min_chars = settings.COACHING_MIN_CHARS if min_chars is None else min_chars
        self.coaching: str | None = None
        self.loading = False
        self._generation = 0
        self._task: asyncio.Task | None = None

    @property
    def generation(self) -> int:
        return self._generation

    def on_text_change(self, text: str) -> None:
        """Handle an edit to the draft. Must be called from a running event loop."""
        self.coaching = None
        self.loading = False
        self._cancel_pending()
        self._generation += 1

        if len(text.strip()) < self.min_chars:
            return

        generation = self._generation
        self._task = asyncio.create_task(self._run(text, generation))

    def _cancel_pending(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    async def _run(self, text: str, generation: int) -> None:
        await asyncio.sleep(self.debounce_seconds)
        if generation != self._generation:
            return

        self.loading = True
        try:
            raw = await self.suggestions.request_text(
                SuggestionKind.OBSERVATION_COACHING, {"observation": text}
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Coaching request failed: {e}")
            raw = None
        finally:
            if generation == self._generation:
                self.loading = False

        if generation != self._generation:
            logger.debug(f"Discarding stale coaching response (generation {generation})")
            return
        self.coaching = interpret_coaching(raw)

    async def wait_idle(self) -> None:
        """Wait for the armed timer and its request to finish (test and shutdown hook)."""
        task = self._task
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    async def aclose(self) -> None:
        """Cancel any pending timer or request."""
        task = self._task
        self._generation += 1
        self._cancel_pending()
        self.loading = False
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task
