"""Auto-dismissing error banner shown for failed saves and suggestion fetches."""

import time
from typing import Callable

from synthesis.core.logging import get_logger

logger = get_logger(__name__)


class ErrorBanner:
    def __init__(self, lifetime: float = 8.0, clock: Callable[[], float] = time.monotonic):
        self.lifetime = lifetime
        self._clock = clock
        self._message: str | None = None
        self._expires_at = 0.0

    def show(self, message: str, error: BaseException | None = None) -> str:
        """Show ``message``, appending the error detail when there is one."""
        detail = str(error) if error is not None else ""
        self._message = f"{message} ({detail})" if detail else message
        self._expires_at = self._clock() + self.lifetime
        logger.debug(f"Error banner: {self._message}")
        return self._message

    @property
    def message(self) -> str | None:
        if self._message is not None and self._clock() >= self._expires_at:
            self._message = None
        return self._message

    def dismiss(self) -> None:
        self._message = None
