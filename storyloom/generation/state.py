"""Per-controller working state for one session. Never persisted."""

from __future__ import annotations

import asyncio
import logging

from storyloom.fallback.manager import UsageHistory

logger = logging.getLogger(__name__)


class SessionGenerationState:
    """Liveness flag, single-flight guards and dedupe sets for one session.

    Owned by a GenerationController. Build with `create()`, reset with
    `reset_on_session_change()` and retire with `dispose()`.
    """

    def __init__(self, session_id: str) -> None:
        self.session_id = session_id
        self.alive = True
        self.fallback_history = UsageHistory()
        self.background: set[asyncio.Future] = set()
        self._clear()

    def _clear(self) -> None:
        self.initial_in_flight = False
        self.initial_started = False
        self.choices_in_flight = False
        self.processed_choice_ids: set[str] = set()
        self.last_choice_id: str | None = None
        self.ending_suggested = False
        self.fallback_history.clear()

    @classmethod
    def create(cls, session_id: str) -> SessionGenerationState:
        return cls(session_id)

    def reset_on_session_change(self, session_id: str) -> None:
        if session_id == self.session_id:
            return
        logger.debug("session changed %s -> %s; resetting generation state",
                     self.session_id, session_id)
        self.session_id = session_id
        self._clear()

    def dispose(self) -> None:
        """Clear the liveness flag. Work already in flight finishes, but its
        results are dropped by the controller."""
        self.alive = False

    def mark_choice(self, choice_id: str) -> bool:
        """Record a choice as processed. False if it already was."""
        if choice_id in self.processed_choice_ids:
            return False
        self.processed_choice_ids.add(choice_id)
        self.last_choice_id = choice_id
        return True

    def unmark_choice(self, choice_id: str) -> None:
        self.processed_choice_ids.discard(choice_id)

    def track(self, future: asyncio.Future) -> None:
        """Keep a reference to background work until it finishes."""
        self.background.add(future)
        future.add_done_callback(self.background.discard)
