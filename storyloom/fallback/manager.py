"""Fallback content access with a recently-used exclusion window."""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Iterable

from storyloom.fallback.content import FALLBACK_CONTENT
from storyloom.fallback.selector import ContentSelector
from storyloom.models import (
    ContentSelectionCriteria,
    ContentType,
    FallbackContent,
    NarrativeContext,
    World,
)

logger = logging.getLogger(__name__)

USAGE_HISTORY_SIZE = 10


class UsageHistory:
    """Insertion-ordered set of content ids; the oldest id is evicted past capacity."""

    def __init__(self, capacity: int = USAGE_HISTORY_SIZE) -> None:
        self._capacity = capacity
        self._ids: OrderedDict[str, None] = OrderedDict()

    def add(self, content_id: str) -> None:
        self._ids.pop(content_id, None)
        self._ids[content_id] = None
        while len(self._ids) > self._capacity:
            self._ids.popitem(last=False)

    def clear(self) -> None:
        self._ids.clear()

    def ids(self) -> list[str]:
        return list(self._ids)

    def __contains__(self, content_id: object) -> bool:
        return content_id in self._ids

    def __len__(self) -> int:
        return len(self._ids)


class FallbackContentManager:
    def __init__(
        self,
        pool: Iterable[FallbackContent] | None = None,
        selector: ContentSelector | None = None,
        history: UsageHistory | None = None,
    ) -> None:
        self._pool = list(FALLBACK_CONTENT if pool is None else pool)
        self._selector = selector or ContentSelector()
        self._history = history if history is not None else UsageHistory()

    def get_content(
        self, type: ContentType, context: NarrativeContext, world: World
    ) -> FallbackContent | None:
        criteria = ContentSelectionCriteria(
            type=type,
            theme=world.theme,
            context_tags=context.current_tags,
            segment_count=len(context.previous_segments),
            recently_used_ids=self._history.ids(),
        )
        content = self._selector.select_content(self._pool, criteria)
        if content is None:
            logger.debug("no fallback content: type=%s theme=%s tags=%s",
                         type, world.theme, context.current_tags)
            return None
        self._history.add(content.id)
        return content

    def has_content(self, theme: str) -> bool:
        return any(theme in c.themes for c in self._pool)

    def get_content_count(self, theme: str, type: ContentType) -> int:
        return sum(1 for c in self._pool if c.type == type and theme in c.themes)

    def clear_usage_history(self) -> None:
        self._history.clear()

    @property
    def recently_used(self) -> list[str]:
        return self._history.ids()
