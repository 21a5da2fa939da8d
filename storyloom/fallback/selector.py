"""Scoring and weighted selection over a pool of fallback content.

Selection runs in four passes:
  1. Filter by type, theme and recent use.
  2. Filter by each candidate's requirements.
  3. Score by tag overlap with the current context.
  4. Keep candidates within 80% of the top score and draw one by weight.
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Sequence

from storyloom.models import ContentSelectionCriteria, FallbackContent

TAG_MATCH_SCORE = 10
EXACT_MATCH_BONUS = 20
TOP_SCORE_RATIO = 0.8


class ContentSelector:
    """Pure selection algorithm. Pass a seeded `random.Random` for reproducible draws."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._rng = rng or random.Random()

    def select_content(
        self,
        pool: Iterable[FallbackContent],
        criteria: ContentSelectionCriteria,
    ) -> FallbackContent | None:
        """Return the best-fitting content for the criteria, or None if nothing qualifies."""
        recently_used = set(criteria.recently_used_ids)
        candidates = [
            c for c in pool
            if c.type == criteria.type
            and criteria.theme in c.themes
            and c.id not in recently_used
        ]
        candidates = [
            c for c in candidates
            if self.meets_requirements(c, criteria.context_tags, criteria.segment_count)
        ]
        if not candidates:
            return None

        scored = sorted(
            ((self.score_content(c, criteria.context_tags), c) for c in candidates),
            key=lambda pair: pair[0],
            reverse=True,
        )
        return self._weighted_random_select(self._top_candidates(scored))

    def meets_requirements(
        self,
        content: FallbackContent,
        context_tags: Sequence[str],
        segment_count: int,
    ) -> bool:
        req = content.requirements
        if req is None:
            return True
        tags = set(context_tags)

        # include: all of them; exclude: none of them
        if req.include_tags is not None and not set(req.include_tags) <= tags:
            return False
        if req.exclude_tags is not None and tags.intersection(req.exclude_tags):
            return False

        if req.min_segments is not None and segment_count < req.min_segments:
            return False
        if req.max_segments is not None and segment_count > req.max_segments:
            return False
        return True

    def score_content(self, content: FallbackContent, context_tags: Sequence[str]) -> int:
        tags = set(context_tags)
        own = set(content.tags)
        score = TAG_MATCH_SCORE * len(own & tags)
        if own == tags:
            score += EXACT_MATCH_BONUS
        return score

    def _top_candidates(
        self, scored: list[tuple[int, FallbackContent]]
    ) -> list[FallbackContent]:
        threshold = scored[0][0] * TOP_SCORE_RATIO
        return [content for score, content in scored if score >= threshold]

    def _weighted_random_select(self, candidates: list[FallbackContent]) -> FallbackContent:
        if len(candidates) == 1:
            return candidates[0]

        # an unset (zero) weight counts as 1
        weights = [c.weight or 1 for c in candidates]
        point = self._rng.random() * sum(weights)
        for content, weight in zip(candidates, weights):
            point -= weight
            if point < 0:
                return content
        return candidates[-1]
