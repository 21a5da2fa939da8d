"""Deterministic decisions used when generated choices are unavailable."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from storyloom.models import Alignment, Decision, DecisionOption, FallbackContent, NarrativeSegment, new_id

# Accepts the recent segments, returns a short synopsis for Decision.context_summary.
ContextSummarizer = Callable[[Sequence[NarrativeSegment]], str]

FALLBACK_PROMPT = "What will you do?"

FALLBACK_OPTIONS: tuple[tuple[str, Alignment], ...] = (
    ("Investigate further", "neutral"),
    ("Talk to nearby characters", "lawful"),
    ("Move to a new location", "neutral"),
)


def fallback_decision(
    recent: Sequence[NarrativeSegment],
    summarize: ContextSummarizer | None = None,
) -> Decision:
    """The generic three-option decision that keeps a session playable."""
    decision_id = new_id("decision")
    return Decision(
        id=decision_id,
        prompt=FALLBACK_PROMPT,
        options=[
            DecisionOption(id=f"{decision_id}-option-{i}", text=text, alignment=alignment)
            for i, (text, alignment) in enumerate(FALLBACK_OPTIONS, start=1)
        ],
        decision_weight="minor",
        context_summary=summarize(recent) if summarize and recent else None,
    )


def decision_from_content(content: FallbackContent) -> Decision | None:
    """Turn the choices attached to a fallback content unit into a Decision."""
    if not content.choices:
        return None
    decision_id = new_id("decision")
    return Decision(
        id=decision_id,
        prompt=FALLBACK_PROMPT,
        options=[
            DecisionOption(
                id=f"{decision_id}-option-{i}",
                text=choice.text,
                hint=choice.outcome,
                alignment="neutral",
            )
            for i, choice in enumerate(content.choices, start=1)
        ],
        decision_weight="minor",
    )
