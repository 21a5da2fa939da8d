"""Handlebars prompt rendering for the generation stages.

Each stage has a default template; the builders below assemble the template
context from segments, decisions and world data and render it. Variables are
inserted with triple-stash so narrative text is not HTML-escaped.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

import pybars

from storyloom.models import NarrativeSegment, World

_compiler = pybars.Compiler()
_cache: dict[str, Callable] = {}


class PromptError(Exception):
    """Raised when a Handlebars template fails to compile or render."""


# ── Custom Handlebars helpers ────────────────────────────


def _helper_last(this, options, items, count):
    """{{#last array N}}...{{/last}} — iterate over the last N items."""
    result = []
    for item in list(items)[-int(count):]:
        result.extend(options["fn"](item))
    return result


_HELPERS: dict[str, Callable] = {
    "last": _helper_last,
}


def render_prompt(template_str: str, context: dict[str, Any]) -> str:
    """Compile and render a Handlebars template with the given context.

    Templates are cached by source string to avoid recompilation.
    """
    try:
        compiled = _cache.get(template_str)
        if compiled is None:
            compiled = _compiler.compile(template_str)
            _cache[template_str] = compiled
        return str(compiled(context, helpers=_HELPERS))
    except Exception as e:
        raise PromptError(f"Template error: {e}") from e


# ── Default templates ────────────────────────────────────

INITIAL_SCENE = """You are the narrator of an interactive story.

World: {{{world.name}}}
{{#if world.description}}Description: {{{world.description}}}
{{/if}}Genre: {{{world.theme}}}
{{#if characters}}Player character: {{{characters}}}
{{/if}}
Write the opening scene of the adventure in two or three paragraphs of
second-person prose. Establish the setting and a hook. Do not list choices.
"""

CONTINUATION = """You are the narrator of an interactive story.

World: {{{world.name}}} ({{{world.theme}}})

Recent story:
{{#each recent}}{{{this.content}}}

{{/each}}{{#if custom}}The player wrote their own action: "{{{choice}}}"
Honour the player's intent while keeping the world consistent.
{{else}}The player chose: "{{{choice}}}"
{{/if}}
Continue the story with the consequences of this choice in two or three
paragraphs of second-person prose. Do not list choices.
"""

PLAYER_CHOICES = """You are designing the next decision point of an interactive story.

World: {{{world.name}}} ({{{world.theme}}})

Recent story:
{{#last recent 5}}{{{this.content}}}

{{/last}}Offer three or four distinct options the player could take next. Tag each
option with an alignment: lawful, neutral or chaos.

Respond with JSON only:
{
  "prompt": "<the question put to the player>",
  "options": [{"text": "<option>", "alignment": "lawful" | "neutral" | "chaos", "hint": "<optional>"}],
  "decisionWeight": "minor" | "major" | "critical",
  "contextSummary": "<one sentence recap of the situation>"
}
"""

ENDING_ANALYSIS = """You are a narrative expert analyzing a story in progress. Determine if this story has reached a natural conclusion point where the player would feel satisfied ending.

{{#if earlier}}Earlier story: {{{earlier}}}...

{{/if}}Recent narrative developments:
{{#each recent}}Segment {{{this.number}}}: {{{this.content}}}

{{/each}}Analyze this story for natural ending points. Consider:

STORY STRUCTURE:
- Has the central conflict been resolved or reached climax?
- Are character arcs showing completion or fulfillment?
- Is there a sense of narrative closure or resolution?

EMOTIONAL SATISFACTION:
- Would ending here feel fulfilling to the reader?
- Are loose threads tied up or at a natural pause?

DO NOT:
- Look for specific keywords or phrases
- Suggest ending just because of story length

Respond with JSON format:
{
  "suggestEnding": true/false,
  "confidence": "high" | "medium" | "low",
  "endingType": "story-complete" | "character-retirement" | "session-limit" | "none",
  "reason": "Clear explanation of why this is/isn't a good ending point"
}
"""


# ── Context builders ─────────────────────────────────────


def _world_ctx(world: World | None, world_id: str) -> dict[str, str]:
    if world is None:
        return {"name": world_id, "description": "", "theme": "fantasy"}
    return {"name": world.name, "description": world.description, "theme": world.theme}


def _segments_ctx(segments: Sequence[NarrativeSegment]) -> list[dict[str, Any]]:
    return [{"id": s.id, "content": s.content, "type": s.type} for s in segments]


def initial_scene_prompt(
    world: World | None, world_id: str, character_ids: Sequence[str]
) -> str:
    return render_prompt(INITIAL_SCENE, {
        "world": _world_ctx(world, world_id),
        "characters": ", ".join(character_ids),
    })


def continuation_prompt(
    world: World | None,
    world_id: str,
    recent: Sequence[NarrativeSegment],
    choice_text: str,
    custom: bool,
) -> str:
    return render_prompt(CONTINUATION, {
        "world": _world_ctx(world, world_id),
        "recent": _segments_ctx(recent),
        "choice": choice_text,
        "custom": custom,
    })


def player_choices_prompt(
    world: World | None, world_id: str, recent: Sequence[NarrativeSegment]
) -> str:
    return render_prompt(PLAYER_CHOICES, {
        "world": _world_ctx(world, world_id),
        "recent": _segments_ctx(recent),
    })


def ending_analysis_prompt(
    segments: Sequence[NarrativeSegment],
    window: int = 5,
    full_context_after: int = 10,
    condensed_chars: int = 500,
) -> str:
    """Two-tier context: the last `window` segments verbatim, plus a condensed
    run of everything earlier once the story is longer than `full_context_after`.
    """
    recent = list(segments)[-window:]
    earlier = ""
    if len(segments) > full_context_after:
        earlier = " ".join(s.content for s in list(segments)[:-window])[:condensed_chars]
    return render_prompt(ENDING_ANALYSIS, {
        "earlier": earlier,
        "recent": [
            {"number": str(i + 1), "content": s.content} for i, s in enumerate(recent)
        ],
    })
