"""Core domain models.

Every generation operation, the fallback selector and the store operate on
these types. Pydantic is used for validation and serialisation at every
data boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Literal
from uuid import uuid4

from pydantic import BaseModel, Field

SegmentType = Literal[
    "scene",
    "dialogue",
    "action",
    "decision",
    "transition",
    "combat",
    "exploration",
    "resolution",
    "character_interaction",
    "revelation",
]

Alignment = Literal["lawful", "neutral", "chaos"]
DecisionWeight = Literal["minor", "major", "critical"]
ContentType = Literal["scene", "transition", "choice", "initial"]
EndingType = Literal["story-complete", "character-retirement", "session-limit"]


def _now() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Unique id such as "segment-3f2a9c1e0b7d"."""
    return f"{prefix}-{uuid4().hex[:12]}"


# ---------------------------------------------------------------------------
# Narrative stream
# ---------------------------------------------------------------------------

class SegmentMetadata(BaseModel):
    location: str | None = None
    mood: str | None = None
    tags: list[str] = Field(default_factory=list)
    character_ids: list[str] = Field(default_factory=list)
    is_ai_generated: bool = True
    fallback_reason: str | None = None
    content_id: str | None = None  # set on fallback segments only


class NarrativeSegment(BaseModel):
    """One beat of story. Immutable once appended to the store."""

    id: str
    content: str
    type: SegmentType = "scene"
    session_id: str
    world_id: str
    timestamp: datetime = Field(default_factory=_now)
    metadata: SegmentMetadata = Field(default_factory=SegmentMetadata)


class DecisionOption(BaseModel):
    id: str
    text: str
    hint: str | None = None
    alignment: Alignment | None = None
    is_custom_input: bool = False
    custom_text: str | None = None


class Decision(BaseModel):
    """A set of player-selectable options tied to a narrative moment."""

    id: str
    prompt: str
    options: list[DecisionOption]
    context_summary: str | None = None
    decision_weight: DecisionWeight | None = None
    selected_option_id: str | None = None

    def find_option(self, option_id: str) -> DecisionOption | None:
        for option in self.options:
            if option.id == option_id:
                return option
        return None


# ---------------------------------------------------------------------------
# Fallback content
# ---------------------------------------------------------------------------

class FallbackChoice(BaseModel):
    text: str
    outcome: str
    tags: list[str] = Field(default_factory=list)


class ContentRequirements(BaseModel):
    include_tags: list[str] | None = None
    exclude_tags: list[str] | None = None
    min_segments: int | None = None
    max_segments: int | None = None


class FallbackContent(BaseModel):
    """A pre-authored narrative unit used instead of a generative call."""

    id: str
    type: ContentType
    themes: list[str]
    tags: list[str] = Field(default_factory=list)
    content: str
    choices: list[FallbackChoice] | None = None
    weight: float = Field(default=1, ge=0)
    requirements: ContentRequirements | None = None


class ContentSelectionCriteria(BaseModel):
    type: ContentType
    theme: str
    context_tags: list[str] = Field(default_factory=list)
    segment_count: int = 0
    recently_used_ids: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# World and context
# ---------------------------------------------------------------------------

class World(BaseModel):
    id: str
    name: str
    description: str = ""
    theme: str = "fantasy"


class NarrativeContext(BaseModel):
    """What the fallback manager needs to know about the story so far."""

    world_id: str
    session_id: str
    character_ids: list[str] = Field(default_factory=list)
    previous_segments: list[NarrativeSegment] = Field(default_factory=list)
    current_tags: list[str] = Field(default_factory=list)
    current_location: str | None = None


# ---------------------------------------------------------------------------
# Controller tuning
# ---------------------------------------------------------------------------

class GenerationSettings(BaseModel):
    """Timeouts, delays and context sizes used by the generation controller.

    Durations are in seconds.
    """

    choice_timeout: float = 15.0
    choice_delay: float = 0.5
    custom_choice_delay: float = 2.0
    context_window: int = 5
    ending_min_segments: int = 3
    ending_full_context_after: int = 10
    ending_condensed_chars: int = 500
    choices_enabled: bool = True
