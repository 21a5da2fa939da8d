"""Session-scoped generation controller.

Sequences one session's story generation:

  begin()                    → load the session; start the opening scene if it has none
  request_initial_scene()    → opening segment (double-checked against the store)
  request_next_segment(id)   → continuation for a chosen option (once per choice id)
  request_player_choices()   → next decision; a generic fallback on timeout/failure
  check_ending_indicators()  → best-effort "natural ending" classification
  retry()                    → re-run whatever left the controller in "erred"

Status moves between "idle", "generating_initial", "generating_from_choice"
and "erred". Choice generation runs alongside and is tracked separately by
`is_generating_choices`.

Everything runs on one event loop. Single-flight flags are set before the
first await, and the liveness flag is checked after every await: once
`dispose()` has been called (or the session switched) in-flight calls still
complete, but their results are dropped.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine, Sequence
from typing import Any, Literal

from storyloom import prompts
from storyloom.fallback.manager import FallbackContentManager
from storyloom.generation.choices import ContextSummarizer, decision_from_content, fallback_decision
from storyloom.generation.errors import GenerationError, GenerationFailure, GenerationTimeout
from storyloom.generation.parsing import parse_choice_response, parse_ending_analysis
from storyloom.generation.state import SessionGenerationState
from storyloom.llm import LLM, ServiceError, fallback_reason
from storyloom.models import (
    ContentType,
    Decision,
    DecisionOption,
    EndingType,
    FallbackContent,
    GenerationSettings,
    NarrativeContext,
    NarrativeSegment,
    SegmentMetadata,
    World,
    new_id,
)
from storyloom.storage import SessionStore

logger = logging.getLogger(__name__)

ControllerStatus = Literal["idle", "generating_initial", "generating_from_choice", "erred"]

SegmentListener = Callable[[NarrativeSegment], None]
ChoicesListener = Callable[[Decision], None]
EndingListener = Callable[[str, EndingType], None]
ErrorListener = Callable[[GenerationError], None]

STARTING_LOCATION = "Starting Location"


def _discard_result(future: asyncio.Future) -> None:
    # Retrieve the outcome of an abandoned call so asyncio does not report it.
    if not future.cancelled() and future.exception() is not None:
        logger.debug("abandoned generation call failed: %s", future.exception())


class GenerationController:
    def __init__(
        self,
        *,
        session_id: str,
        world_id: str,
        llm: LLM,
        store: SessionStore,
        character_ids: Sequence[str] = (),
        world: World | None = None,
        settings: GenerationSettings | None = None,
        fallback_pool: Sequence[FallbackContent] | None = None,
        summarize: ContextSummarizer | None = None,
        enabled: bool = True,
        on_segment_generated: SegmentListener | None = None,
        on_choices_generated: ChoicesListener | None = None,
        on_ending_suggested: EndingListener | None = None,
        on_error: ErrorListener | None = None,
    ) -> None:
        self._world_id = world_id
        self._llm = llm
        self._store = store
        self._character_ids = list(character_ids)
        self._world = world
        self._settings = settings or GenerationSettings()
        self._summarize = summarize
        self._enabled = enabled
        self._on_segment_generated = on_segment_generated
        self._on_choices_generated = on_choices_generated
        self._on_ending_suggested = on_ending_suggested
        self._on_error = on_error

        self._state = SessionGenerationState.create(session_id)
        self._fallback = FallbackContentManager(fallback_pool, history=self._state.fallback_history)
        self._fallback_choice_tags: dict[str, list[str]] = {}
        self._segments: list[NarrativeSegment] = []

        self.status: ControllerStatus = "idle"
        self.error: GenerationError | None = None
        self.current_decision: Decision | None = None

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def session_id(self) -> str:
        return self._state.session_id

    @property
    def segments(self) -> list[NarrativeSegment]:
        return list(self._segments)

    @property
    def is_generating_choices(self) -> bool:
        return self._state.choices_in_flight

    @property
    def alive(self) -> bool:
        return self._state.alive

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def begin(self) -> NarrativeSegment | None:
        """Load the session from the store and start the opening scene if it has none."""
        if not self._state.alive:
            return None
        session_id = self._state.session_id
        self._segments = self._store.get_segments(session_id)
        decisions = self._store.get_decisions(session_id)
        self.current_decision = decisions[-1] if decisions else None
        if not self._enabled or self._segments or self._state.initial_started:
            return None
        return await self.request_initial_scene()

    def switch_session(self, session_id: str) -> None:
        """Point the controller at another session; call `begin()` afterwards."""
        self._state.reset_on_session_change(session_id)
        self._segments = []
        self._fallback_choice_tags.clear()
        self.status = "idle"
        self.error = None
        self.current_decision = None

    def dispose(self) -> None:
        self._state.dispose()

    async def join(self) -> None:
        """Wait for scheduled and abandoned background work to finish."""
        while self._state.background:
            await asyncio.gather(*list(self._state.background), return_exceptions=True)

    # ------------------------------------------------------------------
    # Segment generation
    # ------------------------------------------------------------------

    async def request_initial_scene(
        self,
        world_id: str | None = None,
        character_ids: Sequence[str] | None = None,
    ) -> NarrativeSegment | None:
        state = self._state
        if not state.alive or state.initial_in_flight or state.initial_started:
            return None
        session_id = state.session_id
        world_id = world_id or self._world_id
        character_ids = list(character_ids if character_ids is not None else self._character_ids)

        state.initial_in_flight = True
        state.initial_started = True
        try:
            if self._segments or self._store.get_segments(session_id):
                logger.debug("session=%s already has segments; no initial scene", session_id)
                self._segments = self._store.get_segments(session_id)
                return None

            self._begin_generation("generating_initial")
            prompt = prompts.initial_scene_prompt(self._world, world_id, character_ids)
            content = await self._generate("initial_scene", prompt, session_id)
            if content is None or not self._current(session_id):
                return None

            # Another controller may have written the opening while we waited.
            if self._store.get_segments(session_id):
                logger.warning("session=%s got an initial segment from elsewhere; discarding ours",
                               session_id)
                self._segments = self._store.get_segments(session_id)
                self.status = "idle"
                return None

            segment = NarrativeSegment(
                id=new_id("segment"),
                content=content,
                type="scene",
                session_id=session_id,
                world_id=world_id,
                metadata=SegmentMetadata(
                    location=STARTING_LOCATION,
                    tags=["beginning"],
                    character_ids=character_ids,
                ),
            )
            if not self._store.append_initial_segment(session_id, segment):
                self._segments = self._store.get_segments(session_id)
                self.status = "idle"
                return None

            logger.info("initial segment created session=%s id=%s", session_id, segment.id)
            self._segments.append(segment)
            self.status = "idle"
            self._segment_committed(segment, custom=False)
            return segment
        finally:
            state.initial_in_flight = False

    async def request_next_segment(self, choice_id: str) -> NarrativeSegment | None:
        state = self._state
        if not state.alive or not state.mark_choice(choice_id):
            return None
        session_id = state.session_id

        self._begin_generation("generating_from_choice")
        choice_text, custom = self._resolve_choice(session_id, choice_id)
        recent = self._segments[-self._settings.context_window:]
        prompt = prompts.continuation_prompt(
            self._world, self._world_id, recent, choice_text, custom,
        )
        content = await self._generate("continuation", prompt, session_id)
        if content is None or not self._current(session_id):
            return None

        segment = NarrativeSegment(
            id=new_id("segment"),
            content=content,
            type="scene",
            session_id=session_id,
            world_id=self._world_id,
            metadata=SegmentMetadata(character_ids=self._character_ids),
        )
        self._store.append_segment(session_id, segment)
        self._segments.append(segment)
        self.status = "idle"
        self._segment_committed(segment, custom=custom)
        return segment

    async def submit_custom_choice(self, text: str) -> NarrativeSegment | None:
        """Continue the story from the player's own free-text action."""
        text = text.strip()
        if not text:
            raise ValueError("Custom choice text must not be empty")
        session_id = self._state.session_id
        option = DecisionOption(
            id=new_id("option"), text=text, is_custom_input=True, custom_text=text,
        )
        decisions = self._store.get_decisions(session_id)
        if decisions:
            self._store.add_option(session_id, decisions[-1].id, option)
        else:
            self._store.append_decision(
                session_id, Decision(id=new_id("decision"), prompt="What will you do?", options=[option]),
            )
        return await self.request_next_segment(option.id)

    async def request_fallback_segment(self, segment_type: ContentType = "scene") -> NarrativeSegment | None:
        """Continue from pre-authored content instead of the generation service.

        The opening scene is used when the session is still empty. Returns None
        if no content fits the world theme and current tags.
        """
        state = self._state
        if not state.alive:
            return None
        session_id = state.session_id
        self._segments = self._store.get_segments(session_id)
        initial = not self._segments
        world = self._world or World(id=self._world_id, name=self._world_id)

        context = NarrativeContext(
            world_id=self._world_id,
            session_id=session_id,
            character_ids=self._character_ids,
            previous_segments=self._segments,
            current_tags=self._current_tags(),
        )
        content = self._fallback.get_content("initial" if initial else segment_type, context, world)
        if content is None:
            return None

        segment = NarrativeSegment(
            id=new_id("segment"),
            content=content.content,
            type="transition" if content.type == "transition" else "scene",
            session_id=session_id,
            world_id=self._world_id,
            metadata=SegmentMetadata(
                location=STARTING_LOCATION if initial else None,
                tags=list(content.tags),
                character_ids=self._character_ids,
                is_ai_generated=False,
                fallback_reason=fallback_reason(self.error),
                content_id=content.id,
            ),
        )
        if initial:
            state.initial_started = True
            if not self._store.append_initial_segment(session_id, segment):
                self._segments = self._store.get_segments(session_id)
                return None
        else:
            self._store.append_segment(session_id, segment)
        self._segments.append(segment)
        self.error = None
        self.status = "idle"
        logger.info("fallback segment used session=%s content=%s", session_id, content.id)
        if self._on_segment_generated:
            self._on_segment_generated(segment)

        decision = decision_from_content(content)
        if decision is not None:
            for option, choice in zip(decision.options, content.choices or []):
                self._fallback_choice_tags[option.id] = list(choice.tags)
            self._store.append_decision(session_id, decision)
            self.current_decision = decision
        elif self._settings.choices_enabled:
            self._spawn(self._choices_after(self._settings.choice_delay, session_id))
        return segment

    async def retry(self) -> NarrativeSegment | None:
        """Clear the error and re-run the failed operation, if there was one."""
        state = self._state
        if not state.alive:
            return None
        was_erred = self.status == "erred"
        self.error = None
        self.status = "idle"
        if not was_erred:
            return None

        self._segments = self._store.get_segments(state.session_id)
        if not self._segments:
            state.initial_started = False
            return await self.request_initial_scene()

        last = state.last_choice_id
        if last is not None and last in state.processed_choice_ids:
            state.unmark_choice(last)
            return await self.request_next_segment(last)
        return None

    # ------------------------------------------------------------------
    # Choices
    # ------------------------------------------------------------------

    async def request_player_choices(self) -> Decision | None:
        """Generate the next decision. Always persists one, generated or fallback.

        `on_choices_generated` only fires for generated decisions.
        """
        state = self._state
        if not state.alive or state.choices_in_flight:
            return None
        session_id = state.session_id
        state.choices_in_flight = True
        try:
            recent = self._store.get_segments(session_id)[-self._settings.context_window:]
            decision = fallback_decision(recent, self._summarize)
            generated = False

            prompt = prompts.player_choices_prompt(self._world, self._world_id, recent)
            try:
                text = await self._call_with_timeout(
                    "player_choices", prompt, self._settings.choice_timeout,
                )
            except (ServiceError, GenerationTimeout) as e:
                logger.warning("choice generation failed session=%s, using fallback: %s",
                               session_id, e)
            else:
                parsed = parse_choice_response(text)
                if parsed.ok:
                    decision, generated = parsed.value, True
                else:
                    logger.warning("choice response unusable session=%s, using fallback: %s",
                                   session_id, parsed.error)
            if not self._current(session_id):
                return None

            self._store.append_decision(session_id, decision)
            self.current_decision = decision
            if generated and self._on_choices_generated:
                self._on_choices_generated(decision)
            return decision
        finally:
            if state.session_id == session_id:
                state.choices_in_flight = False

    async def _choices_after(self, delay: float, session_id: str) -> None:
        await asyncio.sleep(delay)
        if self._current(session_id):
            await self.request_player_choices()

    # ------------------------------------------------------------------
    # Ending detection
    # ------------------------------------------------------------------

    async def check_ending_indicators(self, new_segment: NarrativeSegment) -> None:
        """Ask the service whether the story has reached a natural end.

        Best effort: any failure simply means no suggestion.
        """
        state = self._state
        if not state.alive or state.ending_suggested:
            return
        session_id = state.session_id
        segments = [s for s in self._segments if s.id != new_segment.id] + [new_segment]
        if len(segments) < self._settings.ending_min_segments:
            return

        prompt = prompts.ending_analysis_prompt(
            segments,
            window=self._settings.context_window,
            full_context_after=self._settings.ending_full_context_after,
            condensed_chars=self._settings.ending_condensed_chars,
        )
        try:
            text = await self._llm("ending_analysis", prompt)
        except ServiceError as e:
            logger.warning("ending analysis failed session=%s: %s", session_id, e)
            return
        if not self._current(session_id) or state.ending_suggested:
            return

        result = parse_ending_analysis(text)
        if not result.ok:
            logger.warning("ending analysis unparseable session=%s: %s", session_id, result.error)
            return
        suggestion = result.value.suggestion()
        if suggestion is None:
            return

        reason, ending_type = suggestion
        state.ending_suggested = True
        logger.info("ending suggested session=%s type=%s", session_id, ending_type)
        if self._on_ending_suggested:
            self._on_ending_suggested(reason, ending_type)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _current(self, session_id: str) -> bool:
        return self._state.alive and self._state.session_id == session_id

    def _begin_generation(self, status: ControllerStatus) -> None:
        self.status = status
        self.error = None

    async def _generate(self, stage: str, prompt: str, session_id: str) -> str | None:
        """Segment generation call. Failures put the controller in "erred"."""
        try:
            content = await self._llm(stage, prompt)
        except ServiceError as e:
            if self._current(session_id):
                failure = GenerationFailure(f"{stage} generation failed: {e}")
                failure.__cause__ = e
                self._fail(failure)
            return None
        content = content.strip()
        if not content and self._current(session_id):
            self._fail(GenerationFailure(f"{stage} generation returned no text"))
            return None
        return content

    async def _call_with_timeout(self, stage: str, prompt: str, timeout: float) -> str:
        call = asyncio.ensure_future(self._llm(stage, prompt))
        done, _ = await asyncio.wait({call}, timeout=timeout)
        if call in done:
            return call.result()
        # The call keeps running; its result is dropped when it lands.
        call.add_done_callback(_discard_result)
        self._state.track(call)
        raise GenerationTimeout(f"{stage} exceeded {timeout}s")

    def _fail(self, error: GenerationError) -> None:
        logger.warning("generation error session=%s: %s", self._state.session_id, error)
        self.status = "erred"
        self.error = error
        if self._on_error:
            self._on_error(error)

    def _segment_committed(self, segment: NarrativeSegment, custom: bool) -> None:
        if self._on_segment_generated:
            self._on_segment_generated(segment)
        self._spawn(self.check_ending_indicators(segment))
        if self._settings.choices_enabled:
            delay = self._settings.custom_choice_delay if custom else self._settings.choice_delay
            self._spawn(self._choices_after(delay, segment.session_id))

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.ensure_future(coro)
        task.add_done_callback(self._log_task_failure)
        self._state.track(task)

    @staticmethod
    def _log_task_failure(task: asyncio.Future) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("background generation task failed", exc_info=task.exception())

    def _resolve_choice(self, session_id: str, choice_id: str) -> tuple[str, bool]:
        """Display text for a chosen option, and whether it was free-text input."""
        for decision in reversed(self._store.get_decisions(session_id)):
            option = decision.find_option(choice_id)
            if option is None:
                continue
            if decision.selected_option_id != choice_id:
                self._store.select_option(session_id, decision.id, choice_id)
            if self.current_decision is not None and self.current_decision.id == decision.id:
                self.current_decision = None
            if option.is_custom_input:
                return option.custom_text or option.text, True
            return option.text, False
        logger.debug("choice %s not found in stored decisions; using raw id", choice_id)
        return choice_id, False

    def _current_tags(self) -> list[str]:
        """Context tags for fallback selection: the latest segment's tags plus
        whatever the last picked fallback option adds."""
        tags: list[str] = []
        if self._segments:
            tags.extend(self._segments[-1].metadata.tags)
        last = self._state.last_choice_id
        for tag in self._fallback_choice_tags.get(last or "", []):
            if tag not in tags:
                tags.append(tag)
        return tags
