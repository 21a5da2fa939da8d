"""Shared test doubles."""

from __future__ import annotations

import asyncio


class StubLLM:
    """Deterministic LLM stand-in for tests.

    Provide a dict mapping stage name → list of responses (in call order).
    A queued exception instance is raised instead of returned. `delay`
    makes every call sleep first, to simulate a slow service or to let
    concurrent callers interleave.
    Raises if a stage is called more times than responses were provided.
    """

    def __init__(self, responses: dict[str, list[str | BaseException]], delay: float = 0) -> None:
        self._queues: dict[str, list[str | BaseException]] = {k: list(v) for k, v in responses.items()}
        self.delay = delay
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, stage: str, prompt: str) -> str:
        self.calls.append((stage, prompt))
        queue = self._queues.get(stage)
        if not queue:
            raise AssertionError(
                f"StubLLM: unexpected call to stage={stage!r} "
                f"(no responses queued). calls so far: {self.calls}"
            )
        response = queue.pop(0)
        if self.delay:
            await asyncio.sleep(self.delay)
        if isinstance(response, BaseException):
            raise response
        return response

    def stage_calls(self, stage: str) -> list[str]:
        return [prompt for s, prompt in self.calls if s == stage]

    def assert_exhausted(self) -> None:
        """Assert every queued response was consumed; catches missing LLM calls."""
        leftover = {k: v for k, v in self._queues.items() if v}
        if leftover:
            raise AssertionError(
                f"StubLLM: unused responses remain: {leftover}"
            )
