"""Parsers for structured generation output.

Parsers never raise. They return a ParseResult holding either the parsed
value or the failure (ParseFailure / ValidationFailure), so the controller
decides in one place what a bad response means.
"""

from __future__ import annotations

import json
import re
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from storyloom.generation.errors import GenerationError, ParseFailure, ValidationFailure
from storyloom.models import Alignment, Decision, DecisionOption, DecisionWeight, EndingType, new_id

MAX_OPTIONS = 4

ENDING_TYPES: tuple[str, ...] = ("story-complete", "character-retirement", "session-limit")
ACCEPTED_CONFIDENCE: tuple[str, ...] = ("high", "medium")


class ParseResult(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    value: Any = None
    error: GenerationError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Any) -> ParseResult:
        return cls(value=value)

    @classmethod
    def failure(cls, error: GenerationError) -> ParseResult:
        return cls(error=error)


def strip_code_fences(text: str) -> str:
    """Remove a markdown ```json ... ``` wrapper if present."""
    cleaned = text.strip()
    if cleaned.startswith("```"):
        lines = cleaned.split("\n")
        lines = [l for l in lines[1:] if not l.strip().startswith("```")]
        cleaned = "\n".join(lines)
    return cleaned.strip()


def parse_json(text: str) -> ParseResult:
    try:
        return ParseResult.success(json.loads(strip_code_fences(text)))
    except json.JSONDecodeError as e:
        return ParseResult.failure(ParseFailure(f"Output is not valid JSON: {e}"))


# ---------------------------------------------------------------------------
# Ending analysis
# ---------------------------------------------------------------------------

class EndingAnalysis(BaseModel):
    suggest_ending: bool = Field(default=False, alias="suggestEnding")
    confidence: str = "low"
    ending_type: str = Field(default="none", alias="endingType")
    reason: str = ""

    def suggestion(self) -> tuple[str, EndingType] | None:
        """(reason, ending type) if this analysis should be acted on, else None."""
        if not self.suggest_ending or self.confidence not in ACCEPTED_CONFIDENCE:
            return None
        ending_type = self.ending_type if self.ending_type in ENDING_TYPES else "story-complete"
        return self.reason, ending_type


def parse_ending_analysis(text: str) -> ParseResult:
    result = parse_json(text)
    if not result.ok:
        return result
    if not isinstance(result.value, dict):
        return ParseResult.failure(ParseFailure("Ending analysis must be a JSON object"))
    try:
        return ParseResult.success(EndingAnalysis.model_validate(result.value))
    except ValidationError as e:
        return ParseResult.failure(ParseFailure(f"Ending analysis has invalid fields: {e}"))


# ---------------------------------------------------------------------------
# Player choices
# ---------------------------------------------------------------------------

_ALIGNMENTS: dict[str, Alignment] = {
    "lawful": "lawful",
    "neutral": "neutral",
    "chaos": "chaos",
    "chaotic": "chaos",
}
_WEIGHTS: tuple[str, ...] = ("minor", "major", "critical")


def _alignment(value: Any) -> Alignment:
    return _ALIGNMENTS.get(str(value or "").strip().lower(), "neutral")


def _weight(value: Any) -> DecisionWeight | None:
    text = str(value or "").strip().lower()
    return text if text in _WEIGHTS else None  # type: ignore[return-value]


def _option(text: str, alignment: Any = None, hint: str | None = None) -> DecisionOption:
    return DecisionOption(
        id=new_id("option"), text=text.strip(), alignment=_alignment(alignment), hint=hint,
    )


def _decision_from_json(data: Any) -> Decision | None:
    if isinstance(data, list):
        data = {"options": data}
    if not isinstance(data, dict):
        return None
    options: list[DecisionOption] = []
    for raw in data.get("options") or []:
        if isinstance(raw, str) and raw.strip():
            options.append(_option(raw))
        elif isinstance(raw, dict) and str(raw.get("text", "")).strip():
            hint = raw.get("hint")
            options.append(_option(str(raw["text"]), raw.get("alignment"), str(hint) if hint else None))
    summary = data.get("contextSummary")
    return Decision(
        id=new_id("decision"),
        prompt=str(data.get("prompt") or "What will you do?").strip(),
        options=options,
        decision_weight=_weight(data.get("decisionWeight")),
        context_summary=str(summary) if summary else None,
    )


_WEIGHT_LINE = re.compile(r"Decision Weight:?\s*\[?([^\]\n]+)\]?\s*\n?", re.IGNORECASE)
_SUMMARY_LINE = re.compile(r"Context Summary:?\s*([^\n]+)", re.IGNORECASE)
_PROMPT = re.compile(r"Decision:?\s*([\s\S]+?)(?=\n\s*(?:Options:|\d+\.|[-*]\s)|$)", re.IGNORECASE)
_NUMBERED = re.compile(r"^\s*\d+\.\s*(.+)$", re.MULTILINE)
_BULLETED = re.compile(r"^\s*[-*]\s*(.+)$", re.MULTILINE)
_TAGGED = re.compile(r"^\[([^\]]+)\]\s*(.+)$")


def _decision_from_text(text: str) -> Decision:
    weight_match = _WEIGHT_LINE.search(text)
    weight = _weight(weight_match.group(1)) if weight_match else None
    cleaned = _WEIGHT_LINE.sub("", text)

    summary_match = _SUMMARY_LINE.search(cleaned)
    summary = summary_match.group(1).strip() if summary_match else None
    cleaned = _SUMMARY_LINE.sub("", cleaned)

    prompt_match = _PROMPT.search(cleaned)
    prompt = prompt_match.group(1).strip() if prompt_match else "What will you do?"

    lines = _NUMBERED.findall(cleaned) or _BULLETED.findall(cleaned)
    options: list[DecisionOption] = []
    for line in lines:
        line = line.strip()
        if not line:
            continue
        tagged = _TAGGED.match(line)
        if tagged:
            options.append(_option(tagged.group(2), tagged.group(1)))
        else:
            options.append(_option(line))
    return Decision(
        id=new_id("decision"),
        prompt=prompt,
        options=options,
        decision_weight=weight,
        context_summary=summary,
    )


def parse_choice_response(text: str) -> ParseResult:
    """Parse generated choices given as JSON or as a "Decision: / 1. ..." listing.

    A response with no usable options is a ValidationFailure.
    """
    if not text or not text.strip():
        return ParseResult.failure(ValidationFailure("Choice response is empty"))

    as_json = parse_json(text)
    decision = _decision_from_json(as_json.value) if as_json.ok else None
    if decision is None:
        decision = _decision_from_text(strip_code_fences(text))

    if not decision.options:
        return ParseResult.failure(ValidationFailure("Choice response has no options"))
    if len(decision.options) > MAX_OPTIONS:
        decision = decision.model_copy(update={"options": decision.options[:MAX_OPTIONS]})
    return ParseResult.success(decision)

