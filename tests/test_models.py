"""Tests for the pydantic domain models."""

import pytest
from pydantic import ValidationError

from storyloom.models import (
    Decision,
    DecisionOption,
    FallbackContent,
    GenerationSettings,
    NarrativeSegment,
    new_id,
)


def test_new_id_prefix_and_uniqueness():
    a, b = new_id("segment"), new_id("segment")
    assert a.startswith("segment-")
    assert a != b


def test_segment_defaults():
    seg = NarrativeSegment(id="s1", content="Rain.", session_id="sess", world_id="w")
    assert seg.type == "scene"
    assert seg.metadata.is_ai_generated is True
    assert seg.metadata.tags == []
    assert seg.timestamp.tzinfo is not None


def test_segment_rejects_unknown_type():
    with pytest.raises(ValidationError):
        NarrativeSegment(id="s1", content="x", type="monologue", session_id="s", world_id="w")


def test_segment_json_round_trip_keeps_metadata():
    seg = NarrativeSegment(id="s1", content="x", session_id="s", world_id="w")
    seg.metadata.location = "Starting Location"
    restored = NarrativeSegment.model_validate(seg.model_dump(mode="json"))
    assert restored == seg


def test_decision_find_option():
    decision = Decision(id="d1", prompt="?", options=[
        DecisionOption(id="o1", text="Run", alignment="chaos"),
        DecisionOption(id="o2", text="Wait"),
    ])
    assert decision.find_option("o1").text == "Run"
    assert decision.find_option("missing") is None


def test_option_alignment_is_restricted():
    with pytest.raises(ValidationError):
        DecisionOption(id="o1", text="x", alignment="evil")


def test_fallback_content_weight_defaults_and_bounds():
    content = FallbackContent(id="c", type="scene", themes=["fantasy"], content="text")
    assert content.weight == 1
    with pytest.raises(ValidationError):
        FallbackContent(id="c", type="scene", themes=["fantasy"], content="text", weight=-1)


def test_generation_settings_defaults():
    settings = GenerationSettings()
    assert settings.choice_timeout == 15.0
    assert settings.choice_delay == 0.5
    assert settings.custom_choice_delay == 2.0
    assert settings.context_window == 5
    assert settings.ending_min_segments == 3
