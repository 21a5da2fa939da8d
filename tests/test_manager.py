"""Tests for FallbackContentManager and its recently-used window."""

import random

from storyloom.fallback.manager import FallbackContentManager, UsageHistory
from storyloom.fallback.selector import ContentSelector
from storyloom.models import FallbackContent, NarrativeContext, NarrativeSegment, World

FANTASY = World(id="w", name="Eldoria", theme="fantasy")


def _context(tags=(), segments: int = 0) -> NarrativeContext:
    return NarrativeContext(
        world_id="w",
        session_id="sess",
        current_tags=list(tags),
        previous_segments=[
            NarrativeSegment(id=f"s{i}", content="x", session_id="sess", world_id="w")
            for i in range(segments)
        ],
    )


def _pool(n: int) -> list[FallbackContent]:
    return [
        FallbackContent(id=f"c{i}", type="scene", themes=["fantasy"], content=f"scene {i}")
        for i in range(n)
    ]


# ── UsageHistory ─────────────────────────────────────────────


def test_history_evicts_oldest():
    history = UsageHistory(capacity=3)
    for content_id in ("a", "b", "c", "d"):
        history.add(content_id)
    assert history.ids() == ["b", "c", "d"]
    assert "a" not in history


def test_history_readd_moves_to_newest():
    history = UsageHistory(capacity=3)
    for content_id in ("a", "b", "a", "c", "d"):
        history.add(content_id)
    assert history.ids() == ["a", "c", "d"]
    assert len(history) == 3


# ── get_content ──────────────────────────────────────────────


def test_records_usage_and_avoids_repeats():
    manager = FallbackContentManager(_pool(3), ContentSelector(random.Random(5)))
    picked = {manager.get_content("scene", _context(), FANTASY).id for _ in range(3)}
    assert picked == {"c0", "c1", "c2"}
    assert manager.get_content("scene", _context(), FANTASY) is None


def test_history_window_is_ten():
    manager = FallbackContentManager(_pool(11), ContentSelector(random.Random(5)))
    first = manager.get_content("scene", _context(), FANTASY).id
    for _ in range(10):
        manager.get_content("scene", _context(), FANTASY)
    # eleven distinct picks; the first has now aged out of the window
    assert len(manager.recently_used) == 10
    assert first not in manager.recently_used
    assert manager.get_content("scene", _context(), FANTASY).id == first


def test_clear_usage_history():
    manager = FallbackContentManager(_pool(1))
    assert manager.get_content("scene", _context(), FANTASY) is not None
    assert manager.get_content("scene", _context(), FANTASY) is None
    manager.clear_usage_history()
    assert manager.recently_used == []
    assert manager.get_content("scene", _context(), FANTASY).id == "c0"


def test_no_content_does_not_touch_history():
    manager = FallbackContentManager(_pool(1))
    assert manager.get_content("transition", _context(), FANTASY) is None
    assert manager.recently_used == []


def test_context_drives_requirements():
    manager = FallbackContentManager()
    picked = manager.get_content("scene", _context(["forest", "combat"], segments=3), FANTASY)
    assert picked.id == "fantasy-combat-1"


def test_world_theme_selects_repository():
    manager = FallbackContentManager()
    picked = manager.get_content("initial", _context(), World(id="w", name="Kepler", theme="scifi"))
    assert picked.id == "scifi-init-1"


def test_shared_history_between_managers():
    history = UsageHistory()
    one = FallbackContentManager(_pool(1), history=history)
    two = FallbackContentManager(_pool(1), history=history)
    one.get_content("scene", _context(), FANTASY)
    assert two.get_content("scene", _context(), FANTASY) is None


# ── Introspection ────────────────────────────────────────────


def test_has_content():
    manager = FallbackContentManager()
    assert manager.has_content("fantasy")
    assert manager.has_content("horror")
    assert not manager.has_content("western")


def test_get_content_count():
    manager = FallbackContentManager()
    assert manager.get_content_count("fantasy", "initial") == 2
    assert manager.get_content_count("fantasy", "transition") == 2
    assert manager.get_content_count("scifi", "scene") == 1
    assert manager.get_content_count("western", "scene") == 0
