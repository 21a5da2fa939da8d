"""JSON file storage for narrative sessions.

All state is stored in flat JSON files under a configurable base directory.
There is no database or ORM; reads and writes go through plain helper
methods that load and dump JSON.

Directory layout:

    {base}/
      sessions/
        {session_id}/
          segments.json       ← append-only NarrativeSegment stream
          decisions.json      ← list of Decision objects

The generation controller treats this store as the single source of truth
and re-reads it before any only-once action.
"""

from __future__ import annotations

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Protocol

from storyloom.models import Decision, DecisionOption, NarrativeSegment

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    def append_segment(self, session_id: str, segment: NarrativeSegment) -> None: ...

    def append_initial_segment(self, session_id: str, segment: NarrativeSegment) -> bool: ...

    def append_decision(self, session_id: str, decision: Decision) -> str: ...

    def get_segments(self, session_id: str) -> list[NarrativeSegment]: ...

    def get_decisions(self, session_id: str) -> list[Decision]: ...

    def select_option(self, session_id: str, decision_id: str, option_id: str) -> None: ...

    def add_option(self, session_id: str, decision_id: str, option: DecisionOption) -> None: ...


class Storage:
    def __init__(self, base_path: Path) -> None:
        self._base = base_path
        self._sessions_root = base_path / "sessions"
        self._sessions_root.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Internal path helpers
    # ------------------------------------------------------------------

    def _session_dir(self, session_id: str) -> Path:
        path = self._sessions_root / session_id
        path.mkdir(exist_ok=True)
        return path

    def _read_json(self, path: Path) -> Any:
        return json.loads(path.read_text())

    def _write_json(self, path: Path, data: Any) -> None:
        path.write_text(json.dumps(data, indent=2))

    # ------------------------------------------------------------------
    # Segments (append-only)
    # ------------------------------------------------------------------

    def get_segments(self, session_id: str) -> list[NarrativeSegment]:
        path = self._session_dir(session_id) / "segments.json"
        if not path.exists():
            return []
        return [NarrativeSegment.model_validate(s) for s in self._read_json(path)]

    def append_segment(self, session_id: str, segment: NarrativeSegment) -> None:
        existing = self.get_segments(session_id)
        if any(s.id == segment.id for s in existing):
            raise ValueError(f"Segment {segment.id!r} already exists in session {session_id!r}")
        existing.append(segment)
        self._write_segments(session_id, existing)

    def append_initial_segment(self, session_id: str, segment: NarrativeSegment) -> bool:
        """Append only if the session has no segments yet.

        Returns False (and writes nothing) when another writer got there first.
        """
        if self.get_segments(session_id):
            logger.warning("initial segment rejected: session=%s already has segments", session_id)
            return False
        self._write_segments(session_id, [segment])
        return True

    def _write_segments(self, session_id: str, segments: list[NarrativeSegment]) -> None:
        self._write_json(
            self._session_dir(session_id) / "segments.json",
            [s.model_dump(mode="json") for s in segments],
        )

    # ------------------------------------------------------------------
    # Decisions
    # ------------------------------------------------------------------

    def get_decisions(self, session_id: str) -> list[Decision]:
        path = self._session_dir(session_id) / "decisions.json"
        if not path.exists():
            return []
        return [Decision.model_validate(d) for d in self._read_json(path)]

    def get_latest_decision(self, session_id: str) -> Decision | None:
        decisions = self.get_decisions(session_id)
        return decisions[-1] if decisions else None

    def append_decision(self, session_id: str, decision: Decision) -> str:
        """Persist a decision and return its stored id."""
        decisions = self.get_decisions(session_id)
        decisions.append(decision)
        self._write_decisions(session_id, decisions)
        return decision.id

    def select_option(self, session_id: str, decision_id: str, option_id: str) -> None:
        """Record the player's pick. The only mutation a stored decision allows."""
        decisions = self.get_decisions(session_id)
        for i, d in enumerate(decisions):
            if d.id == decision_id:
                decisions[i] = d.model_copy(update={"selected_option_id": option_id})
                break
        else:
            raise KeyError(f"Decision {decision_id!r} not found in session {session_id!r}")
        self._write_decisions(session_id, decisions)

    def add_option(self, session_id: str, decision_id: str, option: DecisionOption) -> None:
        """Attach a free-text custom option to a stored decision."""
        decisions = self.get_decisions(session_id)
        for i, d in enumerate(decisions):
            if d.id == decision_id:
                if d.find_option(option.id) is not None:
                    raise ValueError(f"Option {option.id!r} already exists on {decision_id!r}")
                decisions[i] = d.model_copy(update={"options": [*d.options, option]})
                break
        else:
            raise KeyError(f"Decision {decision_id!r} not found in session {session_id!r}")
        self._write_decisions(session_id, decisions)

    def _write_decisions(self, session_id: str, decisions: list[Decision]) -> None:
        self._write_json(
            self._session_dir(session_id) / "decisions.json",
            [d.model_dump(mode="json") for d in decisions],
        )

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def delete_session(self, session_id: str) -> None:
        path = self._sessions_root / session_id
        if path.exists():
            shutil.rmtree(path)
