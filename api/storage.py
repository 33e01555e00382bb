"""JSON-file persistence for intake sessions, responses, masteries and roadmaps.

The production deployment should ideally swap this module for a proper
database-backed implementation.  For now we keep simple JSON files under
``DATA_DIR`` so sessions survive API restarts and can be resumed.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

from intake_core.types import AssessmentResponse, AssessmentSession, RoadmapItem, SkillMastery

log = logging.getLogger(__name__)

DATA_ROOT = Path(os.getenv("DATA_DIR", "data")).resolve()
SESSIONS_PATH = DATA_ROOT / "sessions.json"
RESPONSES_DIR = DATA_ROOT / "responses"
SKILLS_PATH = DATA_ROOT / "skills.json"
ROADMAPS_PATH = DATA_ROOT / "roadmaps.json"

_LOCK = threading.Lock()


def _ensure_dirs() -> None:
    DATA_ROOT.mkdir(parents=True, exist_ok=True)
    RESPONSES_DIR.mkdir(parents=True, exist_ok=True)


def _read_json(path: Path, default: Any) -> Any:
    if not path.exists():
        return default
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("unreadable store file %s: %s", path, exc)
        return default


def _write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
    tmp.replace(path)


def _responses_path(session_id: str) -> Path:
    return RESPONSES_DIR / f"{session_id}.json"


class JsonFileStore:
    """``Store`` implementation over the JSON files above."""

    def __init__(self) -> None:
        _ensure_dirs()

    def get_session(self, session_id: str) -> Optional[AssessmentSession]:
        raw = _read_json(SESSIONS_PATH, {}).get(session_id)
        return AssessmentSession.from_dict(raw) if raw else None

    def save_session(self, session: AssessmentSession) -> None:
        with _LOCK:
            sessions: Dict[str, Dict[str, Any]] = _read_json(SESSIONS_PATH, {})
            sessions[session.id] = session.to_dict()
            _write_json(SESSIONS_PATH, sessions)

    def sessions_for_user(self, user_id: str) -> List[AssessmentSession]:
        sessions: Dict[str, Dict[str, Any]] = _read_json(SESSIONS_PATH, {})
        out = [AssessmentSession.from_dict(s) for s in sessions.values() if s.get("user_id") == user_id]
        out.sort(key=lambda s: s.started_at, reverse=True)
        return out

    def upsert_response(self, response: AssessmentResponse) -> None:
        path = _responses_path(response.session_id)
        with _LOCK:
            rows: Dict[str, Dict[str, Any]] = _read_json(path, {})
            rows[response.step_id] = response.to_dict()
            _write_json(path, rows)

    def responses_for(self, session_id: str) -> List[AssessmentResponse]:
        rows: Dict[str, Dict[str, Any]] = _read_json(_responses_path(session_id), {})
        return [AssessmentResponse.from_dict(r) for r in rows.values()]

    def get_skills(self, user_id: str) -> Dict[str, SkillMastery]:
        raw = _read_json(SKILLS_PATH, {}).get(user_id) or {}
        return {k: SkillMastery.from_dict(v) for k, v in raw.items()}

    def save_skills(self, user_id: str, skills: Dict[str, SkillMastery]) -> None:
        with _LOCK:
            everyone: Dict[str, Dict[str, Any]] = _read_json(SKILLS_PATH, {})
            everyone[user_id] = {k: v.to_dict() for k, v in skills.items()}
            _write_json(SKILLS_PATH, everyone)

    def get_roadmap(self, user_id: str) -> List[RoadmapItem]:
        raw = _read_json(ROADMAPS_PATH, {}).get(user_id) or []
        return [RoadmapItem.from_dict(r) for r in raw]

    def replace_roadmap(self, user_id: str, items: List[RoadmapItem]) -> None:
        with _LOCK:
            everyone: Dict[str, List[Dict[str, Any]]] = _read_json(ROADMAPS_PATH, {})
            everyone[user_id] = [i.to_dict() for i in items]
            _write_json(ROADMAPS_PATH, everyone)
