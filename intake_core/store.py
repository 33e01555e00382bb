from __future__ import annotations

import threading
from typing import Dict, List, Optional, Protocol

from .types import AssessmentResponse, AssessmentSession, RoadmapItem, SkillMastery


class Store(Protocol):
    """Persistence collaborator for sessions, responses, masteries and roadmaps.

    Responses are keyed by (session_id, step_id) and mastery by
    (user_id, skill_key); writes to an existing key replace it.
    """

    def get_session(self, session_id: str) -> Optional[AssessmentSession]: ...

    def save_session(self, session: AssessmentSession) -> None: ...

    def sessions_for_user(self, user_id: str) -> List[AssessmentSession]: ...

    def upsert_response(self, response: AssessmentResponse) -> None: ...

    def responses_for(self, session_id: str) -> List[AssessmentResponse]: ...

    def get_skills(self, user_id: str) -> Dict[str, SkillMastery]: ...

    def save_skills(self, user_id: str, skills: Dict[str, SkillMastery]) -> None: ...

    def get_roadmap(self, user_id: str) -> List[RoadmapItem]: ...

    def replace_roadmap(self, user_id: str, items: List[RoadmapItem]) -> None: ...


class InMemoryStore:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._sessions: Dict[str, AssessmentSession] = {}
        self._responses: Dict[str, Dict[str, AssessmentResponse]] = {}
        self._skills: Dict[str, Dict[str, SkillMastery]] = {}
        self._roadmaps: Dict[str, List[RoadmapItem]] = {}

    def get_session(self, session_id: str) -> Optional[AssessmentSession]:
        with self._lock:
            s = self._sessions.get(session_id)
            return None if s is None else AssessmentSession.from_dict(s.to_dict())

    def save_session(self, session: AssessmentSession) -> None:
        with self._lock:
            self._sessions[session.id] = AssessmentSession.from_dict(session.to_dict())

    def sessions_for_user(self, user_id: str) -> List[AssessmentSession]:
        with self._lock:
            out = [AssessmentSession.from_dict(s.to_dict()) for s in self._sessions.values() if s.user_id == user_id]
        out.sort(key=lambda s: s.started_at, reverse=True)
        return out

    def upsert_response(self, response: AssessmentResponse) -> None:
        with self._lock:
            self._responses.setdefault(response.session_id, {})[response.step_id] = response

    def responses_for(self, session_id: str) -> List[AssessmentResponse]:
        with self._lock:
            return list(self._responses.get(session_id, {}).values())

    def get_skills(self, user_id: str) -> Dict[str, SkillMastery]:
        with self._lock:
            return dict(self._skills.get(user_id, {}))

    def save_skills(self, user_id: str, skills: Dict[str, SkillMastery]) -> None:
        with self._lock:
            self._skills[user_id] = dict(skills)

    def get_roadmap(self, user_id: str) -> List[RoadmapItem]:
        with self._lock:
            return [RoadmapItem.from_dict(i.to_dict()) for i in self._roadmaps.get(user_id, [])]

    def replace_roadmap(self, user_id: str, items: List[RoadmapItem]) -> None:
        with self._lock:
            self._roadmaps[user_id] = [RoadmapItem.from_dict(i.to_dict()) for i in items]
