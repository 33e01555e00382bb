"""Application service behind the HTTP API and the CLI tools.

``IntakeService`` owns the per-session locks, loads state from a
:class:`~intake_core.store.Store`, drives :class:`~intake_core.engine.IntakeSession`
and writes the results back.
"""
from __future__ import annotations

import logging
import threading
import uuid
from typing import Any, Callable, Dict, List, Optional

from . import config
from .aggregation import profile_summary, skills_needing_assessment
from .audit_export import export_rows
from .catalog import Catalog, load_catalog
from .code_runner import CodeRunner, HttpCodeRunner
from .engine import IntakeSession, utcnow_iso
from .errors import RoadmapItemNotFoundError, SessionNotFoundError
from .heuristics import TextScorer
from .intake_steps import StepSequence, load_steps
from .llm_bridge import text_scorer_for
from .mastery import update_from_challenge
from .roadmap import (
    RoadmapOptions,
    RoadmapSettings,
    generate_roadmap as build_roadmap,
    next_roadmap_item,
    roadmap_summary,
    with_status,
)
from .store import InMemoryStore, Store
from .taxonomy import Taxonomy, load_taxonomy
from .types import AssessmentSession, RoadmapItem, RoadmapStatus, SessionStatus

log = logging.getLogger(__name__)


class IntakeService:
    def __init__(
        self,
        store: Optional[Store] = None,
        steps: Optional[StepSequence] = None,
        catalog: Optional[Catalog] = None,
        taxonomy: Optional[Taxonomy] = None,
        runner: Optional[CodeRunner] = None,
        text_scorer: Optional[TextScorer] = None,
        cfg: Optional[dict] = None,
        clock: Callable[[], str] = utcnow_iso,
        new_id: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.cfg = dict(cfg or {})
        self.store: Store = store if store is not None else InMemoryStore()
        self.taxonomy = taxonomy or load_taxonomy()
        self.steps = steps or load_steps()
        self.catalog = catalog or load_catalog()
        self.runner = runner or HttpCodeRunner(
            url=self.cfg.get("CODE_RUNNER_URL"),
            client_id=self.cfg.get("JDOODLE_CLIENT_ID"),
            client_secret=self.cfg.get("JDOODLE_CLIENT_SECRET"),
        )
        self.text_scorer = text_scorer or text_scorer_for(self.cfg)
        self.roadmap_settings = RoadmapSettings.from_cfg(self.cfg)
        self._clock = clock
        self._new_id = new_id
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    # -- helpers -------------------------------------------------------------

    def _lock_for(self, key: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def _session(self, session_id: str) -> AssessmentSession:
        sess = self.store.get_session(session_id)
        if sess is None:
            raise SessionNotFoundError(f"session {session_id} not found")
        return sess

    def _machine(self, sess: AssessmentSession) -> IntakeSession:
        return IntakeSession(
            sess,
            self.steps,
            responses={r.step_id: r for r in self.store.responses_for(sess.id)},
            skills=self.store.get_skills(sess.user_id),
            runner=self.runner,
            text_scorer=self.text_scorer,
            clock=self._clock,
        )

    # -- intake --------------------------------------------------------------

    def start_session(self, user_id: str) -> Dict[str, Any]:
        """Resume the user's open intake, or start a fresh one at step 1."""
        with self._lock_for(f"user:{user_id}"):
            open_ = next(
                (s for s in self.store.sessions_for_user(user_id) if s.status is SessionStatus.IN_PROGRESS),
                None,
            )
            resuming = open_ is not None
            if open_ is None:
                first = self.steps.first()
                open_ = AssessmentSession(
                    id=self._new_id(),
                    user_id=user_id,
                    current_step_id=first.id,
                    started_at=self._clock(),
                )
                self.store.save_session(open_)
                log.info("session %s created user=%s", open_.id, user_id)
            else:
                log.info("session %s resumed user=%s step=%s", open_.id, user_id, open_.current_step_id)
            step = self.steps.get(open_.current_step_id) or self.steps.first()
            return {
                "session_id": open_.id,
                "first_step": step.public_view(),
                "total_steps": len(self.steps),
                "estimated_minutes": self.steps.total_minutes(),
                "is_resuming": resuming,
            }

    def get_current_step(self, session_id: str) -> Dict[str, Any]:
        return self._machine(self._session(session_id)).current()

    def submit_step_answer(self, session_id: str, step_id: str, answer: Any) -> Dict[str, Any]:
        with self._lock_for(session_id):
            machine = self._machine(self._session(session_id))
            outcome = machine.submit(step_id, answer)
            self.store.upsert_response(outcome.response)
            self.store.save_skills(machine.session.user_id, machine.skills)
            self.store.save_session(machine.session)
        return {
            "grade_result": outcome.grade.to_dict(),
            "skill_updates": [{"skill_key": u.skill_key, "delta": u.delta} for u in outcome.skill_updates],
            "next_step": outcome.next_step.public_view() if outcome.next_step else None,
            "is_complete": outcome.is_complete,
            "progress": outcome.progress,
        }

    def go_to_previous_step(self, session_id: str) -> Optional[Dict[str, Any]]:
        with self._lock_for(session_id):
            machine = self._machine(self._session(session_id))
            view = machine.go_back()
            if view is not None:
                self.store.save_session(machine.session)
            return view

    def abandon_session(self, session_id: str) -> None:
        with self._lock_for(session_id):
            machine = self._machine(self._session(session_id))
            machine.abandon()
            self.store.save_session(machine.session)

    def get_session_summary(self, session_id: str) -> Dict[str, Any]:
        sess = self._session(session_id)
        machine = self._machine(sess)
        profile = profile_summary(machine.skills, self.taxonomy)
        return {
            "session_id": sess.id,
            "status": sess.status.value,
            "completed_at": sess.completed_at,
            "total_steps": len(self.steps),
            "dimensions": profile["dimensions"],
            "overall_score": profile["overall_score"],
            "overall_confidence": profile["overall_confidence"],
            "step_results": machine.step_results(),
        }

    def export_responses(self, session_id: str) -> List[Dict[str, Any]]:
        sess = self._session(session_id)
        return export_rows(sess, self.store.responses_for(session_id), self.steps)

    def has_completed_intake(self, user_id: str) -> bool:
        return any(s.status is SessionStatus.COMPLETED for s in self.store.sessions_for_user(user_id))

    # -- profile -------------------------------------------------------------

    def get_skill_profile(self, user_id: str) -> Dict[str, Any]:
        skills = self.store.get_skills(user_id)
        return {
            "user_id": user_id,
            "skills": {k: v.to_dict() for k, v in sorted(skills.items())},
            "summary": profile_summary(skills, self.taxonomy),
            "needs_assessment": skills_needing_assessment(skills, taxonomy=self.taxonomy),
        }

    def record_challenge_result(self, user_id: str, tags: List[str], passed: bool, score_pct: float) -> Dict[str, Any]:
        """Fold a finished coding challenge into the user's skill masteries.

        Tags that resolve to no known skill are ignored; an empty resolution
        leaves the profile untouched.
        """
        with self._lock_for(f"user:{user_id}"):
            skills = self.store.get_skills(user_id)
            keys, updates = update_from_challenge(skills, tags, passed, score_pct, self.taxonomy)
            if updates:
                self.store.save_skills(user_id, skills)
        log.info("challenge result user=%s passed=%s skills=%s", user_id, passed, ",".join(keys) or "-")
        return {
            "skill_keys": keys,
            "skill_updates": [{"skill_key": u.skill_key, "delta": u.delta} for u in updates],
        }

    # -- roadmap -------------------------------------------------------------

    def generate_roadmap(
        self,
        user_id: str,
        target_role: Optional[str] = None,
        max_weeks: Optional[int] = None,
        hours_per_week: Optional[float] = None,
        regenerate: bool = False,
        focus_on_weak_areas: Optional[bool] = None,
    ) -> List[RoadmapItem]:
        """Return the user's roadmap, building one when absent or when ``regenerate``."""
        with self._lock_for(f"roadmap:{user_id}"):
            existing = self.store.get_roadmap(user_id)
            if existing and not regenerate:
                return existing
            opts = RoadmapOptions(
                target_role=target_role or config.ROADMAP_DEFAULT_ROLE,
                max_weeks=config.ROADMAP_DEFAULT_MAX_WEEKS if max_weeks is None else max_weeks,
                hours_per_week=config.ROADMAP_DEFAULT_HOURS_PER_WEEK if hours_per_week is None else hours_per_week,
                focus_on_weak_areas=(config.ROADMAP_FOCUS_ON_WEAK_AREAS
                                     if focus_on_weak_areas is None else focus_on_weak_areas),
            )
            items = build_roadmap(
                user_id,
                self.store.get_skills(user_id),
                options=opts,
                previous=existing,
                settings=self.roadmap_settings,
                catalog=self.catalog,
                taxonomy=self.taxonomy,
                new_id=self._new_id,
            )
            self.store.replace_roadmap(user_id, items)
            return items

    def get_roadmap(self, user_id: str) -> List[RoadmapItem]:
        return sorted(self.store.get_roadmap(user_id), key=lambda i: (i.phase, i.order))

    def get_roadmap_summary(self, user_id: str) -> Dict[str, Any]:
        items = self.get_roadmap(user_id)
        out = roadmap_summary(items, self.catalog)
        nxt = next_roadmap_item(items)
        out["next_item"] = nxt.to_dict() if nxt else None
        return out

    def update_roadmap_item_status(self, user_id: str, item_id: str, status: RoadmapStatus) -> RoadmapItem:
        with self._lock_for(f"roadmap:{user_id}"):
            items = self.store.get_roadmap(user_id)
            for i, item in enumerate(items):
                if item.id == item_id:
                    items[i] = with_status(item, RoadmapStatus(status), self._clock())
                    self.store.replace_roadmap(user_id, items)
                    log.info("roadmap item %s user=%s -> %s", item_id, user_id, items[i].status.value)
                    return items[i]
        raise RoadmapItemNotFoundError(f"roadmap item {item_id} not found for user {user_id}")
