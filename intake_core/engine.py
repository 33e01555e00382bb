# intake_core/engine.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional
from datetime import datetime, timezone
import logging

from .code_runner import CodeRunner
from .config import DEBUG_TRACE, DEFAULT_UPDATE_WEIGHT, TRACE_FIELDS
from .errors import InvalidStepError, SessionCompletedError
from .heuristics import TextScorer
from .intake_steps import IntakeStep, StepSequence
from .mastery import apply_scores, apply_self_report
from .scoring import grade_step
from .types import (
    AssessmentResponse,
    AssessmentSession,
    GradeResult,
    SessionStatus,
    SkillMastery,
    SkillUpdate,
    StepKind,
)


log = logging.getLogger(__name__)


def utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _emit_trace(**values: object) -> None:
    if not DEBUG_TRACE:
        return
    ordered = []
    for key in TRACE_FIELDS:
        if key in values:
            ordered.append(f"{key}={values[key]}")
    if ordered:
        log.info("trace %s", " ".join(str(val) for val in ordered))


@dataclass
class SubmitOutcome:
    grade: GradeResult
    skill_updates: List[SkillUpdate]
    next_step: Optional[IntakeStep]
    is_complete: bool
    progress: int
    response: AssessmentResponse = field(repr=False, default=None)  # type: ignore[assignment]


class IntakeSession:
    """State machine over one assessment session.

    Holds the session row, its response log keyed by step id, and the
    learner's mastery map.  Callers persist ``session``, ``responses`` and
    ``skills`` after each mutating call and serialize calls per session.
    """

    def __init__(
        self,
        session: AssessmentSession,
        steps: StepSequence,
        responses: Optional[Dict[str, AssessmentResponse]] = None,
        skills: Optional[Dict[str, SkillMastery]] = None,
        runner: Optional[CodeRunner] = None,
        text_scorer: Optional[TextScorer] = None,
        clock: Callable[[], str] = utcnow_iso,
    ):
        self.session = session
        self.steps = steps
        self.responses: Dict[str, AssessmentResponse] = dict(responses or {})
        self.skills: Dict[str, SkillMastery] = dict(skills or {})
        self.runner = runner
        self.text_scorer = text_scorer
        self._clock = clock

    @property
    def is_open(self) -> bool:
        return self.session.status is SessionStatus.IN_PROGRESS

    @property
    def current_step(self) -> IntakeStep:
        step = self.steps.get(self.session.current_step_id)
        if step is None:
            # the configured step list changed under a live session
            raise InvalidStepError(f"session {self.session.id} points at unknown step {self.session.current_step_id!r}")
        return step

    def current(self) -> Dict[str, Any]:
        step = self.current_step
        prev = self.responses.get(step.id)
        return {
            "step": step.public_view(),
            "progress": self.steps.progress(step.id),
            "previous_answer": prev.answer if prev is not None else None,
            "can_go_back": self.is_open and self.steps.index_of(step.id) > 0,
        }

    def submit(self, step_id: str, answer: Any) -> SubmitOutcome:
        if not self.is_open:
            raise SessionCompletedError(f"session {self.session.id} is {self.session.status.value}")
        step = self.steps.get(step_id)
        if step is None:
            raise InvalidStepError(f"unknown step {step_id!r}")
        if step.id != self.session.current_step_id:
            raise InvalidStepError(f"step {step_id!r} is not the current step ({self.session.current_step_id!r})")

        grade = grade_step(step, answer, runner=self.runner, text_scorer=self.text_scorer)
        weight = grade.confidence if grade.confidence is not None else DEFAULT_UPDATE_WEIGHT
        if step.kind is StepKind.QUESTIONNAIRE:
            updates = apply_self_report(self.skills, grade.skill_scores, weight)
        else:
            updates = apply_scores(self.skills, grade.skill_scores, weight)

        response = AssessmentResponse(
            session_id=self.session.id,
            step_id=step.id,
            answer=answer,
            grade=grade,
            skill_updates=updates,
            submitted_at=self._clock(),
        )
        self.responses[step.id] = response

        nxt = None if step.kind is StepKind.SUMMARY else self.steps.next_after(step.id)
        if nxt is None:
            self.session.status = SessionStatus.COMPLETED
            self.session.completed_at = self._clock()
            log.info("session %s completed user=%s", self.session.id, self.session.user_id)
        else:
            self.session.current_step_id = nxt.id

        _emit_trace(
            session=self.session.id,
            step=step.id,
            kind=step.kind.value,
            score=round(grade.score, 3),
            passed=grade.passed,
            confidence=grade.confidence,
            skills=",".join(u.skill_key for u in updates) or "-",
        )
        return SubmitOutcome(
            grade=grade,
            skill_updates=updates,
            next_step=nxt,
            is_complete=nxt is None,
            progress=100 if nxt is None else self.steps.progress(step.id),
            response=response,
        )

    def go_back(self) -> Optional[Dict[str, Any]]:
        """Move the cursor one step back; None when on the first step or closed."""
        if not self.is_open:
            return None
        prev = self.steps.previous_before(self.session.current_step_id)
        if prev is None:
            return None
        self.session.current_step_id = prev.id
        return self.current()

    def abandon(self) -> None:
        if self.session.status is SessionStatus.COMPLETED:
            raise SessionCompletedError(f"session {self.session.id} is already completed")
        self.session.status = SessionStatus.ABANDONED
        log.info("session %s abandoned", self.session.id)

    def step_results(self) -> List[Dict[str, Any]]:
        out = []
        for resp in sorted(self.responses.values(), key=lambda r: r.submitted_at):
            step = self.steps.get(resp.step_id)
            out.append({
                "step_id": resp.step_id,
                "step_title": step.title if step else resp.step_id,
                "grade_result": resp.grade.to_dict(),
            })
        return out
