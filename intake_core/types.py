from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class StepKind(str, Enum):
    QUESTIONNAIRE = "QUESTIONNAIRE"
    MCQ = "MCQ"
    MICRO_MCQ_BURST = "MICRO_MCQ_BURST"
    SHORT_TEXT = "SHORT_TEXT"
    CODE = "CODE"
    DESIGN_COMPARISON = "DESIGN_COMPARISON"
    DESIGN_CRITIQUE = "DESIGN_CRITIQUE"
    SUMMARY = "SUMMARY"


class SessionStatus(str, Enum):
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    ABANDONED = "ABANDONED"


class ResourceType(str, Enum):
    READING = "READING"
    EXERCISE = "EXERCISE"
    PROJECT = "PROJECT"
    DESIGN = "DESIGN"
    COURSE = "COURSE"
    MILESTONE = "MILESTONE"


class RoadmapItemType(str, Enum):
    SKILL = "SKILL"
    EXERCISE = "EXERCISE"
    PROJECT = "PROJECT"
    DESIGN = "DESIGN"
    COURSE = "COURSE"
    MILESTONE = "MILESTONE"


class RoadmapStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"


@dataclass(frozen=True)
class SkillMastery:
    mastery: float = 0.5
    confidence: float = 0.0
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"mastery": self.mastery, "confidence": self.confidence, "attempts": self.attempts}

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "SkillMastery":
        return SkillMastery(
            mastery=float(raw.get("mastery", 0.5)),
            confidence=float(raw.get("confidence", 0.0)),
            attempts=int(raw.get("attempts", 0)),
        )


@dataclass(frozen=True)
class SkillUpdate:
    skill_key: str
    previous_mastery: float
    new_mastery: float
    previous_confidence: float
    new_confidence: float

    @property
    def delta(self) -> float:
        return self.new_mastery - self.previous_mastery

    def to_dict(self) -> Dict[str, Any]:
        return {
            "skill_key": self.skill_key,
            "previous_mastery": self.previous_mastery,
            "new_mastery": self.new_mastery,
            "previous_confidence": self.previous_confidence,
            "new_confidence": self.new_confidence,
            "delta": self.delta,
        }


@dataclass(frozen=True)
class DimensionScore:
    dimension: str
    score: float
    confidence: float
    assessed_count: int
    skill_count: int


@dataclass
class GradeResult:
    score: float
    passed: bool
    skill_scores: Dict[str, float] = field(default_factory=dict)
    confidence: Optional[float] = None
    feedback: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "passed": self.passed,
            "skill_scores": dict(self.skill_scores),
            "confidence": self.confidence,
            "feedback": self.feedback,
            "details": dict(self.details),
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "GradeResult":
        return GradeResult(
            score=float(raw.get("score", 0.0)),
            passed=bool(raw.get("passed", False)),
            skill_scores=dict(raw.get("skill_scores") or {}),
            confidence=raw.get("confidence"),
            feedback=str(raw.get("feedback") or ""),
            details=dict(raw.get("details") or {}),
        )


@dataclass
class AssessmentSession:
    id: str
    user_id: str
    current_step_id: str
    started_at: str
    session_type: str = "INTAKE"
    status: SessionStatus = SessionStatus.IN_PROGRESS
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "session_type": self.session_type,
            "status": self.status.value,
            "current_step_id": self.current_step_id,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "AssessmentSession":
        return AssessmentSession(
            id=raw["id"],
            user_id=raw["user_id"],
            session_type=raw.get("session_type", "INTAKE"),
            status=SessionStatus(raw.get("status", SessionStatus.IN_PROGRESS.value)),
            current_step_id=raw["current_step_id"],
            started_at=raw["started_at"],
            completed_at=raw.get("completed_at"),
        )


@dataclass
class AssessmentResponse:
    session_id: str
    step_id: str
    answer: Any
    grade: GradeResult
    skill_updates: List[SkillUpdate]
    submitted_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "session_id": self.session_id,
            "step_id": self.step_id,
            "answer": self.answer,
            "grade": self.grade.to_dict(),
            "skill_updates": [u.to_dict() for u in self.skill_updates],
            "submitted_at": self.submitted_at,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "AssessmentResponse":
        updates = [
            SkillUpdate(
                skill_key=u["skill_key"],
                previous_mastery=float(u["previous_mastery"]),
                new_mastery=float(u["new_mastery"]),
                previous_confidence=float(u["previous_confidence"]),
                new_confidence=float(u["new_confidence"]),
            )
            for u in raw.get("skill_updates") or []
        ]
        return AssessmentResponse(
            session_id=raw["session_id"],
            step_id=raw["step_id"],
            answer=raw.get("answer"),
            grade=GradeResult.from_dict(raw.get("grade") or {}),
            skill_updates=updates,
            submitted_at=raw["submitted_at"],
        )


@dataclass
class RoadmapItem:
    id: str
    user_id: str
    resource_id: str
    title: str
    description: str
    item_type: RoadmapItemType
    phase: int
    order: int
    skill_keys: List[str]
    difficulty: int
    estimated_hours: float
    status: RoadmapStatus = RoadmapStatus.NOT_STARTED
    completed_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "user_id": self.user_id,
            "resource_id": self.resource_id,
            "title": self.title,
            "description": self.description,
            "item_type": self.item_type.value,
            "phase": self.phase,
            "order": self.order,
            "skill_keys": list(self.skill_keys),
            "difficulty": self.difficulty,
            "estimated_hours": self.estimated_hours,
            "status": self.status.value,
            "completed_at": self.completed_at,
        }

    @staticmethod
    def from_dict(raw: Dict[str, Any]) -> "RoadmapItem":
        return RoadmapItem(
            id=raw["id"],
            user_id=raw["user_id"],
            resource_id=raw["resource_id"],
            title=raw.get("title", ""),
            description=raw.get("description", ""),
            item_type=RoadmapItemType(raw["item_type"]),
            phase=int(raw["phase"]),
            order=int(raw["order"]),
            skill_keys=list(raw.get("skill_keys") or []),
            difficulty=int(raw.get("difficulty", 1)),
            estimated_hours=float(raw.get("estimated_hours", 0)),
            status=RoadmapStatus(raw.get("status", RoadmapStatus.NOT_STARTED.value)),
            completed_at=raw.get("completed_at"),
        )
