from __future__ import annotations
import json, math, importlib.resources as ir
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigError
from .types import StepKind


@dataclass(frozen=True)
class McqOption:
    id: str
    text: str
    is_correct: bool = False


@dataclass(frozen=True)
class BurstQuestion:
    id: str
    question: str
    options: Tuple[McqOption, ...]
    explanation: str = ""

    @property
    def correct_option_id(self) -> Optional[str]:
        return next((o.id for o in self.options if o.is_correct), None)


@dataclass(frozen=True)
class SkillMapping:
    skill_keys: Tuple[str, ...]
    value_to_confidence: Optional[Dict[str, float]] = None


@dataclass(frozen=True)
class QuestionnaireField:
    id: str
    type: str
    label: str
    required: bool = False
    options: Tuple[Dict[str, str], ...] = ()
    min: Optional[float] = None
    max: Optional[float] = None
    skill_mapping: Optional[SkillMapping] = None


@dataclass(frozen=True)
class TestCase:
    __test__ = False

    input: str
    expected_output: str
    is_hidden: bool = False
    weight: float = 1.0


@dataclass(frozen=True)
class IntakeStep:
    """One configured intake step.

    Common fields first; the rest are only meaningful for some kinds and stay
    at their defaults otherwise.
    """

    id: str
    order: int
    kind: StepKind
    title: str
    description: str = ""
    skill_keys: Tuple[str, ...] = ()
    estimated_minutes: float = 0.0
    # QUESTIONNAIRE
    fields: Tuple[QuestionnaireField, ...] = ()
    # MCQ
    question: str = ""
    options: Tuple[McqOption, ...] = ()
    difficulty: str = "beginner"
    explanation: str = ""
    # MICRO_MCQ_BURST
    instructions: str = ""
    questions: Tuple[BurstQuestion, ...] = ()
    level_mapping: Dict[str, int] = field(default_factory=dict)
    # SHORT_TEXT / DESIGN_CRITIQUE
    rubric: str = ""
    max_score: int = 3
    min_length: int = 0
    max_length: int = 0
    placeholder: str = ""
    looking_for: Tuple[str, ...] = ()
    design_description: str = ""
    # CODE
    problem_description: str = ""
    starter_code: str = ""
    language: str = "javascript"
    test_cases: Tuple[TestCase, ...] = ()
    hints: Tuple[str, ...] = ()
    # DESIGN_COMPARISON
    prompt: str = ""
    option_a: Dict[str, str] = field(default_factory=dict)
    option_b: Dict[str, str] = field(default_factory=dict)
    correct_option: str = ""
    inline_html: str = ""
    # SUMMARY
    show_roadmap_generation: bool = False

    @property
    def correct_option_id(self) -> Optional[str]:
        return next((o.id for o in self.options if o.is_correct), None)

    def public_view(self) -> Dict[str, Any]:
        """Serializable view for the learner: no answer keys, no hidden tests, no rubric."""
        out: Dict[str, Any] = {
            "id": self.id,
            "order": self.order,
            "kind": self.kind.value,
            "title": self.title,
            "description": self.description,
            "estimated_minutes": self.estimated_minutes,
        }
        k = self.kind
        if k is StepKind.QUESTIONNAIRE:
            out["fields"] = [
                {"id": f.id, "type": f.type, "label": f.label, "required": f.required,
                 "options": [dict(o) for o in f.options], "min": f.min, "max": f.max}
                for f in self.fields
            ]
        elif k is StepKind.MCQ:
            out["question"] = self.question
            out["difficulty"] = self.difficulty
            out["options"] = [{"id": o.id, "text": o.text} for o in self.options]
        elif k is StepKind.MICRO_MCQ_BURST:
            out["instructions"] = self.instructions
            out["questions"] = [
                {"id": q.id, "question": q.question, "options": [{"id": o.id, "text": o.text} for o in q.options]}
                for q in self.questions
            ]
        elif k is StepKind.SHORT_TEXT:
            out.update(question=self.question, min_length=self.min_length,
                       max_length=self.max_length, placeholder=self.placeholder)
        elif k is StepKind.DESIGN_CRITIQUE:
            out.update(prompt=self.prompt, design_description=self.design_description,
                       inline_html=self.inline_html)
        elif k is StepKind.CODE:
            out.update(problem_description=self.problem_description, starter_code=self.starter_code,
                       language=self.language, hints=list(self.hints))
            out["test_cases"] = [
                {"input": t.input, "expected_output": t.expected_output}
                for t in self.test_cases if not t.is_hidden
            ]
        elif k is StepKind.DESIGN_COMPARISON:
            out.update(prompt=self.prompt, option_a=dict(self.option_a), option_b=dict(self.option_b))
        elif k is StepKind.SUMMARY:
            out["show_roadmap_generation"] = self.show_roadmap_generation
        return out


def _options(raw: List[dict]) -> Tuple[McqOption, ...]:
    return tuple(McqOption(id=str(o["id"]), text=str(o.get("text", "")), is_correct=bool(o.get("is_correct")))
                 for o in raw or [])


def _field(raw: dict) -> QuestionnaireField:
    mapping = None
    sm = raw.get("skill_mapping")
    if sm:
        v2c = sm.get("value_to_confidence")
        mapping = SkillMapping(
            skill_keys=tuple(sm.get("skill_keys") or ()),
            value_to_confidence={str(k): float(v) for k, v in v2c.items()} if v2c else None,
        )
    return QuestionnaireField(
        id=raw["id"],
        type=raw.get("type", "select"),
        label=raw.get("label", ""),
        required=bool(raw.get("required", False)),
        options=tuple(dict(o) for o in raw.get("options") or ()),
        min=raw.get("min"),
        max=raw.get("max"),
        skill_mapping=mapping,
    )


def parse_step(raw: dict) -> IntakeStep:
    try:
        kind = StepKind(raw["kind"])
    except ValueError as exc:
        raise ConfigError(f"step {raw.get('id')!r}: unknown kind {raw.get('kind')!r}") from exc
    except KeyError as exc:
        raise ConfigError(f"step is missing {exc}") from exc
    try:
        return IntakeStep(
            id=raw["id"],
            order=int(raw["order"]),
            kind=kind,
            title=raw.get("title", raw["id"]),
            description=raw.get("description", ""),
            skill_keys=tuple(raw.get("skill_keys") or ()),
            estimated_minutes=float(raw.get("estimated_minutes", 0)),
            fields=tuple(_field(f) for f in raw.get("fields") or ()),
            question=raw.get("question", ""),
            options=_options(raw.get("options")),
            difficulty=raw.get("difficulty", "beginner"),
            explanation=raw.get("explanation", ""),
            instructions=raw.get("instructions", ""),
            questions=tuple(
                BurstQuestion(id=q["id"], question=q.get("question", ""),
                              options=_options(q.get("options")), explanation=q.get("explanation", ""))
                for q in raw.get("questions") or ()
            ),
            level_mapping={str(k): int(v) for k, v in (raw.get("level_mapping") or {}).items()},
            rubric=raw.get("rubric", ""),
            max_score=int(raw.get("max_score", 3)),
            min_length=int(raw.get("min_length", 0)),
            max_length=int(raw.get("max_length", 0)),
            placeholder=raw.get("placeholder", ""),
            looking_for=tuple(raw.get("looking_for") or ()),
            design_description=raw.get("design_description", ""),
            problem_description=raw.get("problem_description", ""),
            starter_code=raw.get("starter_code", ""),
            language=raw.get("language", "javascript"),
            test_cases=tuple(
                TestCase(input=str(t["input"]), expected_output=str(t["expected_output"]),
                         is_hidden=bool(t.get("is_hidden", False)), weight=float(t.get("weight", 1.0)))
                for t in raw.get("test_cases") or ()
            ),
            hints=tuple(raw.get("hints") or ()),
            prompt=raw.get("prompt", ""),
            option_a=dict(raw.get("option_a") or {}),
            option_b=dict(raw.get("option_b") or {}),
            correct_option=str(raw.get("correct_option", "")).upper(),
            inline_html=raw.get("inline_html", ""),
            show_roadmap_generation=bool(raw.get("show_roadmap_generation", False)),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"step {raw.get('id')!r}: {exc}") from exc


class StepSequence:
    """Ordered, immutable view over the configured intake steps."""

    def __init__(self, steps: List[IntakeStep]):
        self._steps: Tuple[IntakeStep, ...] = tuple(sorted(steps, key=lambda s: s.order))
        self._index: Dict[str, int] = {s.id: i for i, s in enumerate(self._steps)}

    def __len__(self) -> int:
        return len(self._steps)

    def __iter__(self):
        return iter(self._steps)

    @property
    def steps(self) -> Tuple[IntakeStep, ...]:
        return self._steps

    def first(self) -> IntakeStep:
        return self._steps[0]

    def get(self, step_id: str) -> Optional[IntakeStep]:
        i = self._index.get(step_id)
        return None if i is None else self._steps[i]

    def index_of(self, step_id: str) -> int:
        return self._index.get(step_id, -1)

    def next_after(self, step_id: str) -> Optional[IntakeStep]:
        i = self._index.get(step_id)
        if i is None or i + 1 >= len(self._steps):
            return None
        return self._steps[i + 1]

    def previous_before(self, step_id: str) -> Optional[IntakeStep]:
        i = self._index.get(step_id)
        if not i:
            return None
        return self._steps[i - 1]

    def progress(self, step_id: str) -> int:
        i = self._index.get(step_id)
        if i is None:
            return 0
        return int(math.floor((i + 1) / len(self._steps) * 100 + 0.5))

    def total_minutes(self) -> float:
        return sum(s.estimated_minutes for s in self._steps)

    def by_kind(self, kind: StepKind) -> List[IntakeStep]:
        return [s for s in self._steps if s.kind is kind]


def parse_steps(raw: dict) -> StepSequence:
    steps = [parse_step(r) for r in raw.get("steps") or []]
    if not steps:
        raise ConfigError("no intake steps configured")
    return StepSequence(steps)


_STEPS: Optional[StepSequence] = None


def load_steps() -> StepSequence:
    global _STEPS
    if _STEPS is None:
        from .taxonomy import load_taxonomy
        from .validators import validate_steps

        data = ir.files(__package__).joinpath("data/intake_steps.json").read_text(encoding="utf-8")
        seq = parse_steps(json.loads(data))
        validate_steps(seq, load_taxonomy())
        _STEPS = seq
    return _STEPS
