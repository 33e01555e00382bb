from __future__ import annotations
from typing import Any, Callable, Dict, Mapping, Optional
import logging

from . import config
from .code_runner import CodeRunner, HttpCodeRunner, weighted_pass_ratio
from .errors import CodeRunnerError, ConfigError, IncompleteAnswerError
from .heuristics import HeuristicTextScorer, TextScorer
from .intake_steps import IntakeStep
from .mastery import self_report_to_mastery
from .types import GradeResult, StepKind

log = logging.getLogger(__name__)


def _text(answer: Any, key: str) -> str:
    if isinstance(answer, Mapping):
        val = answer.get(key)
    else:
        val = answer
    return val if isinstance(val, str) else ""


def _all_skills(step: IntakeStep, score: float) -> Dict[str, float]:
    return {k: score for k in step.skill_keys}


def check_answer(step: IntakeStep, answer: Any) -> None:
    """Reject answers that are structurally incomplete.

    Runs before any grading so a rejected submission leaves mastery and
    attempt counters untouched.
    """
    kind = step.kind
    if kind is StepKind.MICRO_MCQ_BURST:
        picks = answer.get("answers") if isinstance(answer, Mapping) else None
        if not isinstance(picks, Mapping):
            raise IncompleteAnswerError(f"{step.id}: expected an 'answers' mapping")
        missing = [q.id for q in step.questions if picks.get(q.id) in (None, "")]
        if missing:
            raise IncompleteAnswerError(f"{step.id}: unanswered questions {', '.join(missing)}")
    elif kind is StepKind.QUESTIONNAIRE:
        if not isinstance(answer, Mapping):
            raise IncompleteAnswerError(f"{step.id}: expected a mapping of field answers")
        missing = [f.id for f in step.fields if f.required and answer.get(f.id) in (None, "", [])]
        if missing:
            raise IncompleteAnswerError(f"{step.id}: required fields missing {', '.join(missing)}")


def grade_questionnaire(step: IntakeStep, answer: Mapping[str, Any], **_: Any) -> GradeResult:
    skill_scores: Dict[str, float] = {}
    for f in step.fields:
        value = answer.get(f.id)
        mapping = f.skill_mapping
        if mapping is None or value is None:
            continue
        v2c = mapping.value_to_confidence or {}
        if str(value) in v2c:
            level: Optional[float] = v2c[str(value)]
        elif isinstance(value, (int, float)) and not isinstance(value, bool):
            level = float(value)
        else:
            level = None
        if level is None:
            continue
        mastery = self_report_to_mastery(level).mastery
        for key in mapping.skill_keys:
            skill_scores[key] = mastery
    return GradeResult(
        score=1.0,
        passed=True,
        skill_scores=skill_scores,
        confidence=config.SELF_REPORT_CONFIDENCE,
        details={"raw_answers": dict(answer)},
    )


def grade_mcq(step: IntakeStep, answer: Any, **_: Any) -> GradeResult:
    chosen = _text(answer, "selected_option_id")
    selected = next((o for o in step.options if o.id == chosen), None)
    if selected is None:
        return GradeResult(score=0.0, passed=False, feedback="No answer selected")
    correct_id = step.correct_option_id
    correct = next((o for o in step.options if o.id == correct_id), None)
    score = 1.0 if selected.is_correct else 0.0
    if selected.is_correct:
        feedback = "Correct!"
    else:
        feedback = f'Incorrect. The correct answer was: "{correct.text if correct else ""}". {step.explanation}'.strip()
    return GradeResult(
        score=score,
        passed=selected.is_correct,
        skill_scores=_all_skills(step, score),
        confidence=config.MCQ_CONFIDENCE.get(step.difficulty, config.MCQ_CONFIDENCE["beginner"]),
        feedback=feedback,
        details={"selected_option_id": chosen, "correct_option_id": correct_id, "explanation": step.explanation},
    )


def _detected_level(correct: int, mapping: Mapping[str, int]) -> str:
    if correct >= mapping.get("advanced", 10**6):
        return "advanced"
    if correct >= mapping.get("intermediate", 10**6):
        return "intermediate"
    return "beginner"


def grade_burst(step: IntakeStep, answer: Mapping[str, Any], **_: Any) -> GradeResult:
    picks = answer["answers"]
    results = []
    for q in step.questions:
        pick = picks.get(q.id)
        ok = pick is not None and str(pick) == q.correct_option_id
        results.append({"question_id": q.id, "correct": ok, "explanation": q.explanation})
    total = len(step.questions)
    n_ok = sum(1 for r in results if r["correct"])
    score = n_ok / total if total else 0.0

    if n_ok == total:
        feedback = f"Excellent! You got all {total} questions correct."
    elif n_ok >= total - 1:
        feedback = f"Good job! You got {n_ok}/{total} correct."
    elif n_ok > 0:
        feedback = f"You got {n_ok}/{total} correct. Let's build on your existing knowledge."
    else:
        feedback = "No worries! This assessment will help us find the right starting point for you."

    return GradeResult(
        score=score,
        passed=True,
        skill_scores=_all_skills(step, score),
        confidence=config.BURST_CONFIDENCE,
        feedback=feedback,
        details={
            "correct_count": n_ok,
            "total_questions": total,
            "detected_level": _detected_level(n_ok, step.level_mapping),
            "question_results": results,
        },
    )


def grade_short_text(step: IntakeStep, answer: Any, text_scorer: TextScorer, **_: Any) -> GradeResult:
    text = _text(answer, "text")
    if not text.strip():
        return GradeResult(score=0.0, passed=False, feedback="No answer provided")
    if step.min_length and len(text) < step.min_length:
        return GradeResult(
            score=0.1,
            passed=False,
            feedback=f"Answer is too short. Please provide at least {step.min_length} characters.",
        )
    ts = text_scorer.score_short_text(step, text)
    return GradeResult(
        score=ts.score,
        passed=ts.score >= config.TEXT_PASS_THRESHOLD,
        skill_scores=_all_skills(step, ts.score),
        confidence=ts.confidence,
        feedback=ts.feedback,
        details=ts.details,
    )


def grade_critique(step: IntakeStep, answer: Any, text_scorer: TextScorer, **_: Any) -> GradeResult:
    text = _text(answer, "critique")
    if not text.strip():
        return GradeResult(score=0.0, passed=False, feedback="No critique provided")
    ts = text_scorer.score_critique(step, text)
    return GradeResult(
        score=ts.score,
        passed=ts.score >= config.TEXT_PASS_THRESHOLD,
        skill_scores=_all_skills(step, ts.score),
        confidence=ts.confidence,
        feedback=ts.feedback,
        details=ts.details,
    )


def grade_code(step: IntakeStep, answer: Any, runner: CodeRunner, **_: Any) -> GradeResult:
    code = _text(answer, "code")
    if not code.strip():
        return GradeResult(score=0.0, passed=False, feedback="No code submitted")
    try:
        results = runner.run(code, step.language, step.test_cases)
    except CodeRunnerError as exc:
        log.warning("code evaluation failed for step %s: %s", step.id, exc)
        return GradeResult(
            score=0.0,
            passed=False,
            feedback="Code evaluation failed. Please check your syntax and try again.",
            details={"runner_error": str(exc)},
        )
    score = weighted_pass_ratio(results)
    n_ok = sum(1 for r in results if r.passed)
    total = len(results)
    passed = total > 0 and n_ok == total
    return GradeResult(
        score=score,
        passed=passed,
        skill_scores=_all_skills(step, score),
        confidence=config.CODE_CONFIDENCE,
        feedback=(f"All {total} tests passed!" if passed
                  else f"{n_ok}/{total} tests passed. Check your logic and try again."),
        details={
            "test_results": [r.to_dict() for r in results if not r.is_hidden],
            "passed_count": n_ok,
            "total_count": total,
        },
    )


def grade_design_comparison(step: IntakeStep, answer: Any, **_: Any) -> GradeResult:
    chosen = _text(answer, "selected_option").strip().upper()
    ok = bool(chosen) and chosen == step.correct_option
    score = 1.0 if ok else 0.0
    return GradeResult(
        score=score,
        passed=ok,
        skill_scores=_all_skills(step, score),
        confidence=config.DESIGN_COMPARISON_CONFIDENCE,
        feedback=(f"Correct! {step.explanation}" if ok else f"Not quite. {step.explanation}").strip(),
        details={"selected_option": chosen, "correct_option": step.correct_option},
    )


def grade_summary(step: IntakeStep, answer: Any, **_: Any) -> GradeResult:
    return GradeResult(score=1.0, passed=True)


_GRADERS: Dict[StepKind, Callable[..., GradeResult]] = {
    StepKind.QUESTIONNAIRE: grade_questionnaire,
    StepKind.MCQ: grade_mcq,
    StepKind.MICRO_MCQ_BURST: grade_burst,
    StepKind.SHORT_TEXT: grade_short_text,
    StepKind.CODE: grade_code,
    StepKind.DESIGN_COMPARISON: grade_design_comparison,
    StepKind.DESIGN_CRITIQUE: grade_critique,
    StepKind.SUMMARY: grade_summary,
}


def ungraded_kinds() -> list[StepKind]:
    return [k for k in StepKind if k not in _GRADERS]


def grade_step(
    step: IntakeStep,
    answer: Any,
    runner: Optional[CodeRunner] = None,
    text_scorer: Optional[TextScorer] = None,
) -> GradeResult:
    """Grade ``answer`` for ``step``.

    Raises IncompleteAnswerError before grading when required parts are
    missing, and ConfigError for a kind with no grader.
    """
    grader = _GRADERS.get(step.kind)
    if grader is None:
        raise ConfigError(f"no grader registered for step kind {step.kind!r}")
    check_answer(step, answer)
    return grader(
        step,
        answer,
        runner=runner or HttpCodeRunner(),
        text_scorer=text_scorer or HeuristicTextScorer(),
    )
