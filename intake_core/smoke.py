"""Scripted learner personas for smoke runs and end-to-end tests.

Each persona answers every step deterministically; ``persona_runner`` gives
a matching offline code runner so CODE steps never touch the network.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional

from .code_runner import StaticCodeRunner
from .config import DEBUG_TRACE, TRACE_FIELDS
from .intake_steps import IntakeStep, TestCase
from .types import StepKind

PERSONAS: tuple[str, ...] = ("all_wrong", "all_right", "mixed")

_GOOD_TEXT = (
    "A callback is a function passed as an argument to another function so it can be "
    "invoked later, for example after an async request resolves. I would log the input, "
    "reproduce the bug with a small array or object, then step through each loop and "
    "variable until the wrong value shows up."
)
_GOOD_CRITIQUE = (
    "The layout feels cluttered and the visual hierarchy is weak: the heading font is the "
    "same size as the body, the contrast between the grey text and the background hurts "
    "accessibility, and the spacing and alignment of the cards is inconsistent. I would "
    "improve padding, use a clear typography scale and align everything to one grid."
)


def _maybe_enable_trace() -> None:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(message)s")
    if DEBUG_TRACE:
        logging.getLogger("intake_core.engine").setLevel(logging.INFO)


def _right(persona: str, index: int) -> bool:
    if persona == "all_right":
        return True
    if persona == "mixed":
        return index % 2 == 0
    return False


def _wrong_option(options) -> str:
    return next(o.id for o in options if not o.is_correct)


def _right_option(options) -> str:
    return next(o.id for o in options if o.is_correct)


def _questionnaire(step: IntakeStep, persona: str) -> Dict[str, Any]:
    slider = {"all_wrong": 1, "all_right": 5, "mixed": 3}[persona]
    out: Dict[str, Any] = {}
    for f in step.fields:
        if f.type == "slider":
            out[f.id] = slider
        elif f.type == "multiselect":
            out[f.id] = [] if persona == "all_wrong" else [o["value"] for o in f.options[:3]]
        elif f.options:
            values = [o["value"] for o in f.options]
            out[f.id] = values[0] if persona == "all_wrong" else values[-1] if persona == "all_right" else values[len(values) // 2]
        elif f.required:
            out[f.id] = "n/a"
    return out


def answer_for(step: IntakeStep, persona: str, index: int = 0) -> Any:
    """The answer ``persona`` gives to ``step``; ``index`` alternates the mixed persona."""
    if persona not in PERSONAS:
        raise ValueError(f"unknown persona {persona!r}")
    good = _right(persona, index)
    kind = step.kind
    if kind is StepKind.QUESTIONNAIRE:
        return _questionnaire(step, persona)
    if kind is StepKind.MCQ:
        pick = _right_option(step.options) if good else _wrong_option(step.options)
        return {"selected_option_id": pick}
    if kind is StepKind.MICRO_MCQ_BURST:
        return {"answers": {
            q.id: (_right_option(q.options) if _right(persona, index + i) else _wrong_option(q.options))
            for i, q in enumerate(step.questions)
        }}
    if kind is StepKind.SHORT_TEXT:
        return {"text": _GOOD_TEXT if good else "I don't know."}
    if kind is StepKind.DESIGN_CRITIQUE:
        return {"critique": _GOOD_CRITIQUE if good else "Looks okay."}
    if kind is StepKind.CODE:
        return {"code": "// solved" if good else "// I do not know how to code yet"}
    if kind is StepKind.DESIGN_COMPARISON:
        other = "A" if step.correct_option == "B" else "B"
        return {"selected_option": step.correct_option if good else other}
    return {}


def persona_runner() -> StaticCodeRunner:
    """Offline runner: code marked ``// solved`` prints the expected output."""

    def judge(code: str, tc: TestCase) -> str:
        return tc.expected_output if code.strip() == "// solved" else ""

    return StaticCodeRunner(judge)


def run_persona(service, user_id: str, persona: str) -> Dict[str, Any]:
    """Drive a full intake for ``user_id`` through ``service`` and return its summary."""
    start = service.start_session(user_id)
    sid = start["session_id"]
    step: Optional[Dict[str, Any]] = start["first_step"]
    index = 0
    while step is not None:
        cfg = service.steps.get(step["id"])
        res = service.submit_step_answer(sid, cfg.id, answer_for(cfg, persona, index))
        index += 1
        step = res["next_step"]
    return service.get_session_summary(sid)


def run_smoke_session(persona: str = "mixed") -> None:
    from .service import IntakeService

    _maybe_enable_trace()
    log = logging.getLogger(__name__)
    log.info("smoke persona=%s trace fields: %s", persona, ", ".join(TRACE_FIELDS))
    service = IntakeService(runner=persona_runner())
    summary = run_persona(service, f"smoke-{persona}", persona)
    items: List = service.generate_roadmap(f"smoke-{persona}")
    print(json.dumps({
        "summary": summary,
        "roadmap": [i.to_dict() for i in items],
    }, indent=2))


if __name__ == "__main__":
    run_smoke_session()
