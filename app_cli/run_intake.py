from __future__ import annotations
import json, logging
from typing import Any, Dict

from intake_core.code_runner import HttpCodeRunner
from intake_core.config import load_config
from intake_core.errors import IncompleteAnswerError
from intake_core.intake_steps import IntakeStep
from intake_core.service import IntakeService
from intake_core.types import StepKind


def ask(prompt: str, options=None) -> str:
    if options:
        print(prompt)
        for i, opt in enumerate(options): print(f"  [{i}] {opt}")
        while True:
            v = input("Your choice (index): ").strip()
            if v.isdigit() and int(v) < len(options): return v
            print("Enter a number index.")
    return input(prompt + " ").strip()


def _multiline(prompt: str) -> str:
    print(prompt + "  (finish with an empty line)")
    lines = []
    while True:
        line = input()
        if not line: break
        lines.append(line)
    return "\n".join(lines)


def collect(step: IntakeStep) -> Dict[str, Any]:
    k = step.kind
    if k is StepKind.QUESTIONNAIRE:
        out: Dict[str, Any] = {}
        for f in step.fields:
            if f.type == "slider":
                out[f.id] = ask(f"{f.label} (1-5)")
            elif f.options:
                labels = [o.get("label", o["value"]) for o in f.options]
                out[f.id] = f.options[int(ask(f.label, labels))]["value"]
            else:
                out[f.id] = ask(f.label)
        return out
    if k is StepKind.MCQ:
        i = int(ask(step.question, [o.text for o in step.options]))
        return {"selected_option_id": step.options[i].id}
    if k is StepKind.MICRO_MCQ_BURST:
        picks = {}
        for q in step.questions:
            i = int(ask(q.question, [o.text for o in q.options]))
            picks[q.id] = q.options[i].id
        return {"answers": picks}
    if k is StepKind.SHORT_TEXT:
        return {"text": _multiline(step.question)}
    if k is StepKind.DESIGN_CRITIQUE:
        print(step.design_description)
        return {"critique": _multiline(step.prompt)}
    if k is StepKind.CODE:
        print(step.problem_description)
        print(step.starter_code)
        return {"code": _multiline(f"Your {step.language} solution:")}
    if k is StepKind.DESIGN_COMPARISON:
        a = step.option_a.get("description", "")
        b = step.option_b.get("description", "")
        return {"selected_option": "AB"[int(ask(step.prompt, [f"A: {a}", f"B: {b}"]))]}
    return {}


def main():
    logging.basicConfig(level=logging.WARNING)
    print("Intake Assessment")
    cfg = load_config()
    service = IntakeService(runner=HttpCodeRunner(), cfg=cfg)
    user_id = ask("User id:") or "cli-user"
    start = service.start_session(user_id)
    sid = start["session_id"]
    print(f"{start['total_steps']} steps, about {start['estimated_minutes']:.0f} minutes.")
    step_view = start["first_step"]
    while step_view is not None:
        step = service.steps.get(step_view["id"])
        print(f"\n== {step.title} ==\n{step.description}")
        try:
            res = service.submit_step_answer(sid, step.id, collect(step))
        except IncompleteAnswerError as exc:
            print(f"Incomplete answer: {exc}")
            continue
        fb = res["grade_result"]["feedback"]
        if fb: print(fb)
        print(f"[{res['progress']}%]")
        step_view = res["next_step"]
    print(json.dumps(service.get_session_summary(sid), indent=2))
    items = service.generate_roadmap(user_id)
    for it in items:
        print(f"P{it.phase}.{it.order:02d} {it.title} ({it.estimated_hours:g}h)")

if __name__ == "__main__": main()
