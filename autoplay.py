# autoplay.py
from __future__ import annotations
import argparse, os, json, datetime, logging
from typing import Any, Dict

from intake_core.config import load_config
from intake_core.service import IntakeService
from intake_core.smoke import PERSONAS, persona_runner, run_persona


def _new_run_id() -> str:
    return datetime.datetime.now().strftime("run_%Y%m%d_%H%M%S")


def run(persona: str, role: str, weeks: int, hours: float, llm: bool) -> Dict[str, Any]:
    cfg = load_config()
    if llm:
        cfg["USE_LLM_GRADING"] = True
    service = IntakeService(runner=persona_runner(), cfg=cfg)
    user_id = f"auto_{persona}_{_new_run_id()}"
    summary = run_persona(service, user_id, persona)
    items = service.generate_roadmap(user_id, target_role=role, max_weeks=weeks, hours_per_week=hours)
    return {
        "persona": persona,
        "summary": summary,
        "roadmap": [i.to_dict() for i in items],
        "roadmap_summary": service.get_roadmap_summary(user_id),
    }


def main():
    ap = argparse.ArgumentParser()
    ap.add_argument("--profile", choices=list(PERSONAS) + ["all"], default="all")
    ap.add_argument("--role", default="junior_fullstack")
    ap.add_argument("--weeks", type=int, default=16)
    ap.add_argument("--hours", type=float, default=10)
    ap.add_argument("--llm", action="store_true", help="grade free text through Azure OpenAI")
    ap.add_argument("--out", default="", help="write the JSON result here instead of stdout")
    a = ap.parse_args()
    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="[%(levelname)s] %(name)s: %(message)s")

    personas = PERSONAS if a.profile == "all" else (a.profile,)
    out = {p: run(p, a.role, a.weeks, a.hours, a.llm) for p in personas}
    for p, res in out.items():
        s = res["summary"]
        print(f"{p:10s} overall={s['overall_score']:.2f} conf={s['overall_confidence']:.2f} "
              f"roadmap={len(res['roadmap'])} items / {res['roadmap_summary']['total_hours']:.0f}h")
    body = json.dumps(out, indent=2)
    if a.out:
        os.makedirs(os.path.dirname(a.out) or ".", exist_ok=True)
        with open(a.out, "w", encoding="utf-8") as f:
            f.write(body)
        print(f"Result: {a.out}")
    else:
        print(body)

if __name__ == "__main__":
    main()
