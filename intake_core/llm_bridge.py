from __future__ import annotations
import json, logging, re
from typing import Any, Dict

from . import config
from .azure_cfg import client as azure_client, settings as azure_settings
from .heuristics import HeuristicTextScorer, TextScore

log = logging.getLogger(__name__)

_JSON_RX = re.compile(r"\{[\s\S]*\}")


def _grade_azure(system: str, user: str, cfg: dict | None = None) -> Dict[str, Any]:
    s = azure_settings(cfg); cli = azure_client(cfg)
    resp = cli.chat.completions.create(
        model=s.deployment, messages=[{"role":"system","content":system},{"role":"user","content":user}],
        temperature=0.3, max_tokens=300, top_p=1.0,
    )
    raw = resp.choices[0].message.content or ""
    m = _JSON_RX.search(raw)
    if not m:
        raise ValueError("grader reply carried no JSON object")
    return json.loads(m.group(0))


def _rubric_score(payload: Dict[str, Any], max_score: int) -> float:
    top = max(1, int(max_score))
    rubric = min(max(0.0, float(payload.get("score", 0.0))), float(top))
    return rubric / top


class LLMTextScorer:
    """Rubric grading through Azure OpenAI.

    Any failure (configuration, transport, unparsable reply) falls back to
    the heuristic scorer for that answer.
    """

    def __init__(self, cfg: dict | None = None, fallback: HeuristicTextScorer | None = None):
        self.cfg = dict(cfg or {})
        self.fallback = fallback or HeuristicTextScorer()

    def score_short_text(self, step: Any, text: str) -> TextScore:
        max_score = getattr(step, "max_score", 3)
        system = (
            "You are an expert grader for a coding assessment. Grade the student's answer "
            "according to the rubric provided. Respond in JSON ONLY: "
            f'{{"score": <number between 0 and {max_score}>, "feedback": "<1-2 sentences>"}}'
        )
        user = f"Question: {step.question}\n\nStudent's Answer: {text}\n\nRubric:\n{step.rubric}"
        try:
            payload = _grade_azure(system, user, self.cfg)
            score = _rubric_score(payload, max_score)
        except Exception as exc:
            log.warning("llm grading failed for %s, using heuristic: %s", step.id, exc)
            return self.fallback.score_short_text(step, text)
        return TextScore(
            score=score,
            confidence=config.TEXT_LLM_CONFIDENCE,
            feedback=str(payload.get("feedback") or ""),
            details={"grader": "llm", "rubric_score": payload.get("score"), "max_score": max_score},
        )

    def score_critique(self, step: Any, text: str) -> TextScore:
        points = "\n".join(f"- {p}" for p in getattr(step, "looking_for", ()) or ())
        system = (
            "You are grading a design critique. The student is evaluating a UI design and "
            f"suggesting improvements.\n\nKey points we're looking for:\n{points}\n\n"
            f"Rubric:\n{step.rubric}\n\nRespond in JSON ONLY: "
            '{"score": <0-3>, "feedback": "<1-2 sentences>", "identifiedPoints": [<strings>]}'
        )
        user = f"Prompt: {step.prompt}\n\nDesign: {step.design_description}\n\nCritique: {text}"
        try:
            payload = _grade_azure(system, user, self.cfg)
            score = _rubric_score(payload, 3)
        except Exception as exc:
            log.warning("llm critique grading failed for %s, using heuristic: %s", step.id, exc)
            return self.fallback.score_critique(step, text)
        return TextScore(
            score=score,
            confidence=config.TEXT_LLM_CONFIDENCE,
            feedback=str(payload.get("feedback") or ""),
            details={"grader": "llm", "rubric_score": payload.get("score"),
                     "identified_points": list(payload.get("identifiedPoints") or [])},
        )


def text_scorer_for(cfg: dict | None = None):
    """Pick the text scorer the configuration asks for."""
    if config.llm_grading_enabled(cfg or {}):
        return LLMTextScorer(cfg)
    return HeuristicTextScorer()
