"""Helpers to export a session's graded responses in JSON/CSV formats."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Iterable, List
import csv
import io
import json

from .types import AssessmentResponse, AssessmentSession

if TYPE_CHECKING:
    from .intake_steps import StepSequence

_FIELDS: tuple[str, ...] = (
    "session_id",
    "user_id",
    "order",
    "step_id",
    "kind",
    "score",
    "passed",
    "confidence",
    "skills_updated",
    "mastery_delta",
    "answer",
    "submitted_at",
)


def export_rows(
    session: AssessmentSession,
    responses: Iterable[AssessmentResponse],
    steps: "StepSequence",
) -> List[Dict[str, Any]]:
    """One flat row per answered step, in step order."""

    rows: List[Dict[str, Any]] = []
    for resp in responses:
        step = steps.get(resp.step_id)
        rows.append({
            "session_id": session.id,
            "user_id": session.user_id,
            "order": step.order if step else -1,
            "step_id": resp.step_id,
            "kind": step.kind.value if step else "",
            "score": resp.grade.score,
            "passed": resp.grade.passed,
            "confidence": resp.grade.confidence,
            "skills_updated": ";".join(u.skill_key for u in resp.skill_updates),
            "mastery_delta": sum(u.delta for u in resp.skill_updates),
            "answer": resp.answer,
            "submitted_at": resp.submitted_at,
        })
    rows.sort(key=lambda r: r["order"])
    return rows


def _normalize_row(row: Dict[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key in _FIELDS:
        val = row.get(key)
        if key == "order":
            try:
                out[key] = int(val)
            except (TypeError, ValueError):
                out[key] = 0
        elif key in {"score", "mastery_delta"}:
            try:
                out[key] = round(float(val), 4)
            except (TypeError, ValueError):
                out[key] = 0.0
        elif key == "confidence":
            out[key] = "" if val is None else round(float(val), 4)
        elif key == "passed":
            out[key] = bool(val)
        elif key == "answer":
            out[key] = val if isinstance(val, str) else json.dumps(val, sort_keys=True)
        else:
            out[key] = "" if val is None else str(val)
    return out


def to_json(rows: Iterable[Dict[str, Any]]) -> Dict[str, Any]:
    """Return a JSON-safe payload for response export."""

    return {"responses": [_normalize_row(r or {}) for r in rows]}


def to_csv(rows: Iterable[Dict[str, Any]]) -> str:
    """Render response rows as CSV with a fixed header."""

    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=_FIELDS)
    writer.writeheader()
    for row in rows:
        writer.writerow(_normalize_row(row or {}))
    return buf.getvalue()


__all__ = ["export_rows", "to_json", "to_csv"]
