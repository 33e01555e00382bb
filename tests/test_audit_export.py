from __future__ import annotations

import csv
import io

from intake_core.audit_export import export_rows, to_csv, to_json
from intake_core.types import AssessmentResponse, AssessmentSession, GradeResult, SkillUpdate


def _response(step_id: str, score: float, answer, when: str) -> AssessmentResponse:
    return AssessmentResponse(
        session_id="s1",
        step_id=step_id,
        answer=answer,
        grade=GradeResult(score=score, passed=score >= 0.5, skill_scores={"prog_variables": score},
                          confidence=None, feedback=""),
        skill_updates=[SkillUpdate("prog_variables", 0.5, 0.5 + score / 10, 0.0, 0.1)],
        submitted_at=when,
    )


def test_rows_follow_step_order(steps):
    sess = AssessmentSession(id="s1", user_id="u1", current_step_id="mcq_arrays", started_at="t0")
    rows = export_rows(sess, [
        _response("mcq_variables", 1.0, {"selected_option_id": "b"}, "t2"),
        _response("level_self_prediction", 0.4, {"predicted_level": "beginner"}, "t1"),
    ], steps)
    assert [r["step_id"] for r in rows] == ["level_self_prediction", "mcq_variables"]
    assert rows[1]["kind"] == "MCQ"
    assert rows[1]["skills_updated"] == "prog_variables"
    assert rows[1]["user_id"] == "u1"


def test_json_and_csv_share_normalised_fields(steps):
    sess = AssessmentSession(id="s1", user_id="u1", current_step_id="mcq_arrays", started_at="t0")
    rows = export_rows(sess, [_response("mcq_variables", 1.0, {"selected_option_id": "b"}, "t2")], steps)

    payload = to_json(rows)["responses"][0]
    assert payload["score"] == 1.0
    assert payload["passed"] is True
    assert payload["confidence"] == ""
    assert payload["answer"] == '{"selected_option_id": "b"}'
    assert payload["mastery_delta"] == 0.1

    parsed = list(csv.DictReader(io.StringIO(to_csv(rows))))
    assert len(parsed) == 1
    assert parsed[0]["step_id"] == "mcq_variables"
    assert parsed[0]["answer"] == payload["answer"]


def test_empty_export_has_header_only():
    text = to_csv([])
    assert text.strip().split(",")[0] == "session_id"
    assert to_json([]) == {"responses": []}
