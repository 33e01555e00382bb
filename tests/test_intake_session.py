from __future__ import annotations

import pytest

from intake_core.errors import (
    IncompleteAnswerError,
    InvalidStepError,
    SessionCompletedError,
    SessionNotFoundError,
)
from intake_core.smoke import answer_for
from intake_core.types import SessionStatus


def _submit_current(service, sid, persona="all_right"):
    cur = service.get_current_step(sid)["step"]
    step = service.steps.get(cur["id"])
    return service.submit_step_answer(sid, step.id, answer_for(step, persona))


def test_start_and_resume(service, steps):
    first = service.start_session("u1")
    assert first["is_resuming"] is False
    assert first["first_step"]["id"] == steps.first().id
    assert first["total_steps"] == len(steps)
    assert first["estimated_minutes"] == pytest.approx(steps.total_minutes())

    _submit_current(service, first["session_id"])
    again = service.start_session("u1")
    assert again["is_resuming"] is True
    assert again["session_id"] == first["session_id"]
    assert again["first_step"]["id"] == steps.steps[1].id


def test_current_step_hides_answer_keys(service):
    sid = service.start_session("u1")["session_id"]
    for _ in range(5):
        _submit_current(service, sid)
    view = service.get_current_step(sid)
    assert view["step"]["kind"] == "MCQ"
    assert all("is_correct" not in o for o in view["step"]["options"])
    assert view["can_go_back"] is True
    assert view["previous_answer"] is None


def test_submit_advances_and_reports_progress(service, steps):
    sid = service.start_session("u1")["session_id"]
    res = _submit_current(service, sid)
    assert res["next_step"]["id"] == steps.steps[1].id
    assert res["is_complete"] is False
    assert res["progress"] == steps.progress(steps.first().id)


def test_wrong_step_id_is_rejected(service, steps):
    sid = service.start_session("u1")["session_id"]
    with pytest.raises(InvalidStepError):
        service.submit_step_answer(sid, "mcq_variables", {"selected_option_id": "b"})
    with pytest.raises(InvalidStepError):
        service.submit_step_answer(sid, "no_such_step", {})
    assert service.get_current_step(sid)["step"]["id"] == steps.first().id


def test_unknown_session(service):
    with pytest.raises(SessionNotFoundError):
        service.get_current_step("missing")


def test_incomplete_answer_leaves_no_trace(service, store):
    sid = service.start_session("u1")["session_id"]
    _submit_current(service, sid)
    with pytest.raises(IncompleteAnswerError):
        service.submit_step_answer(sid, "quick_skill_probe", {"answers": {"probe_const": "a"}})
    assert store.get_skills("u1") == {}
    assert [r.step_id for r in store.responses_for(sid)] == ["level_self_prediction"]


def test_back_then_resubmit_upserts(service, store, steps):
    sid = service.start_session("u1")["session_id"]
    for _ in range(6):
        _submit_current(service, sid)
    assert service.get_current_step(sid)["step"]["id"] == "mcq_arrays"

    view = service.go_to_previous_step(sid)
    assert view["step"]["id"] == "mcq_variables"
    assert view["previous_answer"] == {"selected_option_id": "b"}
    assert len(store.responses_for(sid)) == 6

    attempts_before = store.get_skills("u1")["prog_variables"].attempts
    res = service.submit_step_answer(sid, "mcq_variables", {"selected_option_id": "a"})
    assert res["next_step"]["id"] == "mcq_arrays"
    rows = store.responses_for(sid)
    assert len(rows) == 6
    assert len({r.step_id for r in rows}) == 6
    latest = next(r for r in rows if r.step_id == "mcq_variables")
    assert latest.grade.score == 0.0
    assert store.get_skills("u1")["prog_variables"].attempts == attempts_before + 1


def test_back_refused_on_first_step(service):
    sid = service.start_session("u1")["session_id"]
    assert service.go_to_previous_step(sid) is None


def test_run_to_completion(service, steps, store):
    sid = service.start_session("u1")["session_id"]
    res = None
    for _ in range(len(steps)):
        res = _submit_current(service, sid)
    assert res["is_complete"] is True
    assert res["next_step"] is None
    assert res["progress"] == 100

    sess = store.get_session(sid)
    assert sess.status is SessionStatus.COMPLETED
    assert sess.completed_at
    assert service.has_completed_intake("u1")

    with pytest.raises(SessionCompletedError):
        service.submit_step_answer(sid, "summary", {})
    assert service.go_to_previous_step(sid) is None
    assert len(store.responses_for(sid)) == len(steps)


def test_completed_user_gets_new_session(service, steps):
    sid = service.start_session("u1")["session_id"]
    for _ in range(len(steps)):
        _submit_current(service, sid)
    nxt = service.start_session("u1")
    assert nxt["session_id"] != sid
    assert nxt["is_resuming"] is False


def test_abandon(service):
    sid = service.start_session("u1")["session_id"]
    service.abandon_session(sid)
    with pytest.raises(SessionCompletedError):
        _submit_current(service, sid)
    assert service.start_session("u1")["session_id"] != sid


def test_summary_lists_step_results(service):
    sid = service.start_session("u1")["session_id"]
    for _ in range(7):
        _submit_current(service, sid)
    out = service.get_session_summary(sid)
    assert out["session_id"] == sid
    assert out["completed_at"] is None
    assert [r["step_id"] for r in out["step_results"]][:2] == ["level_self_prediction", "quick_skill_probe"]
    assert len(out["step_results"]) == 7
    assert 0.0 < out["overall_score"] <= 1.0


def test_export_rows(service):
    sid = service.start_session("u1")["session_id"]
    for _ in range(3):
        _submit_current(service, sid)
    rows = service.export_responses(sid)
    assert [r["order"] for r in rows] == [1, 2, 3]
    assert rows[1]["kind"] == "MICRO_MCQ_BURST"
    assert rows[1]["skills_updated"].split(";") == ["prog_variables", "css_layout", "backend_rest"]


def test_challenge_result_updates_profile(service, store):
    out = service.record_challenge_result("u1", ["Arrays", "no-such-tag"], True, 100)
    assert "prog_arrays" in out["skill_keys"]
    assert all(u["delta"] > 0 for u in out["skill_updates"])
    assert store.get_skills("u1")["prog_arrays"].attempts == 1

    empty = service.record_challenge_result("u1", ["no-such-tag"], False, 0)
    assert empty == {"skill_keys": [], "skill_updates": []}
    assert set(store.get_skills("u1")) == set(out["skill_keys"])
