from __future__ import annotations

import importlib
import os
import sys

from fastapi.testclient import TestClient

from intake_core.smoke import answer_for, persona_runner


def _reload_app(tmp_path) -> tuple[object, object]:
    os.environ["DATA_DIR"] = str(tmp_path)
    if "api.storage" in sys.modules:
        importlib.reload(sys.modules["api.storage"])
    else:
        import api.storage  # noqa: F401
    storage = sys.modules["api.storage"]
    if "api.app" in sys.modules:
        importlib.reload(sys.modules["api.app"])
    else:
        import api.app  # noqa: F401
    app_module = sys.modules["api.app"]
    app_module.SERVICE.runner = persona_runner()
    return storage, app_module


def _answer(app_module, step_view: dict, persona: str = "mixed"):
    step = app_module.SERVICE.steps.get(step_view["id"])
    return answer_for(step, persona)


def _run_all(client, app_module, sid: str, first: dict) -> dict:
    step = first
    body = {}
    while step is not None:
        resp = client.post(f"/intake/{sid}/submit",
                           json={"step_id": step["id"], "answer": _answer(app_module, step)})
        assert resp.status_code == 200, resp.text
        body = resp.json()
        step = body["next_step"]
    return body


def test_intake_flow_and_persistence(tmp_path):
    storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    assert client.get("/").json()["status"] == "ok"
    health = client.get("/health").json()
    assert health["total_steps"] == len(app_module.SERVICE.steps)

    start = client.post("/intake/start", json={"user_id": "ada"})
    assert start.status_code == 200
    body = start.json()
    sid = body["session_id"]
    first = body["first_step"]
    assert body["is_resuming"] is False

    cur = client.get(f"/intake/{sid}/current").json()
    assert cur["step"]["id"] == first["id"]
    assert cur["can_go_back"] is False

    res = client.post(f"/intake/{sid}/submit",
                      json={"step_id": first["id"], "answer": _answer(app_module, first)})
    assert res.status_code == 200
    assert "grade_result" in res.json()
    assert storage.SESSIONS_PATH.exists()
    assert (storage.RESPONSES_DIR / f"{sid}.json").exists()

    back = client.post(f"/intake/{sid}/back")
    assert back.json()["step"]["id"] == first["id"]
    assert client.post(f"/intake/{sid}/back").json() == {"step": None}

    done = _run_all(client, app_module, sid, first)
    assert done["is_complete"] is True
    assert done["progress"] == 100

    summary = client.get(f"/intake/{sid}/summary").json()
    assert summary["status"] == "COMPLETED"
    assert len(summary["step_results"]) == len(app_module.SERVICE.steps)

    # a fresh app instance reads the same files
    _storage, reloaded = _reload_app(tmp_path)
    again = TestClient(reloaded.app).get(f"/intake/{sid}/summary").json()
    assert again["overall_score"] == summary["overall_score"]


def test_error_statuses(tmp_path):
    _storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    assert client.get("/intake/missing/current").status_code == 404
    sid = client.post("/intake/start", json={"user_id": "bob"}).json()["session_id"]

    wrong = client.post(f"/intake/{sid}/submit", json={"step_id": "summary", "answer": {}})
    assert wrong.status_code == 400

    first = app_module.SERVICE.steps.first()
    client.post(f"/intake/{sid}/submit",
                json={"step_id": first.id, "answer": answer_for(first, "mixed")})
    partial = client.post(f"/intake/{sid}/submit",
                          json={"step_id": "quick_skill_probe", "answer": {"answers": {"probe_const": "a"}}})
    assert partial.status_code == 400

    assert client.post(f"/intake/{sid}/abandon").json() == {"ok": True}
    closed = client.post(f"/intake/{sid}/submit",
                         json={"step_id": "quick_skill_probe", "answer": {}})
    assert closed.status_code == 409


def test_response_exports(tmp_path):
    _storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)
    body = client.post("/intake/start", json={"user_id": "cy"}).json()
    sid = body["session_id"]
    client.post(f"/intake/{sid}/submit",
                json={"step_id": body["first_step"]["id"], "answer": _answer(app_module, body["first_step"])})

    js = client.get(f"/intake/{sid}/responses.json").json()
    assert js["session_id"] == sid
    assert len(js["responses"]) == 1

    csv_resp = client.get(f"/intake/{sid}/responses.csv")
    assert csv_resp.status_code == 200
    assert csv_resp.headers["content-type"].startswith("text/csv")
    lines = [line for line in csv_resp.text.strip().splitlines() if line]
    assert len(lines) == 2
    header = lines[0].split(",")
    assert header[0] == "session_id"
    assert header[-1] == "submitted_at"

    assert client.get("/intake/nope/responses.csv").status_code == 404


def test_profile_and_roadmap(tmp_path):
    _storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    empty = client.get("/users/dee/profile").json()
    assert empty["has_completed_intake"] is False
    assert empty["skills"] == {}

    body = client.post("/intake/start", json={"user_id": "dee"}).json()
    _run_all(client, app_module, body["session_id"], body["first_step"])

    prof = client.get("/users/dee/profile").json()
    assert prof["has_completed_intake"] is True
    assert prof["skills"]

    created = client.post("/users/dee/roadmap", json={"target_role": "frontend", "max_weeks": 8})
    assert created.status_code == 200
    items = created.json()["items"]
    assert items
    assert sum(i["estimated_hours"] for i in items) <= 8 * 10

    # no body falls back to defaults and returns the stored roadmap
    assert client.post("/users/dee/roadmap").json()["items"] == items

    item_id = items[0]["id"]
    patched = client.patch(f"/users/dee/roadmap/{item_id}", json={"status": "COMPLETED"})
    assert patched.status_code == 200
    assert patched.json()["completed_at"]

    fetched = client.get("/users/dee/roadmap").json()
    assert fetched["summary"]["completed_items"] == 1
    assert fetched["summary"]["next_item"]["id"] != item_id

    assert client.patch("/users/dee/roadmap/nope", json={"status": "COMPLETED"}).status_code == 404
    assert client.patch(f"/users/dee/roadmap/{item_id}", json={"status": "DONE"}).status_code == 422


def test_challenge_result_endpoint(tmp_path):
    _storage, app_module = _reload_app(tmp_path)
    client = TestClient(app_module.app)

    resp = client.post("/users/eve/challenge-results", json={"tags": ["flexbox"], "passed": False, "score_pct": 40})
    assert resp.status_code == 200
    assert "css_layout" in resp.json()["skill_keys"]
    assert "css_layout" in client.get("/users/eve/profile").json()["skills"]

    assert client.post("/users/eve/challenge-results", json={"passed": True}).status_code == 422
