from __future__ import annotations
from fastapi import FastAPI, HTTPException, Body, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging, os, typing as t

# ---- Engine imports ----
from intake_core import azure_cfg
from intake_core.audit_export import to_json as export_to_json, to_csv as export_to_csv
from intake_core.config import load_config, llm_grading_enabled
from intake_core.errors import (
    IncompleteAnswerError,
    IntakeError,
    InvalidStepError,
    RoadmapItemNotFoundError,
    SessionCompletedError,
    SessionNotFoundError,
)
from intake_core.service import IntakeService
from intake_core.types import RoadmapStatus
from .storage import JsonFileStore

log = logging.getLogger(__name__)

CFG = load_config()
SERVICE = IntakeService(store=JsonFileStore(), cfg=CFG)

app = FastAPI(title="Intake Assessment API")


@app.get("/")
def root():
    return {"status": "ok", "service": "intake-assessment-api"}


ALLOWED_ORIGINS = [
    o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,  # keep False unless you use cookies
)

# ---- Schemas ----
class StartReq(BaseModel):
    user_id: str

class SubmitReq(BaseModel):
    step_id: str
    answer: t.Any = None

class RoadmapReq(BaseModel):
    target_role: str | None = None
    max_weeks: int | None = None
    hours_per_week: float | None = None
    focus_on_weak_areas: bool | None = None
    regenerate: bool = False

class ItemStatusReq(BaseModel):
    status: RoadmapStatus

class ChallengeResultReq(BaseModel):
    tags: list[str]
    passed: bool
    score_pct: float = 0.0

# ---- Helpers ----
_STATUS: dict[type, int] = {
    SessionNotFoundError: 404,
    RoadmapItemNotFoundError: 404,
    InvalidStepError: 400,
    IncompleteAnswerError: 400,
    SessionCompletedError: 409,
}


def _http(exc: IntakeError) -> HTTPException:
    for cls, code in _STATUS.items():
        if isinstance(exc, cls):
            return HTTPException(code, str(exc))
    log.error("unmapped intake error: %s", exc)
    return HTTPException(500, str(exc))


def _roadmap_payload(user_id: str) -> dict[str, t.Any]:
    return {
        "user_id": user_id,
        "items": [i.to_dict() for i in SERVICE.get_roadmap(user_id)],
        "summary": SERVICE.get_roadmap_summary(user_id),
    }

# ---- Health ----
@app.get("/health")
def health():
    return {
        "use_llm_grading": llm_grading_enabled(CFG),
        "azure_config_present": azure_cfg.configured(CFG),
        "total_steps": len(SERVICE.steps),
        "estimated_minutes": SERVICE.steps.total_minutes(),
        "resources": len(SERVICE.catalog.resources),
    }

# ---- Intake ----
@app.post("/intake/start")
def start(req: StartReq):
    return SERVICE.start_session(req.user_id)

@app.get("/intake/{sid}/current")
def current(sid: str):
    try:
        return SERVICE.get_current_step(sid)
    except IntakeError as exc:
        raise _http(exc)

@app.post("/intake/{sid}/submit")
def submit(sid: str, req: SubmitReq = Body(...)):
    try:
        return SERVICE.submit_step_answer(sid, req.step_id, req.answer)
    except IntakeError as exc:
        raise _http(exc)

@app.post("/intake/{sid}/back")
def back(sid: str):
    try:
        view = SERVICE.go_to_previous_step(sid)
    except IntakeError as exc:
        raise _http(exc)
    if view is None:
        return {"step": None}
    return view

@app.post("/intake/{sid}/abandon")
def abandon(sid: str):
    try:
        SERVICE.abandon_session(sid)
    except IntakeError as exc:
        raise _http(exc)
    return {"ok": True}

@app.get("/intake/{sid}/summary")
def summary(sid: str):
    try:
        return SERVICE.get_session_summary(sid)
    except IntakeError as exc:
        raise _http(exc)

@app.get("/intake/{sid}/responses.json")
def responses_json(sid: str):
    try:
        rows = SERVICE.export_responses(sid)
    except IntakeError as exc:
        raise _http(exc)
    return {"session_id": sid, **export_to_json(rows)}

@app.get("/intake/{sid}/responses.csv")
def responses_csv(sid: str):
    try:
        rows = SERVICE.export_responses(sid)
    except IntakeError as exc:
        raise _http(exc)
    filename = f"{sid}_responses.csv"
    return Response(
        content=export_to_csv(rows),
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename=\"{filename}\""},
    )

# ---- Profile & roadmap ----
@app.get("/users/{user_id}/profile")
def profile(user_id: str):
    out = SERVICE.get_skill_profile(user_id)
    out["has_completed_intake"] = SERVICE.has_completed_intake(user_id)
    return out

@app.post("/users/{user_id}/challenge-results")
def challenge_result(user_id: str, req: ChallengeResultReq):
    return SERVICE.record_challenge_result(user_id, req.tags, req.passed, req.score_pct)

@app.post("/users/{user_id}/roadmap")
def create_roadmap(user_id: str, req: RoadmapReq | None = None):
    req = req or RoadmapReq()
    SERVICE.generate_roadmap(
        user_id,
        target_role=req.target_role,
        max_weeks=req.max_weeks,
        hours_per_week=req.hours_per_week,
        regenerate=req.regenerate,
        focus_on_weak_areas=req.focus_on_weak_areas,
    )
    return _roadmap_payload(user_id)

@app.get("/users/{user_id}/roadmap")
def get_roadmap(user_id: str):
    return _roadmap_payload(user_id)

@app.patch("/users/{user_id}/roadmap/{item_id}")
def update_item(user_id: str, item_id: str, req: ItemStatusReq):
    try:
        item = SERVICE.update_roadmap_item_status(user_id, item_id, req.status)
    except IntakeError as exc:
        raise _http(exc)
    return item.to_dict()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
