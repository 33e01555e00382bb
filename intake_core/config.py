from __future__ import annotations
import os, json, pathlib, logging

log = logging.getLogger(__name__)


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# mastery update
DEFAULT_MASTERY: float = 0.5
BASE_LEARNING_RATE: float = 0.3
CONFIDENCE_DAMPING: float = 0.7
CONFIDENCE_GAIN: float = 0.15
SELF_REPORT_CONFIDENCE: float = 0.2
DEFAULT_UPDATE_WEIGHT: float = 0.8
CHALLENGE_PASS_WEIGHT: float = 1.0
CHALLENGE_FAIL_WEIGHT: float = 0.8

# grading
MCQ_CONFIDENCE: dict[str, float] = {"beginner": 0.6, "intermediate": 0.75, "advanced": 0.9}
BURST_CONFIDENCE: float = 0.8
TEXT_HEURISTIC_CONFIDENCE: float = 0.3
TEXT_LLM_CONFIDENCE: float = 0.7
TEXT_PASS_THRESHOLD: float = 0.5
CODE_CONFIDENCE: float = 0.9
DESIGN_COMPARISON_CONFIDENCE: float = 0.7

# profile
WEAK_THRESHOLD: float = 0.5
NEEDS_ASSESSMENT_CONFIDENCE: float = 0.3

# roadmap heuristic weights; tuning constants, not model coefficients
ROADMAP_WEAK_SKILL_POINTS: float = 10.0
ROADMAP_ROLE_FOCUS_POINTS: float = 5.0
ROADMAP_PREREQS_MET_POINTS: float = 20.0
ROADMAP_PROJECT_POINTS: float = 3.0
ROADMAP_EXERCISE_POINTS: float = 2.0
ROADMAP_STOP_RATIO: float = 0.95
ROADMAP_DEFAULT_ROLE: str = "junior_fullstack"
ROADMAP_DEFAULT_MAX_WEEKS: int = 16
ROADMAP_DEFAULT_HOURS_PER_WEEK: int = 10
ROADMAP_FOCUS_ON_WEAK_AREAS: bool = True

ROLE_FOCUS: dict[str, tuple[str, ...]] = {
    "frontend": ("javascript", "web_foundations", "design"),
    "backend": ("backend", "system_thinking", "dev_practices"),
}

# code execution collaborator
CODE_RUNNER_URL: str = "https://api.jdoodle.com/v1/execute"
CODE_RUN_TIMEOUT_SEC: float = 10.0

USE_LLM_GRADING: bool = False

DEBUG_TRACE: bool = False
TRACE_FIELDS: tuple[str, ...] = (
    "session",
    "step",
    "kind",
    "score",
    "passed",
    "confidence",
    "skills",
)
# // env overrides for staging/ops; defaults remain conservative.
BASE_LEARNING_RATE = _env_float("BASE_LEARNING_RATE", BASE_LEARNING_RATE)
CONFIDENCE_GAIN = _env_float("CONFIDENCE_GAIN", CONFIDENCE_GAIN)
WEAK_THRESHOLD = _env_float("WEAK_THRESHOLD", WEAK_THRESHOLD)
ROADMAP_STOP_RATIO = _env_float("ROADMAP_STOP_RATIO", ROADMAP_STOP_RATIO)
ROADMAP_DEFAULT_MAX_WEEKS = _env_int("ROADMAP_DEFAULT_MAX_WEEKS", ROADMAP_DEFAULT_MAX_WEEKS)
ROADMAP_DEFAULT_HOURS_PER_WEEK = _env_int("ROADMAP_DEFAULT_HOURS_PER_WEEK", ROADMAP_DEFAULT_HOURS_PER_WEEK)
CODE_RUNNER_URL = os.getenv("CODE_RUNNER_URL", CODE_RUNNER_URL)
CODE_RUN_TIMEOUT_SEC = _env_float("CODE_RUN_TIMEOUT_SEC", CODE_RUN_TIMEOUT_SEC)
USE_LLM_GRADING = _env_bool("USE_LLM_GRADING", USE_LLM_GRADING)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)


def _env_true(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("1","true","yes","on")


_ROADMAP_KEYS = (
    "ROADMAP_WEAK_SKILL_POINTS",
    "ROADMAP_ROLE_FOCUS_POINTS",
    "ROADMAP_PREREQS_MET_POINTS",
    "ROADMAP_PROJECT_POINTS",
    "ROADMAP_EXERCISE_POINTS",
    "ROADMAP_STOP_RATIO",
)


def load_config(path: str = "config.json") -> dict:
    """Merge an optional JSON config file with environment overrides.

    Keys mirror the module constants above; anything missing falls back to
    those defaults at the point of use.
    """
    cfg: dict = {}
    p = pathlib.Path(path)
    if p.exists():
        try:
            cfg = json.loads(p.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("ignoring unreadable %s: %s", p, exc)
            cfg = {}
    e = os.environ
    if e.get("USE_LLM_GRADING"): cfg["USE_LLM_GRADING"] = _env_true("USE_LLM_GRADING")
    if e.get("WEAK_THRESHOLD"): cfg["WEAK_THRESHOLD"] = _env_float("WEAK_THRESHOLD", WEAK_THRESHOLD)
    for k in _ROADMAP_KEYS:
        if e.get(k): cfg[k] = _env_float(k, 0.0)
    for k in ("AZURE_OPENAI_ENDPOINT","AZURE_OPENAI_API_VERSION","AZURE_OPENAI_API_KEY","AZURE_OPENAI_DEPLOYMENT"):
        if e.get(k): cfg[k] = e.get(k)
    for k in ("JDOODLE_CLIENT_ID", "JDOODLE_CLIENT_SECRET", "CODE_RUNNER_URL"):
        if e.get(k): cfg[k] = e.get(k)
    return cfg


def llm_grading_enabled(cfg: dict) -> bool:
    return bool(cfg.get("USE_LLM_GRADING", USE_LLM_GRADING))
