# intake_core/azure_cfg.py
from __future__ import annotations
import os, json, pathlib, logging
from dataclasses import dataclass
from openai import AzureOpenAI

log = logging.getLogger(__name__)

_KEYS = {
    "endpoint": "AZURE_OPENAI_ENDPOINT",
    "api_key": "AZURE_OPENAI_API_KEY",
    "api_version": "AZURE_OPENAI_API_VERSION",
    "deployment": "AZURE_OPENAI_DEPLOYMENT",
}


@dataclass(frozen=True)
class AzureSettings:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str


def _from_json(path: str = ".azure_config.json") -> dict[str, str]:
    p = pathlib.Path(path)
    if not p.exists(): return {}
    try:
        j = json.loads(p.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        log.warning("ignoring unreadable %s: %s", p, exc)
        return {}
    return {k: str(j.get(k, "")) for k in _KEYS}


def settings(cfg: dict | None = None) -> AzureSettings:
    """Resolve grading credentials: explicit cfg, then env, then .azure_config.json."""
    cfg = cfg or {}
    vals = {k: str(cfg.get(env) or os.getenv(env, "")) for k, env in _KEYS.items()}
    if not all(vals.values()):
        for k, v in _from_json().items():
            if not vals.get(k): vals[k] = v
    missing = [_KEYS[k] for k, v in vals.items() if not v]
    if missing:
        raise RuntimeError(f"Azure OpenAI grading not configured. Missing: {', '.join(missing)}")
    return AzureSettings(**vals)


def configured(cfg: dict | None = None) -> bool:
    try:
        settings(cfg)
    except RuntimeError:
        return False
    return True


def client(cfg: dict | None = None) -> AzureOpenAI:
    s = settings(cfg)
    return AzureOpenAI(azure_endpoint=s.endpoint, api_key=s.api_key, api_version=s.api_version)
