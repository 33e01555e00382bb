from __future__ import annotations

import pytest

from intake_core import config, llm_bridge
from intake_core.heuristics import HeuristicTextScorer
from intake_core.llm_bridge import LLMTextScorer, text_scorer_for


ANSWER = "A callback is a function handed to another function and called once an async task completes."


def test_llm_scores_are_normalised(monkeypatch, steps):
    monkeypatch.setattr(llm_bridge, "_grade_azure", lambda system, user, cfg=None: {"score": 2, "feedback": "Solid."})
    step = steps.get("short_explain_callback")
    ts = LLMTextScorer().score_short_text(step, ANSWER)
    assert ts.score == pytest.approx(2 / step.max_score)
    assert ts.confidence == config.TEXT_LLM_CONFIDENCE
    assert ts.details["grader"] == "llm"


def test_llm_failure_falls_back_to_heuristic(monkeypatch, steps):
    def boom(system, user, cfg=None):
        raise RuntimeError("Azure OpenAI grading not configured")

    monkeypatch.setattr(llm_bridge, "_grade_azure", boom)
    step = steps.get("design_critique")
    ts = LLMTextScorer().score_critique(step, "Fix the contrast and the spacing.")
    assert ts.details["grader"] == "heuristic"
    assert ts.confidence == config.TEXT_HEURISTIC_CONFIDENCE


def test_scorer_selection():
    assert isinstance(text_scorer_for({}), HeuristicTextScorer)
    assert isinstance(text_scorer_for({"USE_LLM_GRADING": True}), LLMTextScorer)


def test_scorer_passes_config_credentials(monkeypatch, steps):
    seen = []

    class _Client:
        def __init__(self, cfg):
            seen.append(("client", cfg))
            self.chat = self
            self.completions = self

        def create(self, **kwargs):
            seen.append(("model", kwargs["model"]))
            msg = type("M", (), {"content": '{"score": 3, "feedback": "Great."}'})()
            choice = type("C", (), {"message": msg})()
            return type("R", (), {"choices": [choice]})()

    cfg = {
        "USE_LLM_GRADING": True,
        "AZURE_OPENAI_ENDPOINT": "https://example.openai.azure.com",
        "AZURE_OPENAI_API_KEY": "key",
        "AZURE_OPENAI_DEPLOYMENT": "grader",
        "AZURE_OPENAI_API_VERSION": "2024-08-01-preview",
    }
    for k in ("AZURE_OPENAI_ENDPOINT", "AZURE_OPENAI_API_KEY", "AZURE_OPENAI_DEPLOYMENT", "AZURE_OPENAI_API_VERSION"):
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setattr(llm_bridge, "azure_client", _Client)

    scorer = text_scorer_for(cfg)
    ts = scorer.score_short_text(steps.get("short_explain_callback"), ANSWER)
    assert ts.details["grader"] == "llm"
    assert ("model", "grader") in seen
    assert seen[0][1]["AZURE_OPENAI_API_KEY"] == "key"
