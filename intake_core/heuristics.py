# intake_core/heuristics.py
from __future__ import annotations
import re
from dataclasses import dataclass, field
from typing import Any, Dict, Protocol

from . import config

_TECH_RX = re.compile(r'function|callback|async|array|object|variable|loop', re.I)

_DESIGN_KEYWORDS: tuple[str, ...] = (
    "color", "contrast", "spacing", "alignment", "font", "typography",
    "hierarchy", "layout", "padding", "margin", "readable", "accessibility",
    "inconsistent", "cluttered", "improve",
)


@dataclass
class TextScore:
    score: float
    confidence: float
    feedback: str = ""
    details: Dict[str, Any] = field(default_factory=dict)


class TextScorer(Protocol):
    """Scores free text for SHORT_TEXT and DESIGN_CRITIQUE steps.

    Callers handle empty and too-short answers before reaching a scorer.
    """

    def score_short_text(self, step: Any, text: str) -> TextScore: ...

    def score_critique(self, step: Any, text: str) -> TextScore: ...


def _word_count(text: str) -> int:
    return len(text.split())


def short_text_score(text: str) -> float:
    if not isinstance(text, str): return 0.0
    t = text.strip()
    if not t: return 0.0

    score = 0.30
    if _word_count(t) >= 20: score += 0.30
    if _TECH_RX.search(t):   score += 0.20
    return max(0.0, min(1.0, score))


def matched_design_keywords(text: str) -> list[str]:
    low = (text or "").lower()
    return [k for k in _DESIGN_KEYWORDS if k in low]


def critique_score(text: str) -> float:
    if not isinstance(text, str): return 0.0
    t = text.strip()
    if not t: return 0.0

    hits = len(matched_design_keywords(t))
    score = 0.20
    if _word_count(t) >= 30: score += 0.20
    if hits >= 2:            score += 0.20
    if hits >= 4:            score += 0.20
    return max(0.0, min(1.0, score))


class HeuristicTextScorer:
    """Length and keyword thresholds. Approximate by construction."""

    def score_short_text(self, step: Any, text: str) -> TextScore:
        return TextScore(
            score=short_text_score(text),
            confidence=config.TEXT_HEURISTIC_CONFIDENCE,
            feedback="Your answer has been recorded.",
            details={"grader": "heuristic", "word_count": _word_count(text)},
        )

    def score_critique(self, step: Any, text: str) -> TextScore:
        return TextScore(
            score=critique_score(text),
            confidence=config.TEXT_HEURISTIC_CONFIDENCE,
            feedback="Your critique has been recorded.",
            details={"grader": "heuristic", "matched_keywords": matched_design_keywords(text)},
        )
