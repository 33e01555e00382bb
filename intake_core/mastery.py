"""Heuristic mastery updates for individual skills.

The update rule is an exponential moving average whose step size shrinks as
confidence grows.  It is not a calibrated estimator; the constants live in
:mod:`intake_core.config` so they can be tuned without touching callers.
"""
from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from . import config
from .taxonomy import Taxonomy, load_taxonomy
from .types import SkillMastery, SkillUpdate

__all__ = [
    "clamp01",
    "update",
    "self_report_to_mastery",
    "apply_scores",
    "apply_self_report",
    "tags_to_skill_keys",
    "update_from_challenge",
]

log = logging.getLogger(__name__)


def clamp01(x: float) -> float:
    return max(0.0, min(1.0, float(x)))


def update(current: SkillMastery, observed_score: float, weight: float = 1.0) -> SkillMastery:
    """Move ``current`` toward ``observed_score``.

    Parameters
    ----------
    current: SkillMastery
        Existing estimate; use ``SkillMastery()`` for an unseen skill.
    observed_score: float
        New evidence in ``[0, 1]``.  Values outside are clamped.
    weight: float
        Strength of the evidence in ``[0, 1]``.  Scales both the mastery
        step and the confidence gain; the attempt counter always increments.

    Returns
    -------
    SkillMastery
        ``lr = BASE_LEARNING_RATE * (1 - confidence * CONFIDENCE_DAMPING) * weight``;
        mastery moves by ``(observed - mastery) * lr`` and confidence by
        ``(1 - confidence) * CONFIDENCE_GAIN * weight``.
    """

    observed = clamp01(observed_score)
    w = clamp01(weight)
    conf = clamp01(current.confidence)

    lr = config.BASE_LEARNING_RATE * (1.0 - conf * config.CONFIDENCE_DAMPING) * w
    mastery = clamp01(current.mastery + (observed - current.mastery) * lr)
    confidence = min(1.0, conf + (1.0 - conf) * config.CONFIDENCE_GAIN * w)
    return SkillMastery(mastery=mastery, confidence=confidence, attempts=current.attempts + 1)


def self_report_to_mastery(level: float) -> SkillMastery:
    """Map a 1-5 self-rating onto mastery with fixed low confidence."""

    return SkillMastery(
        mastery=clamp01((float(level) - 1.0) / 4.0),
        confidence=config.SELF_REPORT_CONFIDENCE,
        attempts=1,
    )


def apply_scores(
    skills: Dict[str, SkillMastery],
    skill_scores: Mapping[str, float],
    weight: float,
) -> List[SkillUpdate]:
    """Apply ``skill_scores`` to ``skills`` in place and return the deltas."""

    updates: List[SkillUpdate] = []
    for key, score in skill_scores.items():
        before = skills.get(key) or SkillMastery(mastery=config.DEFAULT_MASTERY)
        after = update(before, score, weight)
        skills[key] = after
        updates.append(
            SkillUpdate(
                skill_key=key,
                previous_mastery=before.mastery,
                new_mastery=after.mastery,
                previous_confidence=before.confidence,
                new_confidence=after.confidence,
            )
        )
        log.debug("skill %s mastery %.3f -> %.3f (w=%.2f)", key, before.mastery, after.mastery, weight)
    return updates


def apply_self_report(
    skills: Dict[str, SkillMastery],
    skill_scores: Mapping[str, float],
    weight: float = config.SELF_REPORT_CONFIDENCE,
) -> List[SkillUpdate]:
    """Seed unmeasured skills from self-reported mastery.

    A skill with no attempts takes the reported value outright, at
    ``SELF_REPORT_CONFIDENCE`` and one attempt.  Skills that already carry
    evidence get an ordinary weighted update instead, so a self-report never
    overwrites graded results.
    """

    updates: List[SkillUpdate] = []
    for key, score in skill_scores.items():
        before = skills.get(key)
        if before is None or before.attempts <= 0:
            prior = before or SkillMastery(mastery=config.DEFAULT_MASTERY)
            after = SkillMastery(mastery=clamp01(score), confidence=config.SELF_REPORT_CONFIDENCE, attempts=1)
        else:
            prior = before
            after = update(before, score, weight)
        skills[key] = after
        updates.append(
            SkillUpdate(
                skill_key=key,
                previous_mastery=prior.mastery,
                new_mastery=after.mastery,
                previous_confidence=prior.confidence,
                new_confidence=after.confidence,
            )
        )
    log.debug("self-report applied to %d skills", len(updates))
    return updates


def tags_to_skill_keys(tags: Iterable[str], taxonomy: Optional[Taxonomy] = None) -> List[str]:
    """Resolve free-form challenge tags to taxonomy skill keys.

    Known tags expand through the tag map; a tag that already is a skill key
    passes through; anything else is dropped.
    """

    tax = taxonomy or load_taxonomy()
    valid = tax.skill_keys()
    out: List[str] = []
    for raw in tags:
        tag = str(raw).strip().lower()
        for key in tax.tag_map.get(tag, (tag,) if tag in valid else ()):
            if key not in out:
                out.append(key)
    return out


def update_from_challenge(
    skills: Dict[str, SkillMastery],
    tags: Iterable[str],
    passed: bool,
    score_pct: float,
    taxonomy: Optional[Taxonomy] = None,
) -> Tuple[List[str], List[SkillUpdate]]:
    """Record a coding-challenge result against the skills its tags map to."""

    keys = tags_to_skill_keys(tags, taxonomy)
    weight = config.CHALLENGE_PASS_WEIGHT if passed else config.CHALLENGE_FAIL_WEIGHT
    observed = clamp01(score_pct / 100.0)
    updates = apply_scores(skills, {k: observed for k in keys}, weight)
    return keys, updates
