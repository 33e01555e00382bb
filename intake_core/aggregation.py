"""Dimension-level projections of a learner's skill masteries.

Everything here is a pure function of the mastery map and the static
taxonomy; nothing is cached or persisted.
"""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from . import config
from .taxonomy import Taxonomy, load_taxonomy
from .types import DimensionScore, SkillMastery


def aggregate(
    skills: Mapping[str, SkillMastery],
    taxonomy: Optional[Taxonomy] = None,
) -> Dict[str, DimensionScore]:
    """Weight-normalised mastery and confidence per dimension.

    Only skills with ``attempts > 0`` contribute.  A dimension with nothing
    assessed reports 0/0 rather than NaN.
    """

    tax = taxonomy or load_taxonomy()
    out: Dict[str, DimensionScore] = {}
    for dim in tax.dimension_keys():
        tags = tax.skills_in(dim)
        w_sum = m_sum = c_sum = 0.0
        assessed = 0
        for tag in tags:
            data = skills.get(tag.key)
            if data is None or data.attempts <= 0:
                continue
            m_sum += data.mastery * tag.weight
            c_sum += data.confidence * tag.weight
            w_sum += tag.weight
            assessed += 1
        out[dim] = DimensionScore(
            dimension=dim,
            score=m_sum / w_sum if w_sum > 0 else 0.0,
            confidence=c_sum / w_sum if w_sum > 0 else 0.0,
            assessed_count=assessed,
            skill_count=len(tags),
        )
    return out


def weak_dimensions(
    profile: Mapping[str, DimensionScore],
    threshold: Optional[float] = None,
) -> List[str]:
    """Dimensions scoring below ``threshold``, weakest first."""
    cut = config.WEAK_THRESHOLD if threshold is None else threshold
    weak = [d for d in profile.values() if d.score < cut]
    weak.sort(key=lambda d: d.score)
    return [d.dimension for d in weak]


def weak_skills_in_dimension(
    skills: Mapping[str, SkillMastery],
    dimension: str,
    threshold: Optional[float] = None,
    taxonomy: Optional[Taxonomy] = None,
) -> List[Dict[str, Any]]:
    """Skills of ``dimension`` under ``threshold``; unmeasured skills count as 0."""
    tax = taxonomy or load_taxonomy()
    cut = config.WEAK_THRESHOLD if threshold is None else threshold
    rows = []
    for tag in tax.skills_in(dimension):
        data = skills.get(tag.key)
        if data is not None and data.mastery >= cut:
            continue
        rows.append({
            "skill_key": tag.key,
            "mastery": data.mastery if data else 0.0,
            "confidence": data.confidence if data else 0.0,
        })
    rows.sort(key=lambda r: r["mastery"])
    return rows


def weak_skill_set(
    skills: Mapping[str, SkillMastery],
    dimensions: List[str],
    threshold: Optional[float] = None,
    taxonomy: Optional[Taxonomy] = None,
) -> set[str]:
    out: set[str] = set()
    for dim in dimensions:
        out.update(r["skill_key"] for r in weak_skills_in_dimension(skills, dim, threshold, taxonomy))
    return out


def skills_needing_assessment(
    skills: Mapping[str, SkillMastery],
    confidence_threshold: Optional[float] = None,
    taxonomy: Optional[Taxonomy] = None,
) -> List[str]:
    tax = taxonomy or load_taxonomy()
    cut = config.NEEDS_ASSESSMENT_CONFIDENCE if confidence_threshold is None else confidence_threshold
    return [t.key for t in tax.skills if t.key not in skills or skills[t.key].confidence < cut]


def profile_summary(
    skills: Mapping[str, SkillMastery],
    taxonomy: Optional[Taxonomy] = None,
) -> Dict[str, Any]:
    """Display summary: per-dimension rows sorted by key plus overall means.

    ``overall_score`` is the unweighted mean over dimensions with at least one
    assessed skill.
    """
    tax = taxonomy or load_taxonomy()
    scores = aggregate(skills, tax)
    rows = []
    for dim in sorted(tax.dimensions, key=lambda d: d.key):
        ds = scores[dim.key]
        rows.append({
            "key": dim.key,
            "label": dim.label,
            "score": ds.score,
            "confidence": ds.confidence,
            "assessed_ratio": ds.assessed_count / ds.skill_count if ds.skill_count else 0.0,
        })
    measured = [r for r in rows if r["assessed_ratio"] > 0]
    n = len(measured)
    return {
        "dimensions": rows,
        "overall_score": sum(r["score"] for r in measured) / n if n else 0.0,
        "overall_confidence": sum(r["confidence"] for r in measured) / n if n else 0.0,
        "total_skills_assessed": sum(scores[r["key"]].assessed_count for r in measured),
        "total_skills": len(tax.skills),
    }
