from __future__ import annotations

import pytest

from intake_core.aggregation import (
    aggregate,
    profile_summary,
    skills_needing_assessment,
    weak_dimensions,
    weak_skills_in_dimension,
)
from intake_core.types import SkillMastery


def test_empty_profile_is_all_zero(taxonomy):
    scores = aggregate({}, taxonomy)
    assert set(scores) == set(taxonomy.dimension_keys())
    for ds in scores.values():
        assert ds.score == 0.0
        assert ds.confidence == 0.0
        assert ds.assessed_count == 0
        assert ds.skill_count == len(taxonomy.skills_in(ds.dimension))


def test_weighted_average_favours_heavier_skill(taxonomy):
    skills = {
        "prog_arrays": SkillMastery(mastery=0.8, confidence=0.6, attempts=5),
        "prog_operators": SkillMastery(mastery=0.0, confidence=0.9, attempts=10),
    }
    ds = aggregate(skills, taxonomy)["programming_fundamentals"]
    assert ds.score == pytest.approx(0.8 / 1.8)
    assert ds.score != pytest.approx(0.4)
    assert ds.assessed_count == 2


def test_unattempted_skills_do_not_count(taxonomy):
    skills = {
        "prog_arrays": SkillMastery(mastery=0.8, confidence=0.5, attempts=1),
        "prog_objects": SkillMastery(mastery=0.0, confidence=0.0, attempts=0),
    }
    ds = aggregate(skills, taxonomy)["programming_fundamentals"]
    assert ds.assessed_count == 1
    assert ds.score == pytest.approx(0.8)


def test_weak_dimensions_sorted_weakest_first(taxonomy):
    skills = {
        "js_dom": SkillMastery(mastery=0.4, confidence=0.3, attempts=1),
        "css_layout": SkillMastery(mastery=0.1, confidence=0.3, attempts=1),
        "backend_rest": SkillMastery(mastery=0.9, confidence=0.3, attempts=1),
    }
    weak = weak_dimensions(aggregate(skills, taxonomy))
    assert weak.index("web_foundations") < weak.index("javascript")
    assert "backend" not in weak


def test_weak_skills_include_unmeasured(taxonomy):
    skills = {"prog_arrays": SkillMastery(mastery=0.9, confidence=0.5, attempts=2)}
    rows = weak_skills_in_dimension(skills, "programming_fundamentals", taxonomy=taxonomy)
    keys = [r["skill_key"] for r in rows]
    assert "prog_arrays" not in keys
    assert "prog_variables" in keys


def test_skills_needing_assessment(taxonomy):
    skills = {"prog_arrays": SkillMastery(mastery=0.9, confidence=0.5, attempts=2)}
    need = skills_needing_assessment(skills, taxonomy=taxonomy)
    assert "prog_arrays" not in need
    assert len(need) == len(taxonomy.skills) - 1


def test_profile_summary_means_over_measured_dimensions(taxonomy):
    skills = {
        "prog_variables": SkillMastery(mastery=1.0, confidence=0.4, attempts=1),
        "js_dom": SkillMastery(mastery=0.2, confidence=0.2, attempts=1),
    }
    out = profile_summary(skills, taxonomy)
    assert [d["key"] for d in out["dimensions"]] == sorted(taxonomy.dimension_keys())
    assert out["overall_score"] == pytest.approx(0.6)
    assert out["overall_confidence"] == pytest.approx(0.3)
    assert out["total_skills_assessed"] == 2
    assert out["total_skills"] == len(taxonomy.skills)
