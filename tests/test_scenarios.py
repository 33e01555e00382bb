from __future__ import annotations

from statistics import mean

import pytest

from intake_core.smoke import PERSONAS, answer_for, run_persona


def test_all_wrong_learner_gets_foundational_roadmap(service, catalog):
    summary = run_persona(service, "novice", "all_wrong")
    assert summary["status"] == "COMPLETED"
    assert summary["overall_score"] <= 0.3

    items = service.generate_roadmap("novice")
    assert items
    hours = sum(i.estimated_hours for i in items)
    assert hours <= 16 * 10

    phase1 = [catalog.get(i.resource_id) for i in items if i.phase == 1]
    assert phase1
    assert all(r.difficulty <= 2 for r in phase1)
    assert "read_variables_types" in {r.id for r in phase1}

    later = [catalog.get(i.resource_id).difficulty for i in items if i.phase == 3]
    if later:
        assert mean(r.difficulty for r in phase1) < mean(later)


def test_all_right_scores_above_all_wrong(service):
    low = run_persona(service, "low", "all_wrong")
    high = run_persona(service, "high", "all_right")
    assert high["overall_score"] > low["overall_score"]
    assert high["overall_confidence"] > 0.0


def test_every_persona_completes(service, steps):
    for persona in PERSONAS:
        out = run_persona(service, f"user-{persona}", persona)
        assert out["status"] == "COMPLETED"
        assert len(out["step_results"]) == len(steps)


def test_unknown_persona(steps):
    with pytest.raises(ValueError):
        answer_for(steps.first(), "expert")


def test_roadmap_is_cached_until_regenerated(service):
    run_persona(service, "u", "mixed")
    first = service.generate_roadmap("u")
    assert [i.id for i in service.generate_roadmap("u")] == [i.id for i in first]
    again = service.generate_roadmap("u", regenerate=True)
    assert {i.id for i in again}.isdisjoint({i.id for i in first})

    summary = service.get_roadmap_summary("u")
    assert summary["total_items"] == len(again)
    assert summary["next_item"]["id"] == service.get_roadmap("u")[0].id
