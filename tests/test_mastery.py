from __future__ import annotations

import pytest

from intake_core import config
from intake_core.mastery import (
    apply_scores,
    apply_self_report,
    self_report_to_mastery,
    tags_to_skill_keys,
    update,
    update_from_challenge,
)
from intake_core.types import SkillMastery


def test_first_observation_moves_substantially():
    fresh = SkillMastery()
    nxt = update(fresh, 1.0, 1.0)
    assert nxt.mastery == pytest.approx(0.5 + 0.5 * config.BASE_LEARNING_RATE)
    assert nxt.confidence == pytest.approx(config.CONFIDENCE_GAIN)
    assert nxt.attempts == 1


def test_repeated_observations_converge_without_overshoot():
    cur = SkillMastery(mastery=0.2, confidence=0.0, attempts=0)
    prev_m, prev_c = cur.mastery, cur.confidence
    for _ in range(40):
        cur = update(cur, 0.9, 0.8)
        assert prev_m <= cur.mastery <= 0.9
        assert cur.confidence > prev_c
        assert cur.confidence <= 1.0
        prev_m, prev_c = cur.mastery, cur.confidence
    assert cur.attempts == 40


def test_high_confidence_dampens_step():
    low = update(SkillMastery(mastery=0.5, confidence=0.0), 0.0)
    high = update(SkillMastery(mastery=0.5, confidence=0.9), 0.0)
    assert (0.5 - high.mastery) < (0.5 - low.mastery)


def test_zero_weight_still_counts_attempt():
    cur = SkillMastery(mastery=0.4, confidence=0.3, attempts=2)
    nxt = update(cur, 1.0, 0.0)
    assert nxt.mastery == pytest.approx(0.4)
    assert nxt.confidence == pytest.approx(0.3)
    assert nxt.attempts == 3


def test_out_of_range_inputs_are_clamped():
    nxt = update(SkillMastery(mastery=0.9, confidence=0.0), 7.0, 3.0)
    assert 0.0 <= nxt.mastery <= 1.0
    assert nxt.mastery == pytest.approx(0.9 + 0.1 * config.BASE_LEARNING_RATE)


@pytest.mark.parametrize(
    "level,expected",
    [(1, 0.0), (2, 0.25), (3, 0.5), (4, 0.75), (5, 1.0), (0, 0.0), (9, 1.0)],
)
def test_self_report_mapping(level, expected):
    m = self_report_to_mastery(level)
    assert m.mastery == pytest.approx(expected)
    assert m.confidence == pytest.approx(0.2)
    assert m.attempts == 1


def test_apply_scores_reports_deltas():
    skills = {"prog_arrays": SkillMastery(mastery=0.6, confidence=0.1, attempts=1)}
    updates = apply_scores(skills, {"prog_arrays": 0.0, "prog_objects": 1.0}, 0.8)
    by_key = {u.skill_key: u for u in updates}
    assert by_key["prog_arrays"].delta < 0
    assert by_key["prog_objects"].previous_mastery == pytest.approx(config.DEFAULT_MASTERY)
    assert by_key["prog_objects"].delta > 0
    assert skills["prog_objects"].attempts == 1
    assert skills["prog_arrays"].attempts == 2


def test_self_report_seeds_unmeasured_skill():
    skills: dict[str, SkillMastery] = {}
    updates = apply_self_report(skills, {"dev_git_basics": 0.0})
    assert skills["dev_git_basics"] == SkillMastery(mastery=0.0, confidence=0.2, attempts=1)
    assert updates[0].previous_mastery == pytest.approx(config.DEFAULT_MASTERY)
    assert updates[0].delta == pytest.approx(-config.DEFAULT_MASTERY)


def test_self_report_does_not_overwrite_evidence():
    graded = SkillMastery(mastery=0.9, confidence=0.5, attempts=3)
    skills = {"js_dom": graded}
    apply_self_report(skills, {"js_dom": 0.0})
    after = skills["js_dom"]
    assert 0.8 < after.mastery < 0.9
    assert after.attempts == 4


def test_tags_to_skill_keys(taxonomy):
    keys = tags_to_skill_keys(["Arrays", "flexbox", "prog_strings", "no-such-tag"], taxonomy)
    assert "prog_arrays" in keys
    assert "css_layout" in keys
    assert "prog_strings" in keys
    assert len(keys) == len(set(keys))


def test_update_from_challenge_uses_pass_weight(taxonomy):
    skills: dict[str, SkillMastery] = {}
    keys, updates = update_from_challenge(skills, ["arrays"], True, 100, taxonomy)
    assert keys and {u.skill_key for u in updates} == set(keys)
    for k in keys:
        assert skills[k].mastery == pytest.approx(0.5 + 0.5 * config.BASE_LEARNING_RATE * config.CHALLENGE_PASS_WEIGHT)
