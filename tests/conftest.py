from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone

import pytest

from intake_core.catalog import Catalog, LearningResource, Phase, load_catalog
from intake_core.heuristics import HeuristicTextScorer
from intake_core.intake_steps import load_steps
from intake_core.service import IntakeService
from intake_core.smoke import persona_runner
from intake_core.store import InMemoryStore
from intake_core.taxonomy import load_taxonomy
from intake_core.types import ResourceType


def ticking_clock(start: str = "2025-01-01T00:00:00+00:00"):
    """Deterministic clock: every call is one second after the previous one."""

    base = datetime.fromisoformat(start).astimezone(timezone.utc)
    counter = itertools.count()
    return lambda: (base + timedelta(seconds=next(counter))).isoformat()


def sequential_ids(prefix: str = "id"):
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def build_resource(
    rid: str,
    *,
    phase: int = 1,
    skills: tuple[str, ...] = ("prog_variables",),
    hours: float = 2.0,
    rtype: ResourceType = ResourceType.READING,
    difficulty: int = 1,
    prereqs: tuple[str, ...] = (),
) -> LearningResource:
    return LearningResource(
        id=rid,
        title=rid.replace("_", " ").title(),
        description=f"{rid} description",
        type=rtype,
        phase=phase,
        skill_keys=skills,
        difficulty=difficulty,
        estimated_hours=hours,
        prerequisites=prereqs,
    )


def build_catalog(resources: list[LearningResource]) -> Catalog:
    phases = [
        Phase(phase=1, title="Foundations", description="", focus_areas=("programming_fundamentals",), estimated_weeks=4),
        Phase(phase=2, title="Intermediate", description="", focus_areas=("javascript",), estimated_weeks=6),
        Phase(phase=3, title="Advanced", description="", focus_areas=("backend",), estimated_weeks=6),
    ]
    return Catalog(phases, resources)


@pytest.fixture
def taxonomy():
    return load_taxonomy()


@pytest.fixture
def steps():
    return load_steps()


@pytest.fixture
def catalog():
    return load_catalog()


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def service(store, steps, catalog, taxonomy) -> IntakeService:
    return IntakeService(
        store=store,
        steps=steps,
        catalog=catalog,
        taxonomy=taxonomy,
        runner=persona_runner(),
        text_scorer=HeuristicTextScorer(),
        clock=ticking_clock(),
        new_id=sequential_ids(),
    )
