from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from . import config as cfg_defaults
from .aggregation import aggregate, weak_dimensions, weak_skill_set
from .catalog import Catalog, LearningResource, item_type_for, load_catalog
from .taxonomy import Taxonomy, load_taxonomy
from .types import ResourceType, RoadmapItem, RoadmapStatus, SkillMastery

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoadmapSettings:
    weak_skill_points: float
    role_focus_points: float
    prereqs_met_points: float
    project_points: float
    exercise_points: float
    stop_ratio: float
    weak_threshold: float

    @staticmethod
    def from_cfg(cfg: Mapping[str, Any] | None) -> "RoadmapSettings":
        def _cfg_value(name: str) -> Any:
            default = getattr(cfg_defaults, name)
            if cfg is None:
                return default
            if isinstance(cfg, Mapping):
                return cfg.get(name, default)
            return getattr(cfg, name, default)

        return RoadmapSettings(
            weak_skill_points=float(_cfg_value("ROADMAP_WEAK_SKILL_POINTS")),
            role_focus_points=float(_cfg_value("ROADMAP_ROLE_FOCUS_POINTS")),
            prereqs_met_points=float(_cfg_value("ROADMAP_PREREQS_MET_POINTS")),
            project_points=float(_cfg_value("ROADMAP_PROJECT_POINTS")),
            exercise_points=float(_cfg_value("ROADMAP_EXERCISE_POINTS")),
            stop_ratio=float(_cfg_value("ROADMAP_STOP_RATIO")),
            weak_threshold=float(_cfg_value("WEAK_THRESHOLD")),
        )


@dataclass(frozen=True)
class RoadmapOptions:
    target_role: str = cfg_defaults.ROADMAP_DEFAULT_ROLE
    max_weeks: int = cfg_defaults.ROADMAP_DEFAULT_MAX_WEEKS
    hours_per_week: float = cfg_defaults.ROADMAP_DEFAULT_HOURS_PER_WEEK
    focus_on_weak_areas: bool = cfg_defaults.ROADMAP_FOCUS_ON_WEAK_AREAS

    @property
    def budget_hours(self) -> float:
        return max(0.0, float(self.max_weeks) * float(self.hours_per_week))


def role_focus_areas(role: str, taxonomy: Optional[Taxonomy] = None) -> Tuple[str, ...]:
    """Dimensions a target role cares about; unknown roles and the default
    full-stack role cover every dimension."""
    focus = cfg_defaults.ROLE_FOCUS.get((role or "").strip().lower())
    if focus:
        return tuple(focus)
    return tuple((taxonomy or load_taxonomy()).dimension_keys())


def score_resource(
    resource: LearningResource,
    weak_skills: set[str],
    focus_dims: Iterable[str],
    selected: set[str],
    settings: RoadmapSettings,
    taxonomy: Taxonomy,
) -> float:
    focus = set(focus_dims)
    score = 0.0
    score += settings.weak_skill_points * sum(1 for k in resource.skill_keys if k in weak_skills)
    for k in resource.skill_keys:
        tag = taxonomy.skill(k)
        if tag is not None and tag.dimension in focus:
            score += settings.role_focus_points
    if all(p in selected for p in resource.prerequisites):
        score += settings.prereqs_met_points
    if resource.type is ResourceType.PROJECT:
        score += settings.project_points
    elif resource.type is ResourceType.EXERCISE:
        score += settings.exercise_points
    return score


class _Selection:
    """Greedy accumulator shared by all three phases."""

    def __init__(self, catalog: Catalog, budget: float):
        self.catalog = catalog
        self.budget = budget
        self.used = 0.0
        self.ids: set[str] = set()
        self.picked: List[LearningResource] = []

    def fits(self, r: LearningResource) -> bool:
        return self.used + r.estimated_hours <= self.budget

    def take(self, r: LearningResource) -> None:
        self.picked.append(r)
        self.ids.add(r.id)
        self.used += r.estimated_hours

    def ensure(self, r: LearningResource, visiting: set[str]) -> bool:
        """Select ``r`` after pulling in its missing prerequisites, budget permitting."""
        if r.id in self.ids:
            return True
        if r.id in visiting:
            return False
        visiting.add(r.id)
        for pid in r.prerequisites:
            dep = self.catalog.get(pid)
            if dep is None or not self.ensure(dep, visiting):
                return False
        if not self.fits(r):
            return False
        self.take(r)
        return True


def select_resources(
    skills: Mapping[str, SkillMastery],
    weak_dims: Sequence[str],
    target_role: str,
    budget_hours: float,
    settings: Optional[RoadmapSettings] = None,
    catalog: Optional[Catalog] = None,
    taxonomy: Optional[Taxonomy] = None,
    focus_on_weak_areas: bool = True,
) -> List[LearningResource]:
    """Greedy, budget-capped resource selection over phases 1, 2, 3.

    Candidates in a phase are ranked by :func:`score_resource` (ties keep
    catalog order), missing prerequisites are inserted ahead of a candidate,
    and scanning stops once ``stop_ratio`` of the budget is used.  Output is
    phase-major, catalog order within a phase.
    """

    settings = settings or RoadmapSettings.from_cfg(None)
    cat = catalog or load_catalog()
    tax = taxonomy or load_taxonomy()
    weak = weak_skill_set(skills, list(weak_dims), settings.weak_threshold, tax) if focus_on_weak_areas else set()
    focus = role_focus_areas(target_role, tax)

    sel = _Selection(cat, float(budget_hours))
    stop_at = sel.budget * settings.stop_ratio
    for phase in (1, 2, 3):
        ranked = sorted(
            cat.in_phase(phase),
            key=lambda r: (-score_resource(r, weak, focus, sel.ids, settings, tax), cat.position(r.id)),
        )
        for res in ranked:
            if sel.used >= stop_at:
                break
            if res.id in sel.ids:
                continue
            sel.ensure(res, set())

    sel.picked.sort(key=lambda r: (r.phase, cat.position(r.id)))
    return sel.picked


def generate_roadmap(
    user_id: str,
    skills: Mapping[str, SkillMastery],
    options: Optional[RoadmapOptions] = None,
    previous: Optional[Sequence[RoadmapItem]] = None,
    settings: Optional[RoadmapSettings] = None,
    catalog: Optional[Catalog] = None,
    taxonomy: Optional[Taxonomy] = None,
    new_id: Callable[[], str] = lambda: str(uuid.uuid4()),
) -> List[RoadmapItem]:
    """Build roadmap items for ``user_id`` from the current mastery map.

    Items whose resource was COMPLETED in ``previous`` come back COMPLETED;
    everything else starts NOT_STARTED.
    """

    opts = options or RoadmapOptions()
    settings = settings or RoadmapSettings.from_cfg(None)
    tax = taxonomy or load_taxonomy()
    profile = aggregate(skills, tax)
    weak = weak_dimensions(profile, settings.weak_threshold)
    chosen = select_resources(
        skills,
        weak,
        opts.target_role,
        opts.budget_hours,
        settings=settings,
        catalog=catalog,
        taxonomy=tax,
        focus_on_weak_areas=opts.focus_on_weak_areas,
    )

    done: Dict[str, Optional[str]] = {
        it.resource_id: it.completed_at for it in previous or () if it.status is RoadmapStatus.COMPLETED
    }
    items: List[RoadmapItem] = []
    per_phase: Dict[int, int] = {}
    for res in chosen:
        order = per_phase.get(res.phase, 0)
        per_phase[res.phase] = order + 1
        completed = res.id in done
        items.append(
            RoadmapItem(
                id=new_id(),
                user_id=user_id,
                resource_id=res.id,
                title=res.title,
                description=res.description,
                item_type=item_type_for(res.type),
                phase=res.phase,
                order=order,
                skill_keys=list(res.skill_keys),
                difficulty=res.difficulty,
                estimated_hours=res.estimated_hours,
                status=RoadmapStatus.COMPLETED if completed else RoadmapStatus.NOT_STARTED,
                completed_at=done.get(res.id) if completed else None,
            )
        )
    log.info(
        "roadmap generated user=%s role=%s items=%d hours=%.1f/%.1f kept_completed=%d",
        user_id,
        opts.target_role,
        len(items),
        sum(i.estimated_hours for i in items),
        opts.budget_hours,
        sum(1 for i in items if i.status is RoadmapStatus.COMPLETED),
    )
    return items


def roadmap_summary(items: Sequence[RoadmapItem], catalog: Optional[Catalog] = None) -> Dict[str, Any]:
    cat = catalog or load_catalog()
    completed = [i for i in items if i.status is RoadmapStatus.COMPLETED]
    in_progress = [i for i in items if i.status is RoadmapStatus.IN_PROGRESS]
    phases = []
    for p in cat.phases:
        mine = [i for i in items if i.phase == p.phase]
        phases.append({
            "phase": p.phase,
            "title": p.title,
            "item_count": len(mine),
            "completed_count": sum(1 for i in mine if i.status is RoadmapStatus.COMPLETED),
        })
    return {
        "total_items": len(items),
        "completed_items": len(completed),
        "in_progress_items": len(in_progress),
        "total_hours": sum(i.estimated_hours for i in items),
        "completed_hours": sum(i.estimated_hours for i in completed),
        "phases": phases,
    }


def next_roadmap_item(items: Sequence[RoadmapItem]) -> Optional[RoadmapItem]:
    """First IN_PROGRESS item, else the first NOT_STARTED one, by phase/order."""
    ordered = sorted(items, key=lambda i: (i.phase, i.order))
    for status in (RoadmapStatus.IN_PROGRESS, RoadmapStatus.NOT_STARTED):
        hit = next((i for i in ordered if i.status is status), None)
        if hit is not None:
            return hit
    return None


def with_status(item: RoadmapItem, status: RoadmapStatus, now: str) -> RoadmapItem:
    return replace(item, status=status, completed_at=now if status is RoadmapStatus.COMPLETED else None)
