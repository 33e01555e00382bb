from __future__ import annotations
import json, importlib.resources as ir
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .errors import ConfigError
from .types import ResourceType, RoadmapItemType


@dataclass(frozen=True)
class Phase:
    phase: int
    title: str
    description: str
    focus_areas: Tuple[str, ...]
    estimated_weeks: int


@dataclass(frozen=True)
class LearningResource:
    id: str
    title: str
    description: str
    type: ResourceType
    phase: int
    skill_keys: Tuple[str, ...]
    difficulty: int
    estimated_hours: float
    prerequisites: Tuple[str, ...] = ()
    metadata: Dict[str, Any] = field(default_factory=dict)


_ITEM_TYPES: Dict[ResourceType, RoadmapItemType] = {
    ResourceType.READING: RoadmapItemType.SKILL,
    ResourceType.EXERCISE: RoadmapItemType.EXERCISE,
    ResourceType.PROJECT: RoadmapItemType.PROJECT,
    ResourceType.DESIGN: RoadmapItemType.DESIGN,
    ResourceType.COURSE: RoadmapItemType.COURSE,
    ResourceType.MILESTONE: RoadmapItemType.MILESTONE,
}


def item_type_for(rtype: ResourceType) -> RoadmapItemType:
    try:
        return _ITEM_TYPES[rtype]
    except KeyError:
        raise ConfigError(f"no roadmap item type for resource type {rtype!r}") from None


class Catalog:
    """Static resource catalog; list order is the pedagogical order."""

    def __init__(self, phases: List[Phase], resources: List[LearningResource]):
        self.phases: Tuple[Phase, ...] = tuple(sorted(phases, key=lambda p: p.phase))
        self.resources: Tuple[LearningResource, ...] = tuple(resources)
        self._pos: Dict[str, int] = {r.id: i for i, r in enumerate(self.resources)}

    def get(self, resource_id: str) -> Optional[LearningResource]:
        i = self._pos.get(resource_id)
        return None if i is None else self.resources[i]

    def position(self, resource_id: str) -> int:
        return self._pos.get(resource_id, len(self.resources))

    def in_phase(self, phase: int) -> List[LearningResource]:
        return [r for r in self.resources if r.phase == phase]


def parse_catalog(raw: dict) -> Catalog:
    try:
        phases = [
            Phase(
                phase=int(p["phase"]),
                title=p["title"],
                description=p.get("description", ""),
                focus_areas=tuple(p.get("focus_areas") or ()),
                estimated_weeks=int(p.get("estimated_weeks", 0)),
            )
            for p in raw["phases"]
        ]
        resources = [
            LearningResource(
                id=r["id"],
                title=r["title"],
                description=r.get("description", ""),
                type=ResourceType(r["type"]),
                phase=int(r["phase"]),
                skill_keys=tuple(r.get("skill_keys") or ()),
                difficulty=int(r.get("difficulty", 1)),
                estimated_hours=float(r.get("estimated_hours", 0)),
                prerequisites=tuple(r.get("prerequisites") or ()),
                metadata=dict(r.get("metadata") or {}),
            )
            for r in raw["resources"]
        ]
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"malformed resource catalog: {exc}") from exc
    return Catalog(phases, resources)


_CATALOG: Optional[Catalog] = None


def load_catalog() -> Catalog:
    global _CATALOG
    if _CATALOG is None:
        from .taxonomy import load_taxonomy
        from .validators import validate_catalog

        data = ir.files(__package__).joinpath("data/resources.json").read_text(encoding="utf-8")
        cat = parse_catalog(json.loads(data))
        validate_catalog(cat, load_taxonomy())
        _CATALOG = cat
    return _CATALOG
