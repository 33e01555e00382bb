from __future__ import annotations
import json, importlib.resources as ir
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .errors import ConfigError

DIMENSIONS = [
    "programming_fundamentals",
    "web_foundations",
    "javascript",
    "backend",
    "dev_practices",
    "system_thinking",
    "design",
    "meta",
]


@dataclass(frozen=True)
class Dimension:
    key: str
    label: str
    description: str
    order: int


@dataclass(frozen=True)
class SkillTag:
    key: str
    dimension: str
    label: str
    description: str
    weight: float
    prerequisites: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Taxonomy:
    dimensions: Tuple[Dimension, ...]
    skills: Tuple[SkillTag, ...]
    tag_map: Dict[str, Tuple[str, ...]] = field(default_factory=dict)

    def skill(self, key: str) -> Optional[SkillTag]:
        return next((s for s in self.skills if s.key == key), None)

    def dimension(self, key: str) -> Optional[Dimension]:
        return next((d for d in self.dimensions if d.key == key), None)

    def skills_in(self, dimension: str) -> List[SkillTag]:
        return [s for s in self.skills if s.dimension == dimension]

    def skill_keys(self) -> set[str]:
        return {s.key for s in self.skills}

    def dimension_keys(self) -> List[str]:
        return [d.key for d in sorted(self.dimensions, key=lambda d: d.order)]


def parse_taxonomy(raw: dict) -> Taxonomy:
    try:
        dims = tuple(
            Dimension(key=d["key"], label=d["label"], description=d.get("description", ""), order=int(d["order"]))
            for d in raw["dimensions"]
        )
        skills = tuple(
            SkillTag(
                key=s["key"],
                dimension=s["dimension"],
                label=s.get("label", s["key"]),
                description=s.get("description", ""),
                weight=float(s["weight"]),
                prerequisites=tuple(s.get("prerequisites") or ()),
            )
            for s in raw["skills"]
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise ConfigError(f"malformed skill taxonomy: {exc}") from exc
    tag_map = {tag: tuple(keys) for tag, keys in (raw.get("tag_map") or {}).items()}
    return Taxonomy(dimensions=dims, skills=skills, tag_map=tag_map)


_TAXONOMY: Optional[Taxonomy] = None


def load_taxonomy() -> Taxonomy:
    """Load and validate the packaged skill taxonomy once per process."""
    global _TAXONOMY
    if _TAXONOMY is None:
        from .validators import validate_taxonomy

        data = ir.files(__package__).joinpath("data/skills.json").read_text(encoding="utf-8")
        tax = parse_taxonomy(json.loads(data))
        validate_taxonomy(tax)
        _TAXONOMY = tax
    return _TAXONOMY
