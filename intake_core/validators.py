"""Load-time checks for the static taxonomy, step and catalog tables.

Every check raises :class:`ConfigError` with all problems found, so a bad
data file fails the process at startup instead of misbehaving mid-session.
"""
from __future__ import annotations
from typing import TYPE_CHECKING, Dict, Iterable, List, Mapping, Sequence

from .errors import ConfigError
from .types import StepKind

if TYPE_CHECKING:
    from .catalog import Catalog
    from .intake_steps import StepSequence
    from .taxonomy import Taxonomy


def _raise(what: str, problems: List[str]) -> None:
    if problems:
        raise ConfigError(f"{what}: " + "; ".join(problems))


def find_cycle(graph: Mapping[str, Sequence[str]]) -> List[str]:
    """Return one dependency cycle as a node path, or [] when acyclic."""
    WHITE, GREY, BLACK = 0, 1, 2
    color: Dict[str, int] = {n: WHITE for n in graph}
    stack: List[str] = []

    def visit(node: str) -> List[str]:
        color[node] = GREY
        stack.append(node)
        for dep in graph.get(node, ()):
            if color.get(dep, BLACK) == GREY:
                return stack[stack.index(dep):] + [dep]
            if color.get(dep) == WHITE:
                found = visit(dep)
                if found:
                    return found
        stack.pop()
        color[node] = BLACK
        return []

    for n in graph:
        if color[n] == WHITE:
            cyc = visit(n)
            if cyc:
                return cyc
    return []


def _duplicates(keys: Iterable[str]) -> List[str]:
    seen: set[str] = set()
    dup: List[str] = []
    for k in keys:
        if k in seen and k not in dup:
            dup.append(k)
        seen.add(k)
    return dup


def validate_taxonomy(tax: "Taxonomy") -> None:
    problems: List[str] = []
    dims = {d.key for d in tax.dimensions}
    keys = {s.key for s in tax.skills}
    for k in _duplicates(d.key for d in tax.dimensions):
        problems.append(f"duplicate dimension {k}")
    for k in _duplicates(s.key for s in tax.skills):
        problems.append(f"duplicate skill {k}")
    for s in tax.skills:
        if s.dimension not in dims:
            problems.append(f"{s.key}: unknown dimension {s.dimension}")
        if not 0.0 < s.weight <= 1.0:
            problems.append(f"{s.key}: weight {s.weight} outside (0, 1]")
        for p in s.prerequisites:
            if p not in keys:
                problems.append(f"{s.key}: unknown prerequisite skill {p}")
    for tag, mapped in tax.tag_map.items():
        for k in mapped:
            if k not in keys:
                problems.append(f"tag {tag}: unknown skill {k}")
    if not problems:
        cyc = find_cycle({s.key: s.prerequisites for s in tax.skills})
        if cyc:
            problems.append("skill prerequisite cycle " + " -> ".join(cyc))
    _raise("invalid skill taxonomy", problems)


def validate_steps(steps: "StepSequence", tax: "Taxonomy") -> None:
    from .scoring import ungraded_kinds

    problems: List[str] = []
    for kind in ungraded_kinds():
        problems.append(f"no grader for kind {kind.value}")
    keys = tax.skill_keys()
    for k in _duplicates(s.id for s in steps):
        problems.append(f"duplicate step id {k}")
    orders = [str(s.order) for s in steps]
    for o in _duplicates(orders):
        problems.append(f"duplicate step order {o}")
    for s in steps:
        for k in s.skill_keys:
            if k not in keys:
                problems.append(f"{s.id}: unknown skill {k}")
        if s.kind is StepKind.QUESTIONNAIRE:
            for f in s.fields:
                for k in (f.skill_mapping.skill_keys if f.skill_mapping else ()):
                    if k not in keys:
                        problems.append(f"{s.id}.{f.id}: unknown skill {k}")
        elif s.kind is StepKind.MCQ:
            if sum(1 for o in s.options if o.is_correct) != 1:
                problems.append(f"{s.id}: MCQ needs exactly one correct option")
        elif s.kind is StepKind.MICRO_MCQ_BURST:
            if not s.questions:
                problems.append(f"{s.id}: burst has no questions")
            for q in s.questions:
                if sum(1 for o in q.options if o.is_correct) != 1:
                    problems.append(f"{s.id}.{q.id}: needs exactly one correct option")
        elif s.kind is StepKind.CODE:
            if not s.test_cases:
                problems.append(f"{s.id}: code step has no test cases")
        elif s.kind is StepKind.DESIGN_COMPARISON:
            if s.correct_option not in ("A", "B"):
                problems.append(f"{s.id}: correct_option must be A or B")
    summaries = steps.by_kind(StepKind.SUMMARY)
    if len(summaries) > 1:
        problems.append("more than one SUMMARY step")
    elif summaries and summaries[0].id != steps.steps[-1].id:
        problems.append("SUMMARY must be the last step")
    _raise("invalid intake steps", problems)


def validate_catalog(cat: "Catalog", tax: "Taxonomy") -> None:
    problems: List[str] = []
    keys = tax.skill_keys()
    dims = {d.key for d in tax.dimensions}
    for k in _duplicates(r.id for r in cat.resources):
        problems.append(f"duplicate resource id {k}")
    phase_ids = {p.phase for p in cat.phases}
    if phase_ids != {1, 2, 3}:
        problems.append(f"phases must be exactly 1, 2, 3 (got {sorted(phase_ids)})")
    for p in cat.phases:
        for d in p.focus_areas:
            if d not in dims:
                problems.append(f"phase {p.phase}: unknown focus dimension {d}")
    for r in cat.resources:
        if r.phase not in (1, 2, 3):
            problems.append(f"{r.id}: phase {r.phase} not in 1..3")
        if not 1 <= r.difficulty <= 5:
            problems.append(f"{r.id}: difficulty {r.difficulty} not in 1..5")
        if r.estimated_hours < 0:
            problems.append(f"{r.id}: negative estimated_hours")
        for k in r.skill_keys:
            if k not in keys:
                problems.append(f"{r.id}: unknown skill {k}")
        for p in r.prerequisites:
            dep = cat.get(p)
            if dep is None:
                problems.append(f"{r.id}: unknown prerequisite {p}")
            elif dep.phase > r.phase:
                problems.append(f"{r.id}: prerequisite {p} sits in a later phase")
            elif dep.phase == r.phase and cat.position(p) > cat.position(r.id):
                problems.append(f"{r.id}: same-phase prerequisite {p} listed after it")
    if not problems:
        cyc = find_cycle({r.id: r.prerequisites for r in cat.resources})
        if cyc:
            problems.append("prerequisite cycle " + " -> ".join(cyc))
    _raise("invalid resource catalog", problems)
