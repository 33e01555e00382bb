from __future__ import annotations
from collections import Counter, defaultdict
import sys

from intake_core.catalog import load_catalog
from intake_core.errors import ConfigError
from intake_core.intake_steps import load_steps
from intake_core.taxonomy import load_taxonomy


def main():
    try:
        tax = load_taxonomy()
        steps = load_steps()
        cat = load_catalog()
    except ConfigError as exc:
        print(f"INVALID: {exc}")
        sys.exit(1)

    print(f"Taxonomy: {len(tax.dimensions)} dimensions, {len(tax.skills)} skills, {len(tax.tag_map)} tags")
    print(f"Steps: {len(steps)} ({steps.total_minutes():.0f} min)")
    kinds = Counter(s.kind.value for s in steps)
    for k, n in sorted(kinds.items()):
        print(f"  {k:18s} {n}")

    probed = set()
    for s in steps:
        probed.update(s.skill_keys)
        for f in s.fields:
            if f.skill_mapping:
                probed.update(f.skill_mapping.skill_keys)
    covered = set()
    for r in cat.resources:
        covered.update(r.skill_keys)

    print("\nPer dimension: skills | probed by intake | covered by catalog")
    for dim in tax.dimension_keys():
        keys = [t.key for t in tax.skills_in(dim)]
        p = sum(1 for k in keys if k in probed)
        c = sum(1 for k in keys if k in covered)
        print(f"  {dim:26s} {len(keys):3d} | {p:3d} | {c:3d}")

    by_phase = defaultdict(list)
    for r in cat.resources:
        by_phase[r.phase].append(r)
    print("\nPer phase: resources, hours")
    for p in cat.phases:
        rs = by_phase[p.phase]
        print(f"  {p.phase} {p.title:24s} {len(rs):3d}  {sum(r.estimated_hours for r in rs):6.1f}h")

    uncovered = sorted(t.key for t in tax.skills if t.key not in covered)
    if uncovered:
        print(f"\nSkills with no resource: {', '.join(uncovered)}")
    print("\n✓ configuration valid")

if __name__ == "__main__":
    main()
