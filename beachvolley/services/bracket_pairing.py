"""
Bracket Pairing Builder: knockout entry pairings with same-group avoidance.

Entry round: up to 4 qualifiers start at the semifinals, 5..8 at the
quarterfinals. Quarterfinal pairings [0, 1] feed semifinal 1 and [2, 3]
feed semifinal 2.

Two modes:
- crossover: exactly 4 groups each sending a rank-1 and a rank-2 team (no
  wildcards) -> A1-D2, B1-C2, C1-B2, D1-A2. Teams from the same group sit
  in opposite halves and can only meet in the final.
- smart: rank-1 teams take a rank-2 partner from another group where one is
  left; everyone else pairs up among themselves. If two sibling pairings
  hold teams of the same group, every order of the pairings is tried (at
  most 4 pairings = 24 orders) and the first valid one is used; when no
  order is valid the greedy order stays.

When fewer teams qualify than the entry round has places, the best-placed
qualifiers get byes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from itertools import permutations
from typing import List, Optional, Sequence, Tuple

from beachvolley.models.match import STAGE_QUARTERFINAL, STAGE_SEMIFINAL
from beachvolley.services.errors import ValidationError
from beachvolley.services.qualification import (
    MIN_QUALIFIERS,
    QUALIFIED_BY_RANK,
    QUALIFIED_BY_WILDCARD,
    QualificationRecord,
)
from beachvolley.services.standings import wildcard_sort_key

MODE_CROSSOVER = "crossover"
MODE_SMART = "smart"

MAX_QUALIFIERS = 8

# Entry pairings per stage
PAIRINGS_PER_STAGE = {STAGE_SEMIFINAL: 2, STAGE_QUARTERFINAL: 4}

# Where bye pairings go, in order: top of each half first
BYE_POSITIONS = {2: [0, 1], 4: [0, 2, 3, 1]}

Pairing = Tuple[QualificationRecord, Optional[QualificationRecord]]


@dataclass
class PairingConflict:
    group_name: str
    pairing_indexes: Tuple[int, ...]
    reason: str


@dataclass
class BracketPlan:
    entry_stage: str
    mode: str
    pairings: List[Pairing]
    conflicts: List[PairingConflict] = field(default_factory=list)


def entry_stage_for(qualified_count: int) -> str:
    if qualified_count < MIN_QUALIFIERS:
        raise ValidationError(
            f"At least {MIN_QUALIFIERS} qualified teams are required for a knockout stage, got {qualified_count}"
        )
    if qualified_count > MAX_QUALIFIERS:
        raise ValidationError(
            f"Knockout bracket supports at most {MAX_QUALIFIERS} qualified teams, got {qualified_count}"
        )
    return STAGE_SEMIFINAL if qualified_count <= 4 else STAGE_QUARTERFINAL


def crossover_applies(
    records: Sequence[QualificationRecord],
    group_names: Sequence[str],
    qualify_per_group: int,
    qualify_by_wildcard: int,
) -> bool:
    if len(group_names) != 4 or qualify_per_group > 2 or qualify_by_wildcard != 0:
        return False
    present = {(r.group_name, r.group_rank) for r in records if r.qualified_by == QUALIFIED_BY_RANK}
    return all((g, 1) in present and (g, 2) in present for g in group_names)


def crossover_pairings(records: Sequence[QualificationRecord], group_names: Sequence[str]) -> List[Pairing]:
    """A1-D2, B1-C2, C1-B2, D1-A2 (groups in name order)."""
    a, b, c, d = sorted(group_names)
    lookup = {(r.group_name, r.group_rank): r for r in records}
    return [
        (lookup[(a, 1)], lookup[(d, 2)]),
        (lookup[(b, 1)], lookup[(c, 2)]),
        (lookup[(c, 1)], lookup[(b, 2)]),
        (lookup[(d, 1)], lookup[(a, 2)]),
    ]


def placement_order(records: Sequence[QualificationRecord]) -> List[QualificationRecord]:
    """Best-placed first: direct qualifiers by group rank, then wildcards."""
    return sorted(
        records,
        key=lambda r: (r.qualified_by == QUALIFIED_BY_WILDCARD, r.group_rank, wildcard_sort_key(r.team)),
    )


def _pair_leftovers(leftovers: List[QualificationRecord]) -> List[Pairing]:
    """Pair in order, preferring a partner from another group."""
    pending = list(leftovers)
    pairs: List[Pairing] = []
    while len(pending) >= 2:
        head = pending.pop(0)
        partner = next((r for r in pending if r.group_name != head.group_name), pending[0])
        pending.remove(partner)
        pairs.append((head, partner))
    return pairs


def smart_pairings(records: Sequence[QualificationRecord], pairing_count: int) -> List[Pairing]:
    byes_needed = 2 * pairing_count - len(records)
    bye_records = placement_order(records)[:byes_needed]
    bye_ids = {id(r) for r in bye_records}
    rest = [r for r in records if id(r) not in bye_ids]

    rank1 = [r for r in rest if r.qualified_by == QUALIFIED_BY_RANK and r.group_rank == 1]
    # Wildcards count as leftovers even when they finished second in their group
    rank2 = [r for r in rest if r.qualified_by == QUALIFIED_BY_RANK and r.group_rank == 2]

    paired_ids = set()
    pairs: List[Pairing] = []
    for top in rank1:
        partner = next((r for r in rank2 if r.group_name != top.group_name), None)
        if partner is None and rank2:
            partner = rank2[0]  # same-group fallback
        if partner is None:
            continue
        rank2.remove(partner)
        pairs.append((top, partner))
        paired_ids.update((id(top), id(partner)))

    pairs.extend(_pair_leftovers([r for r in rest if id(r) not in paired_ids]))

    # Byes at the top of each half, real pairings fill the remaining positions
    positions: List[Optional[Pairing]] = [None] * pairing_count
    for position, record in zip(BYE_POSITIONS[pairing_count], bye_records):
        positions[position] = (record, None)
    real = iter(pairs)
    return [p if p is not None else next(real) for p in positions]


def _groups_of(pairing: Pairing) -> List[str]:
    return [r.group_name for r in pairing if r is not None]


def sibling_conflicts(pairings: Sequence[Pairing]) -> List[PairingConflict]:
    """Same-group teams in two pairings that feed the same semifinal."""
    conflicts: List[PairingConflict] = []
    if len(pairings) != PAIRINGS_PER_STAGE[STAGE_QUARTERFINAL]:
        return conflicts
    for first, second in ((0, 1), (2, 3)):
        left = set(_groups_of(pairings[first]))
        for group_name in sorted(left & set(_groups_of(pairings[second]))):
            conflicts.append(
                PairingConflict(
                    group_name=group_name,
                    pairing_indexes=(first, second),
                    reason=f"Quarterfinals {first + 1} and {second + 1} both hold a team from '{group_name}'",
                )
            )
    return conflicts


def same_pairing_conflicts(pairings: Sequence[Pairing]) -> List[PairingConflict]:
    """Pairings that put two teams of one group against each other (reported, not avoided)."""
    conflicts: List[PairingConflict] = []
    for index, pairing in enumerate(pairings):
        groups = _groups_of(pairing)
        if len(groups) == 2 and groups[0] == groups[1]:
            conflicts.append(
                PairingConflict(
                    group_name=groups[0],
                    pairing_indexes=(index,),
                    reason=f"Pairing {index + 1} matches two teams from '{groups[0]}'",
                )
            )
    return conflicts


def arrange_pairings(pairings: List[Pairing]) -> List[Pairing]:
    """
    Order pairings so no semifinal is fed by two same-group teams.

    Tries every order (bounded: 4 pairings -> 24 orders) and returns the
    first valid one. If none is valid, the greedy order is kept as built.
    """
    if not sibling_conflicts(pairings):
        return pairings

    for order in permutations(range(len(pairings))):
        candidate = [pairings[i] for i in order]
        if not sibling_conflicts(candidate):
            return candidate
    return pairings


def plan_bracket(
    records: Sequence[QualificationRecord],
    group_names: Sequence[str],
    qualify_per_group: int,
    qualify_by_wildcard: int,
) -> BracketPlan:
    """Build the entry-round pairings for a list of qualifiers."""
    entry_stage = entry_stage_for(len(records))
    pairing_count = PAIRINGS_PER_STAGE[entry_stage]

    if crossover_applies(records, group_names, qualify_per_group, qualify_by_wildcard):
        pairings = crossover_pairings(records, group_names)
        mode = MODE_CROSSOVER
    else:
        pairings = arrange_pairings(smart_pairings(records, pairing_count))
        mode = MODE_SMART

    conflicts = sibling_conflicts(pairings) + same_pairing_conflicts(pairings)
    return BracketPlan(entry_stage=entry_stage, mode=mode, pairings=pairings, conflicts=conflicts)
