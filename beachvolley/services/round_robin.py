"""
Round-Robin Scheduler

1. Draw: shuffle the roster and deal it into N named groups.
2. Per group: circle method (fix the first team, rotate the rest); odd
   groups get a BYE placeholder whose pairings are dropped.
3. Rounds with the same index are merged across groups.
4. Combined rounds are greedily reordered so each round shares as few
   teams as possible with the round placed before it.
5. Matches are numbered sequentially; courts cycle 1..total_courts.
"""
import random
import string
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from beachvolley.utils.courts import court_number_for_match

BYE = None

Pair = Tuple[int, int]


@dataclass
class RoundPairing:
    group_name: str
    team1_id: int
    team2_id: int


@dataclass
class ScheduledMatch:
    match_number: int
    round_number: int
    group_name: str
    team1_id: int
    team2_id: int
    court_number: int


def group_label(index: int) -> str:
    """0 -> 'Group A', 25 -> 'Group Z', 26 -> 'Group AA'."""
    letters = ""
    n = index
    while True:
        letters = string.ascii_uppercase[n % 26] + letters
        n = n // 26 - 1
        if n < 0:
            break
    return f"Group {letters}"


def draw_groups(
    team_ids: Sequence[int], num_groups: int, rng: Optional[random.Random] = None
) -> Dict[str, List[int]]:
    """Shuffle the teams and deal them one at a time into num_groups groups."""
    rng = rng or random.Random()
    shuffled = list(team_ids)
    rng.shuffle(shuffled)

    names = [group_label(i) for i in range(num_groups)]
    groups: Dict[str, List[int]] = {name: [] for name in names}
    for i, team_id in enumerate(shuffled):
        groups[names[i % num_groups]].append(team_id)
    return groups


def circle_rounds(team_ids: Sequence[int]) -> List[List[Pair]]:
    """
    Round-robin rounds by the circle method.

    Even n: n-1 rounds of n/2 matches. Odd n: a BYE is added, giving n rounds
    with one team resting in each.
    """
    positions: List[Optional[int]] = list(team_ids)
    if len(positions) % 2 == 1:
        positions.append(BYE)

    n = len(positions)
    half = n // 2
    rounds: List[List[Pair]] = []

    for _ in range(n - 1):
        pairs: List[Pair] = []
        for i in range(half):
            a, b = positions[i], positions[n - 1 - i]
            if a is BYE or b is BYE:
                continue
            pairs.append((a, b))
        rounds.append(pairs)
        # Rotate: keep first, move last to second, shift others
        positions = [positions[0]] + [positions[-1]] + positions[1:-1]

    return rounds


def merge_group_rounds(rounds_by_group: Dict[str, List[List[Pair]]]) -> List[List[RoundPairing]]:
    """Combine round k of every group into one round (groups in name order). Empty rounds are dropped."""
    max_rounds = max((len(r) for r in rounds_by_group.values()), default=0)
    combined: List[List[RoundPairing]] = []
    for idx in range(max_rounds):
        this_round = [
            RoundPairing(group_name=group_name, team1_id=a, team2_id=b)
            for group_name in sorted(rounds_by_group)
            if idx < len(rounds_by_group[group_name])
            for a, b in rounds_by_group[group_name][idx]
        ]
        if this_round:
            combined.append(this_round)
    return combined


def _teams_in(round_pairings: Sequence[RoundPairing]) -> Set[int]:
    teams: Set[int] = set()
    for p in round_pairings:
        teams.add(p.team1_id)
        teams.add(p.team2_id)
    return teams


def order_rounds_min_overlap(rounds: List[List[RoundPairing]]) -> List[List[RoundPairing]]:
    """
    Greedy reorder: keep round 1 first, then repeatedly take the remaining
    round sharing the fewest teams with the previous one (lowest original
    index on ties).
    """
    if not rounds:
        return []

    order = [0]
    remaining = list(range(1, len(rounds)))
    while remaining:
        previous = _teams_in(rounds[order[-1]])
        best = min(remaining, key=lambda i: (len(previous & _teams_in(rounds[i])), i))
        order.append(best)
        remaining.remove(best)

    return [rounds[i] for i in order]


def build_group_schedule(
    groups: Dict[str, Sequence[int]],
    total_courts: int,
    first_match_number: int = 1,
) -> List[ScheduledMatch]:
    """Full group-stage schedule: round numbers 1..R, sequential match numbers, cycling courts."""
    rounds_by_group = {name: circle_rounds(team_ids) for name, team_ids in groups.items()}
    combined = order_rounds_min_overlap(merge_group_rounds(rounds_by_group))

    scheduled: List[ScheduledMatch] = []
    match_number = first_match_number
    for round_number, pairings in enumerate(combined, start=1):
        for p in pairings:
            scheduled.append(
                ScheduledMatch(
                    match_number=match_number,
                    round_number=round_number,
                    group_name=p.group_name,
                    team1_id=p.team1_id,
                    team2_id=p.team2_id,
                    court_number=court_number_for_match(match_number, total_courts),
                )
            )
            match_number += 1
    return scheduled
