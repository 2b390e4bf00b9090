"""
Qualification Selector

Direct qualifiers: the top `qualify_per_group` of every group.
Wildcards: the best `qualify_by_wildcard` of everyone left over, pooled
across groups and ranked by wins, set differential, point differential,
points scored, then registration order.
"""
from dataclasses import dataclass
from typing import Dict, List, Literal, Sequence

from beachvolley.services.errors import ValidationError
from beachvolley.services.standings import TeamStats, wildcard_sort_key

QUALIFIED_BY_RANK = "rank"
QUALIFIED_BY_WILDCARD = "wildcard"

MIN_QUALIFIERS = 2


@dataclass
class QualificationRecord:
    team: TeamStats
    group_rank: int  # 1-based rank within the team's group
    group_name: str
    qualified_by: Literal["rank", "wildcard"]

    @property
    def team_id(self) -> int:
        return self.team.team_id


def select_qualifiers(
    standings: Dict[str, Sequence[TeamStats]],
    qualify_per_group: int,
    qualify_by_wildcard: int,
) -> List[QualificationRecord]:
    """
    Pick knockout qualifiers from ranked group standings.

    Returns direct qualifiers group by group (name order, rank order),
    followed by wildcards in wildcard order.

    Raises:
        ValidationError: negative counts, or fewer than 2 qualifiers result
    """
    if qualify_per_group < 0 or qualify_by_wildcard < 0:
        raise ValidationError("qualify_per_group and qualify_by_wildcard must be >= 0")

    direct: List[QualificationRecord] = []
    pool: List[QualificationRecord] = []

    for group_name in sorted(standings):
        for index, row in enumerate(standings[group_name]):
            record = QualificationRecord(
                team=row,
                group_rank=index + 1,
                group_name=group_name,
                qualified_by=QUALIFIED_BY_RANK,
            )
            if index < qualify_per_group:
                direct.append(record)
            else:
                pool.append(record)

    pool.sort(key=lambda r: wildcard_sort_key(r.team))
    wildcards = pool[:qualify_by_wildcard]
    for record in wildcards:
        record.qualified_by = QUALIFIED_BY_WILDCARD

    qualified = direct + wildcards
    if len(qualified) < MIN_QUALIFIERS:
        raise ValidationError(
            f"At least {MIN_QUALIFIERS} qualified teams are required for a knockout stage, got {len(qualified)}"
        )
    return qualified
