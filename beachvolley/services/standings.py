"""
Standings Calculator

Derives cumulative group-stage statistics from finished group matches and
ranks the teams of each group.

Group ranking (descending):
1. match wins
2. exactly two teams tied on wins -> head-to-head winner first
3. point differential
4. points scored, then registration order (team id) so the order is stable

Wildcard ranking (across groups) uses wins, set differential, point
differential, points scored, then registration order.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass
from itertools import groupby
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlmodel import Session, select

from beachvolley.models.match import STAGE_GROUP, STATUS_FINISHED, Match
from beachvolley.models.team import Team
from beachvolley.services.score_parser import score_from_sets

logger = logging.getLogger(__name__)


@dataclass
class TeamStats:
    team_id: int
    name: str = ""
    group_name: Optional[str] = None
    wins: int = 0
    losses: int = 0
    sets_won: int = 0
    sets_lost: int = 0
    points_scored: int = 0
    points_conceded: int = 0
    matches_played: int = 0

    @property
    def set_diff(self) -> int:
        return self.sets_won - self.sets_lost

    @property
    def point_diff(self) -> int:
        return self.points_scored - self.points_conceded

    @classmethod
    def from_team(cls, team: Team) -> "TeamStats":
        return cls(
            team_id=team.id,
            name=team.name,
            group_name=team.group_name,
            wins=team.wins,
            losses=team.losses,
            sets_won=team.sets_won,
            sets_lost=team.sets_lost,
            points_scored=team.points_scored,
            points_conceded=team.points_conceded,
            matches_played=team.matches_played,
        )

    def apply_to(self, team: Team) -> None:
        team.wins = self.wins
        team.losses = self.losses
        team.sets_won = self.sets_won
        team.sets_lost = self.sets_lost
        team.points_scored = self.points_scored
        team.points_conceded = self.points_conceded
        team.matches_played = self.matches_played


def _is_counted(match: Match) -> bool:
    return (
        match.stage == STAGE_GROUP
        and match.status == STATUS_FINISHED
        and match.team1_id is not None
        and match.team2_id is not None
    )


def accumulate_stats(teams: Iterable[Team], matches: Iterable[Match]) -> Dict[int, TeamStats]:
    """Build fresh stats for every team from the finished group matches.

    Matches with an empty team slot, or naming a team outside the roster,
    are skipped.
    """
    stats = {t.id: TeamStats(team_id=t.id, name=t.name, group_name=t.group_name) for t in teams}

    for match in matches:
        if not _is_counted(match):
            continue
        s1 = stats.get(match.team1_id)
        s2 = stats.get(match.team2_id)
        if s1 is None or s2 is None:
            continue

        score = score_from_sets(match.set_scores)
        for p1, p2 in score.sets:
            s1.points_scored += p1
            s1.points_conceded += p2
            s2.points_scored += p2
            s2.points_conceded += p1
            if p1 > p2:
                s1.sets_won += 1
                s2.sets_lost += 1
            elif p2 > p1:
                s2.sets_won += 1
                s1.sets_lost += 1

        s1.matches_played += 1
        s2.matches_played += 1
        if match.winner_id == match.team1_id:
            s1.wins += 1
            s2.losses += 1
        elif match.winner_id == match.team2_id:
            s2.wins += 1
            s1.losses += 1

    return stats


def head_to_head_winner(team_a_id: int, team_b_id: int, matches: Iterable[Match]) -> Optional[int]:
    """Winner of the finished group match between two teams, if any."""
    pair = {team_a_id, team_b_id}
    for match in matches:
        if not _is_counted(match):
            continue
        if {match.team1_id, match.team2_id} == pair and match.winner_id in pair:
            return match.winner_id
    return None


def rank_group(rows: Sequence[TeamStats], matches: Sequence[Match]) -> List[TeamStats]:
    ordered = sorted(rows, key=lambda r: (-r.wins, -r.point_diff, -r.points_scored, r.team_id))

    ranked: List[TeamStats] = []
    for _, bucket_iter in groupby(ordered, key=lambda r: r.wins):
        bucket = list(bucket_iter)
        if len(bucket) == 2:
            winner = head_to_head_winner(bucket[0].team_id, bucket[1].team_id, matches)
            if winner == bucket[1].team_id:
                bucket.reverse()
        ranked.extend(bucket)
    return ranked


def wildcard_sort_key(row: TeamStats) -> Tuple[int, int, int, int, int]:
    return (-row.wins, -row.set_diff, -row.point_diff, -row.points_scored, row.team_id)


def build_standings(
    teams: Sequence[Team],
    matches: Sequence[Match],
    stats: Optional[Dict[int, TeamStats]] = None,
) -> Dict[str, List[TeamStats]]:
    """Ranked standings per group name (groups in name order). Teams without a group are left out."""
    if stats is None:
        stats = accumulate_stats(teams, matches)
    by_group: Dict[str, List[TeamStats]] = defaultdict(list)
    for team in teams:
        if team.group_name:
            by_group[team.group_name].append(stats[team.id])

    return {
        group_name: rank_group(rows, [m for m in matches if m.group_name == group_name])
        for group_name, rows in sorted(by_group.items())
    }


def load_group_inputs(session: Session, category_id: int) -> Tuple[List[Team], List[Match]]:
    teams = session.exec(select(Team).where(Team.category_id == category_id).order_by(Team.id)).all()
    matches = session.exec(
        select(Match)
        .where(Match.category_id == category_id, Match.stage == STAGE_GROUP)
        .order_by(Match.match_number)
    ).all()
    return list(teams), list(matches)


def recompute_category_standings(session: Session, category_id: int) -> Dict[str, List[Team]]:
    """
    Recompute and store every team's group stats, then return ranked teams per group.

    Adds the updated teams to the session; the caller owns the commit.
    """
    teams, matches = load_group_inputs(session, category_id)
    fresh = accumulate_stats(teams, matches)
    standings = build_standings(teams, matches, fresh)

    teams_by_id = {t.id: t for t in teams}
    for team in teams:
        fresh[team.id].apply_to(team)
        session.add(team)

    logger.debug("Recomputed standings for category %d (%d groups)", category_id, len(standings))
    return {
        group_name: [teams_by_id[row.team_id] for row in rows]
        for group_name, rows in standings.items()
    }
