"""
Set-score parser for beach-volleyball results (best of 3).

Supports inputs like:
  [{"team1": 21, "team2": 18}, {"team1": 19, "team2": 21}]
  [[21, 18], [19, 21], [15, 12]]
  "21-18 19-21 15-12"  /  "21-18, 19-21, 15-12"

A 0-0 set is unplayed: it keeps its position in `entered` but is left out
of `sets` and every total. Returns None on malformed input.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from beachvolley.models.match import MAX_SETS


@dataclass
class ParsedScore:
    sets: List[Tuple[int, int]]  # (team1_points, team2_points) per played set
    team1_sets_won: int
    team2_sets_won: int
    team1_points: int
    team2_points: int
    # Every set as submitted, 0-0 included, in position order
    entered: List[Tuple[int, int]] = field(default_factory=list)

    def decided_winner_side(self) -> Optional[int]:
        """1 or 2 for the side that won more sets, None if level."""
        if self.team1_sets_won > self.team2_sets_won:
            return 1
        if self.team2_sets_won > self.team1_sets_won:
            return 2
        return None


def parse_set_scores(raw: Any) -> Optional[ParsedScore]:
    """Parse set-score input into a ParsedScore.

    Returns None if the input cannot be parsed or breaks the best-of-3 shape.
    """
    if raw is None:
        return None
    if isinstance(raw, str):
        return _parse_score_string(raw.strip())
    if isinstance(raw, (list, tuple)):
        return _parse_structured_sets(raw)
    return None


def score_from_sets(sets: Iterable[Tuple[int, int]]) -> ParsedScore:
    """Summarize already-validated (team1, team2) pairs, ignoring unplayed 0-0 sets."""
    entered = list(sets)
    played = [(a, b) for a, b in entered if a > 0 or b > 0]
    return ParsedScore(
        sets=played,
        team1_sets_won=sum(1 for a, b in played if a > b),
        team2_sets_won=sum(1 for a, b in played if b > a),
        team1_points=sum(a for a, _ in played),
        team2_points=sum(b for _, b in played),
        entered=entered,
    )


def _coerce_points(value: Any) -> Optional[int]:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str):
        text = value.strip()
        # isdigit() also accepts superscripts and other non-ASCII digits
        if text.isascii() and text.isdigit():
            return int(text)
    return None


def _parse_structured_sets(sets_list) -> Optional[ParsedScore]:
    if len(sets_list) > MAX_SETS:
        return None
    sets: List[Tuple[int, int]] = []
    for s in sets_list:
        if isinstance(s, dict):
            a = _coerce_points(s.get("team1", 0))
            b = _coerce_points(s.get("team2", 0))
        elif isinstance(s, (list, tuple)) and len(s) == 2:
            a = _coerce_points(s[0])
            b = _coerce_points(s[1])
        else:
            return None
        if a is None or b is None:
            return None
        sets.append((a, b))
    return score_from_sets(sets)


def _parse_score_string(raw: str) -> Optional[ParsedScore]:
    """Parse strings like '21-18', '21-18 19-21 15-12', '21-18, 19-21, 15-12'."""
    normalized = raw.replace(",", " ").strip()
    parts = normalized.split()
    if not parts or len(parts) > MAX_SETS:
        return None

    sets: List[Tuple[int, int]] = []
    for part in parts:
        pair = part.split("-")
        if len(pair) != 2:
            return None
        a = _coerce_points(pair[0])
        b = _coerce_points(pair[1])
        if a is None or b is None:
            return None
        sets.append((a, b))

    return score_from_sets(sets)
