"""
Court numbering and labels.

Courts cycle 1..total_courts in match-creation order.
"""
from typing import List, Optional


def court_number_for_match(match_number: int, total_courts: int) -> int:
    """Court for the n-th created match (1-based): ((n - 1) mod total_courts) + 1."""
    courts = max(total_courts or 1, 1)
    return ((match_number - 1) % courts) + 1


def court_label_for_number(court_names: Optional[List[str]], court_number: int) -> str:
    """
    Display label for a 1-based court number.
    Falls back to the number itself when no (or too few) names are configured.
    """
    labels = [str(x).strip() for x in (court_names or []) if str(x).strip()]
    if 1 <= court_number <= len(labels):
        return labels[court_number - 1]
    return str(court_number)
