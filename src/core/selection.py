"""
Team selection and draw order for an 8-team knockout tournament.
"""
import random
from typing import List, Optional, Tuple

from .models import Team

BRACKET_SIZE = 8


def _is_selected(team: Team, selected: List[Team]) -> bool:
    return any(t.identifier == team.identifier for t in selected)


def filter_available_teams(available: List[Team], selected: List[Team],
                           search_term: str = '', sport: str = 'all') -> List[Team]:
    """Teams that can still be picked, filtered by name search and sport."""
    search = (search_term or '').lower()
    result = []
    for team in available:
        if search and search not in team.name.lower():
            continue
        if sport and sport != 'all' and team.sport != sport:
            continue
        if _is_selected(team, selected):
            continue
        result.append(team)
    return result


def toggle_team(selected: List[Team], team: Team) -> List[Team]:
    """Remove a selected team or add a new one while there is room."""
    if _is_selected(team, selected):
        return [t for t in selected if t.identifier != team.identifier]
    if len(selected) < BRACKET_SIZE:
        return selected + [team]
    return list(selected)


def unique_sports(available: List[Team]) -> List[str]:
    sports = []
    for team in available:
        if team.sport and team.sport not in sports:
            sports.append(team.sport)
    return sports


def validate_selection(selected: List[Team]) -> Tuple[bool, str]:
    """Check that exactly 8 distinct teams are selected. Returns (valid, message)."""
    identifiers = {team.identifier for team in selected}
    if len(identifiers) != len(selected):
        return False, 'The same team was selected more than once.'
    names = {team.name.strip().lower() for team in selected}
    if len(names) != len(selected):
        return False, 'Two selected teams share the same name.'
    if len(selected) != BRACKET_SIZE:
        return False, f'You must select exactly {BRACKET_SIZE} teams (got {len(selected)}).'
    return True, 'Teams selected.'


def draw_team_order(teams: List[Team], rng: Optional[random.Random] = None) -> List[str]:
    """
    Roulette draw: pick the remaining teams one at a time at random.

    The resulting order seeds the quarterfinals pairwise.
    """
    if len(teams) != BRACKET_SIZE:
        raise ValueError(f'Need exactly {BRACKET_SIZE} teams for the draw, got {len(teams)}')
    rng = rng or random.Random()
    remaining = list(teams)
    order = []
    while remaining:
        picked = remaining.pop(rng.randrange(len(remaining)))
        order.append(picked.name)
    return order
