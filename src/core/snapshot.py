"""
Finalized bracket results and helpers for bracket data coming back from storage.
"""
import copy
from typing import Dict, List, Optional


def _side(team, score) -> Optional[Dict]:
    if not team:
        return None
    return {'name': team, 'score': score}


def _match_entry(match, numbered=True) -> Dict:
    entry = {}
    if numbered:
        entry['match'] = match.match_number
    entry['team1'] = _side(match.team1, match.team1_score)
    entry['team2'] = _side(match.team2, match.team2_score)
    entry['winner'] = {'name': match.winner} if match.winner else None
    return entry


def _placeholder_match(number: int) -> Dict:
    return {'match': number, 'team1': None, 'team2': None, 'winner': None, 'status': 'pending'}


def _name(entry) -> Optional[str]:
    if not entry:
        return None
    if isinstance(entry, dict):
        return entry.get('name')
    return entry


class BracketSnapshot:
    """Read-only view of a completed bracket in its wire shape."""

    __slots__ = ('_data',)

    def __init__(self, data: Dict):
        object.__setattr__(self, '_data', copy.deepcopy(data))

    def __setattr__(self, name, value):
        raise AttributeError("BracketSnapshot is read-only")

    @classmethod
    def from_state(cls, state) -> 'BracketSnapshot':
        return cls({
            'quarterFinals': [_match_entry(m) for m in state.quarter_finals],
            'semifinals': [_match_entry(m) for m in state.semi_finals],
            'final': _match_entry(state.final, numbered=False),
            'thirdPlace': _match_entry(state.third_place, numbered=False),
        })

    @classmethod
    def from_dict(cls, data: Dict) -> Optional['BracketSnapshot']:
        normalized = normalize_bracket_data(data)
        if normalized is None:
            return None
        return cls({
            'quarterFinals': normalized['quarterFinals'],
            'semifinals': normalized['semiFinals'],
            'final': normalized['final'],
            'thirdPlace': normalized['thirdPlace'],
        })

    @property
    def quarter_finals(self) -> List[Dict]:
        return copy.deepcopy(self._data['quarterFinals'])

    @property
    def semi_finals(self) -> List[Dict]:
        return copy.deepcopy(self._data['semifinals'])

    @property
    def final(self) -> Dict:
        return copy.deepcopy(self._data['final'])

    @property
    def third_place(self) -> Dict:
        return copy.deepcopy(self._data['thirdPlace'])

    @property
    def champion(self) -> Optional[str]:
        return _name(self._data['final'].get('winner'))

    def _matches(self) -> List[Dict]:
        data = self._data
        return data['quarterFinals'] + data['semifinals'] + [data['final'], data['thirdPlace']]

    def all_matches(self) -> List[Dict]:
        return copy.deepcopy(self._matches())

    def is_consistent(self) -> bool:
        """Every recorded winner must be one of the two teams of its match."""
        for match in self._matches():
            winner = _name(match.get('winner'))
            if winner is None:
                continue
            if winner not in (_name(match.get('team1')), _name(match.get('team2'))):
                return False
        return True

    def to_dict(self) -> Dict:
        return copy.deepcopy(self._data)

    def __eq__(self, other):
        if not isinstance(other, BracketSnapshot):
            return NotImplemented
        return self._data == other._data

    def __repr__(self):
        return f"BracketSnapshot(champion={self.champion})"


def normalize_bracket_data(data: Optional[Dict]) -> Optional[Dict]:
    """
    Normalize bracket data read back from storage or a remote service.

    Accepts the key spellings seen in stored results (semiFinals/semifinals,
    quarterFinals/quarterfinals, thirdPlace/thirdplace) and pads the bracket
    to 4 quarterfinals and 2 semifinals with pending placeholder matches.
    """
    if not data:
        return None

    normalized = {
        'quarterFinals': list(data.get('quarterFinals') or data.get('quarterfinals') or []),
        'semiFinals': list(data.get('semiFinals') or data.get('semifinals') or []),
        'final': data.get('final') or {'team1': None, 'team2': None, 'winner': None},
        'thirdPlace': data.get('thirdPlace') or data.get('thirdplace') or {'team1': None, 'team2': None, 'winner': None},
    }

    while len(normalized['quarterFinals']) < 4:
        normalized['quarterFinals'].append(_placeholder_match(len(normalized['quarterFinals']) + 1))
    while len(normalized['semiFinals']) < 2:
        normalized['semiFinals'].append(_placeholder_match(len(normalized['semiFinals']) + 1))

    return normalized


def get_podium(snapshot) -> Optional[Dict[str, Optional[str]]]:
    """
    Podium names from a finalized bracket: final winner, final loser, third place winner.

    Accepts a BracketSnapshot or a stored snapshot dict. Returns None when the final
    has not been decided.
    """
    if isinstance(snapshot, BracketSnapshot):
        final = snapshot.final
        third_place = snapshot.third_place
    else:
        normalized = normalize_bracket_data(snapshot)
        if normalized is None:
            return None
        final = normalized['final']
        third_place = normalized['thirdPlace']

    first = _name(final.get('winner'))
    if not first:
        return None
    finalists = [_name(final.get('team1')), _name(final.get('team2'))]
    second = next((team for team in finalists if team and team != first), None)
    return {
        'first': first,
        'second': second,
        'third': _name(third_place.get('winner')),
    }


def podium_prizes(prize_breakdown: Optional[List[Dict]], currency: str = 'EUR') -> Dict[str, Dict]:
    """Map a [{position, amount}] prize breakdown onto podium places."""
    amounts = {}
    for prize in prize_breakdown or []:
        position = prize.get('position')
        if position in (1, 2, 3) and position not in amounts:
            amounts[position] = prize.get('amount') or 0
    return {
        'first': {'amount': amounts.get(1, 0), 'currency': currency},
        'second': {'amount': amounts.get(2, 0), 'currency': currency},
        'third': {'amount': amounts.get(3, 0), 'currency': currency},
    }
