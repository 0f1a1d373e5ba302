"""
Unit tests for bracket snapshots, normalization and the podium.
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import Phase
from core.bracket import advance_phase, finalize_bracket
from core.snapshot import BracketSnapshot, normalize_bracket_data, get_podium, podium_prizes


@pytest.fixture
def snapshot(seeded_state, play):
    """Finalized bracket: T1 champion, T8 runner-up, T5 third."""
    state = seeded_state
    for index, (a, b) in enumerate([(3, 1), (0, 2), (5, 4), (1, 6)]):
        state = play(state, Phase.QUARTER_FINALS, index, a, b)
    state = advance_phase(state)
    state = play(state, Phase.SEMI_FINALS, 0, 2, 0)
    state = play(state, Phase.SEMI_FINALS, 1, 1, 3)
    state = advance_phase(state)
    state = play(state, Phase.FINAL, None, 2, 1)
    state = play(state, Phase.THIRD_PLACE, None, 0, 1)
    return finalize_bracket(state)


class TestBracketSnapshot:

    def test_read_only(self, snapshot):
        with pytest.raises(AttributeError):
            snapshot.champion = "T2"
        with pytest.raises(AttributeError):
            snapshot._data = {}

    def test_copies_do_not_leak(self, snapshot):
        data = snapshot.to_dict()
        data['final']['winner'] = {'name': "T8"}
        snapshot.final['winner'] = {'name': "T8"}
        assert snapshot.champion == "T1"

    def test_all_matches_returns_copies(self, snapshot):
        """Editing the listed matches leaves the stored result unchanged."""
        matches = snapshot.all_matches()
        assert len(matches) == 8
        matches[6]['winner'] = {'name': "ZZZ"}
        matches[0]['team1'] = None
        assert snapshot.champion == "T1"
        assert snapshot.is_consistent()
        assert snapshot.all_matches()[0]['team1'] == {'name': "T1", 'score': 3}

    def test_from_dict_round_trip(self, snapshot):
        assert BracketSnapshot.from_dict(snapshot.to_dict()) == snapshot

    def test_from_empty_dict(self):
        assert BracketSnapshot.from_dict({}) is None

    def test_inconsistent_winner_detected(self, snapshot):
        data = snapshot.to_dict()
        data['semifinals'][0]['winner'] = {'name': "T7"}
        assert not BracketSnapshot(data).is_consistent()


class TestNormalizeBracketData:

    def test_none_for_empty(self):
        assert normalize_bracket_data(None) is None
        assert normalize_bracket_data({}) is None

    def test_alternate_key_spellings(self):
        data = {
            'quarterfinals': [{'match': 1, 'team1': {'name': 'A'}, 'team2': {'name': 'B'}, 'winner': None}],
            'semifinals': [],
            'thirdplace': {'team1': {'name': 'C'}, 'team2': None, 'winner': None},
        }
        normalized = normalize_bracket_data(data)
        assert normalized['quarterFinals'][0]['team1'] == {'name': 'A'}
        assert normalized['thirdPlace']['team1'] == {'name': 'C'}
        assert normalized['final'] == {'team1': None, 'team2': None, 'winner': None}

    def test_pads_missing_matches(self):
        normalized = normalize_bracket_data({'semiFinals': [{'match': 1}]})
        assert len(normalized['quarterFinals']) == 4
        assert len(normalized['semiFinals']) == 2
        assert normalized['semiFinals'][1] == {
            'match': 2, 'team1': None, 'team2': None, 'winner': None, 'status': 'pending'
        }


class TestPodium:

    def test_podium_from_snapshot(self, snapshot):
        assert get_podium(snapshot) == {'first': "T1", 'second': "T8", 'third': "T5"}

    def test_podium_from_stored_dict(self, snapshot):
        assert get_podium(snapshot.to_dict()) == {'first': "T1", 'second': "T8", 'third': "T5"}

    def test_no_podium_without_final_winner(self):
        assert get_podium({'final': {'team1': {'name': 'A'}, 'team2': {'name': 'B'}, 'winner': None}}) is None
        assert get_podium(None) is None

    def test_prizes(self):
        prizes = podium_prizes([{'position': 1, 'amount': 500}, {'position': 3, 'amount': 100}], 'USD')
        assert prizes == {
            'first': {'amount': 500, 'currency': 'USD'},
            'second': {'amount': 0, 'currency': 'USD'},
            'third': {'amount': 100, 'currency': 'USD'},
        }

    def test_prizes_without_breakdown(self):
        assert podium_prizes(None)['first'] == {'amount': 0, 'currency': 'EUR'}
