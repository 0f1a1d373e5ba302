"""
Shared pytest fixtures for tournament bracket tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os
import yaml

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

# Keep the app from persisting a generated key during import
os.environ.setdefault('SECRET_KEY', 'test-secret-key')

from core.models import BracketState, Team
from core.bracket import seed_quarter_finals, update_score


TEAM_NAMES = [f"T{i}" for i in range(1, 9)]


def _play(state, phase, match_index, team1_score, team2_score):
    """Record both scores of a match."""
    state = update_score(state, phase, match_index, 'team1', team1_score)
    return update_score(state, phase, match_index, 'team2', team2_score)


@pytest.fixture
def play():
    return _play


@pytest.fixture
def team_names():
    return list(TEAM_NAMES)


@pytest.fixture
def seeded_state():
    """Quarterfinals seeded with T1..T8, no scores yet."""
    return seed_quarter_finals(BracketState(), TEAM_NAMES)


@pytest.fixture
def club_teams():
    """Ten club teams across two sports."""
    teams = []
    for i in range(1, 9):
        teams.append(Team(name=f"T{i}", attributes={'id': f"id-{i}", 'sport': 'football'}))
    teams.append(Team(name="Hoops", attributes={'id': 'id-9', 'sport': 'basketball'}))
    teams.append(Team(name="Dunkers", attributes={'id': 'id-10', 'sport': 'basketball'}))
    return teams


@pytest.fixture
def client():
    """Create an authenticated test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        with client.session_transaction() as sess:
            sess['user'] = 'testuser'
        yield client


@pytest.fixture
def anonymous_client():
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the app at a temporary data directory with a small club registry."""
    import app as app_module

    users_file = tmp_path / "users.yaml"
    teams_file = tmp_path / "teams.yaml"
    tournaments_dir = tmp_path / "tournaments"
    tournaments_dir.mkdir()

    teams = [{'name': f"T{i}", 'id': f"id-{i}", 'sport': 'football'} for i in range(1, 9)]
    teams.append({'name': 'Hoops', 'id': 'id-9', 'sport': 'basketball'})
    teams_file.write_text(yaml.dump({'teams': teams}, default_flow_style=False))

    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setattr(app_module, 'USERS_FILE', str(users_file))
    monkeypatch.setattr(app_module, 'TEAMS_FILE', str(teams_file))
    monkeypatch.setattr(app_module, 'TOURNAMENTS_DIR', str(tournaments_dir))
    monkeypatch.setattr(app_module, 'TOURNAMENT_SERVICE_URL', None)

    return tmp_path
