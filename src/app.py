"""
Flask web application for the Tournament Bracket service.
"""
import os
import re
import logging
import yaml
from datetime import datetime, timedelta
from functools import wraps
from filelock import FileLock
from flask import Flask, request, jsonify, session, abort
from core.models import BracketState, Phase, Team
from core.bracket import (
    BracketError,
    InvalidMatch,
    seed_quarter_finals,
    update_score,
    is_phase_complete,
    advance_phase,
    finalize_bracket,
)
from core.selection import (
    filter_available_teams,
    toggle_team,
    unique_sports,
    validate_selection,
    draw_team_order,
)
from core.snapshot import get_podium, podium_prizes
from publish import publish_bracket

app = Flask(__name__)


def _get_or_create_secret_key() -> bytes:
    """Get SECRET_KEY from env, or generate and persist to file."""
    env_key = os.environ.get('SECRET_KEY')
    if env_key:
        return env_key.encode() if isinstance(env_key, str) else env_key
    key_file = os.path.join(DATA_DIR, '.secret_key')
    if os.path.exists(key_file):
        with open(key_file, 'rb') as f:
            return f.read()
    key = os.urandom(24)
    os.makedirs(os.path.dirname(key_file), exist_ok=True)
    with open(key_file, 'wb') as f:
        f.write(key)
    return key


BASE_DIR = os.path.dirname(os.path.dirname(__file__))
DATA_DIR = os.environ.get('TOURNAMENT_DATA_DIR', os.path.join(BASE_DIR, 'data'))

app.secret_key = _get_or_create_secret_key()
app.config['PERMANENT_SESSION_LIFETIME'] = timedelta(days=30)

USERS_FILE = os.path.join(DATA_DIR, 'users.yaml')
TEAMS_FILE = os.path.join(DATA_DIR, 'teams.yaml')
TOURNAMENTS_DIR = os.path.join(DATA_DIR, 'tournaments')

# Remote tournament service receiving finalized brackets (optional)
TOURNAMENT_SERVICE_URL = os.environ.get('TOURNAMENT_SERVICE_URL')
TOURNAMENT_SERVICE_TOKEN = os.environ.get('TOURNAMENT_SERVICE_TOKEN')

ACTIVE_PHASES = (Phase.QUARTER_FINALS, Phase.SEMI_FINALS, Phase.FINAL)


def _data_lock() -> FileLock:
    """Lock guarding read-modify-write cycles on the data directory."""
    os.makedirs(DATA_DIR, exist_ok=True)
    return FileLock(os.path.join(DATA_DIR, '.lock'), timeout=10)


def load_users() -> list:
    """Load user registry from YAML."""
    if not os.path.exists(USERS_FILE):
        return []
    try:
        with open(USERS_FILE, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        return data.get('users', []) if data else []
    except Exception as e:
        app.logger.warning(f'Failed to parse {USERS_FILE}: {e}')
        return []


def save_users(users: list):
    """Save user registry to YAML."""
    os.makedirs(os.path.dirname(USERS_FILE), exist_ok=True)
    with open(USERS_FILE, 'w', encoding='utf-8') as f:
        yaml.dump({'users': users}, f, default_flow_style=False)


def create_user(username: str, password: str) -> tuple:
    """Create a new user. Returns (success, message)."""
    from werkzeug.security import generate_password_hash
    username = username.lower().strip()
    if not re.match(r'^[a-z0-9][a-z0-9-]*$', username) or len(username) < 2:
        return False, 'Username must be at least 2 characters: letters, numbers, hyphens.'
    if len(password) < 4:
        return False, 'Password must be at least 4 characters.'
    with _data_lock():
        users = load_users()
        if any(u['username'] == username for u in users):
            return False, 'Username already taken.'
        users.append({
            'username': username,
            'password_hash': generate_password_hash(password),
            'created': datetime.now().isoformat()
        })
        save_users(users)
    return True, 'Account created successfully.'


def authenticate_user(username: str, password: str) -> bool:
    """Check username/password. Returns True if valid."""
    from werkzeug.security import check_password_hash
    users = load_users()
    for u in users:
        if u['username'] == username.lower().strip():
            return check_password_hash(u['password_hash'], password)
    return False


def login_required(f):
    """Reject API calls from clients without a session."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user' not in session:
            return jsonify({'error': 'Authentication required'}), 401
        return f(*args, **kwargs)
    return decorated_function


def _slugify(name: str) -> str:
    """Convert tournament name to filesystem-safe slug."""
    slug = name.lower().strip()
    slug = re.sub(r'[^a-z0-9\s-]', '', slug)
    slug = re.sub(r'[\s-]+', '-', slug)
    slug = slug.strip('-')
    return slug or 'tournament'


def _tournament_dir(slug: str) -> str:
    return os.path.join(TOURNAMENTS_DIR, slug)


def _tournament_file(slug: str, filename: str) -> str:
    return os.path.join(_tournament_dir(slug), filename)


def _load_yaml(path: str, default):
    if not os.path.exists(path):
        return default
    with open(path, 'r', encoding='utf-8') as f:
        data = yaml.safe_load(f)
    return data if data else default


def _save_yaml(path: str, data):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False, allow_unicode=True)


def load_club_teams() -> list:
    """Load the club's team registry."""
    data = _load_yaml(TEAMS_FILE, {})
    return [Team.from_dict(t) for t in data.get('teams', [])]


def save_club_teams(teams: list):
    _save_yaml(TEAMS_FILE, {'teams': [t.to_dict() for t in teams]})


def list_tournaments() -> list:
    if not os.path.isdir(TOURNAMENTS_DIR):
        return []
    tournaments = []
    for slug in sorted(os.listdir(TOURNAMENTS_DIR)):
        data = load_tournament(slug)
        if data:
            tournaments.append(data)
    return tournaments


def load_tournament(slug: str):
    """Load tournament metadata, or None if it does not exist."""
    try:
        return _load_yaml(_tournament_file(slug, 'tournament.yaml'), None)
    except yaml.YAMLError as e:
        app.logger.warning(f'Failed to parse tournament {slug}: {e}')
        return None


def save_tournament(slug: str, data: dict):
    data['updated'] = datetime.now().isoformat()
    _save_yaml(_tournament_file(slug, 'tournament.yaml'), data)


def load_bracket(slug: str) -> BracketState:
    """Load the in-progress bracket, starting empty if none was saved."""
    return BracketState.from_dict(_load_yaml(_tournament_file(slug, 'bracket.yaml'), {}))


def save_bracket(slug: str, state: BracketState):
    _save_yaml(_tournament_file(slug, 'bracket.yaml'), state.to_dict())


def load_results(slug: str) -> dict:
    return _load_yaml(_tournament_file(slug, 'results.yaml'), {})


def save_results(slug: str, results: dict):
    _save_yaml(_tournament_file(slug, 'results.yaml'), results)


def _get_tournament_or_404(slug: str) -> dict:
    if _slugify(slug) != slug:
        abort(404)
    tournament = load_tournament(slug)
    if tournament is None:
        abort(404)
    return tournament


def _tournament_teams(tournament: dict) -> list:
    return [Team.from_dict(t) for t in tournament.get('teams', [])]


def _is_name_list(value) -> bool:
    return isinstance(value, list) and all(isinstance(v, str) and v.strip() for v in value)


def _bracket_response(state: BracketState, **extra):
    body = {
        'bracket': state.to_dict(),
        'phase_complete': {phase.value: is_phase_complete(state, phase) for phase in ACTIVE_PHASES},
    }
    body.update(extra)
    return jsonify(body)


@app.errorhandler(BracketError)
def handle_bracket_error(e):
    app.logger.info(f'Rejected bracket operation: {e}')
    return jsonify({'error': str(e), 'kind': type(e).__name__}), 409


@app.errorhandler(InvalidMatch)
def handle_invalid_match(e):
    return jsonify({'error': str(e), 'kind': type(e).__name__}), 400


@app.errorhandler(404)
def handle_not_found(e):
    return jsonify({'error': 'Not found'}), 404


@app.route('/login', methods=['POST'])
def login_page():
    data = request.get_json(silent=True) or request.form
    username = data.get('username', '')
    password = data.get('password', '')
    if not authenticate_user(username, password):
        return jsonify({'error': 'Invalid username or password'}), 401
    session.permanent = True
    session['user'] = username.lower().strip()
    return jsonify({'success': True, 'user': session['user']})


@app.route('/register', methods=['POST'])
def register_page():
    data = request.get_json(silent=True) or request.form
    success, message = create_user(data.get('username', ''), data.get('password', ''))
    if not success:
        return jsonify({'error': message}), 400
    return jsonify({'success': True, 'message': message})


@app.route('/logout')
def logout():
    session.pop('user', None)
    return jsonify({'success': True})


@app.route('/api/teams', methods=['GET'])
@login_required
def api_list_teams():
    teams = load_club_teams()
    return jsonify({
        'teams': [t.to_dict() for t in teams],
        'sports': unique_sports(teams),
    })


@app.route('/api/teams/add', methods=['POST'])
@login_required
def api_add_team():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Team name is required'}), 400
    with _data_lock():
        teams = load_club_teams()
        team = Team.from_dict(dict(data, name=name))
        lowered = name.lower()
        if any(t.name.lower() == lowered or t.identifier == team.identifier for t in teams):
            return jsonify({'error': f'Team {name} already exists'}), 400
        teams.append(team)
        save_club_teams(teams)
    return jsonify({'success': True, 'team': team.to_dict()})


@app.route('/api/tournaments', methods=['GET'])
@login_required
def api_list_tournaments():
    return jsonify({'tournaments': list_tournaments()})


@app.route('/api/tournaments/create', methods=['POST'])
@login_required
def api_create_tournament():
    data = request.get_json(silent=True) or {}
    name = (data.get('name') or '').strip()
    if not name:
        return jsonify({'error': 'Tournament name is required'}), 400
    slug = _slugify(name)
    with _data_lock():
        if load_tournament(slug) is not None:
            return jsonify({'error': f'Tournament "{slug}" already exists'}), 400
        tournament = {
            'slug': slug,
            'name': name,
            'sport': data.get('sport', 'all'),
            'teams': [],
            'team_order': [],
            'draw_completed': False,
            'stage': 'registration',
            'prize_breakdown': data.get('prize_breakdown', []),
            'currency': data.get('currency', 'EUR'),
            'created': datetime.now().isoformat(),
            'created_by': session.get('user'),
        }
        save_tournament(slug, tournament)
        save_bracket(slug, BracketState())
    app.logger.info(f'Created tournament {slug}')
    return jsonify({'success': True, 'tournament': tournament})


@app.route('/api/tournaments/<slug>', methods=['GET'])
@login_required
def api_get_tournament(slug):
    return jsonify({'tournament': _get_tournament_or_404(slug)})


@app.route('/api/tournaments/<slug>/available-teams', methods=['GET'])
@login_required
def api_available_teams(slug):
    tournament = _get_tournament_or_404(slug)
    available = filter_available_teams(
        load_club_teams(),
        _tournament_teams(tournament),
        search_term=request.args.get('search', ''),
        sport=request.args.get('sport', tournament.get('sport', 'all')),
    )
    return jsonify({'teams': [t.to_dict() for t in available]})


@app.route('/api/tournaments/<slug>/teams/toggle', methods=['POST'])
@login_required
def api_toggle_team(slug):
    data = request.get_json(silent=True) or {}
    if not data.get('name'):
        return jsonify({'error': 'Missing team name'}), 400
    with _data_lock():
        tournament = _get_tournament_or_404(slug)
        if tournament.get('draw_completed'):
            return jsonify({'error': 'The draw is already complete'}), 409
        selected = toggle_team(_tournament_teams(tournament), Team.from_dict(data))
        tournament['teams'] = [t.to_dict() for t in selected]
        save_tournament(slug, tournament)
    return jsonify({'success': True, 'teams': tournament['teams']})


@app.route('/api/tournaments/<slug>/teams', methods=['POST'])
@login_required
def api_select_teams(slug):
    data = request.get_json(silent=True) or {}
    try:
        selected = [Team.from_dict(t) for t in data.get('teams', [])]
    except (KeyError, TypeError, AttributeError):
        return jsonify({'error': 'Each team needs a name'}), 400
    valid, message = validate_selection(selected)
    if not valid:
        return jsonify({'error': message}), 400
    with _data_lock():
        tournament = _get_tournament_or_404(slug)
        tournament['teams'] = [t.to_dict() for t in selected]
        tournament['team_order'] = []
        tournament['draw_completed'] = False
        save_tournament(slug, tournament)
    return jsonify({'success': True, 'message': message, 'teams': tournament['teams']})


@app.route('/api/tournaments/<slug>/draw', methods=['POST'])
@login_required
def api_draw(slug):
    with _data_lock():
        tournament = _get_tournament_or_404(slug)
        teams = _tournament_teams(tournament)
        valid, message = validate_selection(teams)
        if not valid:
            return jsonify({'error': message}), 400
        order = draw_team_order(teams)
        tournament['team_order'] = order
        tournament['draw_completed'] = True
        tournament['draw_date'] = datetime.now().isoformat()
        tournament['stage'] = 'knockout'
        save_tournament(slug, tournament)
        state = seed_quarter_finals(BracketState(), order)
        save_bracket(slug, state)
        save_results(slug, {})
    app.logger.info(f'Draw completed for {slug}: {order}')
    return _bracket_response(state, team_order=order)


@app.route('/api/tournaments/<slug>/bracket', methods=['GET'])
@login_required
def api_get_bracket(slug):
    _get_tournament_or_404(slug)
    return _bracket_response(load_bracket(slug))


@app.route('/api/tournaments/<slug>/bracket/seed', methods=['POST'])
@login_required
def api_seed_bracket(slug):
    data = request.get_json(silent=True) or {}
    requested_order = data.get('team_order')
    if requested_order is not None and not _is_name_list(requested_order):
        return jsonify({'error': 'team_order must be a list of team names'}), 400
    with _data_lock():
        tournament = _get_tournament_or_404(slug)
        team_order = requested_order or tournament.get('team_order')
        fallback = [t.name for t in _tournament_teams(tournament)]
        state = seed_quarter_finals(load_bracket(slug), team_order, fallback)
        save_bracket(slug, state)
    return _bracket_response(state)


@app.route('/api/tournaments/<slug>/bracket/score', methods=['POST'])
@login_required
def api_update_score(slug):
    data = request.get_json(silent=True) or {}
    try:
        phase = Phase(data.get('phase'))
    except ValueError:
        return jsonify({'error': f"Unknown phase: {data.get('phase')!r}"}), 400
    match_index = data.get('match_index')
    if match_index is not None:
        try:
            match_index = int(match_index)
        except (TypeError, ValueError):
            return jsonify({'error': 'match_index must be an integer'}), 400

    with _data_lock():
        tournament = _get_tournament_or_404(slug)
        if tournament.get('stage') == 'completed':
            return jsonify({'error': 'Tournament is finalized; reset the bracket to change scores'}), 409
        state = update_score(load_bracket(slug), phase, match_index, data.get('side'), data.get('score'))
        save_bracket(slug, state)
    return _bracket_response(state)


@app.route('/api/tournaments/<slug>/bracket/advance', methods=['POST'])
@login_required
def api_advance_phase(slug):
    with _data_lock():
        _get_tournament_or_404(slug)
        state = advance_phase(load_bracket(slug))
        save_bracket(slug, state)
    app.logger.info(f'{slug} advanced to {state.current_phase.value}')
    return _bracket_response(state)


@app.route('/api/tournaments/<slug>/bracket/finalize', methods=['POST'])
@login_required
def api_finalize_bracket(slug):
    with _data_lock():
        tournament = _get_tournament_or_404(slug)
        snapshot = finalize_bracket(load_bracket(slug))
        podium = get_podium(snapshot)
        results = {
            'bracket': snapshot.to_dict(),
            'podium': podium,
            'finalized': datetime.now().isoformat(),
        }
        save_results(slug, results)
        tournament['stage'] = 'completed'
        tournament['champion'] = snapshot.champion
        save_tournament(slug, tournament)
    app.logger.info(f'{slug} finalized, champion {snapshot.champion}')

    published = None
    publish_message = None
    if TOURNAMENT_SERVICE_URL:
        published, publish_message = publish_bracket(
            TOURNAMENT_SERVICE_URL, tournament.get('remote_id', slug), snapshot,
            token=TOURNAMENT_SERVICE_TOKEN
        )

    return jsonify({
        'success': True,
        'bracket': results['bracket'],
        'podium': podium,
        'published': published,
        'publish_message': publish_message,
    })


@app.route('/api/tournaments/<slug>/bracket/reset', methods=['POST'])
@login_required
def api_reset_bracket(slug):
    with _data_lock():
        tournament = _get_tournament_or_404(slug)
        fallback = [t.name for t in _tournament_teams(tournament)]
        state = seed_quarter_finals(BracketState(), tournament.get('team_order'), fallback)
        save_bracket(slug, state)
        save_results(slug, {})
        if tournament.get('stage') == 'completed':
            tournament['stage'] = 'knockout'
            tournament.pop('champion', None)
            save_tournament(slug, tournament)
    return _bracket_response(state)


@app.route('/api/tournaments/<slug>/podium', methods=['GET'])
@login_required
def api_podium(slug):
    tournament = _get_tournament_or_404(slug)
    results = load_results(slug)
    podium = results.get('podium') or get_podium(results.get('bracket'))
    if not podium:
        return jsonify({'error': 'Tournament has not been finalized'}), 404
    return jsonify({
        'podium': podium,
        'prizes': podium_prizes(tournament.get('prize_breakdown'), tournament.get('currency', 'EUR')),
    })


if __name__ == '__main__':
    logging.basicConfig(level=logging.INFO)
    app.run(debug=True)
