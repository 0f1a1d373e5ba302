# Command line entry point: replay a results file through the bracket

import argparse
import logging
import sys
import yaml
from core.models import BracketState, Phase
from core.bracket import (
    BracketError,
    seed_quarter_finals,
    update_score,
    is_phase_complete,
    advance_phase,
    finalize_bracket,
)
from core.snapshot import get_podium

logger = logging.getLogger(__name__)


def load_results_file(file_path):
    with open(file_path, mode='r', encoding='utf-8') as file:
        return yaml.safe_load(file) or {}


def _apply_scores(state, phase, scores, indexed=True):
    for index, pair in enumerate(scores):
        if pair is None:
            continue
        team1_score, team2_score = pair
        match_index = index if indexed else None
        state = update_score(state, phase, match_index, 'team1', team1_score)
        state = update_score(state, phase, match_index, 'team2', team2_score)
    return state


def replay_results(data):
    """
    Run a results file through the bracket.

    Returns (state, snapshot). The snapshot is None when the bracket
    could not be completed from the recorded scores.
    """
    state = seed_quarter_finals(BracketState(), data.get('team_order'), data.get('teams'))

    state = _apply_scores(state, Phase.QUARTER_FINALS, data.get('quarter_finals') or [])
    if not is_phase_complete(state, Phase.QUARTER_FINALS):
        return state, None
    state = advance_phase(state)

    state = _apply_scores(state, Phase.SEMI_FINALS, data.get('semi_finals') or [])
    if not is_phase_complete(state, Phase.SEMI_FINALS):
        return state, None
    state = advance_phase(state)

    if data.get('final'):
        state = _apply_scores(state, Phase.FINAL, [data['final']], indexed=False)
    if data.get('third_place'):
        state = _apply_scores(state, Phase.THIRD_PLACE, [data['third_place']], indexed=False)
    if not is_phase_complete(state, Phase.FINAL):
        return state, None
    return state, finalize_bracket(state)


def format_match(title, match):
    team1 = match.team1 or 'TBD'
    team2 = match.team2 or 'TBD'
    line = f"  {title}: {team1} {match.team1_score} - {match.team2_score} {team2}"
    if match.winner:
        line += f"  -> {match.winner}"
    return line


def print_bracket(state):
    print("# Quarterfinals")
    for match in state.quarter_finals:
        print(format_match(f"QF{match.match_number}", match))
    print("\n# Semifinals")
    for match in state.semi_finals:
        print(format_match(f"SF{match.match_number}", match))
    print("\n# Final")
    print(format_match("Final", state.final))
    print(format_match("Third place", state.third_place))


def main(argv=None):
    parser = argparse.ArgumentParser(description='Replay an 8-team knockout results file.')
    parser.add_argument('results_file', help='YAML file with team_order and per-phase scores')
    parser.add_argument('--output', help='Write the finalized bracket snapshot to this YAML file')
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')

    try:
        data = load_results_file(args.results_file)
    except (OSError, yaml.YAMLError) as e:
        logger.error(f"Cannot read {args.results_file}: {e}")
        return 1

    try:
        state, snapshot = replay_results(data)
    except (BracketError, ValueError, TypeError) as e:
        logger.error(f"Invalid results: {e}")
        return 1

    print_bracket(state)

    if snapshot is None:
        print(f"\nBracket incomplete, stopped in {state.current_phase.value}.")
        return 2

    podium = get_podium(snapshot)
    print("\n--- Podium ---")
    print(f"  1. {podium['first']}")
    print(f"  2. {podium['second']}")
    print(f"  3. {podium['third']}")

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            yaml.dump(snapshot.to_dict(), f, default_flow_style=False, sort_keys=False)
        logger.info(f"Snapshot written to {args.output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
