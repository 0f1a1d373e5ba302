"""
Bracket progression for an 8-team single elimination tournament.

Phases run Quarterfinals -> Semifinals -> Final. The third place match is
played alongside the Final. Every operation takes a BracketState and returns
a new one; nothing here mutates its input.
"""
import re
from typing import List, Optional

from .models import BracketState, Match, Phase, SIDES
from .snapshot import BracketSnapshot

_LEADING_INT = re.compile(r'^\s*([+-]?\d+)')

# Successor of each phase that can be advanced from
_NEXT_PHASE = {
    Phase.QUARTER_FINALS: Phase.SEMI_FINALS,
    Phase.SEMI_FINALS: Phase.FINAL,
}


class BracketError(Exception):
    """Base class for bracket rule violations."""


class PhaseNotComplete(BracketError):
    """Raised when advancing before every match of the phase has a winner."""


class IncompletePhase(BracketError):
    """Raised when finalizing before the Final and third place are decided."""


class InactivePhase(BracketError):
    """Raised when touching matches outside the active phase."""


class InvalidTransition(BracketError):
    """Raised when asking the Final phase for a successor."""


class InvalidMatch(BracketError, ValueError):
    """Raised for an unknown match index or side."""


def parse_score(raw) -> int:
    """
    Parse a score leniently. Invalid, empty or negative input counts as 0.

    Strings are read by their leading integer, so "12abc" gives 12 and "3.7" gives 3.
    """
    if raw is None or isinstance(raw, bool):
        return 0
    if isinstance(raw, int):
        return max(raw, 0)
    if isinstance(raw, float):
        return max(int(raw), 0)
    match = _LEADING_INT.match(str(raw))
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def _active_phases(current_phase: Phase):
    if current_phase is Phase.FINAL:
        return (Phase.FINAL, Phase.THIRD_PLACE)
    return (current_phase,)


def seed_quarter_finals(state: BracketState, team_order: Optional[List[str]],
                        fallback_teams: Optional[List[str]] = None) -> BracketState:
    """
    Assign teams to the quarterfinals.

    A team order of at least 8 names is paired in order (QF1 = 0 v 1, QF2 = 2 v 3, ...).
    Otherwise the fallback list is paired by index, leaving missing slots empty.
    With neither, the state is returned unchanged.
    """
    if state.current_phase is not Phase.QUARTER_FINALS:
        raise InactivePhase(f"Cannot seed quarterfinals during {state.current_phase.value}")

    if team_order and len(team_order) >= 8:
        names = list(team_order[:8])
    elif fallback_teams:
        names = list(fallback_teams[:8])
        names.extend([None] * (8 - len(names)))
    else:
        return state

    quarter_finals = tuple(
        Match(i + 1, names[i * 2], names[i * 2 + 1]) for i in range(4)
    )
    return state.replace(quarter_finals=quarter_finals)


def update_score(state: BracketState, phase: Phase, match_index: Optional[int],
                 side: str, raw_score) -> BracketState:
    """Set one side's score on a match of the active phase."""
    phase = Phase(phase)
    if phase not in _active_phases(state.current_phase):
        raise InactivePhase(
            f"Cannot score {phase.value} while the bracket is in {state.current_phase.value}"
        )
    if side not in SIDES:
        raise InvalidMatch(f"Unknown side: {side!r}")

    score = parse_score(raw_score)

    if phase is Phase.FINAL:
        return state.replace(final=state.final.with_score(side, score))
    elif phase is Phase.THIRD_PLACE:
        return state.replace(third_place=state.third_place.with_score(side, score))

    matches = list(state.matches(phase))
    if match_index is None or not 0 <= match_index < len(matches):
        raise InvalidMatch(f"No match {match_index!r} in {phase.value}")
    matches[match_index] = matches[match_index].with_score(side, score)

    if phase is Phase.QUARTER_FINALS:
        return state.replace(quarter_finals=matches)
    return state.replace(semi_finals=matches)


def is_phase_complete(state: BracketState, phase: Phase) -> bool:
    """True when every match of the phase has a winner. Final also needs the third place match."""
    phase = Phase(phase)
    if phase is Phase.FINAL:
        return state.final.is_decided and state.third_place.is_decided
    return all(match.is_decided for match in state.matches(phase))


def advance_phase(state: BracketState) -> BracketState:
    """Move winners (and semifinal losers) into the next phase."""
    current = state.current_phase
    if current not in _NEXT_PHASE:
        raise InvalidTransition("The final phase has no successor; finalize the bracket instead")
    if not is_phase_complete(state, current):
        undecided = [m.match_number for m in state.matches(current) if not m.is_decided]
        raise PhaseNotComplete(
            f"{current.value} is not complete: match(es) {undecided} have no winner"
        )

    if current is Phase.QUARTER_FINALS:
        winners = [m.winner for m in state.quarter_finals]
        semi_finals = (
            state.semi_finals[0].with_teams(winners[0], winners[1]),
            state.semi_finals[1].with_teams(winners[2], winners[3]),
        )
        return state.replace(semi_finals=semi_finals, current_phase=_NEXT_PHASE[current])

    sf1, sf2 = state.semi_finals
    return state.replace(
        final=state.final.with_teams(sf1.winner, sf2.winner),
        third_place=state.third_place.with_teams(sf1.loser, sf2.loser),
        current_phase=_NEXT_PHASE[current],
    )


def finalize_bracket(state: BracketState) -> BracketSnapshot:
    """Produce the read-only result snapshot once the Final and third place are decided."""
    if state.current_phase is not Phase.FINAL or not is_phase_complete(state, Phase.FINAL):
        raise IncompletePhase("The final and third place match must both have a winner")
    return BracketSnapshot.from_state(state)
