from enum import Enum


class Phase(Enum):
    QUARTER_FINALS = 'quarterFinals'
    SEMI_FINALS = 'semiFinals'
    FINAL = 'final'
    THIRD_PLACE = 'thirdPlace'


SIDES = ('team1', 'team2')


def _team_ref(value):
    """Normalize a team reference: empty names mean unassigned."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class Team:
    def __init__(self, name, attributes=None):
        self.name = name
        self.attributes = attributes if attributes else {}

    @property
    def identifier(self):
        return self.attributes.get('id', self.name)

    @property
    def sport(self):
        return self.attributes.get('sport')

    def to_dict(self):
        data = {'name': self.name}
        data.update(self.attributes)
        return data

    @classmethod
    def from_dict(cls, data):
        attributes = {k: v for k, v in data.items() if k != 'name'}
        if '_id' in attributes and 'id' not in attributes:
            attributes['id'] = attributes.pop('_id')
        return cls(name=data['name'], attributes=attributes)

    def __eq__(self, other):
        if not isinstance(other, Team):
            return NotImplemented
        return self.identifier == other.identifier

    def __hash__(self):
        return hash(self.identifier)

    def __repr__(self):
        return f"Team(name={self.name}, attributes={self.attributes})"


class Match:
    """A single bracket match. The winner is always derived from the scores."""

    __slots__ = ('match_number', 'team1', 'team2', 'team1_score', 'team2_score')

    def __init__(self, match_number, team1=None, team2=None, team1_score=0, team2_score=0):
        object.__setattr__(self, 'match_number', match_number)
        object.__setattr__(self, 'team1', _team_ref(team1))
        object.__setattr__(self, 'team2', _team_ref(team2))
        object.__setattr__(self, 'team1_score', team1_score)
        object.__setattr__(self, 'team2_score', team2_score)

    def __setattr__(self, name, value):
        raise AttributeError("Match is immutable; use with_teams or with_score")

    @property
    def winner(self):
        if self.team1 is None or self.team2 is None:
            return None
        if self.team1_score > self.team2_score:
            return self.team1
        if self.team2_score > self.team1_score:
            return self.team2
        return None

    @property
    def loser(self):
        winner = self.winner
        if winner is None:
            return None
        return self.team2 if winner == self.team1 else self.team1

    @property
    def is_decided(self):
        return self.winner is not None

    def with_teams(self, team1, team2):
        return Match(self.match_number, team1, team2, self.team1_score, self.team2_score)

    def with_score(self, side, score):
        if side == 'team1':
            return Match(self.match_number, self.team1, self.team2, score, self.team2_score)
        if side == 'team2':
            return Match(self.match_number, self.team1, self.team2, self.team1_score, score)
        raise ValueError(f"Unknown side: {side!r}")

    def to_dict(self):
        return {
            'match': self.match_number,
            'team1': self.team1,
            'team2': self.team2,
            'team1_score': self.team1_score,
            'team2_score': self.team2_score,
            'winner': self.winner,
        }

    @classmethod
    def from_dict(cls, data, default_number=1):
        return cls(
            data.get('match', default_number),
            data.get('team1'),
            data.get('team2'),
            int(data.get('team1_score') or 0),
            int(data.get('team2_score') or 0),
        )

    def __eq__(self, other):
        if not isinstance(other, Match):
            return NotImplemented
        return (self.match_number, self.team1, self.team2, self.team1_score, self.team2_score) == \
            (other.match_number, other.team1, other.team2, other.team1_score, other.team2_score)

    def __repr__(self):
        return (f"Match(match={self.match_number}, team1={self.team1}, team2={self.team2}, "
                f"score={self.team1_score}-{self.team2_score}, winner={self.winner})")


class BracketState:
    """Full 8-team bracket: 4 quarterfinals, 2 semifinals, final and third place."""

    def __init__(self, quarter_finals=None, semi_finals=None, final=None, third_place=None,
                 current_phase=Phase.QUARTER_FINALS):
        self.quarter_finals = tuple(quarter_finals) if quarter_finals else tuple(Match(i + 1) for i in range(4))
        self.semi_finals = tuple(semi_finals) if semi_finals else tuple(Match(i + 1) for i in range(2))
        self.final = final if final is not None else Match(1)
        self.third_place = third_place if third_place is not None else Match(1)
        self.current_phase = current_phase
        if len(self.quarter_finals) != 4 or len(self.semi_finals) != 2:
            raise ValueError("A bracket needs exactly 4 quarterfinals and 2 semifinals")

    def matches(self, phase):
        """Return the matches belonging to a phase, in bracket order."""
        if phase is Phase.QUARTER_FINALS:
            return self.quarter_finals
        elif phase is Phase.SEMI_FINALS:
            return self.semi_finals
        elif phase is Phase.FINAL:
            return (self.final,)
        elif phase is Phase.THIRD_PLACE:
            return (self.third_place,)
        raise ValueError(f"Unknown phase: {phase!r}")

    def replace(self, **changes):
        fields = {
            'quarter_finals': self.quarter_finals,
            'semi_finals': self.semi_finals,
            'final': self.final,
            'third_place': self.third_place,
            'current_phase': self.current_phase,
        }
        fields.update(changes)
        return BracketState(**fields)

    def to_dict(self):
        return {
            'current_phase': self.current_phase.value,
            'quarter_finals': [m.to_dict() for m in self.quarter_finals],
            'semi_finals': [m.to_dict() for m in self.semi_finals],
            'final': self.final.to_dict(),
            'third_place': self.third_place.to_dict(),
        }

    @classmethod
    def from_dict(cls, data):
        if not data:
            return cls()
        return cls(
            quarter_finals=[Match.from_dict(m, i + 1) for i, m in enumerate(data.get('quarter_finals') or [])],
            semi_finals=[Match.from_dict(m, i + 1) for i, m in enumerate(data.get('semi_finals') or [])],
            final=Match.from_dict(data['final']) if data.get('final') else None,
            third_place=Match.from_dict(data['third_place']) if data.get('third_place') else None,
            current_phase=Phase(data.get('current_phase', Phase.QUARTER_FINALS.value)),
        )

    def __eq__(self, other):
        if not isinstance(other, BracketState):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"BracketState(current_phase={self.current_phase.value})"
