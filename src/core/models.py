TEAM1_WIN = 'team1_win'
TEAM2_WIN = 'team2_win'
DRAW = 'draw'
MATCH_RESULTS = (TEAM1_WIN, TEAM2_WIN, DRAW)

MIN_TEAMS = 3
MAX_TEAMS = 20


def _as_int(value):
    """Read a snapshot integer, refusing anything that would lose information."""
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if not isinstance(value, int):
        raise ValueError(f"expected an integer, got {value!r}")
    return value


class MatchRecord:
    def __init__(self, match_number, team1, team2, result):
        self.match_number = match_number
        self.team1 = team1
        self.team2 = team2
        self.result = result

    @property
    def winner(self):
        if self.result == TEAM1_WIN:
            return self.team1
        if self.result == TEAM2_WIN:
            return self.team2
        return None

    @property
    def loser(self):
        if self.result == TEAM1_WIN:
            return self.team2
        if self.result == TEAM2_WIN:
            return self.team1
        return None

    def to_dict(self):
        return {
            'match_number': self.match_number,
            'team1': self.team1,
            'team2': self.team2,
            'result': self.result,
        }

    @classmethod
    def from_dict(cls, data):
        return cls(_as_int(data['match_number']), _as_int(data['team1']), _as_int(data['team2']), data['result'])

    def __eq__(self, other):
        if not isinstance(other, MatchRecord):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"MatchRecord(match_number={self.match_number}, team1={self.team1}, team2={self.team2}, result={self.result})"


class DrawTracker:
    """Remembers which team of a drawn pair goes first the next time they draw.

    ``team1`` is always the lower id of the pair.
    """

    def __init__(self, team1, team2, next_to_play):
        self.team1 = min(team1, team2)
        self.team2 = max(team1, team2)
        self.next_to_play = next_to_play

    @property
    def key(self):
        return (self.team1, self.team2)

    def toggle(self):
        self.next_to_play = self.team2 if self.next_to_play == self.team1 else self.team1

    def to_dict(self):
        return {'team1': self.team1, 'team2': self.team2, 'next_to_play': self.next_to_play}

    @classmethod
    def from_dict(cls, data):
        # Older snapshots use the camel-case key
        next_to_play = data['next_to_play'] if 'next_to_play' in data else data['nextToPlay']
        return cls(_as_int(data['team1']), _as_int(data['team2']), _as_int(next_to_play))

    def __eq__(self, other):
        if not isinstance(other, DrawTracker):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"DrawTracker(team1={self.team1}, team2={self.team2}, next_to_play={self.next_to_play})"


class Session:
    """Complete rotation state for one run, from start to reset.

    ``current_match`` is a ``(team1, team2)`` tuple or ``None``.
    ``draw_trackers`` maps the sorted team pair to its DrawTracker.
    """

    def __init__(self, total_teams, waiting_queue=None, current_match=None,
                 match_history=None, match_counter=0, draw_trackers=None):
        self.total_teams = total_teams
        self.waiting_queue = list(waiting_queue) if waiting_queue is not None else []
        self.current_match = tuple(current_match) if current_match else None
        self.match_history = list(match_history) if match_history else []
        self.match_counter = match_counter
        self.draw_trackers = dict(draw_trackers) if draw_trackers else {}

    def teams_in_play(self):
        return self.current_match if self.current_match else ()

    def copy(self):
        return Session(
            total_teams=self.total_teams,
            waiting_queue=self.waiting_queue,
            current_match=self.current_match,
            match_history=[MatchRecord(m.match_number, m.team1, m.team2, m.result)
                           for m in self.match_history],
            match_counter=self.match_counter,
            draw_trackers={key: DrawTracker(t.team1, t.team2, t.next_to_play)
                           for key, t in self.draw_trackers.items()},
        )

    def to_dict(self):
        current = None
        if self.current_match:
            current = {'team1': self.current_match[0], 'team2': self.current_match[1]}
        return {
            'total_teams': self.total_teams,
            'current_match': current,
            'waiting_queue': list(self.waiting_queue),
            'match_history': [m.to_dict() for m in self.match_history],
            'match_counter': self.match_counter,
            'draw_trackers': [t.to_dict() for t in sorted(self.draw_trackers.values(), key=lambda t: t.key)],
        }

    @classmethod
    def from_dict(cls, data):
        """Decode a snapshot mapping.

        Raises KeyError, TypeError or ValueError on malformed input. Missing
        ``draw_trackers`` is read as an empty table and a missing
        ``match_counter`` falls back to the history length.
        """
        current = data.get('current_match')
        if current:
            current = (_as_int(current['team1']), _as_int(current['team2']))

        history = [MatchRecord.from_dict(m) for m in data.get('match_history') or []]

        trackers = {}
        for entry in data.get('draw_trackers') or []:
            tracker = DrawTracker.from_dict(entry)
            # First entry wins if a pair appears twice
            trackers.setdefault(tracker.key, tracker)

        counter = data.get('match_counter')
        return cls(
            total_teams=_as_int(data['total_teams']),
            waiting_queue=[_as_int(t) for t in data['waiting_queue']],
            current_match=current,
            match_history=history,
            match_counter=len(history) if counter is None else _as_int(counter),
            draw_trackers=trackers,
        )

    def __eq__(self, other):
        if not isinstance(other, Session):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"Session(total_teams={self.total_teams}, current_match={self.current_match}, "
                f"waiting_queue={self.waiting_queue}, match_counter={self.match_counter})")
