"""
Winner-stays-on rotation of teams through a single playing slot.

Every operation takes a Session and returns the next one; the session passed
in is never modified, so a failed call leaves the caller's state untouched.
"""
import re
from typing import Dict, List, Optional, Tuple

from core.models import (
    DRAW, MATCH_RESULTS, MAX_TEAMS, MIN_TEAMS, TEAM1_WIN, TEAM2_WIN,
    DrawTracker, MatchRecord, Session,
)

TEAM_RANGE_MESSAGE = f'Please enter between {MIN_TEAMS} and {MAX_TEAMS} teams'
NOT_ENOUGH_TEAMS_MESSAGE = 'Not enough teams in queue to start a match'


class RotationError(Exception):
    """Base class for rotation errors."""


class ValidationError(RotationError):
    """Input the user can correct (team count, result name)."""


class CorruptSessionError(ValidationError):
    """A stored or uploaded session breaks a rotation invariant."""


class InsufficientTeamsError(RotationError):
    """Fewer than two teams are waiting, so no match can be drawn."""


class MatchInProgressError(InsufficientTeamsError):
    """A match is already on the pitch; its result must be recorded first."""


class NoActiveMatchError(RotationError):
    """A result was recorded while no match was being played."""


def _parse_team_count(value) -> int:
    if isinstance(value, bool):
        raise ValidationError(TEAM_RANGE_MESSAGE)
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(TEAM_RANGE_MESSAGE)
        if not re.fullmatch(r'[0-9]+(\.[0-9]*)?', value):
            raise ValidationError(TEAM_RANGE_MESSAGE)
        value = float(value) if '.' in value else int(value)
    if isinstance(value, float):
        if not value.is_integer():
            raise ValidationError(TEAM_RANGE_MESSAGE)
        value = int(value)
    if not isinstance(value, int):
        raise ValidationError(TEAM_RANGE_MESSAGE)
    return value


def initialize(total_teams) -> Session:
    """Start a new session with teams 1..total_teams queued in ascending order.

    Accepts raw numeric input (e.g. a form value such as ``"8"``).

    Raises:
        ValidationError: if the count is not a whole number between 3 and 20.
    """
    count = _parse_team_count(total_teams)
    if count < MIN_TEAMS or count > MAX_TEAMS:
        raise ValidationError(TEAM_RANGE_MESSAGE)
    return Session(total_teams=count, waiting_queue=range(1, count + 1))


def draw_next_match(session: Session) -> Session:
    """Put the two teams at the head of the queue on the pitch."""
    if session.current_match:
        raise MatchInProgressError(
            f'Match {session.current_match[0]} vs {session.current_match[1]} is still in progress; '
            'record its result first')
    if len(session.waiting_queue) < 2:
        raise InsufficientTeamsError(NOT_ENOUGH_TEAMS_MESSAGE)

    next_session = session.copy()
    team1, team2 = next_session.waiting_queue[:2]
    next_session.waiting_queue = next_session.waiting_queue[2:]
    next_session.current_match = (team1, team2)
    return next_session


def pair_key(team_a: int, team_b: int) -> Tuple[int, int]:
    """Canonical key for an unordered pair of teams."""
    return (team_a, team_b) if team_a < team_b else (team_b, team_a)


def draw_order(trackers: Dict[Tuple[int, int], DrawTracker], team1: int, team2: int) -> Tuple[int, int]:
    """
    Decide which team of a drawn match rejoins the queue first.

    The first draw between a pair sends the lower id first and remembers that
    the higher id goes first next time. Each later draw between the same pair
    uses the remembered team and flips it, so the order strictly alternates.

    Updates ``trackers`` in place and returns (first, second).
    """
    key = pair_key(team1, team2)
    tracker = trackers.get(key)
    if tracker is None:
        lower, higher = key
        trackers[key] = DrawTracker(lower, higher, next_to_play=higher)
        first = lower
    else:
        first = tracker.next_to_play
        tracker.toggle()

    second = team2 if first == team1 else team1
    return first, second


def record_result(session: Session, result: str) -> Session:
    """
    Finish the current match.

    team1_win / team2_win: the winner goes to the front of the queue and the
    loser to the back. draw: both go to the back in the order chosen by
    draw_order(). The match is appended to the history under the next number.

    Raises:
        NoActiveMatchError: if no match is in progress.
        ValidationError: if result is not one of team1_win, team2_win, draw.
    """
    if not session.current_match:
        raise NoActiveMatchError('No match in progress to record a result for')
    if result not in MATCH_RESULTS:
        raise ValidationError(f'Unknown result {result!r}; expected one of {", ".join(MATCH_RESULTS)}')

    next_session = session.copy()
    team1, team2 = next_session.current_match
    queue = next_session.waiting_queue

    if result == TEAM1_WIN:
        queue = [team1] + queue + [team2]
    elif result == TEAM2_WIN:
        queue = [team2] + queue + [team1]
    else:
        first, second = draw_order(next_session.draw_trackers, team1, team2)
        queue = queue + [first, second]

    next_session.match_counter += 1
    next_session.match_history.append(MatchRecord(next_session.match_counter, team1, team2, result))
    next_session.waiting_queue = queue
    next_session.current_match = None
    return next_session


def reset(session: Optional[Session] = None) -> None:
    """Discard the session. Always returns None, whatever was passed."""
    return None


def check_invariants(session: Session) -> None:
    """
    Validate a session that did not come from the operations above.

    Raises:
        CorruptSessionError: naming the first invariant that does not hold.
    """
    total = session.total_teams
    if not isinstance(total, int) or total < MIN_TEAMS or total > MAX_TEAMS:
        raise CorruptSessionError(f'Team count {total!r} is outside {MIN_TEAMS}-{MAX_TEAMS}')

    all_teams = set(range(1, total + 1))
    in_play = list(session.teams_in_play())
    if in_play and (len(in_play) != 2 or in_play[0] == in_play[1]):
        raise CorruptSessionError(f'Current match {session.current_match} must hold two distinct teams')

    seen = session.waiting_queue + in_play
    if len(seen) != len(set(seen)):
        raise CorruptSessionError('A team appears more than once in the queue and current match')
    if set(seen) != all_teams:
        raise CorruptSessionError(f'Queue and current match must cover teams 1-{total} exactly')

    if session.match_counter != len(session.match_history):
        raise CorruptSessionError(
            f'Match counter {session.match_counter} does not match history length {len(session.match_history)}')
    for index, match in enumerate(session.match_history):
        if match.match_number != index + 1:
            raise CorruptSessionError(f'Match at position {index + 1} is numbered {match.match_number}')
        if match.result not in MATCH_RESULTS:
            raise CorruptSessionError(f'Match {match.match_number} has unknown result {match.result!r}')
        if match.team1 not in all_teams or match.team2 not in all_teams or match.team1 == match.team2:
            raise CorruptSessionError(f'Match {match.match_number} has invalid teams')

    for key, tracker in session.draw_trackers.items():
        if key != tracker.key or tracker.team1 == tracker.team2:
            raise CorruptSessionError(f'Draw tracker {tracker} is stored under the wrong pair')
        if not set(key) <= all_teams:
            raise CorruptSessionError(f'Draw tracker {tracker} names a team outside 1-{total}')
        if tracker.next_to_play not in key:
            raise CorruptSessionError(f'Draw tracker {tracker} points at a team outside its pair')


def team_records(session: Session) -> List[Dict]:
    """
    Per-team results so far, in team order.

    Returns list of dicts with keys team, played, wins, draws, losses.
    """
    records = {team: {'team': team, 'played': 0, 'wins': 0, 'draws': 0, 'losses': 0}
               for team in range(1, session.total_teams + 1)}
    for match in session.match_history:
        for team in (match.team1, match.team2):
            if team in records:
                records[team]['played'] += 1
        if match.result == DRAW:
            for team in (match.team1, match.team2):
                if team in records:
                    records[team]['draws'] += 1
        else:
            if match.winner in records:
                records[match.winner]['wins'] += 1
            if match.loser in records:
                records[match.loser]['losses'] += 1
    return list(records.values())
