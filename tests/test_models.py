"""
Unit tests for the data models (MatchRecord, DrawTracker, Session).
"""
import pytest
import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from core.models import MatchRecord, DrawTracker, Session


class TestMatchRecord:
    """Tests for the MatchRecord model."""

    def test_winner_and_loser_team1_win(self):
        """Test winner/loser for a team1 win."""
        match = MatchRecord(1, 3, 5, 'team1_win')
        assert match.winner == 3
        assert match.loser == 5

    def test_winner_and_loser_team2_win(self):
        """Test winner/loser for a team2 win."""
        match = MatchRecord(1, 3, 5, 'team2_win')
        assert match.winner == 5
        assert match.loser == 3

    def test_draw_has_no_winner(self):
        """Test a draw has neither winner nor loser."""
        match = MatchRecord(2, 3, 5, 'draw')
        assert match.winner is None
        assert match.loser is None

    def test_repr(self):
        """Test match string representation."""
        repr_str = repr(MatchRecord(7, 1, 2, 'draw'))
        assert "match_number=7" in repr_str
        assert "draw" in repr_str


class TestDrawTracker:
    """Tests for the DrawTracker model."""

    def test_pair_is_stored_lower_first(self):
        """Test the lower team id is always stored as team1."""
        tracker = DrawTracker(7, 2, next_to_play=7)
        assert tracker.team1 == 2
        assert tracker.team2 == 7
        assert tracker.key == (2, 7)

    def test_toggle_alternates(self):
        """Test toggling flips between the two teams."""
        tracker = DrawTracker(1, 3, next_to_play=3)
        tracker.toggle()
        assert tracker.next_to_play == 1
        tracker.toggle()
        assert tracker.next_to_play == 3

    def test_from_dict_accepts_camel_case_key(self):
        """Test older snapshots using nextToPlay are read."""
        tracker = DrawTracker.from_dict({'team1': 1, 'team2': 3, 'nextToPlay': 3})
        assert tracker.next_to_play == 3


class TestSession:
    """Tests for the Session model."""

    def test_defaults(self):
        """Test a session created with only a team count."""
        session = Session(total_teams=5)
        assert session.waiting_queue == []
        assert session.current_match is None
        assert session.match_history == []
        assert session.match_counter == 0
        assert session.draw_trackers == {}
        assert session.teams_in_play() == ()

    def test_copy_is_independent(self, played_session):
        """Test mutating a copy leaves the original alone."""
        clone = played_session.copy()
        clone.waiting_queue.append(99)
        clone.match_history.pop()
        for tracker in clone.draw_trackers.values():
            tracker.toggle()

        assert 99 not in played_session.waiting_queue
        assert len(played_session.match_history) == 3
        assert clone != played_session

    def test_to_dict_layout(self, played_session):
        """Test snapshot keys and tracker encoding."""
        data = played_session.to_dict()
        assert set(data) == {'total_teams', 'current_match', 'waiting_queue',
                             'match_history', 'match_counter', 'draw_trackers'}
        assert data['current_match'] is None
        assert data['match_counter'] == 3
        assert data['match_history'][0] == {'match_number': 1, 'team1': 1, 'team2': 2, 'result': 'team1_win'}
        assert data['draw_trackers'] == [{'team1': 3, 'team2': 4, 'next_to_play': 4}]

    def test_from_dict_restores_session(self, played_session):
        """Test decoding a snapshot gives an equal session."""
        assert Session.from_dict(played_session.to_dict()) == played_session

    def test_from_dict_current_match(self):
        """Test current match is decoded as a tuple."""
        session = Session.from_dict({
            'total_teams': 3,
            'current_match': {'team1': 1, 'team2': 2},
            'waiting_queue': [3],
            'match_history': [],
            'match_counter': 0,
        })
        assert session.current_match == (1, 2)

    def test_from_dict_without_draw_trackers(self):
        """Test a snapshot with no draw_trackers key loads with an empty table."""
        session = Session.from_dict({
            'total_teams': 3,
            'current_match': None,
            'waiting_queue': [1, 2, 3],
            'match_history': [],
            'match_counter': 0,
        })
        assert session.draw_trackers == {}

    def test_from_dict_missing_counter_uses_history_length(self):
        """Test match_counter falls back to the number of recorded matches."""
        session = Session.from_dict({
            'total_teams': 3,
            'waiting_queue': [1, 3, 2],
            'match_history': [{'match_number': 1, 'team1': 1, 'team2': 2, 'result': 'team1_win'}],
        })
        assert session.match_counter == 1

    def test_from_dict_keeps_first_duplicate_tracker(self):
        """Test only the first tracker for a pair is kept."""
        session = Session.from_dict({
            'total_teams': 3,
            'waiting_queue': [1, 2, 3],
            'draw_trackers': [
                {'team1': 1, 'team2': 3, 'nextToPlay': 3},
                {'team1': 3, 'team2': 1, 'nextToPlay': 1},
            ],
        })
        assert len(session.draw_trackers) == 1
        assert session.draw_trackers[(1, 3)].next_to_play == 3

    @pytest.mark.parametrize("field,value", [
        ('waiting_queue', [1.9, 2, 3]),
        ('total_teams', '3'),
        ('match_counter', True),
    ])
    def test_from_dict_rejects_non_integer_values(self, field, value):
        """Test values that are not whole numbers are refused instead of truncated."""
        data = {'total_teams': 3, 'waiting_queue': [1, 2, 3], 'match_counter': 0}
        data[field] = value
        with pytest.raises(ValueError):
            Session.from_dict(data)

    def test_from_dict_accepts_whole_floats(self):
        """Test floats with no fractional part are read as integers."""
        session = Session.from_dict({'total_teams': 3.0, 'waiting_queue': [1.0, 2, 3]})
        assert session.total_teams == 3
        assert session.waiting_queue == [1, 2, 3]

    def test_from_dict_missing_required_key(self):
        """Test a snapshot without a queue is rejected."""
        with pytest.raises(KeyError):
            Session.from_dict({'total_teams': 3})
