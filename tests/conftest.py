"""
Shared pytest fixtures for rotation manager tests.

Running tests:
    pytest tests/
"""
import pytest
import sys
import os

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from filelock import FileLock
from core.rotation import initialize, draw_next_match, record_result


@pytest.fixture
def client():
    """Create a test client."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the session snapshot and lock at a temporary data directory."""
    import app as app_module

    monkeypatch.setattr(app_module, 'DATA_DIR', str(tmp_path))
    monkeypatch.setattr(app_module, 'SESSION_FILE', str(tmp_path / 'session.yaml'))
    monkeypatch.setattr(app_module, '_data_lock', FileLock(str(tmp_path / '.lock'), timeout=10))

    return tmp_path


@pytest.fixture
def four_team_session():
    """Fresh session with teams 1-4 queued."""
    return initialize(4)


@pytest.fixture
def played_session():
    """Six-team session after a win, a loss and a draw."""
    session = initialize(6)
    for result in ['team1_win', 'team2_win', 'draw']:
        session = draw_next_match(session)
        session = record_result(session, result)
    return session
