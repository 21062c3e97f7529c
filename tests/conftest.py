"""
Shared pytest fixtures for bracket engine tests.

Running tests:
    pytest tests/                  - full suite
    pytest tests/ -m "not slow"   - skip the player-count sweeps
"""
import pytest
import sys
import os
import random

# Add src directory to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from brackets.progression import apply_result


@pytest.fixture
def four_players():
    return ["Alice", "Bob", "Carol", "Dave"]


@pytest.fixture
def five_players():
    return ["Alice", "Bob", "Carol", "Dave", "Eve"]


@pytest.fixture
def eight_players():
    return [f"Player {i}" for i in range(1, 9)]


@pytest.fixture
def rng():
    """Deterministic random source for Swiss seeding."""
    return random.Random(42)


@pytest.fixture
def play_out():
    """
    Return a function that records results until no match is playable.

    ``pick`` chooses the winner of a match (player1 by default).
    """
    def _play_out(bracket, pick=None):
        pick = pick or (lambda match: match.player1)
        while True:
            playable = [m for m in bracket.matches if m.is_ready and not m.is_decided]
            if not playable:
                return bracket
            match = playable[0]
            bracket = apply_result(bracket, {'match_id': match.match_id, 'winner': pick(match)})
    return _play_out


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch):
    """Point the web app at a temporary data directory."""
    import app as app_module
    data_dir = tmp_path / "data"
    data_dir.mkdir()
    monkeypatch.setattr(app_module, 'DATA_DIR', str(data_dir))
    monkeypatch.setattr(app_module, 'LOCK_TIMEOUT', 1)
    return str(data_dir)


@pytest.fixture
def client(temp_data_dir):
    """Create a test client backed by the temporary data directory."""
    from app import app
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client
