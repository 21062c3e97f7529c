"""
Tests for the YAML tournament store.
"""
import os

import pytest
import yaml
from filelock import FileLock

from brackets.errors import StorageError, TournamentBusy, TournamentNotFound, VersionConflict
from brackets.formats import generate
from brackets.progression import apply_result
from brackets.storage import (
    BracketStore,
    COMPLETED,
    IN_PROGRESS,
    SETUP,
    slugify,
    tournament_status,
)


@pytest.fixture
def store(tmp_path):
    return BracketStore(str(tmp_path / "data"), lock_timeout=0.1)


class TestSlugify:
    def test_basic(self):
        assert slugify("Spring Cup 2026") == "spring-cup-2026"

    def test_strips_symbols(self):
        assert slugify("  Open / Été! ") == "open-t"

    def test_empty(self):
        assert slugify("!!!") == "tournament"


class TestStatus:
    def test_lifecycle(self, play_out):
        bracket = generate('single_elimination', ["A", "B"])
        assert tournament_status(bracket) == SETUP
        started = generate('single_elimination', ["A", "B", "C", "D"])
        started = apply_result(started, {'match_id': 'r1_m1', 'winner': 'A'})
        assert tournament_status(started) == IN_PROGRESS
        assert tournament_status(play_out(bracket)) == COMPLETED


class TestBracketStore:
    """Tests for BracketStore."""

    def test_create_and_load(self, store, four_players):
        bracket = generate('single_elimination', four_players)
        record = store.create("Spring Cup", bracket)
        assert record['id'] == 'spring-cup'
        assert record['version'] == 1
        assert record['status'] == SETUP
        loaded, stored = store.load('spring-cup')
        assert loaded == bracket
        assert stored['name'] == "Spring Cup"

    def test_file_is_yaml(self, store, four_players):
        store.create("Cup", generate('round_robin', four_players))
        with open(os.path.join(store.data_dir, 'cup.yaml'), encoding='utf-8') as f:
            data = yaml.safe_load(f)
        assert data['format'] == 'round_robin'
        assert data['bracket']['total_matches'] == 6

    def test_duplicate_names_get_suffix(self, store, four_players):
        bracket = generate('single_elimination', four_players)
        assert store.create("Cup", bracket)['id'] == 'cup'
        assert store.create("Cup", bracket)['id'] == 'cup-2'
        assert store.create("Cup", bracket)['id'] == 'cup-3'

    def test_save_bumps_version(self, store, four_players):
        bracket = generate('single_elimination', four_players)
        store.create("Cup", bracket)
        updated = apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Alice'})
        record = store.save('cup', updated, 1)
        assert record['version'] == 2
        assert record['status'] == IN_PROGRESS
        assert store.load('cup')[0] == updated

    def test_stale_version_conflicts(self, store, four_players):
        bracket = generate('single_elimination', four_players)
        store.create("Cup", bracket)
        store.save('cup', apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Alice'}), 1)
        with pytest.raises(VersionConflict) as exc:
            store.save('cup', apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Bob'}), 1)
        assert exc.value.retryable
        assert exc.value.details['current_version'] == 2
        assert store.load('cup')[0].get_match('r1_m1').winner == 'Alice'

    def test_missing_version_conflicts(self, store, four_players):
        bracket = generate('single_elimination', four_players)
        store.create("Cup", bracket)
        with pytest.raises(VersionConflict):
            store.save('cup', bracket, None)

    def test_locked_tournament_is_busy(self, store, four_players):
        bracket = generate('single_elimination', four_players)
        store.create("Cup", bracket)
        lock = FileLock(os.path.join(store.data_dir, 'cup.yaml.lock'))
        with lock:
            with pytest.raises(TournamentBusy):
                store.save('cup', bracket, 1)

    def test_load_missing(self, store):
        with pytest.raises(TournamentNotFound):
            store.load('nope')

    def test_load_rejects_path_tricks(self, store):
        with pytest.raises(TournamentNotFound):
            store.load('../secrets')

    def test_corrupt_file(self, store):
        os.makedirs(store.data_dir)
        with open(os.path.join(store.data_dir, 'broken.yaml'), 'w', encoding='utf-8') as f:
            f.write("bracket: [unclosed")
        with pytest.raises(StorageError):
            store.load('broken')

    def test_list_and_delete(self, store, four_players):
        assert store.list() == []
        store.create("B Cup", generate('round_robin', four_players))
        store.create("A Cup", generate('single_elimination', four_players))
        assert [t['id'] for t in store.list()] == ['a-cup', 'b-cup']
        store.delete('a-cup')
        assert [t['id'] for t in store.list()] == ['b-cup']
        with pytest.raises(TournamentNotFound):
            store.delete('a-cup')
