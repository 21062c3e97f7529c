"""
Tests for recording and undoing results.
"""
import random

import pytest

from brackets.errors import (
    InvalidScore,
    InvalidWinner,
    LaterRoundStarted,
    MatchAlreadyDecided,
    MatchNotFound,
    MatchNotReady,
    NoResultToUndo,
)
from brackets.formats import generate
from brackets.models import MatchResult, PENDING
from brackets.progression import apply_result, revert_result


class TestApplyResult:
    """Tests for apply_result."""

    def test_input_is_not_mutated(self, four_players):
        bracket = generate('single_elimination', four_players)
        snapshot = bracket.to_dict()
        updated = apply_result(bracket, MatchResult('r1_m1', 'Alice'))
        assert bracket.to_dict() == snapshot
        assert updated.get_match('r1_m1').winner == 'Alice'
        assert updated.results == [MatchResult('r1_m1', 'Alice')]

    def test_unknown_match(self, four_players):
        bracket = generate('single_elimination', four_players)
        with pytest.raises(MatchNotFound):
            apply_result(bracket, {'match_id': 'r9_m9', 'winner': 'Alice'})

    def test_match_not_ready(self, four_players):
        bracket = generate('single_elimination', four_players)
        with pytest.raises(MatchNotReady):
            apply_result(bracket, {'match_id': 'r2_m1', 'winner': 'Alice'})

    def test_already_decided(self, four_players):
        bracket = apply_result(generate('single_elimination', four_players),
                               {'match_id': 'r1_m1', 'winner': 'Alice'})
        with pytest.raises(MatchAlreadyDecided):
            apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Bob'})

    def test_bye_counts_as_decided(self, five_players):
        bracket = generate('single_elimination', five_players)
        with pytest.raises(MatchAlreadyDecided):
            apply_result(bracket, {'match_id': 'r1_m2', 'winner': 'Carol'})

    def test_invalid_winner(self, four_players):
        bracket = generate('single_elimination', four_players)
        with pytest.raises(InvalidWinner):
            apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Carol'})

    def test_failed_apply_leaves_bracket_untouched(self, four_players):
        bracket = generate('single_elimination', four_players)
        snapshot = bracket.to_dict()
        with pytest.raises(InvalidWinner):
            apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Zoe'})
        assert bracket.to_dict() == snapshot

    def test_round_robin_updates_standings(self):
        bracket = generate('round_robin', ["A", "B", "C"])
        match = bracket.round_matches(0)[0]
        bracket = apply_result(bracket, {'match_id': match.match_id, 'winner': match.player2})
        winner = bracket.standings[match.player2]
        loser = bracket.standings[match.player1]
        assert (winner.wins, winner.points, winner.opponents) == (1, 1, [match.player1])
        assert (loser.losses, loser.points) == (1, 0)


class TestResultScores:
    """A result may carry the set score of the match."""

    def test_score_is_stored(self, four_players):
        bracket = generate('single_elimination', four_players)
        updated = apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Bob', 'score': '4-6 6-3 2-6'})
        match = updated.get_match('r1_m1')
        assert match.score['sets'][2] == {'player1': 2, 'player2': 6}
        assert updated.results == [MatchResult('r1_m1', 'Bob', '4-6 6-3 2-6')]

    def test_score_contradicting_winner(self, four_players):
        bracket = generate('single_elimination', four_players)
        snapshot = bracket.to_dict()
        with pytest.raises(InvalidScore):
            apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Bob', 'score': '6-4 6-2'})
        assert bracket.to_dict() == snapshot

    def test_unfinished_score_is_accepted(self, four_players):
        bracket = generate('single_elimination', four_players)
        updated = apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Bob', 'score': '6-4'})
        assert updated.get_match('r1_m1').winner == 'Bob'

    def test_unreadable_score(self, four_players):
        with pytest.raises(InvalidScore):
            apply_result(generate('single_elimination', four_players),
                         {'match_id': 'r1_m1', 'winner': 'Alice', 'score': '6-4 1-1'})

    def test_revert_clears_score(self, four_players):
        bracket = generate('single_elimination', four_players)
        updated = apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Alice', 'score': '7-6(2) 6-4'})
        reverted = revert_result(updated)
        assert reverted.get_match('r1_m1').score is None
        assert reverted == bracket


class TestRevertResult:
    """Tests for revert_result."""

    def test_nothing_to_undo(self, four_players):
        with pytest.raises(NoResultToUndo):
            revert_result(generate('single_elimination', four_players))

    def test_undecided_match(self, four_players):
        with pytest.raises(NoResultToUndo):
            revert_result(generate('single_elimination', four_players), {'match_id': 'r1_m1'})

    def test_bye_cannot_be_undone(self, five_players):
        with pytest.raises(NoResultToUndo):
            revert_result(generate('single_elimination', five_players), {'match_id': 'r1_m2'})

    def test_unknown_match(self, four_players):
        with pytest.raises(MatchNotFound):
            revert_result(generate('single_elimination', four_players), {'match_id': 'nope'})

    @pytest.mark.parametrize("format", ['single_elimination', 'double_elimination'])
    @pytest.mark.parametrize("n", [2, 3, 4, 5, 8])
    def test_apply_then_revert_is_identity(self, format, n):
        bracket = generate(format, [f"P{i}" for i in range(n)])
        match = next(m for m in bracket.matches if m.is_ready and not m.is_decided)
        updated = apply_result(bracket, {'match_id': match.match_id, 'winner': match.player2})
        assert revert_result(updated) == bracket

    def test_revert_cascades_downstream(self, four_players):
        bracket = generate('single_elimination', four_players)
        for match_id, winner in (('r1_m1', 'Alice'), ('r1_m2', 'Dave'), ('r2_m1', 'Dave')):
            bracket = apply_result(bracket, {'match_id': match_id, 'winner': winner})
        reverted = revert_result(bracket, {'match_id': 'r1_m2'})
        final = reverted.get_match('r2_m1')
        assert final.player1 == 'Alice'
        assert final.player2 is None
        assert final.winner is None
        assert [r.match_id for r in reverted.results] == ['r1_m1']

    def test_revert_named_match_keeps_other_history(self, four_players):
        bracket = generate('single_elimination', four_players)
        bracket = apply_result(bracket, {'match_id': 'r1_m1', 'winner': 'Bob'})
        bracket = apply_result(bracket, {'match_id': 'r1_m2', 'winner': 'Carol'})
        reverted = revert_result(bracket, MatchResult('r1_m1', 'Bob'))
        assert [r.match_id for r in reverted.results] == ['r1_m2']
        assert reverted.get_match('r2_m1').player2 == 'Carol'

    def test_round_robin_revert_recomputes_standings(self):
        bracket = generate('round_robin', ["A", "B", "C", "D"])
        original = bracket.copy()
        match = bracket.round_matches(0)[0]
        bracket = apply_result(bracket, {'match_id': match.match_id, 'winner': match.player1})
        assert revert_result(bracket) == original


class TestSwissRevertPolicy:
    """Undoing a Swiss result retracts unplayed pairings of the next round."""

    def _complete_first_round(self, players):
        bracket = generate('swiss', players, rng=random.Random(1))
        for match in bracket.round_matches(0):
            if match.is_decided:
                continue
            bracket = apply_result(bracket, {'match_id': match.match_id, 'winner': match.player1})
        return bracket

    def test_unplayed_next_round_is_retracted(self, four_players):
        bracket = self._complete_first_round(four_players)
        assert bracket.round_matches(1)
        reverted = revert_result(bracket)
        assert reverted.round_matches(1) == []
        assert reverted.rounds[1].status == PENDING
        assert len(reverted.results) == 1

    def test_started_next_round_blocks_revert(self, four_players):
        bracket = self._complete_first_round(four_players)
        match = bracket.round_matches(1)[0]
        bracket = apply_result(bracket, {'match_id': match.match_id, 'winner': match.player1})
        snapshot = bracket.to_dict()
        with pytest.raises(LaterRoundStarted):
            revert_result(bracket, {'match_id': 'sw_r1_m1'})
        assert bracket.to_dict() == snapshot

    def test_reapply_pairs_again(self, four_players):
        bracket = self._complete_first_round(four_players)
        last = bracket.results[-1]
        reverted = revert_result(bracket)
        again = apply_result(reverted, last)
        assert again == bracket

    def test_revert_in_current_round(self, five_players):
        bracket = self._complete_first_round(five_players)
        match = bracket.round_matches(1)[0]
        bracket = apply_result(bracket, {'match_id': match.match_id, 'winner': match.player2})
        reverted = revert_result(bracket)
        assert reverted.get_match(match.match_id).winner is None
        assert reverted.standings[match.player2].wins == bracket.standings[match.player2].wins - 1
