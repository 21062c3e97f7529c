"""
Recording and undoing match results.

Both operations work on a copy of the bracket: the caller's bracket is never
modified, whether the operation succeeds or raises.
"""
import logging
from typing import Optional, Union

from .errors import (
    InvalidScore,
    InvalidWinner,
    LaterRoundStarted,
    MatchAlreadyDecided,
    MatchNotReady,
    NoResultToUndo,
)
from .models import Bracket, MatchResult, ELIMINATION_FORMATS, PENDING, SWISS
from .scores import format_score, parse_score, validate_score, winning_slot
from .standings import recompute_standings
from .swiss import fill_round

logger = logging.getLogger(__name__)


def apply_result(bracket: Bracket, result: Union[MatchResult, dict]) -> Bracket:
    """
    Record the winner of a match and return the updated bracket.

    Elimination formats move the winner (and, in double elimination, the
    loser) to the matches they feed. Round robin and Swiss rebuild the
    standings; in Swiss, completing a round pairs the next one if it is
    still empty.

    An optional set score is checked and stored with the match; it must not
    name the other player as the winner.
    """
    result = MatchResult.coerce(result)
    updated = bracket.copy()
    index = updated.index_of(result.match_id)
    match = updated.matches[index]

    if match.is_decided:
        raise MatchAlreadyDecided(f"Match '{match.match_id}' is already won by {match.winner}",
                                  match_id=match.match_id, winner=match.winner)
    if not match.is_ready:
        raise MatchNotReady(f"Match '{match.match_id}' is still waiting for its players",
                            match_id=match.match_id)
    if result.winner not in (match.player1, match.player2):
        raise InvalidWinner(f"{result.winner} does not play in match '{match.match_id}'",
                            match_id=match.match_id, winner=result.winner)

    score = parse_score(result.score)
    if score is not None:
        validate_score(score)
        slot = winning_slot(score)
        if slot is not None and match.get_slot(slot) != result.winner:
            raise InvalidScore(f"Score {format_score(score)} is won by {match.get_slot(slot)}, not {result.winner}",
                               match_id=match.match_id, score=format_score(score))

    match.winner = result.winner
    match.score = score
    updated.results.append(MatchResult(match.match_id, result.winner, format_score(score)))

    if updated.format in ELIMINATION_FORMATS:
        updated.advance(index)
    else:
        recompute_standings(updated)
        if updated.format == SWISS:
            position = updated.round_position_of(index)
            following = position + 1
            if (updated.is_round_complete(position)
                    and following < len(updated.rounds)
                    and not updated.rounds[following].match_indexes):
                fill_round(updated, following)

    logger.info("Result recorded: %s won %s", result.winner, match.match_id)
    return updated


def revert_result(bracket: Bracket, last_result: Optional[Union[MatchResult, dict]] = None) -> Bracket:
    """
    Undo a recorded result and return the updated bracket.

    Without ``last_result`` the most recent entry of the result history is
    undone. Players the match sent downstream are removed again, and
    downstream matches that were already decided are undone with it.

    In Swiss, pairings of the following round are retracted when none of
    its games has been played; once one has, the revert is refused.
    """
    updated = bracket.copy()
    if last_result is None:
        if not updated.results:
            raise NoResultToUndo("There is no result to undo")
        match_id = updated.results[-1].match_id
    else:
        match_id = MatchResult.coerce(last_result).match_id

    index = updated.index_of(match_id)
    match = updated.matches[index]
    if match.winner is None or match.is_bye:
        raise NoResultToUndo(f"Match '{match_id}' has no recorded result", match_id=match_id)

    if updated.format == SWISS:
        _retract_following_round(updated, updated.round_position_of(index))
        index = updated.index_of(match_id)

    cleared = {updated.matches[i].match_id for i in updated.retract(index)}
    updated.results = [r for r in updated.results if r.match_id not in cleared]

    if updated.standings is not None:
        recompute_standings(updated)

    logger.info("Result reverted: %s", ', '.join(sorted(cleared)))
    return updated


def _retract_following_round(bracket: Bracket, position: int):
    following = position + 1
    if following >= len(bracket.rounds) or not bracket.rounds[following].match_indexes:
        return
    played = [m.match_id for m in bracket.round_matches(following) if m.is_decided and not m.is_bye]
    if played:
        round_ = bracket.rounds[following]
        raise LaterRoundStarted(f"{round_.name} already has results: {', '.join(played)}",
                                round=round_.number, matches=played)
    bracket.clear_round(following)
    bracket.rounds[following].status = PENDING
    logger.info("Swiss round %d pairings retracted", bracket.rounds[following].number)
