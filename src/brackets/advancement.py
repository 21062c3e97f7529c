"""
Manual "force next round" for Swiss brackets.

Used when the next round was not paired automatically, for example after a
result was undone and recorded again.
"""
import logging
from typing import Optional

from .errors import (
    NoNextRound,
    PairingsAlreadyGenerated,
    RoundNotComplete,
    RoundNotFound,
    UnsupportedFormat,
)
from .models import Bracket, SWISS
from .swiss import fill_round

logger = logging.getLogger(__name__)


def force_advance_round(bracket: Bracket, round_number: Optional[int] = None) -> Bracket:
    """
    Pair the round following the last paired round and return the updated bracket.

    ``round_number`` names the round to pair explicitly instead.
    """
    if bracket.format != SWISS:
        raise UnsupportedFormat(f"Rounds are only paired on demand in swiss brackets, not {bracket.format}",
                                format=bracket.format)

    updated = bracket.copy()
    paired = [p for p, r in enumerate(updated.rounds) if r.match_indexes]
    if not paired:
        raise RoundNotFound("No round has been paired yet")

    if round_number is None:
        target = paired[-1] + 1
    else:
        numbers = [r.number for r in updated.rounds]
        if round_number not in numbers:
            raise NoNextRound(f"Round {round_number} does not exist", round=round_number)
        target = numbers.index(round_number)
        if target == 0:
            raise PairingsAlreadyGenerated("Round 1 is paired when the bracket is generated", round=1)
        if updated.rounds[target].match_indexes:
            raise PairingsAlreadyGenerated(f"{updated.rounds[target].name} is already paired",
                                           round=round_number)

    previous = updated.rounds[target - 1]
    if not updated.is_round_complete(target - 1):
        pending = [m.match_id for m in updated.round_matches(target - 1) if not m.is_decided]
        raise RoundNotComplete(f"{previous.name} is not complete", round=previous.number, pending=pending)
    if target >= len(updated.rounds):
        raise NoNextRound(f"{previous.name} is the last round", round=previous.number)

    fill_round(updated, target)
    logger.info("Forced pairing of swiss round %d", updated.rounds[target].number)
    return updated
