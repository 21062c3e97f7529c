"""
Double elimination bracket generation.

In double elimination:
- Players must lose twice to be eliminated
- Winners Bracket: identical to a single elimination bracket
- Losers Bracket: players that have lost once
- Grand Final: Winners bracket champion vs Losers bracket champion
"""
import logging
from typing import List

from .elimination import (
    build_elimination_rounds,
    calculate_bracket_size,
    calculate_round_count,
    mark_byes,
    settle_byes,
)
from .models import (
    Bracket,
    Match,
    Round,
    DOUBLE_ELIMINATION,
    GRAND_FINAL,
    LOSERS,
    WINNERS,
    validate_players,
)

logger = logging.getLogger(__name__)

GRAND_FINAL_ID = 'grand_final'


def get_losers_round_name(round_number: int) -> str:
    return f"Loser Tour {round_number}"


def calculate_losers_bracket_rounds(bracket_size: int) -> int:
    """
    Calculate number of rounds in losers bracket.
    For N players in winners bracket (power of 2):
    - Winners bracket has log2(N) rounds
    - Losers bracket has 2 * (log2(N) - 1) rounds
    """
    if bracket_size < 2:
        return 0
    return 2 * (calculate_round_count(bracket_size) - 1)


def calculate_losers_round_size(round_number: int, total_losers_rounds: int) -> int:
    """Number of matches in a losers bracket round (1-based)."""
    return 2 ** ((total_losers_rounds - round_number) // 2)


def generate_double_elimination(players: List[str]) -> Bracket:
    """
    Generate a double elimination bracket.

    The losers bracket alternates between two kinds of rounds:
    - Drop rounds (even): losers of a winners round join the survivors of the
      previous losers round. They drop in reversed order so that a survivor
      does not face the player who just beat them in the winners bracket.
    - Reduction rounds (odd, from round 3): survivors pair off.

    For 8 players:
    - L Tour 1: 4 W-Tour 1 losers pair off -> 2 matches
    - L Tour 2: 2 W-Demi-finales losers + 2 L Tour 1 winners -> 2 matches
    - L Tour 3: 2 L Tour 2 winners pair off -> 1 match
    - L Tour 4: W-Finale loser + L Tour 3 winner -> 1 match (losers champion)
    """
    players = validate_players(players)
    bracket_size = calculate_bracket_size(len(players))
    winners_rounds = calculate_round_count(len(players))
    losers_rounds = calculate_losers_bracket_rounds(bracket_size)

    rounds, matches = build_elimination_rounds(players, section=WINNERS)
    winners_first = [r.match_indexes[0] for r in rounds]

    losers_first = []
    for round_number in range(1, losers_rounds + 1):
        match_count = calculate_losers_round_size(round_number, losers_rounds)
        first = len(matches)
        losers_first.append(first)
        for match_number in range(1, match_count + 1):
            matches.append(Match(
                match_id=f"lr{round_number}_m{match_number}",
                round_number=round_number,
                match_number=match_number,
            ))
        rounds.append(Round(
            number=round_number,
            name=get_losers_round_name(round_number),
            match_indexes=list(range(first, first + match_count)),
            section=LOSERS,
        ))

    grand_final = len(matches)
    matches.append(Match(match_id=GRAND_FINAL_ID, round_number=1, match_number=1))
    rounds.append(Round(number=1, name="Grande Finale", match_indexes=[grand_final], section=GRAND_FINAL))

    # Winners bracket losers drop into the losers bracket
    for round_number in range(1, winners_rounds + 1):
        round_matches = rounds[round_number - 1].match_indexes
        match_count = len(round_matches)
        for match_number, index in enumerate(round_matches, start=1):
            match = matches[index]
            if losers_rounds == 0:
                match.loser_match, match.loser_slot = grand_final, 2
            elif round_number == 1:
                match.loser_match = losers_first[0] + (match_number - 1) // 2
                match.loser_slot = 1 if match_number % 2 else 2
            else:
                drop_round = 2 * (round_number - 1)
                match.loser_match = losers_first[drop_round - 1] + (match_count - match_number)
                match.loser_slot = 2

    winners_final = matches[winners_first[-1]]
    winners_final.next_match, winners_final.next_slot = grand_final, 1

    # Losers bracket winners move on
    for round_number in range(1, losers_rounds + 1):
        first = losers_first[round_number - 1]
        match_count = calculate_losers_round_size(round_number, losers_rounds)
        for offset in range(match_count):
            match = matches[first + offset]
            if round_number == losers_rounds:
                match.next_match, match.next_slot = grand_final, 2
            elif round_number % 2:
                match.next_match = losers_first[round_number] + offset
                match.next_slot = 1
            else:
                match.next_match = losers_first[round_number] + offset // 2
                match.next_slot = 1 if match.match_number % 2 else 2

    mark_byes(matches)
    bracket = Bracket(DOUBLE_ELIMINATION, rounds, matches)
    settle_byes(bracket)
    logger.debug("Double elimination: %d players, %d winners rounds, %d losers rounds",
                 len(players), winners_rounds, losers_rounds)
    return bracket
