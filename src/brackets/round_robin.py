"""
Round robin (everyone plays everyone) bracket generation.
"""
import logging
from typing import List, Optional, Tuple

from .models import Bracket, Match, Round, Standing, ROUND_ROBIN, validate_players

logger = logging.getLogger(__name__)


def circle_rounds(players: List[str]) -> List[List[Tuple[str, str]]]:
    """
    Schedule everyone against everyone with the circle method.

    With an odd player count a bye seat is added; pairings with the bye seat
    are dropped, so that player sits the round out. Seat 0 stays fixed and
    the other seats rotate by one position after every round.
    """
    seats: List[Optional[str]] = list(players)
    if len(seats) % 2:
        seats.append(None)
    n = len(seats)

    schedule = []
    for _ in range(n - 1):
        pairings = []
        for i in range(n // 2):
            player1, player2 = seats[i], seats[n - 1 - i]
            if player1 is not None and player2 is not None:
                pairings.append((player1, player2))
        schedule.append(pairings)
        seats.insert(1, seats.pop())
    return schedule


def generate_round_robin(players: List[str]) -> Bracket:
    """Generate a round robin bracket with zeroed standings."""
    players = validate_players(players)
    rounds = []
    matches = []
    for round_number, pairings in enumerate(circle_rounds(players), start=1):
        first = len(matches)
        for match_number, (player1, player2) in enumerate(pairings, start=1):
            matches.append(Match(
                match_id=f"rr_r{round_number}_m{match_number}",
                round_number=round_number,
                match_number=match_number,
                player1=player1,
                player2=player2,
            ))
        rounds.append(Round(
            number=round_number,
            name=f"Tour {round_number}",
            match_indexes=list(range(first, len(matches))),
        ))

    standings = {player: Standing(player) for player in players}
    logger.debug("Round robin: %d players, %d rounds, %d matches",
                 len(players), len(rounds), len(matches))
    return Bracket(ROUND_ROBIN, rounds, matches, standings=standings)
