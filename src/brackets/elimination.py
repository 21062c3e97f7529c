"""
Single elimination bracket generation.
"""
import logging
import math
from typing import List, Optional, Tuple

from .models import Bracket, Match, Round, SINGLE_ELIMINATION, validate_players

logger = logging.getLogger(__name__)


def get_round_name(round_number: int, round_count: int) -> str:
    """Get the name of an elimination round from its position."""
    if round_number == round_count:
        return "Finale"
    elif round_number == round_count - 1:
        return "Demi-finales"
    else:
        return f"Tour {round_number}"


def calculate_bracket_size(num_players: int) -> int:
    """Calculate the bracket size (next power of 2)."""
    if num_players <= 0:
        return 0
    return 2 ** math.ceil(math.log2(num_players))


def calculate_byes(num_players: int) -> int:
    """Calculate number of byes needed."""
    return calculate_bracket_size(num_players) - num_players


def calculate_round_count(num_players: int) -> int:
    if num_players < 2:
        return 0
    return int(math.log2(calculate_bracket_size(num_players)))


def seed_first_round(players: List[str], bracket_size: int) -> List[Tuple[str, Optional[str]]]:
    """
    Pair players for the first round in input order.

    Byes take the trailing matches, one player each, so that no first round
    match is left without a player. For 5 players in a bracket of 8:
    (P1, P2), (P3, BYE), (P4, BYE), (P5, BYE)
    """
    num_matches = bracket_size // 2
    full_matches = num_matches - (bracket_size - len(players))
    pairs = [(players[2 * i], players[2 * i + 1]) for i in range(full_matches)]
    pairs.extend((player, None) for player in players[2 * full_matches:])
    return pairs


def build_elimination_rounds(players: List[str], section: Optional[str] = None) -> Tuple[List[Round], List[Match]]:
    """
    Build the rounds and matches of a knockout tree.

    Match m of round r feeds match ceil(m/2) of round r+1: odd match numbers
    fill slot 1, even ones slot 2. Later rounds start empty.
    """
    bracket_size = calculate_bracket_size(len(players))
    round_count = calculate_round_count(len(players))
    pairs = seed_first_round(players, bracket_size)

    rounds = []
    matches = []
    for round_number in range(1, round_count + 1):
        match_count = bracket_size // 2 ** round_number
        first = len(matches)
        for match_number in range(1, match_count + 1):
            match = Match(
                match_id=f"r{round_number}_m{match_number}",
                round_number=round_number,
                match_number=match_number,
            )
            if round_number == 1:
                match.player1, match.player2 = pairs[match_number - 1]
            if round_number < round_count:
                match.next_match = first + match_count + (match_number - 1) // 2
                match.next_slot = 1 if match_number % 2 else 2
            matches.append(match)
        rounds.append(Round(
            number=round_number,
            name=get_round_name(round_number, round_count),
            match_indexes=list(range(first, first + match_count)),
            section=section,
        ))
    return rounds, matches


def mark_byes(matches: List[Match]):
    """
    Record in ``bye_slots`` the slots that no player will ever fill.

    ``matches`` must be ordered so that every match comes after the matches
    feeding it. An unfed slot is a bye when it starts empty; a fed slot is a
    bye when its source produces nobody (the loser of a bye match, or
    anything out of a match with two byes).
    """
    feeds = {}
    for i, match in enumerate(matches):
        if match.next_match is not None:
            feeds[(match.next_match, match.next_slot)] = (i, 'winner')
        if match.loser_match is not None:
            feeds[(match.loser_match, match.loser_slot)] = (i, 'loser')

    no_winner = set()
    no_loser = set()
    for i, match in enumerate(matches):
        match.bye_slots = []
        for slot in (1, 2):
            source = feeds.get((i, slot))
            if source is None:
                empty = match.get_slot(slot) is None
            else:
                source_index, kind = source
                empty = source_index in (no_winner if kind == 'winner' else no_loser)
            if empty:
                match.bye_slots.append(slot)
        if match.bye_slots:
            no_loser.add(i)
        if len(match.bye_slots) == 2:
            no_winner.add(i)


def settle_byes(bracket: Bracket):
    """Decide every bye match whose only player is already known and advance them."""
    for i, match in enumerate(bracket.matches):
        if match.is_bye and match.winner is None and match.players:
            match.winner = match.players[0]
            bracket.advance(i)


def generate_single_elimination(players: List[str]) -> Bracket:
    """
    Generate a single elimination bracket.

    Byes are decided at generation time and their players already sit in
    the second round.
    """
    players = validate_players(players)
    rounds, matches = build_elimination_rounds(players)
    mark_byes(matches)
    bracket = Bracket(SINGLE_ELIMINATION, rounds, matches)
    settle_byes(bracket)
    logger.debug("Single elimination: %d players, %d rounds, %d byes",
                 len(players), len(rounds), calculate_byes(len(players)))
    return bracket
