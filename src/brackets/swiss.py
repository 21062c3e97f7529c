"""
Swiss system bracket generation and pairing.

Round 1 is seeded randomly. Every later round is an empty placeholder until
the previous round is fully decided; it is then paired from the standings.
"""
import logging
import math
import random
from typing import Iterable, List, Optional, Union

from .errors import GenerationError
from .models import (
    Bracket,
    Match,
    Round,
    Standing,
    PENDING,
    READY,
    SWISS,
    validate_players,
)
from .standings import recompute_standings

logger = logging.getLogger(__name__)


def default_round_count(num_players: int) -> int:
    return max(1, math.ceil(math.log2(num_players)))


def _swiss_match(round_number: int, match_number: int, player1: str, player2: Optional[str]) -> Match:
    match = Match(
        match_id=f"sw_r{round_number}_m{match_number}",
        round_number=round_number,
        match_number=match_number,
        player1=player1,
        player2=player2,
    )
    if player2 is None:
        match.winner = player1
        match.bye_slots = [2]
    return match


def _as_standings(standings) -> List[Standing]:
    if isinstance(standings, dict):
        standings = list(standings.values())
    return [s if isinstance(s, Standing) else Standing.from_dict(s) for s in standings]


def pair_swiss_round(standings: Union[dict, Iterable], round_number: int) -> List[Match]:
    """
    Pair players for a Swiss round.

    Players are sorted by points then wins. Scanning down the table, the
    first unpaired player meets the next unpaired player they have not
    played yet. Whoever is left over is paired in table order even if that
    means a rematch; an odd player out gets a bye.

    The pass is greedy and never backtracks, so a rematch can be forced even
    when a rematch-free pairing of the whole table exists.
    """
    ordered = sorted(_as_standings(standings), key=lambda s: (s.points, s.wins), reverse=True)

    pairings = []
    paired = set()
    for i, first in enumerate(ordered):
        if first.player in paired:
            continue
        for second in ordered[i + 1:]:
            if second.player in paired:
                continue
            if second.player not in first.opponents and first.player not in second.opponents:
                pairings.append((first.player, second.player))
                paired.update((first.player, second.player))
                break

    leftovers = [s.player for s in ordered if s.player not in paired]
    if len(leftovers) > 1:
        logger.debug("Round %d: forced pairing for %s", round_number, ', '.join(map(str, leftovers)))
    for i in range(0, len(leftovers), 2):
        opponent = leftovers[i + 1] if i + 1 < len(leftovers) else None
        pairings.append((leftovers[i], opponent))

    return [
        _swiss_match(round_number, match_number, player1, player2)
        for match_number, (player1, player2) in enumerate(pairings, start=1)
    ]


def fill_round(bracket: Bracket, position: int):
    """
    Pair the round at ``position`` in place from the current standings.

    Standings are rebuilt again afterwards so that a bye handed out by the
    new pairing counts as a win right away.
    """
    recompute_standings(bracket)
    round_ = bracket.rounds[position]
    matches = pair_swiss_round(bracket.standings, round_.number)
    bracket.set_round_matches(position, matches)
    round_.status = READY
    recompute_standings(bracket)
    logger.info("Swiss round %d paired: %d matches", round_.number, len(matches))


def generate_swiss(players: List[str], total_rounds: Optional[int] = None,
                   rng: Optional[random.Random] = None) -> Bracket:
    """
    Generate a Swiss bracket.

    Round 1 shuffles the players and pairs the top half against the bottom
    half (1 vs N/2+1, 2 vs N/2+2, ...). With an odd count the last shuffled
    player gets a bye. Rounds 2.. are pending placeholders.
    """
    players = validate_players(players)
    if total_rounds is None:
        total_rounds = default_round_count(len(players))
    if not isinstance(total_rounds, int) or isinstance(total_rounds, bool) or total_rounds < 1:
        raise GenerationError(f"Swiss round count must be a positive integer, got {total_rounds!r}",
                              rounds=total_rounds)
    rng = rng or random.Random()

    seeded = list(players)
    rng.shuffle(seeded)
    bye_player = seeded.pop() if len(seeded) % 2 else None
    half = len(seeded) // 2
    pairings = [(seeded[i], seeded[i + half]) for i in range(half)]
    if bye_player is not None:
        pairings.append((bye_player, None))

    matches = [
        _swiss_match(1, match_number, player1, player2)
        for match_number, (player1, player2) in enumerate(pairings, start=1)
    ]
    rounds = [Round(number=1, name="Tour 1", match_indexes=list(range(len(matches))), status=READY)]
    for round_number in range(2, total_rounds + 1):
        rounds.append(Round(number=round_number, name=f"Tour {round_number}", status=PENDING))

    bracket = Bracket(SWISS, rounds, matches, standings={player: Standing(player) for player in players})
    recompute_standings(bracket)
    logger.debug("Swiss: %d players, %d rounds", len(players), total_rounds)
    return bracket
