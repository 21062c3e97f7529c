"""
Standings for round robin and Swiss brackets.

Standings are always rebuilt from the full match history, so every mutating
path (apply, revert, force advance) produces the same table for the same
set of decided matches.
"""
from typing import Dict, Iterable, List, Optional

from .models import Bracket, Standing, ELIMINATION_FORMATS


def compute_standings(players: Iterable[str], matches) -> Dict[str, Standing]:
    """Replay every decided match; a bye counts as a win without an opponent."""
    standings = {player: Standing(player) for player in players}
    for match in matches:
        if match.winner is None:
            continue
        winner = standings.setdefault(match.winner, Standing(match.winner))
        winner.wins += 1
        winner.points += 1
        loser_name = match.loser
        if loser_name is None:
            continue
        loser = standings.setdefault(loser_name, Standing(loser_name))
        loser.losses += 1
        winner.add_opponent(loser_name)
        loser.add_opponent(match.winner)
    return standings


def recompute_standings(bracket: Bracket):
    """Rebuild ``bracket.standings`` in place from every decided match."""
    players = list(bracket.standings) if bracket.standings is not None else []
    bracket.standings = compute_standings(players, bracket.matches)


def buchholz_scores(standings: Dict[str, Standing]) -> Dict[str, int]:
    """Sum of the opponents' points for every player."""
    return {
        player: sum(standings[o].points for o in standing.opponents if o in standings)
        for player, standing in standings.items()
    }


def rank_standings(standings: Dict[str, Standing]) -> List[dict]:
    """
    Rank players by points, then wins, then Buchholz.

    Returns display rows with ``rank``, ``played`` and ``buchholz`` added to
    the standing fields. Players with equal keys keep their table order.
    """
    if not standings:
        return []
    buchholz = buchholz_scores(standings)
    ordered = sorted(
        standings.values(),
        key=lambda s: (s.points, s.wins, buchholz[s.player]),
        reverse=True,
    )
    rows = []
    for rank, standing in enumerate(ordered, start=1):
        row = standing.to_dict()
        row['rank'] = rank
        row['played'] = standing.wins + standing.losses
        row['buchholz'] = buchholz[standing.player]
        rows.append(row)
    return rows


def find_champion(bracket: Bracket) -> Optional[str]:
    """Return the tournament winner, or None while the bracket is not complete."""
    if not bracket.is_complete:
        return None
    if bracket.format in ELIMINATION_FORMATS:
        final = bracket.round_matches(len(bracket.rounds) - 1)[0]
        return final.winner
    ranked = rank_standings(bracket.standings or {})
    return ranked[0]['player'] if ranked else None
