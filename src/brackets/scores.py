"""
Set scores attached to match results.

A score is written from player1's point of view, one set per token, with
an optional tiebreak in parentheses: ``"6-4 3-6 7-6(5)"``. It is stored as
``{'sets': [{'player1': 6, 'player2': 4}, ...], 'tiebreaks': [None, ...]}``.
"""
import re
from typing import Optional

from .errors import InvalidScore

SET_PATTERN = re.compile(r'^(\d+)-(\d+)(?:\((\d+)\))?$')
MAX_GAMES = 20


def parse_score(score) -> Optional[dict]:
    """Read a score string or mapping; None or an empty string means no score."""
    if score is None:
        return None
    if isinstance(score, dict):
        return _normalize(score)
    if not isinstance(score, str):
        raise InvalidScore(f"Score must be a string like '6-4 7-5', got {score!r}", score=score)
    if not score.strip():
        return None

    sets = []
    tiebreaks = []
    for token in score.split():
        match = SET_PATTERN.match(token)
        if not match:
            raise InvalidScore(f"Cannot read set '{token}'", score=score)
        sets.append({'player1': int(match.group(1)), 'player2': int(match.group(2))})
        tiebreaks.append(int(match.group(3)) if match.group(3) else None)
    return {'sets': sets, 'tiebreaks': tiebreaks}


def _normalize(data: dict) -> Optional[dict]:
    sets = data.get('sets') or []
    if not sets:
        return None
    tiebreaks = list(data.get('tiebreaks') or [])
    tiebreaks += [None] * (len(sets) - len(tiebreaks))
    try:
        normalized = [{'player1': int(s['player1']), 'player2': int(s['player2'])} for s in sets]
    except (KeyError, TypeError, ValueError) as e:
        raise InvalidScore(f"Malformed score: {e}", score=data) from e
    return {'sets': normalized, 'tiebreaks': tiebreaks[:len(sets)]}


def validate_score(score_data: dict):
    """Raise InvalidScore when a set is not a plausible finished set."""
    for number, games in enumerate(score_data['sets'], start=1):
        player1, player2 = games['player1'], games['player2']
        if player1 < 0 or player2 < 0:
            raise InvalidScore(f"Set {number}: scores cannot be negative", set=number)
        if player1 > MAX_GAMES or player2 > MAX_GAMES:
            raise InvalidScore(f"Set {number}: more than {MAX_GAMES} games", set=number)
        if max(player1, player2) < 6:
            raise InvalidScore(f"Set {number}: a set is won with at least 6 games", set=number)
        if max(player1, player2) == 6 and abs(player1 - player2) < 2:
            raise InvalidScore(f"Set {number}: a set must be won by 2 games", set=number)


def winning_slot(score_data: dict) -> Optional[int]:
    """
    Slot (1 or 2) of the player who won the score, or None if unfinished.

    Up to three sets is best of three, more is best of five.
    """
    sets = score_data['sets']
    if not sets:
        return None
    player1_sets = sum(1 for s in sets if s['player1'] > s['player2'])
    player2_sets = sum(1 for s in sets if s['player2'] > s['player1'])
    sets_to_win = 2 if len(sets) <= 3 else 3
    if player1_sets >= sets_to_win:
        return 1
    if player2_sets >= sets_to_win:
        return 2
    return None


def format_score(score_data: Optional[dict]) -> Optional[str]:
    if not score_data:
        return None
    tokens = []
    for games, tiebreak in zip(score_data['sets'], score_data['tiebreaks']):
        token = f"{games['player1']}-{games['player2']}"
        if tiebreak is not None:
            token += f"({tiebreak})"
        tokens.append(token)
    return ' '.join(tokens)
