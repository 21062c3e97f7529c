"""
Tournament formats: names, descriptions and bracket generation entry point.
"""
import logging
import math
import random
from typing import List, Optional

from .double_elimination import generate_double_elimination
from .elimination import generate_single_elimination
from .errors import GenerationError, UnsupportedFormat
from .models import (
    Bracket,
    DOUBLE_ELIMINATION,
    FORMATS,
    ROUND_ROBIN,
    SINGLE_ELIMINATION,
    SWISS,
)
from .round_robin import generate_round_robin
from .swiss import generate_swiss

logger = logging.getLogger(__name__)

FORMAT_NAMES = {
    SINGLE_ELIMINATION: 'Élimination Simple',
    DOUBLE_ELIMINATION: 'Double Élimination',
    ROUND_ROBIN: 'Round-Robin (Poules)',
    SWISS: 'Système Suisse',
}

FORMAT_DESCRIPTIONS = {
    SINGLE_ELIMINATION: 'Une défaite = élimination. Format classique et rapide.',
    DOUBLE_ELIMINATION: 'Deux défaites nécessaires pour être éliminé. Plus de matchs.',
    ROUND_ROBIN: "Tous les joueurs s'affrontent. Classement au nombre de victoires.",
    SWISS: 'Appariements dynamiques selon les résultats. Équitable et efficace.',
}


def normalize_format(format: str) -> str:
    """Accept both 'single-elimination' and 'single_elimination'."""
    if not isinstance(format, str):
        return format
    return format.strip().lower().replace('-', '_')


def get_format_name(format: str) -> str:
    return FORMAT_NAMES.get(normalize_format(format), format)


def get_format_description(format: str) -> str:
    return FORMAT_DESCRIPTIONS.get(normalize_format(format), '')


def calculate_match_count(format: str, num_players: int) -> int:
    """Number of contested matches a format needs for a player count."""
    format = normalize_format(format)
    if num_players < 2:
        return 0
    if format == SINGLE_ELIMINATION:
        return num_players - 1
    elif format == DOUBLE_ELIMINATION:
        return num_players * 2 - 2
    elif format == ROUND_ROBIN:
        return num_players * (num_players - 1) // 2
    elif format == SWISS:
        return (num_players // 2) * math.ceil(math.log2(num_players))
    return 0


def generate(format: str, players: List[str], rounds: Optional[int] = None,
             rng: Optional[random.Random] = None) -> Bracket:
    """
    Generate the initial bracket for a format.

    ``rounds`` and ``rng`` only apply to Swiss (round count and the shuffle
    used to seed round 1).
    """
    players = list(players or [])
    normalized = normalize_format(format)
    if normalized not in FORMATS:
        raise UnsupportedFormat(f"Unsupported format '{format}'", format=format,
                                supported=list(FORMATS))
    if rounds is not None and normalized != SWISS:
        raise GenerationError(f"A round count only applies to swiss, not {normalized}", rounds=rounds)

    if normalized == SINGLE_ELIMINATION:
        bracket = generate_single_elimination(players)
    elif normalized == DOUBLE_ELIMINATION:
        bracket = generate_double_elimination(players)
    elif normalized == ROUND_ROBIN:
        bracket = generate_round_robin(players)
    else:
        bracket = generate_swiss(players, total_rounds=rounds, rng=rng)

    logger.info("Generated %s bracket: %d players, %d rounds, %d matches",
                normalized, len(players), bracket.total_rounds, bracket.total_matches)
    return bracket
