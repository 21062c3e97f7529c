"""
Data model for tournament brackets.

Matches live in one flat list (the arena) ordered round by round, and refer
to the match they feed by integer index. The serialized document produced by
``Bracket.to_dict`` uses the stable string match ids instead.
"""
import copy
from collections import Counter
from typing import Dict, List, Optional

from .errors import InvalidBracket, InvalidPlayerCount, MatchNotFound

SINGLE_ELIMINATION = 'single_elimination'
DOUBLE_ELIMINATION = 'double_elimination'
ROUND_ROBIN = 'round_robin'
SWISS = 'swiss'

FORMATS = (SINGLE_ELIMINATION, DOUBLE_ELIMINATION, ROUND_ROBIN, SWISS)
ELIMINATION_FORMATS = (SINGLE_ELIMINATION, DOUBLE_ELIMINATION)
STANDINGS_FORMATS = (ROUND_ROBIN, SWISS)

# Double elimination bracket sections
WINNERS = 'winners'
LOSERS = 'losers'
GRAND_FINAL = 'grand_final'

# Swiss round status
PENDING = 'pending'
READY = 'ready'


def validate_players(players) -> List[str]:
    """Return the players as a list; raise InvalidPlayerCount if they cannot form a bracket."""
    players = list(players or [])
    if len(players) < 2:
        raise InvalidPlayerCount(f"At least 2 players are required, got {len(players)}", count=len(players))
    if any(p is None or (isinstance(p, str) and not p.strip()) for p in players):
        raise InvalidPlayerCount("Player names must not be empty")
    duplicates = [player for player, count in Counter(players).items() if count > 1]
    if duplicates:
        raise InvalidPlayerCount(f"Duplicate players: {', '.join(map(str, duplicates))}",
                                 duplicates=duplicates)
    return players


class MatchResult:
    def __init__(self, match_id: str, winner: str, score: Optional[str] = None):
        self.match_id = match_id
        self.winner = winner
        self.score = score

    @classmethod
    def coerce(cls, value) -> 'MatchResult':
        """Accept a MatchResult or a ``{match_id, winner, score?}`` mapping."""
        if isinstance(value, cls):
            return value
        return cls(match_id=value.get('match_id'), winner=value.get('winner'), score=value.get('score'))

    def to_dict(self) -> dict:
        data = {'match_id': self.match_id, 'winner': self.winner}
        if self.score is not None:
            data['score'] = self.score
        return data

    def __eq__(self, other):
        if not isinstance(other, MatchResult):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"MatchResult(match_id={self.match_id}, winner={self.winner})"


class Match:
    def __init__(self, match_id: str, round_number: int, match_number: int,
                 player1: Optional[str] = None, player2: Optional[str] = None,
                 winner: Optional[str] = None,
                 next_match: Optional[int] = None, next_slot: Optional[int] = None,
                 loser_match: Optional[int] = None, loser_slot: Optional[int] = None,
                 bye_slots: Optional[List[int]] = None, score: Optional[dict] = None):
        self.match_id = match_id
        self.round_number = round_number
        self.match_number = match_number
        self.player1 = player1
        self.player2 = player2
        self.winner = winner
        self.next_match = next_match  # arena index of the match the winner joins
        self.next_slot = next_slot
        self.loser_match = loser_match  # arena index of the match the loser drops to
        self.loser_slot = loser_slot
        self.bye_slots = list(bye_slots) if bye_slots else []  # slots no player will ever fill
        self.score = score  # parsed set scores, see brackets.scores

    def get_slot(self, slot: int) -> Optional[str]:
        return self.player1 if slot == 1 else self.player2

    def set_slot(self, slot: int, player: Optional[str]):
        if slot == 1:
            self.player1 = player
        else:
            self.player2 = player

    @property
    def players(self) -> List[str]:
        return [p for p in (self.player1, self.player2) if p is not None]

    @property
    def is_decided(self) -> bool:
        return self.winner is not None

    @property
    def is_bye(self) -> bool:
        """A single player advances without playing."""
        return len(self.bye_slots) == 1

    @property
    def is_void(self) -> bool:
        """Both slots are byes: the match is never played."""
        return len(self.bye_slots) == 2

    @property
    def is_ready(self) -> bool:
        return self.player1 is not None and self.player2 is not None

    @property
    def loser(self) -> Optional[str]:
        if self.winner is None or not self.is_ready:
            return None
        return self.player2 if self.winner == self.player1 else self.player1

    def __repr__(self):
        return (f"Match(match_id={self.match_id}, player1={self.player1}, "
                f"player2={self.player2}, winner={self.winner})")


class Round:
    def __init__(self, number: int, name: str, match_indexes: Optional[List[int]] = None,
                 section: Optional[str] = None, status: Optional[str] = None):
        self.number = number
        self.name = name
        self.match_indexes = list(match_indexes) if match_indexes else []
        self.section = section
        self.status = status

    def __repr__(self):
        return f"Round(number={self.number}, name={self.name}, matches={len(self.match_indexes)})"


class Standing:
    def __init__(self, player: str, wins: int = 0, losses: int = 0, points: int = 0,
                 opponents: Optional[List[str]] = None):
        self.player = player
        self.wins = wins
        self.losses = losses
        self.points = points
        self.opponents = list(opponents) if opponents else []

    def add_opponent(self, player: str):
        if player not in self.opponents:
            self.opponents.append(player)

    def to_dict(self) -> dict:
        return {
            'player': self.player,
            'wins': self.wins,
            'losses': self.losses,
            'points': self.points,
            'opponents': list(self.opponents),
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Standing':
        return cls(
            player=data['player'],
            wins=data.get('wins', 0),
            losses=data.get('losses', 0),
            points=data.get('points', 0),
            opponents=data.get('opponents', []),
        )

    def __eq__(self, other):
        if not isinstance(other, Standing):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Standing(player={self.player}, wins={self.wins}, losses={self.losses}, points={self.points})"


class Bracket:
    def __init__(self, format: str, rounds: List[Round], matches: List[Match],
                 standings: Optional[Dict[str, Standing]] = None,
                 results: Optional[List[MatchResult]] = None):
        self.format = format
        self.rounds = list(rounds)
        self.matches = list(matches)
        self.standings = standings
        self.results = list(results) if results else []
        self._index = {}
        self._round_of = {}
        self.validate()

    def validate(self):
        """Check ids and index references; raise InvalidBracket on the first problem."""
        if self.format not in FORMATS:
            raise InvalidBracket(f"Unknown format '{self.format}'", format=self.format)

        index = {}
        for i, match in enumerate(self.matches):
            if match.match_id in index:
                raise InvalidBracket(f"Duplicate match id '{match.match_id}'", match_id=match.match_id)
            index[match.match_id] = i

        round_of = {}
        for position, round_ in enumerate(self.rounds):
            for i in round_.match_indexes:
                if not 0 <= i < len(self.matches):
                    raise InvalidBracket(f"Round '{round_.name}' references missing match #{i}")
                if i in round_of:
                    raise InvalidBracket(f"Match '{self.matches[i].match_id}' belongs to two rounds")
                round_of[i] = position
        orphans = [m.match_id for i, m in enumerate(self.matches) if i not in round_of]
        if orphans:
            raise InvalidBracket(f"Matches outside any round: {', '.join(orphans)}")

        for i, match in enumerate(self.matches):
            for target, slot in ((match.next_match, match.next_slot),
                                 (match.loser_match, match.loser_slot)):
                if target is None:
                    continue
                if not 0 <= target < len(self.matches):
                    raise InvalidBracket(f"Match '{match.match_id}' feeds a missing match",
                                         match_id=match.match_id)
                if round_of[target] <= round_of[i]:
                    raise InvalidBracket(f"Match '{match.match_id}' feeds a match in an earlier round",
                                         match_id=match.match_id)
                if slot not in (1, 2):
                    raise InvalidBracket(f"Match '{match.match_id}' has an invalid slot {slot}",
                                         match_id=match.match_id)

        for result in self.results:
            if result.match_id not in index:
                raise InvalidBracket(f"Result for unknown match '{result.match_id}'",
                                     match_id=result.match_id)

        self._index = index
        self._round_of = round_of

    # ----- lookups -----

    def index_of(self, match_id: str) -> int:
        try:
            return self._index[match_id]
        except KeyError:
            raise MatchNotFound(f"Match '{match_id}' not found", match_id=match_id) from None

    def get_match(self, match_id: str) -> Match:
        return self.matches[self.index_of(match_id)]

    def round_position_of(self, index: int) -> int:
        return self._round_of[index]

    def round_matches(self, position: int) -> List[Match]:
        return [self.matches[i] for i in self.rounds[position].match_indexes]

    def is_round_complete(self, position: int) -> bool:
        matches = self.round_matches(position)
        return bool(matches) and all(m.is_decided or m.is_void for m in matches)

    @property
    def total_rounds(self) -> int:
        return len(self.rounds)

    @property
    def total_matches(self) -> int:
        return len(self.matches)

    @property
    def contested_matches(self) -> List[Match]:
        """Matches that are actually played (no byes, no void matches)."""
        return [m for m in self.matches if not m.bye_slots]

    @property
    def is_complete(self) -> bool:
        if not self.matches:
            return False
        if self.format == SWISS and any(not r.match_indexes for r in self.rounds):
            return False
        return all(m.is_decided or m.is_void for m in self.matches)

    # ----- propagation -----

    def advance(self, index: int):
        """Send the winner and loser of a decided match to the matches they feed."""
        match = self.matches[index]
        if match.winner is None:
            return
        if match.next_match is not None:
            self._place(match.next_match, match.next_slot, match.winner)
        loser = match.loser
        if match.loser_match is not None and loser is not None:
            self._place(match.loser_match, match.loser_slot, loser)

    def _place(self, index: int, slot: int, player: str):
        target = self.matches[index]
        target.set_slot(slot, player)
        other = 2 if slot == 1 else 1
        if other in target.bye_slots and target.winner is None:
            target.winner = player
            self.advance(index)

    def retract(self, index: int) -> List[int]:
        """
        Clear the winner of a match and everything it sent downstream.

        Downstream matches that were already decided are retracted as well.
        Returns the arena indexes of every match whose winner was cleared.
        """
        match = self.matches[index]
        cleared = [index]
        match.winner = None
        match.score = None
        for target, slot in ((match.next_match, match.next_slot),
                             (match.loser_match, match.loser_slot)):
            if target is None:
                continue
            downstream = self.matches[target]
            if slot in downstream.bye_slots:
                continue
            downstream.set_slot(slot, None)
            if downstream.winner is not None:
                cleared.extend(self.retract(target))
        return cleared

    # ----- round editing -----

    def set_round_matches(self, position: int, matches: List[Match]):
        """Replace the matches of a round, keeping the arena ordered round by round."""
        removed = set(self.rounds[position].match_indexes)
        targets = {}
        for i, match in enumerate(self.matches):
            if i in removed:
                continue
            if match.next_match in removed or match.loser_match in removed:
                raise InvalidBracket(f"Match '{match.match_id}' feeds a match being replaced")
            targets[id(match)] = (
                self.matches[match.next_match] if match.next_match is not None else None,
                self.matches[match.loser_match] if match.loser_match is not None else None,
            )

        groups = [self.round_matches(p) for p in range(len(self.rounds))]
        groups[position] = list(matches)
        arena = [m for group in groups for m in group]
        position_of = {id(m): i for i, m in enumerate(arena)}

        start = 0
        for round_, group in zip(self.rounds, groups):
            round_.match_indexes = list(range(start, start + len(group)))
            start += len(group)
        for match in arena:
            next_target, loser_target = targets.get(id(match), (None, None))
            match.next_match = position_of[id(next_target)] if next_target is not None else None
            match.loser_match = position_of[id(loser_target)] if loser_target is not None else None

        self.matches = arena
        self.validate()

    def clear_round(self, position: int):
        self.set_round_matches(position, [])

    def copy(self) -> 'Bracket':
        return copy.deepcopy(self)

    # ----- serialization -----

    def _match_to_dict(self, match: Match) -> dict:
        data = {
            'match_id': match.match_id,
            'round': match.round_number,
            'match_number': match.match_number,
            'player1': match.player1,
            'player2': match.player2,
            'winner': match.winner,
            'next_match_id': self.matches[match.next_match].match_id if match.next_match is not None else None,
        }
        if match.next_match is not None:
            data['next_slot'] = match.next_slot
        if match.loser_match is not None:
            data['feeds_to_loser_match_id'] = self.matches[match.loser_match].match_id
            data['loser_slot'] = match.loser_slot
        if match.bye_slots:
            data['bye_slots'] = list(match.bye_slots)
        if match.score:
            data['score'] = copy.deepcopy(match.score)
        return data

    def to_dict(self) -> dict:
        rounds = []
        for position, round_ in enumerate(self.rounds):
            round_data = {
                'round': round_.number,
                'name': round_.name,
            }
            if round_.section:
                round_data['bracket'] = round_.section
            if round_.status:
                round_data['status'] = round_.status
            round_data['matches'] = [self._match_to_dict(m) for m in self.round_matches(position)]
            rounds.append(round_data)

        data = {
            'format': self.format,
            'total_rounds': self.total_rounds,
            'total_matches': self.total_matches,
            'rounds': rounds,
            'results': [r.to_dict() for r in self.results],
        }
        if self.standings is not None:
            data['standings'] = {player: s.to_dict() for player, s in self.standings.items()}
        return data

    @classmethod
    def from_dict(cls, data: dict) -> 'Bracket':
        """Rebuild a bracket from its document; raise InvalidBracket if it is inconsistent."""
        if not isinstance(data, dict) or 'rounds' not in data:
            raise InvalidBracket("Bracket document has no rounds")

        try:
            rounds, matches = cls._read_rounds(data['rounds'])
            standings = None
            if data.get('standings') is not None:
                raw = data['standings']
                if isinstance(raw, dict):
                    raw = [dict(value, player=player) for player, value in raw.items()]
                standings = {s['player']: Standing.from_dict(s) for s in raw}
            results = [MatchResult.coerce(r) for r in data.get('results') or []]
        except (KeyError, TypeError, AttributeError) as e:
            raise InvalidBracket(f"Malformed bracket document: {e!r}") from e

        return cls(data.get('format'), rounds, matches, standings=standings, results=results)

    @staticmethod
    def _read_rounds(rounds_data):
        rounds = []
        matches = []
        links = []
        for round_data in rounds_data:
            indexes = []
            for match_data in round_data.get('matches') or []:
                indexes.append(len(matches))
                matches.append(Match(
                    match_id=match_data['match_id'],
                    round_number=match_data.get('round', round_data.get('round')),
                    match_number=match_data['match_number'],
                    player1=match_data.get('player1'),
                    player2=match_data.get('player2'),
                    winner=match_data.get('winner'),
                    next_slot=match_data.get('next_slot'),
                    loser_slot=match_data.get('loser_slot'),
                    bye_slots=match_data.get('bye_slots'),
                    score=match_data.get('score'),
                ))
                links.append((match_data.get('next_match_id'), match_data.get('feeds_to_loser_match_id')))
            rounds.append(Round(
                number=round_data['round'],
                name=round_data.get('name', f"Tour {round_data['round']}"),
                match_indexes=indexes,
                section=round_data.get('bracket'),
                status=round_data.get('status'),
            ))

        ids = {m.match_id: i for i, m in enumerate(matches)}
        for match, (next_id, loser_id) in zip(matches, links):
            for match_id in (next_id, loser_id):
                if match_id is not None and match_id not in ids:
                    raise InvalidBracket(f"Match '{match.match_id}' feeds unknown match '{match_id}'",
                                         match_id=match.match_id)
            match.next_match = ids[next_id] if next_id is not None else None
            match.loser_match = ids[loser_id] if loser_id is not None else None
            if match.next_match is not None and match.next_slot is None:
                match.next_slot = 1 if match.match_number % 2 else 2
        return rounds, matches

    def __eq__(self, other):
        if not isinstance(other, Bracket):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self):
        return f"Bracket(format={self.format}, rounds={len(self.rounds)}, matches={len(self.matches)})"
