"""
Exceptions raised by the bracket engine.

Every error is recoverable: operations work on a copy of the bracket, so a
raised error leaves the caller's bracket untouched. The web layer turns them
into JSON responses using ``code`` and ``status``.
"""


class BracketError(Exception):
    """Base class for all bracket engine errors."""
    code = 'bracket_error'
    status = 400
    retryable = False

    def __init__(self, message: str = None, **details):
        super().__init__(message or self.__class__.__doc__)
        self.message = message or self.__class__.__doc__
        self.details = details

    def to_dict(self) -> dict:
        data = {
            'error': self.message,
            'code': self.code,
            'retryable': self.retryable,
        }
        if self.details:
            data['details'] = self.details
        return data


# ========== Generation ==========


class GenerationError(BracketError):
    """The bracket could not be generated."""
    code = 'generation_error'


class InvalidPlayerCount(GenerationError):
    """At least two distinct players are required."""
    code = 'invalid_player_count'


class UnsupportedFormat(GenerationError):
    """Unsupported tournament format."""
    code = 'unsupported_format'


class InvalidBracket(BracketError):
    """The bracket document is inconsistent."""
    code = 'invalid_bracket'


# ========== Results ==========


class ApplyError(BracketError):
    """The result could not be applied."""
    code = 'apply_error'
    status = 409


class MatchNotFound(ApplyError):
    """No match with this id in the bracket."""
    code = 'match_not_found'
    status = 404


class MatchNotReady(ApplyError):
    """The match does not have both players yet."""
    code = 'match_not_ready'


class MatchAlreadyDecided(ApplyError):
    """The match already has a winner."""
    code = 'match_already_decided'


class InvalidWinner(ApplyError):
    """The winner is not one of the match players."""
    code = 'invalid_winner'
    status = 400


class InvalidScore(ApplyError):
    """The score cannot be read or does not match the winner."""
    code = 'invalid_score'
    status = 400


class RevertError(BracketError):
    """The result could not be reverted."""
    code = 'revert_error'
    status = 409


class NoResultToUndo(RevertError):
    """There is no recorded result to undo."""
    code = 'no_result_to_undo'


class LaterRoundStarted(RevertError):
    """A later round already has recorded results."""
    code = 'later_round_started'


# ========== Round advancement ==========


class AdvanceError(BracketError):
    """The next round could not be generated."""
    code = 'advance_error'
    status = 409


class RoundNotFound(AdvanceError):
    """No round has any match yet."""
    code = 'round_not_found'
    status = 404


class RoundNotComplete(AdvanceError):
    """The current round still has undecided matches."""
    code = 'round_not_complete'


class PairingsAlreadyGenerated(AdvanceError):
    """The next round already has pairings."""
    code = 'pairings_already_generated'


class NoNextRound(AdvanceError):
    """The current round is the last one."""
    code = 'no_next_round'


# ========== Storage ==========


class StorageError(BracketError):
    """The tournament store could not complete the operation."""
    code = 'storage_error'
    status = 500


class TournamentNotFound(StorageError):
    """No tournament with this id."""
    code = 'tournament_not_found'
    status = 404


class VersionConflict(StorageError):
    """The tournament was modified by someone else; reload and retry."""
    code = 'version_conflict'
    status = 409
    retryable = True


class TournamentBusy(StorageError):
    """The tournament is locked by another writer; retry shortly."""
    code = 'tournament_busy'
    status = 503
    retryable = True
