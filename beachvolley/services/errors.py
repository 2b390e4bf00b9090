"""
Engine error taxonomy.

Services raise these; routes translate them into HTTP responses.
"""


class TournamentEngineError(Exception):
    """Base class for rejected engine operations"""

    pass


class ValidationError(TournamentEngineError):
    """Insufficient teams/groups/qualifiers or malformed input"""

    pass


class NotFoundError(TournamentEngineError):
    """Unknown category, match or team id"""

    pass


class InconsistentStateError(TournamentEngineError):
    """Operation conflicts with the current match or bracket state"""

    pass
