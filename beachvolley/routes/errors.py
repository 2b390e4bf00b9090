from fastapi import HTTPException

from beachvolley.services.errors import (
    InconsistentStateError,
    NotFoundError,
    TournamentEngineError,
    ValidationError,
)

STATUS_BY_ERROR = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (InconsistentStateError, 409),
)


def http_error(exc: TournamentEngineError) -> HTTPException:
    """Map an engine error onto the HTTP status the API reports for it."""
    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return HTTPException(status_code=status_code, detail=str(exc))
    return HTTPException(status_code=400, detail=str(exc))
