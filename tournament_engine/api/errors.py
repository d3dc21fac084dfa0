import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from tournament_engine.core.exceptions import TournamentEngineError

logger = logging.getLogger(__name__)

STATUS_BY_KIND = {
    "not_found": status.HTTP_404_NOT_FOUND,
    "state_violation": status.HTTP_409_CONFLICT,
    "capacity_exceeded": status.HTTP_409_CONFLICT,
    "insufficient_participants": status.HTTP_409_CONFLICT,
    "duplicate_registration": status.HTTP_409_CONFLICT,
    "eligibility_violation": 422,
    "undetermined_result": 422,
    "invalid_result": 422,
    "duplicate_seed": 422,
    "invalid_seed": 422,
    "bracket_inconsistency": status.HTTP_500_INTERNAL_SERVER_ERROR,
}


async def engine_error_handler(request: Request, exc: TournamentEngineError) -> JSONResponse:
    status_code = STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(exc.to_dict()))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(TournamentEngineError, engine_error_handler)
