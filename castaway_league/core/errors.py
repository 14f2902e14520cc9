"""
Domain errors raised by the services layer.

Each error carries the HTTP status the API should answer with. Routers don't
catch these; the handler installed by ``install_error_handlers`` renders them
with the same ``{"detail": ...}`` body FastAPI uses for ``HTTPException``.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LeagueError(Exception):
    status_code = 400
    default_detail = "Request could not be processed"

    def __init__(self, detail: str | None = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class Unauthorized(LeagueError):
    status_code = 401
    default_detail = "Not authenticated"


class Forbidden(LeagueError):
    status_code = 403
    default_detail = "Not authorized"


class NotFound(LeagueError):
    status_code = 404
    default_detail = "Not found"


class ValidationError(LeagueError):
    status_code = 400
    default_detail = "Invalid input"


class DeadlinePassed(LeagueError):
    status_code = 400
    default_detail = "Prediction deadline has passed"


class AlreadyScored(LeagueError):
    status_code = 409
    default_detail = "Episode already scored"


class InsufficientBudget(LeagueError):
    status_code = 400
    default_detail = "Insufficient budget"


class AllocationExhausted(LeagueError):
    status_code = 503
    default_detail = "Could not allocate a unique invite code"


class Conflict(LeagueError):
    status_code = 409
    default_detail = "Conflicting update"


async def league_error_handler(request: Request, exc: LeagueError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, Unauthorized) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail},
        headers=headers,
    )


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LeagueError, league_error_handler)
