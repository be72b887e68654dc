# prompt_architect/middlewares/errors.py
from collections.abc import Awaitable, Callable

import structlog
from aiohttp import web

from prompt_architect.dto.base import orjson_dumps
from prompt_architect.exceptions import (
    InvalidImageError,
    MissingImagesError,
    NoResultError,
    OperationInFlightError,
    PromptArchitectError,
    ServiceUnavailableError,
    UnknownProposalError,
)

logger = structlog.get_logger(__name__)

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]

_STATUS_BY_ERROR: dict[type[PromptArchitectError], int] = {
    InvalidImageError: 400,
    MissingImagesError: 400,
    NoResultError: 404,
    UnknownProposalError: 404,
    OperationInFlightError: 409,
    ServiceUnavailableError: 503,
}


def _error_body(request: web.Request, message: str) -> dict:
    body: dict = {"error": message}
    controller = request.get("controller")
    if controller is not None:
        body["session"] = controller.snapshot().to_json_dict()
    return body


@web.middleware
async def error_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Turns workflow errors into JSON responses; anything unexpected becomes a bare 500."""
    try:
        return await handler(request)
    except web.HTTPException:
        raise
    except PromptArchitectError as e:
        status = _STATUS_BY_ERROR.get(type(e), 500)
        logger.warning("Request rejected", error=type(e).__name__, detail=str(e), status=status)
        return web.json_response(_error_body(request, str(e)), status=status, dumps=orjson_dumps)
    except Exception:
        logger.exception("An unhandled exception occurred")
        return web.json_response(
            {"error": "Something went wrong on our end. Please try again."},
            status=500,
            dumps=orjson_dumps,
        )
