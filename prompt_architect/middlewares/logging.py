# prompt_architect/middlewares/logging.py
import time
import uuid
from collections.abc import Awaitable, Callable

import structlog
from aiohttp import web

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


def struct_logging_middleware(logger: structlog.typing.FilteringBoundLogger):
    """Binds a request id to every log line emitted while handling one request."""

    @web.middleware
    async def middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
        request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
        started = time.monotonic()
        with structlog.contextvars.bound_contextvars(
            request_id=request_id, method=request.method, path=request.path
        ):
            try:
                response = await handler(request)
            except web.HTTPException as e:
                logger.info(
                    "Request finished",
                    status=e.status,
                    duration_ms=int((time.monotonic() - started) * 1000),
                )
                raise
            logger.info(
                "Request finished",
                status=response.status,
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            response.headers["X-Request-ID"] = request_id
            return response

    return middleware
