# prompt_architect/middlewares/session.py
from collections.abc import Awaitable, Callable

import structlog
from aiohttp import web

from prompt_architect.data.settings import settings
from prompt_architect.services.session_registry import SessionRegistry

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@web.middleware
async def session_middleware(request: web.Request, handler: Handler) -> web.StreamResponse:
    """Attaches the caller's WorkflowController to API requests, issuing a cookie on first contact."""
    if not request.path.startswith("/api/"):
        return await handler(request)

    cookie_name = settings.web.session_cookie
    registry: SessionRegistry = request.app["sessions"]
    session_id = request.cookies.get(cookie_name)
    is_new = session_id is None or session_id not in registry

    controller = registry.get_or_create(session_id)
    request["controller"] = controller

    with structlog.contextvars.bound_contextvars(session_id=controller.session_id):
        response = await handler(request)

    if is_new:
        response.set_cookie(cookie_name, controller.session_id, httponly=True, samesite="Lax")
    return response
