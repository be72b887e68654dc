# prompt_architect/app.py
from typing import Any

import aiojobs
import structlog
from aiohttp import web

from prompt_architect import utils
from prompt_architect.data.settings import settings
from prompt_architect.middlewares import (
    error_middleware,
    session_middleware,
    struct_logging_middleware,
)
from prompt_architect.services import PreviewGenerator, PromptOptimizer, SessionRegistry
from prompt_architect.services.clients import get_ai_client
from prompt_architect.web_handlers import routes


def create_app(
    ai_client: Any | None = None,
    logger: structlog.typing.FilteringBoundLogger | None = None,
) -> web.Application:
    """
    Builds the web application. The AI client defaults to the one named in
    settings; tests pass their own.
    """
    web_logger = logger or structlog.get_logger("prompt_architect.web")
    app = web.Application(
        middlewares=[
            struct_logging_middleware(web_logger),
            session_middleware,
            error_middleware,
        ],
        client_max_size=settings.web.client_max_size_mb * 1024 * 1024,
    )
    app.add_routes(routes)

    app["logger"] = web_logger
    app["ai_client"] = ai_client if ai_client is not None else get_ai_client()
    app.on_startup.append(aiohttp_on_startup)
    app.on_shutdown.append(aiohttp_on_shutdown)
    return app


async def aiohttp_on_startup(app: web.Application) -> None:
    logger = app["logger"]
    logger.debug("Starting job scheduler")
    scheduler = aiojobs.Scheduler()
    client = app["ai_client"]
    app["scheduler"] = scheduler
    sessions = SessionRegistry(
        optimizer=PromptOptimizer(client),
        preview_generator=PreviewGenerator(client),
        scheduler=scheduler,
        ttl=settings.web.session_ttl_seconds,
    )
    app["sessions"] = sessions
    await scheduler.spawn(sessions.run_sweeper(settings.web.session_sweep_interval_seconds))
    logger.info(
        "Application started",
        client=type(client).__name__,
        optimizer_model=settings.generation.optimizer_model,
        image_model=settings.generation.image_model,
        google_api_key_configured=bool(settings.api_urls.google_api_key),
    )


async def aiohttp_on_shutdown(app: web.Application) -> None:
    logger = app["logger"]
    if "sessions" in app:
        app["sessions"].close()
    if "scheduler" in app:
        logger.debug("Stopping job scheduler")
        await app["scheduler"].close()
        logger.info("Stopped job scheduler")


def main() -> None:
    logger = utils.logging.setup_logger().bind(type="web")
    web.run_app(
        create_app(logger=logger),
        handle_signals=True,
        host=settings.web.listening_host,
        port=settings.web.listening_port,
    )


if __name__ == "__main__":
    main()
