# prompt_architect/utils/logging.py
import logging
import sys

import structlog

from prompt_architect.data.settings import settings
from prompt_architect.dto.base import orjson_dumps


def setup_logger() -> structlog.typing.FilteringBoundLogger:
    """
    Set up logging using structlog to process logs from both the application
    and third-party libraries.

    Returns:
        A configured structlog bound logger instance.
    """
    is_tty = sys.stderr.isatty()
    # JSON output keeps tracebacks structured; the console gets them as text
    exception_processor = (
        structlog.processors.format_exc_info
        if is_tty
        else structlog.processors.dict_tracebacks
    )

    shared_processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        exception_processor,
    ]

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    renderer = (
        structlog.dev.ConsoleRenderer()
        if is_tty
        else structlog.processors.JSONRenderer(serializer=orjson_dumps)
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processor=renderer,
    )

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    root_logger.addHandler(handler)
    root_logger.setLevel(settings.logging_level)

    # Reduce noise from third-party libraries
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    log: structlog.typing.FilteringBoundLogger = structlog.get_logger(
        "prompt_architect.main"
    )
    return log
