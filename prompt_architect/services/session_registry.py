# prompt_architect/services/session_registry.py
import asyncio
import secrets
import time

import aiojobs
import structlog

from prompt_architect.services.preview_generator import PreviewGenerator
from prompt_architect.services.prompt_optimizer import PromptOptimizer
from prompt_architect.services.workflow import WorkflowController

logger = structlog.get_logger(__name__)


def new_session_id() -> str:
    return secrets.token_urlsafe(16)


class SessionRegistry:
    """
    In-memory map of browser sessions to their workflow controllers.

    Sessions idle for longer than ``ttl`` seconds are dropped by ``sweep()``,
    which ``run_sweeper()`` calls on an interval. A session with a call in
    flight is kept until that call completes.
    """

    def __init__(
        self,
        optimizer: PromptOptimizer,
        preview_generator: PreviewGenerator,
        scheduler: aiojobs.Scheduler,
        ttl: float = 3600.0,
    ) -> None:
        self._optimizer = optimizer
        self._preview_generator = preview_generator
        self._scheduler = scheduler
        self.ttl = ttl
        self._controllers: dict[str, WorkflowController] = {}
        self._last_seen: dict[str, float] = {}

    def __len__(self) -> int:
        return len(self._controllers)

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._controllers

    def get_or_create(self, session_id: str | None) -> WorkflowController:
        if session_id is None:
            session_id = new_session_id()
        controller = self._controllers.get(session_id)
        if controller is None:
            controller = WorkflowController(
                session_id=session_id,
                optimizer=self._optimizer,
                preview_generator=self._preview_generator,
                scheduler=self._scheduler,
            )
            self._controllers[session_id] = controller
            logger.debug("Session created", session_id=session_id, sessions=len(self._controllers))
        self._last_seen[session_id] = time.monotonic()
        return controller

    def sweep(self, now: float | None = None) -> int:
        """Closes and forgets idle sessions. Returns how many were dropped."""
        if now is None:
            now = time.monotonic()
        expired = [
            session_id
            for session_id, seen in self._last_seen.items()
            if now - seen > self.ttl and not self._controllers[session_id].busy
        ]
        for session_id in expired:
            self._controllers.pop(session_id).close()
            del self._last_seen[session_id]
        if expired:
            logger.info("Expired idle sessions", dropped=len(expired), sessions=len(self._controllers))
        return len(expired)

    async def run_sweeper(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.sweep()

    def close(self) -> None:
        for controller in self._controllers.values():
            controller.close()
        self._controllers.clear()
        self._last_seen.clear()
