# prompt_architect/services/workflow.py
"""
Per-session workflow: two image slots, one result, and at most one service
call in flight.

Service calls run as aiojobs jobs. Each job reports back through exactly one
completion method, which is the only place the result or error changes after
a call. Uploads bump an epoch counter; a completion carrying an older epoch
belongs to inputs the user has since replaced and is dropped.
"""
from __future__ import annotations
import asyncio

import aiojobs
import structlog

from prompt_architect.data.constants import COPY_FEEDBACK_SECONDS, ImageSlot, UserMessages
from prompt_architect.dto.images import UploadedImage
from prompt_architect.dto.proposals import GenerationResult, Proposal
from prompt_architect.dto.session import WorkflowSnapshot
from prompt_architect.exceptions import (
    MissingImagesError,
    NoResultError,
    OperationInFlightError,
    ServiceUnavailableError,
    UnknownProposalError,
)
from prompt_architect.services.preview_generator import PreviewGenerator
from prompt_architect.services.prompt_optimizer import PromptOptimizer
from prompt_architect.states.workflow import WorkflowState

logger = structlog.get_logger(__name__)


class WorkflowController:
    def __init__(
        self,
        session_id: str,
        optimizer: PromptOptimizer,
        preview_generator: PreviewGenerator,
        scheduler: aiojobs.Scheduler,
    ) -> None:
        self.session_id = session_id
        self._optimizer = optimizer
        self._preview_generator = preview_generator
        self._scheduler = scheduler
        self._log = logger.bind(session_id=session_id)

        self._images: dict[ImageSlot, UploadedImage] = {}
        self._result: GenerationResult | None = None
        self._error: str | None = None

        self._is_optimizing = False
        self._generating_proposal_id: str | None = None
        self._job: aiojobs.Job | None = None
        self._epoch = 0

        self._copy_feedback: str | None = None
        self._copy_feedback_handle: asyncio.TimerHandle | None = None

    # --- read side ---

    @property
    def portrait(self) -> UploadedImage | None:
        return self._images.get(ImageSlot.PORTRAIT)

    @property
    def product(self) -> UploadedImage | None:
        return self._images.get(ImageSlot.PRODUCT)

    @property
    def result(self) -> GenerationResult | None:
        return self._result

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def busy(self) -> bool:
        return self._is_optimizing or self._generating_proposal_id is not None

    @property
    def state(self) -> WorkflowState:
        if self._is_optimizing:
            return WorkflowState.OPTIMIZING
        if self._generating_proposal_id is not None:
            return WorkflowState.GENERATING_PREVIEW
        if self._result is not None:
            if self._result.generated_image is not None:
                return WorkflowState.HAS_PREVIEW
            return WorkflowState.HAS_RESULTS
        if self.portrait is not None and self.product is not None:
            return WorkflowState.READY
        return WorkflowState.EMPTY

    def snapshot(self) -> WorkflowSnapshot:
        return WorkflowSnapshot(
            state=self.state,
            has_portrait=self.portrait is not None,
            has_product=self.product is not None,
            portrait_image=self.portrait.data_uri if self.portrait else None,
            product_image=self.product.data_uri if self.product else None,
            is_optimizing=self._is_optimizing,
            generating_proposal_id=self._generating_proposal_id,
            copy_feedback=self._copy_feedback,
            error=self._error,
            result=self._result,
        )

    # --- user actions ---

    def upload(self, slot: ImageSlot, image: UploadedImage) -> WorkflowSnapshot:
        """Replaces one image slot. New inputs invalidate the previous result."""
        self._images[slot] = image
        self._result = None
        self._error = None
        self._epoch += 1
        self._log.info("Image uploaded", slot=slot.value, mime=image.mime_type, epoch=self._epoch)
        return self.snapshot()

    async def request_optimize(self) -> WorkflowSnapshot:
        if self.busy:
            raise OperationInFlightError("Another request is still running.")

        portrait, product = self.portrait, self.product
        if portrait is None or product is None:
            self._error = UserMessages.MISSING_IMAGES
            raise MissingImagesError(UserMessages.MISSING_IMAGES)

        self._ensure_scheduler_open()
        self._is_optimizing = True
        self._error = None
        self._log.info("Optimization started", epoch=self._epoch)
        coro = self._run_optimize(self._epoch, portrait, product)
        try:
            self._job = await self._scheduler.spawn(coro)
        except Exception:
            coro.close()
            self._is_optimizing = False
            raise
        return self.snapshot()

    async def request_preview(self, proposal_id: str) -> WorkflowSnapshot:
        if self._result is None:
            raise NoResultError("There are no proposals yet.")
        proposal = self._result.find_proposal(proposal_id)
        if proposal is None:
            raise UnknownProposalError(f"Unknown proposal '{proposal_id}'.")
        if self.busy:
            raise OperationInFlightError("Another request is still running.")

        self._ensure_scheduler_open()
        self._generating_proposal_id = proposal.id
        self._error = None
        self._log.info("Preview started", proposal_id=proposal.id, title=proposal.title)
        portrait = UploadedImage(data_uri=self._result.original_image)
        coro = self._run_preview(self._epoch, portrait, proposal)
        try:
            self._job = await self._scheduler.spawn(coro)
        except Exception:
            coro.close()
            self._generating_proposal_id = None
            raise
        return self.snapshot()

    def copy_prompt(self, proposal_id: str) -> str:
        """Returns the prompt text for the clipboard and flags it as copied for a moment."""
        if self._result is None:
            raise NoResultError("There are no proposals yet.")
        proposal = self._result.find_proposal(proposal_id)
        if proposal is None:
            raise UnknownProposalError(f"Unknown proposal '{proposal_id}'.")

        if self._copy_feedback_handle is not None:
            self._copy_feedback_handle.cancel()
        self._copy_feedback = proposal.id
        self._copy_feedback_handle = asyncio.get_running_loop().call_later(
            COPY_FEEDBACK_SECONDS, self._clear_copy_feedback
        )
        return proposal.prompt

    async def wait_idle(self) -> None:
        """Waits for the in-flight call, if any, to deliver its completion."""
        job = self._job
        if job is not None:
            await job.wait()

    def close(self) -> None:
        if self._copy_feedback_handle is not None:
            self._copy_feedback_handle.cancel()
            self._copy_feedback_handle = None

    def _ensure_scheduler_open(self) -> None:
        if self._scheduler.closed:
            raise ServiceUnavailableError("The service is shutting down. Please try again later.")

    # --- completions ---

    def _clear_copy_feedback(self) -> None:
        self._copy_feedback = None
        self._copy_feedback_handle = None

    async def _run_optimize(
        self, epoch: int, portrait: UploadedImage, product: UploadedImage
    ) -> None:
        proposals: list[Proposal] | None = None
        try:
            proposals = await self._optimizer.optimize(portrait, product)
        except Exception:
            self._log.exception("Optimization failed")
        self._finish_optimize(epoch, portrait, proposals)

    def _finish_optimize(
        self, epoch: int, portrait: UploadedImage, proposals: list[Proposal] | None
    ) -> None:
        self._is_optimizing = False
        self._job = None
        if epoch != self._epoch:
            self._log.info("Discarding optimization for replaced inputs", epoch=epoch, current=self._epoch)
            return
        if proposals is None:
            self._error = UserMessages.OPTIMIZATION_FAILED
            return
        self._result = GenerationResult(
            original_image=portrait.data_uri,
            optimized_prompts=proposals,
        )
        self._log.info("Optimization finished", result_id=self._result.id, count=len(proposals))

    async def _run_preview(self, epoch: int, portrait: UploadedImage, proposal: Proposal) -> None:
        image: str | None = None
        try:
            image = await self._preview_generator.generate(portrait, proposal.prompt)
        except Exception:
            self._log.exception("Preview generation failed", proposal_id=proposal.id)
        self._finish_preview(epoch, proposal.id, image)

    def _finish_preview(self, epoch: int, proposal_id: str, image: str | None) -> None:
        self._generating_proposal_id = None
        self._job = None
        if epoch != self._epoch or self._result is None:
            self._log.info("Discarding preview for replaced inputs", epoch=epoch, current=self._epoch)
            return
        if image is None:
            self._error = UserMessages.PREVIEW_FAILED
            return
        self._result = self._result.model_copy(
            update={"generated_image": image, "preview_proposal_id": proposal_id}
        )
        self._log.info("Preview finished", proposal_id=proposal_id)
