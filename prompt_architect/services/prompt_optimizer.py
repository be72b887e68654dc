# prompt_architect/services/prompt_optimizer.py
from typing import Any

import structlog
from google.genai import types
from pydantic import ValidationError

from prompt_architect.data.constants import OPTIMIZER_INSTRUCTION, PROPOSAL_COUNT
from prompt_architect.data.settings import settings
from prompt_architect.dto.images import UploadedImage
from prompt_architect.dto.proposals import Proposal, optimized_prompt_list
from prompt_architect.exceptions import MissingImagesError, OptimizationFailedError

logger = structlog.get_logger(__name__)

_PROPOSAL_FIELDS = ("title", "prompt", "camera", "lighting", "environment", "focalLength")

PROPOSALS_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    min_items=PROPOSAL_COUNT,
    max_items=PROPOSAL_COUNT,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={name: types.Schema(type=types.Type.STRING) for name in _PROPOSAL_FIELDS},
        required=list(_PROPOSAL_FIELDS),
    ),
)


def parse_proposals(raw: str | None) -> list[Proposal]:
    """
    Validates the optimizer's JSON text and stamps every entry with a fresh id.
    Anything short of a non-empty, fully-shaped array is rejected as a whole.
    """
    if not raw or not raw.strip():
        raise OptimizationFailedError("Empty response from the optimizer call.")
    try:
        items = optimized_prompt_list.validate_json(raw)
    except ValidationError as e:
        raise OptimizationFailedError("Optimizer response did not match the proposal schema.") from e
    if not items:
        raise OptimizationFailedError("Optimizer returned no proposals.")
    return [Proposal(**item.model_dump()) for item in items]


class PromptOptimizer:
    """Turns a portrait and a product shot into photography prompt proposals."""

    def __init__(self, client: Any, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.generation.optimizer_model

    async def optimize(
        self, portrait: UploadedImage | None, product: UploadedImage | None
    ) -> list[Proposal]:
        if portrait is None or product is None:
            raise MissingImagesError("Both a portrait and a product image are required.")

        log = logger.bind(model=self.model)
        try:
            raw = await self.client.structured.generate(
                model=self.model,
                images=[portrait, product],
                prompt=OPTIMIZER_INSTRUCTION,
                response_schema=PROPOSALS_SCHEMA,
                temperature=settings.generation.temperature,
            )
        except Exception as e:
            log.error("Optimizer call failed", error=str(e))
            raise OptimizationFailedError("The optimizer call failed.") from e

        try:
            proposals = parse_proposals(raw)
        except OptimizationFailedError as e:
            log.error("Optimizer returned an unusable payload", error=str(e.__cause__ or e), response=raw)
            raise

        if len(proposals) != PROPOSAL_COUNT:
            log.warning("Unexpected proposal count", expected=PROPOSAL_COUNT, received=len(proposals))
        log.info("Proposals received", count=len(proposals))
        return proposals
