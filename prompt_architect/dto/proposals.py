# prompt_architect/dto/proposals.py
import secrets
from datetime import datetime, timezone

from pydantic import ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from prompt_architect.data.constants import MANDATED_PROMPT_PREFIX
from prompt_architect.dto.base import CamelModel


def _new_token() -> str:
    return secrets.token_hex(8)


class OptimizedPrompt(CamelModel):
    """
    One photography prompt exactly as the optimizer call returns it.
    This is the shape the response schema asks for, so unknown keys are rejected.
    """
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    title: str
    prompt: str
    camera: str
    focal_length: str
    lighting: str
    environment: str

    @field_validator("prompt")
    @classmethod
    def _starts_with_mandated_prefix(cls, value: str) -> str:
        if not value.startswith(MANDATED_PROMPT_PREFIX):
            raise ValueError("prompt does not start with the mandated prefix")
        return value


class Proposal(OptimizedPrompt):
    """An OptimizedPrompt with a synthetic id; titles are free text and may repeat."""
    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )

    id: str = Field(default_factory=_new_token)


class GenerationResult(CamelModel):
    id: str = Field(default_factory=_new_token)
    original_image: str
    optimized_prompts: list[Proposal]
    generated_image: str | None = None
    preview_proposal_id: str | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def find_proposal(self, proposal_id: str) -> Proposal | None:
        for proposal in self.optimized_prompts:
            if proposal.id == proposal_id:
                return proposal
        return None


optimized_prompt_list = TypeAdapter(list[OptimizedPrompt])
