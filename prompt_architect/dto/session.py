# prompt_architect/dto/session.py
from prompt_architect.dto.base import CamelModel
from prompt_architect.dto.proposals import GenerationResult
from prompt_architect.states.workflow import WorkflowState


class WorkflowSnapshot(CamelModel):
    """What the browser sees of one session."""
    state: WorkflowState
    has_portrait: bool
    has_product: bool
    portrait_image: str | None = None
    product_image: str | None = None
    is_optimizing: bool = False
    generating_proposal_id: str | None = None
    copy_feedback: str | None = None
    error: str | None = None
    result: GenerationResult | None = None


class CopiedPrompt(CamelModel):
    prompt: str
    session: WorkflowSnapshot
