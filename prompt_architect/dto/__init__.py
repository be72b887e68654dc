from .images import UploadedImage
from .proposals import GenerationResult, OptimizedPrompt, Proposal
from .session import CopiedPrompt, WorkflowSnapshot

__all__ = [
    "CopiedPrompt",
    "GenerationResult",
    "OptimizedPrompt",
    "Proposal",
    "UploadedImage",
    "WorkflowSnapshot",
]
