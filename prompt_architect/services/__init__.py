# prompt_architect/services/__init__.py
from .preview_generator import PreviewGenerator
from .prompt_optimizer import PromptOptimizer
from .session_registry import SessionRegistry
from .workflow import WorkflowController

__all__ = [
    "PreviewGenerator",
    "PromptOptimizer",
    "SessionRegistry",
    "WorkflowController",
]
