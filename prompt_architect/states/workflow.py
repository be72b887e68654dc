# prompt_architect/states/workflow.py
from enum import Enum


class WorkflowState(str, Enum):
    """
    The stages a session moves through. The controller derives the current
    one from its fields instead of storing it, so it can never drift.
    """
    EMPTY = "empty"
    READY = "ready"
    OPTIMIZING = "optimizing"
    HAS_RESULTS = "has-results"
    GENERATING_PREVIEW = "generating-preview"
    HAS_PREVIEW = "has-preview"
