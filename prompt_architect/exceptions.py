# prompt_architect/exceptions.py


class PromptArchitectError(Exception):
    """Base class for every error raised by this package."""


class InvalidImageError(PromptArchitectError):
    """An upload could not be read as a base64 image data URI."""


class MissingImagesError(PromptArchitectError):
    """Optimization was requested before both images were uploaded."""


class OperationInFlightError(PromptArchitectError):
    """A service call is already running for this session."""


class NoResultError(PromptArchitectError):
    """A proposal action was requested before any proposals exist."""


class UnknownProposalError(PromptArchitectError):
    """The proposal id does not belong to the current result."""


class ServiceCallError(PromptArchitectError):
    """A call to the external generation service did not produce a usable result."""


class OptimizationFailedError(ServiceCallError):
    pass


class PreviewGenerationFailedError(ServiceCallError):
    pass


class NoImageProducedError(PreviewGenerationFailedError):
    """The service answered, but none of the response parts carried image data."""


class ServiceUnavailableError(PromptArchitectError):
    """The job scheduler is shut down; no new service calls are accepted."""
