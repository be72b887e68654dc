from .errors import error_middleware
from .logging import struct_logging_middleware
from .session import session_middleware

__all__ = ["error_middleware", "session_middleware", "struct_logging_middleware"]
