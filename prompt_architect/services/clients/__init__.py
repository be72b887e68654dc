from .factory import get_ai_client
from .google_ai_client import GeneratedImage, GoogleGeminiClient
from .mock_ai_client import MockAIClient

__all__ = ["GeneratedImage", "GoogleGeminiClient", "MockAIClient", "get_ai_client"]
