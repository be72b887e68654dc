# prompt_architect/services/clients/factory.py
from __future__ import annotations
from typing import Any

from prompt_architect.data.settings import settings

from .google_ai_client import GoogleGeminiClient
from .mock_ai_client import MockAIClient

_CLIENT_CLASSES: dict[str, type[Any]] = {
    "mock": MockAIClient,
    "google": GoogleGeminiClient,
}


def get_ai_client(client_name: str | None = None) -> Any:
    """
    Creates an AI client instance for a given client name,
    defaulting to the one configured under `generation.client`.
    """
    client_lower = (client_name or settings.generation.client).lower()
    client_class = _CLIENT_CLASSES.get(client_lower)
    if not client_class:
        raise ValueError(f"Unknown client type specified in config: '{client_lower}'")
    return client_class()
