# prompt_architect/services/clients/mock_ai_client.py
from __future__ import annotations
import asyncio
import io
from typing import Any

import orjson
import structlog
from PIL import Image

from prompt_architect.data.constants import MANDATED_PROMPT_PREFIX
from prompt_architect.dto.images import UploadedImage
from prompt_architect.services.clients.google_ai_client import GeneratedImage

logger = structlog.get_logger(__name__)

_MOCK_CONCEPTS = [
    ("Golden Hour Rooftop", "Leica M11", "50mm f/1.4", "eye-level cinematic",
     "warm low sun with a silver bounce fill", "city rooftop terrace at sunset"),
    ("Studio Hero Shot", "Canon EOS R5", "85mm f/1.2", "low-angle hero shot",
     "large octabox key with a crisp rim light", "seamless charcoal paper backdrop"),
    ("Editorial Lifestyle", "Sony A7R IV", "35mm f/1.4", "over-the-shoulder candid",
     "soft window light with a gentle negative fill", "sunlit loft kitchen with linen textures"),
    ("Neon Night Campaign", "Nikon Z9", "24-70mm f/2.8 at 40mm", "product-focused composition",
     "magenta and teal atmospheric gels with haze", "rain-slick street under neon signage"),
]


def _mock_proposals() -> list[dict[str, str]]:
    return [
        {
            "title": title,
            "prompt": (
                f"{MANDATED_PROMPT_PREFIX}. Shot on a {camera} with a {focal}, "
                f"{angle}, {lighting}, set in a {environment}."
            ),
            "camera": camera,
            "focalLength": focal,
            "lighting": lighting,
            "environment": environment,
        }
        for title, camera, focal, angle, lighting, environment in _MOCK_CONCEPTS
    ]


def _render_placeholder(color: str = "darkslateblue") -> bytes:
    img = Image.new("RGB", (512, 512), color)
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()


class _MockStructuredNamespace:
    def __init__(self, delay: float) -> None:
        self._delay = delay

    async def generate(self, *, model: str, images: list[UploadedImage], **_kwargs: Any) -> str:
        logger.info("MOCK Structured: Simulating prompt optimization...", model=model, images=len(images))
        await asyncio.sleep(self._delay)
        return orjson.dumps(_mock_proposals()).decode()


class _MockImagesNamespace:
    def __init__(self, delay: float) -> None:
        self._delay = delay

    async def generate(self, *, model: str, images: list[UploadedImage], **_kwargs: Any) -> GeneratedImage:
        logger.info("MOCK Images: Simulating preview generation...", model=model, images=len(images))
        await asyncio.sleep(self._delay)
        return GeneratedImage(
            image_bytes=_render_placeholder(),
            content_type="image/png",
        )


class MockAIClient:
    """Offline stand-in with the same surface as GoogleGeminiClient."""

    def __init__(self, delay: float = 1.0, **_kwargs: Any) -> None:
        self.structured = _MockStructuredNamespace(delay)
        self.images = _MockImagesNamespace(delay)
