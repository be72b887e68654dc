# prompt_architect/services/clients/google_ai_client.py
from __future__ import annotations
from typing import Any, List

import structlog
from pydantic import BaseModel

from google import genai
from google.genai import types
from google.genai.types import Modality

from prompt_architect.data.settings import settings
from prompt_architect.dto.images import UploadedImage
from prompt_architect.exceptions import NoImageProducedError

logger = structlog.get_logger(__name__)


class GeneratedImage(BaseModel):
    """Standardized image response from a generation client."""
    image_bytes: bytes
    content_type: str = "image/png"


def _build_parts(images: list[UploadedImage], text: str | None) -> List[types.Part]:
    """Inline image parts first, in upload order, then the text part."""
    parts = [
        types.Part.from_bytes(data=image.to_bytes(), mime_type=image.mime_type)
        for image in images
    ]
    if text:
        parts.append(types.Part.from_text(text=text))
    return parts


def pick_first_inline_image(parts: List[Any]) -> tuple[bytes, str | None] | None:
    """
    Return (bytes, mime) of the first part carrying inline image data.
    Inline parts declaring a non-image MIME type are skipped; an unset type is
    taken to be an image.
    """
    for p in parts or []:
        inline = getattr(p, "inline_data", None)
        if not inline or not getattr(inline, "data", None):
            continue
        mime_type = getattr(inline, "mime_type", None)
        if mime_type and not mime_type.startswith("image/"):
            continue
        return inline.data, mime_type
    return None


class _ClientHolder:
    """
    Builds the google-genai client on first use. A missing API key is not
    checked here; it surfaces as an error from the first call.
    """

    def __init__(self, api_key: str | None) -> None:
        self._api_key = api_key
        self._client: genai.Client | None = None

    def get(self) -> genai.Client:
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
            logger.info("GenAI client initialized (Gemini API backend).")
        return self._client


class _StructuredNamespace:
    """Schema-constrained JSON generation."""

    def __init__(self, holder: _ClientHolder) -> None:
        self._holder = holder

    async def generate(
        self,
        *,
        model: str,
        images: list[UploadedImage],
        prompt: str,
        response_schema: types.Schema,
        temperature: float | None = None,
    ) -> str:
        """Returns the raw JSON text of the first candidate, or "" when there is none."""
        log = logger.bind(model=model, images=len(images))

        config = types.GenerateContentConfig(
            temperature=temperature,
            response_mime_type="application/json",
            response_schema=response_schema,
        )

        log.info("Calling Gemini for structured output.")
        try:
            response = await self._holder.get().aio.models.generate_content(
                model=model,
                contents=_build_parts(images, prompt),
                config=config,
            )
        except Exception as e:
            log.error("Gemini API error during structured generation", error=str(e))
            raise

        text = getattr(response, "text", None) or ""
        log.info("Received structured response", length=len(text))
        return text


class _ImagesNamespace:
    """Image generation with the Gemini image models."""

    def __init__(self, holder: _ClientHolder) -> None:
        self._holder = holder

    async def generate(
        self,
        *,
        model: str,
        images: list[UploadedImage],
        prompt: str,
        temperature: float | None = None,
    ) -> GeneratedImage:
        log = logger.bind(model=model, images=len(images))

        gen_config = types.GenerateContentConfig(
            temperature=temperature,
            response_modalities=[Modality.TEXT, Modality.IMAGE],
        )

        log.info("Calling Gemini for image generation.")
        try:
            response = await self._holder.get().aio.models.generate_content(
                model=model,
                contents=_build_parts(images, prompt),
                config=gen_config,
            )
        except Exception as e:
            log.error("Gemini API error during image generation", error=str(e))
            raise

        candidates = getattr(response, "candidates", None) or []
        candidate = candidates[0] if candidates else None
        content = getattr(candidate, "content", None)
        parts = getattr(content, "parts", None) or []
        picked = pick_first_inline_image(parts)

        if not picked:
            finish_reason = getattr(candidate, "finish_reason", "UNKNOWN")
            part_kinds = [
                "inline_data" if getattr(p, "inline_data", None)
                else "text" if getattr(p, "text", None)
                else "other"
                for p in parts
            ]
            log.error(
                "No inline image in response.",
                reason=str(finish_reason),
                part_kinds=part_kinds,
            )
            raise NoImageProducedError(
                f"No inline_data image in response. Finish reason: {finish_reason}"
            )

        image_bytes, content_type = picked
        return GeneratedImage(
            image_bytes=image_bytes,
            content_type=content_type or "image/png",
        )


class GoogleGeminiClient:
    """Gemini client serving both the structured-prompt and the image calls."""

    def __init__(self, api_key: str | None = None, **_kwargs: Any) -> None:
        if api_key is None and settings.api_urls.google_api_key:
            api_key = settings.api_urls.google_api_key.get_secret_value()
        holder = _ClientHolder(api_key)
        self.structured = _StructuredNamespace(holder)
        self.images = _ImagesNamespace(holder)
