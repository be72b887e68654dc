# prompt_architect/services/preview_generator.py
import base64
from typing import Any

import structlog

from prompt_architect.data.constants import DEFAULT_PREVIEW_MIME
from prompt_architect.data.settings import settings
from prompt_architect.dto.images import UploadedImage
from prompt_architect.exceptions import NoImageProducedError, PreviewGenerationFailedError

logger = structlog.get_logger(__name__)


def to_data_uri(image_bytes: bytes, content_type: str | None) -> str:
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{content_type or DEFAULT_PREVIEW_MIME};base64,{encoded}"


class PreviewGenerator:
    """Renders one proposal's prompt against the portrait."""

    def __init__(self, client: Any, model: str | None = None) -> None:
        self.client = client
        self.model = model or settings.generation.image_model

    async def generate(self, portrait: UploadedImage, prompt_text: str) -> str:
        """Returns the rendered preview as a base64 data URI."""
        log = logger.bind(model=self.model)
        try:
            generated = await self.client.images.generate(
                model=self.model,
                images=[portrait],
                prompt=prompt_text,
                temperature=settings.generation.temperature,
            )
        except NoImageProducedError:
            raise
        except Exception as e:
            log.error("Preview call failed", error=str(e))
            raise PreviewGenerationFailedError("The preview call failed.") from e

        log.info("Preview received", content_type=generated.content_type, size=len(generated.image_bytes))
        return to_data_uri(generated.image_bytes, generated.content_type)
