import asyncio
import io
from unittest.mock import AsyncMock, MagicMock

import aiojobs
import orjson
import pytest
from PIL import Image

from prompt_architect.data.constants import MANDATED_PROMPT_PREFIX
from prompt_architect.dto.images import UploadedImage
from prompt_architect.services.clients.google_ai_client import GeneratedImage
from prompt_architect.services.preview_generator import PreviewGenerator
from prompt_architect.services.prompt_optimizer import PromptOptimizer
from prompt_architect.services.workflow import WorkflowController

PREVIEW_BYTES = b"rendered-preview-bytes"


def png_bytes(color: str = "red") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), color).save(buffer, format="PNG")
    return buffer.getvalue()


def proposal_dicts(count: int = 4) -> list[dict[str, str]]:
    return [
        {
            "title": f"T{i}",
            "prompt": f"{MANDATED_PROMPT_PREFIX}, concept number {i}, low-angle hero shot.",
            "camera": "Canon EOS R5",
            "focalLength": "85mm f/1.2",
            "lighting": "soft box diffusion",
            "environment": f"set {i}",
        }
        for i in range(1, count + 1)
    ]


@pytest.fixture
def portrait() -> UploadedImage:
    return UploadedImage.from_bytes(png_bytes("red"), "image/png")


@pytest.fixture
def product() -> UploadedImage:
    return UploadedImage.from_bytes(png_bytes("blue"), "image/jpeg")


@pytest.fixture
def fake_client() -> MagicMock:
    """Mock generation client with both namespaces answering successfully."""
    client = MagicMock()
    client.structured.generate = AsyncMock(return_value=orjson.dumps(proposal_dicts()).decode())
    client.images.generate = AsyncMock(
        return_value=GeneratedImage(
            image_bytes=PREVIEW_BYTES, content_type="image/png"
        )
    )
    return client


@pytest.fixture
def gate() -> asyncio.Event:
    return asyncio.Event()


def hold_until(gate: asyncio.Event, value):
    """An async side effect that blocks on the gate before answering."""
    async def side_effect(**_kwargs):
        await gate.wait()
        return value
    return side_effect


@pytest.fixture
async def scheduler():
    scheduler = aiojobs.Scheduler()
    yield scheduler
    await scheduler.close()


@pytest.fixture
def controller(fake_client, scheduler) -> WorkflowController:
    return WorkflowController(
        session_id="test-session",
        optimizer=PromptOptimizer(fake_client, model="optimizer-model"),
        preview_generator=PreviewGenerator(fake_client, model="image-model"),
        scheduler=scheduler,
    )
