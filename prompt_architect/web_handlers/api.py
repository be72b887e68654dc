# prompt_architect/web_handlers/api.py
from pathlib import Path

import orjson
import structlog
from aiohttp import web
from pydantic import ValidationError

from prompt_architect.data.constants import ImageSlot
from prompt_architect.data.settings import settings
from prompt_architect.dto.base import orjson_dumps
from prompt_architect.dto.images import UploadedImage
from prompt_architect.dto.session import CopiedPrompt, WorkflowSnapshot
from prompt_architect.exceptions import InvalidImageError
from prompt_architect.services.workflow import WorkflowController

logger = structlog.get_logger(__name__)

STATIC_DIR = Path(__file__).resolve().parent / "static"


def _controller(req: web.Request) -> WorkflowController:
    return req["controller"]


def _snapshot_response(snapshot: WorkflowSnapshot, status: int = 200) -> web.Response:
    return web.json_response(snapshot.to_json_dict(), status=status, dumps=orjson_dumps)


async def _read_upload(req: web.Request) -> UploadedImage:
    """Accepts either a multipart `file` field or a JSON body with `dataUri`."""
    try:
        if req.content_type.startswith("multipart/"):
            form = await req.post()
            field = form.get("file")
            if not isinstance(field, web.FileField):
                raise InvalidImageError("Missing 'file' field.")
            return UploadedImage.from_bytes(field.file.read(), field.content_type)

        body = await req.json(loads=orjson.loads)
        data_uri = body.get("dataUri") if isinstance(body, dict) else None
        if not isinstance(data_uri, str):
            raise InvalidImageError("Missing 'dataUri' in request body.")
        return UploadedImage(data_uri=data_uri)
    except (ValidationError, orjson.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidImageError("The upload is not a readable image.") from e


async def index(req: web.Request) -> web.FileResponse:
    return web.FileResponse(STATIC_DIR / "index.html")


async def health(req: web.Request) -> web.Response:
    return web.json_response(
        {
            "ok": True,
            "client": settings.generation.client,
            "sessions": len(req.app["sessions"]),
        },
        dumps=orjson_dumps,
    )


async def get_session(req: web.Request) -> web.Response:
    return _snapshot_response(_controller(req).snapshot())


async def upload_image(req: web.Request) -> web.Response:
    try:
        slot = ImageSlot(req.match_info["slot"])
    except ValueError:
        raise web.HTTPNotFound(reason="Unknown upload slot") from None

    image = await _read_upload(req)
    return _snapshot_response(_controller(req).upload(slot, image))


async def optimize(req: web.Request) -> web.Response:
    snapshot = await _controller(req).request_optimize()
    return _snapshot_response(snapshot, status=202)


async def generate_preview(req: web.Request) -> web.Response:
    snapshot = await _controller(req).request_preview(req.match_info["proposal_id"])
    return _snapshot_response(snapshot, status=202)


async def copy_prompt(req: web.Request) -> web.Response:
    controller = _controller(req)
    text = controller.copy_prompt(req.match_info["proposal_id"])
    payload = CopiedPrompt(prompt=text, session=controller.snapshot())
    return web.json_response(payload.to_json_dict(), dumps=orjson_dumps)


routes = [
    web.get("/", index),
    web.get("/health", health),
    web.get("/api/session", get_session),
    web.post("/api/uploads/{slot}", upload_image),
    web.post("/api/optimize", optimize),
    web.post("/api/proposals/{proposal_id}/preview", generate_preview),
    web.post("/api/proposals/{proposal_id}/copy", copy_prompt),
]
