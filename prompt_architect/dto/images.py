# prompt_architect/dto/images.py
import base64
import binascii
import re

from pydantic import BaseModel, ConfigDict, field_validator

from prompt_architect.data.constants import DEFAULT_UPLOAD_MIME

_DATA_URI_RE = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<params>(?:;[^;,]*)*?);base64,(?P<data>.*)$",
    re.DOTALL,
)


def _match(data_uri: str) -> re.Match[str]:
    match = _DATA_URI_RE.match(data_uri)
    if match is None:
        raise ValueError("not a base64 data URI")
    return match


class UploadedImage(BaseModel):
    """An image held as a `data:<mime>;base64,<payload>` URI, exactly as uploaded."""
    model_config = ConfigDict(frozen=True)

    data_uri: str

    @field_validator("data_uri")
    @classmethod
    def _check_data_uri(cls, value: str) -> str:
        payload = _match(value).group("data")
        if not payload:
            raise ValueError("data URI carries no payload")
        try:
            base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError("data URI payload is not valid base64") from e
        return value

    @classmethod
    def from_bytes(cls, data: bytes, mime_type: str | None = None) -> "UploadedImage":
        encoded = base64.b64encode(data).decode("ascii")
        return cls(data_uri=f"data:{mime_type or DEFAULT_UPLOAD_MIME};base64,{encoded}")

    @property
    def mime_type(self) -> str:
        return _match(self.data_uri).group("mime") or DEFAULT_UPLOAD_MIME

    @property
    def base64_data(self) -> str:
        return _match(self.data_uri).group("data")

    def to_bytes(self) -> bytes:
        return base64.b64decode(self.base64_data)
