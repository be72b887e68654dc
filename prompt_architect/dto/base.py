# prompt_architect/dto/base.py
from typing import Any

import orjson
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def orjson_dumps(obj: Any, *, default: Any = None) -> str:
    return orjson.dumps(obj, default=default).decode()


class CamelModel(BaseModel):
    """Base for models that cross the HTTP boundary with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)
