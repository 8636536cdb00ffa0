from __future__ import annotations

from pydantic import BaseModel as PydanticBaseModel


class BaseModel(PydanticBaseModel):
    """Base for API bodies and engine payloads.

    Browser engines send camelCase keys through field aliases, while
    Python callers build the same models with snake_case names.
    """

    model_config = {"populate_by_name": True}
