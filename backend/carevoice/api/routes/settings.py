from __future__ import annotations

import json
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel as PydanticBaseModel

from carevoice.api.dependencies import get_config
from carevoice.core.config import Config
from carevoice.core.exceptions import ConfigError
from carevoice.core.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])

# Sections that can be hot-reloaded at runtime
_MUTABLE_SECTIONS = {"voice", "speech"}


class SettingsUpdateRequest(PydanticBaseModel):
    section: str
    data: dict[str, Any]


@router.get("")
async def get_settings(
    config: Config = Depends(get_config),
) -> JSONResponse:
    """Return the full current configuration."""
    return JSONResponse(content=config.to_dict())


@router.put("")
async def update_settings(
    body: SettingsUpdateRequest,
    config: Config = Depends(get_config),
) -> JSONResponse:
    """Update a configuration section.

    Only the voice and speech sections can be changed at runtime; a new
    voice language is applied to every live session.
    """
    if body.section not in _MUTABLE_SECTIONS:
        return JSONResponse(
            status_code=400,
            content={
                "detail": (
                    f"Section '{body.section}' cannot be updated at runtime. "
                    f"Mutable sections: {sorted(_MUTABLE_SECTIONS)}"
                )
            },
        )

    try:
        await config.update_section(body.section, body.data)
    except ConfigError as exc:
        logger.error("Failed to update section '%s': %s", body.section, exc.message)
        return JSONResponse(
            status_code=400,
            content={"detail": "Validation error. Check the provided data."},
        )

    # Persist the change to config.json if path is available
    if config.config_path and config.config_path.exists():
        try:
            config.config_path.write_text(
                json.dumps(config.to_dict(), ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            logger.error("Failed to persist config to file: %s", exc)

    return JSONResponse(
        content={
            "detail": f"Section '{body.section}' updated successfully",
            "current": config.to_dict(),
        }
    )
