from __future__ import annotations

from fastapi import Request

from carevoice.core.config import Config
from carevoice.services.voice import VoiceService


def get_config(request: Request) -> Config:
    """Provide the application ``Config`` instance."""
    return request.app.state.config


def get_voice_service(request: Request) -> VoiceService:
    """Provide the ``VoiceService`` that owns live voice sessions."""
    return request.app.state.voice_service
