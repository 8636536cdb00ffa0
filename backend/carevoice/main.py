from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from carevoice.api.middleware import register_middleware
from carevoice.api.routes.settings import router as settings_router
from carevoice.api.routes.voice import router as voice_router
from carevoice.api.websocket.voice import websocket_voice
from carevoice.core.config import Config
from carevoice.core.events import EventBus
from carevoice.core.logging import get_logger, setup_logging
from carevoice.models.events import EmergencyRequestedEvent, VoiceErrorEvent
from carevoice.services.voice import VoiceService

logger = get_logger(__name__)


def _log_emergency(event: EmergencyRequestedEvent) -> None:
    logger.warning(
        "EMERGENCY requested by voice (session=%s, transcript=%r)",
        event.session_id,
        event.transcript,
    )


def _log_voice_error(event: VoiceErrorEvent) -> None:
    logger.info("Voice %s error in session %s: %s", event.source, event.session_id, event.message)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle for the FastAPI application."""

    # -- Startup -------------------------------------------------------------
    config: Config = app.state.config
    setup_logging(log_dir=config.logging.log_dir, level=config.logging.level)
    logger.info("Starting carevoice backend")

    event_bus = EventBus()
    event_bus.subscribe(EmergencyRequestedEvent, _log_emergency)
    event_bus.subscribe(VoiceErrorEvent, _log_voice_error)

    voice_service = VoiceService(config=config, event_bus=event_bus)
    if config.voice.enabled:
        logger.info("Voice navigation enabled (language=%s)", config.voice.language)
    else:
        logger.info("Voice navigation disabled; /ws/voice will refuse connections")

    # -- Bind all to app.state -------------------------------------------------
    app.state.event_bus = event_bus
    app.state.voice_service = voice_service

    logger.info("Startup complete")
    yield

    # -- Shutdown ------------------------------------------------------------
    logger.info("Shutting down carevoice backend")
    voice_service.close_all()
    await event_bus.drain()
    event_bus.clear()
    logger.info("Shutdown complete")


def create_app(config: Optional[Config] = None) -> FastAPI:
    """Build the application.  Config is loaded from disk unless given."""
    config = config or Config.from_file()

    app = FastAPI(
        title="carevoice",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.config = config

    # CORS (outermost middleware -- added first so it wraps everything)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    register_middleware(app)

    # -- Health endpoint -------------------------------------------------------

    @app.get("/api/health")
    async def health_check() -> JSONResponse:
        return JSONResponse(
            content={
                "status": "healthy",
                "voice_enabled": config.voice.enabled,
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        )

    # -- Routers -------------------------------------------------------------
    app.include_router(voice_router)
    app.include_router(settings_router)

    # -- WebSocket endpoints --------------------------------------------------
    app.websocket("/ws/voice")(websocket_voice)

    return app


app = create_app()
