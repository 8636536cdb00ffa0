from __future__ import annotations

from fastapi import APIRouter, Depends
from starlette.exceptions import HTTPException

from carevoice.api.dependencies import get_voice_service
from carevoice.core.constants import (
    ERROR_PRESET,
    INSTRUCTION_PRESET,
    MESSAGE_PRESET,
    NOTIFICATION_PRESETS,
    SpeechKind,
)
from carevoice.core.exceptions import SessionNotFoundError
from carevoice.core.logging import get_logger
from carevoice.models.api import (
    CommandInfo,
    PresetInfo,
    SessionInfo,
    SpeakRequest,
    TranscriptRequest,
    TranscriptResponse,
)
from carevoice.services.dashboard import dashboard_command_catalogue
from carevoice.services.session import VoiceSession
from carevoice.services.voice import VoiceService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/voice", tags=["voice"])


@router.get("/commands", response_model=list[CommandInfo])
async def list_commands() -> list[CommandInfo]:
    """Voice commands available on the primary-user dashboard."""
    return [CommandInfo(**entry) for entry in dashboard_command_catalogue()]


@router.get("/presets", response_model=list[PresetInfo])
async def list_presets() -> list[PresetInfo]:
    """Prosody presets used for each category of speech."""
    presets = [
        PresetInfo(
            kind=SpeechKind.NOTIFICATION,
            priority=priority,
            rate=rate,
            pitch=pitch,
            volume=volume,
        )
        for priority, (rate, pitch, volume) in NOTIFICATION_PRESETS.items()
    ]
    for kind, (rate, pitch, volume) in (
        (SpeechKind.ERROR, ERROR_PRESET),
        (SpeechKind.INSTRUCTION, INSTRUCTION_PRESET),
        (SpeechKind.MESSAGE, MESSAGE_PRESET),
    ):
        presets.append(PresetInfo(kind=kind, rate=rate, pitch=pitch, volume=volume))
    return presets


@router.get("/sessions", response_model=list[SessionInfo])
async def list_sessions(
    voice_service: VoiceService = Depends(get_voice_service),
) -> list[SessionInfo]:
    return [_session_info(session) for session in voice_service.list_sessions()]


@router.get("/sessions/{session_id}", response_model=SessionInfo)
async def get_session(
    session_id: str,
    voice_service: VoiceService = Depends(get_voice_service),
) -> SessionInfo:
    return _session_info(_lookup(voice_service, session_id))


@router.post("/sessions/{session_id}/transcript", response_model=TranscriptResponse)
async def post_transcript(
    session_id: str,
    body: TranscriptRequest,
    voice_service: VoiceService = Depends(get_voice_service),
) -> TranscriptResponse:
    """Dispatch typed text as if it had been spoken."""
    session = _lookup(voice_service, session_id)
    command = session.handle_transcript(body.text)
    return TranscriptResponse(
        recognized=command is not None,
        command=command.command if command is not None else None,
    )


@router.post("/sessions/{session_id}/speak", status_code=202)
async def post_speak(
    session_id: str,
    body: SpeakRequest,
    voice_service: VoiceService = Depends(get_voice_service),
) -> dict[str, str]:
    """Have the session's browser say *text* with the preset for *kind*."""
    session = _lookup(voice_service, session_id)

    if body.kind is SpeechKind.NOTIFICATION:
        session.speak_notification(body.text, body.priority, queued=body.queued)
    elif body.kind is SpeechKind.ERROR:
        session.speak_error(body.text, queued=body.queued)
    elif body.kind is SpeechKind.INSTRUCTION:
        session.speak_instruction(body.text, queued=body.queued)
    elif body.kind is SpeechKind.MESSAGE:
        session.read_message(body.text, queued=body.queued)
    else:
        session.speak(body.text, queued=body.queued)

    return {"detail": "Speech requested"}


@router.post("/sessions/{session_id}/cancel")
async def post_cancel(
    session_id: str,
    voice_service: VoiceService = Depends(get_voice_service),
) -> dict[str, str]:
    _lookup(voice_service, session_id).cancel_speech()
    return {"detail": "Speech cancelled"}


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _lookup(voice_service: VoiceService, session_id: str) -> VoiceSession:
    try:
        return voice_service.get_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=exc.message) from exc


def _session_info(session: VoiceSession) -> SessionInfo:
    state = session.state
    return SessionInfo(
        session_id=session.session_id,
        is_listening=state.is_listening,
        is_speaking=state.is_speaking,
        language=session.language,
        commands=len(session.get_commands()),
    )
