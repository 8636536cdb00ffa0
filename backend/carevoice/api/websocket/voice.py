"""WebSocket endpoint that lets a browser act as a session's speech engines."""

from __future__ import annotations

import asyncio
import contextlib
import json
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

from carevoice.core.exceptions import SessionLimitError
from carevoice.core.logging import get_logger
from carevoice.models.voice import SessionState

logger = get_logger(__name__)


async def websocket_voice(ws: WebSocket) -> None:
    """WebSocket endpoint for browser-hosted voice navigation.

    Protocol
    --------
    **Client -> Server** (JSON text frames):
    - ``recognition.start|result|error|end`` - Web Speech recognition events
    - ``synthesis.voices|start|end|error`` - Web Speech synthesis events
    - ``{"type": "session.listen", "active": bool}`` - Toggle listening
    - ``{"type": "session.transcript", "text": "..."}`` - Typed command
    - ``{"type": "session.cancel"}`` - Stop speaking
    - ``{"type": "ping"}`` - Keep-alive

    **Server -> Client** (JSON text frames):
    - ``{"type": "session.ready", "session_id": "..."}``
    - ``recognition.start|stop|abort`` and ``synthesis.speak|cancel|pause|resume``
      - engine instructions for the browser
    - ``{"type": "state", "isListening": bool, "isSpeaking": bool}``
    - ``{"type": "command", "command": "..."}`` - Recognized command
    - ``{"type": "navigate", "section": "..."}`` - Dashboard section change
    - ``{"type": "error", "message": "..."}`` - Error occurred

    Voice must be enabled in config, otherwise the connection is closed.
    """
    voice_service = getattr(ws.app.state, "voice_service", None)
    config = getattr(ws.app.state, "config", None)
    if voice_service is None or config is None or not config.voice.enabled:
        await ws.close(code=4503, reason="Voice service is not available or disabled")
        return

    await ws.accept()

    outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
    send = outbox.put_nowait

    def on_state_change(state: SessionState) -> None:
        send(
            {
                "type": "state",
                "isListening": state.is_listening,
                "isSpeaking": state.is_speaking,
            }
        )

    try:
        connection = voice_service.open_session(
            send,
            on_error=lambda message: send({"type": "error", "message": message}),
            on_state_change=on_state_change,
            on_command_recognized=lambda command: send({"type": "command", "command": command}),
        )
    except SessionLimitError as exc:
        logger.warning("Rejecting voice connection: %s", exc.message)
        await ws.close(code=4429, reason="Too many voice sessions")
        return

    session = connection.session
    logger.info("WebSocket voice connected: session=%s...", session.session_id[:8])
    await _send_json(ws, {"type": "session.ready", "session_id": session.session_id})
    sender = asyncio.create_task(_pump(ws, outbox))
    max_bytes = config.web.max_message_bytes

    try:
        while True:
            raw = await ws.receive_text()
            if len(raw.encode("utf-8")) > max_bytes:
                send({"type": "error", "message": f"Message too large (max {max_bytes} bytes)"})
                continue

            try:
                data = json.loads(raw)
            except json.JSONDecodeError:
                send({"type": "error", "message": "Invalid JSON message"})
                continue
            if not isinstance(data, dict):
                send({"type": "error", "message": "Message must be a JSON object"})
                continue

            msg_type = data.get("type")
            if msg_type == "ping":
                send({"type": "pong"})
            elif msg_type == "session.listen":
                if data.get("active", True):
                    session.start_listening()
                else:
                    session.stop_listening()
            elif msg_type == "session.transcript":
                session.handle_transcript(str(data.get("text", "")))
            elif msg_type == "session.cancel":
                session.cancel_speech()
            elif not connection.dispatch(data):
                send({"type": "error", "message": f"Unknown message type: {msg_type}"})

    except WebSocketDisconnect:
        logger.info("WebSocket voice disconnected: session=%s...", session.session_id[:8])
    except Exception as exc:
        logger.exception("WebSocket voice unexpected error: %s", exc)
        if ws.client_state == WebSocketState.CONNECTED:
            await _send_json(ws, {"type": "error", "message": "Internal server error"})
            await ws.close(code=1011, reason="Internal error")
    finally:
        voice_service.close_session(session.session_id)
        sender.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await sender


async def _pump(ws: WebSocket, outbox: asyncio.Queue[dict[str, Any]]) -> None:
    """Forward queued engine instructions and notifications to the browser."""
    try:
        while True:
            message = await outbox.get()
            await _send_json(ws, message)
    except (WebSocketDisconnect, RuntimeError) as exc:
        logger.debug("Voice sender stopped: %s", exc)


async def _send_json(ws: WebSocket, data: dict) -> None:
    """Send JSON message if connection is still open."""
    if ws.client_state == WebSocketState.CONNECTED:
        await ws.send_text(json.dumps(data, ensure_ascii=False))
