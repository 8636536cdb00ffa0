from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from starlette.websockets import WebSocketDisconnect

from carevoice.core.config import Config, LoggingConfig, VoiceConfig, WebConfig
from carevoice.core.constants import LISTENING_ACTIVATED
from carevoice.main import create_app


def receive_until(ws, msg_type: str, limit: int = 20) -> dict:
    """Read frames until one of *msg_type* arrives."""
    for _ in range(limit):
        message = ws.receive_json()
        if message["type"] == msg_type:
            return message
    raise AssertionError(f"no {msg_type!r} message within {limit} frames")


def make_client(**sections) -> TestClient:
    config = Config(logging=LoggingConfig(log_dir=None), **sections)
    return TestClient(create_app(config))


@pytest.fixture
def client(app_config):
    with TestClient(create_app(app_config)) as test_client:
        yield test_client


class TestHttp:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["voice_enabled"] is True
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_commands(self, client):
        response = client.get("/api/voice/commands")

        assert response.status_code == 200
        commands = response.json()
        assert [c["command"] for c in commands][:2] == ["go home", "show health"]
        assert commands[-1]["command"] == "help"

    def test_presets(self, client):
        presets = client.get("/api/voice/presets").json()

        assert len(presets) == 7
        critical = next(p for p in presets if p["priority"] == "critical")
        assert (critical["rate"], critical["pitch"], critical["volume"]) == (1.0, 1.2, 1.0)
        error = next(p for p in presets if p["kind"] == "error")
        assert error["volume"] is None

    def test_no_sessions_initially(self, client):
        response = client.get("/api/voice/sessions")

        assert response.json() == []
        assert response.headers["Cache-Control"] == "no-store"

    def test_unknown_session_is_404(self, client):
        assert client.get("/api/voice/sessions/nope").status_code == 404
        response = client.post("/api/voice/sessions/nope/transcript", json={"text": "go home"})
        assert response.status_code == 404

    def test_transcript_validation(self, client):
        response = client.post("/api/voice/sessions/nope/transcript", json={"text": ""})

        assert response.status_code == 422


class TestVoiceWebSocket:
    def test_listen_and_command_round_trip(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ready = ws.receive_json()
            assert ready["type"] == "session.ready"
            session_id = ready["session_id"]

            ws.send_json({"type": "session.listen", "active": True})
            start = receive_until(ws, "recognition.start")
            assert start["continuous"] is True
            assert start["interimResults"] is False
            state = receive_until(ws, "state")
            assert state["isListening"] is True
            speak = receive_until(ws, "synthesis.speak")
            assert speak["text"] == LISTENING_ACTIVATED

            ws.send_json({"type": "synthesis.start", "id": speak["id"]})
            assert receive_until(ws, "state")["isSpeaking"] is True
            ws.send_json({"type": "synthesis.end", "id": speak["id"]})
            assert receive_until(ws, "state")["isSpeaking"] is False

            ws.send_json(
                {
                    "type": "recognition.result",
                    "resultIndex": 0,
                    "results": [
                        {"isFinal": True, "alternatives": [{"transcript": "Show Health"}]}
                    ],
                }
            )
            assert receive_until(ws, "navigate")["section"] == "health"
            assert receive_until(ws, "command")["command"] == "show health"

            sessions = client.get("/api/voice/sessions").json()
            assert [s["session_id"] for s in sessions] == [session_id]
            assert sessions[0]["is_listening"] is True
            assert sessions[0]["commands"] == 7

    def test_http_transcript_and_speech(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            session_id = ws.receive_json()["session_id"]

            response = client.post(
                f"/api/voice/sessions/{session_id}/transcript", json={"text": "My Messages"}
            )
            assert response.json() == {"recognized": True, "command": "show messages"}
            assert receive_until(ws, "navigate")["section"] == "messages"

            response = client.post(
                f"/api/voice/sessions/{session_id}/transcript", json={"text": "banana"}
            )
            assert response.json() == {"recognized": False, "command": None}
            assert "banana" in receive_until(ws, "error")["message"]

            response = client.post(
                f"/api/voice/sessions/{session_id}/speak",
                json={"text": "Time for your pills", "kind": "notification", "priority": "high"},
            )
            assert response.status_code == 202
            speak = receive_until(ws, "synthesis.speak")
            while speak["text"] != "Time for your pills":
                speak = receive_until(ws, "synthesis.speak")
            assert (speak["rate"], speak["pitch"]) == (0.95, 1.1)

            response = client.post(f"/api/voice/sessions/{session_id}/cancel")
            assert response.status_code == 200
            receive_until(ws, "synthesis.cancel")

    def test_protocol_errors(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.receive_json()

            ws.send_json({"type": "ping"})
            assert receive_until(ws, "pong") == {"type": "pong"}

            ws.send_text("{not json")
            assert receive_until(ws, "error")["message"] == "Invalid JSON message"

            ws.send_json(["not", "an", "object"])
            assert receive_until(ws, "error")["message"] == "Message must be a JSON object"

            ws.send_json({"type": "mystery"})
            assert receive_until(ws, "error")["message"] == "Unknown message type: mystery"

    def test_oversized_message_is_rejected(self):
        with make_client(web=WebConfig(max_message_bytes=256)) as client:
            with client.websocket_connect("/ws/voice") as ws:
                ws.receive_json()

                ws.send_text("x" * 300)

                assert receive_until(ws, "error")["message"] == "Message too large (max 256 bytes)"

    def test_disabled_voice_refuses_connection(self):
        with make_client(voice=VoiceConfig(enabled=False)) as client:
            with pytest.raises(WebSocketDisconnect) as exc_info:
                with client.websocket_connect("/ws/voice") as ws:
                    ws.receive_json()

        assert exc_info.value.code == 4503

    def test_session_limit(self):
        with make_client(web=WebConfig(max_sessions=1)) as client:
            with client.websocket_connect("/ws/voice") as first:
                first.receive_json()

                with pytest.raises(WebSocketDisconnect) as exc_info:
                    with client.websocket_connect("/ws/voice") as second:
                        second.receive_json()

        assert exc_info.value.code == 4429

    def test_auto_start_announces_ready(self):
        with make_client(voice=VoiceConfig(auto_start=True)) as client:
            with client.websocket_connect("/ws/voice") as ws:
                ws.receive_json()

                receive_until(ws, "recognition.start")
                speak = receive_until(ws, "synthesis.speak")

                assert "help" in speak["text"]


class TestSettings:
    def test_get_settings(self, client):
        body = client.get("/api/settings").json()

        assert body["voice"]["language"] == "en-US"
        assert body["speech"]["confirmation_rate"] == 1.2

    def test_language_change_reaches_live_sessions(self, client):
        with client.websocket_connect("/ws/voice") as ws:
            ws.receive_json()

            response = client.put(
                "/api/settings", json={"section": "voice", "data": {"language": "en-GB"}}
            )
            assert response.status_code == 200
            assert response.json()["current"]["voice"]["continuous"] is True

            ws.send_json({"type": "session.listen", "active": True})
            assert receive_until(ws, "recognition.start")["lang"] == "en-GB"
            assert receive_until(ws, "synthesis.speak")["lang"] == "en-GB"

    def test_immutable_section_is_rejected(self, client):
        response = client.put("/api/settings", json={"section": "web", "data": {}})

        assert response.status_code == 400

    def test_invalid_values_are_rejected(self, client):
        response = client.put(
            "/api/settings", json={"section": "speech", "data": {"rate": 99}}
        )

        assert response.status_code == 400
        assert client.get("/api/settings").json()["speech"]["rate"] == 0.9
