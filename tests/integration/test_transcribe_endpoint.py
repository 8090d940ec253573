import base64

from fastapi.testclient import TestClient

from katzai.core.errors import TranscriptionError
from katzai.main import app
from katzai.providers.transcription import TranscriptionResult


def _authed(session_token):
    return TestClient(app, cookies={"token": session_token})


def _audio():
    return base64.b64encode(b"RIFF....WAVEfmt ").decode("ascii")


def test_transcribe_returns_text(monkeypatch, session_token):
    from katzai import main

    async def fake_transcribe(audio, mime_type):
        assert audio.startswith(b"RIFF")
        assert mime_type == "audio/wav"
        return TranscriptionResult(text="where are the hooks", confidence=0.9, duration_ms=120, language="en")

    monkeypatch.setattr(main.transcriber, "transcribe", fake_transcribe)

    response = _authed(session_token).post("/api/transcribe", json={"audio": _audio(), "mimeType": "audio/wav"})

    assert response.status_code == 200
    assert response.json() == {
        "text": "where are the hooks",
        "confidence": 0.9,
        "durationMs": 120,
        "language": "en",
    }


def test_transcribe_failure_returns_422(monkeypatch, session_token):
    from katzai import main

    async def failing(audio, mime_type):
        raise TranscriptionError("Could not transcribe audio")

    monkeypatch.setattr(main.transcriber, "transcribe", failing)

    response = _authed(session_token).post("/api/transcribe", json={"audio": _audio()})

    assert response.status_code == 422
    assert response.json()["detail"] == "Could not transcribe audio"


def test_transcribe_without_key_returns_422(session_token):
    response = _authed(session_token).post("/api/transcribe", json={"audio": _audio()})

    assert response.status_code == 422


def test_transcribe_rejects_bad_payload(session_token):
    client = _authed(session_token)

    assert client.post("/api/transcribe", json={}).status_code == 400
    assert client.post("/api/transcribe", json=["audio"]).status_code == 400
    assert client.post("/api/transcribe", json={"audio": "@@not base64@@"}).status_code == 400
