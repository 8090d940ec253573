"""Server-side speech-to-text adapters."""

from __future__ import annotations

import base64
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from katzai.core.errors import TranscriptionError

from .gemini import GEMINI_API_BASE
from .openai import OPENAI_API_BASE

logger = logging.getLogger("katzai.providers.transcription")

INAUDIBLE = "[inaudible]"
TRANSCRIBE_PROMPT = (
    "Transcribe this audio exactly. Only output the transcription text, nothing else. "
    f'If you cannot understand the audio, output "{INAUDIBLE}".'
)


@dataclass(slots=True)
class TranscriptionResult:
    text: str
    confidence: float
    duration_ms: int
    language: str | None = None


class TranscriptionAdapter(ABC):
    """Turn an audio clip into text or raise :class:`TranscriptionError`."""

    name: str

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport

    async def transcribe(self, audio: bytes, mime_type: str) -> TranscriptionResult:
        if not audio:
            raise TranscriptionError("Empty audio payload")
        if not self.api_key:
            raise TranscriptionError(f"{self.name} is not configured")

        started = time.monotonic()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                text, language = await self._request(client, audio, mime_type)
        except httpx.HTTPError as exc:
            logger.warning("%s transcription request failed: %s", self.name, exc)
            raise TranscriptionError(f"Transcription failed: {exc}") from exc

        text = (text or "").strip()
        if not text or text == INAUDIBLE:
            raise TranscriptionError("Could not transcribe audio")

        return TranscriptionResult(
            text=text,
            confidence=0.9,
            duration_ms=int((time.monotonic() - started) * 1000),
            language=language,
        )

    @abstractmethod
    async def _request(
        self,
        client: httpx.AsyncClient,
        audio: bytes,
        mime_type: str,
    ) -> tuple[str | None, str | None]:
        """Call the backend and return ``(text, language)``."""


class GeminiTranscriptionAdapter(TranscriptionAdapter):
    name = "google-gemini"

    async def _request(self, client, audio, mime_type):
        payload = {
            "contents": [
                {
                    "parts": [
                        {"inlineData": {"mimeType": mime_type, "data": base64.b64encode(audio).decode("ascii")}},
                        {"text": TRANSCRIBE_PROMPT},
                    ]
                }
            ],
            "generationConfig": {"temperature": 0.1, "maxOutputTokens": 1024},
        }
        response = await client.post(
            f"{GEMINI_API_BASE}/models/{self.model}:generateContent",
            headers={"x-goog-api-key": self.api_key or ""},
            json=payload,
        )
        response.raise_for_status()
        data = response.json()
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
        except (KeyError, IndexError, TypeError):
            text = None
        return text, "en"


class WhisperTranscriptionAdapter(TranscriptionAdapter):
    name = "openai-whisper"

    async def _request(self, client, audio, mime_type):
        extension = mime_type.split("/")[-1].split(";")[0] or "webm"
        response = await client.post(
            f"{OPENAI_API_BASE}/audio/transcriptions",
            headers={"Authorization": f"Bearer {self.api_key}"},
            data={"model": self.model, "response_format": "verbose_json"},
            files={"file": (f"audio.{extension}", audio, mime_type)},
        )
        response.raise_for_status()
        data = response.json()
        return data.get("text"), data.get("language")
