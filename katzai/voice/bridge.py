"""WebSocket-backed capture and synthesis ports.

The browser owns the microphone and the speech synthesizer; the server owns
the turn-taking logic. These classes translate engine calls into JSON
messages on the voice socket.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable

from .turn_engine import CaptureBackend, SpeechSynthesizer

logger = logging.getLogger("katzai.voice")

SendJson = Callable[[dict[str, Any]], Awaitable[None]]


class WebSocketCapture(CaptureBackend):
    def __init__(self, send: SendJson) -> None:
        self._send = send

    async def start(self) -> None:
        await self._send({"type": "capture.start"})

    async def stop(self) -> None:
        await self._send({"type": "capture.stop"})


class WebSocketSynthesizer(SpeechSynthesizer):
    def __init__(self, send: SendJson) -> None:
        self._send = send

    async def speak(self, text: str, *, rate: float, pitch: float) -> None:
        await self._send({"type": "speech.speak", "text": text, "rate": rate, "pitch": pitch})

    async def cancel(self) -> None:
        await self._send({"type": "speech.cancel"})
