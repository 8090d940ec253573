"""WebSocket voice session: one Turn Engine and orchestrator per socket."""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from katzai.core.auth import SessionVerifier, session_token
from katzai.core.config import Settings
from katzai.core.errors import AuthenticationError
from katzai.core.metrics import MetricsCollector
from katzai.dialogue.models import TurnResult, TurnStatus
from katzai.dialogue.orchestrator import DialogueOrchestrator
from katzai.grounding.pipeline import RecommendationPipeline
from katzai.inventory.gateway import InventoryGateway
from katzai.voice.bridge import WebSocketCapture, WebSocketSynthesizer
from katzai.voice.turn_engine import CaptureEvent, TurnEngine, TurnEngineState

logger = logging.getLogger("katzai.voice")


class VoiceSession:
    """Glue between socket messages, the Turn Engine and the orchestrator."""

    def __init__(
        self,
        websocket: WebSocket,
        settings: Settings,
        orchestrator: DialogueOrchestrator,
    ) -> None:
        self.websocket = websocket
        self.settings = settings
        self.orchestrator = orchestrator
        self.engine: TurnEngine | None = None
        self._tasks: set[asyncio.Task] = set()
        orchestrator.on_result = self.emit_result

    async def send(self, message: dict[str, Any]) -> None:
        await self.websocket.send_json(message)

    def build_engine(self, *, capture: bool, synthesis: bool) -> TurnEngine:
        settings = self.settings
        engine = TurnEngine(
            WebSocketCapture(self.send) if capture else None,
            WebSocketSynthesizer(self.send) if synthesis else None,
            self.orchestrator.on_utterance,
            silence_threshold_ms=settings.silence_threshold_ms,
            silence_poll_interval_ms=settings.silence_poll_interval_ms,
            restart_backoff_ms=settings.restart_backoff_ms,
            speech_rate=settings.speech_rate,
            speech_pitch=settings.speech_pitch,
            on_state_change=self._on_state_change,
            on_unavailable=self._on_unavailable,
        )
        self.orchestrator.attach_engine(engine)
        return engine

    async def emit_result(self, result: TurnResult) -> None:
        if result.status is TurnStatus.AUTH_REQUIRED:
            await self.send({"type": "auth.redirect", "redirect": result.redirect_to})
            return
        payload: dict[str, Any] = {
            "type": "turn.result",
            "response": result.response,
            "followupQuestion": result.followup_question,
            "suggestedQuestions": result.suggested_questions,
        }
        if self.settings.show_mentioned_products:
            payload["mentionedProducts"] = result.mentioned_products
        await self.send(payload)

    async def dispatch(self, message: dict[str, Any]) -> None:
        kind = message.get("type")

        if kind == "session.start":
            if self.engine is None:
                self.engine = self.build_engine(
                    capture=bool(message.get("capture", True)),
                    synthesis=bool(message.get("synthesis", True)),
                )
            await self.engine.start()
            if not self.engine.voice_available:
                await self._on_unavailable("capture-unsupported")
        elif kind == "text.send":
            self._spawn(self.orchestrator.send(str(message.get("text", ""))))
        elif self.engine is None:
            await self.send({"type": "error", "message": f"{kind} requires session.start"})
        elif kind == "session.stop":
            await self.engine.stop()
        elif kind == "capture.result":
            finals = message.get("finals") or []
            interim = message.get("interim")
            await self.engine.handle_result(
                CaptureEvent(
                    finals=[str(fragment) for fragment in finals if isinstance(fragment, str)],
                    interim=interim if isinstance(interim, str) else None,
                )
            )
            await self.send({"type": "transcript.live", "text": self.engine.live_text})
        elif kind == "capture.end":
            await self.engine.handle_end()
        elif kind == "capture.error":
            await self.engine.handle_error(str(message.get("error", "")))
        elif kind == "speech.end":
            await self.engine.on_speech_end()
        elif kind == "turn.finalize":
            await self.engine.finalize()
        else:
            await self.send({"type": "error", "message": f"Unknown message type: {kind}"})

    async def close(self) -> None:
        if self.engine is not None:
            await self.engine.close()
        for task in list(self._tasks):
            task.cancel()

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _on_state_change(self, previous: TurnEngineState, state: TurnEngineState) -> None:
        await self.send({"type": "state", "state": state.value, "previous": previous.value})

    async def _on_unavailable(self, reason: str) -> None:
        await self.send({"type": "voice.unavailable", "reason": reason})


def create_voice_router(
    settings: Settings,
    verifier: SessionVerifier,
    gateway: InventoryGateway,
    pipeline: RecommendationPipeline,
    metrics: MetricsCollector,
) -> APIRouter:
    router = APIRouter(tags=["voice"])

    @router.websocket("/ws/voice")
    async def voice_socket(websocket: WebSocket) -> None:
        token = session_token(websocket, settings)
        await websocket.accept()
        try:
            verifier.verify(token)
        except AuthenticationError as exc:
            await websocket.send_json({"type": "auth.redirect", "redirect": exc.redirect_to})
            await websocket.close(code=4401)
            return

        orchestrator = DialogueOrchestrator(
            pipeline,
            gateway,
            verifier,
            token,
            history_window=settings.history_window,
            speak_responses=settings.speak_responses,
            metrics=metrics,
        )
        session = VoiceSession(websocket, settings, orchestrator)
        try:
            while True:
                message = await websocket.receive_json()
                if not isinstance(message, dict):
                    await session.send({"type": "error", "message": "Messages must be JSON objects"})
                    continue
                await session.dispatch(message)
        except WebSocketDisconnect:
            logger.info("Voice session disconnected")
        finally:
            await session.close()

    return router
