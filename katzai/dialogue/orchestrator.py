"""Sequence one full dialogue turn for a single conversation."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

from katzai.core.auth import SessionVerifier
from katzai.core.errors import AuthenticationError
from katzai.core.metrics import MetricsCollector
from katzai.grounding.pipeline import RecommendationPipeline
from katzai.grounding.validator import ValidatedResponse
from katzai.inventory.gateway import InventoryGateway
from katzai.providers.base import fallback_output
from katzai.voice.speech import speech_text
from katzai.voice.turn_engine import TurnEngine

from .models import Conversation, TurnResult, TurnStatus

logger = logging.getLogger("katzai.dialogue")


class DialogueOrchestrator:
    """Capture → send → await model → render → speak → re-arm.

    At most one model call is in flight; a send while ``busy`` is a no-op.
    """

    def __init__(
        self,
        pipeline: RecommendationPipeline,
        gateway: InventoryGateway,
        verifier: SessionVerifier,
        token: str | None,
        *,
        engine: TurnEngine | None = None,
        history_window: int = 6,
        speak_responses: bool = True,
        metrics: MetricsCollector | None = None,
        on_result: Callable[[TurnResult], Awaitable[None]] | None = None,
    ) -> None:
        self.pipeline = pipeline
        self.gateway = gateway
        self.verifier = verifier
        self.token = token
        self.engine = engine
        self.history_window = history_window
        self.speak_responses = speak_responses
        self.metrics = metrics
        self.on_result = on_result

        self.conversation = Conversation()
        self.suggested_questions: list[str] = []
        self.busy = False

    def attach_engine(self, engine: TurnEngine) -> None:
        self.engine = engine

    async def on_utterance(self, text: str) -> None:
        result = await self.send(text, voice=True)
        if result.status is TurnStatus.IGNORED and self.engine is not None:
            # The engine already handed off; without a re-arm it would sit idle.
            logger.info("Spoken utterance dropped while a turn was in flight; listening again")
            await self.engine.start()

    async def send(self, text: str, *, voice: bool = False) -> TurnResult:
        text = (text or "").strip()
        if not text or self.busy:
            logger.debug("Send ignored (empty=%s busy=%s)", not text, self.busy)
            return TurnResult(status=TurnStatus.IGNORED)

        self.busy = True
        try:
            try:
                session = self.verifier.verify(self.token)
            except AuthenticationError as exc:
                logger.info("Session rejected mid-conversation; redirecting to %s", exc.redirect_to)
                if self.engine is not None:
                    await self.engine.stop()
                self._record("auth_required")
                result = TurnResult(status=TurnStatus.AUTH_REQUIRED, redirect_to=exc.redirect_to)
                await self._emit(result)
                return result

            history = self.conversation.window(self.history_window)
            self.conversation.append("user", text)
            validated = await self._answer(text, history, session.store_id)

            output = validated.output
            self.conversation.append("assistant", output.response_text)
            if output.suggested_questions:
                self.suggested_questions = list(output.suggested_questions)
            elif output.followup_question:
                self.suggested_questions = [output.followup_question]
            else:
                self.suggested_questions = []

            result = TurnResult(
                status=TurnStatus.COMPLETED,
                response=output.response_text,
                followup_question=output.followup_question,
                suggested_questions=list(self.suggested_questions),
                mentioned_products=[product.to_dict() for product in validated.mentioned_products],
            )
            self._record("completed")
        finally:
            self.busy = False

        await self._emit(result)
        await self._after_turn(result, voice=voice)
        return result

    async def _emit(self, result: TurnResult) -> None:
        if self.on_result is None:
            return
        try:
            await self.on_result(result)
        except Exception:  # noqa: BLE001
            logger.exception("Turn result listener failed")

    async def _answer(self, text: str, history, store_id: str) -> ValidatedResponse:
        try:
            items = self.gateway.in_stock_items(store_id)
            return await self.pipeline.answer(text, history, items)
        except Exception:  # noqa: BLE001
            logger.exception("Turn failed before a model answer was available")
            return ValidatedResponse(output=fallback_output())

    async def _after_turn(self, result: TurnResult, *, voice: bool) -> None:
        if self.engine is None:
            return
        spoke = False
        if self.speak_responses:
            spoke = await self.engine.speak(speech_text(result.response), listen_after=voice)
        if voice and not spoke:
            await self.engine.start()

    def _record(self, outcome: str) -> None:
        if self.metrics is not None:
            self.metrics.record_turn(outcome)
