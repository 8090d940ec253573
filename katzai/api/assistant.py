"""HTTP routes for the assistant, inventory and transcription."""

from __future__ import annotations

import base64
import binascii

from fastapi import APIRouter, HTTPException, Request

from katzai.core.auth import Session, SessionVerifier, session_token
from katzai.core.config import Settings
from katzai.core.errors import TranscriptionError
from katzai.core.metrics import MetricsCollector
from katzai.dialogue.models import turns_from_payload
from katzai.grounding.pipeline import RecommendationPipeline
from katzai.inventory.gateway import InventoryGateway
from katzai.providers.transcription import TranscriptionAdapter


def create_assistant_router(
    settings: Settings,
    verifier: SessionVerifier,
    gateway: InventoryGateway,
    pipeline: RecommendationPipeline,
    transcriber: TranscriptionAdapter,
    metrics: MetricsCollector,
) -> APIRouter:
    router = APIRouter(prefix="/api", tags=["assistant"])

    def _session(request: Request) -> Session:
        return verifier.verify(session_token(request, settings))

    @router.post("/assistant")
    async def assistant_endpoint(request: Request) -> dict:
        session = _session(request)

        payload = await _json_object(request)
        question = payload.get("question")
        if not isinstance(question, str) or not question.strip():
            raise HTTPException(status_code=400, detail="Question is required")

        history = turns_from_payload(payload.get("conversationHistory"))
        items = gateway.in_stock_items(session.store_id)
        result = await pipeline.answer(question.strip(), history, items)
        metrics.record_turn("completed")

        output = result.output
        suggestions = output.suggested_questions or (
            [output.followup_question] if output.followup_question else []
        )
        return {
            "response": output.response_text,
            "followupQuestion": output.followup_question,
            "suggestedQuestions": suggestions,
            "mentionedProducts": [product.to_dict() for product in result.mentioned_products],
        }

    @router.get("/inventory")
    async def inventory_endpoint(request: Request) -> dict:
        session = _session(request)
        return {"products": [item.to_dict() for item in gateway.all_items(session.store_id)]}

    @router.post("/transcribe")
    async def transcribe_endpoint(request: Request) -> dict:
        _session(request)

        payload = await _json_object(request)
        audio_b64 = payload.get("audio")
        mime_type = payload.get("mimeType") or "audio/webm"
        if not isinstance(audio_b64, str) or not audio_b64:
            raise HTTPException(status_code=400, detail="audio is required")
        try:
            audio = base64.b64decode(audio_b64, validate=True)
        except (binascii.Error, ValueError):
            raise HTTPException(status_code=400, detail="audio must be base64 encoded")

        try:
            result = await transcriber.transcribe(audio, str(mime_type))
        except TranscriptionError as exc:
            raise HTTPException(status_code=422, detail=str(exc))

        return {
            "text": result.text,
            "confidence": result.confidence,
            "durationMs": result.duration_ms,
            "language": result.language,
        }

    return router


async def _json_object(request: Request) -> dict:
    """Decoded request body, or ``{}`` when it is not a JSON object."""

    try:
        body = await request.json()
    except ValueError:
        return {}
    return body if isinstance(body, dict) else {}
