"""Provider adapter exports and factories.

Backend selection happens here and nowhere else.
"""

from __future__ import annotations

import logging

import httpx

from katzai.core.config import Settings

from .anthropic import AnthropicAdapter
from .base import LLMAdapter, ModelOutput, fallback_output
from .gemini import GeminiAdapter
from .openai import OPENROUTER_API_BASE, OpenAICompatibleAdapter
from .transcription import (
    GeminiTranscriptionAdapter,
    TranscriptionAdapter,
    TranscriptionResult,
    WhisperTranscriptionAdapter,
)

logger = logging.getLogger("katzai.providers")

__all__ = [
    "AnthropicAdapter",
    "GeminiAdapter",
    "GeminiTranscriptionAdapter",
    "LLMAdapter",
    "ModelOutput",
    "OpenAICompatibleAdapter",
    "TranscriptionAdapter",
    "TranscriptionResult",
    "WhisperTranscriptionAdapter",
    "create_llm_adapter",
    "create_transcription_adapter",
    "fallback_output",
]


def create_llm_adapter(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> LLMAdapter:
    """Build the configured language-model adapter; call once per process."""

    common = {
        "timeout": settings.llm_timeout_seconds,
        "temperature": settings.llm_temperature,
        "max_output_tokens": settings.llm_max_output_tokens,
        "transport": transport,
    }
    provider = settings.llm_provider
    if provider == "gemini":
        adapter: LLMAdapter = GeminiAdapter(
            api_key=settings.gemini_api_key, model=settings.gemini_model, **common
        )
    elif provider == "anthropic":
        adapter = AnthropicAdapter(
            api_key=settings.anthropic_api_key, model=settings.anthropic_model, **common
        )
    elif provider == "openai":
        adapter = OpenAICompatibleAdapter(
            api_key=settings.openai_api_key, model=settings.openai_model, **common
        )
    elif provider == "openrouter":
        headers = {}
        if settings.openrouter_referer:
            headers["HTTP-Referer"] = settings.openrouter_referer
        if settings.openrouter_title:
            headers["X-Title"] = settings.openrouter_title
        adapter = OpenAICompatibleAdapter(
            api_key=settings.openrouter_api_key,
            model=settings.openrouter_model,
            base_url=OPENROUTER_API_BASE,
            extra_headers=headers,
            name="openrouter",
            **common,
        )
    else:
        raise ValueError(f"Unknown LLM provider: {provider}")

    if not adapter.api_key:
        logger.warning("LLM provider %s has no API key; answers will use the fallback", provider)
    logger.info("LLM adapter initialized: %s", adapter.describe())
    return adapter


def create_transcription_adapter(
    settings: Settings,
    transport: httpx.AsyncBaseTransport | None = None,
) -> TranscriptionAdapter:
    provider = settings.transcription_provider
    if provider == "gemini":
        adapter: TranscriptionAdapter = GeminiTranscriptionAdapter(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.llm_timeout_seconds,
            transport=transport,
        )
    elif provider == "whisper":
        adapter = WhisperTranscriptionAdapter(
            api_key=settings.openai_api_key,
            model=settings.whisper_model,
            timeout=settings.llm_timeout_seconds,
            transport=transport,
        )
    else:
        raise ValueError(f"Unknown transcription provider: {provider}")

    logger.info("Transcription adapter initialized: %s", adapter.name)
    return adapter
