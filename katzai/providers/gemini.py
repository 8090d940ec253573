"""Google Gemini adapter (generateContent REST API)."""

from __future__ import annotations

from typing import Any

from katzai.grounding.context import AssembledContext

from .base import SYSTEM_PROMPT, LLMAdapter, ProviderRequest, build_user_prompt

GEMINI_API_BASE = "https://generativelanguage.googleapis.com/v1beta"


class GeminiAdapter(LLMAdapter):
    """Gemini with the system prompt in ``systemInstruction`` and JSON mime output."""

    name = "google-gemini"

    def build_request(self, context: AssembledContext) -> ProviderRequest:
        history = [
            {
                "role": "user" if turn.role == "user" else "model",
                "parts": [{"text": turn.content}],
            }
            for turn in context.history
        ]
        payload = {
            "contents": [
                *history,
                {"role": "user", "parts": [{"text": build_user_prompt(context)}]},
            ],
            "systemInstruction": {"parts": [{"text": SYSTEM_PROMPT}]},
            "generationConfig": {
                "temperature": self.temperature,
                "maxOutputTokens": self.max_output_tokens,
                "responseMimeType": "application/json",
            },
        }
        return ProviderRequest(
            url=f"{GEMINI_API_BASE}/models/{self.model}:generateContent",
            headers={"Content-Type": "application/json", "x-goog-api-key": self.api_key or ""},
            payload=payload,
        )

    def extract_text(self, data: Any) -> str | None:
        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            return None
        texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
        text = "".join(texts).strip()
        return text or None
