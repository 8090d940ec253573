"""OpenAI-compatible chat completions adapter (OpenAI and OpenRouter)."""

from __future__ import annotations

from typing import Any

import httpx

from katzai.grounding.context import AssembledContext

from .base import SYSTEM_PROMPT, LLMAdapter, ProviderRequest, build_user_prompt

OPENAI_API_BASE = "https://api.openai.com/v1"
OPENROUTER_API_BASE = "https://openrouter.ai/api/v1"


class OpenAICompatibleAdapter(LLMAdapter):
    """Chat completions with a leading system message and JSON response format."""

    name = "openai"

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        base_url: str = OPENAI_API_BASE,
        extra_headers: dict[str, str] | None = None,
        name: str | None = None,
        timeout: float = 30.0,
        temperature: float = 0.7,
        max_output_tokens: int = 2048,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            api_key=api_key,
            model=model,
            timeout=timeout,
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            transport=transport,
        )
        self.base_url = base_url.rstrip("/")
        self.extra_headers = dict(extra_headers or {})
        if name:
            self.name = name

    def build_request(self, context: AssembledContext) -> ProviderRequest:
        messages = [{"role": "system", "content": SYSTEM_PROMPT}]
        messages.extend({"role": turn.role, "content": turn.content} for turn in context.history)
        messages.append({"role": "user", "content": build_user_prompt(context)})

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            **self.extra_headers,
        }
        payload = {
            "model": self.model,
            "messages": messages,
            "temperature": self.temperature,
            "max_tokens": self.max_output_tokens,
            "response_format": {"type": "json_object"},
        }
        return ProviderRequest(url=f"{self.base_url}/chat/completions", headers=headers, payload=payload)

    def extract_text(self, data: Any) -> str | None:
        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            return None
        if not isinstance(content, str):
            return None
        return content.strip() or None
