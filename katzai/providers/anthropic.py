"""Anthropic Messages API adapter."""

from __future__ import annotations

from typing import Any

from katzai.grounding.context import AssembledContext

from .base import SYSTEM_PROMPT, LLMAdapter, ProviderRequest, build_user_prompt

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"


class AnthropicAdapter(LLMAdapter):
    """Anthropic with a top-level ``system`` field and alternating roles."""

    name = "anthropic"

    def build_request(self, context: AssembledContext) -> ProviderRequest:
        messages: list[dict[str, str]] = []
        for turn in context.history:
            # The Messages API wants a user turn first and strict alternation.
            if not messages and turn.role != "user":
                continue
            if messages and messages[-1]["role"] == turn.role:
                messages[-1]["content"] += "\n\n" + turn.content
                continue
            messages.append({"role": turn.role, "content": turn.content})

        prompt = build_user_prompt(context)
        if messages and messages[-1]["role"] == "user":
            messages[-1]["content"] += "\n\n" + prompt
        else:
            messages.append({"role": "user", "content": prompt})

        payload = {
            "model": self.model,
            "max_tokens": self.max_output_tokens,
            "temperature": min(self.temperature, 1.0),
            "system": SYSTEM_PROMPT,
            "messages": messages,
        }
        return ProviderRequest(
            url=ANTHROPIC_MESSAGES_URL,
            headers={
                "Content-Type": "application/json",
                "x-api-key": self.api_key or "",
                "anthropic-version": ANTHROPIC_VERSION,
            },
            payload=payload,
        )

    def extract_text(self, data: Any) -> str | None:
        if not isinstance(data, dict):
            return None
        blocks = data.get("content")
        if not isinstance(blocks, list):
            return None
        text = "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        ).strip()
        return text or None
