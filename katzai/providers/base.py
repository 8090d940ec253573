"""Provider adapter interface, prompt construction and output parsing."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

import httpx

from katzai.grounding.context import AssembledContext

logger = logging.getLogger("katzai.providers")

DEFAULT_RESPONSE_TEXT = "I'm sorry, I couldn't process that request."
FALLBACK_RESPONSE_TEXT = (
    "I apologize, but I'm having trouble processing your request right now. "
    "Could you please try again or rephrase your question?"
)
FALLBACK_FOLLOWUP = "What product are you looking for today?"

SYSTEM_PROMPT = """You are KatzAI, a helpful in-store assistant for a hardware retailer.
You help store employees answer customer questions about products.

Rules:
- Only recommend products whose SKU appears in the ALLOWED SKUs list you are given.
- Never invent SKUs, prices, stock levels or locations.
- Always mention where an item is located (aisle and bin).
- Respect customer constraints first, then store policies.
- If nothing fits, recommend nothing, say so honestly and ask a clarifying question.
- Keep answers short enough to be read aloud.
- Respond with a single JSON object and nothing else."""

RESPONSE_SCHEMA = """{
  "response_text": "Your helpful response here",
  "recommended_skus": ["SKU1", "SKU2"],
  "product_reasons": { "SKU1": "reason", "SKU2": "reason" },
  "followup_question": "optional question",
  "suggested_questions": ["optional next question"]
}"""


@dataclass(slots=True)
class ModelOutput:
    """Normalised provider answer."""

    response_text: str
    recommended_skus: list[str] = field(default_factory=list)
    product_reasons: dict[str, str] = field(default_factory=dict)
    followup_question: str | None = None
    suggested_questions: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "response_text": self.response_text,
            "recommended_skus": list(self.recommended_skus),
            "product_reasons": dict(self.product_reasons),
            "followup_question": self.followup_question,
            "suggested_questions": list(self.suggested_questions),
        }


@dataclass(frozen=True, slots=True)
class ProviderRequest:
    url: str
    headers: Mapping[str, str]
    payload: Mapping[str, Any]


class ProviderResponseError(Exception):
    """Backend answered but without usable content."""


class LLMAdapter(ABC):
    """Generate a grounded answer from an assembled context.

    Instances hold only configuration and are safe to share between
    concurrent conversations.
    """

    name: str

    def __init__(
        self,
        *,
        api_key: str | None,
        model: str,
        timeout: float = 30.0,
        temperature: float = 0.7,
        max_output_tokens: int = 2048,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.temperature = temperature
        self.max_output_tokens = max_output_tokens
        self._transport = transport

    @abstractmethod
    def build_request(self, context: AssembledContext) -> ProviderRequest:
        """Return the backend-specific HTTP request for ``context``."""

    @abstractmethod
    def extract_text(self, data: Any) -> str | None:
        """Pull the generated text out of a decoded backend response."""

    def describe(self) -> str:
        return f"{self.name} ({self.model})"

    async def generate(self, context: AssembledContext) -> ModelOutput:
        """Return a well-formed :class:`ModelOutput`; never raises."""

        if not self.api_key:
            logger.warning("%s has no API key configured; returning fallback", self.name)
            return fallback_output()

        try:
            request = self.build_request(context)
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    request.url,
                    headers=dict(request.headers),
                    json=dict(request.payload),
                )
                response.raise_for_status()
                data = response.json()

            text = self.extract_text(data)
            if not text:
                raise ProviderResponseError(f"No text response from {self.name}")

            parsed = extract_json_object(text)
            if parsed is None:
                raise ProviderResponseError("No JSON found in response")

            return normalize_output(parsed)
        except Exception as exc:  # noqa: BLE001
            logger.exception("%s generation failed", self.name, extra={"error": str(exc)})
            return fallback_output()


def build_user_prompt(context: AssembledContext) -> str:
    skus = ", ".join(context.allowed_sku_list)
    return f"""{context.inventory_text}

{context.policy_text}

{context.constraint_text}

CUSTOMER QUESTION:
"{context.transcript}"

Remember: You can ONLY recommend SKUs from this list: [{skus}]
Do not recommend items marked as failing customer constraints.
If no products match, set recommended_skus=[] and explain why.

Respond with valid JSON only in this format:
{RESPONSE_SCHEMA}"""


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Return the first well-formed JSON object embedded in ``text``."""

    decoder = json.JSONDecoder()
    index = text.find("{")
    while index != -1:
        try:
            value, _ = decoder.raw_decode(text, index)
        except json.JSONDecodeError:
            pass
        else:
            if isinstance(value, dict):
                return value
        index = text.find("{", index + 1)
    return None


def normalize_output(raw: Mapping[str, Any]) -> ModelOutput:
    """Coerce every field of a decoded model answer to its expected shape."""

    response_text = raw.get("response_text")
    if not isinstance(response_text, str) or not response_text.strip():
        response_text = DEFAULT_RESPONSE_TEXT

    skus = raw.get("recommended_skus")
    recommended = (
        [sku.strip() for sku in skus if isinstance(sku, str) and sku.strip()]
        if isinstance(skus, list)
        else []
    )

    reasons_raw = raw.get("product_reasons")
    reasons = (
        {key: value for key, value in reasons_raw.items() if isinstance(key, str) and isinstance(value, str)}
        if isinstance(reasons_raw, dict)
        else {}
    )

    followup = raw.get("followup_question")
    if not isinstance(followup, str) or not followup.strip():
        followup = None

    suggestions_raw = raw.get("suggested_questions")
    suggestions = (
        [entry.strip() for entry in suggestions_raw if isinstance(entry, str) and entry.strip()]
        if isinstance(suggestions_raw, list)
        else []
    )

    return ModelOutput(
        response_text=response_text.strip(),
        recommended_skus=recommended,
        product_reasons=reasons,
        followup_question=followup.strip() if followup else None,
        suggested_questions=suggestions,
    )


def fallback_output() -> ModelOutput:
    return ModelOutput(
        response_text=FALLBACK_RESPONSE_TEXT,
        recommended_skus=[],
        product_reasons={},
        followup_question=FALLBACK_FOLLOWUP,
        suggested_questions=[],
    )


def is_fallback(output: ModelOutput) -> bool:
    return output.response_text == FALLBACK_RESPONSE_TEXT and not output.recommended_skus
