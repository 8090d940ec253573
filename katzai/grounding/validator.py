"""Post-generation grounding checks."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from katzai.providers.base import ModelOutput

from .context import AssembledContext

logger = logging.getLogger("katzai.grounding")


@dataclass(slots=True)
class MentionedProduct:
    sku: str
    name: str
    price: float
    stock: int
    location: str
    aisle: str
    bin: str | None
    reason: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
            "location": self.location,
            "aisle": self.aisle,
            "bin": self.bin,
            "reason": self.reason,
        }


@dataclass(slots=True)
class ValidatedResponse:
    output: ModelOutput
    mentioned_products: list[MentionedProduct] = field(default_factory=list)
    dropped_skus: list[str] = field(default_factory=list)


class ResponseValidator:
    """Keep only recommendations that exist in this turn's allowed set.

    SKUs outside ``allowed_skus``, or inside it but provably failing the
    customer's constraints, are removed along with their reasons. An empty
    result is valid.
    """

    def validate(self, output: ModelOutput, context: AssembledContext) -> ValidatedResponse:
        kept: list[str] = []
        dropped: list[str] = []
        for sku in output.recommended_skus:
            if sku in kept:
                continue
            if sku in context.allowed_skus and sku in context.eligible_skus:
                kept.append(sku)
            else:
                dropped.append(sku)

        if dropped:
            logger.info(
                "Dropped %d ungrounded SKU(s): %s",
                len(dropped),
                ", ".join(dropped),
            )

        reasons = {sku: reason for sku, reason in output.product_reasons.items() if sku in kept}
        validated = ModelOutput(
            response_text=output.response_text,
            recommended_skus=kept,
            product_reasons=reasons,
            followup_question=output.followup_question,
            suggested_questions=list(output.suggested_questions),
        )

        mentioned: list[MentionedProduct] = []
        for sku in kept:
            item = context.item_for(sku)
            if item is None:
                continue
            mentioned.append(
                MentionedProduct(
                    sku=item.sku,
                    name=item.name,
                    price=item.price,
                    stock=item.stock,
                    location=item.location,
                    aisle=item.aisle,
                    bin=item.bin,
                    reason=reasons.get(sku),
                )
            )

        return ValidatedResponse(output=validated, mentioned_products=mentioned, dropped_skus=dropped)
