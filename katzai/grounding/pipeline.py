"""Assemble → generate → validate for a single turn."""

from __future__ import annotations

import logging
from typing import Sequence

from katzai.core.metrics import MetricsCollector
from katzai.dialogue.models import ConversationTurn
from katzai.inventory.models import InventoryItem
from katzai.providers.base import LLMAdapter, is_fallback

from .constraints import ConstraintExtractor
from .context import ContextAssembler, StorePolicy
from .validator import ResponseValidator, ValidatedResponse

logger = logging.getLogger("katzai.grounding")


class RecommendationPipeline:
    """Shared, stateless grounded-answer pipeline."""

    def __init__(
        self,
        adapter: LLMAdapter,
        policy: StorePolicy,
        *,
        history_window: int = 6,
        extractor: ConstraintExtractor | None = None,
        validator: ResponseValidator | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self.adapter = adapter
        self.policy = policy
        self.extractor = extractor or ConstraintExtractor()
        self.assembler = ContextAssembler(history_window=history_window)
        self.validator = validator or ResponseValidator()
        self.metrics = metrics

    async def answer(
        self,
        question: str,
        history: Sequence[ConversationTurn],
        items: Sequence[InventoryItem],
    ) -> ValidatedResponse:
        constraints = self.extractor.extract(question)
        context = self.assembler.assemble(question, history, items, self.policy, constraints)
        logger.debug(
            "Assembled context: %d candidates, constraints=%s",
            len(context.candidate_items),
            constraints.to_dict(),
        )

        output = await self.adapter.generate(context)
        result = self.validator.validate(output, context)

        if self.metrics is not None:
            if is_fallback(output):
                self.metrics.record_fallback()
            self.metrics.record_grounding_drops(len(result.dropped_skus))
        return result
