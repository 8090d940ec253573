"""Lightweight in-memory metrics collector."""

from __future__ import annotations

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Dict


@dataclass
class MetricSnapshot:
    total_turns: int
    turn_outcomes: Dict[str, int]
    provider_fallbacks: int
    grounding_drops: int


class MetricsCollector:
    """Thread-safe counter storage for basic service metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total_turns = 0
        self._outcomes: Counter[str] = Counter()
        self._provider_fallbacks = 0
        self._grounding_drops = 0

    def record_turn(self, outcome: str) -> None:
        with self._lock:
            self._total_turns += 1
            self._outcomes[outcome] += 1

    def record_fallback(self) -> None:
        with self._lock:
            self._provider_fallbacks += 1

    def record_grounding_drops(self, count: int) -> None:
        if count <= 0:
            return
        with self._lock:
            self._grounding_drops += count

    def snapshot(self) -> MetricSnapshot:
        with self._lock:
            return MetricSnapshot(
                total_turns=self._total_turns,
                turn_outcomes=dict(self._outcomes),
                provider_fallbacks=self._provider_fallbacks,
                grounding_drops=self._grounding_drops,
            )
