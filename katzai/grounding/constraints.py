"""Deterministic extraction of shopping constraints from customer text."""

from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any

NO_DAMAGE_PHRASES = (
    "no damage",
    "damage-free",
    "damage free",
    "without damage",
    "without damaging",
    "rental",
    "renting",
    "renter",
    "landlord",
    "apartment",
    "removable",
)

NO_TOOLS_PHRASES = (
    "no tools",
    "no tool",
    "without tools",
    "without a tool",
    "tool-free",
    "tool free",
    "don't have tools",
    "dont have tools",
    "don't own tools",
)

NO_DRILLING_PHRASES = (
    "no drill",
    "no drilling",
    "without drilling",
    "without a drill",
    "without drill",
    "can't drill",
    "cant drill",
    "cannot drill",
    "don't want to drill",
    "dont want to drill",
    "not allowed to drill",
)

SURFACE_ALIASES = {
    "drywall": "drywall",
    "sheetrock": "drywall",
    "gypsum": "drywall",
    "plaster": "plaster",
    "brick": "brick",
    "concrete": "concrete",
    "cement": "concrete",
    "tile": "tile",
    "tiles": "tile",
    "wood": "wood",
    "wooden": "wood",
    "glass": "glass",
    "metal": "metal",
    "steel": "metal",
}


def _surface_pattern(alias: str) -> re.Pattern[str]:
    # Only wording that names the mounting surface counts, never the object being hung.
    word = re.escape(alias)
    return re.compile(
        rf"\b(?:on|onto|into|in)\s+(?:(?:my|the|a|an|our|this|that)\s+)?{word}(?!\w)"
        rf"|(?<!\w){word}\s+(?:walls?|surfaces?)\b"
        rf"|\bwalls?\s+(?:is|are)\s+(?:made\s+of\s+)?(?:an?\s+)?{word}(?!\w)"
    )


SURFACE_PATTERNS = {alias: _surface_pattern(alias) for alias in SURFACE_ALIASES}

WEIGHT_PATTERN = re.compile(r"(\d+(?:\.\d+)?)\s*-?\s*(?:lbs?|pounds?)\b")
PRICE_PATTERN = re.compile(
    r"(?:under|below|less than|cheaper than|no more than|at most|max(?:imum)?|budget(?: is| of)?)"
    r"\s*\$?\s*(\d+(?:\.\d+)?)(?![\d.]|\s*-?\s*(?:lbs?|pounds?)\b)"
)
DOLLAR_BUDGET_PATTERN = re.compile(r"\$\s*(\d+(?:\.\d+)?)\s*(?:budget|or less|max)")


@dataclass(frozen=True, slots=True)
class Constraints:
    """Customer constraints for one turn; ``None`` means unconstrained."""

    no_damage: bool | None = None
    no_tools: bool | None = None
    no_drilling: bool | None = None
    max_weight: float | None = None
    surface_type: str | None = None
    max_price: float | None = None

    @property
    def is_empty(self) -> bool:
        return all(value is None for value in asdict(self).values())

    def to_dict(self) -> dict[str, Any]:
        return {key: value for key, value in asdict(self).items() if value is not None}


class ConstraintExtractor:
    """Keyword and pattern based constraint reader.

    Constraints are derived from a single utterance; callers decide which
    text to feed in. The dialogue layer passes only the latest utterance.
    """

    def extract(self, text: str) -> Constraints:
        message = " ".join(text.lower().split())
        if not message:
            return Constraints()

        return Constraints(
            no_damage=True if _contains_any(message, NO_DAMAGE_PHRASES) else None,
            no_tools=True if _contains_any(message, NO_TOOLS_PHRASES) else None,
            no_drilling=True if _contains_any(message, NO_DRILLING_PHRASES) else None,
            max_weight=self._extract_weight(message),
            surface_type=self._extract_surface(message),
            max_price=self._extract_price(message),
        )

    def _extract_weight(self, message: str) -> float | None:
        weights = [float(match) for match in WEIGHT_PATTERN.findall(message)]
        return max(weights) if weights else None

    def _extract_surface(self, message: str) -> str | None:
        best: tuple[int, str] | None = None
        for alias, surface in SURFACE_ALIASES.items():
            match = SURFACE_PATTERNS[alias].search(message)
            if match and (best is None or match.start() < best[0]):
                best = (match.start(), surface)
        return best[1] if best else None

    def _extract_price(self, message: str) -> float | None:
        match = PRICE_PATTERN.search(message) or DOLLAR_BUDGET_PATTERN.search(message)
        return float(match.group(1)) if match else None


def _contains_any(message: str, phrases: tuple[str, ...]) -> bool:
    return any(phrase in message for phrase in phrases)
