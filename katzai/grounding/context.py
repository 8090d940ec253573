"""Assemble the grounded prompt context for one turn.

Everything here is a pure function of ``(transcript, history, items, policy,
constraints)``: the same inputs always render the same text, and the model
only ever sees the items passed in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Mapping, Sequence

from katzai.dialogue.models import ConversationTurn
from katzai.inventory.models import InventoryItem

from .constraints import Constraints


@dataclass(frozen=True, slots=True)
class StorePolicy:
    """Store-level recommendation defaults."""

    prefer_no_damage: bool = True
    prefer_no_tools: bool = True
    suggest_drilling_first: bool = False
    safety_disclaimers: bool = True
    custom_instructions: str | None = None


@dataclass(frozen=True, slots=True)
class AssembledContext:
    """Inputs handed to a provider adapter, plus what validation needs."""

    transcript: str
    history: tuple[ConversationTurn, ...]
    candidate_items: tuple[InventoryItem, ...]
    allowed_skus: frozenset[str]
    eligible_skus: frozenset[str]
    violations: Mapping[str, tuple[str, ...]]
    inventory_text: str
    policy_text: str
    constraint_text: str
    constraints: Constraints = field(default_factory=Constraints)
    policy: StorePolicy = field(default_factory=StorePolicy)

    @property
    def allowed_sku_list(self) -> list[str]:
        return [item.sku for item in self.candidate_items]

    def item_for(self, sku: str) -> InventoryItem | None:
        for item in self.candidate_items:
            if item.sku == sku:
                return item
        return None


class ContextAssembler:
    """Merge inventory, store policy and customer constraints."""

    def __init__(self, history_window: int = 6) -> None:
        self.history_window = history_window

    def assemble(
        self,
        transcript: str,
        history: Sequence[ConversationTurn],
        items: Iterable[InventoryItem],
        policy: StorePolicy,
        constraints: Constraints,
    ) -> AssembledContext:
        candidates = _unique_in_stock(items)
        violations = {item.sku: violations_for(item, constraints) for item in candidates}
        violations = {sku: reasons for sku, reasons in violations.items() if reasons}
        allowed = frozenset(item.sku for item in candidates)
        window = tuple(history[-self.history_window:]) if self.history_window > 0 else ()

        return AssembledContext(
            transcript=transcript.strip(),
            history=window,
            candidate_items=candidates,
            allowed_skus=allowed,
            eligible_skus=frozenset(sku for sku in allowed if sku not in violations),
            violations=violations,
            inventory_text=render_inventory(candidates, violations),
            policy_text=render_policy(policy),
            constraint_text=render_constraints(constraints),
            constraints=constraints,
            policy=policy,
        )


def violations_for(item: InventoryItem, constraints: Constraints) -> tuple[str, ...]:
    """Return reasons ``item`` provably fails ``constraints``.

    Unknown attributes never count as a violation.
    """

    reasons: list[str] = []
    capacity = item.weight_capacity_lbs
    if constraints.max_weight is not None and capacity is not None and capacity < constraints.max_weight:
        reasons.append(f"holds {capacity:g} lbs, needs {constraints.max_weight:g} lbs")
    if constraints.max_price is not None and item.price > constraints.max_price:
        reasons.append(f"costs ${item.price:.2f}, budget ${constraints.max_price:.2f}")
    if constraints.no_drilling and item.requires_drill:
        reasons.append("requires drilling")
    if constraints.no_tools and item.requires_drill:
        reasons.append("requires a drill")
    surfaces = item.surface_types
    if constraints.surface_type and surfaces and constraints.surface_type not in surfaces:
        reasons.append(f"not rated for {constraints.surface_type}")
    return tuple(reasons)


def render_inventory(
    items: Sequence[InventoryItem],
    violations: Mapping[str, tuple[str, ...]] | None = None,
) -> str:
    if not items:
        return "AVAILABLE INVENTORY: No matching products found in inventory."

    violations = violations or {}
    records = []
    for item in items:
        capacity = item.weight_capacity_lbs
        surfaces = ", ".join(item.surface_types) or "various"
        drill = item.requires_drill
        lines = [
            f"- SKU: {item.sku}",
            f"  Name: {item.name}",
            f"  Price: ${item.price:.2f}",
            f"  Stock: {item.stock} units",
            f"  Location: {item.location}",
            f"  Category: {item.category}",
            f"  Tags: {', '.join(item.tags) or 'none'}",
            f"  Weight Capacity: {f'{capacity:g} lbs' if capacity is not None else 'N/A'}",
            f"  Surfaces: {surfaces}",
            f"  Requires Drill: {'Unknown' if drill is None else ('Yes' if drill else 'No')}",
            f"  Description: {item.description}",
        ]
        reasons = violations.get(item.sku)
        if reasons:
            lines.append(f"  Fails customer constraints: {'; '.join(reasons)}")
        records.append("\n".join(lines))

    skus = ", ".join(item.sku for item in items)
    return (
        "AVAILABLE INVENTORY (ONLY recommend from this list):\n"
        f"ALLOWED SKUs: [{skus}]\n\n" + "\n\n".join(records)
    )


def render_policy(policy: StorePolicy) -> str:
    policies: list[str] = []
    if policy.prefer_no_damage:
        policies.append("- Prefer damage-free/rental-friendly options")
    if policy.prefer_no_tools:
        policies.append("- Prefer no-tools-required options")
    if not policy.suggest_drilling_first:
        policies.append("- Only suggest drilling as a last resort")
    if policy.safety_disclaimers:
        policies.append("- Include safety disclaimers for electrical/plumbing tasks")
    if policy.custom_instructions:
        policies.append(f"- {policy.custom_instructions.strip()}")

    if not policies:
        return "STORE POLICIES: Standard recommendations."
    return "STORE POLICIES:\n" + "\n".join(policies)


def render_constraints(constraints: Constraints) -> str:
    lines: list[str] = []
    if constraints.no_damage:
        lines.append("- Customer wants NO DAMAGE / rental-friendly options")
    if constraints.no_tools:
        lines.append("- Customer wants NO TOOLS required")
    if constraints.no_drilling:
        lines.append("- Customer wants NO DRILLING")
    if constraints.max_weight is not None:
        lines.append(f"- Item weight capacity must support at least {constraints.max_weight:g} lbs")
    if constraints.surface_type:
        lines.append(f"- Must work on: {constraints.surface_type}")
    if constraints.max_price is not None:
        lines.append(f"- Budget: Under ${constraints.max_price:.2f}")

    if not lines:
        return "CUSTOMER CONSTRAINTS: None specified."
    return "CUSTOMER CONSTRAINTS:\n" + "\n".join(lines)


def _unique_in_stock(items: Iterable[InventoryItem]) -> tuple[InventoryItem, ...]:
    seen: set[str] = set()
    unique: list[InventoryItem] = []
    for item in items:
        if not item.in_stock or item.sku in seen:
            continue
        seen.add(item.sku)
        unique.append(item)
    return tuple(unique)
