"""Dataclasses representing store inventory."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True, slots=True)
class InventoryItem:
    """Single stocked product as returned by the inventory gateway."""

    sku: str
    name: str
    price: float
    stock: int
    aisle: str
    category: str
    description: str = ""
    bin: str | None = None
    tags: tuple[str, ...] = ()
    attributes: Mapping[str, Any] = field(default_factory=dict)

    @property
    def location(self) -> str:
        if self.bin:
            return f"Aisle {self.aisle}, Bin {self.bin}"
        return f"Aisle {self.aisle}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "sku": self.sku,
            "name": self.name,
            "price": self.price,
            "stock": self.stock,
            "aisle": self.aisle,
            "bin": self.bin,
            "category": self.category,
            "tags": list(self.tags),
            "attributes": dict(self.attributes),
            "description": self.description,
        }

    @property
    def in_stock(self) -> bool:
        return self.stock > 0

    @property
    def weight_capacity_lbs(self) -> float | None:
        value = self.attributes.get("weight_capacity_lbs")
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)

    @property
    def requires_drill(self) -> bool | None:
        value = self.attributes.get("requires_drill")
        if isinstance(value, bool):
            return value
        if "drilling-required" in self.tags:
            return True
        return None

    @property
    def surface_types(self) -> tuple[str, ...]:
        value = self.attributes.get("surface_types")
        if isinstance(value, (list, tuple)):
            return tuple(str(surface) for surface in value)
        return ()
