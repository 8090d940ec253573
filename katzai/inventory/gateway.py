"""Read-only inventory access by store identity."""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterable, Iterator, Sequence

from .models import InventoryItem

logger = logging.getLogger("katzai.inventory")


class InventoryGateway(ABC):
    """Abstract interface for querying a store's inventory."""

    @abstractmethod
    def in_stock_items(self, store_id: str) -> Sequence[InventoryItem]:
        """Return items with positive stock for ``store_id``."""

    @abstractmethod
    def all_items(self, store_id: str) -> Sequence[InventoryItem]:
        """Return every item for ``store_id`` ordered by name."""


class StaticInventoryGateway(InventoryGateway):
    """In-memory gateway keyed by store, handy for tests and demos."""

    def __init__(self, items_by_store: dict[str, Iterable[InventoryItem]]) -> None:
        self._items = {store: list(items) for store, items in items_by_store.items()}

    def in_stock_items(self, store_id: str) -> Sequence[InventoryItem]:
        return [item for item in self._items.get(store_id, []) if item.in_stock]

    def all_items(self, store_id: str) -> Sequence[InventoryItem]:
        return sorted(self._items.get(store_id, []), key=lambda item: item.name)


class SQLiteInventoryGateway(InventoryGateway):
    """SQLite-backed gateway over the ``products`` table."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = Path(db_path)

    @contextmanager
    def _connection(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def is_ready(self) -> bool:
        if not self.db_path.exists():
            return False
        with self._connection() as conn:
            row = conn.execute(
                "SELECT name FROM sqlite_master WHERE type='table' AND name='products'"
            ).fetchone()
            if row is None:
                return False
            conn.execute("SELECT 1 FROM products LIMIT 1")
        return True

    def in_stock_items(self, store_id: str) -> Sequence[InventoryItem]:
        return self._query(
            "SELECT * FROM products WHERE store_id = ? AND stock > 0 ORDER BY sku",
            (store_id,),
        )

    def all_items(self, store_id: str) -> Sequence[InventoryItem]:
        return self._query(
            "SELECT * FROM products WHERE store_id = ? ORDER BY name ASC",
            (store_id,),
        )

    def _query(self, sql: str, params: tuple[Any, ...]) -> list[InventoryItem]:
        if not self.db_path.exists():
            logger.warning("Inventory database missing at %s", self.db_path)
            return []
        with self._connection() as conn:
            rows = conn.execute(sql, params).fetchall()
        return [row_to_item(row) for row in rows]


def row_to_item(row: sqlite3.Row) -> InventoryItem:
    return InventoryItem(
        sku=row["sku"],
        name=row["name"],
        price=float(row["price"]),
        stock=int(row["stock"]),
        aisle=row["aisle"],
        bin=row["bin"],
        category=row["category"],
        description=row["description"] or "",
        tags=tuple(_json_list(row["tags"])),
        attributes=_json_dict(row["attributes"]),
    )


def _json_list(value: str | None) -> list[str]:
    if not value:
        return []
    try:
        data = json.loads(value)
    except json.JSONDecodeError:
        return []
    return [str(entry) for entry in data] if isinstance(data, list) else []


def _json_dict(value: str | None) -> dict[str, Any]:
    if not value:
        return {}
    try:
        data = json.loads(value)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}
