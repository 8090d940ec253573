"""Load a store's product catalogue into the inventory SQLite database.

Expects a JSON array of product records shaped like the demo catalogue:
``sku``, ``name``, ``price``, ``stock``, ``aisle``, optional ``bin``,
``category``, ``tags`` (list), ``attributes`` (object) and ``description``.
"""

from __future__ import annotations

import argparse
import json
import sqlite3
from pathlib import Path

from katzai.inventory.models import InventoryItem
from katzai.inventory.seed import ensure_schema, insert_items


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sync store inventory into SQLite database")
    parser.add_argument(
        "--input-file",
        type=Path,
        required=True,
        help="Path to local JSON file containing product records.",
    )
    parser.add_argument("--store-id", required=True, help="Store identifier the products belong to.")
    parser.add_argument(
        "--database",
        type=Path,
        default=Path("../db/inventory.db"),
        help="Path to the SQLite database that stores inventory.",
    )
    parser.add_argument(
        "--replace",
        action="store_true",
        help="Delete the store's existing products before inserting new records.",
    )
    return parser.parse_args()


def load_products(path: Path) -> list[InventoryItem]:
    if not path.exists():
        raise FileNotFoundError(f"Inventory file not found: {path}")

    with path.open("r", encoding="utf-8") as handle:
        data = json.load(handle)

    if not isinstance(data, list):
        raise ValueError("Expected top-level JSON array of product records")

    return [
        InventoryItem(
            sku=str(record["sku"]),
            name=str(record["name"]),
            price=float(record["price"]),
            stock=int(record.get("stock", 0)),
            aisle=str(record.get("aisle", "")),
            bin=record.get("bin"),
            category=str(record.get("category", "general")),
            description=str(record.get("description", "")),
            tags=tuple(record.get("tags", [])),
            attributes=dict(record.get("attributes", {})),
        )
        for record in data
    ]


def main() -> None:
    args = parse_args()
    products = load_products(args.input_file)

    ensure_schema(args.database)
    if args.replace:
        with sqlite3.connect(args.database) as conn:
            conn.execute("DELETE FROM products WHERE store_id = ?", (args.store_id,))
    count = insert_items(args.database, args.store_id, products)

    print(f"Imported {count} products for {args.store_id} into {args.database}")


if __name__ == "__main__":
    main()
