"""Schema creation and demo catalogue seeding for the inventory DB.

If the ``products`` table is empty, the demo hardware store catalogue is
inserted so the assistant has something to recommend on a fresh install.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Iterable

from .models import InventoryItem

logger = logging.getLogger("katzai.init")

DEMO_STORE_ID = "demo-store"

SCHEMA = """
CREATE TABLE IF NOT EXISTS products (
    store_id TEXT NOT NULL,
    sku TEXT NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    category TEXT NOT NULL,
    price REAL NOT NULL,
    stock INTEGER NOT NULL DEFAULT 0,
    aisle TEXT NOT NULL,
    bin TEXT,
    tags TEXT,
    attributes TEXT,
    PRIMARY KEY (store_id, sku)
);

CREATE INDEX IF NOT EXISTS idx_products_store_stock
    ON products (store_id, stock);
"""

DEMO_CATALOGUE: tuple[InventoryItem, ...] = (
    InventoryItem(
        sku="CMD-STRIPS-LG",
        name="Command Large Picture Hanging Strips (8-Pack)",
        description="Heavy duty damage-free strips. Holds up to 16 lbs.",
        category="hanging",
        price=12.99,
        stock=38,
        aisle="A3",
        bin="13",
        tags=("no-damage", "rental-friendly", "no-tools"),
        attributes={"weight_capacity_lbs": 16, "removable": True, "requires_drill": False},
    ),
    InventoryItem(
        sku="MONKEY-HOOK-10",
        name="Monkey Hooks Picture Hangers (10-Pack)",
        description="Push into drywall. Holds up to 35 lbs. Leaves tiny hole.",
        category="hanging",
        price=9.99,
        stock=25,
        aisle="A3",
        bin="14",
        tags=("no-tools", "minimal-damage", "drywall-only"),
        attributes={"weight_capacity_lbs": 35, "requires_drill": False, "surface_types": ["drywall"]},
    ),
    InventoryItem(
        sku="DRYWALL-ANCHOR-50",
        name="Drywall Anchors Assorted (50-Pack)",
        description="Plastic expansion anchors. Requires drilling. Holds 20-75 lbs.",
        category="hardware",
        price=12.99,
        stock=30,
        aisle="B2",
        bin="5",
        tags=("drilling-required", "drywall", "anchors"),
        attributes={"weight_capacity_lbs": 75, "requires_drill": True, "surface_types": ["drywall"]},
    ),
    InventoryItem(
        sku="STUD-FINDER-DIG",
        name="Digital Stud Finder with LCD",
        description="Detects wood/metal studs, AC wiring, and pipes.",
        category="tools",
        price=29.99,
        stock=12,
        aisle="C1",
        bin="22",
        tags=("tools", "safety", "detection"),
        attributes={"detects": ["wood studs", "metal studs", "AC wiring"]},
    ),
    InventoryItem(
        sku="VELCRO-STRIPS-15",
        name="Industrial Velcro Strips (15-Pack)",
        description="Heavy duty strips. Holds up to 10 lbs. Removable.",
        category="adhesives",
        price=11.99,
        stock=40,
        aisle="A4",
        bin="3",
        tags=("no-damage", "rental-friendly", "adhesive"),
        attributes={"weight_capacity_lbs": 10, "removable": True},
    ),
)


def ensure_schema(db_path: Path) -> None:
    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with sqlite3.connect(db_path) as conn:
        conn.executescript(SCHEMA)


def insert_items(db_path: Path, store_id: str, items: Iterable[InventoryItem]) -> int:
    rows = [
        (
            store_id,
            item.sku,
            item.name,
            item.description,
            item.category,
            item.price,
            item.stock,
            item.aisle,
            item.bin,
            json.dumps(list(item.tags)),
            json.dumps(dict(item.attributes)),
        )
        for item in items
    ]
    with sqlite3.connect(db_path) as conn:
        conn.executemany(
            """
            INSERT INTO products (store_id, sku, name, description, category, price, stock,
                                  aisle, bin, tags, attributes)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(store_id, sku) DO UPDATE SET
                name=excluded.name,
                description=excluded.description,
                category=excluded.category,
                price=excluded.price,
                stock=excluded.stock,
                aisle=excluded.aisle,
                bin=excluded.bin,
                tags=excluded.tags,
                attributes=excluded.attributes
            """,
            rows,
        )
    return len(rows)


def seed_on_startup(db_path: Path) -> None:
    """Create the schema and load the demo catalogue into an empty DB."""

    try:
        ensure_schema(db_path)
        with sqlite3.connect(db_path) as conn:
            (count,) = conn.execute("SELECT COUNT(*) FROM products").fetchone()
        if count:
            logger.debug("Inventory already populated (%d rows); skipping seed", count)
            return
        inserted = insert_items(db_path, DEMO_STORE_ID, DEMO_CATALOGUE)
        logger.info("Seeded %d demo products into %s", inserted, db_path)
    except sqlite3.Error as exc:
        logger.warning("Failed to seed inventory at %s: %s", db_path, exc)
