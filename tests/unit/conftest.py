"""Pytest unit test fixtures."""

import pytest

from katzai.inventory.gateway import SQLiteInventoryGateway
from katzai.inventory.seed import DEMO_CATALOGUE, DEMO_STORE_ID, ensure_schema, insert_items


@pytest.fixture()
def inventory_db(tmp_path):
    db_path = tmp_path / "inventory.db"
    ensure_schema(db_path)
    insert_items(db_path, DEMO_STORE_ID, DEMO_CATALOGUE)
    return db_path


@pytest.fixture()
def sqlite_gateway(inventory_db):
    return SQLiteInventoryGateway(inventory_db)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture()
def clock():
    return FakeClock()
