"""Pytest configuration and fixtures."""

from datetime import datetime, timezone

import pytest

from stockledger.models.product import (
    InventoryItem,
    ProductVariant,
    SimpleStock,
    VariantStock,
)
from stockledger.models.warehouse import Warehouse
from stockledger.services.inventory_store import InventoryStore
from stockledger.storage.base import MemoryStorage, StorageKey
from stockledger.utils.logger import (
    get_api_logger,
    get_error_logger,
    get_storage_logger,
    get_store_logger,
)


@pytest.fixture(autouse=True, scope="session")
def loggers():
    """Create handlers once, bound to the real console rather than a CliRunner stream."""
    return [get_store_logger(), get_storage_logger(), get_error_logger(), get_api_logger()]


@pytest.fixture
def warehouses():
    """Default warehouse W1 plus a secondary W2."""
    return [
        Warehouse(id="W1", name="Main Warehouse", is_default=True),
        Warehouse(id="W2", name="Studio"),
    ]


@pytest.fixture
def simple_item():
    """T-Shirt in simple mode, 10 units all in W1."""
    return InventoryItem(
        id="item-simple",
        name="T-Shirt",
        sku="TS-001",
        cost=4.0,
        price=12.5,
        category="Clothing",
        stock=SimpleStock(quantity=10, stock_by_warehouse={"W1": 10}),
        last_updated=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def variant_item():
    """Hoodie with two variants spread over W1 and W2."""
    return InventoryItem(
        id="item-variants",
        name="Hoodie",
        sku="HD",
        cost=15.0,
        price=40.0,
        category="Clothing",
        stock=VariantStock(variants=[
            ProductVariant(
                id="red-m", name="Red / M", sku="HD-RED-M", cost=15.0, price=40.0,
                quantity=7, stock_by_warehouse={"W1": 5, "W2": 2},
            ),
            ProductVariant(
                id="blue-l", name="Blue / L", sku="HD-BLUE-L", cost=16.0, price=42.0,
                quantity=3, stock_by_warehouse={"W1": 3},
            ),
        ]),
        last_updated=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def memory_storage(warehouses, simple_item, variant_item):
    """Provider pre-filled with consistent data."""
    return MemoryStorage({
        StorageKey.WAREHOUSES: [w.to_dict() for w in warehouses],
        StorageKey.INVENTORY: [simple_item.to_dict(), variant_item.to_dict()],
        StorageKey.TRANSACTIONS: [],
    })


@pytest.fixture
def store(memory_storage):
    """Store loaded from the in-memory provider, persistence attached."""
    return InventoryStore.load(memory_storage)


class FailingStorage(MemoryStorage):
    """Provider whose writes always fail."""

    def save(self, key, value):
        raise OSError("disk full")


@pytest.fixture
def failing_storage(warehouses, simple_item):
    return FailingStorage({
        StorageKey.WAREHOUSES: [w.to_dict() for w in warehouses],
        StorageKey.INVENTORY: [simple_item.to_dict()],
    })
