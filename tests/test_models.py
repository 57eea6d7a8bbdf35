"""Tests for data models."""

import pytest
from datetime import datetime, timezone

from stockledger.models.product import InventoryItem, SimpleStock, VariantStock
from stockledger.models.results import LedgerSummary, RepairResult
from stockledger.models.transaction import Transaction, TransactionType, compute_total
from stockledger.models.warehouse import Warehouse
from stockledger.utils.clock import parse_timestamp


class TestInventoryItem:
    """Tests for InventoryItem model."""

    def test_simple_item_quantity(self, simple_item):
        assert simple_item.quantity == 10
        assert simple_item.has_variants is False
        assert simple_item.variants == []
        assert simple_item.stock_by_warehouse == {"W1": 10}

    def test_variant_item_quantity_is_sum_of_variants(self, variant_item):
        assert variant_item.has_variants is True
        assert variant_item.quantity == 10

    def test_item_requires_id(self):
        with pytest.raises(ValueError, match="Item id cannot be empty"):
            InventoryItem(id="", name="X", sku="", cost=0, price=0, category="")

    def test_last_updated_defaults_to_now(self):
        item = InventoryItem(id="a", name="X", sku="", cost=0, price=0, category="")

        assert item.last_updated is not None
        assert item.last_updated.tzinfo is not None

    def test_find_variant(self, variant_item):
        assert variant_item.find_variant("blue-l").name == "Blue / L"
        assert variant_item.find_variant("missing") is None

    def test_to_dict_uses_stored_shape(self, variant_item):
        data = variant_item.to_dict()

        assert data["quantity"] == 10
        assert data["variants"][0]["stockByWarehouse"] == {"W1": 5, "W2": 2}
        assert data["lastUpdated"] == 1704067200000

    def test_from_dict_round_trip(self, variant_item):
        restored = InventoryItem.from_dict(variant_item.to_dict())

        assert restored == variant_item

    def test_from_dict_legacy_record(self):
        """Records from before warehouses existed have no map and null variants."""
        item = InventoryItem.from_dict({
            "id": "legacy",
            "name": "Mug",
            "sku": "MUG",
            "cost": 2,
            "price": 6,
            "quantity": 8,
            "category": "Home",
            "variants": None,
            "lastUpdated": 1704067200000,
        })

        assert isinstance(item.stock, SimpleStock)
        assert item.quantity == 8
        assert item.stock_by_warehouse == {}
        assert item.last_updated == datetime(2024, 1, 1, tzinfo=timezone.utc)

    def test_from_dict_derives_variant_total(self):
        """A stale stored total is replaced by the sum of the variants."""
        item = InventoryItem.from_dict({
            "id": "v",
            "name": "Cap",
            "quantity": 99,
            "variants": [
                {"id": "a", "name": "S", "quantity": 2, "stockByWarehouse": {"W1": 2}},
                {"id": "b", "name": "M", "quantity": 3, "stockByWarehouse": {"W1": 3}},
            ],
        })

        assert isinstance(item.stock, VariantStock)
        assert item.quantity == 5

    def test_from_dict_accepts_iso_timestamp(self):
        item = InventoryItem.from_dict({"id": "x", "name": "X", "lastUpdated": "2024-03-01T10:00:00"})

        assert item.last_updated == datetime(2024, 3, 1, 10, tzinfo=timezone.utc)

    @pytest.mark.parametrize("value", ["1e400", 1e20, "-1e18"])
    def test_out_of_range_timestamp_rejected(self, value):
        with pytest.raises(ValueError, match="out of range"):
            parse_timestamp(value)

        with pytest.raises(ValueError):
            InventoryItem.from_dict({"id": "x", "name": "X", "lastUpdated": value})


class TestWarehouse:
    """Tests for Warehouse model."""

    def test_to_dict_omits_default_flag_when_false(self):
        assert Warehouse(id="W2", name="Studio").to_dict() == {"id": "W2", "name": "Studio"}

    def test_from_dict(self):
        warehouse = Warehouse.from_dict({"id": "W1", "name": "Main", "isDefault": True})

        assert warehouse.is_default is True

    def test_requires_id(self):
        with pytest.raises(ValueError):
            Warehouse(id="", name="Nowhere")


class TestTransaction:
    """Tests for Transaction model."""

    @pytest.mark.parametrize("kind, expected", [
        (TransactionType.OUT_SALE, 30.0),
        (TransactionType.TRANSFER, 0),
        (TransactionType.IN_RESTOCK, 12.0),
        (TransactionType.IN_INITIAL, 12.0),
    ])
    def test_compute_total(self, kind, expected):
        assert compute_total(kind, 3, unit_cost=4.0, unit_price=10.0) == expected

    def test_create_assigns_id_and_date(self):
        transaction = Transaction.create(
            TransactionType.OUT_SALE, item_id="i", item_name="Item", sku="S",
            quantity=2, unit_cost=1.0, unit_price=5.0,
        )

        assert transaction.id
        assert transaction.date.tzinfo is not None
        assert transaction.total == 10.0

    def test_transaction_is_immutable(self):
        transaction = Transaction.create(
            TransactionType.IN_RESTOCK, item_id="i", item_name="Item", sku="S",
            quantity=2, unit_cost=1.0, unit_price=5.0,
        )

        with pytest.raises(Exception):
            transaction.quantity = 5

    def test_to_dict_omits_unset_fields(self):
        transaction = Transaction.create(
            TransactionType.IN_RESTOCK, item_id="i", item_name="Item", sku="S",
            quantity=2, unit_cost=1.0, unit_price=5.0,
        )
        data = transaction.to_dict()

        assert data["type"] == "IN_RESTOCK"
        assert "variantId" not in data
        assert "fromWarehouseId" not in data

    def test_round_trip(self):
        transaction = Transaction.create(
            TransactionType.TRANSFER, item_id="i", item_name="Item", sku="S",
            quantity=2, unit_cost=0, unit_price=0, variant_id="v", variant_name="Red",
            from_warehouse_id="W1", to_warehouse_id="W2", warehouse_name="A -> B",
            date=datetime(2024, 5, 1, 12, tzinfo=timezone.utc),
        )

        assert Transaction.from_dict(transaction.to_dict()) == transaction


class TestResults:
    """Tests for result models."""

    def test_repair_result_changed(self, simple_item):
        assert RepairResult(items=[simple_item]).changed is False
        assert RepairResult(items=[simple_item], repaired_count=1).changed is True

    def test_ledger_summary(self):
        summary = LedgerSummary(revenue=100.0, spent=40.0, cost_of_goods_sold=30.0, sales_count=2)

        assert summary.estimated_profit == 70.0
        assert summary.to_dict()["estimated_profit"] == 70.0
        assert "Revenue:          100.00" in summary.get_summary()
