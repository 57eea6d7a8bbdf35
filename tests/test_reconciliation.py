"""Tests for the stock reconciliation engine."""

import copy

import pytest

from stockledger.models.transaction import TransactionType
from stockledger.services.reconciliation import (
    available_stock,
    initial_stock_transactions,
    restock,
    sell,
    transfer,
)
from stockledger.utils.exceptions import (
    InsufficientStockError,
    InvalidOperationError,
    UnknownWarehouseError,
    VariantNotFoundError,
)


def assert_consistent(item):
    """Every holder's total matches its warehouse distribution."""
    if item.has_variants:
        for variant in item.variants:
            assert variant.quantity == sum(variant.stock_by_warehouse.values())
        assert item.quantity == sum(v.quantity for v in item.variants)
    else:
        assert item.quantity == sum(item.stock_by_warehouse.values())


class TestSell:
    """Tests for sales."""

    def test_simple_sale(self, simple_item, warehouses):
        movement = sell(simple_item, None, "W1", 3, warehouses)

        assert movement.item.stock_by_warehouse["W1"] == 7
        assert movement.item.quantity == 7
        assert movement.transaction.type == TransactionType.OUT_SALE
        assert movement.transaction.total == simple_item.price * 3
        assert movement.transaction.warehouse_name == "Main Warehouse"
        assert movement.transaction.from_warehouse_id == "W1"
        assert_consistent(movement.item)

    def test_variant_sale_recomputes_item_total(self, variant_item, warehouses):
        movement = sell(variant_item, "blue-l", "W1", 2, warehouses)

        variant = movement.item.find_variant("blue-l")
        assert variant.quantity == 1
        assert variant.stock_by_warehouse == {"W1": 1}
        assert movement.item.quantity == 8
        assert_consistent(movement.item)

    def test_variant_sale_uses_variant_pricing(self, variant_item, warehouses):
        movement = sell(variant_item, "blue-l", "W1", 1, warehouses)

        assert movement.transaction.unit_cost == 16.0
        assert movement.transaction.unit_price == 42.0
        assert movement.transaction.total == 42.0
        assert movement.transaction.sku == "HD-BLUE-L"
        assert movement.transaction.variant_name == "Blue / L"

    def test_sale_does_not_mutate_input(self, simple_item, warehouses):
        before = copy.deepcopy(simple_item)

        sell(simple_item, None, "W1", 3, warehouses)

        assert simple_item == before

    def test_sale_refreshes_last_updated(self, simple_item, warehouses):
        movement = sell(simple_item, None, "W1", 1, warehouses)

        assert movement.item.last_updated > simple_item.last_updated

    def test_strict_sale_rejects_oversell(self, simple_item, warehouses):
        with pytest.raises(InsufficientStockError) as exc_info:
            sell(simple_item, None, "W1", 11, warehouses)

        assert exc_info.value.code == "INSUFFICIENT_STOCK"
        assert exc_info.value.details["available"] == 10

    def test_strict_sale_checks_the_chosen_warehouse(self, variant_item, warehouses):
        with pytest.raises(InsufficientStockError):
            sell(variant_item, "red-m", "W2", 3, warehouses)

    def test_clamp_mode_floors_bucket_but_drops_total(self, variant_item, warehouses):
        """Legacy behaviour: the bucket stops at zero, the total drops by the full amount."""
        movement = sell(variant_item, "red-m", "W2", 3, warehouses, strict=False)

        variant = movement.item.find_variant("red-m")
        assert variant.stock_by_warehouse == {"W1": 5, "W2": 0}
        assert variant.quantity == 4
        assert sum(variant.stock_by_warehouse.values()) == 5
        assert movement.transaction.quantity == 3

    def test_variant_required_in_variant_mode(self, variant_item, warehouses):
        with pytest.raises(VariantNotFoundError):
            sell(variant_item, None, "W1", 1, warehouses)

    def test_unknown_variant(self, variant_item, warehouses):
        with pytest.raises(VariantNotFoundError):
            sell(variant_item, "green-xl", "W1", 1, warehouses)

    def test_variant_id_on_simple_item(self, simple_item, warehouses):
        with pytest.raises(VariantNotFoundError):
            sell(simple_item, "red-m", "W1", 1, warehouses)

    def test_unknown_warehouse(self, simple_item, warehouses):
        with pytest.raises(UnknownWarehouseError):
            sell(simple_item, None, "W9", 1, warehouses)


class TestRestock:
    """Tests for restocks."""

    def test_simple_restock(self, simple_item, warehouses):
        movement = restock(simple_item, None, "W2", 5, 3.5, warehouses)

        assert movement.item.stock_by_warehouse == {"W1": 10, "W2": 5}
        assert movement.item.quantity == 15
        assert_consistent(movement.item)

    def test_restock_priced_at_supplied_cost(self, simple_item, warehouses):
        movement = restock(simple_item, None, "W1", 4, 3.5, warehouses)

        assert movement.transaction.type == TransactionType.IN_RESTOCK
        assert movement.transaction.unit_cost == 3.5
        assert movement.transaction.unit_price == simple_item.price
        assert movement.transaction.total == 14.0
        assert movement.item.cost == simple_item.cost
        assert movement.transaction.to_warehouse_id == "W1"

    def test_variant_restock(self, variant_item, warehouses):
        movement = restock(variant_item, "red-m", "W2", 3, 14.0, warehouses)

        variant = movement.item.find_variant("red-m")
        assert variant.stock_by_warehouse == {"W1": 5, "W2": 5}
        assert variant.quantity == 10
        assert movement.item.quantity == 13
        assert movement.transaction.unit_price == 40.0
        assert_consistent(movement.item)

    def test_negative_unit_cost_rejected(self, simple_item, warehouses):
        with pytest.raises(InvalidOperationError):
            restock(simple_item, None, "W1", 1, -1.0, warehouses)

    def test_zero_unit_cost_allowed(self, simple_item, warehouses):
        movement = restock(simple_item, None, "W1", 1, 0.0, warehouses)

        assert movement.transaction.total == 0.0


class TestTransfer:
    """Tests for transfers between warehouses."""

    def test_variant_transfer(self, variant_item, warehouses):
        movement = transfer(variant_item, "red-m", "W1", "W2", 4, warehouses)

        variant = movement.item.find_variant("red-m")
        assert variant.stock_by_warehouse == {"W1": 1, "W2": 6}
        assert variant.quantity == 7
        assert movement.transaction.type == TransactionType.TRANSFER
        assert movement.transaction.total == 0
        assert movement.transaction.unit_cost == 0
        assert movement.transaction.unit_price == 0
        assert movement.transaction.from_warehouse_id == "W1"
        assert movement.transaction.to_warehouse_id == "W2"
        assert movement.transaction.warehouse_name == "Main Warehouse -> Studio"

    def test_transfer_conserves_stock(self, simple_item, warehouses):
        before = sum(simple_item.stock_by_warehouse.values())

        movement = transfer(simple_item, None, "W1", "W2", 6, warehouses)

        assert sum(movement.item.stock_by_warehouse.values()) == before
        assert movement.item.quantity == simple_item.quantity
        assert_consistent(movement.item)

    def test_same_warehouse_rejected(self, simple_item, warehouses):
        with pytest.raises(InvalidOperationError):
            transfer(simple_item, None, "W1", "W1", 1, warehouses)

    def test_strict_transfer_rejects_short_source(self, simple_item, warehouses):
        with pytest.raises(InsufficientStockError):
            transfer(simple_item, None, "W2", "W1", 1, warehouses)

    def test_clamp_mode_transfer_floors_source(self, simple_item, warehouses):
        movement = transfer(simple_item, None, "W1", "W2", 12, warehouses, strict=False)

        assert movement.item.stock_by_warehouse == {"W1": 0, "W2": 12}
        assert movement.item.quantity == 10

    def test_unknown_target(self, simple_item, warehouses):
        with pytest.raises(UnknownWarehouseError):
            transfer(simple_item, None, "W1", "W9", 1, warehouses)


class TestZeroQuantityGuard:
    """Non-positive quantities are no-ops."""

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_sell(self, simple_item, warehouses, quantity):
        movement = sell(simple_item, None, "W1", quantity, warehouses)

        assert movement.is_noop
        assert movement.item is simple_item

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_restock(self, simple_item, warehouses, quantity):
        movement = restock(simple_item, None, "W1", quantity, 1.0, warehouses)

        assert movement.transaction is None
        assert movement.item is simple_item

    @pytest.mark.parametrize("quantity", [0, -3])
    def test_transfer(self, variant_item, warehouses, quantity):
        movement = transfer(variant_item, "red-m", "W1", "W2", quantity, warehouses)

        assert movement.transaction is None
        assert movement.item is variant_item


class TestAvailableStock:
    def test_simple(self, simple_item):
        assert available_stock(simple_item, "W1") == 10
        assert available_stock(simple_item, "W2") == 0

    def test_variant(self, variant_item):
        assert available_stock(variant_item, "W2", "red-m") == 2


class TestInitialStock:
    def test_simple_item(self, simple_item, warehouses):
        transactions = initial_stock_transactions(simple_item, warehouses)

        assert len(transactions) == 1
        assert transactions[0].type == TransactionType.IN_INITIAL
        assert transactions[0].total == 40.0
        assert transactions[0].warehouse_name == "Main Warehouse"

    def test_only_stocked_variants(self, variant_item, warehouses):
        transactions = initial_stock_transactions(variant_item, warehouses)

        assert [t.variant_id for t in transactions] == ["red-m", "blue-l"]
        assert transactions[1].total == 16.0 * 3
