"""Tests for the transaction ledger."""

from datetime import datetime, timedelta, timezone

import pytest

from stockledger.models.transaction import Transaction, TransactionType
from stockledger.services.ledger import (
    LedgerFilter,
    append,
    delete_transaction,
    filter_transactions,
    summarize,
)
from stockledger.services.reconciliation import sell
from stockledger.utils.exceptions import TransactionNotFoundError


def make_transaction(kind, quantity=1, unit_cost=2.0, unit_price=5.0, item_id="i", date=None):
    return Transaction.create(
        kind, item_id=item_id, item_name="Item", sku="S",
        quantity=quantity, unit_cost=unit_cost, unit_price=unit_price, date=date,
    )


@pytest.fixture
def history():
    base = datetime(2024, 6, 10, 12, tzinfo=timezone.utc)
    return [
        make_transaction(TransactionType.IN_INITIAL, quantity=10, date=base - timedelta(days=5)),
        make_transaction(TransactionType.OUT_SALE, quantity=2, date=base - timedelta(days=2)),
        make_transaction(TransactionType.IN_RESTOCK, quantity=4, unit_cost=3.0, item_id="j", date=base),
        make_transaction(TransactionType.TRANSFER, quantity=1, unit_cost=0, unit_price=0, date=base + timedelta(days=1)),
    ]


class TestAppendAndDelete:
    def test_append(self, history):
        entry = make_transaction(TransactionType.OUT_SALE)

        assert append(history, entry)[-1] is entry
        assert len(history) == 4

    def test_append_none(self, history):
        assert append(history, None) == history

    def test_delete_keeps_stock(self, simple_item, warehouses):
        movement = sell(simple_item, None, "W1", 3, warehouses)
        ledger = append([], movement.transaction)

        ledger = delete_transaction(ledger, movement.transaction.id)

        assert ledger == []
        assert movement.item.quantity == 7

    def test_delete_unknown(self, history):
        with pytest.raises(TransactionNotFoundError):
            delete_transaction(history, "missing")


class TestFilter:
    """Tests for report selection."""

    def test_newest_first(self, history):
        selected = filter_transactions(history)

        assert [t.type for t in selected] == [
            TransactionType.TRANSFER,
            TransactionType.IN_RESTOCK,
            TransactionType.OUT_SALE,
            TransactionType.IN_INITIAL,
        ]

    def test_sales_only(self, history):
        assert [t.type for t in filter_transactions(history, kind=LedgerFilter.SALES)] == [TransactionType.OUT_SALE]

    def test_purchases_include_transfers(self, history):
        assert len(filter_transactions(history, kind="PURCHASES")) == 3

    def test_item_filter(self, history):
        assert [t.item_id for t in filter_transactions(history, item_id="j")] == ["j"]

    def test_date_range_is_inclusive(self, history):
        start = history[1].date.astimezone().date()
        end = history[2].date.astimezone().date()

        selected = filter_transactions(history, start=start, end=end)

        assert {t.type for t in selected} == {TransactionType.OUT_SALE, TransactionType.IN_RESTOCK}


class TestSummarize:
    def test_totals(self, history):
        summary = summarize(history)

        assert summary.revenue == 10.0
        assert summary.cost_of_goods_sold == 4.0
        assert summary.spent == 20.0 + 12.0
        assert summary.sales_count == 1
        assert summary.purchases_count == 3
        assert summary.estimated_profit == 6.0

    def test_empty(self):
        summary = summarize([])

        assert summary.revenue == 0
        assert summary.estimated_profit == 0
