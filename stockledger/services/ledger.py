"""Transaction ledger: append-only history of stock movements and its reports."""

from datetime import date
from enum import Enum
from typing import Iterable, List, Optional

from ..models.results import LedgerSummary
from ..models.transaction import Transaction
from ..utils.exceptions import TransactionNotFoundError


class LedgerFilter(str, Enum):
    ALL = "ALL"
    SALES = "SALES"
    PURCHASES = "PURCHASES"


def append(transactions: List[Transaction], transaction: Optional[Transaction]) -> List[Transaction]:
    """Return a new list with ``transaction`` at the end (``None`` is ignored)."""
    if transaction is None:
        return list(transactions)
    return list(transactions) + [transaction]


def delete_transaction(transactions: List[Transaction], transaction_id: str) -> List[Transaction]:
    """Drop one history entry. Current stock is not affected."""
    if not any(t.id == transaction_id for t in transactions):
        raise TransactionNotFoundError(
            f"Unknown transaction: {transaction_id}",
            details={"transaction_id": transaction_id}
        )
    return [t for t in transactions if t.id != transaction_id]


def _local_date(transaction: Transaction) -> date:
    return transaction.date.astimezone().date()


def filter_transactions(
    transactions: Iterable[Transaction],
    start: Optional[date] = None,
    end: Optional[date] = None,
    kind: LedgerFilter = LedgerFilter.ALL,
    item_id: Optional[str] = None,
) -> List[Transaction]:
    """
    Select transactions for a report, newest first.

    Args:
        transactions: Ledger entries
        start: First local date included
        end: Last local date included
        kind: ``SALES`` keeps sales only, ``PURCHASES`` everything else
        item_id: Restrict to one item
    """
    kind = LedgerFilter(kind)
    selected = []
    for transaction in transactions:
        day = _local_date(transaction)
        if start is not None and day < start:
            continue
        if end is not None and day > end:
            continue
        if kind == LedgerFilter.SALES and not transaction.is_sale:
            continue
        if kind == LedgerFilter.PURCHASES and transaction.is_sale:
            continue
        if item_id and transaction.item_id != item_id:
            continue
        selected.append(transaction)

    return sorted(selected, key=lambda t: t.date, reverse=True)


def summarize(transactions: Iterable[Transaction]) -> LedgerSummary:
    """Revenue, stock-in spend and cost of goods sold over the given entries."""
    summary = LedgerSummary()
    for transaction in transactions:
        if transaction.is_sale:
            summary.revenue += transaction.total
            summary.cost_of_goods_sold += transaction.unit_cost * transaction.quantity
            summary.sales_count += 1
        else:
            summary.spent += transaction.total
            summary.purchases_count += 1
    return summary
