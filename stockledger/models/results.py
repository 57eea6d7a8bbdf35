"""Result data models returned by inventory operations."""

from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional

from .product import InventoryItem
from .transaction import Transaction


@dataclass
class StockMovement:
    """Outcome of a sale, restock or transfer.

    ``transaction`` is ``None`` when the requested quantity was not
    positive; the item is then returned untouched.
    """

    item: InventoryItem
    transaction: Optional[Transaction] = None

    @property
    def is_noop(self) -> bool:
        return self.transaction is None


@dataclass
class ItemCreation:
    """A newly created item together with its initial-stock ledger entries."""

    item: InventoryItem
    transactions: List[Transaction] = field(default_factory=list)


@dataclass
class RepairResult:
    """Outcome of the load-time repair pass."""

    items: List[InventoryItem]
    repaired_count: int = 0

    @property
    def changed(self) -> bool:
        return self.repaired_count > 0


@dataclass
class LedgerSummary:
    """Aggregated figures over a set of transactions."""

    revenue: float = 0.0
    spent: float = 0.0
    cost_of_goods_sold: float = 0.0
    sales_count: int = 0
    purchases_count: int = 0

    @property
    def estimated_profit(self) -> float:
        """Revenue minus the cost of the goods that were sold."""
        return self.revenue - self.cost_of_goods_sold

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "revenue": round(self.revenue, 2),
            "spent": round(self.spent, 2),
            "cost_of_goods_sold": round(self.cost_of_goods_sold, 2),
            "estimated_profit": round(self.estimated_profit, 2),
            "sales_count": self.sales_count,
            "purchases_count": self.purchases_count,
        }

    def get_summary(self) -> str:
        """Get a human-readable summary."""
        return "\n".join([
            f"Sales:            {self.sales_count}",
            f"Stock-in entries: {self.purchases_count}",
            f"Revenue:          {self.revenue:.2f}",
            f"Spent:            {self.spent:.2f}",
            f"Cost of sales:    {self.cost_of_goods_sold:.2f}",
            f"Estimated profit: {self.estimated_profit:.2f}",
        ])
