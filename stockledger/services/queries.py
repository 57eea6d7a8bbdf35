"""Read-only views over the item list: search, sort and valuation."""

from enum import Enum
from typing import Any, Dict, Iterable, List

from ..models.product import InventoryItem
from ..models.warehouse import Warehouse


class SortField(str, Enum):
    NAME = "name"
    SKU = "sku"
    QUANTITY = "quantity"
    COST = "cost"
    PRICE = "price"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


def search_items(items: Iterable[InventoryItem], term: str) -> List[InventoryItem]:
    """Case-insensitive match on name, SKU or category."""
    needle = (term or "").strip().lower()
    if not needle:
        return list(items)
    return [
        item for item in items
        if needle in item.name.lower()
        or needle in item.sku.lower()
        or needle in item.category.lower()
    ]


def sort_items(
    items: Iterable[InventoryItem],
    field: SortField = SortField.NAME,
    order: SortOrder = SortOrder.ASC,
) -> List[InventoryItem]:
    """Sort a copy of ``items``; text fields ignore case."""
    attribute = SortField(field).value

    def key(item: InventoryItem) -> Any:
        value = getattr(item, attribute)
        return value.lower() if isinstance(value, str) else value

    return sorted(items, key=key, reverse=SortOrder(order) == SortOrder.DESC)


def total_stock(items: Iterable[InventoryItem]) -> int:
    return sum(item.quantity for item in items)


def item_value(item: InventoryItem) -> float:
    """Stock value at cost; variants are valued at their own cost."""
    if item.has_variants:
        return sum(v.cost * v.quantity for v in item.variants)
    return item.cost * item.quantity


def inventory_value(items: Iterable[InventoryItem]) -> float:
    return sum(item_value(item) for item in items)


def stock_breakdown(item: InventoryItem, warehouses: Iterable[Warehouse]) -> List[Dict[str, Any]]:
    """Per-warehouse quantities for an item, one row per warehouse (and per variant)."""
    rows = []
    for warehouse in warehouses:
        if item.has_variants:
            for variant in item.variants:
                rows.append({
                    "warehouse_id": warehouse.id,
                    "warehouse": warehouse.name,
                    "variant": variant.name,
                    "quantity": variant.stock_by_warehouse.get(warehouse.id, 0),
                })
        else:
            rows.append({
                "warehouse_id": warehouse.id,
                "warehouse": warehouse.name,
                "variant": None,
                "quantity": item.stock_by_warehouse.get(warehouse.id, 0),
            })
    return rows
