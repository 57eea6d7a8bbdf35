"""Load-time repair of items stored before warehouses existed.

Older records carry a quantity but no warehouse distribution. Such stock is
assigned to the default warehouse. Quantities are never reduced, and any
record whose distribution already has stock is left alone, so running the
pass again changes nothing.
"""

from dataclasses import replace
from typing import Dict, List

from ..models.product import InventoryItem, VariantStock
from ..models.results import RepairResult


def _is_orphaned(quantity: int, stock_map: Dict[str, int]) -> bool:
    return quantity > 0 and sum(stock_map.values()) == 0


def repair_item(item: InventoryItem, default_warehouse_id: str) -> InventoryItem:
    """Return the repaired item, or the same object when nothing needed fixing."""
    if isinstance(item.stock, VariantStock):
        changed = False
        variants = []
        for variant in item.stock.variants:
            if _is_orphaned(variant.quantity, variant.stock_by_warehouse):
                variant = replace(variant, stock_by_warehouse={default_warehouse_id: variant.quantity})
                changed = True
            variants.append(variant)
        if not changed:
            return item
        return replace(item, stock=replace(item.stock, variants=variants))

    if _is_orphaned(item.stock.quantity, item.stock.stock_by_warehouse):
        stock = replace(item.stock, stock_by_warehouse={default_warehouse_id: item.stock.quantity})
        return replace(item, stock=stock)
    return item


def repair_items(items: List[InventoryItem], default_warehouse_id: str) -> RepairResult:
    """Backfill orphaned totals into the default warehouse."""
    repaired = []
    count = 0
    for item in items:
        fixed = repair_item(item, default_warehouse_id)
        if fixed.to_dict() != item.to_dict():
            count += 1
        repaired.append(fixed)
    return RepairResult(items=repaired, repaired_count=count)
