"""Stock reconciliation engine.

Pure transition functions for sales, restocks, transfers and initial stock.
Each one takes the current item and warehouse list, never mutates them, and
returns the updated item together with the ledger entry describing the
movement. Nothing is committed here; the caller publishes both at once.

Shared rules:
  * a quantity that is not strictly positive is a no-op: the same item is
    returned and no transaction is produced;
  * warehouse buckets never go below zero;
  * in variant mode a variant id is required and the item total is
    recomputed from the variants.
"""

from dataclasses import replace
from typing import Callable, Dict, List, Optional

from ..models.product import InventoryItem, ProductVariant, SimpleStock, VariantStock
from ..models.results import StockMovement
from ..models.transaction import Transaction, TransactionType
from ..models.warehouse import Warehouse
from ..utils.clock import utc_now
from ..utils.exceptions import (
    InsufficientStockError,
    InvalidOperationError,
    VariantNotFoundError,
)
from .warehouse_registry import default_warehouse, find_warehouse

StockMap = Dict[str, int]


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _resolve_variant(item: InventoryItem, variant_id: Optional[str]) -> Optional[ProductVariant]:
    """Return the targeted variant, or ``None`` for a simple item."""
    if isinstance(item.stock, VariantStock):
        variant = item.find_variant(variant_id)
        if variant is None:
            raise VariantNotFoundError(
                f"Item '{item.name}' has no variant {variant_id!r}",
                details={"item_id": item.id, "variant_id": variant_id}
            )
        return variant

    if variant_id:
        raise VariantNotFoundError(
            f"Item '{item.name}' has no variants",
            details={"item_id": item.id, "variant_id": variant_id}
        )
    return None


def _holder_map(item: InventoryItem, variant: Optional[ProductVariant]) -> StockMap:
    return variant.stock_by_warehouse if variant is not None else item.stock.stock_by_warehouse


def _shift(stock_map: StockMap, warehouse_id: str, delta: int) -> StockMap:
    """Copy of ``stock_map`` with ``delta`` applied to one bucket, floored at zero."""
    updated = dict(stock_map)
    updated[warehouse_id] = max(0, updated.get(warehouse_id, 0) + delta)
    return updated


def _apply(
    item: InventoryItem,
    variant: Optional[ProductVariant],
    quantity_delta: int,
    move: Callable[[StockMap], StockMap],
) -> InventoryItem:
    """Apply a total change and a map change to the variant or the simple item."""
    if variant is not None:
        updated_variant = replace(
            variant,
            quantity=variant.quantity + quantity_delta,
            stock_by_warehouse=move(variant.stock_by_warehouse),
        )
        variants = [updated_variant if v.id == variant.id else v for v in item.variants]
        stock = replace(item.stock, variants=variants)
    else:
        stock = replace(
            item.stock,
            quantity=item.stock.quantity + quantity_delta,
            stock_by_warehouse=move(item.stock.stock_by_warehouse),
        )
    return replace(item, stock=stock, last_updated=utc_now())


def _sku_for(item: InventoryItem, variant: Optional[ProductVariant]) -> str:
    if variant is not None and variant.sku:
        return variant.sku
    return item.sku


def _unit_figures(item: InventoryItem, variant: Optional[ProductVariant]):
    source = variant if variant is not None else item
    return source.cost, source.price


def available_stock(item: InventoryItem, warehouse_id: str, variant_id: Optional[str] = None) -> int:
    """Units of the item (or one of its variants) held in a warehouse."""
    variant = _resolve_variant(item, variant_id)
    return _holder_map(item, variant).get(warehouse_id, 0)


# ------------------------------------------------------------------
# Transitions
# ------------------------------------------------------------------

def sell(
    item: InventoryItem,
    variant_id: Optional[str],
    warehouse_id: str,
    quantity: int,
    warehouses: List[Warehouse],
    strict: bool = True,
) -> StockMovement:
    """
    Sell units out of one warehouse.

    Args:
        item: Item being sold
        variant_id: Variant sold (required in variant mode)
        warehouse_id: Warehouse the units leave from
        quantity: Units sold
        warehouses: Known warehouses
        strict: Reject sales larger than the bucket. When ``False`` the
            bucket is floored at zero while the total still drops by the
            full quantity.

    Returns:
        StockMovement with the updated item and an ``OUT_SALE`` entry

    Raises:
        UnknownWarehouseError, VariantNotFoundError, InsufficientStockError
    """
    if quantity <= 0:
        return StockMovement(item=item)

    warehouse = find_warehouse(warehouses, warehouse_id)
    variant = _resolve_variant(item, variant_id)

    available = _holder_map(item, variant).get(warehouse_id, 0)
    if strict and quantity > available:
        raise InsufficientStockError(
            f"Only {available} units available in '{warehouse.name}', requested {quantity}",
            details={"available": available, "requested": quantity, "warehouse_id": warehouse_id}
        )

    updated = _apply(item, variant, -quantity, lambda m: _shift(m, warehouse_id, -quantity))
    cost, price = _unit_figures(item, variant)

    transaction = Transaction.create(
        TransactionType.OUT_SALE,
        item_id=item.id,
        item_name=item.name,
        sku=_sku_for(item, variant),
        quantity=quantity,
        unit_cost=cost,
        unit_price=price,
        variant_id=variant.id if variant else None,
        variant_name=variant.name if variant else None,
        from_warehouse_id=warehouse_id,
        warehouse_name=warehouse.name,
    )
    return StockMovement(item=updated, transaction=transaction)


def restock(
    item: InventoryItem,
    variant_id: Optional[str],
    warehouse_id: str,
    quantity: int,
    unit_cost: float,
    warehouses: List[Warehouse],
) -> StockMovement:
    """
    Receive units into one warehouse.

    The ledger entry is valued at the supplied ``unit_cost``, since each
    batch may be bought at a different price; the stored item cost is left
    alone.
    """
    if quantity <= 0:
        return StockMovement(item=item)

    if unit_cost is None or unit_cost < 0:
        raise InvalidOperationError(
            "Unit cost must be zero or greater",
            details={"unit_cost": unit_cost}
        )

    warehouse = find_warehouse(warehouses, warehouse_id)
    variant = _resolve_variant(item, variant_id)

    updated = _apply(item, variant, quantity, lambda m: _shift(m, warehouse_id, quantity))
    _, price = _unit_figures(item, variant)

    transaction = Transaction.create(
        TransactionType.IN_RESTOCK,
        item_id=item.id,
        item_name=item.name,
        sku=_sku_for(item, variant),
        quantity=quantity,
        unit_cost=unit_cost,
        unit_price=price,
        variant_id=variant.id if variant else None,
        variant_name=variant.name if variant else None,
        to_warehouse_id=warehouse_id,
        warehouse_name=warehouse.name,
    )
    return StockMovement(item=updated, transaction=transaction)


def transfer(
    item: InventoryItem,
    variant_id: Optional[str],
    from_id: str,
    to_id: str,
    quantity: int,
    warehouses: List[Warehouse],
    strict: bool = True,
) -> StockMovement:
    """
    Move units between two warehouses. Totals stay the same.

    Raises:
        InvalidOperationError: source and target are the same warehouse
        InsufficientStockError: strict mode and the source bucket is short
    """
    if quantity <= 0:
        return StockMovement(item=item)

    if from_id == to_id:
        raise InvalidOperationError(
            "Source and target warehouse must differ",
            details={"warehouse_id": from_id}
        )

    source = find_warehouse(warehouses, from_id)
    target = find_warehouse(warehouses, to_id)
    variant = _resolve_variant(item, variant_id)

    available = _holder_map(item, variant).get(from_id, 0)
    if strict and quantity > available:
        raise InsufficientStockError(
            f"Only {available} units available in '{source.name}', requested {quantity}",
            details={"available": available, "requested": quantity, "warehouse_id": from_id}
        )

    def move(stock_map: StockMap) -> StockMap:
        return _shift(_shift(stock_map, from_id, -quantity), to_id, quantity)

    updated = _apply(item, variant, 0, move)

    transaction = Transaction.create(
        TransactionType.TRANSFER,
        item_id=item.id,
        item_name=item.name,
        sku=_sku_for(item, variant),
        quantity=quantity,
        unit_cost=0,
        unit_price=0,
        variant_id=variant.id if variant else None,
        variant_name=variant.name if variant else None,
        from_warehouse_id=from_id,
        to_warehouse_id=to_id,
        warehouse_name=f"{source.name} -> {target.name}",
    )
    return StockMovement(item=updated, transaction=transaction)


def initial_stock_transactions(item: InventoryItem, warehouses: List[Warehouse]) -> List[Transaction]:
    """``IN_INITIAL`` entries for a freshly created item, one per stocked variant."""
    warehouse = default_warehouse(warehouses)

    def entry(variant: Optional[ProductVariant], quantity: int) -> Transaction:
        cost, price = _unit_figures(item, variant)
        return Transaction.create(
            TransactionType.IN_INITIAL,
            item_id=item.id,
            item_name=item.name,
            sku=_sku_for(item, variant),
            quantity=quantity,
            unit_cost=cost,
            unit_price=price,
            variant_id=variant.id if variant else None,
            variant_name=variant.name if variant else None,
            to_warehouse_id=warehouse.id,
            warehouse_name=warehouse.name,
            date=item.last_updated,
        )

    if isinstance(item.stock, VariantStock):
        return [entry(v, v.quantity) for v in item.stock.variants if v.quantity > 0]

    if isinstance(item.stock, SimpleStock) and item.stock.quantity > 0:
        return [entry(None, item.stock.quantity)]
    return []
