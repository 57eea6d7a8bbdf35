"""Warehouse registry: the set of stock locations and its default."""

import uuid
from dataclasses import replace
from typing import List, Optional, Iterable, Tuple

from ..models.product import InventoryItem
from ..models.warehouse import Warehouse
from ..utils.exceptions import (
    CannotDeleteDefaultError,
    DuplicateNameError,
    InvalidNameError,
    UnknownWarehouseError,
    WarehouseNotEmptyError,
)

DEFAULT_WAREHOUSE_ID = "MAIN_WAREHOUSE"
DEFAULT_WAREHOUSE_NAME = "Main Warehouse"


def ensure_default(
    warehouses: List[Warehouse],
    default_id: str = DEFAULT_WAREHOUSE_ID,
    default_name: str = DEFAULT_WAREHOUSE_NAME,
) -> Tuple[List[Warehouse], bool]:
    """
    Guarantee that at least one warehouse exists and exactly one is default.

    Args:
        warehouses: Loaded warehouse list
        default_id: Identifier for a synthesized default warehouse
        default_name: Name for a synthesized default warehouse

    Returns:
        The normalized list and whether it differs from the input (in which
        case the caller persists it right away)
    """
    if not warehouses:
        return [Warehouse(id=default_id, name=default_name, is_default=True)], True

    flagged = [w for w in warehouses if w.is_default]
    if len(flagged) == 1:
        return list(warehouses), False

    # None flagged: promote the first. Several flagged: keep only the first.
    keep_id = flagged[0].id if flagged else warehouses[0].id
    normalized = [replace(w, is_default=(w.id == keep_id)) for w in warehouses]
    return normalized, True


def default_warehouse(warehouses: List[Warehouse]) -> Warehouse:
    """Return the flagged default warehouse, falling back to the first one."""
    if not warehouses:
        raise UnknownWarehouseError("No warehouses are configured")
    for warehouse in warehouses:
        if warehouse.is_default:
            return warehouse
    return warehouses[0]


def default_warehouse_id(warehouses: List[Warehouse]) -> str:
    return default_warehouse(warehouses).id


def find_warehouse(warehouses: Iterable[Warehouse], warehouse_id: Optional[str]) -> Warehouse:
    """Resolve a warehouse id or raise ``UnknownWarehouseError``."""
    for warehouse in warehouses:
        if warehouse.id == warehouse_id:
            return warehouse
    raise UnknownWarehouseError(
        f"Unknown warehouse: {warehouse_id}",
        details={"warehouse_id": warehouse_id}
    )


def add_warehouse(warehouses: List[Warehouse], name: str) -> List[Warehouse]:
    """Append a new non-default warehouse. Names are unique ignoring case."""
    trimmed = (name or "").strip()
    if not trimmed:
        raise InvalidNameError("Warehouse name cannot be empty")

    if any(w.name.lower() == trimmed.lower() for w in warehouses):
        raise DuplicateNameError(
            f"A warehouse named '{trimmed}' already exists",
            details={"name": trimmed}
        )

    return list(warehouses) + [Warehouse(id=uuid.uuid4().hex, name=trimmed)]


def stock_held_in(items: Iterable[InventoryItem], warehouse_id: str) -> int:
    """Total units any item or variant holds in the given warehouse."""
    total = 0
    for item in items:
        if item.has_variants:
            total += sum(v.stock_by_warehouse.get(warehouse_id, 0) for v in item.variants)
        else:
            total += item.stock_by_warehouse.get(warehouse_id, 0)
    return total


def remove_warehouse(
    warehouses: List[Warehouse],
    warehouse_id: str,
    items: Optional[Iterable[InventoryItem]] = None,
) -> List[Warehouse]:
    """
    Remove a warehouse.

    The default warehouse can never be removed. When ``items`` are given,
    removal is also refused while any of them still holds stock in the
    warehouse, so no stock map is left pointing at a deleted location.
    """
    target = find_warehouse(warehouses, warehouse_id)

    if target.is_default:
        raise CannotDeleteDefaultError(
            f"Cannot delete the default warehouse '{target.name}'",
            details={"warehouse_id": warehouse_id}
        )

    if items is not None:
        held = stock_held_in(items, warehouse_id)
        if held > 0:
            raise WarehouseNotEmptyError(
                f"Warehouse '{target.name}' still holds {held} units; transfer them out first",
                details={"warehouse_id": warehouse_id, "units": held}
            )

    return [w for w in warehouses if w.id != warehouse_id]
