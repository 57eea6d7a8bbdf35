"""Product and variant store: creating, editing and generating items."""

import itertools
import math
import re
import uuid
from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..models.product import (
    InventoryItem,
    ItemDraft,
    ProductVariant,
    SimpleStock,
    VariantDraft,
    VariantStock,
)
from ..models.results import ItemCreation
from ..models.warehouse import Warehouse
from ..utils.clock import utc_now
from ..utils.exceptions import (
    DuplicateNameError,
    InvalidNameError,
    InvalidOperationError,
    InvalidVariantError,
    ItemNotFoundError,
    VariantLimitExceededError,
)
from .reconciliation import initial_stock_transactions
from .warehouse_registry import default_warehouse_id

VARIANT_LIMIT = 200
VARIANT_NAME_SEPARATOR = " / "

_SKU_STRIP = re.compile(r"[^A-Z0-9-]")


# ------------------------------------------------------------------
# Input parsing
# ------------------------------------------------------------------

def _parse_number(value: Any) -> Optional[float]:
    """Parse user input into a finite float, or ``None`` when it is not a number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number


def _number_or_zero(value: Any) -> float:
    number = _parse_number(value)
    return number if number is not None else 0.0


def _quantity_or_zero(value: Any) -> int:
    number = _parse_number(value)
    return int(number) if number is not None else 0


def _new_id() -> str:
    return uuid.uuid4().hex


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def validate_variants(drafts: Sequence[VariantDraft], limit: int = VARIANT_LIMIT) -> None:
    """
    Check a variant list before it is saved.

    Raises:
        VariantLimitExceededError: more than ``limit`` variants
        InvalidVariantError: cost, price or quantity missing, non-numeric or negative
        DuplicateNameError: two variants share a non-empty name
    """
    if len(drafts) > limit:
        raise VariantLimitExceededError(
            f"An item can have at most {limit} variants",
            details={"limit": limit, "count": len(drafts)}
        )

    seen = set()
    for draft in drafts:
        for field_name in ("cost", "price", "quantity"):
            number = _parse_number(getattr(draft, field_name))
            if number is None or number < 0:
                raise InvalidVariantError(
                    f"Variant '{draft.name}' needs a valid {field_name}",
                    details={"variant": draft.name, "field": field_name,
                             "value": getattr(draft, field_name)}
                )
        if _parse_number(draft.quantity) != int(_parse_number(draft.quantity)):
            raise InvalidVariantError(
                f"Variant '{draft.name}' quantity must be a whole number",
                details={"variant": draft.name, "field": "quantity", "value": draft.quantity}
            )

        if draft.name:
            if draft.name in seen:
                raise DuplicateNameError(
                    f"Variant name '{draft.name}' is used twice",
                    details={"variant": draft.name}
                )
            seen.add(draft.name)


def _validate_item_draft(draft: ItemDraft, limit: int) -> None:
    if not (draft.name or "").strip():
        raise InvalidNameError("Item name cannot be empty")

    if draft.has_variants:
        validate_variants(draft.variants, limit)
    elif _quantity_or_zero(draft.quantity) < 0:
        raise InvalidOperationError(
            "Quantity cannot be negative",
            details={"quantity": draft.quantity}
        )


def _build_variant(draft: VariantDraft, stock_map: Dict[str, int]) -> ProductVariant:
    return ProductVariant(
        id=draft.id or _new_id(),
        name=draft.name,
        sku=draft.sku or "",
        cost=_number_or_zero(draft.cost),
        price=_number_or_zero(draft.price),
        quantity=_quantity_or_zero(draft.quantity),
        stock_by_warehouse=stock_map,
    )


def _absorb_into_default(stock_map: Dict[str, int], default_id: str, total: int) -> Dict[str, int]:
    """
    Reconcile an edited total against a warehouse map.

    Non-default buckets are kept as they are and the default bucket takes
    the difference, floored at zero.
    """
    elsewhere = sum(qty for wid, qty in stock_map.items() if wid != default_id)
    updated = dict(stock_map)
    updated[default_id] = max(0, total - elsewhere)
    return updated


# ------------------------------------------------------------------
# Create / edit / delete
# ------------------------------------------------------------------

def create_item(
    draft: ItemDraft,
    warehouses: List[Warehouse],
    limit: int = VARIANT_LIMIT,
) -> ItemCreation:
    """
    Create a new item with all of its stock in the default warehouse.

    Args:
        draft: User input
        warehouses: Known warehouses (the default one receives the stock)
        limit: Maximum number of variants

    Returns:
        ItemCreation with the item and its ``IN_INITIAL`` ledger entries
    """
    _validate_item_draft(draft, limit)
    default_id = default_warehouse_id(warehouses)

    if draft.has_variants:
        variants = []
        for variant_draft in draft.variants:
            quantity = _quantity_or_zero(variant_draft.quantity)
            variants.append(_build_variant(variant_draft, {default_id: quantity}))
        stock = VariantStock(variants=variants)
    else:
        quantity = _quantity_or_zero(draft.quantity)
        stock = SimpleStock(quantity=quantity, stock_by_warehouse={default_id: quantity})

    item = InventoryItem(
        id=_new_id(),
        name=draft.name.strip(),
        sku=draft.sku or "",
        cost=_number_or_zero(draft.cost),
        price=_number_or_zero(draft.price),
        category=draft.category or "",
        stock=stock,
        last_updated=utc_now(),
    )
    return ItemCreation(item=item, transactions=initial_stock_transactions(item, warehouses))


def edit_item(
    existing: InventoryItem,
    draft: ItemDraft,
    warehouses: List[Warehouse],
    limit: int = VARIANT_LIMIT,
) -> InventoryItem:
    """
    Merge edited fields into an item.

    Editing never writes to the ledger. A changed total is absorbed by the
    default warehouse bucket (per variant in variant mode); stock held in
    other warehouses is preserved.
    """
    _validate_item_draft(draft, limit)
    default_id = default_warehouse_id(warehouses)
    previous_map = existing.stock.stock_by_warehouse

    if draft.has_variants:
        variants = []
        for variant_draft in draft.variants:
            current = existing.find_variant(variant_draft.id) if variant_draft.id else None
            current_map = current.stock_by_warehouse if current else {}
            quantity = _quantity_or_zero(variant_draft.quantity)
            variants.append(
                _build_variant(variant_draft, _absorb_into_default(current_map, default_id, quantity))
            )
        stock = VariantStock(variants=variants, stock_by_warehouse=dict(previous_map))
    else:
        quantity = _quantity_or_zero(draft.quantity)
        stock = SimpleStock(
            quantity=quantity,
            stock_by_warehouse=_absorb_into_default(previous_map, default_id, quantity),
        )

    return InventoryItem(
        id=existing.id,
        name=draft.name.strip(),
        sku=draft.sku or "",
        cost=_number_or_zero(draft.cost),
        price=_number_or_zero(draft.price),
        category=draft.category or "",
        stock=stock,
        last_updated=utc_now(),
        channel=existing.channel,
    )


def find_item(items: Iterable[InventoryItem], item_id: str) -> InventoryItem:
    for item in items:
        if item.id == item_id:
            return item
    raise ItemNotFoundError(f"Unknown item: {item_id}", details={"item_id": item_id})


def delete_item(items: List[InventoryItem], item_id: str) -> List[InventoryItem]:
    """Drop an item. Its ledger entries stay where they are."""
    find_item(items, item_id)
    return [item for item in items if item.id != item_id]


# ------------------------------------------------------------------
# Variant combination generator
# ------------------------------------------------------------------

def variant_sku(base_sku: str, parts: Sequence[str]) -> str:
    """``<base>-<SUFFIX>``; the suffix keeps only ``A-Z``, digits and dashes."""
    if not base_sku:
        return ""
    suffix = _SKU_STRIP.sub("", "-".join(parts).upper())
    return f"{base_sku}-{suffix}"


def generate_variants(
    base_sku: str,
    existing: Sequence[Any],
    sizes: Sequence[str] = (),
    colors: Sequence[str] = (),
    others: Sequence[str] = (),
    cost: Any = None,
    price: Any = None,
    limit: int = VARIANT_LIMIT,
) -> List[VariantDraft]:
    """
    Generate variant drafts for every combination of the selected values.

    Dimensions with no selection are left out of both the name and the SKU.
    Combinations whose name already exists (in ``existing`` or earlier in
    this batch) are skipped.

    Args:
        base_sku: Item SKU the suffixes are appended to
        existing: Variants already on the item (anything with a ``name``)
        sizes, colors, others: Selected values per dimension
        cost, price: Starting values; ``None`` forces the user to fill them in
        limit: Maximum number of variants after generation

    Returns:
        The new drafts, with zero quantity

    Raises:
        VariantLimitExceededError: the batch would push the item over ``limit``;
            nothing is generated in that case
    """
    dimensions = [list(values) for values in (sizes, colors, others) if values]
    if not dimensions:
        return []

    taken = {variant.name for variant in existing}
    generated: List[VariantDraft] = []

    for parts in itertools.product(*dimensions):
        name = VARIANT_NAME_SEPARATOR.join(parts)
        if name in taken:
            continue
        taken.add(name)
        generated.append(
            VariantDraft(
                id=_new_id(),
                name=name,
                sku=variant_sku(base_sku, parts),
                cost=cost,
                price=price,
                quantity=0,
            )
        )

    if len(existing) + len(generated) > limit:
        raise VariantLimitExceededError(
            f"Adding {len(generated)} variants would exceed the limit of {limit}",
            details={"limit": limit, "existing": len(existing), "requested": len(generated)}
        )

    return generated
