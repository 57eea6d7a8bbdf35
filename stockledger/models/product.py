"""Product, variant and stock-mode data models.

An item is either in *simple* mode, where the item-level warehouse map is
authoritative, or in *variant* mode, where each variant carries its own map
and the item total is derived from the variants. The two modes are modelled
as ``SimpleStock`` and ``VariantStock``; ``InventoryItem.stock`` holds one of
them.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any, List, Union

from ..utils.clock import utc_now, to_epoch_ms, parse_timestamp


def _coerce_stock_map(data: Optional[Dict[str, Any]]) -> Dict[str, int]:
    """Normalize a stored ``stockByWarehouse`` map to ``{warehouse_id: int}``."""
    if not data:
        return {}
    return {str(key): int(value or 0) for key, value in data.items()}


@dataclass
class ProductVariant:
    """A purchasable sub-configuration of a product."""

    id: str
    name: str
    sku: str
    cost: float
    price: float
    quantity: int
    stock_by_warehouse: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "cost": self.cost,
            "price": self.price,
            "quantity": self.quantity,
            "stockByWarehouse": dict(self.stock_by_warehouse),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductVariant":
        """Create instance from dictionary."""
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            sku=data.get("sku") or "",
            cost=float(data.get("cost") or 0),
            price=float(data.get("price") or 0),
            quantity=int(data.get("quantity") or 0),
            stock_by_warehouse=_coerce_stock_map(data.get("stockByWarehouse")),
        )


@dataclass
class SimpleStock:
    """Simple mode: the declared total and its warehouse distribution."""

    quantity: int = 0
    stock_by_warehouse: Dict[str, int] = field(default_factory=dict)


@dataclass
class VariantStock:
    """Variant mode: stock lives on the variants.

    ``stock_by_warehouse`` is the stale item-level map, kept only so that
    stored records round-trip unchanged.
    """

    variants: List[ProductVariant] = field(default_factory=list)
    stock_by_warehouse: Dict[str, int] = field(default_factory=dict)

    @property
    def quantity(self) -> int:
        return sum(variant.quantity for variant in self.variants)


ItemStock = Union[SimpleStock, VariantStock]


@dataclass
class InventoryItem:
    """Represents a product in the inventory."""

    id: str
    name: str
    sku: str
    cost: float
    price: float
    category: str
    stock: ItemStock = field(default_factory=SimpleStock)
    last_updated: Optional[datetime] = None
    channel: str = "MAIN"

    def __post_init__(self):
        """Validate and normalize data."""
        if not self.id:
            raise ValueError("Item id cannot be empty")

        if self.last_updated is None:
            self.last_updated = utc_now()

    @property
    def quantity(self) -> int:
        return self.stock.quantity

    @property
    def has_variants(self) -> bool:
        return isinstance(self.stock, VariantStock)

    @property
    def variants(self) -> List[ProductVariant]:
        if isinstance(self.stock, VariantStock):
            return self.stock.variants
        return []

    @property
    def stock_by_warehouse(self) -> Dict[str, int]:
        return self.stock.stock_by_warehouse

    def find_variant(self, variant_id: Optional[str]) -> Optional[ProductVariant]:
        """Look up a variant by id."""
        for variant in self.variants:
            if variant.id == variant_id:
                return variant
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored record shape."""
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "cost": self.cost,
            "price": self.price,
            "quantity": self.quantity,
            "category": self.category,
            "channel": self.channel,
            "variants": [variant.to_dict() for variant in self.variants],
            "stockByWarehouse": dict(self.stock_by_warehouse),
            "lastUpdated": to_epoch_ms(self.last_updated) if self.last_updated else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "InventoryItem":
        """Create instance from a stored record.

        A non-empty ``variants`` list selects variant mode; anything else
        (missing, ``null`` or empty) loads in simple mode.
        """
        stock_map = _coerce_stock_map(data.get("stockByWarehouse"))
        raw_variants = data.get("variants") or []

        if raw_variants:
            stock: ItemStock = VariantStock(
                variants=[ProductVariant.from_dict(v) for v in raw_variants],
                stock_by_warehouse=stock_map,
            )
        else:
            stock = SimpleStock(
                quantity=int(data.get("quantity") or 0),
                stock_by_warehouse=stock_map,
            )

        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            sku=data.get("sku") or "",
            cost=float(data.get("cost") or 0),
            price=float(data.get("price") or 0),
            category=data.get("category") or "",
            stock=stock,
            last_updated=parse_timestamp(data.get("lastUpdated")),
            channel=data.get("channel") or "MAIN",
        )


@dataclass
class VariantDraft:
    """User input for one variant. Numbers may still be unparsed."""

    name: str
    sku: str = ""
    cost: Any = None
    price: Any = None
    quantity: Any = 0
    id: Optional[str] = None

    @classmethod
    def from_variant(cls, variant: ProductVariant) -> "VariantDraft":
        return cls(
            id=variant.id,
            name=variant.name,
            sku=variant.sku,
            cost=variant.cost,
            price=variant.price,
            quantity=variant.quantity,
        )


@dataclass
class ItemDraft:
    """User input for creating or editing an item."""

    name: str
    sku: str = ""
    category: str = ""
    cost: Any = 0
    price: Any = 0
    quantity: Any = 0
    variants: List[VariantDraft] = field(default_factory=list)

    @property
    def has_variants(self) -> bool:
        return len(self.variants) > 0

    @classmethod
    def from_item(cls, item: InventoryItem) -> "ItemDraft":
        """Pre-fill a draft from an existing item, as an edit form would."""
        return cls(
            name=item.name,
            sku=item.sku,
            category=item.category,
            cost=item.cost,
            price=item.price,
            quantity=item.quantity,
            variants=[VariantDraft.from_variant(v) for v in item.variants],
        )
