"""Ledger transaction data model."""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any

from ..utils.clock import utc_now, to_epoch_ms, parse_timestamp


class TransactionType(str, Enum):
    """Kinds of stock movement recorded in the ledger."""

    IN_INITIAL = "IN_INITIAL"
    IN_RESTOCK = "IN_RESTOCK"
    OUT_SALE = "OUT_SALE"
    TRANSFER = "TRANSFER"


def compute_total(kind: TransactionType, quantity: int, unit_cost: float, unit_price: float) -> float:
    """Ledger value of a movement: sales at price, transfers at zero, stock-in at cost."""
    if kind == TransactionType.OUT_SALE:
        return unit_price * quantity
    if kind == TransactionType.TRANSFER:
        return 0
    return unit_cost * quantity


@dataclass(frozen=True)
class Transaction:
    """Immutable record of a single stock movement.

    Items and variants are referenced by id only, so a transaction outlives
    the item it describes.
    """

    id: str
    date: datetime
    item_id: str
    item_name: str
    sku: str
    quantity: int
    unit_cost: float
    unit_price: float
    total: float
    type: TransactionType
    variant_id: Optional[str] = None
    variant_name: Optional[str] = None
    from_warehouse_id: Optional[str] = None
    to_warehouse_id: Optional[str] = None
    warehouse_name: Optional[str] = None

    @classmethod
    def create(
        cls,
        kind: TransactionType,
        item_id: str,
        item_name: str,
        sku: str,
        quantity: int,
        unit_cost: float,
        unit_price: float,
        variant_id: Optional[str] = None,
        variant_name: Optional[str] = None,
        from_warehouse_id: Optional[str] = None,
        to_warehouse_id: Optional[str] = None,
        warehouse_name: Optional[str] = None,
        date: Optional[datetime] = None,
    ) -> "Transaction":
        """Build a new transaction with a fresh id, timestamp and computed total."""
        return cls(
            id=uuid.uuid4().hex,
            date=date or utc_now(),
            item_id=item_id,
            item_name=item_name,
            sku=sku,
            quantity=quantity,
            unit_cost=unit_cost,
            unit_price=unit_price,
            total=compute_total(kind, quantity, unit_cost, unit_price),
            type=kind,
            variant_id=variant_id,
            variant_name=variant_name,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            warehouse_name=warehouse_name,
        )

    @property
    def is_sale(self) -> bool:
        return self.type == TransactionType.OUT_SALE

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the stored record shape, omitting unset optional fields."""
        data: Dict[str, Any] = {
            "id": self.id,
            "date": to_epoch_ms(self.date),
            "itemId": self.item_id,
            "itemName": self.item_name,
            "sku": self.sku,
            "quantity": self.quantity,
            "unitCost": self.unit_cost,
            "unitPrice": self.unit_price,
            "total": self.total,
            "type": self.type.value,
        }
        optional = {
            "variantId": self.variant_id,
            "variantName": self.variant_name,
            "fromWarehouseId": self.from_warehouse_id,
            "toWarehouseId": self.to_warehouse_id,
            "warehouseName": self.warehouse_name,
        }
        data.update({key: value for key, value in optional.items() if value is not None})
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Create instance from a stored record."""
        return cls(
            id=str(data["id"]),
            date=parse_timestamp(data.get("date")) or utc_now(),
            item_id=str(data["itemId"]),
            item_name=data.get("itemName") or "",
            sku=data.get("sku") or "",
            quantity=int(data.get("quantity") or 0),
            unit_cost=float(data.get("unitCost") or 0),
            unit_price=float(data.get("unitPrice") or 0),
            total=float(data.get("total") or 0),
            type=TransactionType(data["type"]),
            variant_id=data.get("variantId"),
            variant_name=data.get("variantName"),
            from_warehouse_id=data.get("fromWarehouseId"),
            to_warehouse_id=data.get("toWarehouseId"),
            warehouse_name=data.get("warehouseName"),
        )
