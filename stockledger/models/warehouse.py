"""Warehouse data model."""

from dataclasses import dataclass
from typing import Dict, Any


@dataclass
class Warehouse:
    """A named stock-holding location."""

    id: str
    name: str
    is_default: bool = False

    def __post_init__(self):
        if not self.id:
            raise ValueError("Warehouse id cannot be empty")

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "name": self.name}
        if self.is_default:
            data["isDefault"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Warehouse":
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            is_default=bool(data.get("isDefault", False)),
        )
