"""Attribute catalogs: suggestion lists for categories and variant dimensions."""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import List


class CatalogKind(str, Enum):
    CATEGORIES = "categories"
    SIZES = "sizes"
    COLORS = "colors"
    OTHERS = "others"


def add_value(values: List[str], value: str) -> List[str]:
    """Return ``values`` plus ``value``; unchanged when it is blank or already present."""
    trimmed = (value or "").strip()
    if not trimmed or trimmed in values:
        return list(values)
    return list(values) + [trimmed]


def remove_value(values: List[str], value: str) -> List[str]:
    return [v for v in values if v != value]


@dataclass
class AttributeCatalogs:
    """The four independent vocabularies. Nothing references them by key."""

    categories: List[str] = field(default_factory=list)
    sizes: List[str] = field(default_factory=list)
    colors: List[str] = field(default_factory=list)
    others: List[str] = field(default_factory=list)

    def get(self, kind: CatalogKind) -> List[str]:
        return getattr(self, CatalogKind(kind).value)

    def with_values(self, kind: CatalogKind, values: List[str]) -> "AttributeCatalogs":
        return replace(self, **{CatalogKind(kind).value: list(values)})
