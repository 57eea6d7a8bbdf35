"""Key-value persistence provider contract."""

import copy
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict


class StorageKey(str, Enum):
    """Logical names of the persisted collections."""

    INVENTORY = "inventory_app_v2"
    CATEGORIES = "inventory_categories_v1"
    SIZES = "inventory_sizes_v1"
    COLORS = "inventory_colors_v1"
    OTHERS = "inventory_others_v1"
    TRANSACTIONS = "inventory_transactions_v2"
    WAREHOUSES = "inventory_warehouses_v1"


class StorageProvider(ABC):
    """Loads and saves JSON-compatible values by key."""

    @abstractmethod
    def load(self, key: StorageKey, default: Any = None) -> Any:
        """Return the stored value, or ``default`` when nothing usable is stored."""

    @abstractmethod
    def save(self, key: StorageKey, value: Any) -> None:
        """Store ``value`` under ``key``."""


class MemoryStorage(StorageProvider):
    """In-process provider, used by tests and dry runs."""

    def __init__(self, initial: Dict[str, Any] = None):
        self.data: Dict[str, Any] = {}
        for key, value in (initial or {}).items():
            self.data[StorageKey(key).value] = copy.deepcopy(value)
        self.save_count = 0

    def load(self, key: StorageKey, default: Any = None) -> Any:
        key = StorageKey(key)
        if key.value not in self.data:
            return default
        return copy.deepcopy(self.data[key.value])

    def save(self, key: StorageKey, value: Any) -> None:
        self.data[StorageKey(key).value] = copy.deepcopy(value)
        self.save_count += 1
