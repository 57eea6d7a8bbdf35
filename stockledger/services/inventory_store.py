"""Inventory store: the single holder of application state.

The store owns the item list, warehouses, catalogs and ledger. Every
mutating call computes the new item and its ledger entry first, then
commits both and notifies observers. ``PersistenceObserver`` is the
observer that persists state through a ``StorageProvider``. It only queues
the serialized value; writes happen when ``flush()`` runs, after the
operation has returned (a FastAPI background task, or the end of a CLI
command). Write failures are logged and never reach the caller, so the
in-memory state stays authoritative for the rest of the session.
"""

import threading
from collections import OrderedDict
from typing import Any, Callable, Dict, List, Optional

from ..models.product import InventoryItem, ItemDraft
from ..models.results import StockMovement
from ..models.transaction import Transaction
from ..models.warehouse import Warehouse
from ..storage.base import StorageKey, StorageProvider
from ..utils.config import AppConfig, get_config
from ..utils.logger import get_store_logger, get_error_logger
from . import ledger, products, reconciliation, warehouse_registry
from .catalogs import AttributeCatalogs, CatalogKind, add_value, remove_value
from .repair import repair_items

Observer = Callable[[StorageKey, Any], None]

CATALOG_KEYS = {
    CatalogKind.CATEGORIES: StorageKey.CATEGORIES,
    CatalogKind.SIZES: StorageKey.SIZES,
    CatalogKind.COLORS: StorageKey.COLORS,
    CatalogKind.OTHERS: StorageKey.OTHERS,
}


class PersistenceObserver:
    """Queues committed changes and writes them through a storage provider on flush."""

    def __init__(self, provider: StorageProvider):
        self.provider = provider
        self.logger = get_store_logger()
        self.error_logger = get_error_logger()
        self._pending: "OrderedDict[StorageKey, Any]" = OrderedDict()
        self._pending_lock = threading.Lock()
        self._write_lock = threading.Lock()

    def __call__(self, key: StorageKey, value: Any) -> None:
        """Queue a write. Only the latest value per key is kept."""
        key = StorageKey(key)
        with self._pending_lock:
            self._pending.pop(key, None)
            self._pending[key] = value

    @property
    def pending(self) -> int:
        with self._pending_lock:
            return len(self._pending)

    def flush(self) -> int:
        """
        Write everything queued so far.

        Returns:
            Number of keys handed to the provider (failed ones included)
        """
        with self._write_lock:
            with self._pending_lock:
                batch = list(self._pending.items())
                self._pending.clear()
            for key, value in batch:
                self._write(key, value)
        if batch:
            self.logger.debug(f"Flushed {len(batch)} pending write(s)")
        return len(batch)

    def _write(self, key: StorageKey, value: Any) -> None:
        try:
            self.provider.save(key, value)
        except Exception as e:
            self.error_logger.error(f"Failed to persist {StorageKey(key).value}: {str(e)}", exc_info=True)
            self.logger.warning(f"Keeping in-memory state for {StorageKey(key).value} after failed save")


def _load_records(provider: StorageProvider, key: StorageKey, parse, logger) -> List[Any]:
    """Load a list of records, skipping entries that cannot be parsed."""
    raw = provider.load(key, [])
    if not isinstance(raw, list):
        logger.warning(f"Stored {key.value} is not a list, ignoring it")
        return []

    records = []
    for entry in raw:
        try:
            records.append(parse(entry))
        except (KeyError, TypeError, ValueError, AttributeError, OverflowError) as e:
            logger.warning(f"Skipping malformed {key.value} record: {str(e)}")
    return records


def _load_catalog(provider: StorageProvider, key: StorageKey, default: List[str]) -> List[str]:
    raw = provider.load(key, list(default))
    if not isinstance(raw, list):
        return list(default)
    return [str(value) for value in raw]


class InventoryStore:
    """Explicit application state with observer-driven persistence."""

    def __init__(
        self,
        warehouses: List[Warehouse],
        items: Optional[List[InventoryItem]] = None,
        transactions: Optional[List[Transaction]] = None,
        catalogs: Optional[AttributeCatalogs] = None,
        config: Optional[AppConfig] = None,
    ):
        self.config = config or get_config()
        self.logger = get_store_logger()
        self.error_logger = get_error_logger()

        self.warehouses: List[Warehouse] = list(warehouses)
        self.items: List[InventoryItem] = list(items or [])
        self.transactions: List[Transaction] = list(transactions or [])
        self.catalogs = catalogs or AttributeCatalogs()
        self.repaired_count = 0
        self.persistence: Optional[PersistenceObserver] = None
        self._observers: List[Observer] = []

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, provider: StorageProvider, config: Optional[AppConfig] = None) -> "InventoryStore":
        """
        Load state from a provider.

        Warehouses come first so the default is known, then catalogs and the
        ledger, then items, which go through the repair pass before anyone
        sees them. Fixes made while loading are written back immediately.
        """
        config = config or get_config()
        logger = get_store_logger()
        persist = PersistenceObserver(provider)

        warehouses = _load_records(provider, StorageKey.WAREHOUSES, Warehouse.from_dict, logger)
        warehouses, warehouses_changed = warehouse_registry.ensure_default(
            warehouses,
            default_id=config.inventory.default_warehouse_id,
            default_name=config.inventory.default_warehouse_name,
        )
        if warehouses_changed:
            logger.info("Default warehouse was missing or ambiguous; saving fixed warehouse list")
            persist(StorageKey.WAREHOUSES, [w.to_dict() for w in warehouses])

        defaults = config.catalogs
        catalogs = AttributeCatalogs(
            categories=_load_catalog(provider, StorageKey.CATEGORIES, defaults.categories),
            sizes=_load_catalog(provider, StorageKey.SIZES, defaults.sizes),
            colors=_load_catalog(provider, StorageKey.COLORS, defaults.colors),
            others=_load_catalog(provider, StorageKey.OTHERS, defaults.others),
        )

        transactions = _load_records(provider, StorageKey.TRANSACTIONS, Transaction.from_dict, logger)

        items = _load_records(provider, StorageKey.INVENTORY, InventoryItem.from_dict, logger)
        result = repair_items(items, warehouse_registry.default_warehouse_id(warehouses))
        if result.changed:
            logger.info(f"Auto-repair assigned orphaned stock for {result.repaired_count} item(s)")
            persist(StorageKey.INVENTORY, [item.to_dict() for item in result.items])

        store = cls(
            warehouses=warehouses,
            items=result.items,
            transactions=transactions,
            catalogs=catalogs,
            config=config,
        )
        store.repaired_count = result.repaired_count
        store.persistence = persist
        store.subscribe(persist)
        persist.flush()
        logger.info(
            f"Loaded {len(store.items)} items, {len(store.warehouses)} warehouses, "
            f"{len(store.transactions)} transactions"
        )
        return store

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        self._observers.remove(observer)

    def serialize(self, key: StorageKey) -> Any:
        """JSON-ready value of one persisted collection."""
        key = StorageKey(key)
        if key == StorageKey.INVENTORY:
            return [item.to_dict() for item in self.items]
        if key == StorageKey.TRANSACTIONS:
            return [t.to_dict() for t in self.transactions]
        if key == StorageKey.WAREHOUSES:
            return [w.to_dict() for w in self.warehouses]
        for kind, catalog_key in CATALOG_KEYS.items():
            if catalog_key == key:
                return list(self.catalogs.get(kind))
        raise ValueError(f"Unknown storage key: {key}")

    @property
    def pending_writes(self) -> int:
        return self.persistence.pending if self.persistence else 0

    def flush(self) -> int:
        """Write queued changes through the persistence observer, if one is attached."""
        if self.persistence is None:
            return 0
        return self.persistence.flush()

    def _notify(self, *keys: StorageKey) -> None:
        for key in keys:
            value = self.serialize(key)
            for observer in list(self._observers):
                observer(key, value)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def strict_stock(self) -> bool:
        return self.config.inventory.strict_stock

    @property
    def variant_limit(self) -> int:
        return self.config.inventory.variant_limit

    def get_item(self, item_id: str) -> InventoryItem:
        return products.find_item(self.items, item_id)

    def default_warehouse(self) -> Warehouse:
        return warehouse_registry.default_warehouse(self.warehouses)

    # ------------------------------------------------------------------
    # Items
    # ------------------------------------------------------------------

    def add_item(self, draft: ItemDraft) -> InventoryItem:
        """Create an item and log its initial stock."""
        creation = products.create_item(draft, self.warehouses, self.variant_limit)

        self.items = self.items + [creation.item]
        self.transactions = self.transactions + creation.transactions
        self.logger.info(
            f"Created item '{creation.item.name}' ({creation.item.id}) "
            f"with {creation.item.quantity} units"
        )
        self._notify(StorageKey.INVENTORY, StorageKey.TRANSACTIONS)
        return creation.item

    def edit_item(self, item_id: str, draft: ItemDraft) -> InventoryItem:
        existing = self.get_item(item_id)
        updated = products.edit_item(existing, draft, self.warehouses, self.variant_limit)

        self._replace_item(updated)
        self.logger.info(f"Edited item '{updated.name}' ({updated.id})")
        self._notify(StorageKey.INVENTORY)
        return updated

    def delete_item(self, item_id: str) -> None:
        self.items = products.delete_item(self.items, item_id)
        self.logger.info(f"Deleted item {item_id}")
        self._notify(StorageKey.INVENTORY)

    def _replace_item(self, updated: InventoryItem) -> None:
        self.items = [updated if item.id == updated.id else item for item in self.items]

    # ------------------------------------------------------------------
    # Stock movements
    # ------------------------------------------------------------------

    def _commit(self, movement: StockMovement, action: str) -> StockMovement:
        if movement.is_noop:
            self.logger.debug(f"{action} on {movement.item.id} ignored: quantity not positive")
            return movement

        self._replace_item(movement.item)
        self.transactions = ledger.append(self.transactions, movement.transaction)
        transaction = movement.transaction
        self.logger.info(
            f"{action}: {transaction.quantity} x {transaction.item_name}"
            f"{' (' + transaction.variant_name + ')' if transaction.variant_name else ''}"
            f" @ {transaction.warehouse_name}",
            extra={"transaction_id": transaction.id},
        )
        self._notify(StorageKey.INVENTORY, StorageKey.TRANSACTIONS)
        return movement

    def sell(self, item_id: str, variant_id: Optional[str], warehouse_id: str, quantity: int) -> StockMovement:
        movement = reconciliation.sell(
            self.get_item(item_id), variant_id, warehouse_id, quantity,
            self.warehouses, strict=self.strict_stock,
        )
        return self._commit(movement, "Sale")

    def restock(
        self,
        item_id: str,
        variant_id: Optional[str],
        warehouse_id: str,
        quantity: int,
        unit_cost: float,
    ) -> StockMovement:
        movement = reconciliation.restock(
            self.get_item(item_id), variant_id, warehouse_id, quantity, unit_cost, self.warehouses,
        )
        return self._commit(movement, "Restock")

    def transfer(
        self,
        item_id: str,
        variant_id: Optional[str],
        from_id: str,
        to_id: str,
        quantity: int,
    ) -> StockMovement:
        movement = reconciliation.transfer(
            self.get_item(item_id), variant_id, from_id, to_id, quantity,
            self.warehouses, strict=self.strict_stock,
        )
        return self._commit(movement, "Transfer")

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def delete_transaction(self, transaction_id: str) -> None:
        """Remove a history entry; stock is left exactly as it is."""
        self.transactions = ledger.delete_transaction(self.transactions, transaction_id)
        self.logger.info(f"Deleted transaction {transaction_id}")
        self._notify(StorageKey.TRANSACTIONS)

    # ------------------------------------------------------------------
    # Warehouses and catalogs
    # ------------------------------------------------------------------

    def add_warehouse(self, name: str) -> Warehouse:
        self.warehouses = warehouse_registry.add_warehouse(self.warehouses, name)
        created = self.warehouses[-1]
        self.logger.info(f"Added warehouse '{created.name}' ({created.id})")
        self._notify(StorageKey.WAREHOUSES)
        return created

    def remove_warehouse(self, warehouse_id: str) -> None:
        self.warehouses = warehouse_registry.remove_warehouse(self.warehouses, warehouse_id, self.items)
        self.logger.info(f"Removed warehouse {warehouse_id}")
        self._notify(StorageKey.WAREHOUSES)

    def add_catalog_value(self, kind: CatalogKind, value: str) -> List[str]:
        kind = CatalogKind(kind)
        values = add_value(self.catalogs.get(kind), value)
        if values != self.catalogs.get(kind):
            self.catalogs = self.catalogs.with_values(kind, values)
            self._notify(CATALOG_KEYS[kind])
        return values

    def remove_catalog_value(self, kind: CatalogKind, value: str) -> List[str]:
        kind = CatalogKind(kind)
        values = remove_value(self.catalogs.get(kind), value)
        if values != self.catalogs.get(kind):
            self.catalogs = self.catalogs.with_values(kind, values)
            self._notify(CATALOG_KEYS[kind])
        return values

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data copy of the state, e.g. as context for an assistant."""
        return {
            "items": self.serialize(StorageKey.INVENTORY),
            "transactions": self.serialize(StorageKey.TRANSACTIONS),
            "warehouses": self.serialize(StorageKey.WAREHOUSES),
            "categories": list(self.catalogs.categories),
        }
