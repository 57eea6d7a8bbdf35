"""FastAPI server exposing the inventory store to a presentation layer.

Handlers are ``async`` so every request runs on the event loop thread and
store transitions never interleave. Writes queued by a transition are
flushed in a background task once the response is out.
"""

from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, Request, HTTPException, BackgroundTasks
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, Field

from .models.product import ItemDraft, VariantDraft
from .models.results import StockMovement
from .services import ledger, queries
from .services.export import export_filename, items_to_csv
from .services.inventory_store import InventoryStore
from .storage.json_storage import JsonFileStorage
from .utils.config import get_config
from .utils.exceptions import InventoryError
from .utils.logger import get_api_logger

config = get_config()
logger = get_api_logger()

NOT_FOUND_CODES = {"ITEM_NOT_FOUND", "TRANSACTION_NOT_FOUND", "UNKNOWN_WAREHOUSE", "VARIANT_NOT_FOUND"}
CONFLICT_CODES = {
    "DUPLICATE_NAME",
    "CANNOT_DELETE_DEFAULT",
    "WAREHOUSE_NOT_EMPTY",
    "INSUFFICIENT_STOCK",
    "VARIANT_LIMIT_EXCEEDED",
}


# ------------------------------------------------------------------
# Request bodies
# ------------------------------------------------------------------

class VariantPayload(BaseModel):
    id: Optional[str] = None
    name: str
    sku: str = ""
    cost: Optional[float] = None
    price: Optional[float] = None
    quantity: Optional[float] = 0

    def to_draft(self) -> VariantDraft:
        return VariantDraft(
            id=self.id,
            name=self.name,
            sku=self.sku,
            cost=self.cost,
            price=self.price,
            quantity=self.quantity,
        )


class ItemPayload(BaseModel):
    name: str
    sku: str = ""
    category: str = ""
    cost: float = 0
    price: float = 0
    quantity: int = 0
    variants: List[VariantPayload] = Field(default_factory=list)

    def to_draft(self) -> ItemDraft:
        return ItemDraft(
            name=self.name,
            sku=self.sku,
            category=self.category,
            cost=self.cost,
            price=self.price,
            quantity=self.quantity,
            variants=[v.to_draft() for v in self.variants],
        )


class SalePayload(BaseModel):
    warehouse_id: str
    quantity: int
    variant_id: Optional[str] = None


class RestockPayload(BaseModel):
    warehouse_id: str
    quantity: int
    unit_cost: Optional[float] = None
    variant_id: Optional[str] = None


class TransferPayload(BaseModel):
    from_warehouse_id: str
    to_warehouse_id: str
    quantity: int
    variant_id: Optional[str] = None


class WarehousePayload(BaseModel):
    name: str


def _movement_response(movement: StockMovement) -> dict:
    return {
        "item": movement.item.to_dict(),
        "transaction": movement.transaction.to_dict() if movement.transaction else None,
    }


def _persist_later(background_tasks: BackgroundTasks, store: InventoryStore) -> None:
    """Write the committed change after the response has been sent."""
    background_tasks.add_task(store.flush)


def _default_unit_cost(store: InventoryStore, item_id: str, variant_id: Optional[str]) -> float:
    """Restocks default to the stored cost of the variant or item."""
    item = store.get_item(item_id)
    variant = item.find_variant(variant_id) if variant_id else None
    return variant.cost if variant else item.cost


# ------------------------------------------------------------------
# App factory
# ------------------------------------------------------------------

def create_app(store: Optional[InventoryStore] = None) -> FastAPI:
    """
    Build the API.

    Args:
        store: Store to serve; when omitted it is loaded from the JSON data
            directory on startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("=" * 60)
        logger.info("Stock Ledger API Starting")
        logger.info("=" * 60)
        logger.info(f"Environment:   {config.env.environment}")
        logger.info(f"Data dir:      {config.data_dir}")
        logger.info(f"Strict stock:  {config.inventory.strict_stock}")
        logger.info("=" * 60)

        if app.state.store is None:
            app.state.store = InventoryStore.load(JsonFileStorage())

        yield

        app.state.store.flush()
        logger.info("Stock Ledger API shut down.")

    app = FastAPI(
        title=config.api.title,
        description="Multi-warehouse stock ledger",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.store = store

    def current_store(request: Request) -> InventoryStore:
        return request.app.state.store

    @app.get("/")
    async def root():
        return {
            "service": config.api.title,
            "version": "1.0.0",
            "status": "running"
        }

    @app.get("/health")
    async def health_check():
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": config.env.environment
        }

    # -- items ---------------------------------------------------------

    @app.get("/items")
    async def list_items(
        request: Request,
        search: str = "",
        sort: queries.SortField = queries.SortField.NAME,
        order: queries.SortOrder = queries.SortOrder.ASC,
    ):
        store = current_store(request)
        items = queries.sort_items(queries.search_items(store.items, search), sort, order)
        return {
            "items": [item.to_dict() for item in items],
            "total_stock": queries.total_stock(store.items),
            "inventory_value": round(queries.inventory_value(store.items), 2),
        }

    @app.get("/items/{item_id}")
    async def get_item(request: Request, item_id: str):
        store = current_store(request)
        item = store.get_item(item_id)
        return {
            "item": item.to_dict(),
            "stock": queries.stock_breakdown(item, store.warehouses),
        }

    @app.post("/items", status_code=201)
    async def create_item(request: Request, payload: ItemPayload, background_tasks: BackgroundTasks):
        store = current_store(request)
        item = store.add_item(payload.to_draft())
        _persist_later(background_tasks, store)
        return {"item": item.to_dict()}

    @app.put("/items/{item_id}")
    async def update_item(request: Request, item_id: str, payload: ItemPayload, background_tasks: BackgroundTasks):
        store = current_store(request)
        item = store.edit_item(item_id, payload.to_draft())
        _persist_later(background_tasks, store)
        return {"item": item.to_dict()}

    @app.delete("/items/{item_id}")
    async def delete_item(request: Request, item_id: str, background_tasks: BackgroundTasks):
        store = current_store(request)
        store.delete_item(item_id)
        _persist_later(background_tasks, store)
        return {"status": "deleted", "item_id": item_id}

    # -- stock movements -----------------------------------------------

    @app.post("/items/{item_id}/sale")
    async def sell(request: Request, item_id: str, payload: SalePayload, background_tasks: BackgroundTasks):
        store = current_store(request)
        movement = store.sell(item_id, payload.variant_id, payload.warehouse_id, payload.quantity)
        _persist_later(background_tasks, store)
        return _movement_response(movement)

    @app.post("/items/{item_id}/restock")
    async def restock(request: Request, item_id: str, payload: RestockPayload, background_tasks: BackgroundTasks):
        store = current_store(request)
        unit_cost = payload.unit_cost
        if unit_cost is None:
            unit_cost = _default_unit_cost(store, item_id, payload.variant_id)
        movement = store.restock(
            item_id, payload.variant_id, payload.warehouse_id, payload.quantity, unit_cost
        )
        _persist_later(background_tasks, store)
        return _movement_response(movement)

    @app.post("/items/{item_id}/transfer")
    async def transfer(request: Request, item_id: str, payload: TransferPayload, background_tasks: BackgroundTasks):
        store = current_store(request)
        movement = store.transfer(
            item_id,
            payload.variant_id,
            payload.from_warehouse_id,
            payload.to_warehouse_id,
            payload.quantity,
        )
        _persist_later(background_tasks, store)
        return _movement_response(movement)

    # -- ledger --------------------------------------------------------

    @app.get("/transactions")
    async def list_transactions(
        request: Request,
        start: Optional[date] = None,
        end: Optional[date] = None,
        kind: ledger.LedgerFilter = ledger.LedgerFilter.ALL,
        item_id: Optional[str] = None,
    ):
        selected = ledger.filter_transactions(current_store(request).transactions, start, end, kind, item_id)
        return {"transactions": [t.to_dict() for t in selected]}

    @app.delete("/transactions/{transaction_id}")
    async def delete_transaction(request: Request, transaction_id: str, background_tasks: BackgroundTasks):
        store = current_store(request)
        store.delete_transaction(transaction_id)
        _persist_later(background_tasks, store)
        return {"status": "deleted", "transaction_id": transaction_id}

    @app.get("/report")
    async def report(
        request: Request,
        start: Optional[date] = None,
        end: Optional[date] = None,
        kind: ledger.LedgerFilter = ledger.LedgerFilter.ALL,
        item_id: Optional[str] = None,
    ):
        selected = ledger.filter_transactions(current_store(request).transactions, start, end, kind, item_id)
        return {
            "summary": ledger.summarize(selected).to_dict(),
            "transactions": [t.to_dict() for t in selected],
        }

    # -- warehouses ----------------------------------------------------

    @app.get("/warehouses")
    async def list_warehouses(request: Request):
        return {"warehouses": [w.to_dict() for w in current_store(request).warehouses]}

    @app.post("/warehouses", status_code=201)
    async def add_warehouse(request: Request, payload: WarehousePayload, background_tasks: BackgroundTasks):
        store = current_store(request)
        warehouse = store.add_warehouse(payload.name)
        _persist_later(background_tasks, store)
        return {"warehouse": warehouse.to_dict()}

    @app.delete("/warehouses/{warehouse_id}")
    async def remove_warehouse(request: Request, warehouse_id: str, background_tasks: BackgroundTasks):
        store = current_store(request)
        store.remove_warehouse(warehouse_id)
        _persist_later(background_tasks, store)
        return {"status": "deleted", "warehouse_id": warehouse_id}

    # -- read-only exports ---------------------------------------------

    @app.get("/snapshot")
    async def snapshot(request: Request):
        return current_store(request).snapshot()

    @app.get("/export.csv")
    async def export_csv(request: Request):
        content = items_to_csv(current_store(request).items)
        return Response(
            content=content,
            media_type="text/csv; charset=utf-8",
            headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
        )

    # -- exception handlers --------------------------------------------

    @app.exception_handler(InventoryError)
    async def inventory_error_handler(request: Request, exc: InventoryError):
        if exc.code in NOT_FOUND_CODES:
            status_code = 404
        elif exc.code in CONFLICT_CODES:
            status_code = 409
        else:
            status_code = 400
        logger.warning(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(status_code=status_code, content=exc.to_dict())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        logger.warning(f"HTTP {exc.status_code}: {exc.detail}")
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": exc.detail,
                "status_code": exc.status_code
            }
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "message": str(exc) if not config.is_production else "An error occurred"
            }
        )

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        create_app(),
        host=config.api.host,
        port=config.env.port,
    )
