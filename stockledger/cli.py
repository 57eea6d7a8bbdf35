"""Command-line interface for the stock ledger."""

import json
import sys
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Optional, Tuple

import click

from .models.product import ItemDraft
from .models.results import StockMovement
from .services import ledger, queries
from .services.catalogs import CatalogKind
from .services.export import write_csv_export
from .services.inventory_store import InventoryStore
from .services.products import generate_variants
from .storage.json_storage import JsonFileStorage
from .utils.config import get_config
from .utils.exceptions import BaseAppException, InventoryError


def _open_store(ctx: click.Context) -> InventoryStore:
    """Load the store; queued writes are flushed when the command finishes."""
    data_dir = ctx.obj.get("data_dir") if ctx.obj else None
    store = InventoryStore.load(JsonFileStorage(data_dir))
    ctx.call_on_close(store.flush)
    return store


@contextmanager
def _reported_errors():
    """Print domain errors in red and exit with status 1."""
    try:
        yield
    except InventoryError as e:
        click.echo(click.style(f"✗ {e.code}: {e.message}", fg="red"), err=True)
        sys.exit(1)
    except BaseAppException as e:
        click.echo(click.style(f"✗ Error: {e.message}", fg="red"), err=True)
        sys.exit(1)


def _echo_movement(movement: StockMovement, verb: str):
    if movement.is_noop:
        click.echo(click.style("Nothing to do: quantity must be positive", fg="yellow"))
        return
    transaction = movement.transaction
    label = transaction.item_name
    if transaction.variant_name:
        label += f" ({transaction.variant_name})"
    click.echo(click.style(f"✓ {verb} {transaction.quantity} x {label} @ {transaction.warehouse_name}", fg="green"))
    click.echo(f"  Item total now: {movement.item.quantity}")


def _day(value: Optional[datetime]):
    return value.date() if value else None


@click.group()
@click.version_option(version="1.0.0")
@click.option(
    "--data-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Directory holding the JSON store (defaults to INVENTORY_DATA_DIR)"
)
@click.pass_context
def cli(ctx: click.Context, data_dir: Optional[Path]):
    """
    Stock Ledger CLI.

    Track products and variants across warehouses with a reconciled
    transaction history.
    """
    ctx.ensure_object(dict)
    ctx.obj["data_dir"] = data_dir


# ------------------------------------------------------------------
# Items
# ------------------------------------------------------------------

@cli.command("items")
@click.option("--search", default="", help="Filter by name, SKU or category")
@click.option("--sort", "sort_field", type=click.Choice([f.value for f in queries.SortField]), default="name")
@click.option("--desc", is_flag=True, help="Sort descending")
@click.pass_context
def list_items(ctx: click.Context, search: str, sort_field: str, desc: bool):
    """List items with their totals."""
    store = _open_store(ctx)
    items = queries.sort_items(
        queries.search_items(store.items, search),
        sort_field,
        queries.SortOrder.DESC if desc else queries.SortOrder.ASC,
    )

    if not items:
        click.echo("No items found.")
        return

    for item in items:
        mode = f"{len(item.variants)} variants" if item.has_variants else "simple"
        click.echo(f"{item.id}  {item.name:<30} {item.sku:<15} qty={item.quantity:<6} [{mode}]")

    click.echo("─" * 60)
    click.echo(f"Total stock:      {queries.total_stock(store.items)}")
    click.echo(f"Inventory value:  {queries.inventory_value(store.items):.2f}")


@cli.command("add-item")
@click.argument("name")
@click.option("--sku", default="", help="Master SKU")
@click.option("--category", default="", help="Category")
@click.option("--cost", type=float, default=0.0, help="Unit cost")
@click.option("--price", type=float, default=0.0, help="Unit sale price")
@click.option("--quantity", type=int, default=0, help="Initial quantity (simple items)")
@click.option("--size", "sizes", multiple=True, help="Generate variants for this size")
@click.option("--color", "colors", multiple=True, help="Generate variants for this color")
@click.option("--other", "others", multiple=True, help="Generate variants for this value")
@click.pass_context
def add_item(ctx, name, sku, category, cost, price, quantity, sizes, colors, others):
    """
    Create an item.

    With --size/--color/--other the item gets one variant per combination,
    priced at --cost/--price and starting at zero stock.
    """
    with _reported_errors():
        store = _open_store(ctx)
        variants = []
        if sizes or colors or others:
            variants = generate_variants(
                sku, [], sizes, colors, others, cost=cost, price=price,
                limit=store.variant_limit,
            )

        item = store.add_item(ItemDraft(
            name=name,
            sku=sku,
            category=category,
            cost=cost,
            price=price,
            quantity=quantity,
            variants=variants,
        ))
        click.echo(click.style(f"✓ Created {item.name} ({item.id})", fg="green", bold=True))
        for variant in item.variants:
            click.echo(f"  {variant.id}  {variant.name:<20} {variant.sku}")


@cli.command("generate-variants")
@click.argument("base_sku")
@click.option("--size", "sizes", multiple=True)
@click.option("--color", "colors", multiple=True)
@click.option("--other", "others", multiple=True)
def preview_variants(base_sku: str, sizes: Tuple[str], colors: Tuple[str], others: Tuple[str]):
    """Preview the variants a combination of values would produce."""
    with _reported_errors():
        drafts = generate_variants(base_sku, [], sizes, colors, others, limit=get_config().inventory.variant_limit)
        if not drafts:
            click.echo("Select at least one size, color or other value.")
            return
        for draft in drafts:
            click.echo(f"{draft.name:<30} {draft.sku}")
        click.echo(f"{len(drafts)} variant(s)")


@cli.command("delete-item")
@click.argument("item_id")
@click.pass_context
def delete_item(ctx, item_id: str):
    """Delete an item. Its history is kept."""
    with _reported_errors():
        _open_store(ctx).delete_item(item_id)
        click.echo(click.style(f"✓ Deleted {item_id}", fg="green"))


# ------------------------------------------------------------------
# Stock movements
# ------------------------------------------------------------------

@cli.command()
@click.argument("item_id")
@click.argument("quantity", type=int)
@click.option("--warehouse", "warehouse_id", default=None, help="Warehouse id (defaults to the default warehouse)")
@click.option("--variant", "variant_id", default=None, help="Variant id (required for items with variants)")
@click.pass_context
def sell(ctx, item_id: str, quantity: int, warehouse_id: Optional[str], variant_id: Optional[str]):
    """Record a sale."""
    with _reported_errors():
        store = _open_store(ctx)
        movement = store.sell(item_id, variant_id, warehouse_id or store.default_warehouse().id, quantity)
        _echo_movement(movement, "Sold")


@cli.command()
@click.argument("item_id")
@click.argument("quantity", type=int)
@click.option("--warehouse", "warehouse_id", default=None, help="Warehouse id (defaults to the default warehouse)")
@click.option("--variant", "variant_id", default=None, help="Variant id (required for items with variants)")
@click.option("--unit-cost", type=float, default=None, help="Cost of this batch (defaults to the stored cost)")
@click.pass_context
def restock(ctx, item_id, quantity, warehouse_id, variant_id, unit_cost):
    """Receive new stock."""
    with _reported_errors():
        store = _open_store(ctx)
        if unit_cost is None:
            item = store.get_item(item_id)
            variant = item.find_variant(variant_id) if variant_id else None
            unit_cost = variant.cost if variant else item.cost
        movement = store.restock(
            item_id, variant_id, warehouse_id or store.default_warehouse().id, quantity, unit_cost
        )
        _echo_movement(movement, "Restocked")


@cli.command()
@click.argument("item_id")
@click.argument("quantity", type=int)
@click.option("--from", "from_id", required=True, help="Source warehouse id")
@click.option("--to", "to_id", required=True, help="Target warehouse id")
@click.option("--variant", "variant_id", default=None, help="Variant id (required for items with variants)")
@click.pass_context
def transfer(ctx, item_id, quantity, from_id, to_id, variant_id):
    """Move stock between warehouses."""
    with _reported_errors():
        movement = _open_store(ctx).transfer(item_id, variant_id, from_id, to_id, quantity)
        _echo_movement(movement, "Transferred")


# ------------------------------------------------------------------
# Ledger
# ------------------------------------------------------------------

_ledger_options = [
    click.option("--since", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="First day (YYYY-MM-DD)"),
    click.option("--until", type=click.DateTime(formats=["%Y-%m-%d"]), default=None, help="Last day (YYYY-MM-DD)"),
    click.option("--type", "kind", type=click.Choice([k.value for k in ledger.LedgerFilter]), default="ALL"),
    click.option("--item", "item_id", default=None, help="Only this item"),
]


def ledger_options(func):
    for option in reversed(_ledger_options):
        func = option(func)
    return func


@cli.command()
@ledger_options
@click.pass_context
def history(ctx, since, until, kind, item_id):
    """Show ledger entries, newest first."""
    store = _open_store(ctx)
    selected = ledger.filter_transactions(store.transactions, _day(since), _day(until), kind, item_id)

    if not selected:
        click.echo("No transactions found.")
        return

    for t in selected:
        label = t.item_name + (f" ({t.variant_name})" if t.variant_name else "")
        click.echo(
            f"{t.date.astimezone():%Y-%m-%d %H:%M}  {t.type.value:<10} {label:<35} "
            f"{t.quantity:>5}  {t.total:>10.2f}  {t.warehouse_name or ''}  [{t.id}]"
        )


@cli.command()
@ledger_options
@click.pass_context
def report(ctx, since, until, kind, item_id):
    """Summarize revenue, spend and estimated profit."""
    store = _open_store(ctx)
    selected = ledger.filter_transactions(store.transactions, _day(since), _day(until), kind, item_id)
    click.echo(ledger.summarize(selected).get_summary())


@cli.command("delete-transaction")
@click.argument("transaction_id")
@click.pass_context
def delete_transaction(ctx, transaction_id: str):
    """Delete a ledger entry. Current stock is not changed."""
    with _reported_errors():
        _open_store(ctx).delete_transaction(transaction_id)
        click.echo(click.style(f"✓ Deleted transaction {transaction_id}", fg="green"))


# ------------------------------------------------------------------
# Warehouses and catalogs
# ------------------------------------------------------------------

@cli.command()
@click.pass_context
def warehouses(ctx):
    """List warehouses."""
    store = _open_store(ctx)
    for warehouse in store.warehouses:
        marker = " (default)" if warehouse.is_default else ""
        click.echo(f"{warehouse.id}  {warehouse.name}{marker}")


@cli.command("add-warehouse")
@click.argument("name")
@click.pass_context
def add_warehouse(ctx, name: str):
    """Add a warehouse."""
    with _reported_errors():
        warehouse = _open_store(ctx).add_warehouse(name)
        click.echo(click.style(f"✓ Added {warehouse.name} ({warehouse.id})", fg="green"))


@cli.command("remove-warehouse")
@click.argument("warehouse_id")
@click.pass_context
def remove_warehouse(ctx, warehouse_id: str):
    """Remove an empty, non-default warehouse."""
    with _reported_errors():
        _open_store(ctx).remove_warehouse(warehouse_id)
        click.echo(click.style(f"✓ Removed {warehouse_id}", fg="green"))


@cli.group()
def catalog():
    """Manage category, size, color and other-variant suggestions."""
    pass


_kind_argument = click.argument("kind", type=click.Choice([k.value for k in CatalogKind]))


@catalog.command("list")
@_kind_argument
@click.pass_context
def catalog_list(ctx, kind: str):
    for value in _open_store(ctx).catalogs.get(CatalogKind(kind)):
        click.echo(value)


@catalog.command("add")
@_kind_argument
@click.argument("value")
@click.pass_context
def catalog_add(ctx, kind: str, value: str):
    values = _open_store(ctx).add_catalog_value(CatalogKind(kind), value)
    click.echo(", ".join(values))


@catalog.command("remove")
@_kind_argument
@click.argument("value")
@click.pass_context
def catalog_remove(ctx, kind: str, value: str):
    values = _open_store(ctx).remove_catalog_value(CatalogKind(kind), value)
    click.echo(", ".join(values))


# ------------------------------------------------------------------
# Maintenance and exports
# ------------------------------------------------------------------

@cli.command()
@click.pass_context
def repair(ctx):
    """Load the store, assigning orphaned stock to the default warehouse."""
    store = _open_store(ctx)
    if store.repaired_count:
        click.echo(click.style(f"✓ Repaired {store.repaired_count} item(s)", fg="green"))
    else:
        click.echo("Nothing to repair.")


@cli.command()
@click.option("--output-dir", type=click.Path(file_okay=False, path_type=Path), default=Path("."))
@click.pass_context
def export(ctx, output_dir: Path):
    """Write the item list to a dated CSV file."""
    path = write_csv_export(_open_store(ctx).items, output_dir)
    click.echo(click.style(f"✓ Exported to {path}", fg="green"))


@cli.command()
@click.pass_context
def snapshot(ctx):
    """Print the full state as JSON."""
    click.echo(json.dumps(_open_store(ctx).snapshot(), indent=2, ensure_ascii=False))


@cli.command("config-info")
def config_info():
    """Display current configuration settings."""
    config = get_config()

    click.echo("Configuration Settings:")
    click.echo("=" * 60)
    click.echo(f"  Environment:       {config.env.environment}")
    click.echo(f"  Log level:         {config.logging.level}")
    click.echo(f"  Data dir:          {config.data_dir}")
    click.echo(f"  Strict stock:      {config.inventory.strict_stock}")
    click.echo(f"  Variant limit:     {config.inventory.variant_limit}")
    click.echo(f"  Default warehouse: {config.inventory.default_warehouse_name}")
    click.echo(f"  Storage retries:   {config.storage.max_retries}")


@cli.command()
@click.option("--port", type=int, default=None, help="Port (defaults to PORT)")
@click.pass_context
def serve(ctx, port: Optional[int]):
    """Run the HTTP API."""
    import uvicorn
    from .api_server import create_app

    config = get_config()
    uvicorn.run(create_app(_open_store(ctx)), host=config.api.host, port=port or config.env.port)


if __name__ == "__main__":
    cli()
