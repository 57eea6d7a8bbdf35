"""CSV export of the item list."""

import csv
import io
from datetime import date
from pathlib import Path
from typing import Iterable, Optional

from ..models.product import InventoryItem

CSV_HEADERS = [
    "ID", "Name", "SKU", "Category", "UnitCost", "UnitPrice",
    "TotalQuantity", "TotalCostValue", "LastUpdated",
]


def items_to_csv(items: Iterable[InventoryItem]) -> str:
    """One row per item. Fields holding commas, quotes or newlines are quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for item in items:
        updated = item.last_updated.astimezone().date().isoformat() if item.last_updated else ""
        row = [
            item.id,
            item.name,
            item.sku,
            item.category or "",
            f"{item.cost or 0:.2f}",
            f"{item.price or 0:.2f}",
            str(item.quantity or 0),
            f"{(item.cost or 0) * (item.quantity or 0):.2f}",
            updated,
        ]
        writer.writerow(row)
    return buffer.getvalue()


def export_filename(today: Optional[date] = None) -> str:
    today = today or date.today()
    return f"inventory_export_{today.isoformat()}.csv"


def write_csv_export(items: Iterable[InventoryItem], directory: Path, today: Optional[date] = None) -> Path:
    """Write the export into ``directory`` and return the file path."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / export_filename(today)
    path.write_text(items_to_csv(items), encoding="utf-8")
    return path
