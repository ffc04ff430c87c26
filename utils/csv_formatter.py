"""
CSV formatter — writes product CSV files the importer can read back.

Output is UTF-8 with a BOM and CRLF line endings.  A field is quoted only
when it contains a comma, a double quote, CR or LF; embedded quotes are
doubled.

Public API:
    products_csv_bytes(rows, headers) → bytes
    write_products_csv(rows, headers, destination) → Path | None
    write_import_template(destination) → Path | None
"""

import csv
import io
import logging
from pathlib import Path
from typing import BinaryIO, Iterable

import pandas as pd

from config.schema import CANONICAL_FIELDS

logger = logging.getLogger(__name__)

BOM = "\ufeff"
LINE_TERMINATOR = "\r\n"

TEMPLATE_FILE_NAME = "product-import-template.csv"

# Two example products shown in the downloadable import template
_TEMPLATE_ROWS: list[dict[str, str]] = [
    {
        "Type": "simple",
        "SKU": "SAMPLE-001",
        "GTIN, UPC, EAN, or ISBN": "123456789012",
        "Is featured?": "no",
        "Visibility in catalog": "visible",
        "Name": "Sample Product",
        "Published": "1",
        "In stock?": "1",
        "Short description": "Short description of the product",
        "Description": "This is a detailed description of the sample product",
        "Tax status": "taxable",
        "Shipping class": "standard",
        "Stock": "100",
        "Low stock amount": "5",
        "Backorders allowed?": "no",
        "Allow customer reviews?": "1",
        "Weight (kg)": "0.5",
        "Length (cm)": "10",
        "Width (cm)": "8",
        "Height (cm)": "5",
        "Purchase note": "Thank you for your purchase!",
        "Regular price": "29.99",
        "Categories": "Electronics > Gadgets",
        "Tags": "sample tag",
        "Images": "https://example.com/image.jpg",
        "Position": "0",
        "Brand": "Sample Brand",
    },
    {
        "Type": "simple",
        "SKU": "SAMPLE-002",
        "GTIN, UPC, EAN, or ISBN": "123456789013",
        "Is featured?": "yes",
        "Visibility in catalog": "visible",
        "Name": "Featured Product",
        "Published": "1",
        "In stock?": "1",
        "Short description": "Another short description",
        "Description": "This is another detailed product description",
        "Tax status": "taxable",
        "Shipping class": "standard",
        "Stock": "50",
        "Low stock amount": "10",
        "Backorders allowed?": "no",
        "Allow customer reviews?": "1",
        "Weight (kg)": "0.3",
        "Length (cm)": "12",
        "Width (cm)": "10",
        "Height (cm)": "3",
        "Purchase note": "Thanks for buying!",
        "Regular price": "49.99",
        "Categories": "Clothing > Shirts",
        "Tags": "featured tag",
        "Images": "https://example.com/image2.jpg",
        "Position": "1",
        "Brand": "Another Brand",
    },
]


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def products_csv_bytes(
    rows: pd.DataFrame | Iterable[dict],
    headers: list[str] | None = None,
) -> bytes:
    """
    Render product rows as BOM-prefixed, CRLF-terminated CSV bytes.

    Args:
        rows: A DataFrame or an iterable of dicts.
        headers: Column order.  Defaults to the DataFrame columns, or the
                 keys of the first row.  Missing values are written empty.
    """
    frame = rows if isinstance(rows, pd.DataFrame) else pd.DataFrame(list(rows))
    columns = headers if headers is not None else list(frame.columns)

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator=LINE_TERMINATOR, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(columns)
    for record in frame.to_dict("records"):
        writer.writerow([_cell_text(record.get(column)) for column in columns])

    return (BOM + buffer.getvalue()).encode("utf-8")


def write_products_csv(
    rows: pd.DataFrame | Iterable[dict],
    headers: list[str] | None,
    destination: Path | str | BinaryIO,
) -> Path | None:
    """
    Write product rows to a file path or a binary stream.

    Returns:
        The resolved path when *destination* is a path, else None.
    """
    content = products_csv_bytes(rows, headers)

    if isinstance(destination, (str, Path)):
        path = Path(destination)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        logger.info(f"Wrote {len(content)} bytes of CSV to '{path}'")
        return path.resolve()

    destination.write(content)
    return None


def write_import_template(destination: Path | str | BinaryIO) -> Path | None:
    """Write the import template: every canonical field plus two sample rows."""
    if isinstance(destination, (str, Path)) and Path(destination).is_dir():
        destination = Path(destination) / TEMPLATE_FILE_NAME
    return write_products_csv(_TEMPLATE_ROWS, CANONICAL_FIELDS, destination)


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _cell_text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and pd.isna(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)
