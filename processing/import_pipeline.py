"""
Import pipeline — drives one product import from upload to batch create.

State machine:
    idle → fileLoaded → mapped → validating → submitting → completed | failed

  - load_file() parses the upload.  A structural error resets the session to
    idle with the error kept on session.errors; otherwise the header mapping
    is computed automatically and the session is mapped.
  - The user may adjust the mapping, edit preview cells and select the one
    destination category while mapped.
  - submit() runs the validation gate (four column-mappable required fields
    plus an explicit category selection).  A failed gate returns to mapped
    without any network call.  Auth pre-flight checks (token present, role
    admin) also fail without a network call.
  - Surviving rows are coerced, filtered and sent as ONE POST /products/bulk
    call.  The batch is atomic from this side: either every surviving row
    counts as a success, or the whole file counts as errors.

Imported products are always created unpublished, whatever the Published
column says.

Public API:
    ImportState
    ImportSession
    ImportSummary, ImportResult, ImportStats
    filter_valid_rows(processed, category_name) → RowFilterResult
    build_product_payload(processed_row, category_name) → dict
"""

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import BinaryIO, Optional

import pandas as pd

from config.schema import CATEGORY_FIELD
from processing.category_resolver import (
    Category,
    categories_from_api,
    resolve_category,
)
from processing.column_mapper import HeaderMapping, suggest_fields
from processing.file_reader import FileReadResult, read_import_file
from processing.value_coercer import CoercionResult, coerce_rows
from services.api_client import ApiClient, ApiError
from services.error_messages import ErrorKind, classify_error, explain_error

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"
NO_VALID_PRODUCTS_MESSAGE = "No valid products found after processing"


class ImportState(str, Enum):
    IDLE = "idle"
    FILE_LOADED = "fileLoaded"
    MAPPED = "mapped"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


# ═══════════════════════════════════════════════════════════════════════════
# Data classes
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class ImportSummary:
    total_rows: int = 0
    success_count: int = 0
    skipped_count: int = 0
    error_count: int = 0


@dataclass
class ImportResult:
    """Outcome of ImportSession.submit()."""

    success: bool = False
    message: str = ""
    summary: ImportSummary = field(default_factory=ImportSummary)
    errors: list[str] = field(default_factory=list)
    error_kind: Optional[ErrorKind] = None


@dataclass
class ImportStats:
    """Preview statistics over the positive Regular price values."""

    row_count: int = 0
    priced_count: int = 0
    min_price: float = 0.0
    max_price: float = 0.0
    average_price: float = 0.0


@dataclass
class RowFilterResult:
    """Output of the filter_valid_rows() function."""

    valid: pd.DataFrame = field(default_factory=pd.DataFrame)
    skipped: list[dict] = field(default_factory=list)
    """One entry per dropped row: {"row": index, "reasons": [...]}."""


# ═══════════════════════════════════════════════════════════════════════════
# Row filtering and payloads
# ═══════════════════════════════════════════════════════════════════════════

def filter_valid_rows(processed: pd.DataFrame, category_name: str) -> RowFilterResult:
    """
    Drop processed rows that cannot be imported.

    A row is dropped when SKU, Name or Brand is empty, when no category is
    selected, or when its Regular price is not a positive number.  Dropping
    is silent: the rows are only counted as skipped.
    """
    keep: list[bool] = []
    skipped: list[dict] = []

    for position, row in enumerate(processed.to_dict("records")):
        reasons = []
        for name in ("SKU", "Name", "Brand"):
            if not str(row.get(name, "")).strip():
                reasons.append(f"{name} is empty")
        if not (category_name or "").strip():
            reasons.append("no category selected")
        if _to_float(row.get("Regular price")) <= 0:
            reasons.append("Regular price is not positive")

        keep.append(not reasons)
        if reasons:
            skipped.append({"row": position, "reasons": reasons})
            logger.debug(f"Row {position} skipped: {', '.join(reasons)}")

    mask = pd.Series(keep, index=processed.index, dtype=bool)
    valid = processed.loc[mask].reset_index(drop=True)
    return RowFilterResult(valid=valid, skipped=skipped)


def build_product_payload(processed_row: dict | pd.Series, category_name: str) -> dict:
    """
    Convert one processed row into the backend's product JSON.

    Every product is created unpublished.  basePrice starts equal to
    regularPrice; Images falls back to "All image urls" when empty.
    """
    row = dict(processed_row)

    def text(name: str, default: str = "") -> str:
        value = str(row.get(name, "") or "").strip()
        return value or default

    regular_price = _to_float(row.get("Regular price"))

    return {
        "sku": text("SKU"),
        "name": text("Name"),
        "type": text("Type", "simple"),
        "gtin": text("GTIN, UPC, EAN, or ISBN"),
        "isFeatured": _to_bool(row.get("Is featured?")),
        "catalogVisibility": text("Visibility in catalog", "visible"),
        "published": False,
        "inStock": _to_bool(row.get("In stock?")),
        "soldIndividually": _to_bool(row.get("Sold individually?")),
        "shortDescription": text("Short description"),
        "description": text("Description"),
        "salePriceStart": text("Date sale price starts"),
        "salePriceEnd": text("Date sale price ends"),
        "salePrice": _to_float(row.get("Sale price")),
        "taxStatus": text("Tax status", "taxable"),
        "taxClass": text("Tax class"),
        "shippingClass": text("Shipping class"),
        "stock": _to_int(row.get("Stock")),
        "lowStockAmount": _to_int(row.get("Low stock amount")),
        "backordersAllowed": _to_bool(row.get("Backorders allowed?")),
        "reviewsAllowed": _to_bool(row.get("Allow customer reviews?")),
        "weight": _to_float(row.get("Weight (kg)")),
        "length": _to_float(row.get("Length (cm)")),
        "width": _to_float(row.get("Width (cm)")),
        "height": _to_float(row.get("Height (cm)")),
        "purchaseNote": text("Purchase note"),
        "regularPrice": regular_price,
        "basePrice": regular_price,
        "category": category_name,
        "categories": category_name,
        "tags": text("Tags"),
        "images": text("Images") or text("All image urls"),
        "downloadLimit": _to_int(row.get("Download limit")),
        "downloadExpiry": _to_int(row.get("Download expiry days")),
        "parent": text("Parent"),
        "groupedProducts": text("Grouped products"),
        "upsells": text("Upsells"),
        "crossSells": text("Cross-sells"),
        "externalUrl": text("External URL"),
        "buttonText": text("Button text"),
        "position": _to_int(row.get("Position")),
        "brand": text("Brand"),
    }


# ═══════════════════════════════════════════════════════════════════════════
# Session
# ═══════════════════════════════════════════════════════════════════════════

class ImportSession:
    """
    One import, owned by a single caller.

    Attributes:
        state: Current ImportState.
        state_history: Every state entered, in order, starting with idle.
        errors: User-facing errors from the most recent step.
        result: ImportResult of the last submit(), if any.
    """

    def __init__(self, client: ApiClient, categories: list[Category] | None = None):
        self.client = client
        self.categories: list[Category] = list(categories or [])
        self.state = ImportState.IDLE
        self.state_history: list[ImportState] = [ImportState.IDLE]
        self.errors: list[str] = []
        self.result: Optional[ImportResult] = None

        self.file_result: Optional[FileReadResult] = None
        self.raw_dataframe = pd.DataFrame()
        self.mapping: Optional[HeaderMapping] = None
        self.selected_category: Optional[Category] = None

    # -----------------------------------------------------------------
    # Loading
    # -----------------------------------------------------------------

    def load_file(
        self,
        source: Path | BinaryIO | bytes,
        file_name: Optional[str] = None,
    ) -> FileReadResult:
        """
        Parse an upload and map its headers automatically.

        A new upload replaces the previous file, its mapping and any manual
        mapping adjustments.  The selected category is kept.
        """
        if self.state in (ImportState.VALIDATING, ImportState.SUBMITTING):
            raise RuntimeError(f"Cannot load a file while {self.state.value}")

        result = read_import_file(source, file_name)
        self.file_result = result

        if not result.is_valid:
            self._clear_file()
            self.errors = list(result.errors)
            self._transition(ImportState.IDLE)
            logger.error(f"Import file rejected: {'; '.join(result.errors)}")
            return result

        self.errors = []
        self.result = None
        self.raw_dataframe = result.raw_dataframe.copy()
        self._transition(ImportState.FILE_LOADED)

        self.mapping = HeaderMapping.auto(result.headers)
        self._transition(ImportState.MAPPED)
        return result

    def load_categories(self) -> list[Category]:
        """Fetch the active categories from the backend."""
        self.categories = categories_from_api(self.client.get_active_categories())
        logger.info(f"Loaded {len(self.categories)} active categories")
        return self.categories

    # -----------------------------------------------------------------
    # Mapping, category and preview edits
    # -----------------------------------------------------------------

    def assign(self, header: str, field_name: str) -> None:
        self._require_mapped()
        self.mapping.assign(header, field_name)

    def clear(self, header: str) -> None:
        self._require_mapped()
        self.mapping.clear(header)

    def suggest(self, header: str, limit: int = 3) -> list[str]:
        return suggest_fields(header, limit)

    def select_category(self, name: str) -> Category:
        """
        Bind the batch to one active category.

        Raises:
            ValueError: If *name* is blank.
            CategoryNotFoundError: If no active category has this name.
        """
        self.selected_category = resolve_category(name, self.categories)
        return self.selected_category

    def edit_cell(self, row_index: int, header: str, value: str) -> None:
        """Replace one raw cell from the preview grid."""
        self._require_mapped()
        if header not in self.raw_dataframe.columns:
            raise KeyError(f"Unknown uploaded header: '{header}'")
        if not 0 <= row_index < len(self.raw_dataframe):
            raise IndexError(f"Row {row_index} is out of range")
        self.raw_dataframe.iat[row_index, self.raw_dataframe.columns.get_loc(header)] = value

    def processed_rows(self) -> CoercionResult:
        """Coerce the current raw rows through the current mapping."""
        self._require_mapped()
        return coerce_rows(self.raw_dataframe, self.mapping)

    def stats(self) -> ImportStats:
        processed = self.processed_rows().dataframe
        prices = [
            price for price in (_to_float(v) for v in processed["Regular price"])
            if price > 0
        ]
        if not prices:
            return ImportStats(row_count=len(processed))
        return ImportStats(
            row_count=len(processed),
            priced_count=len(prices),
            min_price=min(prices),
            max_price=max(prices),
            average_price=sum(prices) / len(prices),
        )

    # -----------------------------------------------------------------
    # Submission
    # -----------------------------------------------------------------

    def missing_requirements(self) -> list[str]:
        """Required fields not yet satisfied by the mapping or selection."""
        missing = self.mapping.missing_required() if self.mapping else []
        if self.selected_category is None:
            missing.append(CATEGORY_FIELD)
        return missing

    def submit(self) -> ImportResult:
        """
        Validate, filter and send the batch.

        Raises:
            RuntimeError: If no file is loaded or the import already ran.
        """
        if self.state is not ImportState.MAPPED:
            raise RuntimeError(f"Cannot submit an import that is {self.state.value}")

        total_rows = len(self.raw_dataframe)
        self._transition(ImportState.VALIDATING)

        missing = self.missing_requirements()
        if missing:
            message = f"Please map the following required fields: {', '.join(missing)}"
            self.errors = [message]
            self._transition(ImportState.MAPPED)
            logger.warning(f"Import blocked: {message}")
            return ImportResult(
                success=False,
                message=message,
                summary=ImportSummary(total_rows=total_rows),
                errors=[message],
                error_kind=ErrorKind.VALIDATION,
            )

        auth_problem = self._preflight_auth()
        if auth_problem is not None:
            return self._fail(auth_problem, total_rows, error_count=total_rows)

        category_name = self.selected_category.name
        processed = coerce_rows(self.raw_dataframe, self.mapping).dataframe
        filtered = filter_valid_rows(processed, category_name)

        if filtered.valid.empty:
            return self._fail(
                NO_VALID_PRODUCTS_MESSAGE, total_rows, skipped_count=total_rows
            )

        payloads = [
            build_product_payload(row, category_name)
            for row in filtered.valid.to_dict("records")
        ]

        self._transition(ImportState.SUBMITTING)
        logger.info(
            f"Submitting {len(payloads)} of {total_rows} rows to category '{category_name}'"
        )

        try:
            response = self.client.bulk_create_products(payloads)
        except ApiError as exc:
            return self._fail(exc.message, total_rows, error_count=total_rows)

        if not response.get("success"):
            message = response.get("message") or "Import failed"
            return self._fail(message, total_rows, error_count=total_rows)

        success_count = len(payloads)
        summary = ImportSummary(
            total_rows=total_rows,
            success_count=success_count,
            skipped_count=total_rows - success_count,
        )
        self.errors = []
        self.result = ImportResult(
            success=True,
            message=response.get("message") or f"Imported {success_count} products",
            summary=summary,
        )
        self._transition(ImportState.COMPLETED)
        logger.info(
            f"Import complete: {success_count} created, {summary.skipped_count} skipped"
        )
        return self.result

    def reset(self) -> None:
        """Discard the file, mapping, selection and results."""
        self._clear_file()
        self.selected_category = None
        self.errors = []
        self.result = None
        self._transition(ImportState.IDLE)

    # -----------------------------------------------------------------
    # Internal helpers
    # -----------------------------------------------------------------

    def _transition(self, state: ImportState) -> None:
        logger.debug(f"Import state {self.state.value} → {state.value}")
        self.state = state
        self.state_history.append(state)

    def _require_mapped(self) -> None:
        if self.state is not ImportState.MAPPED or self.mapping is None:
            raise RuntimeError(f"No file is mapped (state: {self.state.value})")

    def _clear_file(self) -> None:
        self.raw_dataframe = pd.DataFrame()
        self.mapping = None

    def _preflight_auth(self) -> Optional[str]:
        """Error message for an import that cannot be authorized, else None."""
        if not self.client.token:
            return "Access denied. No token provided."
        role = self.client.user_role
        if role and role != ADMIN_ROLE:
            return "Access denied. Insufficient permissions."
        return None

    def _fail(
        self,
        message: str,
        total_rows: int,
        error_count: int = 0,
        skipped_count: int = 0,
    ) -> ImportResult:
        kind = classify_error(message)
        explanation = explain_error(message)
        self.errors = [explanation]
        self.result = ImportResult(
            success=False,
            message=explanation,
            summary=ImportSummary(
                total_rows=total_rows,
                skipped_count=skipped_count,
                error_count=error_count,
            ),
            errors=[message],
            error_kind=kind,
        )
        self._transition(ImportState.FAILED)
        logger.error(f"Import failed: {message}")
        return self.result


# ═══════════════════════════════════════════════════════════════════════════
# Module helpers
# ═══════════════════════════════════════════════════════════════════════════

def _to_float(value: object) -> float:
    try:
        number = float(str(value).strip())
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_int(value: object) -> int:
    return int(_to_float(value))


def _to_bool(value: object) -> bool:
    return str(value).strip().lower() == "true"
