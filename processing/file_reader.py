"""
Import file reader.

Parses an uploaded product file into raw rows keyed by the uploaded header
names.  Every cell is read as a string exactly as typed (no type inference);
type coercion happens later in value_coercer.py.

Accepted formats:
  - .csv / .txt — UTF-8, with or without a BOM, any line ending.  This covers
    the BOM + CRLF files produced by the back-office's own CSV export.
  - .xlsx — first worksheet only.

Blank header cells stay blank (never pandas' "Unnamed: N" placeholders), so
the column mapper leaves them unmapped.  Rows whose every cell is blank are
dropped.  A file with no header, no data row, or only blank rows is a
structural error.

Public API:
    read_import_file(source, file_name) → FileReadResult
"""

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

import pandas as pd

logger = logging.getLogger(__name__)

CSV_EXTENSIONS: set[str] = {".csv", ".txt"}
EXCEL_EXTENSIONS: set[str] = {".xlsx"}

INVALID_FILE_MESSAGE = "Please select a valid CSV file."
UNPARSABLE_MESSAGE = "Could not parse CSV or CSV is empty/invalid."
NO_DATA_MESSAGE = "CSV file appears to be empty or contains no valid data."


# ═══════════════════════════════════════════════════════════════════════════
# Data class
# ═══════════════════════════════════════════════════════════════════════════

@dataclass
class FileReadResult:
    """Complete result of reading one import file."""

    raw_dataframe: pd.DataFrame = field(default_factory=pd.DataFrame)
    headers: list[str] = field(default_factory=list)
    file_name: str = ""
    file_size_kb: float = 0.0
    total_rows: int = 0
    blank_rows_dropped: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors and bool(self.headers) and self.total_rows > 0


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════

def read_import_file(
    source: Path | BinaryIO | bytes,
    file_name: str | None = None,
) -> FileReadResult:
    """
    Read an uploaded CSV or XLSX file into raw string rows.

    Args:
        source: Path to the file, an open binary stream, or the raw bytes.
        file_name: Display name used for format detection and messages.
                   Defaults to the path's name when *source* is a Path.

    Returns:
        FileReadResult with the raw DataFrame (all cells str, blanks as ""),
        the header list in upload order, and any structural errors.  When
        errors is non-empty the DataFrame is empty.
    """
    if isinstance(source, (str, Path)):
        source = Path(source)
        name = file_name or source.name
    else:
        name = file_name or getattr(source, "name", "") or ""

    result = FileReadResult(file_name=str(name))
    extension = Path(str(name)).suffix.lower()

    if extension not in CSV_EXTENSIONS | EXCEL_EXTENSIONS:
        logger.error(f"Rejected '{name}': unsupported file type '{extension}'")
        result.errors.append(INVALID_FILE_MESSAGE)
        return result

    buffer, size_bytes = _open_source(source)
    result.file_size_kb = round(size_bytes / 1024, 2)

    try:
        if extension in EXCEL_EXTENSIONS:
            sheet = pd.read_excel(
                buffer, sheet_name=0, header=None, dtype=str, engine="openpyxl",
                keep_default_na=False,
            )
        else:
            sheet = pd.read_csv(
                buffer, header=None, dtype=str, encoding="utf-8-sig",
                keep_default_na=False, skip_blank_lines=True,
            )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError, ValueError) as exc:
        logger.error(f"Cannot parse '{name}': {exc}")
        result.errors.append(UNPARSABLE_MESSAGE)
        return result

    # The header row is read as data so blank header cells are not renamed
    if sheet.empty:
        logger.error(f"'{name}' has no header row")
        result.errors.append(UNPARSABLE_MESSAGE)
        return result

    headers = _header_names(sheet.iloc[0])
    dataframe = sheet.iloc[1:].reset_index(drop=True)
    if dataframe.empty:
        logger.error(f"'{name}' has no header row or no data rows")
        result.errors.append(UNPARSABLE_MESSAGE)
        return result

    dataframe.columns = headers
    dataframe = dataframe.fillna("").astype(str)

    non_blank = dataframe.apply(_row_has_content, axis=1)
    cleaned = dataframe[non_blank].reset_index(drop=True)

    if cleaned.empty:
        logger.error(f"'{name}' contains only blank rows")
        result.errors.append(NO_DATA_MESSAGE)
        return result

    result.raw_dataframe = cleaned
    result.headers = headers
    result.total_rows = len(cleaned)
    result.blank_rows_dropped = len(dataframe) - len(cleaned)

    logger.info(
        f"Finished reading '{name}': {result.total_rows} data rows, "
        f"{len(headers)} headers, {result.blank_rows_dropped} blank rows dropped"
    )
    return result


# ═══════════════════════════════════════════════════════════════════════════
# Internal helpers
# ═══════════════════════════════════════════════════════════════════════════

def _open_source(source: Path | BinaryIO | bytes) -> tuple[BinaryIO, int]:
    """Return a binary stream over *source* and its size in bytes."""
    if isinstance(source, Path):
        data = source.read_bytes()
    elif isinstance(source, bytes):
        data = source
    else:
        data = source.read()
    return io.BytesIO(data), len(data)


def _header_names(header_row: pd.Series) -> list[str]:
    """
    Unique header names from the raw header row, in upload order.

    Blank header cells stay blank: the first is "", later ones " ", "  ",
    ... so every column keeps a distinct key that the column mapper still
    treats as empty.  Repeated names get ".1", ".2", ... like pandas does.
    """
    headers: list[str] = []
    blank_count = 0

    for cell in header_row:
        text = "" if pd.isna(cell) else str(cell)
        if not text.strip():
            headers.append(" " * blank_count)
            blank_count += 1
            continue

        name, suffix = text, 1
        while name in headers:
            name = f"{text}.{suffix}"
            suffix += 1
        headers.append(name)

    if blank_count:
        logger.warning(f"{blank_count} column(s) have a blank header and stay unmapped")
    return headers


def _row_has_content(row: pd.Series) -> bool:
    """True if at least one cell of the row is non-blank."""
    return any(str(value).strip() != "" for value in row)
