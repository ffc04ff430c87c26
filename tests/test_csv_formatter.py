"""
Tests for utils/csv_formatter.py

Covers: BOM + CRLF output, minimal quoting, missing values, writing to a
path or stream, the import template, and reading the output back with the
import file reader.
"""

import io
from pathlib import Path

import pandas as pd

from config.schema import CANONICAL_FIELDS
from processing.column_mapper import HeaderMapping
from processing.file_reader import read_import_file
from utils.csv_formatter import (
    TEMPLATE_FILE_NAME,
    products_csv_bytes,
    write_import_template,
    write_products_csv,
)


class TestProductsCsvBytes:
    def test_bom_and_crlf(self):
        content = products_csv_bytes([{"Name": "Mug", "SKU": "M-1"}])
        assert content.startswith(b"\xef\xbb\xbf")
        assert content.decode("utf-8-sig") == "Name,SKU\r\nMug,M-1\r\n"

    def test_quotes_only_when_needed(self):
        rows = [{"Name": 'Mug, "large"', "Note": "line1\nline2", "SKU": "M-1"}]
        text = products_csv_bytes(rows).decode("utf-8-sig")
        assert '"Mug, ""large"""' in text
        assert '"line1\nline2"' in text
        assert ",M-1\r\n" in text

    def test_header_order_and_missing_values(self):
        frame = pd.DataFrame({"SKU": ["M-1"], "Price": [float("nan")]})
        text = products_csv_bytes(frame, ["Price", "SKU", "Brand"]).decode("utf-8-sig")
        assert text == "Price,SKU,Brand\r\n,M-1,\r\n"

    def test_booleans_lowercase(self):
        text = products_csv_bytes([{"Published": True}]).decode("utf-8-sig")
        assert text.endswith("true\r\n")


class TestWriteProductsCsv:
    def test_write_to_path(self, tmp_path: Path):
        path = write_products_csv([{"Name": "Mug"}], None, tmp_path / "out" / "p.csv")
        assert path.exists()
        assert path.read_bytes().startswith(b"\xef\xbb\xbf")

    def test_write_to_stream(self):
        buffer = io.BytesIO()
        assert write_products_csv([{"Name": "Mug"}], None, buffer) is None
        assert buffer.getvalue().endswith(b"Mug\r\n")

    def test_round_trip_through_reader(self):
        rows = [{"Name": "Mug, large", "SKU": "M-1", "Regular price": "12.50"}]
        content = products_csv_bytes(rows)
        result = read_import_file(content, "export.csv")
        assert result.headers == ["Name", "SKU", "Regular price"]
        assert result.raw_dataframe.loc[0, "Name"] == "Mug, large"


class TestImportTemplate:
    def test_template_into_directory(self, tmp_path: Path):
        path = write_import_template(tmp_path)
        assert path.name == TEMPLATE_FILE_NAME

    def test_template_headers_and_rows(self, tmp_path: Path):
        path = write_import_template(tmp_path / "template.csv")
        result = read_import_file(path)
        assert result.headers == CANONICAL_FIELDS
        assert list(result.raw_dataframe["SKU"]) == ["SAMPLE-001", "SAMPLE-002"]

    def test_template_maps_every_required_field(self, tmp_path: Path):
        result = read_import_file(write_import_template(tmp_path / "t.csv"))
        assert HeaderMapping.auto(result.headers).missing_required() == []
