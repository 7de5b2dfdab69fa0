"""Tests for Excel cell extraction."""

from datetime import datetime
from types import SimpleNamespace

import pytest

from conftest import write_workbook
from docintake.extraction.excel_extractor import ExcelCellExtractor, format_cell_value
from docintake.utils.exceptions import CorruptedFileError, ExtractionError


def excel_template(cells=None, transformations=None, custom_fields=None):
    return SimpleNamespace(
        id=7,
        name="Acme Excel",
        code="XL",
        excel_cells=cells if cells is not None else {
            "XL_account_number": {"column": "B", "row": 1},
            "XL_invoice_number": {"column": "B", "row": 2},
            "XL_invoice_date": {"column": "B", "row": 3},
            "XL_total": {"column": "B", "row": 4},
            "XL_delivery_address": {"column": "A", "row": 6, "endColumn": "B", "endRow": 7},
        },
        transformations=transformations or {},
        custom_fields=custom_fields or {},
    )


@pytest.fixture
def workbook_path(tmp_path):
    return write_workbook(tmp_path / "statement.xlsx", {
        "Cover": {"A1": "Cover sheet", "B1": "99999"},
        "Invoice": {
            "A1": "Account", "B1": 12345,
            "A2": "Invoice", "B2": "INV-77",
            "A3": "Date", "B3": datetime(2025, 3, 14),
            "A4": "Total", "B4": "£1,500.00",
            "A6": "1 High Street", "B6": "Leeds",
            "A7": "LS1 1AA",
        },
    })


class TestFormatCellValue:
    """Tests for format_cell_value."""

    def test_values(self) -> None:
        assert format_cell_value(None) == ""
        assert format_cell_value(True) == "true"
        assert format_cell_value(datetime(2025, 3, 14, 9, 30)) == "2025-03-14"
        assert format_cell_value(12345.0) == "12345"
        assert format_cell_value(12.5) == "12.5"


class TestExcelCellExtractor:
    """Tests for ExcelCellExtractor.extract."""

    def test_reads_last_sheet(self, workbook_path) -> None:
        result = ExcelCellExtractor().extract(excel_template(), workbook_path)

        assert result.fields["accountNumber"] == "12345"
        assert result.fields["invoiceNumber"] == "INV-77"
        assert result.fields["invoiceDate"] == "2025-03-14"
        assert result.fields["totalAmount"] == "1500.00"
        assert result.page_count == 2

    def test_range_is_tab_and_newline_joined(self, workbook_path) -> None:
        result = ExcelCellExtractor().extract(excel_template(), workbook_path)
        assert result.fields["deliveryAddress"] == "1 High Street\tLeeds\nLS1 1AA"

    def test_document_type_sniffed_from_text(self, workbook_path) -> None:
        result = ExcelCellExtractor().extract(excel_template(), workbook_path)
        assert result.fields["documentType"] == "invoice"
        assert "Cover sheet" in result.full_text

    def test_transformations_and_custom_fields(self, workbook_path) -> None:
        cells = {
            "XL_account_number": {"column": "B", "row": 1},
            "XL_depot": {"column": "B", "row": 6},
        }
        template = excel_template(
            cells,
            transformations={"XL_depot": {"uppercase": True}},
            custom_fields={"depot": {"displayName": "Depot"}},
        )

        result = ExcelCellExtractor().extract(template, workbook_path)

        assert result.custom_fields == {"depot": "LEEDS"}
        assert result.field_labels["depot"] == "Depot"
        assert "depot" not in result.fields

    def test_empty_cells_are_skipped(self, workbook_path) -> None:
        template = excel_template({"XL_customer_po": {"column": "D", "row": 20}, "XL_account": {"column": "B"}})
        result = ExcelCellExtractor().extract(template, workbook_path)
        assert "customerPO" not in result.fields
        assert "accountNumber" not in result.fields

    def test_bad_mapping_skips_only_that_field(self, workbook_path) -> None:
        cells = {
            "XL_account_number": {"column": "B", "row": 1},
            "XL_customer_po": {"column": "!!", "row": 2},
            "XL_invoice_number": {"column": "B", "row": 2},
            "XL_depot": {"column": "B", "row": 6},
        }
        template = excel_template(
            cells,
            transformations={"XL_invoice_number": ["trim"], "XL_depot": "uppercase"},
            custom_fields={"depot": {"displayName": "Depot"}},
        )

        result = ExcelCellExtractor().extract(template, workbook_path)

        assert result.fields["accountNumber"] == "12345"
        assert "customerPO" not in result.fields
        assert "invoiceNumber" not in result.fields
        assert result.custom_fields == {}
        assert result.field_labels["depot"] == "Depot"

    def test_template_without_cells(self, workbook_path) -> None:
        with pytest.raises(ExtractionError):
            ExcelCellExtractor().extract(excel_template({}), workbook_path)

    def test_unreadable_workbook(self, tmp_path) -> None:
        path = tmp_path / "broken.xlsx"
        path.write_bytes(b"this is not a zip archive")
        with pytest.raises(CorruptedFileError):
            ExcelCellExtractor().extract(excel_template(), path)
