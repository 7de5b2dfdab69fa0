"""Tests for region lookup, transformation rules and two-phase extraction."""

from types import SimpleNamespace

import pytest

from conftest import INVOICE_COORDINATES, INVOICE_LINES, PAGE_HEIGHT, PAGE_WIDTH, FakePages, line_region, write_pdf
from docintake.extraction.extractor import RegionExtractor
from docintake.extraction.regions import NormalizedRegion, PointRegion, parse_region, text_in_region
from docintake.extraction.transforms import apply_transformations
from docintake.input_handler.pdf_processor import PageText, PDFProcessor, TextItem


def make_template(coordinates=None, transformations=None, custom_fields=None, code="ACME"):
    return SimpleNamespace(
        id=1,
        name="Acme Invoice",
        code=code,
        template_type="invoice",
        coordinates=dict(INVOICE_COORDINATES) if coordinates is None else coordinates,
        transformations=transformations or {},
        custom_fields=custom_fields or {},
    )


class TestTransformations:
    """Tests for apply_transformations."""

    def test_rules_run_in_order(self) -> None:
        rules = {"remove": ["Acc:", "#"], "trim": True, "uppercase": True}
        assert apply_transformations("  Acc: #ab-12 ", rules) == "AB-12"

    def test_lowercase(self) -> None:
        assert apply_transformations("INVOICE", {"lowercase": True}) == "invoice"

    def test_parse_float(self) -> None:
        assert apply_transformations("Total: 12.50", {"parseFloat": True}) == 12.5

    def test_parse_int(self) -> None:
        assert apply_transformations("Qty 7 units", {"parseInt": True}) == 7

    def test_parse_without_number_is_none(self) -> None:
        assert apply_transformations("n/a", {"parseFloat": True}) is None
        assert apply_transformations("none", {"parseInt": True}) is None

    def test_no_rules(self) -> None:
        assert apply_transformations(" raw ", None) == " raw "
        assert apply_transformations(None, {"trim": True}) is None


class TestRegions:
    """Tests for region parsing and text lookup."""

    def test_parse_normalized(self) -> None:
        parsed = parse_region({"normalized": {"left": 0.1, "top": 0.1, "right": 0.4, "bottom": 0.15, "page": 2}})
        assert parsed == NormalizedRegion(0.1, 0.1, 0.4, 0.15, page=2)

    def test_parse_legacy_points(self) -> None:
        parsed = parse_region({"x": 50, "y": 90, "width": 100, "height": 20, "page": 1})
        assert isinstance(parsed, PointRegion)
        assert parsed.tolerance == 5.0

    def test_incomplete_region(self) -> None:
        assert parse_region({"normalized": {"left": 0.1, "top": 0.1}}) is None
        assert parse_region({"x": 1, "y": 1}) is None
        assert parse_region(None) is None

    def test_reading_order(self) -> None:
        page = PageText(number=1, width=PAGE_WIDTH, height=PAGE_HEIGHT, items=[
            TextItem("Street", 0.30, 0.205),
            TextItem("High", 0.20, 0.206),
            TextItem("Acme", 0.20, 0.180),
            TextItem("Ltd", 0.28, 0.181),
            TextItem("Outside", 0.90, 0.90),
        ])
        area = NormalizedRegion(0.1, 0.1, 0.5, 0.3)
        assert text_in_region(page, area) == "Acme Ltd High Street"

    def test_legacy_point_tolerance(self) -> None:
        page = PageText(number=1, width=PAGE_WIDTH, height=PAGE_HEIGHT, items=[
            TextItem("12345", 48 / PAGE_WIDTH, 112 / PAGE_HEIGHT),
        ])
        area = PointRegion(x=50, y=90, width=100, height=20, tolerance=5)
        assert text_in_region(page, area) == "12345"

    def test_empty_region(self) -> None:
        page = PageText(number=1, width=PAGE_WIDTH, height=PAGE_HEIGHT)
        assert text_in_region(page, NormalizedRegion(0, 0, 1, 1)) == ""


class TestRegionExtractor:
    """Tests for RegionExtractor.extract."""

    def test_extracts_all_fields(self) -> None:
        result = RegionExtractor().extract(make_template(), FakePages([INVOICE_LINES]))

        assert result.early_exit is False
        assert result.fields["documentType"] == "invoice"
        assert result.fields["accountNumber"] == "ACC-12345"
        assert result.fields["invoiceDate"] == "05/12/25"
        assert result.fields["invoiceNumber"] == "INV-1001"
        assert result.fields["customerPO"] == "PO-778"
        assert result.fields["totalAmount"] == "1234.56"
        assert result.fields["vatAmount"] == "205.76"
        assert result.field_labels["totalAmount"] == "Total"

    def test_early_exit_on_missing_crucial_field(self) -> None:
        lines = [line for line in INVOICE_LINES if line[2] != "ACC-12345"]
        custom = {"depot": {"displayName": "Depot"}}
        coordinates = dict(INVOICE_COORDINATES, ACME_depot=line_region(50, 250))
        pages = FakePages([lines + [(50, 250, "Leeds")]])

        result = RegionExtractor().extract(make_template(coordinates, custom_fields=custom), pages)

        assert result.early_exit is True
        assert result.missing_crucial_fields == ["Account Number / Supplier Code"]
        assert result.validation_errors[0]["field"] == "accountNumber"
        assert "invoiceNumber" not in result.fields
        assert "totalAmount" not in result.fields
        assert result.custom_fields == {}
        assert result.fields["documentType"] == "invoice"

    def test_monetary_fields_read_from_last_page(self) -> None:
        first_page = [line for line in INVOICE_LINES if line[0] != 350]
        pages = FakePages([
            first_page + [(350, 700, "999.99")],
            [(50, 400, "continued")],
            [(350, 700, "3,000.00"), (350, 730, "500.00")],
        ])

        result = RegionExtractor().extract(make_template(), pages)

        assert result.page_count == 3
        assert result.fields["totalAmount"] == "3000.00"
        assert result.fields["vatAmount"] == "500.00"
        assert result.fields["invoiceNumber"] == "INV-1001"

    def test_pages_loaded_in_ascending_order(self) -> None:
        pages = FakePages([INVOICE_LINES, [], [(350, 700, "1.00")]])
        RegionExtractor().extract(make_template(), pages)
        assert pages.requested == sorted(pages.requested)

    def test_missing_page_is_skipped(self) -> None:
        coordinates = dict(INVOICE_COORDINATES, ACME_customer_po=line_region(50, 190, page=4))
        result = RegionExtractor().extract(make_template(coordinates), FakePages([INVOICE_LINES]))

        assert "customerPO" not in result.fields
        assert result.fields["invoiceNumber"] == "INV-1001"

    def test_transformations_and_custom_fields(self) -> None:
        coordinates = dict(INVOICE_COORDINATES, ACME_depot=line_region(50, 250))
        transformations = {
            "ACME_account_number": {"remove": ["ACC-"]},
            "ACME_depot": {"uppercase": True},
        }
        custom = {"depot": {"displayName": "Depot"}}
        pages = FakePages([INVOICE_LINES + [(50, 250, "Leeds")]])

        result = RegionExtractor().extract(make_template(coordinates, transformations, custom), pages)

        assert result.fields["accountNumber"] == "12345"
        assert result.custom_fields == {"depot": "LEEDS"}
        assert result.field_labels["depot"] == "Depot"
        assert result.to_dict()["depot"] == "LEEDS"

    def test_field_spec_order(self) -> None:
        specs = RegionExtractor().build_field_specs(make_template(), page_count=1)
        names = [spec.name for spec in specs]
        assert names[:3] == ["documentType", "accountNumber", "invoiceDate"]
        assert names.index("invoiceNumber") < names.index("totalAmount")

    def test_unknown_fields_are_ignored(self) -> None:
        coordinates = dict(INVOICE_COORDINATES, ACME_colour=line_region(50, 250))
        specs = RegionExtractor().build_field_specs(make_template(coordinates), page_count=1)
        assert "colour" not in [spec.field_id for spec in specs]
        assert len(specs) == len(INVOICE_COORDINATES)

    def test_malformed_rule_skips_only_that_field(self) -> None:
        transformations = {"ACME_customer_po": ["trim"]}
        result = RegionExtractor().extract(make_template(transformations=transformations), FakePages([INVOICE_LINES]))

        assert "customerPO" not in result.fields
        assert result.fields["invoiceNumber"] == "INV-1001"
        assert result.fields["totalAmount"] == "1234.56"
        assert result.early_exit is False

    def test_bad_coordinates_skip_only_that_field(self) -> None:
        bad = {"normalized": {"left": "abc", "top": 0.1, "right": 0.4, "bottom": 0.2}}
        coordinates = dict(INVOICE_COORDINATES, ACME_customer_po=bad)

        specs = RegionExtractor().build_field_specs(make_template(coordinates), page_count=1)
        result = RegionExtractor().extract(make_template(coordinates), FakePages([INVOICE_LINES]))

        assert "ACME_customer_po" not in [spec.field_id for spec in specs]
        assert "customerPO" not in result.fields
        assert result.fields["accountNumber"] == "ACC-12345"

    def test_malformed_custom_field_is_skipped(self) -> None:
        coordinates = dict(
            INVOICE_COORDINATES,
            ACME_depot=line_region(50, 250),
            ACME_region={"normalized": {"left": "abc", "top": 0.1, "right": 0.4, "bottom": 0.2}},
        )
        custom = {"depot": {"displayName": "Depot"}, "region": {"displayName": "Region"}}
        transformations = {"ACME_depot": "uppercase"}
        pages = FakePages([INVOICE_LINES + [(50, 250, "Leeds")]])

        result = RegionExtractor().extract(make_template(coordinates, transformations, custom), pages)

        assert result.custom_fields == {}
        assert result.fields["invoiceNumber"] == "INV-1001"


class TestPdfExtraction:
    """Extraction from a real PDF."""

    @pytest.mark.parametrize("backend", ["pdfplumber", "pymupdf"])
    def test_extract_from_pdf(self, tmp_path, backend: str) -> None:
        path = write_pdf(tmp_path / "invoice.pdf", [INVOICE_LINES])

        with PDFProcessor(backend=backend).open(path) as pdf:
            assert "INVOICE" in pdf.full_text()
            result = RegionExtractor().extract(make_template(), pdf)

        assert result.fields["accountNumber"] == "ACC-12345"
        assert result.fields["totalAmount"] == "1234.56"
