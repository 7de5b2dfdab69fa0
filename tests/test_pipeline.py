"""End-to-end tests for the import pipeline."""

from datetime import datetime

import pytest

from conftest import INVOICE_COORDINATES, INVOICE_LINES, write_pdf, write_workbook
from docintake.jobs.job import ImportJob
from docintake.jobs.pipeline import ImportPipeline
from docintake.session.notifications import EVENT_DUPLICATE_DETECTED, NotificationDispatcher
from docintake.store.models import ContentRecord, Invoice, Template

TODAY = datetime.now()


class Events:
    def __init__(self) -> None:
        self.received = []

    def __call__(self, event, payload) -> None:
        self.received.append((event, payload))


@pytest.fixture
def events() -> Events:
    return Events()


@pytest.fixture
def pipeline(database, events) -> ImportPipeline:
    return ImportPipeline(database, notifications=NotificationDispatcher([events]))


def job_for(path, original_name="acme-invoice.pdf", **kwargs) -> ImportJob:
    return ImportJob(file_path=str(path), original_name=original_name, import_id="imp-1", **kwargs)


def processed_dir(tmp_path, folder="invoices"):
    return tmp_path / "storage" / "processed" / folder / f"{TODAY:%Y}" / f"{TODAY:%m}" / f"{TODAY:%d}"


def failed_dir(tmp_path):
    return tmp_path / "storage" / "unprocessed" / "failed" / f"{TODAY:%Y-%m-%d}"


class TestMatchedImport:
    """A PDF matched to a company with every field present."""

    def test_creates_ready_invoice_in_processed_tree(
        self, pipeline, database, company, invoice_template, invoice_pdf, temp_upload, tmp_path
    ) -> None:
        upload = temp_upload(invoice_pdf)
        progress = []

        result = pipeline.process(job_for(upload, user_id="7"), progress.append)

        assert result.success is True
        assert result.status == "parsed"
        assert result.company_id == company.id
        assert result.document_type == "invoice"
        assert result.document_id is not None
        assert progress == [10, 20, 30, 40, 60, 70, 80, 90, 100]

        stored = processed_dir(tmp_path) / "acme-invoice.pdf"
        assert stored.exists()
        assert not upload.exists()

        with database.session_scope() as session:
            invoice = session.get(Invoice, result.document_id)
            record = session.get(ContentRecord, result.file_id)

            assert invoice.invoice_number == "INV-1001"
            assert invoice.document_status == "ready"
            assert invoice.amount == pytest.approx(1234.56)
            assert invoice.file_url == str(stored)
            assert record.document_id == invoice.id
            assert record.document_type == "invoice"
            assert record.uploaded_by == "7"
            assert record.processing_method == "local_coordinates_ACME"
            assert record.meta["statusFolder"] == "processed"
            assert record.meta["docTypeFolder"] == "invoices"
            assert record.parsed_data["invoiceNumber"] == "INV-1001"

    def test_malformed_rule_does_not_lose_upload(
        self, pipeline, database, company, invoice_template, invoice_pdf, temp_upload
    ) -> None:
        with database.session_scope() as session:
            template = session.get(Template, invoice_template.id)
            template.transformations = {"ACME_customer_po": ["trim"]}

        result = pipeline.process(job_for(temp_upload(invoice_pdf)))

        assert result.success is True
        with database.session_scope() as session:
            record = session.get(ContentRecord, result.file_id)
            assert record.parsed_data["invoiceNumber"] == "INV-1001"
            assert "customerPO" not in record.parsed_data


class TestUnmatchedImport:
    """A PDF whose account number matches no company."""

    def test_goes_to_failed_folder_without_document(
        self, pipeline, database, invoice_template, invoice_pdf, temp_upload, tmp_path
    ) -> None:
        result = pipeline.process(job_for(temp_upload(invoice_pdf)))

        assert result.success is True
        assert result.status == "unallocated"
        assert result.company_id is None
        assert result.document_id is None
        assert (failed_dir(tmp_path) / "acme-invoice.pdf").exists()

        with database.session_scope() as session:
            assert session.query(Invoice).count() == 0
            record = session.get(ContentRecord, result.file_id)
            assert record.failure_reason == "unallocated"
            assert record.meta["specificFailureReason"] == "company_not_found"
            assert record.meta["statusFolder"] == "unprocessed"


class TestDuplicates:
    """Re-importing identical content."""

    def test_second_import_is_duplicate(
        self, pipeline, database, events, company, invoice_template, invoice_pdf, temp_upload, tmp_path
    ) -> None:
        first = pipeline.process(job_for(temp_upload(invoice_pdf)))
        progress = []
        second = pipeline.process(job_for(temp_upload(invoice_pdf), original_name="copy.pdf"), progress.append)

        assert second.success is True
        assert second.is_duplicate is True
        assert second.duplicate_file_id == first.file_id
        assert second.file_id == first.file_id
        assert second.document_id is None
        assert second.status == "unallocated"
        assert progress == [10, 20, 30, 80, 90, 100]
        assert (failed_dir(tmp_path) / "copy.pdf").exists()

        with database.session_scope() as session:
            assert session.query(Invoice).count() == 1
            assert session.query(ContentRecord).count() == 1
            record = session.get(ContentRecord, first.file_id)
            assert record.document_id == first.document_id
            assert record.failure_reason == "duplicate"

        duplicates = [payload for event, payload in events.received if event == EVENT_DUPLICATE_DETECTED]
        assert len(duplicates) == 1
        assert duplicates[0]["fileName"] == "copy.pdf"
        assert duplicates[0]["originalFileName"] == "acme-invoice.pdf"
        assert duplicates[0]["duplicateFileId"] == first.file_id

    def test_third_import_is_still_duplicate(
        self, pipeline, database, company, invoice_template, invoice_pdf, temp_upload
    ) -> None:
        pipeline.process(job_for(temp_upload(invoice_pdf)))
        pipeline.process(job_for(temp_upload(invoice_pdf)))
        third = pipeline.process(job_for(temp_upload(invoice_pdf)))

        assert third.is_duplicate is True
        with database.session_scope() as session:
            assert session.query(Invoice).count() == 1

    def test_orphaned_record_is_reprocessed(
        self, pipeline, database, company, invoice_template, invoice_pdf, temp_upload
    ) -> None:
        first = pipeline.process(job_for(temp_upload(invoice_pdf)))
        with database.session_scope() as session:
            session.delete(session.get(Invoice, first.document_id))

        second = pipeline.process(job_for(temp_upload(invoice_pdf)))

        assert second.is_duplicate is False
        assert second.status == "parsed"
        assert second.document_id is not None
        assert second.file_id == first.file_id
        with database.session_scope() as session:
            assert session.query(Invoice).count() == 1
            assert session.get(ContentRecord, first.file_id).document_id == second.document_id

    def test_business_number_duplicate(
        self, pipeline, database, company, invoice_template, tmp_path, temp_upload
    ) -> None:
        original = write_pdf(tmp_path / "a.pdf", [INVOICE_LINES])
        reissued = write_pdf(tmp_path / "b.pdf", [INVOICE_LINES + [(50, 400, "Reissued copy")]])

        pipeline.process(job_for(temp_upload(original), original_name="a.pdf"))
        result = pipeline.process(job_for(temp_upload(reissued), original_name="b.pdf"))

        assert result.is_duplicate is True
        assert result.document_id is None
        with database.session_scope() as session:
            record = session.get(ContentRecord, result.file_id)
            assert record.meta["specificFailureReason"] == "Possible Duplicate"
            assert record.meta["duplicateInvoiceNumber"] == "INV-1001"


class TestEarlyExit:
    """A matched template whose crucial fields are blank."""

    def test_type_comes_from_template(self, pipeline, database, tmp_path, temp_upload) -> None:
        coordinates = {key: value for key, value in INVOICE_COORDINATES.items() if key != "ACME_document_type"}
        with database.session_scope() as session:
            session.add(Template(
                name="Acme Credit Note",
                code="ACME",
                template_type="credit_note",
                file_type="pdf",
                coordinates=coordinates,
                is_default=True,
            ))
        lines = [line for line in INVOICE_LINES if line[2] not in ("INVOICE", "ACC-12345")]
        pdf = write_pdf(tmp_path / "credit.pdf", [[(300, 60, "CREDIT NOTE")] + lines])

        result = pipeline.process(job_for(temp_upload(pdf), original_name="credit.pdf"))

        assert result.success is True
        assert result.document_type == "credit_note"
        assert result.document_id is None
        with database.session_scope() as session:
            assert session.get(ContentRecord, result.file_id).file_type == "credit_note"


class TestFailures:
    """Terminal failures produce a failed result and no record."""

    def test_corrupted_pdf(self, pipeline, database, invoice_template, tmp_path, temp_upload) -> None:
        broken = tmp_path / "broken.pdf"
        broken.write_bytes(b"this is not a pdf at all")
        upload = temp_upload(broken)

        result = pipeline.process(job_for(upload, original_name="broken.pdf"))

        assert result.success is False
        assert result.error
        assert not upload.exists()
        with database.session_scope() as session:
            assert session.query(ContentRecord).count() == 0

    def test_unsupported_extension(self, pipeline, tmp_path, temp_upload) -> None:
        notes = tmp_path / "notes.txt"
        notes.write_text("hello")

        result = pipeline.process(job_for(temp_upload(notes), original_name="notes.txt"))

        assert result.success is False
        assert ".txt" in result.error

    def test_excel_without_template(self, pipeline, tmp_path, temp_upload) -> None:
        book = write_workbook(tmp_path / "inv.xlsx", {"Sheet": {"A1": "Invoice"}})

        result = pipeline.process(job_for(temp_upload(book), original_name="inv.xlsx"))

        assert result.success is False
        assert "Excel template" in result.error


class TestOtherSources:
    """Excel templates and the generic text fallback."""

    def test_excel_import(self, pipeline, database, company, tmp_path, temp_upload) -> None:
        with database.session_scope() as session:
            session.add(Template(
                name="Acme Excel",
                code="XL",
                template_type="invoice",
                file_type="excel",
                is_default=True,
                excel_cells={
                    "account_number": {"column": "B", "row": 1},
                    "invoice_number": {"column": "B", "row": 2},
                    "invoice_date": {"column": "B", "row": 3},
                    "customer_po": {"column": "B", "row": 4},
                    "total": {"column": "B", "row": 5},
                    "vat_amount": {"column": "B", "row": 6},
                },
            ))
        book = write_workbook(tmp_path / "inv.xlsx", {"Invoice": {
            "A1": "Account", "B1": 12345,
            "A2": "Invoice", "B2": "XL-500",
            "A3": "Date", "B3": datetime(2025, 3, 14),
            "A4": "PO", "B4": "PO-1",
            "A5": "Total", "B5": 240.0,
            "A6": "VAT", "B6": 40.0,
        }})

        result = pipeline.process(job_for(temp_upload(book), original_name="inv.xlsx"))

        assert result.success is True
        assert result.status == "parsed"
        assert (processed_dir(tmp_path) / "inv.xlsx").exists()
        with database.session_scope() as session:
            invoice = session.get(Invoice, result.document_id)
            assert invoice.invoice_number == "XL-500"
            assert invoice.issue_date == datetime(2025, 3, 14)
            assert invoice.document_status == "ready"

    def test_generic_fallback_without_template(self, pipeline, database, company, tmp_path, temp_upload) -> None:
        pdf = write_pdf(tmp_path / "plain.pdf", [[
            (50, 60, "TAX INVOICE"),
            (50, 90, "Invoice No. 5942480"),
            (50, 120, "Account No: 12345"),
            (50, 150, "Date: 14/03/2025"),
            (50, 180, "Invoice Total: 120.00"),
        ]])

        result = pipeline.process(job_for(temp_upload(pdf), original_name="plain.pdf"))

        assert result.success is True
        assert result.company_id == company.id
        with database.session_scope() as session:
            record = session.get(ContentRecord, result.file_id)
            assert record.processing_method == "local_basic"
            assert record.parsed_data["invoiceNumber"] == "5942480"
            assert record.failure_reason == "validation_error"
