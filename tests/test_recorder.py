"""Tests for content record persistence."""

from datetime import datetime

from docintake.store.models import ContentRecord, Invoice
from docintake.store.recorder import ImportOutcome, OutcomeRecorder

HASH = "c" * 64


def outcome(**overrides) -> ImportOutcome:
    values = dict(
        content_hash=HASH,
        file_name="inv-1001.pdf",
        storage_path="/storage/processed/invoices/2025/06/01/inv-1001.pdf",
        status="parsed",
        import_id="imp-1",
        company_id=1,
        document_id=10,
        document_type="invoice",
        status_folder="processed",
        doc_type_folder="invoices",
    )
    values.update(overrides)
    return ImportOutcome(**values)


class TestImportOutcome:
    """Tests for ImportOutcome.metadata."""

    def test_metadata(self) -> None:
        meta = outcome(missing_fields=["PO Number"], duplicate_number="INV-1").metadata()

        assert meta["source"] == "manual_import"
        assert meta["originalFileName"] == "inv-1001.pdf"
        assert meta["statusFolder"] == "processed"
        assert meta["missingFields"] == ["PO Number"]
        assert meta["duplicateInvoiceNumber"] == "INV-1"

    def test_optional_keys_omitted(self) -> None:
        meta = outcome().metadata()
        assert "missingFields" not in meta
        assert "duplicateInvoiceNumber" not in meta


class TestOutcomeRecorder:
    """Tests for OutcomeRecorder.record."""

    def test_creates_record(self, session) -> None:
        record = OutcomeRecorder().record(session, outcome())

        assert record.id is not None
        assert record.file_hash == HASH
        assert record.document_id == 10
        assert record.document_type == "invoice"
        assert record.meta["importId"] == "imp-1"

    def test_one_record_per_hash(self, session) -> None:
        recorder = OutcomeRecorder()
        first = recorder.record(session, outcome())
        second = recorder.record(session, outcome(file_name="renamed.pdf", status="unallocated", company_id=None))

        assert first.id == second.id
        assert session.query(ContentRecord).count() == 1
        assert second.file_name == "renamed.pdf"
        assert second.status == "unallocated"

    def test_restores_soft_deleted_record(self, session) -> None:
        recorder = OutcomeRecorder()
        record = recorder.record(session, outcome())
        record.deleted_at = datetime.utcnow()
        session.flush()

        restored = recorder.record(session, outcome())

        assert restored.id == record.id
        assert restored.deleted_at is None

    def test_duplicate_keeps_back_reference(self, session) -> None:
        recorder = OutcomeRecorder()
        recorder.record(session, outcome())

        record = recorder.record(session, outcome(
            status="unallocated",
            failure_reason="duplicate",
            document_id=None,
            is_duplicate=True,
            duplicate_file_id=1,
        ))

        assert record.document_id == 10
        assert record.document_type == "invoice"
        assert record.meta["isDuplicate"] is True

    def test_non_duplicate_keeps_live_document_link(self, session) -> None:
        invoice = Invoice(invoice_number="INV-1001", company_id=1)
        session.add(invoice)
        session.flush()
        recorder = OutcomeRecorder()
        recorder.record(session, outcome(document_id=invoice.id))

        record = recorder.record(session, outcome(
            file_name="copy.pdf",
            storage_path="/storage/unprocessed/2025/06/01/copy.pdf",
            status="unallocated",
            document_id=None,
            status_folder="unprocessed",
            doc_type_folder=None,
        ))

        assert record.document_id == invoice.id
        assert record.document_type == "invoice"
        assert record.file_path == "/storage/processed/invoices/2025/06/01/inv-1001.pdf"
        assert record.meta["storagePath"] == record.file_path
        assert record.meta["statusFolder"] == "processed"
        assert record.meta["originalFileName"] == "copy.pdf"

    def test_non_duplicate_clears_stale_reference(self, session) -> None:
        recorder = OutcomeRecorder()
        recorder.record(session, outcome())

        record = recorder.record(session, outcome(document_id=None, status="unallocated"))

        assert record.document_id is None
        assert record.document_type is None

    def test_stale_meta_keys_dropped(self, session) -> None:
        recorder = OutcomeRecorder()
        recorder.record(session, outcome(missing_fields=["PO Number"], duplicate_number="INV-1"))
        session.query(ContentRecord).one().meta = dict(
            session.query(ContentRecord).one().meta, reviewerNote="checked"
        )
        session.flush()

        record = recorder.record(session, outcome())

        assert "missingFields" not in record.meta
        assert "duplicateInvoiceNumber" not in record.meta
        assert record.meta["reviewerNote"] == "checked"
