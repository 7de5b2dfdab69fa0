"""
Business Document Writer.

Creates the Invoice or CreditNote for an allocated file. Statements and
unallocated or duplicate files never get a business document.

Creation runs inside a savepoint: a failure (for example a number that
collides with a concurrent import) is logged and rolled back without
touching the rest of the unit of work, so the file record is still
persisted, just without a document back-reference.

Author: Finance Platform Team
"""

import time
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from docintake.utils.logger import get_logger, import_prefix
from docintake.postprocessor.normalizers import AmountNormalizer, DateNormalizer, is_blank
from docintake.store.models import DOCUMENT_MODELS, ContentRecord, CreditNote, Invoice
from docintake.templates.sniffer import DOCUMENT_CREDIT_NOTE, DOCUMENT_INVOICE
from .classifier import Classification, business_number
from .retention import RetentionPolicy, calculate_retention_dates

# Initialize module logger
logger = get_logger(__name__)

DOCUMENT_SOURCE = "manual_import"
DOCUMENT_STATE_READY = "ready"


class BusinessDocumentWriter:
    """
    Writes business documents for classified files.

    Example:
        >>> writer = BusinessDocumentWriter(import_id="imp-1")
        >>> invoice = writer.create(session, classification, values,
        ...                         content_hash=digest, file_url=path,
        ...                         file_name="inv.pdf", processing_method="local_coordinates_ACME")
        >>> invoice.invoice_number
        'INV-1001'
    """

    def __init__(self, policy: Optional[RetentionPolicy] = None, import_id: Optional[str] = None) -> None:
        self.policy = policy
        self.amounts = AmountNormalizer()
        self.dates = DateNormalizer(import_id=import_id)
        self.import_id = import_id

    def create(
        self,
        session: Session,
        classification: Classification,
        values: Dict[str, Any],
        content_hash: str,
        file_url: str,
        file_name: str,
        processing_method: Optional[str] = None,
        parsed_data: Optional[Dict[str, Any]] = None,
        record: Optional[ContentRecord] = None
    ):
        """
        Create (or reuse) the business document for a file.

        Args:
            session: Database session.
            classification: Classification of the file.
            values: Extracted standard field values.
            content_hash: File content hash.
            file_url: Final storage path of the file.
            file_name: Original file name.
            processing_method: Extraction method label.
            parsed_data: Full extraction payload kept in document metadata.
            record: Existing ContentRecord for this hash, if any.

        Returns:
            Invoice or CreditNote, or None when no document applies or
            creation failed.
        """
        if not classification.creates_document:
            return None

        existing = self.find_existing(session, record)
        if existing is not None:
            logger.info(
                f"{self._prefix()}Reusing {record.document_type} {existing.id} "
                f"already linked to record {record.id}"
            )
            return existing

        try:
            with session.begin_nested():
                document = self._build(classification, values, content_hash, file_url,
                                       file_name, processing_method, parsed_data)
                session.add(document)
                session.flush()
        except SQLAlchemyError as e:
            logger.error(
                f"{self._prefix()}Failed to create {classification.document_type} "
                f"for company {classification.company_id}: {e}"
            )
            return None

        logger.info(
            f"{self._prefix()}Created {classification.document_type} {document.id} "
            f"({document.number}) for company {classification.company_id}"
        )
        return document

    @staticmethod
    def find_existing(session: Session, record: Optional[ContentRecord]):
        """Live document a record already points at, if any."""
        if record is None or not record.document_id or record.document_type not in DOCUMENT_MODELS:
            return None
        document = session.get(DOCUMENT_MODELS[record.document_type], record.document_id)
        if document is None or document.deleted_at is not None:
            return None
        return document

    def _build(
        self,
        classification: Classification,
        values: Dict[str, Any],
        content_hash: str,
        file_url: str,
        file_name: str,
        processing_method: Optional[str],
        parsed_data: Optional[Dict[str, Any]]
    ):
        issue_date = self.dates.parse_or_now(values.get("invoiceDate"))
        created_at = datetime.now()
        start, expiry = calculate_retention_dates(
            issue_date, created_at, classification.document_status, self.policy
        )

        common = dict(
            company_id=classification.company_id,
            issue_date=issue_date,
            amount=self._amount(values.get("totalAmount")),
            tax_amount=self._amount(values.get("vatAmount")),
            goods_amount=self.amounts.to_float(values.get("goodsAmount")),
            status=DOCUMENT_STATE_READY,
            document_status=classification.document_status,
            file_url=file_url,
            retention_start_date=start,
            retention_expiry_date=expiry,
            meta={
                "source": DOCUMENT_SOURCE,
                "fileName": file_name,
                "parsedData": parsed_data if parsed_data is not None else dict(values),
                "processingMethod": processing_method,
                "fileHash": content_hash,
            },
            created_at=created_at,
        )

        number = business_number(values, classification.document_type)
        if classification.document_type == DOCUMENT_INVOICE:
            return Invoice(
                invoice_number=number or self.fallback_number("INV", content_hash),
                customer_po=None if is_blank(values.get("customerPO")) else str(values["customerPO"]).strip(),
                **common
            )

        if classification.document_type == DOCUMENT_CREDIT_NOTE:
            invoice_number = values.get("invoiceNumber")
            return CreditNote(
                credit_note_number=number or self.fallback_number("CN", content_hash),
                invoice_number=None if is_blank(invoice_number) else str(invoice_number).strip(),
                **common
            )

        raise ValueError(f"No business document for type '{classification.document_type}'")

    def _amount(self, value: Any) -> float:
        amount = self.amounts.to_float(value)
        return 0.0 if amount is None else amount

    @staticmethod
    def fallback_number(prefix: str, content_hash: str) -> str:
        """Generated number for documents without one, e.g. INV-1718000000000-1a2b3c4d."""
        return f"{prefix}-{int(time.time() * 1000)}-{content_hash[:8]}"

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = ['BusinessDocumentWriter', 'DOCUMENT_SOURCE']
