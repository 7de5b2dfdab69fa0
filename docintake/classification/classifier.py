"""
Document Classifier Module.

Turns extracted values plus the duplicate check into a classification:
record status, failure reason, the reviewer-facing specific reason and
the company the document is allocated to.

Decision table (first matching row wins):

    +-----------------------------+-------------+------------------+-------------------------+
    | Condition                   | status      | failure_reason   | specific reason         |
    +-----------------------------+-------------+------------------+-------------------------+
    | content-hash duplicate      | unallocated | duplicate        | duplicate               |
    | business-number duplicate   | unallocated | duplicate        | Possible Duplicate      |
    | no company                  | unallocated | unallocated      | company_not_found /     |
    |                             |             |                  | Missing Account Number  |
    | matched, fields missing     | parsed      | parsing_error or | Missing {first}         |
    |                             |             | validation_error |                         |
    | matched, complete           | parsed      | -                | -                       |
    +-----------------------------+-------------+------------------+-------------------------+

Author: Finance Platform Team
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from docintake.utils.logger import get_logger, import_prefix
from docintake.postprocessor.normalizers import is_blank, normalize_document_type
from docintake.store.models import (
    Company,
    CreditNote,
    Invoice,
    REASON_DUPLICATE,
    REASON_PARSING_ERROR,
    REASON_UNALLOCATED,
    REASON_VALIDATION_ERROR,
    STATUS_PARSED,
    STATUS_UNALLOCATED,
)
from docintake.templates.sniffer import DOCUMENT_CREDIT_NOTE, DOCUMENT_INVOICE
from .auditor import MissingFieldAuditor
from .matcher import CompanyMatcher

# Initialize module logger
logger = get_logger(__name__)

REASON_TEXT_DUPLICATE = "duplicate"
REASON_TEXT_POSSIBLE_DUPLICATE = "Possible Duplicate"
REASON_TEXT_COMPANY_NOT_FOUND = "company_not_found"
REASON_TEXT_MISSING_ACCOUNT = "Missing Account Number"

DOCUMENT_STATUS_READY = "ready"
DOCUMENT_STATUS_REVIEW = "review"

# Document types that get a business document
DOCUMENT_CREATING_TYPES = (DOCUMENT_INVOICE, DOCUMENT_CREDIT_NOTE)


@dataclass
class Classification:
    """
    Outcome of classifying one parsed file.

    Attributes:
        status: ContentRecord status.
        failure_reason: ContentRecord failure reason (None when complete).
        specific_reason: Human-readable reason stored in record metadata.
        document_type: Canonical document type.
        company: Allocated company, None when unallocated.
        missing_fields: Audit result, in reporting order.
        is_duplicate: Content-hash or business-number duplicate.
        duplicate_number: Business number that already exists.
    """
    status: str
    failure_reason: Optional[str]
    specific_reason: Optional[str]
    document_type: str
    company: Optional[Company] = None
    missing_fields: List[str] = field(default_factory=list)
    is_duplicate: bool = False
    duplicate_number: Optional[str] = None

    @property
    def company_id(self) -> Optional[int]:
        return self.company.id if self.company is not None else None

    @property
    def is_allocated(self) -> bool:
        """Matched to a company and not a duplicate."""
        return self.company is not None and not self.is_duplicate

    @property
    def creates_document(self) -> bool:
        return self.is_allocated and self.document_type in DOCUMENT_CREATING_TYPES

    @property
    def document_status(self) -> str:
        return DOCUMENT_STATUS_READY if self.is_allocated and not self.missing_fields else DOCUMENT_STATUS_REVIEW

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "failureReason": self.failure_reason,
            "specificFailureReason": self.specific_reason,
            "documentType": self.document_type,
            "companyId": self.company_id,
            "missingFields": list(self.missing_fields),
            "isDuplicate": self.is_duplicate,
            "duplicateInvoiceNumber": self.duplicate_number,
            "documentStatus": self.document_status,
        }


def business_number(values: Dict[str, Any], document_type: str) -> Optional[str]:
    """
    The number a business document is identified by.

    Invoices use the invoice number; credit notes prefer the credit number
    and fall back to the invoice number printed on them.
    """
    candidates = ["invoiceNumber"]
    if document_type == DOCUMENT_CREDIT_NOTE:
        candidates = ["creditNumber", "invoiceNumber"]

    for name in candidates:
        value = values.get(name)
        if not is_blank(value):
            return str(value).strip()
    return None


def find_business_duplicate(session: Session, values: Dict[str, Any], document_type: str) -> Optional[str]:
    """
    Check the business number against live documents of the same type.

    Returns:
        The duplicated number, or None.
    """
    if document_type not in DOCUMENT_CREATING_TYPES:
        return None

    number = business_number(values, document_type)
    if number is None:
        return None

    if document_type == DOCUMENT_INVOICE:
        query = session.query(Invoice).filter(Invoice.invoice_number == number)
        query = query.filter(Invoice.deleted_at.is_(None))
    else:
        query = session.query(CreditNote).filter(CreditNote.credit_note_number == number)
        query = query.filter(CreditNote.deleted_at.is_(None))

    return number if query.first() is not None else None


class Classifier:
    """
    Classifies parsed documents.

    Example:
        >>> classifier = Classifier(import_id="imp-1")
        >>> outcome = classifier.classify(session, result.fields)
        >>> outcome.status, outcome.document_status
        ('parsed', 'ready')
    """

    def __init__(
        self,
        matcher: Optional[CompanyMatcher] = None,
        auditor: Optional[MissingFieldAuditor] = None,
        import_id: Optional[str] = None
    ) -> None:
        self.matcher = matcher or CompanyMatcher(import_id=import_id)
        self.auditor = auditor or MissingFieldAuditor()
        self.import_id = import_id

    def classify(
        self,
        session: Session,
        values: Dict[str, Any],
        is_duplicate: bool = False,
        early_exit: bool = False,
        document_type: Optional[str] = None
    ) -> Classification:
        """
        Classify one parsed document.

        Args:
            session: Database session.
            values: Extracted standard field values.
            is_duplicate: The content hash is already live.
            early_exit: Extraction stopped after its crucial-field phase.
            document_type: Fallback type when none was extracted.

        Returns:
            Classification.
        """
        extracted_type = values.get("documentType")
        if is_blank(extracted_type) or str(extracted_type).strip().lower() == "unknown":
            extracted_type = document_type
        doc_type = normalize_document_type(extracted_type)
        missing = self.auditor.audit(values)

        if is_duplicate:
            logger.info(f"{self._prefix()}Content already imported, classifying as duplicate")
            return Classification(
                status=STATUS_UNALLOCATED,
                failure_reason=REASON_DUPLICATE,
                specific_reason=REASON_TEXT_DUPLICATE,
                document_type=doc_type,
                missing_fields=missing,
                is_duplicate=True,
            )

        account_number = values.get("accountNumber")
        company = self.matcher.match(session, account_number)

        if company is not None:
            duplicate_number = find_business_duplicate(session, values, doc_type)
            if duplicate_number is not None:
                logger.warning(
                    f"{self._prefix()}{doc_type} number {duplicate_number} already exists, "
                    f"marking as possible duplicate"
                )
                return Classification(
                    status=STATUS_UNALLOCATED,
                    failure_reason=REASON_DUPLICATE,
                    specific_reason=REASON_TEXT_POSSIBLE_DUPLICATE,
                    document_type=doc_type,
                    missing_fields=missing,
                    is_duplicate=True,
                    duplicate_number=duplicate_number,
                )

        if company is None:
            reason = REASON_TEXT_MISSING_ACCOUNT if is_blank(account_number) else REASON_TEXT_COMPANY_NOT_FOUND
            return Classification(
                status=STATUS_UNALLOCATED,
                failure_reason=REASON_UNALLOCATED,
                specific_reason=reason,
                document_type=doc_type,
                missing_fields=missing,
            )

        if missing:
            logger.info(f"{self._prefix()}Missing fields: {', '.join(missing)}")
            return Classification(
                status=STATUS_PARSED,
                failure_reason=REASON_PARSING_ERROR if early_exit else REASON_VALIDATION_ERROR,
                specific_reason=f"Missing {missing[0]}",
                document_type=doc_type,
                company=company,
                missing_fields=missing,
            )

        return Classification(
            status=STATUS_PARSED,
            failure_reason=None,
            specific_reason=None,
            document_type=doc_type,
            company=company,
        )

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = [
    'Classification',
    'Classifier',
    'business_number',
    'find_business_duplicate',
    'DOCUMENT_STATUS_READY',
    'DOCUMENT_STATUS_REVIEW',
    'REASON_TEXT_DUPLICATE',
    'REASON_TEXT_POSSIBLE_DUPLICATE',
    'REASON_TEXT_COMPANY_NOT_FOUND',
    'REASON_TEXT_MISSING_ACCOUNT',
]
