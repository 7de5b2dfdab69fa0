"""
Outcome Recorder Module.

Persists the outcome of an import as the ContentRecord for its content
hash. There is exactly one record per hash: a re-import updates the
existing record (restoring it if it was soft-deleted) instead of
inserting a second row.

Two workers importing the same bytes at the same time both see "no
record" and both insert; the unique constraint rejects the second insert,
which then falls back to updating the row the first worker wrote. An
update that brings no document never unlinks a live document the
record already points at.

Author: Finance Platform Team
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from docintake.utils.logger import get_logger, import_prefix
from docintake.utils.exceptions import DatabaseError
from .models import DOCUMENT_MODELS, ContentRecord

# Initialize module logger
logger = get_logger(__name__)

RECORD_SOURCE = "manual_import"

# Metadata describing where the linked document's file lives
LINK_META_KEYS = ("documentId", "documentType", "storagePath", "statusFolder", "docTypeFolder")


@dataclass
class ImportOutcome:
    """
    Everything the recorder stores about one imported file.

    Attributes:
        content_hash: SHA-256 of the file content.
        file_name: Name the file was uploaded with.
        storage_path: Final path in the storage tree.
        status: Record status.
        failure_reason: Record failure reason.
        document_id: Linked business document, if one was created.
        document_type: Canonical document type.
        status_folder: 'processed' or 'unprocessed'.
        doc_type_folder: Processed sub-folder, None when unprocessed.
    """
    content_hash: str
    file_name: str
    storage_path: Optional[str]
    status: str
    failure_reason: Optional[str] = None
    specific_reason: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None
    processing_method: Optional[str] = None
    parsed_data: Optional[Dict[str, Any]] = None
    company_id: Optional[int] = None
    user_id: Optional[str] = None
    import_id: Optional[str] = None
    document_id: Optional[int] = None
    document_type: Optional[str] = None
    status_folder: Optional[str] = None
    doc_type_folder: Optional[str] = None
    is_duplicate: bool = False
    duplicate_file_id: Optional[int] = None
    duplicate_number: Optional[str] = None
    missing_fields: List[str] = field(default_factory=list)

    def metadata(self) -> Dict[str, Any]:
        """Metadata stored on the record."""
        meta = {
            "source": RECORD_SOURCE,
            "importId": self.import_id,
            "originalFileName": self.file_name,
            "documentId": self.document_id,
            "documentType": self.document_type,
            "storagePath": self.storage_path,
            "docTypeFolder": self.doc_type_folder,
            "statusFolder": self.status_folder,
            "fileHash": self.content_hash,
            "isDuplicate": self.is_duplicate,
            "duplicateFileId": self.duplicate_file_id,
            "specificFailureReason": self.specific_reason,
        }
        if self.duplicate_number:
            meta["duplicateInvoiceNumber"] = self.duplicate_number
        if self.missing_fields:
            meta["missingFields"] = list(self.missing_fields)
        return meta


class OutcomeRecorder:
    """
    Writes ContentRecords.

    Example:
        >>> recorder = OutcomeRecorder(import_id="imp-1")
        >>> record = recorder.record(session, outcome)
        >>> record.status
        'parsed'
    """

    def __init__(self, import_id: Optional[str] = None) -> None:
        self.import_id = import_id

    def record(self, session: Session, outcome: ImportOutcome) -> ContentRecord:
        """
        Create or update the record for an outcome's content hash.

        Raises:
            DatabaseError: The record could be neither inserted nor updated.
        """
        existing = self.find_any(session, outcome.content_hash)
        if existing is not None:
            return self._update(session, existing, outcome)

        record = ContentRecord(file_hash=outcome.content_hash)
        self._apply(record, outcome, {})
        try:
            with session.begin_nested():
                session.add(record)
                session.flush()
        except IntegrityError:
            logger.warning(
                f"{self._prefix()}Record for {outcome.content_hash[:16]}... was created concurrently, "
                f"updating it instead"
            )
            existing = self.find_any(session, outcome.content_hash)
            if existing is None:
                raise DatabaseError("record", f"hash {outcome.content_hash} conflicts but cannot be found")
            return self._update(session, existing, outcome)

        logger.info(f"{self._prefix()}Created file record {record.id} ({record.status})")
        return record

    @staticmethod
    def find_any(session: Session, content_hash: str) -> Optional[ContentRecord]:
        """Record for a hash, soft-deleted ones included."""
        return session.query(ContentRecord).filter(ContentRecord.file_hash == content_hash).first()

    @staticmethod
    def has_live_document(session: Session, record: ContentRecord) -> bool:
        """Whether the record's back-reference points at a non-deleted document."""
        model = DOCUMENT_MODELS.get(record.document_type)
        if model is None or not record.document_id:
            return False
        document = session.get(model, record.document_id)
        return document is not None and document.deleted_at is None

    def _update(self, session: Session, record: ContentRecord, outcome: ImportOutcome) -> ContentRecord:
        previous = dict(record.meta or {})
        keep_link = (
            outcome.document_id is None
            and not outcome.is_duplicate
            and self.has_live_document(session, record)
        )
        if keep_link:
            logger.warning(
                f"{self._prefix()}Record {record.id} stays linked to {record.document_type} "
                f"{record.document_id} at {record.file_path}"
            )
        self._apply(record, outcome, previous, keep_link=keep_link)
        record.deleted_at = None
        logger.info(f"{self._prefix()}Updated file record {record.id} ({record.status})")
        return record

    @staticmethod
    def _apply(
        record: ContentRecord,
        outcome: ImportOutcome,
        previous_meta: Dict[str, Any],
        keep_link: bool = False
    ) -> None:
        record.file_name = outcome.file_name
        if not keep_link:
            record.file_path = outcome.storage_path
        record.file_size = outcome.file_size
        record.file_type = outcome.file_type
        record.status = outcome.status
        record.failure_reason = outcome.failure_reason
        record.processing_method = outcome.processing_method
        record.parsed_data = outcome.parsed_data
        record.company_id = outcome.company_id
        record.uploaded_by = outcome.user_id
        record.processed_at = datetime.utcnow()

        # a duplicate keeps pointing at the document of the original import
        if not keep_link and (outcome.document_id is not None or not outcome.is_duplicate):
            record.document_id = outcome.document_id
            record.document_type = outcome.document_type if outcome.document_id is not None else None

        meta = dict(previous_meta)
        meta.pop("duplicateInvoiceNumber", None)
        meta.pop("missingFields", None)
        meta.update(outcome.metadata())
        if keep_link:
            for key in LINK_META_KEYS:
                if key in previous_meta:
                    meta[key] = previous_meta[key]
        record.meta = meta

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = ['OutcomeRecorder', 'ImportOutcome', 'RECORD_SOURCE']
