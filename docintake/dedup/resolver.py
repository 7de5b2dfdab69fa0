"""
Duplicate Resolver Module.

Decides whether a content hash that already exists in the store is a real
duplicate. A hash match only blocks a new upload while a live business
document still references the earlier file; otherwise the earlier record
is an orphan (its document was purged or never created) and the upload
proceeds as new.

Live reference search order:
    1. Explicit back-reference (document_id + document_type) on the record
    2. Substring match of the stored path, its basename or the stored file
       name against the file_url of each document type

Author: Finance Platform Team
"""

import os
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import get_config
from docintake.utils.logger import get_logger, import_prefix
from docintake.store.models import (
    ContentRecord,
    DOCUMENT_MODELS,
    STATUS_DUPLICATE,
    STATUS_FAILED,
    STATUS_UNALLOCATED,
)

# Initialize module logger
logger = get_logger(__name__)

OUTCOME_NEW = "new"
OUTCOME_ORPHANED = "orphaned"
OUTCOME_DUPLICATE = "duplicate"

# Records in these states never block a new upload
NON_BLOCKING_STATUSES = (STATUS_UNALLOCATED, STATUS_FAILED, STATUS_DUPLICATE)


@dataclass
class DuplicateCheck:
    """
    Outcome of a duplicate check.

    Attributes:
        outcome: One of "new", "orphaned", "duplicate".
        record: Existing record for the hash, if any.
        duplicate_file_id: Id of the blocking record (duplicates only).
        linked_document: (document_type, id) of the live document found.
        original_file_name: Upload name of the blocking record, read before
            the re-import overwrites it.
    """
    outcome: str = OUTCOME_NEW
    record: Optional[ContentRecord] = None
    duplicate_file_id: Optional[int] = None
    linked_document: Optional[Tuple[str, int]] = None
    original_file_name: Optional[str] = None

    @property
    def is_duplicate(self) -> bool:
        return self.outcome == OUTCOME_DUPLICATE

    @property
    def is_orphaned(self) -> bool:
        return self.outcome == OUTCOME_ORPHANED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "recordId": self.record.id if self.record is not None else None,
            "duplicateFileId": self.duplicate_file_id,
            "linkedDocument": list(self.linked_document) if self.linked_document else None,
        }


class DuplicateResolver:
    """
    Resolves content-hash matches into new / orphaned / duplicate.

    Attributes:
        retention_days: Days a soft-deleted record keeps blocking its
            hash. None means soft-deleted records are always considered.

    Example:
        >>> resolver = DuplicateResolver()
        >>> check = resolver.resolve(session, content_hash)
        >>> check.is_duplicate
        False
    """

    def __init__(self, retention_days: Optional[int] = None, import_id: Optional[str] = None) -> None:
        if retention_days is None:
            retention_days = get_config("dedup.retention_days")
        self.retention_days = retention_days
        self.import_id = import_id

    def resolve(
        self,
        session: Session,
        content_hash: str,
        precomputed: Optional[Dict[str, Any]] = None
    ) -> DuplicateCheck:
        """
        Classify a content hash against existing records.

        Args:
            session: Active database session.
            content_hash: SHA-256 hex digest of the upload.
            precomputed: Optional ``{isDuplicate, duplicateFileId}`` from an
                upstream batch check. It only selects which record to check;
                the live reference check always runs.

        Returns:
            DuplicateCheck describing the outcome.
        """
        record = self._select_record(session, content_hash, precomputed)
        if record is None:
            return DuplicateCheck(outcome=OUTCOME_NEW)

        # a duplicate re-import leaves the record unallocated but still linked
        if record.status in NON_BLOCKING_STATUSES and not record.document_id:
            logger.info(
                f"{self._prefix()}Existing record {record.id} has status '{record.status}', "
                f"not treated as duplicate"
            )
            return DuplicateCheck(outcome=OUTCOME_NEW, record=record)

        linked = self.find_live_reference(session, record)
        if linked is None:
            logger.info(
                f"{self._prefix()}Hash matches record {record.id} but no live document "
                f"references it, processing as new"
            )
            self._rehabilitate(record)
            return DuplicateCheck(outcome=OUTCOME_ORPHANED, record=record)

        logger.warning(
            f"{self._prefix()}Duplicate file detected: {content_hash[:16]}... "
            f"(record {record.id}, {linked[0]} {linked[1]})"
        )
        return DuplicateCheck(
            outcome=OUTCOME_DUPLICATE,
            record=record,
            duplicate_file_id=record.id,
            linked_document=linked,
            original_file_name=(record.meta or {}).get("originalFileName"),
        )

    def _select_record(
        self,
        session: Session,
        content_hash: str,
        precomputed: Optional[Dict[str, Any]]
    ) -> Optional[ContentRecord]:
        if precomputed and precomputed.get("isDuplicate") and precomputed.get("duplicateFileId"):
            record = session.get(ContentRecord, precomputed["duplicateFileId"])
            if record is not None:
                logger.debug(f"{self._prefix()}Using precomputed duplicate record {record.id}")
                return record
            logger.warning(
                f"{self._prefix()}Precomputed duplicate record "
                f"{precomputed['duplicateFileId']} not found, checking by hash"
            )

        return self.find_by_hash(session, content_hash)

    def find_by_hash(self, session: Session, content_hash: str) -> Optional[ContentRecord]:
        """Find the record for a hash, honouring the soft-delete retention window."""
        query = session.query(ContentRecord).filter(ContentRecord.file_hash == content_hash)

        if self.retention_days is not None:
            cutoff = datetime.utcnow() - timedelta(days=self.retention_days)
            query = query.filter(
                or_(ContentRecord.deleted_at.is_(None), ContentRecord.deleted_at >= cutoff)
            )

        return query.order_by(ContentRecord.created_at.desc()).first()

    def find_live_reference(self, session: Session, record: ContentRecord) -> Optional[Tuple[str, int]]:
        """
        Find a non-deleted business document referencing a record.

        When the record carries a back-reference it is authoritative: a
        deleted or missing target means the record is orphaned, even if
        some other document's file_url happens to contain its name.

        Returns:
            (document_type, document_id) or None.
        """
        if record.document_id and record.document_type in DOCUMENT_MODELS:
            model = DOCUMENT_MODELS[record.document_type]
            document = session.get(model, record.document_id)
            if document is not None and document.deleted_at is None:
                return record.document_type, document.id
            return None

        for pattern in self._search_patterns(record):
            for document_type, model in DOCUMENT_MODELS.items():
                document = (
                    session.query(model)
                    .filter(model.file_url.contains(pattern, autoescape=True))
                    .filter(model.deleted_at.is_(None))
                    .first()
                )
                if document is not None:
                    logger.debug(
                        f"{self._prefix()}Found linked {document_type} {document.id} "
                        f"using pattern: {pattern}"
                    )
                    return document_type, document.id
        return None

    @staticmethod
    def _search_patterns(record: ContentRecord) -> List[str]:
        patterns = []
        if record.file_path:
            patterns.append(record.file_path)
            basename = os.path.basename(record.file_path)
            if basename and basename != record.file_path:
                patterns.append(basename)
        if record.file_name:
            patterns.append(record.file_name)
        return patterns

    @staticmethod
    def _rehabilitate(record: ContentRecord) -> None:
        record.deleted_at = None
        record.document_id = None
        record.document_type = None

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = [
    'DuplicateResolver',
    'DuplicateCheck',
    'OUTCOME_NEW',
    'OUTCOME_ORPHANED',
    'OUTCOME_DUPLICATE',
]
