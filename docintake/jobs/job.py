"""
Import Job Module.

The unit of work handed to the worker (one uploaded file) and the result
it produces for the import session.

Author: Finance Platform Team
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class ImportJob:
    """
    One file to import.

    Attributes:
        file_path: Temp file holding the upload.
        file_name: Temp file name.
        original_name: Name the file was uploaded with.
        import_id: Import session the file belongs to.
        user_id: Uploading user.
        precomputed_hash: Content hash computed at upload time (trusted).
        precomputed_duplicate_info: ``{isDuplicate, duplicateFileId}`` from
            an upstream batch check.
        document_type_hint: Document type suggested by the uploader.

    Example:
        >>> job = ImportJob.from_payload({"filePath": "/tmp/up-1", "originalName": "inv.pdf", "importId": "imp-1"})
        >>> job.display_name
        'inv.pdf'
    """
    file_path: str
    file_name: Optional[str] = None
    original_name: Optional[str] = None
    import_id: Optional[str] = None
    user_id: Optional[str] = None
    precomputed_hash: Optional[str] = None
    precomputed_duplicate_info: Optional[Dict[str, Any]] = None
    document_type_hint: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> 'ImportJob':
        """Build a job from a queue payload."""
        if not payload.get("filePath"):
            raise ValueError("Job payload has no filePath")
        return cls(
            file_path=str(payload["filePath"]),
            file_name=payload.get("fileName"),
            original_name=payload.get("originalName"),
            import_id=payload.get("importId"),
            user_id=payload.get("userId"),
            precomputed_hash=payload.get("precomputedHash"),
            precomputed_duplicate_info=payload.get("precomputedDuplicateInfo"),
            document_type_hint=payload.get("documentTypeHint"),
        )

    def to_payload(self) -> Dict[str, Any]:
        return {
            "filePath": self.file_path,
            "fileName": self.file_name,
            "originalName": self.original_name,
            "importId": self.import_id,
            "userId": self.user_id,
            "precomputedHash": self.precomputed_hash,
            "precomputedDuplicateInfo": self.precomputed_duplicate_info,
            "documentTypeHint": self.document_type_hint,
        }

    @property
    def display_name(self) -> str:
        return self.original_name or self.file_name or self.file_path


@dataclass
class JobResult:
    """Outcome of one job, as appended to the import session."""
    success: bool
    file_name: str
    file_id: Optional[int] = None
    document_id: Optional[int] = None
    company_id: Optional[int] = None
    status: Optional[str] = None
    document_type: Optional[str] = None
    is_duplicate: bool = False
    duplicate_file_id: Optional[int] = None
    error: Optional[str] = None
    processing_time: float = 0.0
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())

    @classmethod
    def failure(cls, job: ImportJob, error: str, processing_time: float = 0.0) -> 'JobResult':
        return cls(success=False, file_name=job.display_name, error=error, processing_time=processing_time)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "success": self.success,
            "fileId": self.file_id,
            "documentId": self.document_id,
            "companyId": self.company_id,
            "status": self.status,
            "isDuplicate": self.is_duplicate,
            "fileName": self.file_name,
            "documentType": self.document_type,
            "processingTime": round(self.processing_time, 3),
            "timestamp": self.timestamp,
        }
        if self.duplicate_file_id is not None:
            data["duplicateFileId"] = self.duplicate_file_id
        if self.error:
            data["error"] = self.error
        return data


__all__ = ['ImportJob', 'JobResult']
