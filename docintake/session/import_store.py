"""
Import Session Store Module.

Tracks import sessions (one per batch of uploaded files) in memory:
progress counters, per-file results, cancellation and cleanup of the
temp files an abandoned session leaves behind.

All methods are safe to call from worker threads.

Author: Finance Platform Team
"""

import threading
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from config import get_config
from docintake.utils.logger import get_logger
from .notifications import NotificationDispatcher

# Initialize module logger
logger = get_logger(__name__)

SESSION_PROCESSING = "processing"
SESSION_COMPLETED = "completed"
SESSION_CANCELLED = "cancelled"


@dataclass
class ImportSession:
    """State of one import batch."""
    import_id: str
    total_files: int
    file_paths: List[str] = field(default_factory=list)
    user_id: Optional[str] = None
    processed_files: int = 0
    current_file: Optional[str] = None
    results: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[Dict[str, Any]] = field(default_factory=list)
    status: str = SESSION_PROCESSING
    cancelled: bool = False
    created_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None

    @property
    def is_complete(self) -> bool:
        return self.processed_files >= self.total_files

    def summary(self) -> Dict[str, int]:
        """
        Result counts.

        ``matched`` counts results allocated to a company; ``unallocated``
        counts successful results without one.
        """
        return {
            "total": self.total_files,
            "processed": self.processed_files,
            "successful": sum(1 for r in self.results if r.get("success")),
            "failed": sum(1 for r in self.results if not r.get("success")),
            "matched": sum(1 for r in self.results if r.get("companyId")),
            "unallocated": sum(1 for r in self.results if r.get("success") and not r.get("companyId")),
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "importId": self.import_id,
            "totalFiles": self.total_files,
            "processedFiles": self.processed_files,
            "currentFile": self.current_file,
            "results": list(self.results),
            "errors": list(self.errors),
            "filePaths": list(self.file_paths),
            "userId": self.user_id,
            "status": self.status,
            "cancelled": self.cancelled,
            "createdAt": self.created_at.isoformat(),
            "completedAt": self.completed_at.isoformat() if self.completed_at else None,
            "summary": self.summary(),
        }


class ImportStore:
    """
    In-memory registry of import sessions.

    Example:
        >>> store = ImportStore()
        >>> store.create("imp-1", total_files=2, file_paths=["/tmp/a", "/tmp/b"])
        >>> store.add_result("imp-1", {"success": True, "companyId": 4})
        >>> store.get("imp-1").processed_files
        1
    """

    def __init__(self, notifications: Optional[NotificationDispatcher] = None) -> None:
        self.notifications = notifications or NotificationDispatcher()
        self.max_age_hours = get_config("session.max_age_hours", 24)
        self._sessions: Dict[str, ImportSession] = {}
        self._lock = threading.RLock()

    def create(
        self,
        import_id: str,
        total_files: int,
        file_paths: Optional[List[str]] = None,
        user_id: Optional[str] = None
    ) -> ImportSession:
        session = ImportSession(
            import_id=import_id,
            total_files=total_files,
            file_paths=[str(p) for p in file_paths or []],
            user_id=user_id,
        )
        with self._lock:
            self._sessions[import_id] = session
        logger.info(f"[Import {import_id}] Session created for {total_files} file(s)")
        return session

    def get(self, import_id: str) -> Optional[ImportSession]:
        with self._lock:
            return self._sessions.get(import_id)

    def add_result(self, import_id: str, result: Dict[str, Any]) -> Optional[ImportSession]:
        """
        Append a file result and advance the session.

        The session completes when every file has a result; the
        ``batch_completed`` event fires exactly once.
        """
        completed_now = False
        with self._lock:
            session = self._sessions.get(import_id)
            if session is None:
                logger.warning(f"[Import {import_id}] Result for unknown session ignored")
                return None

            session.results.append(result)
            session.processed_files += 1
            if not result.get("success"):
                session.errors.append({"fileName": result.get("fileName"), "error": result.get("error")})

            if session.is_complete and session.status != SESSION_COMPLETED:
                session.status = SESSION_COMPLETED
                session.completed_at = datetime.now()
                completed_now = True
            summary = session.summary()

        if completed_now:
            self.notifications.batch_completed(import_id, summary)
        return session

    def update(self, import_id: str, **changes: Any) -> Optional[ImportSession]:
        with self._lock:
            session = self._sessions.get(import_id)
            if session is None:
                return None
            for key, value in changes.items():
                if not hasattr(session, key):
                    raise AttributeError(f"ImportSession has no field '{key}'")
                setattr(session, key, value)
            return session

    def cancel(self, import_id: str) -> bool:
        with self._lock:
            session = self._sessions.get(import_id)
            if session is None:
                return False
            session.cancelled = True
            session.status = SESSION_CANCELLED
        logger.info(f"[Import {import_id}] Session cancelled")
        return True

    def is_cancelled(self, import_id: Optional[str]) -> bool:
        if not import_id:
            return False
        with self._lock:
            session = self._sessions.get(import_id)
            return session.cancelled if session else False

    def delete(self, import_id: str) -> List[str]:
        """
        Remove a session.

        Returns:
            The session's temp file paths, for the caller to clean up.
        """
        with self._lock:
            session = self._sessions.pop(import_id, None)
        return list(session.file_paths) if session else []

    def cleanup_old(self, now: Optional[datetime] = None) -> int:
        """Drop sessions older than ``session.max_age_hours``; returns the count."""
        cutoff = (now or datetime.now()) - timedelta(hours=self.max_age_hours)
        with self._lock:
            expired = [key for key, s in self._sessions.items() if s.created_at < cutoff]
            for key in expired:
                del self._sessions[key]
        if expired:
            logger.info(f"Removed {len(expired)} expired import session(s)")
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


__all__ = [
    'ImportStore',
    'ImportSession',
    'SESSION_PROCESSING',
    'SESSION_COMPLETED',
    'SESSION_CANCELLED',
]
