"""
Import Notifications Module.

Publishes import events to registered listeners. Delivery channels
(email, chat, dashboards) register themselves as listeners; the
dispatcher only fans events out and never formats anything for people.

Events:
    - duplicate_detected: a file's content was already imported
    - batch_completed: every file of an import session has a result

Author: Finance Platform Team
"""

from typing import Any, Callable, Dict, List, Optional

from docintake.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

EVENT_DUPLICATE_DETECTED = "duplicate_detected"
EVENT_BATCH_COMPLETED = "batch_completed"

Listener = Callable[[str, Dict[str, Any]], None]


def logging_listener(event: str, payload: Dict[str, Any]) -> None:
    """Default listener: write each event to the log."""
    if event == EVENT_DUPLICATE_DETECTED:
        logger.warning(
            f"[Import {payload.get('importId')}] Duplicate file '{payload.get('fileName')}' "
            f"matches record {payload.get('duplicateFileId')}"
        )
    elif event == EVENT_BATCH_COMPLETED:
        summary = payload.get("summary", {})
        logger.info(
            f"[Import {payload.get('importId')}] Import completed: "
            f"{summary.get('successful', 0)} successful, {summary.get('failed', 0)} failed, "
            f"{summary.get('matched', 0)} matched, {summary.get('unallocated', 0)} unallocated"
        )
    else:
        logger.info(f"Event {event}: {payload}")


class NotificationDispatcher:
    """
    Fans import events out to listeners.

    A failing listener is logged and skipped; it never fails the import.

    Example:
        >>> dispatcher = NotificationDispatcher()
        >>> dispatcher.subscribe(lambda event, payload: print(event))
        >>> dispatcher.batch_completed("imp-1", {"successful": 3})
        batch_completed
    """

    def __init__(self, listeners: Optional[List[Listener]] = None, include_logging: bool = True) -> None:
        self._listeners: List[Listener] = []
        if include_logging:
            self._listeners.append(logging_listener)
        for listener in listeners or []:
            self.subscribe(listener)

    def subscribe(self, listener: Listener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    @property
    def listeners(self) -> List[Listener]:
        return list(self._listeners)

    def publish(self, event: str, payload: Dict[str, Any]) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, payload)
            except Exception as e:
                logger.error(f"Notification listener {listener!r} failed for {event}: {e}")

    def duplicate_detected(
        self,
        import_id: Optional[str],
        file_name: str,
        content_hash: str,
        duplicate_file_id: Optional[int],
        original_file_name: Optional[str] = None
    ) -> None:
        self.publish(EVENT_DUPLICATE_DETECTED, {
            "importId": import_id,
            "fileName": file_name,
            "fileHash": content_hash,
            "duplicateFileId": duplicate_file_id,
            "originalFileName": original_file_name,
        })

    def batch_completed(self, import_id: str, summary: Dict[str, Any]) -> None:
        self.publish(EVENT_BATCH_COMPLETED, {"importId": import_id, "summary": summary})


__all__ = [
    'NotificationDispatcher',
    'logging_listener',
    'EVENT_DUPLICATE_DETECTED',
    'EVENT_BATCH_COMPLETED',
]
