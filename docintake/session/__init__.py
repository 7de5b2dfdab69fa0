"""
Session Module.

Import session tracking and import event notifications.
"""

from .notifications import NotificationDispatcher, EVENT_DUPLICATE_DETECTED, EVENT_BATCH_COMPLETED
from .import_store import ImportStore, ImportSession

__all__ = [
    'NotificationDispatcher',
    'EVENT_DUPLICATE_DETECTED',
    'EVENT_BATCH_COMPLETED',
    'ImportStore',
    'ImportSession',
]
