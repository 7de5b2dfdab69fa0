"""
Storage Module.

Routing of imported files into the processed and failed storage trees.
"""

from .router import StorageRouter, StoragePlan, STATUS_FOLDER_PROCESSED, STATUS_FOLDER_UNPROCESSED

__all__ = ['StorageRouter', 'StoragePlan', 'STATUS_FOLDER_PROCESSED', 'STATUS_FOLDER_UNPROCESSED']
