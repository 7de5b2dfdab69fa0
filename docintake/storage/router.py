"""
Storage Router Module.

Decides where an imported file lives and moves it there.

Layout under ``paths.storage_root``::

    processed/{invoices|creditnotes|statements}/YYYY/MM/DD/<file>
    unprocessed/failed/YYYY-MM-DD/<file>

Allocated, non-duplicate files go to the processed tree; everything else
(unallocated, duplicates, files that failed extraction) lands in the
dated failed folder for review. Names that already exist get ``_1``,
``_2``, ... suffixes.

Author: Finance Platform Team
"""

import os
import shutil
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from config import get_config
from docintake.utils.logger import get_logger, import_prefix
from docintake.utils.exceptions import StorageError
from docintake.utils.helpers import ensure_directory, sanitize_filename, unique_filename

# Initialize module logger
logger = get_logger(__name__)

STATUS_FOLDER_PROCESSED = "processed"
STATUS_FOLDER_UNPROCESSED = "unprocessed"

DEFAULT_TYPE_FOLDERS = {
    "invoice": "invoices",
    "credit_note": "creditnotes",
    "statement": "statements",
}


@dataclass
class StoragePlan:
    """Where a file is going."""
    directory: Path
    filename: str
    status_folder: str
    doc_type_folder: Optional[str] = None

    @property
    def path(self) -> Path:
        return self.directory / self.filename

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "storagePath": str(self.path),
            "statusFolder": self.status_folder,
            "docTypeFolder": self.doc_type_folder,
        }


class StorageRouter:
    """
    Plans destinations and copies files into the storage tree.

    Attributes:
        root: Storage root directory.
        processed_dir: Processed tree, relative to root.
        unprocessed_dir: Failed tree, relative to root.
        type_folders: Document type to folder name.

    Example:
        >>> router = StorageRouter()
        >>> plan = router.plan("Inv 1001.pdf", "invoice", allocated=True)
        >>> router.store(plan, "/tmp/upload-1234")
        PosixPath('data/storage/processed/invoices/2025/06/01/Inv 1001.pdf')
    """

    def __init__(self, root: Optional[Union[str, Path]] = None, import_id: Optional[str] = None) -> None:
        self.root = Path(root or get_config("paths.storage_root", "data/storage"))
        self.processed_dir = get_config("storage.processed_dir", STATUS_FOLDER_PROCESSED)
        self.unprocessed_dir = get_config("storage.unprocessed_dir", "unprocessed/failed")
        self.type_folders = dict(get_config("storage.type_folders", DEFAULT_TYPE_FOLDERS) or DEFAULT_TYPE_FOLDERS)
        self.import_id = import_id

    def plan(
        self,
        original_name: str,
        document_type: Optional[str],
        allocated: bool,
        now: Optional[datetime] = None
    ) -> StoragePlan:
        """
        Plan the destination of a file.

        Args:
            original_name: Name the file was uploaded with.
            document_type: Canonical document type.
            allocated: Matched to a company and not a duplicate.
            now: Date to file under (defaults to today).

        Returns:
            StoragePlan with a collision-free filename.
        """
        now = now or datetime.now()

        if allocated:
            folder = self.type_folders.get(document_type or "invoice", DEFAULT_TYPE_FOLDERS["invoice"])
            directory = self.root / self.processed_dir / folder / f"{now:%Y}" / f"{now:%m}" / f"{now:%d}"
            status_folder = STATUS_FOLDER_PROCESSED
        else:
            folder = None
            directory = self.root / self.unprocessed_dir / f"{now:%Y-%m-%d}"
            status_folder = STATUS_FOLDER_UNPROCESSED

        filename = unique_filename(directory, sanitize_filename(original_name))
        return StoragePlan(
            directory=directory,
            filename=filename,
            status_folder=status_folder,
            doc_type_folder=folder,
        )

    def store(self, plan: StoragePlan, source: Union[str, Path], remove_source: bool = True) -> Path:
        """
        Copy a temp file to its planned destination and remove the temp file.

        With ``remove_source=False`` the temp file is kept after a successful
        copy; the caller discards it once the import is committed.

        The filename is probed again right before the copy, so a file that
        appeared after planning is never overwritten.

        Raises:
            StorageError: Copy failed. The temp file is removed either way.
        """
        source = Path(source)
        try:
            ensure_directory(plan.directory)
            plan.filename = unique_filename(plan.directory, plan.filename)
            shutil.copy2(source, plan.path)
        except OSError as e:
            self.discard(source)
            raise StorageError(str(plan.path), str(e)) from e

        if remove_source:
            self.discard(source)
        logger.info(f"{self._prefix()}Stored file at {plan.path}")
        return plan.path

    def discard(self, source: Optional[Union[str, Path]]) -> bool:
        """
        Delete a temp file if it still exists.

        Returns:
            True when a file was removed.
        """
        if not source or not os.path.exists(source):
            return False
        try:
            os.remove(source)
        except OSError as e:
            logger.warning(f"{self._prefix()}Could not remove temp file {source}: {e}")
            return False
        logger.debug(f"{self._prefix()}Removed temp file {source}")
        return True

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = ['StorageRouter', 'StoragePlan', 'STATUS_FOLDER_PROCESSED', 'STATUS_FOLDER_UNPROCESSED']
