"""
Main Input Handler Module.

This module provides the InputHandler class that validates incoming files
before they enter the pipeline. It detects the file format from the
declared upload name and rejects missing, empty or unsupported files.

Usage:
    from docintake.input_handler import InputHandler

    handler = InputHandler()
    incoming = handler.prepare("/tmp/upload_1a2b", original_name="INV-001.pdf",
                               import_id="imp-1", user_id="42")

    # Collect a folder for a batch import
    paths = handler.collect("./inbox/")

Classes:
    IncomingFile: A validated file awaiting processing
    InputHandler: Main class for file input handling
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union

from config import get_config
from docintake.utils.logger import get_logger
from docintake.utils.helpers import format_file_size, get_file_extension
from docintake.utils.exceptions import (
    InputError,
    UnsupportedFileTypeError,
    FileNotFoundError,
    CorruptedFileError
)


# Initialize module logger
logger = get_logger(__name__)

FORMAT_PDF = "pdf"
FORMAT_EXCEL = "excel"


@dataclass
class IncomingFile:
    """
    A file accepted for processing.

    Attributes:
        path: Location of the (temporary) file on disk.
        file_name: Temporary, queue-safe file name.
        original_name: Name declared by the uploader.
        size: Size in bytes.
        file_format: 'pdf' or 'excel'.
        import_id: Enclosing import session id.
        user_id: Uploading user.
    """
    path: Path
    file_name: str
    original_name: str
    size: int
    file_format: str
    import_id: Optional[str] = None
    user_id: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.original_name or self.file_name

    def __repr__(self) -> str:
        return (
            f"IncomingFile(name='{self.display_name}', "
            f"format='{self.file_format}', size={format_file_size(self.size)})"
        )


class InputHandler:
    """
    Validates and describes incoming files.

    Attributes:
        pdf_extensions: Extensions handled as PDF.
        excel_extensions: Extensions handled as Excel workbooks.

    Example:
        >>> handler = InputHandler()
        >>> handler.detect_file_format("statement.XLSX")
        'excel'
    """

    PDF_EXTENSIONS = {'.pdf'}
    EXCEL_EXTENSIONS = {'.xlsx', '.xlsm'}

    def __init__(self) -> None:
        """Initialize the InputHandler from configuration."""
        self.pdf_extensions = {
            ext.lower() for ext in get_config("input.pdf_extensions", list(self.PDF_EXTENSIONS))
        }
        self.excel_extensions = {
            ext.lower() for ext in get_config("input.excel_extensions", list(self.EXCEL_EXTENSIONS))
        }
        self.supported_extensions = self.pdf_extensions | self.excel_extensions

        logger.debug(f"InputHandler initialized with extensions: {sorted(self.supported_extensions)}")

    def detect_file_format(self, filename: Union[str, Path]) -> str:
        """
        Detect the format of a file from its extension.

        Raises:
            UnsupportedFileTypeError: If the extension is not supported.
        """
        extension = get_file_extension(filename)

        if extension in self.pdf_extensions:
            return FORMAT_PDF
        if extension in self.excel_extensions:
            return FORMAT_EXCEL

        raise UnsupportedFileTypeError(extension, sorted(self.supported_extensions))

    def validate_file(self, filepath: Union[str, Path]) -> Path:
        """
        Validate that a file exists, is a regular file and is not empty.

        Raises:
            FileNotFoundError: If file doesn't exist.
            InputError: If the path is not a file.
            CorruptedFileError: If the file is empty.
        """
        path = Path(filepath)

        if not path.exists():
            raise FileNotFoundError(str(filepath))

        if not path.is_file():
            raise InputError(f"Path is not a file: {filepath}")

        if path.stat().st_size == 0:
            raise CorruptedFileError(str(filepath), "File is empty")

        return path

    def prepare(
        self,
        filepath: Union[str, Path],
        original_name: Optional[str] = None,
        file_name: Optional[str] = None,
        import_id: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> IncomingFile:
        """
        Validate a file and describe it for the pipeline.

        The format is taken from the declared original name when present,
        because temporary names may carry no extension.

        Raises:
            InputError: Any validation failure (terminal for the file).
        """
        path = self.validate_file(filepath)
        file_name = file_name or path.name
        original_name = original_name or file_name

        file_format = self.detect_file_format(original_name)

        incoming = IncomingFile(
            path=path,
            file_name=file_name,
            original_name=original_name,
            size=path.stat().st_size,
            file_format=file_format,
            import_id=import_id,
            user_id=user_id,
        )
        logger.debug(f"File validated: {incoming}")
        return incoming

    def collect(self, source: Union[str, Path], recursive: bool = False) -> List[Path]:
        """
        Collect supported files from a file or directory path.

        Args:
            source: A single file or a directory.
            recursive: Descend into sub-directories.

        Returns:
            Sorted list of supported file paths.
        """
        source = Path(source)
        if source.is_file():
            return [source]
        if not source.is_dir():
            raise FileNotFoundError(str(source))

        pattern = '**/*' if recursive else '*'
        files = sorted(
            p for p in source.glob(pattern)
            if p.is_file() and p.suffix.lower() in self.supported_extensions
        )
        logger.info(f"Found {len(files)} supported file(s) in {source}")
        return files


__all__ = ['IncomingFile', 'InputHandler', 'FORMAT_PDF', 'FORMAT_EXCEL']
