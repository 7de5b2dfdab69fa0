"""
Custom Exceptions Module.

This module defines the custom exceptions used throughout the ingestion
pipeline. Specific exceptions let each stage decide whether a failure is
terminal for the file, local to one field, or worth retrying at the
queue layer.

Exception Hierarchy:
    DocIntakeError (base)
    ├── InputError
    │   ├── UnsupportedFileTypeError
    │   ├── FileNotFoundError
    │   └── CorruptedFileError
    ├── TemplateError
    │   ├── TemplateNotFoundError
    │   └── TemplateMismatchError
    ├── ExtractionError
    │   └── RegionError
    ├── PersistenceError
    │   ├── StorageError
    │   └── DatabaseError
    └── JobError
        ├── TransientError
        └── JobCancelledError
"""


class DocIntakeError(Exception):
    """
    Base exception for all ingestion pipeline errors.

    All custom exceptions in this package inherit from this class,
    allowing for easy catching of all pipeline-specific errors.

    Attributes:
        message: Human-readable error message.
        details: Optional dictionary with additional error details.
    """

    def __init__(self, message: str, details: dict = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional context.
        """
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        """Return string representation of the error."""
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# INPUT ERRORS
# =============================================================================

class InputError(DocIntakeError):
    """Base exception for input handling errors."""
    pass


class UnsupportedFileTypeError(InputError):
    """
    Raised when an unsupported file type is provided.

    Example:
        >>> raise UnsupportedFileTypeError(".doc", [".pdf", ".xlsx"])
    """

    def __init__(self, file_type: str, supported_types: list):
        message = f"Unsupported file type: '{file_type}'"
        details = {"file_type": file_type, "supported_types": supported_types}
        super().__init__(message, details)


class FileNotFoundError(InputError):
    """Raised when an input file cannot be found."""

    def __init__(self, filepath: str):
        message = f"File not found: {filepath}"
        details = {"filepath": filepath}
        super().__init__(message, details)


class CorruptedFileError(InputError):
    """Raised when a file appears to be corrupted or unreadable."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Corrupted or unreadable file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# TEMPLATE ERRORS
# =============================================================================

class TemplateError(DocIntakeError):
    """Base exception for template resolution errors."""
    pass


class TemplateNotFoundError(TemplateError):
    """Raised when no usable template exists for a file."""

    def __init__(self, file_format: str, document_type: str = None, message: str = None):
        message = message or (
            f"No {file_format} template found for document type '{document_type}'"
        )
        details = {"file_format": file_format, "document_type": document_type}
        super().__init__(message, details)


class TemplateMismatchError(TemplateError):
    """Raised when a template's type does not match the detected document type."""

    def __init__(self, template_name: str, template_type: str, detected_type: str):
        message = (
            f"Template '{template_name}' is for '{template_type}' "
            f"but document was detected as '{detected_type}'"
        )
        details = {
            "template": template_name,
            "template_type": template_type,
            "detected_type": detected_type,
        }
        super().__init__(message, details)


# =============================================================================
# EXTRACTION ERRORS
# =============================================================================

class ExtractionError(DocIntakeError):
    """Base exception for field extraction errors."""
    pass


class RegionError(ExtractionError):
    """Raised when text cannot be read from a template region."""

    def __init__(self, field: str, page: int, reason: str = None):
        message = f"Failed to extract text from region for field '{field}' on page {page}"
        details = {"field": field, "page": page, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# PERSISTENCE ERRORS
# =============================================================================

class PersistenceError(DocIntakeError):
    """Base exception for file storage and database errors."""
    pass


class StorageError(PersistenceError):
    """Raised when a file cannot be placed in the storage tree."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to store file: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


class DatabaseError(PersistenceError):
    """Raised when database operations fail."""

    def __init__(self, operation: str, reason: str = None):
        message = f"Database operation failed: {operation}"
        details = {"operation": operation, "reason": reason}
        super().__init__(message, details)


# =============================================================================
# JOB ERRORS
# =============================================================================

class JobError(DocIntakeError):
    """Base exception for job execution errors."""
    pass


class TransientError(JobError):
    """Raised for infrastructure failures that are safe to retry."""
    pass


class JobCancelledError(JobError):
    """Raised when the enclosing import session has been cancelled."""

    def __init__(self, import_id: str):
        message = f"Import {import_id} was cancelled"
        details = {"import_id": import_id}
        super().__init__(message, details)


# =============================================================================
# OUTPUT ERRORS
# =============================================================================

class OutputError(DocIntakeError):
    """Base exception for report output errors."""
    pass


class ReportExportError(OutputError):
    """Raised when an import report cannot be written."""

    def __init__(self, filepath: str, reason: str = None):
        message = f"Failed to export import report: {filepath}"
        details = {"filepath": filepath, "reason": reason}
        super().__init__(message, details)


__all__ = [
    'DocIntakeError',
    'InputError',
    'UnsupportedFileTypeError',
    'FileNotFoundError',
    'CorruptedFileError',
    'TemplateError',
    'TemplateNotFoundError',
    'TemplateMismatchError',
    'ExtractionError',
    'RegionError',
    'PersistenceError',
    'StorageError',
    'DatabaseError',
    'JobError',
    'TransientError',
    'JobCancelledError',
    'OutputError',
    'ReportExportError',
]
