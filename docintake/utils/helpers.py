"""
Helper Utilities Module.

This module provides common utility functions used throughout the
ingestion pipeline. Functions here are generic and reusable across
stages.

Functions:
    - ensure_directory: Create directory if it doesn't exist
    - get_file_extension: Extract file extension safely
    - generate_timestamp: Generate formatted timestamps
    - sanitize_filename: Replace characters the storage tree rejects
    - unique_filename: Probe a directory for a free name
    - digits_only: Strip everything but digits
    - format_file_size: Human-readable file sizes
"""

import re
from datetime import datetime
from pathlib import Path
from typing import Union

# Characters rejected in stored file names (path separators are removed
# earlier by taking the basename)
INVALID_FILENAME_CHARS = re.compile(r'[<>:"|?*\x00-\x1f]')


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Ensure a directory exists, creating it if necessary.

    Safe to call concurrently from several workers: an existing
    directory is never an error.

    Args:
        path: Directory path to ensure exists.

    Returns:
        Path object pointing to the directory.

    Raises:
        PermissionError: If directory cannot be created due to permissions.

    Example:
        >>> ensure_directory("data/storage/processed")
        PosixPath('data/storage/processed')
    """
    dir_path = Path(path)
    dir_path.mkdir(parents=True, exist_ok=True)
    return dir_path


def get_file_extension(filepath: Union[str, Path]) -> str:
    """
    Extract the file extension from a filepath.

    Returns the extension in lowercase, including the dot.
    Returns empty string if no extension exists.

    Args:
        filepath: Path to the file.

    Returns:
        Lowercase file extension including dot (e.g., ".pdf").

    Example:
        >>> get_file_extension("document.PDF")
        ".pdf"
        >>> get_file_extension("noextension")
        ""
    """
    return Path(filepath).suffix.lower()


def generate_timestamp(format_str: str = "%Y%m%d_%H%M%S") -> str:
    """
    Generate a formatted timestamp string.

    Args:
        format_str: strftime format string.

    Returns:
        Formatted timestamp string.

    Example:
        >>> generate_timestamp("%Y-%m-%d")
        "2026-01-21"
    """
    return datetime.now().strftime(format_str)


def sanitize_filename(filename: str, replacement: str = "_") -> str:
    """
    Sanitize a filename for the storage tree.

    Only the basename is kept; characters in ``<>:"|?*`` and control
    characters are replaced.

    Args:
        filename: Original filename (may include directories).
        replacement: Character to replace invalid characters with.

    Returns:
        Sanitized base filename.

    Example:
        >>> sanitize_filename("uploads/inv:123?.pdf")
        "inv_123_.pdf"
    """
    base = Path(filename.replace('\\', '/')).name
    sanitized = INVALID_FILENAME_CHARS.sub(replacement, base)
    return sanitized or "unnamed"


def unique_filename(directory: Union[str, Path], filename: str) -> str:
    """
    Return a filename that does not yet exist in ``directory``.

    Collisions get an incrementing numeric suffix before the extension:
    ``name.pdf``, ``name_1.pdf``, ``name_2.pdf``.

    Args:
        directory: Target directory (need not exist).
        filename: Desired filename.

    Returns:
        First free filename.
    """
    directory = Path(directory)
    candidate = filename
    stem = Path(filename).stem
    suffix = Path(filename).suffix
    counter = 1

    while (directory / candidate).exists():
        candidate = f"{stem}_{counter}{suffix}"
        counter += 1

    return candidate


def digits_only(value) -> str:
    """
    Strip every non-digit character from a value.

    Example:
        >>> digits_only(" 12-345 ")
        "12345"
    """
    if value is None:
        return ""
    return re.sub(r'\D', '', str(value))


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in human-readable format.

    Example:
        >>> format_file_size(1536)
        "1.5 KB"
    """
    size = float(size_bytes)
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} PB"

