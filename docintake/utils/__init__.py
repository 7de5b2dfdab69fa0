"""
Utility Module for the docintake Pipeline.

This module provides common utilities used across all other modules:
    - Logging configuration
    - Exception hierarchy
    - File and naming helpers
"""

from .logger import setup_logger, get_logger, import_prefix
from .helpers import (
    ensure_directory,
    get_file_extension,
    generate_timestamp,
    sanitize_filename,
    unique_filename,
    digits_only,
)

__all__ = [
    'setup_logger',
    'get_logger',
    'import_prefix',
    'ensure_directory',
    'get_file_extension',
    'generate_timestamp',
    'sanitize_filename',
    'unique_filename',
    'digits_only',
]
