"""
Input Handler Module.

File validation and PDF text access.
"""

from .handler import InputHandler, IncomingFile, FORMAT_PDF, FORMAT_EXCEL
from .pdf_processor import PDFProcessor, PDFDocument, PageText, TextItem

__all__ = [
    'InputHandler',
    'IncomingFile',
    'FORMAT_PDF',
    'FORMAT_EXCEL',
    'PDFProcessor',
    'PDFDocument',
    'PageText',
    'TextItem',
]
