"""
PDF Processor Module.

This module handles PDF text access for coordinate-based extraction:
    - Page count known up front
    - Per-page positioned words in normalized top-left coordinates
    - Full-text access for document type sniffing
    - Per-document page cache so each page is parsed once

Uses pdfplumber by default, with PyMuPDF selectable through
``input.pdf.backend``.

Author: Finance Platform Team
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Union

import fitz  # PyMuPDF
import pdfplumber

from config import get_config
from docintake.utils.logger import get_logger
from docintake.utils.exceptions import CorruptedFileError, InputError, RegionError

# Initialize module logger
logger = get_logger(__name__)

SUPPORTED_BACKENDS = ("pdfplumber", "pymupdf")


@dataclass
class TextItem:
    """
    A word on a page.

    Attributes:
        text: Word text.
        x: Left edge as a fraction of page width.
        y: Baseline as a fraction of page height, measured from the top.
    """
    text: str
    x: float
    y: float


@dataclass
class PageText:
    """Positioned words of a single page (1-based page number)."""
    number: int
    width: float
    height: float
    items: List[TextItem] = field(default_factory=list)

    @property
    def text(self) -> str:
        return ' '.join(item.text for item in self.items)


class PDFDocument:
    """
    An open PDF with cached page text.

    Use as a context manager so the underlying file handle is released.

    Example:
        >>> with PDFProcessor().open("invoice.pdf") as pdf:
        ...     page = pdf.get_page(1)
        ...     print(pdf.page_count, len(page.items))
    """

    def __init__(self, filepath: Union[str, Path], backend: str = "pdfplumber") -> None:
        self.filepath = Path(filepath)
        self.backend = backend
        self._pages: Dict[int, PageText] = {}
        self._full_text: Optional[str] = None
        self._doc = None

        try:
            if backend == "pymupdf":
                self._doc = fitz.open(str(self.filepath))
                self.page_count = self._doc.page_count
            else:
                self._doc = pdfplumber.open(str(self.filepath))
                self.page_count = len(self._doc.pages)
        except Exception as e:
            raise CorruptedFileError(str(self.filepath), str(e)) from e

    def __enter__(self) -> 'PDFDocument':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def get_page(self, number: int) -> PageText:
        """
        Return the positioned words of a page.

        Args:
            number: 1-based page number.

        Raises:
            RegionError: If the page does not exist.
        """
        if number < 1 or number > self.page_count:
            raise RegionError("page", number, f"Page {number} does not exist in PDF")

        if number not in self._pages:
            if self.backend == "pymupdf":
                self._pages[number] = self._read_pymupdf_page(number)
            else:
                self._pages[number] = self._read_pdfplumber_page(number)
        return self._pages[number]

    def _read_pdfplumber_page(self, number: int) -> PageText:
        page = self._doc.pages[number - 1]
        width, height = float(page.width), float(page.height)
        items = [
            TextItem(text=word['text'], x=float(word['x0']) / width, y=float(word['bottom']) / height)
            for word in page.extract_words()
        ]
        return PageText(number=number, width=width, height=height, items=items)

    def _read_pymupdf_page(self, number: int) -> PageText:
        page = self._doc.load_page(number - 1)
        width, height = float(page.rect.width), float(page.rect.height)
        # words are (x0, y0, x1, y1, text, block, line, word)
        items = [
            TextItem(text=word[4], x=float(word[0]) / width, y=float(word[3]) / height)
            for word in page.get_text("words")
        ]
        return PageText(number=number, width=width, height=height, items=items)

    def full_text(self) -> str:
        """Return the text of all pages, newline separated."""
        if self._full_text is None:
            parts = []
            for number in range(1, self.page_count + 1):
                if self.backend == "pymupdf":
                    parts.append(self._doc.load_page(number - 1).get_text() or '')
                else:
                    parts.append(self._doc.pages[number - 1].extract_text() or '')
            self._full_text = '\n'.join(parts)
        return self._full_text

    def close(self) -> None:
        if self._doc is not None:
            self._doc.close()
            self._doc = None


class PDFProcessor:
    """
    Factory for PDFDocument instances.

    Attributes:
        backend: Text backend, "pdfplumber" or "pymupdf".

    Example:
        >>> processor = PDFProcessor()
        >>> with processor.open("invoice.pdf") as pdf:
        ...     print(pdf.full_text()[:80])
    """

    def __init__(self, backend: Optional[str] = None) -> None:
        """Initialize the PDF processor with configuration."""
        self.backend = (backend or get_config("input.pdf.backend", "pdfplumber")).lower()
        if self.backend not in SUPPORTED_BACKENDS:
            raise InputError(
                f"Unknown PDF backend: {self.backend}",
                {"supported": list(SUPPORTED_BACKENDS)}
            )
        logger.debug(f"PDFProcessor initialized (backend={self.backend})")

    def open(self, filepath: Union[str, Path]) -> PDFDocument:
        """
        Open a PDF for text access.

        Raises:
            CorruptedFileError: If the PDF cannot be read.
        """
        document = PDFDocument(filepath, backend=self.backend)
        logger.debug(f"Opened PDF {Path(filepath).name} ({document.page_count} page(s))")
        return document


__all__ = ['TextItem', 'PageText', 'PDFDocument', 'PDFProcessor']
