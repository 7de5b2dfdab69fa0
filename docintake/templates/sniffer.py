"""
Document-Type Sniffer Module.

A cheap, advisory guess of the document type from raw text, used only to
pick a template. The template's own extracted ``documentType`` field is
authoritative once extraction has run.
"""

import re
from typing import Optional

from docintake.utils.logger import get_logger

# Initialize module logger
logger = get_logger(__name__)

DOCUMENT_INVOICE = "invoice"
DOCUMENT_CREDIT_NOTE = "credit_note"
DOCUMENT_STATEMENT = "statement"


class DocumentTypeSniffer:
    """
    Guess a document type from its text, first rule wins.

    Rules:
        1. "CREDIT NOTE" / "CREDITNOTE"              -> credit_note
        2. "STATEMENT" (incl. "ACCOUNT STATEMENT")   -> statement
        3. "INVOICE" / "TAX INVOICE"                 -> invoice
        4. "CREDIT" without "INVOICE": "CN" word     -> credit_note
        5. anything else                             -> invoice

    Example:
        >>> DocumentTypeSniffer().sniff("Statement of Account")
        "statement"
    """

    def sniff(self, text: Optional[str]) -> str:
        if not text:
            return DOCUMENT_INVOICE

        upper = text.upper()

        if "CREDIT NOTE" in upper or "CREDITNOTE" in upper:
            detected = DOCUMENT_CREDIT_NOTE
        elif "STATEMENT" in upper:
            detected = DOCUMENT_STATEMENT
        elif "INVOICE" in upper:
            detected = DOCUMENT_INVOICE
        elif "CREDIT" in upper and re.search(r'\bCN\b', upper):
            detected = DOCUMENT_CREDIT_NOTE
        else:
            detected = DOCUMENT_INVOICE

        logger.debug(f"Sniffed document type: {detected}")
        return detected


__all__ = ['DocumentTypeSniffer', 'DOCUMENT_INVOICE', 'DOCUMENT_CREDIT_NOTE', 'DOCUMENT_STATEMENT']
