"""
Generic Text Extractor Module.

Keyword-anchored extraction used when no PDF template matches. It reads
the whole document text and applies label patterns ("Invoice No.",
"Account Number", "Total", "VAT" ...) to pull out the most common header
fields. Results are rough by nature; the missing-field audit decides
whether they are good enough.

Author: Finance Platform Team
"""

import re
from typing import List, Optional

from docintake.utils.logger import get_logger
from docintake.extraction.extraction_result import ExtractionResult
from docintake.fields.registry import DEFAULT_REGISTRY, FieldRegistry
from docintake.postprocessor.normalizers import AmountNormalizer
from .sniffer import DocumentTypeSniffer

# Initialize module logger
logger = get_logger(__name__)

PLACEHOLDER_WORDS = re.compile(r'^(no|yes|na|n/a)$', re.IGNORECASE)

AMOUNT = r'[£$€]?\s*([\d,]+\.?\d{2})'


class GenericTextExtractor:
    """
    Regex-based header field extractor.

    Example:
        >>> extractor = GenericTextExtractor()
        >>> result = extractor.extract("Invoice No. 5942480\\nTotal: £12.00")
        >>> result.fields["invoiceNumber"]
        "5942480"
    """

    INVOICE_NUMBER_PATTERNS = [
        r'invoice\s+no\.?\s+:?\s*(\d{4,}[A-Z0-9\-_]*)',
        r'invoice\s*#\s*:?\s*([A-Z0-9\-_]+)',
        r'invoice\s+number\s*:?\s*([A-Z0-9\-_]+)',
        r'(?:^|\s)(INV[-\s]?[A-Z0-9\-_]+)',
        r'invoice\s+([A-Z0-9\-_]+)',
        r'(?:^|\s)(\d{7,}[A-Z0-9\-_]*)',
    ]

    DATE_PATTERNS = [
        r'(\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})',
        r'(\d{4}[/\-]\d{1,2}[/\-]\d{1,2})',
        r'(\d{1,2}\s+(?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+\d{2,4})',
        r'((?:Jan|Feb|Mar|Apr|May|Jun|Jul|Aug|Sep|Oct|Nov|Dec)[a-z]*\s+\d{1,2},?\s+\d{2,4})',
    ]

    TOTAL_PATTERNS = [
        rf'invoice\s+total\s*:?\s*{AMOUNT}',
        rf'(?:^|\s)total\s*:?\s*{AMOUNT}',
        rf'(?:amount\s+due|balance\s+due|grand\s+total)\s*:?\s*{AMOUNT}',
    ]

    ACCOUNT_PATTERNS = [
        r'account\s+no\.?\s*:?\s*(\d{4,}[A-Z0-9\-]*)',
        r'account\s*#\s*:?\s*([A-Z0-9\-]+)',
        r'account\s+number\s*:?\s*([A-Z0-9\-]+)',
        r'acc\s+no\.?\s*:?\s*(\d{4,}[A-Z0-9\-]*)',
        r'account\s+code\s*:?\s*([A-Z0-9\-]+)',
        r'customer\s+account\s*:?\s*([A-Z0-9\-]+)',
        r'account\s+id\s*:?\s*([A-Z0-9\-]+)',
    ]

    PO_PATTERNS = [
        r'customer\s+po\s*:?[ \t]*([A-Z0-9 \t\-_]{2,50})',
        r'po\s+(?:number\s*)?:?[ \t]*([A-Z0-9 \t\-_]{2,50})',
        r'purchase\s+order\s*:?[ \t]*([A-Z0-9 \t\-_]{2,50})',
    ]

    GOODS_PATTERNS = [
        rf'goods\s*:?\s*{AMOUNT}',
        rf'net\s+amount\s*:?\s*{AMOUNT}',
        rf'subtotal\s*:?\s*{AMOUNT}',
        rf'goods\s+value\s*:?\s*{AMOUNT}',
    ]

    VAT_PATTERNS = [
        rf'vat\s*:?\s*{AMOUNT}',
        rf'vat\s+amount\s*:?\s*{AMOUNT}',
        rf'tax\s+amount\s*:?\s*{AMOUNT}',
        rf'tax\s*:?\s*{AMOUNT}',
    ]

    def __init__(self, registry: FieldRegistry = DEFAULT_REGISTRY) -> None:
        self.registry = registry
        self.sniffer = DocumentTypeSniffer()
        self.amounts = AmountNormalizer()

    def extract(self, text: str, page_count: int = 0) -> ExtractionResult:
        """
        Extract header fields from full document text.

        Args:
            text: Full document text.
            page_count: Page count, recorded on the result.

        Returns:
            ExtractionResult without template information.
        """
        text = text or ''
        values = {
            "documentType": self.sniffer.sniff(text),
            "invoiceNumber": self._first_identifier(self.INVOICE_NUMBER_PATTERNS, text, 50),
            "invoiceDate": self._first_match(self.DATE_PATTERNS, text),
            "totalAmount": self._first_amount(self.TOTAL_PATTERNS, text) or self._last_currency_amount(text),
            "accountNumber": self._account_number(text),
            "customerPO": self._first_identifier(self.PO_PATTERNS, text, 50, min_length=2),
            "goodsAmount": self._first_amount(self.GOODS_PATTERNS, text),
            "vatAmount": self._first_amount(self.VAT_PATTERNS, text),
        }

        result = ExtractionResult(full_text=text, page_count=page_count)
        for name, value in values.items():
            if value is not None:
                result.fields[name] = value
                result.field_labels[name] = self.registry.display_name(name)

        logger.info(f"Generic extraction found {len(result.fields)} field(s)")
        return result

    @staticmethod
    def _first_match(patterns: List[str], text: str) -> Optional[str]:
        for pattern in patterns:
            match = re.search(pattern, text, re.IGNORECASE)
            if match and match.group(1):
                return match.group(1).strip()
        return None

    @staticmethod
    def _first_identifier(
        patterns: List[str],
        text: str,
        max_length: int,
        min_length: int = 4
    ) -> Optional[str]:
        for pattern in patterns:
            match = re.search(pattern, text, re.IGNORECASE)
            if not match or not match.group(1):
                continue
            value = match.group(1).strip()
            if min_length <= len(value) <= max_length and not PLACEHOLDER_WORDS.match(value):
                return value
        return None

    def _first_amount(self, patterns: List[str], text: str) -> Optional[str]:
        value = self._first_match(patterns, text)
        return self.amounts.clean(value) if value else None

    def _last_currency_amount(self, text: str) -> Optional[str]:
        matches = re.findall(r'[£$€]\s*([\d,]+\.?\d{2})', text)
        return self.amounts.clean(matches[-1]) if matches else None

    def _account_number(self, text: str) -> Optional[str]:
        # customer accounts sit above the bank details block
        bank_index = text.lower().find('bank details')
        head = text[:bank_index] if bank_index > 0 else text

        value = self._first_identifier(self.ACCOUNT_PATTERNS, head, 20)
        if value:
            return value

        for line in head.split('\n')[:20]:
            lowered = line.lower()
            if 'acc' not in lowered or 'bank' in lowered:
                continue
            match = re.search(r'\b([A-Z0-9]{4,20})\b', line)
            if match:
                return match.group(1)
        return None


__all__ = ['GenericTextExtractor']
