"""
Data Normalizers Module.

This module provides normalization functions for:
    - Document dates (day-first numeric and month-name formats)
    - Currency/amount values
    - Document type labels

Author: Finance Platform Team
"""

import math
import re
from datetime import datetime
from typing import Any, List, Optional, Tuple

from dateutil import parser as date_parser

from config import get_config
from docintake.utils.logger import get_logger, import_prefix

# Initialize module logger
logger = get_logger(__name__)

MONTH_PREFIXES = ['jan', 'feb', 'mar', 'apr', 'may', 'jun',
                  'jul', 'aug', 'sep', 'oct', 'nov', 'dec']


class DateNormalizer:
    """
    Parses document date strings into datetimes.

    Patterns are tried in a fixed order and the first one that yields a
    real calendar date wins. Numeric dates are day-first. Two-digit years
    pivot at ``postprocessing.date.two_digit_year_pivot`` (default 50):
    below the pivot they land in the 2000s, otherwise in the 1900s.

    Attributes:
        output_format: strftime format used by ``format``.
        year_pivot: Two-digit year pivot.

    Example:
        >>> normalizer = DateNormalizer()
        >>> normalizer.parse("05/12/25")
        datetime.datetime(2025, 12, 5, 0, 0)
        >>> normalizer.parse("Dec 05, 2025")
        datetime.datetime(2025, 12, 5, 0, 0)
    """

    # (regex, layout) in priority order
    DATE_PATTERNS: List[Tuple[str, str]] = [
        (r'^(\d{1,2})/(\d{1,2})/(\d{2,4})$', 'dmy'),
        (r'^(\d{1,2})-(\d{1,2})-(\d{2,4})$', 'dmy'),
        (r'^(\d{1,2})\.(\d{1,2})\.(\d{2,4})$', 'dmy'),
        (r'^(\d{4})-(\d{1,2})-(\d{1,2})$', 'ymd'),
        (r'^(\d{4})/(\d{1,2})/(\d{1,2})$', 'ymd'),
        (r'^(\d{1,2})\s+([A-Za-z]{3,})\s+(\d{2,4})$', 'd_mon_y'),
        (r'^([A-Za-z]{3,})\s+(\d{1,2}),\s+(\d{2,4})$', 'mon_d_y'),
    ]

    def __init__(self, import_id: Optional[str] = None) -> None:
        """Initialize the date normalizer with configuration."""
        self.output_format = get_config("postprocessing.date.output_format", "%Y-%m-%d")
        self.year_pivot = get_config("postprocessing.date.two_digit_year_pivot", 50)
        self.import_id = import_id

    def expand_year(self, year: int) -> int:
        """Expand a two-digit year around the configured pivot."""
        if year < 100:
            return 2000 + year if year < self.year_pivot else 1900 + year
        return year

    def parse(self, value: Any) -> Optional[datetime]:
        """
        Parse a date value.

        Args:
            value: Raw extracted value (string, datetime or None).

        Returns:
            Parsed datetime, or None if nothing matches.
        """
        if value is None:
            return None
        if isinstance(value, datetime):
            return value

        text = str(value).strip()
        if not text:
            return None

        for pattern, layout in self.DATE_PATTERNS:
            match = re.match(pattern, text)
            if not match:
                continue

            parts = self._split_match(match, layout)
            if parts is None:
                continue

            day, month, year = parts
            year = self.expand_year(year)

            if not (1 <= month <= 12 and 1 <= day <= 31):
                continue

            try:
                return datetime(year, month, day)
            except ValueError:
                logger.debug(f"{self._prefix()}Invalid calendar date: {day}/{month}/{year}")
                continue

        return self._parse_fallback(text)

    def _split_match(self, match, layout: str) -> Optional[Tuple[int, int, int]]:
        """Return (day, month, year) for a regex match."""
        if layout == 'dmy':
            return int(match.group(1)), int(match.group(2)), int(match.group(3))
        if layout == 'ymd':
            return int(match.group(3)), int(match.group(2)), int(match.group(1))

        if layout == 'd_mon_y':
            month_text, day_text = match.group(2), match.group(1)
        else:
            month_text, day_text = match.group(1), match.group(2)

        month = self._month_number(month_text)
        if month is None:
            return None
        return int(day_text), month, int(match.group(3))

    @staticmethod
    def _month_number(text: str) -> Optional[int]:
        lowered = text.lower()
        for index, prefix in enumerate(MONTH_PREFIXES):
            if lowered.startswith(prefix):
                return index + 1
        return None

    def _parse_fallback(self, text: str) -> Optional[datetime]:
        """Generic parse, accepted only for years after 1900."""
        try:
            parsed = date_parser.parse(text, dayfirst=True)
        except (ValueError, OverflowError) as e:
            logger.debug(f"{self._prefix()}Could not parse date '{text}': {e}")
            return None

        if parsed.year > 1900:
            return parsed.replace(tzinfo=None)
        return None

    def parse_or_now(self, value: Any) -> datetime:
        """
        Parse a date, falling back to the current time.

        A document is never blocked by an unparseable date once it is
        otherwise valid; the fallback is logged as a warning.
        """
        parsed = self.parse(value)
        if parsed is None:
            logger.warning(
                f"{self._prefix()}Could not parse date '{value}', using current date as fallback"
            )
            return datetime.now()
        return parsed

    def is_valid(self, value: Any) -> bool:
        """Return whether a value parses as a date."""
        return self.parse(value) is not None

    def format(self, value: Any) -> Optional[str]:
        """Parse and format a value with the configured output format."""
        parsed = self.parse(value)
        return parsed.strftime(self.output_format) if parsed else None

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


class AmountNormalizer:
    """
    Normalizes currency/amount strings.

    Cleaning strips currency symbols, thousand separators and whitespace,
    keeps the minus sign and zero-pads a bare leading decimal point. When
    nothing numeric survives, the original value is returned unchanged so
    that reviewers still see what the template captured.

    Example:
        >>> normalizer = AmountNormalizer()
        >>> normalizer.clean("£1,234.56")
        "1234.56"
        >>> normalizer.clean(".5")
        "0.5"
        >>> normalizer.clean("-")
        "-"
    """

    CURRENCY_SYMBOLS = ['£', '$', '€', '¥', '₹']

    def __init__(self) -> None:
        """Initialize the amount normalizer with configuration."""
        symbols = get_config("postprocessing.amount.currency_symbols", self.CURRENCY_SYMBOLS)
        escaped = ''.join(re.escape(symbol) for symbol in symbols)
        self._strip_pattern = re.compile(rf'[{escaped},\s]')

    def clean(self, value: Any) -> Any:
        """
        Clean an extracted amount value.

        Args:
            value: Raw extracted value.

        Returns:
            Cleaned numeric string, or the original value when cleaning
            leaves nothing usable.
        """
        if value is None or value == '':
            return value
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return str(value)

        cleaned = self._strip_pattern.sub('', str(value))
        cleaned = re.sub(r'[^\d.\-]', '', cleaned)

        if cleaned.startswith('.'):
            cleaned = '0' + cleaned

        if not cleaned or cleaned == '-':
            return value

        return cleaned

    def to_float(self, value: Any) -> Optional[float]:
        """
        Convert an amount to float.

        Returns:
            Float value, or None for blank, NaN or non-numeric input.
        """
        if value is None or isinstance(value, bool):
            return None

        if isinstance(value, (int, float)):
            number = float(value)
        else:
            cleaned = self.clean(value)
            try:
                number = float(cleaned)
            except (TypeError, ValueError):
                return None

        if math.isnan(number):
            return None
        return number

    def is_present(self, value: Any) -> bool:
        """Return whether an amount is present; zero counts as present."""
        return self.to_float(value) is not None


def normalize_document_type(value: Any) -> str:
    """
    Map an extracted document type label to a canonical type.

    Example:
        >>> normalize_document_type("Credit Note")
        "credit_note"
        >>> normalize_document_type("CN")
        "credit_note"
        >>> normalize_document_type("Tax Invoice")
        "invoice"
    """
    if value is None:
        return "invoice"

    text = str(value).strip().upper()
    if "CREDIT" in text or text == "CN":
        return "credit_note"
    if "STATEMENT" in text:
        return "statement"
    return "invoice"


def is_blank(value: Any) -> bool:
    """Return whether an extracted value counts as missing."""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == '':
        return True
    return False


__all__ = ['DateNormalizer', 'AmountNormalizer', 'normalize_document_type', 'is_blank']
