"""
Company Matcher Module.

Allocates a document to a company from its extracted account number.

Account numbers are reduced to their digits before matching, so
"ACC-00123" and "123" refer to the same account. Lookups cascade from the
cheapest indexed comparison to the most permissive cast, and the first hit
wins:

    1. reference_no == int(digits)
    2. code == digits
    3. CAST(reference_no AS INTEGER) == int(digits)
    4. CAST(reference_no AS TEXT) == digits

Author: Finance Platform Team
"""

from typing import Any, List, Optional

from sqlalchemy import Integer, String, cast
from sqlalchemy.orm import Session

from docintake.utils.logger import get_logger, import_prefix
from docintake.utils.helpers import digits_only
from docintake.store.models import Company

# Initialize module logger
logger = get_logger(__name__)

SIMILAR_COMPANIES_LIMIT = 5


class CompanyMatcher:
    """
    Finds the company an account number belongs to.

    Example:
        >>> matcher = CompanyMatcher(import_id="imp-1")
        >>> company = matcher.match(session, "ACC 12345")
        >>> company.reference_no
        12345
    """

    def __init__(self, import_id: Optional[str] = None) -> None:
        self.import_id = import_id

    def match(self, session: Session, account_number: Any) -> Optional[Company]:
        """
        Match an account number to a company.

        Args:
            session: Database session.
            account_number: Raw extracted account number.

        Returns:
            Matched Company, or None.
        """
        digits = digits_only(account_number)
        if not digits:
            logger.info(f"{self._prefix()}No digits in account number '{account_number}', skipping company match")
            return None

        as_int = int(digits)
        lookups = [
            ("reference_no", Company.reference_no == as_int),
            ("code", Company.code == digits),
            ("reference_no as integer", cast(Company.reference_no, Integer) == as_int),
            ("reference_no as text", cast(Company.reference_no, String) == digits),
        ]

        for label, criterion in lookups:
            company = session.query(Company).filter(criterion).first()
            if company is not None:
                logger.info(
                    f"{self._prefix()}Matched account {digits} to company '{company.name}' "
                    f"(id={company.id}) by {label}"
                )
                return company

        self._log_similar(session, digits)
        return None

    def find_similar(self, session: Session, digits: str) -> List[Company]:
        """Companies whose reference number contains the last four digits."""
        tail = digits[-4:]
        return (
            session.query(Company)
            .filter(cast(Company.reference_no, String).contains(tail, autoescape=True))
            .limit(SIMILAR_COMPANIES_LIMIT)
            .all()
        )

    def _log_similar(self, session: Session, digits: str) -> None:
        similar = self.find_similar(session, digits)
        if not similar:
            logger.warning(f"{self._prefix()}No company found for account {digits}")
            return

        candidates = ', '.join(f"{c.name} ({c.reference_no})" for c in similar)
        logger.warning(
            f"{self._prefix()}No company found for account {digits}; similar references: {candidates}"
        )

    def _prefix(self) -> str:
        return import_prefix(self.import_id)


__all__ = ['CompanyMatcher']
