"""
Document Retention Module.

Pure date arithmetic for business document retention. The policy comes
from the ``retention`` section of the configuration:

    retention:
      period_days: 30            # null disables retention
      date_trigger: upload_date  # or invoice_date

Author: Finance Platform Team
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, Tuple

from config import get_config

TRIGGER_UPLOAD_DATE = "upload_date"
TRIGGER_INVOICE_DATE = "invoice_date"


@dataclass(frozen=True)
class RetentionPolicy:
    """How long business documents are kept, and from which date."""
    period_days: Optional[int] = None
    date_trigger: str = TRIGGER_UPLOAD_DATE

    @property
    def enabled(self) -> bool:
        return bool(self.period_days)

    @classmethod
    def from_config(cls) -> 'RetentionPolicy':
        return cls(
            period_days=get_config("retention.period_days"),
            date_trigger=get_config("retention.date_trigger", TRIGGER_UPLOAD_DATE) or TRIGGER_UPLOAD_DATE,
        )


def retention_start_date(
    issue_date: Optional[datetime],
    created_at: Optional[datetime],
    date_trigger: str
) -> datetime:
    """
    Date the retention countdown starts from.

    ``invoice_date`` uses the document's issue date and falls back to its
    creation time; ``upload_date`` always uses the creation time.
    """
    if date_trigger == TRIGGER_INVOICE_DATE and issue_date is not None:
        return issue_date
    return created_at or datetime.now()


def retention_expiry_date(period_days: Optional[int], start_date: Optional[datetime]) -> Optional[datetime]:
    """Start date plus the period, normalized to midnight of that day."""
    if not period_days or start_date is None:
        return None
    expiry = start_date + timedelta(days=period_days)
    return expiry.replace(hour=0, minute=0, second=0, microsecond=0)


def calculate_retention_dates(
    issue_date: Optional[datetime],
    created_at: Optional[datetime],
    document_status: Optional[str],
    policy: Optional[RetentionPolicy] = None
) -> Tuple[Optional[datetime], Optional[datetime]]:
    """
    Calculate retention start and expiry dates for a new document.

    Args:
        issue_date: Parsed document date.
        created_at: Creation time of the document.
        document_status: 'ready' or 'review'; does not change the dates.
        policy: Retention policy, read from configuration when omitted.

    Returns:
        (start, expiry); both None when retention is disabled.

    Example:
        >>> policy = RetentionPolicy(period_days=30)
        >>> calculate_retention_dates(None, datetime(2025, 1, 1, 15, 30), "ready", policy)
        (datetime.datetime(2025, 1, 1, 15, 30), datetime.datetime(2025, 1, 31, 0, 0))
    """
    policy = policy or RetentionPolicy.from_config()
    if not policy.enabled:
        return None, None

    start = retention_start_date(issue_date, created_at, policy.date_trigger)
    return start, retention_expiry_date(policy.period_days, start)


def should_delete(
    expiry_date: Optional[datetime],
    deleted_at: Optional[datetime],
    policy: Optional[RetentionPolicy] = None,
    now: Optional[datetime] = None
) -> bool:
    """Whether a document's retention has lapsed and it is still live."""
    policy = policy or RetentionPolicy.from_config()
    if not policy.enabled or deleted_at is not None or expiry_date is None:
        return False
    return expiry_date <= (now or datetime.now())


__all__ = [
    'RetentionPolicy',
    'TRIGGER_UPLOAD_DATE',
    'TRIGGER_INVOICE_DATE',
    'retention_start_date',
    'retention_expiry_date',
    'calculate_retention_dates',
    'should_delete',
]
