"""
Classification Module.

Company matching, missing-field audit, the classification decision table,
retention dates and business document creation.
"""

from .matcher import CompanyMatcher
from .auditor import MissingFieldAuditor, INVALID_DATE_FORMAT
from .classifier import Classification, Classifier, business_number, find_business_duplicate
from .retention import RetentionPolicy, calculate_retention_dates, should_delete
from .documents import BusinessDocumentWriter

__all__ = [
    'CompanyMatcher',
    'MissingFieldAuditor',
    'INVALID_DATE_FORMAT',
    'Classification',
    'Classifier',
    'business_number',
    'find_business_duplicate',
    'RetentionPolicy',
    'calculate_retention_dates',
    'should_delete',
    'BusinessDocumentWriter',
]
