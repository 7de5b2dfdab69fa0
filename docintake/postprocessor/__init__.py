"""
Post-processing Module.

Normalization of extracted dates, amounts and document types.
"""

from .normalizers import DateNormalizer, AmountNormalizer, normalize_document_type, is_blank

__all__ = ['DateNormalizer', 'AmountNormalizer', 'normalize_document_type', 'is_blank']
