"""
Templates Module.

Document type sniffing, template selection and the generic fallback.
"""

from .sniffer import DocumentTypeSniffer
from .resolver import TemplateResolver, TemplateMatch, METHOD_GENERIC
from .generic import GenericTextExtractor

__all__ = [
    'DocumentTypeSniffer',
    'TemplateResolver',
    'TemplateMatch',
    'METHOD_GENERIC',
    'GenericTextExtractor',
]
