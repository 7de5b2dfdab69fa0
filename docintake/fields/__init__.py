"""
Field Definitions Module.

Canonical field registry and the field-name resolver chain.
"""

from .registry import (
    StandardField,
    FieldRegistry,
    STANDARD_FIELDS,
    DEFAULT_REGISTRY,
    MONETARY_FIELDS,
    CRUCIAL_FIELDS,
)
from .resolver import FieldNameResolver, normalize_field_id

__all__ = [
    'StandardField',
    'FieldRegistry',
    'STANDARD_FIELDS',
    'DEFAULT_REGISTRY',
    'MONETARY_FIELDS',
    'CRUCIAL_FIELDS',
    'FieldNameResolver',
    'normalize_field_id',
]
