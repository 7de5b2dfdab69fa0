"""
Deduplication Module.

Content hashing and orphan-aware duplicate resolution.
"""

from .hasher import compute_content_hash
from .resolver import (
    DuplicateResolver,
    DuplicateCheck,
    OUTCOME_NEW,
    OUTCOME_ORPHANED,
    OUTCOME_DUPLICATE,
)

__all__ = [
    'compute_content_hash',
    'DuplicateResolver',
    'DuplicateCheck',
    'OUTCOME_NEW',
    'OUTCOME_ORPHANED',
    'OUTCOME_DUPLICATE',
]
