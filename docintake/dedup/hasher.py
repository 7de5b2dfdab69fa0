"""
Content Hasher Module.

Streams a file through SHA-256 so large uploads never need to be held in
memory. The hex digest is the dedup key of a ContentRecord.
"""

import hashlib
from pathlib import Path
from typing import Optional, Union

from config import get_config


def compute_content_hash(filepath: Union[str, Path], chunk_size: Optional[int] = None) -> str:
    """
    Compute the SHA-256 hex digest of a file's bytes.

    Args:
        filepath: File to hash.
        chunk_size: Read size in bytes. If None, uses configuration.

    Returns:
        64-character lowercase hex digest.

    Example:
        >>> compute_content_hash("invoice.pdf")[:8]
        "9f86d081"
    """
    if chunk_size is None:
        chunk_size = get_config("input.hash_chunk_size", 65536)

    digest = hashlib.sha256()
    with open(filepath, 'rb') as f:
        for chunk in iter(lambda: f.read(chunk_size), b''):
            digest.update(chunk)
    return digest.hexdigest()
