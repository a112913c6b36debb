"""Content fingerprints for drift detection.

Fingerprints are the first 16 hex chars of MD5 over the raw bytes. They
detect edits; they are not an integrity guarantee.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

FINGERPRINT_LENGTH = 16
_CHUNK_SIZE = 64 * 1024


def fingerprint_bytes(data: bytes) -> str:
    """Return the fingerprint of *data*."""
    return hashlib.md5(data, usedforsecurity=False).hexdigest()[:FINGERPRINT_LENGTH]


def fingerprint_file(path: Path) -> str:
    """Return the fingerprint of the file at *path* (content only, no metadata)."""
    digest = hashlib.md5(usedforsecurity=False)
    with path.open("rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()[:FINGERPRINT_LENGTH]
