"""
Streaming file digests.

Evidence archives and SQLite stores can run to several GB, so files are read
in fixed-size chunks rather than loaded whole. ``alg`` is any name accepted
by :func:`hashlib.new`; sealing uses the configured HashAlgorithm value.
"""

from __future__ import annotations

import hashlib
from pathlib import Path

CHUNK_SIZE = 1024 * 1024


def hash_file(path: Path, alg: str = "sha256", chunk_size: int = CHUNK_SIZE) -> str:
    """Return the hex digest of ``path``; raises OSError if it cannot be read."""
    hasher = hashlib.new(alg)
    with path.open("rb") as handle:
        while chunk := handle.read(chunk_size):
            hasher.update(chunk)
    return hasher.hexdigest()
