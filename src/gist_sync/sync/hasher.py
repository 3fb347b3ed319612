"""Content fingerprints for change detection.

Fingerprints are SHA-256 digests of the exact bytes on disk, so a change
of encoding, line endings, or binary content is always detected.
"""

from __future__ import annotations

import hashlib

from gist_sync.exceptions import PathUnreadable

_CHUNK_SIZE = 65536


def fingerprint_bytes(data: bytes) -> str:
    """Return the SHA-256 hex digest of *data*."""
    return hashlib.sha256(data).hexdigest()


def fingerprint(path: str) -> str:
    """Return the SHA-256 hex digest of the file at *path*.

    Raises:
        PathUnreadable: If the file cannot be opened or read.
    """
    sha = hashlib.sha256()
    try:
        with open(path, "rb") as fh:
            for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
                sha.update(chunk)
    except OSError as exc:
        raise PathUnreadable(path, exc) from exc
    return sha.hexdigest()
