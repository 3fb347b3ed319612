"""File handler module: encoding-aware reads and atomic JSON writes.

Gists hold text, so tracked files are decoded with charset detection
before upload.  Fingerprints are taken from the raw bytes in
``gist_sync.sync``, which reuses ``decode_bytes`` so the hashed and uploaded
forms of a file come from one read.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from charset_normalizer import from_bytes

from gist_sync.exceptions import PathUnreadable

# =============================================================================
# Reading
# =============================================================================


def decode_bytes(raw: bytes) -> tuple[str, str]:
    """Decode raw file bytes with automatic encoding detection.

    Defaults to UTF-8 for empty input or when detection fails.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    if not raw:
        return ("", "utf-8")

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    return decode_bytes(path.read_bytes())


def read_text(path: str) -> str:
    """Return the decoded text of a tracked file.

    Raises:
        PathUnreadable: If the file is missing, a directory, or
            inaccessible.
    """
    try:
        content, _ = read_file_with_encoding(Path(path))
    except OSError as exc:
        raise PathUnreadable(path, exc) from exc
    return content


# =============================================================================
# Writing
# =============================================================================


def write_json_atomic(path: Path, data: Any) -> None:
    """Write *data* as indented JSON, replacing *path* atomically.

    Writes to a temporary file in the same directory then calls
    ``os.replace()`` so readers never see partial data.  Creates the
    parent directory if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
