"""Expand a file group into the concrete files it tracks.

Resolution:

1. **Declared files** -- in declared order, tagged with no folder.
2. **Declared folders** -- in declared order, every regular file found by a
   recursive walk (filesystem traversal order), tagged with the folder.
3. **Dedup** -- a path reached twice (e.g. declared and also under a
   folder) is kept at its first occurrence only.

Directories, symlinks, and unreadable entries are skipped, never errors.
A folder that cannot be listed is logged and skipped for this pass.

This module also owns remote name resolution, shared by gist creation
and incremental updates.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable, Iterator

from gist_sync.config_schema import FileGroup
from gist_sync.exceptions import FolderUnreadable
from gist_sync.sync.models import TrackedPath

logger = logging.getLogger(__name__)


def path_key(path: str) -> str:
    return os.path.normcase(os.path.normpath(os.path.abspath(path)))


def is_under(path: str, folder: str) -> bool:
    """Return ``True`` if *path* lies strictly inside *folder*."""
    p = path_key(path)
    f = path_key(folder)
    if p == f:
        return False
    try:
        return os.path.commonpath([p, f]) == f
    except ValueError:
        # Different drives
        return False


def is_regular_file(path: str) -> bool:
    """Return ``True`` for a regular file that is not a symlink."""
    return not os.path.islink(path) and os.path.isfile(path)


def _walk_folder(folder: str) -> Iterator[str]:
    """Yield regular files under *folder*, recursively, without following links."""
    if os.path.islink(folder) or not os.path.isdir(folder):
        logger.warning(
            "%s", FolderUnreadable(folder, "not a readable directory")
        )
        return

    def _on_error(exc: OSError) -> None:
        logger.warning(
            "%s", FolderUnreadable(exc.filename or folder, exc.strerror)
        )

    for root, _dirs, names in os.walk(
        folder, onerror=_on_error, followlinks=False
    ):
        for name in names:
            full = os.path.join(root, name)
            if not is_regular_file(full):
                continue
            yield full


def expand(group: FileGroup) -> list[TrackedPath]:
    """Return every concrete file *group* tracks, deduplicated.

    Declared files that do not exist are still returned so the reader can
    report them; declared files that are directories or symlinks are not.
    """
    seen: set[str] = set()
    tracked: list[TrackedPath] = []

    def _add(path: str, folder: str | None) -> None:
        key = path_key(path)
        if key in seen:
            return
        seen.add(key)
        tracked.append(TrackedPath(path=path, folder=folder))

    for path in group.files:
        if os.path.islink(path) or os.path.isdir(path):
            logger.debug("Skipping non-regular declared file %s", path)
            continue
        _add(path, None)

    for folder in group.folders:
        for path in _walk_folder(folder):
            _add(path, folder)

    return tracked


def resolve_remote_name(path: str, folders: Iterable[str]) -> str:
    """Map a local path to its file name inside the gist.

    If *path* lies under one of *folders* (first match wins) the name is
    ``basename(folder)/relative/path``; otherwise it is ``basename(path)``.
    """
    for folder in folders:
        if is_under(path, folder):
            return TrackedPath(path=path, folder=folder).remote_name
    return os.path.basename(path)
