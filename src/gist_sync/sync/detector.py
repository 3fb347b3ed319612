"""Change detection strategies.

Two interchangeable detectors decide which tracked files changed:

* ``HashChangeDetector`` -- compares SHA-256 fingerprints of the raw bytes
  against the hash table persisted in the group.  Survives restarts, so it
  runs on every group start to push drift accumulated while the tool was
  not running.
* ``SnapshotChangeDetector`` -- compares decoded text against a
  process-lifetime snapshot.  Used by interval polling.

Neither detector talks to the remote store; they only report changes.
Unreadable paths are logged and skipped so one vanished file never aborts
the batch.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from gist_sync.config_schema import FileGroup, FileHash
from gist_sync.exceptions import PathUnreadable
from gist_sync.file_handler import decode_bytes, read_text
from gist_sync.sync.enumerator import expand
from gist_sync.sync.hasher import fingerprint, fingerprint_bytes
from gist_sync.sync.models import FileChange

logger = logging.getLogger(__name__)


def utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


def read_fingerprinted(path: str) -> tuple[str, str]:
    """Return ``(text, fingerprint)`` taken from a single read of *path*.

    The fingerprint describes the exact bytes the text was decoded from.

    Raises:
        PathUnreadable: If the file cannot be opened or read.
    """
    try:
        with open(path, "rb") as fh:
            raw = fh.read()
    except OSError as exc:
        raise PathUnreadable(path, exc) from exc
    content, _ = decode_bytes(raw)
    return content, fingerprint_bytes(raw)


class HashChangeDetector:
    """Fingerprint-based change detection against ``group.file_hashes``."""

    def __init__(self) -> None:
        self.skipped: list[str] = []

    def detect_and_update(
        self, group: FileGroup
    ) -> tuple[list[FileChange], list[FileHash]]:
        """Compare every tracked file with its recorded fingerprint.

        Args:
            group: The group to scan.  Not mutated.

        Returns:
            ``(changed_files, hash_table)`` where *hash_table* holds one
            entry per readable tracked path: a fresh entry for changed
            paths, the unchanged previous entry otherwise.
        """
        changes: list[FileChange] = []
        hashes: list[FileHash] = []
        self.skipped = []

        for tracked in expand(group):
            path = tracked.path
            try:
                current = fingerprint(path)
            except PathUnreadable as exc:
                logger.warning("Skipping %s", exc)
                self.skipped.append(path)
                continue

            previous = group.hash_for(path)
            if previous is not None and previous.fingerprint == current:
                hashes.append(previous)
                continue

            try:
                content, current = read_fingerprinted(path)
            except PathUnreadable as exc:
                logger.warning("Skipping %s", exc)
                self.skipped.append(path)
                continue

            changes.append(
                FileChange(path=path, content=content, fingerprint=current)
            )
            hashes.append(
                FileHash(path=path, fingerprint=current, last_sync=utc_now())
            )

        logger.debug(
            "Hash scan of %s: %d changed, %d tracked, %d skipped",
            group.name,
            len(changes),
            len(hashes),
            len(self.skipped),
        )
        return changes, hashes


class SnapshotChangeDetector:
    """Text-snapshot change detection for one process run."""

    def seed(self, group: FileGroup, snapshot: dict[str, str]) -> None:
        """Record current content of every tracked file without reporting changes."""
        for tracked in expand(group):
            try:
                snapshot[tracked.path] = read_text(tracked.path)
            except PathUnreadable as exc:
                logger.warning("Error reading initial state: %s", exc)

    def detect_changes(
        self, group: FileGroup, snapshot: dict[str, str]
    ) -> list[FileChange]:
        """Return files whose text differs from *snapshot*.

        A path missing from *snapshot* counts as changed.  *snapshot* is
        updated in place with the content just observed.
        """
        changes: list[FileChange] = []
        for tracked in expand(group):
            path = tracked.path
            try:
                content, digest = read_fingerprinted(path)
            except PathUnreadable as exc:
                logger.debug("Skipping %s", exc)
                continue
            if snapshot.get(path) != content:
                changes.append(
                    FileChange(path=path, content=content, fingerprint=digest)
                )
                snapshot[path] = content
        return changes
