"""Error types raised by the sync engine and its collaborators.

Convention:
- ``PathUnreadable`` / ``FolderUnreadable`` -- recovered locally.  The
  enumerator and detectors log them and skip the offending entry; sibling
  paths in the same batch are still processed.
- ``NoRemoteDocument`` / ``InvalidGroupDefinition`` -- fatal to the
  requested operation and surfaced to the caller before any remote call.
- ``RemoteStoreFailure`` -- any create/get/update/delete failure against the
  gist service.  The merge engine propagates it; the scheduler logs it and
  leaves persisted hashes untouched so the change is retried next pass.
"""

from __future__ import annotations


class GistSyncError(Exception):
    """Base class for all gist-sync errors."""


class PathUnreadable(GistSyncError):
    """A tracked file vanished or could not be read."""

    def __init__(self, path: str, reason: object = None) -> None:
        self.path = path
        self.reason = reason
        message = f"Cannot read {path}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class FolderUnreadable(GistSyncError):
    """A declared folder could not be listed."""

    def __init__(self, folder: str, reason: object = None) -> None:
        self.folder = folder
        self.reason = reason
        message = f"Cannot list folder {folder}"
        if reason is not None:
            message += f": {reason}"
        super().__init__(message)


class NoRemoteDocument(GistSyncError):
    """A sync or watch was requested for a group that has no gist yet."""

    def __init__(self, group_name: str) -> None:
        self.group_name = group_name
        super().__init__(f"Group {group_name} has no associated gist ID")


class RemoteStoreFailure(GistSyncError):
    """A call against the remote gist store failed.

    Attributes:
        operation: Store operation that failed (``create``, ``get``,
            ``update``, ``delete``, ``user``).
        status_code: HTTP status code, or ``None`` for transport errors.
    """

    def __init__(
        self,
        operation: str,
        message: str,
        status_code: int | None = None,
    ) -> None:
        self.operation = operation
        self.status_code = status_code
        detail = f"Gist {operation} failed"
        if status_code is not None:
            detail += f" (HTTP {status_code})"
        super().__init__(f"{detail}: {message}")

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class InvalidGroupDefinition(GistSyncError, ValueError):
    """Group has an invalid or duplicate name, or tracks nothing."""
