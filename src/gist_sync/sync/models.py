"""Pydantic models for the incremental sync engine.

Defines the data contracts passed between the sync modules:

- ``TrackedPath``: One concrete file produced by the path enumerator.
- ``FileChange``: New content of one changed file, detector -> merge engine.
- ``RemoteMetadata``: Bookkeeping record stored inside every gist.
- ``SyncTrigger``: Why a sync pass ran.
- ``SyncReport``: Outcome of one sync pass for one group.

Persisted group data (``FileGroup``, ``FileHash``) lives in
``gist_sync.config_schema``.
"""

from __future__ import annotations

import os
from enum import Enum

from pydantic import BaseModel, Field


class TrackedPath(BaseModel):
    """A concrete file to sync.

    Attributes:
        path: File path as declared or as found under a declared folder.
        folder: Declared folder the file was found under, or ``None`` for
            explicitly declared files.
    """

    path: str
    folder: str | None = None

    model_config = {"frozen": True}

    @property
    def remote_name(self) -> str:
        """File name inside the gist.

        ``basename(folder)/relative/path`` for folder-derived files, the
        bare base name otherwise.
        """
        if self.folder is None:
            return os.path.basename(self.path)
        folder = os.path.normpath(os.path.abspath(self.folder))
        relative = os.path.relpath(os.path.abspath(self.path), folder)
        return "/".join(
            [os.path.basename(folder), *relative.split(os.sep)]
        )


class FileChange(BaseModel):
    """New content of one changed file.  Never persisted.

    Attributes:
        path: Tracked file path.
        content: Decoded text to upload.
        fingerprint: SHA-256 of the bytes *content* was decoded from, or
            ``None`` when the caller did not take one.
    """

    path: str
    content: str
    fingerprint: str | None = None

    model_config = {"frozen": True}


class RemoteMetadata(BaseModel):
    """Metadata record stored as ``#<group>`` inside the gist.

    Attributes:
        upload_date: ISO 8601 timestamp of the last push.
        version: gist-sync version that performed the push.
        watched_files: Declared files at the time of the push.
        watched_folders: Declared folders at the time of the push.
    """

    upload_date: str = Field(alias="uploadDate")
    version: str
    watched_files: list[str] = Field(default=[], alias="watchedFiles")
    watched_folders: list[str] = Field(default=[], alias="watchedFolders")

    model_config = {"frozen": True, "populate_by_name": True}


class SyncTrigger(str, Enum):
    """What caused a sync pass."""

    STARTUP = "startup"
    INTERVAL = "interval"
    EVENT = "event"
    MANUAL = "manual"


class SyncReport(BaseModel):
    """Outcome of one sync pass for one group.

    Attributes:
        group_name: Name of the synced group.
        trigger: What caused the pass.
        pushed: Paths whose new content was written to the gist.
        skipped: Paths that could not be read during the pass.
        error: Remote failure message, if the push failed.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass completed.
    """

    group_name: str
    trigger: SyncTrigger
    pushed: list[str] = []
    skipped: list[str] = []
    error: str | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def success(self) -> bool:
        """True when no remote failure occurred."""
        return self.error is None

    @property
    def changed(self) -> bool:
        """True when at least one file was pushed."""
        return bool(self.pushed)
