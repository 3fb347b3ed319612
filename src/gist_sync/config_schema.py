"""Pydantic models for gist-sync configuration and the group store.

Two families of models live here:

* **Settings sections** (``GitHubConfig``, ``SyncConfig``,
  ``LoggingConfig``, ``UnifiedConfig``) parsed from the optional YAML config
  file.  All sections are frozen and default-complete, so
  ``UnifiedConfig()`` (zero-config) is always valid.
* **Store documents** (``FileHash``, ``FileGroup``, ``StoreData``) persisted
  in ``~/.gist-sync-config.json``.  Field aliases keep the camelCase on-disk
  format (``gistId``, ``fileHashes``, ``hash``, ``lastSync``).

Usage:
    from gist_sync.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Settings sections
# ---------------------------------------------------------------------------


class GitHubConfig(BaseModel):
    """GitHub connection settings.

    All fields are optional so the token can come from the environment or
    the group store instead.
    """

    token: str | None = Field(
        default=None, description="GitHub personal access token"
    )
    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    timeout: float = Field(
        default=60.0,
        gt=0,
        le=600,
        description="Read timeout in seconds for gist requests",
    )

    model_config = {"frozen": True}


class SyncConfig(BaseModel):
    """Sync engine settings."""

    debounce_seconds: float = Field(
        default=1.0,
        gt=0,
        le=60,
        description="Quiet period before a file event is pushed",
    )
    store_path: str | None = Field(
        default=None,
        description="Group store file (default ~/.gist-sync-config.json)",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: Record format, "text" or "json".
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: str = Field(default="text", description="Log record format")

    model_config = {"frozen": True}


class UnifiedConfig(BaseModel):
    """Top-level configuration aggregating every section."""

    github: GitHubConfig = Field(default_factory=GitHubConfig)
    sync: SyncConfig = Field(default_factory=SyncConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Store documents
# ---------------------------------------------------------------------------


class FileHash(BaseModel):
    """Last synced fingerprint of one tracked file.

    Attributes:
        path: Tracked path exactly as enumerated.
        fingerprint: SHA-256 hex digest of the file's raw bytes.
        last_sync: ISO 8601 timestamp of the sync that recorded it.
    """

    path: str
    fingerprint: str = Field(alias="hash")
    last_sync: str = Field(alias="lastSync")

    model_config = {"frozen": True, "populate_by_name": True}


class FileGroup(BaseModel):
    """A named set of files and folders synchronized as one gist."""

    name: str
    description: str | None = None
    files: list[str] = []
    folders: list[str] = []
    gist_id: str | None = Field(default=None, alias="gistId")
    file_hashes: list[FileHash] | None = Field(
        default=None, alias="fileHashes"
    )

    model_config = {"populate_by_name": True}

    def hash_for(self, path: str) -> FileHash | None:
        """Return the recorded hash for *path*, or ``None``."""
        for entry in self.file_hashes or []:
            if entry.path == path:
                return entry
        return None

    def record_hash(self, entry: FileHash) -> None:
        """Supersede the entry for ``entry.path`` in place, or append it."""
        if self.file_hashes is None:
            self.file_hashes = []
        for index, existing in enumerate(self.file_hashes):
            if existing.path == entry.path:
                self.file_hashes[index] = entry
                return
        self.file_hashes.append(entry)

    def assign_gist_id(self, gist_id: str) -> None:
        """Set the remote document id.  It can only be set once."""
        if self.gist_id is not None and self.gist_id != gist_id:
            raise ValueError(
                f"Group {self.name} already has gist {self.gist_id}"
            )
        self.gist_id = gist_id


class StoreData(BaseModel):
    """Whole group store document."""

    github_token: str = Field(default="", alias="githubToken")
    groups: list[FileGroup] = []

    model_config = {"populate_by_name": True}
