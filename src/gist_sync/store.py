"""Group store persistence layer.

Keeps the GitHub token and every file group in a single JSON document
(``~/.gist-sync-config.json`` by default).  Every mutation is a whole
document read-modify-write under an in-process lock, so concurrent updates
from different groups (each running in a worker thread) never drop one
another. The scheduler never caches the document between writes.

Key design choices:

* **Atomic writes** -- ``save()`` goes through ``write_json_atomic`` so a
  crash mid-write never leaves a truncated store.
* **Lenient load** -- a missing, unreadable, or malformed store yields an
  empty document (logged) rather than aborting the command.
* **Original format** -- documents are written with camelCase aliases
  (``githubToken``, ``gistId``, ``fileHashes``) so existing stores keep
  loading.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path

from pydantic import ValidationError

from gist_sync.config_schema import FileGroup, StoreData
from gist_sync.exceptions import InvalidGroupDefinition
from gist_sync.file_handler import write_json_atomic

logger = logging.getLogger(__name__)


class GroupStore:
    """Load, save, and edit the group store document.

    Args:
        path: Location of the JSON store file.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def load(self) -> StoreData:
        """Load the store document.

        Returns:
            The parsed document, or an empty one if the file is missing
            or cannot be parsed.
        """
        if not self._path.exists():
            return StoreData()
        try:
            with open(self._path, encoding="utf-8") as fh:
                raw = json.load(fh)
            return StoreData.model_validate(raw)
        except (OSError, ValueError, ValidationError) as exc:
            logger.error("Error loading config %s: %s", self._path, exc)
            return StoreData()

    def save(self, data: StoreData) -> None:
        """Persist the whole store document atomically."""
        write_json_atomic(
            self._path, data.model_dump(by_alias=True, exclude_none=True)
        )

    # ------------------------------------------------------------------
    # Token
    # ------------------------------------------------------------------

    def get_token(self) -> str:
        return self.load().github_token

    def set_token(self, token: str) -> None:
        with self._lock:
            data = self.load()
            data.github_token = token
            self.save(data)

    # ------------------------------------------------------------------
    # Groups
    # ------------------------------------------------------------------

    def list_groups(self) -> list[FileGroup]:
        return self.load().groups

    def get_group(self, name: str) -> FileGroup | None:
        """Return the group called *name*, or ``None`` if absent."""
        for group in self.load().groups:
            if group.name == name:
                return group
        return None

    def add_group(self, group: FileGroup) -> None:
        """Append *group* to the store.

        Raises:
            InvalidGroupDefinition: If a group with the same name exists.
        """
        with self._lock:
            data = self.load()
            if any(g.name == group.name for g in data.groups):
                raise InvalidGroupDefinition(
                    f"Group {group.name} already exists"
                )
            data.groups.append(group.model_copy(deep=True))
            self.save(data)

    def remove_group(self, name: str) -> None:
        """Remove the group called *name*.  No-op if not present."""
        with self._lock:
            data = self.load()
            remaining = [g for g in data.groups if g.name != name]
            if len(remaining) == len(data.groups):
                return
            data.groups = remaining
            self.save(data)

    def update_group(self, name: str, group: FileGroup) -> None:
        """Replace the stored group called *name* with *group*.

        No-op if no such group is stored.
        """
        with self._lock:
            data = self.load()
            for index, existing in enumerate(data.groups):
                if existing.name == name:
                    data.groups[index] = group.model_copy(deep=True)
                    self.save(data)
                    return
        logger.debug("update_group: no stored group named %s", name)
