"""Merge local changes into a multi-file gist.

Every gist managed by gist-sync contains:

* ``#<group>`` -- JSON ``RemoteMetadata`` (upload date, tool version,
  watched files and folders);
* ``!<group>`` -- a one-line marker naming the group;
* one file per tracked path, named by ``resolve_remote_name``.

Updates are read-merge-write: the current file set is fetched, changed
files and fresh metadata are laid over it, and every other remote file is
carried forward unchanged so files this tool does not own survive.  The
write is not atomic against concurrent writers; the last writer wins.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Iterable

from pydantic import ValidationError

from gist_sync import __version__
from gist_sync.config_schema import FileGroup
from gist_sync.core.client import GistClient
from gist_sync.exceptions import InvalidGroupDefinition, PathUnreadable
from gist_sync.file_handler import read_text
from gist_sync.sync.enumerator import expand, resolve_remote_name
from gist_sync.sync.models import FileChange, RemoteMetadata

logger = logging.getLogger(__name__)


def metadata_file_name(group_name: str) -> str:
    return f"#{group_name}"


def marker_file_name(group_name: str) -> str:
    return f"!{group_name}"


def _dedupe(items: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            ordered.append(item)
    return ordered


class RemoteMergeEngine:
    """Create, update, and delete the gist backing a file group.

    Args:
        client: Gist store client.
        version: Version string recorded in the metadata file.
    """

    def __init__(self, client: GistClient, version: str = __version__) -> None:
        self.client = client
        self.version = version

    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------

    def build_metadata(
        self, watched_files: list[str], watched_folders: list[str]
    ) -> RemoteMetadata:
        return RemoteMetadata(
            upload_date=datetime.now(timezone.utc).isoformat(),
            version=self.version,
            watched_files=list(watched_files),
            watched_folders=list(watched_folders),
        )

    @staticmethod
    def encode_metadata(metadata: RemoteMetadata) -> str:
        return json.dumps(metadata.model_dump(by_alias=True), indent=2)

    @staticmethod
    def decode_metadata(content: str | None) -> RemoteMetadata | None:
        """Parse a metadata file; ``None`` if absent or malformed."""
        if not content:
            return None
        try:
            return RemoteMetadata.model_validate(json.loads(content))
        except (ValueError, ValidationError) as exc:
            logger.warning("Ignoring unparsable gist metadata: %s", exc)
            return None

    def get_metadata(
        self, document_id: str, group_name: str
    ) -> RemoteMetadata | None:
        """Fetch and decode the group's metadata file.

        Returns:
            The metadata, or ``None`` if the file is missing or cannot be
            parsed.

        Raises:
            RemoteStoreFailure: If the gist cannot be fetched.
        """
        files = self.client.get_gist(document_id)
        return self.decode_metadata(files.get(metadata_file_name(group_name)))

    # ------------------------------------------------------------------
    # Create / update / delete
    # ------------------------------------------------------------------

    def create_document(self, group: FileGroup) -> str:
        """Upload every tracked file of *group* as a new secret gist.

        Returns:
            The new gist id.

        Raises:
            InvalidGroupDefinition: If no tracked file could be read.
            RemoteStoreFailure: If GitHub rejects the request.
        """
        metadata = self.build_metadata(group.files, group.folders)
        files: dict[str, str] = {
            metadata_file_name(group.name): self.encode_metadata(metadata),
            marker_file_name(group.name): (
                f"gist-sync file group: {group.name}\n"
            ),
        }

        uploaded = 0
        for tracked in expand(group):
            try:
                content = read_text(tracked.path)
            except PathUnreadable as exc:
                logger.error("Error reading file: %s", exc)
                continue
            name = resolve_remote_name(tracked.path, group.folders)
            files[name] = content
            uploaded += 1

        if uploaded == 0:
            raise InvalidGroupDefinition(
                f"Group {group.name} has no readable files to upload"
            )

        description = group.description or f"File group: {group.name}"
        gist_id = self.client.create_gist(description, files, public=False)
        logger.info(
            "Created gist %s for group %s with %d files",
            gist_id,
            group.name,
            uploaded,
        )
        return gist_id

    def update_document(
        self,
        document_id: str,
        changes: list[FileChange],
        group_name: str,
        *,
        watched_files: list[str] | None = None,
        watched_folders: list[str] | None = None,
    ) -> dict[str, str]:
        """Write *changes* into the gist, preserving every other file.

        Args:
            document_id: Gist id.
            changes: Changed files with their new content.
            group_name: Owning group (locates the metadata file).
            watched_files: Current declared files; defaults to the list in
                the remote metadata.
            watched_folders: Current declared folders; merged in front of
                the folders recorded in the remote metadata.

        Returns:
            The full file set that was written.

        Raises:
            RemoteStoreFailure: If the fetch or the write fails.
        """
        current = self.client.get_gist(document_id)
        meta_name = metadata_file_name(group_name)
        previous = self.decode_metadata(current.get(meta_name))

        files_list = (
            list(watched_files)
            if watched_files is not None
            else (previous.watched_files if previous else [])
        )
        folders_list = _dedupe(
            [
                *(watched_folders or []),
                *(previous.watched_folders if previous else []),
            ]
        )

        merged: dict[str, str] = {
            meta_name: self.encode_metadata(
                self.build_metadata(files_list, folders_list)
            )
        }
        for change in changes:
            merged[resolve_remote_name(change.path, folders_list)] = (
                change.content
            )
        for name, content in current.items():
            if name not in merged:
                merged[name] = content

        self.client.update_gist(document_id, merged)
        logger.info(
            "Updated gist %s for group %s with %d changed files",
            document_id,
            group_name,
            len(changes),
        )
        return merged

    def delete_document(self, document_id: str) -> None:
        """Delete the gist.

        Raises:
            RemoteStoreFailure: If GitHub reports an error (including 404).
        """
        self.client.delete_gist(document_id)
        logger.info("Deleted gist %s", document_id)
