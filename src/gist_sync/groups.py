"""File group lifecycle: create a group with its gist, remove both."""

from __future__ import annotations

import logging

from gist_sync.config_schema import FileGroup
from gist_sync.exceptions import InvalidGroupDefinition, RemoteStoreFailure
from gist_sync.store import GroupStore
from gist_sync.sync.enumerator import expand
from gist_sync.sync.merger import RemoteMergeEngine
from gist_sync.validators import (
    normalize_declared_path,
    validate_group_name,
    validate_watch_lists,
)

logger = logging.getLogger(__name__)


def create_group(
    store: GroupStore, engine: RemoteMergeEngine, group: FileGroup
) -> FileGroup:
    """Validate *group*, upload it as a new gist, and store it.

    Nothing is written to the store unless the gist was created.

    Returns:
        The stored group, with its gist id set.

    Raises:
        InvalidGroupDefinition: If the name is invalid or taken, or the
            group tracks no files.
        RemoteStoreFailure: If the gist cannot be created.
    """
    ok, message = validate_group_name(group.name)
    if not ok:
        raise InvalidGroupDefinition(message)
    ok, message = validate_watch_lists(group.files, group.folders)
    if not ok:
        raise InvalidGroupDefinition(message)
    if store.get_group(group.name) is not None:
        raise InvalidGroupDefinition(f"Group {group.name} already exists")

    candidate = group.model_copy(
        update={
            "files": [
                normalize_declared_path(p) for p in group.files if p.strip()
            ],
            "folders": [
                normalize_declared_path(p)
                for p in group.folders
                if p.strip()
            ],
        },
        deep=True,
    )
    if not expand(candidate):
        raise InvalidGroupDefinition(
            f"Group {candidate.name} does not contain any files"
        )

    gist_id = engine.create_document(candidate)
    candidate.assign_gist_id(gist_id)
    store.add_group(candidate)
    logger.info("Created group %s (gist %s)", candidate.name, gist_id)
    return candidate


def remove_group(
    store: GroupStore, engine: RemoteMergeEngine, name: str
) -> bool:
    """Delete the group's gist (best effort) and remove it locally.

    Returns:
        ``True`` if the gist was deleted or there was none to delete,
        ``False`` if the remote delete failed.

    Raises:
        KeyError: If no group called *name* is stored.
    """
    group = store.get_group(name)
    if group is None:
        raise KeyError(name)

    deleted = True
    if group.gist_id:
        try:
            engine.delete_document(group.gist_id)
        except RemoteStoreFailure as exc:
            deleted = False
            if exc.not_found:
                logger.warning(
                    "Gist %s for group %s no longer exists",
                    group.gist_id,
                    name,
                )
            else:
                logger.error("Error deleting gist for group %s: %s", name, exc)

    store.remove_group(name)
    logger.info("Removed group %s", name)
    return deleted
