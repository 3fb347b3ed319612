"""Incremental file-group to gist sync engine.

Public API for detecting local changes in a file group and merging them
into the group's gist.

Architecture
------------
Change detection is **one-way and incremental**: only files whose content
changed since the last known state are pushed, and every gist file the
engine did not touch is carried forward unchanged.  Remote content is
never pulled back.

Modules:

- ``hasher``     -- SHA-256 fingerprints of raw file bytes.
- ``enumerator`` -- ``expand``: declared files + folders -> tracked paths;
  ``resolve_remote_name``: local path -> gist file name.
- ``detector``   -- ``HashChangeDetector`` (persisted fingerprints) and
  ``SnapshotChangeDetector`` (process-lifetime text snapshots).
- ``merger``     -- ``RemoteMergeEngine``: create/update/delete gists and
  read their metadata.
- ``scheduler``  -- ``SyncScheduler``: startup pass, continuous watching
  with debounce, interval polling, lifecycle.
- ``state``      -- ``SchedulerState``: runtime table of armed groups.
- ``models``     -- ``TrackedPath``, ``FileChange``, ``RemoteMetadata``,
  ``SyncReport``.
- ``reporter``   -- Human-readable and JSON report formatting.

Usage example
-------------
::

    import asyncio
    from pathlib import Path
    from gist_sync.config import load_settings
    from gist_sync.core.client import GistClient
    from gist_sync.store import GroupStore
    from gist_sync.sync import RemoteMergeEngine, SyncScheduler

    settings = load_settings()
    store = GroupStore(settings.store_path)
    engine = RemoteMergeEngine(GistClient(settings))
    scheduler = SyncScheduler(engine, store)

    async def main():
        group = store.get_group("docs")
        await scheduler.start(group)              # continuous
        # await scheduler.start(group, interval_minutes=5)
        ...
        scheduler.dispose_all()

    asyncio.run(main())
"""

from .detector import HashChangeDetector, SnapshotChangeDetector
from .enumerator import expand, resolve_remote_name
from .hasher import fingerprint
from .merger import RemoteMergeEngine
from .models import (
    FileChange,
    RemoteMetadata,
    SyncReport,
    SyncTrigger,
    TrackedPath,
)
from .reporter import (
    format_group_listing,
    format_sync_report,
    report_to_json,
)
from .scheduler import SyncScheduler
from .state import SchedulerState, WatchMode

__all__ = [
    "FileChange",
    "HashChangeDetector",
    "RemoteMergeEngine",
    "RemoteMetadata",
    "SchedulerState",
    "SnapshotChangeDetector",
    "SyncReport",
    "SyncScheduler",
    "SyncTrigger",
    "TrackedPath",
    "WatchMode",
    "expand",
    "fingerprint",
    "format_group_listing",
    "format_sync_report",
    "report_to_json",
    "resolve_remote_name",
]
