"""Sync scheduler: decides when change detection runs for each group.

Every started group first gets one hash-based pass (pushing drift that
accumulated while the tool was not running), then one of two change
sources is armed:

* **continuous** -- a watchdog observer posts filesystem events into the
  event loop; bursts are collapsed by a per-group debounce timer and the
  last triggering file is pushed once the group has been quiet for
  ``debounce_seconds``.
* **interval** -- an asyncio task wakes every N minutes and runs the
  snapshot detector over the whole group.

Both feed the same pipeline: detect -> ``RemoteMergeEngine.update_document``
-> record fingerprints -> persist the group.  Each group's pipeline runs
under its own lock; blocking I/O runs in worker threads so a slow request
for one group never stalls another group's events or timers.

Error handling is per-group: a remote failure is logged, persisted hashes
are left untouched, and the armed watch keeps running so the change is
retried on the next pass.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Callable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from gist_sync.config_schema import FileGroup, FileHash
from gist_sync.core.async_utils import run_sync
from gist_sync.exceptions import (
    NoRemoteDocument,
    PathUnreadable,
    RemoteStoreFailure,
)
from gist_sync.store import GroupStore
from gist_sync.sync.detector import (
    HashChangeDetector,
    SnapshotChangeDetector,
    read_fingerprinted,
    utc_now,
)
from gist_sync.sync.enumerator import is_regular_file, is_under, path_key
from gist_sync.sync.merger import RemoteMergeEngine
from gist_sync.sync.models import FileChange, SyncReport, SyncTrigger
from gist_sync.sync.state import GroupSession, SchedulerState, WatchMode

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 1.0

EVENT_MODIFIED = "modified"
EVENT_CREATED = "created"
EVENT_MOVED = "moved"


class _GroupEventHandler(FileSystemEventHandler):
    """Forward watchdog events for one group into the event loop."""

    def __init__(
        self,
        scheduler: SyncScheduler,
        group_name: str,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        super().__init__()
        self.scheduler = scheduler
        self.group_name = group_name
        self.loop = loop

    def _post(self, path: str | bytes, kind: str) -> None:
        try:
            self.loop.call_soon_threadsafe(
                self.scheduler.on_fs_event,
                self.group_name,
                os.fsdecode(path),
                kind,
            )
        except RuntimeError:
            # Loop already closed during shutdown
            logger.debug("Dropped %s event for %s", kind, path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._post(event.src_path, EVENT_MODIFIED)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._post(event.src_path, EVENT_CREATED)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors that save via write-then-rename surface as a move
        if not event.is_directory:
            self._post(event.dest_path, EVENT_MOVED)


def _record_fingerprints(group: FileGroup, changes: list[FileChange]) -> None:
    """Record a FileHash for each pushed change that carries a fingerprint."""
    for change in changes:
        if change.fingerprint is None:
            continue
        group.record_hash(
            FileHash(
                path=change.path,
                fingerprint=change.fingerprint,
                last_sync=utc_now(),
            )
        )


class SyncScheduler:
    """Arm and disarm change sources for file groups.

    Args:
        engine: Merge engine used to push changes.
        store: Group store where updated hashes are persisted.
        debounce_seconds: Quiet period before a file event is pushed.
        observer_factory: Callable returning a watchdog observer.
    """

    def __init__(
        self,
        engine: RemoteMergeEngine,
        store: GroupStore,
        debounce_seconds: float = DEBOUNCE_SECONDS,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self.engine = engine
        self.store = store
        self.debounce_seconds = debounce_seconds
        self._observer_factory = observer_factory
        self._state = SchedulerState()
        self._snapshot_detector = SnapshotChangeDetector()
        self._tasks: set[asyncio.Task] = set()
        self._disposed = False

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def is_watching(self, group_name: str) -> bool:
        return group_name in self._state

    def mode_of(self, group_name: str) -> WatchMode:
        session = self._state.get(group_name)
        return session.mode if session else WatchMode.STOPPED

    @property
    def disposed(self) -> bool:
        return self._disposed

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(
        self, group: FileGroup, interval_minutes: float | None = None
    ) -> SyncReport:
        """Sync *group* once, then arm continuous or interval watching.

        Args:
            group: Group to watch.  Must already have a gist.
            interval_minutes: Poll every N minutes instead of watching
                filesystem events.

        Returns:
            Report of the initial hash-based pass.

        Raises:
            NoRemoteDocument: If the group has no gist id.
            ValueError: If the group is already started or the interval
                is not positive.
            RuntimeError: If the scheduler has been disposed.
        """
        if self._disposed:
            raise RuntimeError("Scheduler has been disposed")
        if not group.gist_id:
            raise NoRemoteDocument(group.name)
        if interval_minutes is not None and interval_minutes <= 0:
            raise ValueError(
                f"Invalid interval {interval_minutes}: must be positive"
            )
        if group.name in self._state:
            raise ValueError(f"Group {group.name} is already being watched")

        session = GroupSession(group=group)
        self._state.add(session)
        try:
            async with session.lock:
                report = await self._hash_pass(group, SyncTrigger.STARTUP)
            if interval_minutes is not None:
                await self._arm_interval(session, interval_minutes)
            else:
                self._arm_continuous(session)
        except BaseException:
            self.stop(group.name)
            raise
        return report

    def stop(self, group_name: str) -> None:
        """Disarm whatever change source is armed for *group_name*.

        Idempotent: stopping an unknown or stopped group is a no-op.
        """
        session = self._state.pop(group_name)
        if session is None:
            return

        if session.debounce_handle is not None:
            session.debounce_handle.cancel()
            session.debounce_handle = None
            session.pending_path = None

        if session.interval_task is not None:
            session.interval_task.cancel()
            session.interval_task = None
            session.snapshot.clear()
            logger.info("Stopped interval checking for group: %s", group_name)

        if session.observer is not None:
            session.observer.stop()
            if session.observer.is_alive():
                session.observer.join(timeout=2)
            session.observer = None
            logger.info("Stopped watching group: %s", group_name)

        session.mode = WatchMode.STOPPED

    def dispose_all(self) -> None:
        """Stop every armed group; no new remote call starts afterwards."""
        self._disposed = True
        for name in self._state.names():
            self.stop(name)

    async def drain(self) -> None:
        """Wait for in-flight debounced pushes to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Hash-based pass
    # ------------------------------------------------------------------

    async def sync_now(
        self, group: FileGroup, trigger: SyncTrigger = SyncTrigger.MANUAL
    ) -> SyncReport:
        """Run one hash-based detect-and-push pass for *group*.

        Serialized with the group's other work when the group is armed.

        Raises:
            NoRemoteDocument: If the group has no gist id.
        """
        if not group.gist_id:
            raise NoRemoteDocument(group.name)
        session = self._state.get(group.name)
        if session is None:
            return await self._hash_pass(group, trigger)
        async with session.lock:
            return await self._hash_pass(session.group, trigger)

    async def _hash_pass(
        self, group: FileGroup, trigger: SyncTrigger
    ) -> SyncReport:
        started_at = utc_now()
        detector = HashChangeDetector()
        changes, hashes = await run_sync(detector.detect_and_update, group)

        def _report(
            pushed: list[str] | None = None, error: str | None = None
        ) -> SyncReport:
            return SyncReport(
                group_name=group.name,
                trigger=trigger,
                pushed=pushed or [],
                skipped=list(detector.skipped),
                error=error,
                started_at=started_at,
                completed_at=utc_now(),
            )

        if not changes:
            logger.debug("No changes for group %s", group.name)
            return _report()
        if self._disposed:
            return _report(error="scheduler disposed")

        try:
            await run_sync(self._push, group, changes)
        except RemoteStoreFailure as exc:
            logger.error("Error updating gist for group %s: %s", group.name, exc)
            return _report(error=str(exc))

        group.file_hashes = hashes
        await run_sync(self.store.update_group, group.name, group)
        logger.info(
            "Updated %d changed files for group %s", len(changes), group.name
        )
        return _report(pushed=[c.path for c in changes])

    def _push(self, group: FileGroup, changes: list[FileChange]) -> None:
        self.engine.update_document(
            group.gist_id,
            changes,
            group.name,
            watched_files=group.files,
            watched_folders=group.folders,
        )

    # ------------------------------------------------------------------
    # Interval polling
    # ------------------------------------------------------------------

    async def _arm_interval(
        self, session: GroupSession, interval_minutes: float
    ) -> None:
        await run_sync(
            self._snapshot_detector.seed, session.group, session.snapshot
        )
        session.interval_task = asyncio.create_task(
            self._interval_loop(session, interval_minutes * 60)
        )
        session.mode = WatchMode.INTERVAL
        logger.info(
            "Checking group %s every %s minutes",
            session.group.name,
            interval_minutes,
        )

    async def _interval_loop(
        self, session: GroupSession, seconds: float
    ) -> None:
        while True:
            await asyncio.sleep(seconds)
            try:
                await self.poll_once(session.group.name)
            except Exception:
                # Keep polling across unexpected failures
                logger.exception(
                    "Interval check failed for group %s", session.group.name
                )

    async def poll_once(self, group_name: str) -> SyncReport | None:
        """Run one snapshot-based tick for an interval-mode group.

        Returns ``None`` if the group is not armed in interval mode.
        """
        session = self._state.get(group_name)
        if session is None or session.mode != WatchMode.INTERVAL:
            return None

        group = session.group
        async with session.lock:
            started_at = utc_now()
            changes = await run_sync(
                self._snapshot_detector.detect_changes,
                group,
                session.snapshot,
            )
            report = SyncReport(
                group_name=group.name,
                trigger=SyncTrigger.INTERVAL,
                started_at=started_at,
            )
            if not changes or self._disposed:
                return report.model_copy(update={"completed_at": utc_now()})

            try:
                await run_sync(self._push, group, changes)
            except RemoteStoreFailure as exc:
                logger.error(
                    "Error updating gist for group %s: %s", group.name, exc
                )
                # Forget the observed content so the next tick resends it
                for change in changes:
                    session.snapshot.pop(change.path, None)
                return report.model_copy(
                    update={"error": str(exc), "completed_at": utc_now()}
                )

            changed_paths = [c.path for c in changes]
            _record_fingerprints(group, changes)
            await run_sync(self.store.update_group, group.name, group)
            logger.info(
                "Updated gist for group %s with changes from %s",
                group.name,
                ", ".join(changed_paths),
            )
            return report.model_copy(
                update={"pushed": changed_paths, "completed_at": utc_now()}
            )

    # ------------------------------------------------------------------
    # Continuous watching
    # ------------------------------------------------------------------

    @staticmethod
    def watch_roots(group: FileGroup) -> dict[str, bool]:
        """Return directories to subscribe to, mapped to ``recursive``.

        Declared folders are watched recursively; each declared file is
        watched through its parent directory unless a recursive watch
        already covers it.
        """
        roots: dict[str, bool] = {}
        for folder in group.folders:
            roots[os.path.abspath(folder)] = True
        for path in group.files:
            parent = os.path.dirname(os.path.abspath(path))
            covered = any(
                recursive
                and (
                    path_key(parent) == path_key(root)
                    or is_under(parent, root)
                )
                for root, recursive in roots.items()
            )
            if not covered:
                roots.setdefault(parent, False)
        return roots

    def _arm_continuous(self, session: GroupSession) -> None:
        group = session.group
        loop = asyncio.get_running_loop()
        observer = self._observer_factory()
        handler = _GroupEventHandler(self, group.name, loop)

        for root, recursive in self.watch_roots(group).items():
            if os.path.islink(root) or not os.path.isdir(root):
                logger.warning("Cannot watch %s: not a directory", root)
                continue
            try:
                observer.schedule(handler, root, recursive=recursive)
            except OSError as exc:
                logger.warning("Cannot watch %s: %s", root, exc)

        observer.start()
        session.observer = observer
        session.mode = WatchMode.CONTINUOUS
        logger.info("Started watching group: %s", group.name)

    @staticmethod
    def tracked_path_for(
        group: FileGroup, path: str, kind: str
    ) -> str | None:
        """Map an event path to the path string the enumerator would produce.

        Returns ``None`` when the event does not concern the group: paths
        outside every declared file and folder, and "created" events for
        anything but a path under a declared folder.
        """
        key = path_key(path)
        if kind != EVENT_CREATED:
            for declared in group.files:
                if path_key(declared) == key:
                    return declared
        for folder in group.folders:
            if is_under(path, folder):
                relative = os.path.relpath(
                    os.path.abspath(path), os.path.abspath(folder)
                )
                return os.path.join(folder, relative)
        return None

    def on_fs_event(self, group_name: str, path: str, kind: str) -> None:
        """Handle one filesystem event on the event loop thread.

        Qualifying events cancel and re-arm the group's debounce timer; only
        the most recent path is pushed when the timer fires.
        """
        session = self._state.get(group_name)
        if (
            session is None
            or self._disposed
            or session.mode != WatchMode.CONTINUOUS
        ):
            return
        tracked = self.tracked_path_for(session.group, path, kind)
        if tracked is None:
            return
        if not is_regular_file(tracked):
            logger.debug("Ignoring %s event for non-regular %s", kind, path)
            return

        if session.debounce_handle is not None:
            session.debounce_handle.cancel()
        session.pending_path = tracked
        session.debounce_handle = asyncio.get_running_loop().call_later(
            self.debounce_seconds, self._fire_debounce, group_name
        )

    def _fire_debounce(self, group_name: str) -> None:
        session = self._state.get(group_name)
        if session is None or self._disposed:
            return
        path = session.pending_path
        session.debounce_handle = None
        session.pending_path = None
        if path is None:
            return
        task = asyncio.get_running_loop().create_task(
            self._flush_event(session, path)
        )
        self._tasks.add(task)
        task.add_done_callback(self._on_flush_done)

    def _on_flush_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Event sync failed: %s", exc, exc_info=exc)

    async def _flush_event(
        self, session: GroupSession, path: str
    ) -> SyncReport | None:
        group = session.group
        async with session.lock:
            if self._disposed:
                return None
            if not is_regular_file(path):
                # Replaced by a link or removed during the quiet period
                logger.warning("Skipping event: %s is not a regular file", path)
                return None
            started_at = utc_now()
            try:
                content, digest = await run_sync(read_fingerprinted, path)
            except PathUnreadable as exc:
                logger.warning("Skipping event: %s", exc)
                return None

            change = FileChange(path=path, content=content, fingerprint=digest)
            try:
                await run_sync(self._push, group, [change])
            except RemoteStoreFailure as exc:
                logger.error(
                    "Error updating gist for group %s: %s", group.name, exc
                )
                return SyncReport(
                    group_name=group.name,
                    trigger=SyncTrigger.EVENT,
                    error=str(exc),
                    started_at=started_at,
                    completed_at=utc_now(),
                )

            logger.info(
                "Updated gist for group %s with changes from %s",
                group.name,
                path,
            )
            _record_fingerprints(group, [change])
            await run_sync(self.store.update_group, group.name, group)
            return SyncReport(
                group_name=group.name,
                trigger=SyncTrigger.EVENT,
                pushed=[path],
                started_at=started_at,
                completed_at=utc_now(),
            )
