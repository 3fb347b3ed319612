"""Per-group runtime state owned by the sync scheduler.

``SchedulerState`` is the table of armed groups.  Entries are created by
``SyncScheduler.start`` and removed by ``stop`` / ``dispose_all``; nothing
here is persisted.  Persisted state (fingerprints, gist id) lives in the
group store.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from gist_sync.config_schema import FileGroup


class WatchMode(str, Enum):
    """Lifecycle state of one group in the scheduler."""

    STOPPED = "stopped"
    STARTING = "starting"
    CONTINUOUS = "continuous"
    INTERVAL = "interval"


@dataclass
class GroupSession:
    """Runtime bookkeeping for one armed group.

    Attributes:
        group: The group being synced; mutated as hashes are recorded.
        mode: Current lifecycle state.
        lock: Serializes detect -> push -> persist for this group.
        observer: watchdog observer (continuous mode).
        interval_task: Polling task (interval mode).
        snapshot: Last observed text per path (interval mode).
        debounce_handle: Pending debounce timer (continuous mode).
        pending_path: Most recent path that re-armed the debounce timer.
    """

    group: FileGroup
    mode: WatchMode = WatchMode.STARTING
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    observer: Any = None
    interval_task: asyncio.Task | None = None
    snapshot: dict[str, str] = field(default_factory=dict)
    debounce_handle: asyncio.TimerHandle | None = None
    pending_path: str | None = None


class SchedulerState:
    """Table of armed groups keyed by group name."""

    def __init__(self) -> None:
        self._sessions: dict[str, GroupSession] = {}

    def __contains__(self, group_name: str) -> bool:
        return group_name in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    def get(self, group_name: str) -> GroupSession | None:
        return self._sessions.get(group_name)

    def add(self, session: GroupSession) -> None:
        self._sessions[session.group.name] = session

    def pop(self, group_name: str) -> GroupSession | None:
        return self._sessions.pop(group_name, None)

    def names(self) -> list[str]:
        return list(self._sessions)
