"""Shared pytest fixtures for gist-sync tests."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from gist_sync.config_schema import FileGroup
from gist_sync.exceptions import RemoteStoreFailure
from gist_sync.store import GroupStore
from gist_sync.sync.merger import RemoteMergeEngine


def pytest_addoption(parser):
    """Add custom CLI options for test filtering."""
    parser.addoption(
        "--run-live",
        action="store_true",
        default=False,
        help="Run tests that require a real GitHub token",
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "live: mark test as requiring a real GitHub token"
    )


def pytest_collection_modifyitems(config, items):
    """Skip live tests unless --run-live is passed."""
    if config.getoption("--run-live"):
        return
    skip_live = pytest.mark.skip(reason="need --run-live option to run")
    for item in items:
        if "live" in item.keywords:
            item.add_marker(skip_live)


class FakeGistClient:
    """Minimal GistClient replacement for testing.

    Stores gists as in-memory dicts of file name -> content.  Set
    ``fail[operation]`` to an exception to make that operation raise.
    """

    def __init__(self) -> None:
        self.gists: Dict[str, Dict[str, str]] = {}
        self.descriptions: Dict[str, str] = {}
        self.create_calls: List[Dict[str, Any]] = []
        self.update_calls: List[Dict[str, Optional[str]]] = []
        self.delete_calls: List[str] = []
        self.fail: Dict[str, Exception] = {}
        self._next_id = 1

    def _check(self, operation: str, gist_id: Optional[str] = None) -> None:
        if operation in self.fail:
            raise self.fail[operation]
        if gist_id is not None and gist_id not in self.gists:
            raise RemoteStoreFailure(operation, "Not Found", status_code=404)

    def create_gist(
        self, description: str, files: Dict[str, str], public: bool = False
    ) -> str:
        self._check("create")
        gist_id = f"gist{self._next_id}"
        self._next_id += 1
        self.gists[gist_id] = dict(files)
        self.descriptions[gist_id] = description
        self.create_calls.append(
            {"description": description, "files": dict(files), "public": public}
        )
        return gist_id

    def get_gist(self, gist_id: str) -> Dict[str, str]:
        self._check("get", gist_id)
        return dict(self.gists[gist_id])

    def update_gist(
        self, gist_id: str, files: Dict[str, Optional[str]]
    ) -> None:
        self._check("update", gist_id)
        self.update_calls.append(dict(files))
        for name, content in files.items():
            if content is None:
                self.gists[gist_id].pop(name, None)
            else:
                self.gists[gist_id][name] = content

    def delete_gist(self, gist_id: str) -> None:
        self._check("delete", gist_id)
        self.delete_calls.append(gist_id)
        del self.gists[gist_id]


@pytest.fixture
def fake_client():
    """In-memory gist store."""
    return FakeGistClient()


@pytest.fixture
def engine(fake_client):
    """Merge engine backed by the in-memory gist store."""
    return RemoteMergeEngine(fake_client, version="9.9.9")


@pytest.fixture
def store(tmp_path):
    """Group store in a temporary directory."""
    return GroupStore(tmp_path / "store" / "gist-sync-config.json")


@pytest.fixture
def make_group():
    """Factory fixture for FileGroup instances."""

    def _make(name: str = "docs", **overrides: Any) -> FileGroup:
        return FileGroup(name=name, **overrides)

    return _make
