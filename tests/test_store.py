"""Tests for the JSON group store."""

import json
import threading
import time

import pytest

from gist_sync.config_schema import FileGroup, FileHash
from gist_sync.exceptions import InvalidGroupDefinition
from gist_sync.store import GroupStore


class TestLoadSave:
    def test_missing_file_is_empty(self, store):
        data = store.load()
        assert data.github_token == ""
        assert data.groups == []

    def test_invalid_json_is_empty(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text("{not json")
        assert store.load().groups == []

    def test_invalid_shape_is_empty(self, store):
        store.path.parent.mkdir(parents=True)
        store.path.write_text(json.dumps({"groups": [{"files": []}]}))
        assert store.load().groups == []

    def test_writes_camel_case_document(self, store):
        store.set_token("ghp_x")
        group = FileGroup(name="docs", files=["/tmp/a.txt"], gist_id="abc")
        group.record_hash(
            FileHash(path="/tmp/a.txt", fingerprint="f00", last_sync="t1")
        )
        store.add_group(group)

        raw = json.loads(store.path.read_text())

        assert raw == {
            "githubToken": "ghp_x",
            "groups": [
                {
                    "name": "docs",
                    "files": ["/tmp/a.txt"],
                    "folders": [],
                    "gistId": "abc",
                    "fileHashes": [
                        {"path": "/tmp/a.txt", "hash": "f00", "lastSync": "t1"}
                    ],
                }
            ],
        }

    def test_reads_existing_document(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(
            json.dumps(
                {
                    "githubToken": "tok",
                    "groups": [
                        {
                            "name": "docs",
                            "description": "Docs",
                            "files": ["/tmp/a.txt"],
                            "folders": ["/tmp/d"],
                            "gistId": "abc",
                            "fileHashes": [
                                {
                                    "path": "/tmp/a.txt",
                                    "hash": "f00",
                                    "lastSync": "2024-01-01T00:00:00.000Z",
                                }
                            ],
                        }
                    ],
                }
            )
        )

        store = GroupStore(path)
        group = store.get_group("docs")

        assert store.get_token() == "tok"
        assert group.gist_id == "abc"
        assert group.folders == ["/tmp/d"]
        assert group.hash_for("/tmp/a.txt").fingerprint == "f00"

    def test_no_temp_files_left_behind(self, store):
        store.set_token("a")
        store.set_token("b")
        assert [p.name for p in store.path.parent.iterdir()] == [
            store.path.name
        ]


class TestGroups:
    def test_add_and_get(self, store, make_group):
        store.add_group(make_group(files=["/tmp/a.txt"]))
        assert store.get_group("docs").files == ["/tmp/a.txt"]
        assert store.get_group("other") is None

    def test_add_duplicate_raises(self, store, make_group):
        store.add_group(make_group())
        with pytest.raises(InvalidGroupDefinition):
            store.add_group(make_group())
        assert len(store.list_groups()) == 1

    def test_stored_copy_is_detached(self, store, make_group):
        group = make_group(files=["/tmp/a.txt"])
        store.add_group(group)
        group.files.append("/tmp/b.txt")
        assert store.get_group("docs").files == ["/tmp/a.txt"]

    def test_remove(self, store, make_group):
        store.add_group(make_group("docs"))
        store.add_group(make_group("notes"))

        store.remove_group("docs")
        store.remove_group("unknown")

        assert [g.name for g in store.list_groups()] == ["notes"]

    def test_update_replaces_group(self, store, make_group):
        store.add_group(make_group())
        updated = make_group(gist_id="abc")

        store.update_group("docs", updated)

        assert store.get_group("docs").gist_id == "abc"

    def test_update_unknown_is_noop(self, store, make_group):
        store.update_group("docs", make_group())
        assert store.list_groups() == []
        assert not store.path.exists()

    def test_token_survives_group_edits(self, store, make_group):
        store.set_token("tok")
        store.add_group(make_group())
        store.remove_group("docs")
        assert store.get_token() == "tok"


class TestConcurrentWrites:
    def test_parallel_updates_both_persist(self, store, make_group):
        store.add_group(make_group("a"))
        store.add_group(make_group("b"))
        load = store.load

        def _slow_load():
            data = load()
            time.sleep(0.05)
            return data

        store.load = _slow_load
        threads = [
            threading.Thread(
                target=store.update_group,
                args=(name, make_group(name, gist_id=gist_id)),
            )
            for name, gist_id in (("a", "GA"), ("b", "GB"))
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        store.load = load

        assert {g.name: g.gist_id for g in store.list_groups()} == {
            "a": "GA",
            "b": "GB",
        }

    def test_token_and_group_writes_both_persist(self, store, make_group):
        load = store.load

        def _slow_load():
            data = load()
            time.sleep(0.05)
            return data

        store.load = _slow_load
        threads = [
            threading.Thread(target=store.set_token, args=("tok",)),
            threading.Thread(target=store.add_group, args=(make_group(),)),
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        store.load = load

        assert store.get_token() == "tok"
        assert [g.name for g in store.list_groups()] == ["docs"]
