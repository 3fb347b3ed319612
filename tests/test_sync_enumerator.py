"""Tests for group expansion and remote name resolution."""

import os

import pytest

from gist_sync.sync.enumerator import (
    expand,
    is_under,
    path_key,
    resolve_remote_name,
)
from gist_sync.sync.models import TrackedPath


@pytest.fixture
def tree(tmp_path):
    """tmp/d/{x.txt, sub/y.txt}, tmp/a.txt."""
    d = tmp_path / "d"
    (d / "sub").mkdir(parents=True)
    (d / "x.txt").write_text("x")
    (d / "sub" / "y.txt").write_text("y")
    (tmp_path / "a.txt").write_text("a")
    return tmp_path


class TestExpand:
    def test_folder_file_tagged_with_folder(self, tmp_path, make_group):
        d = tmp_path / "d"
        d.mkdir()
        (d / "x.txt").write_text("x")

        tracked = expand(make_group(folders=[str(d)]))

        assert tracked == [
            TrackedPath(path=os.path.join(str(d), "x.txt"), folder=str(d))
        ]
        assert tracked[0].remote_name == "d/x.txt"

    def test_declared_files_first_untagged(self, tree, make_group):
        a = str(tree / "a.txt")
        d = str(tree / "d")

        tracked = expand(make_group(files=[a], folders=[d]))

        assert tracked[0] == TrackedPath(path=a, folder=None)
        assert {t.path for t in tracked[1:]} == {
            os.path.join(d, "x.txt"),
            os.path.join(d, "sub", "y.txt"),
        }
        assert all(t.folder == d for t in tracked[1:])

    def test_recurses_into_subfolders(self, tree, make_group):
        d = str(tree / "d")
        names = {t.remote_name for t in expand(make_group(folders=[d]))}
        assert names == {"d/x.txt", "d/sub/y.txt"}

    def test_declared_and_folder_file_kept_once(self, tree, make_group):
        d = str(tree / "d")
        x = os.path.join(d, "x.txt")

        tracked = expand(make_group(files=[x], folders=[d]))

        paths = [path_key(t.path) for t in tracked]
        assert len(paths) == len(set(paths))
        assert tracked[0] == TrackedPath(path=x, folder=None)

    def test_overlapping_folders_deduplicated(self, tree, make_group):
        d = str(tree / "d")
        sub = str(tree / "d" / "sub")

        tracked = expand(make_group(folders=[d, sub]))

        paths = [path_key(t.path) for t in tracked]
        assert len(paths) == len(set(paths)) == 2

    def test_deterministic(self, tree, make_group):
        group = make_group(
            files=[str(tree / "a.txt")], folders=[str(tree / "d")]
        )
        assert expand(group) == expand(group)

    def test_missing_declared_file_kept(self, tmp_path, make_group):
        missing = str(tmp_path / "gone.txt")
        assert expand(make_group(files=[missing])) == [
            TrackedPath(path=missing)
        ]

    def test_declared_directory_skipped(self, tree, make_group):
        assert expand(make_group(files=[str(tree / "d")])) == []

    def test_missing_folder_skipped(self, tmp_path, make_group):
        assert expand(make_group(folders=[str(tmp_path / "nope")])) == []

    @pytest.mark.skipif(
        not hasattr(os, "symlink"), reason="symlinks not supported"
    )
    def test_symlinks_skipped(self, tree, make_group):
        d = tree / "d"
        os.symlink(str(tree / "a.txt"), str(d / "link.txt"))
        os.symlink(str(d / "sub"), str(d / "linkdir"))
        os.symlink(str(tree / "a.txt"), str(tree / "declared-link.txt"))

        tracked = expand(
            make_group(
                files=[str(tree / "declared-link.txt")], folders=[str(d)]
            )
        )

        names = {t.remote_name for t in tracked}
        assert names == {"d/x.txt", "d/sub/y.txt"}
        assert not any(os.path.islink(t.path) for t in tracked)

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="permission bits are not enforced for root",
    )
    def test_unreadable_subfolder_skipped(self, tree, make_group, caplog):
        locked = tree / "d" / "locked"
        locked.mkdir()
        (locked / "z.txt").write_text("z")
        locked.chmod(0)
        try:
            tracked = expand(make_group(folders=[str(tree / "d")]))
        finally:
            locked.chmod(0o755)

        assert {t.remote_name for t in tracked} == {"d/x.txt", "d/sub/y.txt"}
        assert "Cannot list folder" in caplog.text

    def test_walk_error_logged_and_siblings_kept(
        self, tree, make_group, monkeypatch, caplog
    ):
        real_walk = os.walk
        locked = str(tree / "d" / "locked")

        def _walk(top, topdown=True, onerror=None, followlinks=False):
            if top == str(tree / "d"):
                onerror(PermissionError(13, "Permission denied", locked))
            yield from real_walk(top, topdown, onerror, followlinks)

        monkeypatch.setattr(os, "walk", _walk)

        tracked = expand(make_group(folders=[str(tree / "d")]))

        assert {t.remote_name for t in tracked} == {"d/x.txt", "d/sub/y.txt"}
        assert f"Cannot list folder {locked}: Permission denied" in caplog.text


class TestIsUnder:
    def test_inside(self, tmp_path):
        assert is_under(str(tmp_path / "d" / "x"), str(tmp_path / "d"))

    def test_folder_itself_is_not_under(self, tmp_path):
        assert not is_under(str(tmp_path / "d"), str(tmp_path / "d"))

    def test_sibling_with_common_prefix(self, tmp_path):
        assert not is_under(
            str(tmp_path / "docs2" / "x"), str(tmp_path / "docs")
        )


class TestResolveRemoteName:
    def test_plain_file_uses_basename(self, tmp_path):
        assert resolve_remote_name(str(tmp_path / "a.txt"), []) == "a.txt"

    def test_under_folder_prefixes_folder_basename(self, tmp_path):
        d = str(tmp_path / "d")
        path = os.path.join(d, "sub", "y.txt")
        assert resolve_remote_name(path, [d]) == "d/sub/y.txt"

    def test_first_matching_folder_wins(self, tmp_path):
        d = str(tmp_path / "d")
        sub = os.path.join(d, "sub")
        path = os.path.join(sub, "y.txt")
        assert resolve_remote_name(path, [sub, d]) == "sub/y.txt"
        assert resolve_remote_name(path, [d, sub]) == "d/sub/y.txt"

    def test_trailing_separator_in_folder(self, tmp_path):
        d = str(tmp_path / "d")
        path = os.path.join(d, "x.txt")
        assert resolve_remote_name(path, [d + os.sep]) == "d/x.txt"
