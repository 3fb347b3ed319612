"""Tests for file_handler module: encoding-aware reads and atomic JSON writes."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest

from gist_sync.exceptions import PathUnreadable
from gist_sync.file_handler import (
    decode_bytes,
    read_file_with_encoding,
    read_text,
    write_json_atomic,
)

# =============================================================================
# Reading
# =============================================================================


class TestDecodeBytes:
    def test_empty_is_utf8(self):
        assert decode_bytes(b"") == ("", "utf-8")

    def test_ascii_reported_as_utf8(self):
        content, encoding = decode_bytes(b"plain ascii text\n")
        assert content == "plain ascii text\n"
        assert encoding == "utf-8"

    def test_utf8_multibyte(self):
        text = "Grüße aus Köln – naïve café résumé\n" * 5
        content, _ = decode_bytes(text.encode("utf-8"))
        assert content == text


class TestReadText:
    def test_reads_file(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_text("hello\nworld\n")
        assert read_text(str(f)) == "hello\nworld\n"

    def test_read_file_with_encoding_returns_pair(self, tmp_path):
        f = tmp_path / "a.txt"
        f.write_bytes(b"hello")
        content, encoding = read_file_with_encoding(f)
        assert content == "hello"
        assert encoding == "utf-8"

    def test_missing_file_raises_path_unreadable(self, tmp_path):
        missing = str(tmp_path / "gone.txt")
        with pytest.raises(PathUnreadable) as exc_info:
            read_text(missing)
        assert exc_info.value.path == missing

    def test_directory_raises_path_unreadable(self, tmp_path):
        with pytest.raises(PathUnreadable):
            read_text(str(tmp_path))


# =============================================================================
# Writing
# =============================================================================


class TestWriteJsonAtomic:
    def test_creates_parent_and_writes(self, tmp_path):
        target = tmp_path / "nested" / "dir" / "data.json"
        write_json_atomic(target, {"a": [1, 2]})
        assert json.loads(target.read_text()) == {"a": [1, 2]}

    def test_replaces_existing(self, tmp_path):
        target = tmp_path / "data.json"
        target.write_text('{"old": true}')
        write_json_atomic(target, {"new": True})
        assert json.loads(target.read_text()) == {"new": True}

    def test_failure_keeps_previous_and_cleans_temp(self, tmp_path):
        target = tmp_path / "data.json"
        target.write_text('{"old": true}')

        with patch(
            "gist_sync.file_handler.os.replace", side_effect=OSError("disk")
        ):
            with pytest.raises(OSError):
                write_json_atomic(target, {"new": True})

        assert json.loads(target.read_text()) == {"old": True}
        assert [p.name for p in Path(tmp_path).iterdir()] == ["data.json"]

    def test_unserializable_data_cleans_temp(self, tmp_path):
        target = tmp_path / "data.json"
        with pytest.raises(TypeError):
            write_json_atomic(target, {"bad": object()})
        assert list(tmp_path.iterdir()) == []
