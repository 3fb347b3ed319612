"""Tests for sync report formatting."""

from gist_sync.config_schema import FileGroup
from gist_sync.sync.models import RemoteMetadata, SyncReport, SyncTrigger
from gist_sync.sync.reporter import (
    format_group_listing,
    format_sync_report,
    report_to_json,
)


def _report(**overrides) -> SyncReport:
    defaults = {
        "group_name": "docs",
        "trigger": SyncTrigger.STARTUP,
        "started_at": "2024-01-01T00:00:00+00:00",
        "completed_at": "2024-01-01T00:00:01+00:00",
    }
    defaults.update(overrides)
    return SyncReport(**defaults)


class TestFormatSyncReport:
    def test_header(self):
        assert format_sync_report(_report()).splitlines()[0] == (
            "Sync report for 'docs' (startup)"
        )

    def test_no_changes(self):
        assert "No changes." in format_sync_report(_report())

    def test_pushed_section(self):
        text = format_sync_report(_report(pushed=["/tmp/a.txt", "/tmp/b.txt"]))
        assert "Pushed 2 changed files:" in text
        assert "  /tmp/a.txt" in text

    def test_error_replaces_pushed(self):
        text = format_sync_report(_report(error="Gist update failed: boom"))
        assert "Failed: Gist update failed: boom" in text
        assert "No changes." not in text

    def test_skipped_section(self):
        text = format_sync_report(_report(skipped=["/tmp/gone.txt"]))
        assert "Skipped 1 unreadable files:" in text


class TestFormatGroupListing:
    def test_with_metadata(self):
        group = FileGroup(
            name="docs",
            description="My docs",
            files=["/tmp/a.txt"],
            folders=["/tmp/d"],
            gist_id="abc",
        )
        meta = RemoteMetadata(
            upload_date="2024-03-05T14:07:00+00:00", version="1.0.0"
        )

        text = format_group_listing(group, meta)

        assert text.splitlines()[0] == "docs:"
        assert "  Description: My docs" in text
        assert "  Gist ID: abc" in text
        assert "  Last Upload: 2024-03-05 14:07" in text
        assert "  Version: 1.0.0" in text
        assert "  - /tmp/a.txt" in text
        assert "  - /tmp/d" in text

    def test_without_gist_or_metadata(self):
        text = format_group_listing(FileGroup(name="docs"))
        assert "  Gist ID: (none)" in text
        assert "Last Upload" not in text

    def test_unparsable_date_shown_verbatim(self):
        meta = RemoteMetadata(upload_date="yesterday", version="1.0.0")
        text = format_group_listing(FileGroup(name="docs"), meta)
        assert "  Last Upload: yesterday" in text


class TestReportToJson:
    def test_structure(self):
        data = report_to_json(_report(pushed=["/tmp/a.txt"]))
        assert data["group_name"] == "docs"
        assert data["trigger"] == "startup"
        assert data["success"] is True
        assert data["counts"] == {"pushed": 1, "skipped": 0}
        assert "error" not in data

    def test_error_included(self):
        data = report_to_json(_report(error="boom"))
        assert data["success"] is False
        assert data["error"] == "boom"
