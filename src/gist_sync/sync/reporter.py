"""Report formatting for sync passes and group listings.

- ``format_sync_report`` -- one-pass summary for the terminal.
- ``format_group_listing`` -- the ``gist-sync list`` entry for one group.
- ``report_to_json`` -- structured dict for ``--json`` output.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from gist_sync.config_schema import FileGroup

    from .models import RemoteMetadata, SyncReport


def _format_date(iso_timestamp: str) -> str:
    try:
        return datetime.fromisoformat(iso_timestamp).strftime(
            "%Y-%m-%d %H:%M"
        )
    except ValueError:
        return iso_timestamp


def format_sync_report(report: SyncReport) -> str:
    """Format a sync pass as human-readable text.

    Sections are only included when they contain at least one path.
    """
    lines: list[str] = [
        f"Sync report for '{report.group_name}' ({report.trigger.value})"
    ]

    if report.error:
        lines.append(f"Failed: {report.error}")
    elif report.pushed:
        lines.append(f"Pushed {len(report.pushed)} changed files:")
        lines.extend(f"  {path}" for path in report.pushed)
    else:
        lines.append("No changes.")

    if report.skipped:
        lines.append(f"Skipped {len(report.skipped)} unreadable files:")
        lines.extend(f"  {path}" for path in report.skipped)

    return "\n".join(lines)


def format_group_listing(
    group: FileGroup, metadata: RemoteMetadata | None = None
) -> str:
    """Format one group for ``gist-sync list``."""
    lines = [f"{group.name}:"]
    if group.description:
        lines.append(f"  Description: {group.description}")
    lines.append(f"  Gist ID: {group.gist_id or '(none)'}")
    if metadata is not None:
        lines.append(f"  Last Upload: {_format_date(metadata.upload_date)}")
        lines.append(f"  Version: {metadata.version}")
    if group.files:
        lines.append("  Files:")
        lines.extend(f"  - {path}" for path in group.files)
    if group.folders:
        lines.append("  Folders:")
        lines.extend(f"  - {path}" for path in group.folders)
    return "\n".join(lines)


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation."""
    data: dict = {
        "group_name": report.group_name,
        "trigger": report.trigger.value,
        "success": report.success,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "counts": {
            "pushed": len(report.pushed),
            "skipped": len(report.skipped),
        },
        "pushed": list(report.pushed),
        "skipped": list(report.skipped),
    }
    if report.error:
        data["error"] = report.error
    return data
