"""
Input validation for file group definitions.

Validators return ``(is_valid, error_message)`` tuples so callers can
decide whether to raise, prompt again, or report.
"""

_FORBIDDEN_NAME_CHARS = ("/", "\\")


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Group name")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_group_name(name: str) -> tuple[bool, str]:
    """
    Validate a group name.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot contain path separators ('/' or '\\')
        - Cannot start with '#' or '!' (reserved for gist bookkeeping files)
    """
    if not name or not name.strip():
        return (
            False,
            format_validation_error("Group name", "cannot be empty"),
        )

    if any(ch in name for ch in _FORBIDDEN_NAME_CHARS):
        return (
            False,
            format_validation_error(
                "Group name", "cannot contain path separators"
            ),
        )

    if name.startswith(("#", "!")):
        return (
            False,
            format_validation_error(
                "Group name", "cannot start with '#' or '!'"
            ),
        )

    return (True, "")


def validate_watch_lists(
    files: list[str], folders: list[str]
) -> tuple[bool, str]:
    """
    Validate that a group declares something to watch.

    Only the declarations are checked here; whether the folders actually
    contain files is decided by the enumerator at creation time.
    """
    if not any(f.strip() for f in files) and not any(
        d.strip() for d in folders
    ):
        return (
            False,
            format_validation_error(
                "Group", "must declare at least one file or folder"
            ),
        )
    return (True, "")


def normalize_declared_path(path: str) -> str:
    """Normalize a user-supplied path: trim and use forward slashes."""
    return path.strip().replace("\\", "/")
