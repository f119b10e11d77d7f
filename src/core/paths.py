from __future__ import annotations

import re

from core.errors import ValidationError

"""
Path and name utilities used across the project.

Provides consistent POSIX-style normalization plus the validation rules
for project file paths and project names.
"""

MAX_PATH_LENGTH = 260
MAX_PROJECT_NAME_LENGTH = 50

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]")
_PATH_CONTROL_RE = re.compile(r"[\x00-\x1F\x7F]")
_PROJECT_NAME_RE = re.compile(r"^[A-Za-z0-9\-_. /]+$")


def strip_control_chars(s: str) -> str:
    """Remove NUL and control characters, keeping tabs and newlines."""
    return _CONTROL_CHARS_RE.sub("", s or "")


def normalize_posix_relpath(p: str) -> str:
    """Normalize a user path to a clean POSIX relative path.

    Converts backslashes to '/', removes leading '/', repeated './'
    markers and duplicate slashes. Surrounding spaces are kept: git
    treats them as part of the name.
    """
    s = (p or "").replace("\\", "/")   # Unify path separators across OSes.
    s = re.sub(r"/{2,}", "/", s)
    s = s.lstrip("/")                   # Prevent accidental absolute paths.
    while s.startswith("./"):           # Drop repeated "./" prefixes.
        s = s[2:]
    return s.rstrip("/")


def validate_file_path(path: str) -> str:
    """Return ``path`` unchanged if it is a valid repo-relative file path.

    Valid paths are non-blank, forward-slash separated, have no leading
    slash, no backslash, no control character, no '..' segment and at most
    260 characters. Nothing is stripped, so the returned value is always
    the key the path was given under.
    """
    if not isinstance(path, str):
        raise ValidationError("File path is required")
    if not path.strip():
        raise ValidationError("File path cannot be empty")
    if len(path) > MAX_PATH_LENGTH:
        raise ValidationError("File path too long")
    if _PATH_CONTROL_RE.search(path):
        raise ValidationError(f"Invalid file path: {path!r} contains control characters")
    if path.startswith("/") or "\\" in path:
        raise ValidationError(f"Invalid file path: {path}")
    segments = path.split("/")
    if any(seg in ("", ".", "..") for seg in segments):
        raise ValidationError(f"Invalid file path: {path}")
    return path


def validate_project_name(name: str) -> str:
    """Return the cleaned project name or raise ValidationError."""
    if not isinstance(name, str) or not name:
        raise ValidationError("Project name is required")
    cleaned = strip_control_chars(name.strip())
    if not cleaned:
        raise ValidationError("Project name cannot be empty")
    if len(cleaned) > MAX_PROJECT_NAME_LENGTH:
        raise ValidationError("Project name must be 50 characters or less")
    if not _PROJECT_NAME_RE.match(cleaned):
        raise ValidationError("Project name contains invalid characters")
    # '/' only as an inner separator, as in "owner/repo"
    if cleaned.startswith("/") or cleaned.endswith("/") or "//" in cleaned:
        raise ValidationError("Project name contains invalid characters")
    return cleaned
