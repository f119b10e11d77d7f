from __future__ import annotations

import re
from typing import Tuple

from core.errors import ValidationError
from core.paths import strip_control_chars


_REPO_URL_RE = re.compile(r"^https?://github\.com/([A-Za-z0-9\-._]+)/([A-Za-z0-9\-._]+?)(?:\.git)?(?:/.*)?$")
_REPO_PATH_RE = re.compile(r"^([A-Za-z0-9\-._]+)/([A-Za-z0-9\-._]+?)(?:\.git)?/?$")
_TOKEN_PREFIXES = ("ghp_", "github_pat_")
_MIN_TOKEN_LENGTH = 40


def parse_repo_url(repo_url: str) -> Tuple[str, str]:
    """Accept 'https://github.com/owner/repo[.git]' or plain 'owner/repo'."""
    raw = strip_control_chars((repo_url or "").strip())
    m = _REPO_URL_RE.match(raw) or _REPO_PATH_RE.match(raw)
    if not m:
        raise ValidationError("Invalid GitHub repository URL")
    return m.group(1), m.group(2)


def require_non_empty(**fields: str) -> None:
    missing = [name for name, value in fields.items() if not (value or "").strip()]
    if missing:
        raise ValidationError(f"Missing required value(s): {', '.join(missing)}")


def validate_token_format(token: str) -> str:
    cleaned = strip_control_chars((token or "").strip())
    if not cleaned:
        raise ValidationError("Token is required")
    if not cleaned.startswith(_TOKEN_PREFIXES):
        raise ValidationError("Token format appears to be invalid")
    if len(cleaned) < _MIN_TOKEN_LENGTH:
        raise ValidationError("Token appears to be too short")
    return cleaned
