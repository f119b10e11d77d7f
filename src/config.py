"""Configuration and environment helpers for the project.

Provides small helpers to read typed environment variables and exposes
project-level configuration constants used across the codebase (e.g.
PROJECT_ROOT, GitHub endpoint and timeouts, rate-limit windows and size
ceilings).
"""

from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


# Directories the user granted access to must live under this root
PROJECT_ROOT = Path(os.environ.get("PROJECT_ROOT", ".")).resolve()

# Network / HTTP
HTTP_VERIFY = _env_bool("HTTP_VERIFY", True)

# GitHub
GITHUB_API_URL = os.environ.get("GITHUB_API_URL", "https://api.github.com").strip()
GITHUB_TIMEOUT = _env_float("GITHUB_TIMEOUT", 20.0)
GITHUB_MAX_CONCURRENCY = _env_int("GITHUB_MAX_CONCURRENCY", 8)
GITHUB_TOKEN = (os.environ.get("GITHUB_TOKEN") or "").strip()

# Sliding-window admission control, one window per remote collaborator
GITHUB_RATE_LIMIT_REQUESTS = _env_int("GITHUB_RATE_LIMIT_REQUESTS", 60)
GITHUB_RATE_LIMIT_WINDOW = _env_float("GITHUB_RATE_LIMIT_WINDOW", 60.0)
ASSISTANT_RATE_LIMIT_REQUESTS = _env_int("ASSISTANT_RATE_LIMIT_REQUESTS", 30)
ASSISTANT_RATE_LIMIT_WINDOW = _env_float("ASSISTANT_RATE_LIMIT_WINDOW", 60.0)

# Limits
MAX_FILE_BYTES = _env_int("MAX_FILE_BYTES", 1024 * 1024)
IDENTITY_CACHE_TTL = _env_float("IDENTITY_CACHE_TTL", 300.0)

# Logging
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").strip().upper() or "INFO"
