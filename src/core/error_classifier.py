"""Map raw failures into the closed error taxonomy.

``classify`` is total: anything raised below a component boundary comes
out as a ``SyncError`` subclass with a sanitized message. Errors that were
already classified by a lower layer pass through untouched; the substring
heuristic only applies to unstructured exceptions.
"""

from __future__ import annotations

import functools
import json
import logging
import re
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

from core.errors import (
    AuthError,
    ErrorKind,
    InternalError,
    NetworkError,
    RateLimitedError,
    RemoteServiceError,
    SyncError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SECRET_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"github_pat_[A-Za-z0-9_]{22,}"), "[GITHUB_TOKEN]"),
    (re.compile(r"gh[pousr]_[A-Za-z0-9]{36,}"), "[GITHUB_TOKEN]"),
    (re.compile(r"AIza[A-Za-z0-9\-_]{35}"), "[API_KEY]"),
    (re.compile(r"sk-[A-Za-z0-9]{32,}"), "[SECRET_KEY]"),
    (re.compile(r"Bearer\s+[A-Za-z0-9\-._~+/]+=*", re.IGNORECASE), "[BEARER_TOKEN]"),
    (re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}"), "[EMAIL]"),
)

# Checked in order; first match wins
_HEURISTICS: tuple[tuple[tuple[str, ...], type[SyncError]], ...] = (
    (("network", "fetch", "connection"), NetworkError),
    (("auth", "token", "credentials"), AuthError),
    (("rate limit", "too many requests", "quota"), RateLimitedError),
)


def sanitize_message(message: str) -> str:
    """Replace secret-shaped substrings with fixed placeholders."""
    out = message or ""
    for pattern, placeholder in _SECRET_PATTERNS:
        out = pattern.sub(placeholder, out)
    return out


def _with_context(context: Optional[str]) -> dict[str, Any]:
    return {"context": context} if context else {}


def classify(exc: BaseException, context: Optional[str] = None) -> SyncError:
    if isinstance(exc, SyncError):
        clean = sanitize_message(exc.message)
        if clean != exc.message:
            exc.message = clean
            exc.args = (clean,)
        if context and "context" not in exc.context:
            exc.context["context"] = context
        return exc

    ctx = _with_context(context)
    raw = str(exc) or exc.__class__.__name__
    message = sanitize_message(raw)

    if isinstance(exc, httpx.TransportError):
        return NetworkError(f"Network error: {message}", context=ctx)
    if isinstance(exc, json.JSONDecodeError):
        return RemoteServiceError(f"Malformed response: {message}", context=ctx)

    lowered = raw.lower()
    for needles, error_cls in _HEURISTICS:
        if any(n in lowered for n in needles):
            return error_cls(message, context=ctx)

    return InternalError(message, context=ctx)


def log_error(err: SyncError) -> None:
    if err.kind in (ErrorKind.SYSTEM, ErrorKind.ASSISTANT_SERVICE):
        logger.error("[%s] %s %s", err.kind.value, err.message, err.context, exc_info=err)
    else:
        logger.warning("[%s] %s %s", err.kind.value, err.message, err.context)


def classified(context: str) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Async decorator: classify, log and re-raise anything the call raises."""

    def decorator(fn: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return await fn(*args, **kwargs)
            except Exception as e:
                err = classify(e, context)
                log_error(err)
                if err is e:
                    raise
                raise err from e

        return wrapper

    return decorator
