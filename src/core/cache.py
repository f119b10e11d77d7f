"""Per-credential TTL cache.

Remembers values derived from a token (the verified commit identity) for a
short while. Tokens are never stored: entries are keyed by the SHA-256 of
the stripped token. Expired entries are dropped on read; the least recently
used entry goes first once ``maxsize`` is exceeded.
"""

from __future__ import annotations

import hashlib
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


def token_digest(token: str) -> str:
    return hashlib.sha256((token or "").strip().encode("utf-8")).hexdigest()


@dataclass(slots=True)
class _Entry(Generic[T]):
    value: T
    expires_at: float  # time.monotonic()


class TokenCache(Generic[T]):
    def __init__(self, *, ttl_seconds: float, maxsize: int = 32) -> None:
        self._ttl = float(ttl_seconds)
        self._maxsize = max(1, int(maxsize))
        self._entries: "OrderedDict[str, _Entry[T]]" = OrderedDict()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, token: str) -> bool:
        return self.get(token) is not None

    def get(self, token: str) -> Optional[T]:
        key = token_digest(token)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if time.monotonic() >= entry.expires_at:
            del self._entries[key]
            return None
        self._entries.move_to_end(key)
        return entry.value

    def put(self, token: str, value: T) -> None:
        key = token_digest(token)
        self._entries[key] = _Entry(value=value, expires_at=time.monotonic() + self._ttl)
        self._entries.move_to_end(key)
        while len(self._entries) > self._maxsize:
            self._entries.popitem(last=False)

    def forget(self, token: str) -> Optional[T]:
        entry = self._entries.pop(token_digest(token), None)
        return None if entry is None else entry.value

    def clear(self) -> None:
        self._entries.clear()
