"""Client-side admission control plus interpretation of server throttling signals.

- ``RateLimiter`` keeps a sliding window of accepted call timestamps and
  admits a new call only while the window holds fewer than ``max_requests``.
  It never sleeps: a refused caller raises ``RateLimitedError`` right away.
- ``server_retry_after`` reads GitHub's Retry-After / X-RateLimit-Reset
  headers so a server-side refusal carries the same wait hint.
"""

from __future__ import annotations

import time
from collections import deque
from typing import Deque, Mapping, Optional

import httpx


class RateLimiter:
    def __init__(self, *, max_requests: int, window_seconds: float) -> None:
        self._max_requests = max(1, int(max_requests))
        self._window = float(window_seconds)
        # Monotonic timestamps of admitted calls, oldest first
        self._log: Deque[float] = deque()

    @property
    def max_requests(self) -> int:
        return self._max_requests

    @property
    def window_seconds(self) -> float:
        return self._window

    def _evict(self, now: float) -> None:
        while self._log and now - self._log[0] >= self._window:
            self._log.popleft()

    def admit(self) -> bool:
        # Check and record happen with no await in between.
        now = time.monotonic()
        self._evict(now)
        if len(self._log) >= self._max_requests:
            return False
        self._log.append(now)
        return True

    def time_until_next_slot(self) -> float:
        now = time.monotonic()
        self._evict(now)
        if len(self._log) < self._max_requests:
            return 0.0
        return max(0.0, self._log[0] + self._window - now)

    def reset(self) -> None:
        self._log.clear()


def _parse_int_header(headers: Mapping[str, str], name: str) -> Optional[int]:
    value = headers.get(name)
    if not value:
        return None
    value = value.strip()
    if not value.isdigit():
        return None
    return int(value)


def is_server_rate_limited(response: httpx.Response) -> bool:
    if response.status_code == 429:
        return True
    return response.status_code == 403 and response.headers.get("X-RateLimit-Remaining") == "0"


def server_retry_after(response: httpx.Response) -> float:
    """Seconds the server asked us to wait, 0 when it gave no hint."""
    retry_after = _parse_int_header(response.headers, "Retry-After")
    if retry_after is not None:
        return float(retry_after)

    reset = _parse_int_header(response.headers, "X-RateLimit-Reset")
    if reset is not None:
        return float(max(0, reset - int(time.time())) + 1)

    return 0.0
