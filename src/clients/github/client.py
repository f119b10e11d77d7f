"""GitHub client module: one authenticated call primitive over the REST API.

Every request is gated by the injected ``RateLimiter`` before any network
I/O, runs under a small concurrency cap and has its status mapped into the
typed error taxonomy:

  - 204            -> None
  - 401 / 403      -> AuthError (403 with an exhausted quota -> RateLimitedError)
  - 404            -> NotFoundError
  - 429            -> RateLimitedError (with the server's wait hint)
  - other non-2xx  -> RemoteServiceError carrying the server message

No request is ever retried here; retries are the caller's decision.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional

import httpx

from core.error_classifier import sanitize_message
from core.errors import (
    AuthError,
    NetworkError,
    NotFoundError,
    RateLimitedError,
    RemoteServiceError,
)
from core.rate_limiter import RateLimiter, is_server_rate_limited, server_retry_after


class GitHubClient:
    """Async GitHub REST client.

    Purpose:
      - call(endpoint, method='GET', body=None, token=...) -> JSON | None
      - request(...) -> httpx.Response, for callers that need headers

    Key behavior:
      - Consults the shared hosting-API RateLimiter on every call; a refusal
        raises RateLimitedError without touching the network.
      - Limits concurrent requests with a Semaphore (blob fan-out).
    """

    BASE_URL = "https://api.github.com"
    JSON_ACCEPT = "application/vnd.github.v3+json"
    USER_AGENT = "repo-sync-mcp"

    def __init__(
        self,
        *,
        rate_limiter: RateLimiter,
        base_url: Optional[str] = None,
        timeout: float = 20.0,
        verify: bool = True,
        max_concurrency: int = 8,
    ) -> None:
        self._rate_limiter = rate_limiter
        self._base_url = (base_url or self.BASE_URL).rstrip("/")
        self._timeout = float(timeout)
        self._verify = bool(verify)
        self._sem = asyncio.Semaphore(max(1, int(max_concurrency)))

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._rate_limiter

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        *,
        token: str,
    ) -> Any:
        """Issue one API call and return its decoded JSON body (None on 204)."""
        resp = await self.request(endpoint, method, body, token=token)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as e:
            raise RemoteServiceError(
                f"GitHub returned a malformed response ({method} {endpoint})",
                status_code=resp.status_code,
            ) from e

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: Optional[Mapping[str, Any]] = None,
        *,
        token: str,
    ) -> httpx.Response:
        method = method.upper()

        if not (token or "").strip():
            raise AuthError("GitHub token is missing")

        if not self._rate_limiter.admit():
            raise RateLimitedError(
                retry_after=self._rate_limiter.time_until_next_slot(),
                context={"endpoint": endpoint, "method": method},
            )

        try:
            async with self._sem:
                async with self._create_client(token) as client:
                    resp = await client.request(
                        method,
                        endpoint,
                        json=dict(body) if body is not None else None,
                    )
        except httpx.TransportError as e:
            raise NetworkError(
                sanitize_message(f"GitHub request failed ({method} {endpoint}): {e}")
            ) from e

        self._raise_for_status(resp, method=method, endpoint=endpoint)
        return resp

    # --- HTTP helpers ---

    def _build_headers(self, token: str) -> dict[str, str]:
        return {
            "Accept": self.JSON_ACCEPT,
            "Authorization": f"Bearer {token.strip()}",
            "User-Agent": self.USER_AGENT,
        }

    def _create_client(self, token: str) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            headers=self._build_headers(token),
            timeout=self._timeout,
            verify=self._verify,
        )

    @staticmethod
    def _server_message(resp: httpx.Response) -> str:
        try:
            data = resp.json()
        except ValueError:
            data = None
        if isinstance(data, dict) and isinstance(data.get("message"), str) and data["message"].strip():
            return data["message"].strip()
        return resp.reason_phrase or f"HTTP {resp.status_code}"

    def _raise_for_status(self, resp: httpx.Response, *, method: str, endpoint: str) -> None:
        if resp.is_success:
            return

        status = resp.status_code
        message = sanitize_message(self._server_message(resp))
        context = {"endpoint": endpoint, "method": method, "status": status}

        if is_server_rate_limited(resp):
            raise RateLimitedError(retry_after=server_retry_after(resp), context=context)
        if status == 401:
            raise AuthError(f"GitHub authentication failed: {message}", context=context)
        if status == 403:
            raise AuthError(
                f"GitHub access forbidden. Check your token permissions. ({message})",
                context=context,
            )
        if status == 404:
            raise NotFoundError(
                f"Repository or object not found, or access denied ({endpoint})",
                context=context,
            )
        raise RemoteServiceError(
            f"GitHub API error ({method} {endpoint}): {message}",
            status_code=status,
            context=context,
        )
