"""Token verification against ``GET /user`` and ``GET /user/emails``.

A token is accepted when the user can be fetched, classic tokens carry the
``repo`` scope, and the account has a primary, verified e-mail address. The
resulting commit identity is cached per token for a short TTL.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from clients.github.client import GitHubClient
from core.cache import TokenCache
from core.error_classifier import classified
from core.errors import AuthError
from core.models import GitHubUser

logger = logging.getLogger(__name__)

REQUIRED_SCOPE = "repo"


def _parse_scopes(header: Optional[str]) -> Optional[list[str]]:
    # Fine-grained tokens send no X-OAuth-Scopes header at all
    if header is None:
        return None
    return [s.strip() for s in header.split(",") if s.strip()]


def _primary_verified_email(emails: Any) -> Optional[str]:
    if not isinstance(emails, list):
        return None
    for entry in emails:
        if isinstance(entry, dict) and entry.get("primary") and entry.get("verified") and entry.get("email"):
            return str(entry["email"])
    return None


class IdentityVerifier:
    def __init__(self, *, client: GitHubClient, ttl_seconds: float = 300.0, maxsize: int = 32) -> None:
        self._client = client
        self._cache: TokenCache[GitHubUser] = TokenCache(ttl_seconds=ttl_seconds, maxsize=maxsize)

    def cached(self, token: str) -> Optional[GitHubUser]:
        return self._cache.get(token)

    def forget(self, token: str) -> None:
        self._cache.forget(token)

    @classified("GitHub Token Verification")
    async def verify(self, token: str) -> GitHubUser:
        cached = self._cache.get(token)
        if cached is not None:
            return cached

        resp = await self._client.request("/user", token=token)
        user_data = resp.json() or {}
        login = str(user_data.get("login") or "").strip()

        scopes = _parse_scopes(resp.headers.get("X-OAuth-Scopes"))
        if scopes is not None and REQUIRED_SCOPE not in scopes:
            raise AuthError(
                f"Token is valid for user '{login}', but is missing the required '{REQUIRED_SCOPE}' scope."
            )

        emails = await self._client.call("/user/emails", token=token)
        email = _primary_verified_email(emails)
        if not email:
            raise AuthError(
                f"Could not find a primary, verified email for user '{login}'. "
                "Please check your GitHub email settings."
            )

        user = GitHubUser(name=str(user_data.get("name") or login), email=email)
        self._cache.put(token, user)
        logger.info("Verified GitHub identity for %s", login)
        return user
