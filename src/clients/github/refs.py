from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from core.errors import RemoteServiceError

CallFn = Callable[..., Awaitable[Any]]


@dataclass(frozen=True, slots=True)
class BranchHead:
    branch: str
    commit_sha: str
    tree_sha: str


async def fetch_default_branch(call: CallFn, *, owner: str, repo: str, token: str) -> str:
    data = await call(f"/repos/{owner}/{repo}", token=token)
    branch = (data or {}).get("default_branch") or "main"
    return str(branch).strip() or "main"


async def fetch_branch_head(
    call: CallFn,
    *,
    owner: str,
    repo: str,
    branch: str,
    token: str,
) -> BranchHead:
    data = await call(f"/repos/{owner}/{repo}/branches/{branch}", token=token)
    try:
        commit = data["commit"]
        return BranchHead(
            branch=branch,
            commit_sha=str(commit["sha"]),
            tree_sha=str(commit["commit"]["tree"]["sha"]),
        )
    except (KeyError, TypeError) as e:
        raise RemoteServiceError(f"Unexpected branch payload for {owner}/{repo}@{branch}") from e


async def fetch_commit_tree_sha(
    call: CallFn,
    *,
    owner: str,
    repo: str,
    commit_sha: str,
    token: str,
) -> str:
    data = await call(f"/repos/{owner}/{repo}/git/commits/{commit_sha}", token=token)
    try:
        return str(data["tree"]["sha"])
    except (KeyError, TypeError) as e:
        raise RemoteServiceError(f"Unexpected commit payload for {commit_sha}") from e
