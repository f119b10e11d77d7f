"""Import a repository into a file set and replay dirty files as a new commit.

Import walks repository -> branch -> recursive tree -> blobs. Blob fetches
fan out concurrently and fail independently: a file that cannot be fetched is
logged and dropped, never fatal.

Commit is a strict pipeline over the Git object model:

  1. GET  git/commits/{base}     -> base tree sha
  2. POST git/blobs  (parallel)  -> one blob sha per file, order preserved
  3. POST git/trees              -> sparse overlay on base_tree
  4. POST git/commits            -> parents = [base]
  5. PATCH git/refs/heads/{b}    -> fast-forward the branch

A failure in any stage aborts before the ref update, so the branch is left
exactly as it was; created-but-unreferenced objects are inert.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Optional, Sequence

from clients.github.client import GitHubClient
from clients.github.encoding import decode_base64_utf8, encode_base64_utf8
from clients.github.inputs import require_non_empty
from clients.github.refs import fetch_branch_head, fetch_commit_tree_sha, fetch_default_branch
from core.error_classifier import classified
from core.errors import NonFastForwardError, RemoteServiceError, SyncError, ValidationError
from core.interfaces import TextClassifier
from core.models import CommitResult, GitHubUser, ImportResult, ProjectFile
from core.text_files import is_likely_text

logger = logging.getLogger(__name__)

FILE_MODE = "100644"
DEFAULT_MAX_FILE_BYTES = 1024 * 1024


class GitSyncEngine:
    def __init__(
        self,
        *,
        client: GitHubClient,
        is_text: TextClassifier = is_likely_text,
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
    ) -> None:
        self._client = client
        self._is_text = is_text
        self._max_file_bytes = int(max_file_bytes)

    # --- import ---

    @classified("GitHub Repository Fetch")
    async def import_repository(self, owner: str, repo: str, token: str) -> ImportResult:
        require_non_empty(owner=owner, repo=repo)
        call = self._client.call

        branch = await fetch_default_branch(call, owner=owner, repo=repo, token=token)
        head = await fetch_branch_head(call, owner=owner, repo=repo, branch=branch, token=token)

        tree_data = await call(f"/repos/{owner}/{repo}/git/trees/{head.tree_sha}?recursive=1", token=token)
        entries = (tree_data or {}).get("tree") or []
        if (tree_data or {}).get("truncated"):
            logger.warning("Tree for %s/%s is truncated; some files will be missing", owner, repo)

        wanted = [
            e for e in entries
            if isinstance(e, dict)
            and e.get("type") == "blob"
            and isinstance(e.get("path"), str)
            and self._is_text(e["path"])
        ]

        results = await asyncio.gather(
            *(self._fetch_blob(owner, repo, e["path"], str(e.get("sha") or ""), token) for e in wanted)
        )
        files = tuple(f for f in results if f is not None)

        logger.info(
            "Imported %d/%d text files from %s/%s@%s",
            len(files), len(wanted), owner, repo, branch,
        )
        return ImportResult(files=files, branch=branch, latest_commit_sha=head.commit_sha)

    async def _fetch_blob(
        self,
        owner: str,
        repo: str,
        path: str,
        sha: str,
        token: str,
    ) -> Optional[ProjectFile]:
        try:
            blob = await self._client.call(f"/repos/{owner}/{repo}/git/blobs/{sha}", token=token)
        except SyncError as e:
            logger.warning("Could not fetch file content for %r. Skipping file. (%s)", path, e.message)
            return None

        raw = str((blob or {}).get("content") or "")
        if (blob or {}).get("encoding") == "base64":
            content = decode_base64_utf8(raw)
        else:
            content = raw
        return ProjectFile(path=path, content=content, dirty=False)

    # --- commit ---

    def filter_oversized(self, files: Sequence[ProjectFile]) -> tuple[list[ProjectFile], list[str]]:
        kept: list[ProjectFile] = []
        skipped: list[str] = []
        for f in files:
            size = f.size_bytes
            if size > self._max_file_bytes:
                logger.warning("Skipping file %s - too large (%dKB)", f.path, round(size / 1024))
                skipped.append(f.path)
            else:
                kept.append(f)
        return kept, skipped

    @staticmethod
    def _validate_commit_args(
        owner: str,
        repo: str,
        branch: str,
        base_commit_sha: str,
        files: Sequence[ProjectFile],
        message: str,
        author: Optional[GitHubUser],
    ) -> None:
        require_non_empty(owner=owner, repo=repo, branch=branch, base_commit_sha=base_commit_sha)
        if not files:
            raise ValidationError("No files to commit")
        if not (message or "").strip():
            raise ValidationError("Commit message cannot be empty")
        if author is None or not (author.name or "").strip() or not (author.email or "").strip():
            raise ValidationError("Author information is required")

    @classified("GitHub Commit")
    async def commit(
        self,
        owner: str,
        repo: str,
        branch: str,
        base_commit_sha: str,
        files: Sequence[ProjectFile],
        message: str,
        token: str,
        author: GitHubUser,
    ) -> CommitResult:
        self._validate_commit_args(owner, repo, branch, base_commit_sha, files, message, author)

        batch, skipped = self.filter_oversized(files)
        if not batch:
            raise ValidationError("No valid files to commit (all files may be too large)")

        call = self._client.call
        base = f"/repos/{owner}/{repo}"

        base_tree_sha = await fetch_commit_tree_sha(
            call, owner=owner, repo=repo, commit_sha=base_commit_sha, token=token
        )

        blobs = await asyncio.gather(
            *(
                call(
                    f"{base}/git/blobs",
                    "POST",
                    {"content": encode_base64_utf8(f.content), "encoding": "base64"},
                    token=token,
                )
                for f in batch
            )
        )

        tree = [
            {"path": f.path, "mode": FILE_MODE, "type": "blob", "sha": _sha_of(blob, "blob")}
            for f, blob in zip(batch, blobs)
        ]
        new_tree = await call(f"{base}/git/trees", "POST", {"base_tree": base_tree_sha, "tree": tree}, token=token)

        identity = {"name": author.name, "email": author.email}
        new_commit = await call(
            f"{base}/git/commits",
            "POST",
            {
                "message": message.strip(),
                "tree": _sha_of(new_tree, "tree"),
                "parents": [base_commit_sha],
                "author": identity,
                "committer": identity,
            },
            token=token,
        )
        commit_sha = _sha_of(new_commit, "commit")

        try:
            await call(f"{base}/git/refs/heads/{branch}", "PATCH", {"sha": commit_sha}, token=token)
        except RemoteServiceError as e:
            if e.status_code == 422:
                raise NonFastForwardError(
                    f"Branch '{branch}' has moved on the remote since the last import. "
                    "Re-import the repository and apply your changes again.",
                    status_code=422,
                    context={"branch": branch, "base_commit_sha": base_commit_sha},
                ) from e
            raise

        logger.info("Committed %d file(s) to %s/%s@%s as %s", len(batch), owner, repo, branch, commit_sha)
        return CommitResult(
            commit_sha=commit_sha,
            committed_paths=tuple(f.path for f in batch),
            skipped_paths=tuple(skipped),
        )

    async def commit_files(
        self,
        owner: str,
        repo: str,
        branch: str,
        base_commit_sha: str,
        files: Sequence[ProjectFile],
        message: str,
        token: str,
        author: GitHubUser,
    ) -> str:
        result = await self.commit(owner, repo, branch, base_commit_sha, files, message, token, author)
        return result.commit_sha


def _sha_of(obj: Any, what: str) -> str:
    sha = obj.get("sha") if isinstance(obj, dict) else None
    if not sha:
        raise RemoteServiceError(f"GitHub did not return a {what} sha")
    return str(sha)
